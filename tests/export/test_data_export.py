# tests/export/test_data_export.py
from __future__ import annotations

import csv
import json
from pathlib import Path

import pandas as pd
import pytest

from cleansheet.dataloader.normalizer import normalize_row
from cleansheet.errors import DataError, ExportError
from cleansheet.export.data_export import (
    _to_frame,
    export_all,
    write_collection_csv,
    write_rules_json,
    write_workbook,
)
from cleansheet.schemas.models import EntityKind
from cleansheet.schemas.rules import CoRunRule, RulesConfig

# --- Helpers -----------------------------------------------------------------


def _read_csv(path: Path) -> list[dict[str, str]]:
    """
    @brief
    Reads an exported CSV back without pandas to check header and cell text.
    """
    with path.open("r", encoding="utf-8", newline="") as f:
        return list(csv.DictReader(f))


def _clients():
    return [
        normalize_row(EntityKind.CLIENTS, {"ClientID": "C1", "Name": "Acme", "Region": "EU"}),
        normalize_row(EntityKind.CLIENTS, {"ClientID": "C2", "Name": "Beta", "Tier": "Gold"}),
    ]


def _tasks():
    return [normalize_row(EntityKind.TASKS, {"TaskID": "T1", "Duration": "2", "PreferredPhases": "[1,2]"})]


# --- _to_frame ----------------------------------------------------------------


def test_to_frame_keeps_first_seen_column_order():
    """
    @brief
    Columns present only on later rows are appended, never dropped.
    """
    frame = _to_frame(_clients())

    assert list(frame.columns) == ["ClientID", "Name", "Region", "Tier"]
    assert frame.loc[0, "Tier"] == ""
    assert frame.loc[1, "Region"] == ""


def test_to_frame_serializes_structured_cells_as_json():
    frame = _to_frame([{"TaskID": "T1", "PreferredPhases": [1, 2], "Meta": {"a": 1}}])

    assert frame.loc[0, "PreferredPhases"] == "[1, 2]"
    assert frame.loc[0, "Meta"] == '{"a": 1}'


def test_to_frame_rejects_unknown_row_type():
    with pytest.raises(DataError):
        _to_frame([("C1", "Acme")])


# --- Writers --------------------------------------------------------------------


def test_write_collection_csv_round_trips_edits(tmp_path: Path):
    """
    @brief
    Inline edits and passthrough columns both reach the exported file.
    """
    # --- Arrange ---
    clients = _clients()
    clients[0].set("Name", "Acme Corp")
    out = tmp_path / "nested" / "clients.csv"

    # --- Act ---
    path = write_collection_csv(clients, out)

    # --- Assert ---
    assert path == out
    rows = _read_csv(out)
    assert rows[0] == {"ClientID": "C1", "Name": "Acme Corp", "Region": "EU", "Tier": ""}
    assert rows[1]["Tier"] == "Gold"


def test_write_workbook_writes_one_sheet_per_non_empty_collection(tmp_path: Path):
    # --- Arrange ---
    out = tmp_path / "book.xlsx"

    # --- Act ---
    write_workbook(
        {EntityKind.CLIENTS: _clients(), EntityKind.WORKERS: [], EntityKind.TASKS: _tasks()},
        out,
    )

    # --- Assert ---
    sheets = pd.read_excel(out, sheet_name=None, dtype=str, keep_default_na=False)
    assert list(sheets) == ["Clients", "Tasks"]
    assert sheets["Tasks"].loc[0, "PreferredPhases"] == "[1,2]"


def test_write_workbook_without_data_raises(tmp_path: Path):
    with pytest.raises(ExportError):
        write_workbook({EntityKind.CLIENTS: []}, tmp_path / "book.xlsx")


def test_write_rules_json_uses_exported_keys(tmp_path: Path):
    # --- Arrange ---
    rules = RulesConfig(business_rules=[CoRunRule(id="r1", task_ids=["T1", "T2"])])

    # --- Act ---
    path = write_rules_json(rules, tmp_path)

    # --- Assert ---
    doc = json.loads(path.read_text(encoding="utf-8"))
    assert path.name == "rules.json"
    assert doc["businessRules"] == [
        {"id": "r1", "type": "co-run", "taskIDs": ["T1", "T2"], "description": None}
    ]
    assert doc["prioritization"]["fairness"] == 50
    assert doc["validationRules"]["clients"]["requireUniqueID"] is True


# --- export_all -------------------------------------------------------------------


def test_export_all_csv_skips_empty_collections(tmp_path: Path):
    """
    @brief
    CSV export writes one file per non-empty collection plus rules.json.
    """
    # --- Act ---
    written = export_all(_clients(), [], _tasks(), RulesConfig(), tmp_path, fmt="csv", stamp="20250101")

    # --- Assert ---
    assert set(written) == {"clients", "tasks", "rules"}
    assert written["clients"].name == "clients_cleaned_20250101.csv"
    assert written["tasks"].name == "tasks_cleaned_20250101.csv"
    assert written["rules"].name == "rules_20250101.json"
    assert not (tmp_path / "workers_cleaned_20250101.csv").exists()


def test_export_all_xlsx_writes_single_workbook(tmp_path: Path):
    written = export_all(_clients(), [], _tasks(), RulesConfig(), tmp_path, fmt="xlsx")

    assert set(written) == {"workbook", "rules"}
    assert written["workbook"].name == "cleaned_data.xlsx"
    assert written["workbook"].exists()


def test_export_all_with_no_rows_still_writes_rules(tmp_path: Path):
    written = export_all([], [], [], RulesConfig(), tmp_path, fmt="xlsx")

    assert set(written) == {"rules"}
    assert (tmp_path / "rules.json").exists()


def test_export_all_rejects_unknown_format(tmp_path: Path):
    with pytest.raises(ExportError) as e:
        export_all(_clients(), [], [], RulesConfig(), tmp_path, fmt="xls")
    assert "Unsupported export format" in str(e.value)
