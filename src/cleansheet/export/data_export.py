# src/cleansheet/export/data_export.py
from __future__ import annotations

import json
import logging
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any

import pandas as pd

from cleansheet.errors import DataError, ExportError
from cleansheet.metrics.logger import atomic_write_text
from cleansheet.schemas.models import Client, EntityKind, Task, Worker, _RowModel
from cleansheet.schemas.rules import RulesConfig

logger = logging.getLogger(__name__)

SHEET_NAMES = {
    EntityKind.CLIENTS: "Clients",
    EntityKind.WORKERS: "Workers",
    EntityKind.TASKS: "Tasks",
}


def _to_frame(rows: Sequence[_RowModel | Mapping[str, Any]]) -> pd.DataFrame:
    """
    @brief
    Converts entities (or plain row dicts) into a DataFrame.

    @details
    Column order is first-seen across rows, so columns that only some rows
    carry are appended instead of dropped. Cells holding lists or objects are
    written back as JSON text.

    @raises
        DataError if a row is neither an entity nor a mapping.
    """
    records: list[dict[str, Any]] = []
    for row in rows:
        if isinstance(row, _RowModel):
            records.append(row.to_row())
        elif isinstance(row, Mapping):
            records.append(dict(row))
        else:
            raise DataError(
                "Each exported row must be an entity or a mapping.",
                source="export._to_frame",
                suggested_action="Pass Client/Worker/Task models or list[dict].",
            )

    columns: list[str] = []
    for record in records:
        for key in record:
            if key not in columns:
                columns.append(key)

    frame = pd.DataFrame(records, columns=columns)
    return frame.map(_cell_text).fillna("")


def _cell_text(value: Any) -> Any:
    if isinstance(value, (list, dict)):
        return json.dumps(value, ensure_ascii=False)
    return value


def write_collection_csv(rows: Sequence[_RowModel | Mapping[str, Any]], out_path: Path) -> Path:
    """Write one collection as UTF-8 CSV (atomic replace)."""
    frame = _to_frame(rows)
    atomic_write_text(Path(out_path), frame.to_csv(index=False), encoding="utf-8")
    return Path(out_path)


def write_workbook(
    collections: Mapping[EntityKind, Sequence[_RowModel]], out_path: Path
) -> Path:
    """
    @brief
    Write non-empty collections as sheets of one .xlsx workbook.

    @raises
        ExportError if nothing to write or the workbook cannot be saved.
    """
    out_path = Path(out_path)
    non_empty = {kind: rows for kind, rows in collections.items() if rows}
    if not non_empty:
        raise ExportError(
            "No data available to export",
            source="export.write_workbook",
            suggested_action="Upload at least one collection before exporting.",
        )
    out_path.parent.mkdir(parents=True, exist_ok=True)
    try:
        with pd.ExcelWriter(out_path, engine="openpyxl") as writer:
            for kind, rows in non_empty.items():
                _to_frame(rows).to_excel(writer, sheet_name=SHEET_NAMES[kind], index=False)
    except (OSError, ValueError) as e:
        raise ExportError(
            f"Failed to write workbook {out_path}: {e}",
            source="export.write_workbook",
            suggested_action="Check output directory permissions and disk space.",
        ) from e
    return out_path


def write_rules_json(rules: RulesConfig, out_dir: Path, filename: str = "rules.json") -> Path:
    """Serialize the rules configuration document (camelCase keys, indented)."""
    target = Path(out_dir) / filename
    payload = json.dumps(rules.to_document(), ensure_ascii=False, indent=2)
    atomic_write_text(target, payload + "\n", encoding="utf-8")
    return target


def export_all(
    clients: Sequence[Client],
    workers: Sequence[Worker],
    tasks: Sequence[Task],
    rules: RulesConfig,
    out_dir: Path,
    fmt: str = "csv",
    stamp: str | None = None,
) -> dict[str, Path]:
    """
    @brief
    Export cleaned collections plus rules.json.

    @details
    csv: one `<collection>_cleaned[_<stamp>].csv` per non-empty collection.
    xlsx: one `cleaned_data[_<stamp>].xlsx` workbook with a sheet per collection.
    Empty collections are skipped; rules.json is always written.

    @returns
        Mapping of artifact name -> written path.
    """
    if fmt not in ("csv", "xlsx"):
        raise ExportError(
            f"Unsupported export format: {fmt}",
            source="export.export_all",
            suggested_action="Use 'csv' or 'xlsx'.",
        )
    out_dir = Path(out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    suffix = f"_{stamp}" if stamp else ""
    collections: dict[EntityKind, Sequence[_RowModel]] = {
        EntityKind.CLIENTS: clients,
        EntityKind.WORKERS: workers,
        EntityKind.TASKS: tasks,
    }

    written: dict[str, Path] = {}
    if fmt == "csv":
        for kind, rows in collections.items():
            if not rows:
                continue
            path = out_dir / f"{kind.value}_cleaned{suffix}.csv"
            written[kind.value] = write_collection_csv(rows, path)
    elif any(collections.values()):
        written["workbook"] = write_workbook(collections, out_dir / f"cleaned_data{suffix}.xlsx")

    written["rules"] = write_rules_json(rules, out_dir, filename=f"rules{suffix}.json")
    logger.info("Exported %d artifact(s) to %s", len(written), out_dir)
    return written


__all__ = ["write_collection_csv", "write_workbook", "write_rules_json", "export_all"]
