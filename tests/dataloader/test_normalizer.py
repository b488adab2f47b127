# tests/dataloader/test_normalizer.py
from __future__ import annotations

import math

from cleansheet.dataloader.normalizer import normalize_row, normalize_rows
from cleansheet.schemas.models import Client, EntityKind, Task, Worker


def test_core_columns_and_extras_are_split():
    """
    @brief
    Known columns land on typed fields, the rest are kept as ordered extras.
    """
    # --- Arrange ---
    raw = {"ClientID": "C1", "Name": "Acme", "Region": "EU", "Notes": ""}

    # --- Act ---
    client = normalize_row("clients", raw)

    # --- Assert ---
    assert isinstance(client, Client)
    assert client.row_id == "C1"
    assert client.name == "Acme"
    assert client.extras == {"Region": "EU", "Notes": ""}
    assert list(client.to_row()) == ["ClientID", "Name", "Region", "Notes"]


def test_id_is_trimmed_and_stringified():
    assert normalize_row(EntityKind.TASKS, {"TaskID": "  T1 "}).row_id == "T1"
    assert normalize_row(EntityKind.TASKS, {"TaskID": 3.0}).row_id == "3"
    assert normalize_row(EntityKind.TASKS, {"TaskID": math.nan}).row_id == ""
    assert normalize_row(EntityKind.TASKS, {"Title": "x"}).row_id == ""


def test_header_whitespace_is_trimmed():
    worker = normalize_row(EntityKind.WORKERS, {" WorkerID ": "W1", "Skills ": "a"})
    assert isinstance(worker, Worker)
    assert worker.row_id == "W1"
    assert worker.skills == "a"


def test_id_header_variants_fold_onto_canonical_column():
    """
    @brief
    `client_id` becomes `ClientID` unless the canonical header also exists.
    """
    folded = normalize_row(EntityKind.CLIENTS, {"client_id": "C7", "Name": "A"})
    assert folded.row_id == "C7"
    assert "client_id" not in folded.extras

    both = normalize_row(EntityKind.CLIENTS, {"ClientID": "C1", "client_id": "legacy"})
    assert both.row_id == "C1"
    assert both.extras == {"client_id": "legacy"}


def test_task_client_reference_is_not_an_id():
    task = normalize_row(EntityKind.TASKS, {"TaskID": "T1", "ClientID": "C1"})
    assert isinstance(task, Task)
    assert task.row_id == "T1"
    assert task.client_id == "C1"


def test_malformed_cells_survive_normalization():
    task = normalize_row(EntityKind.TASKS, {"TaskID": "T1", "Duration": "abc", "PreferredPhases": "{"})
    assert task.duration == "abc"
    assert task.preferred_phases == "{"


def test_set_and_get_by_column_name():
    client = normalize_row(EntityKind.CLIENTS, {"ClientID": "C1"})

    client.set("Name", "Beta")
    client.set("Segment", "SMB")
    client.set("ClientID", "  C2 ")

    assert client.get("Name") == "Beta"
    assert client.get("Segment") == "SMB"
    assert client.get("Email", "n/a") == "n/a"
    assert client.row_id == "C2"
    assert client.to_row() == {"ClientID": "C2", "Name": "Beta", "Segment": "SMB"}


def test_normalize_rows_keeps_order():
    rows = normalize_rows(EntityKind.TASKS, [{"TaskID": "T2"}, {"TaskID": "T1"}])
    assert [r.row_id for r in rows] == ["T2", "T1"]
