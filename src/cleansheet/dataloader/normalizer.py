# src/cleansheet/dataloader/normalizer.py
from __future__ import annotations

import math
from collections.abc import Iterable, Mapping
from typing import Any

from cleansheet.schemas.models import ENTITY_MODELS, EntityKind, _RowModel

# Header spellings accepted for the identifying column of each collection.
ID_COLUMN_VARIANTS: dict[EntityKind, tuple[str, ...]] = {
    EntityKind.CLIENTS: ("clientid", "client_id"),
    EntityKind.WORKERS: ("workerid", "worker_id", "employeeid"),
    EntityKind.TASKS: ("taskid", "task_id"),
}


def _id_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float):
        if math.isnan(value):
            return ""
        if value.is_integer():
            return str(int(value))
    return str(value).strip()


def normalize_row(kind: EntityKind | str, raw: Mapping[str, Any]) -> _RowModel:
    """
    @brief
    Convert one parsed spreadsheet row into a Client, Worker or Task.

    @details
    Pure; performs no validation. Column names are trimmed, every column is
    kept (core columns on the typed fields, the rest as extras, in order), and
    the identifying column is always present: a missing or blank id becomes "".
    Recognised spellings of the id header (e.g. `client_id`) are folded onto the
    canonical column when the canonical one is absent.

    @params
        kind : EntityKind | str
            Target collection.
        raw : Mapping[str, Any]
            Column name -> cell value as produced by the sheet parser.

    @returns
        Entity model instance.
    """
    kind = EntityKind(kind)
    model = ENTITY_MODELS[kind]
    variants = ID_COLUMN_VARIANTS[kind]

    has_canonical = any(str(key).strip() == model.ID_COLUMN for key in raw)

    data: dict[str, Any] = {}
    for key, value in raw.items():
        column = str(key).strip()
        if not has_canonical and column.lower() in variants:
            column = model.ID_COLUMN
        data[column] = value

    data[model.ID_COLUMN] = _id_text(data.get(model.ID_COLUMN))
    return model.model_validate(data)


def normalize_rows(kind: EntityKind | str, rows: Iterable[Mapping[str, Any]]) -> list[_RowModel]:
    return [normalize_row(kind, row) for row in rows]


__all__ = ["ID_COLUMN_VARIANTS", "normalize_row", "normalize_rows"]
