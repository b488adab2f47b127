# src/cleansheet/dataloader/types.py
from __future__ import annotations

from dataclasses import dataclass, field

from cleansheet.schemas.models import EntityKind, _RowModel


@dataclass(slots=True)
class SheetData:
    """
    Structured result of loading one sheet.

    Fields:
        kind: Collection inferred from the sheet's header row.
        rows: Normalized entities in upload order (fully empty rows dropped).
        source: "<file name> - <sheet name>" (sheet part omitted for CSV).
        columns: Header row as uploaded.
        total_rows: Data rows observed before empty rows were dropped.
    """

    kind: EntityKind
    rows: list[_RowModel] = field(default_factory=list)
    source: str = ""
    columns: list[str] = field(default_factory=list)
    total_rows: int = 0

    @property
    def kept_rows(self) -> int:
        return len(self.rows)
