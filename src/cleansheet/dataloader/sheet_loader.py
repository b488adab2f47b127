# src/cleansheet/dataloader/sheet_loader.py
from __future__ import annotations

import logging
import zipfile
from collections.abc import Iterable
from pathlib import Path
from typing import Any

import pandas as pd

from cleansheet.dataloader.normalizer import normalize_rows
from cleansheet.dataloader.types import SheetData
from cleansheet.errors import DataError
from cleansheet.schemas.models import EntityKind

logger = logging.getLogger(__name__)


def detect_entity_kind(columns: Iterable[str]) -> EntityKind:
    """
    @brief
    Infer the collection of a sheet from its header row.

    @details
    An identifying column decides first (client, then worker, then task).
    Without one: Name plus Email/Phone means clients, or workers when Position
    or Department is also present. Anything else defaults to tasks.
    """
    names = {str(c).strip().lower() for c in columns}

    if names & {"clientid", "client_id"}:
        return EntityKind.CLIENTS
    if names & {"workerid", "worker_id", "employeeid"}:
        return EntityKind.WORKERS
    if names & {"taskid", "task_id"}:
        return EntityKind.TASKS

    if "name" in names and names & {"email", "phone"}:
        if names & {"position", "department"}:
            return EntityKind.WORKERS
        return EntityKind.CLIENTS

    return EntityKind.TASKS


class SheetLoader:
    """
    File -> list[SheetData].

    Rules:
      - Formats: .csv (one sheet) and .xlsx (every sheet of the workbook)
      - Cells are read as text; empty cells become ""
      - Fully empty rows are dropped; sheets without data rows are skipped
      - Entity kind per sheet via detect_entity_kind()
      - No row-level validation here: rows are only normalized

    Fatal errors (DataError):
      - missing file / wrong path type / unsupported extension
      - unreadable or corrupt file
      - no sheet with data
    """

    SUPPORTED_SUFFIXES = (".csv", ".xlsx")

    def load(self, path: Path) -> list[SheetData]:
        frames = self._read_frames(path)
        sheets: list[SheetData] = []
        for sheet_name, frame in frames.items():
            sheet = self._frame_to_sheet(path, sheet_name, frame)
            if sheet is not None:
                sheets.append(sheet)

        if not sheets:
            raise DataError(
                message=f"No valid data found in {path.name}",
                source="SheetLoader.load",
                suggested_action="Upload a file with a header row and at least one data row.",
            )

        self._report_summary(path, sheets)
        return sheets

    # ------------------------------
    # Internal helpers
    # ------------------------------
    def _read_frames(self, path: Path) -> dict[str | None, pd.DataFrame]:
        if not isinstance(path, Path):
            raise DataError(
                message=f"Invalid path type: expected pathlib.Path, got {type(path).__name__}",
                source="SheetLoader._read_frames",
                suggested_action="Pass a pathlib.Path pointing to a .csv or .xlsx file",
            )
        if not path.exists():
            raise DataError(
                message=f"Input file not found: {path}",
                source="SheetLoader._read_frames",
                suggested_action="Verify the file path and that the file is present.",
            )
        suffix = path.suffix.lower()
        if suffix not in self.SUPPORTED_SUFFIXES:
            raise DataError(
                message=f"Unsupported file type: {path.suffix or '<none>'}",
                source="SheetLoader._read_frames",
                suggested_action="Upload a .csv or .xlsx file.",
            )

        try:
            if suffix == ".csv":
                try:
                    frame = pd.read_csv(path, dtype=str, keep_default_na=False)
                except pd.errors.EmptyDataError:
                    frame = pd.DataFrame()
                return {None: frame}
            return pd.read_excel(path, sheet_name=None, dtype=str, keep_default_na=False)
        except (OSError, ValueError, pd.errors.ParserError, zipfile.BadZipFile) as e:
            raise DataError(
                message=f"Unable to read {path.name}: {e}",
                source="SheetLoader._read_frames",
                suggested_action="Check that the file is a valid, unlocked spreadsheet.",
            ) from e

    def _frame_to_sheet(
        self, path: Path, sheet_name: str | None, frame: pd.DataFrame
    ) -> SheetData | None:
        source = path.name if sheet_name is None else f"{path.name} - {sheet_name}"
        if frame.empty and len(frame.columns) == 0:
            logger.info("Skipping empty sheet: %s", source)
            return None

        frame = frame.fillna("")
        frame = frame.drop(
            columns=[
                c for c in frame.columns if str(c).startswith("Unnamed:") and _blank_column(frame[c])
            ]
        )
        columns = [str(c) for c in frame.columns]
        records: list[dict[str, Any]] = frame.to_dict(orient="records")
        kept = [r for r in records if any(_non_blank(v) for v in r.values())]

        if not kept:
            logger.info("Skipping sheet without data rows: %s", source)
            return None

        kind = detect_entity_kind(columns)
        return SheetData(
            kind=kind,
            rows=normalize_rows(kind, kept),
            source=source,
            columns=columns,
            total_rows=len(records),
        )

    def _report_summary(self, path: Path, sheets: list[SheetData]) -> None:
        for sheet in sheets:
            logger.info(
                "SheetLoader OK: %s -> %s, kept=%d/%d",
                sheet.source,
                sheet.kind.value,
                sheet.kept_rows,
                sheet.total_rows,
            )


def _non_blank(value: Any) -> bool:
    return value is not None and str(value).strip() != ""


def _blank_column(series: pd.Series) -> bool:
    return not any(_non_blank(v) for v in series)


__all__ = ["SheetLoader", "detect_entity_kind"]
