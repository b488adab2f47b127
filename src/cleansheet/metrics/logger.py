# src/cleansheet/metrics/logger.py
from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Any

from cleansheet.errors import DataError, ExportError


def write_metrics(metrics: dict[str, Any], out_dir: Path) -> Path:
    """
    @brief
    Writes metrics.json atomically in UTF-8 encoding.

    @details
    Validates that the input is a serializable dictionary, dumps it with
    sorted keys and indentation, and atomically replaces the target file.

    @returns
        Path to the created metrics.json file.

    @raises
        DataError
            If input is not a dict or JSON serialization fails.
    """
    if not isinstance(metrics, dict):
        raise DataError("metrics must be a dict", source="metrics.write_metrics")

    # (1) Validate JSON serializability
    try:
        payload = json.dumps(metrics, ensure_ascii=False, sort_keys=True, indent=2)
    except (TypeError, ValueError) as e:
        raise DataError(
            f"metrics not JSON-serializable: {e}",
            source="metrics.write_metrics",
            suggested_action="Ensure metrics values are primitives (str/float/int/bool).",
        ) from e

    # (2) Atomically write validated payload
    out_dir = Path(out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    target = out_dir / "metrics.json"
    atomic_write_text(target, payload, encoding="utf-8")
    return target


def atomic_write_text(path: Path, text: str, encoding: str = "utf-8") -> None:
    """
    @brief
    Performs atomic text file writing using a temporary file swap.

    @details
    Writes text to a temporary file within the same directory, then replaces
    the destination in a single filesystem operation.

    @raises
        ExportError
            On write or rename failure.
    """
    path = Path(path)
    tmp_dir = path.parent
    tmp_dir.mkdir(parents=True, exist_ok=True)

    # (1) Create temporary file near the target for atomicity
    fd, tmp_path = tempfile.mkstemp(prefix=path.name + ".", dir=str(tmp_dir))
    try:
        with open(fd, "w", encoding=encoding, newline="") as f:
            f.write(text)
        os.replace(tmp_path, path)
    except OSError as e:
        # (2) Clean up temp file on error
        if os.path.exists(tmp_path):
            os.remove(tmp_path)
        raise ExportError(
            f"atomic write failed for {path}: {e}",
            source="metrics.atomic_write_text",
            suggested_action="Check output directory permissions and disk space.",
        ) from e
