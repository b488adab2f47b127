# src/cleansheet/errors.py
from __future__ import annotations

from datetime import datetime, timezone


class CleanSheetError(Exception):
    """Base class for all structured CleanSheet exceptions."""

    def __init__(
        self, message: str, source: str | None = None, suggested_action: str | None = None
    ):
        super().__init__(message)
        self.timestamp = datetime.now(timezone.utc).isoformat()
        self.error_type = self.__class__.__name__
        self.source = source or "unknown"
        self.suggested_action = suggested_action

    def __str__(self) -> str:
        base = f"[{self.error_type}] {self.args[0]}"
        if self.source:
            base += f" (source={self.source})"
        if self.suggested_action:
            base += f" | action: {self.suggested_action}"
        return base


class ConfigError(CleanSheetError):
    """Invalid or missing configuration (config.yaml, rules.json)"""


class DataError(CleanSheetError):
    """Unreadable input files or invalid edit requests"""


class ExportError(CleanSheetError):
    """Cleaned data or rules could not be written"""


class AdvisoryError(CleanSheetError):
    """AI advisory call failed (network, key, quota, malformed reply)"""


class AdvisoryNotConfiguredError(AdvisoryError):
    """Advisory feature is disabled or has no API key"""


class VisualizationError(CleanSheetError):
    """Plotting or rendering failure"""
