# src/cleansheet/validator/parsing.py
"""
@brief
Explicit parse attempts for raw spreadsheet cells.

@details
Cells arrive as strings, numbers, lists or already-decoded JSON structures.
Every helper here returns a `ParseResult` instead of raising, so validators can
turn a failed parse into a finding and carry on with the next field.
"""

from __future__ import annotations

import json
import math
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True, slots=True)
class ParseResult:
    """
    @brief
    Outcome of one parse attempt.

    @details
    `ok` is True when `value` holds the parsed value; otherwise `error` holds a
    short reason and `value` is None.
    """

    ok: bool
    value: Any = None
    error: str | None = None

    @classmethod
    def success(cls, value: Any) -> ParseResult:
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, error: str) -> ParseResult:
        return cls(ok=False, error=error)


def is_present(value: Any) -> bool:
    """True unless the cell is None, NaN or a blank string."""
    if value is None:
        return False
    if isinstance(value, float) and math.isnan(value):
        return False
    if isinstance(value, str) and not value.strip():
        return False
    return True


def as_text(value: Any) -> str:
    """Trimmed string form of a cell; lists are joined with commas."""
    if not is_present(value):
        return ""
    if isinstance(value, (list, tuple)):
        return ",".join(as_text(v) for v in value)
    return str(value).strip()


def split_list(value: Any) -> list[str]:
    """
    @brief
    Normalize a list-ish cell (list or comma-separated text) into trimmed items.

    @details
    Empty items are dropped, order is preserved, duplicates are kept.
    """
    if not is_present(value):
        return []
    items = value if isinstance(value, (list, tuple)) else str(value).split(",")
    out: list[str] = []
    for item in items:
        text = as_text(item)
        if text:
            out.append(text)
    return out


def try_parse_number(value: Any) -> ParseResult:
    # bool is an int subclass but never a numeric cell
    if isinstance(value, bool):
        return ParseResult.failure("not a number")
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return ParseResult.failure("not a number")
    else:
        return ParseResult.failure("not a number")
    if not math.isfinite(number):
        return ParseResult.failure("not a finite number")
    return ParseResult.success(number)


def _reject_constant(name: str) -> Any:
    raise ValueError(f"non-standard JSON constant: {name}")


def try_parse_json(value: Any) -> ParseResult:
    """
    Decode JSON text; non-string values are taken as already decoded.

    NaN, Infinity and -Infinity are rejected: they are not valid JSON.
    """
    if not isinstance(value, str):
        return ParseResult.success(value)
    try:
        return ParseResult.success(json.loads(value, parse_constant=_reject_constant))
    except (json.JSONDecodeError, ValueError) as e:
        return ParseResult.failure(f"invalid JSON: {e}")


def try_parse_json_object(value: Any) -> ParseResult:
    parsed = try_parse_json(value)
    if not parsed.ok:
        return parsed
    if parsed.value is None:
        return ParseResult.failure("invalid JSON: null")
    if not isinstance(parsed.value, dict):
        return ParseResult.failure("not a JSON object")
    return parsed


def try_parse_slot_list(value: Any) -> ParseResult:
    """
    @brief
    Parse an AvailableSlots cell into a list of {start, end} objects.

    @details
    Accepts a list or JSON text. Every item must be a mapping whose `start`
    and `end` are strings.
    """
    parsed = try_parse_json(value)
    if not parsed.ok:
        return parsed
    slots = parsed.value
    if not isinstance(slots, list):
        return ParseResult.failure("not an array")
    for slot in slots:
        if not isinstance(slot, dict):
            return ParseResult.failure("slot is not an object")
        if not isinstance(slot.get("start"), str) or not isinstance(slot.get("end"), str):
            return ParseResult.failure("slot lacks string start/end")
    return ParseResult.success(slots)


def try_parse_phase_list(value: Any) -> ParseResult:
    """Parse a PreferredPhases cell (list or JSON text) into a list of numbers."""
    parsed = try_parse_json(value)
    if not parsed.ok:
        return parsed
    phases = parsed.value
    if not isinstance(phases, list):
        return ParseResult.failure("not an array")
    for phase in phases:
        if isinstance(phase, bool) or not isinstance(phase, (int, float)):
            return ParseResult.failure("phase is not a number")
        if not math.isfinite(phase):
            return ParseResult.failure("phase is not a finite number")
    return ParseResult.success(phases)


def format_number(value: float) -> str:
    """Render 3.0 as '3' and 2.5 as '2.5' in messages."""
    if float(value).is_integer():
        return str(int(value))
    return str(value)
