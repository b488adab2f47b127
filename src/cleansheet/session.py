# src/cleansheet/session.py
"""
@brief
In-memory editing session over the three collections and the rules document.

@details
A Session owns the only mutable state of the application: the current
clients, workers and tasks, the RulesConfig being edited, the set of applied
rule suggestions and a list of user-facing notices. Collections are replaced
wholesale on upload and patched one cell at a time on edit; validation is
re-run from scratch on every `validate()` call.

Advisory failures never propagate out of the session: they are logged,
recorded in `notices` and the caller gets `None` (or the local results).
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from datetime import date
from pathlib import Path
from typing import Any

from pydantic import TypeAdapter, ValidationError

from cleansheet.advisory.client import AdvisoryClient
from cleansheet.dataloader.normalizer import normalize_rows
from cleansheet.dataloader.sheet_loader import SheetLoader
from cleansheet.dataloader.types import SheetData
from cleansheet.errors import AdvisoryError, DataError
from cleansheet.export.data_export import export_all
from cleansheet.insights.quality import analyze_data_quality
from cleansheet.insights.suggestions import (
    ConvertedRule,
    analyze_data_patterns,
    applied_rule_id,
    convert_suggestion,
    generate_rule_suggestions,
)
from cleansheet.schemas.advisory import FixRequest, FixSuggestion
from cleansheet.schemas.insights import QualityInsight, RuleSuggestion
from cleansheet.schemas.models import (
    Client,
    Config,
    EntityKind,
    Finding,
    Task,
    ValidationResult,
    Worker,
    _RowModel,
)
from cleansheet.schemas.rules import BusinessRule, PrioritizationWeights, RulesConfig
from cleansheet.validator import validate_all

logger = logging.getLogger(__name__)

_BUSINESS_RULE = TypeAdapter(BusinessRule)


class Session:
    def __init__(self, config: Config | None = None, advisory: AdvisoryClient | None = None):
        self.config = config or Config()
        if advisory is None and self.config.advisory.enabled:
            advisory = AdvisoryClient(self.config.advisory)
        self.advisory = advisory

        self.clients: list[Client] = []
        self.workers: list[Worker] = []
        self.tasks: list[Task] = []
        self.rules = RulesConfig()
        self.applied_suggestions: dict[str, RuleSuggestion] = {}
        self.notices: list[str] = []
        self.last_result: ValidationResult | None = None

    # ------------------------------
    # Collections
    # ------------------------------
    def collection(self, kind: EntityKind | str) -> list[_RowModel]:
        return getattr(self, EntityKind(kind).value)

    def load_file(self, path: Path) -> list[SheetData]:
        """
        @brief
        Upload one file: every recognised sheet replaces its collection.

        @details
        Sheets of the same kind inside one file are concatenated in sheet
        order before the replacement.
        """
        sheets = SheetLoader().load(Path(path))
        grouped: dict[EntityKind, list[_RowModel]] = {}
        for sheet in sheets:
            grouped.setdefault(sheet.kind, []).extend(sheet.rows)
        for kind, rows in grouped.items():
            self.replace(kind, rows)
        return sheets

    def replace(self, kind: EntityKind | str, rows: Sequence[_RowModel | Mapping[str, Any]]) -> None:
        """Wholesale replacement of one collection; plain dicts are normalized first."""
        kind = EntityKind(kind)
        if all(isinstance(r, _RowModel) for r in rows):
            models = list(rows)
        else:
            models = normalize_rows(kind, [r.to_row() if isinstance(r, _RowModel) else dict(r) for r in rows])
        setattr(self, kind.value, models)
        logger.info("Collection %s replaced: %d row(s)", kind.value, len(models))

    def find_row(
        self, kind: EntityKind | str, row_id: str, position: int | None = None
    ) -> _RowModel:
        """
        @brief
        Locate a row by identifier.

        @details
        `position` (1-based, upload order) disambiguates duplicated ids; the
        row at that position must still carry `row_id`. Without it the first
        matching row is returned.

        @raises
            DataError if no such row exists.
        """
        rows = self.collection(kind)
        row_id = str(row_id).strip()
        if position is not None:
            if 1 <= position <= len(rows) and rows[position - 1].row_id == row_id:
                return rows[position - 1]
        else:
            for row in rows:
                if row.row_id == row_id:
                    return row
        raise DataError(
            f"No {EntityKind(kind).value} row with id {row_id!r}"
            + (f" at position {position}" if position is not None else ""),
            source="Session.find_row",
            suggested_action="Re-validate and use the row id reported by the finding.",
        )

    def edit_cell(
        self,
        kind: EntityKind | str,
        row_id: str,
        column: str,
        value: Any,
        position: int | None = None,
    ) -> _RowModel:
        """Replace one field on one row; other rows and fields are untouched."""
        row = self.find_row(kind, row_id, position)
        row.set(column, value)
        logger.debug("Edited %s/%s.%s", EntityKind(kind).value, row_id, column)
        return row

    def validate(self) -> ValidationResult:
        result = validate_all(self.clients, self.workers, self.tasks)
        self.last_result = result
        logger.info(
            "Validation: valid=%s errors=%d warnings=%d",
            result.is_valid,
            len(result.errors),
            len(result.warnings),
        )
        return result

    # ------------------------------
    # Rules document
    # ------------------------------
    def add_rule(self, rule: BusinessRule | Mapping[str, Any]) -> BusinessRule:
        if isinstance(rule, Mapping):
            try:
                rule = _BUSINESS_RULE.validate_python(dict(rule))
            except ValidationError as e:
                raise DataError(
                    f"Invalid business rule: {e}",
                    source="Session.add_rule",
                    suggested_action="Use type co-run, slot-restriction, load-limit or phase-window.",
                ) from e
        if any(r.id == rule.id for r in self.rules.business_rules):
            raise DataError(
                f"Business rule id already exists: {rule.id}",
                source="Session.add_rule",
                suggested_action="Remove the existing rule first or choose another id.",
            )
        self.rules.business_rules.append(rule)
        return rule

    def remove_rule(self, rule_id: str) -> bool:
        before = len(self.rules.business_rules)
        self.rules.business_rules = [r for r in self.rules.business_rules if r.id != rule_id]
        return len(self.rules.business_rules) < before

    def set_weight(self, name: str, value: int) -> None:
        """Set one prioritization weight by exported (camelCase) or field name."""
        fields = PrioritizationWeights.model_fields
        field = next((n for n, info in fields.items() if name in (n, info.alias)), None)
        if field is None:
            raise DataError(
                f"Unknown prioritization weight: {name}",
                source="Session.set_weight",
                suggested_action=f"Use one of: {', '.join(i.alias or n for n, i in fields.items())}",
            )
        data = self.rules.prioritization.model_dump()
        data[field] = value
        try:
            self.rules.prioritization = PrioritizationWeights.model_validate(
                {(fields[k].alias or k): v for k, v in data.items()}
            )
        except ValidationError as e:
            raise DataError(
                f"Invalid value for {name}: {value}",
                source="Session.set_weight",
                suggested_action="Weights are integers between 0 and 100.",
            ) from e

    def set_toggle(self, entity: EntityKind | str, flag: str, value: bool) -> None:
        self.rules.validation_rules.set_flag(EntityKind(entity).value, flag, value)

    def apply_rule_suggestion(self, suggestion: RuleSuggestion) -> ConvertedRule | None:
        """
        @brief
        Mark a suggestion applied and push its converted form into the rules.

        @returns
            The ConvertedRule, or None for suggestions that have no rules
            document representation (still marked applied).
        """
        self.applied_suggestions[suggestion.id] = suggestion
        converted = convert_suggestion(suggestion)
        if converted is None:
            return None
        if converted.business_rule is not None:
            rule_id = converted.business_rule.id
            if not any(r.id == rule_id for r in self.rules.business_rules):
                self.rules.business_rules.append(converted.business_rule)
        if converted.toggle is not None:
            toggle = converted.toggle
            self.rules.validation_rules.set_flag(toggle.entity, toggle.flag, toggle.value)
        return converted

    def unapply_rule_suggestion(self, suggestion_id: str) -> None:
        suggestion = self.applied_suggestions.pop(suggestion_id, None)
        self.remove_rule(applied_rule_id(suggestion_id))
        if suggestion is None:
            return
        converted = convert_suggestion(suggestion)
        if converted is not None and converted.toggle is not None:
            self.rules.validation_rules.set_flag(converted.toggle.entity, converted.toggle.flag, False)

    # ------------------------------
    # Insights and suggestions
    # ------------------------------
    async def insights(self, today: date | None = None) -> list[QualityInsight]:
        local = analyze_data_quality(self.clients, self.workers, self.tasks, today=today)
        if self.advisory is None:
            return local
        return await self.advisory.enhance_insights(local, self.clients, self.workers, self.tasks)

    async def rule_suggestions(self) -> list[RuleSuggestion]:
        patterns = analyze_data_patterns(self.clients, self.workers, self.tasks)
        local = generate_rule_suggestions(patterns)
        if self.advisory is None:
            return local
        return await self.advisory.enhance_suggestions(local, self.clients, self.workers, self.tasks)

    # ------------------------------
    # Advisory fixes
    # ------------------------------
    async def request_fix(self, finding: Finding) -> FixSuggestion | None:
        """
        @brief
        Ask the advisory model for a replacement value for one finding.

        @returns
            FixSuggestion, or None when the advisory is unavailable or fails;
            the reason is appended to `notices`.
        """
        if self.advisory is None:
            self._notice("AI advisory is not configured; fix the value manually.")
            return None
        try:
            current = self.find_row(finding.entity, finding.row_id).to_row()
        except DataError:
            current = {}
        request = FixRequest(
            finding=finding,
            current_data=current,
            clients=[c.to_row() for c in self.clients],
            workers=[w.to_row() for w in self.workers],
            tasks=[t.to_row() for t in self.tasks],
        )
        try:
            return await self.advisory.suggest_fix(request)
        except AdvisoryError as e:
            self._notice(f"AI suggestion unavailable: {e.args[0]}")
            return None

    def apply_fix(self, finding: Finding, suggestion: FixSuggestion) -> _RowModel:
        """Write a confirmed suggestion into the cell the finding points at."""
        if not suggestion.suggested_value:
            raise DataError(
                "Suggestion has no value to apply",
                source="Session.apply_fix",
                suggested_action="Edit the cell manually.",
            )
        if suggestion.is_low_confidence(self.config.advisory.confidence_threshold):
            logger.info(
                "Applying low-confidence suggestion (%d) to %s/%s.%s",
                suggestion.confidence,
                finding.entity,
                finding.row_id,
                finding.field,
            )
        return self.edit_cell(finding.entity, finding.row_id, finding.field, suggestion.suggested_value)

    def _notice(self, text: str) -> None:
        logger.warning(text)
        self.notices.append(text)

    # ------------------------------
    # Export
    # ------------------------------
    def export(
        self, out_dir: Path | None = None, fmt: str | None = None, stamp: str | None = None
    ) -> dict[str, Path]:
        return export_all(
            self.clients,
            self.workers,
            self.tasks,
            self.rules,
            out_dir=Path(out_dir or self.config.output_dir),
            fmt=fmt or self.config.export.format,
            stamp=stamp,
        )


__all__ = ["Session"]
