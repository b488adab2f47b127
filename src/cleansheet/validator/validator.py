# src/cleansheet/validator/validator.py
from __future__ import annotations

import json
import logging
from collections.abc import Sequence
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from cleansheet.errors import ExportError
from cleansheet.schemas.models import (
    Client,
    Finding,
    Severity,
    Task,
    ValidationResult,
    Worker,
)
from cleansheet.validator.capacity import check_phase_saturation
from cleansheet.validator.cross_checks import check_duplicate_ids
from cleansheet.validator.dependency_graph import check_circular_dependencies
from cleansheet.validator.field_checks import check_client, check_task, check_worker

logger = logging.getLogger(__name__)


# ---------------------------
# VALIDATOR CLASS (instance core)
# ----------------------------
class Validator:
    """
    @brief
    Validation orchestrator over one snapshot of the three collections.

    @details
    Runs the per-row checks for every client, worker and task, then the
    collection-wide checks (duplicate identifiers, phase saturation, dependency
    cycles) and concatenates the findings in that order.

    Never raises for malformed data: every problem becomes a finding. The run
    is pure and deterministic, so a fresh Validator after each edit yields the
    same ordered output for the same data.
    """

    # ---------- Constructor ----------
    def __init__(
        self,
        clients: Sequence[Client],
        workers: Sequence[Worker],
        tasks: Sequence[Task],
    ) -> None:
        """
        @brief
        Initialize validation context.

        @details
        Collections are only read. Accumulators are reset by run_all_checks().
        """
        self.clients = list(clients)
        self.workers = list(workers)
        self.tasks = list(tasks)

        self.findings: list[Finding] = []
        self.checks: dict[str, bool] = {}

    # ---------- Public lifecycle API ----------
    def run_all_checks(self) -> None:
        """
        @brief
        Execute the full validation sequence.

        @details
        Order is part of the contract: per-row findings (clients, workers,
        tasks, each in collection order), then duplicates, saturation, cycles.
        """
        self.findings = []
        self.checks = {}

        # (1) Per-row checks
        self._record("Clients", [f for c in self.clients for f in check_client(c, self.tasks)])
        self._record("Workers", [f for w in self.workers for f in check_worker(w)])
        self._record("Tasks", [f for t in self.tasks for f in check_task(t, self.workers)])

        # (2) Collection-wide checks
        self._record("DuplicateIDs", check_duplicate_ids(self.clients, self.workers, self.tasks))
        self._record("PhaseSaturation", check_phase_saturation(self.workers, self.tasks))
        self._record("CircularDependencies", check_circular_dependencies(self.tasks))

        logger.debug(
            "Validation finished: %d finding(s) over %d/%d/%d client/worker/task rows",
            len(self.findings),
            len(self.clients),
            len(self.workers),
            len(self.tasks),
        )

    def build_result(self) -> ValidationResult:
        """Valid means no finding of severity `error`; warnings never fail."""
        is_valid = not any(f.severity == Severity.ERROR for f in self.findings)
        return ValidationResult(findings=list(self.findings), is_valid=is_valid)

    def build_report(self) -> dict[str, Any]:
        """
        @brief
        Assemble validation results into a serializable dictionary.

        @details
        Unlike ValidationResult, the report is stamped with the current time;
        it is meant for validation_report.json, not for comparisons.
        """
        result = self.build_result()
        return {
            "timestamp": datetime.now(timezone.utc).isoformat(timespec="seconds"),
            "valid": result.is_valid,
            "errors": [f.model_dump() for f in result.errors],
            "warnings": [f.model_dump() for f in result.warnings],
            "checks": dict(self.checks),
            "counts": {
                "clients": len(self.clients),
                "workers": len(self.workers),
                "tasks": len(self.tasks),
            },
        }

    def save_report(
        self,
        report: dict[str, Any],
        out_dir: Path | None = None,
        filename: str = "validation_report.json",
    ) -> Path:
        """
        Writes the report atomically to disk.

        Args:
            report: Validation report dictionary.
            out_dir: Target directory (defaults to 'data/output').
            filename: Target filename (default 'validation_report.json').

        Returns:
            Path to the written JSON file.
        """
        target_dir = Path(out_dir or "data/output")
        final_path = target_dir / filename

        tmp_path = final_path.with_suffix(".tmp")

        try:
            target_dir.mkdir(parents=True, exist_ok=True)
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(report, f, indent=2, ensure_ascii=False)
            tmp_path.replace(final_path)
        except OSError as e:
            raise ExportError(
                f"Failed to write validation report: {e}",
                source="Validator.save_report",
                suggested_action="Check disk permissions and free space.",
            ) from e

        logger.info("Validation report saved: %s", final_path)
        return final_path

    # ---------- Utilities ----------
    def _record(self, check: str, findings: list[Finding]) -> None:
        self.findings.extend(findings)
        self.checks[check] = not any(f.severity == Severity.ERROR for f in findings)


# ----------------------------
# THIN FACADE
# ----------------------------
def validate_all(
    clients: Sequence[Client],
    workers: Sequence[Worker],
    tasks: Sequence[Task],
) -> ValidationResult:
    """
    @brief
    Validate the three collections and return the ordered findings.

    @details
    Safe to call after every edit; nothing is cached between calls.
    """
    validator = Validator(clients, workers, tasks)
    validator.run_all_checks()
    return validator.build_result()


def validate_and_report(
    clients: Sequence[Client],
    workers: Sequence[Worker],
    tasks: Sequence[Task],
    *,
    write_report: bool = True,
    out_dir: Path | None = None,
    filename: str = "validation_report.json",
) -> tuple[ValidationResult, dict[str, Any]]:
    """
    @brief
    Validation plus the JSON report used by the CLI.

    @returns
        (ValidationResult, report dict). The report is written to disk only
        when write_report is True.
    """
    validator = Validator(clients, workers, tasks)
    validator.run_all_checks()
    report = validator.build_report()
    if write_report:
        validator.save_report(report, out_dir=out_dir, filename=filename)
    return validator.build_result(), report
