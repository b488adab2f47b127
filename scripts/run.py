# scripts/run.py
from __future__ import annotations

import argparse
import logging
import sys
import time
import traceback
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from cleansheet.dataloader.config_loader import ConfigLoader, RulesLoader
from cleansheet.errors import CleanSheetError, DataError
from cleansheet.metrics.logger import write_metrics
from cleansheet.metrics.metrics import collect_metrics
from cleansheet.session import Session
from cleansheet.validator import validate_and_report
from cleansheet.validator.capacity import compute_phase_load
from cleansheet.visualizer.plot import plot_phase_saturation


def _setup_logging() -> None:
    """
    @brief
    Initializes global logging configuration.

    @details
    Sets the default logging level to INFO and defines a simple console format.
    """
    logging.basicConfig(level=logging.INFO, format="[%(levelname)s] %(message)s")


def _parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="cleansheet-run",
        description="Run the CleanSheet pipeline: load → validate → report → metrics → export → plot",
    )
    parser.add_argument(
        "--config",
        type=str,
        default="config/config.yaml",
        help="Path to config YAML (default: config/config.yaml)",
    )
    parser.add_argument(
        "--input",
        type=str,
        nargs="+",
        required=True,
        help="One or more .csv/.xlsx files with clients, workers and/or tasks",
    )
    parser.add_argument(
        "--rules",
        type=str,
        default=None,
        help="Optional rules.json to import before exporting",
    )
    parser.add_argument(
        "--output",
        type=str,
        default=None,
        help="Output directory for artifacts (default: output_dir from config)",
    )
    parser.add_argument(
        "--format",
        choices=("csv", "xlsx"),
        default=None,
        help="Cleaned data format (default: export.format from config)",
    )
    return parser.parse_args(argv)


def run_pipeline(
    config_path: Path,
    input_paths: Sequence[Path],
    output_dir: Path | None = None,
    rules_path: Path | None = None,
    fmt: str | None = None,
) -> dict[str, Any]:
    """
    @brief
    Executes the full CleanSheet pipeline over a set of input files.

    @details
    Performs sequential steps:
    (1) Load configuration, input sheets and optional rules.json.
    (2) Validate and write validation_report.json.
    (3) Collect and write metrics.json.
    (4) Export cleaned data and rules.json.
    (5) Render the phase saturation chart.
    Controlled failures surface as CleanSheetError.

    @returns
        Dictionary with the validity flag, finding counts and artifact paths.
    """
    t0 = time.perf_counter()

    # (1) Configuration and inputs
    logging.info("Loading config: %s", config_path)
    cfg = ConfigLoader().load(config_path)
    output_dir = Path(output_dir or cfg.output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    session = Session(cfg)
    for path in input_paths:
        logging.info("Loading sheets: %s", path)
        session.load_file(Path(path))

    if rules_path is not None:
        logging.info("Importing rules: %s", rules_path)
        session.rules = RulesLoader().load(Path(rules_path))

    # (2) Validation and report
    logging.info("Validating %d/%d/%d client/worker/task rows…",
                 len(session.clients), len(session.workers), len(session.tasks))
    result, _report = validate_and_report(
        session.clients,
        session.workers,
        session.tasks,
        write_report=cfg.export.write_report,
        out_dir=output_dir,
    )
    session.last_result = result
    for finding in result.findings:
        log = logging.error if finding.is_error else logging.warning
        log("%s/%s.%s: %s", finding.entity, finding.row_id, finding.field, finding.message)

    # (3) Metrics
    metrics_path: Path | None = None
    if cfg.export.write_metrics:
        logging.info("Collecting metrics…")
        summary = collect_metrics(result, session.clients, session.workers, session.tasks)
        metrics_path = write_metrics(summary, out_dir=output_dir)

    # (4) Export
    logging.info("Exporting cleaned data…")
    exported = session.export(out_dir=output_dir, fmt=fmt)

    # (5) Plot
    plot_path: Path | None = None
    if cfg.export.write_plot:
        try:
            plot_path = plot_phase_saturation(
                compute_phase_load(session.workers, session.tasks),
                cfg,
                out_path=output_dir / "phase_saturation.png",
            )
        except DataError as e:
            logging.info("Skipping phase chart: %s", e)

    valid = result.is_valid and not (cfg.validation.fail_on_warnings and result.warnings)
    logging.info("Pipeline finished in %.2f s", time.perf_counter() - t0)

    report_path = output_dir / "validation_report.json"
    return {
        "valid": valid,
        "errors": len(result.errors),
        "warnings": len(result.warnings),
        "artifacts": {
            "validation_report": report_path if cfg.export.write_report else None,
            "metrics": metrics_path,
            "phase_plot": plot_path,
            **exported,
        },
    }


def main(argv: Sequence[str] | None = None) -> int:
    """
    @brief
    CLI entry point.

    @details
    Exit codes:
      0 – data valid
      1 – invalid data or controlled failure (config/data/export)
      2 – unexpected crash
    """
    _setup_logging()
    args = _parse_args(argv)

    try:
        result = run_pipeline(
            Path(args.config),
            [Path(p) for p in args.input],
            output_dir=Path(args.output) if args.output else None,
            rules_path=Path(args.rules) if args.rules else None,
            fmt=args.format,
        )
        written = [p.name for p in result["artifacts"].values() if p is not None]
        logging.info("Artifacts: %s", ", ".join(written))
        logging.info("errors=%d warnings=%d", result["errors"], result["warnings"])
        return 0 if result["valid"] else 1

    except CleanSheetError as e:
        logging.error(str(e))
        return 1
    except Exception:
        logging.error("Unexpected error occurred:")
        traceback.print_exc()
        return 2


if __name__ == "__main__":
    sys.exit(main())
