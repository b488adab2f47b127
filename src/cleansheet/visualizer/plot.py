# src/cleansheet/visualizer/plot.py
"""
Phase saturation chart.

Responsibilities:
- Turn a PhaseLoad (demand/capacity per phase) into a tidy DataFrame.
- Enforce headless backend (Agg) and figure export parameters (DPI, size).
- Render grouped bars, demand vs capacity, and mark saturated phases.
- Save PNG to the requested out_path and return that Path.
"""

from __future__ import annotations

# --- Standard library ---
from pathlib import Path
from typing import Any

import colorcet as cc

# --- Third-party (no pyplot here!) ---
import matplotlib
import pandas as pd
import seaborn as sns

# --- Project imports ---
from cleansheet.errors import DataError, VisualizationError
from cleansheet.schemas.models import Config
from cleansheet.validator.capacity import PhaseLoad
from cleansheet.validator.parsing import format_number

# (1) Enforce headless backend for environments without display
matplotlib.use("Agg")


def _load_frame(load: PhaseLoad) -> pd.DataFrame:
    """
    @brief
    Flatten a PhaseLoad into long format: one row per (phase, measure).

    @raises
        DataError if the load carries no phases at all.
    """
    if not isinstance(load, PhaseLoad):
        raise DataError(
            "Unsupported 'load' type for visualization",
            source="visualizer.plot._load_frame",
            suggested_action="Pass the PhaseLoad returned by compute_phase_load()",
        )
    phases = sorted(load.phases)
    if not phases:
        raise DataError(
            "No phase demand or capacity to plot",
            source="visualizer.plot._load_frame",
            suggested_action="Provide tasks with PreferredPhases/Duration or workers with slots",
        )

    rows: list[dict[str, Any]] = []
    for phase in phases:
        label = format_number(phase)
        rows.append({"phase": label, "measure": "demand", "value": load.demand.get(phase, 0.0)})
        rows.append({"phase": label, "measure": "capacity", "value": load.capacity.get(phase, 0.0)})
    return pd.DataFrame(rows)


def _extract_visual_params(cfg: Config | Any) -> tuple[float, float, int]:
    """
    @brief
    Extract visual rendering parameters from configuration.

    @details
    Reads cfg.visual.{width, height, dpi} if available, otherwise falls back
    to defaults suitable for PNG export.
    """
    width, height, dpi = 10.0, 6.0, 120
    visual = getattr(cfg, "visual", None)
    if visual is not None:
        width = float(getattr(visual, "width", width))
        height = float(getattr(visual, "height", height))
        dpi = int(getattr(visual, "dpi", dpi))
    return width, height, dpi


def plot_phase_saturation(load: PhaseLoad, cfg: Config | Any, out_path: Path) -> Path:
    """
    @brief
    Render demand vs capacity per phase and save to PNG.

    @details
    Steps:
        (1) Flatten the PhaseLoad into a DataFrame.
        (2) Ensure output directory exists.
        (3) Draw grouped bars (seaborn, glasbey palette) and flag saturated
            phases with their shortfall.
        (4) Save with the configured size and DPI.

    @returns
        Absolute path to the saved PNG file.

    @raises
        DataError on empty/unsupported input, VisualizationError on render or save failure.
    """
    from matplotlib import pyplot as plt

    # (1) Normalize input
    df = _load_frame(load)

    # (2) Prepare output directory
    out_path = Path(out_path)
    try:
        out_path.parent.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise VisualizationError(
            f"Cannot create output directory: {out_path.parent} ({exc})",
            source="visualizer.plot.plot_phase_saturation",
            suggested_action="Check filesystem permissions or choose another output path",
        ) from exc

    width, height, dpi = _extract_visual_params(cfg)

    # (3) Draw
    fig, ax = plt.subplots(nrows=1, ncols=1)
    try:
        fig.set_size_inches(w=width, h=height)
        palette = sns.color_palette(cc.glasbey_dark, n_colors=2)
        sns.barplot(
            data=df,
            x="phase",
            y="value",
            hue="measure",
            palette=palette,
            edgecolor="black",
            linewidth=1,
            ax=ax,
        )

        # (3.1) Annotate saturated phases
        saturated = 0
        for position, phase in enumerate(sorted(load.phases)):
            shortfall = load.shortfall(phase)
            if shortfall <= 0:
                continue
            saturated += 1
            ax.text(
                position,
                load.demand.get(phase, 0.0),
                f"+{format_number(shortfall)}",
                color="firebrick",
                ha="center",
                va="bottom",
                fontsize=9,
            )

        ax.set_xlabel("phase")
        ax.set_ylabel("duration units")
        ax.title.set_text(f"Phase demand vs capacity ({saturated} saturated)")
        fig.tight_layout()
    except (ValueError, TypeError) as exc:
        plt.close(fig)
        raise VisualizationError(
            f"Failed to render phase chart: {exc}",
            source="visualizer.plot.plot_phase_saturation",
            suggested_action="Verify demand/capacity values are numeric",
        ) from exc

    # (4) Export rendered figure to PNG
    try:
        fig.savefig(out_path, dpi=dpi, bbox_inches="tight")
    except OSError as exc:
        raise VisualizationError(
            f"Failed to save figure: {out_path} ({exc})",
            source="visualizer.plot.plot_phase_saturation",
            suggested_action="Close viewers using the file or change output location",
        ) from exc
    finally:
        plt.close(fig)

    return out_path.resolve()


__all__ = ["plot_phase_saturation"]
