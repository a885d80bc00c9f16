"""Standalone Command-Line Tool for Generating Plots from drainbench Data.

Reads the tables of one experiment directory (powertest_<timestamp>/) and
renders interactive Plotly charts next to them:

1.  **Summary plot**: `energy_summary.html`, grouped bars comparing the
    energy measured from the charge counter with the energy integrated from
    the current, for every completed run, plus the average powers.
2.  **Trace plots**: one `<label>_trace.html` per run, accumulated energy
    (both estimates) and instantaneous power against elapsed hours.

It is invoked automatically by `drainbench` after an experiment unless
`skip_plots` is set, and can be re-run by hand.

Usage examples:
  python tools/plotter.py --log-dir logs/powertest_20250624_103000
  python tools/plotter.py --log-dir logs/powertest_20250624_103000 --summary-only
  python tools/plotter.py --log-dir logs/powertest_20250624_103000 --label video
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

# Third-party library imports
import pandas as pd
import plotly.express as px
import plotly.graph_objects as go
import polars as pl

# --- Logging Setup ---
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)
logger = logging.getLogger("PlotterTool")

SUMMARY_BASENAME = "summaries"
TRACES_DIR = "traces"


# --- Helper Functions ---


def _read_table(path: Path) -> pl.DataFrame:
    """Read a Parquet or JSON table written by drainbench's storage layer."""
    if path.suffix == ".parquet":
        return pl.read_parquet(path)
    return pl.read_json(path)


def load_summaries(log_dir: Path) -> Optional[pl.DataFrame]:
    """Load the experiment summary table, whichever format it was written in."""
    for extension in ("parquet", "json"):
        path = log_dir / f"{SUMMARY_BASENAME}.{extension}"
        if path.exists():
            try:
                return _read_table(path)
            except Exception as e:
                logger.error(f"Could not read summary table {path.name}: {e}")
                return None
    return None


def find_trace_files(log_dir: Path, label_filter: Optional[str] = None) -> List[Path]:
    traces_dir = log_dir / TRACES_DIR
    if not traces_dir.is_dir():
        return []
    files = sorted(list(traces_dir.glob("*.parquet")) + list(traces_dir.glob("*.json")))
    if label_filter:
        files = [f for f in files if label_filter in f.stem]
    return files


def _save_plotly_figure(fig: go.Figure, base_filename: str, output_dir: Path) -> Optional[Path]:
    """Save a figure as interactive HTML; returns the written path."""
    plot_filename_html = output_dir / f"{base_filename}.html"
    try:
        fig.write_html(plot_filename_html)
        logger.info(f"Interactive plot saved to: {plot_filename_html}")
        return plot_filename_html
    except Exception as e:
        logger.error(
            f"Failed to save plot {plot_filename_html} using Plotly: {e}",
            exc_info=True,
        )
        return None


def create_summary_figure(summary_df: pd.DataFrame) -> go.Figure:
    """Grouped energy bars per run with the average powers on a second axis.

    Args:
        summary_df: One row per run with the RunSummary columns.
    """
    energy_df = summary_df.melt(
        id_vars=["configuration_label"],
        value_vars=["energy_from_charge_wh", "energy_from_current_wh"],
        var_name="estimate",
        value_name="energy_wh",
    )
    energy_df["estimate"] = energy_df["estimate"].map({
        "energy_from_charge_wh": "from charge",
        "energy_from_current_wh": "from current",
    })

    fig = px.bar(
        energy_df,
        x="configuration_label",
        y="energy_wh",
        color="estimate",
        barmode="group",
        text=energy_df["energy_wh"].round(3),
        color_discrete_map={"from charge": "indianred", "from current": "cornflowerblue"},
    )
    fig.add_trace(
        go.Scatter(
            x=summary_df["configuration_label"],
            y=summary_df["avg_power_from_charge_w"],
            name="Avg power from charge (W)",
            mode="markers",
            marker=dict(symbol="diamond", size=10, color="darkred"),
            yaxis="y2",
        )
    )
    fig.add_trace(
        go.Scatter(
            x=summary_df["configuration_label"],
            y=summary_df["avg_power_from_current_w"],
            name="Avg power from current (W)",
            mode="markers",
            marker=dict(symbol="circle", size=10, color="navy"),
            yaxis="y2",
        )
    )
    fig.update_layout(
        title_text="Energy per run: charge counter vs. integrated current",
        xaxis=dict(title_text="Run", type="category"),
        yaxis=dict(title_text="Energy (Wh)"),
        yaxis2=dict(title_text="Average power (W)", overlaying="y", side="right"),
        legend=dict(x=0.01, y=0.98, bordercolor="Black", borderwidth=1),
    )
    return fig


def generate_summary_plot(log_dir: Path, output_dir: Path) -> Optional[Path]:
    logger.info("--- Generating Energy Summary Plot ---")
    summary_pl = load_summaries(log_dir)
    if summary_pl is None or summary_pl.is_empty():
        logger.warning("No run summaries found. Cannot generate summary plot.")
        return None
    summary_df = pd.DataFrame(summary_pl.to_dicts())
    fig = create_summary_figure(summary_df)
    return _save_plotly_figure(fig, "energy_summary", output_dir)


def create_trace_figure(trace_df: pd.DataFrame, label: str) -> go.Figure:
    """Accumulated energy (both estimates) and power against elapsed hours."""
    accumulating = trace_df[trace_df["state"] != "waiting_for_drop"]
    fig = go.Figure()
    fig.add_trace(
        go.Scatter(
            x=accumulating["elapsed_hours"],
            y=accumulating["energy_from_charge_wh"],
            name="Energy from charge (Wh)",
            mode="lines+markers",
            line=dict(shape="hv", color="indianred"),
        )
    )
    fig.add_trace(
        go.Scatter(
            x=accumulating["elapsed_hours"],
            y=accumulating["energy_from_current_wh"],
            name="Energy from current (Wh)",
            mode="lines",
            line=dict(color="cornflowerblue"),
        )
    )
    fig.add_trace(
        go.Scatter(
            x=accumulating["elapsed_hours"],
            y=accumulating["power_w"],
            name="Power (W)",
            mode="lines",
            line=dict(color="gray", dash="dot"),
            yaxis="y2",
        )
    )
    fig.update_layout(
        title_text=f"Energy trace: {label}",
        xaxis=dict(title_text="Elapsed (hours)"),
        yaxis=dict(title_text="Accumulated energy (Wh)"),
        yaxis2=dict(title_text="Power (W)", overlaying="y", side="right"),
        legend=dict(x=0.01, y=0.98, bordercolor="Black", borderwidth=1),
    )
    return fig


def plot_trace_file(trace_path: Path, output_dir: Path) -> Optional[Path]:
    label = trace_path.stem
    try:
        trace_pl = _read_table(trace_path)
    except Exception as e:
        logger.error(f"Could not read trace {trace_path.name}: {e}")
        return None
    if trace_pl.is_empty():
        logger.warning(f"Trace {trace_path.name} is empty; skipping")
        return None
    trace_df = pd.DataFrame(trace_pl.to_dicts())
    fig = create_trace_figure(trace_df, label)
    return _save_plotly_figure(fig, f"{label}_trace", output_dir)


def main():
    """Main command-line interface function for the plotter tool."""
    parser = argparse.ArgumentParser(
        description="Generate plots from drainbench experiment tables.",
        formatter_class=argparse.RawTextHelpFormatter,
    )
    parser.add_argument(
        "--log-dir",
        type=Path,
        required=True,
        help="Required. Path to the powertest_<timestamp> experiment directory.",
    )
    parser.add_argument(
        "--output-dir",
        type=Path,
        help="Directory to save plots. Defaults to the specified --log-dir.",
    )
    parser.add_argument(
        "--label",
        type=str,
        help="Only plot traces whose label contains this text.",
    )
    parser.add_argument(
        "--summary-only",
        action="store_true",
        help="Only generate the energy summary plot.",
    )
    args = parser.parse_args()

    if not args.log_dir.is_dir():
        logger.error(f"Log directory not found: {args.log_dir}")
        sys.exit(1)

    output_dir = args.output_dir or args.log_dir
    try:
        output_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        logger.error(f"Cannot create output directory '{output_dir}': {e}")
        sys.exit(1)

    generate_summary_plot(args.log_dir, output_dir)
    if args.summary_only:
        return

    trace_files = find_trace_files(args.log_dir, args.label)
    if not trace_files:
        logger.info(f"No trace files found in {args.log_dir / TRACES_DIR}.")
        return
    logger.info(f"Found {len(trace_files)} trace file(s) to process.")
    for trace_file in trace_files:
        plot_trace_file(trace_file, output_dir)


if __name__ == "__main__":
    main()
