"""
Command-line interface for the drainbench energy experiment driver.

This module provides the main CLI entry point: it loads the configuration,
creates the experiment output directory, describes the platform, runs the
whole configuration matrix and finally renders the plots.
"""

import argparse
import logging
import platform
import signal
import subprocess
import sys
import time
import tomllib
from pathlib import Path
from typing import Any, Dict, List

import psutil

from ..config import get_config, get_config_info, set_config_path
from ..models.config import AppConfig
from ..models.runtime import RunPaths
from ..orchestration.cues import CueEmitter
from ..orchestration.scheduler import RunScheduler
from ..storage.data_manager import DataStorageManager
from ..storage.result_sink import ResultSink
from ..system.keepalive import KeepAlive, create_keepalive
from ..system.power import PowerSampler
from ..system.residency import ResidencyAnalyzer
from ..validation import ValidationError, handle_cli_error
from ..workload.command import CommandWorkloadDriver

# --- Logging Setup ---
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)-5.5s] %(name)s:%(filename)s:%(lineno)d\t %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
    stream=sys.stdout,
)
logger = logging.getLogger(__name__)


def describe_platform(
    sampler: PowerSampler, analyzer: ResidencyAnalyzer, keepalive: KeepAlive
) -> Dict[str, Any]:
    """Static facts about the host recorded at the top of every experiment."""
    return {
        "host": platform.node(),
        "kernel": platform.release(),
        "machine": platform.machine(),
        "python": platform.python_version(),
        "logical_cpus": psutil.cpu_count(logical=True),
        "physical_cpus": psutil.cpu_count(logical=False),
        "power_source": sampler.describe_power_source(),
        "processors": analyzer.describe_processors(),
        "keepalive": keepalive.name,
    }


def _description_lines(description: Dict[str, Any]) -> List[str]:
    lines = ["Platform description:"]
    for key, value in description.items():
        if isinstance(value, dict):
            lines.append(f"  {key}:")
            lines.extend(f"    {k}: {v}" for k, v in value.items())
        elif isinstance(value, list):
            lines.append(f"  {key}:")
            lines.extend(f"    {item}" for item in value)
        else:
            lines.append(f"  {key}: {value}")
    return lines


def _run_plotter(output_dir: Path) -> None:
    plotter_path = Path(__file__).parent.parent.parent.parent / "tools" / "plotter.py"
    plotter_cmd = [sys.executable, str(plotter_path), "--log-dir", str(output_dir)]
    logger.info(f"Executing plotter: {' '.join(plotter_cmd)}")
    try:
        result = subprocess.run(plotter_cmd, capture_output=True, text=True, check=False)
        logger.info("Plotter tool output:\n" + result.stdout)
        if result.stderr:
            logger.warning("Plotter tool stderr:\n" + result.stderr)
    except Exception as e:
        logger.error(f"Failed to execute plotter tool: {type(e).__name__}: {e}", exc_info=True)


def main_cli() -> None:
    """
    Main command-line interface.

    Raises:
        SystemExit: On configuration errors or when the output directory or
            the experiment logs cannot be created.
    """
    parser = argparse.ArgumentParser(
        description="Measure battery energy drawn by a matrix of workloads."
    )
    parser.add_argument(
        "--config",
        type=Path,
        help="Path to the main config.toml (default: conf/config.toml of the project).",
    )
    args = parser.parse_args()

    if args.config:
        set_config_path(args.config)

    try:
        app_config: AppConfig = get_config()
    except (FileNotFoundError, KeyError, ValidationError, tomllib.TOMLDecodeError) as e:
        handle_cli_error(
            error=e,
            context="configuration loading",
            exit_code=1,
            include_traceback=True,
            logger=logger,
        )

    config_info = get_config_info()
    logger.info(
        f"Configuration {config_info['config_path']}: {config_info['workloads_count']} workloads, "
        f"{config_info['runs_count']} runs"
    )

    # --- Experiment output directory and sinks ---
    run_timestamp = time.strftime("%Y%m%d_%H%M%S")
    paths = RunPaths.for_experiment(app_config.experiment.log_root_dir, run_timestamp)
    try:
        paths.output_dir.mkdir(parents=True, exist_ok=True)
        sink = ResultSink(paths.detail_log_file, paths.summary_log_file)
        storage = DataStorageManager(paths.output_dir, app_config.storage)
    except OSError as e:
        handle_cli_error(
            error=e,
            context="creating experiment output",
            exit_code=1,
            logger=logger,
        )
    logger.info(f"Log and plot outputs will be saved in: {paths.output_dir}")

    # --- Components ---
    sampler = PowerSampler(app_config.monitor)
    analyzer = ResidencyAnalyzer(app_config.residency)
    keepalive = create_keepalive(app_config.keepalive)
    cues = CueEmitter(audible=app_config.feedback.audible)
    scheduler = RunScheduler(
        driver=CommandWorkloadDriver(),
        sampler=sampler,
        analyzer=analyzer,
        sink=sink,
        cues=cues,
        monitor_config=app_config.monitor,
        output_dir=paths.output_dir,
        ready_timeout_seconds=app_config.experiment.ready_timeout_seconds,
        completion_timeout_seconds=app_config.experiment.completion_timeout_hours * 3600.0,
        keepalive=keepalive,
        storage=storage,
        clock=sampler.clock,
    )

    def global_signal_handler(signum, frame):
        """Abandon the in-flight run and skip the rest of the matrix."""
        if scheduler.shutdown_requested.is_set():
            logger.warning("Shutdown already in progress. Please be patient.")
            return
        logger.info(f"Signal {signal.strsignal(signum)} received. Initiating graceful shutdown...")
        scheduler.request_shutdown()

    signal.signal(signal.SIGINT, global_signal_handler)
    signal.signal(signal.SIGTERM, global_signal_handler)

    matrix = app_config.build_matrix()
    description = describe_platform(sampler, analyzer, keepalive)
    for line in _description_lines(description):
        sink.detail(line)
    storage.save_metadata({
        "timestamp": run_timestamp,
        "platform": description,
        "config": config_info,
        "runs": [config.label() for config in matrix],
    })

    try:
        summaries = scheduler.run_all(matrix)
    finally:
        sink.close()

    if scheduler.shutdown_requested.is_set():
        logger.info("Experiment was terminated prematurely due to a shutdown request.")
    else:
        logger.info(
            f"All runs finished: {len(summaries)} completed, {scheduler.failed_runs} failed."
        )

    if not app_config.experiment.skip_plots and not scheduler.shutdown_requested.is_set():
        if summaries:
            logger.info("--- Starting plot generation via external tool ---")
            _run_plotter(paths.output_dir)
            logger.info("--- Plot generation finished ---")
        else:
            logger.info("No completed runs; skipping plot generation")


if __name__ == "__main__":
    main_cli()
