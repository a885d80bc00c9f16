"""
Runtime data models.

This module contains data structures used during the execution of an
experiment: the output paths and the per-run context handed around by the
scheduler.
"""

from dataclasses import dataclass
from pathlib import Path

from .config import WorkloadConfig


@dataclass
class RunPaths:
    """
    A container for all generated file paths of one experiment.
    """

    # powertest_<timestamp>/ directory holding everything below.
    output_dir: Path
    # Per-poll detail log, residency reports and startup description.
    detail_log_file: Path
    # One line per completed run.
    summary_log_file: Path

    @classmethod
    def for_experiment(cls, log_root_dir: Path, timestamp: str) -> "RunPaths":
        output_dir = log_root_dir / f"powertest_{timestamp}"
        return cls(
            output_dir=output_dir,
            detail_log_file=output_dir / "power_test_log.txt",
            summary_log_file=output_dir / "results.txt",
        )


@dataclass
class RunContext:
    """
    Encapsulates everything known about a single configuration run.
    """

    config: WorkloadConfig
    # config.label() plus the run's start timestamp; unique per run.
    label: str
    timestamp: str
    artifact_path: Path
