"""
Configuration data models.

This module contains all configuration-related data structures for the
experiment, the energy monitor, residency analysis, workloads and the
application as a whole.
"""

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..config.storage_config import StorageConfig

# Placeholders always available to a workload command template, in
# addition to the workload's own parameters.
BUILTIN_COMMAND_FIELDS = ("output", "label", "target_percent")


@dataclass
class ExperimentConfig:
    """
    Global experiment behaviour, loaded from the `[experiment]` table.
    """

    # Root directory under which each experiment creates powertest_<timestamp>/.
    log_root_dir: Path
    # How many times the whole configuration matrix is executed.
    repeat: int
    # Drain targets (percent of nominal capacity) crossed with every workload.
    target_percents: List[int]
    # Bounded wait for the workload's readiness signal.
    ready_timeout_seconds: float
    # Watchdog for a single monitoring session.
    completion_timeout_hours: float
    skip_plots: bool = False


@dataclass
class MonitorConfig:
    """
    Energy monitor settings, loaded from the `[monitor]` table.
    """

    # Directory holding power supplies (e.g. /sys/class/power_supply).
    sysfs_root: Path
    # Supply name ("BAT0", "battery") or "auto" to pick the first battery.
    power_supply: str
    # Multiplier turning the raw current_now reading into microamps with
    # negative meaning discharge. Use 1000 on hardware that reports mA and
    # a negative factor where discharge is reported as positive.
    current_scale: float
    # Assumed battery capacity; one percent of it is the per-percent drain unit.
    nominal_capacity_mah: int
    waiting_delay_seconds: float = 2.0
    near_delay_seconds: float = 5.0
    far_delay_seconds: float = 30.0
    # A poll gap above this is counted as a slow iteration.
    stale_poll_seconds: float = 60.0

    @property
    def per_percent_unit_uah(self) -> int:
        """Charge in µAh corresponding to one percent of nominal capacity."""
        return self.nominal_capacity_mah * 1000 // 100


@dataclass
class ResidencyConfig:
    """
    CPU residency snapshot settings, loaded from the `[residency]` table.
    """

    cpu_root: Path
    # cpufreq time_in_state reports clock ticks; this converts one tick to µs.
    freq_time_unit_us: int = 10000


@dataclass
class KeepAliveConfig:
    """
    Sleep inhibitor settings, loaded from the `[keepalive]` table.
    """

    enabled: bool = True
    # Each acquisition expires on its own after this long unless renewed.
    expiry_seconds: float = 600.0


@dataclass
class FeedbackConfig:
    """
    Operator cue settings, loaded from the `[feedback]` table.
    """

    # Ring the terminal bell in addition to logging cues.
    audible: bool = False


@dataclass
class WorkloadConfig:
    """
    A single workload configuration, loaded from `workloads.toml`.
    """

    # Short identifier, used as the first component of run labels.
    name: str
    # Command started by the workload driver; str.format placeholders are
    # filled from `parameters` plus {output}, {label} and {target_percent}.
    command_template: str
    # Free-form knobs of the workload (resolution, fps, feature flags...).
    parameters: Dict[str, Any] = field(default_factory=dict)
    # Drain target for this run, in percent of nominal capacity.
    target_percent: int = 3
    # Regex that marks the workload as running; None means "as soon as spawned".
    ready_pattern: Optional[str] = None
    # Regex counted once per matching output line (frames, requests, ...).
    event_pattern: Optional[str] = None
    # Extension of the per-run artifact file handed to the workload as {output}.
    artifact_extension: str = "log"
    # Grace period for the workload to exit after stop() before it is killed.
    stop_timeout_seconds: float = 5.0

    def label(self) -> str:
        """
        Build the run label from the configuration's fields.

        Booleans are rendered as Y/N and values are reduced to file-name safe
        characters, e.g. ``camera_front_Y_fps_30_R3``.
        """
        parts = [self.name]
        for key, value in self.parameters.items():
            if isinstance(value, bool):
                rendered = "Y" if value else "N"
            else:
                rendered = re.sub(r"[^A-Za-z0-9.]+", "-", str(value)).strip("-")
            parts.append(f"{key}_{rendered}")
        parts.append(f"R{self.target_percent}")
        return "_".join(parts)

    def with_target(self, target_percent: int) -> "WorkloadConfig":
        """Return a copy of this configuration with a different drain target."""
        return WorkloadConfig(
            name=self.name,
            command_template=self.command_template,
            parameters=dict(self.parameters),
            target_percent=target_percent,
            ready_pattern=self.ready_pattern,
            event_pattern=self.event_pattern,
            artifact_extension=self.artifact_extension,
            stop_timeout_seconds=self.stop_timeout_seconds,
        )


@dataclass
class AppConfig:
    """
    The root configuration object that aggregates all loaded settings.
    """

    experiment: ExperimentConfig
    monitor: MonitorConfig
    residency: ResidencyConfig
    keepalive: KeepAliveConfig
    feedback: FeedbackConfig
    storage: StorageConfig
    # Workloads in file order; targets are taken from `pinned_targets`.
    workloads: List[WorkloadConfig]
    # Names of workloads whose own target_percent overrides the experiment list.
    pinned_targets: List[str] = field(default_factory=list)

    def build_matrix(self) -> List[WorkloadConfig]:
        """
        Expand the configured workloads into the ordered run matrix.

        The outer loop is over experiment targets, the inner loop over
        workloads; a workload with a pinned target runs once per outer
        iteration at its own target. The whole matrix is repeated
        `experiment.repeat` times.
        """
        one_pass: List[WorkloadConfig] = []
        for target in self.experiment.target_percents:
            for workload in self.workloads:
                if workload.name in self.pinned_targets:
                    one_pass.append(workload)
                else:
                    one_pass.append(workload.with_target(target))
        return one_pass * self.experiment.repeat
