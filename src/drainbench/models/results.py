"""
Result data models.

This module defines the immutable per-run summary and the residency report
produced by diffing two residency snapshots. Both can be rendered as text for
the experiment logs and flattened into rows for the Parquet tables.
"""

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List

from .samples import MonitoringSession

# Added to the elapsed hours before dividing so that a run that ends on its
# first accumulating poll still yields a finite average.
HOURS_EPSILON = 0.00001


def average_power(energy_wh: float, hours: float) -> float:
    """Average power in watts for `energy_wh` drawn over `hours`."""
    return energy_wh / (hours + HOURS_EPSILON)


@dataclass(frozen=True)
class RunSummary:
    """
    Final figures of one configuration run.

    Built exactly once when the run completes and never mutated afterwards.
    """

    configuration_label: str
    wall_clock_hours: float
    energy_from_current_wh: float
    energy_from_charge_wh: float
    avg_power_from_current_w: float
    avg_power_from_charge_w: float
    battery_level_percent_at_stop: float
    slow_iteration_count: int
    total_iterations: int
    frame_or_event_count: int

    @classmethod
    def from_session(
        cls,
        session: MonitoringSession,
        now_ms: int,
        event_count: int,
    ) -> "RunSummary":
        """Freeze the figures of a finished session."""
        hours = session.elapsed_hours(now_ms)
        return cls(
            configuration_label=session.label,
            wall_clock_hours=hours,
            energy_from_current_wh=session.energy_from_current_wh,
            energy_from_charge_wh=session.energy_from_charge_wh,
            avg_power_from_current_w=average_power(session.energy_from_current_wh, hours),
            avg_power_from_charge_w=average_power(session.energy_from_charge_wh, hours),
            battery_level_percent_at_stop=session.last_level_percent,
            slow_iteration_count=session.slow_iteration_count,
            total_iterations=session.total_iterations,
            frame_or_event_count=event_count,
        )

    def format_line(self, timestamp: str) -> str:
        """Render the one-line entry of the summary log."""
        return (
            f"{timestamp} {self.configuration_label} "
            f"Bat: {self.battery_level_percent_at_stop:g}% "
            f"Hours: {self.wall_clock_hours:.2f} "
            f"Energy(cur): {self.energy_from_current_wh:.3f} "
            f"Energy(chg): {self.energy_from_charge_wh:.3f} "
            f"AvgPower(cur): {self.avg_power_from_current_w:.3f} "
            f"AvgPower(chg): {self.avg_power_from_charge_w:.3f} "
            f"SlowIter: {self.slow_iteration_count} "
            f"Iter: {self.total_iterations} "
            f"Events: {self.frame_or_event_count}"
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class CoreResidencyReport:
    """Percent of the elapsed interval a processor spent in each state."""

    frequency_percent: Dict[int, float] = field(default_factory=dict)
    idle_percent: Dict[str, float] = field(default_factory=dict)


@dataclass
class ResidencyReport:
    """
    Per-processor residency percentages over one run.

    An empty `per_processor` mapping means the interval could not be
    measured.
    """

    elapsed_us: float
    per_processor: Dict[int, CoreResidencyReport] = field(default_factory=dict)

    def render(self) -> str:
        """
        Render the report as indented text, one block per processor.

        Processors are listed in numeric order and states in the order the
        kernel reported them.
        """
        lines: List[str] = []
        for cpu_id in sorted(self.per_processor):
            core = self.per_processor[cpu_id]
            lines.append(f"CPU{cpu_id}:")
            for freq, pct in core.frequency_percent.items():
                lines.append(f"  Active @ {freq}kHz: {pct:.2f}%")
            for state, pct in core.idle_percent.items():
                lines.append(f"  Idle ({state}): {pct:.2f}%")
            lines.append("")
        return "\n".join(lines)

    def to_rows(self, label: str = "") -> List[Dict[str, Any]]:
        """Flatten the report into rows for tabular storage."""
        rows: List[Dict[str, Any]] = []
        for cpu_id in sorted(self.per_processor):
            core = self.per_processor[cpu_id]
            for freq, pct in core.frequency_percent.items():
                rows.append({
                    "label": label,
                    "cpu": cpu_id,
                    "kind": "frequency",
                    "state": str(freq),
                    "percent": pct,
                })
            for state, pct in core.idle_percent.items():
                rows.append({
                    "label": label,
                    "cpu": cpu_id,
                    "kind": "idle",
                    "state": state,
                    "percent": pct,
                })
        return rows
