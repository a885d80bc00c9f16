"""
Sample data models.

Raw readings taken from the battery and from the per-CPU residency counters,
plus the mutable state of one monitoring session.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

# Sentinel for a reading that could not be obtained.
UNKNOWN = -1


@dataclass(frozen=True)
class PowerSample:
    """
    One reading of the battery power source.

    Any field may be UNKNOWN; voltage and charge readings <= 0 are also
    treated as unknown by consumers.
    """

    timestamp_ms: int
    voltage_mv: int = UNKNOWN
    # Negative while discharging.
    current_ua: int = UNKNOWN
    charge_uah: int = UNKNOWN
    temperature_decicelsius: int = UNKNOWN
    level_percent: int = UNKNOWN

    @property
    def has_voltage(self) -> bool:
        return self.voltage_mv > 0

    @property
    def has_charge(self) -> bool:
        return self.charge_uah > 0

    @property
    def has_current(self) -> bool:
        return self.current_ua != UNKNOWN

    @property
    def temperature_celsius(self) -> Optional[float]:
        if self.temperature_decicelsius == UNKNOWN:
            return None
        return self.temperature_decicelsius / 10.0


class MonitorState(Enum):
    """Lifecycle of a monitoring session."""
    WAITING_FOR_DROP = "waiting_for_drop"
    ACCUMULATING = "accumulating"
    DONE = "done"


@dataclass
class MonitoringSession:
    """
    Mutable state of the run currently being measured.

    Exactly one session exists at a time and it is only touched from the
    polling thread. Both energy accumulators are non-decreasing once the
    session is ACCUMULATING.
    """

    label: str
    target_percent: int
    state: MonitorState = MonitorState.WAITING_FOR_DROP
    # Charge level at which the run stops; set on the first genuine drop.
    threshold_charge_uah: Optional[int] = None
    previous_charge_uah: int = UNKNOWN
    previous_sample_ms: int = 0
    # Power observed on the previous poll, integrated over the next gap.
    previous_power_w: float = 0.0
    energy_from_charge_wh: float = 0.0
    energy_from_current_wh: float = 0.0
    start_ms: int = 0
    slow_iteration_count: int = 0
    total_iterations: int = 0
    # Whether the latest poll expects the next drop to cross the threshold.
    nearly_done: bool = False
    last_level_percent: float = float(UNKNOWN)
    # One record per poll, persisted as the run's trace table.
    trace: List[Dict[str, Any]] = field(default_factory=list)

    def elapsed_hours(self, now_ms: int) -> float:
        return max(0, now_ms - self.start_ms) / 3_600_000.0


@dataclass(frozen=True)
class CoreResidency:
    """Cumulative counters of a single processor."""

    # kHz -> cumulative microseconds spent at that frequency.
    frequency_residency_us: Dict[int, int] = field(default_factory=dict)
    # idle state name -> cumulative microseconds spent in that state.
    idle_state_residency_us: Dict[str, int] = field(default_factory=dict)


@dataclass(frozen=True)
class ResidencySnapshot:
    """
    Residency counters of every processor at one instant.

    Only the difference between two snapshots is meaningful.
    """

    per_processor: Dict[int, CoreResidency]
    taken_at_ns: int
