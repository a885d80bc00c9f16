"""
Energy monitoring: the per-run state machine and the thread that drives it.
"""

from .energy_monitor import WAITING_MARKER, EnergyMonitor, sample_power_w
from .poll_loop import PollingLoop

__all__ = [
    "WAITING_MARKER",
    "EnergyMonitor",
    "PollingLoop",
    "sample_power_w",
]
