"""
System interaction utilities.

This module provides the host-level functionality the experiment relies on:

- Battery power readings from the power_supply sysfs class
- CPU frequency and idle-state residency snapshots
- Sleep inhibition while a run is in progress
- Command execution and tool detection
"""

# Command execution
from .commands import build_workload_command, check_tool_installed, run_command

# Sleep inhibition
from .keepalive import KeepAlive, SystemdInhibitKeepAlive, create_keepalive

# Battery readings
from .power import PowerSampler, find_battery, monotonic_ms

# CPU residency
from .residency import ResidencyAnalyzer

__all__ = [
    # Commands
    "build_workload_command",
    "check_tool_installed",
    "run_command",
    # Keep-alive
    "KeepAlive",
    "SystemdInhibitKeepAlive",
    "create_keepalive",
    # Power
    "PowerSampler",
    "find_battery",
    "monotonic_ms",
    # Residency
    "ResidencyAnalyzer",
]
