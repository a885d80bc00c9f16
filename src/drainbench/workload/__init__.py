"""
Workload drivers: what runs while the battery drains.
"""

from .base import AbstractWorkloadDriver, EventCounter, WorkloadSignals
from .command import CommandWorkloadDriver

__all__ = [
    "AbstractWorkloadDriver",
    "CommandWorkloadDriver",
    "EventCounter",
    "WorkloadSignals",
]
