"""
Workload driver interface and the signals a workload raises.

A driver starts the workload being measured and reports back asynchronously:
once when the workload is actually running (readiness) and once per unit of
work it completes (frames, requests, ...). Signals come from the driver's
own threads; the scheduler only blocks on them with bounded waits.
"""

import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

from ..models.config import WorkloadConfig


class EventCounter:
    """Lock-guarded counter incremented from the workload's threads."""

    def __init__(self):
        self._lock = threading.Lock()
        self._count = 0

    def increment(self, amount: int = 1) -> None:
        with self._lock:
            self._count += amount

    @property
    def value(self) -> int:
        with self._lock:
            return self._count


class WorkloadSignals:
    """
    Readiness gate and event counter shared by a driver and the scheduler.

    Readiness is a counting semaphore: every `mark_ready()` releases one
    permit, and `wait_ready()` consumes one.
    """

    def __init__(self):
        self._ready = threading.Semaphore(0)
        self.events = EventCounter()

    def mark_ready(self) -> None:
        self._ready.release()

    def record_event(self, amount: int = 1) -> None:
        self.events.increment(amount)

    def wait_ready(self, timeout: Optional[float] = None) -> bool:
        """Block until the workload is running; False if `timeout` elapses first."""
        return self._ready.acquire(timeout=timeout)


class AbstractWorkloadDriver(ABC):
    """Starts and stops the workload measured by one run."""

    @abstractmethod
    def start(self, config: WorkloadConfig, signals: WorkloadSignals, artifact_path: Path) -> None:
        """
        Launch the workload without blocking.

        Args:
            config: The configuration to run.
            signals: Where readiness and events must be reported.
            artifact_path: File the workload may write its output to.
        """

    @abstractmethod
    def stop(self) -> None:
        """Stop the workload; safe to call when it never started or already exited."""
