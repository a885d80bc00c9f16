"""
Self-rescheduling polling worker.

One daemon thread runs the monitor: each tick takes a sample, hands it to the
EnergyMonitor and sleeps for whatever delay the monitor returned, so only a
single tick is ever in flight. The thread waits on a stop Event rather than
sleeping so that it can be cancelled at any point.
"""

import logging
import threading
from typing import Optional

from ..system.keepalive import KeepAlive
from ..system.power import PowerSampler
from .energy_monitor import EnergyMonitor

logger = logging.getLogger(__name__)


class PollingLoop:
    """
    Runs `monitor` on its own thread until it reports completion.

    Args:
        monitor: EnergyMonitor whose session has already begun.
        sampler: Source of PowerSamples.
        keepalive: Acquired when the loop starts, renewed on every tick and
            released when the loop ends for any reason.
        initial_delay: Seconds before the first tick.
    """

    def __init__(
        self,
        monitor: EnergyMonitor,
        sampler: PowerSampler,
        keepalive: Optional[KeepAlive] = None,
        initial_delay: float = 0.0,
    ):
        self.monitor = monitor
        self.sampler = sampler
        self.keepalive = keepalive or KeepAlive()
        self.initial_delay = initial_delay

        self.stop_event = threading.Event()
        # Set once the loop has finished, whether completed, stopped or failed.
        self.finished = threading.Event()
        self.thread: Optional[threading.Thread] = None
        self.error: Optional[BaseException] = None
        self.ticks = 0

    def start(self) -> None:
        if self.thread is not None:
            logger.warning("PollingLoop already started")
            return
        self.thread = threading.Thread(
            target=self._run,
            name=f"PollingLoop-{self.monitor.label}",
            daemon=True,
        )
        self.thread.start()
        logger.debug(f"PollingLoop for {self.monitor.label} started")

    def _run(self) -> None:
        self.keepalive.acquire()
        try:
            delay: Optional[float] = self.initial_delay
            while delay is not None and not self.stop_event.wait(delay):
                sample = self.sampler.sample()
                self.keepalive.renew()
                self.ticks += 1
                delay = self.monitor.poll(sample)
        except Exception as e:
            self.error = e
            logger.error(f"PollingLoop for {self.monitor.label} failed: {e}", exc_info=True)
        finally:
            self.keepalive.release()
            self.finished.set()

    @property
    def completed(self) -> bool:
        """True when the loop ended because the monitor reached its threshold."""
        return self.finished.is_set() and self.monitor.done

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until the loop ends; False on timeout."""
        return self.finished.wait(timeout)

    def stop(self, timeout: float = 5.0) -> None:
        """Cancel the loop and wait for its thread to exit."""
        self.stop_event.set()
        if self.thread and self.thread.is_alive():
            self.thread.join(timeout=timeout)
            if self.thread.is_alive():
                logger.warning(f"PollingLoop for {self.monitor.label} did not stop within timeout")
