"""
Run scheduler.

Executes the configuration matrix one run at a time on the calling
(controller) thread. For each configuration:

1. start the workload and wait, bounded, for it to report readiness
2. snapshot CPU residency and start the polling loop
3. block until the monitor reaches its threshold (or the watchdog fires)
4. snapshot residency again, stop the workload, write the summary

A configuration that fails is logged and skipped; the scheduler always
moves on to the next one.
"""

import logging
import threading
import time
from pathlib import Path
from typing import Callable, Iterable, List, Optional

from ..models.config import MonitorConfig, WorkloadConfig
from ..models.results import RunSummary
from ..models.runtime import RunContext
from ..monitoring.energy_monitor import EnergyMonitor
from ..monitoring.poll_loop import PollingLoop
from ..storage.data_manager import DataStorageManager
from ..storage.result_sink import ResultSink
from ..system.keepalive import KeepAlive
from ..system.power import PowerSampler, monotonic_ms
from ..system.residency import ResidencyAnalyzer
from ..validation import ErrorSeverity, handle_file_error
from ..workload.base import AbstractWorkloadDriver, WorkloadSignals
from .cues import CueEmitter, CueKind

logger = logging.getLogger(__name__)


def label_timestamp() -> str:
    return time.strftime("%Y%m%d_%H%M%S")


def friendly_timestamp() -> str:
    return time.strftime("%Y-%m-%d %H:%M:%S")


class RunScheduler:
    """
    Runs configurations strictly one after another.

    Args:
        driver: Starts and stops the workloads.
        sampler: Battery reader shared by every run.
        analyzer: CPU residency reader.
        sink: Detail and summary text logs.
        cues: Operator cue emitter.
        monitor_config: Settings handed to each run's EnergyMonitor.
        output_dir: Experiment directory receiving the workload artifacts.
        ready_timeout_seconds: Bounded wait for the readiness signal.
        completion_timeout_seconds: Watchdog on a single run.
        keepalive: Held by the polling loop while a run is measured.
        storage: Optional table storage for traces, residency and summaries.
        clock: Millisecond clock shared with the sampler.
    """

    def __init__(
        self,
        driver: AbstractWorkloadDriver,
        sampler: PowerSampler,
        analyzer: ResidencyAnalyzer,
        sink: ResultSink,
        cues: CueEmitter,
        monitor_config: MonitorConfig,
        output_dir: Path,
        ready_timeout_seconds: float = 20.0,
        completion_timeout_seconds: float = 30 * 3600.0,
        keepalive: Optional[KeepAlive] = None,
        storage: Optional[DataStorageManager] = None,
        clock: Callable[[], int] = monotonic_ms,
    ):
        self.driver = driver
        self.sampler = sampler
        self.analyzer = analyzer
        self.sink = sink
        self.cues = cues
        self.monitor_config = monitor_config
        self.output_dir = Path(output_dir)
        self.ready_timeout_seconds = ready_timeout_seconds
        self.completion_timeout_seconds = completion_timeout_seconds
        self.keepalive = keepalive or KeepAlive()
        self.storage = storage
        self.clock = clock

        self.shutdown_requested = threading.Event()
        self._active_loop: Optional[PollingLoop] = None
        self.failed_runs = 0

    def request_shutdown(self) -> None:
        """
        Stop after the current configuration; the in-flight run is abandoned.

        Safe to call from a signal handler: it only sets events.
        """
        self.shutdown_requested.set()
        loop = self._active_loop
        if loop is not None:
            loop.stop_event.set()

    def run_all(self, configurations: Iterable[WorkloadConfig]) -> List[RunSummary]:
        """Run every configuration in order and return the summaries of completed runs."""
        configurations = list(configurations)
        summaries: List[RunSummary] = []
        for index, config in enumerate(configurations, start=1):
            if self.shutdown_requested.is_set():
                logger.warning("Shutdown requested, skipping remaining configurations.")
                break
            logger.info(f"--- Run {index}/{len(configurations)}: {config.label()} ---")
            try:
                summary = self._run_one(config)
            except Exception as e:
                self.failed_runs += 1
                logger.error(
                    f"Unexpected error while running '{config.label()}': {type(e).__name__}: {e}",
                    exc_info=True,
                )
                self._stop_driver()
                continue
            if summary is not None:
                summaries.append(summary)
        logger.info(f"Completed {len(summaries)} of {len(configurations)} runs")
        return summaries

    def _new_context(self, config: WorkloadConfig) -> RunContext:
        timestamp = label_timestamp()
        label = f"{config.label()}_{timestamp}"
        return RunContext(
            config=config,
            label=label,
            timestamp=timestamp,
            artifact_path=self.output_dir / f"{label}.{config.artifact_extension}",
        )

    def _start_workload(self, context: RunContext, signals: WorkloadSignals) -> bool:
        try:
            self.driver.start(context.config, signals, context.artifact_path)
        except Exception as e:
            logger.error(f"Failed to start workload {context.label}: {type(e).__name__}: {e}")
            return False
        if not signals.wait_ready(self.ready_timeout_seconds):
            logger.error(
                f"Workload {context.label} did not become ready within "
                f"{self.ready_timeout_seconds:g}s"
            )
            return False
        return True

    def _fail(self, context: RunContext, reason: str) -> None:
        self.failed_runs += 1
        line = f"{friendly_timestamp()} {context.label} FAILED: {reason}"
        self.sink.summary(line)
        self.sink.detail(line)
        self.cues.emit(CueKind.ERROR, f"{context.label}: {reason}")

    def _stop_driver(self) -> None:
        try:
            self.driver.stop()
        except Exception as e:
            logger.error(f"Error while stopping workload: {type(e).__name__}: {e}", exc_info=True)

    def _run_one(self, config: WorkloadConfig) -> Optional[RunSummary]:
        context = self._new_context(config)
        self.cues.emit(CueKind.START, context.label)
        self.sink.detail(f"Starting run {context.label}")

        signals = WorkloadSignals()
        if not self._start_workload(context, signals):
            self._fail(context, "workload never started")
            self._stop_driver()
            return None

        start_snapshot = self.analyzer.take_snapshot()
        monitor = EnergyMonitor(
            self.monitor_config,
            context.label,
            config.target_percent,
            self.sink,
            self.cues,
            clock=self.clock,
        )
        monitor.begin(self.sampler.sample())
        loop = PollingLoop(
            monitor,
            self.sampler,
            keepalive=self.keepalive,
            initial_delay=self.monitor_config.waiting_delay_seconds,
        )

        self._active_loop = loop
        if self.shutdown_requested.is_set():
            loop.stop_event.set()
        try:
            loop.start()
            finished = loop.wait(self.completion_timeout_seconds)
            # Read before stopping the workload so shutdown output is not counted.
            event_count = signals.events.value
        finally:
            loop.stop()
            self._active_loop = None

        if not finished:
            self._fail(context, f"no completion within {self.completion_timeout_seconds / 3600.0:g}h")
            self._stop_driver()
            return None
        if not loop.completed:
            reason = "monitor error" if loop.error is not None else "interrupted"
            self._fail(context, reason)
            self._stop_driver()
            return None

        self.cues.emit(CueKind.DONE, context.label)
        end_snapshot = self.analyzer.take_snapshot()
        report = self.analyzer.diff(start_snapshot, end_snapshot)
        self._stop_driver()

        # Timed at the threshold poll so the figures match the final detail line.
        summary = RunSummary.from_session(
            monitor.session, monitor.session.previous_sample_ms, event_count
        )
        self.sink.summary(summary.format_line(friendly_timestamp()))
        self.sink.detail_block(f"Residency for {context.label}:\n{report.render()}")
        self._persist(context, monitor, report, summary)
        return summary

    def _persist(self, context, monitor, report, summary) -> None:
        if self.storage is None:
            return
        try:
            self.storage.save_trace(context.label, monitor.session.trace)
            self.storage.save_residency(context.label, report)
            self.storage.append_summary(summary, context.timestamp)
        except Exception as e:
            handle_file_error(
                error=e,
                context=f"storing tables for {context.label}",
                severity=ErrorSeverity.CRITICAL,
                reraise=False,
                logger=logger,
            )
