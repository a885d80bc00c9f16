"""
Workload driver running an external command.

The command line comes from the workload's template. Its combined
stdout/stderr is read line by line on a reader thread:

- the first line matching `ready_pattern` marks the workload as running
  (without a pattern it counts as running as soon as it is spawned)
- every line matching `event_pattern` counts one event
"""

import logging
import re
import subprocess
import threading
from pathlib import Path
from typing import List, Optional

import psutil

from ..models.config import WorkloadConfig
from ..system.commands import build_workload_command
from .base import AbstractWorkloadDriver, WorkloadSignals

logger = logging.getLogger(__name__)


class CommandWorkloadDriver(AbstractWorkloadDriver):
    """Runs one workload command at a time as a child process."""

    def __init__(self, cwd: Optional[Path] = None):
        self.cwd = cwd
        self.process: Optional[psutil.Popen] = None
        self.reader_thread: Optional[threading.Thread] = None
        self.stop_timeout = 5.0
        self.label = ""

    def build_command(self, config: WorkloadConfig, artifact_path: Path) -> List[str]:
        fields = dict(config.parameters)
        fields.update(
            output=str(artifact_path),
            label=config.label(),
            target_percent=config.target_percent,
        )
        return build_workload_command(config.command_template, fields)

    def start(self, config: WorkloadConfig, signals: WorkloadSignals, artifact_path: Path) -> None:
        if self.process is not None:
            raise RuntimeError(f"Workload {self.label} is still running")

        argv = self.build_command(config, artifact_path)
        self.label = config.label()
        self.stop_timeout = config.stop_timeout_seconds
        logger.info(f"Starting workload {self.label}: {' '.join(argv)}")

        self.process = psutil.Popen(
            argv,
            cwd=self.cwd,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
            encoding="utf-8",
            errors="replace",
            bufsize=1,
            start_new_session=True,
        )
        logger.info(f"Workload started with PID: {self.process.pid}")

        ready_re = re.compile(config.ready_pattern) if config.ready_pattern else None
        event_re = re.compile(config.event_pattern) if config.event_pattern else None
        if ready_re is None:
            signals.mark_ready()

        self.reader_thread = threading.Thread(
            target=self._read_output,
            args=(self.process, self.label, signals, ready_re, event_re),
            name=f"WorkloadReader-{self.label}",
            daemon=True,
        )
        self.reader_thread.start()

    def _read_output(
        self,
        process: psutil.Popen,
        label: str,
        signals: WorkloadSignals,
        ready_re: Optional[re.Pattern],
        event_re: Optional[re.Pattern],
    ) -> None:
        waiting_for_ready = ready_re is not None
        for line in process.stdout:
            line = line.rstrip("\n")
            logger.debug(f"[{label}] {line}")
            if waiting_for_ready and ready_re.search(line):
                waiting_for_ready = False
                logger.info(f"Workload {label} reported ready")
                signals.mark_ready()
            if event_re is not None and event_re.search(line):
                signals.record_event()
        exit_code = process.wait()
        logger.info(f"Workload {label} exited with code {exit_code}")

    def stop(self) -> None:
        process = self.process
        if process is None:
            return
        self.process = None

        if process.poll() is None:
            try:
                children = process.children(recursive=True)
            except psutil.NoSuchProcess:
                children = []
            victims = [process] + children
            for victim in victims:
                try:
                    victim.terminate()
                except psutil.NoSuchProcess:
                    pass
            _, alive = psutil.wait_procs(victims, timeout=self.stop_timeout)
            for victim in alive:
                logger.warning(f"Killing {self.label} process {victim.pid} after {self.stop_timeout}s")
                try:
                    victim.kill()
                except psutil.NoSuchProcess:
                    pass
            psutil.wait_procs(alive, timeout=self.stop_timeout)

        if self.reader_thread is not None:
            self.reader_thread.join(timeout=self.stop_timeout)
            self.reader_thread = None
        logger.info(f"Workload {self.label} stopped")
