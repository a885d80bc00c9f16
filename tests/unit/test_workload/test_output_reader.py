"""
Unit tests for the output reader of CommandWorkloadDriver.
"""

import logging
import re
from unittest.mock import MagicMock

import pytest

from drainbench.workload.base import WorkloadSignals
from drainbench.workload.command import CommandWorkloadDriver


def finished_process(lines, exit_code=0):
    process = MagicMock()
    process.stdout = iter(lines)
    process.wait.return_value = exit_code
    return process


@pytest.mark.unit
class TestReadOutput:
    """Test the line handling done on the reader thread."""

    def test_ready_and_event_lines(self):
        signals = WorkloadSignals()
        process = finished_process(["boot\n", "READY\n", "frame 1\n", "frame 2\n", "READY\n"])

        CommandWorkloadDriver()._read_output(
            process, "video_R1", signals, re.compile("^READY$"), re.compile("^frame")
        )

        assert signals.wait_ready(timeout=0)
        assert signals.events.value == 2

    def test_logs_with_the_label_it_was_started_for(self, caplog):
        driver = CommandWorkloadDriver()
        # A later start() has already moved the driver on to another workload.
        driver.label = "idle_R2"
        process = finished_process(["READY\n"], exit_code=3)

        with caplog.at_level(logging.INFO, logger="drainbench.workload.command"):
            driver._read_output(process, "video_R1", WorkloadSignals(), re.compile("READY"), None)

        assert "Workload video_R1 reported ready" in caplog.text
        assert "Workload video_R1 exited with code 3" in caplog.text
        assert "idle_R2" not in caplog.text
