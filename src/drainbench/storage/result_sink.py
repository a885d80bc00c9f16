"""
Append-only text logs of an experiment.

The detail log receives one line per poll, the residency reports and the
startup platform description; the summary log receives one line per
completed or failed run. Every line is flushed immediately so the logs
survive a crash or a pulled plug.
"""

import logging
import threading
from pathlib import Path
from typing import TextIO

logger = logging.getLogger(__name__)


class ResultSink:
    """
    Thread-safe writer for the detail and summary logs.

    Both files are opened on construction; an OSError there is a fatal
    startup failure for the caller to report.
    """

    def __init__(self, detail_log_file: Path, summary_log_file: Path):
        self.detail_log_file = Path(detail_log_file)
        self.summary_log_file = Path(summary_log_file)
        self._lock = threading.Lock()
        self._detail: TextIO = open(self.detail_log_file, "a", encoding="utf-8")
        try:
            self._summary: TextIO = open(self.summary_log_file, "a", encoding="utf-8")
        except OSError:
            self._detail.close()
            raise
        self._closed = False

    def _write(self, stream: TextIO, text: str) -> None:
        with self._lock:
            if self._closed:
                logger.warning(f"Dropping line written after close: {text[:80]}")
                return
            stream.write(text if text.endswith("\n") else text + "\n")
            stream.flush()

    def detail(self, line: str) -> None:
        """Append one line to the detail log."""
        logger.info(line)
        self._write(self._detail, line)

    def detail_block(self, text: str) -> None:
        """Append a multi-line block (e.g. a residency report) to the detail log."""
        for line in text.splitlines():
            logger.info(line)
        self._write(self._detail, text)

    def summary(self, line: str) -> None:
        """Append one line to the summary log."""
        logger.info(line)
        self._write(self._summary, line)

    def close(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
            self._detail.close()
            self._summary.close()

    def __enter__(self) -> "ResultSink":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
