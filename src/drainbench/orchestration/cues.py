"""
Operator cues.

The experiment runs unattended for hours; cues tell a nearby operator what
the driver is doing without looking at the screen. Every cue is logged and,
when enabled, also rings the terminal bell.
"""

import logging
import sys
import threading
from collections import deque
from enum import Enum
from typing import Deque, Optional, TextIO

logger = logging.getLogger(__name__)


class CueKind(Enum):
    START = "start"
    WAITING = "waiting"
    WARNING = "warning"
    DONE = "done"
    ERROR = "error"


# Number of bell characters rung per cue kind.
_BELL_COUNT = {
    CueKind.START: 1,
    CueKind.WAITING: 1,
    CueKind.WARNING: 2,
    CueKind.DONE: 3,
    CueKind.ERROR: 4,
}


# Number of most recent cues kept in `CueEmitter.history`.
HISTORY_SIZE = 256


class CueEmitter:
    """Logs cues and optionally rings the terminal bell."""

    def __init__(
        self,
        audible: bool = False,
        stream: Optional[TextIO] = None,
        history_size: int = HISTORY_SIZE,
    ):
        self.audible = audible
        self.stream = stream or sys.stdout
        self._lock = threading.Lock()
        # Most recent kinds emitted, oldest first.
        self.history: Deque[CueKind] = deque(maxlen=history_size)

    def emit(self, kind: CueKind, message: str = "") -> None:
        with self._lock:
            self.history.append(kind)
        level = logging.WARNING if kind in (CueKind.WARNING, CueKind.ERROR) else logging.DEBUG
        logger.log(level, f"Cue {kind.value}{': ' + message if message else ''}")
        if not self.audible:
            return
        try:
            self.stream.write("\a" * _BELL_COUNT[kind])
            self.stream.flush()
        except (OSError, ValueError) as e:
            logger.debug(f"Could not ring the terminal bell: {e}")
