"""
Experiment orchestration: operator cues and the run scheduler.
"""

from .cues import CueEmitter, CueKind
from .scheduler import RunScheduler

__all__ = [
    "CueEmitter",
    "CueKind",
    "RunScheduler",
]
