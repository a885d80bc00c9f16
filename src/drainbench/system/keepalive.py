"""
Keep-alive resource preventing the host from suspending during a run.

On systemd hosts the inhibitor is a `systemd-inhibit ... sleep N` child
process: the lock lives exactly as long as the child, so every acquisition
expires on its own after `expiry_seconds` even if the monitor dies. Renewing
replaces the child with a fresh one.
"""

import logging
import subprocess
from typing import List, Optional

from ..models.config import KeepAliveConfig
from .commands import check_tool_installed

logger = logging.getLogger(__name__)

INHIBIT_TOOL = "systemd-inhibit"


class KeepAlive:
    """Null keep-alive used when inhibiting sleep is disabled or unsupported."""

    name = "none"

    def acquire(self) -> None:
        pass

    def renew(self) -> None:
        pass

    def release(self) -> None:
        pass

    @property
    def held(self) -> bool:
        return False

    def __enter__(self) -> "KeepAlive":
        self.acquire()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.release()


class SystemdInhibitKeepAlive(KeepAlive):
    """Blocks sleep and idle via a short-lived systemd-inhibit child."""

    name = INHIBIT_TOOL

    def __init__(self, expiry_seconds: float):
        self.expiry_seconds = expiry_seconds
        self._process: Optional[subprocess.Popen] = None

    def _command(self) -> List[str]:
        return [
            INHIBIT_TOOL,
            "--what=sleep:idle",
            "--who=drainbench",
            "--why=battery energy measurement in progress",
            "--mode=block",
            "sleep",
            str(int(self.expiry_seconds)),
        ]

    def _spawn(self) -> Optional[subprocess.Popen]:
        try:
            return subprocess.Popen(
                self._command(),
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
            )
        except OSError as e:
            logger.warning(f"Failed to start {INHIBIT_TOOL}: {e}")
            return None

    def _terminate(self, process: Optional[subprocess.Popen]) -> None:
        if process is None or process.poll() is not None:
            return
        process.terminate()
        try:
            process.wait(timeout=2)
        except subprocess.TimeoutExpired:
            process.kill()
            process.wait()

    def acquire(self) -> None:
        if self.held:
            return
        self._process = self._spawn()
        if self._process is not None:
            logger.debug(f"Sleep inhibitor acquired for {self.expiry_seconds:g}s")

    def renew(self) -> None:
        """Start a fresh inhibitor before dropping the old one, so there is no gap."""
        old = self._process
        self._process = self._spawn()
        self._terminate(old)

    def release(self) -> None:
        self._terminate(self._process)
        if self._process is not None:
            logger.debug("Sleep inhibitor released")
        self._process = None

    @property
    def held(self) -> bool:
        return self._process is not None and self._process.poll() is None


def create_keepalive(config: KeepAliveConfig) -> KeepAlive:
    """Pick the keep-alive implementation available on this host."""
    if not config.enabled:
        logger.info("Keep-alive disabled by configuration")
        return KeepAlive()
    if not check_tool_installed(INHIBIT_TOOL):
        logger.warning(f"{INHIBIT_TOOL} not found; the host may suspend during runs")
        return KeepAlive()
    return SystemdInhibitKeepAlive(config.expiry_seconds)
