"""
Unit tests for the sleep-inhibiting keep-alive.
"""

import subprocess
from unittest.mock import MagicMock, patch

import pytest

from drainbench.models.config import KeepAliveConfig
from drainbench.system.keepalive import KeepAlive, SystemdInhibitKeepAlive, create_keepalive

# Captured before any test patches subprocess.Popen.
_REAL_POPEN = subprocess.Popen


def running_process():
    process = MagicMock(spec=_REAL_POPEN)
    process.poll.return_value = None
    return process


@pytest.mark.unit
class TestCreateKeepAlive:
    """Test choosing the keep-alive implementation."""

    def test_disabled_gives_null_keepalive(self):
        keepalive = create_keepalive(KeepAliveConfig(enabled=False))
        assert type(keepalive) is KeepAlive
        assert keepalive.name == "none"

    @patch("drainbench.system.keepalive.check_tool_installed", return_value=False)
    def test_missing_tool_gives_null_keepalive(self, mock_check):
        keepalive = create_keepalive(KeepAliveConfig(enabled=True))
        assert type(keepalive) is KeepAlive
        mock_check.assert_called_once_with("systemd-inhibit")

    @patch("drainbench.system.keepalive.check_tool_installed", return_value=True)
    def test_systemd_inhibit_when_available(self, mock_check):
        keepalive = create_keepalive(KeepAliveConfig(enabled=True, expiry_seconds=90))
        assert isinstance(keepalive, SystemdInhibitKeepAlive)
        assert keepalive.expiry_seconds == 90


@pytest.mark.unit
class TestNullKeepAlive:
    def test_context_manager_is_harmless(self):
        with KeepAlive() as keepalive:
            keepalive.renew()
            assert not keepalive.held


@pytest.mark.unit
class TestSystemdInhibitKeepAlive:
    """Test the systemd-inhibit child process lifecycle."""

    @patch("drainbench.system.keepalive.subprocess.Popen")
    def test_acquire_spawns_expiring_inhibitor(self, mock_popen):
        mock_popen.return_value = running_process()
        keepalive = SystemdInhibitKeepAlive(expiry_seconds=600)

        keepalive.acquire()

        args = mock_popen.call_args[0][0]
        assert args[0] == "systemd-inhibit"
        assert "--what=sleep:idle" in args
        assert args[-2:] == ["sleep", "600"]
        assert keepalive.held

    @patch("drainbench.system.keepalive.subprocess.Popen")
    def test_acquire_while_held_is_noop(self, mock_popen):
        mock_popen.return_value = running_process()
        keepalive = SystemdInhibitKeepAlive(expiry_seconds=600)

        keepalive.acquire()
        keepalive.acquire()

        assert mock_popen.call_count == 1

    @patch("drainbench.system.keepalive.subprocess.Popen")
    def test_renew_replaces_the_child(self, mock_popen):
        first, second = running_process(), running_process()
        mock_popen.side_effect = [first, second]
        keepalive = SystemdInhibitKeepAlive(expiry_seconds=600)

        keepalive.acquire()
        keepalive.renew()

        first.terminate.assert_called_once()
        second.terminate.assert_not_called()
        assert keepalive.held

    @patch("drainbench.system.keepalive.subprocess.Popen")
    def test_release_terminates_and_forgets(self, mock_popen):
        process = running_process()
        mock_popen.return_value = process
        keepalive = SystemdInhibitKeepAlive(expiry_seconds=600)

        keepalive.acquire()
        keepalive.release()

        process.terminate.assert_called_once()
        process.wait.assert_called_once_with(timeout=2)
        assert not keepalive.held

    @patch("drainbench.system.keepalive.subprocess.Popen", side_effect=OSError("denied"))
    def test_spawn_failure_is_not_fatal(self, mock_popen):
        keepalive = SystemdInhibitKeepAlive(expiry_seconds=600)

        keepalive.acquire()
        keepalive.renew()
        keepalive.release()

        assert not keepalive.held
