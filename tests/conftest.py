"""
Pytest configuration and shared fixtures for the drainbench test suite.

This module provides common fixtures, fake sysfs trees and test utilities
for all test modules in the project.
"""

import shutil
import sys
import tempfile
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest

# Add src to Python path for testing
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))


# ============================================================================
# Test Configuration
# ============================================================================


def pytest_configure(config):
    """Configure pytest with custom markers and settings."""
    config.addinivalue_line("markers", "unit: mark test as a unit test")
    config.addinivalue_line("markers", "integration: mark test as an integration test")
    config.addinivalue_line("markers", "slow: mark test as slow running")


# ============================================================================
# Core Fixtures
# ============================================================================


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test files."""
    temp_path = tempfile.mkdtemp()
    yield Path(temp_path)
    shutil.rmtree(temp_path, ignore_errors=True)


class ManualClock:
    """Millisecond clock advanced explicitly by the test."""

    def __init__(self, start_ms: int = 0):
        self.now_ms = start_ms

    def __call__(self) -> int:
        return self.now_ms

    def set(self, now_ms: int) -> None:
        self.now_ms = now_ms

    def advance(self, seconds: float) -> None:
        self.now_ms += int(seconds * 1000)


@pytest.fixture
def clock():
    return ManualClock()


class RecordingSink:
    """In-memory stand-in for ResultSink."""

    def __init__(self):
        self.details: List[str] = []
        self.summaries: List[str] = []

    def detail(self, line: str) -> None:
        self.details.append(line)

    def detail_block(self, text: str) -> None:
        self.details.append(text)

    def summary(self, line: str) -> None:
        self.summaries.append(line)

    def close(self) -> None:
        pass


@pytest.fixture
def recording_sink():
    return RecordingSink()


@pytest.fixture
def monitor_config(temp_dir):
    """MonitorConfig with the default delays and a 4500 mAh battery."""
    from drainbench.models.config import MonitorConfig

    return MonitorConfig(
        sysfs_root=temp_dir / "power_supply",
        power_supply="auto",
        current_scale=1.0,
        nominal_capacity_mah=4500,
    )


# ============================================================================
# Fake sysfs Fixtures
# ============================================================================


def write_power_supply(
    root: Path,
    name: str = "BAT0",
    supply_type: str = "Battery",
    values: Optional[Dict[str, Any]] = None,
) -> Path:
    """Create (or update) a fake /sys/class/power_supply/<name> directory."""
    supply_dir = root / name
    supply_dir.mkdir(parents=True, exist_ok=True)
    (supply_dir / "type").write_text(f"{supply_type}\n")
    for attribute, value in (values or {}).items():
        (supply_dir / attribute).write_text(f"{value}\n")
    return supply_dir


def write_cpu(
    root: Path,
    cpu_id: int,
    time_in_state: Optional[Dict[int, int]] = None,
    idle_states: Optional[List[tuple]] = None,
) -> Path:
    """Create a fake /sys/devices/system/cpu/cpuN with residency counters.

    Args:
        time_in_state: kHz -> ticks
        idle_states: (name, time_us) pairs, written as state0, state1, ...
    """
    cpu_dir = root / f"cpu{cpu_id}"
    cpu_dir.mkdir(parents=True, exist_ok=True)
    if time_in_state is not None:
        stats_dir = cpu_dir / "cpufreq" / "stats"
        stats_dir.mkdir(parents=True, exist_ok=True)
        (stats_dir / "time_in_state").write_text(
            "".join(f"{freq} {ticks}\n" for freq, ticks in time_in_state.items())
        )
    for index, (name, time_us) in enumerate(idle_states or []):
        state_dir = cpu_dir / "cpuidle" / f"state{index}"
        state_dir.mkdir(parents=True, exist_ok=True)
        (state_dir / "name").write_text(f"{name}\n")
        (state_dir / "time").write_text(f"{time_us}\n")
    return cpu_dir


@pytest.fixture
def power_supply_root(temp_dir):
    root = temp_dir / "power_supply"
    root.mkdir()
    return root


@pytest.fixture
def cpu_root(temp_dir):
    root = temp_dir / "cpu"
    root.mkdir()
    return root


@pytest.fixture
def make_power_supply():
    return write_power_supply


@pytest.fixture
def make_cpu():
    return write_cpu


# ============================================================================
# Configuration Fixtures
# ============================================================================


@pytest.fixture
def sample_config_data(temp_dir):
    """Sample main configuration data for testing."""
    return {
        "experiment": {
            "log_root_dir": str(temp_dir / "logs"),
            "repeat": 1,
            "target_percents": [2, 3],
            "ready_timeout_seconds": 5.0,
            "completion_timeout_hours": 1.0,
            "skip_plots": True,
        },
        "monitor": {
            "sysfs_root": str(temp_dir / "power_supply"),
            "power_supply": "auto",
            "current_scale": -1.0,
            "nominal_capacity_mah": 4500,
        },
        "residency": {
            "cpu_root": str(temp_dir / "cpu"),
        },
        "keepalive": {"enabled": False},
        "feedback": {"audible": False},
        "storage": {"format": "parquet", "compression": "snappy"},
    }


@pytest.fixture
def sample_workloads():
    """Sample workload configurations for testing."""
    return [
        {
            "name": "camera",
            "command_template": "record --fps {fps} --hdr {hdr} -o {output}",
            "ready_pattern": "^recording",
            "event_pattern": "^frame",
            "artifact_extension": "mp4",
            "parameters": {"fps": 30, "hdr": True},
        },
        {
            "name": "idle",
            "command_template": "sleep 1000",
            "target_percent": 1,
        },
    ]


@pytest.fixture
def config_files(temp_dir, sample_config_data, sample_workloads):
    """Create temporary configuration files for testing."""
    import toml

    workloads_file = temp_dir / "workloads.toml"
    with open(workloads_file, "w") as f:
        toml.dump({"workloads": sample_workloads}, f)

    config_file = temp_dir / "config.toml"
    config_data = dict(sample_config_data)
    config_data["paths"] = {"workloads_config": "workloads.toml"}
    with open(config_file, "w") as f:
        toml.dump(config_data, f)

    return {
        "config": config_file,
        "workloads": workloads_file,
        "dir": temp_dir,
    }


@pytest.fixture(autouse=True)
def clear_config_after_test():
    """Automatically clear configuration cache after each test."""
    original_config_path = Path(__file__).parent.parent / "conf" / "config.toml"

    yield

    from drainbench.config import clear_config_cache, set_config_path

    clear_config_cache()
    set_config_path(original_config_path)
