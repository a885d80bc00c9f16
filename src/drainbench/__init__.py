"""
drainbench: battery energy-drain experiment driver.

Runs a matrix of parameterized workloads on a battery-powered Linux host and
measures the energy each one draws, stopping every run at a precise drop of
the battery's charge counter.

The package is organized into specialized modules:
- config: Configuration management and validation
- models: Data structures and type definitions
- validation: Input validation and error handling
- system: Battery, CPU residency, sleep inhibition and commands
- monitoring: The energy monitor state machine and its polling loop
- workload: Workload drivers
- orchestration: Run scheduling and operator cues
- storage: Text logs and Parquet tables
- cli: Command-line interface

Usage:
    From command line:
        drainbench [--config conf/config.toml]
"""

# Import order matters: config before models, orchestration before monitoring.
from .config import get_config, clear_config_cache, set_config_path

# Model classes for external use
from .models import (
    AppConfig,
    MonitorConfig,
    PowerSample,
    ResidencyReport,
    RunSummary,
    WorkloadConfig,
)

from .orchestration import CueEmitter, RunScheduler
from .monitoring import EnergyMonitor, PollingLoop
from .system import PowerSampler, ResidencyAnalyzer
from .workload import CommandWorkloadDriver, WorkloadSignals
from .cli import main_cli

# Validation utilities
from .validation import ValidationError

__version__ = "1.0.0"

__all__ = [
    # Configuration
    "get_config",
    "clear_config_cache",
    "set_config_path",
    # Models
    "AppConfig",
    "MonitorConfig",
    "PowerSample",
    "ResidencyReport",
    "RunSummary",
    "WorkloadConfig",
    # Components
    "CueEmitter",
    "RunScheduler",
    "EnergyMonitor",
    "PollingLoop",
    "PowerSampler",
    "ResidencyAnalyzer",
    "CommandWorkloadDriver",
    "WorkloadSignals",
    "main_cli",
    # Validation
    "ValidationError",
]
