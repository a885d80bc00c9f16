"""
Data models and structures for the energy experiment.

Configuration Models:
- Experiment, monitor, residency, keep-alive and feedback settings
- Workload configurations and the run matrix

Sample Models:
- Battery power samples and residency snapshots
- The mutable monitoring session

Result Models:
- Per-run summaries and residency reports

Runtime Models:
- Experiment output paths and per-run context
"""

# Configuration models
from .config import (
    AppConfig,
    ExperimentConfig,
    FeedbackConfig,
    KeepAliveConfig,
    MonitorConfig,
    ResidencyConfig,
    WorkloadConfig,
)

# Sample models
from .samples import (
    UNKNOWN,
    CoreResidency,
    MonitoringSession,
    MonitorState,
    PowerSample,
    ResidencySnapshot,
)

# Result models
from .results import CoreResidencyReport, ResidencyReport, RunSummary

# Runtime models
from .runtime import RunContext, RunPaths

__all__ = [
    # Configuration
    "AppConfig",
    "ExperimentConfig",
    "FeedbackConfig",
    "KeepAliveConfig",
    "MonitorConfig",
    "ResidencyConfig",
    "WorkloadConfig",
    # Samples
    "UNKNOWN",
    "CoreResidency",
    "MonitoringSession",
    "MonitorState",
    "PowerSample",
    "ResidencySnapshot",
    # Results
    "CoreResidencyReport",
    "ResidencyReport",
    "RunSummary",
    # Runtime
    "RunContext",
    "RunPaths",
]
