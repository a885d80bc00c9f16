"""
Configuration management for the drainbench package.

This module provides a clean interface for loading, validating, and accessing
configuration data from TOML files with singleton pattern management.
"""

# Main configuration interface
from .manager import (
    clear_config_cache,
    get_config,
    get_config_info,
    is_config_loaded,
    set_config_path,
)

# For advanced usage - direct access to loaders and validators
from .loader import (
    get_config_paths,
    load_main_config,
    load_toml_file,
    load_workloads_config,
)
from .storage_config import StorageConfig
from .validators import (
    validate_experiment_config,
    validate_monitor_config,
    validate_residency_config,
    validate_workloads_config,
)

__all__ = [
    # Main interface
    "get_config",
    "set_config_path",
    "clear_config_cache",
    "is_config_loaded",
    "get_config_info",
    # Advanced interface
    "load_toml_file",
    "load_main_config",
    "load_workloads_config",
    "get_config_paths",
    "StorageConfig",
    "validate_experiment_config",
    "validate_monitor_config",
    "validate_residency_config",
    "validate_workloads_config",
]
