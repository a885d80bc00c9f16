"""
Configuration management and singleton pattern.

This module provides the main configuration loading and management interface,
implementing a singleton pattern to ensure configuration is loaded only once.
"""

import logging
from pathlib import Path
from typing import Optional

from ..models.config import AppConfig
from ..validation import handle_config_error, ErrorSeverity
from .loader import load_main_config, load_workloads_config, get_config_paths
from .storage_config import StorageConfig
from .validators import (
    validate_experiment_config,
    validate_feedback_config,
    validate_keepalive_config,
    validate_monitor_config,
    validate_residency_config,
    validate_workloads_config,
)

logger = logging.getLogger(__name__)

# --- Global Singleton for Configuration ---

# Holds the single instance of the loaded AppConfig.
_CONFIG: Optional[AppConfig] = None

# Default path of the main configuration file; overridden by the CLI's
# --config flag and by tests.
_CONFIG_FILE_PATH = Path(__file__).parent.parent.parent.parent / "conf" / "config.toml"


def set_config_path(config_path: Path) -> None:
    """
    Set a custom configuration file path and drop any cached configuration.

    Args:
        config_path: Path to the main config.toml file
    """
    global _CONFIG_FILE_PATH, _CONFIG
    _CONFIG_FILE_PATH = config_path
    _CONFIG = None
    logger.info(f"Configuration path set to: {config_path}")


def clear_config_cache() -> None:
    """Clear the cached configuration, forcing a reload on next access."""
    global _CONFIG
    _CONFIG = None
    logger.debug("Configuration cache cleared")


def _load_config(config_path: Path) -> AppConfig:
    """
    Load the complete application configuration from TOML files.

    Args:
        config_path: Path to the main config.toml file

    Returns:
        Fully validated AppConfig instance

    Raises:
        FileNotFoundError: If configuration files are missing
        ValidationError: If configuration validation fails
        tomllib.TOMLDecodeError: If TOML files are malformed
        KeyError: If required configuration keys are missing
    """
    try:
        main_config_data = load_main_config(config_path)
        config_paths = get_config_paths(main_config_data, config_path.parent)

        experiment_config = validate_experiment_config(main_config_data.get("experiment", {}))
        monitor_config = validate_monitor_config(main_config_data.get("monitor", {}))
        residency_config = validate_residency_config(main_config_data.get("residency", {}))
        keepalive_config = validate_keepalive_config(main_config_data.get("keepalive", {}))
        feedback_config = validate_feedback_config(main_config_data.get("feedback", {}))
        storage_config = StorageConfig.from_dict(main_config_data.get("storage", {}))

        workloads_data = load_workloads_config(config_paths["workloads"])
        workloads, pinned_targets = validate_workloads_config(workloads_data)

        app_config = AppConfig(
            experiment=experiment_config,
            monitor=monitor_config,
            residency=residency_config,
            keepalive=keepalive_config,
            feedback=feedback_config,
            storage=storage_config,
            workloads=workloads,
            pinned_targets=pinned_targets,
        )

        logger.info(
            f"Successfully loaded configuration with {len(workloads)} workloads "
            f"and targets {experiment_config.target_percents}"
        )
        return app_config

    except FileNotFoundError as e:
        handle_config_error(
            error=e,
            context="loading configuration file",
            severity=ErrorSeverity.CRITICAL,
            reraise=True,
            logger=logger
        )
        raise
    except Exception as e:
        handle_config_error(
            error=e,
            context="processing configuration",
            severity=ErrorSeverity.CRITICAL,
            reraise=True,
            logger=logger
        )
        raise


def get_config() -> AppConfig:
    """
    Get the global application configuration, loading it if necessary.

    Returns:
        The singleton AppConfig instance
    """
    global _CONFIG
    if _CONFIG is None:
        _CONFIG = _load_config(_CONFIG_FILE_PATH)
    return _CONFIG


def is_config_loaded() -> bool:
    return _CONFIG is not None


def get_config_info() -> dict:
    """
    Get information about the current configuration state.

    Returns:
        Dictionary with configuration metadata
    """
    return {
        "config_loaded": is_config_loaded(),
        "config_path": str(_CONFIG_FILE_PATH),
        "workloads_count": len(_CONFIG.workloads) if _CONFIG else 0,
        "runs_count": len(_CONFIG.build_matrix()) if _CONFIG else 0,
    }
