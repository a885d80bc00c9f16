"""
Configuration validation utilities.

This module turns the raw TOML tables into validated configuration dataclasses.
"""

import logging
from pathlib import Path
from typing import Any, Dict, List, Tuple

from ..models.config import (
    BUILTIN_COMMAND_FIELDS,
    ExperimentConfig,
    FeedbackConfig,
    KeepAliveConfig,
    MonitorConfig,
    ResidencyConfig,
    WorkloadConfig,
)
from ..validation import (
    ValidationError,
    validate_boolean,
    validate_command_template,
    validate_nonzero_float,
    validate_percent_list,
    validate_positive_float,
    validate_positive_integer,
    validate_regex_pattern,
    validate_workload_name,
)

logger = logging.getLogger(__name__)

DEFAULT_SYSFS_ROOT = "/sys/class/power_supply"
DEFAULT_CPU_ROOT = "/sys/devices/system/cpu"


def validate_experiment_config(experiment_data: Dict[str, Any]) -> ExperimentConfig:
    """
    Validate and create an ExperimentConfig from the `[experiment]` table.

    Raises:
        ValidationError: If validation fails
    """
    try:
        repeat = validate_positive_integer(
            experiment_data.get("repeat", 1),
            min_value=1,
            max_value=1000,
            field_name="experiment.repeat",
        )

        target_percents = validate_percent_list(
            experiment_data.get("target_percents", [3]),
            field_name="experiment.target_percents",
        )

        ready_timeout_seconds = validate_positive_float(
            experiment_data.get("ready_timeout_seconds", 20.0),
            min_value=0.1,
            max_value=3600.0,
            field_name="experiment.ready_timeout_seconds",
        )

        completion_timeout_hours = validate_positive_float(
            experiment_data.get("completion_timeout_hours", 30.0),
            min_value=0.001,
            max_value=1000.0,
            field_name="experiment.completion_timeout_hours",
        )

        skip_plots = validate_boolean(
            experiment_data.get("skip_plots", False),
            field_name="experiment.skip_plots",
        )

        log_root_dir_str = experiment_data.get("log_root_dir", "logs")
        if not isinstance(log_root_dir_str, str) or not log_root_dir_str.strip():
            raise ValidationError(
                "experiment.log_root_dir must be a non-empty string",
                field_name="experiment.log_root_dir",
                value=log_root_dir_str,
            )

        return ExperimentConfig(
            log_root_dir=Path(log_root_dir_str),
            repeat=repeat,
            target_percents=target_percents,
            ready_timeout_seconds=ready_timeout_seconds,
            completion_timeout_hours=completion_timeout_hours,
            skip_plots=skip_plots,
        )

    except ValidationError as e:
        logger.error(f"Experiment configuration validation failed: {e}")
        raise


def validate_monitor_config(monitor_data: Dict[str, Any]) -> MonitorConfig:
    """
    Validate and create a MonitorConfig from the `[monitor]` table.

    The near-threshold delay must not exceed the far one so that the loop
    polls faster the closer it gets to the stop point.

    Raises:
        ValidationError: If validation fails
    """
    try:
        power_supply = monitor_data.get("power_supply", "auto")
        if not isinstance(power_supply, str) or not power_supply.strip():
            raise ValidationError(
                "monitor.power_supply must be a supply name or 'auto'",
                field_name="monitor.power_supply",
                value=power_supply,
            )

        current_scale = validate_nonzero_float(
            monitor_data.get("current_scale", 1.0),
            field_name="monitor.current_scale",
        )

        nominal_capacity_mah = validate_positive_integer(
            monitor_data.get("nominal_capacity_mah", 4500),
            min_value=1,
            max_value=1_000_000,
            field_name="monitor.nominal_capacity_mah",
        )

        waiting_delay = validate_positive_float(
            monitor_data.get("waiting_delay_seconds", 2.0),
            min_value=0.01,
            max_value=3600.0,
            field_name="monitor.waiting_delay_seconds",
        )
        near_delay = validate_positive_float(
            monitor_data.get("near_delay_seconds", 5.0),
            min_value=0.01,
            max_value=3600.0,
            field_name="monitor.near_delay_seconds",
        )
        far_delay = validate_positive_float(
            monitor_data.get("far_delay_seconds", 30.0),
            min_value=0.01,
            max_value=3600.0,
            field_name="monitor.far_delay_seconds",
        )
        if near_delay > far_delay:
            raise ValidationError(
                "monitor.near_delay_seconds must not exceed monitor.far_delay_seconds",
                field_name="monitor.near_delay_seconds",
                value=near_delay,
            )

        stale_poll_seconds = validate_positive_float(
            monitor_data.get("stale_poll_seconds", 60.0),
            min_value=0.01,
            max_value=86400.0,
            field_name="monitor.stale_poll_seconds",
        )

        return MonitorConfig(
            sysfs_root=Path(monitor_data.get("sysfs_root", DEFAULT_SYSFS_ROOT)),
            power_supply=power_supply.strip(),
            current_scale=current_scale,
            nominal_capacity_mah=nominal_capacity_mah,
            waiting_delay_seconds=waiting_delay,
            near_delay_seconds=near_delay,
            far_delay_seconds=far_delay,
            stale_poll_seconds=stale_poll_seconds,
        )

    except ValidationError as e:
        logger.error(f"Monitor configuration validation failed: {e}")
        raise


def validate_residency_config(residency_data: Dict[str, Any]) -> ResidencyConfig:
    """Validate and create a ResidencyConfig from the `[residency]` table."""
    freq_time_unit_us = validate_positive_integer(
        residency_data.get("freq_time_unit_us", 10000),
        min_value=1,
        max_value=1_000_000,
        field_name="residency.freq_time_unit_us",
    )
    return ResidencyConfig(
        cpu_root=Path(residency_data.get("cpu_root", DEFAULT_CPU_ROOT)),
        freq_time_unit_us=freq_time_unit_us,
    )


def validate_keepalive_config(keepalive_data: Dict[str, Any]) -> KeepAliveConfig:
    enabled = validate_boolean(
        keepalive_data.get("enabled", True),
        field_name="keepalive.enabled",
    )
    expiry_seconds = validate_positive_float(
        keepalive_data.get("expiry_seconds", 600.0),
        min_value=1.0,
        max_value=86400.0,
        field_name="keepalive.expiry_seconds",
    )
    return KeepAliveConfig(enabled=enabled, expiry_seconds=expiry_seconds)


def validate_feedback_config(feedback_data: Dict[str, Any]) -> FeedbackConfig:
    audible = validate_boolean(
        feedback_data.get("audible", False),
        field_name="feedback.audible",
    )
    return FeedbackConfig(audible=audible)


def validate_workloads_config(
    workloads_data: List[Dict[str, Any]],
) -> Tuple[List[WorkloadConfig], List[str]]:
    """
    Validate and create WorkloadConfig instances from raw configuration data.

    Args:
        workloads_data: List of raw `[[workloads]]` tables from TOML

    Returns:
        Tuple of the validated workloads in file order and the names of the
        workloads that pin their own target_percent

    Raises:
        ValidationError: If validation fails or no workload is configured
    """
    workloads: List[WorkloadConfig] = []
    pinned_targets: List[str] = []
    existing_names: List[str] = []

    for i, workload_data in enumerate(workloads_data):
        try:
            name = validate_workload_name(
                workload_data.get("name", ""),
                existing_names=existing_names,
                field_name=f"workloads[{i}].name",
            )
            existing_names.append(name)

            parameters = workload_data.get("parameters", {})
            if not isinstance(parameters, dict):
                raise ValidationError(
                    f"workloads[{i}].parameters must be a table",
                    field_name=f"workloads[{i}].parameters",
                    value=parameters,
                )

            command_template = validate_command_template(
                workload_data.get("command_template", ""),
                available_fields=list(parameters) + list(BUILTIN_COMMAND_FIELDS),
                field_name=f"workloads[{i}].command_template",
            )

            target_percent = 3
            if "target_percent" in workload_data:
                target_percent = validate_positive_integer(
                    workload_data["target_percent"],
                    min_value=1,
                    max_value=100,
                    field_name=f"workloads[{i}].target_percent",
                )
                pinned_targets.append(name)

            ready_pattern = workload_data.get("ready_pattern")
            if ready_pattern is not None:
                ready_pattern = validate_regex_pattern(
                    ready_pattern, field_name=f"workloads[{i}].ready_pattern"
                )

            event_pattern = workload_data.get("event_pattern")
            if event_pattern is not None:
                event_pattern = validate_regex_pattern(
                    event_pattern, field_name=f"workloads[{i}].event_pattern"
                )

            artifact_extension = str(workload_data.get("artifact_extension", "log")).lstrip(".")
            if not artifact_extension:
                raise ValidationError(
                    f"workloads[{i}].artifact_extension cannot be empty",
                    field_name=f"workloads[{i}].artifact_extension",
                )

            stop_timeout_seconds = validate_positive_float(
                workload_data.get("stop_timeout_seconds", 5.0),
                min_value=0.1,
                max_value=600.0,
                field_name=f"workloads[{i}].stop_timeout_seconds",
            )

            workloads.append(
                WorkloadConfig(
                    name=name,
                    command_template=command_template,
                    parameters=dict(parameters),
                    target_percent=target_percent,
                    ready_pattern=ready_pattern,
                    event_pattern=event_pattern,
                    artifact_extension=artifact_extension,
                    stop_timeout_seconds=stop_timeout_seconds,
                )
            )

        except ValidationError as e:
            logger.error(f"Workload configuration validation failed: {e}")
            raise

    if not workloads:
        raise ValidationError("No valid workloads found in configuration")

    return workloads, pinned_targets
