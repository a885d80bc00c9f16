"""
Unit tests for configuration validation functionality.

Tests the validation of the experiment, monitor, residency and workload
tables, including defaults and error reporting.
"""

import pytest

from drainbench.config.validators import (
    DEFAULT_CPU_ROOT,
    validate_experiment_config,
    validate_feedback_config,
    validate_keepalive_config,
    validate_monitor_config,
    validate_residency_config,
    validate_workloads_config,
)
from drainbench.validation import ValidationError


@pytest.mark.unit
class TestExperimentConfigValidation:
    """Test cases for the [experiment] table."""

    def test_success(self, sample_config_data):
        config = validate_experiment_config(sample_config_data["experiment"])

        assert config.repeat == 1
        assert config.target_percents == [2, 3]
        assert config.ready_timeout_seconds == 5.0
        assert config.skip_plots is True

    def test_defaults(self):
        config = validate_experiment_config({})

        assert config.repeat == 1
        assert config.target_percents == [3]
        assert config.ready_timeout_seconds == 20.0
        assert config.completion_timeout_hours == 30.0
        assert str(config.log_root_dir) == "logs"

    def test_single_target_is_wrapped(self):
        assert validate_experiment_config({"target_percents": 5}).target_percents == [5]

    def test_invalid_target(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_experiment_config({"target_percents": [3, 0]})

        assert exc_info.value.field_name == "experiment.target_percents[1]"

    def test_empty_targets(self):
        with pytest.raises(ValidationError):
            validate_experiment_config({"target_percents": []})

    def test_invalid_repeat(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_experiment_config({"repeat": 0})

        assert "repeat" in str(exc_info.value)

    def test_blank_log_root(self):
        with pytest.raises(ValidationError):
            validate_experiment_config({"log_root_dir": "  "})


@pytest.mark.unit
class TestMonitorConfigValidation:
    """Test cases for the [monitor] table."""

    def test_success(self, sample_config_data):
        config = validate_monitor_config(sample_config_data["monitor"])

        assert config.power_supply == "auto"
        assert config.current_scale == -1.0
        assert config.nominal_capacity_mah == 4500
        assert config.per_percent_unit_uah == 45_000
        assert (config.waiting_delay_seconds, config.near_delay_seconds, config.far_delay_seconds) == (
            2.0, 5.0, 30.0,
        )
        assert config.stale_poll_seconds == 60.0

    def test_zero_current_scale(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_monitor_config({"current_scale": 0})

        assert exc_info.value.field_name == "monitor.current_scale"

    def test_near_delay_above_far_delay(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_monitor_config({"near_delay_seconds": 40.0, "far_delay_seconds": 30.0})

        assert "near_delay_seconds" in str(exc_info.value)

    def test_invalid_capacity(self):
        with pytest.raises(ValidationError):
            validate_monitor_config({"nominal_capacity_mah": -5})

    def test_boolean_is_not_a_number(self):
        with pytest.raises(ValidationError):
            validate_monitor_config({"nominal_capacity_mah": True})


@pytest.mark.unit
class TestSmallTables:
    """Test cases for the [residency], [keepalive] and [feedback] tables."""

    def test_residency_defaults(self):
        config = validate_residency_config({})
        assert str(config.cpu_root) == DEFAULT_CPU_ROOT
        assert config.freq_time_unit_us == 10000

    def test_keepalive(self):
        config = validate_keepalive_config({"enabled": False, "expiry_seconds": 120})
        assert config.enabled is False
        assert config.expiry_seconds == 120.0

    def test_keepalive_enabled_must_be_boolean(self):
        with pytest.raises(ValidationError):
            validate_keepalive_config({"enabled": "no"})

    def test_feedback(self):
        assert validate_feedback_config({"audible": True}).audible is True


@pytest.mark.unit
class TestWorkloadsConfigValidation:
    """Test cases for workloads.toml."""

    def test_success(self, sample_workloads):
        workloads, pinned = validate_workloads_config(sample_workloads)

        assert [w.name for w in workloads] == ["camera", "idle"]
        assert workloads[0].parameters == {"fps": 30, "hdr": True}
        assert workloads[0].artifact_extension == "mp4"
        assert workloads[1].target_percent == 1
        assert workloads[1].ready_pattern is None
        assert pinned == ["idle"]

    def test_duplicate_names(self, sample_workloads):
        sample_workloads[1]["name"] = "camera"

        with pytest.raises(ValidationError) as exc_info:
            validate_workloads_config(sample_workloads)

        assert "unique" in str(exc_info.value)

    def test_invalid_name(self, sample_workloads):
        sample_workloads[0]["name"] = "camera front"

        with pytest.raises(ValidationError):
            validate_workloads_config(sample_workloads)

    def test_unknown_placeholder(self, sample_workloads):
        sample_workloads[0]["command_template"] = "record --width {width} -o {output}"

        with pytest.raises(ValidationError) as exc_info:
            validate_workloads_config(sample_workloads)

        assert "width" in str(exc_info.value)

    def test_builtin_placeholders_are_allowed(self):
        workloads, _ = validate_workloads_config(
            [{"name": "w", "command_template": "run {label} {target_percent} {output}"}]
        )
        assert workloads[0].command_template == "run {label} {target_percent} {output}"

    def test_invalid_regex(self, sample_workloads):
        sample_workloads[0]["ready_pattern"] = "(unclosed"

        with pytest.raises(ValidationError) as exc_info:
            validate_workloads_config(sample_workloads)

        assert exc_info.value.field_name == "workloads[0].ready_pattern"

    def test_extension_dot_is_stripped(self, sample_workloads):
        sample_workloads[0]["artifact_extension"] = ".mkv"
        workloads, _ = validate_workloads_config(sample_workloads)
        assert workloads[0].artifact_extension == "mkv"

    def test_parameters_must_be_a_table(self, sample_workloads):
        sample_workloads[0]["parameters"] = [30]

        with pytest.raises(ValidationError):
            validate_workloads_config(sample_workloads)

    def test_no_workloads(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_workloads_config([])

        assert "No valid workloads" in str(exc_info.value)
