"""
Validation and error handling for the drainbench package.

This module provides input validation and error handling with consistent
error reporting across the application.
"""

from .exceptions import (
    ErrorSeverity,
    ValidationError,
    handle_error,
    handle_config_error,
    handle_file_error,
    handle_cli_error,
)

from .validators import (
    validate_boolean,
    validate_command_template,
    validate_enum_choice,
    validate_nonzero_float,
    validate_percent_list,
    validate_positive_float,
    validate_positive_integer,
    validate_regex_pattern,
    validate_workload_name,
)

__all__ = [
    # Core functionality
    "ErrorSeverity",
    "ValidationError",
    "handle_error",
    "handle_config_error",
    "handle_file_error",
    "handle_cli_error",
    # Validators
    "validate_boolean",
    "validate_command_template",
    "validate_enum_choice",
    "validate_nonzero_float",
    "validate_percent_list",
    "validate_positive_float",
    "validate_positive_integer",
    "validate_regex_pattern",
    "validate_workload_name",
]
