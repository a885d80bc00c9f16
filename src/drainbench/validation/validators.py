"""
Validation functions for configuration values.

Each validator returns the normalized value or raises ValidationError with the
offending field name attached.
"""

import re
import string
from typing import Any, List, Optional, Union

from .exceptions import ValidationError


def validate_positive_integer(
    value: Any,
    min_value: int = 1,
    max_value: Optional[int] = None,
    field_name: str = "value"
) -> int:
    """
    Validate that a value is an integer inside the given bounds.

    Args:
        value: Value to validate
        min_value: Minimum allowed value (inclusive)
        max_value: Maximum allowed value (inclusive), None for no limit
        field_name: Name of the field being validated

    Returns:
        Validated integer value

    Raises:
        ValidationError: If validation fails
    """
    if isinstance(value, bool):
        raise ValidationError(
            f"{field_name} must be a valid integer, got {value}",
            field_name=field_name,
            value=value
        )
    try:
        int_value = int(value)
    except (ValueError, TypeError):
        raise ValidationError(
            f"{field_name} must be a valid integer, got {value}",
            field_name=field_name,
            value=value
        )
    if int_value < min_value:
        raise ValidationError(
            f"{field_name} must be >= {min_value}, got {int_value}",
            field_name=field_name,
            value=value
        )
    if max_value is not None and int_value > max_value:
        raise ValidationError(
            f"{field_name} must be <= {max_value}, got {int_value}",
            field_name=field_name,
            value=value
        )
    return int_value


def validate_positive_float(
    value: Any,
    min_value: float = 0.0,
    max_value: Optional[float] = None,
    field_name: str = "value"
) -> float:
    """
    Validate that a value is a number inside the given bounds.

    Args:
        value: Value to validate
        min_value: Minimum allowed value (inclusive)
        max_value: Maximum allowed value (inclusive), None for no limit
        field_name: Name of the field being validated

    Returns:
        Validated float value

    Raises:
        ValidationError: If validation fails
    """
    if isinstance(value, bool):
        raise ValidationError(
            f"{field_name} must be a valid number, got {value}",
            field_name=field_name,
            value=value
        )
    try:
        float_value = float(value)
    except (ValueError, TypeError):
        raise ValidationError(
            f"{field_name} must be a valid number, got {value}",
            field_name=field_name,
            value=value
        )
    if float_value < min_value:
        raise ValidationError(
            f"{field_name} must be >= {min_value}, got {float_value}",
            field_name=field_name,
            value=value
        )
    if max_value is not None and float_value > max_value:
        raise ValidationError(
            f"{field_name} must be <= {max_value}, got {float_value}",
            field_name=field_name,
            value=value
        )
    return float_value


def validate_nonzero_float(value: Any, field_name: str = "value") -> float:
    """Validate a number that may be negative but must not be zero."""
    if isinstance(value, bool):
        raise ValidationError(
            f"{field_name} must be a valid number, got {value}",
            field_name=field_name,
            value=value
        )
    try:
        float_value = float(value)
    except (ValueError, TypeError):
        raise ValidationError(
            f"{field_name} must be a valid number, got {value}",
            field_name=field_name,
            value=value
        )
    if float_value == 0.0:
        raise ValidationError(
            f"{field_name} must not be zero",
            field_name=field_name,
            value=value
        )
    return float_value


def validate_workload_name(
    name: str,
    existing_names: Optional[List[str]] = None,
    field_name: str = "workload_name"
) -> str:
    """
    Validate workload name format.

    Names end up in run labels and therefore in file names, so only
    alphanumerics, underscores and hyphens are accepted.

    Args:
        name: Workload name to validate
        existing_names: Names already in use (for uniqueness check)
        field_name: Name of the field being validated

    Returns:
        Validated workload name

    Raises:
        ValidationError: If name is invalid
    """
    if not name or not isinstance(name, str):
        raise ValidationError(
            f"{field_name} must be a non-empty string",
            field_name=field_name,
            value=name
        )

    if not re.match(r'^[a-zA-Z0-9_-]+$', name):
        raise ValidationError(
            f"{field_name} must contain only alphanumeric characters, underscores, and hyphens: {name}",
            field_name=field_name,
            value=name
        )

    if existing_names and name in existing_names:
        raise ValidationError(
            f"{field_name} must be unique, '{name}' already exists",
            field_name=field_name,
            value=name
        )

    return name


def validate_command_template(
    template: str,
    available_fields: Optional[List[str]] = None,
    field_name: str = "command_template"
) -> str:
    """
    Validate a workload command template.

    Placeholders use str.format syntax (``{output}``, ``{fps}``). When
    ``available_fields`` is given, every placeholder must be one of them.

    Raises:
        ValidationError: If template is empty or references unknown fields
    """
    if not template or not isinstance(template, str) or not template.strip():
        raise ValidationError(
            f"{field_name} must be a non-empty string",
            field_name=field_name,
            value=template
        )

    try:
        placeholders = [
            parsed[1] for parsed in string.Formatter().parse(template)
            if parsed[1] is not None
        ]
    except ValueError as e:
        raise ValidationError(
            f"{field_name} is not a valid format string: {e}",
            field_name=field_name,
            value=template
        )

    if available_fields is not None:
        unknown = [p for p in placeholders if p not in available_fields]
        if unknown:
            raise ValidationError(
                f"{field_name} references unknown placeholders {unknown}; "
                f"available: {sorted(available_fields)}",
                field_name=field_name,
                value=template
            )

    return template


def validate_regex_pattern(pattern: str, field_name: str = "regex_pattern") -> str:
    """
    Validate regex pattern format.

    Raises:
        ValidationError: If pattern is invalid
    """
    if not pattern or not isinstance(pattern, str):
        raise ValidationError(
            f"{field_name} must be a non-empty string",
            field_name=field_name,
            value=pattern
        )

    try:
        re.compile(pattern)
    except re.error as e:
        raise ValidationError(
            f"{field_name} is not a valid regex pattern: {e}",
            field_name=field_name,
            value=pattern
        )

    return pattern


def validate_percent_list(
    percents: Union[int, List[int]],
    field_name: str = "target_percents",
    max_percent: int = 100
) -> List[int]:
    """
    Validate a list of battery drain targets in percent.

    Args:
        percents: Single target or list of targets
        field_name: Name of the field being validated
        max_percent: Largest acceptable target

    Returns:
        Validated list of targets, order preserved (duplicates are repeats)

    Raises:
        ValidationError: If the list is empty or any entry is out of range
    """
    if isinstance(percents, int) and not isinstance(percents, bool):
        percents = [percents]

    if not isinstance(percents, list) or not percents:
        raise ValidationError(
            f"{field_name} must be a positive integer or non-empty list of positive integers",
            field_name=field_name,
            value=percents
        )

    return [
        validate_positive_integer(
            p,
            min_value=1,
            max_value=max_percent,
            field_name=f"{field_name}[{i}]"
        )
        for i, p in enumerate(percents)
    ]


def validate_enum_choice(
    value: Any,
    valid_choices: List[str],
    field_name: str = "value",
    case_sensitive: bool = True
) -> str:
    """
    Validate that a value is one of the allowed choices.

    Returns:
        Validated choice (original case from ``valid_choices``)

    Raises:
        ValidationError: If value is not in choices
    """
    str_value = str(value)

    if case_sensitive:
        if str_value not in valid_choices:
            raise ValidationError(
                f"{field_name} must be one of {valid_choices}, got {value}",
                field_name=field_name,
                value=value
            )
        return str_value

    lower_choices = [choice.lower() for choice in valid_choices]
    lower_value = str_value.lower()
    if lower_value not in lower_choices:
        raise ValidationError(
            f"{field_name} must be one of {valid_choices}, got {value}",
            field_name=field_name,
            value=value
        )
    return valid_choices[lower_choices.index(lower_value)]


def validate_boolean(value: Any, field_name: str = "value") -> bool:
    """Validate that a TOML value is a real boolean."""
    if not isinstance(value, bool):
        raise ValidationError(
            f"{field_name} must be a boolean",
            field_name=field_name,
            value=value
        )
    return value
