"""
Validation Module
=================

Input validation helpers for the public query methods. Each raises
ValueError with a message naming the offending parameter.
"""

from typing import Any


def validate_string(value: Any, param_name: str) -> None:
    """
    Validate that a value is a string (empty allowed).

    Raises:
        ValueError: If value is not a string
    """
    if not isinstance(value, str):
        raise ValueError(f"{param_name} must be a string, got {type(value).__name__}")


def validate_non_empty_string(value: Any, param_name: str) -> None:
    """
    Validate that a value is a non-empty string.

    Raises:
        ValueError: If value is not a non-empty string
    """
    validate_string(value, param_name)
    if not value:
        raise ValueError(f"{param_name} must be a non-empty string")


def validate_positive_int(value: Any, param_name: str) -> None:
    """
    Validate that a value is a positive integer.

    Raises:
        ValueError: If value is not a positive integer
    """
    if not isinstance(value, int) or isinstance(value, bool):
        raise ValueError(f"{param_name} must be an integer, got {type(value).__name__}")
    if value <= 0:
        raise ValueError(f"{param_name} must be positive, got {value}")
