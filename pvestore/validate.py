"""Validation helpers raising :class:`ValidationError` with uniform messages."""

from __future__ import annotations

import os
from collections.abc import Iterable, Sized

from pvestore.util import array_to_csv


class ValidationError(ValueError):
    """A configuration value failed validation."""


def error_key_empty(text: str) -> ValidationError:
    """Build the error for a key whose value is empty."""
    return ValidationError(f"error the value of key ({text}) may not be empty")


def error_key_not_set(text: str) -> ValidationError:
    """Build the error for a key that must be set."""
    return ValidationError(f"error the key ({text}) must be set")


def error_item_exists(item: str, text: str) -> ValidationError:
    """Build the error for an item that already exists."""
    return ValidationError(f"error {text} with id ( {item} ) already exists")


def error_item_not_exists(item: str, text: str) -> ValidationError:
    """Build the error for an item that does not exist."""
    return ValidationError(f"error {text} with id ( {item} ) does not exist")


def validate_int_in_range(minimum: int, maximum: int, value: int, text: str) -> None:
    """Require ``minimum <= value <= maximum``."""
    if not minimum <= value <= maximum:
        raise ValidationError(
            f"error the value of key ({text}) must be between {minimum} and {maximum}"
        )


def validate_int_greater_or_equals(minimum: int, value: int, text: str) -> None:
    """Require ``value >= minimum``."""
    if value < minimum:
        raise ValidationError(
            f"error the value of key ({text}) must be greater or equal to {minimum}"
        )


def validate_int_greater(minimum: int, value: int, text: str) -> None:
    """Require ``value > minimum``."""
    if value <= minimum:
        raise ValidationError(
            f"error the value of key ({text}) must be greater than {minimum}"
        )


def validate_string_not_empty(value: str, text: str) -> None:
    """Require a non-empty string."""
    if value == "":
        raise error_key_empty(text)


def validate_string_in_array(array: Iterable[str], value: str, text: str) -> None:
    """Require a non-empty string that is one of ``array``."""
    validate_string_not_empty(value, text)
    options = list(array)
    if value not in options:
        raise ValidationError(
            f"error the value of key ({text}) must be one of {array_to_csv(options)}"
        )


def validate_strings_equal(value1: str, value2: str, text: str) -> None:
    """Require that a key keeps its value during an update."""
    if value1 != value2:
        raise ValidationError(
            f"error the value of key ({text}) may not be changed during update"
        )


def validate_file_path(path: str, text: str) -> None:
    """Require a non-empty absolute file path."""
    validate_string_not_empty(path, text)
    if not os.path.isabs(path):
        raise ValidationError(
            f"error the value of key ({text}) is not a valid file absolute path"
        )


def validate_array_not_empty(array: Sized | None, text: str) -> None:
    """Require a sequence with at least one item."""
    if not array:
        raise error_key_empty(text)