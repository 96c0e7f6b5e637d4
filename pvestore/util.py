"""Small helpers for converting values exchanged with the Proxmox API."""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from typing import Any

_INT_PATTERN = re.compile(r"[+-]?[0-9]+")
_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1
_TRUE_WORDS = frozenset({"1", "t", "T", "TRUE", "true", "True"})
_FALSE_WORDS = frozenset({"0", "f", "F", "FALSE", "false", "False"})
_DISK_SIZE_PATTERN = re.compile(r"([0-9]+)([A-Z]*)")
_DISK_UNIT_FACTORS = {
    "T": 1024.0,
    "TB": 1024.0,
    "G": 1.0,
    "GB": 1.0,
    "M": 1 / 1024,
    "MB": 1 / 1024,
    "K": 1 / 1048576,
    "KB": 1 / 1048576,
}


def itob(i: int) -> bool:
    """Interpret an API integer flag: only 1 means true."""
    return i == 1


def bool_invert(b: bool) -> bool:
    """Return the logical negation of ``b``."""
    return not b


def item_in_key_of_array(
    array: Iterable[Mapping[str, Any]], key: str, value: str
) -> bool:
    """Tell whether any mapping in ``array`` holds ``value`` under ``key``."""
    return any(item[key] == value for item in array)


def _typed_value(text: str) -> Any:
    if _INT_PATTERN.fullmatch(text):
        number = int(text)
        if _INT64_MIN <= number <= _INT64_MAX:
            return number
    if text in _TRUE_WORDS:
        return True
    if text in _FALSE_WORDS:
        return False
    return text


def parse_sub_conf(element: str, separator: str) -> tuple[str, Any]:
    """Parse a ``key=value`` string, typing the value as int, bool or str.

    Returns ``("", None)`` when the separator does not occur in ``element``.
    """
    if not separator:
        raise ValueError("separator may not be empty")
    if separator not in element:
        return "", None
    parts = element.split(separator)
    return parts[0], _typed_value(parts[1])


def parse_conf(
    kv_string: str,
    conf_separator: str,
    sub_conf_separator: str,
    implicit_first_key: str,
) -> dict[str, Any]:
    """Parse a device configuration string such as ``key1=val1,key2=val2``.

    When ``implicit_first_key`` is given and the first item carries no ``=``,
    that item is stored under ``implicit_first_key`` as a plain string.
    """
    items = kv_string.split(conf_separator)
    conf: dict[str, Any] = {}
    if implicit_first_key and "=" not in items[0]:
        conf[implicit_first_key] = items[0]
        items = items[1:]
    for item in items:
        key, value = parse_sub_conf(item, sub_conf_separator)
        conf[key] = value
    return conf


def parse_pm_conf(kv_string: str, implicit_first_key: str) -> dict[str, Any]:
    """Parse a standard comma separated ``key=value`` configuration string."""
    return parse_conf(kv_string, ",", "=", implicit_first_key)


def disk_size_gb(dc_size: Any) -> float:
    """Convert a disk size such as ``"32G"`` or ``"512M"`` to gigabytes.

    Numbers are taken to be gigabytes already; anything else yields 0.0.
    """
    if isinstance(dc_size, str):
        match = _DISK_SIZE_PATTERN.search(dc_size.upper())
        if match is None:
            raise ValueError(f"not a disk size: {dc_size!r}")
        size = float(match.group(1))
        return size * _DISK_UNIT_FACTORS.get(match.group(2), 1.0)
    if isinstance(dc_size, (int, float)) and not isinstance(dc_size, bool):
        return float(dc_size)
    return 0.0


def add_to_list(items: str, new_item: str) -> str:
    """Append ``new_item`` to a comma separated list string."""
    return f"{items},{new_item}" if items else new_item


def csv_to_array(csv: str) -> list[str]:
    """Split a comma separated string into its parts."""
    return csv.split(",")


def array_to_string_type(input_array: Iterable[Any]) -> list[str]:
    """Return the items as a list of strings, refusing anything that is not one."""
    result = []
    for value in input_array:
        if not isinstance(value, str):
            raise TypeError(f"expected a string, got {type(value).__name__}")
        result.append(value)
    return result


def array_to_csv(array: Iterable[Any] | None) -> str:
    """Join a sequence of strings with commas; ``None`` gives an empty string."""
    if array is None:
        return ""
    return ",".join(array_to_string_type(array))