"""Binary size units and conversion between them."""

from __future__ import annotations

from enum import IntEnum


class SizeUnit(IntEnum):
    """A binary size unit, valued in bytes."""

    KB = 1 << 10
    MB = 1 << 20
    GB = 1 << 30

    @property
    def short_name(self) -> str:
        return _SHORT_NAMES[self]

    @property
    def long_name(self) -> str:
        return _LONG_NAMES[self]


_SHORT_NAMES = {SizeUnit.KB: "K", SizeUnit.MB: "M", SizeUnit.GB: "G"}
_LONG_NAMES = {SizeUnit.KB: "kilobyte", SizeUnit.MB: "megabyte", SizeUnit.GB: "gigabyte"}


def format_to_short_string(size: int, size_unit: SizeUnit) -> str:
    """Format as e.g. ``"10G"``."""
    return f"{size}{SizeUnit(size_unit).short_name}"


def format_to_long_string(size: int, size_unit: SizeUnit) -> str:
    """Format as e.g. ``"10 gigabyte"``."""
    return f"{size} {SizeUnit(size_unit).long_name}"


def convert_to(
    size: int, old_size_unit: SizeUnit, new_size_unit: SizeUnit
) -> tuple[int, SizeUnit]:
    """Convert ``size`` between units, truncating toward zero."""
    new_unit = SizeUnit(new_size_unit)
    total = size * int(old_size_unit)
    quotient = abs(total) // int(new_unit)
    return (-quotient if total < 0 else quotient), new_unit