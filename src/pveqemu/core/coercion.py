"""Typing of scalar values read back from flat device strings.

The API returns every device sub-option as text. Values are restored as
int first, then bool, then left as str, so ``"1"`` stays the integer 1.
Only the lowercase literals ``true`` and ``false`` are booleans.
"""

from __future__ import annotations

import re

from pveqemu.models import DeviceValue

_INT_RE = re.compile(r"[+-]?[0-9]+")

_BOOL_LITERALS = {"true": True, "false": False}


def parse_int(value: str) -> int | None:
    if _INT_RE.fullmatch(value):
        return int(value)
    return None


def parse_bool(value: str) -> bool | None:
    return _BOOL_LITERALS.get(value)


def coerce_value(value: str) -> DeviceValue:
    as_int = parse_int(value)
    if as_int is not None:
        return as_int
    as_bool = parse_bool(value)
    if as_bool is not None:
        return as_bool
    return value
