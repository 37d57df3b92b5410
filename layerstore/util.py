"""Small shared helpers."""

from __future__ import annotations

import re
import time

# Signed 64-bit bounds of BIGINT columns.
BIGINT_MIN = -(2**63)
BIGINT_MAX = 2**63 - 1

# ASCII digits with an optional sign; no whitespace or separators.
_DIGITS = re.compile(r"[+-]?[0-9]+")


def unix_timestamp() -> int:
    """Current wall-clock time in whole unix seconds."""
    return int(time.time())


def truncate(value: str, width: int) -> str:
    """Return the first *width* characters of *value* (unchanged when shorter)."""
    if len(value) > width:
        return value[:width]
    return value


def parse_bigint(value: str) -> int:
    """Parse *value* as a signed 64-bit integer; 0 when it is not one."""
    if not isinstance(value, str) or not _DIGITS.fullmatch(value):
        return 0
    n = int(value)
    if BIGINT_MIN <= n <= BIGINT_MAX:
        return n
    return 0
