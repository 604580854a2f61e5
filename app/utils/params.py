# app/utils/params.py
"""
Lenient query parameter parsing: malformed or out-of-range values are
clamped or replaced by defaults, never rejected.
"""
from typing import Optional


def parse_int(raw: Optional[str], default: int) -> int:
    if raw is None:
        return default
    try:
        return int(str(raw).strip())
    except ValueError:
        try:
            return int(float(raw))  # "12.0"
        except (TypeError, ValueError, OverflowError):
            return default


def clamp_limit(raw: Optional[str], default: int, maximum: int) -> int:
    value = parse_int(raw, default)
    if value < 1:
        value = default
    return min(value, maximum)


def clamp_page(raw: Optional[str]) -> int:
    return max(1, parse_int(raw, 1))


def clamp_offset(raw: Optional[str]) -> int:
    return max(0, parse_int(raw, 0))
