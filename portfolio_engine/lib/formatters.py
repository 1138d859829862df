"""Number formatting helpers for warnings and notes."""

from __future__ import annotations

import math


def fmt_number(value: float | None, decimals: int = 2) -> str:
    if value is None or not math.isfinite(value):
        return "n/a"
    return f"{value:,.{decimals}f}"


def fmt_amount(value: float | None) -> str:
    """Whole currency units, floored."""
    if value is None or not math.isfinite(value):
        return "n/a"
    return f"{math.floor(value):,}"


def fmt_percent(value: float | None, decimals: int = 2) -> str:
    if value is None or not math.isfinite(value):
        return "n/a"
    return f"{value:.{decimals}f}%"


def fmt_raw(value: object) -> str:
    """Render an untrusted value for a warning message."""
    if isinstance(value, float) and math.isfinite(value):
        return fmt_number(value, 2).rstrip("0").rstrip(".")
    return repr(value)
