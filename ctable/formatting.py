"""
Formatting Utilities
Number, percentage, ratio and p-value text for table cells.
Driven by central configuration from config.py
"""

from __future__ import annotations

import numpy as np
import pandas as pd

from config import CONFIG


def _digits(key: str, digits: int | None, default: int) -> int:
    return CONFIG.get(f"table.{key}", default) if digits is None else digits


def missing_marker() -> str:
    return CONFIG.get("table.missing_marker", "-")


def format_number(value: float, digits: int | None = None) -> str:
    """Fixed-point text for a continuous statistic; NaN becomes the missing marker."""
    if value is None or pd.isna(value) or not np.isfinite(value):
        return missing_marker()
    return f"{value:.{_digits('continuous_digits', digits, 1)}f}"


def format_percent(numerator: float, denominator: float, digits: int | None = None) -> str:
    """Percentage with a zero denominator shown as 0."""
    pct = numerator / denominator * 100 if denominator > 0 else 0.0
    return f"{pct:.{_digits('percent_digits', digits, 1)}f}%"


def format_count(count: int, denominator: int | None = None, digits: int | None = None) -> str:
    """
    Format a count, optionally with a parenthesized percentage.

    >>> format_count(12, 40)
    '12 (30.0%)'
    """
    if denominator is None:
        return f"{int(count)}"
    return f"{int(count)} ({format_percent(count, denominator, digits)})"


def format_estimate(
    estimate: float,
    lower: float | None = None,
    upper: float | None = None,
    digits: int | None = None,
) -> str:
    """Format a point estimate with an optional confidence interval as 'est (lo-hi)'."""
    d = _digits("ratio_digits", digits, 2)
    if estimate is None or not np.isfinite(estimate):
        return missing_marker()
    text = f"{estimate:.{d}f}"
    if lower is not None and upper is not None:
        if np.isfinite(lower) and np.isfinite(upper):
            text += f" ({lower:.{d}f}-{upper:.{d}f})"
        else:
            text += f" ({missing_marker()})"
    return text


def format_reference(value: int = 1) -> str:
    """Text for the reference level of a regression row, e.g. '1 (ref)'."""
    return f"{value} ({CONFIG.get('table.reference_marker', 'ref')})"


def format_p_value(p: float) -> str:
    """
    Format P-value using settings from CONFIG.
    """
    if p is None or pd.isna(p) or not np.isfinite(p):
        return missing_marker()

    precision = CONFIG.get("analysis.pvalue_digits", 3)
    lower_bound = CONFIG.get("analysis.pvalue_bounds_lower", 0.001)
    upper_bound = CONFIG.get("analysis.pvalue_bounds_upper", 0.999)

    if p < lower_bound:
        return CONFIG.get("analysis.pvalue_format_small", "<0.001")
    if p > upper_bound:
        return CONFIG.get("analysis.pvalue_format_large", ">0.999")
    return f"{p:.{precision}f}"
