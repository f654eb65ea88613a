"""Statistics and formatting helpers for activity reporting.

This module provides utilities for:
- Computing linear-interpolation percentiles from pre-sorted samples.
- Integer percentages and rounded ratios used by the summary tables.
- Formatting second-based durations as ``HH:MM:SS``.
"""

from __future__ import annotations

import math
from typing import Iterable, List, Optional


def calculate_percentile(sorted_values: List[float], p: float) -> Optional[float]:
    """Calculate a percentile using linear interpolation.

    The input sequence is expected to already be sorted in ascending order.
    - Empty input returns ``None``.
    - ``p <= 0`` returns the first value.
    - ``p >= 100`` returns the last value.
    - Otherwise, percentile is linearly interpolated between adjacent ranks.

    Args:
        sorted_values: Sorted numeric samples.
        p: Percentile in the inclusive range ``[0, 100]``.

    Returns:
        Percentile value as ``float`` or ``None`` when input is empty.

    Raises:
        ValueError: If ``p`` is outside ``[0, 100]``.
    """
    if not 0 <= p <= 100:
        raise ValueError("Percentile 'p' must be in the range [0, 100].")

    if not sorted_values:
        return None

    if p <= 0:
        return sorted_values[0]

    if p >= 100:
        return sorted_values[-1]

    position = (len(sorted_values) - 1) * (p / 100.0)
    lower_index = math.floor(position)
    upper_index = math.ceil(position)

    if lower_index == upper_index:
        return sorted_values[int(position)]

    lower_value = sorted_values[lower_index]
    upper_value = sorted_values[upper_index]
    return lower_value + (upper_value - lower_value) * (position - lower_index)


def median_hours(durations_seconds: Iterable[float]) -> Optional[float]:
    """Median of non-negative durations, in hours rounded to two decimals."""
    clean = sorted(
        value for value in durations_seconds if value is not None and not math.isnan(value) and value >= 0
    )
    median = calculate_percentile(clean, 50)
    if median is None:
        return None
    return round(median / 3600.0, 2)


def percentage(numerator: int, denominator: int) -> int:
    """Integer percentage, ``0`` when the denominator is ``0``."""
    if denominator == 0:
        return 0
    return (numerator * 100) // denominator


def ratio(numerator: int, denominator: int) -> Optional[float]:
    """Rounded ratio, ``None`` when the denominator is ``0``."""
    if denominator == 0:
        return None
    return round(numerator / denominator, 2)


def format_duration(seconds: Optional[float]) -> str:
    """Format seconds as ``HH:MM:SS``.

    Returns:
        ``"n/a"`` when ``seconds`` is ``None``; otherwise a rounded
        ``HH:MM:SS`` string.
    """
    if seconds is None:
        return "n/a"

    total_seconds = int(round(seconds))
    hours = total_seconds // 3600
    minutes = (total_seconds % 3600) // 60
    remaining_seconds = total_seconds % 60
    return f"{hours:02d}:{minutes:02d}:{remaining_seconds:02d}"
