"""Statistical helpers for projections: smoothing, trends, confidence and ECDFs.

All functions are pure and depend only on their arguments.
"""

import math
from typing import Callable, Sequence

import numpy as np


def trend(values: Sequence[float]) -> float:
    """Least-squares slope of values against their index (0..n-1).

    Positive means the player is trending up. Returns 0 for fewer than
    three points or a degenerate index variance.
    """
    n = len(values)
    if n < 3:
        return 0.0

    x_sum = n * (n - 1) / 2
    y_sum = float(sum(values))
    xy_sum = float(sum(x * y for x, y in enumerate(values)))
    x_square_sum = n * (n - 1) * (2 * n - 1) / 6

    denominator = n * x_square_sum - x_sum * x_sum
    if denominator == 0:
        return 0.0

    return (n * xy_sum - x_sum * y_sum) / denominator


def ewma(values: Sequence[float], alpha: float = 0.3) -> float:
    """Exponentially weighted moving average seeded with the first value.

    Args:
        values: Observations, oldest first
        alpha: Smoothing factor (0-1). Higher weights recent values more.

    Returns:
        Smoothed value; 0 for empty input
    """
    if len(values) == 0:
        return 0.0
    if len(values) == 1:
        return float(values[0])

    smoothed = float(values[0])
    for value in values[1:]:
        smoothed = alpha * value + (1 - alpha) * smoothed
    return smoothed


def regression_to_mean(value: float, baseline: float, factor: float = 0.12) -> float:
    """Pull a value toward a baseline by the given fraction."""
    return value + factor * (baseline - value)


def sample_size_confidence(sample_size: int) -> float:
    """Confidence in historical data given the number of games observed."""
    if sample_size >= 8:
        return 1.0
    if sample_size >= 5:
        return 0.9
    if sample_size >= 3:
        return 0.75
    if sample_size >= 1:
        return 0.5
    return 0.25


def time_weight(weeks_ago: float, decay_rate: float = 0.1) -> float:
    """Exponential decay weight for an observation ``weeks_ago`` weeks old."""
    return math.exp(-decay_rate * weeks_ago)


def safe_div(numerator: float, denominator: float) -> float:
    """Divide, returning 0 unless the denominator is positive."""
    return numerator / denominator if denominator > 0 else 0.0


def clamp01(x: float) -> float:
    return 0.0 if x < 0 else 1.0 if x > 1 else x


def is_finite_number(x) -> bool:
    return isinstance(x, (int, float)) and not isinstance(x, bool) and math.isfinite(x)


def is_finite_positive_number(x) -> bool:
    return is_finite_number(x) and x > 0


def variance(values: Sequence[float]) -> float:
    """Population variance; 0 for fewer than two values."""
    if len(values) < 2:
        return 0.0
    return float(np.var(np.asarray(values, dtype=float)))


def stddev(values: Sequence[float]) -> float:
    """Population standard deviation; 0 for fewer than two values."""
    return math.sqrt(variance(values))


def empirical_cdf(values: Sequence[float]) -> Callable[[float], float]:
    """Build an empirical CDF from training values.

    The returned function clamps its input to the training range and returns
    the fraction of training values strictly below it, in [0, 1]. With no
    finite training values it always returns 0.5.
    """
    arr = np.sort(np.asarray([v for v in values if is_finite_number(v)], dtype=float))

    def cdf(value: float) -> float:
        if arr.size == 0:
            return 0.5
        x = min(arr[-1], max(arr[0], value))
        q = int(np.searchsorted(arr, x, side='left')) / arr.size
        return max(0.0, min(1.0, q))

    return cdf


def quantile(sorted_values: Sequence[float], q: float) -> float:
    """Nearest-rank quantile of an already sorted sequence; 0 when empty."""
    n = len(sorted_values)
    if n == 0:
        return 0.0
    # round half away from zero; Python's round() would bank
    index = int(math.floor(q * (n - 1) + 0.5))
    index = min(n - 1, max(0, index))
    return float(sorted_values[index])


def map_to_ppg_by_percentile(x: float, lo: float, hi: float, prior_ppgs: Sequence[float]) -> float:
    """Map a metric in [lo, hi] onto the same percentile of a sorted PPG distribution."""
    span = (hi - lo) or 1
    q = (max(lo, min(hi, x)) - lo) / span
    return quantile(prior_ppgs, q)
