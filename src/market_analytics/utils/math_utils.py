"""
Mathematical Utilities

Provides guarded arithmetic for:
- Ratio and percentage calculations
- Finite-number checks on feed data
- Price quantization
"""

import math
from typing import Any, Iterable, List


class StatisticalUtils:
    """Statistical calculation utilities."""

    @staticmethod
    def safe_divide(numerator: float, denominator: float, default: float = 0.0) -> float:
        """Safe division that handles zero denominators."""
        if denominator == 0 or math.isnan(denominator):
            return default
        result = numerator / denominator
        if math.isnan(result) or math.isinf(result):
            return default
        return result

    @staticmethod
    def percentage(part: float, whole: float, default: float = 0.0) -> float:
        """Express part as a percentage of whole, 0 when whole is 0."""
        ratio = StatisticalUtils.safe_divide(part, whole, default=None)
        return default if ratio is None else ratio * 100

    @staticmethod
    def mean(values: List[float], default: float = 0.0) -> float:
        """Arithmetic mean, default for an empty list."""
        if not values:
            return default
        return sum(values) / len(values)


class PriceUtils:
    """Price quantization utilities."""

    @staticmethod
    def floor_to_bucket(price: float, bucket_size: float) -> float:
        """Floor a price to the lower edge of its bucket."""
        if bucket_size <= 0:
            raise ValueError(f"bucket_size must be positive, got {bucket_size}")
        return math.floor(price / bucket_size) * bucket_size

    @staticmethod
    def bucket_index(price: float, origin: float, bucket_size: float, bucket_count: int) -> int:
        """
        Index of the bucket containing price, clamped to [0, bucket_count - 1].

        A small epsilon absorbs float error so a price sitting exactly on a
        bucket edge lands in the bucket that starts there.
        """
        if bucket_size <= 0:
            return 0
        index = math.floor((price - origin) / bucket_size + 1e-9)
        return min(max(index, 0), bucket_count - 1)


def is_finite(*values: Any) -> bool:
    """True when every value is a real, finite number."""
    for value in values:
        if isinstance(value, bool):
            return False
        try:
            if not math.isfinite(value):
                return False
        except TypeError:
            return False
    return True


def fsum(values: Iterable[float]) -> float:
    """Accurate float sum."""
    return math.fsum(values)
