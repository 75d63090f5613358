"""
Volume Profile Builder - POC and Value Area from OHLCV candles.

Calculates:
1. Volume distribution histogram over equal-width price buckets
2. POC (Point of Control) - bucket with the highest volume
3. Value Area - price range around the POC holding 70% of volume
"""

import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from .models import Candle
from .validation import candle_problem, filter_valid
from ..utils.math_utils import PriceUtils, fsum

logger = logging.getLogger(__name__)

DEFAULT_BUCKET_COUNT = 50
DEFAULT_VALUE_AREA_PCT = 0.70


@dataclass
class VolumeBucket:
    """Volume accumulated inside one price interval."""
    price_center: float
    volume: float
    price_low: float = 0.0
    price_high: float = 0.0

    def contains(self, price: float) -> bool:
        return self.price_low <= price <= self.price_high

    def to_dict(self) -> Dict[str, Any]:
        return {
            'price_center': self.price_center,
            'volume': self.volume,
            'price_low': self.price_low,
            'price_high': self.price_high,
        }


@dataclass
class ValueArea:
    """Price range holding the target share of volume."""
    low: float
    high: float
    volume: float

    def to_dict(self) -> Dict[str, Any]:
        return {'low': self.low, 'high': self.high, 'volume': self.volume}


@dataclass
class VolumeProfileView:
    """Volume profile result."""
    poc: VolumeBucket
    value_area: ValueArea
    total_volume: float
    max_volume: float
    min_price: float
    max_price: float
    bucket_size: float
    bucket_count: int
    buckets: List[VolumeBucket] = field(default_factory=list)
    skipped_candles: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'poc': self.poc.to_dict(),
            'value_area': self.value_area.to_dict(),
            'total_volume': self.total_volume,
            'max_volume': self.max_volume,
            'min_price': self.min_price,
            'max_price': self.max_price,
            'bucket_size': self.bucket_size,
            'bucket_count': self.bucket_count,
            'buckets': [bucket.to_dict() for bucket in self.buckets],
            'skipped_candles': self.skipped_candles,
        }


class VolumeProfileBuilder:
    """
    Volume Profile Builder - distributes candle volume over price buckets.

    Calculation Process:
    1. Range = [min(low, close), max(high, close)] over the series,
       split into bucket_count equal-width buckets
    2. A single-price candle (high == low) puts all volume in its bucket;
       otherwise volume is spread evenly over
       steps = max(1, floor((high - low) / bucket_size)) sub-intervals
       starting at low
    3. POC = bucket with max volume (first, i.e. lowest price, on ties)
    4. Value Area: take buckets in order of distance from the POC
       (lower bucket first at equal bucket distance) until 70% of
       total volume is reached
    """

    def __init__(
        self,
        bucket_count: int = DEFAULT_BUCKET_COUNT,
        value_area_pct: float = DEFAULT_VALUE_AREA_PCT
    ):
        """
        Initialize Volume Profile Builder.

        Args:
            bucket_count: Number of equal-width price buckets
            value_area_pct: Share of volume for the value area (0.70 = 70%)
        """
        if bucket_count <= 0:
            raise ValueError(f"bucket_count must be positive, got {bucket_count}")
        if not 0 < value_area_pct <= 1:
            raise ValueError(f"value_area_pct must be in (0, 1], got {value_area_pct}")

        self.bucket_count = bucket_count
        self.value_area_pct = value_area_pct
        self.skipped_records = 0
        self._stats_lock = threading.Lock()

        logger.debug(
            f"VolumeProfileBuilder initialized - "
            f"bucket_count={bucket_count}, value_area={value_area_pct * 100}%"
        )

    def build(
        self,
        candles: Sequence[Candle],
        market: Optional[str] = None
    ) -> Optional[VolumeProfileView]:
        """
        Build the volume profile for a candle series.

        Args:
            candles: Candle series (oldest first)
            market: Optional market name for log context

        Returns:
            VolumeProfileView, or None for an empty series or zero volume
        """
        valid, skipped = filter_valid(candles or [], candle_problem, 'volume_profile', market)
        with self._stats_lock:
            self.skipped_records += skipped

        if not valid:
            return None

        min_price = min(min(c.low, c.close) for c in valid)
        max_price = max(max(c.high, c.close) for c in valid)
        bucket_size = (max_price - min_price) / self.bucket_count

        volumes = self._distribute(valid, min_price, bucket_size)
        total_volume = fsum(volumes)

        if total_volume <= 0:
            logger.debug(f"Zero volume across {len(valid)} candles for {market or 'market'}")
            return None

        buckets = [
            VolumeBucket(
                price_center=min_price + i * bucket_size + bucket_size / 2,
                volume=volume,
                price_low=min_price + i * bucket_size,
                price_high=min_price + (i + 1) * bucket_size,
            )
            for i, volume in enumerate(volumes)
        ]

        poc_index = self._calculate_poc(buckets)
        poc = buckets[poc_index]
        value_area = self._calculate_value_area(buckets, poc_index, total_volume)

        result = VolumeProfileView(
            poc=poc,
            value_area=value_area,
            total_volume=total_volume,
            max_volume=poc.volume,
            min_price=min_price,
            max_price=max_price,
            bucket_size=bucket_size,
            bucket_count=self.bucket_count,
            buckets=[b for b in buckets if b.volume > 0],
            skipped_candles=skipped,
        )

        logger.debug(
            f"Volume profile for {market or 'market'}: "
            f"POC={poc.price_center:.2f}, VAL={value_area.low:.2f}, VAH={value_area.high:.2f}"
        )

        return result

    def _distribute(
        self,
        candles: Sequence[Candle],
        min_price: float,
        bucket_size: float
    ) -> List[float]:
        """
        Spread each candle's volume over the buckets.

        Args:
            candles: Valid candles
            min_price: Lower edge of the first bucket
            bucket_size: Bucket width (0 for a flat series)

        Returns:
            Volume per bucket, index 0 = lowest price
        """
        volumes = [0.0] * self.bucket_count

        for candle in candles:
            if candle.volume == 0:
                continue

            if candle.high == candle.low or bucket_size == 0:
                index = PriceUtils.bucket_index(candle.low, min_price, bucket_size, self.bucket_count)
                volumes[index] += candle.volume
                continue

            steps = max(1, int((candle.high - candle.low) / bucket_size + 1e-9))
            volume_per_step = candle.volume / steps

            for step in range(steps):
                price = candle.low + step * bucket_size
                index = PriceUtils.bucket_index(price, min_price, bucket_size, self.bucket_count)
                volumes[index] += volume_per_step

        return volumes

    @staticmethod
    def _calculate_poc(buckets: List[VolumeBucket]) -> int:
        """Index of the bucket with the highest volume; max() keeps the first on ties."""
        return max(range(len(buckets)), key=lambda i: buckets[i].volume)

    def _calculate_value_area(
        self,
        buckets: List[VolumeBucket],
        poc_index: int,
        total_volume: float
    ) -> ValueArea:
        """
        Calculate the value area around the POC.

        Distance is counted in buckets, so neighbours the same number of
        buckets away tie exactly and the lower one is taken first.

        Args:
            buckets: All buckets, including empty ones
            poc_index: Index of the Point of Control bucket
            total_volume: Sum of bucket volumes

        Returns:
            ValueArea with the lowest/highest selected bucket centers
        """
        target_volume = total_volume * self.value_area_pct

        ordered = sorted(range(len(buckets)), key=lambda i: (abs(i - poc_index), i))

        accumulated = 0.0
        selected: List[int] = []

        for index in ordered:
            accumulated += buckets[index].volume
            selected.append(index)
            if accumulated >= target_volume:
                break

        return ValueArea(
            low=buckets[min(selected)].price_center,
            high=buckets[max(selected)].price_center,
            volume=accumulated,
        )
