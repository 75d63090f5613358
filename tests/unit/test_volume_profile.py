"""
Unit tests for the VolumeProfileBuilder.

Tests:
- Bucket distribution and volume conservation
- POC and value area selection
- Flat and zero-volume series
- Malformed candles
"""

import math

import pytest

from market_analytics.analytics.volume_profile import VolumeProfileBuilder


def test_two_candle_profile(make_candle):
    candles = [
        make_candle(0, high=100, low=100, close=100, volume=50),
        make_candle(1, open=100, high=110, low=100, close=105, volume=100),
    ]

    view = VolumeProfileBuilder(bucket_count=10).build(candles)

    assert view.bucket_size == pytest.approx(1.0)
    assert view.min_price == 100
    assert view.max_price == 110
    assert view.poc.price_center == pytest.approx(100.5)
    assert view.poc.volume == pytest.approx(60.0)
    assert [b.volume for b in view.buckets[1:]] == pytest.approx([10.0] * 9)
    assert view.total_volume == pytest.approx(150.0)


def test_value_area_reaches_target_around_poc(make_candle):
    candles = [
        make_candle(0, high=100, low=100, close=100, volume=50),
        make_candle(1, open=100, high=110, low=100, close=105, volume=100),
    ]

    view = VolumeProfileBuilder(bucket_count=10).build(candles)

    assert view.value_area.low == pytest.approx(100.5)
    assert view.value_area.high == pytest.approx(105.5)
    assert view.value_area.volume >= 0.7 * view.total_volume
    assert view.value_area.low <= view.poc.price_center <= view.value_area.high


def test_volume_is_conserved(make_candle):
    candles = [
        make_candle(i, open=100 + i, high=103 + i * 1.7, low=99 + i * 0.3, close=101 + i, volume=10 + i * 3.3)
        for i in range(30)
    ]
    candles.append(make_candle(30, high=160, low=160, close=160, volume=7))

    view = VolumeProfileBuilder(bucket_count=50).build(candles)

    assert sum(b.volume for b in view.buckets) == pytest.approx(sum(c.volume for c in candles))
    assert view.total_volume == pytest.approx(sum(c.volume for c in candles))


def test_flat_series_lands_in_one_bucket(make_candle):
    candles = [make_candle(i, high=100, low=100, close=100, volume=5) for i in range(4)]

    view = VolumeProfileBuilder().build(candles)

    assert len(view.buckets) == 1
    assert view.bucket_size == 0
    assert view.poc.price_center == pytest.approx(100.0)
    assert view.poc.volume == pytest.approx(20.0)
    assert view.value_area.low == view.value_area.high == pytest.approx(100.0)


def test_zero_volume_returns_none(make_candle):
    candles = [make_candle(i, high=101, low=99, close=100, volume=0) for i in range(3)]

    assert VolumeProfileBuilder().build(candles) is None


def test_empty_series_returns_none():
    assert VolumeProfileBuilder().build([]) is None


def test_poc_tie_prefers_lowest_price(make_candle):
    candles = [
        make_candle(0, high=100, low=100, close=100, volume=10),
        make_candle(1, high=110, low=110, close=110, volume=10),
    ]

    view = VolumeProfileBuilder(bucket_count=10).build(candles)

    assert view.poc.price_center == pytest.approx(100.5)


def test_value_area_tie_takes_lower_neighbour_first(make_candle):
    candles = [
        make_candle(0, high=6.52, low=6.52, close=6.52, volume=1),
        make_candle(1, high=8.495, low=8.495, close=8.495, volume=2),
        make_candle(2, high=10.47, low=10.47, close=10.47, volume=1),
    ]

    view = VolumeProfileBuilder(bucket_count=3).build(candles)

    # POC holds 2 of 4; one neighbour reaches 70% and both are one bucket away
    assert view.poc.price_center == pytest.approx(8.495)
    assert view.value_area.low == pytest.approx(6.52 + 3.95 / 6)
    assert view.value_area.high == pytest.approx(8.495)
    assert view.value_area.volume == pytest.approx(3.0)


def test_value_area_contains_poc_for_skewed_profile(make_candle):
    candles = [
        make_candle(i, open=100, high=100 + (i % 7), low=100 - (i % 3), close=100, volume=1 + (i % 5) * 4)
        for i in range(40)
    ]

    view = VolumeProfileBuilder(bucket_count=25, value_area_pct=0.5).build(candles)

    assert view.value_area.low <= view.poc.price_center <= view.value_area.high
    assert view.value_area.volume >= 0.5 * view.total_volume - 1e-9


def test_malformed_candles_are_skipped(make_candle):
    candles = [
        make_candle(0, high=110, low=100, close=105, volume=10),
        make_candle(1, high=90, low=100, close=95, volume=10),
        make_candle(2, high=110, low=100, close=105, volume=-1),
        make_candle(3, high=math.nan, low=100, close=105, volume=1),
    ]
    builder = VolumeProfileBuilder(bucket_count=10)

    view = builder.build(candles)

    assert view.skipped_candles == 3
    assert builder.skipped_records == 3
    assert view.total_volume == pytest.approx(10.0)


@pytest.mark.parametrize("kwargs", [{"bucket_count": 0}, {"value_area_pct": 0}, {"value_area_pct": 1.5}])
def test_invalid_parameters(kwargs):
    with pytest.raises(ValueError):
        VolumeProfileBuilder(**kwargs)
