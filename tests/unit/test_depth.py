"""
Unit tests for the DepthAggregator.

Tests:
- Ladder ordering and cumulative totals
- Spread, mid price and bar widths
- Empty, one-sided and crossed books
- Malformed level handling
"""

import math

import pytest

from market_analytics.analytics.depth import DepthAggregator
from market_analytics.analytics.models import OrderBookLevel


@pytest.fixture
def aggregator():
    return DepthAggregator()


def test_ladder_sorted_with_running_totals(aggregator, sample_book):
    view = aggregator.aggregate(sample_book.bids, sample_book.asks)

    assert [level.price for level in view.bids] == [100.0, 99.0, 98.0]
    assert [level.price for level in view.asks] == [101.0, 102.0]
    assert [level.cumulative_total for level in view.bids] == [1.0, 3.0, 7.0]
    assert [level.cumulative_total for level in view.asks] == [1.0, 4.0]


def test_spread_and_mid_price(aggregator, sample_book):
    view = aggregator.aggregate(sample_book.bids, sample_book.asks)

    assert view.best_bid.price == 100.0
    assert view.best_ask.price == 101.0
    assert view.spread == pytest.approx(1.0)
    assert view.spread_percent == pytest.approx(1.0)
    assert view.mid_price == pytest.approx(100.5)
    assert not view.is_crossed


def test_widths_relative_to_largest_level(aggregator, sample_book):
    view = aggregator.aggregate(sample_book.bids, sample_book.asks)

    assert view.max_quantity == 4.0
    assert view.bids[-1].width_percent == pytest.approx(100.0)
    assert view.asks[0].width_percent == pytest.approx(25.0)
    assert view.bids[-1].total_width_percent == pytest.approx(100.0)
    assert view.asks[-1].total_width_percent == pytest.approx(4 / 7 * 100)


def test_input_lists_are_not_mutated(aggregator, sample_book):
    original_bids = list(sample_book.bids)
    aggregator.aggregate(sample_book.bids, sample_book.asks)
    assert sample_book.bids == original_bids


def test_accepts_price_quantity_pairs(aggregator):
    view = aggregator.aggregate([(100, 1), (99, 2)], [[101, 0.5]])

    assert view.best_bid.price == 100.0
    assert view.best_ask.quantity == 0.5


def test_cumulative_totals_non_decreasing(aggregator):
    bids = [(100 - i, (i * 7) % 5) for i in range(20)]
    asks = [(101 + i, (i * 3) % 4 + 0.5) for i in range(20)]
    view = aggregator.aggregate(bids, asks)

    for side in (view.bids, view.asks):
        totals = [level.cumulative_total for level in side]
        assert totals == sorted(totals)


def test_empty_book_returns_none(aggregator):
    assert aggregator.aggregate([], []) is None
    assert aggregator.aggregate(None, None) is None


def test_one_sided_book_has_zero_spread(aggregator):
    view = aggregator.aggregate([(100, 1)], [])

    assert view.best_ask is None
    assert view.spread == 0.0
    assert view.spread_percent == 0.0
    assert view.mid_price is None
    assert view.asks == []


def test_crossed_book_is_reported_not_rejected(aggregator):
    view = aggregator.aggregate([(101, 1)], [(100, 1)])

    assert view.is_crossed
    assert view.spread == pytest.approx(-1.0)


def test_max_levels_truncates_each_side():
    aggregator = DepthAggregator(max_levels=2)
    view = aggregator.aggregate([(100 - i, 1) for i in range(5)], [(101 + i, 1) for i in range(5)])

    assert len(view.bids) == 2
    assert len(view.asks) == 2
    assert view.bids[-1].price == 99


def test_invalid_max_levels():
    with pytest.raises(ValueError):
        DepthAggregator(max_levels=0)


def test_malformed_levels_are_skipped_and_counted(aggregator, caplog):
    bids = [OrderBookLevel(100.0, 1.0), OrderBookLevel(99.0, -5.0), OrderBookLevel(math.nan, 1.0)]
    asks = [(101.0, 2.0), ("bad",)]

    with caplog.at_level("WARNING"):
        view = aggregator.aggregate(bids, asks)

    assert [level.price for level in view.bids] == [100.0]
    assert view.skipped_levels == 3
    assert aggregator.skipped_records == 3
    assert any("malformed" in record.getMessage() for record in caplog.records)


def test_to_dict_is_serializable(aggregator, sample_book):
    data = aggregator.aggregate(sample_book.bids, sample_book.asks).to_dict()

    assert data["best_bid"]["price"] == 100.0
    assert len(data["bids"]) == 3
    assert data["is_crossed"] is False
