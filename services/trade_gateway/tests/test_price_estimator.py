"""
Unit Tests for Price Estimation
===============================

Tests top of book, mid price, spread and depth-walk fill estimates.
"""

import pytest

from order_book import PriceLevel, Side, normalize
from price_estimator import (
    Filled,
    InsufficientLiquidity,
    best_bid_ask,
    estimate_fill,
    executable_average,
    mid_price,
    spread,
)

ASKS = (PriceLevel(0.54, 150.0), PriceLevel(0.55, 300.0))


class TestTopOfBook:
    """Tests for best_bid_ask, mid_price and spread"""

    def test_best_bid_ask(self, book_payload):
        book = normalize(book_payload['bids'], book_payload['asks'])
        best_bid, best_ask = best_bid_ask(book)

        assert best_bid == PriceLevel(0.52, 100.0)
        assert best_ask == PriceLevel(0.54, 150.0)

    def test_mid_price(self):
        book = normalize([['0.52', '10']], [['0.54', '20']])

        assert mid_price(book) == pytest.approx(0.53)

    def test_empty_side_has_no_best_price_and_no_mid(self):
        book = normalize([['0.52', '10']], [])

        result = best_bid_ask(book)
        assert result.best_bid == PriceLevel(0.52, 10.0)
        assert result.best_ask is None
        assert mid_price(book) is None
        assert spread(book) is None

    def test_empty_book(self):
        book = normalize([], [])

        assert best_bid_ask(book) == (None, None)
        assert mid_price(book) is None

    def test_crossed_book_is_not_rejected(self):
        book = normalize([['0.60', '10']], [['0.50', '10']])

        assert mid_price(book) == pytest.approx(0.55)
        assert spread(book) == pytest.approx(-0.10)

    def test_spread(self):
        book = normalize([['0.52', '10']], [['0.54', '20']])

        assert spread(book) == pytest.approx(0.02)


class TestExecutableAverage:
    """Tests for executable_average depth walk"""

    def test_fill_within_first_level(self):
        result = executable_average(ASKS, 100)

        assert isinstance(result, Filled)
        assert result.price == pytest.approx(0.54)
        assert result.levels_used == 1
        assert result.worst_price == 0.54

    def test_fill_exactly_consumes_all_levels(self):
        result = executable_average(ASKS, 450)

        assert isinstance(result, Filled)
        assert result.price == pytest.approx((150 * 0.54 + 300 * 0.55) / 450)
        assert round(result.price, 4) == 0.5467
        assert result.levels_used == 2
        assert result.worst_price == 0.55

    def test_insufficient_liquidity(self):
        result = executable_average(ASKS, 500)

        assert result == InsufficientLiquidity(requested=500, available=450.0)
        assert not isinstance(result, Filled)

    def test_no_levels_is_insufficient(self):
        assert isinstance(executable_average((), 1), InsufficientLiquidity)

    def test_walks_bids_in_given_order(self):
        bids = normalize([['0.50', '100'], ['0.52', '50']], None).bids

        result = executable_average(bids, 100)

        assert result.price == pytest.approx((50 * 0.52 + 50 * 0.50) / 100)

    def test_zero_size_levels_are_skipped(self):
        levels = (PriceLevel(0.40, 0.0), PriceLevel(0.41, 10.0))

        result = executable_average(levels, 10)

        assert result.price == pytest.approx(0.41)
        assert result.levels_used == 1

    def test_float_residue_does_not_cause_insufficient_liquidity(self):
        levels = (PriceLevel(0.5, 0.1), PriceLevel(0.5, 0.2))

        assert isinstance(executable_average(levels, 0.3), Filled)

    def test_sub_epsilon_quantity_with_no_levels_is_insufficient(self):
        assert isinstance(executable_average((), 5e-10), InsufficientLiquidity)

    def test_sub_epsilon_quantity_is_walked(self):
        result = executable_average((PriceLevel(0.54, 150.0),), 5e-10)

        assert isinstance(result, Filled)
        assert result.price == pytest.approx(0.54)
        assert result.worst_price == 0.54
        assert result.levels_used == 1

    @pytest.mark.parametrize('quantity', [0, -5])
    def test_non_positive_quantity_rejected(self, quantity):
        with pytest.raises(ValueError):
            executable_average(ASKS, quantity)


class TestEstimateFill:
    """Tests for estimate_fill side selection"""

    def test_buy_walks_asks_and_sell_walks_bids(self, book_payload):
        book = normalize(book_payload['bids'], book_payload['asks'])

        assert estimate_fill(book, Side.BUY, 100).price == pytest.approx(0.54)
        assert estimate_fill(book, 'sell', 100).price == pytest.approx(0.52)

    def test_sell_beyond_bid_depth(self, book_payload):
        book = normalize(book_payload['bids'], book_payload['asks'])

        result = estimate_fill(book, Side.SELL, 1000)

        assert result == InsufficientLiquidity(requested=1000, available=350.0)
