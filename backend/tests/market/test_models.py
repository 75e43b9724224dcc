"""Tests for order book data models."""

import pytest

from clobwatch.market.models import OrderBookSnapshot, PriceLevel, StreamConnectionState


class TestOrderBookSnapshot:
    """Unit tests for the OrderBookSnapshot model."""

    def test_from_sides_sorts_canonically(self):
        """Test bids come out descending and asks ascending."""
        snap = OrderBookSnapshot.from_sides(
            {0.38: 10.0, 0.40: 5.0, 0.39: 7.0},
            {0.47: 1.0, 0.45: 2.0, 0.46: 3.0},
        )
        assert [lvl.price for lvl in snap.bids] == [0.40, 0.39, 0.38]
        assert [lvl.price for lvl in snap.asks] == [0.45, 0.46, 0.47]

    def test_from_sides_drops_zero_size(self):
        """Test zero-size levels never appear in a snapshot."""
        snap = OrderBookSnapshot.from_sides({0.40: 0.0, 0.39: 1.0}, [PriceLevel(0.45, 0.0)])
        assert snap.bids == (PriceLevel(0.39, 1.0),)
        assert snap.asks == ()

    def test_from_sides_list_later_duplicate_wins(self):
        """Test a duplicated price in a level list keeps the last size."""
        snap = OrderBookSnapshot.from_sides([PriceLevel(0.40, 1.0), PriceLevel(0.40, 9.0)], [])
        assert snap.bids == (PriceLevel(0.40, 9.0),)

    def test_empty(self):
        """Test the explicitly empty book."""
        snap = OrderBookSnapshot.empty()
        assert snap.is_empty
        assert snap.best_bid is None
        assert snap.best_ask is None
        assert snap.mid_price is None
        assert snap.spread is None

    def test_touch_and_mid(self):
        """Test best bid/ask, mid and spread."""
        snap = OrderBookSnapshot.from_sides({0.40: 1.0, 0.30: 1.0}, {0.50: 1.0, 0.60: 1.0})
        assert snap.best_bid == 0.40
        assert snap.best_ask == 0.50
        assert snap.mid_price == pytest.approx(0.45)
        assert snap.spread == pytest.approx(0.10)

    def test_one_sided_has_no_mid(self):
        """Test mid price requires both sides."""
        snap = OrderBookSnapshot.from_sides({0.40: 1.0}, {})
        assert not snap.is_empty
        assert snap.mid_price is None

    def test_to_dict(self):
        """Test serialization to dictionary."""
        snap = OrderBookSnapshot.from_sides({0.40: 100.0}, {0.45: 50.0}, observed_at=1234567890.0)
        result = snap.to_dict()

        assert result["bids"] == [{"price": 0.40, "size": 100.0}]
        assert result["asks"] == [{"price": 0.45, "size": 50.0}]
        assert result["observed_at"] == 1234567890.0
        assert result["best_bid"] == 0.40
        assert result["best_ask"] == 0.45

    def test_immutability(self):
        """Test that snapshots are immutable."""
        snap = OrderBookSnapshot.empty()

        with pytest.raises(AttributeError):
            snap.bids = (PriceLevel(0.4, 1.0),)  # Should raise error


class TestStreamConnectionState:
    def test_values(self):
        assert StreamConnectionState.CONNECTED.value == "connected"
        assert StreamConnectionState("disconnected") is StreamConnectionState.DISCONNECTED
