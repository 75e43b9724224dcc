"""Tests for tolerant payload parsers."""

import pytest

from clobwatch.market.models import PriceChange, PriceLevel, PricePoint, Side
from clobwatch.market.parsing import (
    book_sides,
    parse_history,
    parse_history_point,
    parse_level,
    parse_levels,
    parse_number,
    parse_price_change,
    parse_price_changes,
    parse_side,
)


class TestParseNumber:
    @pytest.mark.parametrize(
        "raw, expected",
        [(0.42, 0.42), (3, 3.0), ("0.42", 0.42), (" 12 ", 12.0), ("1e2", 100.0)],
    )
    def test_accepts_numbers_and_numeric_text(self, raw, expected):
        assert parse_number(raw) == expected

    @pytest.mark.parametrize("raw", [None, "", "abc", True, [1], {"x": 1}, "nan", "inf", float("nan")])
    def test_rejects_everything_else(self, raw):
        assert parse_number(raw) is None


class TestParseLevels:
    def test_object_level(self):
        assert parse_level({"price": "0.40", "size": "100"}) == PriceLevel(0.40, 100.0)

    def test_pair_level(self):
        assert parse_level(["0.40", 100]) == PriceLevel(0.40, 100.0)

    def test_negative_size_rejected(self):
        assert parse_level({"price": "0.40", "size": "-1"}) is None

    def test_malformed_level_dropped_siblings_kept(self):
        """Test one bad level does not fail the whole side."""
        raw = [
            {"price": "0.40", "size": "100"},
            {"price": "oops", "size": "5"},
            {"price": "0.38"},
            "junk",
            {"price": 0.37, "size": 7},
        ]
        assert parse_levels(raw) == [PriceLevel(0.40, 100.0), PriceLevel(0.37, 7.0)]

    def test_non_list_side(self):
        assert parse_levels(None) == []
        assert parse_levels({"price": "0.4"}) == []

    def test_book_sides_prefers_bids_asks(self):
        payload = {"bids": [1], "buys": [2], "asks": [3], "sells": [4]}
        assert book_sides(payload) == ([1], [3])

    def test_book_sides_buys_sells_alias(self):
        assert book_sides({"buys": [2], "sells": [4]}) == ([2], [4])

    def test_book_sides_empty_present_key_wins(self):
        assert book_sides({"bids": [], "buys": [2]}) == ([], None)

    def test_book_sides_prefer_aliases(self):
        payload = {"bids": [1], "buys": [2], "asks": [3], "sells": [4]}
        assert book_sides(payload, prefer_aliases=True) == ([2], [4])
        assert book_sides({"bids": [1], "asks": [3]}, prefer_aliases=True) == ([1], [3])


class TestParseChanges:
    @pytest.mark.parametrize("tag", ["buy", "BUY", " Buy "])
    def test_side_case_insensitive(self, tag):
        assert parse_side(tag) is Side.BUY

    @pytest.mark.parametrize("tag", ["bid", "", None, 1])
    def test_unknown_side(self, tag):
        assert parse_side(tag) is None

    def test_price_change(self):
        raw = {"price": "0.42", "side": "sell", "size": "0"}
        assert parse_price_change(raw) == PriceChange(0.42, Side.SELL, 0.0)

    def test_unknown_side_change_dropped(self):
        raw = [
            {"price": "0.42", "side": "HOLD", "size": "1"},
            {"price": "0.43", "side": "BUY", "size": "2"},
        ]
        assert parse_price_changes(raw) == [PriceChange(0.43, Side.BUY, 2.0)]


class TestParseHistory:
    @pytest.mark.parametrize(
        "raw",
        [
            [1700000000, 0.42],
            ["1700000000", "0.42"],
            {"t": 1700000000, "p": 0.42},
            {"timestamp": 1700000000, "price": "0.42"},
            {"time": "1700000000", "price": 0.42},
        ],
    )
    def test_supported_shapes(self, raw):
        assert parse_history_point(raw) == PricePoint(1700000000.0, 0.42)

    def test_short_keys_take_precedence(self):
        raw = {"t": 1, "p": 0.1, "timestamp": 2, "price": 0.2}
        assert parse_history_point(raw) == PricePoint(1.0, 0.1)

    @pytest.mark.parametrize("raw", [[1], ["x", "0.4"], {"t": 1}, {"p": 0.4}, "1,0.4", None])
    def test_unresolvable(self, raw):
        assert parse_history_point(raw) is None

    def test_one_bad_point_among_five(self):
        """Test a malformed point does not drop the other four."""
        raw = [
            [1, 0.1],
            ["2", "0.2"],
            {"t": "three", "p": 0.3},
            {"t": 4, "p": 0.4},
            {"timestamp": 5, "price": 0.5},
        ]
        points = parse_history(raw)
        assert [p.timestamp for p in points] == [1.0, 2.0, 4.0, 5.0]

    def test_non_list_history(self):
        assert parse_history(None) == []
        assert parse_history({"t": 1, "p": 1}) == []
