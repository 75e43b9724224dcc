"""Tolerant parsers for upstream payloads.

The CLOB does not keep a stable payload shape: numbers arrive as JSON numbers
or as numeric strings, book sides are labelled bids/asks or buys/sells, and
history points come in several encodings. Every function here works on a
single item and returns None (or an empty list) instead of raising, so one
malformed entry never takes down its siblings.
"""

from __future__ import annotations

import math
from typing import Any

from .models import PriceChange, PriceLevel, PricePoint, Side


def parse_number(value: Any) -> float | None:
    """Parse a JSON number or numeric string to a finite float."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            number = float(text)
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def parse_level(raw: Any) -> PriceLevel | None:
    """Parse {"price": .., "size": ..} or a [price, size] pair."""
    if isinstance(raw, dict):
        price = parse_number(raw.get("price"))
        size = parse_number(raw.get("size"))
    elif isinstance(raw, (list, tuple)) and len(raw) >= 2:
        price = parse_number(raw[0])
        size = parse_number(raw[1])
    else:
        return None
    if price is None or size is None or size < 0:
        return None
    return PriceLevel(price=price, size=size)


def parse_levels(raw: Any) -> list[PriceLevel]:
    if not isinstance(raw, list):
        return []
    levels = (parse_level(item) for item in raw)
    return [level for level in levels if level is not None]


def _pick(payload: dict, first: str, second: str) -> Any:
    return payload[first] if payload.get(first) is not None else payload.get(second)


def book_sides(payload: dict, prefer_aliases: bool = False) -> tuple[Any, Any]:
    """Pick the raw bid/ask lists out of a book payload.

    A key that is present wins even if its list is empty. REST books are
    read bids/asks first; stream book events name their sides buys/sells,
    so pass prefer_aliases=True to read those first.
    """
    if prefer_aliases:
        return _pick(payload, "buys", "bids"), _pick(payload, "sells", "asks")
    return _pick(payload, "bids", "buys"), _pick(payload, "asks", "sells")


def parse_side(tag: Any) -> Side | None:
    if not isinstance(tag, str):
        return None
    try:
        return Side(tag.strip().upper())
    except ValueError:
        return None


def parse_price_change(raw: Any) -> PriceChange | None:
    if not isinstance(raw, dict):
        return None
    side = parse_side(raw.get("side"))
    price = parse_number(raw.get("price"))
    size = parse_number(raw.get("size"))
    if side is None or price is None or size is None or size < 0:
        return None
    return PriceChange(price=price, side=side, size=size)


def parse_price_changes(raw: Any) -> list[PriceChange]:
    if not isinstance(raw, list):
        return []
    changes = (parse_price_change(item) for item in raw)
    return [change for change in changes if change is not None]


def _first_number(obj: dict, *keys: str) -> float | None:
    for key in keys:
        number = parse_number(obj.get(key))
        if number is not None:
            return number
    return None


def parse_history_point(raw: Any) -> PricePoint | None:
    """Parse one price-history point.

    Accepted shapes:
      [1700000000, 0.42]                      numeric pair
      ["1700000000", "0.42"]                  string pair
      {"t": 1700000000, "p": 0.42}            short keys
      {"timestamp" | "time": .., "price": ..} long keys
    """
    if isinstance(raw, (list, tuple)):
        if len(raw) < 2:
            return None
        timestamp = parse_number(raw[0])
        price = parse_number(raw[1])
    elif isinstance(raw, dict):
        timestamp = _first_number(raw, "t", "timestamp", "time")
        price = _first_number(raw, "p", "price")
    else:
        return None
    if timestamp is None or price is None:
        return None
    return PricePoint(timestamp=timestamp, price=price)


def parse_history(raw: Any) -> list[PricePoint]:
    if not isinstance(raw, list):
        return []
    points = (parse_history_point(item) for item in raw)
    return [point for point in points if point is not None]
