"""Data models for order book tracking."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum


class Side(str, Enum):
    """Order book side as tagged by the upstream ('BUY' = bid, 'SELL' = ask)."""

    BUY = "BUY"
    SELL = "SELL"


class StreamConnectionState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


@dataclass(frozen=True, slots=True)
class PriceLevel:
    """One price level of a book side."""

    price: float
    size: float

    def to_dict(self) -> dict:
        return {"price": self.price, "size": self.size}


@dataclass(frozen=True, slots=True)
class PriceChange:
    """Incremental change to a single price on one side. size == 0 removes the level."""

    price: float
    side: Side
    size: float


@dataclass(frozen=True, slots=True)
class PricePoint:
    timestamp: float  # Unix seconds
    price: float

    def to_dict(self) -> dict:
        return {"timestamp": self.timestamp, "price": self.price}


@dataclass(frozen=True, slots=True)
class OrderBookSnapshot:
    """Immutable, sorted view of both book sides at a point in time.

    Bids are descending by price, asks ascending. Never patched after
    construction: every mutation of a book produces a new snapshot.
    """

    bids: tuple[PriceLevel, ...] = ()
    asks: tuple[PriceLevel, ...] = ()
    observed_at: float = field(default_factory=time.time)  # Unix seconds

    @classmethod
    def empty(cls) -> OrderBookSnapshot:
        return cls()

    @classmethod
    def from_sides(
        cls,
        bids: dict[float, float] | list[PriceLevel],
        asks: dict[float, float] | list[PriceLevel],
        observed_at: float | None = None,
    ) -> OrderBookSnapshot:
        """Build a snapshot in canonical order, dropping zero-size levels."""
        return cls(
            bids=_sorted_levels(bids, descending=True),
            asks=_sorted_levels(asks, descending=False),
            observed_at=observed_at if observed_at is not None else time.time(),
        )

    @property
    def is_empty(self) -> bool:
        return not self.bids and not self.asks

    @property
    def best_bid(self) -> float | None:
        return self.bids[0].price if self.bids else None

    @property
    def best_ask(self) -> float | None:
        return self.asks[0].price if self.asks else None

    @property
    def mid_price(self) -> float | None:
        """Midpoint of the touch, or None unless both sides have a level."""
        if self.best_bid is None or self.best_ask is None:
            return None
        return (self.best_bid + self.best_ask) / 2

    @property
    def spread(self) -> float | None:
        if self.best_bid is None or self.best_ask is None:
            return None
        return round(self.best_ask - self.best_bid, 10)

    def to_dict(self) -> dict:
        """Serialize for JSON / SSE transmission."""
        return {
            "bids": [level.to_dict() for level in self.bids],
            "asks": [level.to_dict() for level in self.asks],
            "observed_at": self.observed_at,
            "best_bid": self.best_bid,
            "best_ask": self.best_ask,
            "mid_price": self.mid_price,
            "spread": self.spread,
        }


def _sorted_levels(
    levels: dict[float, float] | list[PriceLevel], descending: bool
) -> tuple[PriceLevel, ...]:
    if isinstance(levels, dict):
        items = [PriceLevel(price=p, size=s) for p, s in levels.items()]
    else:
        # Later duplicates win, matching map semantics
        merged = {level.price: level.size for level in levels}
        items = [PriceLevel(price=p, size=s) for p, s in merged.items()]
    items = [level for level in items if level.size > 0]
    items.sort(key=lambda level: level.price, reverse=descending)
    return tuple(items)
