"""Canonical in-memory order book with snapshot/incremental merge."""

from __future__ import annotations

from collections.abc import Iterable
from threading import Lock

from .models import OrderBookSnapshot, PriceChange, PriceLevel, Side


class BookMergeEngine:
    """Price-keyed bid/ask maps for one instrument.

    Writer: StreamSession's dispatch path (one at a time).
    Readers: InstrumentTracker, the HTTP router.

    Every apply publishes exactly one new OrderBookSnapshot after the whole
    batch has been merged, so readers only ever see complete books.
    """

    def __init__(self) -> None:
        self._bids: dict[float, float] = {}
        self._asks: dict[float, float] = {}
        self._snapshot = OrderBookSnapshot.empty()
        self._lock = Lock()
        self._version: int = 0  # Bumped on every publish

    def apply_snapshot(
        self, bids: Iterable[PriceLevel], asks: Iterable[PriceLevel]
    ) -> OrderBookSnapshot:
        """Replace both sides wholesale. Zero-size levels are skipped."""
        with self._lock:
            self._bids.clear()
            self._asks.clear()
            for level in bids:
                if level.size > 0:
                    self._bids[level.price] = level.size
            for level in asks:
                if level.size > 0:
                    self._asks[level.price] = level.size
            return self._publish()

    def apply_changes(self, changes: Iterable[PriceChange]) -> OrderBookSnapshot:
        """Upsert (size > 0) or delete (size == 0) each change, then publish once.

        Last writer wins per price; entries with an unrecognised side are ignored.
        """
        with self._lock:
            for change in changes:
                if change.side == Side.BUY:
                    side = self._bids
                elif change.side == Side.SELL:
                    side = self._asks
                else:
                    continue
                if change.size > 0:
                    side[change.price] = change.size
                else:
                    side.pop(change.price, None)
            return self._publish()

    def clear(self) -> OrderBookSnapshot:
        with self._lock:
            self._bids.clear()
            self._asks.clear()
            return self._publish()

    def current_snapshot(self) -> OrderBookSnapshot:
        """Last published snapshot. O(1); never a partially merged book."""
        return self._snapshot

    @property
    def version(self) -> int:
        return self._version

    def _publish(self) -> OrderBookSnapshot:
        # Caller holds the lock
        snapshot = OrderBookSnapshot.from_sides(self._bids, self._asks)
        self._snapshot = snapshot
        self._version += 1
        return snapshot

    def __len__(self) -> int:
        with self._lock:
            return len(self._bids) + len(self._asks)
