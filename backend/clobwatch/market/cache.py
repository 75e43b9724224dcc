"""Thread-safe fallback cells filled by REST polling."""

from __future__ import annotations

from threading import Lock

from .models import OrderBookSnapshot, PricePoint


class FallbackCache:
    """Polled order book, last trade and price history for the tracked instrument.

    Writer: ReconciliationLoop (the only one).
    Readers: InstrumentTracker, which surfaces the book only when the live
    stream book is empty. The cells are independent; nothing here assumes
    they are updated together.
    """

    def __init__(self) -> None:
        self._snapshot: OrderBookSnapshot | None = None
        self._last_trade_price: float | None = None
        self._history: list[PricePoint] = []
        self._lock = Lock()
        self._version: int = 0  # Monotonically increasing; bumped on every write

    def set_snapshot(self, snapshot: OrderBookSnapshot) -> None:
        with self._lock:
            self._snapshot = snapshot
            self._version += 1

    def set_last_trade_price(self, price: float | None) -> None:
        with self._lock:
            self._last_trade_price = price
            self._version += 1

    def set_history(self, history: list[PricePoint]) -> None:
        with self._lock:
            self._history = list(history)
            self._version += 1

    def get_snapshot(self) -> OrderBookSnapshot | None:
        """Latest polled book, or None if no poll has succeeded yet."""
        with self._lock:
            return self._snapshot

    def get_last_trade_price(self) -> float | None:
        with self._lock:
            return self._last_trade_price

    def get_history(self) -> list[PricePoint]:
        """Copy of the price-history series."""
        with self._lock:
            return list(self._history)

    def clear(self) -> None:
        """Forget everything (e.g., when the tracked instrument changes)."""
        with self._lock:
            self._snapshot = None
            self._last_trade_price = None
            self._history = []
            self._version += 1

    @property
    def version(self) -> int:
        """Current version counter. Useful for SSE change detection."""
        return self._version
