"""Consumer-facing façade: one tracked instrument, live stream plus polled fallback."""

from __future__ import annotations

import asyncio
import logging

from .cache import FallbackCache
from .client import MarketDataClient
from .models import OrderBookSnapshot, PricePoint, StreamConnectionState
from .reconciler import ReconciliationLoop
from .stream import StreamSession

logger = logging.getLogger(__name__)


class InstrumentTracker:
    """Owns the StreamSession and ReconciliationLoop for the selected instrument.

    Readers never touch the producers directly; they call current_book(),
    last_trade_price() and friends, which arbitrate between the live stream
    book and the polled fallback at read time.

    Lifecycle:
        tracker = create_tracker()
        await tracker.select_instrument("<token id>")
        # ... tracker.current_book() ...
        await tracker.select_instrument("<other token id>")  # full teardown first
        await tracker.aclose()
    """

    def __init__(
        self,
        client: MarketDataClient,
        session: StreamSession,
        loop: ReconciliationLoop,
        cache: FallbackCache,
    ) -> None:
        self._client = client
        self._session = session
        self._loop = loop
        self._cache = cache
        self._instrument_id: str | None = None
        # Held across a whole switch or teardown; calls run one at a time
        self._switch_lock = asyncio.Lock()

    @property
    def instrument_id(self) -> str | None:
        return self._instrument_id

    @property
    def version(self) -> int:
        """Changes whenever either producer publishes. Useful for SSE change detection."""
        return self._session.engine.version + self._cache.version

    async def select_instrument(self, instrument_id: str) -> None:
        """Switch to a new instrument. Prior state is torn down before anything new starts."""
        instrument_id = instrument_id.strip()
        if not instrument_id:
            raise ValueError("instrument_id must be non-empty")

        async with self._switch_lock:
            await self._teardown()
            self._instrument_id = instrument_id
            logger.info("Tracking instrument %s", instrument_id)
            await asyncio.gather(
                self._session.connect(instrument_id),
                self._loop.start(instrument_id),
            )

    async def teardown(self) -> None:
        """Stop both producers and drop all state. Safe to call multiple times.

        Waits for an in-flight select_instrument() to finish, then undoes it.
        """
        async with self._switch_lock:
            await self._teardown()

    async def _teardown(self) -> None:
        await self._loop.stop()
        await self._session.disconnect()
        self._cache.clear()
        if self._instrument_id is not None:
            logger.info("Stopped tracking instrument %s", self._instrument_id)
        self._instrument_id = None

    async def aclose(self) -> None:
        await self.teardown()
        await self._client.aclose()

    def current_book(self) -> OrderBookSnapshot:
        """Live stream book, else the polled fallback, else an explicitly empty book."""
        live = self._session.snapshot()
        if not live.is_empty:
            return live
        fallback = self._cache.get_snapshot()
        if fallback is not None:
            return fallback
        return OrderBookSnapshot.empty()

    def last_trade_price(self) -> float | None:
        live = self._session.last_trade_price
        if live is not None:
            return live
        return self._cache.get_last_trade_price()

    def live_price(self) -> float | None:
        """Mid of the displayed book when two-sided, otherwise the last trade."""
        mid = self.current_book().mid_price
        if mid is not None:
            return mid
        return self.last_trade_price()

    def price_history(self) -> list[PricePoint]:
        return self._cache.get_history()

    def connection_state(self) -> StreamConnectionState:
        return self._session.state

    def to_dict(self) -> dict:
        """Serialize the consumer view for JSON / SSE transmission."""
        return {
            "instrument_id": self._instrument_id,
            "connection_state": self.connection_state().value,
            "last_trade_price": self.last_trade_price(),
            "live_price": self.live_price(),
            "book": self.current_book().to_dict(),
        }
