"""Fixed-cadence REST polling that backstops the stream."""

from __future__ import annotations

import asyncio
import logging

from .cache import FallbackCache
from .client import FetchError, MarketDataClient
from .models import OrderBookSnapshot

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 15.0
DEFAULT_HISTORY_EVERY = 4
DEFAULT_HISTORY_INTERVAL = "1d"


class ReconciliationLoop:
    """Re-pulls book and last trade on a fixed cadence into a FallbackCache.

    Runs for the lifetime of one instrument selection, independent of the
    stream's state. Fetch failures are transient misses: the cycle's update
    is skipped and the last good values stay in the cache. There is no
    backoff; every cycle is identical.

    Cycle 0 is the one-shot initial fetch done by start(). Price history is
    refreshed on every `history_every`-th cycle (0, 4, 8, ...).
    """

    def __init__(
        self,
        client: MarketDataClient,
        cache: FallbackCache,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        history_every: int = DEFAULT_HISTORY_EVERY,
        history_interval: str = DEFAULT_HISTORY_INTERVAL,
    ) -> None:
        self._client = client
        self._cache = cache
        self._interval = poll_interval
        self._history_every = max(1, history_every)
        self._history_interval = history_interval
        self._instrument_id: str | None = None
        self._tick: int = 0
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def instrument_id(self) -> str | None:
        return self._instrument_id

    async def start(self, instrument_id: str) -> None:
        """Prime the cache with one parallel fetch, then start the timed loop."""
        await self.stop()
        self._instrument_id = instrument_id
        self._tick = 0

        # Do an immediate first fetch so the fallback has data right away
        await self.prime()

        self._tick = 1
        self._task = asyncio.create_task(self._poll_loop(), name="clob-reconciler")
        logger.info(
            "Reconciler started: %s, %.1fs interval, history every %d cycles",
            instrument_id,
            self._interval,
            self._history_every,
        )

    async def stop(self) -> None:
        if self._task and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        if self._task is not None:
            logger.info("Reconciler stopped: %s", self._instrument_id)
        self._task = None

    async def prime(self) -> None:
        """Fetch book, history and last trade concurrently; keep whatever succeeds."""
        instrument_id = self._instrument_id
        if instrument_id is None:
            return
        book, history, last_trade = await asyncio.gather(
            self._client.fetch_order_book(instrument_id),
            self._client.fetch_price_history(instrument_id, self._history_interval),
            self._client.fetch_last_trade_price(instrument_id),
            return_exceptions=True,
        )
        if isinstance(book, OrderBookSnapshot):
            self._cache.set_snapshot(book)
        if isinstance(history, list):
            self._cache.set_history(history)
        if not isinstance(last_trade, BaseException):
            self._cache.set_last_trade_price(last_trade)
        for result in (book, history, last_trade):
            if isinstance(result, BaseException):
                _log_failure("Initial fetch", result)

    async def poll_once(self) -> None:
        """Execute one cycle: book + last trade, and history on every Nth tick."""
        instrument_id = self._instrument_id
        if instrument_id is None:
            return

        book, last_trade = await asyncio.gather(
            self._client.fetch_order_book(instrument_id),
            self._client.fetch_last_trade_price(instrument_id),
            return_exceptions=True,
        )
        failure = next((r for r in (book, last_trade) if isinstance(r, BaseException)), None)
        if failure is None:
            self._cache.set_snapshot(book)
            self._cache.set_last_trade_price(last_trade)
            logger.debug(
                "Reconciler cycle %d: %d bids, %d asks",
                self._tick,
                len(book.bids),
                len(book.asks),
            )
        else:
            _log_failure("Reconciler poll", failure)

        if self._tick % self._history_every == 0:
            try:
                history = await self._client.fetch_price_history(instrument_id, self._history_interval)
            except FetchError as e:
                _log_failure("History refresh", e)
            else:
                self._cache.set_history(history)

    # --- Internal ---

    async def _poll_loop(self) -> None:
        """Poll on interval. Cycle 0 already happened in start()."""
        while True:
            await asyncio.sleep(self._interval)
            try:
                await self.poll_once()
            except Exception:
                logger.exception("Reconciler cycle failed")
            self._tick += 1


def _log_failure(what: str, error: BaseException) -> None:
    if isinstance(error, FetchError):
        logger.warning("%s failed: %s", what, error)
    else:
        logger.error("%s failed unexpectedly: %r", what, error)
