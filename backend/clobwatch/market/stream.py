"""WebSocket session feeding live book updates for one instrument."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

import websockets

from .book import BookMergeEngine
from .models import OrderBookSnapshot, StreamConnectionState
from .parsing import book_sides, parse_levels, parse_number, parse_price_changes

logger = logging.getLogger(__name__)

DEFAULT_WS_URL = "wss://ws-subscriptions-clob.polymarket.com/ws/market"
DEFAULT_PING_INTERVAL = 15.0
PING_MESSAGE = "PING"
NORMAL_CLOSURE = 1000

# asyncio.TimeoutError is only an OSError subclass from 3.11 on
TRANSPORT_ERRORS = (OSError, asyncio.TimeoutError, websockets.WebSocketException)


class StreamSession:
    """One push-channel connection scoped to one instrument.

    State machine (per connection attempt):
        DISCONNECTED -> CONNECTING -> CONNECTED -> DISCONNECTED

    The session never reconnects on its own. After a transport error the
    state is DISCONNECTED and the owner decides whether to call connect()
    again.

    Lifecycle:
        session = StreamSession(BookMergeEngine())
        await session.connect("<token id>")
        # ... session.snapshot(), session.last_trade_price ...
        await session.disconnect()
    """

    def __init__(
        self,
        engine: BookMergeEngine | None = None,
        ws_url: str = DEFAULT_WS_URL,
        ping_interval: float = DEFAULT_PING_INTERVAL,
    ) -> None:
        self._engine = engine or BookMergeEngine()
        self._ws_url = ws_url
        self._ping_interval = ping_interval
        self._ws: Any = None  # websockets connection object
        self._state = StreamConnectionState.DISCONNECTED
        self._instrument_id: str | None = None
        self._last_trade_price: float | None = None
        self._recv_task: asyncio.Task | None = None
        self._ping_task: asyncio.Task | None = None
        # Serializes connect() and disconnect() so an in-flight open can
        # never install its socket after a teardown has run
        self._lifecycle_lock = asyncio.Lock()

    # --- Public API ---

    @property
    def state(self) -> StreamConnectionState:
        return self._state

    @property
    def instrument_id(self) -> str | None:
        return self._instrument_id

    @property
    def last_trade_price(self) -> float | None:
        return self._last_trade_price

    @property
    def engine(self) -> BookMergeEngine:
        return self._engine

    def snapshot(self) -> OrderBookSnapshot:
        return self._engine.current_snapshot()

    async def connect(self, instrument_id: str) -> None:
        """Tear down any existing connection, then open, subscribe and start pumping.

        Never raises for transport failures; they leave the session DISCONNECTED.
        """
        async with self._lifecycle_lock:
            await self._teardown()
            await self._start(instrument_id)

    async def disconnect(self) -> None:
        """Stop both tasks, close with normal closure and clear all book state.

        Safe to call multiple times. After it returns nothing from the old
        connection can write into the book. A connect() still in flight
        finishes first and is then torn down.
        """
        async with self._lifecycle_lock:
            await self._teardown()

    def handle_message(self, raw: str | bytes) -> None:
        """Decode one inbound frame and dispatch it. Undecodable frames are dropped."""
        if isinstance(raw, bytes):
            try:
                raw = raw.decode("utf-8")
            except UnicodeDecodeError:
                logger.debug("Dropping non UTF-8 frame (%d bytes)", len(raw))
                return
        try:
            payload = json.loads(raw)
        except ValueError:
            # Keep-alive replies ("PONG") and other plain text land here
            logger.debug("Dropping non-JSON frame: %.40r", raw)
            return

        events = payload if isinstance(payload, list) else [payload]
        for event in events:
            if isinstance(event, dict):
                self._dispatch(event)
            else:
                logger.debug("Dropping non-object event: %.40r", event)

    # --- Internal ---

    async def _start(self, instrument_id: str) -> None:
        self._instrument_id = instrument_id
        self._state = StreamConnectionState.CONNECTING

        try:
            ws = await self._open()
        except TRANSPORT_ERRORS as e:
            logger.warning("Stream connect failed for %s: %s", instrument_id, e)
            self._state = StreamConnectionState.DISCONNECTED
            return
        self._ws = ws

        subscribe = {"type": "market", "assets_ids": [instrument_id]}
        try:
            await ws.send(json.dumps(subscribe))
        except TRANSPORT_ERRORS as e:
            logger.warning("Stream subscribe failed for %s: %s", instrument_id, e)
            self._state = StreamConnectionState.DISCONNECTED
            await self._close_transport()
            return

        self._state = StreamConnectionState.CONNECTED
        self._recv_task = asyncio.create_task(self._receive_loop(ws), name="clob-stream-receive")
        self._ping_task = asyncio.create_task(self._keepalive_loop(ws), name="clob-stream-keepalive")
        logger.info("Stream subscribed: %s (%s)", instrument_id, self._ws_url)

    async def _teardown(self) -> None:
        tasks = [t for t in (self._ping_task, self._recv_task) if t is not None]
        self._ping_task = None
        self._recv_task = None
        for task in tasks:
            if not task.done():
                task.cancel()
        for task in tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass

        had_connection = self._ws is not None
        await self._close_transport()
        self._engine.clear()
        self._last_trade_price = None
        self._state = StreamConnectionState.DISCONNECTED
        if had_connection:
            logger.info("Stream disconnected: %s", self._instrument_id)
        self._instrument_id = None

    async def _open(self) -> Any:
        # Liveness is our own text PING, not protocol-level pings
        return await websockets.connect(self._ws_url, ping_interval=None, close_timeout=5)

    def _is_foreign(self, item: dict) -> bool:
        """True when the item names an asset other than the subscribed one."""
        if self._instrument_id is None:
            return False
        asset_id = item.get("asset_id")
        return asset_id is not None and asset_id != self._instrument_id

    def _dispatch(self, event: dict) -> None:
        event_type = event.get("event_type")
        if self._is_foreign(event):
            logger.debug("Ignoring %s for asset %r", event_type, event.get("asset_id"))
            return
        if event_type == "book":
            raw_bids, raw_asks = book_sides(event, prefer_aliases=True)
            self._engine.apply_snapshot(parse_levels(raw_bids), parse_levels(raw_asks))
        elif event_type == "price_change":
            raw_changes = event.get("changes")
            if raw_changes is None:
                raw_changes = event.get("price_changes")
            if isinstance(raw_changes, list):
                # Batches can carry entries for the sibling outcome token
                raw_changes = [c for c in raw_changes if not (isinstance(c, dict) and self._is_foreign(c))]
            self._engine.apply_changes(parse_price_changes(raw_changes))
        elif event_type == "last_trade_price":
            price = parse_number(event.get("price"))
            if price is not None:
                self._last_trade_price = price
        else:
            logger.debug("Ignoring event_type=%r", event_type)

    async def _receive_loop(self, ws: Any) -> None:
        """Pump inbound frames until the transport fails or the task is cancelled."""
        while True:
            try:
                raw = await ws.recv()
            except TRANSPORT_ERRORS as e:
                logger.warning("Stream receive failed for %s: %s", self._instrument_id, e)
                self._state = StreamConnectionState.DISCONNECTED
                if self._ping_task is not None and not self._ping_task.done():
                    self._ping_task.cancel()
                return
            try:
                self.handle_message(raw)
            except Exception:
                logger.exception("Stream dispatch failed")

    async def _keepalive_loop(self, ws: Any) -> None:
        while True:
            await asyncio.sleep(self._ping_interval)
            try:
                await ws.send(PING_MESSAGE)
            except TRANSPORT_ERRORS as e:
                # The receive loop observes the broken transport and flips state
                logger.debug("Stream keep-alive send failed: %s", e)
                return

    async def _close_transport(self) -> None:
        ws, self._ws = self._ws, None
        if ws is None:
            return
        try:
            await ws.close(code=NORMAL_CLOSURE)
        except TRANSPORT_ERRORS as e:
            logger.debug("Stream close raised: %s", e)
