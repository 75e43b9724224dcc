"""Factory for creating an instrument tracker from the environment."""

from __future__ import annotations

import logging
import os

from .book import BookMergeEngine
from .cache import FallbackCache
from .client import DEFAULT_REST_URL, MarketDataClient
from .reconciler import (
    DEFAULT_HISTORY_EVERY,
    DEFAULT_HISTORY_INTERVAL,
    DEFAULT_POLL_INTERVAL,
    ReconciliationLoop,
)
from .stream import DEFAULT_PING_INTERVAL, DEFAULT_WS_URL, StreamSession
from .tracker import InstrumentTracker

logger = logging.getLogger(__name__)


def _env_str(name: str, default: str) -> str:
    value = os.environ.get(name, "").strip()
    return value or default


def _env_positive(name: str, default: float | None, cast=float) -> float | None:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        value = cast(raw)
    except ValueError:
        logger.warning("Ignoring %s=%r: not a number", name, raw)
        return default
    if value <= 0:
        logger.warning("Ignoring %s=%r: must be positive", name, raw)
        return default
    return value


def create_tracker() -> InstrumentTracker:
    """Create a tracker wired from environment variables.

    - CLOB_REST_URL          REST base URL
    - CLOB_WS_URL            market channel WebSocket URL
    - CLOB_POLL_INTERVAL     seconds between reconciliation cycles (15)
    - CLOB_PING_INTERVAL     seconds between stream keep-alive pings (15)
    - CLOB_HISTORY_EVERY     refresh price history every Nth cycle (4)
    - CLOB_HISTORY_INTERVAL  prices-history interval parameter ("1d")
    - CLOB_HTTP_TIMEOUT      HTTP timeout in seconds (httpx default when unset)

    Returns an idle tracker. Caller must await tracker.select_instrument(id).
    """
    rest_url = _env_str("CLOB_REST_URL", DEFAULT_REST_URL)
    ws_url = _env_str("CLOB_WS_URL", DEFAULT_WS_URL)

    client = MarketDataClient(
        base_url=rest_url,
        timeout=_env_positive("CLOB_HTTP_TIMEOUT", None),
    )
    cache = FallbackCache()
    session = StreamSession(
        engine=BookMergeEngine(),
        ws_url=ws_url,
        ping_interval=_env_positive("CLOB_PING_INTERVAL", DEFAULT_PING_INTERVAL),
    )
    loop = ReconciliationLoop(
        client=client,
        cache=cache,
        poll_interval=_env_positive("CLOB_POLL_INTERVAL", DEFAULT_POLL_INTERVAL),
        history_every=_env_positive("CLOB_HISTORY_EVERY", DEFAULT_HISTORY_EVERY, cast=int),
        history_interval=_env_str("CLOB_HISTORY_INTERVAL", DEFAULT_HISTORY_INTERVAL),
    )

    logger.info("Order book tracker: REST %s, stream %s", rest_url, ws_url)
    return InstrumentTracker(client=client, session=session, loop=loop, cache=cache)
