"""Async REST client for the Polymarket CLOB market-data endpoints."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from .models import OrderBookSnapshot, PricePoint
from .parsing import book_sides, parse_history, parse_levels, parse_number

logger = logging.getLogger(__name__)

DEFAULT_REST_URL = "https://clob.polymarket.com"


class FetchError(Exception):
    """A whole REST call failed: transport error, HTTP error status, or an undecodable body."""

    def __init__(self, endpoint: str, cause: BaseException) -> None:
        super().__init__(f"{endpoint}: {cause!r}")
        self.endpoint = endpoint
        self.cause = cause


class MarketDataClient:
    """Pulls order book, price history and last trade for one token id.

    Parsing is best-effort per item: a malformed level or history point is
    dropped, and only a response that cannot be decoded at all raises
    FetchError. Callers decide whether that is fatal.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_REST_URL,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        kwargs: dict[str, Any] = {"base_url": self.base_url, "headers": {"Accept": "application/json"}}
        if timeout is not None:
            kwargs["timeout"] = timeout
        if transport is not None:
            kwargs["transport"] = transport
        self._client = httpx.AsyncClient(**kwargs)

    async def __aenter__(self) -> MarketDataClient:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def fetch_order_book(self, instrument_id: str) -> OrderBookSnapshot:
        payload = await self._get_json("/book", {"token_id": instrument_id})
        raw_bids, raw_asks = book_sides(payload)
        return OrderBookSnapshot.from_sides(parse_levels(raw_bids), parse_levels(raw_asks))

    async def fetch_price_history(self, instrument_id: str, interval: str = "1d") -> list[PricePoint]:
        payload = await self._get_json(
            "/prices-history", {"market": instrument_id, "interval": interval}
        )
        return parse_history(payload.get("history"))

    async def fetch_last_trade_price(self, instrument_id: str) -> float | None:
        """Last traded price, or None when the field is missing or not numeric."""
        payload = await self._get_json("/last-trade-price", {"token_id": instrument_id})
        return parse_number(payload.get("price"))

    # --- Internal ---

    async def _get_json(self, endpoint: str, params: dict[str, str]) -> dict:
        try:
            response = await self._client.get(endpoint, params=params)
            response.raise_for_status()
            payload = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.debug("GET %s failed: %s", endpoint, e)
            raise FetchError(endpoint, e) from e

        if not isinstance(payload, dict):
            cause = TypeError(f"expected JSON object, got {type(payload).__name__}")
            raise FetchError(endpoint, cause)
        return payload
