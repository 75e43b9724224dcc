"""HTTP and SSE endpoints over the instrument tracker."""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import AsyncGenerator

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import StreamingResponse

from .tracker import InstrumentTracker

logger = logging.getLogger(__name__)


def create_book_router(tracker: InstrumentTracker) -> APIRouter:
    """Create the order book router with a reference to the tracker.

    This factory pattern lets us inject the tracker without globals.
    """
    router = APIRouter(prefix="/api/book", tags=["book"])

    @router.get("")
    async def get_book() -> dict:
        """Current displayed book (live, else polled fallback) plus connection status."""
        return tracker.to_dict()

    @router.get("/history")
    async def get_history() -> dict:
        return {
            "instrument_id": tracker.instrument_id,
            "history": [point.to_dict() for point in tracker.price_history()],
        }

    @router.put("/instrument/{instrument_id}")
    async def select_instrument(instrument_id: str) -> dict:
        """Switch the tracked instrument. The previous one is fully torn down first."""
        try:
            await tracker.select_instrument(instrument_id)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e)) from e
        return tracker.to_dict()

    @router.delete("/instrument")
    async def clear_instrument() -> dict:
        await tracker.teardown()
        return tracker.to_dict()

    @router.get("/stream")
    async def stream_book(request: Request) -> StreamingResponse:
        """SSE endpoint for live book updates.

        Emits the full consumer view whenever either the stream or the
        poller publishes:

            data: {"instrument_id": "...", "connection_state": "connected", "book": {...}, ...}
        """
        return StreamingResponse(
            _generate_events(tracker, request),
            media_type="text/event-stream",
            headers={
                "Cache-Control": "no-cache",
                "Connection": "keep-alive",
                "X-Accel-Buffering": "no",  # Disable nginx buffering if proxied
            },
        )

    return router


async def _generate_events(
    tracker: InstrumentTracker,
    request: Request,
    interval: float = 0.5,
) -> AsyncGenerator[str, None]:
    """Yield SSE-formatted book events until the client disconnects."""
    # Tell the client to retry after 1 second if the connection drops
    yield "retry: 1000\n\n"

    last_version = -1
    last_state = None
    client_ip = request.client.host if request.client else "unknown"
    logger.info("SSE client connected: %s", client_ip)

    try:
        while True:
            if await request.is_disconnected():
                logger.info("SSE client disconnected: %s", client_ip)
                break

            current_version = tracker.version
            current_state = tracker.connection_state()
            if current_version != last_version or current_state != last_state:
                last_version = current_version
                last_state = current_state
                yield f"data: {json.dumps(tracker.to_dict())}\n\n"

            await asyncio.sleep(interval)
    except asyncio.CancelledError:
        logger.info("SSE stream cancelled for: %s", client_ip)
