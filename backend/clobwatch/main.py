"""FastAPI application exposing the order book tracker."""

from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI

from .market import create_book_router, create_tracker

logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    """Build the app. The tracker lives for the app's lifespan.

    If CLOB_TOKEN_ID is set, that instrument is selected on startup.
    """
    tracker = create_tracker()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        token_id = os.environ.get("CLOB_TOKEN_ID", "").strip()
        if token_id:
            await tracker.select_instrument(token_id)
        else:
            logger.info("No CLOB_TOKEN_ID set; waiting for an instrument selection")
        yield
        await tracker.aclose()

    app = FastAPI(title="clobwatch", lifespan=lifespan)
    app.state.tracker = tracker
    app.include_router(create_book_router(tracker))
    return app
