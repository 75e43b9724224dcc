"""Tests for the FastAPI application factory."""

import os
from unittest.mock import AsyncMock, patch

from fastapi.testclient import TestClient

from clobwatch.main import create_app
from clobwatch.market.tracker import InstrumentTracker


class TestCreateApp:
    def test_idle_without_token(self):
        """Test the app starts with no instrument when CLOB_TOKEN_ID is unset."""
        with patch.dict(os.environ, {}, clear=True):
            app = create_app()
            with TestClient(app) as client:
                body = client.get("/api/book").json()

        assert isinstance(app.state.tracker, InstrumentTracker)
        assert body["instrument_id"] is None

    def test_selects_token_on_startup(self):
        """Test CLOB_TOKEN_ID is selected during lifespan startup and torn down on exit."""
        with patch.dict(os.environ, {"CLOB_TOKEN_ID": "tok"}, clear=True):
            app = create_app()
            tracker = app.state.tracker
            with patch.object(tracker, "select_instrument", AsyncMock()) as select, patch.object(
                tracker, "aclose", AsyncMock()
            ) as aclose:
                with TestClient(app):
                    select.assert_awaited_once_with("tok")
                aclose.assert_awaited_once()
