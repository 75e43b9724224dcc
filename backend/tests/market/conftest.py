"""Fixtures for market data tests.

The REST upstream is replaced with an ``httpx.MockTransport`` and the stream
transport with an in-memory fake websocket (see ``fakes.py``), so no test
touches the network.
"""

import pytest

from fakes import FakeWebSocket, default_routes


@pytest.fixture
def fake_ws():
    return FakeWebSocket()


@pytest.fixture
def upstream_routes():
    return default_routes()
