"""Order book tracking for a single Polymarket CLOB outcome token.

Public API:
    OrderBookSnapshot     - Immutable, sorted view of both book sides
    PriceLevel            - One (price, size) level
    PricePoint            - One price-history point
    StreamConnectionState - Stream session connection state
    BookMergeEngine       - Snapshot/incremental merge over price-keyed maps
    MarketDataClient      - Async REST client (book, history, last trade)
    FetchError            - A whole REST call failed
    StreamSession         - WebSocket feed into a BookMergeEngine
    ReconciliationLoop    - Fixed-cadence REST poller into a FallbackCache
    FallbackCache         - Polled book / last trade / history cells
    InstrumentTracker     - Consumer-facing façade over all of the above
    create_tracker        - Factory wired from environment variables
    create_book_router    - FastAPI router factory for the HTTP/SSE endpoints
"""

from .api import create_book_router
from .book import BookMergeEngine
from .cache import FallbackCache
from .client import FetchError, MarketDataClient
from .factory import create_tracker
from .models import OrderBookSnapshot, PriceLevel, PricePoint, StreamConnectionState
from .reconciler import ReconciliationLoop
from .stream import StreamSession
from .tracker import InstrumentTracker

__all__ = [
    "OrderBookSnapshot",
    "PriceLevel",
    "PricePoint",
    "StreamConnectionState",
    "BookMergeEngine",
    "MarketDataClient",
    "FetchError",
    "StreamSession",
    "ReconciliationLoop",
    "FallbackCache",
    "InstrumentTracker",
    "create_tracker",
    "create_book_router",
]
