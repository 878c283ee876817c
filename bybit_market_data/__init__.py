"""
bybit_market_data - Bybit V5 market data client

Async, typed access to every Bybit V5 market data REST endpoint.
Requests are signed and executed through the official pybit library.
"""

__version__ = "1.0.0"

from .config import get_config
from .exchanges import (
    MarketEndpoint,
    Market,
    MarketHTTP,
    PybitDispatcher,
    BybitAPIError,
    create_market_client,
)

__all__ = [
    "__version__",
    "get_config",
    "MarketEndpoint",
    "Market",
    "MarketHTTP",
    "PybitDispatcher",
    "BybitAPIError",
    "create_market_client",
]
