"""
Exchange client modules.

Provides the Bybit V5 market data catalog, client and request dispatch.
Requests are executed via the official pybit library.
"""

from .endpoints import MarketEndpoint, resolve
from .dispatcher import (
    Dispatcher,
    DispatchRequest,
    HttpMethod,
    PybitDispatcher,
    create_dispatcher,
    BybitAPIError,
    TransportError,
    AuthenticationError,
    RateLimitError,
    MalformedResponseError,
    BusinessError,
)
from .bybit_market import Market, MarketHTTP, create_market_client

__all__ = [
    # Catalog
    "MarketEndpoint",
    "resolve",
    # Client
    "Market",
    "MarketHTTP",
    "create_market_client",
    # Dispatch
    "Dispatcher",
    "DispatchRequest",
    "HttpMethod",
    "PybitDispatcher",
    "create_dispatcher",
    # Errors
    "BybitAPIError",
    "TransportError",
    "AuthenticationError",
    "RateLimitError",
    "MalformedResponseError",
    "BusinessError",
]
