"""
Bybit V5 market data endpoint catalog.

Every logical market-data operation is a member of MarketEndpoint and its
value is the wire path published by Bybit. The enum is closed: adding an
operation means adding a member here and a method on the Market client.

Reference: https://bybit-exchange.github.io/docs/v5/market/time
"""

from enum import Enum, unique


@unique
class MarketEndpoint(str, Enum):
    """Logical market-data operations and their V5 wire paths."""

    GET_SERVER_TIME = "/v5/market/time"
    GET_KLINE = "/v5/market/kline"
    GET_MARK_PRICE_KLINE = "/v5/market/mark-price-kline"
    GET_INDEX_PRICE_KLINE = "/v5/market/index-price-kline"
    GET_PREMIUM_INDEX_PRICE_KLINE = "/v5/market/premium-index-price-kline"
    GET_INSTRUMENTS_INFO = "/v5/market/instruments-info"
    GET_ORDERBOOK = "/v5/market/orderbook"
    GET_TICKERS = "/v5/market/tickers"
    GET_FUNDING_RATE_HISTORY = "/v5/market/funding/history"
    GET_PUBLIC_TRADING_HISTORY = "/v5/market/recent-trade"
    GET_OPEN_INTEREST = "/v5/market/open-interest"
    GET_HISTORICAL_VOLATILITY = "/v5/market/historical-volatility"
    GET_INSURANCE = "/v5/market/insurance"
    GET_RISK_LIMIT = "/v5/market/risk-limit"
    GET_OPTION_DELIVERY_PRICE = "/v5/market/delivery-price"
    GET_LONG_SHORT_RATIO = "/v5/market/account-ratio"

    def __str__(self) -> str:
        return self.value


def resolve(operation: MarketEndpoint) -> str:
    """Return the wire path for a logical operation."""
    return operation.value
