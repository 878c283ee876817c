"""
Bybit market data client.

Contains: get_kline, get_mark_price_kline, get_index_price_kline,
get_premium_index_price_kline, get_instruments_info, get_orderbook,
get_tickers, get_funding_rate_history, get_public_trade_history,
get_open_interest, get_historical_volatility, get_insurance, get_risk_limit,
get_option_delivery_price, get_long_short_ratio, get_server_time

Every method is a signed GET that returns the dispatcher's result as-is.
Query parameters are forwarded untouched; Bybit validates them.
"""

from typing import Any, Mapping, Optional, Protocol

from .dispatcher import Dispatcher, HttpMethod, create_dispatcher
from .endpoints import MarketEndpoint, resolve

Query = Optional[Mapping[str, str]]


class Market(Protocol):
    """Market data capability: one coroutine per V5 market endpoint."""

    async def get_server_time(self, query: Query = None) -> Any: ...
    async def get_kline(self, query: Query = None) -> Any: ...
    async def get_mark_price_kline(self, query: Query = None) -> Any: ...
    async def get_index_price_kline(self, query: Query = None) -> Any: ...
    async def get_premium_index_price_kline(self, query: Query = None) -> Any: ...
    async def get_instruments_info(self, query: Query = None) -> Any: ...
    async def get_orderbook(self, query: Query = None) -> Any: ...
    async def get_tickers(self, query: Query = None) -> Any: ...
    async def get_funding_rate_history(self, query: Query = None) -> Any: ...
    async def get_public_trade_history(self, query: Query = None) -> Any: ...
    async def get_open_interest(self, query: Query = None) -> Any: ...
    async def get_historical_volatility(self, query: Query = None) -> Any: ...
    async def get_insurance(self, query: Query = None) -> Any: ...
    async def get_risk_limit(self, query: Query = None) -> Any: ...
    async def get_option_delivery_price(self, query: Query = None) -> Any: ...
    async def get_long_short_ratio(self, query: Query = None) -> Any: ...


class MarketHTTP:
    """
    Market implementation over a shared Dispatcher.

    Holds nothing but the dispatcher reference; any number of clients and
    concurrent calls may share one dispatcher.

    Usage:
        dispatcher = PybitDispatcher(api_key="...", api_secret="...")
        market = MarketHTTP(dispatcher)
        result = await market.get_kline(
            {"category": "linear", "symbol": "BTCUSDT", "interval": "60"}
        )
    """

    __slots__ = ("_dispatcher",)

    def __init__(self, dispatcher: Dispatcher):
        self._dispatcher = dispatcher

    @property
    def dispatcher(self) -> Dispatcher:
        return self._dispatcher

    async def _get(self, operation: MarketEndpoint, query: Query) -> Any:
        return await self._dispatcher.execute(
            HttpMethod.GET, resolve(operation), dict(query or {}), True
        )

    async def get_server_time(self, query: Query = None) -> Any:
        """Get Bybit server time (timeSecond, timeNano)."""
        return await self._get(MarketEndpoint.GET_SERVER_TIME, query)

    async def get_kline(self, query: Query = None) -> Any:
        """
        Query the kline data. Charts are returned in groups based on the
        requested interval.

        Required args:
            category (string): Product type. spot,linear,inverse
            symbol (string): Symbol name
            interval (string): Kline interval. 1,3,5,15,30,60,120,240,360,720,D,W,M

        Returns:
            Request result as dict.

        Additional information:
            https://bybit-exchange.github.io/docs/v5/market/kline
        """
        return await self._get(MarketEndpoint.GET_KLINE, query)

    async def get_mark_price_kline(self, query: Query = None) -> Any:
        """
        Query the mark price kline data.

        Required args:
            category (string): Product type. linear,inverse
            symbol (string): Symbol name
            interval (string): Kline interval. 1,3,5,15,30,60,120,240,360,720,D,W,M

        Additional information:
            https://bybit-exchange.github.io/docs/v5/market/mark-kline
        """
        return await self._get(MarketEndpoint.GET_MARK_PRICE_KLINE, query)

    async def get_index_price_kline(self, query: Query = None) -> Any:
        """
        Query the index price kline data.

        Required args:
            category (string): Product type. linear,inverse
            symbol (string): Symbol name
            interval (string): Kline interval. 1,3,5,15,30,60,120,240,360,720,D,W,M

        Additional information:
            https://bybit-exchange.github.io/docs/v5/market/index-kline
        """
        return await self._get(MarketEndpoint.GET_INDEX_PRICE_KLINE, query)

    async def get_premium_index_price_kline(self, query: Query = None) -> Any:
        """
        Query the premium index price kline data.

        Required args:
            category (string): Product type. linear
            symbol (string): Symbol name
            interval (string): Kline interval

        Additional information:
            https://bybit-exchange.github.io/docs/v5/market/preimum-index-kline
        """
        return await self._get(MarketEndpoint.GET_PREMIUM_INDEX_PRICE_KLINE, query)

    async def get_instruments_info(self, query: Query = None) -> Any:
        """
        Query the list of instruments trading online.

        Required args:
            category (string): Product type. spot,linear,inverse,option

        Additional information:
            https://bybit-exchange.github.io/docs/v5/market/instrument
        """
        return await self._get(MarketEndpoint.GET_INSTRUMENTS_INFO, query)

    async def get_orderbook(self, query: Query = None) -> Any:
        """
        Query orderbook depth.

        Required args:
            category (string): Product type. spot,linear,inverse,option
            symbol (string): Symbol name

        Additional information:
            https://bybit-exchange.github.io/docs/v5/market/orderbook
        """
        return await self._get(MarketEndpoint.GET_ORDERBOOK, query)

    async def get_tickers(self, query: Query = None) -> Any:
        """
        Query the latest price snapshot, best bid/ask price, and trading
        volume in the last 24 hours.

        Required args:
            category (string): Product type. spot,linear,inverse,option

        Additional information:
            https://bybit-exchange.github.io/docs/v5/market/tickers
        """
        return await self._get(MarketEndpoint.GET_TICKERS, query)

    async def get_funding_rate_history(self, query: Query = None) -> Any:
        """
        Query historical funding rate. Each symbol has a different funding
        interval; see get_instruments_info for it.

        Required args:
            category (string): Product type. linear,inverse
            symbol (string): Symbol name

        Additional information:
            https://bybit-exchange.github.io/docs/v5/market/history-fund-rate
        """
        return await self._get(MarketEndpoint.GET_FUNDING_RATE_HISTORY, query)

    async def get_public_trade_history(self, query: Query = None) -> Any:
        """
        Query recent public trades.

        Required args:
            category (string): Product type. spot,linear,inverse,option
            symbol (string): Symbol name

        Additional information:
            https://bybit-exchange.github.io/docs/v5/market/recent-trade
        """
        return await self._get(MarketEndpoint.GET_PUBLIC_TRADING_HISTORY, query)

    async def get_open_interest(self, query: Query = None) -> Any:
        """
        Get open interest of each symbol.

        Required args:
            category (string): Product type. linear,inverse
            symbol (string): Symbol name
            intervalTime (string): Interval. 5min,15min,30min,1h,4h,1d

        Additional information:
            https://bybit-exchange.github.io/docs/v5/market/open-interest
        """
        return await self._get(MarketEndpoint.GET_OPEN_INTEREST, query)

    async def get_historical_volatility(self, query: Query = None) -> Any:
        """
        Query option historical volatility.

        Required args:
            category (string): Product type. option

        Additional information:
            https://bybit-exchange.github.io/docs/v5/market/iv
        """
        return await self._get(MarketEndpoint.GET_HISTORICAL_VOLATILITY, query)

    async def get_insurance(self, query: Query = None) -> Any:
        """Query insurance pool data (BTC/USDT/USDC etc), updated every 24 hours."""
        return await self._get(MarketEndpoint.GET_INSURANCE, query)

    async def get_risk_limit(self, query: Query = None) -> Any:
        """Query risk limit tiers of futures."""
        return await self._get(MarketEndpoint.GET_RISK_LIMIT, query)

    async def get_option_delivery_price(self, query: Query = None) -> Any:
        """
        Query option delivery price.

        Required args:
            category (string): Product type. option

        Additional information:
            https://bybit-exchange.github.io/docs/v5/market/delivery-price
        """
        return await self._get(MarketEndpoint.GET_OPTION_DELIVERY_PRICE, query)

    async def get_long_short_ratio(self, query: Query = None) -> Any:
        """
        Query the long/short account ratio.

        Required args:
            category (string): Product type. linear,inverse
            symbol (string): Symbol name
            period (string): Data period. 5min,15min,30min,1h,4h,1d

        Additional information:
            https://bybit-exchange.github.io/docs/v5/market/long-short-ratio
        """
        return await self._get(MarketEndpoint.GET_LONG_SHORT_RATIO, query)


def create_market_client(config=None) -> MarketHTTP:
    """Build a MarketHTTP wired to a PybitDispatcher from configuration."""
    return MarketHTTP(create_dispatcher(config))
