"""
Request dispatch for Bybit REST calls.

Defines the contract every market data client consumes (Dispatcher),
the error taxonomy dispatchers raise (BybitAPIError and subclasses) and
the production implementation backed by the official pybit library
(https://github.com/bybit-exchange/pybit).

pybit's HTTP manager owns signing, retries and retCode checks. This module
adds:
- Off-loop execution so async callers never block the event loop
- Client-side rate limiting
- Response envelope unwrapping and rate limit header tracking
- Translation of pybit/requests exceptions into one taxonomy
"""

import asyncio
import threading
import time
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Protocol, Union, runtime_checkable

import requests
from pybit.unified_trading import HTTP
from pybit.exceptions import FailedRequestError, InvalidRequestError

from ..config import BybitConfig, RateLimitConfig, get_config
from ..utils.logger import get_logger
from ..utils.rate_limiter import create_bybit_limiters
from .endpoints import MarketEndpoint, resolve


class HttpMethod(str, Enum):
    GET = "GET"
    POST = "POST"


@dataclass(frozen=True)
class DispatchRequest:
    """A fully specified request, immutable once handed to a dispatcher."""

    method: HttpMethod
    path: str
    params: Mapping[str, str]
    authenticated: bool = True

    @classmethod
    def build(cls, method: Union[HttpMethod, str], path: str,
              params: Optional[Mapping[str, str]], authenticated: bool) -> "DispatchRequest":
        """Build a request holding a read-only copy of params."""
        return cls(
            method=HttpMethod(method),
            path=path,
            params=MappingProxyType(dict(params or {})),
            authenticated=authenticated,
        )


@runtime_checkable
class Dispatcher(Protocol):
    """
    Executes one REST exchange and returns the decoded result.

    Implementations are shared between clients and must tolerate
    concurrent execute() calls. Failures are raised as BybitAPIError.
    """

    async def execute(
        self,
        method: HttpMethod,
        path: str,
        params: Mapping[str, str],
        authenticated: bool,
    ) -> Any:
        ...


# ==================== Errors ====================

class BybitAPIError(Exception):
    """Base class for every failure raised by a dispatcher."""

    def __init__(self, code: int, message: str, response: dict = None, original: Exception = None):
        self.code = code
        self.message = message
        self.response = response
        self.original = original
        super().__init__(f"Bybit API Error {code}: {message}")

    @classmethod
    def from_pybit(cls, error: Exception) -> "BybitAPIError":
        """
        Classify a pybit or requests exception.

        FailedRequestError carries the HTTP status, InvalidRequestError
        carries the V5 retCode.
        """
        code = getattr(error, "status_code", -1)
        message = str(error.message) if hasattr(error, "message") else str(error)

        if isinstance(error, InvalidRequestError):
            if code in AUTH_RET_CODES:
                error_cls = AuthenticationError
            elif code in RATE_LIMIT_RET_CODES:
                error_cls = RateLimitError
            else:
                error_cls = BusinessError
        elif isinstance(error, FailedRequestError):
            error_cls = HTTP_STATUS_ERRORS.get(code, TransportError)
        elif isinstance(error, PermissionError):
            # pybit raises this when signing without keys
            error_cls = AuthenticationError
        else:
            error_cls = TransportError

        return error_cls(code=code, message=message, response=None, original=error)


class TransportError(BybitAPIError):
    """Connection, DNS, TLS, timeout or unexpected HTTP status."""


class AuthenticationError(BybitAPIError):
    """Missing, invalid or unauthorized API credentials."""


class RateLimitError(BybitAPIError):
    """Request rejected by Bybit rate limiting."""


class MalformedResponseError(BybitAPIError):
    """Response body could not be decoded into the V5 envelope."""


class BusinessError(BybitAPIError):
    """Bybit accepted the request but reported a non-zero retCode."""


# retCodes: https://bybit-exchange.github.io/docs/v5/error
AUTH_RET_CODES = frozenset({10003, 10004, 10005, 10007, 10009, 10010, 33004})
RATE_LIMIT_RET_CODES = frozenset({10006, 10018})

# pybit defaults minus 10006, so rate limiting surfaces as RateLimitError
PYBIT_RETRY_CODES = frozenset({10002, 30034, 30035, 130035, 130150})

HTTP_STATUS_ERRORS = {
    401: AuthenticationError,
    403: RateLimitError,
    429: RateLimitError,
    # pybit reports undecodable JSON as 409
    409: MalformedResponseError,
}


# ==================== pybit dispatcher ====================

class PybitDispatcher:
    """
    Dispatcher backed by a pybit HTTP session.

    One instance is meant to be shared by every client in the process.
    Construction performs no I/O.

    Usage:
        dispatcher = PybitDispatcher(api_key="...", api_secret="...")
        result = await dispatcher.execute(
            HttpMethod.GET, "/v5/market/tickers", {"category": "spot"}, True
        )
    """

    def __init__(
        self,
        api_key: str = None,
        api_secret: str = None,
        bybit_config: BybitConfig = None,
        rate_limit_config: RateLimitConfig = None,
        session: HTTP = None,
    ):
        """
        Initialize the dispatcher.

        Args:
            api_key: API key used to sign requests
            api_secret: API secret used to sign requests
            bybit_config: Environment and request options (defaults apply if None)
            rate_limit_config: Client-side request budgets (defaults apply if None)
            session: Prebuilt pybit HTTP session, mainly for tests
        """
        self.bybit_config = bybit_config or BybitConfig()
        rate_limits = rate_limit_config or RateLimitConfig()

        self._session = session or HTTP(
            testnet=self.bybit_config.testnet,
            demo=self.bybit_config.use_demo,
            api_key=api_key or None,
            api_secret=api_secret or None,
            recv_window=self.bybit_config.recv_window,
            timeout=self.bybit_config.timeout,
            max_retries=self.bybit_config.max_retries,
            retry_delay=self.bybit_config.retry_delay,
            retry_codes=set(PYBIT_RETRY_CODES),
            log_requests=self.bybit_config.log_requests,
            return_response_headers=True,
        )

        self.logger = get_logger()

        self._limiters = create_bybit_limiters(rate_limits.public_rps, rate_limits.private_rps)

        self._status_lock = threading.Lock()
        self._rate_limit_status = {
            "remaining": None,
            "limit": None,
            "reset_timestamp": None,
        }
        self._time_offset_ms = 0

        auth_status = "authenticated" if api_key else "no keys"
        self.logger.info(
            f"PybitDispatcher initialized: mode={self.bybit_config.get_mode_name()}, "
            f"base_url={self._session.endpoint}, auth={auth_status}"
        )

    async def execute(
        self,
        method: HttpMethod,
        path: str,
        params: Mapping[str, str],
        authenticated: bool = True,
    ) -> Any:
        """Run one request on a worker thread and return its result."""
        request = DispatchRequest.build(method, path, params, authenticated)
        return await asyncio.to_thread(self._submit, request)

    def _submit(self, request: DispatchRequest) -> Any:
        """Blocking part of execute(): limiter, pybit call, unwrapping."""
        self._limiters.acquire("private" if request.authenticated else "public")

        started = time.perf_counter()
        try:
            try:
                response = self._session._submit_request(
                    method=request.method.value,
                    path=f"{self._session.endpoint}{request.path}",
                    query=dict(request.params),
                    auth=request.authenticated,
                )
            except (AttributeError, TypeError, ValueError) as e:
                # pybit indexes the decoded body before checking its type
                raise MalformedResponseError(
                    code=-1, message=f"Undecodable V5 envelope: {e}", original=e,
                ) from e
            result = self._extract_result(response)
        except BybitAPIError as e:
            self._log_request(request, started, type(e).__name__, code=e.code)
            raise
        except (FailedRequestError, InvalidRequestError, PermissionError,
                requests.RequestException) as e:
            error = BybitAPIError.from_pybit(e)
            self._log_request(request, started, type(error).__name__, code=error.code)
            raise error from e

        self._log_request(request, started, "OK")
        return result

    def _log_request(self, request: DispatchRequest, started: float, status: str, **fields):
        elapsed_ms = (time.perf_counter() - started) * 1000
        self.logger.request(
            request.method.value, request.path, status, elapsed_ms,
            params=request.params, **fields,
        )

    def _update_rate_limit_status(self, response_headers):
        """Update rate limit tracking from response headers."""
        if response_headers:
            with self._status_lock:
                self._rate_limit_status["remaining"] = response_headers.get("X-Bapi-Limit-Status")
                self._rate_limit_status["limit"] = response_headers.get("X-Bapi-Limit")
                self._rate_limit_status["reset_timestamp"] = response_headers.get("X-Bapi-Limit-Reset-Timestamp")

    def _extract_result(self, response) -> Any:
        """Extract result from pybit response tuple or dict.

        When return_response_headers=True, pybit returns:
        - 3-tuple: (data_dict, timedelta_duration, headers_dict)
        The middle element (timedelta) is the request duration - ignore it.
        """
        if isinstance(response, tuple):
            data = response[0]
            headers = response[2] if len(response) >= 3 else None
            self._update_rate_limit_status(headers)
        else:
            data = response

        if not isinstance(data, dict):
            raise MalformedResponseError(
                code=-1,
                message=f"Expected a JSON object envelope, got {type(data).__name__}",
                response=None,
            )
        return data.get("result", {})

    # ==================== Utility Methods ====================

    async def sync_server_time(self) -> int:
        """
        Measure the offset between local time and Bybit server time.

        Returns:
            Offset in milliseconds (server minus local)
        """
        before = int(time.time() * 1000)
        result = await self.execute(
            HttpMethod.GET, resolve(MarketEndpoint.GET_SERVER_TIME), {}, authenticated=False
        )
        after = int(time.time() * 1000)

        server_time_ms = int(result.get("timeNano", "0")) // 1_000_000
        if server_time_ms == 0:
            server_time_ms = int(result.get("timeSecond", "0")) * 1000

        self._time_offset_ms = server_time_ms - (before + after) // 2

        if abs(self._time_offset_ms) > 5000:
            self.logger.warning(
                f"Large time offset detected: {self._time_offset_ms}ms. "
                f"Consider syncing your system clock."
            )
        else:
            self.logger.debug(f"Server time offset: {self._time_offset_ms}ms")
        return self._time_offset_ms

    def get_time_offset(self) -> int:
        """Get calculated time offset from server in ms."""
        return self._time_offset_ms

    def get_rate_limit_status(self) -> Dict:
        """Get current rate limit status from last response."""
        with self._status_lock:
            return self._rate_limit_status.copy()

    def close(self):
        """Close the underlying HTTP connection pool."""
        self._session.client.close()

    @property
    def session(self) -> HTTP:
        """Direct access to pybit HTTP session for advanced usage."""
        return self._session


def create_dispatcher(config=None) -> PybitDispatcher:
    """Build a PybitDispatcher from configuration (global config if None)."""
    config = config or get_config()
    api_key, api_secret = config.bybit.get_credentials()
    return PybitDispatcher(
        api_key=api_key,
        api_secret=api_secret,
        bybit_config=config.bybit,
        rate_limit_config=config.rate_limit,
    )
