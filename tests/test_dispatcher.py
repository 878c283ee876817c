"""
Tests for PybitDispatcher and the dispatch error taxonomy.

Most tests replace the pybit HTTP session with a MagicMock. TestWireResponses
keeps a real session and replaces only its HTTP send, so no request leaves
the process.
"""

import asyncio
import json
import time
from unittest.mock import MagicMock, patch

import pytest
import requests
from pybit.exceptions import FailedRequestError, InvalidRequestError

from bybit_market_data.config.config import BybitConfig, Config, RateLimitConfig
from bybit_market_data.exchanges.bybit_market import MarketHTTP
from bybit_market_data.exchanges.dispatcher import (
    AuthenticationError,
    BusinessError,
    BybitAPIError,
    DispatchRequest,
    HttpMethod,
    MalformedResponseError,
    PybitDispatcher,
    RateLimitError,
    TransportError,
    create_dispatcher,
)


def failed_request(status_code: int, message: str = "failed") -> FailedRequestError:
    return FailedRequestError(
        request="GET /v5/market/kline", message=message,
        status_code=status_code, time="12:00:00", resp_headers={},
    )


def invalid_request(ret_code: int, message: str = "invalid") -> InvalidRequestError:
    return InvalidRequestError(
        request="GET /v5/market/kline", message=message,
        status_code=ret_code, time="12:00:00", resp_headers={},
    )


class TestErrorClassification:
    """BybitAPIError.from_pybit maps every failure to one category."""

    @pytest.mark.parametrize("error,expected", [
        (invalid_request(10003), AuthenticationError),
        (invalid_request(10004), AuthenticationError),
        (invalid_request(33004), AuthenticationError),
        (invalid_request(10006), RateLimitError),
        (invalid_request(10018), RateLimitError),
        (invalid_request(10001), BusinessError),
        (invalid_request(110001), BusinessError),
        (failed_request(401), AuthenticationError),
        (failed_request(403), RateLimitError),
        (failed_request(429), RateLimitError),
        (failed_request(409), MalformedResponseError),
        (failed_request(400), TransportError),
        (failed_request(502), TransportError),
        (PermissionError("Authenticated endpoints require keys."), AuthenticationError),
        (requests.ConnectionError("DNS failure"), TransportError),
        (requests.Timeout("read timed out"), TransportError),
    ])
    def test_classification(self, error, expected):
        result = BybitAPIError.from_pybit(error)

        assert type(result) is expected
        assert result.original is error

    def test_keeps_code_and_message(self):
        result = BybitAPIError.from_pybit(invalid_request(10001, "params error"))

        assert result.code == 10001
        assert result.message == "params error"
        assert "10001" in str(result)


class TestExecute:
    """Request submission and response unwrapping."""

    @pytest.mark.asyncio
    async def test_returns_unwrapped_result(self, pybit_dispatcher, mock_session):
        mock_session._submit_request.return_value = (
            {"retCode": 0, "retMsg": "OK", "result": {"category": "spot", "list": [1, 2]}},
            None,
            {},
        )

        result = await pybit_dispatcher.execute(
            HttpMethod.GET, "/v5/market/tickers", {"category": "spot"}, True
        )

        assert result == {"category": "spot", "list": [1, 2]}

    @pytest.mark.asyncio
    async def test_submits_full_url_with_query_and_auth(self, pybit_dispatcher, mock_session):
        await pybit_dispatcher.execute(
            HttpMethod.GET, "/v5/market/kline",
            {"category": "linear", "symbol": "BTCUSDT", "interval": "60"}, True,
        )

        mock_session._submit_request.assert_called_once_with(
            method="GET",
            path="https://api.bybit.com/v5/market/kline",
            query={"category": "linear", "symbol": "BTCUSDT", "interval": "60"},
            auth=True,
        )

    @pytest.mark.asyncio
    async def test_plain_dict_envelope(self, pybit_dispatcher, mock_session):
        mock_session._submit_request.return_value = {"retCode": 0, "result": {"x": "1"}}

        result = await pybit_dispatcher.execute(HttpMethod.GET, "/v5/market/insurance", {}, True)

        assert result == {"x": "1"}

    @pytest.mark.asyncio
    async def test_non_object_envelope_is_malformed(self, pybit_dispatcher, mock_session):
        mock_session._submit_request.return_value = (["not", "an", "envelope"], None, {})

        with pytest.raises(MalformedResponseError):
            await pybit_dispatcher.execute(HttpMethod.GET, "/v5/market/insurance", {}, True)

    @pytest.mark.asyncio
    async def test_tracks_rate_limit_headers(self, pybit_dispatcher):
        await pybit_dispatcher.execute(HttpMethod.GET, "/v5/market/tickers", {}, True)

        status = pybit_dispatcher.get_rate_limit_status()
        assert status == {
            "remaining": "99",
            "limit": "100",
            "reset_timestamp": "1700000000500",
        }

    @pytest.mark.asyncio
    async def test_translates_pybit_errors(self, pybit_dispatcher, mock_session):
        original = invalid_request(10003, "API key is invalid.")
        mock_session._submit_request.side_effect = original

        with pytest.raises(AuthenticationError) as exc_info:
            await pybit_dispatcher.execute(HttpMethod.GET, "/v5/market/kline", {}, True)

        assert exc_info.value.__cause__ is original
        assert mock_session._submit_request.call_count == 1

    @pytest.mark.asyncio
    async def test_translates_transport_errors(self, pybit_dispatcher, mock_session):
        mock_session._submit_request.side_effect = requests.ConnectionError("refused")

        with pytest.raises(TransportError):
            await pybit_dispatcher.execute(HttpMethod.GET, "/v5/market/kline", {}, True)

    @pytest.mark.asyncio
    async def test_limiter_follows_authentication_flag(self, pybit_dispatcher):
        pybit_dispatcher._limiters = MagicMock()

        await pybit_dispatcher.execute(HttpMethod.GET, "/v5/market/tickers", {}, True)
        await pybit_dispatcher.execute(HttpMethod.GET, "/v5/market/time", {}, False)

        names = [c.args[0] for c in pybit_dispatcher._limiters.acquire.call_args_list]
        assert names == ["private", "public"]

    @pytest.mark.asyncio
    async def test_concurrent_execute(self, mock_session):
        dispatcher = PybitDispatcher(
            api_key="key", api_secret="secret", session=mock_session,
            rate_limit_config=RateLimitConfig(public_rps=1000, private_rps=1000),
        )

        results = await asyncio.gather(*(
            dispatcher.execute(HttpMethod.GET, "/v5/market/tickers", {"symbol": f"S{i}"}, True)
            for i in range(100)
        ))

        assert len(results) == 100
        assert mock_session._submit_request.call_count == 100
        symbols = {c.kwargs["query"]["symbol"] for c in mock_session._submit_request.call_args_list}
        assert len(symbols) == 100


class TestDispatchRequest:
    def test_params_are_read_only_copy(self):
        params = {"category": "spot"}
        request = DispatchRequest.build("GET", "/v5/market/tickers", params, True)
        params["symbol"] = "BTCUSDT"

        assert dict(request.params) == {"category": "spot"}
        with pytest.raises(TypeError):
            request.params["symbol"] = "ETHUSDT"

    def test_method_is_normalized(self):
        request = DispatchRequest.build("GET", "/v5/market/time", None, False)

        assert request.method is HttpMethod.GET
        assert dict(request.params) == {}


class TestUtilities:
    @pytest.mark.asyncio
    async def test_sync_server_time(self, pybit_dispatcher, mock_session):
        server_ms = int(time.time() * 1000) + 60_000
        mock_session._submit_request.return_value = (
            {"retCode": 0, "result": {"timeSecond": str(server_ms // 1000),
                                      "timeNano": str(server_ms * 1_000_000)}},
            None,
            {},
        )

        offset = await pybit_dispatcher.sync_server_time()

        assert 59_000 < offset < 61_000
        assert pybit_dispatcher.get_time_offset() == offset
        kwargs = mock_session._submit_request.call_args.kwargs
        assert kwargs["path"] == "https://api.bybit.com/v5/market/time"
        assert kwargs["auth"] is False

    def test_close_releases_session(self, pybit_dispatcher, mock_session):
        pybit_dispatcher.close()

        mock_session.client.close.assert_called_once()

    def test_create_dispatcher_uses_configured_credentials(self, monkeypatch):
        monkeypatch.setenv("BYBIT_LIVE_DATA_API_KEY", "live-key")
        monkeypatch.setenv("BYBIT_LIVE_DATA_API_SECRET", "live-secret")
        Config._instance = None

        with patch("bybit_market_data.exchanges.dispatcher.HTTP") as mock_http:
            mock_http.return_value.endpoint = "https://api.bybit.com"
            dispatcher = create_dispatcher()

        kwargs = mock_http.call_args.kwargs
        assert kwargs["api_key"] == "live-key"
        assert kwargs["api_secret"] == "live-secret"
        assert kwargs["demo"] is False
        assert kwargs["return_response_headers"] is True
        assert 10006 not in kwargs["retry_codes"]
        assert dispatcher.session is mock_http.return_value


def wire_response(body, status: int = 200, headers: dict = None) -> requests.Response:
    """Build a requests.Response as pybit's session would receive it."""
    response = requests.Response()
    response.status_code = status
    response._content = json.dumps(body).encode()
    response.headers.update(headers or {})
    response.url = "https://api.bybit.com/v5/market/tickers"
    return response


@pytest.fixture
def wire_dispatcher(monkeypatch):
    """Real pybit session whose HTTP send is replaced, so pybit's own parsing runs."""
    dispatcher = PybitDispatcher(
        api_key="key", api_secret="secret",
        bybit_config=BybitConfig(max_retries=2, retry_delay=0),
    )
    send = MagicMock()
    monkeypatch.setattr(dispatcher.session.client, "send", send)
    return dispatcher, send


class TestWireResponses:
    """Responses travel through pybit's real response handling."""

    @pytest.mark.asyncio
    async def test_success_envelope(self, wire_dispatcher):
        dispatcher, send = wire_dispatcher
        send.return_value = wire_response(
            {"retCode": 0, "retMsg": "OK", "result": {"category": "spot", "list": []}},
            headers={"X-Bapi-Limit-Status": "49", "X-Bapi-Limit": "50"},
        )

        result = await dispatcher.execute(HttpMethod.GET, "/v5/market/tickers", {"category": "spot"}, True)

        assert result == {"category": "spot", "list": []}
        assert dispatcher.get_rate_limit_status()["remaining"] == "49"
        sent = send.call_args.args[0]
        assert sent.url.startswith("https://api.bybit.com/v5/market/tickers?")
        assert "X-BAPI-SIGN" in sent.headers

    @pytest.mark.asyncio
    @pytest.mark.parametrize("body", [[1, 2, 3], None, "ok"])
    async def test_non_object_json_is_malformed(self, wire_dispatcher, body):
        dispatcher, send = wire_dispatcher
        send.return_value = wire_response(body)

        with pytest.raises(MalformedResponseError) as exc_info:
            await MarketHTTP(dispatcher).get_tickers({"category": "spot"})

        assert exc_info.value.original is not None

    @pytest.mark.asyncio
    async def test_rate_limit_ret_code_raises_without_retry(self, wire_dispatcher):
        dispatcher, send = wire_dispatcher
        send.return_value = wire_response({"retCode": 10006, "retMsg": "Too many visits!"})

        with pytest.raises(RateLimitError) as exc_info:
            await dispatcher.execute(HttpMethod.GET, "/v5/market/tickers", {"category": "spot"}, True)

        assert exc_info.value.code == 10006
        assert send.call_count == 1

    @pytest.mark.asyncio
    async def test_invalid_key_ret_code(self, wire_dispatcher):
        dispatcher, send = wire_dispatcher
        send.return_value = wire_response({"retCode": 10003, "retMsg": "API key is invalid."})

        with pytest.raises(AuthenticationError):
            await dispatcher.execute(HttpMethod.GET, "/v5/market/kline", {"category": "linear"}, True)

    @pytest.mark.asyncio
    async def test_http_403_is_rate_limit(self, wire_dispatcher):
        dispatcher, send = wire_dispatcher
        send.return_value = wire_response({}, status=403)

        with pytest.raises(RateLimitError) as exc_info:
            await dispatcher.execute(HttpMethod.GET, "/v5/market/kline", {"category": "linear"}, True)

        assert exc_info.value.code == 403
