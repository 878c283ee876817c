"""
Shared fixtures for market data tests.
"""

from unittest.mock import MagicMock

import pytest

from bybit_market_data.config.config import Config
from bybit_market_data.exchanges.dispatcher import PybitDispatcher
from bybit_market_data.exchanges.bybit_market import MarketHTTP
from tests.fakes import RecordingDispatcher


@pytest.fixture(autouse=True)
def reset_config(monkeypatch, tmp_path):
    """Isolate every test from local .env files and the config singleton."""
    monkeypatch.chdir(tmp_path)
    for name in [
        "BYBIT_LIVE_DATA_API_KEY", "BYBIT_LIVE_DATA_API_SECRET",
        "BYBIT_DEMO_DATA_API_KEY", "BYBIT_DEMO_DATA_API_SECRET",
        "BYBIT_USE_DEMO", "BYBIT_TESTNET",
    ]:
        monkeypatch.delenv(name, raising=False)
    Config._instance = None
    yield
    Config._instance = None


@pytest.fixture
def dispatcher() -> RecordingDispatcher:
    return RecordingDispatcher()


@pytest.fixture
def market(dispatcher) -> MarketHTTP:
    return MarketHTTP(dispatcher)


@pytest.fixture
def mock_session():
    """pybit HTTP session double returning a successful V5 envelope."""
    session = MagicMock()
    session.endpoint = "https://api.bybit.com"
    session._submit_request.return_value = (
        {"retCode": 0, "retMsg": "OK", "result": {"list": []}, "time": 1700000000000},
        None,
        {"X-Bapi-Limit-Status": "99", "X-Bapi-Limit": "100",
         "X-Bapi-Limit-Reset-Timestamp": "1700000000500"},
    )
    return session


@pytest.fixture
def pybit_dispatcher(mock_session) -> PybitDispatcher:
    return PybitDispatcher(api_key="key", api_secret="secret", session=mock_session)
