"""
Configuration management for the market data client.
Loads settings from environment variables with sensible defaults.
"""

import os
from dataclasses import dataclass
from typing import List, Optional
from pathlib import Path
from dotenv import load_dotenv


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() == "true"


@dataclass
class BybitConfig:
    """
    Bybit API configuration with separate DEMO and LIVE data keys.

    Every market data request is signed, so a key pair for the selected
    environment is required.

    LIVE:
        - API endpoint: api.bybit.com
        - Canonical market data
    DEMO:
        - API endpoint: api-demo.bybit.com
        - Demo-only market data

    Data keys have higher rate limits (120 RPS) than trading keys.
    """
    # LIVE data keys (api.bybit.com)
    live_data_api_key: str = ""
    live_data_api_secret: str = ""

    # DEMO data keys (api-demo.bybit.com)
    demo_data_api_key: str = ""
    demo_data_api_secret: str = ""

    # Endpoints
    live_base_url: str = "https://api.bybit.com"
    demo_base_url: str = "https://api-demo.bybit.com"
    testnet_base_url: str = "https://api-testnet.bybit.com"

    # Environment toggles: market data defaults to LIVE
    use_demo: bool = False
    testnet: bool = False

    # Request options forwarded to pybit
    recv_window: int = 20000
    timeout: int = 10
    max_retries: int = 3
    retry_delay: int = 3
    log_requests: bool = False

    def get_credentials(self) -> tuple:
        """
        Get data API key and secret for current mode (STRICT - no fallbacks).

        - DEMO mode (use_demo=True): Returns ONLY demo_data_api_key / secret
        - LIVE mode (use_demo=False): Returns ONLY live_data_api_key / secret

        Returns:
            Tuple of (api_key, api_secret)
        """
        if self.use_demo:
            return self.demo_data_api_key, self.demo_data_api_secret
        return self.live_data_api_key, self.live_data_api_secret

    def has_credentials(self) -> bool:
        """Check if valid credentials are configured for current mode."""
        key, secret = self.get_credentials()
        return bool(key and secret)

    def get_base_url(self) -> str:
        """Get base URL for the selected environment."""
        if self.testnet:
            return self.testnet_base_url
        return self.demo_base_url if self.use_demo else self.live_base_url

    def get_mode_name(self) -> str:
        """Get human-readable mode name (short)."""
        if self.testnet:
            return "TESTNET"
        return "DEMO" if self.use_demo else "LIVE"

    @property
    def is_demo(self) -> bool:
        return self.use_demo

    @property
    def is_live(self) -> bool:
        return not self.use_demo and not self.testnet


@dataclass
class RateLimitConfig:
    """Client-side request budgets, in requests per second."""
    # IP limit is 600 per 5s (120/s), keep a buffer
    public_rps: int = 100
    # Signed requests are 50/s per UID
    private_rps: int = 40


@dataclass
class LogConfig:
    """Logging configuration."""
    level: str = "INFO"
    log_dir: str = "logs"
    log_to_file: bool = False


class Config:
    """
    Central configuration manager.

    Loads configuration from environment variables and provides
    typed access to all settings.
    """

    _instance: Optional['Config'] = None

    def __new__(cls, *args, **kwargs):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self, env_file: str = ".env"):
        if self._initialized:
            return

        # Priority: .env > api_keys.env (later files override earlier)
        for env_name in ["api_keys.env", ".env", env_file]:
            env_path = Path(env_name)
            if env_path.exists():
                load_dotenv(env_path, override=True)

        self.bybit = self._load_bybit_config()
        self.rate_limit = self._load_rate_limit_config()
        self.log = self._load_log_config()

        self._initialized = True

    def _load_bybit_config(self) -> BybitConfig:
        """
        Load Bybit configuration from environment (STRICT - no fallbacks).

        Only these key pairs are used:
        - BYBIT_LIVE_DATA_API_KEY / SECRET -> LIVE market data
        - BYBIT_DEMO_DATA_API_KEY / SECRET -> DEMO market data
        """
        return BybitConfig(
            live_data_api_key=os.getenv("BYBIT_LIVE_DATA_API_KEY", ""),
            live_data_api_secret=os.getenv("BYBIT_LIVE_DATA_API_SECRET", ""),
            demo_data_api_key=os.getenv("BYBIT_DEMO_DATA_API_KEY", ""),
            demo_data_api_secret=os.getenv("BYBIT_DEMO_DATA_API_SECRET", ""),
            use_demo=_env_bool("BYBIT_USE_DEMO", "false"),
            testnet=_env_bool("BYBIT_TESTNET", "false"),
            recv_window=int(os.getenv("BYBIT_RECV_WINDOW", "20000")),
            timeout=int(os.getenv("BYBIT_TIMEOUT", "10")),
            max_retries=int(os.getenv("BYBIT_MAX_RETRIES", "3")),
            retry_delay=int(os.getenv("BYBIT_RETRY_DELAY", "3")),
            log_requests=_env_bool("BYBIT_LOG_REQUESTS", "false"),
        )

    def _load_rate_limit_config(self) -> RateLimitConfig:
        """Load rate limit budgets from environment."""
        return RateLimitConfig(
            public_rps=int(os.getenv("RATE_LIMIT_PUBLIC_RPS", "100")),
            private_rps=int(os.getenv("RATE_LIMIT_PRIVATE_RPS", "40")),
        )

    def _load_log_config(self) -> LogConfig:
        """Load logging configuration from environment."""
        return LogConfig(
            level=os.getenv("LOG_LEVEL", "INFO"),
            log_dir=os.getenv("LOG_DIR", "logs"),
            log_to_file=_env_bool("LOG_TO_FILE", "false"),
        )

    def reload(self, env_file: str = ".env"):
        """Reload configuration from environment."""
        self._initialized = False
        Config._instance = None
        return Config(env_file)

    def validate(self) -> tuple[bool, List[str]]:
        """
        Validate configuration.

        Returns:
            Tuple of (is_valid, list of error messages)
        """
        errors = []

        if not self.bybit.has_credentials():
            if self.bybit.is_demo:
                errors.append(
                    "MISSING REQUIRED KEY: BYBIT_DEMO_DATA_API_KEY and BYBIT_DEMO_DATA_API_SECRET "
                    "are required in DEMO mode. No fallback keys are used."
                )
            else:
                errors.append(
                    "MISSING REQUIRED KEY: BYBIT_LIVE_DATA_API_KEY and BYBIT_LIVE_DATA_API_SECRET "
                    "are required in LIVE mode. No fallback keys are used."
                )

        if self.bybit.use_demo and self.bybit.testnet:
            errors.append("INVALID: BYBIT_USE_DEMO and BYBIT_TESTNET cannot both be true.")

        for name in ("recv_window", "timeout"):
            value = getattr(self.bybit, name)
            if value <= 0:
                errors.append(f"INVALID: {name} must be positive, got {value}")
        # pybit needs at least one attempt
        if self.bybit.max_retries < 1:
            errors.append(f"INVALID: max_retries must be >= 1, got {self.bybit.max_retries}")

        for name in ("public_rps", "private_rps"):
            value = getattr(self.rate_limit, name)
            if value <= 0:
                errors.append(f"INVALID: {name} must be positive, got {value}")

        return len(errors) == 0, errors


def get_config() -> Config:
    """Get the global configuration instance."""
    return Config()
