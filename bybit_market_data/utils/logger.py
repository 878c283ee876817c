"""
Logging system for the market data client.
Provides human-readable logs with console and optional file output.
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Optional


# ANSI color codes for terminal output
class Colors:
    RESET = "\033[0m"
    RED = "\033[91m"
    GREEN = "\033[92m"
    YELLOW = "\033[93m"
    CYAN = "\033[96m"
    WHITE = "\033[97m"
    BOLD = "\033[1m"


class ColoredFormatter(logging.Formatter):
    """Custom formatter with colors for console output."""

    LEVEL_COLORS = {
        logging.DEBUG: Colors.CYAN,
        logging.INFO: Colors.GREEN,
        logging.WARNING: Colors.YELLOW,
        logging.ERROR: Colors.RED,
        logging.CRITICAL: Colors.BOLD + Colors.RED,
    }

    def format(self, record):
        color = self.LEVEL_COLORS.get(record.levelno, Colors.WHITE)
        # Copy so file handlers sharing the record stay uncoloured
        record = logging.makeLogRecord(record.__dict__)
        record.levelname = f"{color}{record.levelname}{Colors.RESET}"
        record.msg = f"{color}{record.msg}{Colors.RESET}"
        return super().format(record)


class MarketDataLogger:
    """
    Central logger for the market data client.

    Features:
    - Console output with colors
    - Optional daily log files (general + errors)
    - Structured one-line request records
    """

    _instance: Optional['MarketDataLogger'] = None
    _initialized: bool = False

    def __new__(cls, *args, **kwargs):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self, log_dir: str = "logs", log_level: str = "INFO", log_to_file: bool = False):
        if MarketDataLogger._initialized:
            return

        self.log_dir = Path(log_dir)
        self.log_to_file = log_to_file
        if log_to_file:
            self.log_dir.mkdir(parents=True, exist_ok=True)

        self.main_logger = self._create_logger("bybit_market_data", log_level)
        self.error_logger = self._create_logger("bybit_market_data.errors", "ERROR", "errors")
        # Errors are written to both loggers explicitly
        self.error_logger.propagate = False

        MarketDataLogger._initialized = True

    def _create_logger(self, name: str, level: str, file_prefix: str = None) -> logging.Logger:
        """Create a configured logger instance."""
        logger = logging.getLogger(name)
        logger.setLevel(getattr(logging, level.upper(), logging.INFO))
        for handler in logger.handlers:
            handler.close()
        logger.handlers.clear()

        if file_prefix is None:
            console_handler = logging.StreamHandler()
            console_handler.setFormatter(ColoredFormatter(
                "%(asctime)s | %(levelname)s | %(message)s",
                datefmt="%H:%M:%S"
            ))
            logger.addHandler(console_handler)

        if self.log_to_file:
            prefix = file_prefix or "market_data"
            log_file = self.log_dir / f"{prefix}_{datetime.now().strftime('%Y%m%d')}.log"
            file_handler = logging.FileHandler(log_file, encoding='utf-8')
            file_handler.setFormatter(logging.Formatter(
                "%(asctime)s | %(levelname)s | %(name)s | %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S"
            ))
            logger.addHandler(file_handler)

        return logger

    def info(self, msg: str, *args, **kwargs):
        """Log info message."""
        self.main_logger.info(msg, *args, **kwargs)

    def debug(self, msg: str, *args, **kwargs):
        """Log debug message."""
        self.main_logger.debug(msg, *args, **kwargs)

    def warning(self, msg: str, *args, **kwargs):
        """Log warning message."""
        self.main_logger.warning(msg, *args, **kwargs)

    def error(self, msg: str, *args, **kwargs):
        """Log error message."""
        self.main_logger.error(msg, *args, **kwargs)
        self.error_logger.error(msg, *args, **kwargs)

    def request(self, method: str, path: str, status: str, elapsed_ms: float,
                params: dict = None, **kwargs):
        """
        Log one REST exchange with structured format.

        Only parameter names are recorded, never their values.

        Args:
            method: HTTP verb (GET, POST)
            path: Wire path (e.g., /v5/market/kline)
            status: OK or the error class name
            elapsed_ms: Wall time spent in the dispatcher
            params: Query parameters sent with the request
            **kwargs: Additional fields
        """
        parts = [
            f"[{method}]",
            path,
            f"status={status}",
            f"elapsed={elapsed_ms:.1f}ms",
        ]
        if params:
            parts.append(f"params={','.join(sorted(params))}")
        for key, value in kwargs.items():
            parts.append(f"{key}={value}")

        msg = " | ".join(parts)
        if status == "OK":
            self.main_logger.debug(msg)
        else:
            self.error(msg)


# Global logger instance
_logger: Optional[MarketDataLogger] = None


def get_logger() -> MarketDataLogger:
    """Get or create the global logger instance from configuration."""
    global _logger
    if _logger is None:
        from ..config import get_config
        log = get_config().log
        _logger = MarketDataLogger(log.log_dir, log.level, log.log_to_file)
        _configure_third_party_loggers()
    return _logger


def setup_logger(log_dir: str = "logs", log_level: str = "INFO", log_to_file: bool = False) -> MarketDataLogger:
    """Initialize the logger with custom settings."""
    global _logger
    MarketDataLogger._initialized = False
    MarketDataLogger._instance = None
    _logger = MarketDataLogger(log_dir, log_level, log_to_file)
    _configure_third_party_loggers()
    return _logger


def _configure_third_party_loggers():
    """
    Configure third-party library loggers to reduce noise.

    pybit logs every retry and request at INFO/DEBUG; urllib3 warns on
    connection pool churn. Only warnings and above reach the console.
    """
    logging.getLogger("pybit").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)
