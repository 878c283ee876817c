"""
Utility modules.
"""

from .logger import get_logger, setup_logger, MarketDataLogger
from .rate_limiter import RateLimiter, MultiRateLimiter, create_bybit_limiters

__all__ = [
    # Logger
    "get_logger",
    "setup_logger",
    "MarketDataLogger",
    # Rate limiting
    "RateLimiter",
    "MultiRateLimiter",
    "create_bybit_limiters",
]
