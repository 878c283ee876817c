"""
Configuration management.
"""

from .config import (
    Config,
    get_config,
    BybitConfig,
    RateLimitConfig,
    LogConfig,
)

__all__ = [
    "Config",
    "get_config",
    "BybitConfig",
    "RateLimitConfig",
    "LogConfig",
]
