"""Configuration module - settings and environment management."""

from crypto_news.config.settings import (
    BASELINE_KEYWORDS,
    ConfigurationError,
    DEFAULT_BUZZWORDS,
    DEFAULT_CRYPTOS,
    Settings,
    load_settings,
)

__all__ = [
    "BASELINE_KEYWORDS",
    "ConfigurationError",
    "DEFAULT_BUZZWORDS",
    "DEFAULT_CRYPTOS",
    "Settings",
    "load_settings",
]
