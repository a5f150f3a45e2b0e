"""Configuration settings for the crypto news pipeline."""

from dataclasses import dataclass
from pathlib import Path
import os

from dotenv import load_dotenv


# Coin and exchange names searched for in anchor text
DEFAULT_CRYPTOS: tuple[str, ...] = (
    "bitcoin",
    "ethereum",
    "cardano",
    "dogecoin",
    "binance",
    "shiba",
    "ftx",
    "ada",
    "btc",
    "eth",
)

# Market vocabulary offered to callers as an extra narrowing filter
DEFAULT_BUZZWORDS: tuple[str, ...] = (
    "bullish",
    "bearish",
    "stocks",
    "depreciation",
    "regulation",
    "high value",
)

# Broad relevance pass: a link must match one of these to be returned at all
BASELINE_KEYWORDS: tuple[str, ...] = DEFAULT_CRYPTOS + DEFAULT_BUZZWORDS + (
    "crypto",
    "cryptocurrency",
    "blockchain",
    "doge",
    "aave",
    "ankr",
    "lrc",
)

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
)


class ConfigurationError(Exception):
    """Raised when configuration validation fails."""

    pass


@dataclass
class Settings:
    """Configuration settings for the crypto news pipeline.

    Attributes:
        max_sources: Most sources a single request may name
        max_keywords_per_category: Most crypto or buzz keywords per request
        per_source_timeout_seconds: Deadline for one source's fetch/extract/filter
        request_timeout_seconds: Deadline for the whole request
        attempt_timeout_seconds: Socket timeout for a single HTTP attempt
        max_articles_per_source: Most articles one source may contribute
        max_total_articles: Most articles a request may return
        max_retries: Retry attempts after the first failed HTTP attempt
        initial_backoff_seconds: Delay before the first retry, doubled each time
        max_backoff_seconds: Upper bound for a single retry delay
        max_redirects: Redirects followed before giving up on a source
        max_workers: Most sources fetched at the same time
        user_agent: User-Agent header sent to news sites
        accept_language: Accept-Language header sent to news sites
    """

    max_sources: int = 25
    max_keywords_per_category: int = 20
    per_source_timeout_seconds: float = 10.0
    request_timeout_seconds: float = 25.0
    attempt_timeout_seconds: float = 8.0
    max_articles_per_source: int = 50
    max_total_articles: int = 300
    max_retries: int = 3
    initial_backoff_seconds: float = 0.5
    max_backoff_seconds: float = 4.0
    max_redirects: int = 5
    max_workers: int = 8
    user_agent: str = DEFAULT_USER_AGENT
    accept_language: str = "en-US,en;q=0.9"

    def validate(self) -> None:
        """Validate configuration values.

        Raises:
            ConfigurationError: If any configuration value is invalid.
        """
        errors: list[str] = []

        if self.max_sources < 1:
            errors.append("max_sources must be at least 1")

        if self.max_keywords_per_category < 0:
            errors.append("max_keywords_per_category must be non-negative")

        if self.per_source_timeout_seconds <= 0.0:
            errors.append("per_source_timeout_seconds must be positive")

        if self.request_timeout_seconds <= 0.0:
            errors.append("request_timeout_seconds must be positive")

        if self.attempt_timeout_seconds <= 0.0:
            errors.append("attempt_timeout_seconds must be positive")

        if self.max_articles_per_source < 1:
            errors.append("max_articles_per_source must be at least 1")

        if self.max_total_articles < 1:
            errors.append("max_total_articles must be at least 1")

        if self.max_retries < 0:
            errors.append("max_retries must be non-negative")

        if self.initial_backoff_seconds < 0.0:
            errors.append("initial_backoff_seconds must be non-negative")

        if self.max_backoff_seconds < self.initial_backoff_seconds:
            errors.append(
                "max_backoff_seconds must be at least initial_backoff_seconds, "
                f"got {self.max_backoff_seconds} < {self.initial_backoff_seconds}"
            )

        if self.max_redirects < 0:
            errors.append("max_redirects must be non-negative")

        if self.max_workers < 1:
            errors.append("max_workers must be at least 1")

        if not self.user_agent.strip():
            errors.append("user_agent must not be empty")

        if errors:
            raise ConfigurationError("; ".join(errors))


def _parse_float(value: str | None, default: float) -> float:
    """Parse a string to float, returning default if None or invalid."""
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        return default


def _parse_int(value: str | None, default: int) -> int:
    """Parse a string to int, returning default if None or invalid."""
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def load_settings(env_path: str | Path | None = None, validate: bool = True) -> Settings:
    """Load settings from environment variables and .env file.

    Args:
        env_path: Optional path to .env file. If None, searches for .env
                  in current directory and parent directories.
        validate: If True, validate settings after loading.

    Returns:
        Settings instance with loaded configuration.

    Raises:
        ConfigurationError: If validate=True and configuration is invalid.
    """
    if env_path:
        load_dotenv(env_path)
    else:
        load_dotenv()

    defaults = Settings()
    settings = Settings(
        max_sources=_parse_int(os.getenv("MAX_SOURCES"), defaults.max_sources),
        max_keywords_per_category=_parse_int(
            os.getenv("MAX_KEYWORDS_PER_CATEGORY"), defaults.max_keywords_per_category
        ),
        per_source_timeout_seconds=_parse_float(
            os.getenv("PER_SOURCE_TIMEOUT_SECONDS"), defaults.per_source_timeout_seconds
        ),
        request_timeout_seconds=_parse_float(
            os.getenv("REQUEST_TIMEOUT_SECONDS"), defaults.request_timeout_seconds
        ),
        attempt_timeout_seconds=_parse_float(
            os.getenv("ATTEMPT_TIMEOUT_SECONDS"), defaults.attempt_timeout_seconds
        ),
        max_articles_per_source=_parse_int(
            os.getenv("MAX_ARTICLES_PER_SOURCE"), defaults.max_articles_per_source
        ),
        max_total_articles=_parse_int(
            os.getenv("MAX_TOTAL_ARTICLES"), defaults.max_total_articles
        ),
        max_retries=_parse_int(os.getenv("MAX_RETRIES"), defaults.max_retries),
        initial_backoff_seconds=_parse_float(
            os.getenv("INITIAL_BACKOFF_SECONDS"), defaults.initial_backoff_seconds
        ),
        max_backoff_seconds=_parse_float(
            os.getenv("MAX_BACKOFF_SECONDS"), defaults.max_backoff_seconds
        ),
        max_redirects=_parse_int(os.getenv("MAX_REDIRECTS"), defaults.max_redirects),
        max_workers=_parse_int(os.getenv("MAX_WORKERS"), defaults.max_workers),
        user_agent=os.getenv("USER_AGENT", defaults.user_agent),
        accept_language=os.getenv("ACCEPT_LANGUAGE", defaults.accept_language),
    )

    if validate:
        settings.validate()

    return settings
