"""Request parameters and their validation.

Everything a caller supplies is checked here, before any network call is
made. A request that names an unknown source or exceeds a ceiling is
rejected as a whole; no source in it is fetched.
"""

from dataclasses import dataclass
from typing import Any, Iterable

from crypto_news.config.settings import DEFAULT_BUZZWORDS, DEFAULT_CRYPTOS, Settings
from crypto_news.engines.source_catalog import SourceCatalog


class RequestValidationError(ValueError):
    """Raised when request parameters fail validation.

    This is a client error: the caller asked for something the pipeline
    will not do. Route layers should map it to a 4xx response.

    Attributes:
        problems: Every problem found, in the order checked
    """

    def __init__(self, problems: list[str]):
        super().__init__("; ".join(problems))
        self.problems = problems


@dataclass(frozen=True)
class RequestBudget:
    """Validated parameters for one pipeline request.

    Attributes:
        sources: Source names in requested order, without duplicates
        crypto_keywords: Lower-cased coin filter; empty means no filter
        buzz_keywords: Lower-cased buzzword filter; empty means no filter
        per_source_timeout: Seconds one source may take
        request_timeout: Seconds the whole request may take
        max_articles_per_source: Cap on one source's contribution
        max_total_articles: Cap on the returned list
        page: 1-based page to return, or None for the whole list
        page_size: Articles per page when page is set
    """
    sources: tuple[str, ...]
    crypto_keywords: tuple[str, ...]
    buzz_keywords: tuple[str, ...]
    per_source_timeout: float
    request_timeout: float
    max_articles_per_source: int
    max_total_articles: int
    page: int | None = None
    page_size: int | None = None


def parse_list_param(value: str | None) -> list[str]:
    """Split a comma-separated query parameter, dropping blank entries.

    Example:
        >>> parse_list_param("bbc, guardian,,cnbc")
        ['bbc', 'guardian', 'cnbc']
        >>> parse_list_param(None)
        []
    """
    if not value:
        return []
    return [part.strip() for part in value.split(",") if part.strip()]


def _unique(values: Iterable[str], lower: bool = False) -> tuple[str, ...]:
    seen: dict[str, None] = {}
    for value in values:
        value = value.strip()
        if lower:
            value = value.lower()
        if value:
            seen.setdefault(value, None)
    return tuple(seen)


def _check_override(
    name: str,
    value: int | None,
    ceiling: int,
    problems: list[str],
) -> int:
    if value is None:
        return ceiling
    if value < 1:
        problems.append(f"{name} must be at least 1")
    elif value > ceiling:
        problems.append(f"{name} must not exceed {ceiling}, got {value}")
    return value


def build_request_budget(
    catalog: SourceCatalog,
    settings: Settings,
    sources: Iterable[str] | None = None,
    cryptos: Iterable[str] | None = None,
    buzzwords: Iterable[str] | None = None,
    max_articles_per_source: int | None = None,
    max_total_articles: int | None = None,
    page: int | None = None,
    page_size: int | None = None,
) -> RequestBudget:
    """Validate request parameters and build the budget for one request.

    Args:
        catalog: Registered sources
        settings: Configured ceilings and timeouts
        sources: Requested source names; None or empty means every source
        cryptos: Coin keywords to narrow results by
        buzzwords: Market keywords to narrow results by
        max_articles_per_source: Optional lower per-source cap
        max_total_articles: Optional lower total cap
        page: Optional 1-based page number
        page_size: Page size, required when page is given

    Returns:
        RequestBudget ready to hand to the orchestrator

    Raises:
        RequestValidationError: Listing every problem found.
    """
    problems: list[str] = []

    requested = _unique(sources or ())
    if not requested:
        requested = catalog.names()

    unknown = [name for name in requested if name not in catalog]
    if unknown:
        problems.append(f"Unknown source: {', '.join(unknown)}")

    if len(requested) > settings.max_sources:
        problems.append(
            f"At most {settings.max_sources} sources may be requested, got {len(requested)}"
        )

    crypto_keywords = _unique(cryptos or (), lower=True)
    buzz_keywords = _unique(buzzwords or (), lower=True)

    for label, keywords in (("crypto", crypto_keywords), ("buzzword", buzz_keywords)):
        if len(keywords) > settings.max_keywords_per_category:
            problems.append(
                f"At most {settings.max_keywords_per_category} {label} keywords may be "
                f"requested, got {len(keywords)}"
            )

    per_source_cap = _check_override(
        "max_articles_per_source",
        max_articles_per_source,
        settings.max_articles_per_source,
        problems,
    )
    total_cap = _check_override(
        "max_total_articles",
        max_total_articles,
        settings.max_total_articles,
        problems,
    )

    if page is not None:
        if page < 1:
            problems.append("page must be at least 1")
        if page_size is None:
            problems.append("page_size is required when page is given")
        elif page_size < 1:
            problems.append("page_size must be at least 1")
    elif page_size is not None:
        page = 1
        if page_size < 1:
            problems.append("page_size must be at least 1")

    if problems:
        raise RequestValidationError(problems)

    return RequestBudget(
        sources=requested,
        crypto_keywords=crypto_keywords,
        buzz_keywords=buzz_keywords,
        per_source_timeout=settings.per_source_timeout_seconds,
        request_timeout=settings.request_timeout_seconds,
        max_articles_per_source=per_source_cap,
        max_total_articles=total_cap,
        page=page,
        page_size=page_size,
    )


def describe_catalog(catalog: SourceCatalog) -> dict[str, Any]:
    """Return the filter options a UI offers: sources, coins and buzzwords."""
    return {
        "sources": list(catalog.names()),
        "cryptos": list(DEFAULT_CRYPTOS),
        "buzzwords": list(DEFAULT_BUZZWORDS),
    }
