"""Engines module - core processing components."""

from crypto_news.engines.models import (
    Article,
    FailureKind,
    FetchResult,
    LinkCandidate,
    Source,
    SourceError,
    SourceOutcome,
)
from crypto_news.engines.source_catalog import (
    DEFAULT_SOURCES,
    SourceCatalog,
    UnknownSourceError,
    default_catalog,
)
from crypto_news.engines.link_extractor import extract_links, iter_links
from crypto_news.engines.relevance_filter import KeywordMatcher, filter_candidates, resolve_url
from crypto_news.engines.fetcher import HttpFetcher, SourceFetcher
from crypto_news.engines.aggregator import AggregateResult, Page, aggregate, paginate

__all__ = [
    # Models
    "Article",
    "FailureKind",
    "FetchResult",
    "LinkCandidate",
    "Source",
    "SourceError",
    "SourceOutcome",
    # Source catalog
    "DEFAULT_SOURCES",
    "SourceCatalog",
    "UnknownSourceError",
    "default_catalog",
    # Extraction and filtering
    "extract_links",
    "iter_links",
    "KeywordMatcher",
    "filter_candidates",
    "resolve_url",
    # Fetching
    "HttpFetcher",
    "SourceFetcher",
    # Aggregation
    "AggregateResult",
    "Page",
    "aggregate",
    "paginate",
]
