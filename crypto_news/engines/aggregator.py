"""Merging of per-source results into the final article list.

Implements the capping and ordering rules for a request's output.
"""

import logging
from dataclasses import dataclass, field
from typing import Sequence

from crypto_news.engines.deduplication import canonical_url, deduplicate
from crypto_news.engines.models import Article, SourceError, SourceOutcome


logger = logging.getLogger(__name__)


@dataclass
class AggregateResult:
    """Merged output of a request.

    Attributes:
        articles: Articles sorted by source name, extraction order within a source
        source_errors: One entry per failed source, in requested order
    """
    articles: list[Article]
    source_errors: list[SourceError] = field(default_factory=list)

    @property
    def errors(self) -> list[str]:
        """Error summaries, e.g. ``Failed to scrape bbc: timeout``."""
        return [error.describe() for error in self.source_errors]


def aggregate(
    outcomes: Sequence[SourceOutcome],
    max_articles_per_source: int,
    max_total_articles: int,
) -> AggregateResult:
    """Merge per-source outcomes into one bounded, deterministic list.

    Steps, in order:
    1. Drop duplicate URLs within each successful source and truncate it to
       max_articles_per_source, keeping extraction order.
    2. Concatenate sources in requested order, skipping URLs an earlier
       source already contributed.
    3. Stop as soon as max_total_articles is reached; later sources may be
       left out entirely.
    4. Stable-sort by source name, so ties keep extraction order.
    5. Collect the error of every failed source.

    Args:
        outcomes: One outcome per requested source, in requested order
        max_articles_per_source: Cap on any one source's contribution
        max_total_articles: Cap on the merged list

    Returns:
        AggregateResult with the articles and the source errors

    Example:
        >>> a = SourceOutcome.done("cnbc", [Article("BTC up", "https://c.com/1", "cnbc")])
        >>> b = SourceOutcome.done("bbc", [Article("ETH down", "https://b.com/1", "bbc")])
        >>> [x.source for x in aggregate([a, b], 10, 10).articles]
        ['bbc', 'cnbc']
    """
    merged: list[Article] = []
    emitted_urls: set[str] = set()
    source_errors: list[SourceError] = []

    for outcome in outcomes:
        if outcome.error is not None:
            source_errors.append(outcome.error)
            continue

        if len(merged) >= max_total_articles:
            logger.debug(f"Total cap reached, skipping articles from {outcome.source}")
            continue

        per_source = deduplicate(list(outcome.articles)).articles[:max_articles_per_source]

        for article in per_source:
            if len(merged) >= max_total_articles:
                break
            key = canonical_url(article.url)
            if key in emitted_urls:
                continue
            emitted_urls.add(key)
            merged.append(article)

    merged.sort(key=lambda article: article.source)

    return AggregateResult(articles=merged, source_errors=source_errors)


@dataclass
class Page:
    """One page of an article list.

    Attributes:
        articles: Articles on this page
        page: 1-based page number
        page_size: Requested page size
        total: Articles across all pages
    """
    articles: list[Article]
    page: int
    page_size: int
    total: int

    @property
    def total_pages(self) -> int:
        return (self.total + self.page_size - 1) // self.page_size


def paginate(articles: list[Article], page: int, page_size: int) -> Page:
    """Slice an already sorted article list into a 1-based page.

    Pages past the end are empty rather than an error.

    Raises:
        ValueError: If page or page_size is less than 1.
    """
    if page < 1:
        raise ValueError("page must be at least 1")
    if page_size < 1:
        raise ValueError("page_size must be at least 1")

    start = (page - 1) * page_size
    return Page(
        articles=articles[start:start + page_size],
        page=page,
        page_size=page_size,
        total=len(articles),
    )
