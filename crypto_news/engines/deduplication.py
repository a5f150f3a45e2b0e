"""Duplicate link removal for scraped articles.

News pages link the same story several times (headline, thumbnail,
"read more"), often with tracking parameters appended. Articles are
compared by a canonical form of their URL and the first occurrence wins,
so extraction order is preserved.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Hashable, Iterable, TypeVar
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from crypto_news.engines.models import Article


logger = logging.getLogger(__name__)

T = TypeVar("T")


# Tracking parameters to strip from URLs (lowercase for case-insensitive matching)
TRACKING_PARAMS = frozenset({
    # Facebook / Google / Microsoft / Twitter click ids
    'fbclid', 'gclid', 'gclsrc', 'dclid', 'msclkid', 'twclid',
    # Mailchimp
    'mc_cid', 'mc_eid',
    # Google Analytics
    '_ga', '_gl',
    # Referral markers used by news sites
    'ref', 'ref_src', 'ref_url', 'cmpid', 'ocid', 'sh', 'traffic_source',
})


@dataclass
class DeduplicationResult:
    """Result of deduplication operation.

    Attributes:
        articles: Articles with duplicates removed, in original order
        removed_count: Number of articles removed
    """
    articles: list[Article]
    removed_count: int


def canonical_url(url: str) -> str:
    """Reduce a URL to the form used for duplicate detection.

    Lower-cases scheme and host, drops the fragment, a trailing slash and
    tracking parameters (``utm_*`` and the ones in TRACKING_PARAMS).

    Example:
        >>> canonical_url("https://WWW.BBC.com/news/1/?utm_source=x&id=7#top")
        'https://www.bbc.com/news/1?id=7'
    """
    if not url:
        return url

    try:
        parts = urlsplit(url)
    except ValueError:
        return url

    query = [
        (key, value)
        for key, value in parse_qsl(parts.query, keep_blank_values=True)
        if key.lower() not in TRACKING_PARAMS and not key.lower().startswith("utm_")
    ]
    path = parts.path.rstrip("/") or "/"

    return urlunsplit((
        parts.scheme.lower(),
        parts.netloc.lower(),
        path,
        urlencode(query),
        "",
    ))


def unique_by(items: Iterable[T], key_func: Callable[[T], Hashable]) -> list[T]:
    """Keep the first item for each key, preserving order."""
    seen: set[Hashable] = set()
    result: list[T] = []
    for item in items:
        key = key_func(item)
        if key in seen:
            continue
        seen.add(key)
        result.append(item)
    return result


def deduplicate(articles: list[Article]) -> DeduplicationResult:
    """Remove articles whose canonical URL was already seen.

    Args:
        articles: Articles in extraction order

    Returns:
        DeduplicationResult with the first occurrence of every URL

    Example:
        >>> articles = [
        ...     Article("Bitcoin rallies", "https://a.com/1?utm_medium=rss", "a"),
        ...     Article("Bitcoin rallies again", "https://a.com/1", "a"),
        ... ]
        >>> result = deduplicate(articles)
        >>> [a.title for a in result.articles]
        ['Bitcoin rallies']
    """
    kept = unique_by(articles, lambda a: canonical_url(a.url))
    removed = len(articles) - len(kept)

    if removed > 0:
        logger.debug(f"Removed {removed} articles with duplicate URLs")

    return DeduplicationResult(articles=kept, removed_count=removed)
