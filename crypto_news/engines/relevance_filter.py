"""Keyword relevance filtering and link resolution.

A candidate becomes an Article when its anchor text passes two stages:

1. the baseline vocabulary (coin names plus market terms) decides whether
   a link is crypto news at all;
2. request-supplied crypto and buzzword lists, when non-empty, narrow that
   set further. Each non-empty list must match independently.

Matching is plain case-insensitive substring search, so "ada" also matches
"Canada". That over-matching is accepted.
"""

import logging
import re
from typing import Iterable
from urllib.parse import urljoin, urlsplit, urlunsplit

from requests.utils import requote_uri

from crypto_news.config.settings import BASELINE_KEYWORDS
from crypto_news.engines.models import Article, LinkCandidate, Source


logger = logging.getLogger(__name__)


ALLOWED_SCHEMES = frozenset({"http", "https"})


class KeywordMatcher:
    """Case-insensitive substring matcher over a fixed keyword list.

    Keywords are lower-cased, stripped and de-duplicated with their first
    occurrence order kept. Blank keywords are ignored. An empty matcher
    matches nothing and is falsy.
    """

    __slots__ = ("_keywords",)

    def __init__(self, keywords: Iterable[str] = ()):
        seen: dict[str, None] = {}
        for keyword in keywords:
            normalized = keyword.strip().lower()
            if normalized:
                seen.setdefault(normalized, None)
        self._keywords: tuple[str, ...] = tuple(seen)

    @property
    def keywords(self) -> tuple[str, ...]:
        return self._keywords

    def matches(self, text: str) -> bool:
        """Return True if text contains any keyword, ignoring case."""
        lowered = text.lower()
        return any(keyword in lowered for keyword in self._keywords)

    def __bool__(self) -> bool:
        return bool(self._keywords)

    def __len__(self) -> int:
        return len(self._keywords)

    def __repr__(self) -> str:
        return f"KeywordMatcher({list(self._keywords)!r})"


# Dropped from hrefs before parsing, as browsers do
_STRIPPED_CHARS = str.maketrans("", "", "\t\r\n")

_HOSTNAME_RE = re.compile(r"[a-z0-9._-]+|[0-9a-f:.]+")


def normalize_http_url(url: str) -> str | None:
    """Return url as a well-formed absolute http(s) URL, or None.

    Tabs and line breaks are removed, and characters not allowed in a URL
    (spaces, non-ASCII) are percent-encoded. URLs with another scheme, no
    host, a malformed host or a non-numeric or out-of-range port are
    rejected.

    Example:
        >>> normalize_http_url("https://www.bbc.com/news/bitcoin story")
        'https://www.bbc.com/news/bitcoin%20story'
        >>> normalize_http_url("https://www.bbc.com:notaport/x") is None
        True
    """
    url = url.translate(_STRIPPED_CHARS)
    try:
        parts = urlsplit(url)
        parts.port
    except ValueError:
        return None

    if parts.scheme.lower() not in ALLOWED_SCHEMES:
        return None
    if not parts.hostname or not _HOSTNAME_RE.fullmatch(parts.hostname):
        return None

    return requote_uri(urlunsplit(parts))


def resolve_url(href: str, source: Source) -> str | None:
    """Resolve an anchor href to an absolute http(s) URL.

    Relative hrefs are joined to the source's base URL, or to its origin
    URL when no base is configured. The result is normalized with
    normalize_http_url.

    Args:
        href: Raw href attribute value
        source: Source the href was scraped from

    Returns:
        Absolute URL, or None if the href cannot be turned into one
        (``javascript:``, ``mailto:``, fragment-only, unparsable).

    Example:
        >>> bbc = Source("bbc", "https://www.bbc.com/news/topics/x", "https://www.bbc.com")
        >>> resolve_url("/news/articles/123", bbc)
        'https://www.bbc.com/news/articles/123'
        >>> resolve_url("mailto:desk@bbc.com", bbc) is None
        True
    """
    href = href.translate(_STRIPPED_CHARS).strip()
    if not href or href.startswith("#"):
        return None

    try:
        scheme = urlsplit(href).scheme.lower()
    except ValueError:
        return None

    if scheme:
        return normalize_http_url(href)

    base = source.base_url or source.origin_url
    if not base:
        return None

    # A bare host like "https://www.bbc.com" joins "news/x" as "/news/x"
    if not base.endswith("/") and not urlsplit(base).path:
        base = base + "/"

    try:
        resolved = urljoin(base, href)
    except ValueError:
        return None

    return normalize_http_url(resolved)


def is_relevant(
    text: str,
    baseline: KeywordMatcher,
    crypto: KeywordMatcher,
    buzz: KeywordMatcher,
) -> bool:
    """Apply both matching stages to a piece of anchor text."""
    if not baseline.matches(text):
        return False
    if crypto and not crypto.matches(text):
        return False
    if buzz and not buzz.matches(text):
        return False
    return True


def filter_candidates(
    candidates: Iterable[LinkCandidate],
    source: Source,
    crypto_keywords: Iterable[str] = (),
    buzz_keywords: Iterable[str] = (),
    baseline: Iterable[str] = BASELINE_KEYWORDS,
) -> list[Article]:
    """Turn relevant, resolvable candidates into Articles.

    Args:
        candidates: Anchors extracted from the source's page
        source: Source the page came from
        crypto_keywords: Request filter on coin names; empty means no filter
        buzz_keywords: Request filter on market terms; empty means no filter
        baseline: Vocabulary every article must match

    Returns:
        Articles in candidate order. Candidates whose href cannot be
        resolved are dropped.
    """
    baseline_matcher = KeywordMatcher(baseline)
    crypto_matcher = KeywordMatcher(crypto_keywords)
    buzz_matcher = KeywordMatcher(buzz_keywords)

    articles: list[Article] = []
    unresolved = 0

    for candidate in candidates:
        title = candidate.text.strip()
        if not title:
            continue
        if not is_relevant(title, baseline_matcher, crypto_matcher, buzz_matcher):
            continue

        url = resolve_url(candidate.href, source)
        if url is None:
            unresolved += 1
            continue

        articles.append(Article(title=title, url=url, source=source.name))

    if unresolved:
        logger.debug(
            f"Dropped {unresolved} relevant links with unresolvable hrefs from {source.name}"
        )

    return articles
