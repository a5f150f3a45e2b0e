"""Anchor extraction from third-party news pages.

Pages are uncontrolled HTML, often malformed. Extraction is best-effort:
it never raises, and anything it cannot make sense of is simply left out.
"""

import logging
from typing import Iterator

from bs4 import BeautifulSoup

from crypto_news.engines.models import LinkCandidate


logger = logging.getLogger(__name__)


def flatten_text(text: str) -> str:
    """Collapse runs of whitespace to single spaces and trim the ends.

    Example:
        >>> flatten_text("  Bitcoin\\n   hits   record ")
        'Bitcoin hits record'
    """
    return " ".join(text.split())


def iter_links(markup: str) -> Iterator[LinkCandidate]:
    """Yield anchor candidates from markup in document order.

    Parsing is deferred until the first candidate is requested. Anchors
    without an href, with a blank href, or whose flattened text is empty
    are skipped.

    Args:
        markup: Raw page HTML

    Yields:
        LinkCandidate for each usable anchor element
    """
    if not isinstance(markup, str) or not markup.strip():
        return

    try:
        soup = BeautifulSoup(markup, "lxml")
    except Exception as e:
        logger.warning(f"Failed to parse markup, no links extracted: {e}")
        return

    for anchor in soup.find_all("a"):
        href = anchor.get("href")
        if not isinstance(href, str) or not href.strip():
            continue

        # get_text() without a separator keeps "<b>Bit</b>coin" as one word
        text = flatten_text(anchor.get_text())
        if not text:
            continue

        yield LinkCandidate(text=text, href=href.strip())


def extract_links(markup: str) -> list[LinkCandidate]:
    """Extract all anchor candidates from markup.

    Returns a list, so callers may iterate the result more than once.

    Example:
        >>> extract_links('<a href="/x"> <b>Bitcoin</b> rallies </a><a>no href</a>')
        [LinkCandidate(text='Bitcoin rallies', href='/x')]
    """
    candidates = list(iter_links(markup))
    logger.debug(f"Extracted {len(candidates)} link candidates")
    return candidates
