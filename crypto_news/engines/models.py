"""Data models shared by the pipeline stages."""

from dataclasses import dataclass
from enum import Enum
from typing import Any


@dataclass(frozen=True)
class Source:
    """A news site the pipeline can fetch from.

    Attributes:
        name: Unique identifier used in requests (e.g., "bbc")
        origin_url: Page listing the site's crypto coverage
        base_url: Prefix for resolving relative links; empty means the
                  origin URL itself
    """
    name: str
    origin_url: str
    base_url: str = ""


@dataclass(frozen=True)
class LinkCandidate:
    """An anchor pulled out of a page, not yet checked for relevance."""
    text: str
    href: str


@dataclass(frozen=True)
class Article:
    """A relevant link returned to callers.

    Attributes:
        title: Trimmed anchor text
        url: Absolute http(s) URL
        source: Name of the source that produced the article
        published_at: Optional publish timestamp, passed through untouched
        image_url: Optional thumbnail URL, passed through untouched
    """
    title: str
    url: str
    source: str
    published_at: str | None = None
    image_url: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Return the record shape the route layer serializes."""
        record: dict[str, Any] = {
            "title": self.title,
            "url": self.url,
            "source": self.source,
        }
        if self.published_at is not None:
            record["published_at"] = self.published_at
        if self.image_url is not None:
            record["image_url"] = self.image_url
        return record


class FailureKind(str, Enum):
    """Why a source produced no articles."""
    TIMEOUT = "timeout"
    NETWORK = "network"
    BAD_STATUS = "bad_status"
    INVALID_BODY = "invalid_body"
    UNEXPECTED = "unexpected"


@dataclass(frozen=True)
class FetchResult:
    """Outcome of fetching one source: markup on success, a failure otherwise."""
    markup: str | None = None
    kind: FailureKind | None = None
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.kind is None

    @classmethod
    def success(cls, markup: str) -> "FetchResult":
        return cls(markup=markup)

    @classmethod
    def failure(cls, kind: FailureKind, message: str) -> "FetchResult":
        return cls(kind=kind, message=message)


@dataclass(frozen=True)
class SourceError:
    """A source-level failure recorded alongside the successful results."""
    source: str
    kind: FailureKind
    message: str

    def describe(self) -> str:
        """Human-readable summary, e.g. ``Failed to scrape bbc: timeout (...)``."""
        reason = self.kind.value
        if self.message:
            reason = f"{reason} ({self.message})"
        return f"Failed to scrape {self.source}: {reason}"


@dataclass(frozen=True)
class SourceOutcome:
    """What one source's sub-pipeline produced: articles or an error.

    Attributes:
        source: Source name
        articles: Relevant articles in extraction order
        error: Failure details, or None when the source succeeded
        extracted_count: Link candidates found before relevance filtering
    """
    source: str
    articles: tuple[Article, ...] = ()
    error: SourceError | None = None
    extracted_count: int = 0

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def done(
        cls, source: str, articles: list[Article], extracted_count: int = 0
    ) -> "SourceOutcome":
        return cls(source=source, articles=tuple(articles), extracted_count=extracted_count)

    @classmethod
    def failed(cls, source: str, kind: FailureKind, message: str = "") -> "SourceOutcome":
        return cls(source=source, error=SourceError(source, kind, message))
