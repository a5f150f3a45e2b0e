"""Page fetching for news sources with retry, backoff and a hard deadline."""

import logging
import time
from typing import Callable, Protocol, runtime_checkable

import requests
from bs4 import UnicodeDammit
from bs4.dammit import EncodingDetector
from tenacity import (
    RetryCallState,
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from crypto_news.config.settings import Settings
from crypto_news.engines.models import FailureKind, FetchResult, Source
from crypto_news.engines.observability import EventSink, LoggingEventSink


logger = logging.getLogger(__name__)


@runtime_checkable
class SourceFetcher(Protocol):
    """Protocol defining the interface for source fetchers.

    ``deadline`` is an absolute ``time.monotonic()`` value. Implementations
    must return by then and must never raise for source-level problems;
    those are reported as a failed FetchResult.
    """

    def fetch(self, source: Source, deadline: float) -> FetchResult:
        ...


class FetchError(Exception):
    """A failed attempt, tagged with the failure kind it maps to."""

    kind = FailureKind.NETWORK

    def __init__(self, message: str, kind: FailureKind | None = None):
        super().__init__(message)
        if kind is not None:
            self.kind = kind


class TransientFetchError(FetchError):
    """Connection problem or rejected status; worth another attempt."""


class InvalidBodyError(FetchError):
    """Response body cannot be treated as text; retrying will not help."""

    kind = FailureKind.INVALID_BODY


class DeadlineExceeded(FetchError):
    """No time left for another attempt."""

    kind = FailureKind.TIMEOUT


def _is_textual(mime_type: str) -> bool:
    return (
        mime_type.startswith("text/")
        or "html" in mime_type
        or "xml" in mime_type
        or mime_type.endswith("json")
    )


def declared_charset(content_type: str) -> str | None:
    """Return the charset parameter of a Content-Type header, if any.

    Example:
        >>> declared_charset('text/html; charset="UTF-8"')
        'UTF-8'
        >>> declared_charset("text/html") is None
        True
    """
    for param in content_type.split(";")[1:]:
        key, _, value = param.partition("=")
        value = value.strip().strip("'\"")
        if key.strip().lower() == "charset" and value:
            return value
    return None


def decode_body(response: requests.Response) -> str:
    """Return the response body as text.

    A charset in the Content-Type header is authoritative. Without one, a
    ``<meta charset>`` declaration or byte-order mark decides; otherwise UTF-8
    is tried before UnicodeDammit guesses. The ISO-8859-1 default requests
    assumes for ``text/*`` is never used.

    Raises:
        InvalidBodyError: If the content type is not textual or the body
            does not decode.
    """
    content_type = response.headers.get("Content-Type", "")
    mime_type = content_type.split(";")[0].strip().lower()
    if mime_type and not _is_textual(mime_type):
        raise InvalidBodyError(f"unsupported content type {mime_type}")

    charset = declared_charset(content_type)
    if charset:
        try:
            return response.content.decode(charset)
        except (UnicodeDecodeError, LookupError) as e:
            raise InvalidBodyError(f"cannot decode body as {charset}: {e}") from e

    body = response.content
    if EncodingDetector.find_declared_encoding(body, is_html=True) is None:
        try:
            return body.decode("utf-8-sig")
        except UnicodeDecodeError:
            pass

    dammit = UnicodeDammit(body, is_html=True)
    if dammit.unicode_markup is None:
        raise InvalidBodyError("cannot detect body encoding")
    logger.debug(f"Detected body encoding {dammit.original_encoding}")
    return dammit.unicode_markup


class HttpFetcher:
    """Fetches a source's origin page over HTTP.

    Each call uses its own ``requests.Session`` so cookies set by the site
    (or by a redirect) carry over to later attempts for the same source,
    and no session is shared between worker threads.

    Attempts are retried with exponential backoff on network errors and
    non-2xx statuses, up to ``settings.max_retries`` retries. The deadline
    overrides the retry budget: no attempt starts after it, each attempt's
    socket timeout is clipped to the time left, and so is each backoff
    delay.

    Attributes:
        settings: Timeouts, retry policy and request headers
    """

    def __init__(
        self,
        settings: Settings,
        session_factory: Callable[[], requests.Session] = requests.Session,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
        events: EventSink | None = None,
    ):
        self.settings = settings
        self._session_factory = session_factory
        self._sleep = sleep
        self._clock = clock
        self._events = events or LoggingEventSink()

    def headers(self) -> dict[str, str]:
        """Browser-like headers; many news sites reject library user agents."""
        return {
            "User-Agent": self.settings.user_agent,
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
            "Accept-Language": self.settings.accept_language,
        }

    def fetch(self, source: Source, deadline: float) -> FetchResult:
        """Fetch the source's origin page.

        Args:
            source: Source to fetch
            deadline: Absolute ``time.monotonic()`` value after which no
                      attempt may start

        Returns:
            FetchResult with the page markup, or the failure kind and message
        """
        session = self._session_factory()
        session.headers.update(self.headers())
        session.max_redirects = self.settings.max_redirects

        try:
            markup = self._fetch_with_retry(session, source, deadline)
        except FetchError as e:
            logger.warning(f"Fetch failed for {source.name}: {e.kind.value}: {e}")
            return FetchResult.failure(e.kind, str(e))
        finally:
            session.close()

        return FetchResult.success(markup)

    def _fetch_with_retry(
        self,
        session: requests.Session,
        source: Source,
        deadline: float,
    ) -> str:
        backoff = wait_exponential(
            multiplier=self.settings.initial_backoff_seconds,
            max=self.settings.max_backoff_seconds,
        )

        def wait_within_deadline(retry_state: RetryCallState) -> float:
            return max(0.0, min(backoff(retry_state), deadline - self._clock()))

        def deadline_passed(retry_state: RetryCallState) -> bool:
            return self._clock() >= deadline

        def before_sleep(retry_state: RetryCallState) -> None:
            error = retry_state.outcome.exception() if retry_state.outcome else None
            delay = retry_state.next_action.sleep if retry_state.next_action else 0.0
            self._events.emit(
                "source_retry",
                source=source.name,
                attempt=retry_state.attempt_number,
                delay=round(delay, 3),
                error=str(error),
            )

        retrying = Retrying(
            stop=stop_after_attempt(self.settings.max_retries + 1) | deadline_passed,
            wait=wait_within_deadline,
            retry=retry_if_exception_type(TransientFetchError),
            sleep=self._sleep,
            before_sleep=before_sleep,
            reraise=True,
        )

        try:
            for attempt in retrying:
                with attempt:
                    markup = self._attempt(
                        session, source, deadline, attempt.retry_state.attempt_number
                    )
        except TransientFetchError as e:
            if self._clock() >= deadline:
                raise DeadlineExceeded(
                    f"deadline exceeded while retrying, last error: {e}"
                ) from e
            raise

        return markup

    def _attempt(
        self,
        session: requests.Session,
        source: Source,
        deadline: float,
        attempt_number: int,
    ) -> str:
        """Run a single GET against the source's origin URL."""
        remaining = deadline - self._clock()
        if remaining <= 0:
            raise DeadlineExceeded(f"deadline exceeded before attempt {attempt_number}")

        timeout = min(self.settings.attempt_timeout_seconds, remaining)
        logger.debug(
            f"GET {source.origin_url} (attempt {attempt_number}, timeout {timeout:.2f}s)"
        )

        try:
            response = session.get(source.origin_url, timeout=timeout, allow_redirects=True)
        except requests.Timeout as e:
            if self._clock() >= deadline:
                raise DeadlineExceeded(f"no response before deadline: {e}") from e
            raise TransientFetchError(f"request timed out: {e}") from e
        except requests.RequestException as e:
            raise TransientFetchError(f"{type(e).__name__}: {e}") from e

        if not 200 <= response.status_code < 300:
            raise TransientFetchError(
                f"HTTP {response.status_code}", kind=FailureKind.BAD_STATUS
            )

        return decode_body(response)
