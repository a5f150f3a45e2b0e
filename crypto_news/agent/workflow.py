"""Workflow orchestrator for the crypto news pipeline.

Each requested source runs its own sub-pipeline (fetch, extract links,
filter by keyword) on a worker thread. Sub-pipelines race against two
deadlines: their own, which starts when the worker picks them up, and the
whole request's. A source that misses either is recorded as timed out and
its late result is discarded. Source failures never abort the request;
they are reported next to whatever the other sources produced.
"""

import logging
import threading
import time
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Iterable

from crypto_news.agent.request import RequestBudget, RequestValidationError, build_request_budget
from crypto_news.config.settings import Settings
from crypto_news.engines.aggregator import aggregate, paginate
from crypto_news.engines.fetcher import HttpFetcher, SourceFetcher
from crypto_news.engines.link_extractor import extract_links
from crypto_news.engines.models import (
    Article,
    FailureKind,
    Source,
    SourceError,
    SourceOutcome,
)
from crypto_news.engines.observability import (
    EventSink,
    LoggingEventSink,
    RunMetrics,
    create_run_metrics,
    log_stage_counts,
    metrics_to_dict,
)
from crypto_news.engines.relevance_filter import filter_candidates
from crypto_news.engines.source_catalog import SourceCatalog, UnknownSourceError, default_catalog


logger = logging.getLogger(__name__)

# How often the coordinator re-checks sources still queued behind busy workers
_QUEUE_POLL_SECONDS = 0.05


class SourceState(str, Enum):
    """Stage of one source's sub-pipeline."""
    PENDING = "pending"
    FETCHING = "fetching"
    EXTRACTING = "extracting"
    FILTERING = "filtering"
    DONE = "done"
    FAILED = "failed"


_TRANSITIONS: dict[SourceState, frozenset[SourceState]] = {
    SourceState.PENDING: frozenset({SourceState.FETCHING, SourceState.FAILED}),
    SourceState.FETCHING: frozenset({SourceState.EXTRACTING, SourceState.FAILED}),
    SourceState.EXTRACTING: frozenset({SourceState.FILTERING, SourceState.FAILED}),
    SourceState.FILTERING: frozenset({SourceState.DONE, SourceState.FAILED}),
    SourceState.DONE: frozenset(),
    SourceState.FAILED: frozenset(),
}

TERMINAL_STATES = frozenset({SourceState.DONE, SourceState.FAILED})


class InvalidTransitionError(RuntimeError):
    """Raised when a sub-pipeline tries to move backwards or skip a stage."""


class SourceRun:
    """Tracks one source's progress through the sub-pipeline.

    The worker thread advances the state stage by stage; the coordinator
    may move it to FAILED when a deadline passes. Whichever reaches a
    terminal state first wins, and the other side's transition is refused.

    Attributes:
        source: Source being processed
        state: Current stage
        deadline: Monotonic deadline, set when a worker starts the run
    """

    def __init__(self, source: Source):
        self.source = source
        self.state = SourceState.PENDING
        self.deadline: float | None = None
        self._lock = threading.Lock()

    def advance(self, new_state: SourceState) -> bool:
        """Move to new_state.

        Returns:
            True if the transition happened, False if the run had already
            finished (for example because the coordinator timed it out).

        Raises:
            InvalidTransitionError: If new_state does not follow the
                current state.
        """
        with self._lock:
            if self.state in TERMINAL_STATES:
                return False
            if new_state not in _TRANSITIONS[self.state]:
                raise InvalidTransitionError(
                    f"{self.source.name}: cannot go from {self.state.value} to {new_state.value}"
                )
            self.state = new_state
            return True


@dataclass
class PipelineResult:
    """Result of a pipeline request.

    Attributes:
        articles: Returned articles (one page of them when paginated)
        source_errors: Failed sources, in requested order
        metrics: Counts and timings collected during the request
        total_available: Articles after aggregation, before pagination
        all_failed: True when every requested source failed
        page: Page number when paginated
        page_size: Page size when paginated
        total_pages: Number of pages when paginated
    """
    articles: list[Article]
    source_errors: list[SourceError] = field(default_factory=list)
    metrics: RunMetrics = field(default_factory=create_run_metrics)
    total_available: int = 0
    all_failed: bool = False
    page: int | None = None
    page_size: int | None = None
    total_pages: int | None = None

    @property
    def errors(self) -> list[str]:
        return [error.describe() for error in self.source_errors]

    def to_dict(self, include_metrics: bool = False) -> dict[str, Any]:
        """Return the response shape the route layer serializes.

        ``errors`` is only present when at least one source failed.
        """
        body: dict[str, Any] = {"articles": [a.to_dict() for a in self.articles]}
        if self.source_errors:
            body["errors"] = self.errors
        if self.page is not None:
            body["page"] = self.page
            body["page_size"] = self.page_size
            body["total"] = self.total_available
            body["total_pages"] = self.total_pages
        if include_metrics:
            body["metrics"] = metrics_to_dict(self.metrics)
        return body


class _Orchestrator:
    """Runs one request's sub-pipelines and collects their outcomes."""

    def __init__(
        self,
        budget: RequestBudget,
        sources: list[Source],
        fetcher: SourceFetcher,
        events: EventSink,
        max_workers: int,
    ):
        self.budget = budget
        self.sources = sources
        self.fetcher = fetcher
        self.events = events
        self.max_workers = max_workers

    def run(self, request_deadline: float) -> list[SourceOutcome]:
        runs = [SourceRun(source) for source in self.sources]
        outcomes: dict[str, SourceOutcome] = {}

        executor = ThreadPoolExecutor(
            max_workers=max(1, min(self.max_workers, len(runs))),
            thread_name_prefix="source",
        )
        try:
            futures: dict[Future, SourceRun] = {
                executor.submit(self._run_source, run, request_deadline): run
                for run in runs
            }
            pending = set(futures)

            while pending:
                now = time.monotonic()

                if now >= request_deadline:
                    for future in pending:
                        run = futures[future]
                        if future.done():
                            outcomes[run.source.name] = self._collect(run, future)
                        else:
                            outcomes[run.source.name] = self._expire(
                                run, future, "request deadline exceeded"
                            )
                    break

                for future in list(pending):
                    run = futures[future]
                    if run.deadline is not None and now >= run.deadline and not future.done():
                        pending.discard(future)
                        outcomes[run.source.name] = self._expire(
                            run, future, "source deadline exceeded"
                        )

                if not pending:
                    break

                wake_at = request_deadline
                for future in pending:
                    run_deadline = futures[future].deadline
                    if run_deadline is None:
                        wake_at = min(wake_at, now + _QUEUE_POLL_SECONDS)
                    else:
                        wake_at = min(wake_at, run_deadline)

                done, _ = wait(
                    pending,
                    timeout=max(0.0, wake_at - now),
                    return_when=FIRST_COMPLETED,
                )
                for future in done:
                    pending.discard(future)
                    run = futures[future]
                    outcomes[run.source.name] = self._collect(run, future)
        finally:
            # Abandoned workers finish on their own once their fetch deadline passes
            executor.shutdown(wait=False, cancel_futures=True)

        return [outcomes[source.name] for source in self.sources]

    def _run_source(self, run: SourceRun, request_deadline: float) -> SourceOutcome | None:
        """Fetch, extract and filter one source. Returns None once abandoned."""
        source = run.source
        run.deadline = min(time.monotonic() + self.budget.per_source_timeout, request_deadline)

        if not run.advance(SourceState.FETCHING):
            return None
        self.events.emit("source_started", source=source.name)

        result = self.fetcher.fetch(source, run.deadline)
        if not result.ok:
            if not run.advance(SourceState.FAILED):
                return None
            return SourceOutcome.failed(source.name, result.kind, result.message)

        if not run.advance(SourceState.EXTRACTING):
            return None
        candidates = extract_links(result.markup or "")

        if not run.advance(SourceState.FILTERING):
            return None
        articles = filter_candidates(
            candidates,
            source,
            self.budget.crypto_keywords,
            self.budget.buzz_keywords,
        )

        if not run.advance(SourceState.DONE):
            return None
        return SourceOutcome.done(source.name, articles, extracted_count=len(candidates))

    def _collect(self, run: SourceRun, future: Future) -> SourceOutcome:
        name = run.source.name
        try:
            outcome = future.result()
        except Exception as e:
            logger.exception(f"Unexpected error while processing {name}")
            run.advance(SourceState.FAILED)
            outcome = SourceOutcome.failed(name, FailureKind.UNEXPECTED, f"{type(e).__name__}: {e}")

        if outcome is None:
            outcome = SourceOutcome.failed(name, FailureKind.TIMEOUT, "abandoned")

        if outcome.ok:
            self.events.emit(
                "source_succeeded",
                source=name,
                articles=len(outcome.articles),
                extracted=outcome.extracted_count,
            )
        else:
            self.events.emit(
                "source_failed",
                source=name,
                kind=outcome.error.kind.value,
                message=outcome.error.message,
            )
        return outcome

    def _expire(self, run: SourceRun, future: Future, reason: str) -> SourceOutcome:
        """Time a run out, unless its worker already reached a terminal state."""
        if run.advance(SourceState.FAILED):
            future.cancel()
            self.events.emit("source_timed_out", source=run.source.name, reason=reason)
            return SourceOutcome.failed(run.source.name, FailureKind.TIMEOUT, reason)

        # The worker finished its last transition; its result is moments away
        return self._collect(run, future)


def run_pipeline(
    budget: RequestBudget,
    catalog: SourceCatalog,
    fetcher: SourceFetcher,
    events: EventSink | None = None,
    settings: Settings | None = None,
) -> PipelineResult:
    """Execute one scraping request.

    Stages:
    1. Resolve the requested sources
    2. Run fetch, extract and filter for every source concurrently
    3. Aggregate: cap, de-duplicate, sort by source
    4. Paginate if requested

    Never raises because a source failed. When every source fails the
    result is still returned, with no articles, one error per source and
    ``all_failed`` set.

    Args:
        budget: Validated request parameters
        catalog: Registered sources
        fetcher: Page fetcher shared by all sub-pipelines
        events: Sink for structured events; logs by default
        settings: Worker limits; defaults used when omitted

    Returns:
        PipelineResult with articles, source errors and metrics

    Raises:
        RequestValidationError: If the budget names a source the catalog
            does not know.
    """
    settings = settings or Settings()
    events = events or LoggingEventSink()

    run_timestamp = datetime.now()
    started = time.monotonic()
    request_deadline = started + budget.request_timeout

    try:
        sources = [catalog.resolve(name) for name in budget.sources]
    except UnknownSourceError as e:
        raise RequestValidationError([str(e)]) from None

    events.emit("request_started", sources=len(sources))

    orchestrator = _Orchestrator(budget, sources, fetcher, events, settings.max_workers)
    outcomes = orchestrator.run(request_deadline)

    aggregated = aggregate(outcomes, budget.max_articles_per_source, budget.max_total_articles)
    articles = aggregated.articles
    total_available = len(articles)

    total_pages = None
    if budget.page is not None and budget.page_size is not None:
        page = paginate(articles, budget.page, budget.page_size)
        articles = page.articles
        total_pages = page.total_pages

    extracted = sum(o.extracted_count for o in outcomes)
    relevant = sum(len(o.articles) for o in outcomes)
    log_stage_counts("extracted", extracted)
    log_stage_counts("relevant", relevant)
    log_stage_counts("returned", total_available)

    all_failed = bool(outcomes) and all(not o.ok for o in outcomes)
    if all_failed:
        logger.warning(f"All {len(outcomes)} requested sources failed")

    duration = time.monotonic() - started
    metrics = create_run_metrics(
        requested_sources=list(budget.sources),
        article_count_by_source={o.source: len(o.articles) for o in outcomes if o.ok},
        failed_sources={o.source: o.error.kind.value for o in outcomes if not o.ok},
        extracted_count=extracted,
        relevant_count=relevant,
        returned_count=total_available,
        duration_seconds=duration,
        errors=aggregated.errors,
        run_timestamp=run_timestamp,
    )

    events.emit(
        "request_finished",
        articles=total_available,
        failed=len(aggregated.source_errors),
        duration=round(duration, 3),
    )

    return PipelineResult(
        articles=articles,
        source_errors=aggregated.source_errors,
        metrics=metrics,
        total_available=total_available,
        all_failed=all_failed,
        page=budget.page,
        page_size=budget.page_size,
        total_pages=total_pages,
    )


def scrape_articles(
    sources: Iterable[str] | None = None,
    cryptos: Iterable[str] | None = None,
    buzzwords: Iterable[str] | None = None,
    settings: Settings | None = None,
    catalog: SourceCatalog | None = None,
    fetcher: SourceFetcher | None = None,
    events: EventSink | None = None,
    **limits: int | None,
) -> PipelineResult:
    """Validate request parameters and run the pipeline.

    This is the entry point a route layer calls. Keyword limits
    (``max_articles_per_source``, ``max_total_articles``, ``page``,
    ``page_size``) are passed through to build_request_budget.

    Raises:
        RequestValidationError: Before any fetch, if the parameters are invalid.
    """
    settings = settings or Settings()
    if catalog is None:
        catalog = default_catalog()
    events = events or LoggingEventSink()

    budget = build_request_budget(
        catalog,
        settings,
        sources=sources,
        cryptos=cryptos,
        buzzwords=buzzwords,
        **limits,
    )

    if fetcher is None:
        fetcher = HttpFetcher(settings, events=events)

    return run_pipeline(budget, catalog, fetcher, events=events, settings=settings)
