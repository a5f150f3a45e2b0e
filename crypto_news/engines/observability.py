"""Observability and run metrics for the crypto news pipeline.

This module provides the event sink the orchestrator and fetcher report
to, the per-request metrics record, and stage-count logging.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Protocol, runtime_checkable


logger = logging.getLogger(__name__)


@runtime_checkable
class EventSink(Protocol):
    """Receives structured pipeline events.

    Sinks are for reporting only; the pipeline never reads them back to
    make decisions.
    """

    def emit(self, event: str, **fields: Any) -> None:
        ...


class LoggingEventSink:
    """Event sink that writes each event as one log line.

    Failures and timeouts are logged at WARNING, retries at INFO and
    everything else at DEBUG/INFO depending on how chatty the event is.
    """

    _WARNING_EVENTS = frozenset({"source_failed", "source_timed_out"})
    _DEBUG_EVENTS = frozenset({"source_started"})

    def __init__(self, log: logging.Logger | None = None):
        self._logger = log or logger

    def emit(self, event: str, **fields: Any) -> None:
        details = " ".join(f"{key}={value}" for key, value in fields.items())
        message = f"{event} {details}".rstrip()

        if event in self._WARNING_EVENTS:
            self._logger.warning(message)
        elif event in self._DEBUG_EVENTS:
            self._logger.debug(message)
        else:
            self._logger.info(message)


@dataclass
class RunMetrics:
    """Metrics collected during a pipeline request.

    Attributes:
        requested_sources: Source names in requested order
        article_count_by_source: Articles each successful source produced
                                 before aggregation caps
        failed_sources: Failure kind per failed source
        extracted_count: Link candidates extracted across all sources
        relevant_count: Articles that passed the relevance filter
        returned_count: Articles in the final result
        duration_seconds: Wall-clock time of the request
        errors: Human-readable error summaries
        run_timestamp: When the request started
    """
    requested_sources: list[str] = field(default_factory=list)
    article_count_by_source: dict[str, int] = field(default_factory=dict)
    failed_sources: dict[str, str] = field(default_factory=dict)
    extracted_count: int = 0
    relevant_count: int = 0
    returned_count: int = 0
    duration_seconds: float = 0.0
    errors: list[str] = field(default_factory=list)
    run_timestamp: datetime = field(default_factory=datetime.now)


def create_run_metrics(
    requested_sources: list[str] | None = None,
    article_count_by_source: dict[str, int] | None = None,
    failed_sources: dict[str, str] | None = None,
    extracted_count: int = 0,
    relevant_count: int = 0,
    returned_count: int = 0,
    duration_seconds: float = 0.0,
    errors: list[str] | None = None,
    run_timestamp: datetime | None = None,
) -> RunMetrics:
    """Create a RunMetrics instance with aggregated counts from pipeline stages.

    Example:
        >>> metrics = create_run_metrics(
        ...     requested_sources=["bbc", "cnbc"],
        ...     article_count_by_source={"bbc": 12},
        ...     failed_sources={"cnbc": "timeout"},
        ...     returned_count=12,
        ... )
        >>> metrics.failed_sources
        {'cnbc': 'timeout'}
    """
    return RunMetrics(
        requested_sources=requested_sources or [],
        article_count_by_source=article_count_by_source or {},
        failed_sources=failed_sources or {},
        extracted_count=extracted_count,
        relevant_count=relevant_count,
        returned_count=returned_count,
        duration_seconds=duration_seconds,
        errors=errors or [],
        run_timestamp=run_timestamp or datetime.now(),
    )


def metrics_to_dict(metrics: RunMetrics) -> dict[str, Any]:
    """Convert RunMetrics to a JSON-serializable dictionary."""
    return {
        "requested_sources": metrics.requested_sources,
        "article_count_by_source": metrics.article_count_by_source,
        "failed_sources": metrics.failed_sources,
        "extracted_count": metrics.extracted_count,
        "relevant_count": metrics.relevant_count,
        "returned_count": metrics.returned_count,
        "duration_seconds": round(metrics.duration_seconds, 3),
        "errors": metrics.errors,
        "run_timestamp": metrics.run_timestamp.isoformat(),
    }


def log_stage_counts(stage: str, count: int) -> None:
    """Log the count for a pipeline stage.

    Example:
        >>> log_stage_counts("extracted", 240)
        # Logs: "Pipeline stage 'extracted': 240 links"
    """
    logger.info(f"Pipeline stage '{stage}': {count} links")
