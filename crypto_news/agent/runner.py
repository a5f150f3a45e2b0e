"""Runner module for the crypto news pipeline.

This module wires together settings, logging and the workflow, and maps
outcomes to process exit codes.
"""

import json
import logging
import sys
from typing import TextIO

from crypto_news.agent.request import RequestValidationError, describe_catalog
from crypto_news.agent.workflow import scrape_articles
from crypto_news.config.settings import ConfigurationError, load_settings
from crypto_news.engines.source_catalog import default_catalog


# Exit codes
EXIT_SUCCESS = 0
EXIT_CONFIG_ERROR = 1
EXIT_PIPELINE_ERROR = 2
EXIT_REQUEST_ERROR = 3


def _setup_logging(verbose: bool = False) -> None:
    """Configure logging for the application.

    Logs go to stderr so stdout carries only the JSON result.

    Args:
        verbose: If True, set log level to DEBUG. Otherwise INFO.
    """
    level = logging.DEBUG if verbose else logging.INFO

    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stderr,
    )


def run(
    sources: list[str] | None = None,
    cryptos: list[str] | None = None,
    buzzwords: list[str] | None = None,
    max_total_articles: int | None = None,
    max_articles_per_source: int | None = None,
    page: int | None = None,
    page_size: int | None = None,
    meta: bool = False,
    include_metrics: bool = False,
    verbose: bool = False,
    output: TextIO | None = None,
) -> int:
    """Run one scraping request and print the result as JSON.

    Args:
        sources: Source names; None means every source
        cryptos: Coin keywords to narrow by
        buzzwords: Market keywords to narrow by
        max_total_articles: Optional lower total cap
        max_articles_per_source: Optional lower per-source cap
        page: Optional 1-based page
        page_size: Page size
        meta: If True, print the catalog metadata instead of scraping
        include_metrics: If True, add run metrics to the output
        verbose: If True, enable verbose/debug logging
        output: Stream for the JSON result (stdout by default)

    Returns:
        Exit code:
        - 0: Success (possibly with some failed sources)
        - 1: Configuration error
        - 2: Pipeline error, or every requested source failed
        - 3: Invalid request parameters
    """
    _setup_logging(verbose)
    logger = logging.getLogger(__name__)
    output = output or sys.stdout

    try:
        settings = load_settings(validate=True)
        logger.debug("Configuration loaded successfully")
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        return EXIT_CONFIG_ERROR

    catalog = default_catalog()

    if meta:
        json.dump(describe_catalog(catalog), output, indent=2)
        output.write("\n")
        return EXIT_SUCCESS

    try:
        result = scrape_articles(
            sources=sources,
            cryptos=cryptos,
            buzzwords=buzzwords,
            settings=settings,
            catalog=catalog,
            max_total_articles=max_total_articles,
            max_articles_per_source=max_articles_per_source,
            page=page,
            page_size=page_size,
        )
    except RequestValidationError as e:
        logger.error(f"Invalid request: {e}")
        return EXIT_REQUEST_ERROR
    except Exception as e:
        logger.exception(f"Pipeline failed with unexpected error: {e}")
        return EXIT_PIPELINE_ERROR

    json.dump(result.to_dict(include_metrics=include_metrics), output, indent=2, ensure_ascii=False)
    output.write("\n")

    for error in result.errors:
        logger.warning(f"  - {error}")

    if result.all_failed:
        logger.error("Every requested source failed")
        return EXIT_PIPELINE_ERROR

    logger.info(f"Returned {len(result.articles)} articles")
    return EXIT_SUCCESS
