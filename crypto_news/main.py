#!/usr/bin/env python3
"""Main entry point for the crypto news scraper.

This module provides the CLI interface for running a scraping request.

Usage:
    python -m crypto_news.main                               # All sources
    python -m crypto_news.main --sources bbc,cnbc --cryptos bitcoin
    python -m crypto_news.main --meta                        # List filter options
    python -m crypto_news.main -v                            # Verbose logging
"""

import argparse
import sys

from crypto_news.agent.request import parse_list_param
from crypto_news.agent.runner import run


def parse_args(args: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments.

    Args:
        args: Command line arguments. If None, uses sys.argv.

    Returns:
        Parsed arguments namespace.
    """
    parser = argparse.ArgumentParser(
        prog="crypto-news",
        description="Scrape crypto headlines from news sites",
    )

    parser.add_argument(
        "--sources",
        type=parse_list_param,
        default=None,
        help="Comma-separated source names (default: all sources)",
    )

    parser.add_argument(
        "--cryptos",
        type=parse_list_param,
        default=None,
        help="Comma-separated coin keywords to narrow results by",
    )

    parser.add_argument(
        "--buzz",
        type=parse_list_param,
        default=None,
        help="Comma-separated market keywords to narrow results by",
    )

    parser.add_argument(
        "--limit",
        type=int,
        default=None,
        help="Maximum number of articles returned",
    )

    parser.add_argument(
        "--per-source-limit",
        type=int,
        default=None,
        help="Maximum number of articles from any one source",
    )

    parser.add_argument("--page", type=int, default=None, help="1-based page to return")

    parser.add_argument("--page-size", type=int, default=None, help="Articles per page")

    parser.add_argument(
        "--meta",
        action="store_true",
        help="Print available sources and keywords instead of scraping",
    )

    parser.add_argument(
        "--metrics",
        action="store_true",
        help="Include run metrics in the output",
    )

    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose logging output",
    )

    return parser.parse_args(args)


def main(args: list[str] | None = None) -> int:
    """Main entry point for the crypto news scraper.

    Args:
        args: Command line arguments. If None, uses sys.argv.

    Returns:
        Exit code (0 for success, non-zero for failure).
    """
    parsed = parse_args(args)
    return run(
        sources=parsed.sources,
        cryptos=parsed.cryptos,
        buzzwords=parsed.buzz,
        max_total_articles=parsed.limit,
        max_articles_per_source=parsed.per_source_limit,
        page=parsed.page,
        page_size=parsed.page_size,
        meta=parsed.meta,
        include_metrics=parsed.metrics,
        verbose=parsed.verbose,
    )


if __name__ == "__main__":
    sys.exit(main())
