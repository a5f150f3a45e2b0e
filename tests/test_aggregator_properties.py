"""Property-based tests for merging per-source results.

Feature: crypto-news
Tests capping, ordering, cross-source deduplication, error collection
and pagination.
"""

import pytest
from hypothesis import given, settings, strategies as st

from crypto_news.engines.aggregator import Page, aggregate, paginate
from crypto_news.engines.models import Article, FailureKind, SourceOutcome


SOURCE_NAMES = ["bbc", "cnbc", "forbes", "guardian", "reuters"]


def done(source: str, count: int, start: int = 0) -> SourceOutcome:
    articles = [
        Article(f"Bitcoin story {i}", f"https://{source}.example.com/{i}", source)
        for i in range(start, start + count)
    ]
    return SourceOutcome.done(source, articles, extracted_count=count * 2)


@st.composite
def outcomes_strategy(draw):
    """Generate outcomes for distinct sources in arbitrary requested order."""
    names = draw(st.lists(st.sampled_from(SOURCE_NAMES), min_size=0, max_size=5, unique=True))
    outcomes = []
    for name in names:
        if draw(st.booleans()):
            outcomes.append(done(name, draw(st.integers(min_value=0, max_value=15))))
        else:
            kind = draw(st.sampled_from(list(FailureKind)))
            outcomes.append(SourceOutcome.failed(name, kind, "boom"))
    return outcomes


class TestAggregate:
    """Tests for aggregate."""

    def test_articles_are_sorted_by_source(self):
        result = aggregate([done("cnbc", 2), done("bbc", 2)], 10, 10)

        assert [a.source for a in result.articles] == ["bbc", "bbc", "cnbc", "cnbc"]
        assert [a.url for a in result.articles if a.source == "bbc"] == [
            "https://bbc.example.com/0",
            "https://bbc.example.com/1",
        ]

    def test_per_source_cap(self):
        result = aggregate([done("bbc", 10), done("cnbc", 3)], 4, 100)

        assert [a.source for a in result.articles].count("bbc") == 4
        assert [a.source for a in result.articles].count("cnbc") == 3

    def test_total_cap_follows_requested_order(self):
        """Sources later in the request SHALL be the ones left out at saturation."""
        result = aggregate([done("cnbc", 5), done("bbc", 5)], 10, 7)

        sources = [a.source for a in result.articles]
        assert len(sources) == 7
        assert sources.count("cnbc") == 5
        assert sources.count("bbc") == 2

    def test_total_cap_reached_skips_remaining_sources(self):
        result = aggregate([done("cnbc", 3), done("bbc", 3), done("forbes", 3)], 10, 3)

        assert {a.source for a in result.articles} == {"cnbc"}

    def test_duplicate_urls_across_sources_kept_once(self):
        shared = "https://www.reuters.com/markets/bitcoin"
        cnbc = SourceOutcome.done("cnbc", [Article("Bitcoin via CNBC", shared, "cnbc")])
        bbc = SourceOutcome.done("bbc", [
            Article("Bitcoin via BBC", shared + "?utm_source=bbc", "bbc"),
            Article("Ether via BBC", "https://www.bbc.com/news/2", "bbc"),
        ])

        result = aggregate([cnbc, bbc], 10, 10)

        assert [a.title for a in result.articles] == ["Ether via BBC", "Bitcoin via CNBC"]

    def test_duplicates_within_source_do_not_use_cap(self):
        articles = [
            Article("BTC", "https://a.com/1", "bbc"),
            Article("BTC again", "https://a.com/1#video", "bbc"),
            Article("ETH", "https://a.com/2", "bbc"),
        ]

        result = aggregate([SourceOutcome.done("bbc", articles)], 2, 10)

        assert [a.title for a in result.articles] == ["BTC", "ETH"]

    def test_errors_are_collected_in_requested_order(self):
        outcomes = [
            SourceOutcome.failed("reuters", FailureKind.TIMEOUT, "deadline exceeded"),
            done("bbc", 1),
            SourceOutcome.failed("cnbc", FailureKind.BAD_STATUS, "HTTP 403"),
        ]

        result = aggregate(outcomes, 10, 10)

        assert [e.source for e in result.source_errors] == ["reuters", "cnbc"]
        assert result.errors == [
            "Failed to scrape reuters: timeout (deadline exceeded)",
            "Failed to scrape cnbc: bad_status (HTTP 403)",
        ]
        assert [a.source for a in result.articles] == ["bbc"]

    def test_error_without_message(self):
        result = aggregate([SourceOutcome.failed("bbc", FailureKind.NETWORK)], 10, 10)

        assert result.errors == ["Failed to scrape bbc: network"]

    def test_no_outcomes(self):
        result = aggregate([], 10, 10)

        assert result.articles == []
        assert result.source_errors == []

    @given(
        outcomes=outcomes_strategy(),
        per_source=st.integers(min_value=1, max_value=10),
        total=st.integers(min_value=1, max_value=40),
    )
    @settings(max_examples=200, deadline=None)
    def test_caps_and_ordering_hold(self, outcomes, per_source, total):
        """For any outcomes and caps, the merged list SHALL respect both caps and be sorted."""
        result = aggregate(outcomes, per_source, total)
        sources = [a.source for a in result.articles]

        assert len(result.articles) <= total
        for name in set(sources):
            assert sources.count(name) <= per_source
        assert sources == sorted(sources)
        assert len(result.source_errors) == sum(1 for o in outcomes if not o.ok)

    @given(
        outcomes=outcomes_strategy(),
        per_source=st.integers(min_value=1, max_value=10),
        total=st.integers(min_value=1, max_value=40),
    )
    @settings(max_examples=100, deadline=None)
    def test_aggregation_is_deterministic(self, outcomes, per_source, total):
        """Identical outcomes SHALL always produce identical output."""
        first = aggregate(outcomes, per_source, total)
        second = aggregate(outcomes, per_source, total)

        assert first == second

    @given(outcomes=outcomes_strategy())
    @settings(max_examples=100, deadline=None)
    def test_uncapped_keeps_everything(self, outcomes):
        """With generous caps, every successful article SHALL be returned."""
        result = aggregate(outcomes, 1000, 1000)

        assert len(result.articles) == sum(len(o.articles) for o in outcomes if o.ok)


class TestPaginate:
    """Tests for paginate."""

    ARTICLES = [Article(f"BTC {i}", f"https://a.com/{i}", "bbc") for i in range(7)]

    def test_first_page(self):
        page = paginate(self.ARTICLES, 1, 3)

        assert page == Page(self.ARTICLES[:3], 1, 3, 7)
        assert page.total_pages == 3

    def test_last_partial_page(self):
        assert paginate(self.ARTICLES, 3, 3).articles == self.ARTICLES[6:]

    def test_page_past_end_is_empty(self):
        page = paginate(self.ARTICLES, 5, 3)

        assert page.articles == []
        assert page.total == 7

    def test_empty_list_has_no_pages(self):
        assert paginate([], 1, 10).total_pages == 0

    @pytest.mark.parametrize("page, page_size", [(0, 10), (1, 0), (-1, 5)])
    def test_invalid_arguments_raise(self, page, page_size):
        with pytest.raises(ValueError):
            paginate(self.ARTICLES, page, page_size)

    @given(page_size=st.integers(min_value=1, max_value=10))
    @settings(max_examples=30, deadline=None)
    def test_pages_concatenate_to_full_list(self, page_size):
        """Walking every page SHALL reproduce the full list exactly once."""
        first = paginate(self.ARTICLES, 1, page_size)
        collected = []
        for number in range(1, first.total_pages + 1):
            collected.extend(paginate(self.ARTICLES, number, page_size).articles)

        assert collected == self.ARTICLES
