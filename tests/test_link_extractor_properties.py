"""Property-based tests for link extraction.

Feature: crypto-news
Tests anchor extraction from well-formed and malformed markup.
"""

import pytest
from hypothesis import given, settings, strategies as st

from crypto_news.engines.link_extractor import extract_links, flatten_text, iter_links
from crypto_news.engines.models import LinkCandidate


SAMPLE_PAGE = """<!DOCTYPE html>
<html>
<head><title>Crypto coverage</title></head>
<body>
  <nav><a href="/">Home</a><a href="#main"></a></nav>
  <ul>
    <li><a class="headline" href="/news/bitcoin-record">
          Bitcoin hits <strong>record</strong> high
        </a></li>
    <li><a data-id="7" href="https://example.com/eth" title="x">Ethereum upgrade ships</a></li>
    <li><a>Anchor without href</a></li>
    <li><a href="   ">Anchor with blank href</a></li>
    <li><a href="/img"><img src="/thumb.png"></a></li>
  </ul>
</body>
</html>
"""


text_strategy = st.text(
    alphabet=st.characters(whitelist_categories=("L", "N"), whitelist_characters=" "),
    min_size=1,
    max_size=40,
).filter(lambda x: x.strip())


class TestExtractLinks:
    """Unit tests for extract_links."""

    def test_extracts_anchors_in_document_order(self):
        """Anchors SHALL be returned in document order with flattened text."""
        links = extract_links(SAMPLE_PAGE)

        assert links == [
            LinkCandidate(text="Home", href="/"),
            LinkCandidate(text="Bitcoin hits record high", href="/news/bitcoin-record"),
            LinkCandidate(text="Ethereum upgrade ships", href="https://example.com/eth"),
        ]

    def test_skips_anchors_without_href_or_text(self):
        """Anchors missing an href, with a blank href or empty text SHALL be discarded."""
        links = extract_links(SAMPLE_PAGE)
        texts = [link.text for link in links]

        assert "Anchor without href" not in texts
        assert "Anchor with blank href" not in texts
        assert all(link.href != "/img" for link in links)
        assert all(link.href != "#main" for link in links)

    def test_nested_tags_do_not_split_words(self):
        """Text split across inline tags SHALL be joined without extra spaces."""
        links = extract_links('<a href="/x"><b>Bit</b>coin <i>falls</i></a>')

        assert links == [LinkCandidate(text="Bitcoin falls", href="/x")]

    def test_href_whitespace_is_trimmed(self):
        """Surrounding whitespace in href SHALL be removed."""
        links = extract_links('<a href="  /news/1  ">BTC news</a>')

        assert links[0].href == "/news/1"

    @pytest.mark.parametrize(
        "markup",
        [
            "",
            "   ",
            "<a href='/x'>Bitcoin",
            "<div><a href='/x'>Bitcoin</div></a></span>",
            "<<<a href=>>>",
            "<a href='/x'>Bitcoin<a href='/y'>Ether</a>",
            "\x00\x01<a href='/x'>BTC</a>",
            "<html><body><a href=/unquoted>Dogecoin jumps</a>",
        ],
    )
    def test_malformed_markup_does_not_raise(self, markup: str):
        """Malformed markup SHALL yield a list without raising."""
        links = extract_links(markup)

        assert isinstance(links, list)
        for link in links:
            assert link.text.strip() == link.text
            assert link.text
            assert link.href

    def test_unclosed_anchor_is_still_extracted(self):
        """An anchor left open until end of input SHALL still be extracted."""
        links = extract_links("<p><a href='/x'>Bitcoin slides")

        assert links == [LinkCandidate(text="Bitcoin slides", href="/x")]

    def test_non_string_input_yields_nothing(self):
        """Non-string input SHALL produce no candidates."""
        assert extract_links(None) == []
        assert extract_links(b"<a href='/x'>BTC</a>") == []

    def test_result_can_be_iterated_twice(self):
        """extract_links SHALL return a restartable sequence."""
        links = extract_links(SAMPLE_PAGE)

        assert list(links) == list(links)

    def test_iter_links_is_lazy(self):
        """iter_links SHALL return a generator that parses on demand."""
        generator = iter_links(SAMPLE_PAGE)

        first = next(generator)
        assert first == LinkCandidate(text="Home", href="/")


class TestFlattenText:
    """Tests for whitespace flattening."""

    def test_collapses_whitespace(self):
        assert flatten_text("  Bitcoin\n\t  hits   record ") == "Bitcoin hits record"

    def test_blank_text_becomes_empty(self):
        assert flatten_text(" \n\t ") == ""


class TestExtractionRoundTrip:
    """Property tests relating generated anchors to extracted candidates."""

    @given(
        anchors=st.lists(
            st.tuples(text_strategy, st.integers(min_value=0, max_value=100000)),
            min_size=0,
            max_size=20,
        ),
        nested=st.booleans(),
        attrs_first=st.booleans(),
    )
    @settings(max_examples=100, deadline=None)
    def test_every_anchor_is_extracted_with_trimmed_text(
        self, anchors: list[tuple[str, int]], nested: bool, attrs_first: bool
    ):
        """For N anchors with text and href, extraction SHALL yield N candidates in order."""
        parts = []
        for text, page_id in anchors:
            inner = f"<span>{text}</span>" if nested else text
            if attrs_first:
                attrs = f'class="c" data-x="1" href="/a/{page_id}"'
            else:
                attrs = f'href="/a/{page_id}" class="c" data-x="1"'
            parts.append(f"<li><a {attrs}>  {inner}  </a></li>")
        markup = "<html><body><ul>" + "".join(parts) + "</ul></body></html>"

        links = extract_links(markup)

        assert [link.text for link in links] == [" ".join(t.split()) for t, _ in anchors]
        assert [link.href for link in links] == [f"/a/{i}" for _, i in anchors]

    @given(markup=st.text(max_size=300))
    @settings(max_examples=200, deadline=None)
    def test_arbitrary_text_never_raises(self, markup: str):
        """For any input text, extraction SHALL NOT raise."""
        links = extract_links(markup)

        for link in links:
            assert link.text
            assert link.href
