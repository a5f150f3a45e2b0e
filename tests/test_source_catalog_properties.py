"""Tests for the source catalog.

Feature: crypto-news
Tests source lookup, ordering and the built-in catalog.
"""

from urllib.parse import urlsplit

import pytest
from hypothesis import given, settings, strategies as st

from crypto_news.engines.models import Source
from crypto_news.engines.source_catalog import (
    DEFAULT_SOURCES,
    SourceCatalog,
    UnknownSourceError,
    default_catalog,
)


source_name_strategy = st.text(
    alphabet=st.characters(whitelist_categories=("Ll", "Nd"), whitelist_characters="-"),
    min_size=1,
    max_size=20,
)


class TestSourceCatalog:
    """Tests for SourceCatalog lookups."""

    def test_resolve_returns_registered_source(self):
        """resolve SHALL return the source registered under the name."""
        bbc = Source("bbc", "https://www.bbc.com/news/topics/x", "https://www.bbc.com")
        catalog = SourceCatalog([bbc])

        assert catalog.resolve("bbc") is bbc

    def test_resolve_unknown_name_raises(self):
        """resolve SHALL raise UnknownSourceError for unregistered names."""
        catalog = SourceCatalog([Source("bbc", "https://www.bbc.com/")])

        with pytest.raises(UnknownSourceError) as exc_info:
            catalog.resolve("nope")

        assert exc_info.value.name == "nope"
        assert str(exc_info.value) == "Unknown source: nope"

    def test_unknown_source_error_is_a_key_error(self):
        """UnknownSourceError SHALL be catchable as KeyError."""
        catalog = SourceCatalog([])

        with pytest.raises(KeyError):
            catalog.resolve("bbc")

    def test_duplicate_names_are_rejected(self):
        """Building a catalog with a repeated name SHALL raise ValueError."""
        with pytest.raises(ValueError, match="Duplicate source name: bbc"):
            SourceCatalog([
                Source("bbc", "https://www.bbc.com/a"),
                Source("bbc", "https://www.bbc.com/b"),
            ])

    @given(names=st.lists(source_name_strategy, min_size=0, max_size=15, unique=True))
    @settings(max_examples=50)
    def test_names_preserve_registration_order(self, names: list[str]):
        """names() SHALL list every source in registration order."""
        catalog = SourceCatalog(Source(name, f"https://example.com/{name}") for name in names)

        assert catalog.names() == tuple(names)
        assert len(catalog) == len(names)
        assert [source.name for source in catalog] == names
        for name in names:
            assert name in catalog


class TestDefaultCatalog:
    """Tests for the built-in source list."""

    def test_default_catalog_contains_all_default_sources(self):
        """default_catalog SHALL register every built-in source."""
        catalog = default_catalog()

        assert catalog.names() == tuple(source.name for source in DEFAULT_SOURCES)
        assert "bbc" in catalog
        assert "guardian" in catalog
        assert "cnbc" in catalog

    def test_default_sources_have_absolute_urls(self):
        """Every built-in origin and base URL SHALL be absolute https."""
        for source in DEFAULT_SOURCES:
            origin = urlsplit(source.origin_url)
            assert origin.scheme == "https", source.name
            assert origin.hostname, source.name

            if source.base_url:
                base = urlsplit(source.base_url)
                assert base.scheme == "https", source.name
                assert base.hostname == origin.hostname, source.name

    def test_default_sources_are_immutable(self):
        """Sources SHALL be frozen once created."""
        source = DEFAULT_SOURCES[0]

        with pytest.raises(AttributeError):
            source.name = "changed"
