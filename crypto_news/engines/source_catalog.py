"""Registry of the news sources the pipeline knows how to scrape."""

from typing import Iterable, Iterator

from crypto_news.engines.models import Source


DEFAULT_SOURCES: tuple[Source, ...] = (
    Source("guardian", "https://www.theguardian.com/technology/cryptocurrencies"),
    Source("bbc", "https://www.bbc.com/news/topics/cyd7z4rvdm3t", "https://www.bbc.com"),
    Source("cnbc", "https://www.cnbc.com/cryptoworld/"),
    Source("timesnow", "https://www.timesnownews.com/topic/crypto", "https://www.timesnownews.com"),
    Source("forbes", "https://www.forbes.com/crypto-blockchain/"),
    Source("foxbusiness", "https://www.foxbusiness.com/category/cryptocurrency", "https://www.foxbusiness.com"),
    Source("aljazeera", "https://www.aljazeera.com/tag/crypto/"),
    Source("nytimes", "https://www.nytimes.com/spotlight/cryptocurrency", "https://www.nytimes.com"),
    Source("reuters", "https://www.reuters.com/business/future-of-money/", "https://www.reuters.com"),
    Source("globeandmail", "https://www.theglobeandmail.com/topics/cryptocurrency/", "https://www.theglobeandmail.com"),
    Source("buzzfeed", "https://www.buzzfeed.com/ca/tag/cryptocurrency"),
    Source("cnn", "https://www.cnn.com/specials/investing/cryptocurrency"),
    Source("rt", "https://www.rt.com/trends/cryptocurrency-cryptographic-exchange-bitcoin/", "https://www.rt.com"),
    Source("france24", "https://www.france24.com/en/tag/cryptocurrency/", "https://www.france24.com"),
    Source("globalnews", "https://globalnews.ca/tag/cryptocurrency/"),
    Source("smh", "https://www.smh.com.au/topic/cryptocurrencies-hpc", "https://www.smh.com.au"),
    Source("sky", "https://news.sky.com/topic/cryptocurrencies-7226", "https://news.sky.com"),
    Source("thesun", "https://www.thesun.co.uk/topic/cryptocurrency/"),
)


class UnknownSourceError(KeyError):
    """Raised when a source name is not registered in the catalog."""

    def __init__(self, name: str):
        super().__init__(name)
        self.name = name

    def __str__(self) -> str:
        return f"Unknown source: {self.name}"


class SourceCatalog:
    """Read-only lookup from source name to Source.

    The catalog is built once at start-up and shared between worker
    threads without locking; nothing mutates it afterwards.
    """

    def __init__(self, sources: Iterable[Source]):
        by_name: dict[str, Source] = {}
        for source in sources:
            if source.name in by_name:
                raise ValueError(f"Duplicate source name: {source.name}")
            by_name[source.name] = source
        self._sources = by_name

    def resolve(self, name: str) -> Source:
        """Return the source registered under name.

        Raises:
            UnknownSourceError: If no source has that name.
        """
        try:
            return self._sources[name]
        except KeyError:
            raise UnknownSourceError(name) from None

    def names(self) -> tuple[str, ...]:
        """Return all registered names in registration order."""
        return tuple(self._sources)

    def __contains__(self, name: object) -> bool:
        return name in self._sources

    def __iter__(self) -> Iterator[Source]:
        return iter(self._sources.values())

    def __len__(self) -> int:
        return len(self._sources)


def default_catalog() -> SourceCatalog:
    """Build the catalog of built-in news sources."""
    return SourceCatalog(DEFAULT_SOURCES)
