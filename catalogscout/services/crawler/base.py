from abc import ABC, abstractmethod
from dataclasses import dataclass

from catalogscout.config import settings


class CrawlError(Exception):
    """Base class for everything the crawl engine raises."""


class FetchError(CrawlError):
    """Network failure, timeout, or non-2xx response for a page request."""

    def __init__(self, url: str, message: str, status_code: int | None = None):
        super().__init__(message)
        self.url = url
        self.status_code = status_code

    @property
    def retryable(self) -> bool:
        # Transport errors and timeouts carry no status
        if self.status_code is None:
            return True
        return self.status_code == 429 or self.status_code >= 500


class ExtractionError(CrawlError):
    """No product container candidate matched on a fetched page."""


class NormalizationError(CrawlError):
    """Price text present but not parsable as a number."""


class PaginationAmbiguity(CrawlError):
    """The next-page signal could not be determined."""


@dataclass(frozen=True)
class ResourcePolicy:
    """Sub-resource types a renderer should not load."""

    blocked_resource_types: frozenset[str] = frozenset()

    @classmethod
    def default(cls) -> "ResourcePolicy":
        return cls(frozenset(settings.blocked_resource_types))

    def blocks(self, resource_type: str) -> bool:
        return resource_type in self.blocked_resource_types


@dataclass
class FetchResult:
    """Rendered HTML for one URL."""

    url: str
    status_code: int
    html: str


class BaseFetcher(ABC):
    """Abstract base for page fetchers.

    A fetcher owns one session resource (an HTTP client, a browser) for the
    duration of a crawl. Use it as an async context manager so the resource
    is released on every exit path:

        async with HttpFetcher() as fetcher:
            result = await fetcher.fetch(url, timeout=30, policy=policy)

    `fetch()` returns only 2xx responses; anything else raises FetchError.
    """

    async def open(self) -> None:
        """Acquire the underlying session resource."""

    async def close(self) -> None:
        """Release the underlying session resource."""

    async def __aenter__(self):
        await self.open()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    @abstractmethod
    async def fetch(
        self, url: str, timeout: float, policy: ResourcePolicy
    ) -> FetchResult:
        ...

    async def fetch_text(self, url: str, timeout: float) -> FetchResult:
        """Fetch a plain-text resource such as robots.txt, unrendered."""
        return await self.fetch(url, timeout, ResourcePolicy())
