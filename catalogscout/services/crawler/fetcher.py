import logging

import httpx

from catalogscout.config import settings
from catalogscout.services.crawler.base import (
    BaseFetcher,
    FetchError,
    FetchResult,
    ResourcePolicy,
)

logger = logging.getLogger("catalogscout.crawler.fetcher")


class HttpFetcher(BaseFetcher):
    """Fetch listing pages with a plain HTTP client.

    Works for storefronts that render their catalog server-side. Nothing but
    the document itself is requested, so every resource policy is satisfied.
    """

    def __init__(
        self,
        user_agent: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.user_agent = user_agent or settings.user_agent
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def open(self) -> None:
        if self._client is None:
            self._client = httpx.AsyncClient(
                follow_redirects=True,
                headers={"User-Agent": self.user_agent},
                transport=self._transport,
            )

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def fetch(
        self, url: str, timeout: float, policy: ResourcePolicy
    ) -> FetchResult:
        if self._client is None:
            raise RuntimeError("Fetcher not opened. Use 'async with' or call open() first.")

        try:
            resp = await self._client.get(url, timeout=timeout)
        except httpx.TimeoutException as e:
            raise FetchError(url, f"Timed out after {timeout}s fetching {url}") from e
        except httpx.HTTPError as e:
            raise FetchError(url, f"Request to {url} failed: {e}") from e

        if not resp.is_success:
            raise FetchError(
                url,
                f"HTTP {resp.status_code} for {url}",
                status_code=resp.status_code,
            )

        logger.debug("Fetched %s (%d bytes)", url, len(resp.content))
        return FetchResult(url=str(resp.url), status_code=resp.status_code, html=resp.text)


def create_fetcher(backend: str | None = None) -> BaseFetcher:
    """Build the fetcher named by `backend` (defaults to settings.fetch_backend)."""
    backend = backend or settings.fetch_backend
    if backend == "http":
        return HttpFetcher()
    if backend == "browser":
        from catalogscout.services.crawler.browser import BrowserFetcher

        return BrowserFetcher()
    raise ValueError(f"Unknown fetch backend: {backend}. Available: ['http', 'browser']")
