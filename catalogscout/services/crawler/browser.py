import logging

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError
from playwright.async_api import async_playwright

from catalogscout.config import settings
from catalogscout.services.crawler.base import (
    BaseFetcher,
    FetchError,
    FetchResult,
    ResourcePolicy,
)
from catalogscout.services.crawler.selectors import DEFAULT_SELECTORS

logger = logging.getLogger("catalogscout.crawler.browser")

LAUNCH_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-gpu",
    "--disable-extensions",
]


class BrowserFetcher(BaseFetcher):
    """Render listing pages in headless Chromium.

    Storefront themes that inject the product grid with JavaScript need a
    real renderer. Sub-resources named by the policy (images, stylesheets,
    fonts by default) are aborted at the network layer. After navigation we
    wait for any product container candidate to appear, then give the page a
    short moment to settle before reading its HTML.
    """

    def __init__(
        self,
        user_agent: str | None = None,
        ready_selectors: list[str] | None = None,
        ready_timeout: float | None = None,
        settle_seconds: float | None = None,
    ):
        self.user_agent = user_agent or settings.user_agent
        self.ready_selectors = ready_selectors or list(DEFAULT_SELECTORS.containers)
        self.ready_timeout = (
            settings.browser_ready_timeout_seconds if ready_timeout is None else ready_timeout
        )
        self.settle_seconds = (
            settings.browser_settle_seconds if settle_seconds is None else settle_seconds
        )
        self._playwright = None
        self._browser = None
        self._context = None

    async def open(self) -> None:
        if self._browser is not None:
            return
        self._playwright = await async_playwright().start()
        try:
            self._browser = await self._playwright.chromium.launch(
                headless=True, args=LAUNCH_ARGS
            )
            self._context = await self._browser.new_context(
                user_agent=self.user_agent,
                viewport={"width": 1366, "height": 768},
            )
        except BaseException:
            await self.close()
            raise
        logger.info("Headless browser started")

    async def close(self) -> None:
        try:
            if self._context is not None:
                await self._context.close()
            if self._browser is not None:
                await self._browser.close()
        finally:
            if self._playwright is not None:
                await self._playwright.stop()
            self._context = None
            self._browser = None
            self._playwright = None

    async def fetch(
        self, url: str, timeout: float, policy: ResourcePolicy
    ) -> FetchResult:
        if self._context is None:
            raise RuntimeError("Browser not started. Use 'async with' or call open() first.")

        page = await self._context.new_page()
        try:
            if policy.blocked_resource_types:

                async def _route(route):
                    if policy.blocks(route.request.resource_type):
                        await route.abort()
                    else:
                        await route.continue_()

                await page.route("**/*", _route)

            try:
                response = await page.goto(
                    url, wait_until="domcontentloaded", timeout=timeout * 1000
                )
            except PlaywrightTimeoutError as e:
                raise FetchError(url, f"Timed out after {timeout}s fetching {url}") from e
            except PlaywrightError as e:
                raise FetchError(url, f"Navigation to {url} failed: {e}") from e

            if response is None:
                raise FetchError(url, f"No response for {url}")
            if not 200 <= response.status < 300:
                raise FetchError(
                    url, f"HTTP {response.status} for {url}", status_code=response.status
                )

            await self._wait_for_products(page)
            html = await page.content()
            return FetchResult(url=page.url, status_code=response.status, html=html)
        finally:
            try:
                await page.close()
            except PlaywrightError as e:
                logger.warning("Could not close page for %s: %s", url, e)

    async def fetch_text(self, url: str, timeout: float) -> FetchResult:
        # Plain resources go through the context's request API, not a rendered page
        if self._context is None:
            raise RuntimeError("Browser not started. Use 'async with' or call open() first.")
        try:
            response = await self._context.request.get(url, timeout=timeout * 1000)
        except PlaywrightTimeoutError as e:
            raise FetchError(url, f"Timed out after {timeout}s fetching {url}") from e
        except PlaywrightError as e:
            raise FetchError(url, f"Request to {url} failed: {e}") from e

        if not 200 <= response.status < 300:
            raise FetchError(
                url, f"HTTP {response.status} for {url}", status_code=response.status
            )
        text = await response.text()
        return FetchResult(url=response.url, status_code=response.status, html=text)

    async def _wait_for_products(self, page) -> None:
        try:
            await page.wait_for_selector(
                ", ".join(self.ready_selectors),
                timeout=self.ready_timeout * 1000,
            )
        except PlaywrightTimeoutError:
            logger.debug("Timed out waiting for products on %s, continuing", page.url)
        if self.settle_seconds:
            await page.wait_for_timeout(self.settle_seconds * 1000)
