import asyncio
import logging
import time

from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
    wait_random,
)

from catalogscout.config import settings
from catalogscout.models.catalog import CatalogSource, CrawlResult, summarize
from catalogscout.services.crawler.base import (
    BaseFetcher,
    FetchError,
    FetchResult,
    ResourcePolicy,
)
from catalogscout.services.crawler.extractor import PageExtractor
from catalogscout.services.crawler.fetcher import create_fetcher
from catalogscout.services.crawler.pagination import PaginationController
from catalogscout.services.normalizer.dedup import dedupe
from catalogscout.services.registry import active_sources, get_sources
from catalogscout.utils.robots import RobotsGate

logger = logging.getLogger("catalogscout.crawler.manager")


def _default(value, fallback):
    return fallback if value is None else value


def _is_retryable(exc: BaseException) -> bool:
    return isinstance(exc, FetchError) and exc.retryable


class CatalogCrawler:
    """Crawl storefront listing pages into canonical product records.

    The fetcher must already be open; the caller owns its lifetime (see the
    module-level `crawl_sources()` for the managed variant).

    Per source, pages are walked in increasing order until the pagination
    controller says stop, with `request_delay` seconds between page fetches.
    A failure on page 1 fails the source; a failure on a later page keeps
    what was gathered so far. Sources run through a pool of
    `max_concurrent_sources` workers (1 means strictly one after another),
    each pausing `request_delay` seconds between its sources. Results come
    back in input order and one source's failure never affects another.

    With `respect_robots`, every page URL is checked against its host's
    robots.txt, loaded through the same fetcher. A disallowed first page fails
    the source; a disallowed later page ends it with what was gathered.

    `cancel_event`, when given, is checked before every fetch and cuts every
    pacing delay short. A cancelled source reports what it gathered and the
    sources not yet started are left out of the results.
    """

    def __init__(
        self,
        fetcher: BaseFetcher,
        *,
        extractor: PageExtractor | None = None,
        policy: ResourcePolicy | None = None,
        page_timeout: float | None = None,
        request_delay: float | None = None,
        max_pages: int | None = None,
        max_concurrent_sources: int | None = None,
        max_attempts: int | None = None,
        retry_initial_delay: float | None = None,
        retry_max_delay: float | None = None,
        respect_robots: bool | None = None,
        cancel_event: asyncio.Event | None = None,
    ):
        self.fetcher = fetcher
        self.extractor = extractor or PageExtractor()
        self.policy = policy or ResourcePolicy.default()
        self.page_timeout = _default(page_timeout, settings.fetch_timeout_seconds)
        self.request_delay = _default(request_delay, settings.request_delay_seconds)
        self.max_pages = _default(max_pages, settings.max_pages)
        self.max_concurrent_sources = _default(
            max_concurrent_sources, settings.max_concurrent_sources
        )
        self.max_attempts = _default(max_attempts, settings.fetch_max_attempts)
        self.retry_initial_delay = _default(
            retry_initial_delay, settings.retry_initial_delay_seconds
        )
        self.retry_max_delay = _default(retry_max_delay, settings.retry_max_delay_seconds)
        self.respect_robots = _default(respect_robots, settings.respect_robots_txt)
        self.cancel_event = cancel_event
        self.robots = RobotsGate(fetcher) if self.respect_robots else None

        if self.max_concurrent_sources < 1:
            raise ValueError("max_concurrent_sources must be at least 1")
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")

    def cancelled(self) -> bool:
        return self.cancel_event is not None and self.cancel_event.is_set()

    async def pause(self) -> bool:
        """Wait out the pacing delay. Returns False if cancelled meanwhile."""
        if self.cancelled():
            return False
        if self.cancel_event is None:
            if self.request_delay > 0:
                await asyncio.sleep(self.request_delay)
            return True
        try:
            await asyncio.wait_for(self.cancel_event.wait(), timeout=self.request_delay)
        except asyncio.TimeoutError:
            return True
        return False

    async def fetch(self, url: str) -> FetchResult:
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(
                multiplier=self.retry_initial_delay,
                exp_base=2,
                max=self.retry_max_delay,
            )
            + wait_random(0, self.retry_initial_delay),
            retry=retry_if_exception(_is_retryable),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        return await retrying(self.fetcher.fetch, url, self.page_timeout, self.policy)

    async def crawl_source(self, source: CatalogSource) -> CrawlResult:
        start_time = time.monotonic()
        logger.info("Crawling %s (%s)", source.name, source.base_url)

        controller = PaginationController(source, self.max_pages)
        seen: set[tuple] = set()
        products = []
        error = None

        page = controller.first_page()
        while page is not None:
            if self.cancelled():
                controller.cancel()
                break

            if self.robots is not None and not await self.robots.allows(page.url):
                logger.info("Blocked by robots.txt: %s", page.url)
                controller.disallow()
                if page.number == 1:
                    error = "blocked by robots.txt"
                break

            try:
                fetched = await self.fetch(page.url)
                extraction = self.extractor.extract(fetched.html, source)
            except Exception as e:
                controller.fail()
                if page.number == 1:
                    error = str(e)
                    logger.error("Failed to crawl %s: %s", source.name, e)
                else:
                    logger.error(
                        "Error on page %d of %s, keeping %d earlier pages: %s",
                        page.number,
                        source.name,
                        controller.last_completed_page,
                        e,
                    )
                break

            products.extend(dedupe(extraction.products, seen))
            logger.info(
                "%s page %d: %d products, %d rejected (total: %d)",
                source.name,
                page.number,
                len(extraction.products),
                len(extraction.rejections),
                len(products),
            )

            page = controller.advance(page, extraction.raw_count, extraction.has_next_page)
            if page is not None and not await self.pause():
                controller.cancel()
                break

        if error is None and controller.last_completed_page == 0:
            error = "crawl cancelled"

        result = CrawlResult(
            source=source,
            success=error is None,
            products=products,
            pages_traversed=controller.last_completed_page,
            duration_seconds=time.monotonic() - start_time,
            error=error,
            stop_reason=controller.stop_reason,
        )
        logger.info(
            "Crawl of %s complete: success=%s, products=%d, pages=%d, %.1fs",
            source.name,
            result.success,
            result.products_found,
            result.pages_traversed,
            result.duration_seconds,
        )
        return result

    async def _crawl_isolated(self, source: CatalogSource) -> CrawlResult:
        start_time = time.monotonic()
        try:
            return await self.crawl_source(source)
        except Exception as e:
            logger.exception("Crawl of %s crashed", source.name)
            return CrawlResult(
                source=source,
                success=False,
                error=str(e) or type(e).__name__,
                duration_seconds=time.monotonic() - start_time,
            )

    async def crawl_sources(self, sources: list[CatalogSource]) -> list[CrawlResult]:
        targets = active_sources(sources)
        for source in sources:
            if not source.active:
                logger.info("Skipping %s (inactive)", source.name)

        logger.info("Crawling %d sources", len(targets))
        results: list[CrawlResult | None] = [None] * len(targets)
        pending = iter(enumerate(targets))

        async def worker():
            first = True
            for index, source in pending:
                if not first and not await self.pause():
                    return
                if self.cancelled():
                    return
                first = False
                results[index] = await self._crawl_isolated(source)

        workers = min(self.max_concurrent_sources, len(targets))
        await asyncio.gather(*(worker() for _ in range(workers)))

        finished = [r for r in results if r is not None]
        summary = summarize(finished)
        logger.info(
            "Summary: %d/%d sources successful, %d products total",
            summary.successful,
            len(targets),
            summary.total_products,
        )
        return finished


async def crawl_sources(
    sources: list[CatalogSource] | None = None,
    fetcher: BaseFetcher | None = None,
    **options,
) -> list[CrawlResult]:
    """Crawl `sources` (default: the configured registry) with a managed fetcher.

    The fetcher is opened for the whole run and closed on every exit path.
    Keyword options are passed through to CatalogCrawler.
    """
    if sources is None:
        sources = get_sources()
    fetcher = fetcher or create_fetcher()
    async with fetcher:
        crawler = CatalogCrawler(fetcher, **options)
        return await crawler.crawl_sources(sources)
