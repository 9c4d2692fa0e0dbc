import logging
from urllib.parse import parse_qsl, urlencode, urlparse, urlunparse

from bs4 import BeautifulSoup, Tag
from soupsieve import SelectorSyntaxError

from catalogscout.config import settings
from catalogscout.models.catalog import CatalogSource, ListingPage, StopReason
from catalogscout.services.crawler.base import PaginationAmbiguity

logger = logging.getLogger("catalogscout.crawler.pagination")

# Hard safety bound on pages per source, whatever the configuration says
PAGE_LIMIT = 50


def build_page_url(base_url: str, page: int) -> str:
    """URL of listing page `page` (1-based) for a storefront.

    Page 1 is the base URL unchanged. Later pages add `page=<n>`: directly
    after the path when it is the root or a `/productos` listing, otherwise
    after a trailing slash. A base URL that already has a query string gets
    `page` merged into it.
    """
    if page < 1:
        raise ValueError(f"Page numbers start at 1, got {page}")
    if page == 1:
        return base_url

    parsed = urlparse(base_url)
    if parsed.query:
        params = [(k, v) for k, v in parse_qsl(parsed.query, keep_blank_values=True) if k != "page"]
        params.append(("page", str(page)))
        return urlunparse(parsed._replace(query=urlencode(params)))

    base = base_url.split("#", 1)[0]
    path = parsed.path or "/"
    if "/productos" in path or path == "/" or path.endswith("/"):
        if not parsed.path:
            base += "/"
        return f"{base}?page={page}"
    return f"{base}/?page={page}"


def is_disabled(el: Tag) -> bool:
    if el.has_attr("disabled"):
        return True
    if "disabled" in (el.get("class") or []):
        return True
    if (el.get("aria-disabled") or "").lower() == "true":
        return True
    style = (el.get("style") or "").replace(" ", "").lower()
    return "display:none" in style


def find_next_page(soup: BeautifulSoup, selectors) -> bool:
    """Whether an enabled next-page element exists.

    Raises PaginationAmbiguity when a candidate cannot be evaluated.
    """
    for selector in selectors:
        try:
            elements = soup.select(selector)
        except SelectorSyntaxError as e:
            raise PaginationAmbiguity(f"Cannot evaluate next-page selector {selector!r}") from e
        if any(not is_disabled(el) for el in elements):
            return True
    return False


def has_next_page(soup: BeautifulSoup, selectors) -> bool:
    """Next-page signal, reading any ambiguity as "no next page"."""
    try:
        return find_next_page(soup, selectors)
    except PaginationAmbiguity as e:
        logger.warning("%s; assuming last page", e)
        return False


class PaginationController:
    """Decide whether a source's crawl moves on to another listing page.

    Usage:
        controller = PaginationController(source)
        page = controller.first_page()
        while page:
            ... fetch and extract ...
            page = controller.advance(page, record_count, has_next)

    A failed fetch ends the traversal through `fail()`, a page robots.txt
    disallows through `disallow()`. Once done,
    `last_completed_page` is the last page that was fetched and extracted and
    `stop_reason` says why traversal ended.
    """

    def __init__(self, source: CatalogSource, max_pages: int | None = None):
        self.source = source
        if max_pages is None:
            max_pages = settings.max_pages
        if max_pages < 1:
            raise ValueError("max_pages must be at least 1")
        if max_pages > PAGE_LIMIT:
            logger.warning(
                "%s: max_pages=%d exceeds the limit, capping at %d",
                source.name,
                max_pages,
                PAGE_LIMIT,
            )
        self.max_pages = min(max_pages, PAGE_LIMIT)
        self.last_completed_page = 0
        self.stop_reason: StopReason | None = None

    @property
    def done(self) -> bool:
        return self.stop_reason is not None

    def page(self, number: int) -> ListingPage:
        return ListingPage(
            source=self.source,
            number=number,
            url=build_page_url(self.source.base_url, number),
        )

    def first_page(self) -> ListingPage:
        return self.page(1)

    def advance(self, current: ListingPage, record_count: int, has_next: bool) -> ListingPage | None:
        """Record page `current` as completed and return the next page, if any."""
        if self.done:
            raise RuntimeError("Pagination already finished")
        self.last_completed_page = current.number

        if record_count == 0:
            return self._finish(StopReason.NO_RECORDS)
        if not has_next:
            return self._finish(StopReason.NO_NEXT_PAGE)
        if current.number + 1 > self.max_pages:
            return self._finish(StopReason.PAGE_LIMIT)
        return self.page(current.number + 1)

    def fail(self) -> None:
        self._finish(StopReason.FETCH_FAILED)

    def cancel(self) -> None:
        self._finish(StopReason.CANCELLED)

    def disallow(self) -> None:
        self._finish(StopReason.ROBOTS_DISALLOWED)

    def _finish(self, reason: StopReason) -> None:
        self.stop_reason = reason
        logger.debug(
            "%s: pagination done after page %d (%s)",
            self.source.name,
            self.last_completed_page,
            reason.value,
        )
        return None
