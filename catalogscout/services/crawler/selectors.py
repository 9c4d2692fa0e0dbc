"""Ordered CSS candidates and the cascade that resolves them.

Storefronts in the same template family rename and nest their markup in
slightly different ways. Instead of per-site configuration, every field has an
ordered list of candidate selectors; the first one that yields a non-empty
value wins. There is no scoring and no merging across candidates.
"""

import logging
from dataclasses import dataclass

from bs4 import BeautifulSoup, Tag
from soupsieve import SelectorSyntaxError

from catalogscout.services.crawler.base import ExtractionError

logger = logging.getLogger("catalogscout.crawler.selectors")


@dataclass(frozen=True)
class Strategy:
    """Extract one value from the first element matching `selector`.

    With `attribute` set the attribute value is returned, otherwise the
    element's whitespace-collapsed text. Values at or above `max_length`
    characters are treated as no match.
    """

    selector: str
    attribute: str | None = None
    max_length: int | None = None

    def extract(self, node: Tag) -> str | None:
        try:
            el = node.select_one(self.selector)
        except SelectorSyntaxError:
            logger.warning("Invalid selector skipped: %s", self.selector)
            return None
        if el is None:
            return None

        if self.attribute:
            value = el.get(self.attribute)
            if isinstance(value, list):
                value = " ".join(value)
            value = (value or "").strip()
        else:
            value = " ".join(el.get_text().split())

        if not value:
            return None
        if self.max_length is not None and len(value) >= self.max_length:
            return None
        return value


def resolve(node: Tag, strategies: list[Strategy]) -> str | None:
    """Return the first non-empty value produced by `strategies`, in order."""
    for strategy in strategies:
        value = strategy.extract(node)
        if value:
            return value
    return None


def text_strategies(selectors, max_length: int | None = None) -> list[Strategy]:
    return [Strategy(sel, max_length=max_length) for sel in selectors]


def attribute_strategies(selectors, *attributes: str) -> list[Strategy]:
    """One strategy per (attribute, selector), attribute-major.

    `attribute_strategies(imgs, "src", "data-src")` tries `src` on every
    candidate before falling back to `data-src`.
    """
    return [Strategy(sel, attribute=attr) for attr in attributes for sel in selectors]


@dataclass(frozen=True)
class SelectorSet:
    containers: tuple[str, ...]
    name: tuple[str, ...]
    price: tuple[str, ...]
    url: tuple[str, ...]
    image: tuple[str, ...]
    category: tuple[str, ...]
    next_page: tuple[str, ...]
    out_of_stock: tuple[str, ...]


DEFAULT_SELECTORS = SelectorSet(
    containers=(
        ".js-item-product",
        ".product-item",
        ".item-product",
        ".product-card",
        ".product",
        "[data-product-id]",
        ".item",
        ".grid-item",
    ),
    name=(
        ".js-item-name",
        ".item-name",
        ".product-name",
        ".product-title",
        "h2 a",
        "h3 a",
        ".name a",
        "h1",
        "h2",
        "h3",
        ".title",
    ),
    price=(
        ".js-price-display",
        ".price-display",
        ".price",
        ".product-price",
        ".item-price",
        "[data-price]",
        ".money",
        ".amount",
        ".cost",
    ),
    url=(
        ".js-item-link",
        ".item-link",
        ".product-link",
        'a[href*="/products/"]',
        'a[href*="/producto/"]',
        "a",
    ),
    image=(
        ".js-item-image img",
        ".item-image img",
        ".product-image img",
        ".image img",
        'img[src*="cdn"]',
        "img",
    ),
    category=(
        ".category",
        ".breadcrumb",
        "[data-category]",
        ".product-category",
    ),
    next_page=(
        ".pagination-next",
        ".next",
        'a[rel="next"]',
        ".pager-next a",
        '[data-page="next"]',
    ),
    out_of_stock=(
        ".js-item-no-stock",
        ".item-no-stock",
        ".label-no-stock",
        ".out-of-stock",
        ".sold-out",
        '[data-stock="0"]',
    ),
)


def count_matches(soup: BeautifulSoup, selector: str) -> int:
    try:
        return len(soup.select(selector))
    except SelectorSyntaxError:
        logger.warning("Invalid container selector skipped: %s", selector)
        return 0


def select_container(soup: BeautifulSoup, candidates) -> tuple[str, int]:
    """Pick the container selector with the most matches on this page.

    Ties keep the first-declared candidate. Raises ExtractionError when no
    candidate matches anything.
    """
    best, best_count = None, 0
    for selector in candidates:
        count = count_matches(soup, selector)
        if count > best_count:
            best, best_count = selector, count

    if best is None:
        raise ExtractionError(
            f"No product container matched ({len(candidates)} candidates tried)"
        )
    return best, best_count
