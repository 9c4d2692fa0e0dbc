import logging
from dataclasses import dataclass, field

from bs4 import BeautifulSoup, Tag

from catalogscout.config import settings
from catalogscout.models.catalog import (
    CanonicalProduct,
    CatalogSource,
    RawProductRecord,
    Rejection,
    RejectionReason,
)
from catalogscout.services.crawler.base import ExtractionError, NormalizationError
from catalogscout.services.crawler.pagination import has_next_page
from catalogscout.services.crawler.selectors import (
    DEFAULT_SELECTORS,
    SelectorSet,
    attribute_strategies,
    resolve,
    select_container,
    text_strategies,
)
from catalogscout.services.normalizer.identity import resolve_external_id
from catalogscout.services.normalizer.price import parse_price
from catalogscout.services.normalizer.urls import resolve_url

logger = logging.getLogger("catalogscout.crawler.extractor")

MAX_CATEGORY_LENGTH = 100


@dataclass
class PageExtraction:
    """Everything one listing page produced."""

    products: list[CanonicalProduct] = field(default_factory=list)
    rejections: list[Rejection] = field(default_factory=list)
    container_selector: str | None = None
    element_count: int = 0
    has_next_page: bool = False

    @property
    def raw_count(self) -> int:
        return len(self.products) + len(self.rejections)


def validate(raw: RawProductRecord, source: CatalogSource) -> CanonicalProduct | Rejection:
    """Promote a raw record to a CanonicalProduct or say why it can't be."""
    if not raw.name or not raw.name.strip():
        return Rejection(RejectionReason.MISSING_NAME, raw.name, raw.price_text)
    if not raw.price_text:
        return Rejection(RejectionReason.MISSING_PRICE, raw.name, raw.price_text)
    if raw.price is None:
        return Rejection(RejectionReason.UNPARSABLE_PRICE, raw.name, raw.price_text)
    price = raw.price
    if price <= 0:
        return Rejection(RejectionReason.NON_POSITIVE_PRICE, raw.name, raw.price_text)

    name = raw.name.strip()
    return CanonicalProduct(
        source_id=source.id,
        external_id=resolve_external_id(raw.url, name, price),
        name=name,
        url=raw.url,
        image_url=raw.image_url,
        price=price,
        currency=source.currency or settings.default_currency,
        in_stock=raw.in_stock,
        category=raw.category,
    )


class PageExtractor:
    """Turn one listing page into canonical product records.

    The container selector is chosen once per page (the candidate matching
    the most elements) and every matched element is then read field by field
    through the selector cascade.
    """

    def __init__(self, selectors: SelectorSet = DEFAULT_SELECTORS):
        self.selectors = selectors
        self.name_strategies = text_strategies(selectors.name)
        self.price_strategies = text_strategies(selectors.price)
        self.url_strategies = attribute_strategies(selectors.url, "href")
        self.image_strategies = attribute_strategies(selectors.image, "src", "data-src")
        self.category_strategies = text_strategies(
            selectors.category, max_length=MAX_CATEGORY_LENGTH
        )

    def extract(self, html: str, source: CatalogSource) -> PageExtraction:
        soup = BeautifulSoup(html, "lxml")
        extraction = PageExtraction(has_next_page=has_next_page(soup, self.selectors.next_page))

        try:
            selector, count = select_container(soup, self.selectors.containers)
        except ExtractionError as e:
            logger.warning("%s: %s", source.name, e)
            return extraction

        logger.debug("%s: using container %s (%d elements)", source.name, selector, count)
        extraction.container_selector = selector
        extraction.element_count = count

        for index, element in enumerate(soup.select(selector)):
            try:
                raw = self.extract_record(element, source)
            except Exception as e:
                logger.error(
                    "%s: failed to extract product %d: %s", source.name, index + 1, e
                )
                continue

            outcome = validate(raw, source)
            if isinstance(outcome, Rejection):
                logger.debug("%s: rejected %r (%s)", source.name, raw.name, outcome.reason.value)
                extraction.rejections.append(outcome)
            else:
                extraction.products.append(outcome)

        return extraction

    def extract_record(self, element: Tag, source: CatalogSource) -> RawProductRecord:
        name = resolve(element, self.name_strategies)
        price_text = resolve(element, self.price_strategies)
        href = resolve(element, self.url_strategies)
        image = self._resolve_image(element)
        try:
            price = parse_price(price_text, source.price_format)
        except NormalizationError:
            price = None

        return RawProductRecord(
            name=name,
            price_text=price_text,
            price=price,
            url=resolve_url(source.base_url, href),
            image_url=resolve_url(source.base_url, image),
            in_stock=not self._is_out_of_stock(element),
            category=resolve(element, self.category_strategies),
        )

    def _resolve_image(self, element: Tag) -> str | None:
        # Lazy-loaded themes put a data: placeholder in src
        for strategy in self.image_strategies:
            value = strategy.extract(element)
            if value and not value.startswith("data:"):
                return value
        return None

    def _is_out_of_stock(self, element: Tag) -> bool:
        classes = " ".join(element.get("class") or []).lower()
        if "no-stock" in classes or "out-of-stock" in classes:
            return True
        for selector in self.selectors.out_of_stock:
            marker = element.select_one(selector)
            if marker is None:
                continue
            # Themes often render the label hidden and toggle it with JS
            style = (marker.get("style") or "").replace(" ", "").lower()
            if "display:none" not in style:
                return True
        return False
