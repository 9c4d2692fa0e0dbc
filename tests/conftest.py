import pytest

from catalogscout.models.catalog import CatalogSource
from catalogscout.services.crawler.base import (
    BaseFetcher,
    FetchError,
    FetchResult,
    ResourcePolicy,
)


class FakeFetcher(BaseFetcher):
    """Serves canned HTML by URL.

    A page value may be an HTML string, an int status code (non-2xx raises
    FetchError), an exception instance to raise, or a list of those consumed
    one per request. Unknown URLs answer 404 unless `default` is set.
    """

    def __init__(self, pages=None, default=None, on_fetch=None):
        self.pages = dict(pages or {})
        self.default = default
        self.on_fetch = on_fetch
        self.calls: list[str] = []
        self.opened = False
        self.closed = False

    async def open(self):
        self.opened = True

    async def close(self):
        self.closed = True

    async def fetch(self, url: str, timeout: float, policy: ResourcePolicy) -> FetchResult:
        self.calls.append(url)
        if self.on_fetch:
            self.on_fetch(url)

        value = self.pages.get(url, self.default)
        if isinstance(value, list):
            value = value.pop(0)
        if value is None:
            raise FetchError(url, f"HTTP 404 for {url}", status_code=404)
        if isinstance(value, Exception):
            raise value
        if isinstance(value, int):
            raise FetchError(url, f"HTTP {value} for {url}", status_code=value)
        return FetchResult(url=url, status_code=200, html=value)


def product_html(name, price, href=None, image=None, extra=""):
    parts = ['<div class="js-item-product">']
    if href:
        parts.append(f'<a class="js-item-link" href="{href}"><h3 class="js-item-name">{name}</h3></a>')
    else:
        parts.append(f'<h3 class="js-item-name">{name}</h3>')
    if price is not None:
        parts.append(f'<span class="js-price-display">{price}</span>')
    if image:
        parts.append(f'<div class="js-item-image"><img src="{image}"></div>')
    parts.append(extra)
    parts.append("</div>")
    return "".join(parts)


def listing_html(products, next_page=False):
    """A storefront listing page. `products` holds product_html() snippets."""
    pagination = '<a class="pagination-next" href="?page=next">Siguiente</a>' if next_page else ""
    return (
        "<html><head><title>Tienda</title></head><body>"
        f'<section class="js-product-grid">{"".join(products)}</section>'
        f'<div class="pagination">{pagination}</div>'
        "</body></html>"
    )


def page_of_products(page: int, count: int = 10, next_page: bool = True):
    return listing_html(
        [
            product_html(
                f"Producto {page}-{i}",
                f"$ {page}.{i:03d},50",
                href=f"/productos/producto-{page}-{i}/",
            )
            for i in range(count)
        ],
        next_page=next_page,
    )


@pytest.fixture
def source():
    return CatalogSource(
        id=1,
        name="Test Store",
        base_url="https://store.com/",
        domain="store.com",
    )


@pytest.fixture
def fake_fetcher():
    return FakeFetcher


@pytest.fixture
def html():
    """Page builders: html.product(...), html.listing(...), html.page(n)."""

    class _Builders:
        product = staticmethod(product_html)
        listing = staticmethod(listing_html)
        page = staticmethod(page_of_products)

    return _Builders
