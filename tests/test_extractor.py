"""Tests for page extraction and record validation."""

import dataclasses

import pytest
from bs4 import BeautifulSoup

from catalogscout.models.catalog import (
    CanonicalProduct,
    CatalogSource,
    PriceFormat,
    RawProductRecord,
    Rejection,
    RejectionReason,
)
from catalogscout.services.crawler.extractor import PageExtractor, validate
from catalogscout.services.crawler.selectors import DEFAULT_SELECTORS


def test_extracts_full_record(source, html):
    page = html.listing(
        [
            html.product(
                "Mesa Ratona",
                "$15.000,00",
                href="/productos/mesa-ratona/",
                image="//cdn.store.com/mesa.jpg",
                extra='<span class="category">Living</span>',
            )
        ]
    )
    extraction = PageExtractor().extract(page, source)

    assert extraction.container_selector == ".js-item-product"
    assert extraction.element_count == 1
    assert extraction.rejections == []
    [product] = extraction.products
    assert product.name == "Mesa Ratona"
    assert product.price == 15000
    assert product.url == "https://store.com/productos/mesa-ratona/"
    assert product.image_url == "https://cdn.store.com/mesa.jpg"
    assert product.external_id == "mesa-ratona"
    assert product.currency == "ARS"
    assert product.category == "Living"
    assert product.in_stock is True
    assert product.source_id == 1


def test_second_name_selector_used_when_first_missing(source, html):
    selectors = dataclasses.replace(DEFAULT_SELECTORS, name=(".missing-name", ".alt-name"))
    page = html.listing(
        [html.product("ignored", "$ 100", extra='<p class="alt-name">Silla Eames</p>')]
    )
    [product] = PageExtractor(selectors).extract(page, source).products
    assert product.name == "Silla Eames"


def test_invalid_records_are_rejected_not_raised(source, html):
    page = html.listing(
        [
            html.product("Valida", "$ 100"),
            html.product("Sin precio", None),
            html.product("Consultar", "Consultar precio"),
            html.product("Gratis", "$ 0"),
            '<div class="js-item-product"><span class="js-price-display">$ 5</span></div>',
        ]
    )
    extraction = PageExtractor().extract(page, source)

    assert [p.name for p in extraction.products] == ["Valida"]
    reasons = sorted(r.reason.value for r in extraction.rejections)
    assert reasons == [
        "missing_name",
        "missing_price",
        "non_positive_price",
        "unparsable_price",
    ]
    assert extraction.raw_count == 5


def test_no_container_yields_empty_extraction(source):
    extraction = PageExtractor().extract("<html><body><p>Mantenimiento</p></body></html>", source)
    assert extraction.products == []
    assert extraction.raw_count == 0
    assert extraction.container_selector is None


def test_container_with_most_matches_is_used(source):
    page = (
        '<div class="product-card"><h3>Solo</h3><span class="price">$ 10</span></div>'
        '<div class="item"><h3>Uno</h3><span class="price">$ 20</span></div>'
        '<div class="item"><h3>Dos</h3><span class="price">$ 30</span></div>'
    )
    extraction = PageExtractor().extract(page, source)
    assert extraction.container_selector == ".item"
    assert [p.name for p in extraction.products] == ["Uno", "Dos"]


def test_lazy_image_uses_data_src(source):
    page = (
        '<div class="js-item-product"><h3 class="js-item-name">Lampara</h3>'
        '<span class="price">$ 900</span>'
        '<img src="data:image/gif;base64,R0lGOD" data-src="/img/lampara.jpg"></div>'
    )
    [product] = PageExtractor().extract(page, source).products
    assert product.image_url == "https://store.com/img/lampara.jpg"


def test_out_of_stock_marker(source, html):
    page = html.listing(
        [
            html.product("Agotado", "$ 100", extra='<div class="js-item-no-stock">Sin stock</div>'),
            html.product(
                "Oculto",
                "$ 200",
                extra='<div class="js-item-no-stock" style="display: none">Sin stock</div>',
            ),
            html.product("Disponible", "$ 300"),
        ]
    )
    stock = {p.name: p.in_stock for p in PageExtractor().extract(page, source).products}
    assert stock == {"Agotado": False, "Oculto": True, "Disponible": True}


def test_long_category_ignored(source, html):
    page = html.listing(
        [html.product("Mesa", "$ 100", extra=f'<span class="category">{"x" * 120}</span>')]
    )
    [product] = PageExtractor().extract(page, source).products
    assert product.category is None


def test_next_page_signal(source, html):
    extraction = PageExtractor().extract(html.page(1, count=2, next_page=True), source)
    assert extraction.has_next_page is True
    extraction = PageExtractor().extract(html.page(1, count=2, next_page=False), source)
    assert extraction.has_next_page is False


def test_source_currency_and_price_format(html):
    source = CatalogSource(
        id="us-1",
        name="US Store",
        base_url="https://shop.example.com/",
        domain="shop.example.com",
        currency="USD",
        price_format=PriceFormat(thousands=",", decimal="."),
    )
    [product] = PageExtractor().extract(
        html.listing([html.product("Lamp", "$1,299.99")]), source
    ).products
    assert product.price == pytest.approx(1299.99)
    assert product.currency == "USD"


def test_validate_explicit_outcomes(source):
    ok = validate(RawProductRecord(name=" Mesa ", price_text="$ 1.500", price=1500.0), source)
    assert isinstance(ok, CanonicalProduct)
    assert ok.name == "Mesa"
    assert ok.external_id == "mesa_1500"

    missing = validate(RawProductRecord(name="Mesa", price_text=None), source)
    unparsable = validate(RawProductRecord(name="Mesa", price_text="a convenir"), source)
    assert isinstance(missing, Rejection) and missing.reason is RejectionReason.MISSING_PRICE
    assert unparsable.reason is RejectionReason.UNPARSABLE_PRICE


def test_extract_record_parses_price_once(source, html):
    soup = BeautifulSoup(html.product("Mesa", "$ 1.234,50"), "lxml")
    raw = PageExtractor().extract_record(soup.select_one(".js-item-product"), source)
    assert raw.price_text == "$ 1.234,50"
    assert raw.price == pytest.approx(1234.5)

    soup = BeautifulSoup(html.product("Silla", "Consultar"), "lxml")
    raw = PageExtractor().extract_record(soup.select_one(".js-item-product"), source)
    assert raw.price is None


def test_validate_uses_parsed_price(source):
    product = validate(RawProductRecord(name="Mesa", price_text="$ 1.500", price=900.0), source)
    assert product.price == 900.0
    assert product.external_id == "mesa_900"

    free = validate(RawProductRecord(name="Mesa", price_text="$ 0", price=0.0), source)
    assert free.reason is RejectionReason.NON_POSITIVE_PRICE
