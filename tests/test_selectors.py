"""Tests for the selector cascade and container selection."""

import pytest
from bs4 import BeautifulSoup

from catalogscout.services.crawler.base import ExtractionError
from catalogscout.services.crawler.selectors import (
    Strategy,
    attribute_strategies,
    resolve,
    select_container,
    text_strategies,
)


def _soup(markup):
    return BeautifulSoup(markup, "lxml")


def test_first_matching_strategy_wins():
    node = _soup('<div><span class="a">First</span><span class="b">Second</span></div>')
    assert resolve(node, text_strategies([".a", ".b"])) == "First"


def test_falls_through_to_second_strategy():
    node = _soup('<div><span class="alt-name">Mesa Ratona</span></div>')
    assert resolve(node, text_strategies([".name", ".alt-name"])) == "Mesa Ratona"


def test_empty_text_counts_as_no_match():
    node = _soup('<div><span class="a">   </span><span class="b">Value</span></div>')
    assert resolve(node, text_strategies([".a", ".b"])) == "Value"


def test_only_first_element_of_a_selector_is_tried():
    node = _soup('<div><span class="a"></span><span class="a">Later</span></div>')
    assert resolve(node, text_strategies([".a"])) is None


def test_no_match_returns_none():
    node = _soup("<div><p>nothing here</p></div>")
    assert resolve(node, text_strategies([".a", ".b"])) is None


def test_text_whitespace_collapsed():
    node = _soup('<div class="n">  Mesa\n   <b>Ratona</b>  </div>')
    assert Strategy(".n").extract(node) == "Mesa Ratona"


def test_attribute_strategy():
    node = _soup('<div><a class="link" href=" /productos/1 ">x</a></div>')
    assert resolve(node, attribute_strategies([".link"], "href")) == "/productos/1"


def test_attribute_strategies_are_attribute_major():
    node = _soup(
        '<div><img class="a" data-src="/lazy.jpg"><img class="b" src="/b.jpg"></div>'
    )
    strategies = attribute_strategies([".a", ".b"], "src", "data-src")
    assert [s.attribute for s in strategies] == ["src", "src", "data-src", "data-src"]
    assert resolve(node, strategies) == "/b.jpg"


def test_max_length_rejects_long_values():
    node = _soup(f'<div><span class="c">{"x" * 150}</span><span class="d">Deco</span></div>')
    assert resolve(node, text_strategies([".c", ".d"], max_length=100)) == "Deco"


def test_invalid_selector_is_skipped():
    node = _soup('<div><span class="ok">fine</span></div>')
    assert resolve(node, text_strategies(["[[[", ".ok"])) == "fine"


def test_select_container_picks_most_matches():
    soup = _soup(
        '<div class="product"></div>'
        '<div class="item"></div><div class="item"></div><div class="item"></div>'
    )
    assert select_container(soup, [".product", ".item"]) == (".item", 3)


def test_select_container_tie_keeps_first_declared():
    soup = _soup('<div class="a"></div><div class="b"></div>')
    assert select_container(soup, [".b", ".a"]) == (".b", 1)


def test_select_container_no_match():
    with pytest.raises(ExtractionError):
        select_container(_soup("<p>empty</p>"), [".product", ".item"])
