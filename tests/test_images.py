"""Tests for image pool matching and the interactive detail-view fallback."""
from __future__ import annotations

from typing import Any, Dict, List, Optional, Set, Tuple

import pytest

from menu_scraper.images import (
    DetailView,
    InteractiveImageExtractor,
    build_image_pool,
    match_image,
    parse_detail_options,
    reconcile,
    reconcile_interactively,
)
from menu_scraper.models import RawItem
from menu_scraper.profiles import UBER
from menu_scraper.sources.dom import PageSnapshot

_MODAL_HTML = """
<img src="https://tb-static.uber.com/modal/chips.jpg">
<div class="option-group">
  <h4>Add a Drink</h4>
  <div class="option-choice">Lemonade +$3.25</div>
  <div class="option-choice">Water</div>
</div>
"""

_CLICKABLE = "li[data-testid^='store-item-']"
_CLOSE = "[role='dialog'] [aria-label='Close']"


class _StubLocator:
    """Locator stub recording clicks; raises like Playwright when nothing matches."""

    def __init__(self, page: "_StubPage", selector: str) -> None:
        self.page = page
        self.selector = selector
        self.text: Optional[str] = None

    def filter(self, has_text: Optional[str] = None) -> "_StubLocator":
        self.text = has_text
        return self

    @property
    def first(self) -> "_StubLocator":
        return self

    async def click(self, timeout: int | None = None) -> None:
        if self.selector not in self.page.clickable:
            raise TimeoutError(f"no element for {self.selector}")
        self.page.clicks.append((self.selector, self.text))


class _StubModal:
    def __init__(self, html: Optional[str]) -> None:
        self.html = html

    async def inner_html(self) -> str:
        if self.html is None:
            raise RuntimeError("detached")
        return self.html


class _StubKeyboard:
    def __init__(self) -> None:
        self.pressed: List[str] = []

    async def press(self, key: str) -> None:
        self.pressed.append(key)


class _StubPage:
    def __init__(self, clickable: Set[str], modal: Optional[_StubModal] = None) -> None:
        self.clickable = clickable
        self.modal = modal
        self.clicks: List[Tuple[str, Optional[str]]] = []
        self.keyboard = _StubKeyboard()

    def locator(self, selector: str) -> _StubLocator:
        return _StubLocator(self, selector)

    async def wait_for_selector(self, selector: str, timeout: int | None = None, state: str | None = None) -> Any:
        if self.modal is None:
            raise TimeoutError("modal never appeared")
        return self.modal


@pytest.fixture
def anyio_backend() -> str:
    """Restrict anyio tests to the asyncio backend for deterministic behaviour."""

    return "asyncio"


def test_substring_match_wins_before_token_overlap() -> None:
    pool = {"Chicken Burrito Bowl, Large": "https://tb-static.uber.com/bowl.jpg"}

    assert match_image("Chicken Burrito Bowl", pool) == ("substring", "https://tb-static.uber.com/bowl.jpg")


@pytest.mark.parametrize(
    "name,label,strategy",
    [
        ("Chips", "chips", "exact"),
        ("Spicy Chicken Tacos", "Tacos with Spicy Chicken", "tokens"),
        ("Coca-Cola", "Coca Cola Classic™", "normalised"),
        ("The Big Cup Special", "The Big Cup of Joe", "prefix"),
    ],
)
def test_match_cascade_strategies(name: str, label: str, strategy: str) -> None:
    assert match_image(name, {label: "https://img/x.jpg"}) == (strategy, "https://img/x.jpg")


def test_unmatched_item_keeps_null_image() -> None:
    items = [RawItem("Horchata"), RawItem("Chips", image="https://tb-static.uber.com/own.jpg")]
    pool = {"Chips": "https://tb-static.uber.com/chips.jpg", "Burrito": "https://tb-static.uber.com/b.jpg"}

    updated = reconcile(items, pool)

    assert updated == 0
    assert items[0].image is None
    assert items[1].image == "https://tb-static.uber.com/own.jpg"


def test_build_image_pool_prefers_labelled_images_on_allowed_domains() -> None:
    snapshot = PageSnapshot.from_html(
        """
        <img src="https://tb-static.uber.com/a.jpg" alt="Chicken Burrito Bowl, Large">
        <img src="https://cdn.other.com/b.jpg" alt="Steak Burrito">
        <div data-testid="store-menu-item"><h3>Chips</h3><img src="https://tb-static.uber.com/chips.jpg"></div>
        <div><h2>Lemonade</h2><img data-src="https://tb-static.uber.com/lemon.jpg"></div>
        """
    )

    pool = build_image_pool(snapshot, UBER)

    assert pool == {
        "Chicken Burrito Bowl, Large": "https://tb-static.uber.com/a.jpg",
        "Chips": "https://tb-static.uber.com/chips.jpg",
        "Lemonade": "https://tb-static.uber.com/lemon.jpg",
    }


def test_parse_detail_options_splits_price_suffix() -> None:
    assert parse_detail_options(_MODAL_HTML, UBER) == [
        {
            "name": "Add a Drink",
            "options": [{"name": "Lemonade", "price": "+$3.25"}, {"name": "Water", "price": ""}],
        }
    ]


@pytest.mark.anyio
async def test_detail_view_reads_image_and_closes() -> None:
    page = _StubPage({_CLICKABLE, _CLOSE}, _StubModal(_MODAL_HTML))
    extractor = InteractiveImageExtractor(page, UBER, timeout_ms=100)

    view = await extractor.extract("Chips & Guacamole")

    assert view is not None
    assert view.image == "https://tb-static.uber.com/modal/chips.jpg"
    assert view.add_ons[0]["name"] == "Add a Drink"
    assert page.clicks == [(_CLICKABLE, "Chips & Guacamole"), (_CLOSE, None)]


@pytest.mark.anyio
async def test_detail_view_closed_when_modal_never_appears() -> None:
    page = _StubPage({_CLICKABLE})
    extractor = InteractiveImageExtractor(page, UBER, timeout_ms=100)

    assert await extractor.extract("Chips") is None
    assert page.clicks == [(_CLICKABLE, "Chips")]
    assert page.keyboard.pressed == ["Escape"]


@pytest.mark.anyio
async def test_detail_view_closed_when_reading_fails() -> None:
    page = _StubPage({_CLICKABLE, _CLOSE}, _StubModal(None))
    extractor = InteractiveImageExtractor(page, UBER, timeout_ms=100)

    assert await extractor.extract("Chips") is None
    assert page.clicks[-1] == (_CLOSE, None)


@pytest.mark.anyio
async def test_nothing_to_close_when_item_cannot_be_clicked() -> None:
    page = _StubPage(set(), _StubModal(_MODAL_HTML))
    extractor = InteractiveImageExtractor(page, UBER, timeout_ms=100)

    assert await extractor.extract("Chips") is None
    assert page.clicks == []
    assert page.keyboard.pressed == []


class _RecordingExtractor:
    def __init__(self, views: Dict[str, DetailView]) -> None:
        self.views = views
        self.calls: List[str] = []

    async def extract(self, item_name: str) -> Optional[DetailView]:
        self.calls.append(item_name)
        return self.views.get(item_name)


@pytest.mark.anyio
async def test_reconcile_interactively_respects_limit_and_order() -> None:
    items = [
        RawItem("Has Image", image="https://tb-static.uber.com/own.jpg"),
        RawItem("Bowl"),
        RawItem("Tacos"),
    ]
    add_ons = [{"name": "Size", "options": [{"name": "Large", "price": "+$1.00"}]}]
    extractor = _RecordingExtractor({"Bowl": DetailView(image="https://tb-static.uber.com/bowl.jpg", add_ons=add_ons)})

    updated = await reconcile_interactively(items, extractor, limit=1)

    assert updated == 1
    assert extractor.calls == ["Bowl"]
    assert items[1].image == "https://tb-static.uber.com/bowl.jpg"
    assert items[1].raw_options == add_ons
    assert items[2].image is None
