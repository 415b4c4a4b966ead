"""Tests for the page data locator cascade."""
from __future__ import annotations

import json

import pytest

import menu_scraper.locator as locator_module
from menu_scraper.locator import (
    expand_option_sets,
    infer_category,
    locate,
    locate_with_strategy,
)
from menu_scraper.models import RawCategory, RawItem
from menu_scraper.profiles import (
    EMBEDDED_STATE,
    HEURISTIC_CONTENT,
    ILCAMINETTO,
    STRUCTURED_METADATA,
    TAGGED_DOM,
    UBER,
)
from menu_scraper.sources.dom import PageSnapshot

_RESTAURANT_LD = {
    "@context": "https://schema.org",
    "@type": "Restaurant",
    "name": "Chipotle Mexican Grill",
    "hasMenu": {
        "@type": "Menu",
        "hasMenuSection": [
            {
                "name": "Burritos",
                "hasMenuItem": [
                    {
                        "@type": "MenuItem",
                        "name": "Chicken Burrito",
                        "description": "Chicken, rice, beans",
                        "offers": {"price": "1095"},
                    },
                    {"@type": "MenuItem", "name": "Veggie Burrito", "offers": {"price": "9.50"}},
                ],
            },
            {"name": "Empty", "hasMenuItem": []},
        ],
    },
}

_STATE_SCRIPT = """
<script>window.__REDUX_STATE__ = {"stores": {"abc": {"catalogSectionsMap": {"s1": [
  {"payload": {"standardItemsPayload": {"catalogItems": [
    {"title": "Burrito Bowl", "price": 1095, "imageUrl": "https://tb-static.uber.com/bowl.jpg"},
    {"title": "Chips &amp; Guacamole", "price": 495},
    {"title": "Mexican Coke", "price": 350},
    {"title": "Kid's Quesadilla", "price": 650},
    {"title": "Lemonade", "price": 375}
  ]}}}
]}}}};</script>
"""

_UBER_DOM = """
<section data-testid="store-menu-category">
  <h2>Burritos</h2>
  <div data-testid="store-menu-item">
    <h3>Chicken Burrito</h3>
    <span data-testid="store-item-price">$10.95</span>
    <p data-testid="store-item-description">Chicken, rice, beans</p>
    <img src="https://tb-static.uber.com/burrito.jpg" alt="Chicken Burrito">
  </div>
</section>
"""

_ILCAMINETTO_DOM = """
<nav>
  <div id="TabSelectOption-pizza">PIZZA</div>
  <div id="TabSelectOption-drinks">DRINK LIST</div>
  <div id="TabSelectOption-hours">Opening Hours</div>
</nav>
<div id="pizza">
  <div class="item__DishComponent-wkeq8p-0">
    <h2>Margherita</h2><p>Tomato, mozzarella</p>
    <div class="item__Price-wkeq8p-6"><p>$22.00</p></div>
  </div>
</div>
<div id="drinks">
  <div class="item__DishComponent-wkeq8p-0"><h2>Liquor licence A</h2></div>
  <div class="item__DishComponent-wkeq8p-0"><h2>Liquor licence B</h2></div>
  <div class="item__DishComponent-wkeq8p-0"><h2>Guest</h2></div>
</div>
<div id="hours">
  <div class="item__DishComponent-wkeq8p-0"><h2>Monday 5pm</h2></div>
</div>
"""


def _json_ld(data) -> str:
    return f'<script type="application/ld+json">{json.dumps(data)}</script>'


def _snapshot(body: str) -> PageSnapshot:
    return PageSnapshot.from_html(f"<html><body>{body}</body></html>", url="https://example.com/")


def test_structured_metadata_maps_sections_and_prices() -> None:
    strategy, categories = locate_with_strategy(_snapshot(_json_ld(_RESTAURANT_LD)), UBER)

    assert strategy == STRUCTURED_METADATA
    assert [category.name for category in categories] == ["Burritos"]
    items = categories[0].items
    assert [item.name for item in items] == ["Chicken Burrito", "Veggie Burrito"]
    assert items[0].price == pytest.approx(10.95)
    assert items[1].price == pytest.approx(9.5)
    assert items[0].description == "Chicken, rice, beans"


def test_structured_metadata_inside_graph_list() -> None:
    wrapped = {"@context": "https://schema.org", "@graph": [{"@type": "WebPage"}, _RESTAURANT_LD]}

    strategy, categories = locate_with_strategy(_snapshot(_json_ld([wrapped])), UBER)

    assert strategy == STRUCTURED_METADATA
    assert categories[0].items[0].name == "Chicken Burrito"


def test_embedded_state_groups_items_by_keyword_rules() -> None:
    strategy, categories = locate_with_strategy(_snapshot(_STATE_SCRIPT), UBER)

    assert strategy == EMBEDDED_STATE
    assert [category.name for category in categories] == [
        "Entrees",
        "Sides",
        "Drinks",
        "Kid's Meal",
        "Menu Items",
    ]
    bowl = categories[0].items[0]
    assert bowl.name == "Burrito Bowl"
    assert bowl.price == pytest.approx(10.95)
    assert bowl.image == "https://tb-static.uber.com/bowl.jpg"
    assert categories[1].items[0].name == "Chips & Guacamole"


def test_infer_category_matches_keywords_case_sensitively() -> None:
    assert infer_category("Chicken Burrito", UBER.category_rules, "Menu Items") == "Entrees"
    assert infer_category("chicken burrito", UBER.category_rules, "Menu Items") == "Menu Items"
    assert infer_category("Horchata", UBER.category_rules, "Menu Items") == "Menu Items"


def test_embedded_state_keeps_lowercase_titles_out_of_keyword_categories() -> None:
    state = {"catalogItems": [{"title": "Sparkling water", "price": 300}, {"title": "Chips and salsa bowl", "price": 550}]}
    snapshot = _snapshot(f"<script>window.__STATE__ = {json.dumps(state)};</script>")

    strategy, categories = locate_with_strategy(snapshot, UBER)

    assert strategy == EMBEDDED_STATE
    assert [(category.name, [item.name for item in category.items]) for category in categories] == [
        ("Menu Items", ["Sparkling water"]),
        ("Sides", ["Chips and salsa bowl"]),
    ]


def test_tagged_dom_reads_category_sections() -> None:
    strategy, categories = locate_with_strategy(_snapshot(_UBER_DOM), UBER)

    assert strategy == TAGGED_DOM
    assert categories[0].name == "Burritos"
    item = categories[0].items[0]
    assert item.name == "Chicken Burrito"
    assert item.price == pytest.approx(10.95)
    assert item.image == "https://tb-static.uber.com/burrito.jpg"


def test_fallback_is_identical_with_empty_or_absent_earlier_sources() -> None:
    empty_ld = _json_ld({"@type": "Restaurant", "name": "Chipotle", "hasMenu": {"hasMenuSection": []}})
    empty_state = '<script>var state = {"catalogItems": []};</script>'

    with_empty = locate_with_strategy(_snapshot(empty_ld + empty_state + _UBER_DOM), UBER)
    without = locate_with_strategy(_snapshot(_UBER_DOM), UBER)

    assert with_empty == without
    assert with_empty[0] == TAGGED_DOM


def test_malformed_embedded_data_does_not_stop_the_cascade() -> None:
    broken = '<script type="application/ld+json">{not json</script><script>x = {"catalogItems": [oops}</script>'

    strategy, categories = locate_with_strategy(_snapshot(broken + _UBER_DOM), UBER)

    assert strategy == TAGGED_DOM
    assert categories[0].items[0].name == "Chicken Burrito"


def test_strategy_exception_is_contained(monkeypatch: pytest.MonkeyPatch) -> None:
    def _explode(snapshot, profile):
        raise RuntimeError("boom")

    monkeypatch.setitem(locator_module.STRATEGIES, STRUCTURED_METADATA, _explode)

    strategy, categories = locate_with_strategy(_snapshot(_UBER_DOM), UBER)

    assert strategy == TAGGED_DOM
    assert categories


def test_tab_sections_skip_service_tabs_and_remap_drink_list() -> None:
    categories = locate(_snapshot(_ILCAMINETTO_DOM), ILCAMINETTO)

    assert [category.name for category in categories] == ["PIZZA", "DRINK LIST"]
    assert [item.name for item in categories[1].items] == ["SOFT DRINKS", "BEERS"]
    assert categories[0].items[0].price == pytest.approx(22.0)


def test_orphan_items_are_grouped_when_no_category_markup() -> None:
    body = """
    <ul>
      <li data-testid="store-item-1"><h3>Steak Quesadilla</h3><span class="price">$11.25</span></li>
      <li data-testid="store-item-2"><h3>Sprite</h3><span class="price">$3.10</span></li>
    </ul>
    """

    strategy, categories = locate_with_strategy(_snapshot(body), UBER)

    assert strategy == TAGGED_DOM
    assert [(category.name, [item.name for item in category.items]) for category in categories] == [
        ("Entrees", ["Steak Quesadilla"]),
        ("Drinks", ["Sprite"]),
    ]


def test_heuristic_content_is_the_last_resort() -> None:
    body = "<div><h4>Spicy Tofu Plate</h4><span>$12.00</span></div><div><h4>Tea</h4><span>$2.00 each</span></div>"

    strategy, categories = locate_with_strategy(_snapshot(body), UBER)

    assert strategy == HEURISTIC_CONTENT
    assert [item.name for item in categories[0].items] == ["Spicy Tofu Plate"]
    assert categories[0].items[0].price == pytest.approx(12.0)
    assert categories[0].name == "Menu Items"


def test_nothing_found_yields_empty_list() -> None:
    assert locate(_snapshot("<p>Closed today</p>"), UBER) == []


def test_option_sets_expand_into_individual_drinks() -> None:
    categories = [
        RawCategory(
            "DRINK LIST",
            [RawItem("SOFT DRINKS"), RawItem("BEERS"), RawItem("Liquor licence C")],
        )
    ]
    state = {
        "menus": [
            {
                "categories": [
                    {
                        "name": "DRINK LIST",
                        "dishes": [
                            {
                                "name": "BEERS",
                                "option_sets": ["os1"],
                                "image": {"_id": "img1", "name": "beer.jpg"},
                            }
                        ],
                    }
                ]
            }
        ],
        "option_sets": [
            {"_id": "os1", "name": "Beer", "options": [{"name": "Peroni", "price": 9}, {"name": "Corona", "price": "9.5"}]}
        ],
    }

    added = expand_option_sets(categories, state, ILCAMINETTO)

    assert added == 2
    drinks = categories[0].items
    assert [item.name for item in drinks] == ["SOFT DRINKS", "Peroni", "Corona"]
    assert drinks[1].description == "Beer - Peroni"
    assert drinks[1].price == pytest.approx(9.0)
    assert drinks[2].price == pytest.approx(9.5)
    assert drinks[1].image == (
        "https://ucarecdn.com/img1/-/resize/x400/-/format/auto/-/progressive/yes/beer.jpg"
    )


def test_option_sets_ignored_without_state() -> None:
    categories = [RawCategory("DRINK LIST", [RawItem("BEERS")])]
    assert expand_option_sets(categories, None, ILCAMINETTO) == 0
    assert expand_option_sets(categories, {"menus": []}, UBER) == 0
