"""Tests for per-item field extraction."""
from __future__ import annotations

import unittest

from bs4 import BeautifulSoup

from menu_scraper.extractor import (
    ExtractionContext,
    clean_name,
    extract_fields,
    extract_option_groups,
    extract_record,
    map_badges,
    normalise_price,
    parse_price,
)
from menu_scraper.profiles import ILCAMINETTO, UBER

_DISH_HTML = """
<div class="item__DishComponent-wkeq8p-0">
  <div class="item__Image-wkeq8p-1" style="background-image: url('https://ucarecdn.com/abc/capricciosa.jpg')"></div>
  <h2>  Capricciosa </h2>
  <p>Ham, mushrooms, artichokes</p>
  <div class="item__Price-wkeq8p-6"><p>$24.00</p></div>
  <span class="dishtag__Text-htARsz">V</span>
  <span class="dishtag__Text-htARsz">GFO</span>
</div>
"""

_RADIO_HTML = """
<li data-testid="store-item-1">
  <h3>Chips &amp; Salsa</h3>
  <div class="option-group">
    <h4>Salsa</h4>
    <input type="radio" id="salsa-1" name="salsa" value="mild"><label for="salsa-1">Mild Salsa</label>
    <input type="radio" id="salsa-2" name="salsa" value="hot"><label for="salsa-2">Extra Hot Salsa</label>
  </div>
</li>
"""


def _node(html: str, selector: str):
    return BeautifulSoup(html, "html.parser").select_one(selector)


class ParsePriceTests(unittest.TestCase):
    def test_parse_price_reads_currency_amounts(self) -> None:
        for raw, expected in [("$12.50", 12.5), ("From $1,299.00", 1299.0), ("9.95", 9.95)]:
            with self.subTest(raw=raw):
                self.assertEqual(parse_price(raw), expected)

    def test_parse_price_without_digits_is_none(self) -> None:
        self.assertIsNone(parse_price("Free"))
        self.assertIsNone(parse_price(None))

    def test_normalise_price_units(self) -> None:
        self.assertEqual(normalise_price(1095, unit="minor"), 10.95)
        self.assertEqual(normalise_price("1095"), 10.95)
        self.assertEqual(normalise_price(12.5), 12.5)
        self.assertEqual(normalise_price("$180.00", unit="major"), 180.0)
        self.assertIsNone(normalise_price(True))
        self.assertIsNone(normalise_price(""))


class CleanNameTests(unittest.TestCase):
    def test_whitespace_is_collapsed(self) -> None:
        context = ExtractionContext(ILCAMINETTO, "PIZZA", 0)
        self.assertEqual(clean_name("  Margherita \n  Pizza ", context), "Margherita Pizza")

    def test_noise_and_short_names_are_dropped(self) -> None:
        context = ExtractionContext(ILCAMINETTO, "PIZZA", 0)
        for raw in ["", "   ", "Guest", "Login here", "NN 123", "Ab", None]:
            with self.subTest(raw=raw):
                self.assertIsNone(clean_name(raw, context))

    def test_liquor_licence_items_are_remapped_by_position(self) -> None:
        expected = ["SOFT DRINKS", "BEERS", "SPARKLING WATER 750ML", "RED WINES"]
        names = [
            clean_name(f"Liquor licence {suffix}", ExtractionContext(ILCAMINETTO, "DRINK LIST", position))
            for position, suffix in enumerate("ABCD")
        ]
        self.assertEqual(names, expected)

    def test_liquor_licence_outside_drink_list_is_noise(self) -> None:
        self.assertIsNone(clean_name("Liquor licence A", ExtractionContext(ILCAMINETTO, "PIZZA", 0)))
        self.assertIsNone(clean_name("Liquor licence A", ExtractionContext(ILCAMINETTO, "DRINK LIST", 9)))

    def test_single_character_names_survive_for_marketplace_profile(self) -> None:
        self.assertEqual(clean_name("X", ExtractionContext(UBER, "Menu", 0)), "X")


class ExtractFieldsTests(unittest.TestCase):
    def test_dish_component_fields(self) -> None:
        node = _node(_DISH_HTML, ".item__DishComponent-wkeq8p-0")

        item = extract_fields(node, ExtractionContext(ILCAMINETTO, "PIZZA", 0))

        assert item is not None
        self.assertEqual(item.name, "Capricciosa")
        self.assertEqual(item.price, 24.0)
        self.assertEqual(item.description, "Ham, mushrooms, artichokes")
        self.assertEqual(item.image, "https://ucarecdn.com/abc/capricciosa.jpg")
        self.assertEqual(item.badges, ["V", "GFO"])
        self.assertEqual(item.dietary, ["vegetarian", "gluten free option"])

    def test_item_without_name_is_dropped(self) -> None:
        node = _node('<div class="item__DishComponent-wkeq8p-0"><p>$5.00</p></div>', "div")
        self.assertIsNone(extract_fields(node, ExtractionContext(ILCAMINETTO, "PIZZA", 0)))

    def test_radio_choices_use_their_labels(self) -> None:
        node = _node(_RADIO_HTML, "li")

        groups = extract_option_groups(node, UBER.dom)

        self.assertEqual(groups, [{"name": "Salsa", "choices": ["Mild Salsa", "Extra Hot Salsa"]}])

    def test_map_badges_ignores_unknown_codes(self) -> None:
        labels = ILCAMINETTO.classifier.badge_labels
        self.assertEqual(map_badges(["V", "XX", "V", " VGO "], labels), ["vegetarian", "vegan"])


class ExtractRecordTests(unittest.TestCase):
    def test_record_fields_are_unescaped_and_placeholder_added(self) -> None:
        record = {
            "name": "Chicken &amp; Rice Bowl",
            "description": " Grilled chicken ",
            "image": ["https://tb-static.uber.com/bowl.jpg"],
            "hasCustomizations": True,
        }

        item = extract_record(record, ExtractionContext(UBER, "Bowls", 0), price=10.95)

        assert item is not None
        self.assertEqual(item.name, "Chicken & Rice Bowl")
        self.assertEqual(item.description, "Grilled chicken")
        self.assertEqual(item.image, "https://tb-static.uber.com/bowl.jpg")
        self.assertEqual(item.price, 10.95)
        self.assertEqual(
            item.raw_options,
            [{"name": "Customizations", "choices": ["Available - See menu for details"]}],
        )

    def test_placeholder_choices_are_not_shared(self) -> None:
        context = ExtractionContext(UBER, "Bowls", 0)
        first = extract_record({"name": "One", "hasCustomizations": True}, context)
        second = extract_record({"name": "Two", "hasCustomizations": True}, context)
        assert first is not None and second is not None
        first.raw_options[0]["choices"].append("changed")
        self.assertEqual(second.raw_options[0]["choices"], ["Available - See menu for details"])

    def test_record_without_name_is_dropped(self) -> None:
        self.assertIsNone(extract_record({"price": 100}, ExtractionContext(UBER, "Menu", 0)))


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
