"""Site profiles describing how to scrape and normalise each source template."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Optional, Sequence, Tuple

from .errors import UnknownProfileError

STRUCTURED_METADATA = "structured_metadata"
EMBEDDED_STATE = "embedded_state"
TAGGED_DOM = "tagged_dom"
HEURISTIC_CONTENT = "heuristic_content"


@dataclass(frozen=True)
class PageSelectors:
    """Selectors used while preparing a freshly loaded page."""

    ready: Sequence[str] = ()
    banners: Sequence[str] = ()
    expand: Sequence[str] = ()
    scroll_for_lazy_content: bool = False


@dataclass(frozen=True)
class DomSelectors:
    """Selectors describing categories, items and their fields in the DOM."""

    categories: Sequence[str] = ()
    category_title: Sequence[str] = ()
    section_id_prefix: Optional[str] = None
    category_skip: Sequence[str] = ()
    items: Sequence[str] = ()
    orphan_items: Sequence[str] = ()
    name: Sequence[str] = ()
    price: Sequence[str] = ()
    description: Sequence[str] = ()
    image: Sequence[str] = ("img",)
    background_image: Sequence[str] = ()
    image_data_attribute: str = "data-bg"
    badges: Sequence[str] = ()
    option_groups: Sequence[str] = ()
    option_group_title: Sequence[str] = ()
    option_choices: Sequence[str] = ()
    default_category: str = "Menu"


@dataclass(frozen=True)
class NameFilter:
    """Rules deciding which extracted names are real menu items."""

    min_length: int = 1
    noise_substrings: Sequence[str] = ()
    noise_patterns: Sequence[str] = ()
    remap_category: Optional[str] = None
    remap_trigger: Optional[str] = None
    remap_names: Sequence[str] = ()


@dataclass(frozen=True)
class DietaryRule:
    labels: Sequence[str]
    terms: Sequence[str]
    exclude: Sequence[str] = ()


@dataclass(frozen=True)
class ClassifierRules:
    """Keyword tables for dietary labels, tags, ingredients and spice levels."""

    dietary_from_badges: bool = False
    badge_labels: Dict[str, str] = field(default_factory=dict)
    tag_terms: Sequence[Tuple[str, Sequence[str]]] = ()
    dietary_rules: Sequence[DietaryRule] = ()
    dietary_tag_codes: Sequence[Tuple[str, str]] = ()
    ingredient_terms: Sequence[str] = ()
    spice_levels: Sequence[Tuple[str, Sequence[str]]] = ()


@dataclass(frozen=True)
class SizeRule:
    """A size group added when one of ``keywords`` appears in the item name."""

    group_name: str
    keywords: Sequence[str]
    options: Sequence[Tuple[str, str]]


@dataclass(frozen=True)
class AddOnRules:
    """Tables used by the add-on normaliser."""

    upsize_keywords: Sequence[str] = ("extra", "double")
    upsize_modifier: str = "+$2.00"
    configurable_keywords: Sequence[str] = ()
    default_catalog: Sequence[Tuple[str, Sequence[Tuple[str, str]]]] = ()
    badge_options: Sequence[Tuple[str, str, str]] = ()
    badge_group_name: str = "Dietary Options"
    portion_enabled: bool = False
    portion_ratio: float = 0.8
    portion_threshold: float = 5.0
    size_rules: Sequence[SizeRule] = ()


@dataclass(frozen=True)
class ImageRules:
    """Where page-wide images come from and how item detail views are opened."""

    domains: Sequence[str] = ()
    heading_selectors: Sequence[str] = ("h2", "h3", "h4")
    clickable_items: Sequence[str] = ()
    modal: Sequence[str] = ()
    modal_image: Sequence[str] = ("img",)
    modal_close: Sequence[str] = ()
    fallback_images: Sequence[Tuple[str, str]] = ()


@dataclass(frozen=True)
class RestaurantSelectors:
    name: Sequence[str] = ("h1",)
    address: Sequence[str] = ()
    phone: Sequence[str] = ()
    rating: Sequence[str] = ()


@dataclass(frozen=True)
class OptionSetExpansion:
    """Turns dishes that wrap an option set into one item per option."""

    category: str
    image_url_template: str
    state_script: str = (
        "() => (window.__INITIAL_STATE__ && window.__INITIAL_STATE__.restaurant) ? "
        "{menus: window.__INITIAL_STATE__.restaurant.menus, "
        "option_sets: window.__INITIAL_STATE__.restaurant.option_sets} : null"
    )


@dataclass(frozen=True)
class SiteProfile:
    """Complete description of one source site template."""

    name: str
    default_url: str
    default_restaurant: str
    strategies: Sequence[str]
    page: PageSelectors
    dom: DomSelectors
    name_filter: NameFilter
    classifier: ClassifierRules
    addons: AddOnRules
    images: ImageRules
    restaurant: RestaurantSelectors = RestaurantSelectors()
    category_rules: Sequence[Tuple[str, Sequence[str]]] = ()
    dom_category_rules: Sequence[Tuple[str, Sequence[str]]] = ()
    fallback_category: str = "Menu Items"
    option_sets: Optional[OptionSetExpansion] = None
    shared_brand_id: bool = True
    estimated_time: str = "2-3 minutes"

    @property
    def output_filename(self) -> str:
        return f"{self.name}_menu.json"


_COMMON_BANNERS = (
    "[data-testid='close-button']",
    "[aria-label='Close']",
    "[data-testid='dismiss-button']",
    "[data-testid='modal-close']",
    "button[aria-label*='close' i]",
    "button[aria-label*='dismiss' i]",
    "[data-testid='cookie-banner-close']",
    "[data-testid='location-prompt-close']",
    "button:has-text('Accept')",
)

_MEAT_PROTEINS = ("chicken", "steak", "barbacoa", "carnitas")

ILCAMINETTO = SiteProfile(
    name="ilcaminetto",
    default_url="http://orders.ilcaminetto.com.au/",
    default_restaurant="Il Caminetto Italian Restaurant",
    strategies=(TAGGED_DOM,),
    page=PageSelectors(ready=("[id^='TabSelectOption-']",)),
    dom=DomSelectors(
        categories=("[id^='TabSelectOption-']",),
        section_id_prefix="TabSelectOption-",
        category_skip=("Services", "Opening Hours", "Location", "Phone"),
        items=(".item__DishComponent-wkeq8p-0", "[class*='DishComponent']"),
        name=("h2",),
        price=(".item__Price-wkeq8p-6 p", "[class*='item__Price'] p"),
        description=("p",),
        image=(),
        background_image=(".item__Image-wkeq8p-1", "[class*='item__Image']"),
        badges=(".dishtag__Text-htARsz", "[class*='dishtag__Text']"),
    ),
    name_filter=NameFilter(
        min_length=3,
        noise_substrings=("Liquor licence", "Guest", "Login", "licence N"),
        noise_patterns=(r"(?i)license", r"^[N0-9\s]+$"),
        remap_category="DRINK LIST",
        remap_trigger="Liquor licence",
        remap_names=("SOFT DRINKS", "BEERS", "SPARKLING WATER 750ML", "RED WINES", "WHITE WINES"),
    ),
    classifier=ClassifierRules(
        dietary_from_badges=True,
        badge_labels={"V": "vegetarian", "VGO": "vegan", "GFO": "gluten free option"},
        tag_terms=(
            ("pasta", ("pasta", "tortelloni", "gnocchi", "tagliatelle")),
            ("pizza", ("pizza", "margherita", "capricciosa", "calzone")),
            ("risotto", ("risotto",)),
            ("appetizer", ("antipasti", "stuzzichini")),
            ("main course", ("main", "secondi")),
            ("dessert", ("dessert", "tiramisu", "cannolo")),
            ("kids menu", ("kids",)),
        ),
    ),
    addons=AddOnRules(
        badge_options=(
            ("gluten free option", "Gluten Free", "+$5.00"),
            ("vegan", "Vegan Option", "+$0.00"),
        ),
    ),
    images=ImageRules(
        domains=("ucarecdn.com",),
        clickable_items=(".item__DishComponent-wkeq8p-0", "[class*='DishComponent']"),
        modal=("[role='dialog']", "[class*='Modal']"),
        modal_image=("img", "[data-bg]"),
        modal_close=("[aria-label='Close']", "button[class*='Close']"),
    ),
    restaurant=RestaurantSelectors(
        name=("h1",),
        address=("a[href*='maps.google.com']",),
        phone=("a[href^='tel:']",),
    ),
    option_sets=OptionSetExpansion(
        category="DRINK LIST",
        image_url_template=(
            "https://ucarecdn.com/{id}/-/resize/x400/-/format/auto/-/progressive/yes/{name}"
        ),
    ),
    shared_brand_id=False,
    estimated_time="2-3 minutes",
)

UBER = SiteProfile(
    name="uber",
    default_url=(
        "https://www.ubereats.com/store/chipotle-mexican-grill-22704-se-4th-st-ste-210/"
        "YGSzD0qzRAqRseL06YFbYg"
    ),
    default_restaurant="Unknown Restaurant",
    strategies=(STRUCTURED_METADATA, EMBEDDED_STATE, TAGGED_DOM, HEURISTIC_CONTENT),
    page=PageSelectors(
        banners=_COMMON_BANNERS,
        expand=(
            "[data-testid='view-menu']",
            "[data-testid='browse-menu']",
            "button:has-text('View Menu')",
            "[data-testid='show-more']",
            "button:has-text('Show More')",
        ),
        scroll_for_lazy_content=True,
    ),
    dom=DomSelectors(
        categories=(
            "[data-testid='store-menu-category']",
            "[data-testid='menu-category']",
            ".menu-category",
            "[data-testid='category']",
            "[data-testid='menu-section']",
            ".menu-section",
            "section",
        ),
        category_title=(
            "[data-testid='menu-category-title']",
            "h2",
            "h3",
            ".category-title",
        ),
        items=(
            "[data-testid='store-menu-item']",
            "[data-testid='menu-item']",
            ".menu-item",
            "[data-testid='item']",
        ),
        orphan_items=("li[data-testid^='store-item-']",),
        name=(
            "[data-testid='store-item-title']",
            "[data-testid='item-title']",
            "h3",
            "h4",
            ".item-title",
        ),
        price=(
            "[data-testid='store-item-price']",
            "[data-testid='item-price']",
            ".item-price",
            ".price",
        ),
        description=(
            "[data-testid='store-item-description']",
            "[data-testid='item-description']",
            ".item-description",
            ".description",
        ),
        image=("img",),
        option_groups=(
            "[data-testid='customization-group']",
            "[data-testid='option-group']",
            ".customization-group",
            ".option-group",
            "[data-testid='modifier-group']",
            ".modifier-group",
            "[data-testid='addon-group']",
            ".addon-group",
            "[data-testid='size-group']",
            ".size-group",
        ),
        option_group_title=(
            "[data-testid='customization-group-title']",
            "[data-testid='option-group-title']",
            "[data-testid='modifier-group-title']",
            ".group-title",
            "h4",
            "h5",
        ),
        option_choices=(
            "[data-testid='customization-option']",
            "[data-testid='option-choice']",
            "[data-testid='modifier-option']",
            ".customization-option",
            ".option-choice",
            ".modifier-option",
            "input[type='radio']",
            "input[type='checkbox']",
            ".option-label",
        ),
    ),
    name_filter=NameFilter(min_length=1),
    classifier=ClassifierRules(
        dietary_rules=(
            DietaryRule(labels=("vegan",), terms=("sofritas",), exclude=_MEAT_PROTEINS),
            DietaryRule(labels=("vegetarian",), terms=("veggie", "vegetarian")),
            DietaryRule(labels=("keto", "paleo"), terms=("keto", "paleo", "wholesome", "whole30")),
            DietaryRule(labels=("gluten free option",), terms=("gluten", "gf", "grain free")),
            DietaryRule(labels=("high protein",), terms=("high protein",)),
            DietaryRule(labels=("balanced",), terms=("balanced macros",)),
        ),
        dietary_tag_codes=(
            ("vegan", "V"),
            ("vegetarian", "VGO"),
            ("gluten free option", "GFO"),
        ),
        ingredient_terms=(
            "chicken", "steak", "barbacoa", "carnitas", "sofritas", "rice", "beans",
            "lettuce", "guacamole", "salsa", "cheese", "sour cream", "queso", "tortilla",
            "chips", "fajita veggies", "tomatillo", "corn", "tomato", "onion", "pepper",
            "jalapeño", "cilantro", "lime", "avocado", "pork", "beef", "fish", "shrimp",
            "salmon", "tuna", "bacon", "ham", "turkey",
        ),
        spice_levels=(
            ("Medium", ("hot", "spicy", "chili")),
            ("Mild", ("mild", "sweet", "fresh tomato", "tomatillo", "salsa", "queso", "guacamole")),
        ),
    ),
    addons=AddOnRules(
        configurable_keywords=("build your own", "bowl", "burrito", "taco"),
        default_catalog=(
            (
                "Protein | Choose One",
                (
                    ("Chicken", "+$70.00"),
                    ("Steak", "+$85.00"),
                    ("Barbacoa", "+$85.00"),
                    ("Carnitas", "+$78.00"),
                    ("Sofritas (Plant-Based Protein)", "+$70.00"),
                ),
            ),
            ("Rice | Choose One", (("White Rice", ""), ("Brown Rice", ""))),
            ("Beans | Choose One", (("Black Beans", ""), ("Pinto Beans", ""))),
            (
                "Included Sides | Choose up to 4",
                (
                    ("Cheese", ""),
                    ("Romaine Lettuce", ""),
                    ("Large Chips (2)", ""),
                    ("Soft Flour Tortillas (8)", ""),
                ),
            ),
            (
                "More Sides | Up to Three",
                (
                    ("Large Sour Cream", ""),
                    ("Large Fresh Tomato Salsa", ""),
                    ("Large Tomatillo-Red Chili Salsa", ""),
                    ("Large Tomatillo-Green Chili Salsa", ""),
                    ("Large Roasted Chili-Corn Salsa", ""),
                ),
            ),
            ("Premium Sides | Up to One", (("Large Guacamole", ""), ("Large Queso Blanco", ""))),
            (
                "Add-Ons",
                (
                    ("Large Side of Guacamole", "+$7.00"),
                    ("Large Side of Queso Blanco", "+$7.00"),
                    ("Large Fresh Tomato Salsa", "+$3.00"),
                    ("Large Tomatillo-Red Chili Salsa", "+$3.00"),
                    ("Large Tomatillo-Green Chili Salsa", "+$3.00"),
                    ("Large Roasted Chili-Corn Salsa", "+$3.00"),
                ),
            ),
        ),
        portion_enabled=True,
        size_rules=(
            SizeRule(
                group_name="Size",
                keywords=("soup",),
                options=(("Cup", ""), ("Bowl", "+$2.00"), ("Bread Bowl", "+$3.50")),
            ),
            SizeRule(
                group_name="Size",
                keywords=("coke", "sprite", "juice", "lemonade", "iced tea", "soda", "fountain drink"),
                options=(("Small", ""), ("Medium", "+$0.50"), ("Large", "+$1.00")),
            ),
        ),
    ),
    images=ImageRules(
        domains=("uber.com",),
        clickable_items=(
            "li[data-testid^='store-item-']",
            "[data-testid='store-menu-item']",
            "[data-testid='menu-item']",
        ),
        modal=("[role='dialog']", "[data-testid='quick-view-modal']"),
        modal_image=("img",),
        modal_close=(
            "[role='dialog'] [aria-label='Close']",
            "[data-testid='close-button']",
            "button[aria-label*='close' i]",
        ),
    ),
    restaurant=RestaurantSelectors(
        name=("[data-testid='store-title']", "h1", ".store-title", "[data-testid='restaurant-name']"),
        address=("[data-testid='store-address']", ".store-address", "[data-testid='restaurant-address']"),
        rating=("[data-testid='store-rating']", ".store-rating", "[data-testid='restaurant-rating']"),
    ),
    category_rules=(
        ("Build Your Own", ("Build Your Own",)),
        ("Entrees", ("Bowl", "Burrito", "Taco")),
        ("Kid's Meal", ("Kid's",)),
        ("Sides", ("Chips", "Salsa", "Guacamole")),
        ("Drinks", ("Coke", "Juice", "Water")),
    ),
    dom_category_rules=(
        ("Build Your Own", ("Build Your Own",)),
        ("Entrees", ("Bowl", "Burrito", "Taco", "Quesadilla")),
        ("Kid's Meal", ("Kid's",)),
        ("Sides", ("Chips", "Salsa", "Guacamole", "Queso")),
        ("Drinks", ("Coke", "Juice", "Water", "Sprite")),
        ("Lifestyle Bowls", ("Wholesome", "High Protein", "Veggie")),
    ),
    shared_brand_id=True,
    estimated_time="5-10 minutes",
)

PROFILES: Dict[str, SiteProfile] = {
    ILCAMINETTO.name: ILCAMINETTO,
    UBER.name: UBER,
}


def get_profile(name: str) -> SiteProfile:
    """Return the registered profile called ``name`` (case-insensitive)."""

    profile = PROFILES.get((name or "").strip().lower())
    if profile is None:
        raise UnknownProfileError(name)
    return profile


__all__ = [
    "EMBEDDED_STATE",
    "HEURISTIC_CONTENT",
    "PROFILES",
    "STRUCTURED_METADATA",
    "TAGGED_DOM",
    "SiteProfile",
    "get_profile",
]
