"""Field extraction for individual menu items, from DOM nodes or JSON records."""
from __future__ import annotations

from dataclasses import dataclass
import html
import logging
import re
from typing import Any, Dict, Iterable, List, Mapping, Optional

from bs4.element import Tag

from .models import RawItem
from .profiles import DomSelectors, SiteProfile
from .sources.dom import (
    background_image_url,
    collect_unique,
    extract_attribute,
    extract_text,
    node_text,
    select_first,
)

LOGGER = logging.getLogger(__name__)

CURRENCY_PATTERN = re.compile(r"\$\s*(\d[\d,]*(?:\.\d+)?)")
NUMBER_PATTERN = re.compile(r"(\d[\d,]*(?:\.\d+)?)")

# Prices above this are assumed to be in cents.
CENTS_THRESHOLD = 100

CUSTOMIZATION_PLACEHOLDER = {
    "name": "Customizations",
    "choices": ["Available - See menu for details"],
}

_RECORD_IMAGE_KEYS = ("imageUrl", "image", "photo", "thumbnail")


@dataclass
class ExtractionContext:
    """Where an item sits: its profile, category and position within the category."""

    profile: SiteProfile
    category: str = ""
    position: int = 0


def parse_price(text: Optional[str]) -> Optional[float]:
    """Extract the first currency-like number from loosely formatted text."""

    if not text:
        return None
    match = CURRENCY_PATTERN.search(text) or NUMBER_PATTERN.search(text)
    if not match:
        return None
    try:
        return float(match.group(1).replace(",", ""))
    except ValueError:
        return None


def normalise_price(value: Any, unit: str = "auto") -> Optional[float]:
    """Convert a raw price value to a decimal amount.

    ``unit`` is ``"minor"`` for values always given in cents, ``"major"`` for
    values already in dollars and ``"auto"`` to treat anything above
    :data:`CENTS_THRESHOLD` as cents.
    """

    if value is None or value == "":
        return None
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        amount: Optional[float] = float(value)
    else:
        amount = parse_price(str(value))
    if amount is None:
        return None
    if unit == "minor":
        return amount / 100
    if unit == "auto" and amount > CENTS_THRESHOLD:
        return amount / 100
    return amount


def clean_name(raw_name: Optional[str], context: ExtractionContext) -> Optional[str]:
    """Return a usable item name, or ``None`` when the name is noise."""

    name = " ".join((raw_name or "").split())
    if not name:
        return None

    rules = context.profile.name_filter
    if (
        rules.remap_trigger
        and rules.remap_trigger in name
        and context.category == rules.remap_category
        and 0 <= context.position < len(rules.remap_names)
    ):
        name = rules.remap_names[context.position]

    if len(name) < rules.min_length:
        return None
    for fragment in rules.noise_substrings:
        if fragment in name:
            return None
    for pattern in rules.noise_patterns:
        if re.search(pattern, name):
            return None
    return name


def map_badges(codes: Iterable[str], labels: Mapping[str, str]) -> List[str]:
    """Translate badge codes to dietary labels, ignoring unknown codes."""

    dietary: List[str] = []
    for code in codes:
        label = labels.get(code.strip())
        if label and label not in dietary:
            dietary.append(label)
    return dietary


def _choice_label(choice: Tag) -> Optional[str]:
    if choice.name == "input" and (choice.get("type") or "").lower() in {"radio", "checkbox"}:
        choice_id = choice.get("id")
        if choice_id:
            root = choice
            while root.parent is not None:
                root = root.parent
            label = select_first(root, f"label[for='{choice_id}']")
            if label is not None and node_text(label):
                return node_text(label)
        sibling = choice.find_next_sibling()
        return node_text(sibling) or node_text(choice.parent) or choice.get("value") or choice.get("name")
    return node_text(choice)


def extract_option_groups(node: Tag, dom: DomSelectors) -> List[Dict[str, Any]]:
    """Collect ``{"name", "choices"}`` customisation groups nested in ``node``."""

    groups: List[Dict[str, Any]] = []
    for group in collect_unique(node, dom.option_groups):
        title = extract_text(group, dom.option_group_title) or "Options"
        choices: List[str] = []
        for selector in dom.option_choices:
            elements = collect_unique(group, (selector,))
            if elements:
                choices = [label for label in (_choice_label(el) for el in elements) if label]
                break
        if choices:
            groups.append({"name": title, "choices": choices})
    return groups


def _dom_image(node: Tag, dom: DomSelectors) -> Optional[str]:
    for selector in dom.background_image:
        image = background_image_url(select_first(node, selector), dom.image_data_attribute)
        if image:
            return image
    image = extract_attribute(node, dom.image, "src")
    if image:
        return image
    return background_image_url(node, dom.image_data_attribute)


def extract_fields(node: Tag, context: ExtractionContext) -> Optional[RawItem]:
    """Build a :class:`RawItem` from a DOM item node, or ``None`` if it has no usable name."""

    dom = context.profile.dom
    raw_name = extract_text(node, dom.name)
    name = clean_name(raw_name, context)
    if name is None:
        LOGGER.debug("Dropping DOM item %r in %s", raw_name, context.category)
        return None

    badges = [text for text in (node_text(badge) for badge in collect_unique(node, dom.badges)) if text]
    return RawItem(
        name=name,
        price=parse_price(extract_text(node, dom.price)),
        description=extract_text(node, dom.description),
        image=_dom_image(node, dom),
        raw_options=extract_option_groups(node, dom),
        dietary=map_badges(badges, context.profile.classifier.badge_labels),
        badges=badges,
    )


def _record_image(record: Mapping[str, Any]) -> Optional[str]:
    for key in _RECORD_IMAGE_KEYS:
        value = record.get(key)
        if isinstance(value, list):
            value = value[0] if value else None
        if isinstance(value, Mapping):
            value = value.get("url") or value.get("contentUrl")
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def extract_record(
    record: Mapping[str, Any],
    context: ExtractionContext,
    price: Optional[float] = None,
) -> Optional[RawItem]:
    """Build a :class:`RawItem` from a JSON record (structured data or app state)."""

    raw_name = record.get("name") or record.get("title") or ""
    name = clean_name(html.unescape(str(raw_name)), context)
    if name is None:
        LOGGER.debug("Dropping record %r in %s", raw_name, context.category)
        return None

    description = record.get("description") or record.get("itemDescription")
    return RawItem(
        name=name,
        price=price,
        description=str(description).strip() if description else None,
        image=_record_image(record),
        raw_options=(
            [
                {
                    "name": CUSTOMIZATION_PLACEHOLDER["name"],
                    "choices": list(CUSTOMIZATION_PLACEHOLDER["choices"]),
                }
            ]
            if record.get("hasCustomizations")
            else []
        ),
    )


__all__ = [
    "ExtractionContext",
    "clean_name",
    "extract_fields",
    "extract_option_groups",
    "extract_record",
    "map_badges",
    "normalise_price",
    "parse_price",
]
