"""Locate raw menu categories on a page using an ordered cascade of strategies."""
from __future__ import annotations

import html
import json
import logging
import re
from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional, Sequence, Tuple

from bs4.element import Tag

from .extractor import (
    CURRENCY_PATTERN,
    ExtractionContext,
    clean_name,
    extract_fields,
    extract_record,
    normalise_price,
    parse_price,
)
from .models import RawCategory, RawItem
from .profiles import (
    EMBEDDED_STATE,
    HEURISTIC_CONTENT,
    STRUCTURED_METADATA,
    TAGGED_DOM,
    SiteProfile,
)
from .sources.dom import (
    PageSnapshot,
    collect_nodes,
    extract_text,
    node_text,
    script_texts,
)

LOGGER = logging.getLogger(__name__)

Strategy = Callable[[PageSnapshot, SiteProfile], List[RawCategory]]

_CATALOG_MARKER = '"catalogItems"'
_CATALOG_BLOB = re.compile(r"\{[\s\S]*\"catalogItems\"[\s\S]*\}")

HEURISTIC_TEXT_RANGE = (10, 500)
HEURISTIC_INDICATORS = ("$", "Menu", "Item")
HEURISTIC_LIMIT = 20
HEURISTIC_NAME_SELECTORS = ("h3", "h4", "h5", ".title", ".name")
HEURISTIC_NAME_CHARS = 50
HEURISTIC_MIN_NAME = 4


def infer_category(
    title: str, rules: Sequence[Tuple[str, Sequence[str]]], default: str
) -> str:
    """Pick a category for ``title`` from ordered ``(category, keywords)`` rules.

    Keywords match case-sensitively, so "Bowl" does not match "salsa bowl".
    """

    for category, keywords in rules:
        if any(keyword in title for keyword in keywords):
            return category
    return default


def _keep_populated(categories: Sequence[RawCategory]) -> List[RawCategory]:
    return [category for category in categories if category.items]


def _group_items(
    records: Sequence[Any],
    name_of: Callable[[Any], str],
    build: Callable[[Any, ExtractionContext], Optional[RawItem]],
    profile: SiteProfile,
    rules: Sequence[Tuple[str, Sequence[str]]],
) -> List[RawCategory]:
    grouped: Dict[str, List[RawItem]] = {}
    positions: Dict[str, int] = {}
    for record in records:
        category = infer_category(name_of(record), rules, profile.fallback_category)
        position = positions.get(category, 0)
        positions[category] = position + 1
        grouped.setdefault(category, [])
        item = build(record, ExtractionContext(profile, category, position))
        if item is not None:
            grouped[category].append(item)
    return _keep_populated([RawCategory(name, items) for name, items in grouped.items()])


# -- structured metadata -------------------------------------------------------


def _iter_json_ld(snapshot: PageSnapshot) -> Iterator[Mapping[str, Any]]:
    for content in script_texts(snapshot, "application/ld+json"):
        try:
            data = json.loads(content)
        except json.JSONDecodeError as exc:
            LOGGER.warning("Failed to parse JSON-LD block: %s", exc)
            continue
        pending: List[Any] = [data]
        while pending:
            current = pending.pop(0)
            if isinstance(current, list):
                pending.extend(current)
            elif isinstance(current, Mapping):
                yield current
                if isinstance(current.get("@graph"), list):
                    pending.extend(current["@graph"])


def _has_type(data: Mapping[str, Any], type_name: str) -> bool:
    declared = data.get("@type")
    if isinstance(declared, list):
        return type_name in declared
    return declared == type_name


def _menu_sections(menu: Any) -> List[Mapping[str, Any]]:
    if isinstance(menu, list):
        for entry in menu:
            sections = _menu_sections(entry)
            if sections:
                return sections
        return []
    if isinstance(menu, Mapping) and isinstance(menu.get("hasMenuSection"), list):
        return [section for section in menu["hasMenuSection"] if isinstance(section, Mapping)]
    return []


def _offer_price(record: Mapping[str, Any]) -> Optional[float]:
    offers = record.get("offers")
    if isinstance(offers, list):
        offers = offers[0] if offers else None
    if not isinstance(offers, Mapping):
        return None
    return normalise_price(offers.get("price"), unit="auto")


def locate_structured_metadata(snapshot: PageSnapshot, profile: SiteProfile) -> List[RawCategory]:
    """Read ``Restaurant.hasMenu.hasMenuSection`` from schema.org JSON-LD blocks."""

    for data in _iter_json_ld(snapshot):
        if not _has_type(data, "Restaurant"):
            continue
        sections = _menu_sections(data.get("hasMenu"))
        if not sections:
            continue

        categories: List[RawCategory] = []
        for section in sections:
            name = html.unescape(str(section.get("name") or profile.fallback_category)).strip()
            items: List[RawItem] = []
            for position, record in enumerate(section.get("hasMenuItem") or []):
                if not isinstance(record, Mapping):
                    continue
                item = extract_record(
                    record,
                    ExtractionContext(profile, name, position),
                    price=_offer_price(record),
                )
                if item is not None:
                    items.append(item)
            categories.append(RawCategory(name=name, items=items))

        categories = _keep_populated(categories)
        if categories:
            return categories
    return []


# -- embedded application state ------------------------------------------------


def _load_state_payload(content: str) -> Any:
    match = _CATALOG_BLOB.search(content)
    if not match:
        return None
    try:
        return json.loads(match.group(0))
    except json.JSONDecodeError:
        # Trailing script statements after the object literal.
        payload, _ = json.JSONDecoder().raw_decode(match.group(0))
        return payload


def _find_lists(data: Any, key: str) -> Iterator[List[Any]]:
    pending: List[Any] = [data]
    while pending:
        current = pending.pop(0)
        if isinstance(current, Mapping):
            for name, value in current.items():
                if name == key and isinstance(value, list):
                    yield value
                elif isinstance(value, (Mapping, list)):
                    pending.append(value)
        elif isinstance(current, list):
            pending.extend(value for value in current if isinstance(value, (Mapping, list)))


def _state_item(record: Mapping[str, Any], context: ExtractionContext) -> Optional[RawItem]:
    return extract_record(record, context, price=normalise_price(record.get("price"), unit="minor"))


def locate_embedded_state(snapshot: PageSnapshot, profile: SiteProfile) -> List[RawCategory]:
    """Read ``catalogItems`` collections from inline application-state scripts."""

    for content in script_texts(snapshot):
        if _CATALOG_MARKER not in content:
            continue
        try:
            payload = _load_state_payload(content)
        except json.JSONDecodeError as exc:
            LOGGER.warning("Failed to parse catalogItems payload: %s", exc)
            continue

        records = [
            record
            for catalog in _find_lists(payload, "catalogItems")
            for record in catalog
            if isinstance(record, Mapping)
        ]
        if not records:
            continue

        categories = _group_items(
            records,
            lambda record: str(record.get("title") or record.get("name") or ""),
            _state_item,
            profile,
            profile.category_rules,
        )
        if categories:
            return categories
    return []


# -- tagged DOM ----------------------------------------------------------------


def _category_section(node: Tag, snapshot: PageSnapshot, profile: SiteProfile) -> Tuple[Optional[str], Optional[Tag]]:
    dom = profile.dom
    if dom.section_id_prefix:
        name = node_text(node)
        if not name or any(skip in name for skip in dom.category_skip):
            return None, None
        section_id = (node.get("id") or "").replace(dom.section_id_prefix, "", 1)
        section = snapshot.soup.find(id=section_id) if section_id else None
        return name, section
    name = extract_text(node, dom.category_title) or dom.default_category
    return name, node


def _locate_orphan_items(snapshot: PageSnapshot, profile: SiteProfile) -> List[RawCategory]:
    dom = profile.dom
    nodes = collect_nodes(snapshot.soup, dom.orphan_items)
    if not nodes:
        return []
    return _group_items(
        nodes,
        lambda node: extract_text(node, dom.name) or "",
        extract_fields,
        profile,
        profile.dom_category_rules or profile.category_rules,
    )


def locate_tagged_dom(snapshot: PageSnapshot, profile: SiteProfile) -> List[RawCategory]:
    """Walk category and item marker elements of the rendered page."""

    dom = profile.dom
    categories: List[RawCategory] = []
    for node in collect_nodes(snapshot.soup, dom.categories):
        name, section = _category_section(node, snapshot, profile)
        if name is None or section is None:
            continue
        items: List[RawItem] = []
        for position, item_node in enumerate(collect_nodes(section, dom.items)):
            item = extract_fields(item_node, ExtractionContext(profile, name, position))
            if item is not None:
                items.append(item)
        if items:
            categories.append(RawCategory(name=name, items=items))

    if categories:
        return categories
    return _locate_orphan_items(snapshot, profile)


# -- heuristic content ---------------------------------------------------------


def locate_heuristic_content(snapshot: PageSnapshot, profile: SiteProfile) -> List[RawCategory]:
    """Last resort: treat short priced text blocks as menu items."""

    low, high = HEURISTIC_TEXT_RANGE
    candidates: List[Tuple[Tag, str]] = []
    for div in snapshot.soup.find_all("div"):
        text = " ".join(div.get_text(" ").split())
        if low < len(text) < high and any(marker in text for marker in HEURISTIC_INDICATORS):
            candidates.append((div, text))

    items: List[RawItem] = []
    for position, (div, text) in enumerate(candidates[:HEURISTIC_LIMIT]):
        raw_name = extract_text(div, HEURISTIC_NAME_SELECTORS) or text[:HEURISTIC_NAME_CHARS]
        name = clean_name(
            raw_name, ExtractionContext(profile, profile.fallback_category, position)
        )
        if name is None or len(name) < HEURISTIC_MIN_NAME:
            continue
        match = CURRENCY_PATTERN.search(text)
        items.append(RawItem(name=name, price=parse_price(match.group(0)) if match else None))

    if not items:
        return []
    return [RawCategory(name=profile.fallback_category, items=items)]


STRATEGIES: Dict[str, Strategy] = {
    STRUCTURED_METADATA: locate_structured_metadata,
    EMBEDDED_STATE: locate_embedded_state,
    TAGGED_DOM: locate_tagged_dom,
    HEURISTIC_CONTENT: locate_heuristic_content,
}


def locate_with_strategy(
    snapshot: PageSnapshot, profile: SiteProfile
) -> Tuple[Optional[str], List[RawCategory]]:
    """Run the profile's strategies in order; return the first non-empty result and its name."""

    for name in profile.strategies:
        strategy = STRATEGIES.get(name)
        if strategy is None:
            LOGGER.warning("Unknown locator strategy %r in profile %s", name, profile.name)
            continue
        try:
            categories = strategy(snapshot, profile)
        except Exception as exc:
            LOGGER.warning("Locator strategy %s failed: %s", name, exc)
            continue
        if categories:
            LOGGER.info(
                "Strategy %s located %d categories with %d items",
                name,
                len(categories),
                sum(len(category.items) for category in categories),
            )
            return name, categories
        LOGGER.info("Strategy %s found no menu data", name)
    return None, []


def locate(snapshot: PageSnapshot, profile: SiteProfile) -> List[RawCategory]:
    """Return the first non-empty category list; never raises."""

    _, categories = locate_with_strategy(snapshot, profile)
    return categories


def _option_set_image(dish: Mapping[str, Any], template: str) -> Optional[str]:
    image = dish.get("image")
    if not isinstance(image, Mapping) or not image.get("_id"):
        return None
    return template.format(id=image["_id"], name=image.get("name") or "")


def expand_option_sets(
    categories: List[RawCategory], state: Optional[Mapping[str, Any]], profile: SiteProfile
) -> int:
    """Replace wrapper dishes (e.g. "BEERS") with one item per option of their option sets."""

    expansion = profile.option_sets
    if expansion is None or not isinstance(state, Mapping):
        return 0
    target = next((category for category in categories if category.name == expansion.category), None)
    if target is None:
        return 0

    option_sets = {
        option_set.get("_id"): option_set
        for option_set in state.get("option_sets") or []
        if isinstance(option_set, Mapping)
    }
    placeholder = profile.name_filter.remap_trigger
    added = 0
    for menu in state.get("menus") or []:
        if not isinstance(menu, Mapping):
            continue
        for menu_category in menu.get("categories") or []:
            if not isinstance(menu_category, Mapping) or menu_category.get("name") != expansion.category:
                continue
            for dish in menu_category.get("dishes") or []:
                if not isinstance(dish, Mapping):
                    continue
                for set_id in dish.get("option_sets") or []:
                    option_set = option_sets.get(set_id)
                    options = option_set.get("options") if option_set else None
                    if not options:
                        continue
                    image = _option_set_image(dish, expansion.image_url_template)
                    set_name = str(option_set.get("name") or "").strip()
                    for option in options:
                        option_name = str(option.get("name") or "").strip() if isinstance(option, Mapping) else ""
                        if not option_name:
                            continue
                        target.items.append(
                            RawItem(
                                name=option_name,
                                description=f"{set_name} - {option_name}",
                                price=normalise_price(option.get("price"), unit="major"),
                                image=image,
                            )
                        )
                        added += 1
                    target.items = [
                        item
                        for item in target.items
                        if item.name != dish.get("name")
                        and not (placeholder and placeholder in item.name)
                    ]
    if added:
        LOGGER.info("Expanded %d individual items from option sets in %s", added, target.name)
    return added


__all__ = [
    "STRATEGIES",
    "expand_option_sets",
    "infer_category",
    "locate",
    "locate_embedded_state",
    "locate_heuristic_content",
    "locate_structured_metadata",
    "locate_tagged_dom",
    "locate_with_strategy",
]
