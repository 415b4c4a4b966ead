"""Restaurant name, address, phone and rating from structured data or the DOM."""
from __future__ import annotations

import json
import logging
import re
from typing import Any, Mapping, Optional

from .models import RestaurantInfo
from .profiles import SiteProfile
from .sources.dom import PageSnapshot, extract_text, script_texts

LOGGER = logging.getLogger(__name__)

_RATING_PATTERN = re.compile(r"\d+(?:\.\d+)?")


def _postal_address(address: Any) -> Optional[str]:
    if isinstance(address, str):
        return address.strip() or None
    if not isinstance(address, Mapping):
        return None
    parts = [
        address.get("streetAddress"),
        address.get("addressLocality"),
        address.get("addressRegion"),
        address.get("postalCode"),
    ]
    joined = ", ".join(str(part) for part in parts if part)
    return joined or None


def _parse_rating(value: Any) -> Optional[float]:
    if value is None:
        return None
    match = _RATING_PATTERN.search(str(value))
    if not match:
        return None
    try:
        return float(match.group())
    except ValueError:
        return None


def _from_json_ld(snapshot: PageSnapshot, info: RestaurantInfo) -> None:
    for content in script_texts(snapshot, "application/ld+json"):
        try:
            data = json.loads(content)
        except json.JSONDecodeError:
            continue
        candidates = data if isinstance(data, list) else [data]
        for candidate in candidates:
            if not isinstance(candidate, Mapping) or candidate.get("@type") != "Restaurant":
                continue
            info.name = info.name or candidate.get("name")
            info.address = info.address or _postal_address(candidate.get("address"))
            info.phone = info.phone or candidate.get("telephone")
            if info.rating is None and isinstance(candidate.get("aggregateRating"), Mapping):
                info.rating = _parse_rating(candidate["aggregateRating"].get("ratingValue"))
            if info.name and info.address and info.rating is not None:
                return


def extract_restaurant_info(snapshot: PageSnapshot, profile: SiteProfile) -> RestaurantInfo:
    """Fill restaurant details from JSON-LD first, then from profile DOM selectors."""

    info = RestaurantInfo()
    _from_json_ld(snapshot, info)

    selectors = profile.restaurant
    info.name = info.name or extract_text(snapshot.soup, selectors.name) or profile.default_restaurant
    info.address = info.address or extract_text(snapshot.soup, selectors.address)
    info.phone = info.phone or extract_text(snapshot.soup, selectors.phone)
    if info.rating is None:
        info.rating = _parse_rating(extract_text(snapshot.soup, selectors.rating))

    LOGGER.info("Restaurant: %s (address=%s, phone=%s, rating=%s)", info.name, info.address, info.phone, info.rating)
    return info


__all__ = ["extract_restaurant_info"]
