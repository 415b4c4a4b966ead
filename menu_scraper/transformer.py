"""Assemble canonical menu items from extracted and derived parts."""
from __future__ import annotations

from typing import List, Optional, Sequence, Tuple
from uuid import uuid4

from .classifier import Classification
from .models import AddOnGroup, CanonicalMenuItem, RawItem

DEFAULT_PRICE = "$0.00"
UNSET_TEXT = " "


def generate_object_id() -> str:
    return uuid4().hex


def format_price(price: Optional[float]) -> str:
    if price is None:
        return DEFAULT_PRICE
    try:
        value = float(price)
    except (TypeError, ValueError):
        return DEFAULT_PRICE
    if value != value or value < 0:  # NaN or negative
        return DEFAULT_PRICE
    return f"${value:.2f}"


def fallback_image(name: str, table: Sequence[Tuple[str, str]]) -> Optional[str]:
    lowered = name.lower()
    for keyword, url in table:
        if keyword in lowered:
            return url
    return None


def to_canonical(
    item: RawItem,
    category: str,
    restaurant: str,
    classification: Classification,
    add_ons: List[AddOnGroup],
    brand_id: Optional[str] = None,
    fallback_images: Sequence[Tuple[str, str]] = (),
) -> CanonicalMenuItem:
    """Build the canonical record; ``brand_id`` is generated when not supplied."""

    return CanonicalMenuItem(
        id=generate_object_id(),
        name=item.name,
        price=format_price(item.price),
        image=item.image or fallback_image(item.name, fallback_images),
        tags=list(classification.tags),
        category=category.upper(),
        ingredients=list(classification.ingredients),
        spice_level=classification.spice_level,
        add_ons=list(add_ons),
        preparation_time=UNSET_TEXT,
        recommended_with=[],
        restaurant=restaurant,
        dietary=list(classification.dietary),
        brand_id=brand_id or generate_object_id(),
        description=item.description or "",
    )


__all__ = ["format_price", "generate_object_id", "to_canonical"]
