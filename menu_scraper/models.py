"""Shared data structures used across extraction and normalisation."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class RawItem:
    """A menu item as found on the page, before normalisation."""

    name: str
    price: Optional[float] = None
    description: Optional[str] = None
    image: Optional[str] = None
    raw_options: List[Dict[str, Any]] = field(default_factory=list)
    dietary: List[str] = field(default_factory=list)
    badges: List[str] = field(default_factory=list)


@dataclass
class RawCategory:
    """A named group of raw items produced by one locator strategy."""

    name: str
    items: List[RawItem] = field(default_factory=list)


@dataclass
class AddOnOption:
    name: str
    price_modifier: str = ""

    def to_dict(self) -> Dict[str, str]:
        return {"name": self.name, "price": self.price_modifier}


@dataclass
class AddOnGroup:
    """A named set of customisation choices."""

    group_name: str
    options: List[AddOnOption] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.group_name,
            "options": [option.to_dict() for option in self.options],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AddOnGroup":
        return cls(
            group_name=str(data.get("name") or data.get("groupName") or ""),
            options=[
                AddOnOption(
                    name=str(option.get("name") or ""),
                    price_modifier=str(
                        option.get("price") or option.get("priceModifier") or ""
                    ),
                )
                for option in data.get("options") or []
                if isinstance(option, dict)
            ],
        )


@dataclass
class RestaurantInfo:
    name: Optional[str] = None
    address: Optional[str] = None
    phone: Optional[str] = None
    rating: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "address": self.address,
            "phone": self.phone,
            "rating": self.rating,
        }


@dataclass
class CanonicalMenuItem:
    """The unified menu item persisted to disk and served over the API."""

    id: str
    name: str
    price: str
    image: Optional[str]
    tags: List[str]
    category: str
    ingredients: List[str]
    spice_level: str
    add_ons: List[AddOnGroup]
    preparation_time: str
    recommended_with: List[str]
    restaurant: str
    dietary: List[str]
    brand_id: str
    description: str = ""

    def to_dict(self) -> Dict[str, Any]:
        """Return the document shape written to the menu JSON files."""

        return {
            "_id": {"$oid": self.id},
            "name": self.name,
            "price": self.price,
            "image": self.image,
            "tags": list(self.tags),
            "category": self.category,
            "ingredients": list(self.ingredients),
            "spiceLevel": self.spice_level,
            "add-ons": [group.to_dict() for group in self.add_ons],
            "preparationTime": self.preparation_time,
            "recommended_with": list(self.recommended_with),
            "restaurant": self.restaurant,
            "dietary": list(self.dietary),
            "brandId": {"$oid": self.brand_id},
            "description": self.description,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CanonicalMenuItem":
        """Rebuild an item from :meth:`to_dict` output."""

        return cls(
            id=str((data.get("_id") or {}).get("$oid", "")),
            name=str(data.get("name", "")),
            price=str(data.get("price", "$0.00")),
            image=data.get("image"),
            tags=list(data.get("tags") or []),
            category=str(data.get("category", "")),
            ingredients=list(data.get("ingredients") or []),
            spice_level=str(data.get("spiceLevel", " ")),
            add_ons=[AddOnGroup.from_dict(group) for group in data.get("add-ons") or []],
            preparation_time=str(data.get("preparationTime", " ")),
            recommended_with=list(data.get("recommended_with") or []),
            restaurant=str(data.get("restaurant", "")),
            dietary=list(data.get("dietary") or []),
            brand_id=str((data.get("brandId") or {}).get("$oid", "")),
            description=str(data.get("description") or ""),
        )
