"""Tabular summaries over canonical menu items."""
from __future__ import annotations

import math
from typing import Dict, Iterable, List

import pandas as pd

from .models import CanonicalMenuItem


def _price_value(price: str) -> float:
    try:
        return float(str(price).lstrip("$"))
    except ValueError:
        return math.nan


def items_to_dataframe(items: Iterable[CanonicalMenuItem]) -> pd.DataFrame:
    """Convert canonical items into a :class:`~pandas.DataFrame`."""

    records: List[Dict[str, object]] = []
    for item in items:
        records.append(
            {
                "name": item.name,
                "category": item.category,
                "price": _price_value(item.price),
                "has_image": bool(item.image),
                "add_on_groups": len(item.add_ons),
                "dietary": ", ".join(item.dietary),
            }
        )
    return pd.DataFrame.from_records(
        records, columns=["name", "category", "price", "has_image", "add_on_groups", "dietary"]
    )


def summarise_categories(df: pd.DataFrame) -> List[Dict[str, object]]:
    """Item counts per category, in the order the categories first appear."""

    if df.empty:
        return []
    counts = df.groupby("category", sort=False).size()
    return [{"name": str(name), "itemCount": int(count)} for name, count in counts.items()]


def summarise_prices(df: pd.DataFrame) -> Dict[str, float]:
    """Return simple price statistics, ignoring zero placeholder prices."""

    if df.empty:
        return {"count": 0, "average_price": 0.0, "min_price": 0.0, "max_price": 0.0}
    prices = df["price"].dropna()
    prices = prices[prices > 0]
    if prices.empty:
        return {"count": 0, "average_price": 0.0, "min_price": 0.0, "max_price": 0.0}
    return {
        "count": int(prices.count()),
        "average_price": float(prices.mean()),
        "min_price": float(prices.min()),
        "max_price": float(prices.max()),
    }


def image_coverage(df: pd.DataFrame) -> float:
    """Share of items that ended up with an image."""

    if df.empty:
        return 0.0
    return float(df["has_image"].mean())


__all__ = ["image_coverage", "items_to_dataframe", "summarise_categories", "summarise_prices"]
