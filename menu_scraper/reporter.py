"""Text reports for finished pipeline runs."""
from __future__ import annotations

from typing import Iterable, List, Sequence

from .models import CanonicalMenuItem
from .processor import image_coverage, items_to_dataframe, summarise_categories, summarise_prices


def generate_category_table(categories: Iterable[dict]) -> str:
    """Return a markdown-style table of item counts per category."""

    rows: List[str] = ["| Category | Items |", "| --- | --- |"]
    category_list = list(categories)
    if not category_list:
        rows.append("| No categories | 0 |")
        return "\n".join(rows)
    for category in category_list:
        rows.append(f"| {category['name']} | {category['itemCount']} |")
    return "\n".join(rows)


def build_report(
    profile_name: str,
    restaurant: str,
    items: Sequence[CanonicalMenuItem],
    filename: str | None = None,
) -> str:
    """Create a text report summarising one scrape."""

    df = items_to_dataframe(items)
    prices = summarise_prices(df)
    lines: List[str] = [
        "Menu Scrape Report",
        "==================",
        "",
        f"Profile: {profile_name}",
        f"Restaurant: {restaurant}",
    ]
    if filename:
        lines.append(f"Saved to: {filename}")

    lines.append("")
    lines.append("Summary:")
    if df.empty:
        lines.append("- No menu items found")
    else:
        lines.append(f"- {len(df)} items extracted")
        lines.append(f"- Image coverage: {image_coverage(df):.0%}")
        if prices["count"]:
            lines.append(f"- Average price: ${prices['average_price']:.2f}")
            lines.append(f"- Price range: ${prices['min_price']:.2f} - ${prices['max_price']:.2f}")

    lines.append("")
    lines.append("Categories:")
    lines.append(generate_category_table(summarise_categories(df)))

    if items:
        sample = items[0]
        lines.append("")
        lines.append(f"Sample item: {sample.name} ({sample.price}) in {sample.category}")
    return "\n".join(lines)


__all__ = ["build_report", "generate_category_table"]
