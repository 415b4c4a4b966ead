"""Keyword rules deriving dietary labels, tags, ingredients and spice level."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence

from .profiles import ClassifierRules

NO_SPICE_LEVEL = " "


@dataclass
class Classification:
    dietary: List[str] = field(default_factory=list)
    tags: List[str] = field(default_factory=list)
    ingredients: List[str] = field(default_factory=list)
    spice_level: str = NO_SPICE_LEVEL


def _contains_any(text: str, terms: Iterable[str]) -> bool:
    return any(term in text for term in terms)


def _append_unique(target: List[str], values: Iterable[str]) -> None:
    for value in values:
        if value not in target:
            target.append(value)


def derive_dietary(text: str, rules: ClassifierRules) -> List[str]:
    """Apply dietary rules in order; an excluded term vetoes its rule."""

    dietary: List[str] = []
    for rule in rules.dietary_rules:
        if _contains_any(text, rule.terms) and not _contains_any(text, rule.exclude):
            _append_unique(dietary, rule.labels)
    return dietary


def derive_tags(text: str, dietary: Sequence[str], rules: ClassifierRules) -> List[str]:
    tags: List[str] = []
    for tag, terms in rules.tag_terms:
        if _contains_any(text, terms):
            _append_unique(tags, [tag])
    for label, code in rules.dietary_tag_codes:
        if label in dietary:
            _append_unique(tags, [code])
    return tags


def derive_ingredients(description: Optional[str], rules: ClassifierRules) -> List[str]:
    if not description:
        return []
    lowered = description.lower()
    return [term for term in rules.ingredient_terms if term in lowered]


def derive_spice_level(text: str, rules: ClassifierRules) -> str:
    for level, terms in rules.spice_levels:
        if _contains_any(text, terms):
            return level
    return NO_SPICE_LEVEL


def classify(
    name: str,
    description: Optional[str],
    rules: ClassifierRules,
    badge_dietary: Sequence[str] = (),
) -> Classification:
    """Classify an item from its name and description.

    Badge-driven profiles take dietary labels only from ``badge_dietary``;
    keyword-driven profiles derive them from the text.
    """

    text = f"{name} {description or ''}".lower()
    if rules.dietary_from_badges:
        dietary = list(badge_dietary)
    else:
        dietary = derive_dietary(text, rules)
    return Classification(
        dietary=dietary,
        tags=derive_tags(text, dietary, rules),
        ingredients=derive_ingredients(description, rules),
        spice_level=derive_spice_level(text, rules),
    )


__all__ = ["Classification", "classify", "derive_dietary", "derive_tags"]
