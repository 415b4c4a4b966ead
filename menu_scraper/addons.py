"""Normalise site-specific customisation data into add-on groups."""
from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
import logging
import re
from typing import Any, List, Mapping, Optional, Sequence

from .models import AddOnGroup, AddOnOption
from .profiles import AddOnRules

LOGGER = logging.getLogger(__name__)

_WHOLE_PATTERN = re.compile(r"\bwhole\s*\(", re.IGNORECASE)
_HALF_PATTERN = re.compile(r"\bhalf\s*\(", re.IGNORECASE)
_CENTS = Decimal("0.01")

PORTION_GROUP = "Portion"


def format_modifier(amount: float | Decimal) -> str:
    """Render a price increment as ``+$X.YY``."""

    value = Decimal(str(amount)).quantize(_CENTS, rounding=ROUND_HALF_UP)
    return f"+${value}"


def _is_canonical(raw_options: Sequence[Any]) -> bool:
    first = raw_options[0]
    return isinstance(first, Mapping) and isinstance(first.get("options"), list)


def _from_choices(raw_options: Sequence[Any], rules: AddOnRules) -> List[AddOnGroup]:
    groups: List[AddOnGroup] = []
    for option in raw_options:
        if not isinstance(option, Mapping):
            continue
        choices = [str(choice) for choice in option.get("choices") or [] if choice]
        if not choices:
            continue
        groups.append(
            AddOnGroup(
                group_name=str(option.get("name") or "Options"),
                options=[
                    AddOnOption(
                        name=choice,
                        price_modifier=(
                            rules.upsize_modifier
                            if any(keyword in choice.lower() for keyword in rules.upsize_keywords)
                            else ""
                        ),
                    )
                    for choice in choices
                ],
            )
        )
    return groups


def default_catalog(rules: AddOnRules) -> List[AddOnGroup]:
    return [
        AddOnGroup(
            group_name=group_name,
            options=[AddOnOption(name=name, price_modifier=price) for name, price in options],
        )
        for group_name, options in rules.default_catalog
    ]


def badge_group(dietary: Sequence[str], rules: AddOnRules) -> Optional[AddOnGroup]:
    options = [
        AddOnOption(name=option_name, price_modifier=price)
        for label, option_name, price in rules.badge_options
        if label in dietary
    ]
    if not options:
        return None
    return AddOnGroup(group_name=rules.badge_group_name, options=options)


def portion_group(
    description: Optional[str], base_price: Optional[float], rules: AddOnRules
) -> Optional[AddOnGroup]:
    """Half/Whole choice for descriptions such as ``Whole (1040 Cal.), Half (520 Cal.)``."""

    if not description or not _WHOLE_PATTERN.search(description) or not _HALF_PATTERN.search(description):
        return None
    whole_modifier = ""
    if base_price is not None and base_price > rules.portion_threshold:
        whole_modifier = format_modifier(Decimal(str(base_price)) * Decimal(str(rules.portion_ratio)))
    return AddOnGroup(
        group_name=PORTION_GROUP,
        options=[
            AddOnOption(name="Half", price_modifier=""),
            AddOnOption(name="Whole", price_modifier=whole_modifier),
        ],
    )


def normalize(
    raw_options: Sequence[Any],
    name: str,
    description: Optional[str],
    base_price: Optional[float],
    rules: AddOnRules,
    dietary: Sequence[str] = (),
) -> List[AddOnGroup]:
    """Return the add-on groups for one item."""

    text = f"{name} {description or ''}".lower()
    groups: List[AddOnGroup] = []

    if raw_options:
        if _is_canonical(raw_options):
            groups = [AddOnGroup.from_dict(group) for group in raw_options if isinstance(group, Mapping)]
        else:
            groups = _from_choices(raw_options, rules)
    elif rules.configurable_keywords and any(keyword in text for keyword in rules.configurable_keywords):
        groups = default_catalog(rules)

    extra = badge_group(dietary, rules)
    if extra is not None:
        groups.append(extra)

    if rules.portion_enabled:
        portion = portion_group(description, base_price, rules)
        if portion is not None:
            groups.append(portion)

    lowered_name = name.lower()
    for size_rule in rules.size_rules:
        if any(group.group_name == size_rule.group_name for group in groups):
            continue
        if any(keyword in lowered_name for keyword in size_rule.keywords):
            groups.append(
                AddOnGroup(
                    group_name=size_rule.group_name,
                    options=[AddOnOption(name=option, price_modifier=price) for option, price in size_rule.options],
                )
            )

    return groups


__all__ = ["default_catalog", "format_modifier", "normalize", "portion_group"]
