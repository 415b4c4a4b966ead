"""Selector-fallback helpers over a parsed HTML snapshot of a loaded page."""
from __future__ import annotations

from dataclasses import dataclass, field
import logging
import re
from typing import Any, Dict, List, Optional, Sequence

from bs4 import BeautifulSoup
from bs4.element import Tag

LOGGER = logging.getLogger(__name__)

BACKGROUND_URL_PATTERN = re.compile(r"url\(\s*['\"]?([^'\")]+)['\"]?\s*\)")


@dataclass
class PageSnapshot:
    """Static view of a page: parsed DOM plus any evaluated application state."""

    html: str
    soup: BeautifulSoup
    url: str = ""
    state: Optional[Dict[str, Any]] = None
    extras: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_html(
        cls, html: str, url: str = "", state: Optional[Dict[str, Any]] = None
    ) -> "PageSnapshot":
        return cls(html=html, soup=BeautifulSoup(html, "html.parser"), url=url, state=state)


def node_text(node: Optional[Tag]) -> Optional[str]:
    """Return whitespace-collapsed text of ``node`` or ``None`` when empty."""

    if node is None:
        return None
    text = " ".join(node.get_text(" ").split())
    return text or None


def _select(handle: Tag, selector: str) -> List[Tag]:
    try:
        return list(handle.select(selector))
    except Exception as exc:  # soupsieve rejects selectors it cannot parse
        LOGGER.debug("Selector %r not supported: %s", selector, exc)
        return []


def select_first(handle: Tag, selector: str) -> Optional[Tag]:
    matches = _select(handle, selector)
    return matches[0] if matches else None


def extract_text(handle: Tag, selectors: Sequence[str]) -> Optional[str]:
    """Return the first non-empty text found using the provided selectors."""

    for selector in selectors:
        text = node_text(select_first(handle, selector))
        if text:
            return text
    return None


def extract_attribute(handle: Tag, selectors: Sequence[str], attribute: str) -> Optional[str]:
    """Return the first non-empty attribute value for the selectors provided."""

    for selector in selectors:
        for element in _select(handle, selector):
            value = element.get(attribute)
            if value:
                return str(value).strip()
    return None


def collect_nodes(handle: Tag, selectors: Sequence[str]) -> List[Tag]:
    """Return nodes for the first selector that matches anything."""

    for selector in selectors:
        nodes = _select(handle, selector)
        if nodes:
            return nodes
    return []


def collect_unique(handle: Tag, selectors: Sequence[str]) -> List[Tag]:
    """Return nodes matched by any selector, without duplicates, in match order."""

    seen: set[int] = set()
    nodes: List[Tag] = []
    for selector in selectors:
        for node in _select(handle, selector):
            if id(node) in seen:
                continue
            seen.add(id(node))
            nodes.append(node)
    return nodes


def background_image_url(node: Optional[Tag], data_attribute: str = "data-bg") -> Optional[str]:
    """Resolve an image from a data attribute or an inline ``background-image`` style."""

    if node is None:
        return None
    data_value = node.get(data_attribute)
    if data_value:
        return str(data_value).strip()
    style = node.get("style") or ""
    if "url(" in style:
        match = BACKGROUND_URL_PATTERN.search(style)
        if match:
            return match.group(1).strip()
    return None


def script_texts(snapshot: PageSnapshot, script_type: Optional[str] = None) -> List[str]:
    """Return the text of every inline script, optionally filtered by ``type``."""

    texts: List[str] = []
    for script in snapshot.soup.find_all("script"):
        if script_type is not None and (script.get("type") or "").lower() != script_type:
            continue
        content = script.string if script.string is not None else script.get_text()
        if content and content.strip():
            texts.append(content)
    return texts


__all__ = [
    "PageSnapshot",
    "background_image_url",
    "collect_nodes",
    "collect_unique",
    "extract_attribute",
    "extract_text",
    "node_text",
    "script_texts",
    "select_first",
]
