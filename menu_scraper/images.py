"""Backfill missing item images from a page-wide pool or from item detail views."""
from __future__ import annotations

from contextlib import asynccontextmanager
from dataclasses import dataclass, field
import logging
import re
from typing import Any, AsyncIterator, Callable, Dict, List, Optional, Sequence, Tuple

from bs4 import BeautifulSoup
from bs4.element import Tag

from .extractor import extract_option_groups
from .models import RawItem
from .profiles import SiteProfile
from .sources.dom import (
    PageSnapshot,
    background_image_url,
    collect_nodes,
    extract_attribute,
    extract_text,
    node_text,
    select_first,
)

try:  # pragma: no cover - optional dependency during development
    from playwright.async_api import Page
except Exception:  # pragma: no cover
    Page = Any  # type: ignore

LOGGER = logging.getLogger(__name__)

_STRIP_SYMBOLS = re.compile(r"[™®©&\-]")
_TOKEN_PUNCTUATION = ".,;:!?()[]\"'"
_PRICE_SUFFIX = re.compile(r"\+?\s*\$\s*(\d[\d,]*(?:\.\d+)?)")

MIN_TOKEN_LENGTH = 4
PREFIX_WORDS = 3
SHORT_PREFIX_CHARS = 6
CLOSE_TIMEOUT_MS = 1500


def _image_source(img: Tag) -> Optional[str]:
    for attribute in ("src", "data-src"):
        value = img.get(attribute)
        if value and not str(value).startswith("data:"):
            return str(value).strip()
    srcset = img.get("srcset")
    if srcset:
        return str(srcset).split(",")[0].strip().split(" ")[0]
    return None


def build_image_pool(snapshot: PageSnapshot, profile: SiteProfile) -> Dict[str, str]:
    """Collect ``label -> image URL`` pairs from the whole page.

    Alt/aria labelled images come first; images inside named item containers
    and images next to headings only fill labels that are still missing.
    """

    rules = profile.images
    dom = profile.dom

    def eligible(src: Optional[str]) -> bool:
        return bool(src) and (not rules.domains or any(domain in src for domain in rules.domains))

    pool: Dict[str, str] = {}
    for img in snapshot.soup.find_all("img"):
        src = _image_source(img)
        label = (img.get("alt") or img.get("aria-label") or "").strip()
        if label and eligible(src):
            pool[label] = src  # type: ignore[assignment]

    containers = collect_nodes(snapshot.soup, dom.items) + collect_nodes(snapshot.soup, dom.orphan_items)
    for container in containers:
        label = extract_text(container, dom.name)
        if not label:
            continue
        src = None
        for img in container.find_all("img"):
            candidate = _image_source(img)
            if eligible(candidate):
                src = candidate
                break
        if src is None:
            for selector in dom.background_image:
                candidate = background_image_url(select_first(container, selector), dom.image_data_attribute)
                if eligible(candidate):
                    src = candidate
                    break
        if src:
            pool.setdefault(label, src)

    for selector in rules.heading_selectors:
        for heading in snapshot.soup.select(selector):
            label = node_text(heading)
            parent = heading.parent
            if not label or parent is None:
                continue
            for img in parent.find_all("img"):
                candidate = _image_source(img)
                if eligible(candidate):
                    pool.setdefault(label, candidate)  # type: ignore[arg-type]
                    break

    LOGGER.debug("Image pool holds %d labelled images", len(pool))
    return pool


def _tokens(text: str) -> set:
    tokens = (token.strip(_TOKEN_PUNCTUATION) for token in text.split())
    return {token for token in tokens if len(token) >= MIN_TOKEN_LENGTH}


def _normalise(text: str) -> str:
    return " ".join(_STRIP_SYMBOLS.sub(" ", text).split())


def _match_exact(name: str, label: str) -> bool:
    return name == label


def _match_substring(name: str, label: str) -> bool:
    return label in name or name in label


def _match_tokens(name: str, label: str) -> bool:
    item_tokens = _tokens(name)
    if not item_tokens:
        return False
    return len(item_tokens & _tokens(label)) >= min(2, len(item_tokens))


def _match_normalised(name: str, label: str) -> bool:
    clean_name, clean_label = _normalise(name), _normalise(label)
    if not clean_name or not clean_label:
        return False
    return clean_label in clean_name or clean_name in clean_label


def _match_prefix(name: str, label: str) -> bool:
    words = name.split()
    prefix = " ".join(words[:PREFIX_WORDS]) if len(words) >= PREFIX_WORDS else name[:SHORT_PREFIX_CHARS]
    return len(prefix) >= 3 and prefix in label


MATCHERS: Sequence[Tuple[str, Callable[[str, str], bool]]] = (
    ("exact", _match_exact),
    ("substring", _match_substring),
    ("tokens", _match_tokens),
    ("normalised", _match_normalised),
    ("prefix", _match_prefix),
)


def match_image(name: str, pool: Dict[str, str]) -> Optional[Tuple[str, str]]:
    """Return ``(strategy, url)`` for the first matcher that finds ``name`` in the pool."""

    lowered = " ".join(name.lower().split())
    if not lowered:
        return None
    entries = [
        (" ".join(label.lower().split()), url) for label, url in pool.items() if label.strip()
    ]
    for strategy, matcher in MATCHERS:
        for label, url in entries:
            if matcher(lowered, label):
                return strategy, url
    return None


def reconcile(items: Sequence[RawItem], pool: Dict[str, str]) -> int:
    """Fill ``image`` on items that lack one; returns how many were updated."""

    if not pool:
        return 0
    updated = 0
    for item in items:
        if item.image:
            continue
        match = match_image(item.name, pool)
        if match is None:
            continue
        strategy, url = match
        item.image = url
        updated += 1
        LOGGER.debug("Matched image for %r via %s", item.name, strategy)
    return updated


def parse_detail_options(html: str, profile: SiteProfile) -> List[Dict[str, Any]]:
    """Read canonical ``{"name", "options": [{"name", "price"}]}`` groups from detail-view HTML."""

    soup = BeautifulSoup(html, "html.parser")
    groups: List[Dict[str, Any]] = []
    for group in extract_option_groups(soup, profile.dom):
        options: List[Dict[str, str]] = []
        for choice in group["choices"]:
            match = _PRICE_SUFFIX.search(choice)
            if match:
                label = " ".join((choice[: match.start()] + choice[match.end():]).split())
                price = f"+${float(match.group(1).replace(',', '')):.2f}"
            else:
                label, price = choice, ""
            if label:
                options.append({"name": label, "price": price})
        if options:
            groups.append({"name": group["name"], "options": options})
    return groups


@dataclass
class DetailView:
    """What could be read from one item's detail overlay."""

    image: Optional[str] = None
    add_ons: List[Dict[str, Any]] = field(default_factory=list)


class InteractiveImageExtractor:
    """Open item detail overlays one at a time and read images from them.

    A single instance drives one live page; calls must not overlap.
    """

    def __init__(self, page: Page, profile: SiteProfile, timeout_ms: int = 5000) -> None:
        self.page = page
        self.profile = profile
        self.timeout_ms = timeout_ms

    async def _click_item(self, item_name: str) -> bool:
        for selector in self.profile.images.clickable_items:
            try:
                await self.page.locator(selector).filter(has_text=item_name).first.click(
                    timeout=self.timeout_ms
                )
                return True
            except Exception:
                continue
        return False

    async def _wait_for_modal(self) -> Any:
        for selector in self.profile.images.modal:
            try:
                handle = await self.page.wait_for_selector(
                    selector, timeout=self.timeout_ms, state="visible"
                )
            except Exception:
                continue
            if handle is not None:
                return handle
        return None

    async def _close_modal(self) -> None:
        for selector in self.profile.images.modal_close:
            try:
                await self.page.locator(selector).first.click(timeout=CLOSE_TIMEOUT_MS)
                return
            except Exception:
                continue
        try:
            await self.page.keyboard.press("Escape")
        except Exception as exc:
            LOGGER.warning("Could not dismiss detail view: %s", exc)

    @asynccontextmanager
    async def open_detail_view(self, item_name: str) -> AsyncIterator[Any]:
        """Yield the detail overlay handle (or ``None``); always closes what it opened."""

        clicked = await self._click_item(item_name)
        try:
            yield await self._wait_for_modal() if clicked else None
        finally:
            if clicked:
                await self._close_modal()

    async def _read_modal(self, modal: Any) -> DetailView:
        html = await modal.inner_html()
        soup = BeautifulSoup(html, "html.parser")
        image = extract_attribute(soup, self.profile.images.modal_image, "src")
        if not image:
            image = extract_attribute(soup, self.profile.images.modal_image, self.profile.dom.image_data_attribute)
        return DetailView(image=image, add_ons=parse_detail_options(html, self.profile))

    async def extract(self, item_name: str) -> Optional[DetailView]:
        try:
            async with self.open_detail_view(item_name) as modal:
                if modal is None:
                    return None
                return await self._read_modal(modal)
        except Exception as exc:
            LOGGER.warning("Detail view extraction failed for %r: %s", item_name, exc)
            return None


async def reconcile_interactively(
    items: Sequence[RawItem], extractor: InteractiveImageExtractor, limit: int
) -> int:
    """Open detail views for image-less items, strictly in order, up to ``limit`` attempts."""

    updated = 0
    attempts = 0
    for item in items:
        if item.image:
            continue
        if attempts >= limit:
            LOGGER.info("Interactive image limit of %d reached", limit)
            break
        attempts += 1
        view = await extractor.extract(item.name)
        if view is None:
            continue
        if view.image:
            item.image = view.image
            updated += 1
        if view.add_ons and not item.raw_options:
            item.raw_options = view.add_ons
    return updated


__all__ = [
    "DetailView",
    "InteractiveImageExtractor",
    "MATCHERS",
    "build_image_pool",
    "match_image",
    "parse_detail_options",
    "reconcile",
    "reconcile_interactively",
]
