"""Reusable Playwright helpers shared by the site profiles."""
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional, Sequence

from ..config import ScraperConfig
from ..errors import NavigationError
from .dom import PageSnapshot

try:  # pragma: no cover - optional dependency during development
    from playwright.async_api import Page
except Exception:  # pragma: no cover
    Page = Any  # type: ignore

LOGGER = logging.getLogger(__name__)

BANNER_TIMEOUT_MS = 1500
EXPAND_TIMEOUT_MS = 3000
READY_FALLBACK_DELAY_MS = 5000


async def load_page(page: Page, url: str, config: ScraperConfig) -> None:
    """Navigate to ``url``; any navigation failure is fatal for the run."""

    LOGGER.info("Navigating to %s", url)
    try:
        await page.goto(url, wait_until="networkidle", timeout=config.page_load_timeout_ms)
    except Exception as exc:
        raise NavigationError(url, str(exc)) from exc


async def wait_for_any(page: Page, selectors: Sequence[str], timeout_ms: int) -> Optional[str]:
    """Wait for the first selector that shows up; fall back to a fixed delay."""

    for selector in selectors:
        try:
            await page.wait_for_selector(selector, timeout=timeout_ms)
            LOGGER.info("Page content ready (%s)", selector)
            return selector
        except Exception:
            LOGGER.info("Selector %s did not appear, trying next", selector)
            continue
    if selectors:
        await page.wait_for_timeout(READY_FALLBACK_DELAY_MS)
    return None


async def dismiss_common_banners(page: Page, selectors: Sequence[str]) -> int:
    """Attempt to dismiss cookie, location and promo overlays."""

    dismissed = 0
    for selector in selectors:
        try:
            await page.locator(selector).first.click(timeout=BANNER_TIMEOUT_MS)
            dismissed += 1
            await page.wait_for_timeout(500)
        except Exception:
            continue
    if dismissed:
        LOGGER.info("Dismissed %d overlay(s)", dismissed)
    return dismissed


async def click_expanders(page: Page, selectors: Sequence[str], settle_ms: int = 2000) -> int:
    """Click every visible "view menu" / "show more" style control once."""

    clicked = 0
    for selector in selectors:
        try:
            buttons = await page.query_selector_all(selector)
        except Exception:
            continue
        for button in buttons:
            try:
                if await button.is_visible():
                    await button.click(timeout=EXPAND_TIMEOUT_MS)
                    clicked += 1
                    await page.wait_for_timeout(settle_ms)
            except Exception:
                continue
    if clicked:
        LOGGER.info("Clicked %d menu expander(s)", clicked)
    return clicked


async def scroll_for_lazy_content(page: Page, settle_ms: int = 2000) -> None:
    """Scroll to the bottom and back to the middle so lazy sections render."""

    await page.evaluate("() => window.scrollTo(0, document.body.scrollHeight)")
    await page.wait_for_timeout(settle_ms)
    await page.evaluate("() => window.scrollTo(0, document.body.scrollHeight / 2)")
    await page.wait_for_timeout(settle_ms)


async def fetch_state(page: Page, script: Optional[str]) -> Optional[Dict[str, Any]]:
    """Evaluate ``script`` in the page and return the object it produces."""

    if not script:
        return None
    try:
        state = await page.evaluate(script)
    except Exception as exc:
        LOGGER.warning("Could not read application state: %s", exc)
        return None
    return state if isinstance(state, dict) else None


async def capture_snapshot(page: Page, state_script: Optional[str] = None) -> PageSnapshot:
    html = await page.content()
    state = await fetch_state(page, state_script)
    return PageSnapshot.from_html(html, url=getattr(page, "url", "") or "", state=state)


async def save_debug_artifacts(page: Page, debug_dir: Optional[str], prefix: str) -> Dict[str, str]:
    """Write a full-page screenshot and the rendered HTML next to each other."""

    if not debug_dir:
        return {}
    directory = Path(debug_dir)
    directory.mkdir(parents=True, exist_ok=True)
    saved: Dict[str, str] = {}
    screenshot_path = directory / f"{prefix}_debug_screenshot.png"
    html_path = directory / f"{prefix}_debug_page.html"
    try:
        await page.screenshot(path=os.fspath(screenshot_path), full_page=True)
        saved["screenshot"] = os.fspath(screenshot_path)
    except Exception as exc:
        LOGGER.warning("Screenshot failed: %s", exc)
    try:
        html_path.write_text(await page.content(), encoding="utf-8")
        saved["html"] = os.fspath(html_path)
    except Exception as exc:
        LOGGER.warning("Saving page HTML failed: %s", exc)
    if saved:
        LOGGER.info("Debug artifacts saved: %s", ", ".join(saved.values()))
    return saved


__all__ = [
    "capture_snapshot",
    "click_expanders",
    "dismiss_common_banners",
    "fetch_state",
    "load_page",
    "save_debug_artifacts",
    "scroll_for_lazy_content",
    "wait_for_any",
]
