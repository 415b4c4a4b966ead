"""High level orchestration for running one menu scrape."""
from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from enum import Enum
import logging
from typing import Any, Dict, Iterator, List, Optional, Tuple

try:  # pragma: no cover - optional dependency during development
    from playwright.async_api import Browser, Page, async_playwright  # type: ignore
except Exception:  # pragma: no cover
    Browser = Page = None  # type: ignore
    async_playwright = None  # type: ignore

from .addons import normalize
from .classifier import Classification, classify
from .config import ScraperConfig, create_config
from .errors import PipelineError
from .images import InteractiveImageExtractor, build_image_pool, reconcile, reconcile_interactively
from .locator import expand_option_sets, locate_with_strategy
from .models import AddOnGroup, CanonicalMenuItem, RawCategory, RawItem, RestaurantInfo
from .profiles import SiteProfile, get_profile
from .restaurant import extract_restaurant_info
from .sources.dom import PageSnapshot
from .sources.playwright_common import (
    capture_snapshot,
    click_expanders,
    dismiss_common_banners,
    load_page,
    save_debug_artifacts,
    scroll_for_lazy_content,
    wait_for_any,
)
from .storage import write_menu_file
from .transformer import generate_object_id, to_canonical

LOGGER = logging.getLogger(__name__)


class PipelineStage(str, Enum):
    IDLE = "idle"
    LOADING_PAGE = "loading_page"
    LOCATING_CATEGORIES = "locating_categories"
    EXTRACTING_ITEMS = "extracting_items"
    RECONCILING_IMAGES = "reconciling_images"
    NORMALIZING_ADDONS = "normalizing_addons"
    TRANSFORMING = "transforming"
    DONE = "done"
    FAILED = "failed"


@dataclass
class PipelineResult:
    """Result returned by :func:`run_pipeline` and :func:`process_snapshot`."""

    success: bool
    filename: str
    total_items: int
    categories: List[Dict[str, Any]]
    sample_item: Optional[Dict[str, Any]]
    restaurant: RestaurantInfo
    items: List[CanonicalMenuItem] = field(default_factory=list)
    strategy: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "filename": self.filename,
            "totalItems": self.total_items,
            "categories": list(self.categories),
            "sampleItem": self.sample_item,
            "restaurant": self.restaurant.to_dict(),
            "strategy": self.strategy,
        }


def _iter_items(categories: List[RawCategory]) -> Iterator[RawItem]:
    for category in categories:
        yield from category.items


class MenuPipeline:
    """Drives one profile through the pipeline stages, logging every transition."""

    def __init__(self, profile: SiteProfile, config: ScraperConfig) -> None:
        self.profile = profile
        self.config = config
        self.stage = PipelineStage.IDLE
        self.strategy: Optional[str] = None

    def advance(self, stage: PipelineStage) -> None:
        LOGGER.info("[%s] %s -> %s", self.profile.name, self.stage.value, stage.value)
        self.stage = stage

    def fail(self, exc: BaseException) -> PipelineError:
        """Move to FAILED and wrap ``exc`` with the stage that was active."""

        failed_stage = self.stage
        self.advance(PipelineStage.FAILED)
        if isinstance(exc, PipelineError):
            return exc
        return PipelineError(str(exc) or exc.__class__.__name__, stage=failed_stage.value)

    async def prepare_page(self, page: Page, url: str) -> PageSnapshot:
        await load_page(page, url, self.config)
        await wait_for_any(page, self.profile.page.ready, self.config.selector_timeout_ms)
        await dismiss_common_banners(page, self.profile.page.banners)
        if self.profile.page.scroll_for_lazy_content:
            await scroll_for_lazy_content(page, self.config.settle_delay_ms)
        await click_expanders(page, self.profile.page.expand, self.config.settle_delay_ms)
        await save_debug_artifacts(page, self.config.debug_dir, self.profile.name)
        state_script = self.profile.option_sets.state_script if self.profile.option_sets else None
        return await capture_snapshot(page, state_script)

    def locate(self, snapshot: PageSnapshot) -> List[RawCategory]:
        self.advance(PipelineStage.LOCATING_CATEGORIES)
        self.strategy, categories = locate_with_strategy(snapshot, self.profile)
        if self.strategy is None:
            LOGGER.warning("[%s] No strategy located any menu data", self.profile.name)
        return categories

    def extract(self, snapshot: PageSnapshot, categories: List[RawCategory]) -> RestaurantInfo:
        self.advance(PipelineStage.EXTRACTING_ITEMS)
        expand_option_sets(categories, snapshot.state, self.profile)
        categories[:] = [category for category in categories if category.items]
        return extract_restaurant_info(snapshot, self.profile)

    def reconcile_from_pool(self, snapshot: PageSnapshot, categories: List[RawCategory]) -> int:
        self.advance(PipelineStage.RECONCILING_IMAGES)
        pool = build_image_pool(snapshot, self.profile)
        return reconcile(list(_iter_items(categories)), pool)

    async def reconcile_from_page(self, page: Page, categories: List[RawCategory]) -> int:
        if not self.config.interactive_images or not self.profile.images.clickable_items:
            return 0
        missing = [item for item in _iter_items(categories) if not item.image]
        if not missing:
            return 0
        LOGGER.info("[%s] Opening detail views for %d items without images", self.profile.name, len(missing))
        extractor = InteractiveImageExtractor(page, self.profile, timeout_ms=self.config.modal_timeout_ms)
        return await reconcile_interactively(missing, extractor, self.config.max_interactive_items)

    def transform(self, categories: List[RawCategory], restaurant: RestaurantInfo) -> List[CanonicalMenuItem]:
        self.advance(PipelineStage.NORMALIZING_ADDONS)
        prepared: List[Tuple[str, RawItem, Classification, List[AddOnGroup]]] = []
        for category in categories:
            for item in category.items:
                classification = classify(item.name, item.description, self.profile.classifier, item.dietary)
                add_ons = normalize(
                    item.raw_options,
                    item.name,
                    item.description,
                    item.price,
                    self.profile.addons,
                    dietary=classification.dietary,
                )
                prepared.append((category.name, item, classification, add_ons))

        self.advance(PipelineStage.TRANSFORMING)
        brand_id = generate_object_id() if self.profile.shared_brand_id else None
        restaurant_name = restaurant.name or self.profile.default_restaurant
        return [
            to_canonical(
                item,
                category_name,
                restaurant_name,
                classification,
                add_ons,
                brand_id=brand_id,
                fallback_images=self.profile.images.fallback_images,
            )
            for category_name, item, classification, add_ons in prepared
        ]

    def finish(
        self, items: List[CanonicalMenuItem], restaurant: RestaurantInfo, categories: List[RawCategory]
    ) -> PipelineResult:
        """Persist ``items`` and summarise them under their source category names."""

        path = write_menu_file(self.config.output_dir, self.profile.output_filename, items)
        result = PipelineResult(
            success=True,
            filename=str(path),
            total_items=len(items),
            categories=[{"name": category.name, "itemCount": len(category.items)} for category in categories],
            sample_item=items[0].to_dict() if items else None,
            restaurant=restaurant,
            items=items,
            strategy=self.strategy,
        )
        self.advance(PipelineStage.DONE)
        LOGGER.info("[%s] Extracted %d items in %d categories", self.profile.name, result.total_items, len(result.categories))
        return result


def process_snapshot(
    snapshot: PageSnapshot, profile: SiteProfile, config: Optional[ScraperConfig] = None
) -> PipelineResult:
    """Run every stage after page loading on an already captured snapshot."""

    pipeline = MenuPipeline(profile, config or create_config())
    try:
        categories = pipeline.locate(snapshot)
        restaurant = pipeline.extract(snapshot, categories)
        pipeline.reconcile_from_pool(snapshot, categories)
        items = pipeline.transform(categories, restaurant)
        return pipeline.finish(items, restaurant, categories)
    except Exception as exc:
        raise pipeline.fail(exc) from exc


async def _launch(playwright: Any, config: ScraperConfig) -> Browser:
    launcher = getattr(playwright, config.browser, None) or playwright.chromium
    kwargs: Dict[str, Any] = {"headless": config.headless}
    if config.executable_path:
        kwargs["executable_path"] = config.executable_path
    return await launcher.launch(**kwargs)


async def run_pipeline(
    source_url: Optional[str] = None,
    profile_name: str = "uber",
    config: Optional[ScraperConfig] = None,
) -> PipelineResult:
    """Load ``source_url`` (or the profile default) in a browser and scrape its menu."""

    profile = get_profile(profile_name)
    config = config or create_config()
    url = source_url or profile.default_url
    pipeline = MenuPipeline(profile, config)

    if async_playwright is None:
        raise pipeline.fail(
            RuntimeError(
                "Playwright is not installed. Install playwright and run 'playwright install' to enable scraping."
            )
        )

    browser = None
    pipeline.advance(PipelineStage.LOADING_PAGE)
    try:
        async with async_playwright() as p:  # pragma: no cover - network heavy
            try:
                browser = await _launch(p, config)
                context = await browser.new_context(
                    user_agent=config.user_agent,
                    viewport={"width": config.viewport[0], "height": config.viewport[1]},
                )
                page = await context.new_page()
                snapshot = await pipeline.prepare_page(page, url)
                categories = pipeline.locate(snapshot)
                restaurant = pipeline.extract(snapshot, categories)
                pipeline.reconcile_from_pool(snapshot, categories)
                await pipeline.reconcile_from_page(page, categories)
                items = pipeline.transform(categories, restaurant)
                return pipeline.finish(items, restaurant, categories)
            finally:
                if browser is not None:
                    await browser.close()
                    LOGGER.info("[%s] Browser closed", profile.name)
    except Exception as exc:
        raise pipeline.fail(exc) from exc


def run_pipeline_sync(
    source_url: Optional[str] = None,
    profile_name: str = "uber",
    config: Optional[ScraperConfig] = None,
) -> PipelineResult:
    """Run :func:`run_pipeline` from synchronous code such as a worker thread."""

    async def runner() -> PipelineResult:
        return await run_pipeline(source_url, profile_name, config)

    try:
        return asyncio.run(runner())
    except RuntimeError as exc:
        if "asyncio.run() cannot be called" not in str(exc):
            raise
        loop = asyncio.new_event_loop()
        try:
            asyncio.set_event_loop(loop)
            return loop.run_until_complete(runner())
        finally:
            asyncio.set_event_loop(None)
            loop.close()


__all__ = [
    "MenuPipeline",
    "PipelineResult",
    "PipelineStage",
    "process_snapshot",
    "run_pipeline",
    "run_pipeline_sync",
]
