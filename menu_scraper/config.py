"""Configuration helpers for the menu scraping pipeline."""
from __future__ import annotations

from dataclasses import dataclass, field
import os
from typing import Any, Dict, Mapping, Optional, Tuple

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)

ENV_PREFIX = "MENU_SCRAPER_"


@dataclass
class ScraperConfig:
    """Runtime settings shared by every pipeline run."""

    headless: bool = True
    browser: str = "chromium"
    executable_path: Optional[str] = None
    page_load_timeout_ms: int = 60000
    selector_timeout_ms: int = 30000
    modal_timeout_ms: int = 5000
    settle_delay_ms: int = 2000
    user_agent: str = DEFAULT_USER_AGENT
    viewport: Tuple[int, int] = (1920, 1080)
    output_dir: str = field(default_factory=os.getcwd)
    debug_dir: Optional[str] = None
    interactive_images: bool = True
    max_interactive_items: int = 40

    def to_dict(self) -> Dict[str, Any]:
        """Return a JSON-serialisable version of the configuration."""

        return {
            "headless": self.headless,
            "browser": self.browser,
            "executable_path": self.executable_path,
            "page_load_timeout_ms": self.page_load_timeout_ms,
            "selector_timeout_ms": self.selector_timeout_ms,
            "modal_timeout_ms": self.modal_timeout_ms,
            "settle_delay_ms": self.settle_delay_ms,
            "user_agent": self.user_agent,
            "viewport": list(self.viewport),
            "output_dir": self.output_dir,
            "debug_dir": self.debug_dir,
            "interactive_images": self.interactive_images,
            "max_interactive_items": self.max_interactive_items,
        }


def _parse_bool(value: Any, default: bool) -> bool:
    if value is None or value == "":
        return default
    if isinstance(value, bool):
        return value
    lowered = str(value).strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    return default


def _parse_int(value: Any, default: int) -> int:
    if value is None or value == "":
        return default
    try:
        return int(str(value).strip())
    except ValueError:
        return default


def _parse_viewport(value: Any, default: Tuple[int, int]) -> Tuple[int, int]:
    if not value:
        return default
    if isinstance(value, (list, tuple)) and len(value) == 2:
        return (_parse_int(value[0], default[0]), _parse_int(value[1], default[1]))
    parts = str(value).lower().replace(",", "x").split("x")
    if len(parts) != 2:
        return default
    return (_parse_int(parts[0], default[0]), _parse_int(parts[1], default[1]))


def _apply_overrides(config: ScraperConfig, values: Mapping[str, Any]) -> ScraperConfig:
    config.headless = _parse_bool(values.get("headless"), config.headless)
    config.browser = str(values.get("browser") or config.browser).strip().lower()
    config.executable_path = values.get("executable_path") or config.executable_path
    config.page_load_timeout_ms = _parse_int(
        values.get("page_load_timeout_ms"), config.page_load_timeout_ms
    )
    config.selector_timeout_ms = _parse_int(
        values.get("selector_timeout_ms"), config.selector_timeout_ms
    )
    config.modal_timeout_ms = _parse_int(values.get("modal_timeout_ms"), config.modal_timeout_ms)
    config.settle_delay_ms = _parse_int(values.get("settle_delay_ms"), config.settle_delay_ms)
    config.user_agent = str(values.get("user_agent") or config.user_agent)
    config.viewport = _parse_viewport(values.get("viewport"), config.viewport)
    config.output_dir = str(values.get("output_dir") or config.output_dir)
    config.debug_dir = values.get("debug_dir") or config.debug_dir
    config.interactive_images = _parse_bool(
        values.get("interactive_images"), config.interactive_images
    )
    config.max_interactive_items = _parse_int(
        values.get("max_interactive_items"), config.max_interactive_items
    )
    return config


def create_config_from_env(environ: Optional[Mapping[str, str]] = None) -> ScraperConfig:
    """Build a configuration from ``MENU_SCRAPER_*`` environment variables."""

    source = os.environ if environ is None else environ
    values = {
        key[len(ENV_PREFIX):].lower(): value
        for key, value in source.items()
        if key.startswith(ENV_PREFIX)
    }
    return _apply_overrides(ScraperConfig(), values)


def create_config_from_form(
    form_data: Mapping[str, Any], base: Optional[ScraperConfig] = None
) -> ScraperConfig:
    """Apply request-level overrides (JSON body or query string) to a base config."""

    config = ScraperConfig(**(base or ScraperConfig()).__dict__)
    return _apply_overrides(config, form_data)


def create_config(
    data: Mapping[str, Any] | None = None, base: Optional[ScraperConfig] = None
) -> ScraperConfig:
    """Unified helper: environment defaults, optionally overridden by a mapping."""

    if data is None:
        return create_config_from_env() if base is None else base
    if isinstance(data, Mapping):
        return create_config_from_form(data, base=base or create_config_from_env())
    raise TypeError("Unsupported configuration payload type: expected a mapping or None")
