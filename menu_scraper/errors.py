"""Exception types raised by the menu scraping pipeline."""
from __future__ import annotations

from typing import Optional


class ScraperError(Exception):
    """Base class for all scraper failures."""


class UnknownProfileError(ScraperError, KeyError):
    """Raised when no site profile is registered under the requested name."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Unknown scraper profile: {name}")
        self.name = name

    def __str__(self) -> str:
        return str(self.args[0])


class NavigationError(ScraperError):
    """The page never loaded or never reached the expected state."""

    def __init__(self, url: str, reason: str) -> None:
        super().__init__(f"Failed to load {url}: {reason}")
        self.url = url
        self.reason = reason


class PipelineError(ScraperError):
    """A run aborted; carries the stage that was active when it failed."""

    def __init__(self, message: str, stage: Optional[str] = None) -> None:
        super().__init__(message)
        self.stage = stage
