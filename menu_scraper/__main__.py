"""Command line entry point: ``python -m menu_scraper <profile> [url]``."""
from __future__ import annotations

import argparse
import logging
from pathlib import Path
import sys
from typing import List, Optional

from .config import create_config_from_env
from .errors import ScraperError
from .profiles import PROFILES, get_profile
from .reporter import build_report
from .sources.dom import PageSnapshot
from .workflow import process_snapshot, run_pipeline_sync

LOGGER = logging.getLogger("menu_scraper")


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="menu_scraper",
        description="Scrape a restaurant menu page and save it as canonical JSON",
    )
    ap.add_argument("profile", choices=sorted(PROFILES), help="Site profile to use")
    ap.add_argument("url", nargs="?", default=None, help="Menu page URL (defaults to the profile's URL)")
    ap.add_argument("--output-dir", default=None, help="Directory for <profile>_menu.json")
    ap.add_argument("--debug-dir", default=None, help="Save a screenshot and the rendered HTML here")
    ap.add_argument(
        "--no-interactive",
        action="store_true",
        help="Skip opening item detail views to find missing images",
    )
    ap.add_argument("--html", default=None, help="Process a saved HTML page instead of loading the URL")
    return ap


def main(argv: Optional[List[str]] = None) -> int:
    logging.basicConfig(level=logging.INFO)
    args = build_parser().parse_args(argv)

    config = create_config_from_env()
    if args.output_dir:
        config.output_dir = args.output_dir
    if args.debug_dir:
        config.debug_dir = args.debug_dir
    if args.no_interactive:
        config.interactive_images = False

    profile = get_profile(args.profile)
    try:
        if args.html:
            html = Path(args.html).read_text(encoding="utf-8")
            snapshot = PageSnapshot.from_html(html, url=args.url or profile.default_url)
            result = process_snapshot(snapshot, profile, config)
        else:
            result = run_pipeline_sync(args.url, profile.name, config)
    except (ScraperError, OSError) as exc:
        LOGGER.error("Scrape failed: %s", exc)
        return 1

    print(build_report(profile.name, result.restaurant.name or profile.default_restaurant, result.items, result.filename))
    return 0


if __name__ == "__main__":
    sys.exit(main())
