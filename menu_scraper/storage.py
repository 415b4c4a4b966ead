"""Flat JSON files holding one canonical menu array per source site."""
from __future__ import annotations

from datetime import datetime, timezone
import json
import logging
import os
from pathlib import Path
import tempfile
from typing import Any, Dict, List, Optional, Sequence

from .models import CanonicalMenuItem

LOGGER = logging.getLogger(__name__)


def menu_path(output_dir: str | Path, filename: str) -> Path:
    return Path(output_dir) / filename


def write_menu_file(
    output_dir: str | Path, filename: str, items: Sequence[CanonicalMenuItem]
) -> Path:
    """Replace the menu file with ``items``, writing to a temp file first."""

    directory = Path(output_dir)
    directory.mkdir(parents=True, exist_ok=True)
    target = directory / filename
    payload = [item.to_dict() for item in items]

    fd, temp_name = tempfile.mkstemp(prefix=f".{filename}.", dir=str(directory))
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            json.dump(payload, handle, indent=2, ensure_ascii=False)
        os.replace(temp_name, target)
    except BaseException:
        if os.path.exists(temp_name):
            os.unlink(temp_name)
        raise
    LOGGER.info("Saved %d items to %s", len(payload), target)
    return target


def read_menu_file(path: str | Path) -> Optional[List[Dict[str, Any]]]:
    """Return the stored array, or ``None`` when no file exists yet."""

    file_path = Path(path)
    if not file_path.exists():
        return None
    with file_path.open(encoding="utf-8") as handle:
        return json.load(handle)


def last_modified(path: str | Path) -> Optional[str]:
    file_path = Path(path)
    if not file_path.exists():
        return None
    return datetime.fromtimestamp(file_path.stat().st_mtime, tz=timezone.utc).isoformat()


__all__ = ["last_modified", "menu_path", "read_menu_file", "write_menu_file"]
