"""Page access layers: parsed HTML snapshots and live Playwright helpers."""
from .dom import PageSnapshot

__all__ = ["PageSnapshot"]
