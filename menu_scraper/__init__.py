"""Restaurant menu scraper package exposing the pipeline and its building blocks."""
from .config import ScraperConfig, create_config, create_config_from_env, create_config_from_form
from .errors import NavigationError, PipelineError, ScraperError, UnknownProfileError
from .models import CanonicalMenuItem
from .profiles import PROFILES, get_profile
from .workflow import PipelineResult, PipelineStage, process_snapshot, run_pipeline, run_pipeline_sync

__all__ = [
    "CanonicalMenuItem",
    "NavigationError",
    "PROFILES",
    "PipelineError",
    "PipelineResult",
    "PipelineStage",
    "ScraperConfig",
    "ScraperError",
    "UnknownProfileError",
    "create_config",
    "create_config_from_env",
    "create_config_from_form",
    "get_profile",
    "process_snapshot",
    "run_pipeline",
    "run_pipeline_sync",
]
