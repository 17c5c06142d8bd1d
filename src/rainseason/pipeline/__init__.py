"""Pipeline modules.

- orchestrator: Main pipeline controller
- processor: Tile processing with caching and failure policy
- stage_cache: SQLite-tracked NetCDF cache of stage outputs
"""

from rainseason.pipeline.orchestrator import PipelineOrchestrator
from rainseason.pipeline.processor import SeasonProcessor
from rainseason.pipeline.stage_cache import StageCache

__all__ = [
    "PipelineOrchestrator",
    "SeasonProcessor",
    "StageCache",
]
