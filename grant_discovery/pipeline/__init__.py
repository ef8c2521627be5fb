"""Discovery pipeline orchestration."""

from .orchestrator import DiscoveryPipeline, PipelineOptions, run_discovery
from .timing import StageTimer

__all__ = ["DiscoveryPipeline", "PipelineOptions", "run_discovery", "StageTimer"]
