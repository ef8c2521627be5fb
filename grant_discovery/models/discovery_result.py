"""DiscoveryResult - the envelope a discovery run returns."""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from .match_result import MatchResult


class DiagnosticCode(str, Enum):
    """Why a run returned what it returned.

    The empty-result codes need different remediation, so they stay distinct.
    """

    OK = "ok"
    EMPTY_POOL = "empty_pool"
    NO_OPEN_GRANTS = "no_open_grants"
    ALL_FILTERED_BY_ELIGIBILITY = "all_filtered_by_eligibility"
    ALL_FILTERED_BY_SCORE = "all_filtered_by_score"


class EnrichmentStatus(str, Enum):
    DISABLED = "disabled"
    SKIPPED = "skipped"
    SUCCESS = "success"
    PARTIAL = "partial"
    FAILED = "failed"
    TIMEOUT = "timeout"


class PipelineStats(BaseModel):
    """Counts in/out of each stage."""

    considered_count: int = 0
    malformed_count: int = 0
    closed_count: int = 0
    deduped_count: int = Field(0, description="Records removed as duplicates")
    filtered_by_eligibility: int = 0
    failed_by_entity: int = 0
    failed_by_geo: int = 0
    failed_by_industry: int = 0
    filtered_by_score: int = 0
    final_count: int = 0
    from_cache: int = 0
    from_ai: int = 0
    enrichment_status: EnrichmentStatus = EnrichmentStatus.DISABLED


class DiscoveryResult(BaseModel):
    """Transport-agnostic result of one discovery run."""

    grants: List[MatchResult] = Field(default_factory=list)
    total: int = Field(0, description="Results above the score floor, before truncation")
    diagnostic: DiagnosticCode = DiagnosticCode.OK
    stats: PipelineStats = Field(default_factory=PipelineStats)
    timings: Optional[Dict[str, float]] = Field(None, description="Stage name -> milliseconds")
    debug: Optional[Dict[str, Any]] = None
