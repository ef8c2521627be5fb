"""Shared Pydantic models for the discovery pipeline."""

from .grant import (
    DeadlineType,
    Grant,
    GrantEligibility,
    GrantLocation,
    GrantStatus,
    parse_grant_records,
)
from .profile import EntityType, GrantPreferences, Profile
from .eligibility_result import (
    ConstraintCheck,
    EligibilityResult,
    EligibilityStats,
    MatchMode,
    RejectedGrant,
)
from .scoring_result import DimensionScore, ScoringResult
from .match_result import MatchResult
from .discovery_result import DiagnosticCode, DiscoveryResult, EnrichmentStatus, PipelineStats

__all__ = [
    "DeadlineType",
    "Grant",
    "GrantEligibility",
    "GrantLocation",
    "GrantStatus",
    "parse_grant_records",
    "EntityType",
    "GrantPreferences",
    "Profile",
    "ConstraintCheck",
    "EligibilityResult",
    "EligibilityStats",
    "MatchMode",
    "RejectedGrant",
    "DimensionScore",
    "ScoringResult",
    "MatchResult",
    "DiagnosticCode",
    "DiscoveryResult",
    "EnrichmentStatus",
    "PipelineStats",
]
