"""Eligibility assessment for grant discovery."""

from .filter import (
    EligibilityBatch,
    assess_eligibility,
    check_entity_type,
    check_industry,
    check_location,
    resolve_match_mode,
    run_eligibility_batch,
)

__all__ = [
    "EligibilityBatch",
    "assess_eligibility",
    "check_entity_type",
    "check_industry",
    "check_location",
    "resolve_match_mode",
    "run_eligibility_batch",
]
