"""Weighted relevance scoring for grant discovery."""

from .engine import build_match_result, get_tier, profile_confidence_level, score_grant
from .weights import DEFAULT_WEIGHTS, load_weights, save_weights, ScoringWeights

__all__ = [
    "build_match_result",
    "get_tier",
    "profile_confidence_level",
    "score_grant",
    "DEFAULT_WEIGHTS",
    "load_weights",
    "save_weights",
    "ScoringWeights",
]
