"""Optional AI enrichment of scored grants."""

from .cache import EnrichmentCache, cache_key
from .prefilter import is_accessible, prefilter_for_accessibility
from .prompts import build_matching_prompt, build_profile_context
from .schema import AIMatchAssessment, extract_json, parse_assessments
from .service import EnrichmentRetryableError, EnrichmentService, GeminiEnrichmentService

__all__ = [
    "EnrichmentCache",
    "cache_key",
    "is_accessible",
    "prefilter_for_accessibility",
    "build_matching_prompt",
    "build_profile_context",
    "AIMatchAssessment",
    "extract_json",
    "parse_assessments",
    "EnrichmentRetryableError",
    "EnrichmentService",
    "GeminiEnrichmentService",
]
