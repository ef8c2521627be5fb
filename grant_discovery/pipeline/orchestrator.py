"""Discovery pipeline: parse, gate, dedupe, filter, score, enrich, rank.

Every stage except enrichment is pure and synchronous. Enrichment is the one
awaited call; it runs under a timeout and any failure falls back to the
deterministic results.
"""

import asyncio
import logging
from collections import Counter
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterable, List, Optional, Union

from pydantic import BaseModel, Field, ValidationError, field_validator

from ..deduplicator import Deduplicator
from ..eligibility import EligibilityBatch, resolve_match_mode, run_eligibility_batch
from ..enrichment import (
    AIMatchAssessment,
    EnrichmentCache,
    EnrichmentService,
    GeminiEnrichmentService,
    prefilter_for_accessibility,
)
from ..errors import EnrichmentUnavailableError, InvalidProfileError
from ..models import (
    DiagnosticCode,
    DiscoveryResult,
    EnrichmentStatus,
    MatchMode,
    MatchResult,
    PipelineStats,
    Profile,
    parse_grant_records,
)
from ..ranking import SortBy, rank, sort_results
from ..scorer import DEFAULT_WEIGHTS, ScoringWeights, build_match_result, load_weights, score_grant
from .timing import StageTimer

logger = logging.getLogger(__name__)

REJECTION_SAMPLE_SIZE = 10


class PipelineOptions(BaseModel):
    """Per-call options for a discovery run."""

    limit: Optional[int] = Field(20, ge=0, description="Page size; None returns everything")
    min_score: int = Field(30, ge=0, le=100, description="Results scoring below this are dropped")
    sort_by: SortBy = SortBy.BEST_MATCH
    mode: MatchMode = Field(MatchMode.SOFT, description="HARD also gates on industry overlap")
    use_ai: bool = True
    use_cache: bool = True
    include_debug: bool = False
    now: Optional[datetime] = Field(None, description="Shared invocation time; defaults to the current UTC time")

    @field_validator("now")
    @classmethod
    def _now_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        if v is not None and v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v


class DiscoveryPipeline:
    """Runs one profile against one grant pool.

    Holds only configuration and the optional enrichment cache; each run is
    otherwise independent.
    """

    def __init__(
        self,
        weights: ScoringWeights = DEFAULT_WEIGHTS,
        enrichment: Optional[EnrichmentService] = None,
        cache: Optional[EnrichmentCache] = None,
        enrichment_timeout: float = 20.0,
        ai_candidate_limit: int = 50,
        ai_score_weight: float = 0.4,
        min_confidence_for_hard: float = 0.5,
    ):
        self.weights = weights
        self.enrichment = enrichment
        self.cache = cache
        self.enrichment_timeout = enrichment_timeout
        self.ai_candidate_limit = ai_candidate_limit
        self.ai_score_weight = ai_score_weight
        self.min_confidence_for_hard = min_confidence_for_hard
        self.deduplicator = Deduplicator()

    @classmethod
    def from_config(cls, config, enrichment: Optional[EnrichmentService] = None) -> "DiscoveryPipeline":
        """Build a pipeline from Config; Gemini enrichment when a key is configured."""
        if enrichment is None and config.enrichment_configured:
            enrichment = GeminiEnrichmentService.from_config(config)
        return cls(
            weights=load_weights(config.weights_file),
            enrichment=enrichment,
            cache=EnrichmentCache(ttl=timedelta(days=config.cache_ttl_days)),
            enrichment_timeout=config.enrichment_timeout_seconds,
            ai_candidate_limit=config.ai_candidate_limit,
            ai_score_weight=config.ai_score_weight,
            min_confidence_for_hard=config.min_confidence_for_hard_mode,
        )

    async def run(
        self,
        grants: Iterable[Any],
        profile: Union[Profile, Dict[str, Any]],
        options: Optional[PipelineOptions] = None,
    ) -> DiscoveryResult:
        """Match a profile against a raw grant pool.

        Args:
            grants: Raw records (dicts) or Grant instances
            profile: Applicant profile or its dict form
            options: Per-call options; defaults when omitted

        Returns:
            DiscoveryResult with ranked grants, stats and a diagnostic code

        Raises:
            InvalidProfileError: If the profile is invalid or has no entity type
        """
        options = options or PipelineOptions()
        profile = _validate_profile(profile)
        now = options.now or datetime.now(timezone.utc)
        timer = StageTimer()
        stats = PipelineStats()
        debug: Dict[str, Any] = {}

        with timer.stage("parse"):
            records = list(grants)
            parsed, malformed = parse_grant_records(records)
        stats.considered_count = len(records)
        stats.malformed_count = len(malformed)
        for error in malformed:
            logger.warning("Skipping %s", error)

        if not parsed:
            return self._finish([], 0, DiagnosticCode.EMPTY_POOL, stats, timer, debug, options, profile)

        open_grants = [g for g in parsed if g.is_open]
        stats.closed_count = len(parsed) - len(open_grants)
        if not open_grants:
            return self._finish([], 0, DiagnosticCode.NO_OPEN_GRANTS, stats, timer, debug, options, profile)

        with timer.stage("dedupe"):
            unique = self.deduplicator.deduplicate(open_grants)
        stats.deduped_count = len(open_grants) - len(unique)

        mode = resolve_match_mode(profile, options.mode, self.min_confidence_for_hard)
        with timer.stage("eligibility"):
            batch = run_eligibility_batch(unique, profile, mode)
        _record_eligibility(stats, batch)
        if options.include_debug:
            debug["mode"] = mode.value
            debug["eligibility"] = batch.stats.as_dict()
            debug["rejections"] = [
                {"grant_id": r.grant.id, "reasons": r.reasons}
                for r in batch.rejected[:REJECTION_SAMPLE_SIZE]
            ]
        if not batch.passed:
            return self._finish(
                [], 0, DiagnosticCode.ALL_FILTERED_BY_ELIGIBILITY, stats, timer, debug, options, profile
            )

        with timer.stage("score"):
            scored = [
                build_match_result(grant, score_grant(grant, profile, mode, now, self.weights), profile)
                for grant in batch.passed
            ]
        above_floor = [r for r in scored if r.score >= options.min_score]
        stats.filtered_by_score = len(scored) - len(above_floor)
        if options.include_debug:
            debug["score_distribution"] = score_distribution(scored)
            debug["weights_version"] = self.weights.version
        if not above_floor:
            return self._finish([], 0, DiagnosticCode.ALL_FILTERED_BY_SCORE, stats, timer, debug, options, profile)

        with timer.stage("enrich"):
            enriched = await self._enrich(above_floor, profile, options, now, stats)

        with timer.stage("rank"):
            page, total = rank(enriched, options.sort_by, options.min_score, options.limit)

        return self._finish(page, total, DiagnosticCode.OK, stats, timer, debug, options, profile)

    async def _enrich(
        self,
        results: List[MatchResult],
        profile: Profile,
        options: PipelineOptions,
        now: datetime,
        stats: PipelineStats,
    ) -> List[MatchResult]:
        """Attach AI assessments to the top candidates; never changes membership."""
        if not options.use_ai or self.enrichment is None:
            stats.enrichment_status = EnrichmentStatus.DISABLED
            return results

        top = sort_results(results, SortBy.BEST_MATCH)[: self.ai_candidate_limit]
        candidates = prefilter_for_accessibility([r.grant for r in top])
        if not candidates:
            stats.enrichment_status = EnrichmentStatus.SKIPPED
            return results

        assessments: Dict[str, AIMatchAssessment] = {}
        cached_ids = set()
        if options.use_cache and self.cache is not None:
            self.cache.purge_expired(now)
            for grant in candidates:
                hit = self.cache.get(profile, grant, now)
                if hit is not None:
                    assessments[grant.id] = hit
                    cached_ids.add(grant.id)

        misses = [g for g in candidates if g.id not in cached_ids]
        status = EnrichmentStatus.SUCCESS
        if misses:
            try:
                fresh = await asyncio.wait_for(
                    self.enrichment.enrich(misses, profile),
                    timeout=self.enrichment_timeout,
                )
            except asyncio.TimeoutError:
                logger.warning(
                    "enrichment_complete service=%s result=timeout timeout_s=%.1f candidates=%d",
                    self.enrichment.name, self.enrichment_timeout, len(misses),
                )
                status = EnrichmentStatus.TIMEOUT
                fresh = {}
            except EnrichmentUnavailableError as exc:
                logger.warning(
                    "enrichment_complete service=%s result=failure error='%s'",
                    self.enrichment.name, exc,
                )
                status = EnrichmentStatus.FAILED
                fresh = {}
            except Exception as exc:
                logger.exception(
                    "enrichment_complete service=%s result=failure error='%s: %s'",
                    self.enrichment.name, type(exc).__name__, exc,
                )
                status = EnrichmentStatus.FAILED
                fresh = {}
            else:
                if len(fresh) < len(misses):
                    status = EnrichmentStatus.PARTIAL

            by_id = {g.id: g for g in misses}
            for grant_id, assessment in fresh.items():
                if grant_id not in by_id:
                    continue
                assessments[grant_id] = assessment
                if options.use_cache and self.cache is not None:
                    self.cache.put(profile, by_id[grant_id], assessment, now)

        # Cached assessments still count when the live call fails
        if status in (EnrichmentStatus.FAILED, EnrichmentStatus.TIMEOUT) and cached_ids:
            status = EnrichmentStatus.PARTIAL

        stats.enrichment_status = status
        stats.from_cache = len(cached_ids)
        stats.from_ai = len(assessments) - len(cached_ids)

        return [
            self._merge(r, assessments[r.grant_id], r.grant_id in cached_ids)
            if r.grant_id in assessments else r
            for r in results
        ]

    def _merge(self, result: MatchResult, assessment: AIMatchAssessment, from_cache: bool) -> MatchResult:
        """Blend AI score into a combined score unless the AI is unsure."""
        combined = None
        if assessment.is_confident:
            combined = int(round(
                (1 - self.ai_score_weight) * result.score + self.ai_score_weight * assessment.match_score
            ))
            combined = max(0, min(100, combined))

        return result.model_copy(update={
            "ai_match_score": assessment.match_score,
            "combined_score": combined,
            "fit_summary": assessment.fit_summary,
            "why_match": assessment.why_match,
            "next_steps": list(assessment.next_steps),
            "what_you_can_fund": list(assessment.what_you_can_fund),
            "eligibility_status": assessment.eligibility_status,
            "urgency": assessment.urgency,
            "from_cache": from_cache,
        })

    def _finish(
        self,
        page: List[MatchResult],
        total: int,
        diagnostic: DiagnosticCode,
        stats: PipelineStats,
        timer: StageTimer,
        debug: Dict[str, Any],
        options: PipelineOptions,
        profile: Profile,
    ) -> DiscoveryResult:
        stats.final_count = len(page)
        timings = timer.as_dict()

        logger.info(
            "discovery_complete profile=%s diagnostic=%s considered=%d malformed=%d closed=%d "
            "deduped=%d filtered_eligibility=%d filtered_score=%d final=%d enrichment=%s duration_ms=%.0f",
            profile.id or "-",
            diagnostic.value,
            stats.considered_count,
            stats.malformed_count,
            stats.closed_count,
            stats.deduped_count,
            stats.filtered_by_eligibility,
            stats.filtered_by_score,
            stats.final_count,
            stats.enrichment_status.value,
            timings["total"],
        )

        if not options.include_debug:
            return DiscoveryResult(grants=page, total=total, diagnostic=diagnostic, stats=stats)

        debug["processing_time_ms"] = timings["total"]
        debug["enrichment_status"] = stats.enrichment_status.value
        if self.cache is not None:
            debug["cache_hit_rate"] = round(self.cache.hit_rate, 3)
        return DiscoveryResult(
            grants=page,
            total=total,
            diagnostic=diagnostic,
            stats=stats,
            timings=timings,
            debug=debug,
        )


def _validate_profile(profile: Union[Profile, Dict[str, Any]]) -> Profile:
    if not isinstance(profile, Profile):
        try:
            profile = Profile.model_validate(profile)
        except ValidationError as exc:
            raise InvalidProfileError(f"Invalid profile: {exc.errors()[0]['msg']}") from exc
    if profile.entity_type is None:
        raise InvalidProfileError("Profile has no entity type; complete onboarding before matching")
    return profile


def _record_eligibility(stats: PipelineStats, batch: EligibilityBatch) -> None:
    stats.filtered_by_eligibility = len(batch.rejected)
    stats.failed_by_entity = batch.stats.failed_by_entity
    stats.failed_by_geo = batch.stats.failed_by_geo
    stats.failed_by_industry = batch.stats.failed_by_industry


def score_distribution(results: List[MatchResult]) -> Dict[str, Any]:
    """Tier counts plus min/max/mean of deterministic scores."""
    if not results:
        return {"count": 0}
    scores = [r.score for r in results]
    tiers = Counter(r.tier for r in results)
    return {
        "count": len(scores),
        "min": min(scores),
        "max": max(scores),
        "mean": round(sum(scores) / len(scores), 1),
        "tiers": {tier: tiers.get(tier, 0) for tier in ("excellent", "good", "fair", "low")},
    }


async def run_discovery(
    grants: Iterable[Any],
    profile: Union[Profile, Dict[str, Any]],
    options: Optional[PipelineOptions] = None,
    **pipeline_kwargs: Any,
) -> DiscoveryResult:
    """One-shot convenience wrapper around DiscoveryPipeline.run."""
    return await DiscoveryPipeline(**pipeline_kwargs).run(grants, profile, options)
