"""Weighted additive relevance scoring for grants.

Six signals each contribute up to a configurable number of points. The
composite is clamped to 0-100 and rounded.
"""

from datetime import datetime, timezone
from typing import List, Optional, Tuple

from ..eligibility.filter import check_entity_type, grant_terms, grant_text
from ..models import (
    DimensionScore,
    EntityType,
    Grant,
    MatchMode,
    MatchResult,
    Profile,
    ScoringResult,
)
from ..models.match_result import format_deadline_display, format_funding_display
from ..taxonomy import (
    BUDGET_TO_GRANT_SIZE,
    GRANT_SIZE_RANGES,
    find_semantic_matches,
    is_open_eligibility,
    normalize_term,
    size_band_range,
)
from .weights import DEFAULT_WEIGHTS, ScoringWeights

# Fixed deadlines at least this far out earn full deadline points
FULL_DEADLINE_DAYS = 90
URGENT_DEADLINE_DAYS = 14

TIER_THRESHOLDS = [
    (80, "excellent", "Excellent Match"),
    (60, "good", "Good Match"),
    (40, "fair", "Fair Match"),
    (0, "low", "Low Match"),
]


def score_grant(
    grant: Grant,
    profile: Profile,
    mode: MatchMode = MatchMode.SOFT,
    now: Optional[datetime] = None,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
) -> ScoringResult:
    """Score a grant across six weighted dimensions.

    Dimensions (default maximum points):
    1. Entity type (20): matched or unrestricted
    2. Geography (20): national or state match
    3. Industry (25): fraction of profile industries the grant covers
    4. Funding (15): award range against preferred grant size
    5. Deadline (10): rolling or far-out deadlines score higher
    6. Quality (10): precomputed data completeness

    A dimension the profile says nothing about contributes half its points,
    so a missing preference never looks like a confirmed bad match.

    Args:
        grant: Grant to score
        profile: Applicant profile
        mode: Match mode; SOFT floors the industry dimension
        now: Invocation time shared by the whole run
        weights: Scoring weights configuration

    Returns:
        ScoringResult with dimension points, ordered reasons and warnings
    """

    now = now or datetime.now(timezone.utc)

    dimensions = [
        _score_entity_type(grant, profile, weights.entity_type),
        _score_geography(grant, profile, weights.geography),
        _score_industry(grant, profile, mode, weights),
        _score_funding(grant, profile, weights.funding),
        _score_deadline(grant, now, weights.deadline),
        _score_quality(grant, weights.quality),
    ]

    total = sum(d.points for d in dimensions)
    score = int(round(max(0.0, min(100.0, total))))

    # Stable sort keeps dimension order on equal contribution
    ranked = sorted(dimensions, key=lambda d: d.points, reverse=True)
    reasons = [d.reason for d in ranked if d.reason]
    warnings = [d.warning for d in dimensions if d.warning]

    return ScoringResult(
        grant_id=grant.id,
        score=score,
        dimensions=dimensions,
        match_reasons=reasons,
        warnings=warnings,
        weights_version=weights.version,
    )


def _score_entity_type(grant: Grant, profile: Profile, max_points: float) -> DimensionScore:
    """Full for a match or no restriction, half when the profile is unclassified."""

    if is_open_eligibility(grant.eligibility.tags):
        return DimensionScore(
            name="entity_type",
            points=max_points,
            max_points=max_points,
            reason="Open to all organization types",
        )

    if profile.entity_type in (None, EntityType.UNSPECIFIED):
        return DimensionScore(
            name="entity_type",
            points=max_points / 2,
            max_points=max_points,
            warning="Organization type not set; eligibility not confirmed",
        )

    check = check_entity_type(grant, profile)
    if not check.is_met:
        return DimensionScore(
            name="entity_type",
            points=0.0,
            max_points=max_points,
            warning=check.details,
        )

    return DimensionScore(
        name="entity_type",
        points=max_points,
        max_points=max_points,
        reason=f"Open to {profile.entity_type.value.replace('_', ' ')} applicants",
    )


def _score_geography(grant: Grant, profile: Profile, max_points: float) -> DimensionScore:
    """Full for national or state match, half when scope is unknown, 0 for another state."""

    if not grant.locations or any(loc.is_national for loc in grant.locations):
        return DimensionScore(
            name="geography",
            points=max_points,
            max_points=max_points,
            reason="Available nationwide",
        )

    states = []
    for loc in grant.locations:
        if loc.state_code and loc.state_code not in states:
            states.append(loc.state_code)

    if not profile.state or not states:
        return DimensionScore(
            name="geography",
            points=max_points / 2,
            max_points=max_points,
        )

    if profile.state in states:
        return DimensionScore(
            name="geography",
            points=max_points,
            max_points=max_points,
            reason=f"Available in {profile.state}",
        )

    return DimensionScore(
        name="geography",
        points=0.0,
        max_points=max_points,
        warning=f"Restricted to {', '.join(states)}",
    )


def _score_industry(
    grant: Grant,
    profile: Profile,
    mode: MatchMode,
    weights: ScoringWeights,
) -> DimensionScore:
    """Proportional to the share of profile industries the grant covers."""

    max_points = weights.industry
    tags = _distinct_tags(profile.industry_tags)

    if not tags:
        return DimensionScore(name="industry", points=max_points / 2, max_points=max_points)

    terms = grant_terms(grant)
    text = grant_text(grant)
    matched = [tag for tag in tags if find_semantic_matches(tag, terms, text)]
    points = max_points * len(matched) / len(tags)

    # Soft floor applies to partial overlap as well
    if mode == MatchMode.SOFT:
        points = max(points, weights.industry_soft_baseline)

    if matched:
        return DimensionScore(
            name="industry",
            points=points,
            max_points=max_points,
            reason=f"Matches your focus: {', '.join(matched)}",
        )

    return DimensionScore(
        name="industry",
        points=points,
        max_points=max_points,
        warning="No direct overlap with your industries",
    )


def _score_funding(grant: Grant, profile: Profile, max_points: float) -> DimensionScore:
    """Full on band overlap, decays with distance from the preferred band."""

    preferred = (profile.grant_preferences.preferred_size or "").strip().lower()

    if not grant.has_amount:
        return DimensionScore(
            name="funding",
            points=max_points / 2,
            max_points=max_points,
            warning="Funding amount not specified",
        )

    if preferred == "any":
        return DimensionScore(
            name="funding",
            points=max_points,
            max_points=max_points,
            reason="Any grant size works for you",
        )

    band = _preferred_band(profile)
    if band is None:
        return DimensionScore(name="funding", points=max_points / 2, max_points=max_points)

    band_min, band_max = band
    low, high = _award_range(grant)

    if low <= band_max and high >= band_min:
        return DimensionScore(
            name="funding",
            points=max_points,
            max_points=max_points,
            reason="Grant size matches your preference",
        )

    if high < band_min:
        ratio = high / band_min if band_min else 0.0
        direction = "smaller"
    else:
        ratio = band_max / low if low else 0.0
        direction = "larger"

    ratio = max(0.0, min(1.0, ratio))
    warning = None
    if ratio < 0.5:
        warning = f"Award is much {direction} than your preferred grant size"

    return DimensionScore(
        name="funding",
        points=max_points * ratio,
        max_points=max_points,
        warning=warning,
    )


def _score_deadline(grant: Grant, now: datetime, max_points: float) -> DimensionScore:
    """Rolling is full; fixed scales with days remaining; unknown is half."""

    if grant.is_rolling:
        return DimensionScore(
            name="deadline",
            points=max_points,
            max_points=max_points,
            reason="Rolling deadline",
        )

    if grant.deadline_date is None:
        return DimensionScore(
            name="deadline",
            points=max_points / 2,
            max_points=max_points,
            warning="Deadline unknown",
        )

    days_left = (grant.deadline_date - now).total_seconds() / 86400

    if days_left < 0:
        return DimensionScore(
            name="deadline",
            points=0.0,
            max_points=max_points,
            warning="Deadline has passed",
        )

    points = max_points * min(1.0, days_left / FULL_DEADLINE_DAYS)
    reason = "Plenty of time to apply" if days_left >= FULL_DEADLINE_DAYS else None
    warning = None
    if days_left <= URGENT_DEADLINE_DAYS:
        warning = f"Deadline in {int(days_left)} days"

    return DimensionScore(
        name="deadline",
        points=points,
        max_points=max_points,
        reason=reason,
        warning=warning,
    )


def _score_quality(grant: Grant, max_points: float) -> DimensionScore:
    reason = "Complete grant listing" if grant.quality_score >= 0.8 else None
    return DimensionScore(
        name="quality",
        points=max_points * grant.quality_score,
        max_points=max_points,
        reason=reason,
    )


def _distinct_tags(tags: List[str]) -> List[str]:
    seen = set()
    distinct = []
    for tag in tags:
        key = normalize_term(tag)
        if key and key not in seen:
            seen.add(key)
            distinct.append(tag.strip())
    return distinct


def _preferred_band(profile: Profile) -> Optional[Tuple[float, float]]:
    """Explicit preferred size first, then the band implied by annual budget."""
    preferred = (profile.grant_preferences.preferred_size or "").strip().lower()
    if preferred in GRANT_SIZE_RANGES:
        return GRANT_SIZE_RANGES[preferred]

    budget = (profile.annual_budget or "").strip().lower()
    if budget in BUDGET_TO_GRANT_SIZE:
        return size_band_range(BUDGET_TO_GRANT_SIZE[budget])
    return None


def _award_range(grant: Grant) -> Tuple[float, float]:
    low = grant.amount_min if grant.amount_min is not None else grant.amount_max
    high = grant.amount_max if grant.amount_max is not None else grant.amount_min
    if low > high:
        low, high = high, low
    return low, high


def get_tier(score: int) -> Tuple[str, str]:
    """Tier key and label for a 0-100 score."""
    for threshold, tier, label in TIER_THRESHOLDS:
        if score >= threshold:
            return tier, label
    return "low", "Low Match"


def profile_confidence_level(profile: Profile) -> str:
    """How much the profile tells us: high, medium or low."""
    filled = sum([
        profile.entity_type not in (None, EntityType.UNSPECIFIED),
        bool(profile.state),
        profile.has_industry_preference,
        bool(profile.annual_budget or profile.size_band),
        bool(profile.grant_preferences.preferred_size),
        bool(profile.goals),
    ])
    if filled >= 4:
        return "high"
    if filled >= 2:
        return "medium"
    return "low"


def build_match_result(grant: Grant, scoring: ScoringResult, profile: Profile) -> MatchResult:
    """Package a scored grant with display fields for callers."""
    tier, tier_label = get_tier(scoring.score)
    return MatchResult(
        grant=grant,
        score=scoring.score,
        match_reasons=list(scoring.match_reasons),
        warnings=list(scoring.warnings),
        breakdown=scoring.breakdown,
        tier=tier,
        tier_label=tier_label,
        confidence_level=profile_confidence_level(profile),
        funding_display=format_funding_display(grant.amount_min, grant.amount_max, grant.amount_text),
        deadline_display=format_deadline_display(grant.deadline_date, grant.is_rolling),
    )
