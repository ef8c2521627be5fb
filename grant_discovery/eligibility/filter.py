"""Eligibility filter for grant discovery.

Decides whether a grant is a candidate for a profile at all. Entity type and
geography are always gates; industry fit is a gate only in HARD mode.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from ..models import (
    ConstraintCheck,
    EligibilityResult,
    EligibilityStats,
    EntityType,
    Grant,
    MatchMode,
    Profile,
    RejectedGrant,
)
from ..taxonomy import (
    entity_eligibility_tags,
    find_semantic_matches,
    has_exclusion_signal,
    is_open_eligibility,
    normalize_term,
    contains_term,
)

logger = logging.getLogger(__name__)

ENTITY_CHECK = "Entity Type"
LOCATION_CHECK = "Geography"
INDUSTRY_CHECK = "Industry"


@dataclass
class EligibilityBatch:
    """Outcome of filtering a whole pool."""

    passed: List[Grant] = field(default_factory=list)
    rejected: List[RejectedGrant] = field(default_factory=list)
    stats: EligibilityStats = field(default_factory=EligibilityStats)


def assess_eligibility(
    grant: Grant,
    profile: Profile,
    mode: MatchMode = MatchMode.SOFT,
) -> EligibilityResult:
    """Assess one grant against one profile.

    Performs three constraint checks:
    1. Entity type compatibility
    2. Geography
    3. Industry overlap (gate in HARD mode only)

    Args:
        grant: Grant to assess
        profile: Applicant profile
        mode: MatchMode.SOFT lowers score on industry mismatch instead of rejecting

    Returns:
        EligibilityResult with detailed check results
    """
    entity_check = check_entity_type(grant, profile)
    location_check = check_location(grant, profile)
    industry_check = check_industry(grant, profile, enforce=mode == MatchMode.HARD)

    all_checks = [entity_check, location_check, industry_check]
    is_eligible = all(check.is_met for check in all_checks if check.evaluated)

    blockers = [
        f"{check.constraint_name}: {check.details}"
        for check in all_checks
        if check.evaluated and not check.is_met
    ]

    warnings = []
    if not industry_check.evaluated and not industry_check.is_met:
        warnings.append(industry_check.details)

    return EligibilityResult(
        grant_id=grant.id,
        is_eligible=is_eligible,
        mode=mode,
        entity_type_check=entity_check,
        location_check=location_check,
        industry_check=industry_check,
        blockers=blockers,
        warnings=warnings,
    )


def check_entity_type(grant: Grant, profile: Profile) -> ConstraintCheck:
    """Check the profile's entity type against the grant's eligibility tags."""

    grant_tags = grant.eligibility.tags

    if is_open_eligibility(grant_tags):
        return ConstraintCheck(
            constraint_name=ENTITY_CHECK,
            is_met=True,
            details="No entity restrictions declared",
        )

    if profile.entity_type in (None, EntityType.UNSPECIFIED):
        return ConstraintCheck(
            constraint_name=ENTITY_CHECK,
            is_met=True,
            details="Entity type unspecified (not enforced)",
        )

    compatible = entity_eligibility_tags(profile.entity_type)
    for grant_tag in grant_tags:
        normalized = normalize_term(grant_tag)
        if any(contains_term(normalized, tag) for tag in compatible):
            return ConstraintCheck(
                constraint_name=ENTITY_CHECK,
                is_met=True,
                details=f"Eligible as {grant_tag}",
            )

    return ConstraintCheck(
        constraint_name=ENTITY_CHECK,
        is_met=False,
        details=(
            f"Grant is for {', '.join(grant_tags)}; "
            f"organization type is {profile.entity_type.value}"
        ),
    )


def check_location(grant: Grant, profile: Profile) -> ConstraintCheck:
    """Check the grant's declared locations against the profile state."""

    if not grant.locations:
        return ConstraintCheck(
            constraint_name=LOCATION_CHECK,
            is_met=True,
            details="No location restrictions (national)",
        )

    if any(loc.is_national for loc in grant.locations):
        return ConstraintCheck(
            constraint_name=LOCATION_CHECK,
            is_met=True,
            details="National grant",
        )

    if not profile.state:
        return ConstraintCheck(
            constraint_name=LOCATION_CHECK,
            is_met=True,
            details="No state preference (not enforced)",
        )

    grant_states = _declared_states(grant)
    if profile.state in grant_states:
        return ConstraintCheck(
            constraint_name=LOCATION_CHECK,
            is_met=True,
            details=f"Available in {profile.state}",
        )

    if grant_states:
        return ConstraintCheck(
            constraint_name=LOCATION_CHECK,
            is_met=False,
            details=f"Only available in {', '.join(grant_states)}; applicant is in {profile.state}",
        )

    # Locations exist but none is a state we can compare (city, county, region)
    return ConstraintCheck(
        constraint_name=LOCATION_CHECK,
        is_met=True,
        details="Location scope unclear (not enforced)",
    )


def check_industry(grant: Grant, profile: Profile, enforce: bool) -> ConstraintCheck:
    """Check for any overlap between profile industries and the grant.

    With enforce=False the check is recorded but never blocks.
    """

    if not profile.has_industry_preference:
        return ConstraintCheck(
            constraint_name=INDUSTRY_CHECK,
            is_met=True,
            details="No industry preference",
            evaluated=enforce,
        )

    text = grant_text(grant)
    tags = [t for t in profile.industry_tags if t.strip()]

    for tag in tags:
        if has_exclusion_signal(tag, text):
            return ConstraintCheck(
                constraint_name=INDUSTRY_CHECK,
                is_met=False,
                details=f"Grant appears to target a different industry than {tag}",
                evaluated=enforce,
            )

    terms = grant_terms(grant)
    matched = [tag for tag in tags if find_semantic_matches(tag, terms, text)]
    if matched:
        return ConstraintCheck(
            constraint_name=INDUSTRY_CHECK,
            is_met=True,
            details=f"Matches {', '.join(matched)}",
            evaluated=enforce,
        )

    return ConstraintCheck(
        constraint_name=INDUSTRY_CHECK,
        is_met=False,
        details=f"No overlap with {', '.join(tags[:2])}",
        evaluated=enforce,
    )


def run_eligibility_batch(
    grants: List[Grant],
    profile: Profile,
    mode: MatchMode = MatchMode.SOFT,
) -> EligibilityBatch:
    """Filter a pool, keeping per-reason rejection counts.

    Args:
        grants: Candidate grants (already deduplicated)
        profile: Applicant profile
        mode: Match mode

    Returns:
        EligibilityBatch with passed grants in input order
    """
    batch = EligibilityBatch()
    batch.stats.total = len(grants)

    for grant in grants:
        result = assess_eligibility(grant, profile, mode)
        if result.is_eligible:
            batch.passed.append(grant)
            continue

        failed = {check.constraint_name for check in result.failed_checks}
        if ENTITY_CHECK in failed:
            batch.stats.failed_by_entity += 1
        if LOCATION_CHECK in failed:
            batch.stats.failed_by_geo += 1
        if INDUSTRY_CHECK in failed:
            batch.stats.failed_by_industry += 1

        batch.rejected.append(RejectedGrant(grant=grant, reasons=result.blockers, result=result))
        logger.debug("Ineligible grant=%s reasons=%s", grant.id, "; ".join(result.blockers))

    batch.stats.passed = len(batch.passed)
    logger.info(
        "eligibility_complete mode=%s total=%d passed=%d failed_entity=%d failed_geo=%d failed_industry=%d",
        mode.value,
        batch.stats.total,
        batch.stats.passed,
        batch.stats.failed_by_entity,
        batch.stats.failed_by_geo,
        batch.stats.failed_by_industry,
    )
    return batch


def resolve_match_mode(profile: Profile, requested: Optional[MatchMode], confidence_floor: float) -> MatchMode:
    """Pick the mode for a run.

    SOFT unless HARD was requested. A profile below the confidence floor is
    too incomplete to justify hard exclusion, so HARD is downgraded.
    """
    if requested != MatchMode.HARD:
        return MatchMode.SOFT
    if profile.confidence_score < confidence_floor:
        logger.info(
            "Downgrading hard mode to soft: confidence=%.2f < floor=%.2f",
            profile.confidence_score,
            confidence_floor,
        )
        return MatchMode.SOFT
    return MatchMode.HARD


def _declared_states(grant: Grant) -> List[str]:
    states: List[str] = []
    for loc in grant.locations:
        code = loc.state_code
        if code and code not in states:
            states.append(code)
    return states


def grant_terms(grant: Grant) -> List[str]:
    """Categories and eligibility tags, the terms industry tags match against."""
    return list(grant.categories) + list(grant.eligibility.tags)


def grant_text(grant: Grant) -> str:
    return " ".join(part for part in (grant.title, grant.sponsor, grant.summary or "") if part)
