"""LLM prompt templates for grant match enrichment.

The prompt asks the model to:
1. Explain why each pre-filtered grant fits the profile
2. Suggest what the funding could pay for and practical next steps
3. Return a strict JSON array, one object per grant
"""

import re
from typing import Iterable, List, Optional

from ..models import EntityType, Grant, Profile
from ..models.match_result import format_deadline_display, format_funding_display
from ..taxonomy import INDUSTRY_LABELS, resolve_industry

ENTITY_TYPE_LABELS = {
    EntityType.INDIVIDUAL: "Individual",
    EntityType.NONPROFIT: "Nonprofit Organization",
    EntityType.SMALL_BUSINESS: "Small Business",
    EntityType.FOR_PROFIT: "For-Profit Company",
    EntityType.EDUCATIONAL: "Educational Institution",
    EntityType.GOVERNMENT: "Government Entity",
    EntityType.TRIBAL: "Tribal Organization",
    EntityType.COOPERATIVE: "Cooperative",
    EntityType.MUNICIPALITY: "Municipality",
}

BUDGET_RANGE_LABELS = {
    "under_50k": "Under $50,000",
    "50k_100k": "$50,000 - $100,000",
    "under_100k": "Under $100,000",
    "100k_250k": "$100,000 - $250,000",
    "100k_500k": "$100,000 - $500,000",
    "250k_500k": "$250,000 - $500,000",
    "500k_1m": "$500,000 - $1M",
    "1m_5m": "$1M - $5M",
    "over_5m": "Over $5M",
}

_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")
_INJECTION_MARKERS = re.compile(r"(?i)(ignore (all )?previous instructions|system prompt|```)")


MATCHING_PROMPT = """You are a grant advisor providing match explanations for a user.

IMPORTANT: These grants have ALREADY been filtered for eligibility. Your job is to:
1. Explain WHY each grant is a good fit (or not)
2. Provide helpful next steps
3. Identify what the funding could be used for
4. Flag any concerns

DO NOT:
- Guess or invent missing information
- Decide eligibility (already determined)
- Provide inaccurate funding amounts or deadlines

## USER PROFILE
{profile_context}

## GRANTS TO ANALYZE
{grants_block}

## OUTPUT FORMAT REQUIREMENTS

Return ONLY a JSON array with one object per grant:
[
  {{
    "grantId": "string (required, copy the ID exactly)",
    "isRelevant": true/false,
    "isAccessible": true/false,
    "matchScore": 0-100,
    "accessibilityScore": 0-100,
    "eligibilityStatus": "eligible" | "likely_eligible" | "check_requirements" | "uncertain",
    "fitSummary": "1-2 sentences explaining the fit (10-300 chars)",
    "whyMatch": "Single line explanation (max 150 chars)",
    "reasons": ["reason1", "reason2"],
    "concerns": ["concern1"],
    "whatYouCanFund": ["item1", "item2"],
    "nextSteps": ["step1", "step2"],
    "urgency": "high" | "medium" | "low",
    "difficultyLevel": "easy" | "moderate" | "complex",
    "estimatedTimeToApply": "e.g., 2-4 hours",
    "confidence": "high" | "medium" | "low"
  }}
]

User's primary focus: {primary_focus}
Organization type: {organization_type}

Return the JSON array now:"""


def sanitize_prompt_input(value: Optional[str], max_length: int = 500) -> str:
    """Strip control characters and prompt-breaking markers, then truncate."""
    if not value:
        return ""
    cleaned = _CONTROL_CHARS.sub("", str(value))
    cleaned = _INJECTION_MARKERS.sub("", cleaned)
    return " ".join(cleaned.split())[:max_length]


def sanitize_prompt_list(values: Iterable[str], max_items: int = 10) -> str:
    items = [sanitize_prompt_input(v, 100) for v in list(values)[:max_items]]
    items = [i for i in items if i]
    return ", ".join(items) if items else "Not specified"


def _industry_label(tag: str) -> str:
    industry = resolve_industry(tag)
    return INDUSTRY_LABELS[industry] if industry else sanitize_prompt_input(tag, 100)


def _entity_label(profile: Profile) -> str:
    if profile.entity_type in ENTITY_TYPE_LABELS:
        return ENTITY_TYPE_LABELS[profile.entity_type]
    return "Not specified"


def build_profile_context(profile: Profile) -> str:
    """Profile summary for the prompt, canonical labels only."""
    parts: List[str] = []

    if profile.entity_type in ENTITY_TYPE_LABELS:
        parts.append(f"Organization Type: {ENTITY_TYPE_LABELS[profile.entity_type]}")

    if profile.state:
        parts.append(f"Location: {sanitize_prompt_input(profile.state, 100)}, USA")

    tags = [t for t in profile.industry_tags if t.strip()]
    if tags:
        parts.append(f"Focus Areas: {', '.join(_industry_label(t) for t in tags)}")

    if profile.size_band:
        parts.append(f"Team Size: {sanitize_prompt_input(profile.size_band, 50)}")

    if profile.annual_budget:
        label = BUDGET_RANGE_LABELS.get(profile.annual_budget) or sanitize_prompt_input(profile.annual_budget, 50)
        parts.append(f"Annual Budget: {label}")

    if profile.goals:
        parts.append(f"Funding Goals: {sanitize_prompt_list(profile.goals)}")

    return "\n".join(parts) if parts else "No profile details provided"


def format_grants_for_prompt(grants: List[Grant]) -> str:
    blocks = []
    for i, grant in enumerate(grants, start=1):
        funding = format_funding_display(grant.amount_min, grant.amount_max, grant.amount_text)
        deadline = format_deadline_display(grant.deadline_date, grant.is_rolling)
        summary = sanitize_prompt_input(grant.summary, 1000) or "No summary available"
        blocks.append(
            f"### Grant {i}\n"
            f"- ID: {grant.id}\n"
            f"- Title: {sanitize_prompt_input(grant.title)}\n"
            f"- Sponsor: {sanitize_prompt_input(grant.sponsor)}\n"
            f"- Summary: {summary}\n"
            f"- Categories: {sanitize_prompt_list(grant.categories)}\n"
            f"- Eligibility: {sanitize_prompt_list(grant.eligibility.tags)}\n"
            f"- Funding: {funding}\n"
            f"- Deadline: {deadline}"
        )
    return "\n\n".join(blocks)


def build_matching_prompt(grants: List[Grant], profile: Profile) -> str:
    """Get the matching prompt for a batch of grants.

    Args:
        grants: Grants that already passed eligibility
        profile: Applicant profile

    Returns:
        Formatted prompt string

    Raises:
        ValueError: If grants is empty
    """
    if not grants:
        raise ValueError("Cannot build a matching prompt for zero grants")

    focus = [t for t in profile.industry_tags if t.strip()][:2]
    return MATCHING_PROMPT.format(
        profile_context=build_profile_context(profile),
        grants_block=format_grants_for_prompt(grants),
        primary_focus=", ".join(_industry_label(t) for t in focus) or "Not specified",
        organization_type=_entity_label(profile),
    )
