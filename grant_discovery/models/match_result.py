"""MatchResult - a scored grant as returned to callers."""

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from .grant import Grant


class MatchResult(BaseModel):
    """Grant reference plus score, reasons and optional enrichment.

    Produced fresh per pipeline run and never persisted by the pipeline.
    """

    grant: Grant
    score: int = Field(..., ge=0, le=100, description="Deterministic relevance score")
    match_reasons: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    breakdown: Dict[str, float] = Field(default_factory=dict)

    tier: str = Field("low", description="excellent, good, fair, low")
    tier_label: str = "Low Match"
    confidence_level: str = Field("low", description="Profile completeness: high, medium, low")
    funding_display: str = "Varies"
    deadline_display: str = "Not specified"

    # Enrichment (absent when AI is disabled or failed)
    ai_match_score: Optional[int] = None
    combined_score: Optional[int] = None
    fit_summary: Optional[str] = None
    why_match: Optional[str] = None
    next_steps: List[str] = Field(default_factory=list)
    what_you_can_fund: List[str] = Field(default_factory=list)
    eligibility_status: Optional[str] = None
    urgency: Optional[str] = None
    from_cache: bool = False

    @property
    def grant_id(self) -> str:
        return self.grant.id

    @property
    def is_enriched(self) -> bool:
        return self.ai_match_score is not None

    @property
    def ranking_score(self) -> int:
        """Score used for best-match ordering."""
        return self.combined_score if self.combined_score is not None else self.score


def format_funding_display(
    amount_min: Optional[float],
    amount_max: Optional[float],
    amount_text: Optional[str] = None,
) -> str:
    if amount_text:
        return amount_text
    if amount_min and amount_max and amount_min != amount_max:
        return f"${amount_min:,.0f} - ${amount_max:,.0f}"
    if amount_max:
        return f"Up to ${amount_max:,.0f}"
    if amount_min:
        return f"From ${amount_min:,.0f}"
    return "Varies"


def format_deadline_display(deadline: Optional[datetime], rolling: bool) -> str:
    if rolling:
        return "Rolling"
    if deadline is None:
        return "Not specified"
    return deadline.strftime("%Y-%m-%d")
