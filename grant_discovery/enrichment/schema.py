"""Validated shape of an AI match assessment.

The model never decides eligibility; these fields only annotate grants that
already passed the deterministic filter.
"""

import json
import logging
import re
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator

logger = logging.getLogger(__name__)

_CODE_FENCE = re.compile(r"```(?:json)?\s*([\s\S]*?)```")
_JSON_ARRAY = re.compile(r"\[[\s\S]*\]")


def _clip_list(v: Any, limit: int, item_length: int) -> Any:
    if v is None:
        return []
    if isinstance(v, list):
        return [str(item)[:item_length] for item in v if str(item).strip()][:limit]
    return v


class AIMatchAssessment(BaseModel):
    """One grant's AI assessment, as returned by the enrichment service."""

    grant_id: str = Field(..., alias="grantId")
    is_relevant: bool = Field(True, alias="isRelevant")
    is_accessible: bool = Field(True, alias="isAccessible")
    match_score: int = Field(..., ge=0, le=100, alias="matchScore")
    accessibility_score: int = Field(50, ge=0, le=100, alias="accessibilityScore")
    eligibility_status: Literal["eligible", "likely_eligible", "check_requirements", "uncertain"] = Field(
        "uncertain", alias="eligibilityStatus"
    )
    fit_summary: str = Field(..., min_length=10, alias="fitSummary")
    why_match: str = Field(..., min_length=5, alias="whyMatch")
    reasons: List[str] = Field(default_factory=list)
    concerns: List[str] = Field(default_factory=list)
    what_you_can_fund: List[str] = Field(default_factory=list, alias="whatYouCanFund")
    next_steps: List[str] = Field(default_factory=list, alias="nextSteps")
    urgency: Literal["high", "medium", "low"] = "medium"
    difficulty_level: Literal["easy", "moderate", "complex"] = Field("moderate", alias="difficultyLevel")
    estimated_time_to_apply: Optional[str] = Field(None, alias="estimatedTimeToApply")
    confidence: Literal["high", "medium", "low"] = "medium"

    @field_validator("grant_id", mode="before")
    @classmethod
    def _coerce_id(cls, v: Any) -> Any:
        return str(v) if isinstance(v, int) else v

    @field_validator("match_score", "accessibility_score", mode="before")
    @classmethod
    def _round_score(cls, v: Any) -> Any:
        return int(round(v)) if isinstance(v, float) else v

    @field_validator("fit_summary")
    @classmethod
    def _clip_summary(cls, v: str) -> str:
        return v.strip()[:300]

    @field_validator("why_match")
    @classmethod
    def _clip_why(cls, v: str) -> str:
        return v.strip()[:150]

    @field_validator("urgency", "confidence", "difficulty_level", "eligibility_status", mode="before")
    @classmethod
    def _lower_enum(cls, v: Any) -> Any:
        return v.strip().lower() if isinstance(v, str) else v

    @field_validator("reasons", "concerns", "next_steps", mode="before")
    @classmethod
    def _clip_text_lists(cls, v: Any) -> Any:
        return _clip_list(v, limit=5, item_length=150)

    @field_validator("what_you_can_fund", mode="before")
    @classmethod
    def _clip_fund_list(cls, v: Any) -> Any:
        return _clip_list(v, limit=5, item_length=100)

    @property
    def is_confident(self) -> bool:
        return self.confidence != "low"

    class Config:
        populate_by_name = True
        json_schema_extra = {
            "example": {
                "grantId": "g-001",
                "isRelevant": True,
                "isAccessible": True,
                "matchScore": 82,
                "accessibilityScore": 70,
                "eligibilityStatus": "likely_eligible",
                "fitSummary": "Funds local climate adaptation work that matches your focus.",
                "whyMatch": "Climate resilience for small organizations",
                "reasons": ["Climate focus", "Open to small businesses"],
                "concerns": [],
                "whatYouCanFund": ["Equipment", "Staff time"],
                "nextSteps": ["Register on Grants.gov"],
                "urgency": "medium",
                "difficultyLevel": "moderate",
                "estimatedTimeToApply": "8-12 hours",
                "confidence": "high",
            }
        }


def extract_json(text: str) -> Any:
    """Pull a JSON value out of model output.

    Tries a fenced code block, then the raw text, then the first array-looking
    span. Returns None when nothing parses.
    """
    if not text:
        return None

    candidates = []
    fenced = _CODE_FENCE.search(text)
    if fenced:
        candidates.append(fenced.group(1).strip())
    candidates.append(text.strip())
    array = _JSON_ARRAY.search(text)
    if array:
        candidates.append(array.group(0))

    for candidate in candidates:
        try:
            return json.loads(candidate)
        except json.JSONDecodeError:
            continue
    return None


def parse_assessments(payload: Any, expected_ids: List[str]) -> Dict[str, AIMatchAssessment]:
    """Validate each item independently, keeping only known grant ids.

    Invalid items are dropped with a warning; one bad item never voids the batch.
    """
    if isinstance(payload, dict):
        payload = payload.get("results") or payload.get("grants") or [payload]
    if not isinstance(payload, list):
        return {}

    expected = set(expected_ids)
    assessments: Dict[str, AIMatchAssessment] = {}
    for item in payload:
        try:
            assessment = AIMatchAssessment.model_validate(item)
        except ValidationError as exc:
            logger.warning("Dropping invalid AI assessment: %s", exc.errors()[0]["msg"])
            continue
        if assessment.grant_id not in expected:
            logger.warning("Dropping AI assessment for unknown grant=%s", assessment.grant_id)
            continue
        assessments[assessment.grant_id] = assessment
    return assessments
