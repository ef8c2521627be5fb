"""EligibilityResult - per-grant output of the eligibility filter."""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from .grant import Grant


class MatchMode(str, Enum):
    """How strictly industry fit is enforced.

    HARD rejects grants with no industry overlap. SOFT (the default) only
    lowers their score.
    """

    HARD = "hard"
    SOFT = "soft"


class ConstraintCheck(BaseModel):
    """Outcome of a single eligibility constraint."""

    constraint_name: str = Field(..., description="Entity Type, Geography, Industry")
    is_met: bool
    details: str = ""
    evaluated: bool = Field(True, description="False when the check was skipped for this mode")


class EligibilityResult(BaseModel):
    """Eligibility of one grant for one profile."""

    grant_id: str
    is_eligible: bool
    mode: MatchMode
    entity_type_check: ConstraintCheck
    location_check: ConstraintCheck
    industry_check: ConstraintCheck
    blockers: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)

    @property
    def failed_checks(self) -> List[ConstraintCheck]:
        return [
            check
            for check in (self.entity_type_check, self.location_check, self.industry_check)
            if check.evaluated and not check.is_met
        ]


class EligibilityStats(BaseModel):
    """Rejection counts per failed check. A grant failing two checks counts in both."""

    total: int = 0
    passed: int = 0
    failed_by_entity: int = 0
    failed_by_geo: int = 0
    failed_by_industry: int = 0

    def as_dict(self) -> dict:
        return self.model_dump()


class RejectedGrant(BaseModel):
    """A grant dropped by the filter, with the reasons it failed."""

    grant: Grant
    reasons: List[str]
    result: Optional[EligibilityResult] = None
