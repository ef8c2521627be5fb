"""ScoringResult - deterministic relevance score for one grant."""

from typing import Dict, List, Optional

from pydantic import BaseModel, Field


class DimensionScore(BaseModel):
    """Points earned on one scoring dimension."""

    name: str
    points: float = Field(..., ge=0)
    max_points: float = Field(..., ge=0)
    reason: Optional[str] = None
    warning: Optional[str] = None

    @property
    def ratio(self) -> float:
        return self.points / self.max_points if self.max_points else 0.0


class ScoringResult(BaseModel):
    """Composite 0-100 score with ordered justifications."""

    grant_id: str
    score: int = Field(..., ge=0, le=100)
    dimensions: List[DimensionScore]
    match_reasons: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    weights_version: str = "1.0"

    @property
    def breakdown(self) -> Dict[str, float]:
        return {d.name: round(d.points, 2) for d in self.dimensions}
