"""Scoring weight configuration system.

Points per signal are externalized so calibrations can be tried without
code changes. The starting calibration is 20/20/25/15/10/10.
"""

import json
import yaml
from pathlib import Path
from typing import Optional
from pydantic import BaseModel, field_validator


class ScoringWeights(BaseModel):
    """Maximum points for each of the six scoring signals.

    All maxima must sum to 100 so the composite score is already on a
    0-100 scale.
    """

    entity_type: float = 20
    geography: float = 20
    industry: float = 25
    funding: float = 15
    deadline: float = 10
    quality: float = 10

    # Floor for zero industry overlap under soft mode
    industry_soft_baseline: float = 10
    version: str = "1.0"

    @field_validator('entity_type', 'geography', 'industry', 'funding', 'deadline', 'quality')
    @classmethod
    def weight_range(cls, v: float) -> float:
        """Ensure each maximum is between 0 and 100."""
        if not 0 <= v <= 100:
            raise ValueError(f"Weight must be between 0 and 100, got {v}")
        return v

    def model_post_init(self, __context) -> None:
        """Validate that maxima sum to 100 and the baseline fits inside industry."""
        total = (
            self.entity_type +
            self.geography +
            self.industry +
            self.funding +
            self.deadline +
            self.quality
        )

        if abs(total - 100) > 0.001:
            raise ValueError(
                f"Weights must sum to 100, got {total:.3f}. "
                f"(E:{self.entity_type}, G:{self.geography}, I:{self.industry}, "
                f"F:{self.funding}, D:{self.deadline}, Q:{self.quality})"
            )

        if not 0 <= self.industry_soft_baseline <= self.industry:
            raise ValueError(
                f"industry_soft_baseline must be between 0 and {self.industry}, "
                f"got {self.industry_soft_baseline}"
            )

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return self.model_dump()


DEFAULT_WEIGHTS = ScoringWeights()


def load_weights(filepath: Optional[str] = None) -> ScoringWeights:
    """Load scoring weights from file or return defaults.

    Supports JSON and YAML formats.

    Args:
        filepath: Optional path to weights configuration file

    Returns:
        ScoringWeights instance

    Raises:
        FileNotFoundError: If filepath provided but doesn't exist
        ValueError: If weights are invalid
    """

    if not filepath:
        return DEFAULT_WEIGHTS

    path = Path(filepath)
    if not path.exists():
        raise FileNotFoundError(f"Weights file not found: {filepath}")

    if path.suffix == '.json':
        with open(path, 'r') as f:
            data = json.load(f)
    elif path.suffix in ['.yaml', '.yml']:
        with open(path, 'r') as f:
            data = yaml.safe_load(f)
    else:
        raise ValueError(f"Unsupported file format: {path.suffix}. Use .json, .yaml, or .yml")

    return ScoringWeights(**(data or {}))


def save_weights(weights: ScoringWeights, filepath: str) -> None:
    """Save scoring weights to file.

    Args:
        weights: ScoringWeights instance to save
        filepath: Path to save to (extension determines format)
    """

    path = Path(filepath)
    data = weights.to_dict()

    if path.suffix == '.json':
        with open(path, 'w') as f:
            json.dump(data, f, indent=2)
    elif path.suffix in ['.yaml', '.yml']:
        with open(path, 'w') as f:
            yaml.dump(data, f, default_flow_style=False)
    else:
        raise ValueError(f"Unsupported file format: {path.suffix}")
