"""Profile - the applicant a discovery run matches grants against."""

import hashlib
import json
from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator


class EntityType(str, Enum):
    INDIVIDUAL = "individual"
    NONPROFIT = "nonprofit"
    SMALL_BUSINESS = "small_business"
    FOR_PROFIT = "for_profit"
    EDUCATIONAL = "educational"
    GOVERNMENT = "government"
    TRIBAL = "tribal"
    COOPERATIVE = "cooperative"
    MUNICIPALITY = "municipality"
    UNSPECIFIED = "unspecified"


US_STATES = {
    "AL": "Alabama", "AK": "Alaska", "AZ": "Arizona", "AR": "Arkansas",
    "CA": "California", "CO": "Colorado", "CT": "Connecticut", "DE": "Delaware",
    "FL": "Florida", "GA": "Georgia", "HI": "Hawaii", "ID": "Idaho",
    "IL": "Illinois", "IN": "Indiana", "IA": "Iowa", "KS": "Kansas",
    "KY": "Kentucky", "LA": "Louisiana", "ME": "Maine", "MD": "Maryland",
    "MA": "Massachusetts", "MI": "Michigan", "MN": "Minnesota", "MS": "Mississippi",
    "MO": "Missouri", "MT": "Montana", "NE": "Nebraska", "NV": "Nevada",
    "NH": "New Hampshire", "NJ": "New Jersey", "NM": "New Mexico", "NY": "New York",
    "NC": "North Carolina", "ND": "North Dakota", "OH": "Ohio", "OK": "Oklahoma",
    "OR": "Oregon", "PA": "Pennsylvania", "RI": "Rhode Island", "SC": "South Carolina",
    "SD": "South Dakota", "TN": "Tennessee", "TX": "Texas", "UT": "Utah",
    "VT": "Vermont", "VA": "Virginia", "WA": "Washington", "WV": "West Virginia",
    "WI": "Wisconsin", "WY": "Wyoming", "DC": "District of Columbia",
    "PR": "Puerto Rico", "VI": "Virgin Islands", "GU": "Guam",
    "AS": "American Samoa", "MP": "Northern Mariana Islands",
}


def normalize_state(value: str) -> str:
    """Return the 2-letter code for a state code or full state name.

    Unrecognized values are upper-cased and kept so an exact-code comparison
    still works for territories or regions we do not list.
    """
    cleaned = value.strip()
    upper = cleaned.upper()
    if upper in US_STATES:
        return upper
    for code, name in US_STATES.items():
        if name.lower() == cleaned.lower():
            return code
    return upper


def _parse_entity_type(value: str) -> EntityType:
    key = value.strip().lower().replace("-", "_").replace(" ", "_")
    try:
        return EntityType(key)
    except ValueError:
        return EntityType.UNSPECIFIED


_PROFILE_CAMEL_FIELDS = {
    "userId": "user_id",
    "entityType": "entity_type",
    "industryTags": "industry_tags",
    "sizeBand": "size_band",
    "annualBudget": "annual_budget",
    "grantPreferences": "grant_preferences",
    "confidenceScore": "confidence_score",
    "profileVersion": "profile_version",
}


class GrantPreferences(BaseModel):
    """Soft preferences collected during onboarding."""

    preferred_size: Optional[str] = Field(None, description="micro, small, medium, large, any")
    timeline: Optional[str] = Field(None, description="immediate, quarter, year, flexible")
    complexity: Optional[str] = Field(None, description="simple, moderate, complex")

    @model_validator(mode="before")
    @classmethod
    def _accept_camel_case(cls, data: Any) -> Any:
        if isinstance(data, dict) and "preferredSize" in data:
            data = dict(data)
            data.setdefault("preferred_size", data.pop("preferredSize"))
        return data


class Profile(BaseModel):
    """Applicant profile.

    entity_type is None only when the profile was never classified; the
    pipeline refuses to run on such a profile. Unknown entity strings are
    kept as UNSPECIFIED and matched permissively.
    """

    id: Optional[str] = None
    user_id: Optional[str] = None
    entity_type: Optional[EntityType] = Field(None, description="Applicant classification")
    state: Optional[str] = Field(None, description="2-letter state code; None = no preference")
    industry_tags: List[str] = Field(default_factory=list)
    size_band: Optional[str] = None
    stage: Optional[str] = None
    annual_budget: Optional[str] = None
    goals: List[str] = Field(default_factory=list)
    grant_preferences: GrantPreferences = Field(default_factory=GrantPreferences)
    confidence_score: float = Field(0.5, ge=0.0, le=1.0, description="Profile completeness")
    profile_version: int = 1

    @model_validator(mode="before")
    @classmethod
    def _accept_camel_case(cls, data: Any) -> Any:
        """Accept camelCase keys as stored by the web application."""
        if isinstance(data, dict):
            return {_PROFILE_CAMEL_FIELDS.get(key, key): value for key, value in data.items()}
        return data

    @field_validator("entity_type", mode="before")
    @classmethod
    def _coerce_entity_type(cls, v: Any) -> Any:
        if v is None or (isinstance(v, str) and not v.strip()):
            return None
        if isinstance(v, str):
            return _parse_entity_type(v)
        return v

    @field_validator("state", mode="before")
    @classmethod
    def _coerce_state(cls, v: Any) -> Any:
        if v is None or (isinstance(v, str) and not v.strip()):
            return None
        return normalize_state(v) if isinstance(v, str) else v

    @field_validator("industry_tags", "goals", mode="before")
    @classmethod
    def _decode_tags(cls, v: Any) -> Any:
        if v is None:
            return []
        if isinstance(v, str):
            return json.loads(v) if v.strip().startswith("[") else [v]
        return v

    @field_validator("grant_preferences", mode="before")
    @classmethod
    def _decode_preferences(cls, v: Any) -> Any:
        if v is None:
            return {}
        if isinstance(v, str):
            return json.loads(v)
        return v

    @property
    def has_industry_preference(self) -> bool:
        return any(tag.strip() for tag in self.industry_tags)

    def fingerprint(self) -> str:
        """Stable hash of every field that influences matching."""
        payload = {
            "entity_type": self.entity_type.value if self.entity_type else None,
            "state": self.state,
            "industry_tags": sorted(t.strip().lower() for t in self.industry_tags),
            "size_band": self.size_band,
            "stage": self.stage,
            "annual_budget": self.annual_budget,
            "goals": sorted(g.strip().lower() for g in self.goals),
            "grant_preferences": self.grant_preferences.model_dump(),
            "profile_version": self.profile_version,
        }
        encoded = json.dumps(payload, sort_keys=True).encode()
        return hashlib.sha256(encoded).hexdigest()
