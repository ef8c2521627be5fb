"""Grant - normalized grant record consumed by the discovery pipeline."""

import json
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Iterable, List, Optional, Tuple

from pydantic import BaseModel, Field, ValidationError, field_validator

from ..errors import MalformedGrantRecordError
from .profile import US_STATES, normalize_state

NATIONAL_VALUES = {"national", "nationwide", "us", "usa", "united states"}


class DeadlineType(str, Enum):
    FIXED = "fixed"
    ROLLING = "rolling"
    UNKNOWN = "unknown"


class GrantStatus(str, Enum):
    OPEN = "open"
    CLOSED = "closed"
    UNKNOWN = "unknown"


def _decode_json(value: Any, field_name: str) -> Any:
    """Decode a JSON-encoded string column, failing loudly on bad input."""
    if isinstance(value, str):
        try:
            return json.loads(value)
        except json.JSONDecodeError as exc:
            raise ValueError(f"{field_name} is not valid JSON: {exc.msg}") from exc
    return value


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class GrantEligibility(BaseModel):
    """Declared applicant restrictions."""

    tags: List[str] = Field(default_factory=list, description="Eligible entity-type tags")
    raw_text: Optional[str] = Field(None, description="Unstructured eligibility text")


class GrantLocation(BaseModel):
    """A single location descriptor.

    Sources disagree on shape: some send {"type": "state", "value": "CA"},
    others {"state": "CA", "country": "US"} or {"state": "national"}.
    """

    type: Optional[str] = Field(None, description="national, state, local, unknown")
    value: Optional[str] = Field(None, description="Location value, usually a state code")
    state: Optional[str] = Field(None, description="State code or 'national'")

    @property
    def is_national(self) -> bool:
        candidates = [self.type, self.value, self.state]
        return any(c is not None and c.strip().lower() in NATIONAL_VALUES for c in candidates)

    @property
    def state_code(self) -> Optional[str]:
        """2-letter state code, or None when the location is not state-scoped."""
        if self.is_national:
            return None
        if self.state:
            return normalize_state(self.state)
        if self.value:
            loc_type = (self.type or "").lower()
            code = normalize_state(self.value)
            # Untyped values count only when they name a known state
            if loc_type == "state" or (not loc_type and code in US_STATES):
                return code
        return None


class Grant(BaseModel):
    """Normalized grant record from any source.

    Read-only input to the pipeline. Fields that older rows store as JSON
    strings (categories, eligibility, locations, purpose_tags) are decoded here
    so a bad row fails validation instead of silently defaulting.
    """

    # Identity
    id: str = Field(..., description="Opaque unique identifier")
    source_id: str = Field("", description="ID within the source system")
    source_name: str = Field("", description="Source system name")

    # Descriptive
    title: str = Field(..., description="Grant title")
    sponsor: str = Field("", description="Funding organization")
    summary: Optional[str] = Field(None, description="Short summary")
    description: Optional[str] = Field(None, description="Full description")
    url: str = Field("", description="Application or listing URL")

    # Classification
    categories: List[str] = Field(default_factory=list, description="Category labels")
    eligibility: GrantEligibility = Field(default_factory=GrantEligibility)
    locations: List[GrantLocation] = Field(default_factory=list, description="Empty means national")

    # Funding
    amount_min: Optional[float] = Field(None, ge=0, description="Minimum award amount")
    amount_max: Optional[float] = Field(None, ge=0, description="Maximum award amount")
    amount_text: Optional[str] = Field(None, description="Free-form funding text")
    funding_type: Optional[str] = Field(None, description="grant, loan, rebate, tax_credit")
    purpose_tags: List[str] = Field(default_factory=list, description="What the funds can be used for")

    # Temporal
    deadline_date: Optional[datetime] = Field(None, description="Submission deadline")
    deadline_type: DeadlineType = Field(DeadlineType.UNKNOWN, description="fixed, rolling, unknown")

    # Status / quality
    status: GrantStatus = Field(GrantStatus.UNKNOWN, description="open, closed, unknown")
    quality_score: float = Field(0.5, description="Data completeness, 0-1")
    hash_fingerprint: Optional[str] = Field(None, description="Stable hash of title+sponsor+source_id")
    updated_at: Optional[datetime] = Field(None, description="Last update timestamp")

    @field_validator("id", "source_id", mode="before")
    @classmethod
    def _coerce_identifier(cls, v: Any) -> Any:
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(v)
        return "" if v is None else v

    @field_validator("sponsor", "url", "source_name", mode="before")
    @classmethod
    def _none_to_empty(cls, v: Any) -> Any:
        return "" if v is None else v

    @field_validator("title")
    @classmethod
    def _title_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("title must not be blank")
        return v

    @field_validator("categories", "purpose_tags", mode="before")
    @classmethod
    def _decode_string_list(cls, v: Any, info) -> Any:
        v = _decode_json(v, info.field_name)
        return [] if v is None else v

    @field_validator("eligibility", mode="before")
    @classmethod
    def _decode_eligibility(cls, v: Any) -> Any:
        v = _decode_json(v, "eligibility")
        if v is None:
            return {}
        if isinstance(v, list):
            return {"tags": v}
        return v

    @field_validator("locations", mode="before")
    @classmethod
    def _decode_locations(cls, v: Any) -> Any:
        v = _decode_json(v, "locations")
        if v is None:
            return []
        if isinstance(v, list):
            return [{"value": loc} if isinstance(loc, str) else loc for loc in v]
        return v

    @field_validator("deadline_type", mode="before")
    @classmethod
    def _normalize_deadline_type(cls, v: Any) -> Any:
        if v is None:
            return DeadlineType.UNKNOWN
        if isinstance(v, str):
            v = v.strip().lower()
            if v not in {d.value for d in DeadlineType}:
                return DeadlineType.UNKNOWN
        return v

    @field_validator("status", mode="before")
    @classmethod
    def _normalize_status(cls, v: Any) -> Any:
        if v is None:
            return GrantStatus.UNKNOWN
        if isinstance(v, str):
            v = v.strip().lower()
            if v not in {s.value for s in GrantStatus}:
                return GrantStatus.UNKNOWN
        return v

    @field_validator("quality_score", mode="before")
    @classmethod
    def _normalize_quality(cls, v: Any) -> Any:
        if v is None:
            return 0.5
        v = float(v)
        # Some stores keep quality on a 0-100 scale
        if v > 1:
            v = v / 100
        return max(0.0, min(1.0, v))

    @field_validator("deadline_date", "updated_at", mode="before")
    @classmethod
    def _date_to_datetime(cls, v: Any) -> Any:
        if isinstance(v, date) and not isinstance(v, datetime):
            return datetime(v.year, v.month, v.day, tzinfo=timezone.utc)
        return v

    @field_validator("deadline_date", "updated_at")
    @classmethod
    def _ensure_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return _as_utc(v)

    @property
    def is_open(self) -> bool:
        return self.status == GrantStatus.OPEN

    @property
    def is_rolling(self) -> bool:
        return self.deadline_type == DeadlineType.ROLLING

    @property
    def funding_ceiling(self) -> Optional[float]:
        """amount_max, falling back to amount_min."""
        return self.amount_max if self.amount_max is not None else self.amount_min

    @property
    def has_amount(self) -> bool:
        return self.amount_min is not None or self.amount_max is not None

    @classmethod
    def from_record(cls, record: dict) -> "Grant":
        """Validate a raw pool record.

        Raises:
            MalformedGrantRecordError: If the record fails to decode or validate.
        """
        record_id = str(record.get("id", "<no id>")) if isinstance(record, dict) else "<not a mapping>"
        if not isinstance(record, dict):
            raise MalformedGrantRecordError(record_id, "record is not a mapping")
        try:
            return cls.model_validate(_camel_to_snake(record))
        except (ValidationError, ValueError, TypeError) as exc:
            raise MalformedGrantRecordError(record_id, _short_error(exc)) from exc

    class Config:
        json_schema_extra = {
            "example": {
                "id": "g-001",
                "source_id": "EPA-R9-2026-01",
                "source_name": "grants_gov",
                "title": "Community Climate Resilience Grants",
                "sponsor": "Environmental Protection Agency",
                "summary": "Funding for local climate adaptation projects",
                "url": "https://www.grants.gov/view-opportunity.html?oppId=1",
                "categories": ["Climate & Environment"],
                "eligibility": {"tags": ["Nonprofit", "Small Business"]},
                "locations": [{"type": "national"}],
                "amount_min": 25000,
                "amount_max": 150000,
                "deadline_date": "2026-12-15T23:59:59Z",
                "deadline_type": "fixed",
                "status": "open",
                "quality_score": 0.85,
            }
        }


_CAMEL_FIELDS = {
    "sourceId": "source_id",
    "sourceName": "source_name",
    "amountMin": "amount_min",
    "amountMax": "amount_max",
    "amountText": "amount_text",
    "fundingType": "funding_type",
    "purposeTags": "purpose_tags",
    "deadlineDate": "deadline_date",
    "deadlineType": "deadline_type",
    "qualityScore": "quality_score",
    "hashFingerprint": "hash_fingerprint",
    "updatedAt": "updated_at",
    "rawText": "raw_text",
}


def _camel_to_snake(record: dict) -> dict:
    """Accept camelCase column names as written by the web application."""
    return {_CAMEL_FIELDS.get(key, key): value for key, value in record.items()}


def _short_error(exc: Exception) -> str:
    if isinstance(exc, ValidationError):
        first = exc.errors()[0]
        loc = ".".join(str(part) for part in first["loc"])
        return f"{loc}: {first['msg']}" if loc else first["msg"]
    return str(exc)


def parse_grant_records(
    records: Iterable[Any],
) -> Tuple[List[Grant], List[MalformedGrantRecordError]]:
    """Parse a raw pool into Grants, collecting malformed records instead of raising.

    Grant instances pass through unchanged. One bad record never aborts the batch.
    """
    grants: List[Grant] = []
    malformed: List[MalformedGrantRecordError] = []
    for record in records:
        if isinstance(record, Grant):
            grants.append(record)
            continue
        try:
            grants.append(Grant.from_record(record))
        except MalformedGrantRecordError as exc:
            malformed.append(exc)
    return grants, malformed
