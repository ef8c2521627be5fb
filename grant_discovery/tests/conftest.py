"""Pytest configuration and fixtures."""

import json
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from grant_discovery.models import Grant, Profile

FIXTURES_DIR = Path(__file__).parent / "fixtures"

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def make_grant(grant_id: str, **overrides) -> Grant:
    """Open grant with neutral defaults; override any field."""
    data = {
        "id": grant_id,
        "source_id": f"SRC-{grant_id}",
        "source_name": "test_source",
        "title": f"Grant {grant_id}",
        "sponsor": "Test Foundation",
        "url": f"https://example.com/{grant_id}",
        "status": "open",
        "quality_score": 0.5,
    }
    data.update(overrides)
    return Grant(**data)


def days_from_now(days: float) -> datetime:
    return NOW + timedelta(days=days)


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def ca_small_business():
    """Profile from the canonical CA small-business scenario."""
    return Profile(
        id="profile-1",
        entity_type="small_business",
        state="CA",
        industry_tags=["climate", "energy"],
        confidence_score=0.8,
    )


@pytest.fixture
def stateless_nonprofit():
    return Profile(entity_type="nonprofit", industry_tags=["education"])


@pytest.fixture
def grant_pool_records():
    with open(FIXTURES_DIR / "grant_pool.json", "r") as f:
        return json.load(f)


@pytest.fixture
def profile_record():
    with open(FIXTURES_DIR / "profile.json", "r") as f:
        return json.load(f)
