"""In-memory cache of AI assessments."""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Dict, Optional, Tuple

from ..models import Grant, Profile
from .schema import AIMatchAssessment

logger = logging.getLogger(__name__)

DEFAULT_TTL = timedelta(days=7)

CacheKey = Tuple[str, str, str]


@dataclass
class _Entry:
    assessment: AIMatchAssessment
    expires_at: datetime


def cache_key(profile: Profile, grant: Grant) -> CacheKey:
    """(profile fingerprint, grant id, grant version).

    Editing either the profile or the grant changes the key, so stale
    assessments are never served.
    """
    version = grant.updated_at.isoformat() if grant.updated_at else ""
    return profile.fingerprint(), grant.id, version


class EnrichmentCache:
    """TTL memo table for assessments. Last writer wins per key."""

    def __init__(self, ttl: timedelta = DEFAULT_TTL):
        self.ttl = ttl
        self._entries: Dict[CacheKey, _Entry] = {}
        self.hits = 0
        self.misses = 0

    def get(self, profile: Profile, grant: Grant, now: Optional[datetime] = None) -> Optional[AIMatchAssessment]:
        now = now or datetime.now(timezone.utc)
        key = cache_key(profile, grant)
        entry = self._entries.get(key)
        if entry is None:
            self.misses += 1
            return None
        if entry.expires_at <= now:
            del self._entries[key]
            self.misses += 1
            return None
        self.hits += 1
        return entry.assessment

    def put(
        self,
        profile: Profile,
        grant: Grant,
        assessment: AIMatchAssessment,
        now: Optional[datetime] = None,
    ) -> None:
        now = now or datetime.now(timezone.utc)
        self._entries[cache_key(profile, grant)] = _Entry(assessment, now + self.ttl)

    def purge_expired(self, now: Optional[datetime] = None) -> int:
        now = now or datetime.now(timezone.utc)
        expired = [key for key, entry in self._entries.items() if entry.expires_at <= now]
        for key in expired:
            del self._entries[key]
        if expired:
            logger.debug("Purged %d expired enrichment cache entries", len(expired))
        return len(expired)

    def clear(self) -> None:
        self._entries.clear()
        self.hits = 0
        self.misses = 0

    @property
    def hit_rate(self) -> float:
        lookups = self.hits + self.misses
        return self.hits / lookups if lookups else 0.0

    def __len__(self) -> int:
        return len(self._entries)
