"""Deduplication logic for grant records."""

import hashlib
import logging
import re
from datetime import datetime, timezone
from typing import Dict, List

from ..models import Grant

logger = logging.getLogger(__name__)

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_WHITESPACE = re.compile(r"\s+")


def _normalize(value: str) -> str:
    return _WHITESPACE.sub(" ", (value or "").strip().lower())


def compute_fingerprint(title: str, sponsor: str, source_id: str) -> str:
    """SHA256 of normalized (title, sponsor, source_id)."""
    dedup_string = "|".join(_normalize(part) for part in (title, sponsor, source_id))
    return hashlib.sha256(dedup_string.encode()).hexdigest()


def dedup_key(grant: Grant) -> str:
    """Identity used to collapse duplicates.

    The stored fingerprint wins; records without one fall back to a
    fingerprint computed from the same fields.
    """
    if grant.hash_fingerprint:
        return grant.hash_fingerprint
    return compute_fingerprint(grant.title, grant.sponsor, grant.source_id)


def _preferred(current: Grant, candidate: Grant) -> Grant:
    """Higher quality wins, then most recent update, then whoever came first."""
    if candidate.quality_score != current.quality_score:
        return candidate if candidate.quality_score > current.quality_score else current
    if (candidate.updated_at or _EPOCH) > (current.updated_at or _EPOCH):
        return candidate
    return current


class Deduplicator:
    """Collapses near-duplicate postings before eligibility and scoring.

    Stateless between calls, so deduplicate(deduplicate(x)) == deduplicate(x).
    """

    def deduplicate(self, grants: List[Grant]) -> List[Grant]:
        """Keep one canonical record per dedup key.

        Args:
            grants: Grants to deduplicate

        Returns:
            Canonical grants in order of first appearance of each key
        """
        canonical: Dict[str, Grant] = {}
        duplicate_count = 0

        for grant in grants:
            key = dedup_key(grant)
            existing = canonical.get(key)
            if existing is None:
                canonical[key] = grant
                continue
            duplicate_count += 1
            kept = _preferred(existing, grant)
            logger.debug(
                "Duplicate found: %s vs %s, keeping %s", existing.id, grant.id, kept.id
            )
            canonical[key] = kept

        logger.info("Deduplication: %d unique, %d duplicates", len(canonical), duplicate_count)
        return list(canonical.values())
