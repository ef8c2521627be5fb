"""Near-duplicate removal for grant pools."""

from .dedup import Deduplicator, compute_fingerprint, dedup_key

__all__ = ["Deduplicator", "compute_fingerprint", "dedup_key"]
