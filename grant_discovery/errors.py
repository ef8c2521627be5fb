"""Error taxonomy for the discovery pipeline.

Only InvalidProfileError reaches the caller. The others are caught inside the
pipeline and reported through stats and warnings.
"""


class GrantDiscoveryError(Exception):
    """Base class for discovery pipeline errors."""
    pass


class InvalidProfileError(GrantDiscoveryError):
    """Raised when a profile cannot be matched (no entity type classification)."""
    pass


class MalformedGrantRecordError(GrantDiscoveryError):
    """Raised when a single raw grant record fails to parse or validate."""

    def __init__(self, record_id: str, reason: str):
        self.record_id = record_id
        self.reason = reason
        super().__init__(f"Malformed grant record {record_id}: {reason}")


class EnrichmentUnavailableError(GrantDiscoveryError):
    """Raised by enrichment services on failure or timeout."""
    pass
