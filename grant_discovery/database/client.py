"""Grant pool sources for the discovery pipeline."""

import logging
import os
import time
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from supabase import Client, create_client

from ..models.profile import US_STATES, normalize_state

logger = logging.getLogger(__name__)

# Location markers matched server-side when filtering by state
NATIONAL_MARKERS = ("national", "nationwide")

# Columns the pipeline reads; camelCase columns are mapped at parse time
GRANT_COLUMNS = (
    "id,sourceId,sourceName,title,sponsor,summary,description,url,categories,"
    "eligibility,locations,amountMin,amountMax,amountText,fundingType,purposeTags,"
    "deadlineDate,deadlineType,status,qualityScore,hashFingerprint,updatedAt"
)


class GrantPoolSource(ABC):
    """Read of currently-open grant records.

    Returns raw records; typed parsing happens in the pipeline so malformed
    rows are counted rather than dropped silently here.
    """

    @abstractmethod
    def load_open_grants(self, state: Optional[str] = None, limit: int = 500) -> List[Dict[str, Any]]:
        pass


class StaticGrantSource(GrantPoolSource):
    """Pool held in memory, e.g. loaded from a JSON file."""

    def __init__(self, records: List[Dict[str, Any]]):
        self._records = list(records)

    def load_open_grants(self, state: Optional[str] = None, limit: int = 500) -> List[Dict[str, Any]]:
        return self._records[:limit]


class SupabaseGrantSource(GrantPoolSource):
    """Reads open grants from the Supabase grants table."""

    def __init__(
        self,
        url: Optional[str] = None,
        key: Optional[str] = None,
        table: str = "grants",
    ) -> None:
        """Initialize Supabase client from explicit args or env vars.

        Args:
            url: Supabase project URL (falls back to SUPABASE_URL env var).
            key: Supabase anon/service key (falls back to SUPABASE_KEY env var).
            table: Table holding normalized grant rows.
        """
        self._url = url or os.environ["SUPABASE_URL"]
        self._key = key or os.environ["SUPABASE_KEY"]
        self._table = table
        self._client: Client = create_client(self._url, self._key)

    @classmethod
    def from_config(cls, config) -> "SupabaseGrantSource":
        return cls(url=config.supabase_url, key=config.supabase_key, table=config.grants_table)

    def load_open_grants(self, state: Optional[str] = None, limit: int = 500) -> List[Dict[str, Any]]:
        """Return open grants with a listing URL, best quality first.

        Args:
            state: Optional 2-letter code or state name. Rows tagged with another state are
                excluded server-side; national and untagged rows are kept.
            limit: Maximum rows to return.

        Returns:
            Raw rows as dicts.
        """
        start = time.monotonic()
        query = (
            self._client.table(self._table)
            .select(GRANT_COLUMNS)
            .eq("status", "open")
            .neq("url", "")
        )

        if state:
            # Untagged, national, or this state by code or full name. Substring
            # matches can over-include; eligibility rechecks every row in process.
            code = normalize_state(state)
            clauses = ["locations.is.null", "locations.eq.[]"]
            clauses += [f"locations.ilike.%{v}%" for v in NATIONAL_MARKERS]
            clauses.append(f"locations.ilike.%{code}%")
            if code in US_STATES:
                clauses.append(f"locations.ilike.%{US_STATES[code]}%")
            query = query.or_(",".join(clauses))

        response = (
            query.order("qualityScore", desc=True)
            .order("deadlineDate", desc=False)
            .limit(limit)
            .execute()
        )

        rows = response.data or []
        duration_ms = (time.monotonic() - start) * 1000
        logger.info(
            "pool_loaded source=supabase table=%s state=%s count=%d duration_ms=%.0f",
            self._table,
            state or "-",
            len(rows),
            duration_ms,
        )
        return rows
