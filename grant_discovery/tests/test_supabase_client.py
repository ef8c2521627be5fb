"""Tests for database.client grant pool sources.

Supabase is mocked at create_client; no network calls are made.
"""

from unittest.mock import MagicMock, patch

import pytest

from grant_discovery.config import Config
from grant_discovery.database import StaticGrantSource, SupabaseGrantSource
from grant_discovery.database.client import GRANT_COLUMNS


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def mock_supabase_source():
    """Patch create_client so no real network call is made."""
    with patch("grant_discovery.database.client.create_client") as mock_create:
        mock_client = MagicMock()
        mock_create.return_value = mock_client
        source = SupabaseGrantSource(url="https://fake.supabase.co", key="fake-key")
        yield source, mock_client, mock_create


def _base_query(mock_sb):
    return mock_sb.table.return_value.select.return_value.eq.return_value.neq.return_value


def _set_rows(query, rows):
    response = MagicMock()
    response.data = rows
    query.order.return_value.order.return_value.limit.return_value.execute.return_value = response


# ---------------------------------------------------------------------------
# Tests
# ---------------------------------------------------------------------------

class TestSupabaseGrantSource:
    def test_loads_open_grants(self, mock_supabase_source):
        source, mock_sb, _ = mock_supabase_source
        query = _base_query(mock_sb)
        _set_rows(query, [{"id": "g1"}, {"id": "g2"}])

        rows = source.load_open_grants(limit=50)

        assert rows == [{"id": "g1"}, {"id": "g2"}]
        mock_sb.table.assert_called_with("grants")
        mock_sb.table.return_value.select.assert_called_with(GRANT_COLUMNS)
        mock_sb.table.return_value.select.return_value.eq.assert_called_with("status", "open")
        query.order.assert_called_with("qualityScore", desc=True)
        query.order.return_value.order.assert_called_with("deadlineDate", desc=False)
        query.order.return_value.order.return_value.limit.assert_called_with(50)
        query.or_.assert_not_called()

    def test_state_filter_keeps_national_rows(self, mock_supabase_source):
        source, mock_sb, _ = mock_supabase_source
        query = _base_query(mock_sb)
        _set_rows(query.or_.return_value, [{"id": "ca-1"}])

        rows = source.load_open_grants(state="ca")

        assert rows == [{"id": "ca-1"}]
        clause = query.or_.call_args[0][0]
        assert "locations.is.null" in clause
        assert "locations.ilike.%national%" in clause
        assert "locations.ilike.%nationwide%" in clause
        assert "locations.ilike.%CA%" in clause

    def test_state_filter_matches_code_and_full_name(self, mock_supabase_source):
        source, mock_sb, _ = mock_supabase_source
        query = _base_query(mock_sb)
        _set_rows(query.or_.return_value, [])

        source.load_open_grants(state="California")

        clause = query.or_.call_args[0][0]
        assert "locations.ilike.%CA%" in clause
        assert "locations.ilike.%California%" in clause

    def test_unlisted_region_filters_on_code_only(self, mock_supabase_source):
        source, mock_sb, _ = mock_supabase_source
        query = _base_query(mock_sb)
        _set_rows(query.or_.return_value, [])

        source.load_open_grants(state="zz")

        clause = query.or_.call_args[0][0]
        assert clause.endswith("locations.ilike.%ZZ%")

    def test_none_data_returns_empty_list(self, mock_supabase_source):
        source, mock_sb, _ = mock_supabase_source
        _set_rows(_base_query(mock_sb), None)

        assert source.load_open_grants() == []

    def test_uses_configured_table(self):
        config = Config(
            supabase_url="https://fake.supabase.co",
            supabase_key="fake-key",
            grants_table="grant_pool",
        )
        with patch("grant_discovery.database.client.create_client") as mock_create:
            mock_sb = MagicMock()
            mock_create.return_value = mock_sb
            _set_rows(_base_query(mock_sb), [])

            SupabaseGrantSource.from_config(config).load_open_grants()

        mock_create.assert_called_once_with("https://fake.supabase.co", "fake-key")
        mock_sb.table.assert_called_with("grant_pool")

    def test_falls_back_to_env_vars(self, monkeypatch):
        monkeypatch.setenv("SUPABASE_URL", "https://env.supabase.co")
        monkeypatch.setenv("SUPABASE_KEY", "env-key")
        with patch("grant_discovery.database.client.create_client") as mock_create:
            SupabaseGrantSource()

        mock_create.assert_called_once_with("https://env.supabase.co", "env-key")

    def test_missing_credentials_raise(self, monkeypatch):
        monkeypatch.delenv("SUPABASE_URL", raising=False)
        monkeypatch.delenv("SUPABASE_KEY", raising=False)
        with patch("grant_discovery.database.client.create_client"):
            with pytest.raises(KeyError):
                SupabaseGrantSource()


class TestStaticGrantSource:
    def test_returns_records_up_to_limit(self):
        source = StaticGrantSource([{"id": str(i)} for i in range(5)])

        assert len(source.load_open_grants()) == 5
        assert [r["id"] for r in source.load_open_grants(limit=2)] == ["0", "1"]

    def test_state_argument_is_ignored(self):
        source = StaticGrantSource([{"id": "a"}])
        assert source.load_open_grants(state="NY") == [{"id": "a"}]
