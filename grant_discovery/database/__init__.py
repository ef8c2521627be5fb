"""Grant pool sources."""

from .client import GrantPoolSource, StaticGrantSource, SupabaseGrantSource

__all__ = ["GrantPoolSource", "StaticGrantSource", "SupabaseGrantSource"]
