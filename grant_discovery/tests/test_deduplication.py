"""Unit tests for grant deduplication."""

from datetime import datetime, timezone

from conftest import make_grant
from grant_discovery.deduplicator import Deduplicator, compute_fingerprint, dedup_key


def test_keeps_higher_quality_duplicate():
    """Same fingerprint, quality 0.4 vs 0.9 -> only the 0.9 record survives."""
    low = make_grant("low", hash_fingerprint="fp-1", quality_score=0.4)
    high = make_grant("high", hash_fingerprint="fp-1", quality_score=0.9)

    result = Deduplicator().deduplicate([low, high])

    assert [g.id for g in result] == ["high"]


def test_fallback_fingerprint_normalizes_title_and_sponsor():
    first = make_grant("a", title="Rural  Energy Grant", sponsor="USDA", source_id="RE-1")
    second = make_grant("b", title="rural energy grant ", sponsor="usda", source_id="re-1")

    result = Deduplicator().deduplicate([first, second])

    assert len(result) == 1
    assert dedup_key(first) == dedup_key(second)


def test_different_source_ids_are_not_duplicates():
    first = make_grant("a", title="Rural Energy Grant", sponsor="USDA", source_id="RE-1")
    second = make_grant("b", title="Rural Energy Grant", sponsor="USDA", source_id="RE-2")

    assert len(Deduplicator().deduplicate([first, second])) == 2


def test_quality_tie_prefers_most_recent_update():
    older = make_grant(
        "older", hash_fingerprint="fp", updated_at=datetime(2025, 1, 1, tzinfo=timezone.utc)
    )
    newer = make_grant(
        "newer", hash_fingerprint="fp", updated_at=datetime(2026, 1, 1, tzinfo=timezone.utc)
    )

    assert [g.id for g in Deduplicator().deduplicate([older, newer])] == ["newer"]
    assert [g.id for g in Deduplicator().deduplicate([newer, older])] == ["newer"]


def test_full_tie_keeps_first_seen():
    first = make_grant("first", hash_fingerprint="fp")
    second = make_grant("second", hash_fingerprint="fp")

    assert [g.id for g in Deduplicator().deduplicate([first, second])] == ["first"]


def test_preserves_first_appearance_order():
    grants = [
        make_grant("a", hash_fingerprint="fp-a"),
        make_grant("b", hash_fingerprint="fp-b"),
        make_grant("a2", hash_fingerprint="fp-a", quality_score=0.9),
        make_grant("c", hash_fingerprint="fp-c"),
    ]

    result = Deduplicator().deduplicate(grants)

    # a2 replaces a but takes a's slot
    assert [g.id for g in result] == ["a2", "b", "c"]


def test_deduplicate_is_idempotent():
    grants = [
        make_grant("a", hash_fingerprint="fp-a", quality_score=0.3),
        make_grant("b", hash_fingerprint="fp-a", quality_score=0.6),
        make_grant("c", title="Same", sponsor="S", source_id="X"),
        make_grant("d", title="same", sponsor="s", source_id="x"),
        make_grant("e"),
    ]
    dedup = Deduplicator()

    once = dedup.deduplicate(grants)
    twice = dedup.deduplicate(once)

    assert [g.id for g in twice] == [g.id for g in once]


def test_empty_input():
    assert Deduplicator().deduplicate([]) == []


def test_compute_fingerprint_is_stable_sha256():
    fp = compute_fingerprint("Title", "Sponsor", "ID-1")

    assert fp == compute_fingerprint("  title ", "SPONSOR", "id-1")
    assert len(fp) == 64
