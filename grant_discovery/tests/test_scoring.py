"""Unit tests for the weighted relevance scorer."""

import json

import pytest

from grant_discovery.models import MatchMode, Profile
from grant_discovery.scorer import (
    DEFAULT_WEIGHTS,
    ScoringWeights,
    build_match_result,
    get_tier,
    load_weights,
    profile_confidence_level,
    save_weights,
    score_grant,
)

from conftest import NOW, days_from_now, make_grant

INDUSTRY_FOCUSED = ScoringWeights(
    entity_type=15,
    geography=15,
    industry=40,
    funding=15,
    deadline=5,
    quality=10,
    industry_soft_baseline=12,
    version="industry_focused_1.0",
)


def _dimension(result, name):
    return next(d for d in result.dimensions if d.name == name)


def test_national_climate_grant_outscores_unrestricted_grant(ca_small_business):
    climate = make_grant("g1", locations=[{"type": "national"}], categories=["climate"])
    bare = make_grant("g2")

    climate_result = score_grant(climate, ca_small_business, now=NOW)
    bare_result = score_grant(bare, ca_small_business, now=NOW)

    # 20 + 20 + 12.5 + 7.5 + 5 + 5
    assert climate_result.score == 70
    # 20 + 20 + 10 (soft baseline) + 7.5 + 5 + 5
    assert bare_result.score == 68
    assert climate_result.score > bare_result.score


def test_breakdown_covers_all_dimensions(ca_small_business):
    result = score_grant(make_grant("g1"), ca_small_business, now=NOW)

    assert set(result.breakdown) == {
        "entity_type", "geography", "industry", "funding", "deadline", "quality"
    }
    assert result.weights_version == DEFAULT_WEIGHTS.version


def test_scoring_is_deterministic(ca_small_business):
    grant = make_grant(
        "g1",
        categories=["Climate & Environment"],
        amount_min=10_000,
        amount_max=90_000,
        deadline_date=days_from_now(30),
        deadline_type="fixed",
    )

    first = score_grant(grant, ca_small_business, now=NOW)
    second = score_grant(grant, ca_small_business, now=NOW)

    assert first.model_dump() == second.model_dump()


@pytest.mark.parametrize("overrides", [
    {},
    {"quality_score": 1.0, "deadline_type": "rolling", "categories": ["climate", "energy"]},
    {"quality_score": 0.0, "deadline_date": days_from_now(-3), "deadline_type": "fixed"},
    {"eligibility": {"tags": ["Tribal"]}, "locations": [{"type": "state", "value": "NY"}]},
    {"amount_min": 9_000_000, "amount_max": 20_000_000},
])
def test_score_stays_within_bounds(ca_small_business, overrides):
    for mode in (MatchMode.SOFT, MatchMode.HARD):
        result = score_grant(make_grant("g1", **overrides), ca_small_business, mode=mode, now=NOW)
        assert 0 <= result.score <= 100


def test_reasons_ordered_by_contribution(ca_small_business):
    grant = make_grant(
        "g1",
        categories=["climate"],
        deadline_type="rolling",
        quality_score=0.9,
    )

    result = score_grant(grant, ca_small_business, now=NOW)

    assert result.match_reasons == [
        "Open to all organization types",
        "Available nationwide",
        "Matches your focus: climate",
        "Rolling deadline",
        "Complete grant listing",
    ]


class TestEntityTypeDimension:

    def test_matching_entity_type_gets_full_points(self, ca_small_business):
        grant = make_grant("g1", eligibility={"tags": ["Small Business"]})
        result = score_grant(grant, ca_small_business, now=NOW)
        assert _dimension(result, "entity_type").points == 20

    def test_mismatched_entity_type_gets_nothing(self, ca_small_business):
        grant = make_grant("g1", eligibility={"tags": ["Tribal"]})
        result = score_grant(grant, ca_small_business, now=NOW)

        dim = _dimension(result, "entity_type")
        assert dim.points == 0
        assert dim.warning is not None

    def test_unspecified_entity_type_gets_half(self):
        profile = Profile(entity_type="unspecified", state="CA")
        grant = make_grant("g1", eligibility={"tags": ["Nonprofit"]})

        result = score_grant(grant, profile, now=NOW)

        assert _dimension(result, "entity_type").points == 10


class TestGeographyDimension:

    def test_state_match_gets_full_points(self, ca_small_business):
        grant = make_grant("g1", locations=[{"type": "state", "value": "CA"}])
        result = score_grant(grant, ca_small_business, now=NOW)

        dim = _dimension(result, "geography")
        assert dim.points == 20
        assert dim.reason == "Available in CA"

    def test_other_state_gets_nothing_with_warning(self, ca_small_business):
        grant = make_grant("g1", locations=[{"type": "state", "value": "NY"}])
        result = score_grant(grant, ca_small_business, now=NOW)

        assert _dimension(result, "geography").points == 0
        assert "Restricted to NY" in result.warnings

    def test_profile_without_state_gets_half(self, stateless_nonprofit):
        grant = make_grant("g1", locations=[{"type": "state", "value": "TX"}])
        result = score_grant(grant, stateless_nonprofit, now=NOW)
        assert _dimension(result, "geography").points == 10

    def test_no_locations_means_national(self, ca_small_business):
        result = score_grant(make_grant("g1"), ca_small_business, now=NOW)
        assert _dimension(result, "geography").reason == "Available nationwide"


class TestIndustryDimension:

    def test_full_overlap_gets_full_points(self, ca_small_business):
        grant = make_grant("g1", categories=["Climate & Environment", "Energy"])
        result = score_grant(grant, ca_small_business, now=NOW)
        assert _dimension(result, "industry").points == 25

    def test_partial_overlap_is_proportional(self, ca_small_business):
        grant = make_grant("g1", categories=["climate"])
        result = score_grant(grant, ca_small_business, now=NOW)
        assert _dimension(result, "industry").points == pytest.approx(12.5)

    def test_soft_mode_applies_baseline(self, ca_small_business):
        grant = make_grant("g1", categories=["Arts"])
        result = score_grant(grant, ca_small_business, mode=MatchMode.SOFT, now=NOW)

        dim = _dimension(result, "industry")
        assert dim.points == DEFAULT_WEIGHTS.industry_soft_baseline
        assert dim.warning == "No direct overlap with your industries"

    def test_hard_mode_has_no_baseline(self, ca_small_business):
        grant = make_grant("g1", categories=["Arts"])
        result = score_grant(grant, ca_small_business, mode=MatchMode.HARD, now=NOW)
        assert _dimension(result, "industry").points == 0

    def test_partial_overlap_never_below_soft_baseline(self):
        profile = Profile(entity_type="small_business", industry_tags=["climate", "housing", "youth"])
        partial = make_grant("g1", categories=["climate"])
        none = make_grant("g2", categories=["mining"])

        partial_result = score_grant(partial, profile, mode=MatchMode.SOFT, now=NOW)
        none_result = score_grant(none, profile, mode=MatchMode.SOFT, now=NOW)

        assert _dimension(partial_result, "industry").points == DEFAULT_WEIGHTS.industry_soft_baseline
        assert _dimension(partial_result, "industry").reason == "Matches your focus: climate"
        assert partial_result.score >= none_result.score

    def test_hard_mode_partial_overlap_stays_proportional(self):
        profile = Profile(entity_type="small_business", industry_tags=["climate", "housing", "youth"])
        grant = make_grant("g1", categories=["climate"])

        result = score_grant(grant, profile, mode=MatchMode.HARD, now=NOW)

        assert _dimension(result, "industry").points == pytest.approx(25 / 3)

    def test_profile_without_industries_gets_half(self):
        profile = Profile(entity_type="nonprofit")
        result = score_grant(make_grant("g1", categories=["Arts"]), profile, now=NOW)
        assert _dimension(result, "industry").points == pytest.approx(12.5)


class TestFundingDimension:

    def _profile(self, **prefs):
        return Profile(entity_type="nonprofit", grant_preferences=prefs)

    def test_missing_amount_gets_half_with_warning(self, ca_small_business):
        result = score_grant(make_grant("g1"), ca_small_business, now=NOW)

        assert _dimension(result, "funding").points == 7.5
        assert "Funding amount not specified" in result.warnings

    def test_overlapping_range_gets_full_points(self):
        grant = make_grant("g1", amount_min=20_000, amount_max=40_000)
        result = score_grant(grant, self._profile(preferred_size="small"), now=NOW)
        assert _dimension(result, "funding").points == 15

    def test_smaller_award_decays(self):
        grant = make_grant("g1", amount_max=5_000)
        result = score_grant(grant, self._profile(preferred_size="small"), now=NOW)

        dim = _dimension(result, "funding")
        assert dim.points == pytest.approx(7.5)
        assert dim.warning is None

    def test_much_larger_award_warns(self):
        grant = make_grant("g1", amount_min=200_000, amount_max=500_000)
        result = score_grant(grant, self._profile(preferred_size="small"), now=NOW)

        dim = _dimension(result, "funding")
        assert dim.points == pytest.approx(3.75)
        assert dim.warning == "Award is much larger than your preferred grant size"

    def test_any_size_gets_full_points(self):
        grant = make_grant("g1", amount_max=9_000_000)
        result = score_grant(grant, self._profile(preferred_size="any"), now=NOW)
        assert _dimension(result, "funding").points == 15

    def test_band_derived_from_annual_budget(self):
        profile = Profile(entity_type="nonprofit", annual_budget="100k_250k")
        grant = make_grant("g1", amount_min=100_000, amount_max=200_000)

        result = score_grant(grant, profile, now=NOW)

        assert _dimension(result, "funding").points == 15

    def test_no_preference_gets_half(self):
        grant = make_grant("g1", amount_max=50_000)
        result = score_grant(grant, self._profile(), now=NOW)
        assert _dimension(result, "funding").points == 7.5


class TestDeadlineDimension:

    def test_rolling_gets_full_points(self, ca_small_business):
        result = score_grant(make_grant("g1", deadline_type="rolling"), ca_small_business, now=NOW)
        assert _dimension(result, "deadline").points == 10

    def test_unknown_deadline_gets_half(self, ca_small_business):
        result = score_grant(make_grant("g1"), ca_small_business, now=NOW)

        assert _dimension(result, "deadline").points == 5
        assert "Deadline unknown" in result.warnings

    def test_far_deadline_gets_full_points(self, ca_small_business):
        grant = make_grant("g1", deadline_date=days_from_now(120), deadline_type="fixed")
        result = score_grant(grant, ca_small_business, now=NOW)

        dim = _dimension(result, "deadline")
        assert dim.points == 10
        assert dim.reason == "Plenty of time to apply"

    def test_points_scale_with_days_left(self, ca_small_business):
        grant = make_grant("g1", deadline_date=days_from_now(45), deadline_type="fixed")
        result = score_grant(grant, ca_small_business, now=NOW)
        assert _dimension(result, "deadline").points == pytest.approx(5.0)

    def test_urgent_deadline_warns(self, ca_small_business):
        grant = make_grant("g1", deadline_date=days_from_now(5), deadline_type="fixed")
        result = score_grant(grant, ca_small_business, now=NOW)
        assert "Deadline in 5 days" in result.warnings

    def test_past_deadline_gets_nothing(self, ca_small_business):
        grant = make_grant("g1", deadline_date=days_from_now(-1), deadline_type="fixed")
        result = score_grant(grant, ca_small_business, now=NOW)

        assert _dimension(result, "deadline").points == 0
        assert "Deadline has passed" in result.warnings


def test_quality_scales_points(ca_small_business):
    result = score_grant(make_grant("g1", quality_score=0.9), ca_small_business, now=NOW)
    assert _dimension(result, "quality").points == pytest.approx(9.0)


@pytest.mark.parametrize("score,tier", [
    (100, "excellent"),
    (80, "excellent"),
    (79, "good"),
    (60, "good"),
    (59, "fair"),
    (40, "fair"),
    (39, "low"),
    (0, "low"),
])
def test_tiers(score, tier):
    assert get_tier(score)[0] == tier


def test_profile_confidence_levels(ca_small_business):
    assert profile_confidence_level(ca_small_business) == "medium"
    assert profile_confidence_level(Profile(entity_type="nonprofit")) == "low"

    full = Profile(
        entity_type="nonprofit",
        state="CA",
        industry_tags=["education"],
        annual_budget="under_100k",
        goals=["expand programs"],
    )
    assert profile_confidence_level(full) == "high"


def test_build_match_result_display_fields(ca_small_business):
    grant = make_grant("g1", amount_max=20_000, deadline_type="rolling", quality_score=0.9)
    scoring = score_grant(grant, ca_small_business, now=NOW)

    match = build_match_result(grant, scoring, ca_small_business)

    assert match.score == scoring.score
    assert match.breakdown == scoring.breakdown
    assert match.funding_display == "Up to $20,000"
    assert match.deadline_display == "Rolling"
    assert match.ranking_score == match.score
    assert not match.is_enriched


class TestWeights:

    def test_default_weights_sum_to_100(self):
        w = DEFAULT_WEIGHTS
        total = w.entity_type + w.geography + w.industry + w.funding + w.deadline + w.quality
        assert total == 100

    def test_weights_must_sum_to_100(self):
        with pytest.raises(ValueError):
            ScoringWeights(entity_type=30)

    def test_baseline_cannot_exceed_industry(self):
        with pytest.raises(ValueError):
            ScoringWeights(industry_soft_baseline=30)

    def test_custom_weights_change_points(self, ca_small_business):
        grant = make_grant("g1", categories=["climate", "energy"])
        result = score_grant(grant, ca_small_business, now=NOW, weights=INDUSTRY_FOCUSED)

        assert _dimension(result, "industry").points == 40
        assert result.weights_version == "industry_focused_1.0"

    def test_load_defaults_without_path(self):
        assert load_weights() is DEFAULT_WEIGHTS

    @pytest.mark.parametrize("suffix", [".json", ".yaml"])
    def test_save_and_load(self, tmp_path, suffix):
        path = tmp_path / f"weights{suffix}"

        save_weights(INDUSTRY_FOCUSED, str(path))
        loaded = load_weights(str(path))

        assert loaded == INDUSTRY_FOCUSED

    def test_load_invalid_weights_file(self, tmp_path):
        path = tmp_path / "weights.json"
        path.write_text(json.dumps({"industry": 50}))

        with pytest.raises(ValueError):
            load_weights(str(path))

    def test_load_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_weights(str(tmp_path / "missing.yaml"))

    def test_unsupported_format(self, tmp_path):
        path = tmp_path / "weights.txt"
        path.write_text("industry: 25")

        with pytest.raises(ValueError):
            load_weights(str(path))
