"""
Unit tests for build_category_weights().
"""

import pytest

from models.rules import AssortmentProfile
from services.category_weight_service import WeightSource, build_category_weights


def make_profile(weights: dict) -> AssortmentProfile:
    return AssortmentProfile(id=1, name="Default", category_weights=weights, is_default=True)


class TestBuildCategoryWeights:
    """Source priority: history, then profile, then uniform."""

    def test_history_shares(self):
        weights = build_category_weights({"beer": 30, "wine": 10}, None, ["beer", "wine", "soda"])

        assert weights.source == WeightSource.HISTORY
        assert weights.weights == {"beer": 0.75, "wine": 0.25}
        assert weights.fallback == 0.5

    def test_history_beats_profile(self):
        weights = build_category_weights({"beer": 1}, make_profile({"wine": 1}), ["beer"])

        assert weights.source == WeightSource.HISTORY
        assert weights.weights == {"beer": 1.0}

    def test_profile_is_normalized(self):
        weights = build_category_weights({}, make_profile({"beer": 3, "wine": 1}), ["beer"])

        assert weights.source == WeightSource.PROFILE
        assert weights.weights == {"beer": 0.75, "wine": 0.25}

    def test_profile_ignores_non_positive_weights(self):
        weights = build_category_weights({}, make_profile({"beer": 2, "wine": 0}), ["beer"])

        assert weights.weights == {"beer": 1.0}
        assert weights.fallback == 1.0

    def test_profile_with_only_zero_weights_falls_back_to_uniform(self):
        weights = build_category_weights({}, make_profile({"beer": 0}), ["beer", "wine"])

        assert weights.source == WeightSource.UNIFORM
        assert weights.weights == {"beer": 0.5, "wine": 0.5}

    def test_uniform_over_candidate_categories(self):
        # No history, no default profile, three categories
        weights = build_category_weights({}, None, ["beer", "wine", "soda", "beer"])

        assert weights.source == WeightSource.UNIFORM
        assert set(weights.weights) == {"beer", "wine", "soda"}
        for value in weights.weights.values():
            assert value == pytest.approx(1 / 3)

    def test_unlisted_category_gets_fallback(self):
        weights = build_category_weights({"beer": 1, "wine": 1}, None, [])

        assert weights.weight_for("beer") == 0.5
        assert weights.weight_for("cider") == 0.5

    def test_nothing_available(self):
        weights = build_category_weights({}, None, [])

        assert weights.weights == {}
        assert weights.fallback == 1.0
