"""
Unit tests for the viability (kill / test / scale) scorer.

Usage:
    pytest tests/test_viability_scorer.py -v
"""

import pytest

from shopsignal.scoring.scoring_config import ViabilityScoringConfig
from shopsignal.scoring.viability_scorer import (
    Recommendation,
    ViabilityScorer,
    compute_analytics,
)

from tests.factories import make_analytics


class TestComputedAnalytics:
    """Rate derivation and its zero guards."""

    def test_rates(self):
        computed = compute_analytics(make_analytics(
            impressions=1000, clicks=50, add_to_cart_count=10, checkout_intents=5,
            total_scroll_depth=120, total_time_on_page=80, view_count=2,
        ))

        assert computed.ctr == pytest.approx(5.0)
        assert computed.add_to_cart_rate == pytest.approx(20.0)
        assert computed.checkout_rate == pytest.approx(50.0)
        assert computed.avg_scroll_depth == pytest.approx(60.0)
        assert computed.avg_time_on_page == pytest.approx(40.0)

    def test_zero_denominators_give_zero_rates(self):
        """Clicks without impressions never divide by zero."""
        computed = compute_analytics(make_analytics(clicks=5, add_to_cart_count=0, checkout_intents=3))

        assert computed.ctr == 0
        assert computed.checkout_rate == 0
        assert computed.add_to_cart_rate == 0

    def test_view_count_floored_to_one(self):
        """No recorded views: averages use 1 as the divisor."""
        computed = compute_analytics(make_analytics(total_time_on_page=30, total_scroll_depth=45, view_count=0))

        assert computed.avg_time_on_page == 30
        assert computed.avg_scroll_depth == 45


class TestViabilityScore:
    """Weighted total, rounding and buckets."""

    def setup_method(self):
        self.scorer = ViabilityScorer()

    def test_reference_example_scales(self):
        """ctr 5%, atc 20%, checkout 50%, scroll 60, time 40s -> 87, scale."""
        result = self.scorer.score_counters(make_analytics(
            impressions=1000, clicks=50, add_to_cart_count=10, checkout_intents=5,
            total_scroll_depth=60, total_time_on_page=40, view_count=1,
        ))

        assert result.breakdown.to_dict() == {
            "ctrScore": 50,
            "addToCartScore": 100,
            "checkoutScore": 100,
            "engagementScore": 80,
            "priceToleranceScore": 100,
        }
        assert result.score == 87
        assert result.recommendation == Recommendation.SCALE

    def test_components_capped_at_100(self):
        result = self.scorer.score_counters(make_analytics(
            impressions=100, clicks=100, add_to_cart_count=100, checkout_intents=100,
            total_scroll_depth=100, total_time_on_page=600, view_count=1,
        ))

        assert max(result.breakdown.to_dict().values()) == 100
        assert result.score == 100

    def test_no_data_is_kill(self):
        result = self.scorer.score_counters(make_analytics())

        assert result.score == 0
        assert result.recommendation == Recommendation.KILL

    def test_middle_band_is_test(self):
        """10 + 12.5 + 0 + 15 + 0 = 37.5 -> 38, test."""
        result = self.scorer.score_counters(make_analytics(
            impressions=1000, clicks=50, add_to_cart_count=5,
            total_scroll_depth=100, view_count=1,
        ))

        assert result.score == 38
        assert result.recommendation == Recommendation.TEST

    @pytest.mark.parametrize("total,expected", [
        (65, Recommendation.SCALE),
        (64.99, Recommendation.TEST),
        (35, Recommendation.TEST),
        (34.99, Recommendation.KILL),
        (0, Recommendation.KILL),
    ])
    def test_bucket_boundaries(self, total, expected):
        assert self.scorer.recommendation_for(total) == expected

    def test_custom_weights_must_sum_to_one(self):
        config = ViabilityScoringConfig(weights={
            "ctrScore": 0.5,
            "addToCartScore": 0.5,
            "checkoutScore": 0.5,
            "engagementScore": 0.0,
            "priceToleranceScore": 0.0,
        })
        with pytest.raises(AssertionError):
            ViabilityScorer(config)


class TestExplanation:
    """Each bucket cites its own metrics."""

    def setup_method(self):
        self.scorer = ViabilityScorer()

    def test_scale_cites_ctr_and_checkout(self):
        result = self.scorer.score_counters(make_analytics(
            impressions=1000, clicks=50, add_to_cart_count=10, checkout_intents=5,
            total_scroll_depth=60, total_time_on_page=40, view_count=1,
        ))

        assert "5.0% CTR" in result.explanation
        assert "50.0% checkout rate" in result.explanation

    def test_test_cites_add_to_cart_rate(self):
        result = self.scorer.score_counters(make_analytics(
            impressions=1000, clicks=50, add_to_cart_count=5,
            total_scroll_depth=100, view_count=1,
        ))

        assert "10.0% add-to-cart rate" in result.explanation

    def test_kill_cites_ctr_and_time(self):
        result = self.scorer.score_counters(make_analytics(
            impressions=1000, clicks=10, total_time_on_page=12.4, view_count=1,
        ))

        assert result.recommendation == Recommendation.KILL
        assert "1.0% CTR" in result.explanation
        assert "12s avg time" in result.explanation

    def test_to_dict(self):
        payload = self.scorer.score_counters(make_analytics(product_id="prod-9")).to_dict()

        assert payload["product_id"] == "prod-9"
        assert payload["recommendation"] == "kill"
        assert set(payload["breakdown"]) == {
            "ctrScore", "addToCartScore", "checkoutScore", "engagementScore", "priceToleranceScore",
        }
