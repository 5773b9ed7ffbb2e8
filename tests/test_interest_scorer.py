"""
Unit tests for the interest scorer.

They check:
1. Determinism and the empty-input record
2. Temporal decay (fractional days, strictly decreasing in age)
3. Level boundaries and the 100 cap
4. Resilience to malformed values and unknown event types
5. Secondary metrics (buyer confidence, hesitation, time on page)

Usage:
    pytest tests/test_interest_scorer.py -v
"""

import math
from datetime import datetime, timedelta

import pytest

from shopsignal.scoring.interest_scorer import InterestLevel, InterestScore, InterestScorer
from shopsignal.scoring.scoring_config import DEFAULT_INTEREST_CONFIG, InterestScoringConfig

from tests.factories import NOW, make_event


class TestEmptyAndDeterminism:
    """An empty event set and repeated runs."""

    def setup_method(self):
        self.scorer = InterestScorer()

    def test_empty_events_yield_cold_zero_record(self):
        """No events = score 0, cold, every count 0."""
        score = self.scorer.score("prod-1", [], now=NOW)

        assert score.interest_score == 0
        assert score.interest_level == InterestLevel.COLD
        assert score.buyer_confidence == 0
        assert score.hesitation_score == 0
        assert score.unique_sessions == 0
        assert score.return_visitors == 0
        assert score.avg_time_on_page == 0
        assert score.total_hovers == 0
        assert score.total_add_to_cart == 0

    def test_same_events_same_score(self):
        """Scoring twice with no new events gives the identical record."""
        events = [
            make_event("hover", 4000, age_days=1.5),
            make_event("add_to_cart", 1, session_id="s2", age_days=3),
            make_event("time_on_page", 60000, age_days=0.25),
        ]
        first = self.scorer.score("prod-1", events, now=NOW)
        second = self.scorer.score("prod-1", events, now=NOW)

        assert first == second

    def test_event_order_irrelevant(self):
        """The event set is unordered."""
        events = [
            make_event("hover", 4000),
            make_event("scroll_depth", 80, age_days=2),
            make_event("checkout_intent", 1, age_days=5),
        ]
        assert (
            self.scorer.score("prod-1", events, now=NOW)
            == self.scorer.score("prod-1", list(reversed(events)), now=NOW)
        )

    def test_updated_at_is_reference_time(self):
        """updated_at records the calculation time."""
        score = self.scorer.score("prod-1", [], now=NOW)
        assert score.updated_at == NOW


class TestDecay:
    """exp(-0.1 * age_in_days) with fractional days."""

    def setup_method(self):
        self.scorer = InterestScorer()

    def test_fresh_event_full_weight(self):
        """An event created now decays by nothing."""
        assert self.scorer.calculate_decay(NOW, NOW) == pytest.approx(1.0)

    def test_ten_days_is_e_minus_one(self):
        """10 days old contributes e^-1."""
        decay = self.scorer.calculate_decay(NOW - timedelta(days=10), NOW)
        assert decay == pytest.approx(math.exp(-1))

    def test_fractional_days_not_floored(self):
        """Half a day old is between today and one day."""
        decay = self.scorer.calculate_decay(NOW - timedelta(hours=12), NOW)
        assert decay == pytest.approx(math.exp(-0.05))

    def test_more_recent_event_contributes_more(self):
        """Decay is strictly decreasing in age."""
        newer = make_event("add_to_cart", 1, age_days=1)
        older = make_event("add_to_cart", 1, age_days=1.01)

        assert self.scorer.event_contribution(newer, NOW) > self.scorer.event_contribution(older, NOW)

    def test_naive_datetimes_treated_as_utc(self):
        """A naive created_at is compared as UTC."""
        naive = datetime(2026, 2, 19, 12, 0, 0)
        assert self.scorer.calculate_decay(naive, NOW) == pytest.approx(math.exp(-1))


class TestNormalization:
    """Per-type value normalization."""

    def setup_method(self):
        self.scorer = InterestScorer()

    def test_time_on_page_capped_at_two_minutes(self):
        assert self.scorer.normalize_value(make_event("time_on_page", 60000)) == pytest.approx(0.5)
        assert self.scorer.normalize_value(make_event("time_on_page", 240000)) == 1

    def test_hover_capped_at_ten_seconds(self):
        assert self.scorer.normalize_value(make_event("hover", 5000)) == pytest.approx(0.5)
        assert self.scorer.normalize_value(make_event("hover", 30000)) == 1

    def test_scroll_depth_is_percentage(self):
        assert self.scorer.normalize_value(make_event("scroll_depth", 60)) == pytest.approx(0.6)

    def test_other_types_count_once(self):
        """Value is ignored for types without normalization."""
        assert self.scorer.normalize_value(make_event("quantity_change", 7)) == 1.0


class TestLevelsAndCap:
    """Bucket boundaries and the 100 ceiling."""

    def setup_method(self):
        self.scorer = InterestScorer()

    @pytest.mark.parametrize("score,level", [
        (100, InterestLevel.HOT),
        (70, InterestLevel.HOT),
        (69, InterestLevel.WARM),
        (45, InterestLevel.WARM),
        (44, InterestLevel.COOL),
        (20, InterestLevel.COOL),
        (19, InterestLevel.COLD),
        (0, InterestLevel.COLD),
    ])
    def test_inclusive_lower_bounds(self, score, level):
        assert self.scorer.level_for(score) == level

    def test_weight_budget_is_sum_of_weights(self):
        """The scale divides by the sum of every weight."""
        assert DEFAULT_INTEREST_CONFIG.max_possible_score == 113

    def test_single_add_to_cart(self):
        """25 / 113 = 22.1% -> 22, cool."""
        score = self.scorer.score("prod-1", [make_event("add_to_cart", 1)], now=NOW)

        assert score.interest_score == 22
        assert score.interest_level == InterestLevel.COOL

    def test_score_never_exceeds_100(self):
        """An overloaded event set is capped at 100."""
        events = [make_event("add_to_cart", 1, session_id=f"s{i}") for i in range(10)]
        score = self.scorer.score("prod-1", events, now=NOW)

        assert score.interest_score == 100
        assert score.interest_level == InterestLevel.HOT

    def test_scale_half_budget(self):
        assert self.scorer.scale(56.5) == 50


class TestNoisyTelemetry:
    """Malformed values and unknown types never raise."""

    def setup_method(self):
        self.scorer = InterestScorer()

    @pytest.mark.parametrize("bad_value", ["abc", None, float("nan"), float("inf"), {"x": 1}])
    def test_malformed_value_treated_as_zero(self, bad_value):
        event = make_event("time_on_page", bad_value)

        assert self.scorer.normalize_value(event) == 0
        score = self.scorer.score("prod-1", [event], now=NOW)
        assert score.interest_score == 0
        assert score.avg_time_on_page == 0

    def test_numeric_string_value_accepted(self):
        """A numeric string is still a number."""
        assert self.scorer.normalize_value(make_event("hover", "5000")) == pytest.approx(0.5)

    def test_unknown_type_is_weightless(self):
        """Unknown types contribute 0 but still count their session."""
        score = self.scorer.score("prod-1", [make_event("wishlist_add", 1)], now=NOW)

        assert self.scorer.weight_for("wishlist_add") == 0
        assert score.interest_score == 0
        assert score.unique_sessions == 1


class TestSecondaryMetrics:
    """Buyer confidence, hesitation, averages and counts."""

    def setup_method(self):
        self.scorer = InterestScorer()

    def test_buyer_confidence_not_clamped(self):
        """Three add-to-carts from one session = 300%."""
        events = [make_event("add_to_cart", 1) for _ in range(3)]
        score = self.scorer.score("prod-1", events, now=NOW)

        assert score.buyer_confidence == 300
        assert score.total_add_to_cart == 3

    def test_hesitation_share_of_events(self):
        """1 hesitation out of 4 events = 25%."""
        events = [
            make_event("add_to_cart_hover", 1500),
            make_event("hover", 3000),
            make_event("image_view", 1),
            make_event("price_focus", 2000),
        ]
        score = self.scorer.score("prod-1", events, now=NOW)

        assert score.hesitation_score == 25
        assert score.total_hovers == 1

    def test_avg_time_rounds_half_up(self):
        """75001 ms over two sessions = 37500.5 -> 37501."""
        events = [
            make_event("time_on_page", 30000, session_id="s1"),
            make_event("time_on_page", 45001, session_id="s2"),
        ]
        score = self.scorer.score("prod-1", events, now=NOW)

        assert score.unique_sessions == 2
        assert score.avg_time_on_page == 37501

    def test_return_visitors_are_distinct_sessions(self):
        events = [
            make_event("return_visit", 1, session_id="s1"),
            make_event("return_visit", 1, session_id="s1"),
            make_event("return_visit", 1, session_id="s2"),
        ]
        score = self.scorer.score("prod-1", events, now=NOW)

        assert score.return_visitors == 2

    def test_custom_decay_rate(self):
        """A zero decay rate keeps old events at full weight."""
        scorer = InterestScorer(InterestScoringConfig(decay_rate=0.0))
        old = make_event("add_to_cart", 1, age_days=29)

        assert scorer.score("prod-1", [old], now=NOW).interest_score == 22


class TestInterestScoreRow:
    """Row round trip used by the stores."""

    def test_from_dict_restores_level_and_time(self):
        score = InterestScorer().score("prod-1", [make_event("checkout_intent", 1)], now=NOW)
        restored = InterestScore.from_dict(score.to_dict())

        assert restored == score
        assert score.to_dict()["interest_level"] == "cold"
