"""
Weights and thresholds for Shopsignal scoring.

This file centralizes EVERY constant used by the two scoring engines.

PHILOSOPHY:
- All thresholds are explicit and documented
- No magic number inside the scoring code
- Constants are contracts: the admin dashboards and historical score rows
  depend on them, so they change only together with a migration of the
  stored scores

INTEREST SCORE:
    weight budget = sum of signal weights (113)
    score = min(round(sum(weight * normalized_value * decay) / 113 * 100), 100)

VIABILITY SCORE:
    five capped components [0-100] combined with fixed weights (sum = 1.0)
"""

from dataclasses import dataclass, field
from typing import Dict, Tuple


@dataclass(frozen=True)
class InterestScoringConfig:
    """
    Configuration of the interest score.

    SIGNAL WEIGHTS:
    Conversion actions weigh the most, passive browsing the least.
    Unknown event types weigh 0 (never an error).

    TEMPORAL DECAY:
    decay = exp(-decay_rate * age_in_days), fractional days.
    Today = 100%, 10 days = e^-1 ~ 36.8%.
    """
    signal_weights: Dict[str, int] = field(default_factory=lambda: {
        "add_to_cart": 25,
        "checkout_intent": 20,
        "return_visit": 15,
        "time_on_page": 12,
        "hover": 10,
        "scroll_depth": 8,
        "quantity_change": 5,
        "comparison_view": 3,
        "description_read": 2,
        "image_view": 3,
        "price_focus": 4,
        "add_to_cart_hover": 6,
    })

    # 10% decay per day
    decay_rate: float = 0.1

    # Trailing window read by the recalculation (days)
    lookback_days: int = 30

    # Value normalization caps
    time_on_page_cap_ms: float = 120_000   # 2 minutes dwell = full signal
    hover_cap_ms: float = 10_000           # 10 seconds hover = full signal
    scroll_depth_scale: float = 100.0      # value is already a percentage

    max_score: int = 100

    # (min score inclusive, level), evaluated top-down
    level_thresholds: Tuple[Tuple[int, str], ...] = (
        (70, "hot"),
        (45, "warm"),
        (20, "cool"),
        (0, "cold"),
    )

    # Hesitation = prolonged hover on add-to-cart without clicking
    hesitation_event_type: str = "add_to_cart_hover"

    @property
    def max_possible_score(self) -> int:
        """Sum of every weight in the table."""
        return sum(self.signal_weights.values())

    def validate(self) -> bool:
        """Check configuration consistency."""
        assert self.max_possible_score > 0, "Signal weights must sum to a positive value"
        assert self.decay_rate >= 0, "decay_rate cannot be negative"
        assert self.lookback_days > 0, "lookback_days must be positive"
        minimums = [threshold for threshold, _ in self.level_thresholds]
        assert minimums == sorted(minimums, reverse=True), \
            "level_thresholds must be ordered from highest to lowest"
        assert minimums[-1] == 0, "The lowest level must start at 0"
        return True


@dataclass(frozen=True)
class ViabilityScoringConfig:
    """
    Configuration of the viability (kill/test/scale) score.

    COMPONENTS (each capped at 100):
    - ctr_score            = ctr * 10
    - add_to_cart_score    = add_to_cart_rate * 5
    - checkout_score       = checkout_rate * 2
    - engagement_score     = avg_scroll_depth + avg_time_on_page / 2
    - price_tolerance      = checkout_rate * 3
    """
    ctr_multiplier: float = 10.0
    add_to_cart_multiplier: float = 5.0
    checkout_multiplier: float = 2.0
    time_on_page_divisor: float = 2.0
    price_tolerance_multiplier: float = 3.0

    component_cap: float = 100.0

    # Component weights (sum = 1.0)
    weights: Dict[str, float] = field(default_factory=lambda: {
        "ctrScore": 0.20,
        "addToCartScore": 0.25,
        "checkoutScore": 0.30,
        "engagementScore": 0.15,
        "priceToleranceScore": 0.10,
    })

    # (min total inclusive, recommendation), evaluated top-down
    recommendation_thresholds: Tuple[Tuple[float, str], ...] = (
        (65, "scale"),
        (35, "test"),
        (0, "kill"),
    )

    def validate(self) -> bool:
        """Check configuration consistency."""
        total = round(sum(self.weights.values()), 6)
        assert total == 1.0, f"Component weights must sum to 1.0 (got {total})"
        return True


DEFAULT_INTEREST_CONFIG = InterestScoringConfig()
DEFAULT_VIABILITY_CONFIG = ViabilityScoringConfig()
