"""
Shopsignal Viability Scorer
===========================

Turns the aggregated funnel counters of a product into a kill / test /
scale verdict.

DIFFERENCE WITH interest_scorer.py:
- interest_scorer: replays raw events with temporal decay
- viability_scorer: purely algebraic over already-summed counters

FORMULA:
    total = ctr_score*0.20 + add_to_cart_score*0.25 + checkout_score*0.30
          + engagement_score*0.15 + price_tolerance_score*0.10

    scale >= 65 > test >= 35 > kill

The breakdown reports each component rounded; the total is computed from
the unrounded components and rounded once for the top-level score.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Any

from ..data.data_models import ProductAnalytics, round_half_up
from .scoring_config import ViabilityScoringConfig, DEFAULT_VIABILITY_CONFIG


class Recommendation(Enum):
    """Listing decision for a product."""
    KILL = "kill"
    TEST = "test"
    SCALE = "scale"


@dataclass
class ComputedAnalytics:
    """Funnel rates derived from a ProductAnalytics snapshot."""
    product_id: str
    impressions: int
    clicks: int
    ctr: float                  # percent
    avg_scroll_depth: float     # percent
    avg_time_on_page: float     # seconds
    add_to_cart_count: int
    add_to_cart_rate: float     # percent of clicks
    checkout_intents: int
    checkout_rate: float        # percent of add-to-carts

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "product_id": self.product_id,
            "impressions": self.impressions,
            "clicks": self.clicks,
            "ctr": self.ctr,
            "avg_scroll_depth": self.avg_scroll_depth,
            "avg_time_on_page": self.avg_time_on_page,
            "add_to_cart_count": self.add_to_cart_count,
            "add_to_cart_rate": self.add_to_cart_rate,
            "checkout_intents": self.checkout_intents,
            "checkout_rate": self.checkout_rate,
        }


def compute_analytics(analytics: ProductAnalytics) -> ComputedAnalytics:
    """
    Derive funnel rates from raw counters.

    Every rate is 0 when its denominator is 0. The view count is floored
    to 1 so averages never divide by zero.
    """
    impressions = analytics.impressions or 0
    clicks = analytics.clicks or 0
    add_to_cart_count = analytics.add_to_cart_count or 0
    checkout_intents = analytics.checkout_intents or 0
    view_count = analytics.view_count or 1

    ctr = clicks / impressions * 100 if impressions > 0 else 0.0
    add_to_cart_rate = add_to_cart_count / clicks * 100 if clicks > 0 else 0.0
    checkout_rate = checkout_intents / add_to_cart_count * 100 if add_to_cart_count > 0 else 0.0

    return ComputedAnalytics(
        product_id=analytics.product_id,
        impressions=impressions,
        clicks=clicks,
        ctr=ctr,
        avg_scroll_depth=(analytics.total_scroll_depth or 0) / view_count,
        avg_time_on_page=(analytics.total_time_on_page or 0) / view_count,
        add_to_cart_count=add_to_cart_count,
        add_to_cart_rate=add_to_cart_rate,
        checkout_intents=checkout_intents,
        checkout_rate=checkout_rate,
    )


@dataclass
class ViabilityBreakdown:
    """Rounded component scores."""
    ctr_score: int
    add_to_cart_score: int
    checkout_score: int
    engagement_score: int
    price_tolerance_score: int

    def to_dict(self) -> Dict[str, int]:
        """Keys follow the dashboard naming."""
        return {
            "ctrScore": self.ctr_score,
            "addToCartScore": self.add_to_cart_score,
            "checkoutScore": self.checkout_score,
            "engagementScore": self.engagement_score,
            "priceToleranceScore": self.price_tolerance_score,
        }


@dataclass
class ViabilityScore:
    """Viability verdict for one product."""
    product_id: str
    score: int
    recommendation: Recommendation
    breakdown: ViabilityBreakdown
    explanation: str

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "product_id": self.product_id,
            "score": self.score,
            "recommendation": self.recommendation.value,
            "breakdown": self.breakdown.to_dict(),
            "explanation": self.explanation,
        }


class ViabilityScorer:
    """Stateless funnel scorer."""

    def __init__(self, config: Optional[ViabilityScoringConfig] = None):
        self.config = config or DEFAULT_VIABILITY_CONFIG
        self.config.validate()

    def _cap(self, value: float) -> float:
        return min(value, self.config.component_cap)

    def component_scores(self, analytics: ComputedAnalytics) -> Dict[str, float]:
        """Unrounded component scores keyed like the weights table."""
        cfg = self.config
        return {
            "ctrScore": self._cap(analytics.ctr * cfg.ctr_multiplier),
            "addToCartScore": self._cap(analytics.add_to_cart_rate * cfg.add_to_cart_multiplier),
            "checkoutScore": self._cap(analytics.checkout_rate * cfg.checkout_multiplier),
            "engagementScore": self._cap(
                analytics.avg_scroll_depth + analytics.avg_time_on_page / cfg.time_on_page_divisor
            ),
            "priceToleranceScore": self._cap(analytics.checkout_rate * cfg.price_tolerance_multiplier),
        }

    def recommendation_for(self, total_score: float) -> Recommendation:
        """Bucket the unrounded total."""
        for minimum, recommendation in self.config.recommendation_thresholds:
            if total_score >= minimum:
                return Recommendation(recommendation)
        return Recommendation.KILL

    @staticmethod
    def explain(recommendation: Recommendation, analytics: ComputedAnalytics) -> str:
        """
        Explanation sentence for a verdict.

        scale cites CTR and checkout rate, test cites the add-to-cart rate,
        kill cites CTR and average time on page.
        """
        if recommendation == Recommendation.SCALE:
            return (
                f"Strong performance across all metrics. {analytics.ctr:.1f}% CTR and "
                f"{analytics.checkout_rate:.1f}% checkout rate indicate high purchase intent. "
                f"Ready for real fulfillment."
            )
        if recommendation == Recommendation.TEST:
            return (
                f"Mixed signals require optimization. Consider A/B testing price points or "
                f"improving product images. Current {analytics.add_to_cart_rate:.1f}% "
                f"add-to-cart rate shows interest."
            )
        return (
            f"Low engagement metrics suggest weak product-market fit. {analytics.ctr:.1f}% CTR "
            f"and {analytics.avg_time_on_page:.0f}s avg time indicate lack of interest."
        )

    def score(self, analytics: ComputedAnalytics) -> ViabilityScore:
        """
        Score a product from its computed funnel rates.

        Args:
            analytics: Output of compute_analytics()

        Returns:
            ViabilityScore with rounded breakdown and explanation.
        """
        components = self.component_scores(analytics)
        total_score = sum(
            components[name] * weight for name, weight in self.config.weights.items()
        )
        recommendation = self.recommendation_for(total_score)

        return ViabilityScore(
            product_id=analytics.product_id,
            score=round_half_up(total_score),
            recommendation=recommendation,
            breakdown=ViabilityBreakdown(
                ctr_score=round_half_up(components["ctrScore"]),
                add_to_cart_score=round_half_up(components["addToCartScore"]),
                checkout_score=round_half_up(components["checkoutScore"]),
                engagement_score=round_half_up(components["engagementScore"]),
                price_tolerance_score=round_half_up(components["priceToleranceScore"]),
            ),
            explanation=self.explain(recommendation, analytics),
        )

    def score_counters(self, analytics: ProductAnalytics) -> ViabilityScore:
        """Shortcut: compute rates, then score."""
        return self.score(compute_analytics(analytics))
