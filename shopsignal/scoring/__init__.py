"""
Shopsignal Scoring Module
=========================

Deterministic scoring of customer interest and product viability.

Components:
    - InterestScorer: decayed, weighted reduction of behavioral events
    - ViabilityScorer: kill/test/scale verdict from funnel counters
    - InsightGenerator: dashboard read models over stored scores

Usage:
    from shopsignal.scoring import InterestScorer, ViabilityScorer

    interest = InterestScorer().score(product_id, events)
    viability = ViabilityScorer().score_counters(analytics)
"""

from .scoring_config import (
    InterestScoringConfig,
    ViabilityScoringConfig,
    DEFAULT_INTEREST_CONFIG,
    DEFAULT_VIABILITY_CONFIG,
)
from .interest_scorer import (
    InterestScorer,
    InterestScore,
    InterestLevel,
)
from .viability_scorer import (
    ViabilityScorer,
    ViabilityScore,
    ViabilityBreakdown,
    ComputedAnalytics,
    Recommendation,
    compute_analytics,
)
from .insights import (
    Insight,
    InsightGenerator,
    InsightType,
    level_overview,
    product_event_stats,
)

__all__ = [
    # Config
    "InterestScoringConfig",
    "ViabilityScoringConfig",
    "DEFAULT_INTEREST_CONFIG",
    "DEFAULT_VIABILITY_CONFIG",
    # Interest
    "InterestScorer",
    "InterestScore",
    "InterestLevel",
    # Viability
    "ViabilityScorer",
    "ViabilityScore",
    "ViabilityBreakdown",
    "ComputedAnalytics",
    "Recommendation",
    "compute_analytics",
    # Insights
    "Insight",
    "InsightGenerator",
    "InsightType",
    "level_overview",
    "product_event_stats",
]
