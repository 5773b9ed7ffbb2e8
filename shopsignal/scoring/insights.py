"""
Interest Insights
=================

Read models built on top of stored interest scores for the admin
dashboard: level overview, per-product event statistics and a short list
of actionable insights.

All functions are pure; the caller provides scores, events and product
names.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, List, Mapping, Sequence, Any

from ..data.data_models import InterestEvent, round_half_up
from .interest_scorer import InterestScore, InterestLevel


MAX_INSIGHTS = 5


class InsightType(Enum):
    """Visual category of an insight."""
    SUCCESS = "success"
    WARNING = "warning"
    INFO = "info"
    TIP = "tip"


@dataclass
class Insight:
    """One sentence-level observation for the dashboard."""
    type: InsightType
    title: str
    description: str
    product_id: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type.value,
            "title": self.title,
            "description": self.description,
            "product_id": self.product_id or None,
        }


def level_overview(scores: Iterable[InterestScore]) -> Dict[str, int]:
    """Count stored scores per interest level."""
    counts = {level.value: 0 for level in InterestLevel}
    for score in scores:
        counts[score.interest_level.value] += 1
    return counts


def product_event_stats(events: Iterable[InterestEvent]) -> Dict[str, Dict[str, float]]:
    """Aggregate a product's events by type: occurrence count and summed value."""
    stats: Dict[str, Dict[str, float]] = {}
    for event in events:
        entry = stats.setdefault(event.event_type, {"count": 0, "total_value": 0.0})
        entry["count"] += 1
        entry["total_value"] += event.value
    return stats


class InsightGenerator:
    """
    Builds up to five insights from a list of scores.

    Product-specific rules pick the first matching score in the order
    given (callers pass scores sorted by interest_score descending) and
    are skipped when the product has no known name.
    """

    TRENDING_MIN_RETURN_VISITORS = 3
    HESITATION_MIN_SCORE = 30
    HESITATION_MIN_SESSIONS = 3
    CONFIDENCE_MIN_SCORE = 40
    CONFIDENCE_MIN_SESSIONS = 2
    ENGAGEMENT_MIN_TIME_MS = 60_000
    COLD_MIN_SESSIONS = 5

    def generate(
        self,
        scores: Sequence[InterestScore],
        product_names: Mapping[str, str],
    ) -> List[Insight]:
        insights: List[Insight] = []

        def first(predicate):
            for score in scores:
                if predicate(score):
                    return score
            return None

        def add(score, insight_type, title, description):
            if score is None:
                return
            name = product_names.get(score.product_id)
            if not name:
                return
            insights.append(Insight(
                type=insight_type,
                title=title.format(name=name),
                description=description,
                product_id=score.product_id,
            ))

        trending = first(lambda s: s.return_visitors >= self.TRENDING_MIN_RETURN_VISITORS)
        if trending is not None:
            add(
                trending, InsightType.SUCCESS, "{name} is trending",
                f"{trending.return_visitors} people came back to look at this product again. "
                f"Strong buying signal!",
            )

        hesitant = first(
            lambda s: s.hesitation_score >= self.HESITATION_MIN_SCORE
            and s.unique_sessions >= self.HESITATION_MIN_SESSIONS
        )
        add(
            hesitant, InsightType.WARNING, "{name} has high hesitation",
            'Many visitors hover on "Add to Cart" but don\'t click. '
            "Consider adjusting price or adding more details.",
        )

        confident = first(
            lambda s: s.buyer_confidence >= self.CONFIDENCE_MIN_SCORE
            and s.unique_sessions >= self.CONFIDENCE_MIN_SESSIONS
        )
        if confident is not None:
            add(
                confident, InsightType.SUCCESS, "{name} has strong buyer intent",
                f"{confident.buyer_confidence}% of viewers add this to cart. "
                f"Consider promoting it more!",
            )

        engaging = first(lambda s: s.avg_time_on_page >= self.ENGAGEMENT_MIN_TIME_MS)
        if engaging is not None:
            minutes = round_half_up(engaging.avg_time_on_page / 60_000)
            add(
                engaging, InsightType.INFO, "{name} captures attention",
                f"Visitors spend over {minutes} minute on average. Great product description!",
            )

        neglected = first(
            lambda s: s.interest_level == InterestLevel.COLD
            and s.unique_sessions >= self.COLD_MIN_SESSIONS
        )
        if neglected is not None:
            add(
                neglected, InsightType.WARNING, "{name} needs attention",
                f"{neglected.unique_sessions} visitors viewed but showed low interest. "
                f"Consider updating images or description.",
            )

        if not scores:
            insights.append(Insight(
                type=InsightType.TIP,
                title="Getting started",
                description="Interest data will appear as customers browse your products. "
                            "Check back soon!",
            ))
        elif all(s.interest_level == InterestLevel.COLD for s in scores):
            insights.append(Insight(
                type=InsightType.TIP,
                title="Boost engagement",
                description='All products are currently "Cold". Try improving product images '
                            "or descriptions to increase interest.",
            ))

        total_return_visitors = sum(s.return_visitors for s in scores)
        if total_return_visitors > 0:
            insights.append(Insight(
                type=InsightType.TIP,
                title="Return visitor insight",
                description=f"You have {total_return_visitors} return visitors across all "
                            f"products. These are your most likely buyers!",
            ))

        return insights[:MAX_INSIGHTS]
