"""
Viability report: every product's funnel counters turned into a
scale / test / kill verdict, best first.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..scoring.viability_scorer import Recommendation, ViabilityScore, ViabilityScorer
from ..storage.base import AnalyticsStore

logger = logging.getLogger(__name__)


@dataclass
class ViabilityReport:
    scores: List[ViabilityScore] = field(default_factory=list)

    @property
    def counts(self) -> Dict[str, int]:
        counts = {rec.value: 0 for rec in Recommendation}
        for score in self.scores:
            counts[score.recommendation.value] += 1
        return counts

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total": len(self.scores),
            "counts": self.counts,
            "scores": [score.to_dict() for score in self.scores],
        }


class ViabilityReporter:
    """Derives viability on read; nothing is persisted."""

    def __init__(self, analytics_store: AnalyticsStore, scorer: Optional[ViabilityScorer] = None):
        self.analytics_store = analytics_store
        self.scorer = scorer or ViabilityScorer()

    def evaluate(self, product_id: str) -> Optional[ViabilityScore]:
        """Viability of one product, None when it has no counters yet."""
        analytics = self.analytics_store.get_analytics(product_id)
        if analytics is None:
            return None
        return self.scorer.score_counters(analytics)

    def build(self) -> ViabilityReport:
        scores = [self.scorer.score_counters(row) for row in self.analytics_store.list_analytics()]
        scores.sort(key=lambda s: s.score, reverse=True)
        report = ViabilityReport(scores=scores)
        logger.info(f"Viability report: {len(scores)} products, {report.counts}")
        return report
