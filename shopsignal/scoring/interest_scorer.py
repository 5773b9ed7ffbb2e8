"""
Shopsignal Interest Scorer - deterministic customer interest scoring.

Reduces the behavioral events recorded for one product over the trailing
window into a single 0-100 interest score, an interest level bucket and
secondary metrics (buyer confidence, hesitation).

PHILOSOPHY:
- Pure function of (events, now): no state, no I/O
- Every recalculation fully replaces the previous score; nothing is
  accumulated across runs
- Noisy telemetry never raises: malformed values count as 0, unknown
  event types weigh 0

FORMULA:
    contribution = weight(type) * normalized_value * exp(-0.1 * age_days)
    interest_score = min(round(sum(contributions) / 113 * 100), 100)

USAGE:
    from shopsignal.scoring import InterestScorer

    scorer = InterestScorer()
    result = scorer.score("prod-42", events)

    print(result.interest_score, result.interest_level.value)
"""

import math
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Dict, Iterable, List, Optional, Any

from ..data.data_models import InterestEvent, ensure_utc, round_half_up, utcnow
from .scoring_config import InterestScoringConfig, DEFAULT_INTEREST_CONFIG


MS_PER_DAY = 1000 * 60 * 60 * 24


class InterestLevel(Enum):
    """Interest bucket derived from the score."""
    HOT = "hot"
    WARM = "warm"
    COOL = "cool"
    COLD = "cold"


@dataclass
class InterestScore:
    """
    Interest score row for one product.

    One row per product_id; each recalculation overwrites it.
    buyer_confidence is NOT clamped: several add-to-cart
    events from the same session can push it above 100.
    """
    product_id: str
    interest_score: int
    interest_level: InterestLevel
    buyer_confidence: int
    hesitation_score: int
    unique_sessions: int
    return_visitors: int
    avg_time_on_page: int   # milliseconds
    total_hovers: int
    total_add_to_cart: int
    updated_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        """Row representation used by the score store and the API."""
        return {
            "product_id": self.product_id,
            "interest_score": self.interest_score,
            "interest_level": self.interest_level.value,
            "buyer_confidence": self.buyer_confidence,
            "hesitation_score": self.hesitation_score,
            "unique_sessions": self.unique_sessions,
            "return_visitors": self.return_visitors,
            "avg_time_on_page": self.avg_time_on_page,
            "total_hovers": self.total_hovers,
            "total_add_to_cart": self.total_add_to_cart,
            "updated_at": self.updated_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, row: Dict[str, Any]) -> "InterestScore":
        """Rebuild a score from a stored row."""
        updated_at = row.get("updated_at") or utcnow()
        if isinstance(updated_at, str):
            updated_at = datetime.fromisoformat(updated_at)
        return cls(
            product_id=str(row["product_id"]),
            interest_score=int(row["interest_score"]),
            interest_level=InterestLevel(row["interest_level"]),
            buyer_confidence=int(row.get("buyer_confidence") or 0),
            hesitation_score=int(row.get("hesitation_score") or 0),
            unique_sessions=int(row.get("unique_sessions") or 0),
            return_visitors=int(row.get("return_visitors") or 0),
            avg_time_on_page=int(row.get("avg_time_on_page") or 0),
            total_hovers=int(row.get("total_hovers") or 0),
            total_add_to_cart=int(row.get("total_add_to_cart") or 0),
            updated_at=ensure_utc(updated_at),
        )


class InterestScorer:
    """
    Interest scorer - 100% deterministic for a given `now`.

    Steps for each product:
    1. weight lookup (unknown type = 0)
    2. temporal decay from the event age
    3. value normalization per event type
    4. accumulation and scaling to the weight budget
    5. bucketing and secondary metrics
    """

    def __init__(self, config: Optional[InterestScoringConfig] = None):
        """
        Args:
            config: Scoring configuration. If None, uses DEFAULT_INTEREST_CONFIG.
        """
        self.config = config or DEFAULT_INTEREST_CONFIG
        self.config.validate()

    # =========================================================================
    # SIGNAL PRIMITIVES
    # =========================================================================

    def weight_for(self, event_type: str) -> int:
        """Signal weight, 0 for unrecognized types."""
        return self.config.signal_weights.get(event_type, 0)

    def calculate_decay(self, created_at: datetime, now: Optional[datetime] = None) -> float:
        """
        Exponential decay factor for an event.

        Age is measured in fractional days, not floored.
        """
        now = ensure_utc(now or utcnow())
        age_ms = (now - ensure_utc(created_at)).total_seconds() * 1000
        days_old = age_ms / MS_PER_DAY
        return math.exp(-self.config.decay_rate * days_old)

    def normalize_value(self, event: InterestEvent) -> float:
        """Map the raw event value into [0, 1] for the types that carry one."""
        value = event.value
        if event.event_type == "time_on_page":
            return min(value / self.config.time_on_page_cap_ms, 1)
        if event.event_type == "scroll_depth":
            return value / self.config.scroll_depth_scale
        if event.event_type == "hover":
            return min(value / self.config.hover_cap_ms, 1)
        return 1.0

    def event_contribution(self, event: InterestEvent, now: Optional[datetime] = None) -> float:
        """weight * normalized value * decay for one event."""
        weight = self.weight_for(event.event_type)
        if weight == 0:
            return 0.0
        return weight * self.normalize_value(event) * self.calculate_decay(event.created_at, now)

    def accumulate(self, events: Iterable[InterestEvent], now: Optional[datetime] = None) -> float:
        """Raw (unscaled) total of every event contribution."""
        now = ensure_utc(now or utcnow())
        return sum(self.event_contribution(event, now) for event in events)

    def scale(self, total_score: float) -> int:
        """Scale a raw total to the 0-100 weight-budget utilization."""
        ratio = total_score / self.config.max_possible_score
        return min(round_half_up(ratio * 100), self.config.max_score)

    def level_for(self, interest_score: int) -> InterestLevel:
        """Bucket a score (inclusive lower bounds)."""
        for minimum, level in self.config.level_thresholds:
            if interest_score >= minimum:
                return InterestLevel(level)
        return InterestLevel.COLD

    # =========================================================================
    # MAIN METHOD
    # =========================================================================

    def score(
        self,
        product_id: str,
        events: Iterable[InterestEvent],
        now: Optional[datetime] = None,
    ) -> InterestScore:
        """
        Compute the full interest score of one product.

        Args:
            product_id: Product the events belong to
            events: Events already restricted to the lookback window
            now: Reference time for decay (defaults to current UTC time)

        Returns:
            InterestScore, always fully populated (empty input = cold, zeros).
        """
        now = ensure_utc(now or utcnow())
        events: List[InterestEvent] = list(events)

        total_score = 0.0
        hesitation_events = 0
        add_to_cart_count = 0
        total_time_on_page = 0.0
        hover_count = 0
        unique_sessions = set()
        return_visitors = set()

        for event in events:
            unique_sessions.add(event.session_id)
            total_score += self.event_contribution(event, now)

            if event.event_type == "time_on_page":
                total_time_on_page += event.value
            elif event.event_type == "hover":
                hover_count += 1
            elif event.event_type == self.config.hesitation_event_type:
                hesitation_events += 1
            elif event.event_type == "add_to_cart":
                add_to_cart_count += 1
            elif event.event_type == "return_visit":
                return_visitors.add(event.session_id)

        interest_score = self.scale(total_score)
        session_count = len(unique_sessions)

        buyer_confidence = (
            round_half_up(add_to_cart_count / session_count * 100)
            if session_count > 0 else 0
        )
        hesitation_score = (
            round_half_up(hesitation_events / len(events) * 100)
            if events else 0
        )
        avg_time_on_page = (
            round_half_up(total_time_on_page / session_count)
            if session_count > 0 else 0
        )

        return InterestScore(
            product_id=product_id,
            interest_score=interest_score,
            interest_level=self.level_for(interest_score),
            buyer_confidence=buyer_confidence,
            hesitation_score=hesitation_score,
            unique_sessions=session_count,
            return_visitors=len(return_visitors),
            avg_time_on_page=avg_time_on_page,
            total_hovers=hover_count,
            total_add_to_cart=add_to_cart_count,
            updated_at=now,
        )
