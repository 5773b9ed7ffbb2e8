"""
Shopsignal Data Models
======================

Dataclasses representing the behavioral telemetry consumed by the scoring
engines and the counter rows they are derived from.

Models:
    - InterestEvent: One classified interaction (immutable, append-only)
    - ProductAnalytics: Aggregated funnel counters per product
    - SessionProfile: Products viewed by one browsing session
    - FunnelEvent: Interactions that move the funnel counters
"""

import math
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, List, Dict, Any


class InterestEventType(Enum):
    """Closed set of interest signals emitted by the storefront."""
    HOVER = "hover"
    IMAGE_VIEW = "image_view"
    PRICE_FOCUS = "price_focus"
    DESCRIPTION_READ = "description_read"
    QUANTITY_CHANGE = "quantity_change"
    ADD_TO_CART_HOVER = "add_to_cart_hover"   # Hesitation signal
    RETURN_VISIT = "return_visit"
    TIME_ON_PAGE = "time_on_page"
    SCROLL_DEPTH = "scroll_depth"
    ADD_TO_CART = "add_to_cart"
    CHECKOUT_INTENT = "checkout_intent"
    COMPARISON_VIEW = "comparison_view"


class FunnelEvent(Enum):
    """Interactions that increment ProductAnalytics counters."""
    IMPRESSION = "impression"
    CLICK = "click"
    ADD_TO_CART = "add_to_cart"
    CHECKOUT_INTENT = "checkout_intent"
    TIME_ON_PAGE = "time_on_page"      # value in seconds
    SCROLL_DEPTH = "scroll_depth"      # value in percent


def utcnow() -> datetime:
    """Timezone-aware current UTC time."""
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC so ages can be compared safely."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def coerce_event_value(value: Any) -> float:
    """
    Convert a raw telemetry value to a float.

    Missing, non-numeric, NaN or infinite values become 0.0 so a noisy
    client can never break a scoring run.
    """
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(number) or math.isinf(number):
        return 0.0
    return number


def round_half_up(value: float) -> int:
    """Round .5 away from zero for positives, matching storefront rounding."""
    return int(math.floor(value + 0.5))


@dataclass(frozen=True)
class InterestEvent:
    """
    One classified interaction signal tied to a product and a session.

    event_type is kept as the raw string so that unknown types coming from
    newer clients survive storage and are simply weightless when scored.
    """
    session_id: str
    product_id: str
    event_type: str
    event_value: Any = 0
    metadata: Dict[str, Any] = field(default_factory=dict)
    created_at: datetime = field(default_factory=utcnow)
    id: Optional[str] = None

    @property
    def value(self) -> float:
        """Numeric value, malformed inputs coerced to 0."""
        return coerce_event_value(self.event_value)

    @property
    def known_type(self) -> Optional[InterestEventType]:
        """Enum member for the event type, None when unrecognized."""
        try:
            return InterestEventType(self.event_type)
        except ValueError:
            return None

    def with_id(self, event_id: str) -> "InterestEvent":
        """Copy of the event carrying its store identifier."""
        return replace(self, id=event_id)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-friendly dictionary."""
        return {
            "id": self.id,
            "session_id": self.session_id,
            "product_id": self.product_id,
            "event_type": self.event_type,
            "event_value": self.value,
            "metadata": dict(self.metadata),
            "created_at": ensure_utc(self.created_at).isoformat(),
        }


@dataclass
class ProductAnalytics:
    """
    Aggregated funnel counters for a product.

    Counters only ever grow by the deltas applied to them; they are never
    recomputed from history and never decay.
    """
    product_id: str
    impressions: int = 0
    clicks: int = 0
    add_to_cart_count: int = 0
    checkout_intents: int = 0
    total_time_on_page: float = 0.0
    total_scroll_depth: float = 0.0
    view_count: int = 0
    updated_at: Optional[datetime] = None

    COUNTER_FIELDS = (
        "impressions",
        "clicks",
        "add_to_cart_count",
        "checkout_intents",
        "total_time_on_page",
        "total_scroll_depth",
        "view_count",
    )

    def apply(self, deltas: Dict[str, float], at: Optional[datetime] = None) -> None:
        """Add each delta to its counter."""
        for name, delta in deltas.items():
            if name not in self.COUNTER_FIELDS:
                raise KeyError(f"Unknown analytics counter: {name}")
            setattr(self, name, getattr(self, name) + delta)
        self.updated_at = at or utcnow()

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "product_id": self.product_id,
            "impressions": self.impressions,
            "clicks": self.clicks,
            "add_to_cart_count": self.add_to_cart_count,
            "checkout_intents": self.checkout_intents,
            "total_time_on_page": self.total_time_on_page,
            "total_scroll_depth": self.total_scroll_depth,
            "view_count": self.view_count,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


@dataclass
class SessionProfile:
    """Products viewed during one browsing session."""
    session_id: str
    products_viewed: List[str] = field(default_factory=list)
    is_return_visitor: bool = False
    updated_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "session_id": self.session_id,
            "products_viewed": list(self.products_viewed),
            "is_return_visitor": self.is_return_visitor,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
