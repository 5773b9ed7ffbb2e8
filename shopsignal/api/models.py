"""
Shopsignal API Models
=====================

Pydantic models for API request/response serialization.
Breakdown keys keep the dashboard's camelCase naming.
"""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class InteractionKind(str, Enum):
    """Raw storefront interaction reported by the client."""
    HOVER = "hover"
    ADD_TO_CART_HOVER = "add_to_cart_hover"
    PRICE_HOVER = "price_hover"
    TIME_ON_PAGE = "time_on_page"
    SCROLL_DEPTH = "scroll_depth"
    PRODUCT_VIEW = "product_view"
    SIGNAL = "signal"


class FunnelEventEnum(str, Enum):
    """
    Funnel events reported directly by the storefront.

    add_to_cart, checkout_intent, time_on_page and scroll_depth are fed
    from interest events only, so each counter has a single source.
    """
    IMPRESSION = "impression"
    CLICK = "click"


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    version: str
    storage_backend: str
    session_store: str


# ============================================================================
# TRACKING
# ============================================================================

class InteractionRequest(BaseModel):
    """
    One raw interaction.

    duration_ms is required for the hover / time kinds, max_percent for
    scroll_depth, event_type for signal.
    """
    visitor_id: str = Field(..., min_length=1, max_length=128)
    product_id: str = Field(..., min_length=1, max_length=128)
    kind: InteractionKind
    duration_ms: Optional[float] = Field(None, ge=0)
    did_click: bool = False
    max_percent: Optional[float] = Field(None, ge=0, le=100)
    event_type: Optional[str] = None
    value: float = 1
    metadata: Dict[str, Any] = Field(default_factory=dict)


class InterestEventModel(BaseModel):
    """Stored interest event."""
    id: Optional[str] = None
    session_id: str
    product_id: str
    event_type: str
    event_value: float
    metadata: Dict[str, Any] = Field(default_factory=dict)
    created_at: str


class InteractionResponse(BaseModel):
    """Outcome of an interaction: recorded=False when it was filtered as noise."""
    recorded: bool
    session_id: str
    event: Optional[InterestEventModel] = None


class FunnelRequest(BaseModel):
    """Funnel counter increment."""
    product_id: str = Field(..., min_length=1, max_length=128)
    event: FunnelEventEnum


class ProductAnalyticsModel(BaseModel):
    """Funnel counters of one product."""
    product_id: str
    impressions: int
    clicks: int
    add_to_cart_count: int
    checkout_intents: int
    total_time_on_page: float
    total_scroll_depth: float
    view_count: int
    updated_at: Optional[str] = None


class FunnelResponse(BaseModel):
    """Outcome of a funnel increment."""
    product_id: str
    recorded: bool
    analytics: Optional[ProductAnalyticsModel] = None


# ============================================================================
# INTEREST
# ============================================================================

class InterestScoreModel(BaseModel):
    """Interest score row."""
    product_id: str
    product_name: Optional[str] = None
    interest_score: int
    interest_level: str
    buyer_confidence: int
    hesitation_score: int
    unique_sessions: int
    return_visitors: int
    avg_time_on_page: int
    total_hovers: int
    total_add_to_cart: int
    updated_at: str


class InterestScoreListResponse(BaseModel):
    """Scores, highest interest first."""
    scores: List[InterestScoreModel]
    total: int


class RecalculationResponse(BaseModel):
    """Result of a manual recalculation."""
    run_id: str
    status: str
    processed: int
    failed: int
    summary: Dict[str, int]
    errors: List[Dict[str, Any]] = Field(default_factory=list)
    duration: Optional[float] = None


class InterestOverviewResponse(BaseModel):
    """Score counts per interest level."""
    total: int
    levels: Dict[str, int]


class InsightModel(BaseModel):
    """Dashboard insight."""
    type: str
    title: str
    description: str
    product_id: Optional[str] = None


class EventStatsResponse(BaseModel):
    """Per-type event aggregates of one product."""
    product_id: str
    total_events: int
    stats: Dict[str, Dict[str, float]]


class EventListResponse(BaseModel):
    """Latest events of one product, newest first."""
    product_id: str
    events: List[InterestEventModel]


# ============================================================================
# VIABILITY
# ============================================================================

class ViabilityBreakdownModel(BaseModel):
    """Rounded component scores."""
    ctrScore: int
    addToCartScore: int
    checkoutScore: int
    engagementScore: int
    priceToleranceScore: int


class ViabilityScoreModel(BaseModel):
    """Viability verdict of one product."""
    product_id: str
    score: int
    recommendation: str
    breakdown: ViabilityBreakdownModel
    explanation: str


class ViabilityReportResponse(BaseModel):
    """Every product's verdict, best first."""
    total: int
    counts: Dict[str, int]
    scores: List[ViabilityScoreModel]
