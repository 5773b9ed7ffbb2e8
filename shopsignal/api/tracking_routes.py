"""
Tracking API Routes
===================

Ingestion side: raw storefront interactions and funnel counter updates.

Endpoints:
    POST /api/tracking/interactions - classify and record one interaction
    POST /api/tracking/funnel       - increment a product's funnel counters
"""

import logging

from fastapi import APIRouter, Depends, HTTPException

from ..data.data_models import FunnelEvent
from ..orchestrator.services import Services
from ..storage.base import StoreError
from .dependencies import get_services
from .models import (
    FunnelRequest,
    FunnelResponse,
    InteractionKind,
    InteractionRequest,
    InteractionResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/tracking", tags=["Tracking"])

DURATION_KINDS = {
    InteractionKind.HOVER,
    InteractionKind.ADD_TO_CART_HOVER,
    InteractionKind.PRICE_HOVER,
    InteractionKind.TIME_ON_PAGE,
}


@router.post("/interactions", response_model=InteractionResponse)
def record_interaction(
    request: InteractionRequest,
    services: Services = Depends(get_services),
):
    """
    Classify a raw interaction.

    Interactions below their noise threshold are accepted but not recorded
    (recorded=false).
    """
    if request.kind in DURATION_KINDS and request.duration_ms is None:
        raise HTTPException(status_code=422, detail=f"duration_ms is required for {request.kind.value}")
    if request.kind == InteractionKind.SCROLL_DEPTH and request.max_percent is None:
        raise HTTPException(status_code=422, detail="max_percent is required for scroll_depth")
    if request.kind == InteractionKind.SIGNAL and not request.event_type:
        raise HTTPException(status_code=422, detail="event_type is required for signal")

    tracker = services.tracker_for(request.visitor_id)
    product_id = request.product_id

    try:
        if request.kind == InteractionKind.HOVER:
            event = tracker.classify_hover(product_id, request.duration_ms)
        elif request.kind == InteractionKind.ADD_TO_CART_HOVER:
            event = tracker.classify_add_to_cart_hover(product_id, request.duration_ms, request.did_click)
        elif request.kind == InteractionKind.PRICE_HOVER:
            event = tracker.classify_price_hover(product_id, request.duration_ms)
        elif request.kind == InteractionKind.TIME_ON_PAGE:
            event = tracker.classify_time_on_page(product_id, request.duration_ms)
        elif request.kind == InteractionKind.SCROLL_DEPTH:
            event = tracker.classify_scroll_depth(product_id, request.max_percent)
        elif request.kind == InteractionKind.PRODUCT_VIEW:
            event = tracker.record_product_view(product_id)
        else:
            event = tracker.track_signal(product_id, request.event_type, request.value, request.metadata)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except StoreError as e:
        logger.error(f"Failed to record interaction for {product_id}: {e}")
        raise HTTPException(status_code=503, detail="Event store unavailable")

    return InteractionResponse(
        recorded=event is not None,
        session_id=tracker.get_or_create_session_id(),
        event=event.to_dict() if event is not None else None,
    )


@router.post("/funnel", response_model=FunnelResponse)
def record_funnel_event(
    request: FunnelRequest,
    services: Services = Depends(get_services),
):
    """
    Count an impression or a click.

    The other counters move with the matching interest events recorded
    through /interactions.
    """
    try:
        row = services.counter.record(request.product_id, FunnelEvent(request.event.value))
    except StoreError as e:
        logger.error(f"Failed to update funnel counters for {request.product_id}: {e}")
        raise HTTPException(status_code=503, detail="Analytics store unavailable")

    return FunnelResponse(
        product_id=request.product_id,
        recorded=row is not None,
        analytics=row.to_dict() if row is not None else None,
    )
