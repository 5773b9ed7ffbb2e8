"""
Interest API Routes
===================

Admin read models over the interest scores, plus the manual
"recalculate all" trigger.

Endpoints:
    POST /api/interest/recalculate             - Recalculate every product
    GET  /api/interest/scores                  - Scores, highest first
    GET  /api/interest/overview                - Counts per interest level
    GET  /api/interest/insights                - Up to five dashboard insights
    GET  /api/interest/products/{id}/stats     - Event aggregates by type
    GET  /api/interest/products/{id}/events    - Latest events
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from ..orchestrator.recalculation import RecalculationError
from ..orchestrator.services import Services
from ..scoring.insights import level_overview, product_event_stats
from ..storage.base import StoreReadError
from .dependencies import get_services
from .models import (
    EventListResponse,
    EventStatsResponse,
    InsightModel,
    InterestOverviewResponse,
    InterestScoreListResponse,
    RecalculationResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/interest", tags=["Customer Interest"])


@router.post("/recalculate", response_model=RecalculationResponse)
def recalculate(services: Services = Depends(get_services)):
    """
    Recalculate all interest scores.

    Returns 503 when events cannot be read; no score is modified then.
    """
    try:
        result = services.pipeline.run()
    except RecalculationError as e:
        logger.error(f"Manual recalculation aborted: {e}")
        raise HTTPException(status_code=503, detail=str(e))
    return result.to_dict()


@router.get("/scores", response_model=InterestScoreListResponse)
def list_scores(
    level: Optional[str] = Query(None, pattern="^(hot|warm|cool|cold)$", description="Filter by level"),
    limit: int = Query(100, ge=1, le=1000, description="Maximum scores returned"),
    services: Services = Depends(get_services),
):
    """Stored interest scores, highest interest_score first, with product names."""
    try:
        scores = services.score_store.list_scores()
        names = services.catalog.product_names()
    except StoreReadError as e:
        raise HTTPException(status_code=503, detail=str(e))

    if level:
        scores = [s for s in scores if s.interest_level.value == level]
    scores = scores[:limit]

    return {
        "scores": [
            {**s.to_dict(), "product_name": names.get(s.product_id)}
            for s in scores
        ],
        "total": len(scores),
    }


@router.get("/overview", response_model=InterestOverviewResponse)
def overview(services: Services = Depends(get_services)):
    """Number of products per interest level."""
    try:
        scores = services.score_store.list_scores()
    except StoreReadError as e:
        raise HTTPException(status_code=503, detail=str(e))
    return {"total": len(scores), "levels": level_overview(scores)}


@router.get("/insights", response_model=List[InsightModel])
def insights(services: Services = Depends(get_services)):
    """Dashboard insights derived from the stored scores."""
    try:
        scores = services.score_store.list_scores()
        names = services.catalog.product_names()
    except StoreReadError as e:
        raise HTTPException(status_code=503, detail=str(e))
    return [i.to_dict() for i in services.insights.generate(scores, names)]


@router.get("/products/{product_id}/stats", response_model=EventStatsResponse)
def product_stats(product_id: str, services: Services = Depends(get_services)):
    """Full-history event count and summed value per event type."""
    try:
        events = services.event_store.all_events(product_id)
    except StoreReadError as e:
        raise HTTPException(status_code=503, detail=str(e))
    return {
        "product_id": product_id,
        "total_events": len(events),
        "stats": product_event_stats(events),
    }


@router.get("/products/{product_id}/events", response_model=EventListResponse)
def product_events(
    product_id: str,
    limit: int = Query(100, ge=1, le=500, description="Maximum events returned"),
    services: Services = Depends(get_services),
):
    """Latest events of a product, newest first."""
    try:
        events = services.event_store.recent_events(product_id, limit=limit)
    except StoreReadError as e:
        raise HTTPException(status_code=503, detail=str(e))
    return {"product_id": product_id, "events": [e.to_dict() for e in events]}
