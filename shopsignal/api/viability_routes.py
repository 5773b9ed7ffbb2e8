"""
Viability API Routes
====================

Endpoints:
    GET /api/viability              - Every product's verdict, best first
    GET /api/viability/{product_id} - One product's verdict
"""

from fastapi import APIRouter, Depends, HTTPException

from ..orchestrator.services import Services
from ..storage.base import StoreReadError
from .dependencies import get_services
from .models import ViabilityReportResponse, ViabilityScoreModel

router = APIRouter(prefix="/api/viability", tags=["Viability"])


@router.get("", response_model=ViabilityReportResponse)
def viability_report(services: Services = Depends(get_services)):
    try:
        report = services.viability.build()
    except StoreReadError as e:
        raise HTTPException(status_code=503, detail=str(e))
    return report.to_dict()


@router.get("/{product_id}", response_model=ViabilityScoreModel)
def product_viability(product_id: str, services: Services = Depends(get_services)):
    """404 until the product has funnel counters."""
    try:
        score = services.viability.evaluate(product_id)
    except StoreReadError as e:
        raise HTTPException(status_code=503, detail=str(e))
    if score is None:
        raise HTTPException(status_code=404, detail=f"No funnel data for {product_id}")
    return score.to_dict()
