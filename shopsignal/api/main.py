"""
Shopsignal FastAPI Application
==============================

REST API of the storefront scoring core.

Endpoints:
    GET  /api/health                  - Health check
    POST /api/tracking/interactions   - Record a storefront interaction
    POST /api/tracking/funnel         - Increment funnel counters
    POST /api/interest/recalculate    - Recalculate all interest scores
    GET  /api/interest/...            - Scores, overview, insights, product stats
    GET  /api/viability[/{id}]        - Scale / test / kill verdicts

Usage:
    uvicorn shopsignal.api.main:app --reload --port 8000

    Or with CLI:
    python -m shopsignal.api.main
"""

from dotenv import load_dotenv
load_dotenv()

import logging
import os
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ..data.config import get_settings
from ..orchestrator.logging_config import setup_logging_from_config
from ..orchestrator.services import Services, build_services
from ..tracking.session_store import RedisSessionStore
from .dependencies import get_services, set_services
from .interest_routes import router as interest_router
from .models import HealthResponse
from .tracking_routes import router as tracking_router
from .viability_routes import router as viability_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    settings = get_settings()
    setup_logging_from_config(settings.logging)
    logger.info("Starting Shopsignal API...")

    services = build_services(settings)
    set_services(services)
    logger.info("Services initialized")

    yield

    set_services(None)
    services.close()
    logger.info("Shutting down Shopsignal API...")


app = FastAPI(
    title="Shopsignal API",
    description="Customer interest and product viability scoring",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS_ORIGINS: comma-separated extra origins for deployed storefronts
_default_origins = [
    "http://localhost:3000",
    "http://localhost:5173",
    "http://127.0.0.1:3000",
    "http://127.0.0.1:5173",
]
_extra_origins = os.getenv("CORS_ORIGINS", "")
if _extra_origins:
    _default_origins.extend([o.strip() for o in _extra_origins.split(",") if o.strip()])

app.add_middleware(
    CORSMiddleware,
    allow_origins=_default_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(tracking_router)
app.include_router(interest_router)
app.include_router(viability_router)


@app.get("/api/health", response_model=HealthResponse)
def health_check(services: Services = Depends(get_services)):
    """Backend in use and whether the session store fell back to memory."""
    session_store = services.session_store
    if isinstance(session_store, RedisSessionStore) and not session_store.is_memory_fallback:
        session_status = "redis"
    else:
        session_status = "memory"

    degraded = services.settings.storage_backend == "postgres" and session_status == "memory"

    return HealthResponse(
        status="degraded" if degraded else "healthy",
        version=services.settings.app_version,
        storage_backend=services.settings.storage_backend,
        session_store=session_status,
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "shopsignal.api.main:app",
        host=os.getenv("API_HOST", "0.0.0.0"),
        port=int(os.getenv("API_PORT", "8000")),
    )
