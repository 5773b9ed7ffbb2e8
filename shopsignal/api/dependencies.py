"""
FastAPI dependencies.

The service container is built once by the application lifespan; routes
receive it through Depends(get_services) so tests can swap it with
app.dependency_overrides.
"""

from typing import Optional

from fastapi import HTTPException

from ..orchestrator.services import Services

_services: Optional[Services] = None


def set_services(services: Optional[Services]) -> None:
    global _services
    _services = services


def get_services() -> Services:
    if _services is None:
        raise HTTPException(status_code=503, detail="Services not initialized")
    return _services
