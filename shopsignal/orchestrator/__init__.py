"""
Shopsignal Orchestrator Module
==============================

Batch side of the scoring core.

Components:
    - RecalculationPipeline: "recalculate all" (read -> compute -> upsert)
    - ViabilityReporter: verdicts over every funnel counter row
    - RecalculationScheduler: APScheduler cron runner
    - build_services: backend wiring shared by the API and the CLI

Usage:
    from shopsignal.orchestrator import build_services

    services = build_services()
    result = services.pipeline.run()
"""

from .recalculation import (
    RecalculationPipeline,
    RecalculationResult,
    RecalculationStatus,
    RecalculationError,
)
from .viability_report import ViabilityReporter, ViabilityReport
from .scheduler import RecalculationScheduler, RunHistory
from .services import Services, build_services

__all__ = [
    "RecalculationPipeline",
    "RecalculationResult",
    "RecalculationStatus",
    "RecalculationError",
    "ViabilityReporter",
    "ViabilityReport",
    "RecalculationScheduler",
    "RunHistory",
    "Services",
    "build_services",
]
