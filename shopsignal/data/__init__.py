"""
Shopsignal Data Module
======================

Telemetry models and environment-driven configuration.

Usage:
    from shopsignal.data import InterestEvent, get_settings

    settings = get_settings()
"""

from .data_models import (
    InterestEvent,
    InterestEventType,
    FunnelEvent,
    ProductAnalytics,
    SessionProfile,
    coerce_event_value,
    round_half_up,
    utcnow,
)
from .config import Settings, get_settings

__all__ = [
    "InterestEvent",
    "InterestEventType",
    "FunnelEvent",
    "ProductAnalytics",
    "SessionProfile",
    "coerce_event_value",
    "round_half_up",
    "utcnow",
    "Settings",
    "get_settings",
]
