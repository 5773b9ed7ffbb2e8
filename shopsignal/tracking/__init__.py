"""
Shopsignal Tracking Module
==========================

Session handling, interaction classification and funnel counters.

Components:
    - SessionTracker: classifies raw interactions into InterestEvents
    - EventRecorder: persists emitted events and their side effects
    - AnalyticsCounter: increments ProductAnalytics counters
    - SessionStore implementations: memory, Redis, namespaced
"""

from .session_store import (
    SessionStore,
    MemorySessionStore,
    RedisSessionStore,
    NamespacedSessionStore,
)
from .counters import AnalyticsCounter, deltas_for
from .session_tracker import SessionTracker, EventRecorder, UNTIMED_SIGNALS

__all__ = [
    "SessionStore",
    "MemorySessionStore",
    "RedisSessionStore",
    "NamespacedSessionStore",
    "AnalyticsCounter",
    "deltas_for",
    "SessionTracker",
    "EventRecorder",
    "UNTIMED_SIGNALS",
]
