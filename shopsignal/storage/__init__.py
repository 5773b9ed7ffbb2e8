"""
Shopsignal Storage Module
=========================

Persistence boundaries of the scoring core.

Usage:
    from shopsignal.storage import MemoryEventStore, MemoryScoreStore

    events = MemoryEventStore()
    scores = MemoryScoreStore()

The PostgreSQL implementation lives in shopsignal.storage.postgres.
"""

from .base import (
    StoreError,
    StoreReadError,
    StoreWriteError,
    EventStore,
    ProductCatalog,
    ScoreStore,
    AnalyticsStore,
    SessionProfileStore,
)
from .memory import (
    MemoryEventStore,
    MemoryProductCatalog,
    MemoryScoreStore,
    MemoryAnalyticsStore,
    MemorySessionProfileStore,
)

__all__ = [
    "StoreError",
    "StoreReadError",
    "StoreWriteError",
    "EventStore",
    "ProductCatalog",
    "ScoreStore",
    "AnalyticsStore",
    "SessionProfileStore",
    "MemoryEventStore",
    "MemoryProductCatalog",
    "MemoryScoreStore",
    "MemoryAnalyticsStore",
    "MemorySessionProfileStore",
]
