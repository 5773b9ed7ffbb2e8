"""
Service wiring shared by the API, the CLI and the cron script.

build_services() picks the storage backend from STORAGE_BACKEND:
    - postgres: one PostgresStore behind every store interface, Redis
      session store (memory fallback when Redis is down)
    - memory: in-process stores, for local development and tests
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, List, Optional

from ..data.config import Settings, get_settings
from ..scoring.insights import InsightGenerator
from ..scoring.interest_scorer import InterestScorer
from ..scoring.scoring_config import InterestScoringConfig
from ..storage.base import (
    AnalyticsStore,
    EventStore,
    ProductCatalog,
    ScoreStore,
    SessionProfileStore,
)
from ..storage.memory import (
    MemoryAnalyticsStore,
    MemoryEventStore,
    MemoryProductCatalog,
    MemoryScoreStore,
    MemorySessionProfileStore,
)
from ..storage.postgres import PostgresStore
from ..tracking.counters import AnalyticsCounter
from ..tracking.session_store import (
    MemorySessionStore,
    NamespacedSessionStore,
    RedisSessionStore,
    SessionStore,
)
from ..tracking.session_tracker import EventRecorder, SessionTracker
from .recalculation import RecalculationPipeline
from .viability_report import ViabilityReporter

logger = logging.getLogger(__name__)


@dataclass
class Services:
    """Everything a request or a command needs, built once per process."""
    settings: Settings
    event_store: EventStore
    catalog: ProductCatalog
    score_store: ScoreStore
    analytics_store: AnalyticsStore
    profile_store: SessionProfileStore
    session_store: SessionStore
    pipeline: RecalculationPipeline
    viability: ViabilityReporter
    counter: AnalyticsCounter
    recorder: EventRecorder
    insights: InsightGenerator
    closers: Optional[List[Callable[[], Any]]] = None

    def tracker_for(self, visitor_id: str) -> SessionTracker:
        """
        Tracker of one visitor.

        The visitor id is opaque; it only namespaces the session and durable
        keys on the shared session store.
        """
        return SessionTracker(
            session_storage=NamespacedSessionStore(self.session_store, f"visitor:{visitor_id}:session"),
            durable_storage=NamespacedSessionStore(self.session_store, f"visitor:{visitor_id}:durable"),
            recorder=self.recorder,
            session_ttl_seconds=self.settings.redis.session_ttl_seconds,
        )

    def close(self):
        for closer in self.closers or []:
            closer()


def build_services(settings: Optional[Settings] = None) -> Services:
    """
    Build the service container for the configured backend.

    Raises:
        StoreWriteError: if the PostgreSQL schema cannot be created
    """
    settings = settings or get_settings()
    closers = []

    if settings.storage_backend == "memory":
        event_store = MemoryEventStore()
        catalog = MemoryProductCatalog()
        score_store = MemoryScoreStore()
        analytics_store = MemoryAnalyticsStore()
        profile_store = MemorySessionProfileStore()
        session_store: SessionStore = MemorySessionStore()
    else:
        store = PostgresStore(settings.database)
        store.ensure_schema()
        closers.append(store.close)
        event_store = catalog = score_store = analytics_store = profile_store = store
        session_store = RedisSessionStore(settings.redis)

    counter = AnalyticsCounter(analytics_store)
    logger.info(f"Services built: backend={settings.storage_backend}")

    return Services(
        settings=settings,
        event_store=event_store,
        catalog=catalog,
        score_store=score_store,
        analytics_store=analytics_store,
        profile_store=profile_store,
        session_store=session_store,
        pipeline=RecalculationPipeline(
            event_store,
            catalog,
            score_store,
            scorer=InterestScorer(InterestScoringConfig(
                decay_rate=settings.scoring.decay_rate,
                lookback_days=settings.scoring.lookback_days,
            )),
            lookback_days=settings.scoring.lookback_days,
            max_workers=settings.scoring.max_workers,
        ),
        viability=ViabilityReporter(analytics_store),
        counter=counter,
        recorder=EventRecorder(event_store, profile_store, counter),
        insights=InsightGenerator(),
        closers=closers,
    )
