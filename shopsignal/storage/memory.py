"""
In-memory stores.

Thread-safe implementations of every store interface, used for local
development (STORAGE_BACKEND=memory) and tests. Data lives for the
lifetime of the process.
"""

import copy
import threading
import uuid
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from ..data.data_models import (
    InterestEvent,
    ProductAnalytics,
    SessionProfile,
    ensure_utc,
    utcnow,
)
from ..scoring.interest_scorer import InterestScore
from .base import (
    AnalyticsStore,
    EventStore,
    ProductCatalog,
    ScoreStore,
    SessionProfileStore,
)


class MemoryEventStore(EventStore):
    """Append-only list of events guarded by a lock."""

    def __init__(self, events: Optional[Iterable[InterestEvent]] = None):
        self._lock = threading.Lock()
        self._events: List[InterestEvent] = []
        for event in events or []:
            self.append(event)

    def append(self, event: InterestEvent) -> InterestEvent:
        stored = event if event.id else event.with_id(str(uuid.uuid4()))
        with self._lock:
            self._events.append(stored)
        return stored

    def fetch_events(self, product_id: str, since: datetime) -> List[InterestEvent]:
        since = ensure_utc(since)
        with self._lock:
            return [
                e for e in self._events
                if e.product_id == product_id and ensure_utc(e.created_at) >= since
            ]

    def recent_events(self, product_id: str, limit: int = 100) -> List[InterestEvent]:
        events = self.all_events(product_id)
        events.sort(key=lambda e: ensure_utc(e.created_at), reverse=True)
        return events[:limit]

    def all_events(self, product_id: str) -> List[InterestEvent]:
        with self._lock:
            return [e for e in self._events if e.product_id == product_id]

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)


class MemoryProductCatalog(ProductCatalog):
    """Static product list."""

    def __init__(self, products: Optional[Dict[str, str]] = None):
        self._products: Dict[str, str] = dict(products or {})

    def add_product(self, product_id: str, name: str = "") -> None:
        self._products[product_id] = name

    def fetch_all_product_ids(self) -> List[str]:
        return list(self._products)

    def product_names(self) -> Dict[str, str]:
        return {pid: name for pid, name in self._products.items() if name}


class MemoryScoreStore(ScoreStore):
    """Dict keyed by product_id; last write wins."""

    def __init__(self):
        self._lock = threading.Lock()
        self._scores: Dict[str, InterestScore] = {}

    def upsert_score(self, score: InterestScore) -> None:
        with self._lock:
            self._scores[score.product_id] = copy.deepcopy(score)

    def get_score(self, product_id: str) -> Optional[InterestScore]:
        with self._lock:
            score = self._scores.get(product_id)
            return copy.deepcopy(score) if score else None

    def list_scores(self) -> List[InterestScore]:
        with self._lock:
            scores = [copy.deepcopy(s) for s in self._scores.values()]
        scores.sort(key=lambda s: s.interest_score, reverse=True)
        return scores


class MemoryAnalyticsStore(AnalyticsStore):
    """Counter rows updated under a lock so increments never interleave."""

    def __init__(self):
        self._lock = threading.Lock()
        self._rows: Dict[str, ProductAnalytics] = {}

    def increment(self, product_id: str, deltas: Dict[str, float]) -> ProductAnalytics:
        with self._lock:
            row = self._rows.get(product_id)
            if row is None:
                row = ProductAnalytics(product_id=product_id)
                self._rows[product_id] = row
            row.apply(deltas)
            return copy.deepcopy(row)

    def get_analytics(self, product_id: str) -> Optional[ProductAnalytics]:
        with self._lock:
            row = self._rows.get(product_id)
            return copy.deepcopy(row) if row else None

    def list_analytics(self) -> List[ProductAnalytics]:
        with self._lock:
            return [copy.deepcopy(r) for r in self._rows.values()]


class MemorySessionProfileStore(SessionProfileStore):
    """Session profiles keyed by session id."""

    def __init__(self):
        self._lock = threading.Lock()
        self._profiles: Dict[str, SessionProfile] = {}

    def get_profile(self, session_id: str) -> Optional[SessionProfile]:
        with self._lock:
            profile = self._profiles.get(session_id)
            return copy.deepcopy(profile) if profile else None

    def upsert_viewed_product(
        self,
        session_id: str,
        product_id: str,
        is_return_visitor: bool,
    ) -> SessionProfile:
        with self._lock:
            profile = self._profiles.get(session_id)
            if profile is None:
                profile = SessionProfile(
                    session_id=session_id,
                    products_viewed=[product_id],
                    is_return_visitor=is_return_visitor,
                    updated_at=utcnow(),
                )
                self._profiles[session_id] = profile
            elif product_id not in profile.products_viewed:
                profile.products_viewed.append(product_id)
                profile.updated_at = utcnow()
            return copy.deepcopy(profile)
