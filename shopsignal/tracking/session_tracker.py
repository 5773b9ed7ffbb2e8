"""
Shopsignal Session Tracker
==========================

Turns raw storefront interactions into well-formed InterestEvents.

Noise filtering (strictly greater than the threshold, otherwise silently
dropped):
    - hover on a product card        > 2000 ms
    - hover on add-to-cart, no click > 1000 ms  (hesitation)
    - hover on the price             > 1500 ms
    - time on page                   > 5000 ms
    - max scroll depth               > 25 %

Every emitted event is handed to the EventRecorder, which appends it to
the event store, upserts the session profile and feeds the funnel
counters.

Usage:
    tracker = SessionTracker(
        session_storage=MemorySessionStore(),
        durable_storage=MemorySessionStore(),
        recorder=EventRecorder(event_store, profile_store),
    )
    tracker.classify_hover("prod-1", 2400)
"""

import logging
import time
import uuid
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Union

from ..data.data_models import InterestEvent, InterestEventType, utcnow
from ..storage.base import EventStore, SessionProfileStore, StoreError
from .counters import AnalyticsCounter
from .session_store import SessionStore

logger = logging.getLogger(__name__)


# Signals recorded as soon as they happen, without a duration threshold
UNTIMED_SIGNALS = frozenset({
    InterestEventType.IMAGE_VIEW,
    InterestEventType.DESCRIPTION_READ,
    InterestEventType.QUANTITY_CHANGE,
    InterestEventType.ADD_TO_CART,
    InterestEventType.CHECKOUT_INTENT,
    InterestEventType.COMPARISON_VIEW,
})


class EventRecorder:
    """
    Persistence side effect of an emitted event.

    The event append is the only mandatory write and propagates its
    StoreWriteError. Profile and counter updates are best effort: the event
    is already stored, so their failures are logged and swallowed.
    """

    def __init__(
        self,
        event_store: EventStore,
        profile_store: Optional[SessionProfileStore] = None,
        counter: Optional[AnalyticsCounter] = None,
    ):
        self.event_store = event_store
        self.profile_store = profile_store
        self.counter = counter

    def record(self, event: InterestEvent, is_return_visitor: bool = False) -> InterestEvent:
        stored = self.event_store.append(event)
        log_extra = {"event_type": event.event_type, "product_id": event.product_id}

        if self.profile_store is not None:
            try:
                self.profile_store.upsert_viewed_product(
                    event.session_id, event.product_id, is_return_visitor
                )
            except StoreError as e:
                logger.warning(
                    f"Session profile update failed for {event.session_id}: {e}",
                    extra=log_extra,
                )

        if self.counter is not None:
            try:
                self.counter.record_interest_event(event)
            except StoreError as e:
                logger.warning(f"Counter update failed for {event.product_id}: {e}", extra=log_extra)

        return stored


class SessionTracker:
    """
    Classifier for one visitor.

    session_storage and durable_storage replace browser sessionStorage and
    localStorage; both are injected so the tracker holds no global state.
    """

    SESSION_ID_KEY = "interest_session_id"
    VIEWED_PRODUCTS_KEY = "viewed_products"

    HOVER_MIN_MS = 2000
    ADD_TO_CART_HOVER_MIN_MS = 1000
    PRICE_HOVER_MIN_MS = 1500
    TIME_ON_PAGE_MIN_MS = 5000
    SCROLL_DEPTH_MIN_PERCENT = 25

    def __init__(
        self,
        session_storage: SessionStore,
        durable_storage: SessionStore,
        recorder: Optional[EventRecorder] = None,
        clock: Callable[[], datetime] = utcnow,
        session_ttl_seconds: Optional[int] = None,
    ):
        self.session_storage = session_storage
        self.durable_storage = durable_storage
        self.recorder = recorder
        self.clock = clock
        self.session_ttl_seconds = session_ttl_seconds

    # =========================================================================
    # SESSION & RETURN VISITS
    # =========================================================================

    def get_or_create_session_id(self) -> str:
        """
        Stable id for the current browsing session, created on first use.

        Every call rewrites the id so its TTL slides: the session only
        expires after session_ttl_seconds without activity.
        """
        session_id = self.session_storage.get(self.SESSION_ID_KEY)
        if not session_id:
            session_id = f"session_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"
        self.session_storage.set(
            self.SESSION_ID_KEY, session_id, ttl_seconds=self.session_ttl_seconds
        )
        return session_id

    def viewed_products(self) -> List[str]:
        return list(self.durable_storage.get(self.VIEWED_PRODUCTS_KEY) or [])

    def add_viewed_product(self, product_id: str) -> None:
        """Remember a product as viewed. Idempotent; entries are never removed."""
        viewed = self.viewed_products()
        if product_id not in viewed:
            viewed.append(product_id)
            self.durable_storage.set(self.VIEWED_PRODUCTS_KEY, viewed)

    def is_return_visitor(self, product_id: str) -> bool:
        return product_id in self.viewed_products()

    def record_product_view(self, product_id: str) -> Optional[InterestEvent]:
        """
        Register a product page view.

        Emits a return_visit when the product was viewed before, then marks
        it viewed for future visits.
        """
        event = None
        if self.is_return_visitor(product_id):
            event = self._emit(product_id, InterestEventType.RETURN_VISIT, 1)
        self.add_viewed_product(product_id)
        return event

    # =========================================================================
    # CLASSIFIERS
    # =========================================================================

    def classify_hover(self, product_id: str, duration_ms: float) -> Optional[InterestEvent]:
        if duration_ms > self.HOVER_MIN_MS:
            return self._emit(
                product_id, InterestEventType.HOVER, duration_ms,
                metadata={"source": "product_card"},
            )
        return None

    def classify_add_to_cart_hover(
        self,
        product_id: str,
        duration_ms: float,
        did_click: bool,
    ) -> Optional[InterestEvent]:
        """Hesitation = prolonged hover on add-to-cart that did not convert."""
        if not did_click and duration_ms > self.ADD_TO_CART_HOVER_MIN_MS:
            return self._emit(
                product_id, InterestEventType.ADD_TO_CART_HOVER, duration_ms,
                metadata={"hesitation": True},
            )
        return None

    def classify_price_hover(self, product_id: str, duration_ms: float) -> Optional[InterestEvent]:
        if duration_ms > self.PRICE_HOVER_MIN_MS:
            return self._emit(product_id, InterestEventType.PRICE_FOCUS, duration_ms)
        return None

    def classify_time_on_page(self, product_id: str, duration_ms: float) -> Optional[InterestEvent]:
        if duration_ms > self.TIME_ON_PAGE_MIN_MS:
            return self._emit(product_id, InterestEventType.TIME_ON_PAGE, duration_ms)
        return None

    def classify_scroll_depth(self, product_id: str, max_percent: float) -> Optional[InterestEvent]:
        if max_percent > self.SCROLL_DEPTH_MIN_PERCENT:
            return self._emit(product_id, InterestEventType.SCROLL_DEPTH, max_percent)
        return None

    def track_signal(
        self,
        product_id: str,
        event_type: Union[InterestEventType, str],
        value: float = 1,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> InterestEvent:
        """
        Emit an untimed signal (image view, description read, quantity
        change, add to cart, checkout intent, comparison view).

        Raises:
            ValueError: for types that must go through a classifier
        """
        event_type = InterestEventType(event_type)
        if event_type not in UNTIMED_SIGNALS:
            raise ValueError(f"'{event_type.value}' is not an untimed signal")
        return self._emit(product_id, event_type, value, metadata=metadata)

    # =========================================================================
    # EMISSION
    # =========================================================================

    def _emit(
        self,
        product_id: str,
        event_type: InterestEventType,
        value: float,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> InterestEvent:
        event = InterestEvent(
            session_id=self.get_or_create_session_id(),
            product_id=product_id,
            event_type=event_type.value,
            event_value=value,
            metadata=dict(metadata or {}),
            created_at=self.clock(),
        )
        if self.recorder is not None:
            event = self.recorder.record(
                event, is_return_visitor=len(self.viewed_products()) > 0
            )
        logger.debug(
            f"Emitted {event.event_type} for {product_id} (value={event.value})",
            extra={"event_type": event.event_type, "product_id": product_id},
        )
        return event
