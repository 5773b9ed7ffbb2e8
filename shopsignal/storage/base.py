"""
Shopsignal Store Interfaces
===========================

Boundaries between the scoring core and its persistence. The core only
needs:

    - EventStore: append events, read a product's events since a timestamp
    - ProductCatalog: list every product id
    - ScoreStore: atomic upsert of one score row per product
    - AnalyticsStore: atomic counter increments per product
    - SessionProfileStore: products viewed by a session

Implementations wrap their driver errors into StoreReadError /
StoreWriteError so callers can apply the read-aborts / write-isolates
policy without knowing the backend.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Dict, List, Optional

from ..data.data_models import InterestEvent, ProductAnalytics, SessionProfile
from ..scoring.interest_scorer import InterestScore


class StoreError(Exception):
    """Base exception for persistence failures."""
    pass


class StoreReadError(StoreError):
    """A read from the backing store failed."""
    pass


class StoreWriteError(StoreError):
    """A write to the backing store failed."""
    pass


class EventStore(ABC):
    """Append-only interest event log."""

    @abstractmethod
    def append(self, event: InterestEvent) -> InterestEvent:
        """Persist an event, returning it with its store id."""

    @abstractmethod
    def fetch_events(self, product_id: str, since: datetime) -> List[InterestEvent]:
        """Events of one product created at or after `since`."""

    @abstractmethod
    def recent_events(self, product_id: str, limit: int = 100) -> List[InterestEvent]:
        """Latest events of one product, newest first."""

    @abstractmethod
    def all_events(self, product_id: str) -> List[InterestEvent]:
        """Full history of one product."""


class ProductCatalog(ABC):
    """Read access to the product list."""

    @abstractmethod
    def fetch_all_product_ids(self) -> List[str]:
        """Every product id known to the storefront."""

    @abstractmethod
    def product_names(self) -> Dict[str, str]:
        """Mapping product id -> display name."""


class ScoreStore(ABC):
    """One InterestScore row per product, overwritten on each upsert."""

    @abstractmethod
    def upsert_score(self, score: InterestScore) -> None:
        """Insert or fully replace the row keyed by score.product_id."""

    @abstractmethod
    def get_score(self, product_id: str) -> Optional[InterestScore]:
        """Stored score of one product, None if never computed."""

    @abstractmethod
    def list_scores(self) -> List[InterestScore]:
        """All stored scores, highest interest_score first."""


class AnalyticsStore(ABC):
    """Monotonic funnel counters per product."""

    @abstractmethod
    def increment(self, product_id: str, deltas: Dict[str, float]) -> ProductAnalytics:
        """Atomically add deltas to the product's counters (row created if missing)."""

    @abstractmethod
    def get_analytics(self, product_id: str) -> Optional[ProductAnalytics]:
        """Counter row of one product."""

    @abstractmethod
    def list_analytics(self) -> List[ProductAnalytics]:
        """Every counter row."""


class SessionProfileStore(ABC):
    """Per-session record of viewed products."""

    @abstractmethod
    def get_profile(self, session_id: str) -> Optional[SessionProfile]:
        """Profile of a session, None if not created yet."""

    @abstractmethod
    def upsert_viewed_product(
        self,
        session_id: str,
        product_id: str,
        is_return_visitor: bool,
    ) -> SessionProfile:
        """
        Create the profile with this product, or append the product when new.

        is_return_visitor is only written when the profile is created.
        """
