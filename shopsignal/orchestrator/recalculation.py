"""
Shopsignal Interest Recalculation
=================================

"Recalculate all": replays the trailing window of events of every product
and overwrites its InterestScore row.

Phases (strictly ordered):
    1. READ     product ids, then each product's events since the window
                start. Any failure aborts the run before a single write.
    2. COMPUTE  one InterestScore per product (pure, parallel).
    3. WRITE    one upsert per product (parallel). A failed upsert is
                logged and isolated; the remaining products still land.

Events appended while the run is in flight are picked up by the next run.

Usage:
    from shopsignal.orchestrator.recalculation import RecalculationPipeline

    pipeline = RecalculationPipeline(event_store, catalog, score_store)
    pipeline.subscribe(lambda result: print(result.summary))
    result = pipeline.run()
"""

import logging
import time
import uuid
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from ..data.config import get_settings
from ..data.data_models import InterestEvent, ensure_utc, utcnow
from ..scoring.insights import level_overview
from ..scoring.interest_scorer import InterestScore, InterestScorer
from ..scoring.scoring_config import InterestScoringConfig
from ..storage.base import EventStore, ProductCatalog, ScoreStore, StoreError

logger = logging.getLogger(__name__)


class RecalculationError(Exception):
    """The read phase failed; nothing was written."""
    pass


class RecalculationStatus(Enum):
    """Outcome of a completed run."""
    COMPLETED = "completed"
    PARTIAL_FAILURE = "partial_failure"


@dataclass
class RecalculationResult:
    """Report of one recalculation run."""
    run_id: str
    status: RecalculationStatus
    started_at: datetime
    completed_at: Optional[datetime] = None
    processed: int = 0
    failed: int = 0
    summary: Dict[str, int] = field(default_factory=dict)
    errors: List[Dict[str, Any]] = field(default_factory=list)
    scores: List[InterestScore] = field(default_factory=list)

    @property
    def duration_seconds(self) -> Optional[float]:
        if self.completed_at is None:
            return None
        return (self.completed_at - self.started_at).total_seconds()

    def add_error(self, product_id: str, message: str):
        self.errors.append({
            "product_id": product_id,
            "message": message,
            "timestamp": utcnow().isoformat(),
        })

    def to_dict(self) -> Dict[str, Any]:
        return {
            "run_id": self.run_id,
            "status": self.status.value,
            "processed": self.processed,
            "failed": self.failed,
            "summary": dict(self.summary),
            "errors": list(self.errors),
            "duration": self.duration_seconds,
        }


Subscriber = Callable[[RecalculationResult], None]


def scorer_from_settings() -> InterestScorer:
    """InterestScorer using INTEREST_DECAY_RATE / INTEREST_LOOKBACK_DAYS."""
    scoring = get_settings().scoring
    return InterestScorer(
        InterestScoringConfig(decay_rate=scoring.decay_rate, lookback_days=scoring.lookback_days)
    )


class RecalculationPipeline:
    """
    Batch read -> compute -> write of every product's interest score.

    Subscribers registered with subscribe() receive the result after each
    successful run (dashboards use this to refresh instead of polling).
    """

    def __init__(
        self,
        event_store: EventStore,
        catalog: ProductCatalog,
        score_store: ScoreStore,
        scorer: Optional[InterestScorer] = None,
        lookback_days: Optional[int] = None,
        max_workers: Optional[int] = None,
    ):
        """
        Args:
            event_store: Source of interest events
            catalog: Source of product ids
            score_store: Destination of the score rows
            scorer: Interest scorer (built from settings.scoring if None)
            lookback_days: Trailing window (default: settings.scoring.lookback_days)
            max_workers: Thread pool size (default: settings.scoring.max_workers)
        """
        self.event_store = event_store
        self.catalog = catalog
        self.score_store = score_store
        self.scorer = scorer or scorer_from_settings()
        self.lookback_days = lookback_days or self.scorer.config.lookback_days
        self.max_workers = max_workers or get_settings().scoring.max_workers
        self._subscribers: List[Subscriber] = []

    # =========================================================================
    # SUBSCRIPTIONS
    # =========================================================================

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register a callback; returns a function that unregisters it."""
        self._subscribers.append(callback)

        def unsubscribe():
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def _notify(self, result: RecalculationResult) -> None:
        for callback in list(self._subscribers):
            try:
                callback(result)
            except Exception as e:
                logger.exception(f"Recalculation subscriber failed: {e}", extra={"run_id": result.run_id})

    # =========================================================================
    # SINGLE PRODUCT
    # =========================================================================

    def window_start(self, now: datetime) -> datetime:
        return now - timedelta(days=self.lookback_days)

    def recalculate_product(self, product_id: str, now: Optional[datetime] = None) -> InterestScore:
        """
        Read, score and upsert one product.

        Raises:
            StoreReadError / StoreWriteError from the stores
        """
        now = ensure_utc(now or utcnow())
        events = self.event_store.fetch_events(product_id, self.window_start(now))
        score = self.scorer.score(product_id, events, now=now)
        self.score_store.upsert_score(score)
        return score

    # =========================================================================
    # RECALCULATE ALL
    # =========================================================================

    def run(self, now: Optional[datetime] = None) -> RecalculationResult:
        """
        Recalculate every product.

        Args:
            now: Reference time for the window and decay (default: now, UTC)

        Returns:
            RecalculationResult with per-level summary

        Raises:
            RecalculationError: if the product list or any event fetch fails
        """
        now = ensure_utc(now or utcnow())
        run_id = str(uuid.uuid4())
        result = RecalculationResult(
            run_id=run_id,
            status=RecalculationStatus.COMPLETED,
            started_at=utcnow(),
        )
        log_extra = {"run_id": run_id}
        timer = time.monotonic()

        logger.info(f"=== Starting interest recalculation (run_id={run_id}) ===", extra=log_extra)

        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            # PHASE 1: READ
            snapshot = self._read_snapshot(executor, now, run_id)

            # PHASE 2: COMPUTE
            scores = list(executor.map(
                lambda item: self.scorer.score(item[0], item[1], now=now),
                snapshot.items(),
            ))
            logger.info(f"Calculated {len(scores)} scores, upserting...", extra=log_extra)

            # PHASE 3: WRITE
            outcomes = list(executor.map(self._upsert, scores))

        for score, error in zip(scores, outcomes):
            if error is not None:
                result.failed += 1
                result.add_error(score.product_id, error)

        result.scores = scores
        result.processed = len(scores)
        result.summary = level_overview(scores)
        result.completed_at = utcnow()
        if result.failed:
            result.status = RecalculationStatus.PARTIAL_FAILURE
            logger.warning(
                f"Recalculation finished with {result.failed} failed upserts",
                extra=log_extra,
            )

        logger.info(
            f"=== Recalculation Complete ===\n"
            f"  Run ID: {run_id}\n"
            f"  Status: {result.status.value}\n"
            f"  Processed: {result.processed}\n"
            f"  Summary: {result.summary}",
            extra={**log_extra, "duration": round(time.monotonic() - timer, 3)},
        )

        self._notify(result)
        return result

    def _read_snapshot(
        self,
        executor: ThreadPoolExecutor,
        now: datetime,
        run_id: str,
    ) -> Dict[str, List[InterestEvent]]:
        since = self.window_start(now)
        try:
            product_ids = self.catalog.fetch_all_product_ids()
            events = list(executor.map(
                lambda product_id: self.event_store.fetch_events(product_id, since),
                product_ids,
            ))
        except StoreError as e:
            logger.error(f"Recalculation aborted, read failed: {e}", extra={"run_id": run_id})
            raise RecalculationError(f"Failed to read events: {e}") from e

        logger.info(
            f"Read {sum(len(batch) for batch in events)} events for {len(product_ids)} products "
            f"since {since.isoformat()}",
            extra={"run_id": run_id},
        )
        return dict(zip(product_ids, events))

    def _upsert(self, score: InterestScore) -> Optional[str]:
        """Upsert one score; returns the error message instead of raising."""
        try:
            self.score_store.upsert_score(score)
        except StoreError as e:
            logger.error(
                f"Error upserting score for product {score.product_id}: {e}",
                extra={"product_id": score.product_id},
            )
            return str(e)
        logger.debug(
            f"Upserted {score.product_id}: {score.interest_score} ({score.interest_level.value})",
            extra={"product_id": score.product_id, "score": score.interest_score},
        )
        return None
