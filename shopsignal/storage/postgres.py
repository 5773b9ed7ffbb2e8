"""
Shopsignal PostgreSQL Store
===========================

psycopg2-backed implementation of every store interface.

Tables:
    - products                     (id, name)
    - customer_interest_events     append-only event log
    - customer_interest_scores     one row per product (UNIQUE product_id)
    - product_analytics            funnel counters, incremented in place
    - session_interest_profiles    products viewed per session

Scores are written with INSERT ... ON CONFLICT (product_id) DO UPDATE so
concurrent recalculations resolve to last-write-wins without a
read-modify-write. Counters use SET x = x + delta for the same reason.

Usage:
    from shopsignal.storage.postgres import PostgresStore

    with PostgresStore() as store:
        store.ensure_schema()
        ids = store.fetch_all_product_ids()
"""

import logging
import time
import uuid
from contextlib import contextmanager
from datetime import datetime
from typing import Dict, List, Optional, Any

import psycopg2
from psycopg2 import pool
from psycopg2.extras import RealDictCursor, Json

from ..data.config import DatabaseConfig, get_settings
from ..data.data_models import InterestEvent, ProductAnalytics, SessionProfile, ensure_utc
from ..scoring.interest_scorer import InterestScore
from .base import (
    AnalyticsStore,
    EventStore,
    ProductCatalog,
    ScoreStore,
    SessionProfileStore,
    StoreReadError,
    StoreWriteError,
)

logger = logging.getLogger(__name__)


SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS products (
    id          TEXT PRIMARY KEY,
    name        TEXT NOT NULL DEFAULT '',
    created_at  TIMESTAMPTZ NOT NULL DEFAULT NOW()
);

CREATE TABLE IF NOT EXISTS customer_interest_events (
    id           UUID PRIMARY KEY,
    session_id   TEXT NOT NULL,
    product_id   TEXT NOT NULL,
    event_type   TEXT NOT NULL,
    event_value  DOUBLE PRECISION NOT NULL DEFAULT 0,
    metadata     JSONB NOT NULL DEFAULT '{}'::jsonb,
    created_at   TIMESTAMPTZ NOT NULL DEFAULT NOW()
);
CREATE INDEX IF NOT EXISTS idx_interest_events_product_created
    ON customer_interest_events (product_id, created_at DESC);

CREATE TABLE IF NOT EXISTS customer_interest_scores (
    product_id         TEXT PRIMARY KEY,
    interest_score     INTEGER NOT NULL,
    interest_level     TEXT NOT NULL,
    buyer_confidence   INTEGER NOT NULL DEFAULT 0,
    hesitation_score   INTEGER NOT NULL DEFAULT 0,
    unique_sessions    INTEGER NOT NULL DEFAULT 0,
    return_visitors    INTEGER NOT NULL DEFAULT 0,
    avg_time_on_page   BIGINT NOT NULL DEFAULT 0,
    total_hovers       INTEGER NOT NULL DEFAULT 0,
    total_add_to_cart  INTEGER NOT NULL DEFAULT 0,
    updated_at         TIMESTAMPTZ NOT NULL DEFAULT NOW()
);

CREATE TABLE IF NOT EXISTS product_analytics (
    product_id          TEXT PRIMARY KEY,
    impressions         BIGINT NOT NULL DEFAULT 0,
    clicks              BIGINT NOT NULL DEFAULT 0,
    add_to_cart_count   BIGINT NOT NULL DEFAULT 0,
    checkout_intents    BIGINT NOT NULL DEFAULT 0,
    total_time_on_page  DOUBLE PRECISION NOT NULL DEFAULT 0,
    total_scroll_depth  DOUBLE PRECISION NOT NULL DEFAULT 0,
    view_count          BIGINT NOT NULL DEFAULT 0,
    updated_at          TIMESTAMPTZ NOT NULL DEFAULT NOW()
);

CREATE TABLE IF NOT EXISTS session_interest_profiles (
    session_id         TEXT PRIMARY KEY,
    products_viewed    TEXT[] NOT NULL DEFAULT '{}',
    is_return_visitor  BOOLEAN NOT NULL DEFAULT FALSE,
    updated_at         TIMESTAMPTZ NOT NULL DEFAULT NOW()
);
"""

SCORE_COLUMNS = (
    "product_id",
    "interest_score",
    "interest_level",
    "buyer_confidence",
    "hesitation_score",
    "unique_sessions",
    "return_visitors",
    "avg_time_on_page",
    "total_hovers",
    "total_add_to_cart",
    "updated_at",
)


def _row_to_event(row: Dict[str, Any]) -> InterestEvent:
    return InterestEvent(
        id=str(row["id"]),
        session_id=row["session_id"],
        product_id=row["product_id"],
        event_type=row["event_type"],
        event_value=row["event_value"],
        metadata=row.get("metadata") or {},
        created_at=ensure_utc(row["created_at"]),
    )


def _row_to_analytics(row: Dict[str, Any]) -> ProductAnalytics:
    return ProductAnalytics(
        product_id=row["product_id"],
        impressions=row["impressions"],
        clicks=row["clicks"],
        add_to_cart_count=row["add_to_cart_count"],
        checkout_intents=row["checkout_intents"],
        total_time_on_page=float(row["total_time_on_page"]),
        total_scroll_depth=float(row["total_scroll_depth"]),
        view_count=row["view_count"],
        updated_at=row.get("updated_at"),
    )


class PostgresStore(EventStore, ProductCatalog, ScoreStore, AnalyticsStore, SessionProfileStore):
    """
    Single psycopg2 pool serving every store interface.

    Every driver error is re-raised as StoreReadError or StoreWriteError.
    """

    def __init__(
        self,
        db_config: Optional[DatabaseConfig] = None,
        db_pool: Optional[pool.ThreadedConnectionPool] = None,
    ):
        """
        Args:
            db_config: Database configuration (defaults to settings.database)
            db_pool: Existing connection pool (creates new if None)
        """
        self.db_config = db_config or get_settings().database
        self._db_pool = db_pool
        self._own_pool = db_pool is None

    @property
    def db_pool(self) -> pool.ThreadedConnectionPool:
        """Lazy-initialize database connection pool."""
        if self._db_pool is None:
            self._db_pool = pool.ThreadedConnectionPool(
                minconn=self.db_config.pool_min_size,
                maxconn=self.db_config.pool_max_size,
                **self.db_config.connection_dict
            )
            logger.info(
                f"Database connection pool created: "
                f"{self.db_config.host}:{self.db_config.port}/{self.db_config.name}"
            )
        return self._db_pool

    def _retry_with_backoff(self, func, *args, **kwargs) -> Any:
        """
        Execute function with exponential backoff retry.

        Only connection-level failures (psycopg2.OperationalError) are
        retried; anything else propagates on the first attempt.

        Raises:
            psycopg2.OperationalError: If all retries fail
        """
        max_retries = self.db_config.max_retries
        for attempt in range(max_retries + 1):
            try:
                return func(*args, **kwargs)
            except psycopg2.OperationalError as e:
                if attempt >= max_retries:
                    raise
                wait_time = self.db_config.retry_backoff_seconds * (2 ** attempt)
                logger.warning(
                    f"Database unavailable (attempt {attempt + 1}/{max_retries + 1}), "
                    f"retrying in {wait_time:.1f}s: {e}"
                )
                time.sleep(wait_time)

    def _acquire_connection(self):
        return self.db_pool.getconn()

    @contextmanager
    def get_db_connection(self):
        """Get a database connection from the pool, committing on success."""
        conn = None
        broken = False
        try:
            conn = self._retry_with_backoff(self._acquire_connection)
            yield conn
            conn.commit()
        except psycopg2.OperationalError:
            broken = True
            if conn:
                conn.rollback()
            raise
        except Exception:
            if conn:
                conn.rollback()
            raise
        finally:
            if conn:
                # A connection that failed at the transport level is discarded
                self.db_pool.putconn(conn, close=broken)

    @contextmanager
    def _reading(self, what: str):
        try:
            with self.get_db_connection() as conn:
                with conn.cursor(cursor_factory=RealDictCursor) as cur:
                    yield cur
        except psycopg2.Error as e:
            raise StoreReadError(f"Failed to read {what}: {e}") from e

    @contextmanager
    def _writing(self, what: str):
        try:
            with self.get_db_connection() as conn:
                with conn.cursor(cursor_factory=RealDictCursor) as cur:
                    yield cur
        except psycopg2.Error as e:
            raise StoreWriteError(f"Failed to write {what}: {e}") from e

    def ensure_schema(self) -> None:
        """Create the tables if they do not exist."""
        with self._writing("schema") as cur:
            cur.execute(SCHEMA_SQL)
        logger.info("Database schema ensured")

    def close(self):
        """Clean up resources."""
        if self._own_pool and self._db_pool is not None:
            self._db_pool.closeall()
            self._db_pool = None
            logger.info("Database connection pool closed")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    # =========================================================================
    # EVENTS
    # =========================================================================

    def append(self, event: InterestEvent) -> InterestEvent:
        stored = event if event.id else event.with_id(str(uuid.uuid4()))
        with self._writing(f"event for {event.product_id}") as cur:
            cur.execute(
                """
                INSERT INTO customer_interest_events
                    (id, session_id, product_id, event_type, event_value, metadata, created_at)
                VALUES (%s, %s, %s, %s, %s, %s, %s)
                """,
                (
                    stored.id,
                    stored.session_id,
                    stored.product_id,
                    stored.event_type,
                    stored.value,
                    Json(stored.metadata),
                    ensure_utc(stored.created_at),
                ),
            )
        return stored

    def fetch_events(self, product_id: str, since: datetime) -> List[InterestEvent]:
        with self._reading(f"events of {product_id}") as cur:
            cur.execute(
                """
                SELECT id, session_id, product_id, event_type, event_value, metadata, created_at
                FROM customer_interest_events
                WHERE product_id = %s AND created_at >= %s
                """,
                (product_id, ensure_utc(since)),
            )
            return [_row_to_event(row) for row in cur.fetchall()]

    def recent_events(self, product_id: str, limit: int = 100) -> List[InterestEvent]:
        with self._reading(f"recent events of {product_id}") as cur:
            cur.execute(
                """
                SELECT id, session_id, product_id, event_type, event_value, metadata, created_at
                FROM customer_interest_events
                WHERE product_id = %s
                ORDER BY created_at DESC
                LIMIT %s
                """,
                (product_id, limit),
            )
            return [_row_to_event(row) for row in cur.fetchall()]

    def all_events(self, product_id: str) -> List[InterestEvent]:
        with self._reading(f"events of {product_id}") as cur:
            cur.execute(
                """
                SELECT id, session_id, product_id, event_type, event_value, metadata, created_at
                FROM customer_interest_events
                WHERE product_id = %s
                """,
                (product_id,),
            )
            return [_row_to_event(row) for row in cur.fetchall()]

    # =========================================================================
    # PRODUCTS
    # =========================================================================

    def fetch_all_product_ids(self) -> List[str]:
        with self._reading("products") as cur:
            cur.execute("SELECT id FROM products ORDER BY id")
            return [row["id"] for row in cur.fetchall()]

    def product_names(self) -> Dict[str, str]:
        with self._reading("product names") as cur:
            cur.execute("SELECT id, name FROM products WHERE name <> ''")
            return {row["id"]: row["name"] for row in cur.fetchall()}

    # =========================================================================
    # SCORES
    # =========================================================================

    def upsert_score(self, score: InterestScore) -> None:
        row = score.to_dict()
        row["updated_at"] = score.updated_at
        updates = ", ".join(f"{col} = EXCLUDED.{col}" for col in SCORE_COLUMNS[1:])
        with self._writing(f"score for {score.product_id}") as cur:
            cur.execute(
                f"""
                INSERT INTO customer_interest_scores ({", ".join(SCORE_COLUMNS)})
                VALUES ({", ".join(["%s"] * len(SCORE_COLUMNS))})
                ON CONFLICT (product_id) DO UPDATE SET {updates}
                """,
                tuple(row[col] for col in SCORE_COLUMNS),
            )

    def get_score(self, product_id: str) -> Optional[InterestScore]:
        with self._reading(f"score of {product_id}") as cur:
            cur.execute(
                f"SELECT {', '.join(SCORE_COLUMNS)} FROM customer_interest_scores WHERE product_id = %s",
                (product_id,),
            )
            row = cur.fetchone()
        return InterestScore.from_dict(row) if row else None

    def list_scores(self) -> List[InterestScore]:
        with self._reading("scores") as cur:
            cur.execute(
                f"SELECT {', '.join(SCORE_COLUMNS)} FROM customer_interest_scores "
                f"ORDER BY interest_score DESC"
            )
            return [InterestScore.from_dict(row) for row in cur.fetchall()]

    # =========================================================================
    # ANALYTICS COUNTERS
    # =========================================================================

    def increment(self, product_id: str, deltas: Dict[str, float]) -> ProductAnalytics:
        for name in deltas:
            if name not in ProductAnalytics.COUNTER_FIELDS:
                raise KeyError(f"Unknown analytics counter: {name}")

        columns = list(deltas)
        insert_cols = ", ".join(["product_id"] + columns)
        placeholders = ", ".join(["%s"] * (len(columns) + 1))
        updates = ", ".join(
            [f"{col} = product_analytics.{col} + EXCLUDED.{col}" for col in columns]
            + ["updated_at = NOW()"]
        )
        with self._writing(f"analytics of {product_id}") as cur:
            cur.execute(
                f"""
                INSERT INTO product_analytics ({insert_cols})
                VALUES ({placeholders})
                ON CONFLICT (product_id) DO UPDATE SET {updates}
                RETURNING *
                """,
                tuple([product_id] + [deltas[col] for col in columns]),
            )
            return _row_to_analytics(cur.fetchone())

    def get_analytics(self, product_id: str) -> Optional[ProductAnalytics]:
        with self._reading(f"analytics of {product_id}") as cur:
            cur.execute("SELECT * FROM product_analytics WHERE product_id = %s", (product_id,))
            row = cur.fetchone()
        return _row_to_analytics(row) if row else None

    def list_analytics(self) -> List[ProductAnalytics]:
        with self._reading("analytics") as cur:
            cur.execute("SELECT * FROM product_analytics ORDER BY product_id")
            return [_row_to_analytics(row) for row in cur.fetchall()]

    # =========================================================================
    # SESSION PROFILES
    # =========================================================================

    def get_profile(self, session_id: str) -> Optional[SessionProfile]:
        with self._reading(f"profile of {session_id}") as cur:
            cur.execute(
                "SELECT * FROM session_interest_profiles WHERE session_id = %s",
                (session_id,),
            )
            row = cur.fetchone()
        if not row:
            return None
        return SessionProfile(
            session_id=row["session_id"],
            products_viewed=list(row["products_viewed"] or []),
            is_return_visitor=row["is_return_visitor"],
            updated_at=row["updated_at"],
        )

    def upsert_viewed_product(
        self,
        session_id: str,
        product_id: str,
        is_return_visitor: bool,
    ) -> SessionProfile:
        with self._writing(f"profile of {session_id}") as cur:
            cur.execute(
                """
                INSERT INTO session_interest_profiles (session_id, products_viewed, is_return_visitor)
                VALUES (%s, ARRAY[%s], %s)
                ON CONFLICT (session_id) DO UPDATE SET
                    products_viewed = CASE
                        WHEN %s = ANY(session_interest_profiles.products_viewed)
                            THEN session_interest_profiles.products_viewed
                        ELSE array_append(session_interest_profiles.products_viewed, %s)
                    END,
                    updated_at = NOW()
                RETURNING *
                """,
                (session_id, product_id, is_return_visitor, product_id, product_id),
            )
            row = cur.fetchone()
        return SessionProfile(
            session_id=row["session_id"],
            products_viewed=list(row["products_viewed"] or []),
            is_return_visitor=row["is_return_visitor"],
            updated_at=row["updated_at"],
        )
