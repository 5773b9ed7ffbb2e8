"""
PostgresStore tests with a mocked psycopg2 pool: driver errors surface as
StoreReadError / StoreWriteError and connections are always returned.

Usage:
    pytest tests/test_postgres_store.py -v
"""

from unittest.mock import MagicMock, patch

import psycopg2
import pytest

from shopsignal.data.config import DatabaseConfig
from shopsignal.scoring.interest_scorer import InterestScorer
from shopsignal.storage.base import StoreReadError, StoreWriteError
from shopsignal.storage.postgres import PostgresStore

from tests.factories import NOW, make_event


class TestPostgresStore:

    def setup_method(self):
        self.pool = MagicMock()
        self.conn = self.pool.getconn.return_value
        self.cur = self.conn.cursor.return_value.__enter__.return_value
        self.store = PostgresStore(
            DatabaseConfig(password="", max_retries=2, retry_backoff_seconds=0.5), db_pool=self.pool
        )

    def test_fetch_product_ids(self):
        self.cur.fetchall.return_value = [{"id": "lamp"}, {"id": "mug"}]

        assert self.store.fetch_all_product_ids() == ["lamp", "mug"]
        self.conn.commit.assert_called_once()
        self.pool.putconn.assert_called_once_with(self.conn, close=False)

    @patch("shopsignal.storage.postgres.time.sleep")
    def test_unreachable_database_is_read_error(self, sleep):
        """Every attempt fails: 1 try + 2 retries, delays doubling."""
        self.pool.getconn.side_effect = psycopg2.OperationalError("could not connect")

        with pytest.raises(StoreReadError):
            self.store.fetch_events("lamp", NOW)

        assert self.pool.getconn.call_count == 3
        assert [c.args[0] for c in sleep.call_args_list] == [0.5, 1.0]

    @patch("shopsignal.storage.postgres.time.sleep")
    def test_transient_connection_failure_is_retried(self, sleep):
        self.pool.getconn.side_effect = [psycopg2.OperationalError("server restarting"), self.conn]
        self.cur.fetchall.return_value = [{"id": "lamp"}]

        assert self.store.fetch_all_product_ids() == ["lamp"]
        sleep.assert_called_once_with(0.5)

    @patch("shopsignal.storage.postgres.time.sleep")
    def test_transient_failure_on_write_is_retried(self, sleep):
        self.pool.getconn.side_effect = [psycopg2.OperationalError("server restarting"), self.conn]

        self.store.append(make_event("hover", 3000, product_id="lamp"))

        self.cur.execute.assert_called_once()

    def test_dropped_connection_is_discarded(self):
        self.cur.execute.side_effect = psycopg2.OperationalError("server closed the connection")

        with pytest.raises(StoreReadError):
            self.store.fetch_all_product_ids()

        self.pool.putconn.assert_called_once_with(self.conn, close=True)

    def test_statement_timeout_sent_to_server(self):
        options = DatabaseConfig(password="", statement_timeout_ms=5000).connection_dict["options"]

        assert options == "-c statement_timeout=5000"

    def test_failed_upsert_is_write_error(self):
        self.cur.execute.side_effect = psycopg2.IntegrityError("violates check constraint")
        score = InterestScorer().score("lamp", [make_event("hover", 3000)], now=NOW)

        with pytest.raises(StoreWriteError):
            self.store.upsert_score(score)

        self.pool.getconn.assert_called_once()
        self.conn.rollback.assert_called_once()
        self.pool.putconn.assert_called_once_with(self.conn, close=False)

    def test_upsert_is_on_conflict(self):
        score = InterestScorer().score("lamp", [], now=NOW)

        self.store.upsert_score(score)

        sql, params = self.cur.execute.call_args[0]
        assert "ON CONFLICT (product_id) DO UPDATE" in sql
        assert params[0] == "lamp"

    def test_append_assigns_id(self):
        stored = self.store.append(make_event("hover", 3000, product_id="lamp"))

        assert stored.id is not None
        assert self.cur.execute.call_args[0][1][0] == stored.id

    def test_increment_rejects_unknown_counter(self):
        with pytest.raises(KeyError):
            self.store.increment("lamp", {"refunds": 1})

        self.pool.getconn.assert_not_called()

    def test_close_keeps_injected_pool(self):
        self.store.close()

        self.pool.closeall.assert_not_called()
