"""
Unit tests for the session stores. Redis is mocked at the client boundary.

Usage:
    pytest tests/test_session_store.py -v
"""

import json
from datetime import timedelta
from unittest.mock import MagicMock, patch

import pytest
import redis

from shopsignal.data.config import RedisConfig
from shopsignal.tracking.session_store import (
    MemorySessionStore,
    NamespacedSessionStore,
    RedisSessionStore,
)

from tests.factories import NOW


class TestMemorySessionStore:

    def setup_method(self):
        self.store = MemorySessionStore()

    def test_missing_key(self):
        assert self.store.get("nope") is None

    def test_set_get(self):
        self.store.set("viewed_products", ["a", "b"])
        assert self.store.get("viewed_products") == ["a", "b"]

    def test_ttl_expiry(self):
        """Values disappear once their TTL has elapsed."""
        with patch("shopsignal.tracking.session_store.utcnow", return_value=NOW):
            self.store.set("interest_session_id", "session_1", ttl_seconds=60)
            assert self.store.get("interest_session_id") == "session_1"

        later = NOW + timedelta(seconds=61)
        with patch("shopsignal.tracking.session_store.utcnow", return_value=later):
            assert self.store.get("interest_session_id") is None


class TestNamespacedSessionStore:

    def test_namespaces_isolated(self):
        shared = MemorySessionStore()
        alice = NamespacedSessionStore(shared, "visitor:a")
        bob = NamespacedSessionStore(shared, "visitor:b")

        alice.set("viewed_products", ["prod-1"])

        assert alice.get("viewed_products") == ["prod-1"]
        assert bob.get("viewed_products") is None
        assert shared.get("visitor:a:viewed_products") == ["prod-1"]


class TestRedisSessionStore:

    def setup_method(self):
        self.config = RedisConfig(url="redis://localhost:6379/0", prefix="test")
        self.client = MagicMock()
        self.store = RedisSessionStore(self.config, client=self.client)

    def test_set_without_ttl(self):
        self.store.set("viewed_products", ["prod-1"])

        self.client.set.assert_called_once_with("test:viewed_products", json.dumps(["prod-1"]))

    def test_set_with_ttl_uses_setex(self):
        self.store.set("interest_session_id", "session_1", ttl_seconds=1800)

        self.client.setex.assert_called_once_with("test:interest_session_id", 1800, json.dumps("session_1"))

    def test_get_decodes_json(self):
        self.client.get.return_value = json.dumps(["prod-1", "prod-2"])

        assert self.store.get("viewed_products") == ["prod-1", "prod-2"]
        self.client.get.assert_called_once_with("test:viewed_products")

    def test_get_missing(self):
        self.client.get.return_value = None
        assert self.store.get("viewed_products") is None

    def test_get_undecodable_value_is_absent(self):
        """A corrupt value reads as missing instead of breaking the tracker."""
        self.client.get.return_value = "not-json{"

        assert self.store.get("interest_session_id") is None

    def test_command_failure_falls_back_to_memory(self):
        self.client.set.side_effect = redis.ConnectionError("gone")
        self.client.get.side_effect = redis.ConnectionError("gone")

        self.store.set("viewed_products", ["prod-1"])

        assert self.store.get("viewed_products") == ["prod-1"]

    def test_unreachable_server_uses_memory(self):
        client = MagicMock()
        client.ping.side_effect = redis.ConnectionError("refused")
        with patch("shopsignal.tracking.session_store.redis.from_url", return_value=client):
            store = RedisSessionStore(self.config)

        assert store.is_memory_fallback
        store.set("k", 1)
        assert store.get("k") == 1
        client.set.assert_not_called()

    def test_unreachable_server_without_fallback_raises(self):
        client = MagicMock()
        client.ping.side_effect = redis.ConnectionError("refused")
        with patch("shopsignal.tracking.session_store.redis.from_url", return_value=client):
            with pytest.raises(redis.ConnectionError):
                RedisSessionStore(self.config, fallback_to_memory=False)
