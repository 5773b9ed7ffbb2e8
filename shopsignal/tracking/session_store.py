"""
Session Stores
==============

Key-value capability injected into the session tracker in place of
ambient browser storage. Two scopes are used by the tracker:

    - session scope: holds the browsing session id (expires with the session)
    - durable scope: holds the list of products ever viewed by the visitor

Implementations:
    - MemorySessionStore: process-local dict
    - RedisSessionStore: Redis with JSON values and optional TTL; falls back
      to memory when the server is unreachable
    - NamespacedSessionStore: prefixes keys of another store (one namespace
      per visitor on a shared backend)

Environment variables (RedisSessionStore):
    REDIS_URL / REDIS_HOST / REDIS_PORT / REDIS_DB / REDIS_PASSWORD
    CACHE_PREFIX
"""

import json
import logging
import threading
from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from typing import Optional, Dict, Any, Tuple

import redis

from ..data.config import RedisConfig, get_settings
from ..data.data_models import utcnow

logger = logging.getLogger(__name__)


class SessionStore(ABC):
    """get/set key-value capability."""

    @abstractmethod
    def get(self, key: str) -> Optional[Any]:
        """Stored value, None when absent or expired."""

    @abstractmethod
    def set(self, key: str, value: Any, ttl_seconds: Optional[int] = None) -> None:
        """Store a JSON-serializable value, optionally expiring."""


class MemorySessionStore(SessionStore):
    """Thread-safe in-memory store with TTL support."""

    def __init__(self):
        self._lock = threading.Lock()
        self._data: Dict[str, Tuple[Optional[datetime], Any]] = {}

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            entry = self._data.get(key)
            if entry is None:
                return None
            expires_at, value = entry
            if expires_at is not None and utcnow() > expires_at:
                del self._data[key]
                return None
            return value

    def set(self, key: str, value: Any, ttl_seconds: Optional[int] = None) -> None:
        expires_at = utcnow() + timedelta(seconds=ttl_seconds) if ttl_seconds else None
        with self._lock:
            self._data[key] = (expires_at, value)


class NamespacedSessionStore(SessionStore):
    """View on another store with every key prefixed."""

    def __init__(self, inner: SessionStore, namespace: str):
        self.inner = inner
        self.namespace = namespace

    def _key(self, key: str) -> str:
        return f"{self.namespace}:{key}"

    def get(self, key: str) -> Optional[Any]:
        return self.inner.get(self._key(key))

    def set(self, key: str, value: Any, ttl_seconds: Optional[int] = None) -> None:
        self.inner.set(self._key(key), value, ttl_seconds=ttl_seconds)


class RedisSessionStore(SessionStore):
    """
    Redis-backed store with in-memory fallback.

    Automatically falls back to memory if Redis is unavailable at connect
    time or when a command fails.
    """

    def __init__(
        self,
        config: Optional[RedisConfig] = None,
        client: Optional["redis.Redis"] = None,
        fallback_to_memory: bool = True,
    ):
        """
        Args:
            config: Redis configuration (defaults to settings.redis)
            client: Pre-built Redis client (skips connection)
            fallback_to_memory: Use memory when Redis is unreachable
        """
        self.config = config or get_settings().redis
        self.prefix = self.config.prefix
        self.fallback_to_memory = fallback_to_memory
        self._memory = MemorySessionStore()
        self._redis: Optional[redis.Redis] = client
        self._use_memory = False

        if self._redis is None:
            self._connect()

    def _connect(self) -> None:
        """Establish Redis connection."""
        url = self.config.connection_url
        try:
            self._redis = redis.from_url(
                url,
                decode_responses=True,
                socket_timeout=5,
                socket_connect_timeout=5,
            )
            self._redis.ping()
            logger.info(f"Redis session store connected: {url.split('@')[-1]}")
        except redis.RedisError as e:
            if not self.fallback_to_memory:
                raise
            logger.warning(f"Redis connection failed: {e}. Using in-memory session store.")
            self._redis = None
            self._use_memory = True

    @property
    def is_memory_fallback(self) -> bool:
        return self._use_memory or self._redis is None

    def _make_key(self, key: str) -> str:
        """Create prefixed key."""
        return f"{self.prefix}:{key}"

    def get(self, key: str) -> Optional[Any]:
        full_key = self._make_key(key)
        if self.is_memory_fallback:
            return self._memory.get(full_key)

        try:
            value = self._redis.get(full_key)
        except redis.RedisError as e:
            if not self.fallback_to_memory:
                raise
            logger.warning(f"Redis get failed: {e}")
            return self._memory.get(full_key)
        if value is None:
            return None
        try:
            return json.loads(value)
        except ValueError as e:
            logger.warning(f"Unreadable session value at {full_key}: {e}")
            return None

    def set(self, key: str, value: Any, ttl_seconds: Optional[int] = None) -> None:
        full_key = self._make_key(key)
        if self.is_memory_fallback:
            self._memory.set(full_key, value, ttl_seconds=ttl_seconds)
            return

        try:
            payload = json.dumps(value)
            if ttl_seconds:
                self._redis.setex(full_key, ttl_seconds, payload)
            else:
                self._redis.set(full_key, payload)
        except redis.RedisError as e:
            if not self.fallback_to_memory:
                raise
            logger.warning(f"Redis set failed: {e}")
            self._memory.set(full_key, value, ttl_seconds=ttl_seconds)
