"""
Idempotency Store
=================

One-shot key claims used to collapse duplicate side effects
(e.g. two concurrent "review flagged" triggers -> one admin alert).

A claim is never released: a failed send is not retried through the
same key, so delivery is at-most-once.

Backends:
    RedisIdempotencyStore    SET key 1 NX EX ttl (shared across workers)
    InMemoryIdempotencyStore process-local, lock-protected

Usage:
    store = get_idempotency_store(os.getenv("REDIS_URL"))
    if store.claim("suspicious_review:abc"):
        send()
"""

import logging
import threading
import time
from abc import ABC, abstractmethod
from typing import Callable, Dict, Optional

import redis

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 7 * 24 * 3600


class IdempotencyStore(ABC):
    """Atomic first-caller-wins key claims."""

    @abstractmethod
    def claim(self, key: str) -> bool:
        """Return True for exactly one caller per key within the TTL."""
        pass


class InMemoryIdempotencyStore(IdempotencyStore):
    """Process-local store with TTL expiry."""

    def __init__(
        self,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._claims: Dict[str, float] = {}
        self._lock = threading.Lock()
        self._sweep_interval = min(ttl_seconds, 60)
        self._next_sweep = 0.0

    def claim(self, key: str) -> bool:
        now = self._clock()
        with self._lock:
            expires_at = self._claims.get(key)
            if expires_at is not None and expires_at > now:
                return False
            if now >= self._next_sweep:
                self._sweep(now)
            self._claims[key] = now + self.ttl_seconds
            return True

    def _sweep(self, now: float) -> None:
        # caller holds the lock
        expired = [k for k, expires_at in self._claims.items() if expires_at <= now]
        for k in expired:
            del self._claims[k]
        self._next_sweep = now + self._sweep_interval

    def __len__(self) -> int:
        return len(self._claims)


class RedisIdempotencyStore(IdempotencyStore):
    """Redis-backed store, safe across processes."""

    def __init__(
        self,
        client: "redis.Redis",
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
        prefix: str = "reviewtrust:idem",
    ):
        self._redis = client
        self.ttl_seconds = ttl_seconds
        self.prefix = prefix

    def _make_key(self, key: str) -> str:
        return f"{self.prefix}:{key}"

    def claim(self, key: str) -> bool:
        try:
            return bool(self._redis.set(self._make_key(key), "1", nx=True, ex=self.ttl_seconds))
        except redis.RedisError as e:
            # Refusing the claim keeps the at-most-once guarantee
            logger.error(f"Redis claim failed for {key}: {e}")
            return False


def get_idempotency_store(
    redis_url: Optional[str] = None,
    ttl_seconds: int = DEFAULT_TTL_SECONDS,
) -> IdempotencyStore:
    """
    Build the store for the configured backend.

    Falls back to the in-memory store when REDIS_URL is unset or Redis
    does not answer a ping.
    """
    if not redis_url:
        logger.info("REDIS_URL not set. Using in-memory idempotency store.")
        return InMemoryIdempotencyStore(ttl_seconds)

    try:
        client = redis.from_url(
            redis_url,
            decode_responses=True,
            socket_timeout=5,
            socket_connect_timeout=5,
        )
        client.ping()
    except redis.RedisError as e:
        logger.warning(f"Redis connection failed: {e}. Using in-memory idempotency store.")
        return InMemoryIdempotencyStore(ttl_seconds)

    logger.info(f"Idempotency store connected: {redis_url.split('@')[-1]}")
    return RedisIdempotencyStore(client, ttl_seconds)
