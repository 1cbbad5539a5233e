"""
Review Trust Cache Module
=========================

Idempotency keys backed by Redis with fallback to an in-memory store.

Usage:
    from src.cache import get_idempotency_store

    store = get_idempotency_store(redis_url)
    if store.claim("suspicious_review:<id>"):
        ...
"""

from .idempotency import (
    IdempotencyStore,
    InMemoryIdempotencyStore,
    RedisIdempotencyStore,
    get_idempotency_store,
)

__all__ = [
    "IdempotencyStore",
    "InMemoryIdempotencyStore",
    "RedisIdempotencyStore",
    "get_idempotency_store",
]
