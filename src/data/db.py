"""
Review Store Database Connection
================================

psycopg2 connection pooling and schema bootstrap for the PostgreSQL
review store. Only used when REVIEW_STORE=postgres.
"""

import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Dict, Optional

from psycopg2 import pool as pg_pool

from .config import DatabaseConfig

logger = logging.getLogger(__name__)

_pool: Optional[pg_pool.ThreadedConnectionPool] = None


SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS reviews (
    id                    UUID PRIMARY KEY,
    author_id             TEXT NOT NULL,
    event_id              TEXT NOT NULL,
    event_kind            TEXT NOT NULL DEFAULT 'local',
    rating                SMALLINT NOT NULL CHECK (rating BETWEEN 1 AND 5),
    atmosphere_rating     SMALLINT CHECK (atmosphere_rating BETWEEN 1 AND 5),
    organization_rating   SMALLINT CHECK (organization_rating BETWEEN 1 AND 5),
    value_rating          SMALLINT CHECK (value_rating BETWEEN 1 AND 5),
    title                 TEXT NOT NULL,
    content               TEXT NOT NULL CHECK (length(btrim(content)) > 0),
    created_at            TIMESTAMPTZ NOT NULL,
    status                TEXT NOT NULL
                          CHECK (status IN ('pending', 'approved', 'rejected', 'flagged')),
    suspicion_score       DOUBLE PRECISION NOT NULL
                          CHECK (suspicion_score BETWEEN 0 AND 1),
    suspicion_flags       TEXT[] NOT NULL DEFAULT '{}',
    sentiment             TEXT NOT NULL DEFAULT 'unset',
    sentiment_confidence  DOUBLE PRECISION,
    ai_summary            TEXT,
    moderator_id          TEXT,
    moderated_at          TIMESTAMPTZ,
    CHECK ((sentiment = 'unset') = (sentiment_confidence IS NULL)),
    CHECK ((sentiment = 'unset') = (ai_summary IS NULL))
);

CREATE INDEX IF NOT EXISTS idx_reviews_status_created ON reviews (status, created_at DESC);
CREATE INDEX IF NOT EXISTS idx_reviews_author_created ON reviews (author_id, created_at DESC);
CREATE INDEX IF NOT EXISTS idx_reviews_event ON reviews (event_id);
"""


def get_pool(config: Optional[DatabaseConfig] = None) -> pg_pool.ThreadedConnectionPool:
    """Get or create connection pool (lazy singleton)."""
    global _pool
    if _pool is not None:
        return _pool

    config = config or DatabaseConfig()
    _pool = pg_pool.ThreadedConnectionPool(
        config.pool_min_size,
        config.pool_max_size,
        **config.connection_dict,
    )
    logger.info(f"DB pool created: {config.host}:{config.port}/{config.name}")
    return _pool


def close_pool():
    """Close the connection pool."""
    global _pool
    if _pool is not None:
        _pool.closeall()
        _pool = None
        logger.info("DB pool closed")


@contextmanager
def get_connection():
    """
    Borrow a connection from the pool.

    Commits on clean exit, rolls back when the block raises.
    """
    pool = get_pool()
    conn = pool.getconn()
    try:
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        pool.putconn(conn)


def init_schema():
    """Create the reviews table and indexes if missing."""
    with get_connection() as conn:
        with conn.cursor() as cur:
            cur.execute(SCHEMA_SQL)
    logger.info("Review schema ensured")


def get_account_created_at(author_id: str) -> Optional[datetime]:
    """
    Account creation time from the identity service's profiles table.

    Returns None when the profile is unknown.
    """
    with get_connection() as conn:
        with conn.cursor() as cur:
            cur.execute("SELECT created_at FROM profiles WHERE id = %s", (author_id,))
            row = cur.fetchone()
    return row[0] if row else None


def check_health() -> Dict[str, Any]:
    """
    Check database health. Returns status dict.
    Non-blocking: returns 'disconnected' if DB is not reachable.
    """
    try:
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute("SELECT count(*) FROM reviews")
                row = cur.fetchone()
        return {"status": "connected", "reviews": row[0] if row else 0}
    except Exception as e:
        logger.warning(f"DB health check failed: {e}")
        return {"status": "disconnected", "error": str(e)}
