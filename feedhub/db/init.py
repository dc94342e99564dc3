"""Database initialization and schema management."""

import logging

from psycopg.errors import DatabaseError
from psycopg_pool import ConnectionPool, PoolTimeout

from .connection import get_connection

logger = logging.getLogger(__name__)


SCHEMA_SQL = """
-- Every record and every index entry is one row
CREATE TABLE IF NOT EXISTS kv_entries (
    key TEXT[] PRIMARY KEY,
    value JSONB NOT NULL,
    created_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
    updated_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP
);

-- Prefix scans filter on the namespace first
CREATE INDEX IF NOT EXISTS idx_kv_entries_namespace ON kv_entries ((key[1]));
"""


def validate_connection(pool: ConnectionPool) -> bool:
    """Validate database connection."""
    try:
        with get_connection(pool) as conn:
            with conn.cursor() as cur:
                cur.execute("SELECT 1 AS ok")
                result = cur.fetchone()
                return result is not None and result["ok"] == 1
    except (DatabaseError, PoolTimeout) as e:
        logger.error("Database connection failed: %s", e)
        return False


def init_database(pool: ConnectionPool) -> None:
    """Initialize database schema."""
    try:
        with get_connection(pool) as conn:
            with conn.cursor() as cur:
                cur.execute(SCHEMA_SQL)
            conn.commit()
        logger.info("Database schema initialized")
    except DatabaseError as e:
        logger.error("Failed to initialize database schema: %s", e)
        raise
