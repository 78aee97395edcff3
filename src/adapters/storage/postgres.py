"""
PostgreSQL key/value store adapter - Implements KeyValueStore protocol.

This module provides the PostgreSQL implementation of the domain's durable
store port using psycopg3 with raw SQL. It backs the single credential slot;
every call checks out one pooled connection and commits before returning.
"""

import logging
from pathlib import Path

from psycopg_pool import ConnectionPool

logger = logging.getLogger(__name__)


class PostgresKeyValueStore:
    """
    Implements KeyValueStore protocol via psycopg3.

    Uses structural subtyping - no explicit inheritance from Protocol.
    All SQL uses parameterized queries.
    """

    def __init__(self, pool: ConnectionPool) -> None:
        """
        Initialize store with connection pool.

        Args:
            pool: psycopg3 ConnectionPool for database connections
        """
        self._pool = pool

    def get(self, key: str) -> str | None:
        sql = "SELECT value FROM credential_store WHERE storage_key = %s"

        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(sql, (key,))
            row = cursor.fetchone()
            return row[0] if row is not None else None

    def set(self, key: str, value: str) -> None:
        """
        Write value under key, overwriting any previous value.

        Uses INSERT ... ON CONFLICT DO UPDATE so the slot is replaced atomically.
        """
        sql = """
            INSERT INTO credential_store (storage_key, value, updated_at)
            VALUES (%s, %s, NOW())
            ON CONFLICT (storage_key) DO UPDATE
            SET value = EXCLUDED.value,
                updated_at = NOW()
        """

        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(sql, (key, value))
            conn.commit()

    def remove(self, key: str) -> None:
        sql = "DELETE FROM credential_store WHERE storage_key = %s"

        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(sql, (key,))
            conn.commit()


def run_migrations(pool: ConnectionPool) -> None:
    """
    Execute all SQL migration files from the migrations directory.

    Migrations are executed in sorted order (alphabetically by filename).
    Each migration should be idempotent (use IF NOT EXISTS, etc.).

    Args:
        pool: psycopg3 ConnectionPool instance
    """
    # Structure: src/adapters/storage/postgres.py -> migrations/
    migrations_dir = Path(__file__).parent.parent.parent.parent / "migrations"

    if not migrations_dir.exists():
        logger.warning(f"Migrations directory not found: {migrations_dir}")
        return

    sql_files = sorted(migrations_dir.glob("*.sql"))

    if not sql_files:
        logger.info("No migration files found")
        return

    logger.info(f"Running {len(sql_files)} migration(s)")

    for sql_file in sql_files:
        logger.info(f"Executing migration: {sql_file.name}")
        try:
            sql_content = sql_file.read_text()

            with pool.connection() as conn:
                conn.execute(sql_content)

            logger.info(f"Migration complete: {sql_file.name}")
        except Exception as e:
            logger.error(f"Migration failed: {sql_file.name} - {e}")
            raise RuntimeError(f"Database migration failed: {sql_file.name}") from e
