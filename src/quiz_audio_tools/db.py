from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional, Sequence

import psycopg2
from psycopg2.extras import RealDictCursor
from psycopg2.pool import ThreadedConnectionPool

logger = logging.getLogger(__name__)

CONNECTION_FAILED = "connection failed"


def is_connection_failure(exc: BaseException) -> bool:
    """True for errors raised because the server could not be reached.

    OperationalError subclasses (deadlocks, cancelled statements) are query failures, not connection failures.
    """
    if type(exc) is psycopg2.OperationalError or isinstance(exc, psycopg2.InterfaceError):
        return True
    return CONNECTION_FAILED in str(exc).lower()


def pool_size_for(chunk_size: int, concurrent_runs: int, headroom: int = 2) -> int:
    """Connections needed when ``concurrent_runs`` pipelines each process a full chunk at once."""
    return chunk_size * concurrent_runs + headroom


class Database:
    """Thread-safe PostgreSQL pool handle passed explicitly to the pipeline."""

    def __init__(self, pool):
        self.pool = pool

    @classmethod
    def connect(cls, *, database, user=None, password=None, host=None, port=5432, maxconn=10) -> "Database":
        pool = ThreadedConnectionPool(
            1,
            maxconn,
            dbname=database,
            user=user,
            password=password,
            host=host,
            port=port,
        )
        logger.info("Connected to database %s", database)
        return cls(pool)

    @contextmanager
    def connection(self) -> Iterator[Any]:
        """Check out a dedicated connection in manual-commit mode; always put it back."""
        conn = self.pool.getconn()
        try:
            conn.autocommit = False
            yield conn
        finally:
            self.pool.putconn(conn)

    def fetch_all(self, sql: str, params: Optional[Sequence[Any]] = None) -> List[Dict[str, Any]]:
        with self.connection() as conn:
            try:
                with conn.cursor(cursor_factory=RealDictCursor) as cur:
                    cur.execute(sql, params)
                    rows = [dict(row) for row in cur.fetchall()]
                conn.commit()
            except Exception:
                conn.rollback()
                raise
        return rows

    def close(self) -> None:
        self.pool.closeall()


def execute(conn, sql: str, params: Optional[Sequence[Any]] = None) -> int:
    """Run one statement on ``conn`` and return the affected row count."""
    with conn.cursor() as cur:
        cur.execute(sql, params)
        return cur.rowcount
