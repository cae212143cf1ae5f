"""
Pooled PostgreSQL access for the billing repositories.

One psycopg2 ThreadedConnectionPool per database URL, shared by every
PostgresClient pointing at it. Rows come back as plain dicts so repositories
can validate them straight into pydantic models. There is no connection-level
tenant state: repositories scope each owner query with `user_id = %s`.
"""

import logging
import threading
from contextlib import contextmanager
from typing import Any, Dict, List, Tuple
from uuid import UUID

import psycopg2
import psycopg2.errors
import psycopg2.extras
import psycopg2.pool

logger = logging.getLogger(__name__)

# Raised by writes that collide with a unique constraint (invoice numbers)
UniqueViolation = psycopg2.errors.UniqueViolation

Params = Tuple | Dict | None

_adapters_registered = False


def _register_adapters() -> None:
    """jsonb columns decode to Python objects; uuid columns decode to UUID."""
    global _adapters_registered
    if not _adapters_registered:
        psycopg2.extras.register_default_jsonb(globally=True)
        psycopg2.extras.register_uuid()
        _adapters_registered = True


def _adapt(value: Any) -> Any:
    """UUIDs become strings, recursively through lists, tuples and dicts."""
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, list):
        return [_adapt(v) for v in value]
    if isinstance(value, tuple):
        return tuple(_adapt(v) for v in value)
    if isinstance(value, dict):
        return {k: _adapt(v) for k, v in value.items()}
    return value


class PostgresClient:
    """
    Query helpers over a shared connection pool.

    Each call runs in its own transaction: commit on success, rollback on
    any exception, connection always returned to the pool.

    Usage:
        db = PostgresClient(database_url)
        rows = db.execute("SELECT * FROM invoices WHERE user_id = %s", (owner_id,))
    """

    _connection_pools: Dict[str, psycopg2.pool.ThreadedConnectionPool] = {}
    _pools_lock = threading.RLock()

    def __init__(self, database_url: str, min_connections: int = 2, max_connections: int = 20):
        self._database_url = database_url
        self._min_connections = min_connections
        self._max_connections = max_connections
        self._pool()

    def _pool(self) -> psycopg2.pool.ThreadedConnectionPool:
        with self._pools_lock:
            pool = self._connection_pools.get(self._database_url)
            if pool is None:
                pool = psycopg2.pool.ThreadedConnectionPool(
                    minconn=self._min_connections,
                    maxconn=self._max_connections,
                    dsn=self._database_url,
                    connect_timeout=30,
                )
                _register_adapters()
                self._connection_pools[self._database_url] = pool
                logger.info(f"Connection pool created ({self._min_connections}-{self._max_connections} connections)")
            return pool

    @contextmanager
    def get_connection(self):
        """Borrow a pooled connection; anything uncommitted is rolled back on error."""
        pool = self._pool()
        conn = pool.getconn()
        if conn is None:
            raise RuntimeError("Could not get connection from pool")
        try:
            yield conn
        except Exception:
            conn.rollback()
            raise
        finally:
            pool.putconn(conn)

    def _run(self, query: str, params: Params, as_dicts: bool = True) -> List[Any]:
        with self.get_connection() as conn:
            cursor_factory = psycopg2.extras.RealDictCursor if as_dicts else None
            with conn.cursor(cursor_factory=cursor_factory) as cur:
                cur.execute(query, _adapt(params))
                if cur.description is None:
                    rows = []
                elif as_dicts:
                    rows = [dict(row) for row in cur.fetchall()]
                else:
                    row = cur.fetchone()
                    rows = [row] if row else []
            conn.commit()
            return rows

    def execute(self, query: str, params: Params = None) -> List[Dict[str, Any]]:
        """Rows as dicts; [] for statements without a result set."""
        return self._run(query, params)

    def execute_single(self, query: str, params: Params = None) -> Dict[str, Any] | None:
        """First row or None."""
        rows = self._run(query, params)
        return rows[0] if rows else None

    def execute_scalar(self, query: str, params: Params = None) -> Any:
        """First column of the first row, or None."""
        rows = self._run(query, params, as_dicts=False)
        return rows[0][0] if rows else None

    def execute_returning(self, query: str, params: Params = None) -> List[Dict[str, Any]]:
        """
        INSERT/UPDATE/DELETE ... RETURNING, rows as dicts.

        Raises:
            UniqueViolation: If the write hits a unique constraint
        """
        return self._run(query, params)

    def close(self) -> None:
        """Close this URL's pool."""
        with self._pools_lock:
            pool = self._connection_pools.pop(self._database_url, None)
            if pool is not None:
                pool.closeall()

    @classmethod
    def close_all_pools(cls) -> None:
        """Close every pool; called on application shutdown."""
        with cls._pools_lock:
            for pool in cls._connection_pools.values():
                pool.closeall()
            cls._connection_pools.clear()
