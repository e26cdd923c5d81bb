"""Database connection utilities using psycopg2 connection pooling."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Dict, Iterator, Optional

from psycopg2 import connect
from psycopg2.extensions import connection as PsycopgConnection
from psycopg2.pool import SimpleConnectionPool

from vidcat.config.settings import get_settings
from vidcat.db.store import StorageError

DEFAULT_MIN_CONNECTIONS = 1
DEFAULT_MAX_CONNECTIONS = 5


class DatabasePool:
    """Thin wrapper around psycopg2's SimpleConnectionPool; each checkout is one transaction."""

    def __init__(
        self,
        dsn: str,
        *,
        min_connections: int = DEFAULT_MIN_CONNECTIONS,
        max_connections: int = DEFAULT_MAX_CONNECTIONS,
    ) -> None:
        self._pool = SimpleConnectionPool(min_connections, max_connections, dsn)

    @contextmanager
    def connection(self) -> Iterator[PsycopgConnection]:
        """Yield a pooled connection, committing on success and rolling back on error."""

        conn = self._pool.getconn()
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            self._pool.putconn(conn)

    def close(self) -> None:
        self._pool.closeall()


_pools: Dict[str, DatabasePool] = {}


def resolve_dsn(dsn: Optional[str] = None) -> str:
    """Return ``dsn`` or the configured ``DATABASE_URL``, failing when neither is set."""

    if dsn:
        return dsn
    database_url = get_settings().database_url
    if database_url is None:
        raise StorageError("DATABASE_URL is not configured.")
    return str(database_url)


def _ensure_pool(dsn: str) -> DatabasePool:
    pool = _pools.get(dsn)
    if pool is None:
        pool = DatabasePool(dsn)
        _pools[dsn] = pool
    return pool


@contextmanager
def get_connection(dsn: Optional[str] = None) -> Iterator[PsycopgConnection]:
    """Provide a pooled database connection as a context manager."""

    pool = _ensure_pool(resolve_dsn(dsn))
    with pool.connection() as conn:
        yield conn


def connection_from_dsn(dsn: Optional[str] = None) -> PsycopgConnection:
    """Create a standalone, unpooled connection."""

    return connect(resolve_dsn(dsn))


__all__ = ["DatabasePool", "connection_from_dsn", "get_connection", "resolve_dsn"]
