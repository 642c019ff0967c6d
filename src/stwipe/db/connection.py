"""Pooled psycopg2 connections bound to the configured ``DATABASE_URL``."""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Dict, Iterator, Optional

from psycopg2.extensions import connection as PsycopgConnection
from psycopg2.pool import ThreadedConnectionPool

from stwipe.config.settings import Settings, get_settings
from stwipe.db.repositories import ConnectionFactory, RepositoryError

MIN_CONNECTIONS = 1
MAX_CONNECTIONS = 8

_pools: Dict[str, ThreadedConnectionPool] = {}
_pools_lock = threading.Lock()


def database_dsn(settings: Optional[Settings] = None) -> str:
    """Return the configured DSN or raise when Postgres is not configured."""

    settings = settings or get_settings()
    if settings.database_url is None:
        raise RepositoryError("DATABASE_URL must be set to use the postgres storage backend.")
    return str(settings.database_url)


def _pool_for(dsn: str) -> ThreadedConnectionPool:
    # Store calls from the pipeline run on worker threads.
    with _pools_lock:
        pool = _pools.get(dsn)
        if pool is None:
            pool = ThreadedConnectionPool(MIN_CONNECTIONS, MAX_CONNECTIONS, dsn)
            _pools[dsn] = pool
        return pool


def pooled_connection_factory(settings: Optional[Settings] = None) -> ConnectionFactory:
    """Return a :class:`ConnectionFactory` that commits on success and rolls back on error."""

    dsn = database_dsn(settings)

    @contextmanager
    def connection() -> Iterator[PsycopgConnection]:
        pool = _pool_for(dsn)
        conn = pool.getconn()
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            pool.putconn(conn)

    return connection


def close_pools() -> None:
    """Close every pool opened by this process."""

    with _pools_lock:
        for pool in _pools.values():
            pool.closeall()
        _pools.clear()


__all__ = ["MAX_CONNECTIONS", "close_pools", "database_dsn", "pooled_connection_factory"]
