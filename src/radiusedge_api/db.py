from __future__ import annotations

import contextlib
import logging
import sqlite3
from typing import Any, Callable, Iterator

import psycopg2
import psycopg2.errors
import psycopg2.extras

from radiusedge_api import query
from radiusedge_api.config import (
    get_connect_timeout_s,
    get_database_url,
    get_log_level,
    get_statement_timeout_ms,
)

logger = logging.getLogger(__name__)
logger.setLevel(get_log_level())

POSTGRES = "postgres"
SQLITE = "sqlite"

_DIALECTS = {POSTGRES: query.POSTGRES, SQLITE: query.SQLITE}
_PG_UNIQUE_VIOLATION = "23505"
_DRIVER_ERRORS = (psycopg2.Error, sqlite3.Error)


class StoreError(RuntimeError):
    pass


class ConflictError(RuntimeError):
    pass


def is_unique_violation(backend: str, exc: BaseException) -> bool:
    if backend == SQLITE:
        return isinstance(exc, sqlite3.IntegrityError) and "UNIQUE constraint failed" in str(exc)
    if isinstance(exc, psycopg2.errors.UniqueViolation):
        return True
    return getattr(exc, "pgcode", None) == _PG_UNIQUE_VIOLATION


class Store:
    """Connection factory plus the SQL dialect of the backend behind it.

    Every ``cursor()`` block runs in its own connection and transaction:
    commit on success, rollback on any exception. Driver errors leave the
    block as ``ConflictError`` (unique violations) or ``StoreError``.
    """

    def __init__(self, connect: Callable[[], Any], backend: str = POSTGRES) -> None:
        if backend not in _DIALECTS:
            raise ValueError(f"Unsupported backend: {backend!r}")
        self._connect = connect
        self.backend = backend

    @property
    def dialect(self) -> query.Dialect:
        return _DIALECTS[self.backend]

    def _translate(self, exc: BaseException) -> RuntimeError:
        if is_unique_violation(self.backend, exc):
            return ConflictError(str(exc).strip())
        return StoreError(str(exc).strip() or exc.__class__.__name__)

    @contextlib.contextmanager
    def connection(self) -> Iterator[Any]:
        try:
            conn = self._connect()
        except _DRIVER_ERRORS as exc:
            raise StoreError(f"Failed to connect to {self.backend} store: {exc}".strip()) from exc
        try:
            yield conn
            conn.commit()
        except Exception as exc:
            conn.rollback()
            if isinstance(exc, _DRIVER_ERRORS):
                raise self._translate(exc) from exc
            raise
        finally:
            conn.close()

    @contextlib.contextmanager
    def cursor(self) -> Iterator[Any]:
        with self.connection() as conn:
            if self.backend == POSTGRES:
                cursor = conn.cursor(cursor_factory=psycopg2.extras.DictCursor)
            else:
                conn.row_factory = sqlite3.Row
                cursor = conn.cursor()
            try:
                yield cursor
            finally:
                cursor.close()


def _postgres_connect(dsn: str) -> Callable[[], Any]:
    options = f"-c statement_timeout={get_statement_timeout_ms()}"
    connect_timeout = get_connect_timeout_s()

    def connect() -> Any:
        return psycopg2.connect(dsn, connect_timeout=connect_timeout, options=options)

    return connect


def _unicode_lower(value: Any) -> Any:
    return value.lower() if isinstance(value, str) else value


def _sqlite_connect(path: str) -> Callable[[], Any]:
    timeout = get_statement_timeout_ms() / 1000

    def connect() -> Any:
        conn = sqlite3.connect(path, timeout=timeout)
        # SQLite's built-in LOWER only folds ASCII.
        conn.create_function("LOWER", 1, _unicode_lower, deterministic=True)
        return conn

    return connect


def store_from_url(url: str) -> Store:
    if url.startswith("sqlite:///"):
        store = Store(_sqlite_connect(url[len("sqlite:///") :]), backend=SQLITE)
    elif url.startswith(("postgres://", "postgresql://")):
        store = Store(_postgres_connect(url), backend=POSTGRES)
    else:
        scheme = url.split(":", 1)[0] if ":" in url else "<none>"
        raise RuntimeError(f"Unsupported DATABASE_URL scheme: {scheme}")
    logger.info("Using %s store", store.backend)
    return store


def get_store() -> Store:
    return store_from_url(get_database_url())
