"""Database access layer using psycopg2.

Provides:
- get_conn(): Get a database connection from DATABASE_URL
- txn(): Context manager for short, safe transactions
- fetchone/fetchall: Query helpers

Connectivity failures surface as StoreUnavailableError so the domain can tell
them apart from business rejections.
"""

import os
import re
from contextlib import contextmanager
from typing import Any, Iterator, Sequence
from urllib.parse import urlparse

import psycopg2
from psycopg2.extensions import connection as PgConnection, cursor as PgCursor

from rentaly.domain.errors import StoreUnavailableError

# Driver errors that mean "the store is not reachable right now"
TRANSIENT_ERRORS: tuple[type[Exception], ...] = (
    psycopg2.OperationalError,
    psycopg2.InterfaceError,
)

_DSN_PASSWORD = re.compile(r"(^|\s)password=")


def _dsn_has_password(dsn: str) -> bool:
    if "://" in dsn:
        return bool(urlparse(dsn).password)
    return bool(_DSN_PASSWORD.search(dsn))


def get_conn() -> PgConnection:
    """Get a new database connection from DATABASE_URL.

    DB_PASSWORD is passed separately when the DSN carries no password, so
    secrets can be mounted apart from the connection string.

    Raises:
        StoreUnavailableError: If DATABASE_URL is not set or the server
            cannot be reached.
    """
    dsn = os.environ.get("DATABASE_URL")
    if not dsn:
        raise StoreUnavailableError("DATABASE_URL environment variable not set")

    db_password = os.environ.get("DB_PASSWORD")
    try:
        if db_password and not _dsn_has_password(dsn):
            return psycopg2.connect(dsn, password=db_password)
        return psycopg2.connect(dsn)
    except TRANSIENT_ERRORS as exc:
        raise StoreUnavailableError(f"database connection failed: {exc}") from exc


@contextmanager
def txn(conn: PgConnection | None = None) -> Iterator[PgCursor]:
    """Context manager for a short, safe transaction.

    If conn is None, creates a new connection that is closed on exit.
    Commits on successful exit, rolls back on exception.

    Example:
        with txn() as cur:
            cur.execute("INSERT INTO t (x) VALUES (%s)", (1,))
    """
    owns_conn = conn is None
    if owns_conn:
        conn = get_conn()

    try:
        try:
            with conn.cursor() as cur:
                yield cur
            conn.commit()
        except Exception:
            if not conn.closed:
                conn.rollback()
            raise
        finally:
            if owns_conn:
                conn.close()
    except TRANSIENT_ERRORS as exc:
        raise StoreUnavailableError(f"database unavailable: {exc}") from exc


def fetchone(
    cur: PgCursor,
    query: str,
    params: Sequence[Any] | None = None,
) -> tuple[Any, ...] | None:
    """Execute query and fetch one row (None if no results)."""
    cur.execute(query, params)
    return cur.fetchone()


def fetchall(
    cur: PgCursor,
    query: str,
    params: Sequence[Any] | None = None,
) -> list[tuple[Any, ...]]:
    """Execute query and fetch all rows."""
    cur.execute(query, params)
    return cur.fetchall()
