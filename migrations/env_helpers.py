"""DATABASE_URL helpers for Alembic migrations.

Kept apart from env.py so they can be tested without an Alembic context.
The application connects with psycopg2 and accepts either a libpq
key=value DSN or a postgres:// URL; SQLAlchemy needs a URL, so both forms are
normalized here.
"""

from __future__ import annotations

import os
from urllib.parse import quote_plus, urlparse, urlunparse

from psycopg2.extensions import parse_dsn

_DRIVER_SCHEME = "postgresql+psycopg2://"


def libpq_dsn_to_url(dsn: str) -> str:
    """Convert a libpq key=value DSN to a SQLAlchemy URL.

    Unix-socket hosts (leading "/") go to the `host` query parameter.
    """
    tokens = parse_dsn(dsn)

    if not tokens.get("password"):
        db_password = os.environ.get("DB_PASSWORD", "")
        if db_password:
            tokens["password"] = db_password

    user = quote_plus(tokens.get("user", ""))
    password = quote_plus(tokens.get("password", ""))
    dbname = quote_plus(tokens.get("dbname", ""))
    host = tokens.get("host", "localhost")
    port = tokens.get("port", "5432")

    credentials = f"{user}:{password}" if password else user
    if host.startswith("/"):
        return f"{_DRIVER_SCHEME}{credentials}@/{dbname}?host={quote_plus(host)}"
    return f"{_DRIVER_SCHEME}{credentials}@{host}:{port}/{dbname}"


def get_database_url() -> str:
    url = os.environ.get("DATABASE_URL")
    if not url:
        raise RuntimeError("DATABASE_URL is required to run migrations")
    if "://" not in url:
        return libpq_dsn_to_url(url)

    for prefix in ("postgres://", "postgresql://"):
        if url.startswith(prefix):
            url = _DRIVER_SCHEME + url[len(prefix):]
            break

    db_password = os.environ.get("DB_PASSWORD", "")
    parsed = urlparse(url)
    if db_password and not parsed.password:
        netloc = f"{quote_plus(parsed.username or '')}:{quote_plus(db_password)}@{parsed.hostname}"
        if parsed.port:
            netloc += f":{parsed.port}"
        url = urlunparse(parsed._replace(netloc=netloc))
    return url
