"""Runtime settings loaded from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Literal, Mapping

StoreBackend = Literal["memory", "postgres"]

DEFAULT_NOTIFY_TIMEOUT = 5.0


@dataclass(frozen=True)
class Settings:
    """Process-wide configuration.

    Attributes:
        store_backend: Where reservations and resources live. "memory" keeps
            everything in-process (dev/tests), "postgres" uses DATABASE_URL.
        database_url: libpq DSN or postgres:// URL.
        notify_webhook_url: Optional endpoint receiving reservation events.
        notify_timeout: HTTP timeout for the webhook, in seconds.
        resources_file: JSON fleet file preloaded into the memory backend.
    """

    store_backend: StoreBackend = "memory"
    database_url: str | None = None
    notify_webhook_url: str | None = None
    notify_timeout: float = DEFAULT_NOTIFY_TIMEOUT
    resources_file: str | None = None


def load_settings(environ: Mapping[str, str] | None = None) -> Settings:
    """Build Settings from the environment.

    Unknown backends fall back to "memory"; malformed timeouts fall back to
    the default.
    """
    env = os.environ if environ is None else environ

    backend = env.get("RENTALY_STORE_BACKEND", "memory").strip().lower()
    if backend not in ("memory", "postgres"):
        backend = "memory"

    try:
        timeout = float(env.get("RENTALY_NOTIFY_TIMEOUT", DEFAULT_NOTIFY_TIMEOUT))
    except ValueError:
        timeout = DEFAULT_NOTIFY_TIMEOUT
    if timeout <= 0:
        timeout = DEFAULT_NOTIFY_TIMEOUT

    return Settings(
        store_backend=backend,  # type: ignore[arg-type]
        database_url=env.get("DATABASE_URL") or None,
        notify_webhook_url=env.get("RENTALY_NOTIFY_WEBHOOK_URL") or None,
        notify_timeout=timeout,
        resources_file=env.get("RENTALY_RESOURCES_FILE") or None,
    )
