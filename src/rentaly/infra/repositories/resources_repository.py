"""Resources repository - read access to bookable vehicles.

Uses raw SQL with psycopg2 (no ORM). Writes belong to the fleet management
side; the in-memory registry exposes put/remove so dev setups and tests can
play that role.
"""

from __future__ import annotations

import threading

from psycopg2.extensions import cursor as PgCursor

from rentaly.domain.resources import Resource
from rentaly.infra.db import txn


def select_resource(cur: PgCursor, resource_id: str) -> Resource | None:
    cur.execute(
        """
        SELECT id, day_rate, available, label
        FROM resources
        WHERE id = %s
        """,
        (resource_id,),
    )
    row = cur.fetchone()
    if row is None:
        return None
    return Resource(id=row[0], day_rate=row[1], available=row[2], label=row[3])


class PostgresResourceRegistry:
    """ResourceRegistry over the `resources` table."""

    def get_resource(self, resource_id: str) -> Resource | None:
        with txn() as cur:
            return select_resource(cur, resource_id)


class InMemoryResourceRegistry:
    """ResourceRegistry kept in process memory."""

    def __init__(self, resources: list[Resource] | None = None) -> None:
        self._resources: dict[str, Resource] = {}
        self._lock = threading.Lock()
        for resource in resources or []:
            self.put(resource)

    def get_resource(self, resource_id: str) -> Resource | None:
        with self._lock:
            return self._resources.get(resource_id)

    def put(self, resource: Resource) -> None:
        """Create or replace a resource."""
        with self._lock:
            self._resources[resource.id] = resource

    def remove(self, resource_id: str) -> bool:
        with self._lock:
            return self._resources.pop(resource_id, None) is not None
