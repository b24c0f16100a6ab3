"""Load resources (vehicles) from a JSON file and upsert them into Postgres.

Usage:
    DATABASE_URL=... python -m rentaly.operations.seed_resources fleet.json

File format: a list of {"id", "day_rate", "available"?, "label"?} objects.
The same loader backs RENTALY_RESOURCES_FILE for the in-memory backend.
"""

from __future__ import annotations

import json
import sys
from pathlib import Path

from psycopg2.extensions import cursor as PgCursor

from rentaly.domain.resources import Resource
from rentaly.infra.db import txn


def load_resources_file(path: str | Path) -> list[Resource]:
    """Parse a resources JSON file.

    Raises:
        ValueError: malformed file or invalid resource (e.g. day_rate <= 0).
    """
    try:
        raw = json.loads(Path(path).read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ValueError(f"{path}: invalid JSON ({exc})") from exc

    if not isinstance(raw, list):
        raise ValueError(f"{path}: expected a JSON list of resources")

    resources = []
    for i, item in enumerate(raw):
        if not isinstance(item, dict) or "id" not in item or "day_rate" not in item:
            raise ValueError(f"{path}[{i}]: each resource needs 'id' and 'day_rate'")
        available = item.get("available", True)
        if not isinstance(available, bool):
            raise ValueError(f"{path}[{i}]: 'available' must be true or false")
        resources.append(
            Resource(
                id=str(item["id"]),
                day_rate=str(item["day_rate"]),
                available=available,
                label=item.get("label"),
            )
        )
    return resources


def upsert_resource(cur: PgCursor, resource: Resource) -> None:
    cur.execute(
        """
        INSERT INTO resources (id, day_rate, available, label)
        VALUES (%s, %s, %s, %s)
        ON CONFLICT (id) DO UPDATE SET
            day_rate = EXCLUDED.day_rate,
            available = EXCLUDED.available,
            label = EXCLUDED.label,
            updated_at = now()
        """,
        (resource.id, resource.day_rate, resource.available, resource.label),
    )


def main(argv: list[str] | None = None) -> int:
    args = sys.argv[1:] if argv is None else argv
    if len(args) != 1:
        print("usage: python -m rentaly.operations.seed_resources <resources.json>", file=sys.stderr)
        return 2

    resources = load_resources_file(args[0])
    with txn() as cur:
        for resource in resources:
            upsert_resource(cur, resource)

    print(f"seeded {len(resources)} resources")
    return 0


if __name__ == "__main__":
    sys.exit(main())
