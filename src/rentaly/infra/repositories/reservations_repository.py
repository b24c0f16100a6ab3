"""Reservations repository - persistence for reservation records.

Two implementations of the ReservationStore contract:

- InMemoryReservationStore: dicts behind a lock, for dev and tests.
- PostgresReservationStore: raw SQL with psycopg2 (no ORM).

Both serialize admission per resource through `reserving()`. Postgres does
it with a transaction-scoped advisory lock; the `no_active_overlap`
exclusion constraint stays underneath as a backstop.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from dataclasses import replace
from datetime import date, datetime, timezone
from typing import Callable, Iterator

from psycopg2 import errors as pg_errors
from psycopg2.extensions import cursor as PgCursor

from rentaly.domain.errors import IntervalConflictError
from rentaly.domain.intervals import Interval, overlaps, to_datetime_bounds
from rentaly.domain.reservations import (
    ACTIVE_STATUSES,
    Reservation,
    ReservationQuery,
    ReservationStatus,
)
from rentaly.infra.db import txn
from rentaly.infra.locks import KeyedLock
from rentaly.infra.time import utc_now
from rentaly.observability.logging import get_logger

logger = get_logger(__name__)

_COLUMNS = """
    id, resource_id, requester_id, start_at, end_at, all_day,
    total_price, status, created_at, updated_at
"""

_ACTIVE = sorted(s.value for s in ACTIVE_STATUSES)


def _sort_key(reservation: Reservation) -> datetime:
    return to_datetime_bounds(reservation.interval)[0]


def _start_date(reservation: Reservation) -> date:
    start = reservation.interval.start
    return start.date() if isinstance(start, datetime) else start


def _conflict_error(incoming: Reservation, existing: Reservation) -> IntervalConflictError:
    return IntervalConflictError(
        resource_id=incoming.resource_id,
        conflicting_reservation_id=existing.id,
        existing_start=existing.interval.start,
        existing_end=existing.interval.end,
        existing_status=existing.status.value,
    )


# ── SQL helpers ────────────────────────────────────────────────────────


def _row_to_reservation(row: tuple) -> Reservation:
    (
        reservation_id,
        resource_id,
        requester_id,
        start_at,
        end_at,
        all_day,
        total_price,
        status,
        created_at,
        updated_at,
    ) = row
    start_at = start_at.astimezone(timezone.utc)
    end_at = end_at.astimezone(timezone.utc)
    if all_day:
        interval = Interval(start_at.date(), end_at.date())
    else:
        interval = Interval(start_at, end_at)
    return Reservation(
        id=str(reservation_id),
        resource_id=resource_id,
        requester_id=requester_id,
        interval=interval,
        total_price=total_price,
        status=ReservationStatus(status),
        created_at=created_at,
        updated_at=updated_at,
    )


def lock_resource(cur: PgCursor, resource_id: str) -> None:
    """Take a transaction-scoped advisory lock keyed by resource id.

    Released automatically on commit or rollback.
    """
    cur.execute("SELECT pg_advisory_xact_lock(hashtext(%s))", (resource_id,))


def select_active_by_resource(cur: PgCursor, resource_id: str) -> list[Reservation]:
    cur.execute(
        f"""
        SELECT {_COLUMNS}
        FROM reservations
        WHERE resource_id = %s
          AND status = ANY(%s::reservation_status[])
        ORDER BY start_at
        """,
        (resource_id, _ACTIVE),
    )
    return [_row_to_reservation(row) for row in cur.fetchall()]


def select_by_id(cur: PgCursor, reservation_id: str) -> Reservation | None:
    cur.execute(
        f"SELECT {_COLUMNS} FROM reservations WHERE id = %s",
        (reservation_id,),
    )
    row = cur.fetchone()
    return _row_to_reservation(row) if row is not None else None


def insert_reservation(cur: PgCursor, reservation: Reservation) -> Reservation:
    """Insert a reservation row and return it as stored.

    Raises:
        psycopg2.errors.ExclusionViolation: an active reservation of the same
            resource overlaps (constraint no_active_overlap).
    """
    start_at, end_at = to_datetime_bounds(reservation.interval)
    cur.execute(
        f"""
        INSERT INTO reservations (
            id, resource_id, requester_id, start_at, end_at, all_day,
            total_price, status, created_at, updated_at
        )
        VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
        RETURNING {_COLUMNS}
        """,
        (
            reservation.id,
            reservation.resource_id,
            reservation.requester_id,
            start_at,
            end_at,
            not reservation.interval.is_datetime,
            reservation.total_price,
            reservation.status.value,
            reservation.created_at,
            reservation.updated_at,
        ),
    )
    return _row_to_reservation(cur.fetchone())


def update_reservation_status(
    cur: PgCursor,
    reservation_id: str,
    status: ReservationStatus,
    *,
    expected_status: ReservationStatus | None = None,
) -> Reservation | None:
    """Set status (compare-and-set when expected_status is given)."""
    conditions = ["id = %s"]
    params: list = [status.value, reservation_id]

    if expected_status is not None:
        conditions.append("status = %s")
        params.append(expected_status.value)

    where = " AND ".join(conditions)
    cur.execute(
        f"""
        UPDATE reservations
        SET status = %s, updated_at = now()
        WHERE {where}
        RETURNING {_COLUMNS}
        """,
        params,
    )
    row = cur.fetchone()
    return _row_to_reservation(row) if row is not None else None


def select_reservations(cur: PgCursor, query: ReservationQuery) -> list[Reservation]:
    """List reservations matching the criteria, newest start first."""
    conditions: list[str] = []
    params: list = []

    if query.resource_id is not None:
        conditions.append("resource_id = %s")
        params.append(query.resource_id)

    if query.requester_id is not None:
        conditions.append("requester_id = %s")
        params.append(query.requester_id)

    if query.statuses:
        conditions.append("status = ANY(%s::reservation_status[])")
        params.append(sorted(s.value for s in query.statuses))

    if query.starts_from is not None:
        conditions.append("(start_at AT TIME ZONE 'UTC')::date >= %s")
        params.append(query.starts_from)

    if query.starts_before is not None:
        conditions.append("(start_at AT TIME ZONE 'UTC')::date < %s")
        params.append(query.starts_before)

    where_clause = f"WHERE {' AND '.join(conditions)}" if conditions else ""
    params.append(query.limit)

    cur.execute(
        f"""
        SELECT {_COLUMNS}
        FROM reservations
        {where_clause}
        ORDER BY start_at DESC, created_at DESC
        LIMIT %s
        """,
        params,
    )
    return [_row_to_reservation(row) for row in cur.fetchall()]


# ── PostgreSQL store ───────────────────────────────────────────────────


class _CursorSession:
    """Store operations bound to the transaction holding the resource lock."""

    def __init__(self, cur: PgCursor) -> None:
        self._cur = cur

    def find_active_by_resource(self, resource_id: str) -> list[Reservation]:
        return select_active_by_resource(self._cur, resource_id)

    def insert(self, reservation: Reservation) -> Reservation:
        self._cur.execute("SAVEPOINT reservation_insert")
        try:
            stored = insert_reservation(self._cur, reservation)
        except pg_errors.ExclusionViolation:
            # Another writer bypassed the advisory lock; report what it holds
            self._cur.execute("ROLLBACK TO SAVEPOINT reservation_insert")
            for existing in select_active_by_resource(self._cur, reservation.resource_id):
                if overlaps(reservation.interval, existing.interval):
                    raise _conflict_error(reservation, existing) from None
            raise
        self._cur.execute("RELEASE SAVEPOINT reservation_insert")
        return stored


class PostgresReservationStore:
    """ReservationStore over the `reservations` table."""

    def find_active_by_resource(self, resource_id: str) -> list[Reservation]:
        with txn() as cur:
            return select_active_by_resource(cur, resource_id)

    def insert(self, reservation: Reservation) -> Reservation:
        with txn() as cur:
            return _CursorSession(cur).insert(reservation)

    def update_status(
        self,
        reservation_id: str,
        status: ReservationStatus,
        *,
        expected_status: ReservationStatus | None = None,
    ) -> Reservation | None:
        with txn() as cur:
            return update_reservation_status(
                cur, reservation_id, status, expected_status=expected_status
            )

    def find_by_id(self, reservation_id: str) -> Reservation | None:
        with txn() as cur:
            return select_by_id(cur, reservation_id)

    def find(self, query: ReservationQuery) -> list[Reservation]:
        with txn() as cur:
            return select_reservations(cur, query)

    @contextmanager
    def reserving(self, resource_id: str) -> Iterator[_CursorSession]:
        with txn() as cur:
            lock_resource(cur, resource_id)
            yield _CursorSession(cur)


# ── In-memory store ────────────────────────────────────────────────────


class InMemoryReservationStore:
    """ReservationStore kept in process memory.

    Thread-safe. `reserving()` holds a per-resource lock, and insert refuses
    overlapping active rows just like the database constraint does.
    """

    def __init__(self, clock: Callable[[], datetime] = utc_now) -> None:
        self._rows: dict[str, Reservation] = {}
        self._rw = threading.RLock()
        self._locks = KeyedLock()
        self._clock = clock

    def __len__(self) -> int:
        with self._rw:
            return len(self._rows)

    def find_active_by_resource(self, resource_id: str) -> list[Reservation]:
        with self._rw:
            rows = [
                r
                for r in self._rows.values()
                if r.resource_id == resource_id and r.status in ACTIVE_STATUSES
            ]
        return sorted(rows, key=_sort_key)

    def insert(self, reservation: Reservation) -> Reservation:
        with self._rw:
            if reservation.id in self._rows:
                raise ValueError(f"Reservation {reservation.id} already exists")
            if reservation.status in ACTIVE_STATUSES:
                for existing in self.find_active_by_resource(reservation.resource_id):
                    if overlaps(reservation.interval, existing.interval):
                        raise _conflict_error(reservation, existing)
            self._rows[reservation.id] = reservation
            return reservation

    def update_status(
        self,
        reservation_id: str,
        status: ReservationStatus,
        *,
        expected_status: ReservationStatus | None = None,
    ) -> Reservation | None:
        with self._rw:
            current = self._rows.get(reservation_id)
            if current is None:
                return None
            if expected_status is not None and current.status != expected_status:
                return None
            updated = replace(current, status=status, updated_at=self._clock())
            self._rows[reservation_id] = updated
            return updated

    def find_by_id(self, reservation_id: str) -> Reservation | None:
        with self._rw:
            return self._rows.get(reservation_id)

    def find(self, query: ReservationQuery) -> list[Reservation]:
        with self._rw:
            rows = list(self._rows.values())

        def matches(r: Reservation) -> bool:
            if query.resource_id is not None and r.resource_id != query.resource_id:
                return False
            if query.requester_id is not None and r.requester_id != query.requester_id:
                return False
            if query.statuses and r.status not in query.statuses:
                return False
            if query.starts_from is not None and _start_date(r) < query.starts_from:
                return False
            if query.starts_before is not None and _start_date(r) >= query.starts_before:
                return False
            return True

        selected = [r for r in rows if matches(r)]
        selected.sort(key=lambda r: (_sort_key(r), r.created_at), reverse=True)
        return selected[: query.limit]

    @contextmanager
    def reserving(self, resource_id: str) -> Iterator["InMemoryReservationStore"]:
        with self._locks.hold(resource_id):
            yield self
