"""Half-open rental intervals.

An interval covers [start, end): the end instant is the return, not a day of
use. A vehicle returned on day N can therefore be picked up by the next
renter on day N, and those two intervals do not overlap.

Endpoints are either both dates or both datetimes. Naive datetimes are taken
as UTC so every stored interval compares on the same clock.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Union

from rentaly.domain.errors import InvalidIntervalError
from rentaly.infra.time import as_utc

Instant = Union[date, datetime]


def _kind(value: object) -> str:
    # datetime is a subclass of date, check it first
    if isinstance(value, datetime):
        return "datetime"
    if isinstance(value, date):
        return "date"
    raise InvalidIntervalError(
        f"unsupported interval endpoint: {value!r}",
        value=repr(value),
    )


def _parse_instant(value: Instant | str) -> Instant:
    if not isinstance(value, str):
        return value
    raw = value.strip()
    try:
        if "T" not in raw and " " not in raw:
            return date.fromisoformat(raw)
        if raw.endswith("Z"):
            raw = raw[:-1] + "+00:00"
        return datetime.fromisoformat(raw)
    except (ValueError, OverflowError):
        raise InvalidIntervalError(
            f"invalid date: {value!r} (expected YYYY-MM-DD or ISO-8601)",
            value=value,
        ) from None


@dataclass(frozen=True)
class Interval:
    """A half-open range [start, end) with start strictly before end."""

    start: Instant
    end: Instant

    def __post_init__(self) -> None:
        start_kind = _kind(self.start)
        end_kind = _kind(self.end)
        if start_kind != end_kind:
            raise InvalidIntervalError(
                "start and end must both be dates or both be datetimes",
                start=str(self.start),
                end=str(self.end),
            )
        if start_kind == "datetime":
            try:
                start, end = as_utc(self.start), as_utc(self.end)
            except OverflowError:
                raise InvalidIntervalError(
                    "timestamp out of range after conversion to UTC",
                    start=str(self.start),
                    end=str(self.end),
                ) from None
            object.__setattr__(self, "start", start)
            object.__setattr__(self, "end", end)
        if self.start >= self.end:
            raise InvalidIntervalError(
                "End date must be after start date",
                start=self.start.isoformat(),
                end=self.end.isoformat(),
            )

    @classmethod
    def parse(cls, start: Instant | str, end: Instant | str) -> "Interval":
        """Build an interval from ISO strings or date/datetime objects."""
        return cls(_parse_instant(start), _parse_instant(end))

    @property
    def is_datetime(self) -> bool:
        return isinstance(self.start, datetime)

    @property
    def days(self) -> int:
        return duration_in_days(self)

    def overlaps(self, other: "Interval") -> bool:
        return overlaps(self, other)

    def to_dict(self) -> dict[str, str]:
        return {"start": self.start.isoformat(), "end": self.end.isoformat()}


def overlaps(a: Interval, b: Interval) -> bool:
    """Return True if [a.start, a.end) and [b.start, b.end) intersect.

    Touching boundaries (a.end == b.start) do not overlap. Date intervals
    are compared against datetime intervals at midnight UTC.
    """
    if a.is_datetime == b.is_datetime:
        return a.start < b.end and b.start < a.end
    a_start, a_end = to_datetime_bounds(a)
    b_start, b_end = to_datetime_bounds(b)
    return a_start < b_end and b_start < a_end


def duration_in_days(interval: Interval) -> int:
    """Whole days covered by the interval, rounded up, at least 1.

    A partial day bills as a full day: 26 hours is 2 days.
    """
    delta = interval.end - interval.start
    days = delta.days
    if delta - timedelta(days=days):
        days += 1
    return max(1, days)


def to_datetime_bounds(interval: Interval) -> tuple[datetime, datetime]:
    """Express any interval as UTC datetimes (dates map to midnight)."""
    if interval.is_datetime:
        return interval.start, interval.end  # type: ignore[return-value]
    return (
        as_utc(datetime.combine(interval.start, datetime.min.time())),
        as_utc(datetime.combine(interval.end, datetime.min.time())),
    )
