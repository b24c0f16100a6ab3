"""Tests for the half-open interval model."""

from datetime import date, datetime, timedelta, timezone

import pytest

from rentaly.domain.errors import InvalidIntervalError
from rentaly.domain.intervals import Interval, duration_in_days, overlaps


def _d(day: int) -> date:
    return date(2025, 1, day)


class TestConstruction:
    def test_start_must_precede_end(self):
        with pytest.raises(InvalidIntervalError):
            Interval(_d(10), _d(10))

    def test_reversed_range_rejected(self):
        with pytest.raises(InvalidIntervalError) as exc_info:
            Interval(_d(12), _d(10))
        assert exc_info.value.kind == "invalid_interval"
        assert exc_info.value.details["start"] == "2025-01-12"

    def test_mixed_kinds_rejected(self):
        with pytest.raises(InvalidIntervalError):
            Interval(_d(10), datetime(2025, 1, 12, tzinfo=timezone.utc))

    def test_non_date_rejected(self):
        with pytest.raises(InvalidIntervalError):
            Interval("2025-01-10", "2025-01-12")  # type: ignore[arg-type]

    def test_naive_datetimes_become_utc(self):
        interval = Interval(datetime(2025, 1, 10, 8), datetime(2025, 1, 10, 18))
        assert interval.start.tzinfo == timezone.utc
        assert interval.end.tzinfo == timezone.utc

    def test_aware_datetimes_converted_to_utc(self):
        plus_two = timezone(timedelta(hours=2))
        interval = Interval(
            datetime(2025, 1, 10, 10, tzinfo=plus_two),
            datetime(2025, 1, 11, 10, tzinfo=plus_two),
        )
        assert interval.start == datetime(2025, 1, 10, 8, tzinfo=timezone.utc)


class TestParse:
    def test_plain_dates(self):
        interval = Interval.parse("2025-01-10", "2025-01-13")
        assert interval.start == _d(10)
        assert interval.end == _d(13)
        assert not interval.is_datetime

    def test_timestamps_with_z_suffix(self):
        interval = Interval.parse("2025-01-10T10:00:00Z", "2025-01-11T09:00:00Z")
        assert interval.is_datetime
        assert interval.start == datetime(2025, 1, 10, 10, tzinfo=timezone.utc)

    def test_garbage_rejected(self):
        with pytest.raises(InvalidIntervalError, match="invalid date"):
            Interval.parse("tomorrow", "2025-01-13")

    def test_objects_pass_through(self):
        interval = Interval.parse(_d(10), _d(11))
        assert interval == Interval(_d(10), _d(11))


class TestOverlaps:
    def test_partial_overlap(self):
        assert overlaps(Interval(_d(10), _d(13)), Interval(_d(12), _d(15)))

    def test_containment(self):
        assert overlaps(Interval(_d(1), _d(30)), Interval(_d(10), _d(11)))
        assert overlaps(Interval(_d(10), _d(11)), Interval(_d(1), _d(30)))

    def test_adjacent_intervals_do_not_overlap(self):
        a = Interval(_d(10), _d(13))
        b = Interval(_d(13), _d(15))
        assert not overlaps(a, b)
        assert not overlaps(b, a)

    def test_disjoint(self):
        assert not overlaps(Interval(_d(1), _d(3)), Interval(_d(5), _d(7)))

    def test_symmetric(self):
        a = Interval(_d(10), _d(13))
        b = Interval(_d(11), _d(20))
        assert overlaps(a, b) == overlaps(b, a)

    def test_date_against_datetime(self):
        by_day = Interval(_d(10), _d(13))
        afternoon = Interval(
            datetime(2025, 1, 12, 15, tzinfo=timezone.utc),
            datetime(2025, 1, 12, 18, tzinfo=timezone.utc),
        )
        after_return = Interval(
            datetime(2025, 1, 13, 0, tzinfo=timezone.utc),
            datetime(2025, 1, 13, 6, tzinfo=timezone.utc),
        )
        assert overlaps(by_day, afternoon)
        assert not overlaps(by_day, after_return)

    def test_method_delegates(self):
        assert Interval(_d(10), _d(13)).overlaps(Interval(_d(12), _d(14)))


class TestDurationInDays:
    def test_whole_days(self):
        assert duration_in_days(Interval(_d(10), _d(13))) == 3

    def test_partial_day_rounds_up(self):
        interval = Interval(
            datetime(2025, 1, 10, 10, tzinfo=timezone.utc),
            datetime(2025, 1, 11, 12, tzinfo=timezone.utc),
        )
        assert duration_in_days(interval) == 2

    def test_minimum_one_day(self):
        interval = Interval(
            datetime(2025, 1, 10, 10, tzinfo=timezone.utc),
            datetime(2025, 1, 10, 11, tzinfo=timezone.utc),
        )
        assert duration_in_days(interval) == 1

    def test_exact_24_hours(self):
        interval = Interval(
            datetime(2025, 1, 10, 10, tzinfo=timezone.utc),
            datetime(2025, 1, 11, 10, tzinfo=timezone.utc),
        )
        assert interval.days == 1


class TestOutOfRange:
    def test_offset_pushing_past_year_9999_rejected(self):
        with pytest.raises(InvalidIntervalError, match="out of range"):
            Interval.parse("9999-12-31T20:00:00-05:00", "9999-12-31T23:00:00-05:00")

    def test_aware_datetimes_pushing_past_year_9999_rejected(self):
        minus_five = timezone(timedelta(hours=-5))
        with pytest.raises(InvalidIntervalError):
            Interval(
                datetime(9999, 12, 31, 18, tzinfo=minus_five),
                datetime(9999, 12, 31, 20, tzinfo=minus_five),
            )
