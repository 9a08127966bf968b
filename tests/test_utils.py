"""
Tests for hashing and UTC time helpers.
"""

from datetime import UTC, date, datetime, timedelta, timezone

from mirrorhistory.utils.hashing import calculate_content_hash, calculate_parts_hash
from mirrorhistory.utils.timeutils import (
    as_utc,
    day_end,
    day_start,
    format_hm,
    hour_bounds,
    iter_days,
    parse_timestamp,
    range_bounds,
    subtract_months,
)


class TestHashing:
    """Tests for content hashing."""

    def test_hash_is_sha256_hex(self):
        digest = calculate_content_hash("hello")

        assert len(digest) == 64
        assert digest == calculate_content_hash(b"hello")

    def test_parts_hash_is_order_sensitive(self):
        """Test that the same parts in another order give another digest."""
        assert calculate_parts_hash(["a", 1]) == calculate_parts_hash(["a", 1])
        assert calculate_parts_hash(["a", 1]) != calculate_parts_hash([1, "a"])


class TestDayBoundaries:
    """Tests for UTC day and hour boundaries."""

    def test_day_bounds(self):
        day = date(2025, 3, 10)

        assert day_start(day) == datetime(2025, 3, 10, tzinfo=UTC)
        assert day_end(day) == datetime(2025, 3, 10, 23, 59, 59, 999000, tzinfo=UTC)

    def test_hour_bounds_are_inclusive_ms(self):
        start, end = hour_bounds(date(2025, 3, 10), 14)

        assert start == datetime(2025, 3, 10, 14, tzinfo=UTC)
        assert end == datetime(2025, 3, 10, 14, 59, 59, 999000, tzinfo=UTC)

    def test_range_bounds_cover_full_days(self):
        start, end = range_bounds(date(2025, 3, 1), date(2025, 3, 7))

        assert start == day_start(date(2025, 3, 1))
        assert end == day_end(date(2025, 3, 7))

    def test_iter_days_inclusive(self):
        days = list(iter_days(date(2025, 2, 27), date(2025, 3, 1)))

        assert days == [date(2025, 2, 27), date(2025, 2, 28), date(2025, 3, 1)]

    def test_iter_days_empty_when_reversed(self):
        assert list(iter_days(date(2025, 3, 2), date(2025, 3, 1))) == []


class TestSubtractMonths:
    """Tests for calendar month arithmetic."""

    def test_clamps_day_of_month(self):
        assert subtract_months(date(2025, 3, 31), 1) == date(2025, 2, 28)
        assert subtract_months(date(2024, 3, 31), 1) == date(2024, 2, 29)

    def test_crosses_year(self):
        assert subtract_months(date(2025, 1, 15), 1) == date(2024, 12, 15)


class TestTimestamps:
    """Tests for timestamp parsing and normalisation."""

    def test_parse_z_suffix(self):
        assert parse_timestamp("2025-03-10T12:30:00Z") == datetime(
            2025, 3, 10, 12, 30, tzinfo=UTC
        )

    def test_parse_offset_is_converted_to_utc(self):
        parsed = parse_timestamp("2025-03-10T14:30:00+02:00")

        assert parsed == datetime(2025, 3, 10, 12, 30, tzinfo=UTC)
        assert parsed.utcoffset() == timedelta(0)

    def test_naive_is_assumed_utc(self):
        assert as_utc(datetime(2025, 3, 10, 12)).tzinfo is UTC

    def test_format_hm_uses_utc(self):
        local = datetime(2025, 3, 10, 9, 5, tzinfo=timezone(timedelta(hours=3)))

        assert format_hm(local) == "06:05"
