"""Tests for midnight arithmetic and duration formatting."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

from devicesync.sync.timing import (
    SECONDS_PER_DAY,
    format_duration,
    next_local_midnight,
    seconds_until_next_midnight,
)


class TestNextMidnight:
    """Tests for the daily trigger boundary."""

    def test_next_midnight_naive(self) -> None:
        now = datetime(2024, 5, 10, 23, 59, 30)
        assert next_local_midnight(now) == datetime(2024, 5, 11, 0, 0)

    def test_seconds_until_midnight(self) -> None:
        assert seconds_until_next_midnight(datetime(2024, 5, 10, 23, 59, 30)) == 30
        assert seconds_until_next_midnight(datetime(2024, 5, 10, 12, 0)) == 12 * 3600

    def test_exactly_midnight_waits_full_day(self) -> None:
        assert seconds_until_next_midnight(datetime(2024, 5, 10, 0, 0)) == SECONDS_PER_DAY

    def test_month_and_year_rollover(self) -> None:
        assert next_local_midnight(datetime(2024, 12, 31, 18, 0)) == datetime(2025, 1, 1)
        assert next_local_midnight(datetime(2024, 2, 28, 1, 0)) == datetime(2024, 2, 29)

    def test_aware_input_is_positive(self) -> None:
        delay = seconds_until_next_midnight(datetime.now(UTC))
        assert 0 < delay <= SECONDS_PER_DAY + 3600

    def test_default_now(self) -> None:
        assert 0 < seconds_until_next_midnight() <= SECONDS_PER_DAY + 3600


class TestFormatDuration:
    """Tests for the connection timer text."""

    def test_zero(self) -> None:
        start = datetime(2024, 1, 1, tzinfo=UTC)
        assert format_duration(start, start) == "0d 0h 0m 0s"

    def test_all_units(self) -> None:
        start = datetime(2024, 1, 1, tzinfo=UTC)
        end = start + timedelta(days=1, hours=2, minutes=3, seconds=4)
        assert format_duration(start, end) == "1d 2h 3m 4s"

    def test_fractional_seconds_truncate(self) -> None:
        start = datetime(2024, 1, 1, tzinfo=UTC)
        assert format_duration(start, start + timedelta(seconds=59.9)) == "0d 0h 0m 59s"

    def test_negative_span_is_zero(self) -> None:
        start = datetime(2024, 1, 1, tzinfo=UTC)
        assert format_duration(start, start - timedelta(hours=1)) == "0d 0h 0m 0s"

    def test_default_now(self) -> None:
        start = datetime.now(UTC) - timedelta(minutes=2)
        assert format_duration(start).startswith("0d 0h 2m")
