"""Tests for export date resolution."""

from datetime import UTC, date, datetime, timedelta, timezone

import pytest

from tmdb_pipeline.common.export_date import (
    format_export_date,
    format_file_date,
    resolve_export_date,
)


class TestResolveExportDate:
    def test_override_is_used_verbatim(self):
        now = datetime(2030, 1, 1, 3, 0, tzinfo=UTC)

        assert resolve_export_date("2024-07-01", now=now) == date(2024, 7, 1)

    def test_override_wins_regardless_of_hour(self):
        for hour in (0, 7, 8, 23):
            now = datetime(2024, 7, 10, hour, tzinfo=UTC)
            assert resolve_export_date("2024-02-29", now=now) == date(2024, 2, 29)

    @pytest.mark.parametrize("override", [None, "", "2024-13-01", "07-01-2024", "yesterday", "2024-02-30"])
    def test_invalid_override_falls_back_to_clock(self, override):
        now = datetime(2024, 7, 10, 12, 0, tzinfo=UTC)

        assert resolve_export_date(override, now=now) == date(2024, 7, 10)

    def test_before_eight_utc_uses_yesterday(self):
        assert resolve_export_date(None, now=datetime(2024, 7, 10, 7, 59, tzinfo=UTC)) == date(2024, 7, 9)

    def test_from_eight_utc_uses_today(self):
        assert resolve_export_date(None, now=datetime(2024, 7, 10, 8, 0, tzinfo=UTC)) == date(2024, 7, 10)

    def test_yesterday_crosses_year_boundary(self):
        assert resolve_export_date("", now=datetime(2024, 1, 1, 0, 30, tzinfo=UTC)) == date(2023, 12, 31)

    def test_hour_is_taken_in_utc(self):
        # 09:00 at UTC+2 is 07:00 UTC
        now = datetime(2024, 7, 10, 9, 0, tzinfo=timezone(timedelta(hours=2)))

        assert resolve_export_date(None, now=now) == date(2024, 7, 9)

    def test_naive_now_is_treated_as_utc(self):
        assert resolve_export_date(None, now=datetime(2024, 7, 10, 6, 0)) == date(2024, 7, 9)

    def test_same_clock_same_result(self):
        now = datetime(2024, 7, 10, 7, 0, tzinfo=UTC)

        assert resolve_export_date("bad", now=now) == resolve_export_date("bad", now=now)

    def test_defaults_to_wall_clock(self):
        now = datetime.now(UTC)
        expected = now.date() if now.hour >= 8 else (now - timedelta(days=1)).date()

        assert resolve_export_date(None) in (expected, expected + timedelta(days=1))


class TestFormatting:
    def test_export_date(self):
        assert format_export_date(date(2024, 7, 1)) == "2024-07-01"

    def test_file_date(self):
        assert format_file_date(date(2024, 7, 1)) == "07_01_2024"
