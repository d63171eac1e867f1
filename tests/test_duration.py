"""Tests for lookback duration parsing."""

from datetime import UTC, datetime, timedelta

import pytest

from harvest.utils.duration import DEFAULT_LOOKBACK_MS, cutoff_from, parse_duration


class TestParseDuration:
    """Tests for parse_duration."""

    def test_minutes(self):
        assert parse_duration("30m") == 1_800_000

    def test_hours(self):
        assert parse_duration("2h") == 7_200_000

    def test_days(self):
        assert parse_duration("1d") == 86_400_000

    def test_surrounding_whitespace_is_ignored(self):
        assert parse_duration(" 2h ") == 7_200_000

    @pytest.mark.parametrize("raw", ["soon", "", None, "10x", "-5m", "1.5h", "h2", "2 h"])
    def test_unparseable_falls_back_to_default(self, raw):
        assert parse_duration(raw) == DEFAULT_LOOKBACK_MS

    def test_default_is_three_hours(self):
        assert DEFAULT_LOOKBACK_MS == 3 * 60 * 60 * 1000


class TestCutoffFrom:
    """Tests for cutoff computation."""

    def test_cutoff_relative_to_now(self):
        now = datetime(2025, 1, 15, 12, 0, tzinfo=UTC)
        assert cutoff_from("2h", now=now) == datetime(2025, 1, 15, 10, 0, tzinfo=UTC)

    def test_malformed_uses_default_window(self):
        now = datetime(2025, 1, 15, 12, 0, tzinfo=UTC)
        assert cutoff_from("whenever", now=now) == now - timedelta(hours=3)

    @pytest.mark.parametrize("raw", ["1000000d", "9999999999d", "99999999999999999999m"])
    def test_out_of_range_uses_default_window(self, raw):
        now = datetime(2025, 1, 15, 12, 0, tzinfo=UTC)
        assert cutoff_from(raw, now=now) == now - timedelta(hours=3)
