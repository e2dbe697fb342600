"""Tests for formatting helpers."""

from datetime import datetime, timedelta, timezone

import pytest

from tidy_organizer.utils.dates import format_timestamp, parse_timestamp
from tidy_organizer.utils.format import format_bytes, format_duration, parse_bytes


class TestBytes:
    """Test byte size formatting and parsing."""

    @pytest.mark.parametrize("size,expected", [
        (0, "0 B"),
        (-5, "0 B"),
        (512, "512 B"),
        (1536, "1.50 KB"),
        (5 * 1024 * 1024, "5.00 MB"),
        (3 * 1024 ** 5, "3072.00 TB"),
    ])
    def test_format_bytes(self, size, expected):
        assert format_bytes(size) == expected

    def test_parse_bytes(self):
        assert parse_bytes("1.5 KB") == 1536
        assert parse_bytes("2mb") == 2 * 1024 * 1024
        assert parse_bytes("42") == 42
        assert parse_bytes("lots") == 0
        assert parse_bytes("") == 0


class TestDuration:
    """Test duration formatting."""

    @pytest.mark.parametrize("ms,expected", [
        (0, "0ms"),
        (999, "999ms"),
        (1500, "1.5s"),
        (61_000, "1m 01s"),
        (3_723_000, "1h 02m 03s"),
    ])
    def test_format_duration(self, ms, expected):
        assert format_duration(ms) == expected


class TestTimestamps:
    """Test ISO-8601 timestamp helpers."""

    def test_z_suffix(self):
        when = datetime(2024, 5, 1, 8, 30, 0, 123456, tzinfo=timezone.utc)
        assert format_timestamp(when) == "2024-05-01T08:30:00.123Z"

    def test_offsets_normalised_to_utc(self):
        when = datetime(2024, 5, 1, 10, 30, tzinfo=timezone(timedelta(hours=2)))
        assert format_timestamp(when) == "2024-05-01T08:30:00.000Z"

    def test_parse(self):
        assert parse_timestamp("2024-05-01T08:30:00.000Z") == datetime(2024, 5, 1, 8, 30, tzinfo=timezone.utc)
        assert parse_timestamp("2024-05-01T08:30:00").tzinfo is timezone.utc
        assert parse_timestamp(None) is None
