"""Tests for timestamp normalization."""

from datetime import datetime, timezone

import pytest

from logcanon.exceptions import InvalidTimestamp
from logcanon.timestamp import TimestampFormat, format_timestamp, parse_timestamp


class TestParseTimestamp:
    """Tests for parse_timestamp."""

    def test_rfc3339_zulu(self):
        assert parse_timestamp("2019-01-01T00:00:00Z") == datetime(2019, 1, 1, tzinfo=timezone.utc)

    def test_rfc3339_offset_converted(self):
        """Test offsets are normalized to UTC."""
        parsed = parse_timestamp("2019-01-01T02:00:00+02:00", TimestampFormat.RFC3339)
        assert parsed == datetime(2019, 1, 1, tzinfo=timezone.utc)
        assert parsed.tzinfo == timezone.utc

    def test_rfc3339_nanoseconds(self):
        """Test fractions beyond microseconds are truncated."""
        parsed = parse_timestamp("2020-02-24T17:49:22.123456789Z")
        assert parsed.microsecond == 123456

    @pytest.mark.parametrize("value,microsecond", [
        ("2020-02-24T17:49:22.5Z", 500000),
        ("2020-02-24T17:49:22.12Z", 120000),
        ("2020-02-24T17:49:22.1234+00:00", 123400),
        ("2020-02-24T17:49:22.12345Z", 123450),
    ])
    def test_rfc3339_short_fractions(self, value, microsecond):
        """Test fractions of any length up to six digits are accepted."""
        assert parse_timestamp(value).microsecond == microsecond

    def test_rfc3339_requires_offset(self):
        with pytest.raises(InvalidTimestamp):
            parse_timestamp("2019-01-01T00:00:00")

    def test_fluentd(self):
        parsed = parse_timestamp("2020-02-24 17:49:22 +0100", TimestampFormat.FLUENTD)
        assert parsed == datetime(2020, 2, 24, 16, 49, 22, tzinfo=timezone.utc)

    def test_nginx(self):
        parsed = parse_timestamp("10/Oct/2020:13:55:36 -0700", TimestampFormat.NGINX)
        assert parsed == datetime(2020, 10, 10, 20, 55, 36, tzinfo=timezone.utc)

    def test_unix_seconds_and_millis(self):
        expected = datetime(2020, 1, 1, tzinfo=timezone.utc)
        assert parse_timestamp(1577836800, TimestampFormat.UNIX_SECONDS) == expected
        assert parse_timestamp("1577836800000", TimestampFormat.UNIX_MILLIS) == expected

    def test_format_by_name(self):
        """Test formats can be named by their string value."""
        assert parse_timestamp("2019-01-01T00:00:00Z", "rfc3339").year == 2019

    @pytest.mark.parametrize("value,fmt", [
        ("", TimestampFormat.RFC3339),
        (None, TimestampFormat.RFC3339),
        ("yesterday", TimestampFormat.RFC3339),
        ("2020-02-24T17:49:22Z", TimestampFormat.FLUENTD),
        ("not-a-number", TimestampFormat.UNIX_SECONDS),
        (True, TimestampFormat.UNIX_SECONDS),
        (12345, TimestampFormat.RFC3339),
    ])
    def test_invalid(self, value, fmt):
        """Test malformed input raises InvalidTimestamp."""
        with pytest.raises(InvalidTimestamp):
            parse_timestamp(value, fmt)


def test_format_timestamp():
    """Test RFC3339 rendering with Z suffix."""
    assert format_timestamp(datetime(2020, 1, 1, tzinfo=timezone.utc)) == "2020-01-01T00:00:00Z"
