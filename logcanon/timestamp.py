"""Timestamp normalization for raw log formats.

Every parser hands timestamps to :func:`parse_timestamp` together with the
format the source declares. The result is always an aware UTC datetime.
"""

import re
from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Any

from pydantic import PlainValidator

from logcanon.exceptions import InvalidTimestamp


class TimestampFormat(str, Enum):
    """Timestamp layouts emitted by supported sources."""
    RFC3339 = "rfc3339"
    FLUENTD = "fluentd"
    UNIX_SECONDS = "unix_seconds"
    UNIX_MILLIS = "unix_millis"
    NGINX = "nginx"


_STRPTIME_LAYOUTS = {
    TimestampFormat.FLUENTD: "%Y-%m-%d %H:%M:%S %z",
    TimestampFormat.NGINX: "%d/%b/%Y:%H:%M:%S %z",
}

# older fromisoformat only accepts fractions of exactly 3 or 6 digits
_FRACTION = re.compile(r"\.(\d+)")


def _microseconds(match: re.Match) -> str:
    return "." + match.group(1)[:6].ljust(6, "0")


def to_utc(value: datetime) -> datetime:
    """Convert to UTC, treating naive datetimes as already UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_timestamp(value: Any, fmt: TimestampFormat = TimestampFormat.RFC3339) -> datetime:
    """Parse ``value`` in layout ``fmt`` into an aware UTC datetime.

    Raises:
        InvalidTimestamp: If the value is empty or does not match the layout
    """
    fmt = TimestampFormat(fmt)

    if value is None or (isinstance(value, str) and not value.strip()):
        raise InvalidTimestamp(value, fmt.value)

    try:
        if fmt in (TimestampFormat.UNIX_SECONDS, TimestampFormat.UNIX_MILLIS):
            if isinstance(value, bool):
                raise TypeError("boolean is not a timestamp")
            seconds = float(value)
            if fmt is TimestampFormat.UNIX_MILLIS:
                seconds /= 1000.0
            return datetime.fromtimestamp(seconds, tz=timezone.utc)

        if not isinstance(value, str):
            raise TypeError(f"expected string, got {type(value).__name__}")

        if fmt is TimestampFormat.RFC3339:
            text = _FRACTION.sub(_microseconds, value.strip())
            if text.endswith(("Z", "z")):
                text = text[:-1] + "+00:00"
            parsed = datetime.fromisoformat(text)
            if parsed.tzinfo is None:
                raise ValueError("RFC3339 timestamps carry an offset")
            return to_utc(parsed)

        return to_utc(datetime.strptime(value.strip(), _STRPTIME_LAYOUTS[fmt]))
    except (TypeError, ValueError, OverflowError, OSError) as e:
        raise InvalidTimestamp(value, fmt.value) from e


def format_timestamp(value: datetime) -> str:
    """Render an aware datetime as RFC3339 with a ``Z`` suffix."""
    return to_utc(value).isoformat().replace("+00:00", "Z")


def _timestamp_validator(fmt: TimestampFormat):
    def validate(value: Any) -> datetime:
        if isinstance(value, datetime):
            return to_utc(value)
        return parse_timestamp(value, fmt)
    return validate


# Field types for format records; a malformed value fails record deserialization
RFC3339Time = Annotated[datetime, PlainValidator(_timestamp_validator(TimestampFormat.RFC3339))]
FluentdTime = Annotated[datetime, PlainValidator(_timestamp_validator(TimestampFormat.FLUENTD))]
NginxTime = Annotated[datetime, PlainValidator(_timestamp_validator(TimestampFormat.NGINX))]
