"""Utility methods used by multiple components."""

from __future__ import annotations

import datetime

from .exceptions import InvalidArgumentError

__all__ = [
    "MAX_OFFSET_SECONDS",
    "check_offset",
    "format_offset",
    "epoch_second",
    "local_seconds",
    "local_datetime",
    "utc_datetime",
    "find_year",
    "check_local",
]


MIDNIGHT = datetime.time()
SECONDS_PER_DAY = 86400
MAX_OFFSET_SECONDS = 18 * 3600
"""Offsets are limited to +/-18:00."""

_EPOCH = datetime.datetime(1970, 1, 1)
_EPOCH_UTC = _EPOCH.replace(tzinfo=datetime.UTC)
_EPOCH_ORDINAL = _EPOCH.toordinal()
_ONE_SECOND = datetime.timedelta(seconds=1)


def check_offset(offset: int) -> int:
    """Validate an offset in seconds from UTC."""
    if isinstance(offset, bool) or not isinstance(offset, int):
        raise InvalidArgumentError(f"Offset must be an integer number of seconds: {offset!r}")
    if not -MAX_OFFSET_SECONDS <= offset <= MAX_OFFSET_SECONDS:
        raise InvalidArgumentError(f"Offset not in the range -18:00 to +18:00: {offset}")
    return offset


def format_offset(offset: int) -> str:
    """Format an offset in seconds as [+-]hh:mm[:ss], with 'Z' for UTC."""
    if offset == 0:
        return "Z"
    sign = "-" if offset < 0 else "+"
    hours, remainder = divmod(abs(offset), 3600)
    minutes, seconds = divmod(remainder, 60)
    if seconds:
        return f"{sign}{hours:02}:{minutes:02}:{seconds:02}"
    return f"{sign}{hours:02}:{minutes:02}"


def epoch_second(instant: datetime.datetime | int) -> tuple[int, int]:
    """Return the epoch second and microsecond of an instant.

    An instant is either an integer count of seconds from the epoch or a
    timezone aware datetime.
    """
    if isinstance(instant, bool):
        raise InvalidArgumentError(f"Instant must be a datetime or int: {instant!r}")
    if isinstance(instant, int):
        return (instant, 0)
    if not isinstance(instant, datetime.datetime):
        raise InvalidArgumentError(f"Instant must be a datetime or int: {instant!r}")
    if instant.utcoffset() is None:
        raise InvalidArgumentError(f"Instant must be timezone aware: {instant}")
    seconds = (instant - _EPOCH_UTC) // _ONE_SECOND
    return (seconds, instant.microsecond)


def local_seconds(value: datetime.datetime) -> int:
    """Return the seconds of a naive local datetime counted from 1970-01-01T00:00."""
    return (value - _EPOCH) // _ONE_SECOND


def local_datetime(seconds: int) -> datetime.datetime:
    """Return the naive local datetime for seconds counted from 1970-01-01T00:00."""
    return _EPOCH + datetime.timedelta(seconds=seconds)


def utc_datetime(seconds: int) -> datetime.datetime:
    """Return the UTC datetime for an epoch second."""
    return _EPOCH_UTC + datetime.timedelta(seconds=seconds)


def find_year(epoch_seconds: int, offset: int) -> int:
    """Return the calendar year of an instant under the specified offset."""
    local_day = (epoch_seconds + offset) // SECONDS_PER_DAY
    try:
        return datetime.date.fromordinal(_EPOCH_ORDINAL + local_day).year
    except (ValueError, OverflowError) as err:
        raise InvalidArgumentError(f"Instant out of range: {epoch_seconds}") from err


def check_local(value: datetime.datetime) -> datetime.datetime:
    """Validate a value is a naive local datetime."""
    if not isinstance(value, datetime.datetime):
        raise InvalidArgumentError(f"Expected a local datetime: {value!r}")
    if value.tzinfo is not None:
        raise InvalidArgumentError(f"Local date-time must not have a timezone: {value}")
    return value
