"""Library for reading TZif files.

The TZif format (rfc8536) is the compiled form of the IANA time zone
database installed on most systems and shipped by the `tzdata` package. A
file contains a version 1 data block with 32-bit times, and for version 2+
a second data block with 64-bit times followed by a footer holding a POSIX
TZ string that describes transitions after the last one in the file.

Only the data needed to build zone rules is kept: the transitions, the local
time types and the footer rule. Leap second records are read but are not used
when computing offsets.
"""

from __future__ import annotations

import enum
import io
import logging
import struct
from collections import namedtuple
from dataclasses import dataclass
from functools import cache
from typing import Any

from ..exceptions import MalformedDataError
from .model import LeapSecond, LocalTimeType, TimezoneInfo, Transition
from .tz_rule import parse_tz_rule

__all__ = [
    "read_tzif",
]

_LOGGER = logging.getLogger(__name__)

# Records specifying the local time type
_LOCAL_TIME_TYPE_STRUCT_FORMAT = "".join(
    [
        ">",  # Use standard size of packed value bytes
        "l",  # utoff (4 bytes): Number of seconds to add to UTC to determine local time
        "?",  # dst (1 byte): Indicates the time is DST (1) or standard (0)
        "B",  # idx (1 byte): Offset index into the time zone designation octets (0-charcnt-1)
    ]
)
_LOCAL_TIME_RECORD_SIZE = 6


class _TZifVersion(enum.Enum):
    """Defines information related to _TZifVersions."""

    V1 = (b"\x00", 4, "l")  # 32-bit in v1
    V2 = (b"2", 8, "q")  # 64-bit in v2+
    V3 = (b"3", 8, "q")
    V4 = (b"4", 8, "q")

    def __init__(self, version: bytes, time_size: int, time_format: str):
        self._version = version
        self._time_size = time_size
        self._time_format = time_format

    @property
    def version(self) -> bytes:
        """Return the version byte string."""
        return self._version

    @property
    def time_size(self) -> int:
        """Return the TIME_SIZE used in the data block parsing."""
        return self._time_size

    @property
    def time_format(self) -> str:
        """Return the struct unpack format string for TIME_SIZE objects."""
        return self._time_format


def _read(buf: io.BytesIO, size: int) -> bytes:
    """Read exactly size bytes from the buffer."""
    data = buf.read(size)
    if len(data) != size:
        raise MalformedDataError(
            f"TZif file truncated, expected {size} bytes but read {len(data)}"
        )
    return data


def _unpack(fmt: str, buf: io.BytesIO) -> tuple[Any, ...]:
    """Read and unpack a struct from the buffer."""
    return struct.unpack(fmt, _read(buf, struct.calcsize(fmt)))


@dataclass
class _Header:
    """TZif _Header information."""

    SIZE = 44  # Total size of the header to read
    STRUCT_FORMAT = "".join(
        [
            ">",  # Use standard size of packed value bytes
            "4s",  # magic (4 bytes)
            "c",  # version (1 byte)
            "15x",  # unused
            "6l",  # isutccnt, isstdcnt, leapcnt, timecnt, typecnt, charcnt
        ]
    )
    MAGIC = "TZif".encode()

    version: bytes
    """The version of the files format."""

    isutccnt: int
    """The number of UTC/local indicators in the data block."""

    isstdcnt: int
    """The number of standard/wall indicators in the data block."""

    leapcnt: int
    """The number of leap second records in the data block."""

    timecnt: int
    """The number of time transitions in the data block."""

    typecnt: int
    """The number of local time type records in the data block."""

    charcnt: int
    """The number of characters for time zone designations in the data block."""

    @classmethod
    def read(cls, buf: io.BytesIO) -> _Header:
        """Parse the header from the buffer."""
        (
            magic,
            version,
            isutccnt,
            isstdcnt,
            leapcnt,
            timecnt,
            typecnt,
            charcnt,
        ) = _unpack(_Header.STRUCT_FORMAT, buf)
        if magic != _Header.MAGIC:
            raise MalformedDataError("zoneinfo file did not contain magic header")
        if min(isutccnt, isstdcnt, leapcnt, timecnt, typecnt, charcnt) < 0:
            raise MalformedDataError("TZif header contains a negative count")
        if isutccnt not in (0, typecnt):
            raise MalformedDataError(
                f"UTC/local indicators in datablock mismatched ({isutccnt}, {typecnt})"
            )
        if isstdcnt not in (0, typecnt):
            raise MalformedDataError(
                f"standard/wall indicators in datablock mismatched ({isstdcnt}, {typecnt})"
            )
        if typecnt == 0:
            raise MalformedDataError("Local time records in block is zero")
        if charcnt == 0:
            raise MalformedDataError("Total number of octets is zero")
        return _Header(version, isutccnt, isstdcnt, leapcnt, timecnt, typecnt, charcnt)


_TransitionBlock = namedtuple(
    "_TransitionBlock", ["transition_time", "time_type"]
)


def _read_datablock(
    header: _Header, version: _TZifVersion, buf: io.BytesIO
) -> tuple[list[Transition], list[LocalTimeType], list[LeapSecond]]:
    """Read records from the buffer."""
    # A series of transition times in sorted order
    transition_times = _unpack(f">{header.timecnt}{version.time_format}", buf)

    # A series of integers specifying the type of local time of the corresponding
    # transition time. These are zero-based indices into the array of local
    # time type records. (from 0 to typecnt-1)
    transition_types = _unpack(f">{header.timecnt}B", buf)

    # A series of records specifying the local time type:
    #  - utoff (4 bytes): Number of seconds to add to UTC to determine local time
    #  - dst (1 byte): Indicates the time is DST (1) or standard (0)
    #  - idx (1 byte):  Offset index into the time zone designation octets (0-charcnt-1)
    local_time_records = [
        _unpack(_LOCAL_TIME_TYPE_STRUCT_FORMAT, buf) for _ in range(header.typecnt)
    ]

    # An array of NUL-terminated time zone designation strings
    tz_designations = _read(buf, header.charcnt)

    @cache
    def get_tz_designation(idx: int) -> str:
        """Find the null terminated string starting at the specified index."""
        if idx >= len(tz_designations):
            raise MalformedDataError(f"Designation index out of bounds: {idx}")
        end = tz_designations.find(b"\x00", idx)
        if end == -1:
            end = len(tz_designations)
        try:
            return tz_designations[idx:end].decode("UTF-8")
        except UnicodeDecodeError as err:
            raise MalformedDataError("Invalid time zone designation") from err

    local_time_types = [
        LocalTimeType(utoff, dst, get_tz_designation(idx))
        for (utoff, dst, idx) in local_time_records
    ]

    leap_seconds: list[LeapSecond] = [
        LeapSecond._make(_unpack(f">{version.time_format}l", buf))  # occur + corr
        for _ in range(header.leapcnt)
    ]

    # Standard/wall indicators determine if the transition times are standard time (1)
    # or wall clock time (0). These apply to the local time types.
    isstd_types = list(_unpack(f">{header.isstdcnt}?", buf))
    isstd_types.extend([False] * (header.typecnt - header.isstdcnt))

    # UTC/local indicators determine if the transition times are UTC (1) or local time (0).
    isut_types = list(_unpack(f">{header.isutccnt}?", buf))
    isut_types.extend([False] * (header.typecnt - header.isutccnt))

    transitions = []
    for block in map(_TransitionBlock._make, zip(transition_times, transition_types)):
        if block.time_type >= header.typecnt:
            raise MalformedDataError(
                f"transition_type out of bounds {block.time_type} >= {header.typecnt}"
            )
        if isut_types[block.time_type] and not isstd_types[block.time_type]:
            raise MalformedDataError("isutccnt was True but isstdcnt was False")
        local_time_type = local_time_types[block.time_type]
        transitions.append(
            Transition(
                block.transition_time,
                local_time_type.utoff,
                local_time_type.dst,
                isstd_types[block.time_type],
                isut_types[block.time_type],
                local_time_type.designation,
            )
        )
    for prev, cur in zip(transitions, transitions[1:]):
        if cur.transition_time <= prev.transition_time:
            raise MalformedDataError("TZif transition times are not in increasing order")

    return (transitions, local_time_types, leap_seconds)


def read_tzif(content: bytes) -> TimezoneInfo:
    """Read the TZif file and parse and return the timezone records.

    Raises MalformedDataError if the content is not a valid TZif file.
    """
    buf = io.BytesIO(content)

    # V1 header and block
    header = _Header.read(buf)
    (transitions, local_time_types, leap_seconds) = _read_datablock(
        header, _TZifVersion.V1, buf
    )
    if header.version == _TZifVersion.V1.version:
        return TimezoneInfo(transitions, leap_seconds, local_time_types=local_time_types)

    # V2+ header and block
    header = _Header.read(buf)
    (transitions, local_time_types, leap_seconds) = _read_datablock(
        header, _TZifVersion.V2, buf
    )

    # V2+ footer
    footer = buf.read()
    try:
        parts = footer.decode("UTF-8").split("\n")
    except UnicodeDecodeError as err:
        raise MalformedDataError("Failed to decode TZ footer") from err
    if len(parts) != 3:
        raise MalformedDataError("Failed to read TZ footer")
    rule = None
    if parts[1]:
        try:
            rule = parse_tz_rule(parts[1])
        except ValueError as err:
            raise MalformedDataError(f"Failed to parse TZ footer: {parts[1]}") from err
    _LOGGER.debug(
        "Read TZif with %d transitions and footer '%s'", len(transitions), parts[1]
    )
    return TimezoneInfo(
        transitions, leap_seconds, rule=rule, local_time_types=local_time_types
    )
