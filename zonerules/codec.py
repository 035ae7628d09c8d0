"""Library for the compact binary form of zone rule values.

Every value is written with a leading byte identifying the kind of value that
follows, one of a `RuleSet`, an `OffsetTransition` or a `RecurrenceRule`. The
values are written to any binary stream (for example `io.BytesIO`) using
`struct` in network byte order.

Instants and offsets are most commonly whole quarter hours, so these are
packed into fewer bytes with an escape value for anything else:

  - Epoch seconds: 3 bytes counting quarter hours from 1825-01-01, covering
    instants up to the year 2300, otherwise 0xFF and an 8 byte integer.
  - Offsets: 1 signed byte counting quarter hours, otherwise 127 and a 4 byte
    integer of seconds.

A recurrence rule is packed into a single 32 bit word:

  | bits  | field                                                         |
  |-------|---------------------------------------------------------------|
  | 28-31 | month (1-12)                                                  |
  | 22-27 | day of month indicator + 32                                   |
  | 19-21 | day of week (1-7) or 0 for none                               |
  | 14-18 | hour of the time, 24 for end of day, 31 to escape             |
  | 12-13 | time definition                                               |
  | 4-11  | standard offset in quarter hours + 128, 255 to escape         |
  | 2-3   | offset before - standard in half hours (0-2), 3 to escape     |
  | 0-1   | offset after - standard in half hours (0-2), 3 to escape      |

Escaped fields follow the word as 4 byte integers in the order time (seconds
of day), standard offset, offset before, offset after.
"""

from __future__ import annotations

import datetime
import enum
import io
import logging
import struct
from typing import IO, Union

from .exceptions import InvalidArgumentError, MalformedDataError
from .rules import MAX_RULES, RuleSet
from .transition import OffsetTransition
from .transition_rule import DayOfWeek, RecurrenceRule, TimeDefinition

__all__ = [
    "ValueKind",
    "ZoneValue",
    "write",
    "read",
    "encode",
    "decode",
]

_LOGGER = logging.getLogger(__name__)

ZoneValue = Union[RuleSet, OffsetTransition, RecurrenceRule]
"""The kinds of values that can be encoded."""

# Quarter hour packing range for epoch seconds
_EPOCH_SEC_MIN = -4575744000  # 1825-01-01T00:00Z
_EPOCH_SEC_MAX = 10413792000  # 2300-01-01T00:00Z
_QUARTER_HOUR = 900
_EPOCH_ESCAPE = 0xFF
_OFFSET_ESCAPE = 127

_TIME_ESCAPE = 31
_END_OF_DAY_HOUR = 24
_STD_OFFSET_ESCAPE = 255
_DIFF_ESCAPE = 3


class ValueKind(enum.IntEnum):
    """The tag byte identifying the kind of an encoded value."""

    RULE_SET = 1
    OFFSET_TRANSITION = 2
    RECURRENCE_RULE = 3


def _read_exact(stream: IO[bytes], size: int) -> bytes:
    """Read exactly size bytes from the stream."""
    data = stream.read(size)
    if len(data) != size:
        raise MalformedDataError(
            f"Unexpected end of data, expected {size} bytes but read {len(data)}"
        )
    return data


def _read_struct(stream: IO[bytes], fmt: str) -> tuple:
    """Read and unpack a struct from the stream."""
    return struct.unpack(fmt, _read_exact(stream, struct.calcsize(fmt)))


def write_epoch_sec(epoch_sec: int, stream: IO[bytes]) -> None:
    """Write an epoch second, packed into 3 bytes when possible."""
    if _EPOCH_SEC_MIN <= epoch_sec < _EPOCH_SEC_MAX and epoch_sec % _QUARTER_HOUR == 0:
        store = (epoch_sec - _EPOCH_SEC_MIN) // _QUARTER_HOUR
        stream.write(store.to_bytes(3, "big"))
    else:
        stream.write(struct.pack(">Bq", _EPOCH_ESCAPE, epoch_sec))


def read_epoch_sec(stream: IO[bytes]) -> int:
    """Read an epoch second."""
    data = _read_exact(stream, 1)
    if data[0] == _EPOCH_ESCAPE:
        return _read_struct(stream, ">q")[0]
    store = int.from_bytes(data + _read_exact(stream, 2), "big")
    return store * _QUARTER_HOUR + _EPOCH_SEC_MIN


def write_offset(offset: int, stream: IO[bytes]) -> None:
    """Write an offset, packed into a single byte when a whole quarter hour."""
    if offset % _QUARTER_HOUR == 0:
        stream.write(struct.pack(">b", offset // _QUARTER_HOUR))
    else:
        stream.write(struct.pack(">bl", _OFFSET_ESCAPE, offset))


def read_offset(stream: IO[bytes]) -> int:
    """Read an offset in seconds."""
    (offset_byte,) = _read_struct(stream, ">b")
    if offset_byte == _OFFSET_ESCAPE:
        return _read_struct(stream, ">l")[0]
    return offset_byte * _QUARTER_HOUR


def _time_seconds(rule: RecurrenceRule) -> int:
    if rule.end_of_day:
        return 86400
    return rule.time.hour * 3600 + rule.time.minute * 60 + rule.time.second


def _diff_code(diff: int) -> int:
    """Return the 2 bit code for an offset relative to the standard offset."""
    if diff in (0, 1800, 3600):
        return diff // 1800
    return _DIFF_ESCAPE


def _write_rule(rule: RecurrenceRule, stream: IO[bytes]) -> None:
    """Write a recurrence rule as a packed word and any escaped fields."""
    time_secs = _time_seconds(rule)
    std_offset = rule.standard_offset
    before_diff = rule.offset_before - std_offset
    after_diff = rule.offset_after - std_offset
    if time_secs % 3600 == 0:
        time_code = _END_OF_DAY_HOUR if rule.end_of_day else rule.time.hour
    else:
        time_code = _TIME_ESCAPE
    if std_offset % _QUARTER_HOUR == 0:
        std_code = std_offset // _QUARTER_HOUR + 128
    else:
        std_code = _STD_OFFSET_ESCAPE
    before_code = _diff_code(before_diff)
    after_code = _diff_code(after_diff)
    dow_code = rule.day_of_week.value if rule.day_of_week is not None else 0
    word = (
        (rule.month << 28)
        + ((rule.day_of_month_indicator + 32) << 22)
        + (dow_code << 19)
        + (time_code << 14)
        + (rule.time_definition.value << 12)
        + (std_code << 4)
        + (before_code << 2)
        + after_code
    )
    stream.write(struct.pack(">L", word))
    if time_code == _TIME_ESCAPE:
        stream.write(struct.pack(">l", time_secs))
    if std_code == _STD_OFFSET_ESCAPE:
        stream.write(struct.pack(">l", std_offset))
    if before_code == _DIFF_ESCAPE:
        stream.write(struct.pack(">l", rule.offset_before))
    if after_code == _DIFF_ESCAPE:
        stream.write(struct.pack(">l", rule.offset_after))


def _read_rule(stream: IO[bytes]) -> RecurrenceRule:
    """Read a recurrence rule written by `_write_rule`."""
    (word,) = _read_struct(stream, ">L")
    month = word >> 28
    dom = ((word >> 22) & 63) - 32
    dow_code = (word >> 19) & 7
    time_code = (word >> 14) & 31
    defn_code = (word >> 12) & 3
    std_code = (word >> 4) & 255
    before_code = (word >> 2) & 3
    after_code = word & 3

    if time_code == _TIME_ESCAPE:
        (time_secs,) = _read_struct(stream, ">l")
        if not 0 <= time_secs < 86400:
            raise MalformedDataError(f"Rule time out of range: {time_secs}")
        time = datetime.time(time_secs // 3600, time_secs // 60 % 60, time_secs % 60)
    elif time_code <= _END_OF_DAY_HOUR:
        time = datetime.time(time_code % 24)
    else:
        raise MalformedDataError(f"Invalid rule time code: {time_code}")
    day_of_week = DayOfWeek(dow_code) if dow_code else None
    try:
        time_definition = TimeDefinition(defn_code)
    except ValueError as err:
        raise MalformedDataError(f"Invalid rule time definition: {defn_code}") from err

    if std_code == _STD_OFFSET_ESCAPE:
        (std_offset,) = _read_struct(stream, ">l")
    else:
        std_offset = (std_code - 128) * _QUARTER_HOUR
    if before_code == _DIFF_ESCAPE:
        (offset_before,) = _read_struct(stream, ">l")
    else:
        offset_before = std_offset + before_code * 1800
    if after_code == _DIFF_ESCAPE:
        (offset_after,) = _read_struct(stream, ">l")
    else:
        offset_after = std_offset + after_code * 1800

    try:
        return RecurrenceRule.of(
            month,
            dom,
            day_of_week,
            time,
            time_code == _END_OF_DAY_HOUR,
            time_definition,
            std_offset,
            offset_before,
            offset_after,
        )
    except InvalidArgumentError as err:
        raise MalformedDataError(f"Invalid recurrence rule data: {err}") from err


def _write_transition(transition: OffsetTransition, stream: IO[bytes]) -> None:
    write_epoch_sec(transition.epoch_second, stream)
    write_offset(transition.offset_before, stream)
    write_offset(transition.offset_after, stream)


def _read_transition(stream: IO[bytes]) -> OffsetTransition:
    epoch_sec = read_epoch_sec(stream)
    offset_before = read_offset(stream)
    offset_after = read_offset(stream)
    try:
        return OffsetTransition.from_epoch_second(epoch_sec, offset_before, offset_after)
    except (InvalidArgumentError, OverflowError) as err:
        raise MalformedDataError(f"Invalid offset transition data: {err}") from err


def _write_rule_set(rules: RuleSet, stream: IO[bytes]) -> None:
    """Write the historical arrays and the rules of a rule set."""
    stream.write(struct.pack(">l", len(rules.standard_transitions)))
    for epoch_sec in rules.standard_transitions:
        write_epoch_sec(epoch_sec, stream)
    for offset in rules.standard_offsets:
        write_offset(offset, stream)
    stream.write(struct.pack(">l", len(rules.savings_instant_transitions)))
    for epoch_sec in rules.savings_instant_transitions:
        write_epoch_sec(epoch_sec, stream)
    for offset in rules.wall_offsets:
        write_offset(offset, stream)
    stream.write(struct.pack(">B", len(rules.transition_rules)))
    for rule in rules.transition_rules:
        _write_rule(rule, stream)


def _read_count(stream: IO[bytes]) -> int:
    (count,) = _read_struct(stream, ">l")
    if count < 0:
        raise MalformedDataError(f"Invalid negative count: {count}")
    return count


def _read_rule_set(stream: IO[bytes]) -> RuleSet:
    """Read a rule set written by `_write_rule_set`."""
    std_size = _read_count(stream)
    std_trans = [read_epoch_sec(stream) for _ in range(std_size)]
    std_offsets = [read_offset(stream) for _ in range(std_size + 1)]
    savings_size = _read_count(stream)
    savings_trans = [read_epoch_sec(stream) for _ in range(savings_size)]
    wall_offsets = [read_offset(stream) for _ in range(savings_size + 1)]
    (rule_size,) = _read_struct(stream, ">B")
    if rule_size > MAX_RULES:
        raise MalformedDataError(f"Too many transition rules: {rule_size}")
    last_rules = [_read_rule(stream) for _ in range(rule_size)]
    try:
        return RuleSet(std_trans, std_offsets, savings_trans, wall_offsets, last_rules)
    except InvalidArgumentError as err:
        raise MalformedDataError(f"Invalid rule set data: {err}") from err


def write(value: ZoneValue, stream: IO[bytes]) -> None:
    """Write the tagged binary form of a value to the stream."""
    match value:
        case RuleSet():
            stream.write(struct.pack(">B", ValueKind.RULE_SET))
            _write_rule_set(value, stream)
        case OffsetTransition():
            stream.write(struct.pack(">B", ValueKind.OFFSET_TRANSITION))
            _write_transition(value, stream)
        case RecurrenceRule():
            stream.write(struct.pack(">B", ValueKind.RECURRENCE_RULE))
            _write_rule(value, stream)
        case _:
            raise InvalidArgumentError(f"Unable to encode value of type {type(value)}")


def read(stream: IO[bytes]) -> ZoneValue:
    """Read a single tagged value from the stream."""
    (tag,) = _read_struct(stream, ">B")
    try:
        kind = ValueKind(tag)
    except ValueError as err:
        raise MalformedDataError(f"Unknown value kind tag: {tag}") from err
    match kind:
        case ValueKind.RULE_SET:
            return _read_rule_set(stream)
        case ValueKind.OFFSET_TRANSITION:
            return _read_transition(stream)
        case ValueKind.RECURRENCE_RULE:
            return _read_rule(stream)


def encode(value: ZoneValue) -> bytes:
    """Return the tagged binary form of a value."""
    buf = io.BytesIO()
    write(value, buf)
    return buf.getvalue()


def decode(data: bytes) -> ZoneValue:
    """Decode a value from bytes, all of which must be consumed."""
    buf = io.BytesIO(data)
    value = read(buf)
    if remaining := len(data) - buf.tell():
        raise MalformedDataError(f"Unexpected {remaining} trailing bytes after value")
    _LOGGER.debug("Decoded %s from %d bytes", type(value).__name__, len(data))
    return value
