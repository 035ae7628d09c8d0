"""A transition between two offsets caused by a discontinuity in the local time-line.

A transition is either a gap, where the clocks jump forward and some local
times never occur, or an overlap, where the clocks jump back and some local
times occur twice. The transition is recorded as the local date-time at which
it occurs, numbered using the offset before the transition.

Transitions are ordered by the instant they occur, ignoring the offsets, while
equality compares all of the fields. Sorting two transitions that happen at
the same instant with different offsets keeps them in their original order.
"""

from __future__ import annotations

import datetime
from dataclasses import dataclass
from typing import Any

from .exceptions import InvalidArgumentError
from .util import (
    check_local,
    check_offset,
    format_offset,
    local_datetime,
    local_seconds,
    utc_datetime,
)

__all__ = [
    "OffsetTransition",
]


@dataclass(frozen=True)
class OffsetTransition:
    """A transition between two offsets at a point on the time-line."""

    local_before: datetime.datetime
    """The local date-time of the transition using the offset before."""

    offset_before: int
    """The offset in seconds in effect before the transition."""

    offset_after: int
    """The offset in seconds in effect after the transition."""

    def __post_init__(self) -> None:
        """Validate the transition."""
        check_local(self.local_before)
        if self.local_before.microsecond != 0:
            raise InvalidArgumentError(
                f"Local date-time must not have fractional seconds: {self.local_before}"
            )
        check_offset(self.offset_before)
        check_offset(self.offset_after)
        if self.offset_before == self.offset_after:
            raise InvalidArgumentError("Offsets must not be equal")

    @classmethod
    def of(
        cls, local_before: datetime.datetime, offset_before: int, offset_after: int
    ) -> OffsetTransition:
        """Create a transition from the local date-time and the two offsets."""
        return cls(local_before, offset_before, offset_after)

    @classmethod
    def from_epoch_second(
        cls, epoch_second: int, offset_before: int, offset_after: int
    ) -> OffsetTransition:
        """Create a transition occurring at the epoch second."""
        return cls(local_datetime(epoch_second + offset_before), offset_before, offset_after)

    @property
    def epoch_second(self) -> int:
        """Return the instant of the transition as seconds from the epoch."""
        return local_seconds(self.local_before) - self.offset_before

    @property
    def instant(self) -> datetime.datetime:
        """Return the instant of the transition as a UTC datetime."""
        return utc_datetime(self.epoch_second)

    @property
    def date_time_before(self) -> datetime.datetime:
        """Return the local date-time of the transition using the offset before."""
        return self.local_before

    @property
    def date_time_after(self) -> datetime.datetime:
        """Return the local date-time of the transition using the offset after."""
        return self.local_before + datetime.timedelta(seconds=self.duration_seconds)

    @property
    def duration_seconds(self) -> int:
        """Return the length of the transition, positive for a gap."""
        return self.offset_after - self.offset_before

    @property
    def duration(self) -> datetime.timedelta:
        """Return the length of the transition as a timedelta."""
        return datetime.timedelta(seconds=self.duration_seconds)

    @property
    def is_gap(self) -> bool:
        """Return True when local times are skipped by this transition."""
        return self.offset_after > self.offset_before

    @property
    def is_overlap(self) -> bool:
        """Return True when local times occur twice because of this transition."""
        return self.offset_after < self.offset_before

    def is_valid_offset(self, offset: int) -> bool:
        """Return True if the offset is valid for a local date-time in this transition.

        No offset is valid during a gap. Both offsets are valid during an overlap.
        """
        if self.is_gap:
            return False
        return offset in (self.offset_before, self.offset_after)

    def valid_offsets(self) -> list[int]:
        """Return the offsets that are valid during this transition."""
        if self.is_gap:
            return []
        return [self.offset_before, self.offset_after]

    def __lt__(self, other: Any) -> bool:
        if not isinstance(other, OffsetTransition):
            return NotImplemented
        return self.epoch_second < other.epoch_second

    def __le__(self, other: Any) -> bool:
        if not isinstance(other, OffsetTransition):
            return NotImplemented
        return self.epoch_second <= other.epoch_second

    def __gt__(self, other: Any) -> bool:
        if not isinstance(other, OffsetTransition):
            return NotImplemented
        return self.epoch_second > other.epoch_second

    def __ge__(self, other: Any) -> bool:
        if not isinstance(other, OffsetTransition):
            return NotImplemented
        return self.epoch_second >= other.epoch_second

    def __str__(self) -> str:
        """Return a human readable description of the transition."""
        kind = "Gap" if self.is_gap else "Overlap"
        return (
            f"Transition[{kind} at {self.local_before.isoformat()}"
            f"{format_offset(self.offset_before)} to {format_offset(self.offset_after)}]"
        )
