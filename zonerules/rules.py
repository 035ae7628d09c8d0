"""The rules defining how the zone offset varies for a single time-zone.

A `RuleSet` answers two kinds of question. Given an instant, there is exactly
one valid offset. Given a local date-time there may be one valid offset, none
(a gap, when clocks jump forward) or two (an overlap, when clocks jump back).

Historical transitions are kept in sorted arrays that are binary searched.
Once the explicit history runs out, a small list of `RecurrenceRule` objects
generates the transitions of each later year. The transitions for a year are
computed on demand and memoized, up to a fixed horizon year.

The arrays of local transitions hold two entries per transition so that a
local date-time can be located with a single binary search. For a gap the
pair is the local time before and after the transition, for an overlap the
pair is stored after then before, so that in both cases an even index falls
inside the gap or overlap and an odd index falls in a period with a single
valid offset.
"""

from __future__ import annotations

import bisect
import datetime
import logging
from collections.abc import Sequence
from typing import Any

from .exceptions import InvalidArgumentError
from .transition import OffsetTransition
from .transition_rule import RecurrenceRule
from .util import (
    check_local,
    check_offset,
    epoch_second,
    find_year,
    format_offset,
    local_seconds,
)

__all__ = [
    "RuleSet",
    "MAX_RULES",
]

_LOGGER = logging.getLogger(__name__)

MAX_RULES = 16
"""The maximum number of recurrence rules in a rule set."""

LAST_CACHED_YEAR = 2100
"""Transitions created from rules are memoized for years before this one."""

_OffsetInfo = OffsetTransition | int


def _check_increasing(values: Sequence[int], name: str) -> None:
    """Verify that the transition times are in strictly increasing order."""
    for prev, cur in zip(values, values[1:]):
        if cur <= prev:
            raise InvalidArgumentError(
                f"{name} must be in strictly increasing order: {prev} >= {cur}"
            )


def _local_transitions(
    savings_instant_transitions: Sequence[int], wall_offsets: Sequence[int]
) -> tuple[int, ...]:
    """Build the paired array of local transitions from the instant transitions."""
    local_transitions: list[int] = []
    for index, epoch in enumerate(savings_instant_transitions):
        before = wall_offsets[index]
        after = wall_offsets[index + 1]
        if before == after:
            raise InvalidArgumentError(
                f"Transition at {epoch} must change the offset, both are {format_offset(before)}"
            )
        local_before = epoch + before
        local_after = epoch + after
        if after > before:
            local_transitions.extend((local_before, local_after))
        else:
            local_transitions.extend((local_after, local_before))
    return tuple(local_transitions)


class RuleSet:
    """The rules describing the offsets of a single time-zone.

    Instances are immutable and are safe for use from multiple threads.
    """

    def __init__(
        self,
        standard_transitions: Sequence[int],
        standard_offsets: Sequence[int],
        savings_instant_transitions: Sequence[int],
        wall_offsets: Sequence[int],
        last_rules: Sequence[RecurrenceRule] = (),
    ) -> None:
        """Initialize RuleSet from the raw transition arrays.

        Prefer `RuleSet.of` or `RuleSet.fixed` which build the arrays from
        transitions.
        """
        if len(standard_offsets) != len(standard_transitions) + 1:
            raise InvalidArgumentError("Expected one more standard offset than transitions")
        if len(wall_offsets) != len(savings_instant_transitions) + 1:
            raise InvalidArgumentError("Expected one more wall offset than transitions")
        if len(last_rules) > MAX_RULES:
            raise InvalidArgumentError("Too many transition rules")
        _check_increasing(standard_transitions, "Standard transitions")
        _check_increasing(savings_instant_transitions, "Transitions")
        for offset in (*standard_offsets, *wall_offsets):
            check_offset(offset)
        self._standard_transitions: tuple[int, ...] = tuple(standard_transitions)
        self._standard_offsets: tuple[int, ...] = tuple(standard_offsets)
        self._savings_instant_transitions: tuple[int, ...] = tuple(
            savings_instant_transitions
        )
        self._wall_offsets: tuple[int, ...] = tuple(wall_offsets)
        self._savings_local_transitions = _local_transitions(
            self._savings_instant_transitions, self._wall_offsets
        )
        self._last_rules: tuple[RecurrenceRule, ...] = tuple(last_rules)
        self._last_rules_cache: dict[int, tuple[OffsetTransition, ...]] = {}

    @classmethod
    def of(
        cls,
        base_standard_offset: int,
        base_wall_offset: int,
        standard_offset_transitions: Sequence[OffsetTransition],
        transitions: Sequence[OffsetTransition],
        last_rules: Sequence[RecurrenceRule],
    ) -> RuleSet:
        """Create a rule set from the historical transitions and the rules for the future.

        The standard offset transitions record changes to the standard offset
        only, while the transitions record changes to the wall offset.
        """
        standard_offsets = [base_standard_offset]
        standard_offsets.extend(trans.offset_after for trans in standard_offset_transitions)
        wall_offsets = [base_wall_offset]
        wall_offsets.extend(trans.offset_after for trans in transitions)
        return cls(
            [trans.epoch_second for trans in standard_offset_transitions],
            standard_offsets,
            [trans.epoch_second for trans in transitions],
            wall_offsets,
            last_rules,
        )

    @classmethod
    def fixed(cls, offset: int) -> RuleSet:
        """Create a rule set that always has the same offset."""
        return cls((), (offset,), (), (offset,), ())

    @property
    def standard_transitions(self) -> tuple[int, ...]:
        """Return the epoch seconds at which the standard offset changes."""
        return self._standard_transitions

    @property
    def standard_offsets(self) -> tuple[int, ...]:
        """Return the standard offsets, one more than the standard transitions."""
        return self._standard_offsets

    @property
    def savings_instant_transitions(self) -> tuple[int, ...]:
        """Return the epoch seconds at which the wall offset changes."""
        return self._savings_instant_transitions

    @property
    def wall_offsets(self) -> tuple[int, ...]:
        """Return the wall offsets, one more than the transitions."""
        return self._wall_offsets

    @property
    def is_fixed_offset(self) -> bool:
        """Return True if the offset never changes."""
        return not self._savings_instant_transitions

    @property
    def transitions(self) -> list[OffsetTransition]:
        """Return the complete list of historical transitions."""
        return [
            OffsetTransition.from_epoch_second(
                epoch, self._wall_offsets[index], self._wall_offsets[index + 1]
            )
            for index, epoch in enumerate(self._savings_instant_transitions)
        ]

    @property
    def transition_rules(self) -> list[RecurrenceRule]:
        """Return the rules used after the last historical transition."""
        return list(self._last_rules)

    def get_offset(self, instant: datetime.datetime | int) -> int:
        """Return the offset in seconds in effect at the instant."""
        if not self._savings_instant_transitions:
            return self._standard_offsets[0]
        (epoch, _) = epoch_second(instant)
        if self._last_rules and epoch > self._savings_instant_transitions[-1]:
            year = find_year(epoch, self._wall_offsets[-1])
            trans_array = self._find_transition_array(year)
            for trans in trans_array:
                if epoch < trans.epoch_second:
                    return trans.offset_before
            return trans_array[-1].offset_after
        index = bisect.bisect_right(self._savings_instant_transitions, epoch)
        return self._wall_offsets[index]

    def get_offset_local(self, local: datetime.datetime) -> int:
        """Return a suitable offset for the local date-time.

        There is always an offset returned, even in a gap or overlap where
        the best value is the offset before the transition.
        """
        info = self._get_offset_info(local)
        if isinstance(info, OffsetTransition):
            return info.offset_before
        return info

    def get_valid_offsets(self, local: datetime.datetime) -> list[int]:
        """Return the offsets valid for a local date-time, from zero to two values."""
        info = self._get_offset_info(local)
        if isinstance(info, OffsetTransition):
            return info.valid_offsets()
        return [info]

    def get_transition(self, local: datetime.datetime) -> OffsetTransition | None:
        """Return the transition when the local date-time is in a gap or overlap."""
        info = self._get_offset_info(local)
        if isinstance(info, OffsetTransition):
            return info
        return None

    def is_valid_offset(self, local: datetime.datetime, offset: int) -> bool:
        """Return True if the offset is valid for the local date-time."""
        return offset in self.get_valid_offsets(local)

    def _get_offset_info(self, local: datetime.datetime) -> _OffsetInfo:
        """Return the offset or transition for the local date-time."""
        check_local(local)
        if not self._savings_instant_transitions:
            return self._standard_offsets[0]
        seconds = local_seconds(local)
        if self._last_rules and seconds > self._savings_local_transitions[-1]:
            info: _OffsetInfo = self._wall_offsets[-1]
            for trans in self._find_transition_array(local.year):
                info = self._find_offset_info(seconds, trans)
                if isinstance(info, OffsetTransition) or info == trans.offset_before:
                    return info
            return info

        index = bisect.bisect_right(self._savings_local_transitions, seconds) - 1
        if index == -1:
            return self._wall_offsets[0]
        # An overlap that ends at the start of the next gap has a duplicate
        # entry, and bisect_right selects the later pair.
        if index % 2 == 0:
            first = self._savings_local_transitions[index]
            second = self._savings_local_transitions[index + 1]
            offset_before = self._wall_offsets[index // 2]
            offset_after = self._wall_offsets[index // 2 + 1]
            if offset_after > offset_before:
                return OffsetTransition.from_epoch_second(
                    first - offset_before, offset_before, offset_after
                )
            return OffsetTransition.from_epoch_second(
                second - offset_before, offset_before, offset_after
            )
        return self._wall_offsets[index // 2 + 1]

    @staticmethod
    def _find_offset_info(seconds: int, trans: OffsetTransition) -> _OffsetInfo:
        """Return the offset or transition for local seconds relative to one transition."""
        local_before = local_seconds(trans.date_time_before)
        local_after = local_before + trans.duration_seconds
        if trans.is_gap:
            if seconds < local_before:
                return trans.offset_before
            if seconds < local_after:
                return trans
            return trans.offset_after
        if seconds >= local_before:
            return trans.offset_after
        if seconds < local_after:
            return trans.offset_before
        return trans

    def _find_transition_array(self, year: int) -> tuple[OffsetTransition, ...]:
        """Return the transitions created by the rules for the year."""
        if (trans_array := self._last_rules_cache.get(year)) is not None:
            return trans_array
        _LOGGER.debug("Creating transitions from rules for year %s", year)
        trans_array = tuple(rule.create_transition(year) for rule in self._last_rules)
        if year < LAST_CACHED_YEAR:
            # Another thread may have stored an equal value first
            trans_array = self._last_rules_cache.setdefault(year, trans_array)
        return trans_array

    def get_standard_offset(self, instant: datetime.datetime | int) -> int:
        """Return the standard offset, without daylight savings, at the instant."""
        if not self._savings_instant_transitions:
            return self._standard_offsets[0]
        (epoch, _) = epoch_second(instant)
        index = bisect.bisect_right(self._standard_transitions, epoch)
        return self._standard_offsets[index]

    def get_daylight_savings(self, instant: datetime.datetime | int) -> int:
        """Return the seconds of daylight savings in effect at the instant."""
        if not self._savings_instant_transitions:
            return 0
        return self.get_offset(instant) - self.get_standard_offset(instant)

    def is_daylight_savings(self, instant: datetime.datetime | int) -> bool:
        """Return True if the offset at the instant differs from the standard offset."""
        return self.get_standard_offset(instant) != self.get_offset(instant)

    def next_transition(self, instant: datetime.datetime | int) -> OffsetTransition | None:
        """Return the next transition strictly after the instant, if any."""
        if not self._savings_instant_transitions:
            return None
        (epoch, _) = epoch_second(instant)
        if epoch >= self._savings_instant_transitions[-1]:
            if not self._last_rules:
                return None
            year = find_year(epoch, self._wall_offsets[-1])
            for trans in self._find_transition_array(year):
                if epoch < trans.epoch_second:
                    return trans
            if year < datetime.MAXYEAR:
                return self._find_transition_array(year + 1)[0]
            return None
        index = bisect.bisect_right(self._savings_instant_transitions, epoch)
        return OffsetTransition.from_epoch_second(
            self._savings_instant_transitions[index],
            self._wall_offsets[index],
            self._wall_offsets[index + 1],
        )

    def previous_transition(
        self, instant: datetime.datetime | int
    ) -> OffsetTransition | None:
        """Return the transition at or before the instant, if any.

        A transition exactly at the instant is only returned when the instant
        has a fractional second past it.
        """
        if not self._savings_instant_transitions:
            return None
        (epoch, micros) = epoch_second(instant)
        if micros > 0:
            epoch += 1
        last_historic = self._savings_instant_transitions[-1]
        if self._last_rules and epoch > last_historic:
            last_historic_offset = self._wall_offsets[-1]
            year = find_year(epoch, last_historic_offset)
            for trans in reversed(self._find_transition_array(year)):
                if epoch > trans.epoch_second:
                    return trans
            last_historic_year = find_year(last_historic, last_historic_offset)
            year -= 1
            if year > last_historic_year:
                return self._find_transition_array(year)[-1]
        index = bisect.bisect_left(self._savings_instant_transitions, epoch)
        if index <= 0:
            return None
        return OffsetTransition.from_epoch_second(
            self._savings_instant_transitions[index - 1],
            self._wall_offsets[index - 1],
            self._wall_offsets[index],
        )

    def __eq__(self, other: Any) -> bool:
        if self is other:
            return True
        if not isinstance(other, RuleSet):
            return NotImplemented
        return (
            self._standard_transitions == other._standard_transitions
            and self._standard_offsets == other._standard_offsets
            and self._savings_instant_transitions == other._savings_instant_transitions
            and self._wall_offsets == other._wall_offsets
            and self._last_rules == other._last_rules
        )

    def __hash__(self) -> int:
        return (
            hash(self._standard_transitions)
            ^ hash(self._standard_offsets)
            ^ hash(self._savings_instant_transitions)
            ^ hash(self._wall_offsets)
            ^ hash(self._last_rules)
        )

    def __repr__(self) -> str:
        """Return the string representation of the rule set."""
        return f"RuleSet[currentStandardOffset={format_offset(self._standard_offsets[-1])}]"
