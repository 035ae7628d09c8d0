"""Library for compiling TZif timezone information into zone rules.

The transitions in a TZif file each select a local time type with a UTC
offset and a DST flag. The wall offset transitions of the rule set are the
points where the UTC offset changes. The standard offset of a DST local
time type is not recorded in the file, so it is taken from the nearest
standard time type in use around it.

The POSIX TZ footer describes the transitions after the last one in the
file and is converted into recurrence rules. The footer transitions for
the year of the last transition in the file and the year after are added
as explicit transitions, so the recurrence rules only apply after them.
Dates of the form `Mm.w.d` become a day of week on or after a day of the
month (or on or before the last day for the fifth week) and dates of the
form `Jn` become a fixed day. A rule time outside of the day moves the
date by whole days. A footer that can't be expressed as recurrence rules
is dropped with a warning, and the last offset in the file then applies
indefinitely.
"""

from __future__ import annotations

import calendar
import datetime
import logging
from typing import Union

from ..exceptions import InvalidArgumentError, MalformedDataError
from ..rules import RuleSet
from ..transition_rule import DayOfWeek, RecurrenceRule, TimeDefinition
from ..util import SECONDS_PER_DAY, find_year, local_seconds
from .model import LocalTimeType, TimezoneInfo
from .tz_rule import Rule, RuleDate, RuleDay

__all__ = [
    "compile_rules",
]

_LOGGER = logging.getLogger(__name__)

# Transitions outside of the range of datetime can't be represented
_MIN_EPOCH = local_seconds(datetime.datetime(1, 1, 2))
_MAX_EPOCH = local_seconds(datetime.datetime(9999, 12, 30))

# Rules are ordered by their transitions in a year without a leap day
_ORDER_YEAR = 2001
# Transitions created for a footer rule that has no transitions in the file
_FIRST_RULE_YEAR = 1970

_DEFAULT_SAVINGS = 3600


def _standard_offsets(
    periods: list[LocalTimeType], footer_standard: int | None
) -> list[int]:
    """Return the standard offset of each period of local time.

    A standard time period uses its own offset. A DST period uses the
    nearest earlier standard time period, then the nearest later one.
    """
    earlier: list[int | None] = []
    last_standard: int | None = None
    for period in periods:
        if not period.dst:
            last_standard = period.utoff
        earlier.append(last_standard)
    result: list[int] = []
    next_standard = footer_standard
    for period, standard in zip(reversed(periods), reversed(earlier)):
        if not period.dst:
            next_standard = period.utoff
        if standard is None:
            standard = (
                next_standard
                if next_standard is not None
                else period.utoff - _DEFAULT_SAVINGS
            )
        result.append(standard)
    result.reverse()
    return result


def _time_of_day(seconds: int) -> datetime.time:
    (hours, remainder) = divmod(seconds, 3600)
    (minutes, secs) = divmod(remainder, 60)
    return datetime.time(hours, minutes, secs)


def _recurrence_rule(
    date: Union[RuleDate, RuleDay],
    standard_offset: int,
    offset_before: int,
    offset_after: int,
) -> RecurrenceRule:
    """Convert a POSIX rule date into a recurrence rule.

    Raises ValueError when the date can't be expressed as a recurrence rule.
    """
    (days, seconds) = divmod(int(date.time.total_seconds()), SECONDS_PER_DAY)
    end_of_day = False
    if days == 1 and seconds == 0:
        days = 0
        end_of_day = True

    day_of_week: DayOfWeek | None = None
    if isinstance(date, RuleDay):
        (month, day) = date.month_day()
        shifted = datetime.date(_ORDER_YEAR, month, day) + datetime.timedelta(days=days)
        if shifted.year != _ORDER_YEAR:
            raise ValueError(f"Rule day moves into another year: {date}")
        month = shifted.month
        indicator = shifted.day
    else:
        month = date.month
        if date.is_last_week:
            indicator = -1 + days
        else:
            indicator = 1 + (date.week_of_month - 1) * 7 + days
        # Days of week in the TZ string are numbered from Sunday (0)
        day_of_week = DayOfWeek((date.day_of_week - 1 + days) % 7 + 1)

    if indicator == 0 or indicator > calendar.monthrange(_ORDER_YEAR, month)[1]:
        raise ValueError(f"Rule date can't be expressed as a day of the month: {date}")
    return RecurrenceRule.of(
        month=month,
        day_of_month_indicator=indicator,
        day_of_week=day_of_week,
        time=_time_of_day(seconds),
        end_of_day=end_of_day,
        time_definition=TimeDefinition.WALL,
        standard_offset=standard_offset,
        offset_before=offset_before,
        offset_after=offset_after,
    )


def _last_rules(rule: Rule) -> list[RecurrenceRule]:
    """Return the recurrence rules for the POSIX TZ footer rule."""
    if rule.dst is None:
        return []
    if rule.dst_start is None or rule.dst_end is None:
        _LOGGER.warning("Ignoring TZ rule without start and end dates: %s", rule)
        return []
    standard = int(rule.std.offset.total_seconds())
    daylight = int(rule.dst.offset.total_seconds())
    if standard == daylight:
        return []
    try:
        rules = [
            _recurrence_rule(rule.dst_start, standard, standard, daylight),
            _recurrence_rule(rule.dst_end, standard, daylight, standard),
        ]
        return sorted(
            rules, key=lambda value: value.create_transition(_ORDER_YEAR).epoch_second
        )
    except ValueError as err:
        _LOGGER.warning("Ignoring TZ rule that can't be converted: %s: %s", rule, err)
        return []


def compile_rules(info: TimezoneInfo) -> RuleSet:
    """Compile the timezone information into a RuleSet.

    Raises MalformedDataError if the information does not describe valid rules.
    """
    if (initial := info.initial_time_type) is None:
        if not info.transitions:
            raise MalformedDataError("Timezone information has no local time types")
        first = info.transitions[0]
        initial = LocalTimeType(first.utoff, first.dst, first.designation)
    periods = [initial]
    periods.extend(
        LocalTimeType(trans.utoff, trans.dst, trans.designation)
        for trans in info.transitions
    )
    footer_standard = (
        int(info.rule.std.offset.total_seconds()) if info.rule is not None else None
    )
    standard_offsets = _standard_offsets(periods, footer_standard)

    standard_transitions: list[int] = []
    standard_values = [standard_offsets[0]]
    wall_transitions: list[int] = []
    wall_values = [initial.utoff]
    last_epoch: int | None = None
    for trans, standard in zip(info.transitions, standard_offsets[1:]):
        epoch = trans.transition_time
        if epoch < _MIN_EPOCH:
            # Changes the offsets in effect at the start of the supported range
            standard_values[-1] = standard
            wall_values[-1] = trans.utoff
            continue
        if epoch >= _MAX_EPOCH:
            break
        last_epoch = epoch
        if standard != standard_values[-1]:
            standard_transitions.append(epoch)
            standard_values.append(standard)
        if trans.utoff != wall_values[-1]:
            wall_transitions.append(epoch)
            wall_values.append(trans.utoff)

    last_rules = _last_rules(info.rule) if info.rule is not None else []
    if last_rules and not wall_transitions:
        _LOGGER.debug("Creating initial transitions from TZ rule %s", info.rule)
        wall_values = [last_rules[0].offset_before]
        for rule in last_rules:
            transition = rule.create_transition(_FIRST_RULE_YEAR)
            wall_transitions.append(transition.epoch_second)
            wall_values.append(transition.offset_after)
    elif last_rules and last_epoch is not None:
        # The rules apply from the last transition in the file, which may not
        # change the offset. Transitions for the rest of that year and the next
        # are explicit so the rules are never used for an earlier year.
        first_year = find_year(last_epoch, wall_values[-1])
        for year in range(first_year, min(first_year + 2, datetime.MAXYEAR)):
            for rule in last_rules:
                transition = rule.create_transition(year)
                if (
                    transition.epoch_second > last_epoch
                    and transition.offset_before == wall_values[-1]
                ):
                    last_epoch = transition.epoch_second
                    wall_transitions.append(transition.epoch_second)
                    wall_values.append(transition.offset_after)

    try:
        return RuleSet(
            standard_transitions,
            standard_values,
            wall_transitions,
            wall_values,
            last_rules,
        )
    except InvalidArgumentError as err:
        raise MalformedDataError(f"Unable to compile timezone rules: {err}") from err
