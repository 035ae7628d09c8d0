"""Library for rules that create a transition every year.

Explicit transitions in a zone are only recorded up to some point in time.
After that, transitions are described algorithmically by a small set of rules
such as "the last Sunday in March at 01:00 UTC". A rule is evaluated for a
specific year to produce a concrete `OffsetTransition`.

A date is selected with the day of month indicator and an optional day of
week. A positive indicator is the day of month, and the day of week moves
the date forward to the first matching day on or after it. A negative
indicator counts back from the end of the month, -1 being the last day, and
the day of week moves the date back to the last matching day on or before it.
For example "last Sunday of October" is an indicator of -1 with a day of week
of Sunday, and "first Sunday on or after the 8th" is an indicator of 8.
"""

from __future__ import annotations

import calendar
import datetime
import enum
from typing import Optional

from dateutil import rrule
from dateutil.relativedelta import relativedelta
from pydantic import BaseModel, ConfigDict, ValidationError, field_validator, model_validator

from .exceptions import InvalidArgumentError
from .transition import OffsetTransition
from .util import MIDNIGHT, check_offset, format_offset

__all__ = [
    "DayOfWeek",
    "TimeDefinition",
    "RecurrenceRule",
]

_ONE_DAY = datetime.timedelta(days=1)


class DayOfWeek(enum.IntEnum):
    """A day of the week, numbered from Monday (1) to Sunday (7)."""

    MONDAY = 1
    TUESDAY = 2
    WEDNESDAY = 3
    THURSDAY = 4
    FRIDAY = 5
    SATURDAY = 6
    SUNDAY = 7

    @property
    def rrule_weekday(self) -> rrule.weekday:
        """Return the dateutil weekday for this day of the week."""
        return rrule.weekdays[self.value - 1]


class TimeDefinition(enum.Enum):
    """How the local time of a rule is to be interpreted.

    The rule time is converted to the wall time in use before the transition,
    which is the form that a transition is recorded in.
    """

    UTC = 0
    """The time is in UTC."""

    WALL = 1
    """The time is the wall time in use before the transition."""

    STANDARD = 2
    """The time is in standard time, without any daylight savings."""

    def create_date_time(
        self,
        value: datetime.datetime,
        standard_offset: int,
        wall_offset: int,
    ) -> datetime.datetime:
        """Convert a local date-time in this definition to wall time."""
        match self:
            case TimeDefinition.UTC:
                return value + datetime.timedelta(seconds=wall_offset)
            case TimeDefinition.STANDARD:
                return value + datetime.timedelta(seconds=wall_offset - standard_offset)
            case TimeDefinition.WALL:
                return value


class RecurrenceRule(BaseModel):
    """A rule expressing how to create a transition in any year."""

    model_config = ConfigDict(frozen=True)

    month: int
    """The month of the transition date, between 1 and 12."""

    day_of_month_indicator: int
    """The day of month, or negative to count back from the end of the month."""

    day_of_week: Optional[DayOfWeek] = None
    """The day of week to adjust the date to, or None to use the exact date."""

    time: datetime.time = MIDNIGHT
    """The local time of the transition."""

    end_of_day: bool = False
    """True when the transition is at 24:00 of the resolved date."""

    time_definition: TimeDefinition = TimeDefinition.WALL
    """Determines how to interpret the local time."""

    standard_offset: int
    """The standard offset in seconds at the transition."""

    offset_before: int
    """The wall offset in seconds before the transition."""

    offset_after: int
    """The wall offset in seconds after the transition."""

    @field_validator("month")
    @classmethod
    def _check_month(cls, value: int) -> int:
        """Validate the month of the rule."""
        if not 1 <= value <= 12:
            raise ValueError(f"Month must be between 1 and 12: {value}")
        return value

    @field_validator("day_of_month_indicator")
    @classmethod
    def _check_day_of_month(cls, value: int) -> int:
        """Validate the day of month indicator."""
        if value < -28 or value > 31 or value == 0:
            raise ValueError(
                "Day of month indicator must be between -28 and 31 inclusive excluding zero"
            )
        return value

    @field_validator("time")
    @classmethod
    def _check_time(cls, value: datetime.time) -> datetime.time:
        """Validate the time is a local time in whole seconds."""
        if value.tzinfo is not None:
            raise ValueError(f"Time must be a local time: {value}")
        if value.microsecond:
            raise ValueError(f"Time must not have fractional seconds: {value}")
        return value

    @field_validator("standard_offset", "offset_before", "offset_after")
    @classmethod
    def _check_offset(cls, value: int) -> int:
        """Validate the offsets are in range."""
        return check_offset(value)

    @model_validator(mode="after")
    def _check_end_of_day(self) -> RecurrenceRule:
        """Validate the end of day flag is only used with midnight."""
        if self.end_of_day and self.time != MIDNIGHT:
            raise ValueError("Time must be midnight when end of day flag is true")
        return self

    @classmethod
    def of(
        cls,
        month: int,
        day_of_month_indicator: int,
        day_of_week: DayOfWeek | None,
        time: datetime.time,
        end_of_day: bool,
        time_definition: TimeDefinition,
        standard_offset: int,
        offset_before: int,
        offset_after: int,
    ) -> RecurrenceRule:
        """Create a rule, raising InvalidArgumentError if the values are not valid."""
        try:
            return cls(
                month=month,
                day_of_month_indicator=day_of_month_indicator,
                day_of_week=day_of_week,
                time=time,
                end_of_day=end_of_day,
                time_definition=time_definition,
                standard_offset=standard_offset,
                offset_before=offset_before,
                offset_after=offset_after,
            )
        except ValidationError as err:
            raise InvalidArgumentError(f"Invalid recurrence rule: {err}") from err

    def resolve_date(self, year: int) -> datetime.date:
        """Return the date the rule selects in the year, before any end of day adjustment."""
        if self.day_of_month_indicator < 0:
            (_, month_length) = calendar.monthrange(year, self.month)
            date = datetime.date(
                year, self.month, month_length + 1 + self.day_of_month_indicator
            )
            if self.day_of_week is not None:
                date += relativedelta(weekday=self.day_of_week.rrule_weekday(-1))
        else:
            date = datetime.date(year, self.month, self.day_of_month_indicator)
            if self.day_of_week is not None:
                date += relativedelta(weekday=self.day_of_week.rrule_weekday(+1))
        return date

    def create_transition(self, year: int) -> OffsetTransition:
        """Create the transition for the specified year."""
        date = self.resolve_date(year)
        if self.end_of_day:
            date += _ONE_DAY
        local = datetime.datetime.combine(date, self.time)
        transition = self.time_definition.create_date_time(
            local, self.standard_offset, self.offset_before
        )
        return OffsetTransition(transition, self.offset_before, self.offset_after)

    def __str__(self) -> str:
        """Return a human readable description of the rule."""
        kind = "Gap" if self.offset_after > self.offset_before else "Overlap"
        month = calendar.month_name[self.month]
        parts = [
            f"TransitionRule[{kind} {format_offset(self.offset_before)} to "
            f"{format_offset(self.offset_after)}, "
        ]
        if self.day_of_week is not None:
            day = self.day_of_week.name
            if self.day_of_month_indicator == -1:
                parts.append(f"{day} on or before last day of {month}")
            elif self.day_of_month_indicator < 0:
                parts.append(
                    f"{day} on or before last day minus "
                    f"{-self.day_of_month_indicator - 1} of {month}"
                )
            else:
                parts.append(f"{day} on or after {month} {self.day_of_month_indicator}")
        else:
            parts.append(f"{month} {self.day_of_month_indicator}")
        time = "24:00" if self.end_of_day else self.time.isoformat()
        parts.append(
            f" at {time} {self.time_definition.name}, "
            f"standard offset {format_offset(self.standard_offset)}]"
        )
        return "".join(parts)
