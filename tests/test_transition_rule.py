"""Tests for recurrence rules."""

import datetime

import pytest

from zonerules.exceptions import InvalidArgumentError
from zonerules.transition import OffsetTransition
from zonerules.transition_rule import DayOfWeek, RecurrenceRule, TimeDefinition

CET = 3600
CEST = 7200


def make_rule(**kwargs) -> RecurrenceRule:
    """Create a rule with defaults for a Central European spring transition."""
    values = {
        "month": 3,
        "day_of_month_indicator": -1,
        "day_of_week": DayOfWeek.SUNDAY,
        "time": datetime.time(1, 0),
        "end_of_day": False,
        "time_definition": TimeDefinition.UTC,
        "standard_offset": CET,
        "offset_before": CET,
        "offset_after": CEST,
    }
    values.update(kwargs)
    return RecurrenceRule.of(**values)


@pytest.mark.parametrize(
    "year,expected",
    [
        (2023, datetime.datetime(2023, 3, 26, 2, 0)),
        (2024, datetime.datetime(2024, 3, 31, 2, 0)),
        (2025, datetime.datetime(2025, 3, 30, 2, 0)),
    ],
)
def test_last_sunday_utc(year: int, expected: datetime.datetime) -> None:
    """Test a rule for the last Sunday of the month at a UTC time."""
    rule = make_rule()
    assert rule.create_transition(year) == OffsetTransition.of(expected, CET, CEST)


def test_time_definitions() -> None:
    """Test the local time of the rule is converted to wall time before the transition."""
    base = {
        "month": 10,
        "day_of_month_indicator": -1,
        "time": datetime.time(1, 0),
        "offset_before": CEST,
        "offset_after": CET,
    }
    utc = make_rule(**base, time_definition=TimeDefinition.UTC)
    assert utc.create_transition(2024).date_time_before == datetime.datetime(
        2024, 10, 27, 3, 0
    )
    standard = make_rule(**base, time_definition=TimeDefinition.STANDARD)
    assert standard.create_transition(2024).date_time_before == datetime.datetime(
        2024, 10, 27, 2, 0
    )
    wall = make_rule(**base, time_definition=TimeDefinition.WALL)
    assert wall.create_transition(2024).date_time_before == datetime.datetime(
        2024, 10, 27, 1, 0
    )
    # All definitions describe the same instant in UTC
    assert utc.create_transition(2024).instant == datetime.datetime(
        2024, 10, 27, 1, 0, tzinfo=datetime.UTC
    )


def test_day_of_week_on_or_after() -> None:
    """Test a positive indicator selects the day of week on or after the day."""
    rule = make_rule(day_of_month_indicator=8, time_definition=TimeDefinition.WALL)
    # March 8th 2024 is a Friday, March 8th 2026 is a Sunday
    assert rule.resolve_date(2024) == datetime.date(2024, 3, 10)
    assert rule.resolve_date(2026) == datetime.date(2026, 3, 8)


def test_day_of_week_on_or_before() -> None:
    """Test a negative indicator counts back from the end of the month."""
    rule = make_rule(month=2, day_of_month_indicator=-2, day_of_week=DayOfWeek.MONDAY)
    # The day before the last day of February, then the Monday on or before
    assert rule.resolve_date(2024) == datetime.date(2024, 2, 26)
    assert rule.resolve_date(2023) == datetime.date(2023, 2, 27)


def test_fixed_date() -> None:
    """Test a rule without a day of week uses the exact day."""
    rule = make_rule(month=2, day_of_month_indicator=-3, day_of_week=None)
    assert rule.resolve_date(2024) == datetime.date(2024, 2, 27)
    assert rule.resolve_date(2023) == datetime.date(2023, 2, 26)

    rule = make_rule(month=4, day_of_month_indicator=1, day_of_week=None)
    assert rule.resolve_date(2024) == datetime.date(2024, 4, 1)


def test_end_of_day() -> None:
    """Test a transition at 24:00 moves to midnight of the following day."""
    rule = make_rule(
        month=9,
        day_of_month_indicator=2,
        day_of_week=DayOfWeek.SATURDAY,
        time=datetime.time(0, 0),
        end_of_day=True,
        time_definition=TimeDefinition.WALL,
        standard_offset=-4 * 3600,
        offset_before=-4 * 3600,
        offset_after=-3 * 3600,
    )
    assert rule.resolve_date(2024) == datetime.date(2024, 9, 7)
    assert rule.create_transition(2024).date_time_before == datetime.datetime(
        2024, 9, 8, 0, 0
    )


def test_deterministic() -> None:
    """Test the same transition is created for the same year."""
    rule = make_rule()
    assert rule.create_transition(2050) == rule.create_transition(2050)
    assert make_rule() == rule
    assert hash(make_rule()) == hash(rule)


@pytest.mark.parametrize(
    "kwargs,match",
    [
        ({"month": 0}, "Month"),
        ({"month": 13}, "Month"),
        ({"day_of_month_indicator": 0}, "Day of month indicator"),
        ({"day_of_month_indicator": 32}, "Day of month indicator"),
        ({"day_of_month_indicator": -29}, "Day of month indicator"),
        ({"time": datetime.time(1, 0, 0, 10)}, "fractional seconds"),
        ({"end_of_day": True}, "midnight"),
        ({"standard_offset": 19 * 3600}, "range"),
        ({"offset_after": -19 * 3600}, "range"),
    ],
)
def test_invalid(kwargs: dict, match: str) -> None:
    """Test that invalid rules can't be created."""
    with pytest.raises(InvalidArgumentError, match=match):
        make_rule(**kwargs)


def test_str() -> None:
    """Test the description of a rule."""
    assert str(make_rule()) == (
        "TransitionRule[Gap +01:00 to +02:00, SUNDAY on or before last day of March"
        " at 01:00:00 UTC, standard offset +01:00]"
    )
    rule = make_rule(
        month=11,
        day_of_month_indicator=1,
        time_definition=TimeDefinition.WALL,
        offset_before=CEST,
        offset_after=CET,
    )
    assert str(rule) == (
        "TransitionRule[Overlap +02:00 to +01:00, SUNDAY on or after November 1"
        " at 01:00:00 WALL, standard offset +01:00]"
    )
