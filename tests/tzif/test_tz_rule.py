"""Tests for the TZ rule parser."""

import datetime

import pytest

from zonerules.tzif import tz_rule


def test_standard() -> None:
    """Test standard time with no daylight savings time."""
    rule = tz_rule.parse_tz_rule("EST5")
    assert rule.std.name == "EST"
    assert rule.std.offset == datetime.timedelta(hours=-5)
    assert rule.dst is None
    assert rule.dst_start is None
    assert rule.dst_end is None


def test_standard_plus_offset() -> None:
    """Test standard time with an offset with an explicit plus."""
    rule = tz_rule.parse_tz_rule("EST+5")
    assert rule.std.name == "EST"
    assert rule.std.offset == datetime.timedelta(hours=-5)
    assert rule.dst is None


@pytest.mark.parametrize(
    "tz_string,offset",
    [
        ("EX05:30", datetime.timedelta(hours=-5, minutes=-30)),
        ("EX05:30:20", datetime.timedelta(hours=-5, minutes=-30, seconds=-20)),
        ("JST-9", datetime.timedelta(hours=9)),
        ("<+0545>-5:45", datetime.timedelta(hours=5, minutes=45)),
    ],
)
def test_standard_offset(tz_string: str, offset: datetime.timedelta) -> None:
    """Test standard time offsets in the supported forms."""
    rule = tz_rule.parse_tz_rule(tz_string)
    assert rule.std.offset == offset
    assert rule.dst is None


def test_dst_implicit_offset() -> None:
    """Test daylight savings time with an implicit offset."""
    rule = tz_rule.parse_tz_rule("EST5EDT")
    assert rule.std.name == "EST"
    assert rule.std.offset == datetime.timedelta(hours=-5)
    assert rule.dst
    assert rule.dst.name == "EDT"
    assert rule.dst.offset == datetime.timedelta(hours=-4)
    assert rule.dst_start is None
    assert rule.dst_end is None


def test_dst_explicit_offset() -> None:
    """Test daylight savings time with an explicit offset."""
    rule = tz_rule.parse_tz_rule("<+1030>-10:30<+11>-11,M10.1.0,M4.1.0")
    assert rule.std.offset == datetime.timedelta(hours=10, minutes=30)
    assert rule.dst
    assert rule.dst.offset == datetime.timedelta(hours=11)


def test_dst_zero_offset() -> None:
    """Test an explicit daylight savings offset of zero is kept."""
    rule = tz_rule.parse_tz_rule("IST-1GMT0,M10.5.0,M3.5.0/1")
    assert rule.std.name == "IST"
    assert rule.std.offset == datetime.timedelta(hours=1)
    assert rule.dst
    assert rule.dst.name == "GMT"
    assert rule.dst.offset == datetime.timedelta(0)


def test_dst_rules() -> None:
    """Test daylight savings start/end value."""
    rule = tz_rule.parse_tz_rule("EST+5EDT,M3.2.0/2,M11.1.0/2")
    assert rule.std.name == "EST"
    assert rule.std.offset == datetime.timedelta(hours=-5)
    assert rule.dst
    assert rule.dst.name == "EDT"
    assert rule.dst.offset == datetime.timedelta(hours=-4)
    assert rule.dst_start == tz_rule.RuleDate(
        month=3, day_of_week=0, week_of_month=2, time=datetime.timedelta(hours=2)
    )
    assert rule.dst_end == tz_rule.RuleDate(
        month=11, day_of_week=0, week_of_month=1, time=datetime.timedelta(hours=2)
    )
    assert not rule.dst_start.is_last_week


def test_dst_implicit_time_rules() -> None:
    """Test daylight savings values rules with no explicit time."""
    rule = tz_rule.parse_tz_rule("EST+5EDT,M3.2.0,M11.1.0")
    assert rule.dst_start
    assert rule.dst_start.time == datetime.timedelta(hours=2)
    assert rule.dst_end
    assert rule.dst_end.time == datetime.timedelta(hours=2)


def test_tz_offset() -> None:
    """Test numeric zone names and negative rule times."""
    rule = tz_rule.parse_tz_rule("<-03>3<-02>,M3.5.0/-2,M10.5.0/-1")
    assert rule.std.name == "<-03>"
    assert rule.std.offset == datetime.timedelta(hours=-3)
    assert rule.dst
    assert rule.dst.name == "<-02>"
    assert rule.dst.offset == datetime.timedelta(hours=-2)
    assert isinstance(rule.dst_start, tz_rule.RuleDate)
    assert rule.dst_start.month == 3
    assert rule.dst_start.week_of_month == 5
    assert rule.dst_start.is_last_week
    assert rule.dst_start.time == datetime.timedelta(hours=-2)
    assert isinstance(rule.dst_end, tz_rule.RuleDate)
    assert rule.dst_end.month == 10
    assert rule.dst_end.time == datetime.timedelta(hours=-1)


def test_extended_hours() -> None:
    """Test a rule time beyond the end of the day."""
    rule = tz_rule.parse_tz_rule("IST-2IDT,M3.4.4/26,M10.5.0")
    assert rule.dst_start
    assert rule.dst_start.time == datetime.timedelta(hours=26)


def test_julian_day_rules() -> None:
    """Test a rule with julian days."""
    rule = tz_rule.parse_tz_rule("<+0330>-3:30<+0430>,J79/24,J263/24")
    assert rule.std.name == "<+0330>"
    assert rule.std.offset == datetime.timedelta(hours=3, minutes=30)
    assert rule.dst
    assert rule.dst.offset == datetime.timedelta(hours=4, minutes=30)
    assert isinstance(rule.dst_start, tz_rule.RuleDay)
    assert rule.dst_start.day_of_year == 79
    assert rule.dst_start.time == datetime.timedelta(hours=24)
    assert rule.dst_start.month_day() == (3, 20)
    assert isinstance(rule.dst_end, tz_rule.RuleDay)
    assert rule.dst_end.month_day() == (9, 20)


@pytest.mark.parametrize(
    "day_of_year,month_day",
    [(1, (1, 1)), (59, (2, 28)), (60, (3, 1)), (365, (12, 31))],
)
def test_julian_day_never_leap(day_of_year: int, month_day: tuple[int, int]) -> None:
    """Test julian days never count February 29th."""
    rule_day = tz_rule.RuleDay(day_of_year=day_of_year, time=datetime.timedelta(0))
    assert rule_day.month_day() == month_day


@pytest.mark.parametrize(
    "tz_string",
    [
        "",
        "1234",
        "EST",
        "EST,M3.2.0,M11.1.0",
        "EST+5EDT,M3.2.0/2",
        "EST+5EDT,M3.2.0/2,M11.1.0/2,M3",
        "EST+5EDT,3.2.0/2,M11.1.0/2",
        "EST+5EDT,M3.2/2,M11.1.0/2",
        "EST+5EDT,M3.2.0.4/2,M11.1.0/2",
        "EST+5EDT,M13.2.0,M11.1.0",
        "EST+5EDT,M3.6.0,M11.1.0",
        "EST+5EDT,M3.0.0,M11.1.0",
        "EST+5EDT,M3.2.7,M11.1.0",
        "EST+5EDT,J0,J300",
        "EST+5EDT,J10,J366",
    ],
)
def test_invalid(tz_string: str) -> None:
    """Test an invalid rule occurrence."""
    with pytest.raises(ValueError, match="Unable to parse TZ string"):
        tz_rule.parse_tz_rule(tz_string)
