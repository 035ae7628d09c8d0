"""Tests for the tzinfo implementation backed by zone rules."""

from collections.abc import Callable
import datetime
from unittest.mock import patch

import pytest

from zonerules.exceptions import UnknownZoneError
from zonerules.provider import ProviderRegistry, ZoneRulesProvider
from zonerules.rules import RuleSet
from zonerules.tzinfo import RulesTzInfo


@pytest.fixture(name="tz")
def mock_tz(us_eastern: RuleSet) -> RulesTzInfo:
    """Fixture for a tzinfo with US Eastern rules."""
    return RulesTzInfo(us_eastern, "America/New_York")


def test_offsets(tz: RulesTzInfo) -> None:
    """Test the offset in summer and winter."""
    summer = datetime.datetime(2024, 7, 1, 12, 0, tzinfo=tz)
    assert summer.utcoffset() == datetime.timedelta(hours=-4)
    assert summer.dst() == datetime.timedelta(hours=1)
    assert summer.tzname() == "-04:00"

    winter = datetime.datetime(2024, 1, 1, 12, 0, tzinfo=tz)
    assert winter.utcoffset() == datetime.timedelta(hours=-5)
    assert winter.dst() == datetime.timedelta(0)
    assert winter.tzname() == "-05:00"


def test_gap(tz: RulesTzInfo) -> None:
    """Test a local time skipped when clocks move forward."""
    value = datetime.datetime(2024, 3, 10, 2, 30, tzinfo=tz)
    assert value.utcoffset() == datetime.timedelta(hours=-5)
    assert value.replace(fold=1).utcoffset() == datetime.timedelta(hours=-4)


def test_overlap(tz: RulesTzInfo) -> None:
    """Test a local time repeated when clocks move back."""
    value = datetime.datetime(2024, 11, 3, 1, 30, tzinfo=tz)
    assert value.utcoffset() == datetime.timedelta(hours=-4)
    assert value.replace(fold=1).utcoffset() == datetime.timedelta(hours=-5)


@pytest.mark.parametrize(
    "utc,expected,fold",
    [
        (datetime.datetime(2024, 11, 3, 5, 30), datetime.datetime(2024, 11, 3, 1, 30), 0),
        (datetime.datetime(2024, 11, 3, 6, 30), datetime.datetime(2024, 11, 3, 1, 30), 1),
        (datetime.datetime(2024, 3, 10, 6, 59), datetime.datetime(2024, 3, 10, 1, 59), 0),
        (datetime.datetime(2024, 3, 10, 7, 0), datetime.datetime(2024, 3, 10, 3, 0), 0),
        (datetime.datetime(2006, 7, 1, 12, 0), datetime.datetime(2006, 7, 1, 8, 0), 0),
    ],
)
def test_astimezone(
    tz: RulesTzInfo, utc: datetime.datetime, expected: datetime.datetime, fold: int
) -> None:
    """Test converting from UTC to the local time."""
    local = utc.replace(tzinfo=datetime.UTC).astimezone(tz)
    assert local.replace(tzinfo=None) == expected
    assert local.fold == fold
    assert local.astimezone(datetime.UTC).replace(tzinfo=None) == utc


def test_fromutc_wrong_tzinfo(tz: RulesTzInfo) -> None:
    """Test fromutc requires a datetime in the same zone."""
    with pytest.raises(ValueError, match="fromutc"):
        tz.fromutc(datetime.datetime(2024, 1, 1, tzinfo=datetime.UTC))


def test_none(tz: RulesTzInfo) -> None:
    """Test the values returned without a datetime."""
    assert tz.utcoffset(None) is None
    assert tz.dst(None) is None
    assert tz.tzname(None) == "America/New_York"


def test_fixed_offset() -> None:
    """Test a zone without transitions."""
    tz = RulesTzInfo(RuleSet.fixed(0))
    value = datetime.datetime(2024, 6, 1, tzinfo=tz)
    assert value.utcoffset() == datetime.timedelta(0)
    assert value.dst() == datetime.timedelta(0)
    assert value.tzname() == "Z"
    assert tz.key is None
    assert str(tz) == "RuleSet[currentStandardOffset=Z]"


def test_str(tz: RulesTzInfo, us_eastern: RuleSet) -> None:
    """Test the string representation."""
    assert tz.rules is us_eastern
    assert tz.key == "America/New_York"
    assert str(tz) == "America/New_York"
    assert repr(tz) == "RulesTzInfo(America/New_York)"


def test_from_zone(fake_provider: Callable[..., ZoneRulesProvider]) -> None:
    """Test creating a tzinfo from the registered rules."""
    registry = ProviderRegistry()
    registry.register(fake_provider(["Test/Zone"], offset=3600))
    with patch("zonerules.provider.get_rules", registry.get_rules):
        tz = RulesTzInfo.from_zone("Test/Zone")
        assert tz.key == "Test/Zone"
        assert datetime.datetime(2024, 1, 1, tzinfo=tz).utcoffset() == datetime.timedelta(
            hours=1
        )
        with pytest.raises(UnknownZoneError):
            RulesTzInfo.from_zone("Test/Missing")
