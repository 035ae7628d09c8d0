"""Test fixtures."""

from collections.abc import Callable, Iterable
import datetime

import pytest

from zonerules.provider import ZoneRulesProvider
from zonerules.rules import RuleSet
from zonerules.transition import OffsetTransition
from zonerules.transition_rule import DayOfWeek, RecurrenceRule, TimeDefinition

EST = -5 * 3600
EDT = -4 * 3600
CET = 3600
CEST = 2 * 3600


def us_eastern_rules() -> list[RecurrenceRule]:
    """Rules for US Eastern time since 2007."""
    return [
        RecurrenceRule.of(
            3,
            8,
            DayOfWeek.SUNDAY,
            datetime.time(2, 0),
            False,
            TimeDefinition.WALL,
            EST,
            EST,
            EDT,
        ),
        RecurrenceRule.of(
            11,
            1,
            DayOfWeek.SUNDAY,
            datetime.time(2, 0),
            False,
            TimeDefinition.WALL,
            EST,
            EDT,
            EST,
        ),
    ]


def central_europe_rules() -> list[RecurrenceRule]:
    """Rules for Central European time, changing at 01:00 UTC."""
    return [
        RecurrenceRule.of(
            3,
            -1,
            DayOfWeek.SUNDAY,
            datetime.time(1, 0),
            False,
            TimeDefinition.UTC,
            CET,
            CET,
            CEST,
        ),
        RecurrenceRule.of(
            10,
            -1,
            DayOfWeek.SUNDAY,
            datetime.time(1, 0),
            False,
            TimeDefinition.UTC,
            CET,
            CEST,
            CET,
        ),
    ]


@pytest.fixture(name="us_eastern")
def mock_us_eastern() -> RuleSet:
    """Fixture for rules similar to America/New_York from 2006."""
    transitions = [
        OffsetTransition.of(datetime.datetime(2006, 4, 2, 2, 0), EST, EDT),
        OffsetTransition.of(datetime.datetime(2006, 10, 29, 2, 0), EDT, EST),
        OffsetTransition.of(datetime.datetime(2007, 3, 11, 2, 0), EST, EDT),
        OffsetTransition.of(datetime.datetime(2007, 11, 4, 2, 0), EDT, EST),
    ]
    return RuleSet.of(EST, EST, [], transitions, us_eastern_rules())


@pytest.fixture(name="central_europe")
def mock_central_europe() -> RuleSet:
    """Fixture for rules similar to Europe/Paris from 2020."""
    transitions = [
        OffsetTransition.of(datetime.datetime(2020, 3, 29, 2, 0), CET, CEST),
        OffsetTransition.of(datetime.datetime(2020, 10, 25, 3, 0), CEST, CET),
    ]
    return RuleSet.of(CET, CET, [], transitions, central_europe_rules())


class FakeProvider(ZoneRulesProvider):
    """A provider that returns fixed rules for a set of zone ids."""

    def __init__(
        self,
        rules: dict[str, RuleSet],
        versions: dict[str, dict[str, RuleSet]] | None = None,
        refresh_result: bool = False,
    ) -> None:
        self._rules = rules
        self._versions = versions or {}
        self._refresh_result = refresh_result
        self.refresh_calls = 0

    def provide_zone_ids(self) -> set[str]:
        return set(self._rules)

    def provide_rules(self, zone_id: str, for_caching: bool) -> RuleSet | None:
        return self._rules[zone_id]

    def provide_versions(self, zone_id: str) -> dict[str, RuleSet]:
        return self._versions.get(zone_id, {"1": self._rules[zone_id]})

    def provide_refresh(self) -> bool:
        self.refresh_calls += 1
        return self._refresh_result

    def __repr__(self) -> str:
        return f"FakeProvider({sorted(self._rules)})"


@pytest.fixture(name="fake_provider")
def mock_fake_provider() -> Callable[..., FakeProvider]:
    """Fixture that creates providers of fixed offset rules for zone ids."""

    def create(
        zone_ids: Iterable[str], offset: int = 0, refresh_result: bool = False
    ) -> FakeProvider:
        return FakeProvider(
            {zone_id: RuleSet.fixed(offset) for zone_id in zone_ids},
            refresh_result=refresh_result,
        )

    return create


@pytest.fixture(name="us_eastern_rules")
def mock_us_eastern_rules() -> list[RecurrenceRule]:
    """Fixture for the US Eastern recurrence rules."""
    return us_eastern_rules()


@pytest.fixture(name="central_europe_rules")
def mock_central_europe_rules() -> list[RecurrenceRule]:
    """Fixture for the Central European recurrence rules."""
    return central_europe_rules()
