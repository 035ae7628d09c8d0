"""A zone rules provider backed by TZif files.

The zones are those of the installed `tzdata` package and the system TZPATH,
the same zones available to the standard library `zoneinfo` module. Each
zone is read and compiled into a `RuleSet` the first time it is requested.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from ..exceptions import UnknownZoneError
from ..provider import ZoneRulesProvider
from ..rules import RuleSet
from . import timezoneinfo
from .compiler import compile_rules

__all__ = [
    "TzifZoneRulesProvider",
]

_LOGGER = logging.getLogger(__name__)


class TzifZoneRulesProvider(ZoneRulesProvider):
    """A provider of zone rules compiled from TZif files."""

    def __init__(self, zone_ids: Iterable[str] | None = None) -> None:
        """Initialize TzifZoneRulesProvider.

        By default all zones that can be found are provided, otherwise only
        the specified zone ids.
        """
        if zone_ids is None:
            zone_ids = timezoneinfo.available_keys()
        self._zone_ids = frozenset(zone_ids)
        self._version_id = timezoneinfo.tzdata_version()
        self._rules: dict[str, RuleSet] = {}

    @property
    def version_id(self) -> str:
        """Return the version of the timezone data."""
        return self._version_id

    def provide_zone_ids(self) -> set[str]:
        """Return the zones that can be read."""
        return set(self._zone_ids)

    def provide_rules(self, zone_id: str, for_caching: bool) -> RuleSet:
        """Return the rules for the zone, compiling them on first use."""
        if zone_id not in self._zone_ids:
            raise UnknownZoneError(f"Unknown time-zone ID: {zone_id}")
        if (rules := self._rules.get(zone_id)) is not None:
            return rules
        _LOGGER.debug("Compiling rules for %s", zone_id)
        rules = compile_rules(timezoneinfo.read(zone_id))
        return self._rules.setdefault(zone_id, rules)

    def provide_versions(self, zone_id: str) -> dict[str, RuleSet]:
        """Return the rules of the single installed version."""
        return {self._version_id: self.provide_rules(zone_id, False)}

    def __repr__(self) -> str:
        """Return the string representation of the provider."""
        return f"TZif[{self._version_id}]"
