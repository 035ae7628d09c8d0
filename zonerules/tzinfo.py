"""An implementation of `datetime.tzinfo` based on a RuleSet.

This allows rules to be used with the standard datetime arithmetic, for
example:

```python
import datetime

from zonerules.tzinfo import RulesTzInfo

tz = RulesTzInfo.from_zone("America/New_York")
print(datetime.datetime(2024, 7, 1, 12, 0, tzinfo=tz).utcoffset())
```

A local date-time in a gap or an overlap is resolved using the `fold`
attribute described in PEP 495: a fold of 0 selects the offset before the
transition and a fold of 1 selects the offset after it.
"""

from __future__ import annotations

import datetime

from . import provider
from .exceptions import UnknownZoneError
from .rules import RuleSet
from .util import format_offset, local_seconds

__all__ = [
    "RulesTzInfo",
]


class RulesTzInfo(datetime.tzinfo):
    """A tzinfo that computes offsets from a RuleSet."""

    def __init__(self, rules: RuleSet, key: str | None = None) -> None:
        """Initialize RulesTzInfo."""
        self._rules = rules
        self._key = key

    @classmethod
    def from_zone(cls, zone_id: str) -> RulesTzInfo:
        """Create a new instance for a zone from the process wide registry."""
        if (rules := provider.get_rules(zone_id)) is None:
            raise UnknownZoneError(f"No rules available for time-zone ID: {zone_id}")
        return cls(rules, zone_id)

    @property
    def rules(self) -> RuleSet:
        """Return the rules used by this tzinfo."""
        return self._rules

    @property
    def key(self) -> str | None:
        """Return the zone id, if known."""
        return self._key

    def _offset_seconds(self, dt: datetime.datetime) -> int:
        """Return the offset for the local date-time, resolving ambiguity with fold."""
        local = dt.replace(tzinfo=None, fold=0)
        if (transition := self._rules.get_transition(local)) is None:
            return self._rules.get_offset_local(local)
        if dt.fold:
            return transition.offset_after
        return transition.offset_before

    def utcoffset(self, dt: datetime.datetime | None) -> datetime.timedelta | None:
        """Return offset of local time from UTC, as a timedelta object."""
        if dt is None:
            return None
        return datetime.timedelta(seconds=self._offset_seconds(dt))

    def dst(self, dt: datetime.datetime | None) -> datetime.timedelta | None:
        """Return the daylight saving time (DST) adjustment, if applicable."""
        if dt is None:
            return None
        offset = self._offset_seconds(dt)
        epoch = local_seconds(dt.replace(tzinfo=None)) - offset
        return datetime.timedelta(seconds=offset - self._rules.get_standard_offset(epoch))

    def tzname(self, dt: datetime.datetime | None) -> str | None:
        """Return the time zone name for the datetime, the offset in ISO form."""
        if dt is None:
            return self._key
        return format_offset(self._offset_seconds(dt))

    def fromutc(self, dt: datetime.datetime) -> datetime.datetime:
        """Convert a UTC date-time to the local date-time in this zone."""
        if dt.tzinfo is not self:
            raise ValueError("fromutc: dt.tzinfo is not self")
        epoch = local_seconds(dt.replace(tzinfo=None))
        offset = self._rules.get_offset(epoch)
        local = dt + datetime.timedelta(seconds=offset)
        transition = self._rules.get_transition(local.replace(tzinfo=None))
        if (
            transition is not None
            and transition.is_overlap
            and offset == transition.offset_after
        ):
            return local.replace(fold=1)
        return local

    def __str__(self) -> str:
        """Return the string representation of the timezone."""
        if self._key is not None:
            return self._key
        return repr(self._rules)

    def __repr__(self) -> str:
        """Return the string representation of the timezone."""
        key = self._key if self._key is not None else repr(self._rules)
        return f"RulesTzInfo({key})"
