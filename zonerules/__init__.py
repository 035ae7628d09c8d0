"""A library for the rules that define the UTC offset of a time-zone.

The offset of a time-zone changes over time, historically because of
political decisions and each year because of daylight savings. A `RuleSet`
records these changes for a single zone and answers which offset applies at
an instant, or which offsets are valid for a local date-time.

Rule sets are looked up by zone id from a registry of providers:

```python
import datetime

from zonerules import provider

rules = provider.get_rules("Europe/Paris")
rules.get_valid_offsets(datetime.datetime(2024, 10, 27, 2, 30))
```
"""

__all__ = [
    "codec",
    "config",
    "exceptions",
    "provider",
    "rules",
    "transition",
    "transition_rule",
    "tzdb",
    "tzif",
    "tzinfo",
    "util",
]
