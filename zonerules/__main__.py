"""Command line tool for compiling and inspecting zone rules.

Compile the TZif files of the system or the `tzdata` package into a TZDB
database file:

```
python -m zonerules compile tzdb.dat
python -m zonerules compile tzdb.dat --zone Europe/London --zone Asia/Tokyo
```

Print the transitions and rules of a zone, optionally from a database file:

```
python -m zonerules dump America/New_York
python -m zonerules dump America/New_York --tzdb tzdb.dat
```
"""

from __future__ import annotations

import argparse
import logging
import sys
from collections.abc import Sequence

from . import provider
from .exceptions import ZoneRulesError
from .rules import RuleSet
from .tzdb import TzdbZoneRulesProvider, write_tzdb
from .tzif.provider import TzifZoneRulesProvider
from .util import format_offset

_LOGGER = logging.getLogger(__name__)


def _compile(args: argparse.Namespace) -> int:
    """Compile TZif zones into a TZDB file."""
    source = TzifZoneRulesProvider(args.zone or None)
    version_id = args.version or source.version_id
    rules: dict[str, RuleSet] = {}
    for zone_id in sorted(source.provide_zone_ids()):
        try:
            rules[zone_id] = source.provide_rules(zone_id, False)
        except ZoneRulesError as err:
            _LOGGER.warning("Skipping zone %s: %s", zone_id, err)
    if not rules:
        _LOGGER.error("No zones were compiled")
        return 1
    with open(args.output, "wb") as tzdb_file:
        write_tzdb(tzdb_file, {version_id: rules})
    _LOGGER.info("Wrote %d zones of version %s to %s", len(rules), version_id, args.output)
    return 0


def _dump(args: argparse.Namespace) -> int:
    """Print the transitions and rules of a zone."""
    if args.tzdb:
        rules = TzdbZoneRulesProvider.from_path(args.tzdb).provide_rules(args.zone, False)
    else:
        rules = provider.get_rules(args.zone)
    if rules is None:
        _LOGGER.error("No rules available for %s", args.zone)
        return 1
    print(f"{args.zone}: {rules!r}")
    if rules.is_fixed_offset:
        print(f"Fixed offset {format_offset(rules.standard_offsets[0])}")
    for transition in rules.transitions:
        print(transition)
    for rule in rules.transition_rules:
        print(rule)
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    """Run the command line tool."""
    parser = argparse.ArgumentParser(
        prog="zonerules", description="Compile and inspect time-zone rules."
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Enable debug logging"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    compile_parser = subparsers.add_parser(
        "compile", help="Compile TZif zones into a TZDB file"
    )
    compile_parser.add_argument("output", help="Path of the TZDB file to write")
    compile_parser.add_argument(
        "--zone",
        action="append",
        help="Zone to include, may be repeated (default: all zones)",
    )
    compile_parser.add_argument(
        "--version",
        help="Version id to record (default: the installed tzdata version)",
    )
    compile_parser.set_defaults(func=_compile)

    dump_parser = subparsers.add_parser("dump", help="Print the rules of a zone")
    dump_parser.add_argument("zone", help="Zone id, for example Europe/London")
    dump_parser.add_argument("--tzdb", help="Read the zone from this TZDB file")
    dump_parser.set_defaults(func=_dump)

    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO)
    try:
        return int(args.func(args))
    except ZoneRulesError as err:
        _LOGGER.error("%s", err)
        return 1


if __name__ == "__main__":
    sys.exit(main())
