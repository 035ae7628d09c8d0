"""Library for reading and writing compiled TZDB database files.

A TZDB file holds the rules for every region in one or more versions of the
time-zone database. Rules shared by several regions are stored once.

The file layout, with all integers big endian:

  - format version (1 byte), currently 1
  - group id (utf), must be "TZDB"
  - version count (2 bytes), then each version id (utf), oldest first
  - region count (2 bytes), then each region id (utf)
  - rule count (2 bytes), then each rule as a length (2 bytes) and the bytes
    of the rule set in the form written by `zonerules.codec`
  - for each version, a count (2 bytes) of (region index, rule index) pairs
    of 2 bytes each

A utf value is a 2 byte length followed by that many bytes of UTF-8 text.

Rules are kept in their encoded form when the file is loaded and are only
decoded the first time a region that references them is looked up.
"""

from __future__ import annotations

import logging
import os
import struct
from collections.abc import Mapping
from typing import IO

from . import codec
from .exceptions import (
    InvalidArgumentError,
    MalformedDataError,
    UnknownZoneError,
    ZoneRulesError,
)
from .provider import ZoneRulesProvider
from .rules import RuleSet

__all__ = [
    "TzdbZoneRulesProvider",
    "write_tzdb",
    "GROUP_ID",
    "FORMAT_VERSION",
]

_LOGGER = logging.getLogger(__name__)

GROUP_ID = "TZDB"
FORMAT_VERSION = 1

_MAX_U16 = 0xFFFF


def _read_exact(stream: IO[bytes], size: int) -> bytes:
    data = stream.read(size)
    if len(data) != size:
        raise MalformedDataError(
            f"Unexpected end of TZDB file, expected {size} bytes but read {len(data)}"
        )
    return data


def _read_u16(stream: IO[bytes]) -> int:
    return struct.unpack(">H", _read_exact(stream, 2))[0]


def _read_utf(stream: IO[bytes]) -> str:
    length = _read_u16(stream)
    try:
        return _read_exact(stream, length).decode("utf-8")
    except UnicodeDecodeError as err:
        raise MalformedDataError("Invalid string in TZDB file") from err


def _write_u16(value: int, stream: IO[bytes]) -> None:
    if not 0 <= value <= _MAX_U16:
        raise InvalidArgumentError(f"Value too large for TZDB file: {value}")
    stream.write(struct.pack(">H", value))


def _write_utf(value: str, stream: IO[bytes]) -> None:
    data = value.encode("utf-8")
    _write_u16(len(data), stream)
    stream.write(data)


class TzdbZoneRulesProvider(ZoneRulesProvider):
    """A provider of zone rules loaded from a TZDB database file."""

    def __init__(self, stream: IO[bytes]) -> None:
        """Initialize TzdbZoneRulesProvider by loading the file contents.

        Raises MalformedDataError if the file header or tables are invalid.
        """
        if (format_version := _read_exact(stream, 1)[0]) != FORMAT_VERSION:
            raise MalformedDataError(f"File format not recognised: {format_version}")
        if (group_id := _read_utf(stream)) != GROUP_ID:
            raise MalformedDataError(f"File format not recognised, group: {group_id}")
        version_ids = [_read_utf(stream) for _ in range(_read_u16(stream))]
        if not version_ids:
            raise MalformedDataError("TZDB file contains no versions")
        region_ids = [_read_utf(stream) for _ in range(_read_u16(stream))]
        self._rules: list[bytes | RuleSet] = [
            _read_exact(stream, _read_u16(stream)) for _ in range(_read_u16(stream))
        ]
        self._version_tables: dict[str, dict[str, int]] = {}
        for version_id in version_ids:
            table: dict[str, int] = {}
            for _ in range(_read_u16(stream)):
                region_index = _read_u16(stream)
                rule_index = _read_u16(stream)
                if region_index >= len(region_ids) or rule_index >= len(self._rules):
                    raise MalformedDataError(
                        f"Invalid region or rule index in version {version_id}: "
                        f"{region_index}, {rule_index}"
                    )
                table[region_ids[region_index]] = rule_index
            self._version_tables[version_id] = table
        self._version_id = version_ids[-1]
        self._region_to_rules = self._version_tables[self._version_id]
        _LOGGER.debug(
            "Loaded TZDB version %s with %d regions and %d rules",
            self._version_id,
            len(self._region_to_rules),
            len(self._rules),
        )

    @classmethod
    def from_path(cls, path: str | os.PathLike[str]) -> TzdbZoneRulesProvider:
        """Load the provider from a TZDB file on disk."""
        try:
            with open(path, "rb") as tzdb_file:
                return cls(tzdb_file)
        except OSError as err:
            raise ZoneRulesError(f"Unable to load TZDB file: {path}") from err

    @property
    def version_id(self) -> str:
        """Return the current version of the database."""
        return self._version_id

    def provide_zone_ids(self) -> set[str]:
        """Return the regions of the current version."""
        return set(self._region_to_rules)

    def provide_rules(self, zone_id: str, for_caching: bool) -> RuleSet:
        """Return the rules for the region, decoding them on first use."""
        if (rule_index := self._region_to_rules.get(zone_id)) is None:
            raise UnknownZoneError(f"Unknown time-zone ID: {zone_id}")
        return self._load_rules(rule_index, zone_id)

    def provide_versions(self, zone_id: str) -> dict[str, RuleSet]:
        """Return the rules of each version that contains the region."""
        if zone_id not in self._region_to_rules:
            raise UnknownZoneError(f"Unknown time-zone ID: {zone_id}")
        return {
            version_id: self._load_rules(table[zone_id], zone_id)
            for version_id, table in self._version_tables.items()
            if zone_id in table
        }

    def _load_rules(self, rule_index: int, zone_id: str) -> RuleSet:
        value = self._rules[rule_index]
        if isinstance(value, RuleSet):
            return value
        _LOGGER.debug("Decoding rules for %s", zone_id)
        try:
            rules = codec.decode(value)
        except MalformedDataError as err:
            raise MalformedDataError(
                f"Invalid binary time-zone data for time-zone ID: {zone_id}"
            ) from err
        if not isinstance(rules, RuleSet):
            raise MalformedDataError(
                f"Expected rule set data for time-zone ID {zone_id}, got {type(rules).__name__}"
            )
        # Concurrent lookups may each decode the same bytes, any result is equal
        self._rules[rule_index] = rules
        return rules

    def __repr__(self) -> str:
        """Return the string representation of the provider."""
        return f"TZDB[{self._version_id}]"


def write_tzdb(stream: IO[bytes], versions: Mapping[str, Mapping[str, RuleSet]]) -> None:
    """Write a TZDB file with the rules of each version, ordered oldest first.

    Identical rules are only written once, even when referenced by different
    regions or versions.
    """
    if not versions:
        raise InvalidArgumentError("At least one version is required")
    region_ids = sorted({region for table in versions.values() for region in table})
    region_index = {region: index for index, region in enumerate(region_ids)}
    blobs: list[bytes] = []
    blob_index: dict[bytes, int] = {}
    version_tables: list[list[tuple[int, int]]] = []
    for table in versions.values():
        pairs = []
        for region, rules in sorted(table.items()):
            blob = codec.encode(rules)
            if (index := blob_index.get(blob)) is None:
                index = blob_index[blob] = len(blobs)
                blobs.append(blob)
            pairs.append((region_index[region], index))
        version_tables.append(pairs)

    stream.write(struct.pack(">B", FORMAT_VERSION))
    _write_utf(GROUP_ID, stream)
    _write_u16(len(versions), stream)
    for version_id in versions:
        _write_utf(version_id, stream)
    _write_u16(len(region_ids), stream)
    for region in region_ids:
        _write_utf(region, stream)
    _write_u16(len(blobs), stream)
    for blob in blobs:
        _write_u16(len(blob), stream)
        stream.write(blob)
    for pairs in version_tables:
        _write_u16(len(pairs), stream)
        for region, rule in pairs:
            _write_u16(region, stream)
            _write_u16(rule, stream)
    _LOGGER.debug(
        "Wrote TZDB with %d versions, %d regions and %d rules",
        len(versions),
        len(region_ids),
        len(blobs),
    )
