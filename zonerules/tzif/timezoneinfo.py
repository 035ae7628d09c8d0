"""Library for returning details about a timezone.

This package follows the same approach as zoneinfo for loading timezone
data. It prefers the tzdata python package, then falls back to the files
found on the system TZPATH.
"""

from __future__ import annotations

import logging
import os
import zoneinfo
from functools import cache
from importlib import metadata, resources

from ..exceptions import MalformedDataError, ZoneRulesError
from .model import TimezoneInfo
from .tzif import read_tzif

__all__ = [
    "TimezoneInfoError",
    "read",
    "available_keys",
    "tzdata_version",
]

_LOGGER = logging.getLogger(__name__)

SYSTEM_VERSION = "system"
"""Version reported when the timezone data comes from the system TZPATH."""


class TimezoneInfoError(ZoneRulesError):
    """Raised on error working with timezone information."""


@cache
def _read_system_timezones() -> frozenset[str]:
    """Read and cache the set of system and tzdata timezones."""
    return frozenset(zoneinfo.available_timezones())


@cache
def _find_tzfile(key: str) -> str | None:
    """Retrieve the path to a TZif file from a key."""
    for search_path in zoneinfo.TZPATH:
        filepath = os.path.join(search_path, key)
        if os.path.isfile(filepath):
            return filepath

    return None


@cache
def _read_tzdata_timezones() -> frozenset[str]:
    """Returns the set of valid timezones from tzdata only."""
    try:
        with resources.files("tzdata").joinpath("zones").open(
            "r", encoding="utf-8"
        ) as zones_file:
            return frozenset(line.strip() for line in zones_file.readlines())
    except ModuleNotFoundError:
        return frozenset()


def available_keys() -> set[str]:
    """Return the keys of all timezones that can be read."""
    return set(_read_system_timezones() | _read_tzdata_timezones())


def tzdata_version() -> str:
    """Return the version of the installed tzdata package, or 'system' without it."""
    if not _read_tzdata_timezones():
        return SYSTEM_VERSION
    try:
        return metadata.version("tzdata")
    except metadata.PackageNotFoundError:
        return SYSTEM_VERSION


def _iana_key_to_resource(key: str) -> tuple[str, str]:
    """Returns the package and resource file for the specified timezone."""
    if "/" not in key:
        return "tzdata.zoneinfo", key
    package_loc, resource = key.rsplit("/", 1)
    package = "tzdata.zoneinfo." + package_loc.replace("/", ".")
    return package, resource


def read(key: str) -> TimezoneInfo:
    """Read the TZif file from the tzdata package and return timezone records."""
    _LOGGER.debug("Reading timezone: %s", key)
    return _read_cache(key)


@cache
def _read_cache(key: str) -> TimezoneInfo:
    if key not in _read_system_timezones() and key not in _read_tzdata_timezones():
        raise TimezoneInfoError(f"Unable to find timezone in system timezones: {key}")

    # Prefer tzdata package
    if key in _read_tzdata_timezones():
        (package, resource) = _iana_key_to_resource(key)
        try:
            with resources.files(package).joinpath(resource).open("rb") as tzdata_file:
                return read_tzif(tzdata_file.read())
        except ModuleNotFoundError:
            # Unexpected given we previously read the list of timezones
            pass
        except MalformedDataError as err:
            raise TimezoneInfoError(f"Unable to load tzdata module: {key}") from err
        except FileNotFoundError as err:
            raise TimezoneInfoError(f"Unable to load tzdata module: {key}") from err

    # Fallback to zoneinfo file on local disk
    tzfile = _find_tzfile(key)
    if tzfile is not None:
        with open(tzfile, "rb") as tzfile_file:
            try:
                return read_tzif(tzfile_file.read())
            except MalformedDataError as err:
                raise TimezoneInfoError(f"Unable to load tzdata file: {key}") from err

    raise TimezoneInfoError(f"Unable to find timezone data for {key}")
