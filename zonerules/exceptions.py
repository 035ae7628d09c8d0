"""Exceptions for zonerules library."""


class ZoneRulesError(Exception):
    """Base exception for all zonerules errors."""


class MalformedDataError(ZoneRulesError):
    """Exception raised when decoding binary rule data.

    This is raised for an unrecognized header or value tag, a truncated
    stream, or decoded content that does not form a valid value. When a
    whole database file is being loaded the error is fatal for the load,
    while a lazily decoded rule only affects the zone that references it.
    """


class InvalidArgumentError(ZoneRulesError, ValueError):
    """Exception raised when constructing a value from invalid arguments.

    Values are validated up front so that no partially constructed object is
    ever returned. This is also a `ValueError` so callers that treat bad input
    generically can catch it that way.
    """


class UnknownZoneError(ZoneRulesError):
    """Exception raised when looking up a zone id with no registered provider."""


class DuplicateZoneError(ZoneRulesError):
    """Exception raised when registering a provider with an existing zone id."""
