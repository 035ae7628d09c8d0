"""Providers of zone rules and the process wide registry of providers.

A provider owns a set of zone ids and returns the `RuleSet` for each of them.
Providers are registered with a `ProviderRegistry` which maps each zone id to
the provider that owns it. Registration is append only: a zone id can never be
removed or replaced once registered, and a provider that claims an id that is
already registered is rejected as a whole.

The process wide registry is created explicitly and initialized once, either
by calling `initialize()` from application startup code, or on first use by
the module level lookup functions. Initialization installs a default provider
(see `zonerules.config`) followed by any providers advertised through the
`zonerules.providers` entry point group.

```python
import datetime

from zonerules import provider

rules = provider.get_rules("Europe/London")
print(rules.get_offset(datetime.datetime.now(tz=datetime.UTC)))
```
"""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from collections.abc import Iterable
from importlib import metadata, resources

from .config import ENTRY_POINT_GROUP, RegistryConfig
from .exceptions import DuplicateZoneError, UnknownZoneError, ZoneRulesError
from .rules import RuleSet

__all__ = [
    "ZoneRulesProvider",
    "ProviderRegistry",
    "initialize",
    "get_registry",
    "get_rules",
    "get_versions",
    "register_provider",
    "available_zone_ids",
    "refresh",
]

_LOGGER = logging.getLogger(__name__)

_BUNDLED_TZDB = "tzdb.dat"


class ZoneRulesProvider(ABC):
    """A source of zone rules for a fixed set of zone ids."""

    @abstractmethod
    def provide_zone_ids(self) -> set[str]:
        """Return the zone ids served by this provider.

        The set must not change for the lifetime of the provider.
        """

    @abstractmethod
    def provide_rules(self, zone_id: str, for_caching: bool) -> RuleSet | None:
        """Return the current rules for a zone id owned by this provider.

        When `for_caching` is True the caller intends to keep the result. A
        provider of rules that may change can return None to signal that the
        result should not be cached.
        """

    @abstractmethod
    def provide_versions(self, zone_id: str) -> dict[str, RuleSet]:
        """Return the history of rules for the zone id, from oldest to newest version."""

    def provide_refresh(self) -> bool:
        """Reload the rules, returning True if anything changed."""
        return False


class ProviderRegistry:
    """A registry mapping zone ids to the provider that owns them.

    Lookups do not take a lock. Registration is serialized so that a provider
    is either registered for all of its ids or none of them.
    """

    def __init__(self) -> None:
        """Initialize an empty ProviderRegistry."""
        self._providers: list[ZoneRulesProvider] = []
        self._zones: dict[str, ZoneRulesProvider] = {}
        self._lock = threading.Lock()
        self._initialized = False

    @property
    def initialized(self) -> bool:
        """Return True once the default providers have been installed."""
        return self._initialized

    def initialize(self, config: RegistryConfig | None = None) -> bool:
        """Install the default provider and entry point providers.

        This only has an effect the first time it is called, returning False
        when the registry was already initialized.
        """
        with self._lock:
            if self._initialized:
                return False
            if config is None:
                config = RegistryConfig.from_env()
            self._register(_default_provider(config))
            self._initialized = True
            if config.load_entry_points:
                for provider in _entry_point_providers():
                    self._register(provider)
        return True

    def register(self, provider: ZoneRulesProvider) -> None:
        """Register a provider for all of its zone ids.

        Raises DuplicateZoneError, leaving the registry unchanged, if any of
        the ids is already registered.
        """
        with self._lock:
            self._register(provider)

    def _register(self, provider: ZoneRulesProvider) -> None:
        zone_ids = set(provider.provide_zone_ids())
        if duplicates := sorted(zone_ids.intersection(self._zones)):
            raise DuplicateZoneError(
                "Unable to register zone as one already registered with that ID: "
                f"{duplicates[0]}, for provider: {provider!r}"
            )
        _LOGGER.debug("Registering %s with %d zone ids", provider, len(zone_ids))
        for zone_id in zone_ids:
            self._zones.setdefault(zone_id, provider)
        self._providers.append(provider)

    def _get_provider(self, zone_id: str) -> ZoneRulesProvider:
        if (provider := self._zones.get(zone_id)) is None:
            if not self._zones:
                raise UnknownZoneError("No time-zone data files registered")
            raise UnknownZoneError(f"Unknown time-zone ID: {zone_id}")
        return provider

    def get_rules(self, zone_id: str, for_caching: bool = False) -> RuleSet | None:
        """Return the rules for the zone id from the provider that owns it.

        None may only be returned when `for_caching` is True, if the provider
        does not want the result to be cached.
        """
        return self._get_provider(zone_id).provide_rules(zone_id, for_caching)

    def get_versions(self, zone_id: str) -> dict[str, RuleSet]:
        """Return the history of rules for the zone id, from oldest to newest."""
        return self._get_provider(zone_id).provide_versions(zone_id)

    def available_zone_ids(self) -> set[str]:
        """Return a copy of the set of registered zone ids."""
        return set(self._zones)

    def refresh(self) -> bool:
        """Ask every provider to reload, returning True if any rules changed."""
        changed = False
        for provider in list(self._providers):
            changed |= provider.provide_refresh()
        return changed


def _default_provider(config: RegistryConfig) -> ZoneRulesProvider:
    """Create the default provider described by the configuration."""
    # pylint: disable=import-outside-toplevel
    from .tzdb import TzdbZoneRulesProvider
    from .tzif.provider import TzifZoneRulesProvider

    try:
        provider_class = config.load_default_provider_class()
    except (ImportError, AttributeError) as err:
        raise ZoneRulesError(
            f"Unable to load default provider: {config.default_provider}"
        ) from err
    if provider_class is not None:
        _LOGGER.debug("Using configured default provider %s", config.default_provider)
        return provider_class()
    if config.tzdb_path is not None:
        _LOGGER.debug("Loading TZDB file %s", config.tzdb_path)
        return TzdbZoneRulesProvider.from_path(config.tzdb_path)
    bundled = resources.files(__package__).joinpath("data", _BUNDLED_TZDB)
    if bundled.is_file():
        _LOGGER.debug("Loading bundled TZDB file")
        with bundled.open("rb") as tzdb_file:
            return TzdbZoneRulesProvider(tzdb_file)
    _LOGGER.debug("No TZDB file found, using TZif zone information")
    return TzifZoneRulesProvider()


def _entry_point_providers() -> Iterable[ZoneRulesProvider]:
    """Create the providers advertised by installed packages."""
    for entry_point in metadata.entry_points(group=ENTRY_POINT_GROUP):
        _LOGGER.debug("Loading provider from entry point %s", entry_point.value)
        try:
            provider_class = entry_point.load()
        except (ImportError, AttributeError) as err:
            raise ZoneRulesError(
                f"Unable to load provider entry point: {entry_point.value}"
            ) from err
        yield provider_class()


_REGISTRY = ProviderRegistry()


def initialize(config: RegistryConfig | None = None) -> bool:
    """Initialize the process wide registry, returning False if already done."""
    return _REGISTRY.initialize(config)


def get_registry() -> ProviderRegistry:
    """Return the process wide registry, initializing it on first use."""
    if not _REGISTRY.initialized:
        _REGISTRY.initialize()
    return _REGISTRY


def get_rules(zone_id: str, for_caching: bool = False) -> RuleSet | None:
    """Return the rules for the zone id from the process wide registry."""
    return get_registry().get_rules(zone_id, for_caching)


def get_versions(zone_id: str) -> dict[str, RuleSet]:
    """Return the history of rules for the zone id from the process wide registry."""
    return get_registry().get_versions(zone_id)


def register_provider(provider: ZoneRulesProvider) -> None:
    """Register a provider with the process wide registry."""
    get_registry().register(provider)


def available_zone_ids() -> set[str]:
    """Return the zone ids of the process wide registry."""
    return get_registry().available_zone_ids()


def refresh() -> bool:
    """Refresh all providers of the process wide registry."""
    return get_registry().refresh()
