"""Configuration for bootstrapping the zone rules provider registry.

The registry installs a default provider the first time it is initialized.
The choice of provider can be controlled with environment variables:

  - `ZONERULES_DEFAULT_PROVIDER`: A `module:Class` import path of a
    `ZoneRulesProvider` subclass constructed with no arguments, used instead
    of the built in providers.
  - `ZONERULES_TZDB_PATH`: Path to a compiled TZDB database file.
  - `ZONERULES_LOAD_ENTRY_POINTS`: Set to `0` or `false` to skip loading
    additional providers advertised by installed packages.

When no database file is configured, the bundled `zonerules/data/tzdb.dat`
is used if present, then the TZif files of the system or `tzdata` package.
"""

from __future__ import annotations

import importlib
import os
import pathlib
from collections.abc import Mapping
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, field_validator

__all__ = [
    "RegistryConfig",
    "ENTRY_POINT_GROUP",
]

ENV_DEFAULT_PROVIDER = "ZONERULES_DEFAULT_PROVIDER"
ENV_TZDB_PATH = "ZONERULES_TZDB_PATH"
ENV_LOAD_ENTRY_POINTS = "ZONERULES_LOAD_ENTRY_POINTS"

ENTRY_POINT_GROUP = "zonerules.providers"
"""Entry point group for packages that provide additional zone rules."""

_FALSE_VALUES = {"0", "false", "no", "off"}


class RegistryConfig(BaseModel):
    """Settings used when initializing the provider registry."""

    model_config = ConfigDict(frozen=True)

    default_provider: Optional[str] = None
    """Import path of a provider class in `module:Class` form."""

    tzdb_path: Optional[pathlib.Path] = None
    """Path to a TZDB database file to use as the default provider."""

    load_entry_points: bool = True
    """Load providers from the `zonerules.providers` entry point group."""

    @field_validator("default_provider")
    @classmethod
    def _check_import_path(cls, value: str | None) -> str | None:
        """Validate the provider import path has a module and a class name."""
        if value is None:
            return None
        module, sep, name = value.partition(":")
        if not module or not sep or not name:
            raise ValueError(f"Provider must be in 'module:Class' form: {value}")
        return value

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> RegistryConfig:
        """Create the configuration from environment variables."""
        if environ is None:
            environ = os.environ
        values: dict[str, Any] = {}
        if provider := environ.get(ENV_DEFAULT_PROVIDER):
            values["default_provider"] = provider
        if tzdb_path := environ.get(ENV_TZDB_PATH):
            values["tzdb_path"] = tzdb_path
        if (load := environ.get(ENV_LOAD_ENTRY_POINTS)) is not None:
            values["load_entry_points"] = load.strip().lower() not in _FALSE_VALUES
        return cls.model_validate(values)

    def load_default_provider_class(self) -> type | None:
        """Import the configured default provider class, if any."""
        if self.default_provider is None:
            return None
        module_name, _, class_name = self.default_provider.partition(":")
        module = importlib.import_module(module_name)
        return getattr(module, class_name)
