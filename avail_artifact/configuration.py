"""
Application Configuration — which roots an application artifact loads at
startup, and under what names.

Versioned the same way as the manifest, with its own version sequence.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Mapping, Union

from .faults import ConfigurationFormatFault, UnknownConfigurationVersionFault

CURRENT_CONFIGURATION_VERSION = 1


@dataclass(frozen=True)
class RootRename:
    original_name: str
    rename: str

    def to_dict(self) -> Dict[str, str]:
        return {"originalName": self.original_name, "rename": self.rename}

    @classmethod
    def from_dict(cls, data: Any) -> "RootRename":
        if not isinstance(data, dict):
            raise ConfigurationFormatFault("rootRenames", "expected an array of objects")
        try:
            original, rename = data["originalName"], data["rename"]
        except KeyError as exc:
            raise ConfigurationFormatFault(f"rootRenames.{exc.args[0]}", "field is missing") from exc
        if not isinstance(original, str) or not isinstance(rename, str):
            raise ConfigurationFormatFault("rootRenames", "names must be strings")
        return cls(original, rename)


@dataclass(frozen=True)
class ApplicationConfigurationV1:
    """Version 1 of the application configuration."""

    included_roots: List[str] = field(default_factory=list)
    root_renames: List[RootRename] = field(default_factory=list)

    configuration_version = 1

    @classmethod
    def including(cls, roots: Iterable[str]) -> "ApplicationConfigurationV1":
        """A configuration that loads *roots* under their own names."""
        return cls(included_roots=list(roots))

    @property
    def renames(self) -> Dict[str, str]:
        return {r.original_name: r.rename for r in self.root_renames}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "configurationVersion": self.configuration_version,
            "includedRoots": list(self.included_roots),
            "rootRenames": [r.to_dict() for r in self.root_renames],
        }

    def to_json(self, *, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ApplicationConfigurationV1":
        included = data.get("includedRoots")
        if not isinstance(included, list) or not all(isinstance(r, str) for r in included):
            raise ConfigurationFormatFault("includedRoots", "expected an array of strings")
        renames = data.get("rootRenames", [])
        if not isinstance(renames, list):
            raise ConfigurationFormatFault("rootRenames", "expected an array of objects")
        return cls(list(included), [RootRename.from_dict(r) for r in renames])


ApplicationConfiguration = ApplicationConfigurationV1

# Extend when a new version is added; never remove an entry.
_DECODERS: Dict[int, Callable[[Mapping[str, Any]], ApplicationConfiguration]] = {
    1: ApplicationConfigurationV1.from_dict,
}


def configuration_from_dict(data: Mapping[str, Any]) -> ApplicationConfiguration:
    """
    Decode a raw configuration record by dispatching on
    ``configurationVersion``.

    Raises:
        UnknownConfigurationVersionFault: version outside the registered range.
        ConfigurationFormatFault: a field is missing or malformed.
    """
    if not isinstance(data, Mapping):
        raise ConfigurationFormatFault("<root>", "expected a JSON object")
    version = data.get("configurationVersion")
    if isinstance(version, bool) or not isinstance(version, int) or version not in _DECODERS:
        raise UnknownConfigurationVersionFault(version, sorted(_DECODERS))
    return _DECODERS[version](data)


def configuration_from_json(text: Union[str, bytes]) -> ApplicationConfiguration:
    try:
        data = json.loads(text)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise ConfigurationFormatFault("<root>", f"not valid JSON: {exc}") from exc
    return configuration_from_dict(data)


def serialize_configuration(configuration: ApplicationConfiguration) -> Dict[str, Any]:
    """Always writes the current version."""
    if not isinstance(configuration, ApplicationConfigurationV1):
        raise ConfigurationFormatFault("<root>", f"cannot serialize {type(configuration).__name__}")
    return configuration.to_dict()
