"""
Artifact Manifest — the versioned record describing an artifact.

Every schema version has its own decoder registered in a closed
``version → decoder`` table. Decoders are never removed, so a manifest
written by any earlier version of this package stays loadable. Unknown
versions fail; they are never parsed "best effort".

Serialized form (version 1)::

    {
        "artifactVersion": 1,
        "artifactType": "LIBRARY",
        "constructed": "2024-05-01T12:30:00.123Z",
        "description": "...",
        "roots": [ {root record}, ... ],
        "jvmComponent": null
    }
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

from .core import DEFAULT_MODULE_EXTENSION, ArtifactType, format_now
from .faults import ManifestFormatFault, UnknownManifestVersionFault
from .styles import Palette, StyleAttributes

CURRENT_MANIFEST_VERSION = 1

DEFAULT_DIGEST_ALGORITHM = "SHA-256"


# ── Field helpers ───────────────────────────────────────────────────────


def _require(data: Mapping[str, Any], key: str, kind: type, where: str = "") -> Any:
    name = f"{where}{key}"
    if key not in data:
        raise ManifestFormatFault(name, "field is missing")
    value = data[key]
    if not isinstance(value, kind) or (kind is int and isinstance(value, bool)):
        raise ManifestFormatFault(
            name, f"expected {kind.__name__}, found {type(value).__name__}"
        )
    return value


def _strings(data: Mapping[str, Any], key: str, where: str = "") -> List[str]:
    values = _require(data, key, list, where)
    if not all(isinstance(v, str) for v in values):
        raise ManifestFormatFault(f"{where}{key}", "expected an array of strings")
    return list(values)


# ── Records ─────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class RuntimeComponent:
    """
    An embedded execution component shipped alongside the roots.

    ``mains`` maps each runnable entry class to a human description.
    """

    description: str = ""
    mains: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {"description": self.description, "mains": dict(self.mains)}

    @classmethod
    def from_value(cls, value: Any) -> Optional["RuntimeComponent"]:
        """Decode ``jvmComponent``; ``null`` and legacy ``false`` mean absent."""
        if value is None or value is False:
            return None
        if not isinstance(value, dict):
            raise ManifestFormatFault("jvmComponent", "expected an object, null or false")
        description = value.get("description", "")
        mains = value.get("mains", {})
        if not isinstance(description, str):
            raise ManifestFormatFault("jvmComponent.description", "expected str")
        if not isinstance(mains, dict) or not all(
            isinstance(k, str) and isinstance(v, str) for k, v in mains.items()
        ):
            raise ManifestFormatFault("jvmComponent.mains", "expected an object of strings")
        return cls(description, dict(mains))


@dataclass(frozen=True)
class RootManifest:
    """
    Per-root metadata carried inside a manifest.

    ``templates``, ``stylesheet`` and ``palette`` are optional on read and
    default to empty when absent.
    """

    name: str
    avail_module_extensions: List[str] = field(
        default_factory=lambda: [DEFAULT_MODULE_EXTENSION]
    )
    entry_points: List[str] = field(default_factory=list)
    description: str = ""
    digest_algorithm: str = DEFAULT_DIGEST_ALGORITHM
    templates: Dict[str, str] = field(default_factory=dict)
    stylesheet: Dict[str, StyleAttributes] = field(default_factory=dict)
    palette: Optional[Palette] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "name": self.name,
            "description": self.description,
            "digestAlgorithm": self.digest_algorithm,
            "availModuleExtensions": list(self.avail_module_extensions),
            "entryPoints": list(self.entry_points),
            "templates": dict(self.templates),
            "stylesheet": {rule: attrs.to_dict() for rule, attrs in self.stylesheet.items()},
        }
        if self.palette is not None and not self.palette.is_empty:
            data["palette"] = self.palette.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "RootManifest":
        if not isinstance(data, dict):
            raise ManifestFormatFault("roots", "expected an array of objects")
        name = _require(data, "name", str, "roots.")
        where = f"roots[{name}]."
        description = data.get("description", "")
        if not isinstance(description, str):
            raise ManifestFormatFault(f"{where}description", "expected str")

        templates = data.get("templates") or {}
        if not isinstance(templates, dict) or not all(
            isinstance(v, str) for v in templates.values()
        ):
            raise ManifestFormatFault(f"{where}templates", "expected an object of strings")

        stylesheet_data = data.get("stylesheet") or {}
        if not isinstance(stylesheet_data, dict):
            raise ManifestFormatFault(f"{where}stylesheet", "expected an object")
        stylesheet = {
            rule: StyleAttributes.from_dict(attrs, rule=rule)
            for rule, attrs in stylesheet_data.items()
        }

        palette_data = data.get("palette")
        palette = Palette.from_dict(palette_data) if palette_data else None

        return cls(
            name=name,
            avail_module_extensions=_strings(data, "availModuleExtensions", where),
            entry_points=_strings(data, "entryPoints", where),
            description=description,
            digest_algorithm=_require(data, "digestAlgorithm", str, where),
            templates=dict(templates),
            stylesheet=stylesheet,
            palette=palette,
        )


@dataclass(frozen=True)
class ArtifactManifestV1:
    """Version 1 of the artifact manifest."""

    artifact_type: ArtifactType
    constructed: str
    roots: Dict[str, RootManifest] = field(default_factory=dict)
    description: str = ""
    runtime_component: Optional[RuntimeComponent] = None

    artifact_version = 1

    @classmethod
    def create(
        cls,
        artifact_type: Union[ArtifactType, str],
        roots: Union[Mapping[str, RootManifest], List[RootManifest], None] = None,
        description: str = "",
        runtime_component: Optional[RuntimeComponent] = None,
    ) -> "ArtifactManifestV1":
        """Build a fresh manifest stamped with :func:`format_now`."""
        if roots is None:
            roots = {}
        elif not isinstance(roots, Mapping):
            roots = _index_roots(roots)
        return cls(
            artifact_type=ArtifactType(artifact_type),
            constructed=format_now(),
            roots=dict(roots),
            description=description,
            runtime_component=runtime_component,
        )

    def with_root(self, root: RootManifest) -> "ArtifactManifestV1":
        """Return a copy that also carries *root*."""
        return replace(self, roots={**self.roots, root.name: root})

    def to_dict(self) -> Dict[str, Any]:
        return {
            "artifactVersion": self.artifact_version,
            "artifactType": self.artifact_type.value,
            "constructed": self.constructed,
            "description": self.description,
            "roots": [root.to_dict() for root in self.roots.values()],
            "jvmComponent": (
                self.runtime_component.to_dict() if self.runtime_component else None
            ),
        }

    def to_json(self, *, indent: Optional[int] = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ArtifactManifestV1":
        type_name = _require(data, "artifactType", str)
        try:
            artifact_type = ArtifactType(type_name)
        except ValueError:
            raise ManifestFormatFault(
                "artifactType", f"unknown artifact type {type_name!r}"
            ) from None
        description = data.get("description", "")
        if not isinstance(description, str):
            raise ManifestFormatFault("description", "expected str")
        roots = _require(data, "roots", list)
        return cls(
            artifact_type=artifact_type,
            constructed=_require(data, "constructed", str),
            roots=_index_roots([RootManifest.from_dict(r) for r in roots]),
            description=description,
            runtime_component=RuntimeComponent.from_value(data.get("jvmComponent")),
        )


def _index_roots(roots: List[RootManifest]) -> Dict[str, RootManifest]:
    indexed: Dict[str, RootManifest] = {}
    for root in roots:
        if root.name in indexed:
            raise ManifestFormatFault("roots", f"duplicate root name {root.name!r}")
        indexed[root.name] = root
    return indexed


# ── Versioned dispatch ──────────────────────────────────────────────────

ArtifactManifest = ArtifactManifestV1

# Extend when a new version is added; never remove an entry.
_DECODERS: Dict[int, Callable[[Mapping[str, Any]], ArtifactManifest]] = {
    1: ArtifactManifestV1.from_dict,
}


def manifest_from_dict(data: Mapping[str, Any]) -> ArtifactManifest:
    """
    Decode a raw manifest record by dispatching on ``artifactVersion``.

    Raises:
        UnknownManifestVersionFault: the version is missing, not an
            integer, or outside the registered range.
        ManifestFormatFault: a field is missing or malformed.
    """
    if not isinstance(data, Mapping):
        raise ManifestFormatFault("<root>", "expected a JSON object")
    version = data.get("artifactVersion")
    if isinstance(version, bool) or not isinstance(version, int) or version not in _DECODERS:
        raise UnknownManifestVersionFault(version, sorted(_DECODERS))
    return _DECODERS[version](data)


def manifest_from_json(text: Union[str, bytes]) -> ArtifactManifest:
    try:
        data = json.loads(text)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise ManifestFormatFault("<root>", f"not valid JSON: {exc}") from exc
    return manifest_from_dict(data)


def upgrade_manifest(manifest: Any) -> ArtifactManifest:
    """Carry an older-version manifest forward to the current version."""
    if isinstance(manifest, ArtifactManifestV1):
        return manifest
    raise ManifestFormatFault("<root>", f"cannot upgrade {type(manifest).__name__}")


def serialize_manifest(manifest: Any) -> Dict[str, Any]:
    """Always writes the current version."""
    return upgrade_manifest(manifest).to_dict()
