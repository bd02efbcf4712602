"""
Artifact Core — shared constants and value types for the artifact container.

Container layout (paths relative to the container root)::

    META-INF/                                       structural marker
    META-INF/MANIFEST.MF                            implementation metadata
    avail-artifact-contents/                        reserved root directory
    avail-artifact-contents/avail-artifact-descriptor
    avail-artifact-contents/<root>/Avail-Sources/...
    avail-artifact-contents/<root>/Avail-Digests/all_digests.txt
    avail-artifact-contents/avail-artifact-manifest.json
    avail-artifact-contents/avail-application-configuration.json
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from .manifest import RootManifest


# ── Reserved paths ──────────────────────────────────────────────────────

META_INF_DIRECTORY = "META-INF/"
IMPLEMENTATION_MANIFEST_FILE = "META-INF/MANIFEST.MF"

ARTIFACT_ROOT_DIRECTORY = "avail-artifact-contents"
ARTIFACT_DESCRIPTOR_FILE_NAME = "avail-artifact-descriptor"
ARTIFACT_DESCRIPTOR_PATH = f"{ARTIFACT_ROOT_DIRECTORY}/{ARTIFACT_DESCRIPTOR_FILE_NAME}"

ARTIFACT_MANIFEST_FILE_NAME = "avail-artifact-manifest.json"
ARTIFACT_MANIFEST_PATH = f"{ARTIFACT_ROOT_DIRECTORY}/{ARTIFACT_MANIFEST_FILE_NAME}"

# Name given to a nested archive's manifest once namespaced under its simple name.
NESTED_MANIFEST_FILE_NAME = "manifest.json"

APPLICATION_CONFIGURATION_FILE_NAME = "avail-application-configuration.json"
APPLICATION_CONFIGURATION_PATH = (
    f"{ARTIFACT_ROOT_DIRECTORY}/{APPLICATION_CONFIGURATION_FILE_NAME}"
)

SOURCES_DIRECTORY = "Avail-Sources"
DIGESTS_DIRECTORY = "Avail-Digests"
DIGESTS_FILE_NAME = "all_digests.txt"

DEFAULT_MODULE_EXTENSION = ".avail"
MODULE_MIME_TYPE = "text/plain"


def root_directory(root_name: str) -> str:
    """``avail-artifact-contents/<root>/``"""
    return f"{ARTIFACT_ROOT_DIRECTORY}/{root_name}/"


def root_sources_prefix(root_name: str) -> str:
    """Prefix of every source entry of *root_name*, with trailing slash."""
    return f"{ARTIFACT_ROOT_DIRECTORY}/{root_name}/{SOURCES_DIRECTORY}/"


def root_digests_directory(root_name: str) -> str:
    return f"{ARTIFACT_ROOT_DIRECTORY}/{root_name}/{DIGESTS_DIRECTORY}/"


def root_digests_path(root_name: str) -> str:
    """Reserved per-root Digest Index path."""
    return f"{root_digests_directory(root_name)}{DIGESTS_FILE_NAME}"


# ── Timestamps ──────────────────────────────────────────────────────────


def format_now() -> str:
    """
    The single canonical construction timestamp.

    UTC, millisecond precision, ``Z`` suffix, e.g.
    ``2024-05-01T12:30:00.123Z``. Every manifest and every
    implementation-metadata entry takes its timestamp from here.
    """
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


# ── Enums ───────────────────────────────────────────────────────────────


class ArtifactType(str, Enum):
    """The declared nature of an artifact."""

    LIBRARY = "LIBRARY"
    APPLICATION = "APPLICATION"


class RootFileType(str, Enum):
    """Classification of an entry inside a root's sources."""

    MODULE = "MODULE"
    PACKAGE_REPRESENTATIVE = "PACKAGE_REPRESENTATIVE"
    PACKAGE = "PACKAGE"
    DIRECTORY = "DIRECTORY"
    RESOURCE = "RESOURCE"


# ── Value Objects ───────────────────────────────────────────────────────


@dataclass(frozen=True)
class FileMetadata:
    """
    Reader-produced description of one entry in a root's sources.

    Computed on demand, never stored in the container.
    """

    relative_path: str
    file_type: RootFileType
    qualified_name: str
    mime_type: Optional[str]
    last_modified: int
    size: int
    digest: Optional[bytes] = None

    @property
    def is_module(self) -> bool:
        return self.file_type in (RootFileType.MODULE, RootFileType.PACKAGE_REPRESENTATIVE)


@dataclass(frozen=True)
class RootArtifactTarget:
    """An already-resolved root path paired with its manifest record."""

    root_path: str
    root_manifest: "RootManifest"

    @property
    def root_name(self) -> str:
        return self.root_manifest.name
