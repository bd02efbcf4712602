"""
Avail Artifact — build and read content-addressed artifact containers.

A container is a single zip/jar archive that bundles one or more source
roots, merges other pre-built containers and raw archives, and carries:

- **Descriptor** — packaging kind and schema version, read first
- **Manifest** — versioned record of the artifact type and its roots
- **Application configuration** — startup roots and renames (applications only)
- **Digest Index** — per-root ``path:hexDigest`` lines for integrity checks

Quick start::

    from avail_artifact import (
        ArtifactBuilder, ArtifactManifestV1, ArtifactReader, ArtifactType, RootManifest,
    )

    manifest = ArtifactManifestV1.create(ArtifactType.LIBRARY, [RootManifest("avail")])
    with ArtifactBuilder("dist/avail.jar", "Avail", "1.0.0", manifest) as builder:
        builder.add_root("avail", "src/avail")

    with ArtifactReader("dist/avail.jar") as reader:
        reader.manifest.roots["avail"].avail_module_extensions   # ['.avail']
        reader.file_metadata_for_root("avail")
"""

__version__ = "1.0.0"

from .core import (
    ArtifactType,
    FileMetadata,
    RootArtifactTarget,
    RootFileType,
    format_now,
)
from .descriptor import ArtifactDescriptor, PackageType, read_descriptor, write_descriptor
from .digest import compute_digest_index, parse_digest_index, serialize_digest_index
from .styles import Color, Palette, StyleAttributes
from .manifest import (
    ArtifactManifest,
    ArtifactManifestV1,
    RootManifest,
    RuntimeComponent,
    manifest_from_dict,
    manifest_from_json,
    serialize_manifest,
)
from .configuration import (
    ApplicationConfiguration,
    ApplicationConfigurationV1,
    RootRename,
    configuration_from_dict,
    configuration_from_json,
    serialize_configuration,
)
from .config import ArtifactSettings, SettingsLoader
from .builder import ArtifactBuilder
from .reader import ArtifactReader, RootVerification
from .faults import Fault, FaultDomain, Severity

__all__ = [
    # Core
    "ArtifactType",
    "FileMetadata",
    "RootArtifactTarget",
    "RootFileType",
    "format_now",
    # Descriptor
    "ArtifactDescriptor",
    "PackageType",
    "read_descriptor",
    "write_descriptor",
    # Digest Index
    "compute_digest_index",
    "parse_digest_index",
    "serialize_digest_index",
    # Records
    "Color",
    "Palette",
    "StyleAttributes",
    "ArtifactManifest",
    "ArtifactManifestV1",
    "RootManifest",
    "RuntimeComponent",
    "manifest_from_dict",
    "manifest_from_json",
    "serialize_manifest",
    "ApplicationConfiguration",
    "ApplicationConfigurationV1",
    "RootRename",
    "configuration_from_dict",
    "configuration_from_json",
    "serialize_configuration",
    # Settings
    "ArtifactSettings",
    "SettingsLoader",
    # Builder / Reader
    "ArtifactBuilder",
    "ArtifactReader",
    "RootVerification",
    # Faults
    "Fault",
    "FaultDomain",
    "Severity",
]
