"""
Artifact Descriptor — the fixed-format record read first from every container.

Wire format: 8 bytes, big-endian ``>II`` — packaging-kind code followed by
descriptor schema version. Readers fail closed on any kind or version they
do not know.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass
from enum import Enum

from .faults import CorruptArtifactFault, UnsupportedPackagingKindFault

_WIRE = struct.Struct(">II")

CURRENT_DESCRIPTOR_VERSION = 1


class PackageType(Enum):
    """How the artifact is packaged on disk."""

    SINGLE_FILE = 1
    DIRECTORY = 2

    @property
    def descriptor(self) -> "ArtifactDescriptor":
        """The current-version descriptor for this packaging kind."""
        return ArtifactDescriptor(self, CURRENT_DESCRIPTOR_VERSION)


@dataclass(frozen=True)
class ArtifactDescriptor:
    package_type: PackageType
    version: int = CURRENT_DESCRIPTOR_VERSION

    def to_bytes(self) -> bytes:
        return _WIRE.pack(self.package_type.value, self.version)

    @classmethod
    def from_bytes(cls, data: bytes, *, location: str = "<bytes>") -> "ArtifactDescriptor":
        """
        Parse a serialized descriptor.

        Raises:
            CorruptArtifactFault: wrong length or a zero version.
            UnsupportedPackagingKindFault: unknown kind code, or a version
                newer than this reader understands.
        """
        if len(data) != _WIRE.size:
            raise CorruptArtifactFault(
                location,
                f"descriptor must be {_WIRE.size} bytes, found {len(data)}",
            )
        kind_code, version = _WIRE.unpack(data)
        if version < 1:
            raise CorruptArtifactFault(location, f"descriptor version {version} is invalid")
        try:
            package_type = PackageType(kind_code)
        except ValueError:
            raise UnsupportedPackagingKindFault(kind_code, version) from None
        if version > CURRENT_DESCRIPTOR_VERSION:
            raise UnsupportedPackagingKindFault(package_type.name, version)
        return cls(package_type, version)


def write_descriptor(kind: PackageType, version: int = CURRENT_DESCRIPTOR_VERSION) -> bytes:
    return ArtifactDescriptor(kind, version).to_bytes()


def read_descriptor(data: bytes) -> ArtifactDescriptor:
    return ArtifactDescriptor.from_bytes(data)
