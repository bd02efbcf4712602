"""
Artifact Reader — open, inspect and verify a finished artifact container.

- descriptor is read and checked as soon as the container is opened
- ``manifest`` / ``configuration`` are decoded on first access and memoized
- ``digests_for_root`` / ``file_metadata_for_root`` — per-root queries
- ``verify_root`` — recompute source digests and compare to the index
- ``inspect`` — summary dict for display

A reader never mutates its container. One reader instance is not safe for
unsynchronized concurrent first access of its lazy fields.
"""

from __future__ import annotations

import logging
import os
import time
import zipfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from .config import ArtifactSettings
from .configuration import (
    ApplicationConfiguration,
    configuration_from_json,
)
from .core import (
    APPLICATION_CONFIGURATION_PATH,
    ARTIFACT_DESCRIPTOR_PATH,
    ARTIFACT_MANIFEST_PATH,
    DEFAULT_MODULE_EXTENSION,
    MODULE_MIME_TYPE,
    ArtifactType,
    FileMetadata,
    RootFileType,
    root_digests_path,
    root_sources_prefix,
)
from .descriptor import ArtifactDescriptor, PackageType
from .digest import digest_bytes, parse_digest_index, resolve_algorithm
from .faults import (
    ConfigurationNotFoundFault,
    CorruptArtifactFault,
    DigestMissingFault,
    DigestNotFoundFault,
    EntryNotFoundFault,
    ManifestNotFoundFault,
    ReaderClosedFault,
    UnsupportedPackagingKindFault,
)
from .manifest import DEFAULT_DIGEST_ALGORITHM, ArtifactManifest, manifest_from_json

logger = logging.getLogger("avail_artifact.reader")

PathLike = Union[str, "os.PathLike[str]"]


@dataclass
class RootVerification:
    """Outcome of :meth:`ArtifactReader.verify_root`."""

    root_name: str
    algorithm: str
    verified: List[str] = field(default_factory=list)
    mismatched: List[str] = field(default_factory=list)
    undigested: List[str] = field(default_factory=list)
    missing: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not (self.mismatched or self.undigested or self.missing)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "root": self.root_name,
            "algorithm": self.algorithm,
            "ok": self.ok,
            "verified": len(self.verified),
            "mismatched": list(self.mismatched),
            "undigested": list(self.undigested),
            "missing": list(self.missing),
        }


def _strip_extension(segment: str, extensions: List[str]) -> str:
    for ext in extensions:
        if segment.endswith(ext) and len(segment) > len(ext):
            return segment[: -len(ext)]
    return segment


def classify_entry(relative_name: str, extensions: List[str]) -> RootFileType:
    """
    Classify one source entry name (relative to the root's sources).

    - ``x.avail/`` — PACKAGE
    - ``x/`` — DIRECTORY
    - ``x/x.avail`` (or ``x.avail/x.avail``) — PACKAGE_REPRESENTATIVE
    - ``y.avail`` — MODULE
    - anything else — RESOURCE
    """
    if any(relative_name.endswith(f"{ext}/") for ext in extensions):
        return RootFileType.PACKAGE
    if relative_name.endswith("/"):
        return RootFileType.DIRECTORY
    if any(relative_name.endswith(ext) for ext in extensions):
        parts = relative_name.split("/")
        if len(parts) >= 2 and (
            _strip_extension(parts[-1], extensions) == _strip_extension(parts[-2], extensions)
        ):
            return RootFileType.PACKAGE_REPRESENTATIVE
        return RootFileType.MODULE
    return RootFileType.RESOURCE


def _epoch_millis(info: zipfile.ZipInfo) -> int:
    return int(time.mktime(info.date_time + (0, 0, -1)) * 1000)


class ArtifactReader:
    """
    Read-only view of one single-file artifact container.

    Usage::

        with ArtifactReader.open("dist/avail.jar") as reader:
            roots = reader.manifest.roots
            files = reader.file_metadata_for_root("avail")
    """

    def __init__(self, location: PathLike, *, settings: Optional[ArtifactSettings] = None):
        self.location = Path(location)
        self.settings = settings or ArtifactSettings()
        self._manifest: Optional[ArtifactManifest] = None
        self._configuration: Optional[ApplicationConfiguration] = None
        self._digests: Dict[str, Dict[str, bytes]] = {}
        self._closed = False

        try:
            self._zip = zipfile.ZipFile(self.location)
        except (OSError, zipfile.BadZipFile) as exc:
            raise CorruptArtifactFault(str(self.location), str(exc)) from exc

        try:
            self._descriptor = self._read_descriptor()
        except Exception:
            self._zip.close()
            raise
        logger.debug("Opened artifact %s (%s)", self.location, self._descriptor)

    @classmethod
    def open(cls, location: PathLike, **kwargs) -> "ArtifactReader":
        return cls(location, **kwargs)

    def _read_descriptor(self) -> ArtifactDescriptor:
        try:
            data = self._zip.read(ARTIFACT_DESCRIPTOR_PATH)
        except KeyError:
            raise CorruptArtifactFault(
                str(self.location), f"missing {ARTIFACT_DESCRIPTOR_PATH}"
            ) from None
        except (zipfile.BadZipFile, OSError) as exc:
            raise CorruptArtifactFault(str(self.location), str(exc)) from exc
        descriptor = ArtifactDescriptor.from_bytes(data, location=str(self.location))
        if descriptor.package_type is not PackageType.SINGLE_FILE:
            raise UnsupportedPackagingKindFault(
                descriptor.package_type.name,
                descriptor.version,
                metadata={"location": str(self.location)},
            )
        return descriptor

    def _check_open(self, operation: str):
        if self._closed:
            raise ReaderClosedFault(operation, str(self.location))

    # ── Properties ──────────────────────────────────────────────────────

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def name(self) -> str:
        """File name of the container."""
        return self.location.name

    @property
    def descriptor(self) -> ArtifactDescriptor:
        return self._descriptor

    @property
    def manifest(self) -> ArtifactManifest:
        """The decoded artifact manifest (memoized)."""
        self._check_open("read manifest")
        if self._manifest is None:
            data = self._read_reserved(ARTIFACT_MANIFEST_PATH, ManifestNotFoundFault)
            self._manifest = manifest_from_json(data)
        return self._manifest

    @property
    def configuration(self) -> Optional[ApplicationConfiguration]:
        """The application configuration, or ``None`` for a LIBRARY artifact."""
        self._check_open("read configuration")
        if self.manifest.artifact_type is not ArtifactType.APPLICATION:
            return None
        if self._configuration is None:
            data = self._read_reserved(APPLICATION_CONFIGURATION_PATH, ConfigurationNotFoundFault)
            self._configuration = configuration_from_json(data)
        return self._configuration

    def _read_reserved(self, path: str, missing) -> bytes:
        try:
            return self._zip.read(path)
        except KeyError:
            raise missing(str(self.location), path) from None
        except (zipfile.BadZipFile, OSError) as exc:
            raise CorruptArtifactFault(str(self.location), f"{path}: {exc}") from exc

    # ── Entries ─────────────────────────────────────────────────────────

    def entry_names(self) -> List[str]:
        """Every entry path in container order."""
        self._check_open("list entries")
        return self._zip.namelist()

    def read_entry(self, path: str) -> bytes:
        self._check_open("read entry")
        try:
            return self._zip.read(path)
        except KeyError:
            raise EntryNotFoundFault(str(self.location), path) from None
        except (zipfile.BadZipFile, OSError) as exc:
            raise CorruptArtifactFault(str(self.location), f"{path}: {exc}") from exc

    # ── Roots ───────────────────────────────────────────────────────────

    def _root_extensions(self, root_name: str) -> List[str]:
        record = self.manifest.roots.get(root_name)
        if record is None or not record.avail_module_extensions:
            return [DEFAULT_MODULE_EXTENSION]
        return list(record.avail_module_extensions)

    def _root_algorithm(self, root_name: str) -> str:
        record = self.manifest.roots.get(root_name)
        return record.digest_algorithm if record else DEFAULT_DIGEST_ALGORITHM

    def digests_for_root(self, root_name: str) -> Dict[str, bytes]:
        """
        The root's Digest Index, ``{relative path: digest bytes}``.

        Raises:
            DigestNotFoundFault: the root has no digest file.
            MalformedDigestLineFault: the digest file is malformed.
        """
        self._check_open("read digests")
        if root_name not in self._digests:
            path = root_digests_path(root_name)
            try:
                data = self._zip.read(path)
            except KeyError:
                raise DigestNotFoundFault(root_name, path) from None
            except (zipfile.BadZipFile, OSError) as exc:
                raise CorruptArtifactFault(str(self.location), f"{path}: {exc}") from exc
            self._digests[root_name] = parse_digest_index(data.decode("utf-8"))
        return dict(self._digests[root_name])

    def file_metadata_for_root(
        self, root_name: str, *, strict: Optional[bool] = None
    ) -> List[FileMetadata]:
        """
        Enumerate and classify every entry under the root's sources.

        A file with no digest is logged as a warning and given
        ``digest=None``; with *strict* (default: ``strict_digests``
        setting) it raises :class:`DigestMissingFault` instead.
        """
        self._check_open("list root files")
        if strict is None:
            strict = self.settings.strict_digests
        extensions = self._root_extensions(root_name)
        digests = self.digests_for_root(root_name)
        prefix = root_sources_prefix(root_name)

        records: List[FileMetadata] = []
        for info in self._zip.infolist():
            if not info.filename.startswith(prefix):
                continue
            relative = info.filename[len(prefix):]
            if not relative:
                continue
            file_type = classify_entry(relative, extensions)
            relative = relative.rstrip("/")
            qualified = "/".join(
                [root_name] + [_strip_extension(s, extensions) for s in relative.split("/")]
            )
            digest = digests.get(relative)
            if digest is None and not info.is_dir():
                if strict:
                    raise DigestMissingFault(root_name, relative)
                logger.warning(
                    "File %r in root %r of %s has no recorded digest",
                    relative, root_name, self.location,
                )
            records.append(
                FileMetadata(
                    relative_path=relative,
                    file_type=file_type,
                    qualified_name=qualified,
                    mime_type=MODULE_MIME_TYPE
                    if file_type in (RootFileType.MODULE, RootFileType.PACKAGE_REPRESENTATIVE)
                    else None,
                    last_modified=_epoch_millis(info),
                    size=info.file_size,
                    digest=digest,
                )
            )
        return records

    def verify_root(self, root_name: str) -> RootVerification:
        """Recompute every source file's digest and compare with the index."""
        self._check_open("verify root")
        algorithm = self._root_algorithm(root_name)
        resolve_algorithm(algorithm)
        digests = self.digests_for_root(root_name)
        prefix = root_sources_prefix(root_name)
        result = RootVerification(root_name, algorithm)
        seen = set()

        for info in self._zip.infolist():
            if not info.filename.startswith(prefix) or info.is_dir():
                continue
            relative = info.filename[len(prefix):]
            seen.add(relative)
            expected = digests.get(relative)
            if expected is None:
                result.undigested.append(relative)
                continue
            if digest_bytes(self.read_entry(info.filename), algorithm) == expected:
                result.verified.append(relative)
            else:
                result.mismatched.append(relative)
        result.missing = sorted(set(digests) - seen)

        if not result.ok:
            logger.warning(
                "Root %r of %s failed verification: %d mismatched, %d undigested, %d missing",
                root_name, self.location,
                len(result.mismatched), len(result.undigested), len(result.missing),
            )
        return result

    def inspect(self) -> Dict[str, Any]:
        """Summary of the container for display."""
        self._check_open("inspect")
        manifest = self.manifest
        roots: Dict[str, Any] = {}
        for root_name, record in manifest.roots.items():
            summary: Dict[str, Any] = {
                "digest_algorithm": record.digest_algorithm,
                "extensions": list(record.avail_module_extensions),
                "entry_points": list(record.entry_points),
            }
            try:
                files = self.file_metadata_for_root(root_name, strict=False)
            except DigestNotFoundFault:
                summary["digests"] = None
            else:
                summary["digests"] = len(self.digests_for_root(root_name))
                summary["modules"] = sum(1 for f in files if f.is_module)
                summary["resources"] = sum(
                    1 for f in files if f.file_type is RootFileType.RESOURCE
                )
            roots[root_name] = summary

        configuration = self.configuration
        return {
            "name": self.name,
            "location": str(self.location),
            "packaging": self._descriptor.package_type.name,
            "descriptor_version": self._descriptor.version,
            "artifact_type": manifest.artifact_type.value,
            "artifact_version": manifest.artifact_version,
            "constructed": manifest.constructed,
            "description": manifest.description,
            "entries": len(self._zip.infolist()),
            "roots": roots,
            "configuration": configuration.to_dict() if configuration else None,
        }

    # ── Lifecycle ───────────────────────────────────────────────────────

    def close(self):
        """Release the container. Later queries raise :class:`ReaderClosedFault`."""
        self._closed = True
        self._zip.close()

    def __enter__(self) -> "ArtifactReader":
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False

    def __repr__(self) -> str:
        return f"<ArtifactReader {self.location}>"
