"""
Artifact faults - Domain-specific fault types.

Fault Taxonomy::

    Fault
    ├── BuildFault                 (artifact.build)
    │   ├── CannotCreateOutputFault
    │   ├── NotADirectoryFault
    │   ├── NotAFileFault
    │   ├── DuplicateRootFault
    │   ├── NestedArchiveFault
    │   └── BuilderClosedFault
    ├── SourceReadFault            (io)
    ├── ReaderClosedFault          (io)
    ├── FormatFault                (artifact.format)
    │   ├── UnsupportedAlgorithmFault
    │   ├── MalformedDigestLineFault
    │   ├── UnsupportedPackagingKindFault
    │   ├── CorruptArtifactFault
    │   ├── UnknownManifestVersionFault
    │   ├── ManifestFormatFault
    │   ├── UnknownConfigurationVersionFault
    │   └── ConfigurationFormatFault
    ├── ArtifactLookupFault        (artifact.format)
    │   ├── ManifestNotFoundFault
    │   ├── ConfigurationNotFoundFault
    │   ├── DigestNotFoundFault
    │   └── EntryNotFoundFault
    ├── DigestMissingFault         (artifact.integrity)
    └── SettingsInvalidFault       (config)
"""

from __future__ import annotations

from typing import Any, Optional, Sequence

from .core import Fault, FaultDomain, Severity


# ============================================================================
# BUILD Faults
# ============================================================================

class BuildFault(Fault):
    """Base class for input errors raised while assembling a container."""

    def __init__(
        self,
        code: str,
        message: str,
        *,
        severity: Severity = Severity.ERROR,
        metadata: Optional[dict[str, Any]] = None,
    ):
        super().__init__(
            code=code,
            message=message,
            domain=FaultDomain.BUILD,
            severity=severity,
            metadata=metadata,
        )


class CannotCreateOutputFault(BuildFault):
    """The output container could not be opened for writing."""

    def __init__(self, location: str, reason: str = "", **kwargs):
        super().__init__(
            code="OUTPUT_UNAVAILABLE",
            message=f"Cannot create artifact output '{location}': {reason}",
            severity=Severity.FATAL,
            metadata={"location": location, "reason": reason, **kwargs.get("metadata", {})},
        )


class NotADirectoryFault(BuildFault):
    """A root or directory source does not resolve to a directory."""

    def __init__(self, path: str, **kwargs):
        super().__init__(
            code="SOURCE_NOT_DIRECTORY",
            message=f"Source path '{path}' is not a directory",
            metadata={"path": path, **kwargs.get("metadata", {})},
        )


class NotAFileFault(BuildFault):
    """A single-file source is a directory or does not exist."""

    def __init__(self, path: str, **kwargs):
        super().__init__(
            code="SOURCE_NOT_FILE",
            message=f"Source path '{path}' is not a regular file",
            metadata={"path": path, **kwargs.get("metadata", {})},
        )


class DuplicateRootFault(BuildFault):
    """A root name was already written into the container."""

    def __init__(self, root_name: str, **kwargs):
        super().__init__(
            code="ROOT_DUPLICATE",
            message=f"Root '{root_name}' has already been written to this artifact",
            metadata={"root": root_name, **kwargs.get("metadata", {})},
        )


class NestedArchiveFault(BuildFault):
    """A nested or raw archive could not be opened or read."""

    def __init__(self, archive: str, reason: str = "", **kwargs):
        super().__init__(
            code="NESTED_ARCHIVE_INVALID",
            message=f"Cannot merge archive '{archive}': {reason}",
            metadata={"archive": archive, "reason": reason, **kwargs.get("metadata", {})},
        )


class BuilderClosedFault(BuildFault):
    """An operation was attempted on a finished or aborted builder."""

    def __init__(self, operation: str, location: str = "", **kwargs):
        super().__init__(
            code="BUILDER_CLOSED",
            message=f"Cannot {operation}: builder for '{location}' is already closed",
            metadata={"operation": operation, "location": location, **kwargs.get("metadata", {})},
        )


# ============================================================================
# IO Faults
# ============================================================================

class SourceReadFault(Fault):
    """A source file could not be read."""

    def __init__(self, path: str, reason: str = "", **kwargs):
        super().__init__(
            code="SOURCE_UNREADABLE",
            message=f"Cannot read '{path}': {reason}",
            domain=FaultDomain.IO,
            metadata={"path": path, "reason": reason, **kwargs.get("metadata", {})},
        )


class ReaderClosedFault(Fault):
    """A query was made on a reader whose container is already closed."""

    def __init__(self, operation: str, location: str = "", **kwargs):
        super().__init__(
            code="READER_CLOSED",
            message=f"Cannot {operation}: reader for '{location}' is already closed",
            domain=FaultDomain.IO,
            metadata={"operation": operation, "location": location, **kwargs.get("metadata", {})},
        )


# ============================================================================
# FORMAT Faults
# ============================================================================

class FormatFault(Fault):
    """Base class for unparsable records and unknown schema versions."""

    def __init__(
        self,
        code: str,
        message: str,
        *,
        severity: Severity = Severity.FATAL,
        metadata: Optional[dict[str, Any]] = None,
    ):
        super().__init__(
            code=code,
            message=message,
            domain=FaultDomain.FORMAT,
            severity=severity,
            metadata=metadata,
        )


class UnsupportedAlgorithmFault(FormatFault):
    """The named digest algorithm is not available."""

    def __init__(self, algorithm: str, **kwargs):
        super().__init__(
            code="DIGEST_ALGORITHM_UNSUPPORTED",
            message=f"Digest algorithm '{algorithm}' is not supported",
            metadata={"algorithm": algorithm, **kwargs.get("metadata", {})},
        )


class MalformedDigestLineFault(FormatFault):
    """A digest index line (or a path destined for one) is malformed."""

    def __init__(self, line_number: int, line: str, reason: str, **kwargs):
        super().__init__(
            code="DIGEST_LINE_MALFORMED",
            message=f"Malformed digest line {line_number} ({line!r}): {reason}",
            metadata={
                "line_number": line_number,
                "line": line,
                "reason": reason,
                **kwargs.get("metadata", {}),
            },
        )


class UnsupportedPackagingKindFault(FormatFault):
    """The descriptor names a packaging kind or version this reader does not know."""

    def __init__(self, kind: Any, version: Optional[int] = None, **kwargs):
        detail = f" (schema version {version})" if version is not None else ""
        super().__init__(
            code="PACKAGING_KIND_UNSUPPORTED",
            message=f"Unsupported packaging kind {kind!r}{detail}",
            metadata={"kind": kind, "version": version, **kwargs.get("metadata", {})},
        )


class CorruptArtifactFault(FormatFault):
    """The container is unreadable or lacks a parsable descriptor."""

    def __init__(self, location: str, reason: str = "", **kwargs):
        super().__init__(
            code="ARTIFACT_CORRUPT",
            message=f"Corrupt artifact '{location}': {reason}",
            metadata={"location": location, "reason": reason, **kwargs.get("metadata", {})},
        )


class _UnknownVersionFault(FormatFault):
    """Shared shape for version-gate failures."""

    def __init__(self, code: str, record: str, version: Any, known: Sequence[int], **kwargs):
        low, high = min(known), max(known)
        super().__init__(
            code=code,
            message=(
                f"Invalid {record}: version {version!r} is not in the valid range "
                f"of known {record} versions, [{low}, {high}]"
            ),
            metadata={
                "version": version,
                "known_versions": list(known),
                **kwargs.get("metadata", {}),
            },
        )


class UnknownManifestVersionFault(_UnknownVersionFault):
    """Manifest ``artifactVersion`` outside the registered range."""

    def __init__(self, version: Any, known: Sequence[int], **kwargs):
        super().__init__("MANIFEST_VERSION_UNKNOWN", "artifact manifest", version, known, **kwargs)


class UnknownConfigurationVersionFault(_UnknownVersionFault):
    """Configuration ``configurationVersion`` outside the registered range."""

    def __init__(self, version: Any, known: Sequence[int], **kwargs):
        super().__init__(
            "CONFIGURATION_VERSION_UNKNOWN", "application configuration", version, known, **kwargs
        )


class ManifestFormatFault(FormatFault):
    """A manifest field is missing or has the wrong shape."""

    def __init__(self, field: str, reason: str, **kwargs):
        super().__init__(
            code="MANIFEST_INVALID",
            message=f"Problem accessing artifact manifest field '{field}': {reason}",
            metadata={"field": field, "reason": reason, **kwargs.get("metadata", {})},
        )


class ConfigurationFormatFault(FormatFault):
    """An application configuration field is missing or has the wrong shape."""

    def __init__(self, field: str, reason: str, **kwargs):
        super().__init__(
            code="CONFIGURATION_INVALID",
            message=f"Problem accessing application configuration field '{field}': {reason}",
            metadata={"field": field, "reason": reason, **kwargs.get("metadata", {})},
        )


# ============================================================================
# Lookup Faults
# ============================================================================

class ArtifactLookupFault(Fault):
    """Base class for reserved entries absent from a container."""

    def __init__(
        self,
        code: str,
        message: str,
        *,
        metadata: Optional[dict[str, Any]] = None,
    ):
        super().__init__(
            code=code,
            message=message,
            domain=FaultDomain.FORMAT,
            severity=Severity.ERROR,
            metadata=metadata,
        )


class ManifestNotFoundFault(ArtifactLookupFault):
    def __init__(self, location: str, entry: str, **kwargs):
        super().__init__(
            code="MANIFEST_NOT_FOUND",
            message=f"Could not locate {entry} in artifact '{location}'",
            metadata={"location": location, "entry": entry, **kwargs.get("metadata", {})},
        )


class ConfigurationNotFoundFault(ArtifactLookupFault):
    def __init__(self, location: str, entry: str, **kwargs):
        super().__init__(
            code="CONFIGURATION_NOT_FOUND",
            message=f"Could not locate {entry} in application artifact '{location}'",
            metadata={"location": location, "entry": entry, **kwargs.get("metadata", {})},
        )


class DigestNotFoundFault(ArtifactLookupFault):
    def __init__(self, root_name: str, entry: str, **kwargs):
        super().__init__(
            code="DIGEST_NOT_FOUND",
            message=f"Could not locate digest, {entry}, for root '{root_name}'",
            metadata={"root": root_name, "entry": entry, **kwargs.get("metadata", {})},
        )


class EntryNotFoundFault(ArtifactLookupFault):
    def __init__(self, location: str, entry: str, **kwargs):
        super().__init__(
            code="ENTRY_NOT_FOUND",
            message=f"Could not locate {entry} in artifact '{location}'",
            metadata={"location": location, "entry": entry, **kwargs.get("metadata", {})},
        )


# ============================================================================
# INTEGRITY Faults
# ============================================================================

class DigestMissingFault(Fault):
    """A cataloged root file has no entry in the root's digest index."""

    def __init__(self, root_name: str, path: str, **kwargs):
        super().__init__(
            code="DIGEST_MISSING",
            message=f"File '{path}' in root '{root_name}' has no recorded digest",
            domain=FaultDomain.INTEGRITY,
            severity=Severity.ERROR,
            metadata={"root": root_name, "path": path, **kwargs.get("metadata", {})},
        )


# ============================================================================
# CONFIG Faults
# ============================================================================

class SettingsInvalidFault(Fault):
    """A settings value could not be coerced or names an unknown field."""

    def __init__(self, key: str, reason: str, **kwargs):
        super().__init__(
            code="SETTINGS_INVALID",
            message=f"Setting '{key}' is invalid: {reason}",
            domain=FaultDomain.CONFIG,
            metadata={"key": key, "reason": reason, **kwargs.get("metadata", {})},
        )
