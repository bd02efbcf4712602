"""
Artifact faults - typed failure signals for the artifact core.

Every failure the builder, reader and record decoders raise is a
:class:`Fault` carrying a stable code, a domain, a severity and the
context (paths, versions, root names) needed for a diagnostic.
"""

from .core import (
    Fault,
    FaultDomain,
    Severity,
)

from .domains import (
    ArtifactLookupFault,
    BuildFault,
    BuilderClosedFault,
    CannotCreateOutputFault,
    ConfigurationFormatFault,
    ConfigurationNotFoundFault,
    CorruptArtifactFault,
    DigestMissingFault,
    DigestNotFoundFault,
    DuplicateRootFault,
    EntryNotFoundFault,
    FormatFault,
    MalformedDigestLineFault,
    ManifestFormatFault,
    ManifestNotFoundFault,
    NestedArchiveFault,
    NotADirectoryFault,
    NotAFileFault,
    ReaderClosedFault,
    SettingsInvalidFault,
    SourceReadFault,
    UnknownConfigurationVersionFault,
    UnknownManifestVersionFault,
    UnsupportedAlgorithmFault,
    UnsupportedPackagingKindFault,
)

__all__ = [
    # Core types
    "Fault",
    "FaultDomain",
    "Severity",

    # Build
    "BuildFault",
    "BuilderClosedFault",
    "CannotCreateOutputFault",
    "DuplicateRootFault",
    "NestedArchiveFault",
    "NotADirectoryFault",
    "NotAFileFault",
    "SourceReadFault",
    "ReaderClosedFault",

    # Format
    "FormatFault",
    "ConfigurationFormatFault",
    "CorruptArtifactFault",
    "MalformedDigestLineFault",
    "ManifestFormatFault",
    "UnknownConfigurationVersionFault",
    "UnknownManifestVersionFault",
    "UnsupportedAlgorithmFault",
    "UnsupportedPackagingKindFault",

    # Lookup
    "ArtifactLookupFault",
    "ConfigurationNotFoundFault",
    "DigestNotFoundFault",
    "EntryNotFoundFault",
    "ManifestNotFoundFault",

    # Integrity / config
    "DigestMissingFault",
    "SettingsInvalidFault",
]
