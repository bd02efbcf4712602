"""
Artifact Builder — assembles one artifact container from many sources.

Sources are fresh root trees, nested artifacts, raw archives, loose files
and loose directories. Every entry goes through one owned "written paths"
set: the first source to claim an output path wins and later claims are
skipped. The descriptor, manifest, configuration and per-root digest
paths are written only by the builder itself.

Usage::

    manifest = ArtifactManifestV1.create(ArtifactType.LIBRARY, [RootManifest("avail")])
    with ArtifactBuilder("dist/avail.jar", "Avail", "1.0.0", manifest) as builder:
        builder.add_root("avail", "/src/avail")
        builder.add_nested_archive("deps/other.jar")
"""

from __future__ import annotations

import json
import logging
import os
import shutil
import tempfile
import warnings
import zipfile
from pathlib import Path
from typing import Dict, FrozenSet, List, Optional, Set, Tuple, Union

from .configuration import ApplicationConfiguration, ApplicationConfigurationV1
from .config import ArtifactSettings
from .core import (
    APPLICATION_CONFIGURATION_FILE_NAME,
    APPLICATION_CONFIGURATION_PATH,
    ARTIFACT_DESCRIPTOR_FILE_NAME,
    ARTIFACT_DESCRIPTOR_PATH,
    ARTIFACT_MANIFEST_PATH,
    ARTIFACT_ROOT_DIRECTORY,
    IMPLEMENTATION_MANIFEST_FILE,
    META_INF_DIRECTORY,
    NESTED_MANIFEST_FILE_NAME,
    ArtifactType,
    RootArtifactTarget,
    format_now,
    root_digests_directory,
    root_digests_path,
    root_directory,
    root_sources_prefix,
)
from .descriptor import PackageType
from .digest import compute_digests, resolve_algorithm, serialize_digest_index
from .faults import (
    BuilderClosedFault,
    CannotCreateOutputFault,
    DuplicateRootFault,
    NestedArchiveFault,
    NotADirectoryFault,
    NotAFileFault,
    SourceReadFault,
)
from .manifest import ArtifactManifest, serialize_manifest

logger = logging.getLogger("avail_artifact.builder")

PathLike = Union[str, "os.PathLike[str]"]

_COMPRESSION = {
    "stored": zipfile.ZIP_STORED,
    "deflated": zipfile.ZIP_DEFLATED,
    "bzip2": zipfile.ZIP_BZIP2,
    "lzma": zipfile.ZIP_LZMA,
}


def implementation_manifest(
    title: str,
    version: str,
    *,
    build_time: str,
    main_class: str = "",
    extra: Optional[Dict[str, str]] = None,
) -> str:
    """Render the ``META-INF/MANIFEST.MF`` main section."""
    attributes = [
        ("Manifest-Version", "1.0"),
        ("Build-Time", build_time),
        ("Implementation-Title", title),
        ("Implementation-Version", version),
    ]
    if main_class:
        attributes.append(("Main-Class", main_class))
    attributes.extend((extra or {}).items())
    return "".join(f"{key}: {value}\r\n" for key, value in attributes) + "\r\n"


def _check_entry_name(source: Path, name: str):
    """Reject names that cannot be stored as UTF-8 entry names."""
    try:
        name.encode("utf-8")
    except UnicodeEncodeError as exc:
        printable = str(source).encode("utf-8", "backslashreplace").decode("utf-8")
        raise SourceReadFault(
            printable, "file name is not valid UTF-8", metadata={"entry": repr(name)}
        ) from exc


def _walk_tree(source: Path) -> List[Tuple[str, Optional[Path]]]:
    """
    List a source tree in write order as ``(relative name, file)`` pairs.

    Directory names end in ``/`` and carry no file. Non-regular files are
    skipped.
    """
    entries: List[Tuple[str, Optional[Path]]] = []
    for dirpath, dirnames, filenames in os.walk(source):
        dirnames.sort()
        base = Path(dirpath)
        for name in dirnames:
            relative = (base / name).relative_to(source).as_posix()
            _check_entry_name(base / name, relative)
            entries.append((f"{relative}/", None))
        for name in sorted(filenames):
            full = base / name
            if not full.is_file():
                continue
            relative = full.relative_to(source).as_posix()
            _check_entry_name(full, relative)
            entries.append((relative, full))
    return entries


class ArtifactBuilder:
    """
    Builds a single-file artifact container.

    The output is written to a temporary file beside the target and moved
    into place by :meth:`finish` (unless ``atomic_output`` is disabled),
    so a failed build never leaves a half-written artifact at the target.
    Not safe for concurrent use.
    """

    def __init__(
        self,
        output_location: PathLike,
        implementation_title: str,
        implementation_version: str,
        manifest: ArtifactManifest,
        *,
        main_entry_point: str = "",
        extra_metadata: Optional[Dict[str, str]] = None,
        configuration: Optional[ApplicationConfiguration] = None,
        settings: Optional[ArtifactSettings] = None,
    ):
        self.output_location = Path(output_location)
        self.implementation_title = implementation_title
        self.implementation_version = implementation_version
        self.manifest = manifest
        self.configuration = configuration
        self.settings = settings or ArtifactSettings()

        self._written: Set[str] = set()
        self._reserved: FrozenSet[str] = frozenset(
            {ARTIFACT_MANIFEST_PATH, APPLICATION_CONFIGURATION_PATH}
        )
        self._closed = False
        self._manifest_current = False
        self._temp_path: Optional[Path] = None

        if configuration is not None and manifest.artifact_type is not ArtifactType.APPLICATION:
            logger.warning(
                "Ignoring application configuration supplied for %s artifact %s",
                manifest.artifact_type.value,
                self.output_location,
            )

        self._zip = self._open_output()
        try:
            self._write_structure(main_entry_point, extra_metadata)
        except OSError as exc:
            self.abort()
            raise CannotCreateOutputFault(str(self.output_location), str(exc)) from exc
        logger.info("Opened artifact builder for %s", self.output_location)

    @classmethod
    def open(
        cls,
        output_location: PathLike,
        implementation_title: str,
        implementation_version: str,
        manifest: ArtifactManifest,
        **kwargs,
    ) -> "ArtifactBuilder":
        return cls(output_location, implementation_title, implementation_version, manifest, **kwargs)

    # ── Output lifecycle ────────────────────────────────────────────────

    def _open_output(self) -> zipfile.ZipFile:
        target = self.output_location
        if target.is_dir():
            raise CannotCreateOutputFault(str(target), "target is a directory")
        compression = _COMPRESSION[self.settings.compression]
        try:
            if self.settings.atomic_output:
                fd, temp_name = tempfile.mkstemp(
                    prefix=f".{target.name}.", suffix=".tmp", dir=target.parent
                )
                os.close(fd)
                self._temp_path = Path(temp_name)
                path = self._temp_path
            else:
                path = target
            return zipfile.ZipFile(
                path,
                "w",
                compression=compression,
                compresslevel=self.settings.compress_level,
                strict_timestamps=False,
            )
        except OSError as exc:
            if self._temp_path is not None:
                self._temp_path.unlink(missing_ok=True)
            raise CannotCreateOutputFault(str(target), exc.strerror or str(exc)) from exc

    def _write_structure(self, main_entry_point: str, extra_metadata: Optional[Dict[str, str]]):
        self._write_directory(META_INF_DIRECTORY)
        self._write_reserved(
            IMPLEMENTATION_MANIFEST_FILE,
            implementation_manifest(
                self.implementation_title,
                self.implementation_version,
                build_time=format_now(),
                main_class=main_entry_point,
                extra=extra_metadata,
            ).encode("utf-8"),
        )
        self._write_directory(f"{ARTIFACT_ROOT_DIRECTORY}/")
        self._write_reserved(ARTIFACT_DESCRIPTOR_PATH, PackageType.SINGLE_FILE.descriptor.to_bytes())

    def _check_open(self, operation: str):
        if self._closed:
            raise BuilderClosedFault(operation, str(self.output_location))

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def written_paths(self) -> FrozenSet[str]:
        """Snapshot of every path written so far."""
        return frozenset(self._written)

    # ── Entry writing ───────────────────────────────────────────────────

    def _claim(self, path: str) -> bool:
        """Reserve *path* for a merged entry; False if taken or reserved."""
        if path in self._reserved:
            logger.debug("Refusing to overwrite reserved path %s", path)
            return False
        if path in self._written:
            logger.debug("Skipping %s: already written", path)
            return False
        self._written.add(path)
        return True

    def _write_reserved(self, path: str, data: bytes):
        self._zip.writestr(path, data)
        self._written.add(path)

    def _write_directory(self, path: str) -> bool:
        if not self._claim(path):
            return False
        self._zip.writestr(path, b"")
        return True

    def _write_file(self, path: str, source: Path) -> bool:
        if not self._claim(path):
            return False
        try:
            self._zip.write(source, path)
        except OSError as exc:
            raise SourceReadFault(str(source), exc.strerror or str(exc)) from exc
        return True

    def _write_tree(
        self, prefix: str, entries: List[Tuple[str, Optional[Path]]]
    ) -> Tuple[int, int]:
        """Write walked entries under *prefix*; returns (written, skipped)."""
        written = skipped = 0
        for relative, full in entries:
            if full is None:
                ok = self._write_directory(f"{prefix}{relative}")
            else:
                ok = self._write_file(f"{prefix}{relative}", full)
            if ok:
                written += 1
            else:
                skipped += 1
        return written, skipped

    def _copy_entry(self, source: zipfile.ZipFile, info: zipfile.ZipInfo, target: str):
        """Stream one entry of *source* into the output under *target*."""
        new_info = zipfile.ZipInfo(target, date_time=info.date_time)
        new_info.external_attr = info.external_attr
        new_info.compress_type = _COMPRESSION[self.settings.compression]
        if info.is_dir():
            self._zip.writestr(new_info, b"")
            return
        with source.open(info) as src, self._zip.open(
            new_info, "w", force_zip64=info.file_size >= zipfile.ZIP64_LIMIT
        ) as dest:
            shutil.copyfileobj(src, dest, self.settings.chunk_size)

    def _write_manifest(self):
        data = json.dumps(serialize_manifest(self.manifest), indent=2).encode("utf-8")
        if ARTIFACT_MANIFEST_PATH in self._written:
            # Checkpointed container: a later copy supersedes the earlier one.
            with warnings.catch_warnings():
                warnings.simplefilter("ignore", UserWarning)
                self._zip.writestr(ARTIFACT_MANIFEST_PATH, data)
        else:
            self._write_reserved(ARTIFACT_MANIFEST_PATH, data)
        self._manifest_current = True

    # ── Builder API ─────────────────────────────────────────────────────

    def add_root(
        self,
        root_name: str,
        source_path: PathLike,
        digest_algorithm: Optional[str] = None,
    ) -> "ArtifactBuilder":
        """
        Add a root tree under ``avail-artifact-contents/<root>/Avail-Sources/``
        and record its Digest Index.

        A *source_path* that is not a directory but ends in an archive
        suffix is merged with :meth:`add_nested_archive` instead. Every
        name is validated and every file digested before the first entry
        of the root is written.

        Raises:
            NotADirectoryFault: *source_path* is not a directory.
            DuplicateRootFault: the root's digest file already exists.
            UnsupportedAlgorithmFault: unknown digest algorithm.
            SourceReadFault: a source file could not be read.
            MalformedDigestLineFault: a file path cannot be carried by the
                Digest Index.
        """
        self._check_open("add root")
        source = Path(source_path)
        if not source.is_dir():
            if source.suffix.lower() in self.settings.archive_suffixes:
                return self.add_nested_archive(source)
            raise NotADirectoryFault(str(source))
        if root_digests_path(root_name) in self._written:
            raise DuplicateRootFault(root_name)

        algorithm = digest_algorithm
        if algorithm is None:
            record = self.manifest.roots.get(root_name)
            algorithm = record.digest_algorithm if record else self.settings.default_digest_algorithm
        resolve_algorithm(algorithm)

        # Names and digests are settled before the first entry is written.
        entries = _walk_tree(source)
        digests = compute_digests(source, algorithm, chunk_size=self.settings.chunk_size)

        self._write_directory(root_directory(root_name))
        prefix = root_sources_prefix(root_name)
        self._write_directory(prefix)
        written, skipped = self._write_tree(prefix, entries)

        self._write_directory(root_digests_directory(root_name))
        self._write_reserved(
            root_digests_path(root_name), serialize_digest_index(digests).encode("utf-8")
        )
        logger.info(
            "Added root %r to %s: %d entries (%d skipped), %d digests via %s",
            root_name, self.output_location, written, skipped, len(digests), algorithm,
        )

        self._manifest_current = False
        if self.settings.manifest_checkpoints:
            self._write_manifest()
        return self

    def add_root_target(self, target: RootArtifactTarget) -> "ArtifactBuilder":
        """Register *target*'s manifest record (if absent) and add its tree."""
        record = target.root_manifest
        if record.name not in self.manifest.roots:
            self.manifest = self.manifest.with_root(record)
            self._manifest_current = False
        return self.add_root(record.name, target.root_path, record.digest_algorithm)

    def add_nested_archive(
        self, archive: Union[PathLike, zipfile.ZipFile]
    ) -> "ArtifactBuilder":
        """
        Merge another artifact, re-rooting its metadata entries.

        The nested archive's structural directories are dropped; its
        implementation manifest, descriptor, artifact manifest and
        configuration are namespaced under its simple name; every other
        entry is copied only if its path is not yet written.
        """
        self._check_open("add nested archive")
        with _ArchiveSource(archive) as (source, simple_name):
            nested_root = f"{ARTIFACT_ROOT_DIRECTORY}/{simple_name}/"
            remaps = {
                IMPLEMENTATION_MANIFEST_FILE: f"{META_INF_DIRECTORY}{simple_name}/MANIFEST.MF",
                ARTIFACT_DESCRIPTOR_PATH: nested_root + ARTIFACT_DESCRIPTOR_FILE_NAME,
                ARTIFACT_MANIFEST_PATH: nested_root + NESTED_MANIFEST_FILE_NAME,
                APPLICATION_CONFIGURATION_PATH: nested_root + APPLICATION_CONFIGURATION_FILE_NAME,
            }
            dropped = (META_INF_DIRECTORY, f"{ARTIFACT_ROOT_DIRECTORY}/")
            copied = skipped = 0
            for info in source.infolist():
                name = info.filename
                if name in dropped:
                    continue
                target = remaps.get(name, name)
                if self._claim(target):
                    self._copy_archive_entry(source, info, target, simple_name)
                    copied += 1
                else:
                    skipped += 1
        logger.info(
            "Merged nested artifact %r into %s: %d copied, %d skipped",
            simple_name, self.output_location, copied, skipped,
        )
        return self

    def add_raw_archive(
        self, archive: Union[PathLike, zipfile.ZipFile]
    ) -> "ArtifactBuilder":
        """Copy every entry of an arbitrary zip whose path is not yet written."""
        self._check_open("add raw archive")
        with _ArchiveSource(archive) as (source, simple_name):
            copied = skipped = 0
            for info in source.infolist():
                if self._claim(info.filename):
                    self._copy_archive_entry(source, info, info.filename, simple_name)
                    copied += 1
                else:
                    skipped += 1
        logger.info(
            "Merged raw archive %r into %s: %d copied, %d skipped",
            simple_name, self.output_location, copied, skipped,
        )
        return self

    def _copy_archive_entry(
        self, source: zipfile.ZipFile, info: zipfile.ZipInfo, target: str, simple_name: str
    ):
        try:
            self._copy_entry(source, info, target)
        except (zipfile.BadZipFile, zipfile.LargeZipFile) as exc:
            raise NestedArchiveFault(simple_name, f"entry {info.filename!r}: {exc}") from exc

    def add_file(self, file: PathLike, target_directory: str = "") -> "ArtifactBuilder":
        """Add one file as ``<target_directory>/<file name>``."""
        self._check_open("add file")
        source = Path(file)
        if not source.is_file():
            raise NotAFileFault(str(source))
        directory = target_directory.strip("/")
        path = f"{directory}/{source.name}" if directory else source.name
        _check_entry_name(source, path)
        self._write_file(path, source)
        return self

    def add_directory(
        self, directory: PathLike, target_directory: Optional[str] = None
    ) -> "ArtifactBuilder":
        """
        Add a loose directory tree, preserving its structure.

        Entries land under *target_directory* (default: the container root).
        """
        self._check_open("add directory")
        source = Path(directory)
        if not source.is_dir():
            raise NotADirectoryFault(str(source))
        entries = _walk_tree(source)
        prefix = f"{target_directory.strip('/')}/" if target_directory else ""
        if prefix:
            self._write_directory(prefix)
        written, skipped = self._write_tree(prefix, entries)
        logger.info(
            "Added directory %s to %s: %d entries (%d skipped)",
            source, self.output_location, written, skipped,
        )
        return self

    # ── Build ───────────────────────────────────────────────────────────

    def finish(self) -> Path:
        """
        Write the manifest (and configuration for applications), close the
        container and move it to its target path.

        Returns:
            The finished artifact's path.
        """
        self._check_open("finish")
        if not self._manifest_current:
            self._write_manifest()
        if self.manifest.artifact_type is ArtifactType.APPLICATION:
            configuration = self.configuration or ApplicationConfigurationV1.including(
                self.manifest.roots
            )
            self._write_reserved(
                APPLICATION_CONFIGURATION_PATH, configuration.to_json().encode("utf-8")
            )

        self._closed = True
        try:
            self._zip.close()
            if self._temp_path is not None:
                os.replace(self._temp_path, self.output_location)
                self._temp_path = None
        except OSError as exc:
            self._discard()
            raise CannotCreateOutputFault(str(self.output_location), str(exc)) from exc

        logger.info(
            "Finished artifact %s (%d entries, %d bytes)",
            self.output_location, len(self._written), self.output_location.stat().st_size,
        )
        return self.output_location

    def abort(self):
        """Discard a partial build. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        try:
            self._zip.close()
        finally:
            self._discard()
        logger.info("Aborted artifact build for %s", self.output_location)

    def _discard(self):
        if self._temp_path is not None:
            self._temp_path.unlink(missing_ok=True)
            self._temp_path = None
        elif not self.settings.atomic_output:
            self.output_location.unlink(missing_ok=True)

    def __enter__(self) -> "ArtifactBuilder":
        return self

    def __exit__(self, exc_type, exc, tb):
        if exc_type is None:
            if not self._closed:
                self.finish()
        else:
            self.abort()
        return False

    def __repr__(self) -> str:
        state = "closed" if self._closed else "open"
        return f"<ArtifactBuilder {self.output_location} {state} entries={len(self._written)}>"


class _ArchiveSource:
    """Context manager yielding ``(ZipFile, simple_name)`` for a merge source."""

    def __init__(self, archive: Union[PathLike, zipfile.ZipFile]):
        self._archive = archive
        self._owned: Optional[zipfile.ZipFile] = None

    def __enter__(self) -> Tuple[zipfile.ZipFile, str]:
        if isinstance(self._archive, zipfile.ZipFile):
            name = self._archive.filename or "archive"
            return self._archive, Path(name).stem
        path = Path(self._archive)
        try:
            self._owned = zipfile.ZipFile(path)
        except (OSError, zipfile.BadZipFile) as exc:
            raise NestedArchiveFault(str(path), str(exc)) from exc
        return self._owned, path.stem

    def __exit__(self, exc_type, exc, tb):
        if self._owned is not None:
            self._owned.close()
        return False
