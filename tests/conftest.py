"""
Shared test fixtures and helpers for the avail-artifact test suite.
"""

import hashlib
import zipfile
from pathlib import Path
from typing import Dict

import pytest

from avail_artifact import (
    ArtifactBuilder,
    ArtifactManifestV1,
    ArtifactSettings,
    ArtifactType,
    RootManifest,
)


# ============================================================================
# Helpers
# ============================================================================


def write_tree(base: Path, files: Dict[str, bytes]) -> Path:
    """Materialize ``{relative path: content}`` under *base*."""
    base.mkdir(parents=True, exist_ok=True)
    for relative, content in files.items():
        target = base / relative
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(content)
    return base


def make_zip(path: Path, entries: Dict[str, bytes]) -> Path:
    """Write a plain zip; names ending in ``/`` become directory entries."""
    with zipfile.ZipFile(path, "w") as zf:
        for name, data in entries.items():
            zf.writestr(name, data)
    return path


def sha256(data: bytes) -> bytes:
    return hashlib.sha256(data).digest()


def library_manifest(*roots: RootManifest) -> ArtifactManifestV1:
    return ArtifactManifestV1.create(ArtifactType.LIBRARY, list(roots), description="test")


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def avail_tree(tmp_path) -> Path:
    """The two-module root used by the end-to-end scenario."""
    return write_tree(
        tmp_path / "src" / "avail",
        {"a.avail": b"Module \"a\"\n", "b.avail": b"Module \"b\"\n"},
    )


@pytest.fixture
def package_tree(tmp_path) -> Path:
    """A root with a package, its representative, a module and a resource."""
    return write_tree(
        tmp_path / "src" / "lib",
        {
            "foo/foo.avail": b"Module \"foo\"\n",
            "foo/bar.avail": b"Module \"bar\"\n",
            "Pkg.avail/Pkg.avail": b"Module \"Pkg\"\n",
            "Pkg.avail/Inner.avail": b"Module \"Inner\"\n",
            "docs/readme.txt": b"hello\n",
        },
    )


@pytest.fixture
def settings() -> ArtifactSettings:
    return ArtifactSettings()


@pytest.fixture
def built_artifact(tmp_path, avail_tree) -> Path:
    """A finished LIBRARY artifact holding the ``avail`` root."""
    output = tmp_path / "dist" / "avail.jar"
    output.parent.mkdir(parents=True)
    manifest = library_manifest(RootManifest("avail", [".avail"], ["a"]))
    with ArtifactBuilder(output, "Avail", "1.0.0", manifest) as builder:
        builder.add_root("avail", avail_tree)
    return output
