"""
Digest Index — per-root mapping of relative file path to content digest.

Serialized form is one ``path:hexDigest`` line per regular file, lines
sorted by POSIX relative path so the same tree always yields the same
bytes regardless of platform walk order.
"""

from __future__ import annotations

import hashlib
import logging
import os
from pathlib import Path
from typing import Callable, Dict, Iterator, Mapping, Tuple, Union

from .faults import MalformedDigestLineFault, SourceReadFault, UnsupportedAlgorithmFault

logger = logging.getLogger("avail_artifact.digest")

PathLike = Union[str, "os.PathLike[str]"]

CHUNK_SIZE = 1 << 16

# Standard algorithm names (as written in manifests) → hashlib names.
_STANDARD_NAMES: Dict[str, str] = {
    "MD5": "md5",
    "SHA-1": "sha1",
    "SHA-224": "sha224",
    "SHA-256": "sha256",
    "SHA-384": "sha384",
    "SHA-512": "sha512",
    "SHA-512/224": "sha512_224",
    "SHA-512/256": "sha512_256",
    "SHA3-224": "sha3_224",
    "SHA3-256": "sha3_256",
    "SHA3-384": "sha3_384",
    "SHA3-512": "sha3_512",
}


def resolve_algorithm(algorithm: str) -> Callable[[], "hashlib._Hash"]:
    """
    Return a zero-argument factory for *algorithm*'s hash objects.

    Accepts standard names (``SHA-256``) as well as hashlib names
    (``sha256``, ``blake2b``). Variable-length algorithms (SHAKE) are
    rejected because their digest size is not self-describing.

    Raises:
        UnsupportedAlgorithmFault: the algorithm is not available.
    """
    name = _STANDARD_NAMES.get(algorithm.upper(), algorithm.lower())
    if name.startswith("shake"):
        raise UnsupportedAlgorithmFault(algorithm)
    try:
        hashlib.new(name)
    except (ValueError, TypeError) as exc:
        raise UnsupportedAlgorithmFault(algorithm, metadata={"reason": str(exc)}) from exc
    return lambda: hashlib.new(name)


def digest_file(path: PathLike, algorithm: str, *, chunk_size: int = CHUNK_SIZE) -> bytes:
    """Compute *algorithm*'s digest over the raw bytes of one file."""
    factory = resolve_algorithm(algorithm)
    h = factory()
    try:
        with open(path, "rb") as f:
            for chunk in iter(lambda: f.read(chunk_size), b""):
                h.update(chunk)
    except OSError as exc:
        raise SourceReadFault(str(path), exc.strerror or str(exc)) from exc
    return h.digest()


def digest_bytes(data: bytes, algorithm: str) -> bytes:
    h = resolve_algorithm(algorithm)()
    h.update(data)
    return h.digest()


def check_index_path(relative_path: str) -> None:
    """Reject paths the line format cannot carry."""
    if ":" in relative_path or "\n" in relative_path or "\r" in relative_path:
        raise MalformedDigestLineFault(
            0, relative_path, "path contains a ':' separator or line break"
        )
    try:
        relative_path.encode("utf-8")
    except UnicodeEncodeError as exc:
        printable = relative_path.encode("utf-8", "backslashreplace").decode("utf-8")
        raise MalformedDigestLineFault(0, printable, "path is not valid UTF-8") from exc


def iter_root_files(root_path: PathLike) -> Iterator[Tuple[str, Path]]:
    """
    Yield ``(relative_posix_path, absolute_path)`` for every regular file
    under *root_path*, sorted by relative path.
    """
    root = Path(root_path)
    found = []
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames.sort()
        for filename in filenames:
            full = Path(dirpath) / filename
            if not full.is_file():
                logger.debug("Skipping non-regular file: %s", full)
                continue
            found.append((full.relative_to(root).as_posix(), full))
    found.sort(key=lambda item: item[0])
    return iter(found)


def compute_digests(
    root_path: PathLike,
    algorithm: str,
    *,
    chunk_size: int = CHUNK_SIZE,
) -> Dict[str, bytes]:
    """Digest every regular file under *root_path*; keys are relative paths."""
    resolve_algorithm(algorithm)
    digests: Dict[str, bytes] = {}
    for relative, full in iter_root_files(root_path):
        check_index_path(relative)
        digests[relative] = digest_file(full, algorithm, chunk_size=chunk_size)
    return digests


def serialize_digest_index(digests: Mapping[str, bytes]) -> str:
    """Render a digest mapping as sorted ``path:hex`` lines."""
    lines = []
    for path in sorted(digests):
        check_index_path(path)
        lines.append(f"{path}:{digests[path].hex()}\n")
    return "".join(lines)


def compute_digest_index(
    root_path: PathLike,
    algorithm: str,
    *,
    chunk_size: int = CHUNK_SIZE,
) -> str:
    """
    Compute the serialized Digest Index of a whole root tree.

    Raises:
        UnsupportedAlgorithmFault: *algorithm* is not available.
        SourceReadFault: a file could not be read.
        MalformedDigestLineFault: a relative path contains ``:`` or a line
            break, or is not valid UTF-8.
    """
    return serialize_digest_index(compute_digests(root_path, algorithm, chunk_size=chunk_size))


def parse_digest_index(serialized: str) -> Dict[str, bytes]:
    """
    Parse a serialized Digest Index back into ``{path: digest_bytes}``.

    Lines end at ``\\n`` only (a trailing ``\\r`` is dropped), so paths may
    hold any other control or separator character. Blank lines are ignored.
    Every other line must contain exactly one ``:`` and a non-empty,
    even-length hexadecimal digest.
    """
    digests: Dict[str, bytes] = {}
    for number, raw in enumerate(serialized.split("\n"), start=1):
        line = raw[:-1] if raw.endswith("\r") else raw
        if not line.strip():
            continue
        if line.count(":") != 1:
            raise MalformedDigestLineFault(number, line, "expected exactly one ':' separator")
        path, hex_digest = line.split(":")
        if not path:
            raise MalformedDigestLineFault(number, line, "empty path")
        if not hex_digest:
            raise MalformedDigestLineFault(number, line, "empty digest")
        try:
            digests[path] = bytes.fromhex(hex_digest)
        except ValueError:
            raise MalformedDigestLineFault(number, line, "digest is not valid hexadecimal") from None
    return digests
