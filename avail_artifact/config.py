"""
Config system - Layered artifact settings.

Merge order (later overrides earlier):
1. ``ArtifactSettings`` defaults
2. Settings file (``.yaml`` / ``.yml`` / ``.json``)
3. ``.env`` file entries carrying the prefix
4. Environment variables (``AVAIL_ARTIFACT_*``)
5. Manual overrides
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union, get_args, get_origin, get_type_hints

import yaml
from dotenv import dotenv_values

from .faults import SettingsInvalidFault

logger = logging.getLogger("avail_artifact.config")

COMPRESSION_METHODS = ("stored", "deflated", "bzip2", "lzma")

_TRUE = ("true", "yes", "on", "1")
_FALSE = ("false", "no", "off", "0")


@dataclass
class ArtifactSettings:
    """
    Tunables shared by the builder and the reader.

    ``manifest_checkpoints`` re-writes the manifest after every root. The
    container then holds one manifest entry per checkpoint instead of a
    single instance of each reserved entry; readers take the last one.
    """

    default_digest_algorithm: str = "SHA-256"
    compression: str = "deflated"
    compress_level: Optional[int] = None
    atomic_output: bool = True
    manifest_checkpoints: bool = False
    strict_digests: bool = False
    archive_suffixes: Tuple[str, ...] = (".jar", ".zip")
    chunk_size: int = 1 << 16

    def __post_init__(self):
        if self.compression not in COMPRESSION_METHODS:
            raise SettingsInvalidFault(
                "compression",
                f"{self.compression!r} is not one of {', '.join(COMPRESSION_METHODS)}",
            )
        if self.chunk_size <= 0:
            raise SettingsInvalidFault("chunk_size", "must be a positive integer")
        self.archive_suffixes = tuple(s.lower() for s in self.archive_suffixes)

    def to_dict(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


class SettingsLoader:
    """
    Loads and merges :class:`ArtifactSettings` from multiple sources.

    Usage::

        settings = SettingsLoader.load("artifact.yaml", env_file=".env")
    """

    def __init__(self, env_prefix: str = "AVAIL_ARTIFACT_"):
        self.env_prefix = env_prefix
        self.data: Dict[str, Any] = {}

    @classmethod
    def load(
        cls,
        path: Union[str, Path, None] = None,
        env_prefix: str = "AVAIL_ARTIFACT_",
        env_file: Union[str, Path, None] = None,
        overrides: Optional[Dict[str, Any]] = None,
    ) -> ArtifactSettings:
        loader = cls(env_prefix=env_prefix)
        if path is not None:
            loader._load_file(Path(path))
        if env_file is not None:
            loader._load_env_file(Path(env_file))
        loader._load_from_env()
        if overrides:
            loader.data.update(overrides)
        return loader.build()

    def _load_file(self, path: Path):
        if not path.is_file():
            raise SettingsInvalidFault(str(path), "settings file not found")
        try:
            with open(path) as f:
                if path.suffix == ".json":
                    data = json.load(f)
                else:
                    data = yaml.safe_load(f)
        except (OSError, json.JSONDecodeError, yaml.YAMLError) as exc:
            raise SettingsInvalidFault(str(path), f"cannot load settings file: {exc}") from exc
        if data is None:
            return
        if not isinstance(data, dict):
            raise SettingsInvalidFault(str(path), "settings file must hold a mapping")
        self.data.update(data)

    def _load_env_file(self, path: Path):
        if not path.exists():
            logger.debug("Settings .env file %s does not exist", path)
            return
        for key, value in dotenv_values(path).items():
            if key.startswith(self.env_prefix) and value is not None:
                self.data[key[len(self.env_prefix):].lower()] = value

    def _load_from_env(self):
        for key, value in os.environ.items():
            if key.startswith(self.env_prefix):
                self.data[key[len(self.env_prefix):].lower()] = value

    def build(self) -> ArtifactSettings:
        hints = get_type_hints(ArtifactSettings)
        known = {f.name for f in fields(ArtifactSettings)}
        kwargs: Dict[str, Any] = {}
        for key, value in self.data.items():
            if key not in known:
                raise SettingsInvalidFault(key, "unknown setting")
            kwargs[key] = self._coerce(key, value, hints[key])
        return ArtifactSettings(**kwargs)

    def _coerce(self, key: str, value: Any, hint: Any) -> Any:
        """Coerce a raw (often string) value to the field's declared type."""
        origin = get_origin(hint)

        # Optional[X]
        if origin is Union:
            args = [a for a in get_args(hint) if a is not type(None)]
            if value is None or (isinstance(value, str) and value.strip().lower() in ("", "none", "null")):
                return None
            return self._coerce(key, value, args[0])

        if hint is bool:
            if isinstance(value, bool):
                return value
            text = str(value).strip().lower()
            if text in _TRUE:
                return True
            if text in _FALSE:
                return False
            raise SettingsInvalidFault(key, f"expected a boolean, found {value!r}")

        if hint is int:
            if isinstance(value, bool):
                raise SettingsInvalidFault(key, f"expected an integer, found {value!r}")
            try:
                return int(value)
            except (TypeError, ValueError) as exc:
                raise SettingsInvalidFault(key, f"expected an integer, found {value!r}") from exc

        if origin is tuple:
            if isinstance(value, str):
                return tuple(part.strip() for part in value.split(",") if part.strip())
            if isinstance(value, (list, tuple)):
                return tuple(str(v) for v in value)
            raise SettingsInvalidFault(key, f"expected a list, found {value!r}")

        if not isinstance(value, str):
            raise SettingsInvalidFault(key, f"expected a string, found {value!r}")
        return value
