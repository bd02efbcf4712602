"""
Root style metadata carried verbatim inside a root's manifest record.

The builder never interprets these; they are plain records the packaging
caller fills in from its project description and a reader hands back.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from typing import Any, Dict, Optional

from .faults import ManifestFormatFault


@dataclass(frozen=True)
class StyleAttributes:
    """Rendering attributes for one stylesheet rule. Unset fields are omitted."""

    font_family: Optional[str] = None
    foreground: Optional[str] = None
    background: Optional[str] = None
    bold: Optional[bool] = None
    italic: Optional[bool] = None
    underline: Optional[bool] = None
    superscript: Optional[bool] = None
    subscript: Optional[bool] = None
    strikethrough: Optional[bool] = None

    _JSON_NAMES = {"font_family": "fontFamily"}

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if value is not None:
                result[self._JSON_NAMES.get(f.name, f.name)] = value
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any], *, rule: str = "") -> "StyleAttributes":
        if not isinstance(data, dict):
            raise ManifestFormatFault(f"stylesheet.{rule}", "expected an object")
        kwargs: Dict[str, Any] = {}
        for f in fields(cls):
            key = cls._JSON_NAMES.get(f.name, f.name)
            if key not in data or data[key] is None:
                continue
            value = data[key]
            expected = str if f.name in ("font_family", "foreground", "background") else bool
            if not isinstance(value, expected):
                raise ManifestFormatFault(
                    f"stylesheet.{rule}.{key}",
                    f"expected {expected.__name__}, found {type(value).__name__}",
                )
            kwargs[f.name] = value
        return cls(**kwargs)


@dataclass(frozen=True)
class Color:
    red: int
    green: int
    blue: int
    alpha: int = 255

    @property
    def hex(self) -> str:
        return f"{self.red:02X}{self.green:02X}{self.blue:02X}{self.alpha:02X}"

    @classmethod
    def from_hex(cls, text: str) -> "Color":
        """Decode ``RRGGBB`` or ``RRGGBBAA``; raises ``ValueError`` otherwise."""
        if len(text) not in (6, 8):
            raise ValueError(f"colour {text!r} must have 6 or 8 hex digits")
        red, green, blue = (int(text[i:i + 2], 16) for i in (0, 2, 4))
        alpha = int(text[6:8], 16) if len(text) == 8 else 255
        return cls(red, green, blue, alpha)


@dataclass(frozen=True)
class Palette:
    """
    Named colours, each with a light-mode and dark-mode value.

    Serialized as ``{"name": "#RRGGBBAA/RRGGBBAA"}``; a value with no
    ``/`` part uses the same colour for both modes.
    """

    light_colors: Dict[str, Color] = field(default_factory=dict)
    dark_colors: Dict[str, Color] = field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return not self.light_colors

    def to_dict(self) -> Dict[str, str]:
        return {
            name: f"#{light.hex}/{self.dark_colors.get(name, light).hex}"
            for name, light in self.light_colors.items()
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Palette":
        if not isinstance(data, dict):
            raise ManifestFormatFault("palette", "expected an object")
        light: Dict[str, Color] = {}
        dark: Dict[str, Color] = {}
        for name, value in data.items():
            if not isinstance(value, str) or not value.startswith("#"):
                raise ManifestFormatFault(f"palette.{name}", "expected a '#RRGGBBAA/RRGGBBAA' string")
            parts = value[1:].split("/")
            try:
                light[name] = Color.from_hex(parts[0])
                dark[name] = Color.from_hex(parts[1]) if len(parts) > 1 else light[name]
            except ValueError as exc:
                raise ManifestFormatFault(f"palette.{name}", str(exc)) from exc
        return cls(light, dark)

