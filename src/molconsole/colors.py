from __future__ import annotations

import re
from collections.abc import Mapping
from types import MappingProxyType
from typing import NamedTuple, Optional


class Color(NamedTuple):
    """An RGB triple, 0-255 per channel."""

    r: int
    g: int
    b: int

    def to_hex(self) -> str:
        return f"#{self.r:02x}{self.g:02x}{self.b:02x}"


# --- Built-in color names (subset of ChimeraX colors) ------------------------

_BUILTIN_COLORS: dict[str, Color] = {
    # basic
    "white": Color(255, 255, 255),
    "black": Color(0, 0, 0),
    "red": Color(255, 0, 0),
    "green": Color(0, 255, 0),
    "blue": Color(0, 0, 255),
    "yellow": Color(255, 255, 0),
    "cyan": Color(0, 255, 255),
    "magenta": Color(255, 0, 255),
    "orange": Color(255, 165, 0),
    "purple": Color(128, 0, 128),
    "pink": Color(255, 192, 203),
    "brown": Color(165, 42, 42),
    "gray": Color(128, 128, 128),
    "grey": Color(128, 128, 128),
    # extended
    "skyblue": Color(135, 206, 235),
    "hotpink": Color(255, 105, 180),
    "lime": Color(0, 255, 0),
    "navy": Color(0, 0, 128),
    "olive": Color(128, 128, 0),
    "teal": Color(0, 128, 128),
    "maroon": Color(128, 0, 0),
    "aqua": Color(0, 255, 255),
    "silver": Color(192, 192, 192),
    "gold": Color(255, 215, 0),
    "coral": Color(255, 127, 80),
    "salmon": Color(250, 128, 114),
    "khaki": Color(240, 230, 140),
    "orchid": Color(218, 112, 214),
    "plum": Color(221, 160, 221),
    "tan": Color(210, 180, 140),
    "wheat": Color(245, 222, 179),
    # molecule-relevant
    "cornflowerblue": Color(100, 149, 237),
    "forestgreen": Color(34, 139, 34),
    "firebrick": Color(178, 34, 34),
    "goldenrod": Color(218, 165, 32),
    "dodgerblue": Color(30, 144, 255),
    "mediumblue": Color(0, 0, 205),
    "darkgreen": Color(0, 100, 0),
    "darkred": Color(139, 0, 0),
    "lightblue": Color(173, 216, 230),
    "lightgreen": Color(144, 238, 144),
}

BUILTIN_COLORS: Mapping[str, Color] = MappingProxyType(_BUILTIN_COLORS)

_HEX_RE = re.compile(r"#([0-9A-Fa-f]{3}|[0-9A-Fa-f]{6})")
_RGB_RE = re.compile(r"rgb\(([0-9]+),\s*([0-9]+),\s*([0-9]+)\)")


class ColorRegistry:
    """
    Color names known to one console session.

    Built-in names are shared and read-only; custom names live on the instance and
    shadow a built-in of the same name. All keys are lowercase.
    """

    def __init__(self, builtin: Optional[Mapping[str, Color]] = None):
        self.builtin: Mapping[str, Color] = builtin if builtin is not None else BUILTIN_COLORS
        self.custom: dict[str, Color] = {}

    def get_color_by_name(self, name: str) -> Optional[Color]:
        key = name.lower()
        if key in self.custom:
            return self.custom[key]
        return self.builtin.get(key)

    def is_color_name(self, name: str) -> bool:
        return self.get_color_by_name(name) is not None

    def define_custom_color(self, name: str, color: Color) -> None:
        self.custom[name.lower()] = Color(*color)

    def delete_custom_color(self, name: str) -> bool:
        return self.custom.pop(name.lower(), None) is not None

    def list_color_names(self, which: str = "all") -> list[str]:
        if which not in ("all", "builtin", "custom"):
            raise ValueError(f"which must be 'all', 'builtin' or 'custom', got {which!r}")
        names: set[str] = set()
        if which in ("all", "builtin"):
            names.update(self.builtin)
        if which in ("all", "custom"):
            names.update(self.custom)
        return sorted(names)

    def parse_color_spec(self, spec: str) -> Optional[Color]:
        """Resolve a color name, '#RGB'/'#RRGGBB' hex literal or 'rgb(r,g,b)'."""
        named = self.get_color_by_name(spec)
        if named is not None:
            return named
        if spec.startswith("#"):
            return parse_hex_color(spec)
        if spec.startswith("rgb("):
            return parse_rgb_color(spec)
        return None


def is_hex_color(text: str) -> bool:
    return _HEX_RE.fullmatch(text) is not None


def parse_hex_color(text: str) -> Optional[Color]:
    if not is_hex_color(text):
        return None
    digits = text[1:]
    if len(digits) == 3:
        digits = "".join(c + c for c in digits)
    return Color(int(digits[0:2], 16), int(digits[2:4], 16), int(digits[4:6], 16))


def parse_rgb_color(text: str) -> Optional[Color]:
    m = _RGB_RE.fullmatch(text)
    if m is None:
        return None
    r, g, b = (int(v) for v in m.groups())
    if max(r, g, b) > 255:
        return None
    return Color(r, g, b)


def parse_color_spec(spec: str, colors: Optional[ColorRegistry] = None) -> Optional[Color]:
    """Module-level shortcut; without a registry only built-in names resolve."""
    return (colors if colors is not None else ColorRegistry()).parse_color_spec(spec)
