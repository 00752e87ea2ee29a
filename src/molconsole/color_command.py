from __future__ import annotations

import enum
import math
from dataclasses import dataclass
from typing import Optional

from .colors import ColorRegistry, is_hex_color, parse_rgb_color
from .command_parser import CommandSyntaxError, ParsedCommand, parse_command
from .selection import MOLECULE_TYPE_NAMES, SECONDARY_STRUCTURE_NAMES

# Color scheme names accepted in place of a color
SCHEME_NAMES: tuple[str, ...] = (
    "byelement",
    "byatom",
    "byhet",
    "bychain",
    "bynucleotide",
    "bymodel",
    "byidentity",
    "bypolymer",
    "random",
)

# Scheme -> color theme applied to representations. Schemes without an entry are
# recognized but not implemented.
SCHEME_THEMES: dict[str, str] = {
    "byelement": "element-symbol",
    "byatom": "element-symbol",
    "bychain": "chain-id",
    "byhet": "molecule-type",
    "bymodel": "model-index",
    "bypolymer": "polymer-id",
    "byidentity": "polymer-id",
}

RAINBOW_WORDS: frozenset[str] = frozenset({"rainbow", "seq", "sequential"})
ATTRIBUTE_WORDS: frozenset[str] = frozenset({"byattribute", "attribute"})

_SELECTION_WORDS = frozenset(MOLECULE_TYPE_NAMES + SECONDARY_STRUCTURE_NAMES)
_SELECTION_PREFIXES = ("/", ":", "#", "@")


class ColorMode(enum.Enum):
    SIMPLE = "simple"
    RAINBOW = "rainbow"
    BYATTRIBUTE = "byattribute"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class ValueRange:
    low: Optional[float] = None
    high: Optional[float] = None


@dataclass
class ColorCommand:
    mode: ColorMode
    color_spec: Optional[str] = None
    selection: Optional[str] = None
    targets: Optional[tuple[str, ...]] = None
    transparency: Optional[float] = None
    palette: Optional[str] = None
    attribute: Optional[str] = None
    range: Optional[ValueRange] = None


def is_scheme_name(token: str) -> bool:
    return token.lower() in SCHEME_NAMES


def is_selection_like(token: str) -> bool:
    """True for tokens that belong to a selection ('/A', ':12', '#1', '@CA', '&', 'helix', ...)."""
    return (
        token.startswith(_SELECTION_PREFIXES)
        or "&" in token
        or token.lower() in _SELECTION_WORDS
    )


def join_selection_tokens(args: tuple[str, ...] | list[str]) -> list[str]:
    """
    Rejoin runs of consecutive selection-like tokens with single spaces.

    The tokenizer splits 'helix & :A' into three tokens; they form one selection.
    Hex color literals never join a run.
    """
    out: list[str] = []
    run: list[str] = []
    for token in args:
        if is_selection_like(token) and not is_hex_color(token):
            run.append(token)
            continue
        if run:
            out.append(" ".join(run))
            run = []
        out.append(token)
    if run:
        out.append(" ".join(run))
    return out


def detect_mode(args: tuple[str, ...] | list[str]) -> ColorMode:
    words = {a.lower() for a in args}
    if words & RAINBOW_WORDS:
        return ColorMode.RAINBOW
    if words & ATTRIBUTE_WORDS:
        return ColorMode.BYATTRIBUTE
    return ColorMode.SIMPLE


def _parse_float(name: str, text: str) -> float:
    try:
        value = float(text)
    except ValueError:
        raise CommandSyntaxError(f"{name} must be a number, got '{text}'") from None
    if not math.isfinite(value):
        raise CommandSyntaxError(f"{name} must be a finite number, got '{text}'")
    return value


def _parse_transparency(text: str) -> float:
    value = _parse_float("transparency", text)
    if not 0.0 <= value <= 1.0:
        raise CommandSyntaxError(f"transparency must be between 0 and 1, got '{text}'")
    return value


def _parse_range(text: str) -> ValueRange:
    parts = text.split(",")
    if len(parts) != 2:
        return ValueRange()
    return ValueRange(low=_parse_float("range", parts[0].strip()), high=_parse_float("range", parts[1].strip()))


def parse_color_arguments(
    parsed: ParsedCommand, colors: Optional[ColorRegistry] = None
) -> ColorCommand:
    """
    Classify the arguments of an already parsed `color` command.

    Each (rejoined) argument is tried as: scheme name, color, selection, mode word,
    then attribute name. A later color/scheme or selection replaces an earlier one.
    """
    colors = colors if colors is not None else ColorRegistry()
    result = ColorCommand(mode=detect_mode(parsed.args))

    for arg in join_selection_tokens(parsed.args):
        lower = arg.lower()
        if is_scheme_name(arg):
            result.color_spec = lower
        elif colors.is_color_name(arg) or is_hex_color(arg) or parse_rgb_color(arg) is not None:
            result.color_spec = arg
        elif is_selection_like(arg):
            result.selection = arg
        elif lower in RAINBOW_WORDS or lower in ATTRIBUTE_WORDS:
            continue
        elif result.mode is ColorMode.BYATTRIBUTE and result.attribute is None:
            result.attribute = arg

    options = parsed.options
    if "targets" in options:
        result.targets = tuple(t.strip() for t in options["targets"].split(",") if t.strip())
    if "transparency" in options:
        result.transparency = _parse_transparency(options["transparency"])
    if "palette" in options:
        result.palette = options["palette"]
    if "range" in options:
        result.range = _parse_range(options["range"])

    return result


def parse_color_command(text: str, colors: Optional[ColorRegistry] = None) -> ColorCommand:
    """Parse a full `color ...` line; other commands yield mode UNKNOWN."""
    parsed = parse_command(text)
    if parsed.command != "color":
        return ColorCommand(mode=ColorMode.UNKNOWN)
    return parse_color_arguments(parsed, colors)
