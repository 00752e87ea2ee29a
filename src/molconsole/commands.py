from __future__ import annotations

import logging
import re
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any, Optional

from .color_command import (
    ATTRIBUTE_WORDS,
    RAINBOW_WORDS,
    SCHEME_NAMES,
    SCHEME_THEMES,
    ColorCommand,
    ColorMode,
    parse_color_arguments,
)
from .colors import ColorRegistry
from .command_parser import OPTION_KEYWORDS, CommandSyntaxError, ParsedCommand
from .config import ConsoleConfig
from .query import Loci, describe_selection, selection_to_query
from .scene import Representation, Scene, SceneError
from .selection import (
    MOLECULE_TYPE_NAMES,
    SECONDARY_STRUCTURE_NAMES,
    SelectionSpec,
    parse_selection,
)

logger = logging.getLogger(__name__)


# ----------------------------- command model ---------------------------------


@dataclass
class CommandResult:
    success: bool
    message: str = ""
    data: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"success": self.success, "message": self.message, **self.data}


@dataclass
class ConsoleContext:
    """Everything a command may touch. One per console session."""

    scene: Scene
    colors: ColorRegistry
    config: ConsoleConfig
    registry: CommandRegistry


ParseFn = Callable[[ParsedCommand, ConsoleContext], Optional[Any]]
ExecuteFn = Callable[[ConsoleContext, Any], Awaitable[CommandResult]]


@dataclass(frozen=True)
class ConsoleCommand:
    """
    A named console command.

    `parse` turns a ParsedCommand into command parameters without side effects; it
    returns None (or raises CommandSyntaxError) when the arguments do not fit.
    `execute` is a coroutine that applies the parameters and reports a CommandResult.
    """

    name: str
    description: str
    category: str
    parse: ParseFn
    execute: ExecuteFn
    usage: str = ""
    help: str = ""


class CommandRegistry:
    """Name -> ConsoleCommand table. Names are stored lowercase."""

    def __init__(self):
        self._commands: dict[str, ConsoleCommand] = {}

    def register(self, command: ConsoleCommand) -> None:
        key = command.name.lower()
        if key in self._commands:
            logger.debug("Replacing command '%s'", key)
        self._commands[key] = command

    def unregister(self, name: str) -> bool:
        return self._commands.pop(name.lower(), None) is not None

    def get(self, name: str) -> Optional[ConsoleCommand]:
        return self._commands.get(name.lower())

    def has(self, name: str) -> bool:
        return name.lower() in self._commands

    def list(self) -> list[ConsoleCommand]:
        return list(self._commands.values())

    def names(self) -> list[str]:
        return list(self._commands)


# ----------------------------- shared helpers --------------------------------

# style word -> representation type
STYLE_ALIASES: dict[str, str] = {
    "cartoon": "cartoon",
    "spacefill": "spacefill",
    "ball-and-stick": "ball-and-stick",
    "sticks": "ball-and-stick",
    "lines": "line",
    "surface": "molecular-surface",
    "ribbons": "cartoon",
}

# byattribute name -> color theme
ATTRIBUTE_THEMES: dict[str, str] = {
    "bfactor": "uncertainty",
    "occupancy": "occupancy",
}

RAINBOW_THEME = "sequence-id"

NO_STRUCTURE = "No structure loaded"
NO_REPRESENTATIONS = "No structure representations found. Load a structure first."


def _selection_arg(args: tuple[str, ...]) -> tuple[str, SelectionSpec]:
    text = " ".join(args).strip() or "all"
    return text, parse_selection(text)


def _query_structures(scene: Scene, spec: SelectionSpec) -> dict[str, Loci]:
    """Loci of `spec` in every loaded structure that has at least one match."""
    query = selection_to_query(spec)
    matches: dict[str, Loci] = {}
    for ref, entry in scene.structures.items():
        loci = query(entry.structure)
        if not loci.is_empty():
            matches[ref] = loci
    return matches


def _resolve_targets(targets: Optional[tuple[str, ...]]) -> Optional[tuple[str, ...]]:
    if targets is None:
        return None
    return tuple(STYLE_ALIASES.get(t.lower(), t.lower()) for t in targets)


def _target_representations(scene: Scene, targets: Optional[tuple[str, ...]]) -> list[Representation]:
    reps = list(scene.representations.values())
    wanted = _resolve_targets(targets)
    if wanted is None:
        return reps
    return [r for r in reps if r.type in wanted]


async def _apply_theme(
    scene: Scene, theme: str, params: dict, targets: Optional[tuple[str, ...]]
) -> CommandResult:
    if not scene.representations:
        return CommandResult(False, NO_REPRESENTATIONS)
    reps = _target_representations(scene, targets)
    if not reps:
        return CommandResult(False, f"No representations match targets: {', '.join(targets or ())}")
    for rep in reps:
        await scene.set_color_theme(rep.ref, theme, params)
    return CommandResult(
        True,
        f"Applied {theme} coloring to {len(reps)} representation{'s' if len(reps) != 1 else ''}",
        {"theme": theme, "representationCount": len(reps)},
    )


# ----------------------------- color -----------------------------------------

COLOR_HELP = """
COLOR - Color atoms or apply color schemes

SYNTAX:
  color <color> [selection] [targets t1,t2] [transparency 0-1]
  color <scheme>
  color rainbow [palette name]
  color byattribute <attribute> [range low,high]

COLORS:
  Named colors: red, blue, green, yellow, orange, purple, cyan,
                magenta, white, black, gray, pink, brown, etc.
  Hex colors:   #FF0000, #F00
  RGB colors:   rgb(255,0,0)
  Custom names defined with 'colorname'

SCHEMES:
  byelement     Color by element type
  bychain       Color each chain differently
  byhet         Color by molecule type (protein/nucleic/ligand)
  bymodel       Color each model differently
  bypolymer     Color each polymer differently

EXAMPLES:
  color red               Color everything red
  color @CA blue          Color alpha carbons blue
  color /A yellow         Color chain A yellow
  color /A:12-50 green    Color residues 12-50 of chain A green
  color helix & /A red    Color helices of chain A red
  color byelement         Color by element type
  color rainbow           Color along the sequence
  color byattribute bfactor range 0,100
""".strip()


def _parse_color(parsed: ParsedCommand, context: ConsoleContext) -> ColorCommand:
    return parse_color_arguments(parsed, context.colors)


async def _execute_color(context: ConsoleContext, params: ColorCommand) -> CommandResult:
    scene = context.scene

    if params.mode is ColorMode.RAINBOW:
        theme_params = {"palette": params.palette} if params.palette else {}
        return await _apply_theme(scene, RAINBOW_THEME, theme_params, params.targets)

    if params.mode is ColorMode.BYATTRIBUTE:
        if not params.attribute:
            return CommandResult(False, "No attribute specified")
        theme = ATTRIBUTE_THEMES.get(params.attribute.lower())
        if theme is None:
            return CommandResult(
                False,
                f"Unknown attribute '{params.attribute}'. "
                f"Valid attributes: {', '.join(ATTRIBUTE_THEMES)}",
            )
        theme_params: dict[str, Any] = {}
        if params.range is not None and params.range.low is not None:
            theme_params["domain"] = (params.range.low, params.range.high)
        return await _apply_theme(scene, theme, theme_params, params.targets)

    if not params.color_spec:
        return CommandResult(False, "No color specified")

    if params.color_spec in SCHEME_NAMES:
        theme = SCHEME_THEMES.get(params.color_spec)
        if theme is None:
            return CommandResult(False, f"Color scheme '{params.color_spec}' not yet implemented")
        return await _apply_theme(scene, theme, {}, params.targets)

    color = context.colors.parse_color_spec(params.color_spec)
    if color is None:
        return CommandResult(False, f"Unknown color: {params.color_spec}")

    if not scene.structures:
        return CommandResult(False, NO_STRUCTURE)

    targets = _resolve_targets(params.targets)
    if targets is not None and not _target_representations(scene, params.targets):
        return CommandResult(False, f"No representations match targets: {', '.join(params.targets)}")

    spec = parse_selection(params.selection or "all")
    query = selection_to_query(spec)
    total = 0
    for ref in list(scene.structures):
        total += await scene.apply_overpaint(
            ref, color, query, targets=targets, transparency=params.transparency
        )

    return CommandResult(
        True,
        f"Colored {total} atoms",
        {"atomCount": total, "color": color.to_hex(), "selection": describe_selection(spec)},
    )


# ----------------------------- load / close / reset --------------------------

LOAD_HELP = """
LOAD - Load a PDB structure

SYNTAX:
  load <pdb-id>

EXAMPLES:
  load 1cbs           Load PDB entry 1CBS
  load 7bv2           Load PDB entry 7BV2

DESCRIPTION:
  Downloads a structure from the configured PDB server and adds it
  to the scene with the configured representation preset. The camera
  is fitted to everything loaded.
""".strip()

CLOSE_HELP = """
CLOSE - Clear all structures

SYNTAX:
  close

DESCRIPTION:
  Removes all loaded structures and their representations.
""".strip()

RESET_HELP = """
RESET - Reset view

SYNTAX:
  reset

DESCRIPTION:
  Resets the camera to show every loaded structure.
  Equivalent to 'focus all'.
""".strip()

@dataclass(frozen=True)
class LoadParams:
    pdb_id: str


def _parse_load(parsed: ParsedCommand, context: ConsoleContext) -> Optional[LoadParams]:
    if not parsed.args:
        return None
    return LoadParams(pdb_id=parsed.args[0].lower())


async def _execute_load(context: ConsoleContext, params: LoadParams) -> CommandResult:
    config = context.config
    label = params.pdb_id.upper()
    url = config.structure_url(params.pdb_id)
    try:
        entry = await context.scene.download_structure(
            url, fmt=config.structure_format, preset=config.preset, label=label
        )
    except SceneError as e:
        return CommandResult(False, f"Failed to load {label}: {e}")
    return CommandResult(
        True,
        f"Loaded {label}",
        {"pdbId": label, "ref": entry.ref, "atomCount": entry.structure.natoms()},
    )


def _parse_no_args(parsed: ParsedCommand, context: ConsoleContext) -> dict:
    return {}


async def _execute_close(context: ConsoleContext, params: dict) -> CommandResult:
    await context.scene.clear()
    return CommandResult(True, "Cleared all structures")


async def _execute_reset(context: ConsoleContext, params: dict) -> CommandResult:
    camera = await context.scene.reset_camera()
    return CommandResult(True, "Reset camera view", {"center": camera.center, "radius": camera.radius})


# ----------------------------- style -----------------------------------------

STYLE_HELP = """
STYLE - Change visualization style

SYNTAX:
  style <style> [selection]

STYLES:
  cartoon         Cartoon representation
  spacefill       Space-filling (VDW spheres)
  ball-and-stick  Ball and stick representation
  sticks          Same as ball-and-stick
  lines           Line representation
  surface         Molecular surface
  ribbons         Same as cartoon

SELECTIONS:
  Same as color command

EXAMPLES:
  style cartoon           Show everything as cartoon
  style cartoon /A        Show chain A as cartoon
  style spacefill @CA     Show alpha carbons as spheres
  style sticks ligand     Show ligands as sticks
""".strip()


@dataclass(frozen=True)
class StyleParams:
    style: str
    selection_text: str
    selection: SelectionSpec


def _parse_style(parsed: ParsedCommand, context: ConsoleContext) -> Optional[StyleParams]:
    if not parsed.args:
        return None
    text, spec = _selection_arg(parsed.args[1:])
    return StyleParams(style=parsed.args[0].lower(), selection_text=text, selection=spec)


async def _execute_style(context: ConsoleContext, params: StyleParams) -> CommandResult:
    repr_type = STYLE_ALIASES.get(params.style)
    if repr_type is None:
        return CommandResult(
            False, f"Invalid style '{params.style}'. Valid styles: {', '.join(STYLE_ALIASES)}"
        )

    scene = context.scene
    if not scene.structures:
        return CommandResult(False, f"{NO_STRUCTURE}. Load a structure first.")

    if params.selection.is_all():
        targets: dict[str, Optional[Loci]] = {ref: None for ref in scene.structures}
    else:
        targets = dict(_query_structures(scene, params.selection))
        if not targets:
            return CommandResult(False, f"No atoms match selection: {params.selection_text}")

    for ref, loci in targets.items():
        await scene.add_representation(ref, repr_type, loci)

    message = f"Applied {repr_type} representation"
    if not params.selection.is_all():
        message += f" to {describe_selection(params.selection)}"
    return CommandResult(True, message, {"representation": repr_type, "structureCount": len(targets)})


# ----------------------------- focus -----------------------------------------

FOCUS_HELP = """
FOCUS - Focus camera on selection

SYNTAX:
  focus [selection]

SELECTIONS:
  Same as color command
  If no selection given, focuses on all atoms

EXAMPLES:
  focus                   Focus on all loaded structures
  focus /A                Focus on chain A
  focus @CA               Focus on alpha carbons
  focus /A:12-50          Focus on residues 12-50 of chain A
""".strip()


@dataclass(frozen=True)
class FocusParams:
    selection_text: str
    selection: SelectionSpec


def _parse_focus(parsed: ParsedCommand, context: ConsoleContext) -> FocusParams:
    text, spec = _selection_arg(parsed.args)
    return FocusParams(selection_text=text, selection=spec)


async def _execute_focus(context: ConsoleContext, params: FocusParams) -> CommandResult:
    scene = context.scene
    if not scene.structures:
        return CommandResult(False, NO_STRUCTURE)

    matches = _query_structures(scene, params.selection)
    if not matches:
        return CommandResult(False, f"No atoms match selection: {params.selection_text}")

    camera = await scene.focus(matches)
    n_atoms = sum(loci.atom_count for loci in matches.values())
    return CommandResult(
        True,
        f"Focused on {describe_selection(params.selection)} ({n_atoms} atoms)",
        {"center": camera.center, "radius": camera.radius, "atomCount": n_atoms},
    )


# ----------------------------- colorname -------------------------------------

COLORNAME_HELP = """
COLORNAME - Define, delete or list custom color names

SYNTAX:
  colorname <name> <color>
  colorname delete <name>
  colorname list [all|builtin|custom]

EXAMPLES:
  colorname myblue #1E90FF      Define 'myblue'
  colorname warm rgb(255,140,0) Define 'warm'
  color myblue /A               Use it like any other color
  colorname delete myblue       Remove it again
  colorname list custom         Show custom names

DESCRIPTION:
  Custom names belong to the current session and take precedence
  over built-in names.
""".strip()

_COLOR_NAME_RE = re.compile(r"[A-Za-z][A-Za-z0-9_\-]*")
_RESERVED_NAMES = frozenset(
    SCHEME_NAMES
    + SECONDARY_STRUCTURE_NAMES
    + MOLECULE_TYPE_NAMES
    + ("all", "polymer", "list", "delete")
) | RAINBOW_WORDS | ATTRIBUTE_WORDS | OPTION_KEYWORDS


@dataclass(frozen=True)
class ColorNameParams:
    action: str  # 'define', 'delete' or 'list'
    name: Optional[str] = None
    color_spec: Optional[str] = None
    which: str = "all"


def _parse_colorname(parsed: ParsedCommand, context: ConsoleContext) -> Optional[ColorNameParams]:
    args = parsed.args
    if not args:
        return None
    first = args[0].lower()

    if first == "list":
        which = args[1].lower() if len(args) > 1 else "all"
        if which not in ("all", "builtin", "custom"):
            raise CommandSyntaxError(f"expected all, builtin or custom, got '{args[1]}'")
        return ColorNameParams(action="list", which=which)

    if first == "delete":
        if len(args) != 2:
            return None
        return ColorNameParams(action="delete", name=args[1].lower())

    if len(args) != 2:
        return None
    if not _COLOR_NAME_RE.fullmatch(args[0]):
        raise CommandSyntaxError(f"'{args[0]}' is not a valid color name")
    if first in _RESERVED_NAMES:
        raise CommandSyntaxError(f"'{args[0]}' is a reserved word")
    return ColorNameParams(action="define", name=first, color_spec=args[1])


async def _execute_colorname(context: ConsoleContext, params: ColorNameParams) -> CommandResult:
    colors = context.colors

    if params.action == "list":
        names = colors.list_color_names(params.which)
        return CommandResult(True, ", ".join(names) if names else "(none)", {"names": names})

    if params.action == "delete":
        if not colors.delete_custom_color(params.name):
            return CommandResult(False, f"No custom color named '{params.name}'")
        return CommandResult(True, f"Deleted color '{params.name}'")

    color = colors.parse_color_spec(params.color_spec)
    if color is None:
        return CommandResult(False, f"Unknown color: {params.color_spec}")
    colors.define_custom_color(params.name, color)
    return CommandResult(True, f"Defined color '{params.name}' as {color.to_hex()}", {"color": color.to_hex()})


# ----------------------------- help ------------------------------------------

HELP_HELP = """
HELP - Show help information

SYNTAX:
  help [command]

EXAMPLES:
  help                Show general help
  help color          Show help for color command
  help load           Show help for load command

DESCRIPTION:
  Displays help information. Use without arguments for
  general help, or specify a command name for detailed
  help on that command.
""".strip()

SELECTION_HELP = """
SELECTION SYNTAX:
  all                    All atoms
  /A                     Chain A (/A,B for several)
  :12 :12-50 :1,5,10-20  Residue numbers and ranges
  /A:12-50               Residues 12-50 of chain A
  @CA                    Atoms named CA
  #1                     Model 1
  helix sheet coil       Secondary structure
  protein nucleic ligand water polymer
  helix & /A             Parts joined by '&' must all match
""".strip()


@dataclass(frozen=True)
class HelpParams:
    command: Optional[str] = None


def _parse_help(parsed: ParsedCommand, context: ConsoleContext) -> HelpParams:
    return HelpParams(command=" ".join(parsed.args).strip() or None)


def general_help(registry: CommandRegistry) -> str:
    """Overview of every registered command, grouped by category."""
    by_category: dict[str, list[ConsoleCommand]] = {}
    for cmd in registry.list():
        by_category.setdefault(cmd.category, []).append(cmd)

    width = max((len(cmd.usage or cmd.name) for cmd in registry.list()), default=0) + 2
    lines = ["molconsole - PyMOL/ChimeraX-style commands for molecular structures", ""]
    for category, cmds in by_category.items():
        lines.append(f"{category.upper()} COMMANDS:")
        for cmd in cmds:
            lines.append(f"  {(cmd.usage or cmd.name).ljust(width)}{cmd.description}")
        lines.append("")
    lines.append(SELECTION_HELP)
    lines.append("")
    lines.append("Type 'help <command>' for detailed help on a specific command.")
    return "\n".join(lines)


def command_help(command: ConsoleCommand) -> str:
    if command.help:
        return command.help
    return f"{command.name.upper()} - {command.description}\n\nSYNTAX:\n  {command.usage or command.name}"


async def _execute_help(context: ConsoleContext, params: HelpParams) -> CommandResult:
    if params.command is None:
        return CommandResult(True, general_help(context.registry))
    command = context.registry.get(params.command)
    if command is None:
        return CommandResult(False, f"No help available for command: {params.command}")
    return CommandResult(True, command_help(command), {"command": command.name})


# ----------------------------- registration ----------------------------------

BUILTIN_COMMANDS: tuple[ConsoleCommand, ...] = (
    ConsoleCommand(
        name="load",
        description="Load a PDB structure by ID",
        category="structure",
        usage="load <id>",
        help=LOAD_HELP,
        parse=_parse_load,
        execute=_execute_load,
    ),
    ConsoleCommand(
        name="close",
        description="Clear all structures",
        category="structure",
        usage="close",
        help=CLOSE_HELP,
        parse=_parse_no_args,
        execute=_execute_close,
    ),
    ConsoleCommand(
        name="color",
        description="Color atoms or apply a color scheme",
        category="structure",
        usage="color <color> [sel]",
        help=COLOR_HELP,
        parse=_parse_color,
        execute=_execute_color,
    ),
    ConsoleCommand(
        name="style",
        description="Change representation style",
        category="structure",
        usage="style <style> [sel]",
        help=STYLE_HELP,
        parse=_parse_style,
        execute=_execute_style,
    ),
    ConsoleCommand(
        name="colorname",
        description="Define, delete or list custom colors",
        category="color",
        usage="colorname <name> <color>",
        help=COLORNAME_HELP,
        parse=_parse_colorname,
        execute=_execute_colorname,
    ),
    ConsoleCommand(
        name="focus",
        description="Focus camera on selection",
        category="camera",
        usage="focus [sel]",
        help=FOCUS_HELP,
        parse=_parse_focus,
        execute=_execute_focus,
    ),
    ConsoleCommand(
        name="reset",
        description="Reset camera view",
        category="camera",
        usage="reset",
        help=RESET_HELP,
        parse=_parse_no_args,
        execute=_execute_reset,
    ),
    ConsoleCommand(
        name="help",
        description="Show this help or help for a specific command",
        category="general",
        usage="help [command]",
        help=HELP_HELP,
        parse=_parse_help,
        execute=_execute_help,
    ),
)


def register_builtin_commands(registry: CommandRegistry) -> CommandRegistry:
    for command in BUILTIN_COMMANDS:
        registry.register(command)
    return registry
