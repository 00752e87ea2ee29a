from .__version__ import __version__
from .color_command import ColorCommand, ColorMode, ValueRange, parse_color_command
from .colors import BUILTIN_COLORS, Color, ColorRegistry, parse_color_spec
from .command_parser import CommandSyntaxError, ParsedCommand, parse_command, tokenize
from .commands import (
    CommandRegistry,
    CommandResult,
    ConsoleCommand,
    ConsoleContext,
    register_builtin_commands,
)
from .config import ConsoleConfig, load_config
from .console import Console
from .molecule_data import (
    Atom,
    Chain,
    Model,
    PDBReader,
    Residue,
    Structure,
    summarize_topology,
)
from .query import Loci, LociElement, StructureQuery, describe_selection, selection_to_query
from .scene import Scene, SceneError
from .selection import (
    ResidueList,
    ResidueRange,
    SelectionError,
    SelectionSpec,
    parse_selection,
)

__all__ = [
    "__version__",
    "Atom",
    "BUILTIN_COLORS",
    "Chain",
    "Color",
    "ColorCommand",
    "ColorMode",
    "ColorRegistry",
    "CommandRegistry",
    "CommandResult",
    "CommandSyntaxError",
    "Console",
    "ConsoleCommand",
    "ConsoleConfig",
    "ConsoleContext",
    "Loci",
    "LociElement",
    "Model",
    "PDBReader",
    "ParsedCommand",
    "Residue",
    "ResidueList",
    "ResidueRange",
    "Scene",
    "SceneError",
    "SelectionError",
    "SelectionSpec",
    "Structure",
    "StructureQuery",
    "ValueRange",
    "describe_selection",
    "load_config",
    "parse_color_command",
    "parse_color_spec",
    "parse_command",
    "parse_selection",
    "register_builtin_commands",
    "selection_to_query",
    "summarize_topology",
    "tokenize",
]
