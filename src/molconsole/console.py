from __future__ import annotations

import asyncio
import logging
from typing import Optional

from .colors import ColorRegistry
from .command_parser import CommandSyntaxError, parse_command
from .commands import (
    CommandRegistry,
    CommandResult,
    ConsoleCommand,
    ConsoleContext,
    register_builtin_commands,
)
from .config import ConsoleConfig
from .scene import Scene
from .selection import SelectionError

logger = logging.getLogger(__name__)


class Console:
    """
    A command console session.

    Owns the scene, the session's color names and the command registry. `execute`
    turns one line of input into a CommandResult and never raises.

    Example:
        console = Console()
        console.run("load 1cbs")
        console.run("color red /A:1-50")
    """

    def __init__(
        self,
        scene: Optional[Scene] = None,
        config: Optional[ConsoleConfig] = None,
        colors: Optional[ColorRegistry] = None,
        registry: Optional[CommandRegistry] = None,
    ):
        config = config if config is not None else ConsoleConfig()
        if registry is None:
            registry = register_builtin_commands(CommandRegistry())
        self.context = ConsoleContext(
            scene=scene if scene is not None else Scene(timeout=config.timeout),
            colors=colors if colors is not None else ColorRegistry(),
            config=config,
            registry=registry,
        )

    @property
    def scene(self) -> Scene:
        return self.context.scene

    @property
    def colors(self) -> ColorRegistry:
        return self.context.colors

    @property
    def registry(self) -> CommandRegistry:
        return self.context.registry

    def register_command(self, command: ConsoleCommand) -> None:
        self.registry.register(command)

    def list_commands(self) -> list[str]:
        return self.registry.names()

    async def execute(self, line: str) -> CommandResult:
        text = line.strip()
        if not text:
            return CommandResult(False, "Empty command")

        parsed = parse_command(text)
        name = parsed.command.lower()
        command = self.registry.get(name)
        if command is None:
            logger.warning("Unknown command: %s", name)
            return CommandResult(False, f"Unknown command: {name}")

        logger.debug("Parsed %r -> args=%s options=%s", text, parsed.args, parsed.options)

        try:
            params = command.parse(parsed, self.context)
        except (CommandSyntaxError, SelectionError) as e:
            logger.warning("Invalid syntax for %s: %s", name, e)
            return CommandResult(False, f"Invalid syntax for command: {name}: {e}")
        except Exception as e:
            logger.exception("Parsing '%s' failed", name)
            return CommandResult(False, f"Error: {e}")
        if params is None:
            logger.warning("Invalid syntax for %s: %r", name, text)
            return CommandResult(False, f"Invalid syntax for command: {name}")

        try:
            result = await command.execute(self.context, params)
        except Exception as e:
            logger.exception("Command '%s' failed", name)
            return CommandResult(False, f"Error: {e}")

        if not result.success:
            logger.warning("%s: %s", name, result.message)
        return result

    def run(self, line: str) -> CommandResult:
        """Synchronous wrapper around `execute` (must not be called from a running loop)."""
        return asyncio.run(self.execute(line))
