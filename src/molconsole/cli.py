from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Optional

from prompt_toolkit import PromptSession
from prompt_toolkit.completion import WordCompleter
from prompt_toolkit.history import InMemoryHistory

from .__version__ import __version__
from .config import load_config
from .console import Console
from .molecule_data import PDBReader, summarize_topology

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="molconsole", description="Molecular structure command console")
    p.add_argument("--version", action="version", version=__version__)
    p.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    p.add_argument("--config", default=None, help="Path to a JSON config file")
    sp = p.add_subparsers(dest="cmd")

    sp_info = sp.add_parser("info", help="Show console info")
    sp_info.add_argument("--pdb", default=None, help="Also summarize this PDB file")
    sp_info.set_defaults(func=_cmd_info)

    sp_run = sp.add_parser("run", help="Run console commands")
    sp_run.add_argument("commands", nargs="*", help="Command lines, e.g. 'color red /A'")
    sp_run.add_argument("-f", "--file", default=None, help="Script with one command per line")
    sp_run.add_argument("--pdb", default=None, help="PDB file to load before running")
    sp_run.add_argument("--json", action="store_true", help="Print results as JSON")
    sp_run.set_defaults(func=_cmd_run)

    sp_repl = sp.add_parser("repl", help="Interactive console")
    sp_repl.add_argument("--pdb", default=None, help="PDB file to load at start")
    sp_repl.set_defaults(func=_cmd_repl)
    return p


def _make_console(args: argparse.Namespace) -> Console:
    config = load_config(args.config)
    console = Console(config=config)
    if getattr(args, "pdb", None):
        path = Path(args.pdb)
        console.scene.add_structure(PDBReader(path), label=path.stem, source=str(path), preset=config.preset)
        logger.info("Loaded %s", path)
    return console


def _read_script(path: str) -> list[str]:
    with open(path, encoding="utf-8") as fh:
        lines = [line.strip() for line in fh]
    return [line for line in lines if line and not line.startswith("#")]


def _cmd_info(args: argparse.Namespace) -> int:
    console = _make_console(args)
    d: dict = {
        "version": __version__,
        "commands": console.list_commands(),
        "config": console.context.config.to_dict(),
    }
    if args.pdb:
        structure = next(iter(console.scene.structures.values())).structure
        d["structure"] = {
            "file": args.pdb,
            "models": len(structure),
            "chains": structure.nchains(),
            "residues": structure.nresidues(),
            "atoms": structure.natoms(),
            "topology": summarize_topology(structure.topology()),
        }
    print(json.dumps({"console": d}, indent=2))
    return 0


def _cmd_run(args: argparse.Namespace) -> int:
    console = _make_console(args)
    lines = list(args.commands)
    if args.file:
        lines.extend(_read_script(args.file))

    results = []
    for line in lines:
        result = console.run(line)
        results.append({"command": line, **result.to_dict()})
        if not args.json:
            status = "ok" if result.success else "error"
            print(f"[{status}] {line}")
            if result.message:
                print(result.message)

    if args.json:
        print(json.dumps(results, indent=2, default=str))
    return 0 if all(r["success"] for r in results) else 1


def _cmd_repl(args: argparse.Namespace) -> int:
    console = _make_console(args)
    completer = WordCompleter(console.list_commands() + ["exit", "quit"], ignore_case=True, sentence=True)
    session = PromptSession(
        completer=completer,
        history=InMemoryHistory(),
        multiline=False,
        complete_while_typing=True,
    )
    prompt = console.context.config.prompt.rstrip() + " "

    print(f"molconsole {__version__}. Type 'help' for commands, 'exit' to quit.")
    while True:
        try:
            line = session.prompt(prompt)
        except KeyboardInterrupt:
            continue
        except EOFError:
            break
        if line.strip().lower() in ("exit", "quit"):
            break
        if not line.strip():
            continue
        result = console.run(line)
        if result.message:
            print(result.message)
    return 0


def main(argv: Optional[list[str]] = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    if hasattr(args, "func"):
        try:
            code = args.func(args)
        except (OSError, ValueError) as e:
            logger.debug("%s failed", args.cmd, exc_info=True)
            print(f"molconsole: error: {e}", file=sys.stderr)
            code = 1
        sys.exit(code)
    else:
        parser.print_help()


if __name__ == "__main__":
    main()
