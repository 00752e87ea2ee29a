from __future__ import annotations

from molconsole.colors import Color
from molconsole.commands import CommandResult, ConsoleCommand
from molconsole.config import ConsoleConfig
from molconsole.console import Console
from molconsole.scene import SceneError


def test_empty_and_unknown(console):
    assert console.run("   ") == CommandResult(False, "Empty command")
    result = console.run("Frobnicate now")
    assert not result.success
    assert result.message == "Unknown command: frobnicate"


def test_command_names_case_insensitive(loaded_console):
    assert loaded_console.run("RESET").success


def test_invalid_syntax(console):
    assert console.run("load").message == "Invalid syntax for command: load"
    assert console.run("style").message == "Invalid syntax for command: style"
    result = console.run("color red transparency lots")
    assert not result.success
    assert result.message.startswith("Invalid syntax for command: color: transparency")


def test_list_commands(console):
    assert console.list_commands() == [
        "load",
        "close",
        "color",
        "style",
        "colorname",
        "focus",
        "reset",
        "help",
    ]


# ---- color ----


def test_color_without_structure(console):
    assert console.run("color red").message == "No structure loaded"
    result = console.run("color byelement")
    assert result.message == "No structure representations found. Load a structure first."


def test_color_simple(loaded_console):
    result = loaded_console.run("color red /A")
    assert result.success
    assert result.message == "Colored 27 atoms"
    assert result.data["atomCount"] == 27
    assert result.data["color"] == "#ff0000"
    overpaints = [o for r in loaded_console.scene.representations.values() for o in r.overpaints]
    assert overpaints and all(o.color == Color(255, 0, 0) for o in overpaints)


def test_color_hex_and_split_selection(loaded_console):
    assert loaded_console.run("color #00ff00 helix & /A").data["atomCount"] == 12
    assert loaded_console.run("color rgb(0,0,255) @CA").data["atomCount"] == 9


def test_color_no_match_colors_zero_atoms(loaded_console):
    result = loaded_console.run("color red nucleic")
    assert result.success
    assert result.data["atomCount"] == 0


def test_color_errors(loaded_console):
    assert loaded_console.run("color /A").message == "No color specified"
    assert loaded_console.run("color random").message == "Color scheme 'random' not yet implemented"
    assert loaded_console.run("color bynucleotide").message == (
        "Color scheme 'bynucleotide' not yet implemented"
    )


def test_color_targets_accept_style_aliases(loaded_console):
    loaded_console.run("style surface")
    result = loaded_console.run("color red targets surface")
    assert result.success
    assert result.data["atomCount"] == 39
    painted = {r.type: len(r.overpaints) for r in loaded_console.scene.representations.values()}
    assert painted == {"cartoon": 0, "ball-and-stick": 0, "molecular-surface": 1}

    assert loaded_console.run("color blue /A targets sticks").data["atomCount"] == 27


def test_color_targets_without_matching_representation(loaded_console):
    result = loaded_console.run("color red targets lines")
    assert not result.success
    assert result.message == "No representations match targets: lines"
    assert all(not r.overpaints for r in loaded_console.scene.representations.values())


def test_color_scheme_sets_theme(loaded_console):
    result = loaded_console.run("color bychain")
    assert result.success
    assert {r.color_theme for r in loaded_console.scene.representations.values()} == {"chain-id"}

    loaded_console.run("color byelement targets sticks")
    themes = {r.type: r.color_theme for r in loaded_console.scene.representations.values()}
    assert themes == {"cartoon": "chain-id", "ball-and-stick": "element-symbol"}


def test_color_rainbow_and_attribute(loaded_console):
    assert loaded_console.run("color rainbow palette viridis").success
    for rep in loaded_console.scene.representations.values():
        assert rep.color_theme == "sequence-id"
        assert rep.theme_params == {"palette": "viridis"}

    assert loaded_console.run("color byattribute bfactor range 0,50").success
    for rep in loaded_console.scene.representations.values():
        assert rep.color_theme == "uncertainty"
        assert rep.theme_params == {"domain": (0.0, 50.0)}

    assert not loaded_console.run("color byattribute").success
    assert loaded_console.run("color byattribute mass").message.startswith("Unknown attribute 'mass'")


# ---- colorname ----


def test_colorname_define_use_delete(loaded_console):
    result = loaded_console.run("colorname myblue #1E90FF")
    assert result.success
    assert loaded_console.colors.get_color_by_name("myblue") == Color(30, 144, 255)

    assert loaded_console.run("color myblue /B").data["atomCount"] == 12
    assert loaded_console.run("colorname list custom").data["names"] == ["myblue"]

    assert loaded_console.run("colorname delete myblue").success
    assert not loaded_console.run("colorname delete myblue").success
    assert loaded_console.run("color myblue /B").message == "No color specified"


def test_colorname_rejects_bad_input(console):
    assert not console.run("colorname helix red").success
    assert not console.run("colorname 9lives red").success
    assert console.run("colorname mine notacolor").message == "Unknown color: notacolor"
    assert not console.run("colorname list everything").success


def test_colorname_is_per_session():
    a, b = Console(), Console()
    a.run("colorname mine red")
    assert a.colors.is_color_name("mine")
    assert not b.colors.is_color_name("mine")


# ---- style ----


def test_style(loaded_console):
    result = loaded_console.run("style sticks /B")
    assert result.success
    assert result.message == "Applied ball-and-stick representation to chain B"
    sticks = [r for r in loaded_console.scene.representations.values() if r.type == "ball-and-stick"]
    assert len(sticks) == 1
    assert sticks[0].loci.atom_count == 12

    assert loaded_console.run("style surface").message == "Applied molecular-surface representation"


def test_style_errors(loaded_console):
    result = loaded_console.run("style teapot")
    assert not result.success
    assert result.message == (
        "Invalid style 'teapot'. Valid styles: "
        "cartoon, spacefill, ball-and-stick, sticks, lines, surface, ribbons"
    )
    assert Console().run("style cartoon").message == "No structure loaded. Load a structure first."
    assert not loaded_console.run("style cartoon nucleic").success


# ---- focus / reset / close ----


def test_focus(loaded_console):
    result = loaded_console.run("focus /B")
    assert result.success
    assert result.message == "Focused on chain B (12 atoms)"
    assert result.data["center"] == (0.0, 10.0, 2.0)
    assert result.data["radius"] == 1.0

    assert not loaded_console.run("focus nucleic").success
    assert loaded_console.run("focus").data["atomCount"] == 39


def test_focus_without_structure(console):
    assert console.run("focus").message == "No structure loaded"


def test_reset_and_close(loaded_console):
    loaded_console.run("focus /B")
    result = loaded_console.run("reset")
    assert result.message == "Reset camera view"
    assert result.data["radius"] > 1.0

    assert loaded_console.run("close").message == "Cleared all structures"
    assert loaded_console.scene.structures == {}
    assert loaded_console.run("color red").message == "No structure loaded"


# ---- load ----


def test_load(sample_pdb_text, monkeypatch):
    config = ConsoleConfig(download_url="https://example.org/{id}.pdb")
    console = Console(config=config)
    urls = []

    def fake_fetch(url):
        urls.append(url)
        return sample_pdb_text

    monkeypatch.setattr(console.scene, "_fetch_text", fake_fetch)
    result = console.run("load 1CBS")
    assert result.success
    assert result.message == "Loaded 1CBS"
    assert result.data["atomCount"] == 39
    assert urls == ["https://example.org/1cbs.pdb"]
    assert console.run("color red /A").data["atomCount"] == 27


def test_load_failure_is_reported(monkeypatch):
    console = Console()

    def fail(url):
        raise SceneError("Download failed for x: 404")

    monkeypatch.setattr(console.scene, "_fetch_text", fail)
    result = console.run("load 0000")
    assert not result.success
    assert result.message.startswith("Failed to load 0000")


# ---- help ----


def test_help(console):
    general = console.run("help")
    assert general.success
    for name in console.list_commands():
        assert name in general.message
    assert "SELECTION SYNTAX" in general.message

    assert console.run("help COLOR").message.startswith("COLOR - Color atoms")
    assert console.run("help teapot").message == "No help available for command: teapot"


# ---- dispatcher ----


def test_execute_errors_become_results(console):
    async def boom(context, params):
        raise RuntimeError("kaboom")

    console.register_command(
        ConsoleCommand(
            name="boom",
            description="Always fails",
            category="test",
            parse=lambda parsed, context: {},
            execute=boom,
        )
    )
    assert console.run("boom") == CommandResult(False, "Error: kaboom")
    assert "boom" in console.run("help").message


def test_parse_errors_become_results(console):
    def broken_parse(parsed, context):
        raise KeyError("missing")

    async def never(context, params):
        raise AssertionError("execute must not run")

    console.register_command(
        ConsoleCommand(
            name="broken",
            description="Parser always fails",
            category="test",
            parse=broken_parse,
            execute=never,
        )
    )
    assert console.run("broken now") == CommandResult(False, "Error: 'missing'")


def test_result_to_dict():
    result = CommandResult(True, "ok", {"atomCount": 3})
    assert result.to_dict() == {"success": True, "message": "ok", "atomCount": 3}


def test_registry_operations(console):
    registry = console.registry
    assert registry.has("COLOR")
    assert registry.get("color").category == "structure"
    assert registry.unregister("color")
    assert not registry.unregister("color")
    assert not registry.has("color")
    assert console.run("color red").message == "Unknown command: color"
