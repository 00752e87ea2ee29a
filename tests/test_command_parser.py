from __future__ import annotations

from molconsole.command_parser import ParsedCommand, is_option_keyword, parse_command, tokenize


def test_tokenize_splits_on_spaces():
    assert tokenize("color red /A") == ["color", "red", "/A"]
    assert tokenize("  color   red  ") == ["color", "red"]
    assert tokenize("") == []


def test_tokenize_quotes_keep_spaces_and_are_dropped():
    assert tokenize('color "deep teal" :A') == ["color", "deep teal", ":A"]
    assert tokenize('color "light blue" /A') == ["color", "light blue", "/A"]
    assert tokenize("color 'light blue'") == ["color", "light blue"]


def test_tokenize_shared_quote_toggle():
    # either quote character closes the other
    assert tokenize("a \"b c' d") == ["a", "b c", "d"]


def test_tokenize_unterminated_quote_flushes():
    assert tokenize('color "light blue') == ["color", "light blue"]


def test_tokenize_only_space_separates():
    assert tokenize("color\tred") == ["color\tred"]


def test_parse_command_options_and_args():
    parsed = parse_command("color red /A transparency 0.5 targets cartoon,surface")
    assert parsed.command == "color"
    assert parsed.args == ("red", "/A")
    assert parsed.options == {"transparency": "0.5", "targets": "cartoon,surface"}


def test_parse_command_option_key_lowercased_value_preserved():
    parsed = parse_command("color rainbow PALETTE Viridis")
    assert parsed.options == {"palette": "Viridis"}


def test_parse_command_trailing_keyword_is_argument():
    parsed = parse_command("color red range")
    assert parsed.args == ("red", "range")
    assert parsed.options == {}


def test_parse_command_empty():
    assert parse_command("") == ParsedCommand(command="")
    assert parse_command("   ").command == ""


def test_parse_command_name_only():
    parsed = parse_command("reset")
    assert parsed.command == "reset"
    assert parsed.args == ()
    assert parsed.options == {}


def test_is_option_keyword():
    assert is_option_keyword("Transparency")
    assert is_option_keyword("average")
    assert not is_option_keyword("red")
