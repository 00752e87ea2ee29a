from __future__ import annotations

from dataclasses import dataclass, field

# Keywords that take the following token as their value
OPTION_KEYWORDS: frozenset[str] = frozenset({"targets", "transparency", "palette", "range", "average"})

_QUOTES = ('"', "'")


class CommandSyntaxError(ValueError):
    """Raised when a command line is malformed (bad option value, missing argument)."""


@dataclass(frozen=True)
class ParsedCommand:
    """A command line split into command name, positional args and keyword options."""

    command: str
    args: tuple[str, ...] = ()
    options: dict[str, str] = field(default_factory=dict)


def tokenize(text: str) -> list[str]:
    """
    Split a command line on spaces.

    Either quote character toggles a single "quoted" flag, so `"` may be closed by `'`.
    While the flag is set, spaces do not end the current token. Quote characters are
    dropped from the output and an unterminated quote still flushes the last token.
    """
    tokens: list[str] = []
    current: list[str] = []
    in_quote = False

    for ch in text:
        if ch in _QUOTES:
            in_quote = not in_quote
        elif ch == " " and not in_quote:
            if current:
                tokens.append("".join(current))
                current = []
        else:
            current.append(ch)

    if current:
        tokens.append("".join(current))
    return tokens


def is_option_keyword(token: str) -> bool:
    return token.lower() in OPTION_KEYWORDS


def parse_command(text: str) -> ParsedCommand:
    """
    Parse a command line into ParsedCommand.

    Token 0 is the command name. A known option keyword followed by another token
    consumes that token as its value; a keyword at the very end is a plain argument.
    """
    tokens = tokenize(text)
    if not tokens:
        return ParsedCommand(command="")

    args: list[str] = []
    options: dict[str, str] = {}

    i = 1
    while i < len(tokens):
        token = tokens[i]
        if is_option_keyword(token) and i + 1 < len(tokens):
            options[token.lower()] = tokens[i + 1]
            i += 2
        else:
            args.append(token)
            i += 1

    return ParsedCommand(command=tokens[0], args=tuple(args), options=options)
