"""Lenient parser for robot scripts.

Each non-blank, non-comment line yields at most one command: the leftmost
recognised call whose arguments make sense. Anything else on the line, and
any line without a usable call, is ignored.
"""

from __future__ import annotations

import re
from typing import Callable

from robogrid.sim.contracts import Command, CommandKind, Position

DIRECTIONS: dict[str, Position] = {
    "up": (0, -1),
    "down": (0, 1),
    "left": (-1, 0),
    "right": (1, 0),
}
BOOLEANS: dict[str, bool] = {"true": True, "false": False}

NO_CALLS_MESSAGE = "No valid function calls found"

_CALL = re.compile(
    r"(?<![A-Za-z0-9_])"
    r"(?P<name>println!|eprintln!|panic!|println|eprintln|panic|search_all|"
    r"set_auto_grab|laser_direction|laser_tile|open_door|skip_level|goto_level|"
    r"move|grab|scan)\s*\("
)
_STRING = re.compile(r'\s*"(?P<text>(?:[^"\\]|\\.)*)"')
_INT_PAIR = re.compile(r"^\s*(-?\d+)\s*,\s*(-?\d+)\s*$")
_INT = re.compile(r"^\s*(\d+)\s*$")
_ESCAPES = {"n": "\n", "t": "\t", '"': '"', "\\": "\\"}

ArgParser = Callable[[str], Command | None]


def parse_script(code: str) -> list[Command]:
    commands: list[Command] = []
    for line in code.splitlines():
        trimmed = line.strip()
        if not trimmed or trimmed.startswith("//"):
            continue
        command = parse_line(trimmed)
        if command is not None:
            commands.append(command)
    return commands


def parse_line(line: str) -> Command | None:
    for match in _CALL.finditer(line):
        name = match.group("name")
        rest = line[match.end() :]
        if name.rstrip("!") in _PRINT_KINDS:
            command = _parse_print(_PRINT_KINDS[name.rstrip("!")], rest)
        else:
            close = rest.find(")")
            if close < 0:
                continue
            command = _SIMPLE_CALLS[name](rest[:close])
        if command is not None:
            return command
    return None


def parse_direction(token: str) -> Position | None:
    return DIRECTIONS.get(_unquote(token).lower())


def parse_bool(token: str) -> bool | None:
    return BOOLEANS.get(_unquote(token).lower())


def _unquote(token: str) -> str:
    token = token.strip()
    if len(token) >= 2 and token[0] == token[-1] and token[0] in "\"'":
        token = token[1:-1].strip()
    return token


def _directional(kind: CommandKind) -> ArgParser:
    def build(args: str) -> Command | None:
        direction = parse_direction(args)
        if direction is None:
            return None
        return Command(kind=kind, direction=direction)

    return build


def _toggle(kind: CommandKind) -> ArgParser:
    def build(args: str) -> Command | None:
        flag = parse_bool(args)
        if flag is None:
            return None
        return Command(kind=kind, flag=flag)

    return build


def _no_args(kind: CommandKind) -> ArgParser:
    def build(args: str) -> Command | None:
        if args.strip():
            return None
        return Command(kind=kind)

    return build


def _laser_tile(args: str) -> Command | None:
    match = _INT_PAIR.match(args)
    if not match:
        return None
    return Command(
        kind=CommandKind.LASER_TILE,
        coordinates=(int(match.group(1)), int(match.group(2))),
    )


def _goto_level(args: str) -> Command | None:
    match = _INT.match(args)
    if not match:
        return None
    return Command(kind=CommandKind.GOTO_LEVEL, level_number=int(match.group(1)))


def _parse_print(kind: CommandKind, rest: str) -> Command | None:
    literal = _STRING.match(rest)
    if literal:
        if ")" not in rest[literal.end() :]:
            return None
        text = _unescape(literal.group("text"))
    else:
        close = rest.find(")")
        if close < 0 or rest[:close].strip():
            return None
        text = ""
    if kind == CommandKind.PANIC:
        return Command(kind=kind, message=text or None)
    return Command(kind=kind, message=text)


def _unescape(text: str) -> str:
    return re.sub(r"\\(.)", lambda m: _ESCAPES.get(m.group(1), m.group(1)), text)


_PRINT_KINDS: dict[str, CommandKind] = {
    "println": CommandKind.PRINTLN,
    "eprintln": CommandKind.EPRINTLN,
    "panic": CommandKind.PANIC,
}

_SIMPLE_CALLS: dict[str, ArgParser] = {
    "move": _directional(CommandKind.MOVE),
    "scan": _directional(CommandKind.SCAN),
    "laser_direction": _directional(CommandKind.LASER_DIRECTION),
    "grab": _no_args(CommandKind.GRAB),
    "search_all": _no_args(CommandKind.SEARCH_ALL),
    "skip_level": _no_args(CommandKind.SKIP_LEVEL),
    "set_auto_grab": _toggle(CommandKind.SET_AUTO_GRAB),
    "open_door": _toggle(CommandKind.OPEN_DOOR),
    "laser_tile": _laser_tile,
    "goto_level": _goto_level,
}
