"""Which script functions a level currently allows."""

from __future__ import annotations

from robogrid.sim.contracts import CommandKind
from robogrid.sim.robot import Robot

SCANNER_ITEM = "scanner"
ENEMY_LEVEL_INDEX = 3

SIGNATURES: dict[CommandKind, str] = {
    CommandKind.MOVE: "move(up|down|left|right)",
    CommandKind.GRAB: "grab()",
    CommandKind.SCAN: "scan(up|down|left|right)",
    CommandKind.SEARCH_ALL: "search_all()",
    CommandKind.SET_AUTO_GRAB: "set_auto_grab(true|false)",
    CommandKind.LASER_DIRECTION: "laser_direction(up|down|left|right)",
    CommandKind.LASER_TILE: "laser_tile(x, y)",
    CommandKind.OPEN_DOOR: "open_door(true|false)",
    CommandKind.SKIP_LEVEL: "skip_level()",
    CommandKind.GOTO_LEVEL: "goto_level(n)",
    CommandKind.PRINTLN: 'println!("text")',
    CommandKind.EPRINTLN: 'eprintln!("text")',
    CommandKind.PANIC: 'panic!("text")',
}

# Navigation helpers stay callable but are not advertised to players.
HIDDEN_FUNCTIONS = {CommandKind.SKIP_LEVEL, CommandKind.GOTO_LEVEL}


def available_functions(level_index: int, robot: Robot) -> list[CommandKind]:
    available = [
        CommandKind.MOVE,
        CommandKind.GRAB,
        CommandKind.SEARCH_ALL,
        CommandKind.SET_AUTO_GRAB,
        CommandKind.OPEN_DOOR,
        CommandKind.PRINTLN,
        CommandKind.EPRINTLN,
        CommandKind.PANIC,
        CommandKind.SKIP_LEVEL,
        CommandKind.GOTO_LEVEL,
    ]
    if robot.has_item(SCANNER_ITEM):
        available.append(CommandKind.SCAN)
    if level_index >= ENEMY_LEVEL_INDEX or robot.upgrades.attack_range > 0:
        available.extend([CommandKind.LASER_DIRECTION, CommandKind.LASER_TILE])
    return available


def visible_functions(level_index: int, robot: Robot) -> list[str]:
    return [
        SIGNATURES[kind]
        for kind in available_functions(level_index, robot)
        if kind not in HIDDEN_FUNCTIONS
    ]
