"""Simulation core: world model, script parsing and turn execution."""

from robogrid.sim.completion import CompletionRule, parse_completion_flag
from robogrid.sim.contracts import (
    Command,
    CommandKind,
    EnemyDirection,
    EnemySpec,
    Event,
    ItemCapabilitySpec,
    ItemSpec,
    LevelSpec,
    StateSnapshot,
    TurnPayload,
    coerce_command,
)
from robogrid.sim.grid import Enemy, Grid
from robogrid.sim.level_loader import load_levels
from robogrid.sim.robot import Robot
from robogrid.sim.script_parser import parse_script
from robogrid.sim.strategies import StrategyRegistry, advance_enemies
from robogrid.sim.turn_loop import GameSession, run_scripts

__all__ = [
    "Command",
    "CommandKind",
    "CompletionRule",
    "Enemy",
    "EnemyDirection",
    "EnemySpec",
    "Event",
    "GameSession",
    "Grid",
    "ItemCapabilitySpec",
    "ItemSpec",
    "LevelSpec",
    "Robot",
    "StateSnapshot",
    "StrategyRegistry",
    "TurnPayload",
    "advance_enemies",
    "coerce_command",
    "load_levels",
    "parse_completion_flag",
    "parse_script",
    "run_scripts",
]
