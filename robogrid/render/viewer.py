"""Rich viewer rendering for TurnPayload."""

from __future__ import annotations

from rich.columns import Columns
from rich.console import Group, RenderableType
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from robogrid.sim.contracts import StateSnapshot, TurnPayload

TILE_STYLES = {
    "?": "grey35",
    ".": "grey70",
    "#": "bright_magenta",
    "+": "yellow",
    "/": "yellow3",
    "~": "blue",
    "*": "bright_yellow",
}
ROBOT_STYLE = "bold bright_cyan"
ENEMY_STYLE = "bold red"
STUNNED_STYLE = "grey50"


def render_turn(payload: TurnPayload, *, max_events: int = 8) -> RenderableType:
    header = Text(
        f"Batch {payload.turn} | {payload.state.level_name}", style="bold"
    )
    board = Panel(Group(*render_board_lines(payload.state)), title="Grid")
    result = Panel(Text(payload.execution_result or "-"), title="Result")
    left = Group(header, board, result)
    right = Group(_render_status(payload.state), _render_events(payload, max_events=max_events))
    return Columns([Panel(left, title="Level"), Panel(right, title="Robot")])


def render_board_lines(state: StateSnapshot) -> list[Text]:
    """One Text per row; unknown tiles stay hidden behind fog."""
    known = set(state.known)
    blockers = set(state.blockers)
    removed = set(state.removed_obstacles)
    doors = set(state.doors)
    open_doors = set(state.open_doors)
    items = {item.position for item in state.items}
    enemies = {enemy.position: enemy for enemy in state.enemies}

    lines: list[Text] = []
    for y in range(state.height):
        line = Text()
        for x in range(state.width):
            pos = (x, y)
            if pos == state.robot_position:
                line.append("R", style=ROBOT_STYLE)
                continue
            if pos in enemies:
                style = STUNNED_STYLE if enemies[pos].stunned_turns else ENEMY_STYLE
                line.append("E", style=style)
                continue
            if pos not in known:
                symbol = "?"
            elif pos in removed:
                symbol = "~"
            elif pos in blockers:
                symbol = "#"
            elif pos in doors:
                symbol = "/" if pos in open_doors else "+"
            elif pos in items:
                symbol = "*"
            else:
                symbol = "."
            line.append(symbol, style=TILE_STYLES[symbol])
        lines.append(line)
    return lines


def _render_status(state: StateSnapshot) -> RenderableType:
    table = Table(show_header=False)
    table.add_column("Field")
    table.add_column("Value")
    table.add_row("Level", str(state.level_index + 1))
    table.add_row("Position", f"({state.robot_position[0]}, {state.robot_position[1]})")
    turns = str(state.turns)
    if state.max_turns:
        turns = f"{state.turns}/{state.max_turns}"
    table.add_row("Turns", turns)
    table.add_row("Credits", str(state.credits))
    table.add_row("Inventory", ", ".join(state.inventory) or "None")
    table.add_row("Auto-grab", "on" if state.auto_grab_enabled else "off")
    table.add_row("Complete", "yes" if state.finished else "no")
    table.add_row("Functions", "\n".join(state.available_functions))
    return Panel(table, title="Status")


def _render_events(payload: TurnPayload, *, max_events: int) -> RenderableType:
    table = Table(title="Recent Events", show_header=True, header_style="bold")
    table.add_column("Kind")
    table.add_column("Detail")

    events = payload.events or []
    for event in events[-max_events:]:
        table.add_row(event.kind, _format_payload(event.payload))
    if not events:
        table.add_row("-", "None")
    return table


def _format_payload(payload: dict) -> str:
    if not payload:
        return "-"
    return ", ".join(f"{key}={value}" for key, value in payload.items())
