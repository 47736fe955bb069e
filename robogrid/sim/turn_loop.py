"""Turn simulator: applies script commands to the robot and the world."""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Iterable, Iterator

from robogrid.sim.completion import (
    CompletionRule,
    CompletionSignals,
    DEFAULT_INSTRUCTIONS,
    fallback_complete,
    is_satisfied,
    parse_completion_flag,
)
from robogrid.sim.contracts import (
    Command,
    CommandKind,
    EnemySnapshot,
    Event,
    ItemSnapshot,
    LevelSpec,
    Position,
    StateSnapshot,
    TurnPayload,
)
from robogrid.sim.functions import (
    ENEMY_LEVEL_INDEX,
    SCANNER_ITEM,
    available_functions,
    visible_functions,
)
from robogrid.sim.grid import Grid
from robogrid.sim.items import Item, ItemManager, build_item
from robogrid.sim.robot import Robot
from robogrid.sim.script_parser import NO_CALLS_MESSAGE, parse_script
from robogrid.sim.strategies import TextLoader, advance_enemies

logger = logging.getLogger(__name__)

NOT_AVAILABLE_MESSAGE = "Function not available"
BLOCKED_MESSAGE = "Unknown Object Blocking Function"
COLLISION_MESSAGE = "ENEMY COLLISION! Level reset and randomized."
HALT_MESSAGE = "EXECUTION HALTED! Rewrite your program to avoid obstacles."
SEARCH_START_BLOCKED = "Search blocked by obstacle - cannot reach starting position"
BLOCKED_SENTINELS = (BLOCKED_MESSAGE, "blocked by obstacle", "Search blocked")

STUN_TURNS = 5
OBSTACLE_REMOVAL_TURNS = 2
SEARCH_HOMING_LIMIT = 100
SEARCH_SWEEP_LIMIT = 200
DEFAULT_TIME_SLOW_MS = 500


def is_blocked_result(result: str) -> bool:
    return any(sentinel in result for sentinel in BLOCKED_SENTINELS)


@dataclass
class ScriptReport:
    commands: list[Command]
    results: list[str] = field(default_factory=list)
    executed: int = 0
    halted: bool = False
    collided: bool = False
    completed: bool = False

    @property
    def summary(self) -> str:
        return "; ".join(self.results)


class GameSession:
    """Owns the grid, robot and turn counters for one player.

    All mutation happens synchronously inside `execute_command`; the robot's
    own effect is applied before the enemies tick.
    """

    def __init__(
        self,
        levels: list[LevelSpec],
        *,
        rng: random.Random | None = None,
        seed: int | None = None,
        start_level: int = 0,
        resource_root: Path | None = None,
        loader: TextLoader | None = None,
    ) -> None:
        if not levels:
            raise ValueError("no levels")
        self.levels = list(levels)
        self.rng = rng or random.Random(seed)
        self.resource_root = resource_root
        self.loader = loader

        self.level_idx = start_level
        self.credits = 0
        self.batches = 0
        self.execution_result = ""
        self.time_slow_active = False
        self.time_slow_duration_ms = DEFAULT_TIME_SLOW_MS
        self.robot: Robot | None = None
        self._collided = False
        self._events: list[Event] = []
        self.load_level(start_level)

    @property
    def spec(self) -> LevelSpec:
        return self.levels[self.level_idx]

    def load_level(self, idx: int, *, progress: Robot | None = None) -> None:
        spec = self.levels[idx]
        carried = progress if progress is not None else self.robot
        grid = Grid.from_level_spec(
            spec, self.rng, resource_root=self.resource_root, loader=self.loader
        )
        robot = Robot.carrying(spec.start, carried)
        grid.visit(spec.start)
        grid.reveal_adjacent(spec.start)

        items = ItemManager()
        for item_spec in spec.items:
            if item_spec.position is None:
                logger.debug("Skipping unplaced item %s", item_spec.name)
                continue
            if item_spec.name == SCANNER_ITEM and robot.has_item(SCANNER_ITEM):
                continue
            items.add(
                build_item(
                    item_spec,
                    item_spec.position,
                    resource_root=self.resource_root,
                    loader=self.loader,
                )
            )

        self.level_idx = idx
        self.grid = grid
        self.robot = robot
        self.items = items
        self.rule: CompletionRule | None = parse_completion_flag(spec.completion_flag)
        self.turns = 0
        self.max_turns = spec.max_turns
        self.discovered_this_level = 0
        self.finished = False
        self.enemy_step_paused = False
        self.stunned_enemies: dict[int, int] = {}
        self.temporarily_removed_obstacles: dict[Position, int] = {}
        self.println_outputs: list[str] = []
        self.error_outputs: list[str] = []
        self.panic_occurred = False
        self.time_slow_active = False
        self.time_slow_duration_ms = DEFAULT_TIME_SLOW_MS
        self._entry_robot = Robot.carrying(spec.start, robot)
        self._entry_credits = self.credits
        logger.info("Loaded level %s: %s", idx + 1, spec.name)

    def reload_level(self) -> None:
        self.credits = self._entry_credits
        self.load_level(self.level_idx, progress=self._entry_robot)

    def completion_instructions(self) -> str:
        if self.spec.completion_message:
            return self.spec.completion_message
        if self.rule is None:
            return DEFAULT_INSTRUCTIONS
        return self.rule.instructions()

    def available_functions(self) -> list[CommandKind]:
        return available_functions(self.level_idx, self.robot)

    # Script execution

    def execute_script(self, code: str) -> ScriptReport:
        commands = parse_script(code)
        report = ScriptReport(commands=commands)
        self._events = []
        if not commands:
            report.results.append(NO_CALLS_MESSAGE)
            self.execution_result = NO_CALLS_MESSAGE
            self.batches += 1
            return report

        for command in commands:
            was_finished = self.finished
            result = self.execute_command(command)
            report.executed += 1
            if self._collided:
                report.collided = True
                report.results.append(COLLISION_MESSAGE)
                break
            report.results.append(result)
            if self.finished and not was_finished:
                report.completed = True
                report.results.append(
                    self.spec.achievement_message or "Level completed!"
                )
            if is_blocked_result(result):
                report.halted = True
                report.results.append(HALT_MESSAGE)
                self._events.append(Event(kind="HALT", payload={"after": result}))
                break
            if command.kind == CommandKind.PANIC:
                break

        self.execution_result = report.summary
        self.batches += 1
        return report

    def execute_command(self, command: Command) -> str:
        self._collided = False
        if command.kind not in self.available_functions():
            result = NOT_AVAILABLE_MESSAGE
        else:
            result = self._handlers[command.kind](self, command)
            if self._collided:
                result = COLLISION_MESSAGE
            else:
                self.check_end_condition()
        self._events.append(Event(kind=command.kind.value, payload={"result": result}))
        return result

    # Command handlers

    def _handle_move(self, command: Command) -> str:
        if self.finished:
            return "Level already complete."
        return self._perform_move(command.direction)

    def _handle_grab(self, command: Command) -> str:
        result = self._grab()
        self._end_turn()
        return result

    def _handle_scan(self, command: Command) -> str:
        revealed_any = False
        positions = self.robot.scanner_positions(
            command.direction, self.grid.width, self.grid.height
        )
        for pos in positions:
            if self._is_blocked(pos):
                return BLOCKED_MESSAGE
            if self.grid.reveal(pos):
                revealed_any = True
                self.discovered_this_level += 1
        self._end_turn()
        return "Scan complete." if revealed_any else "Scan found nothing."

    def _handle_search_all(self, command: Command) -> str:
        self.enemy_step_paused = True
        try:
            return self._search_all()
        finally:
            self.enemy_step_paused = False

    def _handle_auto_grab(self, command: Command) -> str:
        self.robot.auto_grab_enabled = bool(command.flag)
        if self.robot.auto_grab_enabled:
            return "Auto-grab enabled - will grab items when moving onto squares with items"
        return "Auto-grab disabled"

    def _handle_laser_direction(self, command: Command) -> str:
        result = self.fire_laser_direction(command.direction)
        self._end_turn()
        return result

    def _handle_laser_tile(self, command: Command) -> str:
        result = self.fire_laser_tile(command.coordinates)
        self._end_turn()
        return result

    def _handle_open_door(self, command: Command) -> str:
        result = self.toggle_door(bool(command.flag))
        self._end_turn()
        return result

    def _handle_skip_level(self, command: Command) -> str:
        if self.level_idx + 1 >= len(self.levels):
            return "Already at the last level!"
        self.load_level(self.level_idx + 1)
        return f"Skipped to level {self.level_idx + 1}!"

    def _handle_goto_level(self, command: Command) -> str:
        target = command.level_number
        if target is None or not 1 <= target <= len(self.levels):
            return f"Invalid level number {target}. Valid range: 1-{len(self.levels)}"
        self.load_level(target - 1)
        return f"Jumped to level {target}!"

    def _handle_println(self, command: Command) -> str:
        text = command.message or ""
        self.println_outputs.append(text)
        return text

    def _handle_eprintln(self, command: Command) -> str:
        text = command.message or ""
        self.error_outputs.append(text)
        return f"Error: {text}"

    def _handle_panic(self, command: Command) -> str:
        self.panic_occurred = True
        return f"panicked: {command.message or 'explicit panic'}"

    _handlers: dict[CommandKind, Callable[["GameSession", Command], str]] = {
        CommandKind.MOVE: _handle_move,
        CommandKind.GRAB: _handle_grab,
        CommandKind.SCAN: _handle_scan,
        CommandKind.SEARCH_ALL: _handle_search_all,
        CommandKind.SET_AUTO_GRAB: _handle_auto_grab,
        CommandKind.LASER_DIRECTION: _handle_laser_direction,
        CommandKind.LASER_TILE: _handle_laser_tile,
        CommandKind.OPEN_DOOR: _handle_open_door,
        CommandKind.SKIP_LEVEL: _handle_skip_level,
        CommandKind.GOTO_LEVEL: _handle_goto_level,
        CommandKind.PRINTLN: _handle_println,
        CommandKind.EPRINTLN: _handle_eprintln,
        CommandKind.PANIC: _handle_panic,
    }

    # Movement and interaction

    def _perform_move(self, delta: Position) -> str:
        x, y = self.robot.position
        target = (x + delta[0], y + delta[1])
        self.turns += 1

        if not self.grid.in_bounds(target):
            return BLOCKED_MESSAGE
        if self._is_blocked(target):
            self.grid.reveal_adjacent(self.robot.position)
            return BLOCKED_MESSAGE

        self.robot.position = target
        self.grid.visit(target)
        self.grid.reveal_adjacent(target)
        if self._check_collision():
            return COLLISION_MESSAGE

        if self.robot.auto_grab_enabled and self._has_grabbable():
            self._grab()
        self._end_turn()
        if self._collided:
            return COLLISION_MESSAGE
        return "Move executed"

    def _has_grabbable(self) -> bool:
        for pos in self.robot.grabber_positions(self.grid.width, self.grid.height):
            if pos not in self.grid.known or self.items.item_at(pos) is not None:
                return True
        return False

    def _grab(self) -> str:
        found: list[Item] = []
        for pos in self.robot.grabber_positions(self.grid.width, self.grid.height):
            item = self.items.collect_at(pos)
            if item is not None:
                found.append(item)
                self._apply_item(item)

        grabbed = 0
        for pos in self.robot.grabber_positions(self.grid.width, self.grid.height):
            if self.grid.reveal(pos):
                grabbed += 1
                self.discovered_this_level += 1
        self.credits += grabbed * self.grid.income_per_square

        if found:
            self._events.append(
                Event(kind="ITEMS_COLLECTED", payload={"items": [i.name for i in found]})
            )
        if found and grabbed:
            return "Grabbed items and unknown tiles for credits!"
        if found:
            return "Grabbed items!"
        if grabbed:
            return "Grabbed unknown tiles for credits."
        return "Nothing to grab."

    def _apply_item(self, item: Item) -> None:
        caps = item.capabilities
        self.robot.add_to_inventory(item.name)
        if item.name == SCANNER_ITEM:
            self.robot.set_scanner_level(max(1, caps.scanner_range or 1))
        elif caps.scanner_range:
            self.robot.set_scanner_level(
                max(self.robot.upgrades.scanner_level, caps.scanner_range)
            )
        if caps.grabber_boost:
            self.robot.upgrade_grabber(caps.grabber_boost)
        if caps.credits_value:
            self.credits += caps.credits_value
        if caps.time_slow_duration:
            self.time_slow_active = True
            self.time_slow_duration_ms = caps.time_slow_duration

    def _search_all(self) -> str:
        known_before = len(self.grid.known)

        def discovered() -> int:
            return len(self.grid.known) - known_before

        homing = 0
        for delta in ((0, -1), (-1, 0)):
            while homing < SEARCH_HOMING_LIMIT:
                x, y = self.robot.position
                if (delta == (0, -1) and y <= 0) or (delta == (-1, 0) and x <= 0):
                    break
                if self._is_blocked((x + delta[0], y + delta[1])):
                    return SEARCH_START_BLOCKED
                self._perform_move(delta)
                homing += 1
                if self._collided:
                    return COLLISION_MESSAGE

        going_right = True
        sweep = 0
        while sweep < SEARCH_SWEEP_LIMIT and not self._sweep_finished(going_right):
            x, y = self.robot.position
            side = (x + 1, y) if going_right else (x - 1, y)
            down = (x, y + 1)
            if self.grid.in_bounds(side) and not self._is_blocked(side):
                delta = (side[0] - x, 0)
            elif self.grid.in_bounds(down) and not self._is_blocked(down):
                delta = (0, 1)
                going_right = not going_right
            else:
                return (
                    "Lawnmower search blocked by obstacle! "
                    f"Discovered {discovered()} squares."
                )
            self._perform_move(delta)
            sweep += 1
            if self._collided:
                return COLLISION_MESSAGE

        if not self._sweep_finished(going_right):
            return (
                "Lawnmower search incomplete - too many moves! "
                f"Discovered {discovered()} squares."
            )
        return f"Lawnmower search complete! Discovered {discovered()} squares."

    def _sweep_finished(self, going_right: bool) -> bool:
        x, y = self.robot.position
        if y < self.grid.height - 1:
            return False
        return x >= self.grid.width - 1 if going_right else x <= 0

    def toggle_door(self, open_it: bool) -> str:
        door = self._door_near_robot()
        if door is None:
            return "Robot must be standing on or next to a door to open/close it."
        if open_it:
            if self.grid.is_door_open(door):
                return "Door is already open."
            self.grid.open_door(door)
            return "Door opened successfully!"
        if not self.grid.is_door_open(door):
            return "Door is already closed."
        self.grid.close_door(door)
        return "Door closed successfully!"

    def _door_near_robot(self) -> Position | None:
        x, y = self.robot.position
        for dx, dy in ((0, 0), (1, 0), (0, 1), (-1, 0), (0, -1)):
            pos = (x + dx, y + dy)
            if self.grid.is_door(pos):
                return pos
        return None

    # Laser subsystem

    def fire_laser_direction(self, direction: Position) -> str:
        x, y = self.robot.position
        reach = self.robot.upgrades.attack_range
        travelled = 0
        while True:
            x, y = x + direction[0], y + direction[1]
            travelled += 1
            if not self.grid.in_bounds((x, y)):
                return "Laser fired but hit the edge of the grid."
            outcome = self._laser_hit((x, y))
            if outcome is not None:
                return outcome
            if reach and travelled >= reach:
                return "Laser fired but hit nothing within range."

    def fire_laser_tile(self, target: Position) -> str:
        if not self.grid.in_bounds(target):
            return "Target coordinates are outside the grid."
        outcome = self._laser_hit(target)
        if outcome is not None:
            return outcome
        return f"Laser fired at ({target[0]}, {target[1]}) but hit empty space."

    def _laser_hit(self, pos: Position) -> str | None:
        enemy = self.grid.enemy_at(pos)
        if enemy is not None:
            self.stunned_enemies[enemy] = STUN_TURNS
            return (
                f"Laser hit enemy at ({pos[0]}, {pos[1]})! "
                f"Enemy stunned for {STUN_TURNS} turns."
            )
        if self._is_blocked(pos):
            self.temporarily_removed_obstacles[pos] = OBSTACLE_REMOVAL_TURNS
            return (
                f"Laser hit obstacle at ({pos[0]}, {pos[1]})! "
                f"Obstacle destroyed for {OBSTACLE_REMOVAL_TURNS} turns."
            )
        return None

    def update_status_effects(self) -> None:
        self.stunned_enemies = {
            index: turns - 1
            for index, turns in self.stunned_enemies.items()
            if turns > 1
        }
        self.temporarily_removed_obstacles = {
            pos: turns - 1
            for pos, turns in self.temporarily_removed_obstacles.items()
            if turns > 1
        }

    # Turn bookkeeping

    def _is_blocked(self, pos: Position) -> bool:
        return self.grid.is_blocked_with_removals(
            pos, self.temporarily_removed_obstacles
        )

    def _end_turn(self) -> None:
        if self.level_idx >= ENEMY_LEVEL_INDEX and not self.enemy_step_paused:
            moves = advance_enemies(
                self.grid,
                self.rng,
                player_pos=self.robot.position,
                stunned=self.stunned_enemies,
            )
            for index, old, new in moves:
                self._events.append(
                    Event(
                        kind="ENEMY_MOVE",
                        payload={"enemy": index, "from": list(old), "to": list(new)},
                    )
                )
            if self._check_collision():
                return
        self.update_status_effects()

    def _check_collision(self) -> bool:
        if self.level_idx < ENEMY_LEVEL_INDEX:
            return False
        if not self.grid.check_enemy_collision(self.robot.position):
            return False
        logger.info("Enemy collision on level %s; reloading", self.level_idx + 1)
        self.reload_level()
        self.execution_result = COLLISION_MESSAGE
        self._collided = True
        self._events.append(Event(kind="COLLISION", payload={"level": self.level_idx}))
        return True

    def check_end_condition(self) -> None:
        if self.finished:
            return
        if self.rule is not None:
            done = is_satisfied(self.rule, self.completion_signals())
        else:
            walkable = self.grid.walkable_count()
            known_walkable = sum(
                1 for pos in self.grid.known if pos not in self.grid.blockers
            )
            done = fallback_complete(
                level_has_items=bool(self.items.items),
                active_items=len(self.items.active_items()),
                known_walkable=known_walkable,
                walkable=walkable,
                turns=self.turns,
                max_turns=self.max_turns,
            )
        if done:
            self.finish_level()

    def completion_signals(self) -> CompletionSignals:
        return CompletionSignals(
            println_outputs=tuple(self.println_outputs),
            error_outputs=tuple(self.error_outputs),
            panic_occurred=self.panic_occurred,
            inventory_size=len(self.robot.inventory),
            turns=self.turns,
        )

    def finish_level(self) -> None:
        self.finished = True
        self.credits += self.discovered_this_level
        self._events.append(
            Event(
                kind="LEVEL_COMPLETE",
                payload={"level": self.level_idx, "name": self.spec.name},
            )
        )
        logger.info("Level %s complete", self.level_idx + 1)

    # Snapshots

    def snapshot(self) -> StateSnapshot:
        return StateSnapshot(
            level_index=self.level_idx,
            level_name=self.spec.name,
            width=self.grid.width,
            height=self.grid.height,
            robot_position=self.robot.position,
            known=sorted(self.grid.known),
            blockers=sorted(self.grid.blockers),
            doors=sorted(self.grid.doors),
            open_doors=sorted(self.grid.open_doors),
            removed_obstacles=sorted(self.temporarily_removed_obstacles),
            enemies=[
                EnemySnapshot(
                    index=index,
                    position=enemy.position,
                    pattern=enemy.strategy.tag,
                    stunned_turns=self.stunned_enemies.get(index, 0),
                    scratch=enemy.scratch,
                )
                for index, enemy in enumerate(self.grid.enemies)
            ],
            items=[
                ItemSnapshot(name=item.name, position=item.position)
                for item in self.items.active_items()
            ],
            inventory=sorted(self.robot.inventory),
            credits=self.credits,
            turns=self.turns,
            max_turns=self.max_turns,
            auto_grab_enabled=self.robot.auto_grab_enabled,
            finished=self.finished,
            available_functions=visible_functions(self.level_idx, self.robot),
        )

    def payload(self) -> TurnPayload:
        return TurnPayload(
            turn=self.batches,
            execution_result=self.execution_result,
            state=self.snapshot(),
            events=list(self._events) or None,
        )


def run_scripts(session: GameSession, scripts: Iterable[str]) -> Iterator[TurnPayload]:
    """Execute each script as one batch and yield the settled state."""
    for code in scripts:
        session.execute_script(code)
        yield session.payload()
