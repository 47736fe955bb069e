"""Grid world model: tiles, fog of war, doors and enemies."""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from pathlib import Path

from robogrid.sim.contracts import EnemyDirection, LevelSpec, Position
from robogrid.sim.strategies import (
    MovementStrategy,
    StrategyRegistry,
    TextLoader,
)

logger = logging.getLogger(__name__)

ORTHOGONAL: tuple[Position, ...] = ((-1, 0), (1, 0), (0, -1), (0, 1))

RANDOM_LEVEL_ENEMIES = 3
ENEMY_MIN_START_DISTANCE = 3
_MAX_PLACEMENT_ATTEMPTS = 1000


@dataclass
class Enemy:
    position: Position
    direction: EnemyDirection
    moving_positive: bool
    movement_pattern: str | None
    strategy: MovementStrategy

    @property
    def scratch(self) -> dict[str, object]:
        return self.strategy.scratch()


@dataclass
class Grid:
    width: int
    height: int
    known: set[Position] = field(default_factory=set)
    visited: set[Position] = field(default_factory=set)
    blockers: set[Position] = field(default_factory=set)
    doors: set[Position] = field(default_factory=set)
    open_doors: set[Position] = field(default_factory=set)
    enemies: list[Enemy] = field(default_factory=list)
    fog_of_war: bool = True
    income_per_square: int = 1
    registry: StrategyRegistry = field(default_factory=StrategyRegistry)

    @classmethod
    def from_level_spec(
        cls,
        spec: LevelSpec,
        rng: random.Random,
        *,
        resource_root: Path | None = None,
        loader: TextLoader | None = None,
    ) -> "Grid":
        grid = cls(
            width=spec.width,
            height=spec.height,
            fog_of_war=spec.fog_of_war,
            income_per_square=spec.income_per_square,
        )
        grid.blockers.update(spec.blockers)
        grid.doors.update(spec.doors)

        for enemy_spec in spec.enemies:
            index = len(grid.enemies)
            pattern = enemy_spec.movement_pattern
            if pattern and pattern.startswith("file:"):
                path = Path(pattern[len("file:") :])
                if resource_root is not None and not path.is_absolute():
                    path = resource_root / path
                grid.registry.load_from_file(
                    f"custom_{index}", path, loader=loader
                )
            grid.enemies.append(
                Enemy(
                    position=enemy_spec.position,
                    direction=enemy_spec.direction,
                    moving_positive=enemy_spec.moving_positive,
                    movement_pattern=pattern,
                    strategy=grid.registry.resolve(
                        index,
                        pattern,
                        direction=enemy_spec.direction,
                        moving_positive=enemy_spec.moving_positive,
                    ),
                )
            )

        if not spec.blockers:
            reserved = {spec.start}
            reserved.update(
                item.position for item in spec.items if item.position is not None
            )
            if "Level 3" in spec.name:
                grid._scatter_blockers(rng, reserved, (grid.width * grid.height) // 8)
            elif "Level 4" in spec.name:
                grid._scatter_blockers(rng, reserved, (grid.width * grid.height) // 12)
                if not spec.enemies:
                    grid._spawn_random_enemies(rng, spec.start)

        if not grid.fog_of_war:
            grid.known.update(
                (x, y) for x in range(grid.width) for y in range(grid.height)
            )
        return grid

    def in_bounds(self, pos: Position) -> bool:
        x, y = pos
        return 0 <= x < self.width and 0 <= y < self.height

    def reveal(self, pos: Position) -> bool:
        if not self.in_bounds(pos) or pos in self.known:
            return False
        self.known.add(pos)
        return True

    def reveal_adjacent(self, center: Position) -> int:
        revealed = int(self.reveal(center))
        cx, cy = center
        for dx, dy in ORTHOGONAL:
            if self.reveal((cx + dx, cy + dy)):
                revealed += 1
        return revealed

    def visit(self, pos: Position) -> None:
        if self.in_bounds(pos):
            self.visited.add(pos)

    def is_blocked(self, pos: Position) -> bool:
        return pos in self.blockers or (
            pos in self.doors and pos not in self.open_doors
        )

    def is_blocked_with_removals(
        self, pos: Position, removed: dict[Position, int]
    ) -> bool:
        if pos in removed:
            return False
        return self.is_blocked(pos)

    def is_door(self, pos: Position) -> bool:
        return pos in self.doors

    def is_door_open(self, pos: Position) -> bool:
        return pos in self.doors and pos in self.open_doors

    def open_door(self, pos: Position) -> bool:
        if pos not in self.doors:
            return False
        self.open_doors.add(pos)
        return True

    def close_door(self, pos: Position) -> bool:
        if pos not in self.doors:
            return False
        self.open_doors.discard(pos)
        return True

    def enemy_at(self, pos: Position) -> int | None:
        for index, enemy in enumerate(self.enemies):
            if enemy.position == pos:
                return index
        return None

    def is_occupied(self, pos: Position) -> bool:
        return self.enemy_at(pos) is not None

    def is_free(self, pos: Position) -> bool:
        """True if an enemy may step onto `pos`."""
        return (
            self.in_bounds(pos) and not self.is_blocked(pos) and not self.is_occupied(pos)
        )

    def check_enemy_collision(self, robot_pos: Position) -> bool:
        return self.is_occupied(robot_pos)

    def walkable_count(self) -> int:
        return self.width * self.height - len(self.blockers)

    def _scatter_blockers(
        self, rng: random.Random, reserved: set[Position], attempts: int
    ) -> None:
        for _ in range(attempts):
            pos = (rng.randrange(self.width), rng.randrange(self.height))
            if pos in reserved or pos in self.blockers or pos in self.doors:
                continue
            if self.is_occupied(pos):
                continue
            self.blockers.add(pos)

    def _spawn_random_enemies(self, rng: random.Random, start: Position) -> None:
        if self.width < 5 or self.height < 5:
            logger.debug("Grid too small for random enemies: %sx%s", self.width, self.height)
            return
        for _ in range(RANDOM_LEVEL_ENEMIES):
            for _ in range(_MAX_PLACEMENT_ATTEMPTS):
                pos = (
                    rng.randrange(2, self.width - 2),
                    rng.randrange(2, self.height - 2),
                )
                if (
                    pos == start
                    or pos in self.blockers
                    or self.is_occupied(pos)
                    or manhattan_distance(pos, start) <= ENEMY_MIN_START_DISTANCE
                ):
                    continue
                direction = (
                    EnemyDirection.HORIZONTAL
                    if rng.random() < 0.5
                    else EnemyDirection.VERTICAL
                )
                moving_positive = rng.random() < 0.5
                index = len(self.enemies)
                self.enemies.append(
                    Enemy(
                        position=pos,
                        direction=direction,
                        moving_positive=moving_positive,
                        movement_pattern=None,
                        strategy=self.registry.resolve(
                            index,
                            None,
                            direction=direction,
                            moving_positive=moving_positive,
                        ),
                    )
                )
                break


def manhattan_distance(a: Position, b: Position) -> int:
    return abs(a[0] - b[0]) + abs(a[1] - b[1])
