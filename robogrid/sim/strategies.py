"""Enemy movement strategies and the registry that binds them to enemies.

Every strategy instance belongs to exactly one enemy and keeps that enemy's
private scratch state (direction counters, spawn point, chase flag) as plain
dataclass fields. A strategy only ever mutates itself; the grid and the other
enemies are read-only from its point of view.
"""

from __future__ import annotations

import logging
import random
import re
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Callable, ClassVar, Mapping

from robogrid.sim.contracts import EnemyDirection, Position

if TYPE_CHECKING:
    from robogrid.sim.grid import Grid

logger = logging.getLogger(__name__)

# Right, down, left, up.
CLOCKWISE: tuple[Position, ...] = ((1, 0), (0, 1), (-1, 0), (0, -1))
CARDINALS: tuple[Position, ...] = ((0, 1), (0, -1), (1, 0), (-1, 0))

RANDOM_ATTEMPTS = 10
GUARD_RADIUS = 3

TextLoader = Callable[[Path], str]

_SENTINEL = re.compile(r"^\s*//\s*MOVEMENT_PATTERN:\s*([A-Za-z_]+)", re.MULTILINE)


def _step(pos: Position, delta: Position) -> Position:
    return (pos[0] + delta[0], pos[1] + delta[1])


class MovementStrategy:
    tag: ClassVar[str] = "none"

    def next_move(
        self,
        current: Position,
        grid: "Grid",
        *,
        rng: random.Random,
        player_pos: Position | None = None,
    ) -> Position | None:
        return None

    def scratch(self) -> dict[str, object]:
        return asdict(self) if hasattr(self, "__dataclass_fields__") else {}


@dataclass
class BounceStrategy(MovementStrategy):
    """Walks along one axis and reverses when the next tile is not free."""

    axis: Position
    moving_positive: bool = True

    @property
    def tag(self) -> str:  # type: ignore[override]
        return {
            (1, 0): "horizontal",
            (0, 1): "vertical",
        }.get(self.axis, "diagonal")

    def next_move(
        self,
        current: Position,
        grid: "Grid",
        *,
        rng: random.Random,
        player_pos: Position | None = None,
    ) -> Position | None:
        nxt = _step(current, self._delta())
        if grid.is_free(nxt):
            return nxt
        self.moving_positive = not self.moving_positive
        nxt = _step(current, self._delta())
        if grid.is_free(nxt):
            return nxt
        return None

    def _delta(self) -> Position:
        sign = 1 if self.moving_positive else -1
        return (self.axis[0] * sign, self.axis[1] * sign)


@dataclass
class RandomStrategy(MovementStrategy):
    tag: ClassVar[str] = "random"

    def next_move(
        self,
        current: Position,
        grid: "Grid",
        *,
        rng: random.Random,
        player_pos: Position | None = None,
    ) -> Position | None:
        for _ in range(RANDOM_ATTEMPTS):
            nxt = _step(current, rng.choice(CARDINALS))
            if grid.is_free(nxt):
                return nxt
        return None


@dataclass
class CircularStrategy(MovementStrategy):
    direction_index: int = 0

    tag: ClassVar[str] = "circular"

    def next_move(
        self,
        current: Position,
        grid: "Grid",
        *,
        rng: random.Random,
        player_pos: Position | None = None,
    ) -> Position | None:
        nxt = _step(current, CLOCKWISE[self.direction_index % len(CLOCKWISE)])
        if grid.is_free(nxt):
            return nxt
        self.direction_index = (self.direction_index + 1) % len(CLOCKWISE)
        nxt = _step(current, CLOCKWISE[self.direction_index])
        if grid.is_free(nxt):
            return nxt
        return None


@dataclass
class SpiralStrategy(MovementStrategy):
    """Square spiral whose legs grow by one every second turn: 1, 1, 2, 2, 3, 3, ..."""

    direction_index: int = 0
    steps_in_direction: int = 1
    current_step: int = 0

    tag: ClassVar[str] = "spiral"

    def next_move(
        self,
        current: Position,
        grid: "Grid",
        *,
        rng: random.Random,
        player_pos: Position | None = None,
    ) -> Position | None:
        nxt = _step(current, CLOCKWISE[self.direction_index % len(CLOCKWISE)])
        if not grid.is_free(nxt):
            return None

        self.current_step += 1
        if self.current_step >= self.steps_in_direction:
            self.direction_index = (self.direction_index + 1) % len(CLOCKWISE)
            if self.direction_index % 2 == 0:
                self.steps_in_direction += 1
            self.current_step = 0
        return nxt


@dataclass
class ChaseStrategy(MovementStrategy):
    is_chasing: bool = False

    tag: ClassVar[str] = "chase"

    def next_move(
        self,
        current: Position,
        grid: "Grid",
        *,
        rng: random.Random,
        player_pos: Position | None = None,
    ) -> Position | None:
        self.is_chasing = False
        if player_pos is None:
            return None

        dx = _sign(player_pos[0] - current[0])
        dy = _sign(player_pos[1] - current[1])
        if (dx, dy) != (0, 0):
            preferred = _step(current, (dx, dy))
            if grid.is_free(preferred):
                self.is_chasing = True
                return preferred

        fallbacks = [(dx, 0), (0, dy), (1, 0), (-1, 0), (0, 1), (0, -1)]
        for delta in fallbacks:
            if delta == (0, 0):
                continue
            candidate = _step(current, delta)
            if grid.is_free(candidate):
                return candidate
        return None


@dataclass
class GuardStrategy(MovementStrategy):
    direction_index: int = 0
    center_x: int | None = None
    center_y: int | None = None

    tag: ClassVar[str] = "guard"

    def next_move(
        self,
        current: Position,
        grid: "Grid",
        *,
        rng: random.Random,
        player_pos: Position | None = None,
    ) -> Position | None:
        if self.center_x is None or self.center_y is None:
            self.center_x, self.center_y = current

        nxt = _step(current, CLOCKWISE[self.direction_index % len(CLOCKWISE)])
        distance = abs(nxt[0] - self.center_x) + abs(nxt[1] - self.center_y)
        if distance <= GUARD_RADIUS and grid.is_free(nxt):
            return nxt
        self.direction_index = (self.direction_index + 1) % len(CLOCKWISE)
        return None


StrategyFactory = Callable[[bool], MovementStrategy]

BUILTIN_STRATEGIES: Mapping[str, StrategyFactory] = {
    "horizontal": lambda positive: BounceStrategy(axis=(1, 0), moving_positive=positive),
    "vertical": lambda positive: BounceStrategy(axis=(0, 1), moving_positive=positive),
    "diagonal": lambda positive: BounceStrategy(axis=(1, 1), moving_positive=positive),
    "random": lambda _positive: RandomStrategy(),
    "circular": lambda _positive: CircularStrategy(),
    "spiral": lambda _positive: SpiralStrategy(),
    "chase": lambda _positive: ChaseStrategy(),
    "guard": lambda _positive: GuardStrategy(),
}

# Kinds a pattern file may alias; the direction-based bounces are not aliasable.
SENTINEL_KINDS = ("random", "diagonal", "circular", "spiral", "chase", "guard")


def read_pattern_file(path: Path) -> str:
    return path.read_text(encoding="utf-8")


class StrategyRegistry:
    """Maps `custom_{enemy_index}` keys to the built-in kind a pattern file names."""

    def __init__(self) -> None:
        self._custom: dict[str, str] = {}

    def register(self, key: str, kind: str) -> None:
        if kind not in BUILTIN_STRATEGIES:
            raise ValueError(f"Unknown movement kind {kind!r}")
        self._custom[key] = kind

    def get(self, key: str) -> str | None:
        return self._custom.get(key)

    def keys(self) -> list[str]:
        return sorted(self._custom)

    def load_from_file(
        self, key: str, path: Path, *, loader: TextLoader | None = None
    ) -> bool:
        read = loader or read_pattern_file
        try:
            content = read(path)
        except OSError as exc:
            logger.warning("Failed to load movement pattern from %s: %s", path, exc)
            return False

        kind = sentinel_kind(content)
        if kind is None:
            logger.warning("No MOVEMENT_PATTERN sentinel in %s", path)
            return False
        self.register(key, kind)
        return True

    def resolve(
        self,
        index: int,
        pattern: str | None,
        *,
        direction: EnemyDirection,
        moving_positive: bool,
    ) -> MovementStrategy:
        kind: str | None = None
        if pattern is None:
            kind = None
        elif pattern.startswith("file:"):
            kind = self.get(f"custom_{index}")
        elif pattern in BUILTIN_STRATEGIES:
            kind = pattern
        else:
            logger.warning("Unknown movement pattern %r for enemy %s", pattern, index)

        if kind is None:
            kind = direction.value
        return BUILTIN_STRATEGIES[kind](moving_positive)


def sentinel_kind(content: str) -> str | None:
    for match in _SENTINEL.finditer(content):
        kind = match.group(1).lower()
        if kind in SENTINEL_KINDS:
            return kind
    return None


def advance_enemies(
    grid: "Grid",
    rng: random.Random,
    *,
    player_pos: Position | None,
    stunned: Mapping[int, int],
) -> list[tuple[int, Position, Position]]:
    """Tick every non-stunned enemy once, in list order.

    Returns `(index, old, new)` for every enemy that moved.
    """
    moves: list[tuple[int, Position, Position]] = []
    for index, enemy in enumerate(grid.enemies):
        if index in stunned:
            continue
        new_pos = enemy.strategy.next_move(
            enemy.position, grid, rng=rng, player_pos=player_pos
        )
        if isinstance(enemy.strategy, BounceStrategy):
            enemy.moving_positive = enemy.strategy.moving_positive
        if new_pos is None:
            continue
        moves.append((index, enemy.position, new_pos))
        enemy.position = new_pos
    return moves


def _sign(value: int) -> int:
    return (value > 0) - (value < 0)
