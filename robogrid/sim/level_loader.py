"""Load level definitions from a directory of JSON files."""

from __future__ import annotations

import json
import logging
import random
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from robogrid.sim.contracts import (
    EnemyDirection,
    EnemySpec,
    ItemSpec,
    LevelSpec,
    Position,
)

logger = logging.getLogger(__name__)

ORDER_FILE = "order.txt"
LEVEL_SEED = 0xC0FFEE
_MAX_PLACEMENT_ATTEMPTS = 1000


@dataclass(frozen=True)
class EnemyDef:
    start_location: Position
    movement_pattern: str
    moving_positive: bool


@dataclass(frozen=True)
class ItemDef:
    name: str
    item_file: str | None
    spawn_randomly: bool
    location: Position | None
    capabilities: dict[str, Any]


@dataclass(frozen=True)
class LevelDef:
    name: str
    grid_size: str
    obstacles: int
    blockers: list[Position]
    doors: list[Position]
    enemies: list[EnemyDef]
    items: list[ItemDef]
    income_per_square: int
    start_position: Position
    max_turns: int
    fog_of_war: bool
    texts: dict[str, str | None]


_TEXT_FIELDS = (
    "message",
    "hint_message",
    "starting_code",
    "completion_flag",
    "achievement_message",
    "next_level_hint",
    "completion_message",
)


def load_level_def(path: Path) -> LevelDef:
    data = _load_json(path)
    return LevelDef(
        name=data["name"],
        grid_size=data["grid_size"],
        obstacles=int(data.get("obstacles", 0)),
        blockers=[_position(pos) for pos in data.get("blockers", [])],
        doors=[_position(pos) for pos in data.get("doors", [])],
        enemies=[
            EnemyDef(
                start_location=_position(enemy["start_location"]),
                movement_pattern=enemy.get("movement_pattern", "horizontal"),
                moving_positive=enemy.get("moving_positive", True),
            )
            for enemy in data.get("enemies", [])
        ],
        items=[
            ItemDef(
                name=item["name"],
                item_file=item.get("item_file"),
                spawn_randomly=item.get("spawn_randomly", False),
                location=_position(item["location"]) if item.get("location") else None,
                capabilities=item.get("capabilities", {}),
            )
            for item in data.get("items", [])
        ],
        income_per_square=data.get("income_per_square", 1),
        start_position=_position(data.get("start_position", [1, 1])),
        max_turns=data.get("max_turns", 0),
        fog_of_war=data.get("fog_of_war", True),
        texts={key: data.get(key) for key in _TEXT_FIELDS},
    )


def parse_grid_size(grid_size: str) -> tuple[int, int]:
    parts = grid_size.lower().split("x")
    if len(parts) != 2:
        raise ValueError(f"Grid size must be in format 'WxH', got {grid_size!r}")
    try:
        width, height = int(parts[0]), int(parts[1])
    except ValueError as exc:
        raise ValueError(f"Grid size must be in format 'WxH', got {grid_size!r}") from exc
    return width, height


def to_level_spec(level: LevelDef, rng: random.Random) -> LevelSpec:
    """Resolve random placements and build a validated LevelSpec."""
    width, height = parse_grid_size(level.grid_size)
    start = level.start_position

    blockers = list(level.blockers)
    taken = {start, *blockers, *level.doors}
    taken.update(enemy.start_location for enemy in level.enemies)
    taken.update(item.location for item in level.items if item.location is not None)
    for _ in range(level.obstacles):
        pos = _random_free_tile(rng, width, height, taken)
        if pos is None:
            logger.debug("No room left for obstacles in %s", level.name)
            break
        blockers.append(pos)
        taken.add(pos)

    enemies = [_enemy_spec(enemy) for enemy in level.enemies]

    items = []
    for item in level.items:
        position = item.location
        if item.spawn_randomly:
            position = _random_free_tile(rng, width, height, taken)
            if position is not None:
                taken.add(position)
        items.append(
            ItemSpec(
                name=item.name,
                position=position,
                item_file=item.item_file,
                capabilities=item.capabilities,
            )
        )

    return LevelSpec(
        name=level.name,
        width=width,
        height=height,
        start=start,
        blockers=blockers,
        doors=level.doors,
        enemies=enemies,
        items=items,
        fog_of_war=level.fog_of_war,
        max_turns=level.max_turns,
        income_per_square=level.income_per_square,
        **level.texts,
    )


def level_files(levels_dir: Path) -> list[Path]:
    """Level files in play order: `order.txt` if present, else alphabetical."""
    if not levels_dir.is_dir():
        return []
    order_path = levels_dir / ORDER_FILE
    if order_path.exists():
        files = []
        for line in order_path.read_text(encoding="utf-8").splitlines():
            name = line.strip()
            if not name or name.startswith("#"):
                continue
            path = levels_dir / name
            if path.exists():
                files.append(path)
            else:
                logger.warning("Level %s listed in %s does not exist", name, ORDER_FILE)
        return files
    return sorted(levels_dir.glob("*.json"))


def load_levels(levels_dir: Path, *, seed: int = LEVEL_SEED) -> list[LevelSpec]:
    rng = random.Random(seed)
    levels = []
    for path in level_files(levels_dir):
        try:
            levels.append(to_level_spec(load_level_def(path), rng))
        except (KeyError, TypeError, ValueError, ValidationError) as exc:
            logger.warning("Skipping level file %s: %s", path, exc)
    logger.info("Loaded %s levels from %s", len(levels), levels_dir)
    return levels


def _enemy_spec(enemy: EnemyDef) -> EnemySpec:
    pattern = enemy.movement_pattern
    if pattern in (EnemyDirection.HORIZONTAL.value, EnemyDirection.VERTICAL.value):
        return EnemySpec(
            position=enemy.start_location,
            direction=EnemyDirection(pattern),
            moving_positive=enemy.moving_positive,
        )
    return EnemySpec(
        position=enemy.start_location,
        moving_positive=enemy.moving_positive,
        movement_pattern=pattern,
    )


def _random_free_tile(
    rng: random.Random, width: int, height: int, taken: set[Position]
) -> Position | None:
    for _ in range(_MAX_PLACEMENT_ATTEMPTS):
        pos = (rng.randrange(width), rng.randrange(height))
        if pos not in taken:
            return pos
    return None


def _position(raw: Any) -> Position:
    x, y = raw
    return int(x), int(y)


def _load_json(path: Path) -> dict:
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        raise FileNotFoundError(f"Missing level file: {path}") from exc
    return json.loads(text)
