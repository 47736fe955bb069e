import json
import random
from pathlib import Path

import pytest

from robogrid.sim.contracts import EnemyDirection
from robogrid.sim.level_loader import (
    level_files,
    load_level_def,
    load_levels,
    parse_grid_size,
    to_level_spec,
)
from robogrid.sim.turn_loop import GameSession

ROOT = Path(__file__).resolve().parents[1]


def write_level(directory: Path, filename: str, **fields: object) -> Path:
    data: dict[str, object] = {"name": filename, "grid_size": "8x6"}
    data.update(fields)
    path = directory / filename
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


def test_parse_grid_size() -> None:
    assert parse_grid_size("16x10") == (16, 10)
    with pytest.raises(ValueError):
        parse_grid_size("16by10")
    with pytest.raises(ValueError):
        parse_grid_size("ax4")


def test_order_file_controls_play_order(tmp_path: Path) -> None:
    write_level(tmp_path, "a.json")
    write_level(tmp_path, "b.json")
    write_level(tmp_path, "c.json")
    (tmp_path / "order.txt").write_text("# order\nc.json\n\na.json\nmissing.json\n")

    assert [path.name for path in level_files(tmp_path)] == ["c.json", "a.json"]


def test_alphabetical_order_without_order_file(tmp_path: Path) -> None:
    write_level(tmp_path, "b.json")
    write_level(tmp_path, "a.json")

    levels = load_levels(tmp_path)

    assert [level.name for level in levels] == ["a.json", "b.json"]


def test_missing_directory_has_no_levels(tmp_path: Path) -> None:
    assert load_levels(tmp_path / "nope") == []


def test_broken_files_are_skipped(tmp_path: Path) -> None:
    write_level(tmp_path, "a.json")
    (tmp_path / "b.json").write_text("{not json", encoding="utf-8")
    write_level(tmp_path, "c.json", grid_size="wide")
    write_level(tmp_path, "d.json", blockers=[[20, 20]])

    levels = load_levels(tmp_path)

    assert [level.name for level in levels] == ["a.json"]


def test_bad_item_capability_skips_the_level(tmp_path: Path) -> None:
    write_level(tmp_path, "a.json")
    write_level(
        tmp_path,
        "b.json",
        items=[{"name": "gem", "location": [2, 2], "capabilities": {"credits_value": "ten"}}],
    )

    levels = load_levels(tmp_path)

    assert [level.name for level in levels] == ["a.json"]


def test_conversion_places_random_content(tmp_path: Path) -> None:
    path = write_level(
        tmp_path,
        "level.json",
        obstacles=5,
        start_position=[0, 0],
        items=[
            {"name": "gem", "spawn_randomly": True},
            {"name": "key", "location": [7, 5]},
        ],
    )

    first = to_level_spec(load_level_def(path), random.Random(7))
    second = to_level_spec(load_level_def(path), random.Random(7))

    assert first == second
    assert len(first.blockers) == 5
    assert (0, 0) not in first.blockers
    assert (7, 5) not in first.blockers
    gem, key = first.items
    assert gem.position is not None
    assert gem.position not in first.blockers
    assert key.position == (7, 5)


def test_enemy_patterns(tmp_path: Path) -> None:
    write_level(
        tmp_path,
        "level.json",
        enemies=[
            {"start_location": [2, 2], "movement_pattern": "vertical", "moving_positive": False},
            {"start_location": [3, 3], "movement_pattern": "file:movement_patterns/guard_area.txt"},
            {"start_location": [4, 4], "movement_pattern": "spiral"},
        ],
    )

    spec = load_levels(tmp_path)[0]

    assert spec.name == "level.json"
    vertical, custom, spiral = spec.enemies
    assert vertical.direction == EnemyDirection.VERTICAL
    assert vertical.movement_pattern is None
    assert vertical.moving_positive is False
    assert custom.movement_pattern == "file:movement_patterns/guard_area.txt"
    assert spiral.movement_pattern == "spiral"


def test_defaults_follow_the_level_format(tmp_path: Path) -> None:
    write_level(tmp_path, "level.json", completion_flag="panic", message="hi")

    spec = load_levels(tmp_path)[0]

    assert spec.start == (1, 1)
    assert spec.max_turns == 0
    assert spec.fog_of_war is True
    assert spec.income_per_square == 1
    assert spec.completion_flag == "panic"
    assert spec.message == "hi"


def test_shipped_levels_load_with_their_resources() -> None:
    levels = load_levels(ROOT / "levels")

    assert len(levels) == 5
    assert levels[0].completion_flag == "println:Hello, Robot!"

    session = GameSession(levels, seed=1, start_level=3, resource_root=ROOT)
    tags = [enemy.strategy.tag for enemy in session.grid.enemies]
    assert tags == ["horizontal", "guard", "spiral"]
    assert session.grid.registry.get("custom_1") == "guard"

    time_slow = next(item for item in session.items.items if item.name == "time_slow")
    assert time_slow.capabilities.time_slow_duration == 500
