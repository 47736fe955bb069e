import random
from pathlib import Path

from robogrid.sim.contracts import EnemyDirection, EnemySpec, ItemSpec, LevelSpec
from robogrid.sim.grid import Grid, manhattan_distance


def test_out_of_bounds_positions_are_never_revealed() -> None:
    grid = Grid(width=3, height=3)

    for pos in [(-1, 0), (0, -1), (3, 0), (0, 3), (5, 5)]:
        assert not grid.in_bounds(pos)
        assert not grid.reveal(pos)
    assert grid.known == set()


def test_reveal_is_idempotent() -> None:
    grid = Grid(width=3, height=3)

    assert grid.reveal((1, 1))
    assert not grid.reveal((1, 1))
    assert grid.known == {(1, 1)}


def test_reveal_adjacent_counts_new_tiles_only() -> None:
    grid = Grid(width=3, height=3)

    assert grid.reveal_adjacent((0, 0)) == 3
    assert grid.reveal_adjacent((1, 0)) == 2
    assert grid.known == {(0, 0), (1, 0), (0, 1), (2, 0), (1, 1)}


def test_doors_block_until_opened() -> None:
    grid = Grid(width=4, height=4, blockers={(0, 3)}, doors={(2, 2)})

    assert grid.is_blocked((0, 3))
    assert grid.is_blocked((2, 2))
    assert grid.is_door((2, 2))
    assert not grid.is_door_open((2, 2))

    assert grid.open_door((2, 2))
    assert not grid.is_blocked((2, 2))
    assert grid.is_door_open((2, 2))

    assert grid.close_door((2, 2))
    assert grid.is_blocked((2, 2))
    assert not grid.open_door((1, 1))


def test_temporary_removals_only_unblock_listed_tiles() -> None:
    grid = Grid(width=4, height=4, blockers={(1, 1), (2, 2)})

    removed = {(1, 1): 2}
    assert not grid.is_blocked_with_removals((1, 1), removed)
    assert grid.is_blocked_with_removals((2, 2), removed)


def test_from_level_spec_copies_layout() -> None:
    spec = LevelSpec(
        name="Doors",
        width=6,
        height=4,
        blockers=[(3, 0)],
        doors=[(3, 1)],
        enemies=[EnemySpec(position=(5, 3), direction=EnemyDirection.VERTICAL)],
    )

    grid = Grid.from_level_spec(spec, random.Random(1))

    assert grid.blockers == {(3, 0)}
    assert grid.doors == {(3, 1)}
    assert grid.enemies[0].position == (5, 3)
    assert grid.enemies[0].strategy.tag == "vertical"
    assert grid.check_enemy_collision((5, 3))
    assert not grid.check_enemy_collision((4, 3))
    assert grid.known == set()


def test_no_fog_reveals_everything() -> None:
    spec = LevelSpec(name="Clear", width=3, height=2, fog_of_war=False)

    grid = Grid.from_level_spec(spec, random.Random(1))

    assert len(grid.known) == 6


def test_named_hazard_levels_scatter_obstacles_deterministically() -> None:
    spec = LevelSpec(name="Level 3 - Obstacles", width=12, height=10, start=(1, 1))

    first = Grid.from_level_spec(spec, random.Random(42))
    second = Grid.from_level_spec(spec, random.Random(42))

    assert first.blockers
    assert first.blockers == second.blockers
    assert (1, 1) not in first.blockers
    assert len(first.blockers) <= (12 * 10) // 8


def test_scattered_obstacles_avoid_used_tiles() -> None:
    taken = {(x, y) for x in range(6) for y in range(2, 5)}
    spec = LevelSpec(
        name="Level 4 - Crowded",
        width=6,
        height=6,
        start=(1, 1),
        doors=[(x, 2) for x in range(6)],
        enemies=[EnemySpec(position=(x, 3)) for x in range(6)],
        items=[ItemSpec(name=f"gem_{x}", position=(x, 4)) for x in range(6)],
    )

    for seed in range(20):
        grid = Grid.from_level_spec(spec, random.Random(seed))

        assert (1, 1) not in grid.blockers
        assert not grid.blockers & taken


def test_level_four_spawns_enemies_away_from_start() -> None:
    spec = LevelSpec(name="Level 4 - Enemies", width=12, height=10, start=(1, 1))

    grid = Grid.from_level_spec(spec, random.Random(5))

    assert len(grid.enemies) == 3
    positions = [enemy.position for enemy in grid.enemies]
    assert len(set(positions)) == 3
    for pos in positions:
        assert manhattan_distance(pos, (1, 1)) > 3
        assert pos not in grid.blockers


def test_explicit_blockers_disable_hazard_generation() -> None:
    spec = LevelSpec(name="Level 3 - Custom", width=6, height=6, blockers=[(4, 4)])

    grid = Grid.from_level_spec(spec, random.Random(1))

    assert grid.blockers == {(4, 4)}


def test_file_pattern_binds_builtin_strategy() -> None:
    spec = LevelSpec(
        name="Patterns",
        width=8,
        height=8,
        enemies=[
            EnemySpec(position=(6, 6), movement_pattern="file:patterns/spin.txt"),
        ],
    )
    seen: list[Path] = []

    def loader(path: Path) -> str:
        seen.append(path)
        return "// an enemy\n// MOVEMENT_PATTERN: spiral\n"

    grid = Grid.from_level_spec(
        spec, random.Random(1), resource_root=Path("/game"), loader=loader
    )

    assert seen == [Path("/game/patterns/spin.txt")]
    assert grid.registry.get("custom_0") == "spiral"
    assert grid.enemies[0].strategy.tag == "spiral"


def test_missing_pattern_file_falls_back_to_direction() -> None:
    spec = LevelSpec(
        name="Patterns",
        width=8,
        height=8,
        enemies=[
            EnemySpec(
                position=(6, 6),
                direction=EnemyDirection.VERTICAL,
                movement_pattern="file:missing.txt",
            ),
        ],
    )

    def loader(path: Path) -> str:
        raise FileNotFoundError(path)

    grid = Grid.from_level_spec(spec, random.Random(1), loader=loader)

    assert grid.registry.keys() == []
    assert grid.enemies[0].strategy.tag == "vertical"
