import pytest
from pydantic import ValidationError

from robogrid.sim.contracts import (
    Command,
    CommandKind,
    EnemySpec,
    ItemSpec,
    LevelSpec,
    coerce_command,
)


def test_command_requires_its_argument() -> None:
    with pytest.raises(ValidationError):
        Command(kind=CommandKind.MOVE)

    with pytest.raises(ValidationError):
        Command(kind=CommandKind.GRAB, direction=(1, 0))


def test_coerce_command() -> None:
    move = coerce_command({"kind": "MOVE", "direction": [1, 0]})
    assert move is not None
    assert move.direction == (1, 0)

    assert coerce_command({"kind": "MOVE", "direction": [2, 0]}) is None
    assert coerce_command({"kind": "FLY"}) is None
    assert coerce_command({"kind": "PANIC"}) is not None
    assert coerce_command({"kind": "PANIC", "message": "boom"}) is not None


def test_level_spec_rejects_out_of_bounds_positions() -> None:
    with pytest.raises(ValidationError):
        LevelSpec(name="Tiny", width=3, height=3, blockers=[(3, 0)])

    with pytest.raises(ValidationError):
        LevelSpec(
            name="Tiny",
            width=3,
            height=3,
            enemies=[EnemySpec(position=(0, 5))],
        )

    with pytest.raises(ValidationError):
        LevelSpec(name="Tiny", width=1, height=1)


def test_level_spec_defaults() -> None:
    level = LevelSpec(name="Open", width=4, height=4)

    assert level.start == (1, 1)
    assert level.fog_of_war is True
    assert level.max_turns == 0
    assert level.income_per_square == 1
    assert level.completion_flag is None


def test_item_capabilities_are_typed() -> None:
    item = ItemSpec(name="gem", capabilities={"credits_value": 10})

    assert item.capabilities.credits_value == 10
    assert item.capabilities.overrides() == {"credits_value": 10}

    with pytest.raises(ValidationError):
        ItemSpec(name="gem", capabilities={"credits_value": "ten"})
    with pytest.raises(ValidationError):
        ItemSpec(name="gem", capabilities={"special_functions": "scan"})
    with pytest.raises(ValidationError):
        ItemSpec(name="gem", capabilities={"sparkle": 1})
