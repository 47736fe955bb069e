"""Core data contracts for levels, script commands and turn snapshots."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    model_validator,
)

Position = tuple[int, int]


class EnemyDirection(str, Enum):
    HORIZONTAL = "horizontal"
    VERTICAL = "vertical"


class EnemySpec(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    position: Position
    direction: EnemyDirection = EnemyDirection.HORIZONTAL
    moving_positive: bool = True
    movement_pattern: str | None = None


class ItemCapabilitySpec(BaseModel):
    """Inline capability overrides; only the fields set in the level file apply."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    scanner_range: int | None = None
    grabber_boost: int | None = None
    credits_value: int | None = None
    time_slow_duration: int | None = None
    special_functions: list[str] = Field(default_factory=list)

    def overrides(self) -> dict[str, Any]:
        return self.model_dump(exclude_unset=True)


class ItemSpec(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    name: str
    position: Position | None = None
    item_file: str | None = None
    capabilities: ItemCapabilitySpec = Field(default_factory=ItemCapabilitySpec)


class LevelSpec(BaseModel):
    """Static level configuration; a Grid/Robot pair is derived from it."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    name: str
    width: int = Field(gt=0)
    height: int = Field(gt=0)
    start: Position = (1, 1)
    blockers: list[Position] = Field(default_factory=list)
    doors: list[Position] = Field(default_factory=list)
    enemies: list[EnemySpec] = Field(default_factory=list)
    items: list[ItemSpec] = Field(default_factory=list)
    fog_of_war: bool = True
    max_turns: int = Field(default=0, ge=0)
    income_per_square: int = Field(default=1, ge=0)
    completion_flag: str | None = None
    message: str | None = None
    hint_message: str | None = None
    starting_code: str | None = None
    achievement_message: str | None = None
    next_level_hint: str | None = None
    completion_message: str | None = None

    @model_validator(mode="after")
    def validate_bounds(self) -> "LevelSpec":
        def check(label: str, pos: Position) -> None:
            x, y = pos
            if not (0 <= x < self.width and 0 <= y < self.height):
                raise ValueError(f"{label} {pos} is outside {self.width}x{self.height}")

        check("start", self.start)
        for pos in self.blockers:
            check("blocker", pos)
        for pos in self.doors:
            check("door", pos)
        for enemy in self.enemies:
            check("enemy", enemy.position)
        for item in self.items:
            if item.position is not None:
                check(f"item {item.name}", item.position)
        return self


class CommandKind(str, Enum):
    MOVE = "MOVE"
    GRAB = "GRAB"
    SCAN = "SCAN"
    SEARCH_ALL = "SEARCH_ALL"
    SET_AUTO_GRAB = "SET_AUTO_GRAB"
    LASER_DIRECTION = "LASER_DIRECTION"
    LASER_TILE = "LASER_TILE"
    OPEN_DOOR = "OPEN_DOOR"
    SKIP_LEVEL = "SKIP_LEVEL"
    GOTO_LEVEL = "GOTO_LEVEL"
    PRINTLN = "PRINTLN"
    EPRINTLN = "EPRINTLN"
    PANIC = "PANIC"


_REQUIRED_ARGS: dict[CommandKind, str | None] = {
    CommandKind.MOVE: "direction",
    CommandKind.GRAB: None,
    CommandKind.SCAN: "direction",
    CommandKind.SEARCH_ALL: None,
    CommandKind.SET_AUTO_GRAB: "flag",
    CommandKind.LASER_DIRECTION: "direction",
    CommandKind.LASER_TILE: "coordinates",
    CommandKind.OPEN_DOOR: "flag",
    CommandKind.SKIP_LEVEL: None,
    CommandKind.GOTO_LEVEL: "level_number",
    CommandKind.PRINTLN: "message",
    CommandKind.EPRINTLN: "message",
    CommandKind.PANIC: None,
}
_OPTIONAL_ARGS: dict[CommandKind, str] = {CommandKind.PANIC: "message"}
_ARG_FIELDS = ("direction", "coordinates", "level_number", "flag", "message")
UNIT_VECTORS: set[Position] = {(0, -1), (0, 1), (-1, 0), (1, 0)}


class Command(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    kind: CommandKind
    direction: Position | None = None
    coordinates: Position | None = None
    level_number: int | None = None
    flag: bool | None = None
    message: str | None = None

    @model_validator(mode="after")
    def validate_command(self) -> "Command":
        required = _REQUIRED_ARGS[self.kind]
        optional = _OPTIONAL_ARGS.get(self.kind)
        for name in _ARG_FIELDS:
            value = getattr(self, name)
            if name == required and value is None:
                raise ValueError(f"{self.kind.value} requires {name}")
            if name not in (required, optional) and value is not None:
                raise ValueError(f"{self.kind.value} cannot include {name}")
        if self.direction is not None and self.direction not in UNIT_VECTORS:
            raise ValueError("direction must be a unit vector")
        return self


def coerce_command(raw: Any) -> Command | None:
    """Validate a raw command mapping; invalid input yields None."""
    try:
        return Command.model_validate(raw)
    except ValidationError:
        return None


class Event(BaseModel):
    model_config = ConfigDict(extra="forbid")

    kind: str
    payload: dict[str, Any] = Field(default_factory=dict)


class EnemySnapshot(BaseModel):
    model_config = ConfigDict(extra="forbid")

    index: int
    position: Position
    pattern: str
    stunned_turns: int = 0
    scratch: dict[str, Any] = Field(default_factory=dict)


class ItemSnapshot(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str
    position: Position


class StateSnapshot(BaseModel):
    """Read-only view of one settled game state, for renderers and logs."""

    model_config = ConfigDict(extra="forbid")

    level_index: int
    level_name: str
    width: int
    height: int
    robot_position: Position
    known: list[Position] = Field(default_factory=list)
    blockers: list[Position] = Field(default_factory=list)
    doors: list[Position] = Field(default_factory=list)
    open_doors: list[Position] = Field(default_factory=list)
    removed_obstacles: list[Position] = Field(default_factory=list)
    enemies: list[EnemySnapshot] = Field(default_factory=list)
    items: list[ItemSnapshot] = Field(default_factory=list)
    inventory: list[str] = Field(default_factory=list)
    credits: int = 0
    turns: int = 0
    max_turns: int = 0
    auto_grab_enabled: bool = False
    finished: bool = False
    available_functions: list[str] = Field(default_factory=list)


class TurnPayload(BaseModel):
    model_config = ConfigDict(extra="forbid")

    turn: int
    execution_result: str
    state: StateSnapshot
    events: list[Event] | None = None
