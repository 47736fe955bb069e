"""Robot state: position, upgrades, inventory."""

from __future__ import annotations

from dataclasses import dataclass, field, replace

from robogrid.sim.contracts import Position


@dataclass
class Upgrades:
    grabber_level: int = 1
    scanner_level: int = 0
    attack_range: int = 0


@dataclass
class Robot:
    position: Position
    upgrades: Upgrades = field(default_factory=Upgrades)
    inventory: set[str] = field(default_factory=set)
    auto_grab_enabled: bool = False

    @classmethod
    def carrying(cls, start: Position, progress: "Robot | None") -> "Robot":
        """A fresh robot at `start` that keeps the upgrades and items of `progress`."""
        if progress is None:
            return cls(position=start)
        return cls(
            position=start,
            upgrades=replace(progress.upgrades),
            inventory=set(progress.inventory),
        )

    @property
    def grabber_range(self) -> int:
        return self.upgrades.grabber_level

    @property
    def scanner_range(self) -> int:
        return 1 + self.upgrades.scanner_level

    def has_item(self, name: str) -> bool:
        return name in self.inventory

    def add_to_inventory(self, name: str) -> None:
        self.inventory.add(name)

    def upgrade_grabber(self, amount: int = 1) -> None:
        self.upgrades.grabber_level += amount

    def set_scanner_level(self, level: int) -> None:
        self.upgrades.scanner_level = level
        if level > 0:
            self.inventory.add("scanner")

    def distance_to(self, target: Position) -> int:
        return abs(self.position[0] - target[0]) + abs(self.position[1] - target[1])

    def grabber_positions(self, width: int, height: int) -> list[Position]:
        reach = self.grabber_range
        x0, y0 = self.position
        positions = []
        for y in range(max(0, y0 - reach), min(height - 1, y0 + reach) + 1):
            for x in range(max(0, x0 - reach), min(width - 1, x0 + reach) + 1):
                if self.distance_to((x, y)) <= reach:
                    positions.append((x, y))
        return positions

    def scanner_positions(
        self, direction: Position, width: int, height: int
    ) -> list[Position]:
        positions = []
        x, y = self.position
        for _ in range(self.scanner_range):
            x, y = x + direction[0], y + direction[1]
            if not (0 <= x < width and 0 <= y < height):
                break
            positions.append((x, y))
        return positions
