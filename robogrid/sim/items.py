"""Collectible items and their capability bundles."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Callable

from robogrid.sim.contracts import ItemCapabilitySpec, ItemSpec, Position

logger = logging.getLogger(__name__)

CAPABILITY_PREFIX = "// CAPABILITY:"
_INT_CAPABILITIES = ("scanner_range", "grabber_boost", "credits_value", "time_slow_duration")


@dataclass
class ItemCapabilities:
    scanner_range: int | None = None
    grabber_boost: int | None = None
    credits_value: int | None = 1
    time_slow_duration: int | None = None
    special_functions: list[str] = field(default_factory=list)

    def merged(self, overrides: ItemCapabilitySpec) -> "ItemCapabilities":
        return replace(self, **overrides.overrides())


@dataclass
class Item:
    name: str
    position: Position
    capabilities: ItemCapabilities = field(default_factory=ItemCapabilities)
    collected: bool = False


@dataclass
class ItemManager:
    items: list[Item] = field(default_factory=list)
    collected_items: set[str] = field(default_factory=set)

    def add(self, item: Item) -> None:
        self.items.append(item)

    def collect_at(self, pos: Position) -> Item | None:
        for item in self.items:
            if item.position == pos and not item.collected:
                item.collected = True
                self.collected_items.add(item.name)
                return item
        return None

    def item_at(self, pos: Position) -> Item | None:
        for item in self.items:
            if item.position == pos and not item.collected:
                return item
        return None

    def active_items(self) -> list[Item]:
        return [item for item in self.items if not item.collected]


def parse_capabilities(content: str) -> ItemCapabilities:
    capabilities = ItemCapabilities()
    for raw in content.splitlines():
        line = raw.strip()
        if line.startswith(CAPABILITY_PREFIX):
            _apply_capability_line(line[len(CAPABILITY_PREFIX) :], capabilities)
        if line.startswith("pub fn ") or line.startswith("fn "):
            name = _function_name(line)
            if name:
                capabilities.special_functions.append(name)
    return capabilities


def load_capabilities(
    path: Path, *, loader: Callable[[Path], str] | None = None
) -> ItemCapabilities:
    read = loader or (lambda p: p.read_text(encoding="utf-8"))
    try:
        content = read(path)
    except OSError as exc:
        logger.warning("Failed to read item file %s: %s", path, exc)
        return ItemCapabilities()
    return parse_capabilities(content)


def build_item(
    spec: ItemSpec,
    position: Position,
    *,
    resource_root: Path | None = None,
    loader: Callable[[Path], str] | None = None,
) -> Item:
    if spec.item_file:
        path = Path(spec.item_file)
        if resource_root is not None and not path.is_absolute():
            path = resource_root / path
        capabilities = load_capabilities(path, loader=loader)
    elif spec.name in STANDARD_ITEMS:
        capabilities = STANDARD_ITEMS[spec.name]()
    else:
        capabilities = ItemCapabilities()
    if spec.capabilities.model_fields_set:
        capabilities = capabilities.merged(spec.capabilities)
    return Item(name=spec.name, position=position, capabilities=capabilities)


def scanner_capabilities() -> ItemCapabilities:
    return ItemCapabilities(scanner_range=1, credits_value=5, special_functions=["scan"])


def grabber_upgrade_capabilities() -> ItemCapabilities:
    return ItemCapabilities(grabber_boost=1, credits_value=3)


def time_slow_capabilities(duration_ms: int = 500) -> ItemCapabilities:
    return ItemCapabilities(
        credits_value=25,
        time_slow_duration=duration_ms,
        special_functions=["time_slow"],
    )


STANDARD_ITEMS: dict[str, Callable[[], ItemCapabilities]] = {
    "scanner": scanner_capabilities,
    "grabber_upgrade": grabber_upgrade_capabilities,
    "time_slow": time_slow_capabilities,
}


def _apply_capability_line(line: str, capabilities: ItemCapabilities) -> None:
    parts = [part.strip() for part in line.split("=")]
    if len(parts) != 2:
        return
    key, value = parts[0].lower(), parts[1]
    if key not in _INT_CAPABILITIES:
        return
    try:
        setattr(capabilities, key, int(value))
    except ValueError:
        logger.debug("Ignoring non-integer capability %s = %s", key, value)


def _function_name(line: str) -> str | None:
    line = line.removeprefix("pub ")
    start = line.find("fn ")
    if start < 0:
        return None
    rest = line[start + 3 :]
    paren = rest.find("(")
    if paren < 0:
        return None
    return rest[:paren].strip() or None
