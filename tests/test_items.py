from pathlib import Path

from robogrid.sim.contracts import ItemSpec
from robogrid.sim.items import (
    ItemCapabilities,
    ItemManager,
    build_item,
    load_capabilities,
    parse_capabilities,
)
from robogrid.sim.robot import Robot


def test_parse_capability_lines_and_functions() -> None:
    content = (
        "// CAPABILITY: scanner_range = 2\n"
        "// CAPABILITY: credits_value = 7\n"
        "// CAPABILITY: colour = blue\n"
        "// CAPABILITY: grabber_boost = lots\n"
        "pub fn scan_capability() {}\n"
        "fn helper(x: u32) -> u32 { x }\n"
    )

    caps = parse_capabilities(content)

    assert caps.scanner_range == 2
    assert caps.credits_value == 7
    assert caps.grabber_boost is None
    assert caps.special_functions == ["scan_capability", "helper"]


def test_missing_capability_file_gives_defaults(tmp_path: Path) -> None:
    caps = load_capabilities(tmp_path / "absent.txt")

    assert caps == ItemCapabilities()
    assert caps.credits_value == 1


def test_build_item_prefers_file_then_standard_then_defaults(tmp_path: Path) -> None:
    (tmp_path / "gem.txt").write_text("// CAPABILITY: credits_value = 40\n", encoding="utf-8")

    from_file = build_item(
        ItemSpec(name="gem", item_file="gem.txt"), (1, 1), resource_root=tmp_path
    )
    standard = build_item(ItemSpec(name="scanner"), (2, 2))
    plain = build_item(ItemSpec(name="key", capabilities={"credits_value": 3}), (3, 3))

    assert from_file.capabilities.credits_value == 40
    assert standard.capabilities.scanner_range == 1
    assert standard.capabilities.special_functions == ["scan"]
    assert plain.capabilities.credits_value == 3
    assert plain.position == (3, 3)


def test_inline_capabilities_override_only_what_they_set() -> None:
    scanner = build_item(ItemSpec(name="scanner", capabilities={"credits_value": 9}), (1, 1))

    assert scanner.capabilities.credits_value == 9
    assert scanner.capabilities.scanner_range == 1
    assert scanner.capabilities.special_functions == ["scan"]


def test_item_manager_collects_once() -> None:
    manager = ItemManager()
    manager.add(build_item(ItemSpec(name="key"), (1, 1)))

    assert manager.item_at((1, 1)) is not None
    assert manager.collect_at((1, 1)) is not None
    assert manager.collect_at((1, 1)) is None
    assert manager.active_items() == []
    assert manager.collected_items == {"key"}


def test_robot_reach_geometry() -> None:
    robot = Robot(position=(0, 0))

    assert sorted(robot.grabber_positions(3, 3)) == [(0, 0), (0, 1), (1, 0)]
    assert robot.scanner_positions((1, 0), 5, 5) == [(1, 0)]

    robot.set_scanner_level(2)
    assert robot.has_item("scanner")
    assert robot.scanner_positions((1, 0), 5, 5) == [(1, 0), (2, 0), (3, 0)]
    assert robot.scanner_positions((0, -1), 5, 5) == []


def test_carrying_keeps_upgrades_but_not_position() -> None:
    robot = Robot(position=(4, 4), auto_grab_enabled=True)
    robot.upgrade_grabber()
    robot.add_to_inventory("key")

    fresh = Robot.carrying((1, 1), robot)

    assert fresh.position == (1, 1)
    assert fresh.grabber_range == 2
    assert fresh.inventory == {"key"}
    assert not fresh.auto_grab_enabled
    fresh.upgrade_grabber()
    assert robot.grabber_range == 2
