"""Application entry for running robot scripts against levels."""

from __future__ import annotations

import os
import time
from pathlib import Path

from rich.console import Console

from robogrid.db.replay_log import (
    append_turn_payload,
    create_run_folder,
    write_header,
)
from robogrid.render.viewer import render_turn
from robogrid.sim.contracts import LevelSpec
from robogrid.sim.level_loader import LEVEL_SEED, load_levels
from robogrid.sim.turn_loop import GameSession, run_scripts

DEFAULT_LEVELS_DIR = Path("levels")
DEFAULT_LEVEL_SEED = LEVEL_SEED
DEFAULT_SEED = 0xC0FFEE
DEFAULT_LOG_LEVEL = "WARNING"


def resolve_levels_dir(levels_dir: Path | None = None) -> Path:
    return levels_dir or Path(os.getenv("ROBOGRID_LEVELS_DIR") or DEFAULT_LEVELS_DIR)


def resolve_log_level(log_level: str | None = None) -> str:
    return (log_level or os.getenv("ROBOGRID_LOG_LEVEL") or DEFAULT_LOG_LEVEL).upper()


def load_configured_levels(
    levels_dir: Path | None = None, *, level_seed: int | None = None
) -> list[LevelSpec]:
    return load_levels(
        resolve_levels_dir(levels_dir),
        seed=_resolve_seed(level_seed, "ROBOGRID_LEVEL_SEED", DEFAULT_LEVEL_SEED),
    )


def build_session(
    levels_dir: Path | None = None,
    *,
    level: int = 1,
    seed: int | None = None,
    level_seed: int | None = None,
) -> GameSession:
    directory = resolve_levels_dir(levels_dir)
    levels = load_configured_levels(directory, level_seed=level_seed)
    if not 1 <= level <= max(len(levels), 1):
        raise ValueError(f"Level {level} out of range 1-{len(levels)}")
    return GameSession(
        levels,
        seed=_resolve_seed(seed, "ROBOGRID_SEED", DEFAULT_SEED),
        start_level=level - 1,
        resource_root=directory.resolve().parent,
    )


def run_script_files(
    base_dir: Path,
    scripts: list[Path],
    *,
    levels_dir: Path | None = None,
    level: int = 1,
    seed: int | None = None,
    level_seed: int | None = None,
    console: Console | None = None,
) -> Path:
    """Run each script file as one batch, logging and rendering every result."""
    session = build_session(levels_dir, level=level, seed=seed, level_seed=level_seed)
    run_dir, log_path = create_run_folder(base_dir)
    write_header(
        log_path,
        metadata={
            "run_id": run_dir.name,
            "created_at": run_dir.name,
            "level": level,
            "level_name": session.spec.name,
            "scripts": [str(path) for path in scripts],
        },
    )
    sources = [path.read_text(encoding="utf-8") for path in scripts]
    for payload in run_scripts(session, sources):
        append_turn_payload(log_path, payload)
        if console is not None:
            console.print(render_turn(payload))
            if session.time_slow_active:
                time.sleep(session.time_slow_duration_ms / 1000)
    return run_dir


def _resolve_seed(value: int | None, env_name: str, default: int) -> int:
    if value is not None:
        return value
    raw = os.getenv(env_name)
    if raw:
        return int(raw, 0)
    return default
