"""Module entry point for `python -m robogrid`."""

from __future__ import annotations

import argparse
import logging
from pathlib import Path

from rich.console import Console
from rich.table import Table

from robogrid.app import (
    build_session,
    load_configured_levels,
    resolve_log_level,
    run_script_files,
)
from robogrid.db.replay_log import RUN_LOG_NAME, list_runs
from robogrid.render.replay_reader import read_turn_payloads
from robogrid.render.viewer import render_turn
from robogrid.sim.functions import SIGNATURES

DEFAULT_REPLAY_DIR = Path("replay")


def main() -> None:
    parser = argparse.ArgumentParser(description="Run robot scripts on grid levels.")
    parser.add_argument(
        "scripts",
        nargs="*",
        type=Path,
        help="Script files to run, one batch per file.",
    )
    parser.add_argument(
        "--level",
        type=int,
        default=1,
        help="1-based level to start on.",
    )
    parser.add_argument(
        "--levels-dir",
        type=Path,
        default=None,
        help="Directory of level JSON files (defaults to ROBOGRID_LEVELS_DIR or ./levels).",
    )
    parser.add_argument(
        "--seed",
        type=lambda raw: int(raw, 0),
        default=None,
        help="Session RNG seed (defaults to ROBOGRID_SEED).",
    )
    parser.add_argument(
        "--replay",
        type=Path,
        default=None,
        help="Replay a saved run folder through the viewer.",
    )
    parser.add_argument(
        "--latest",
        action="store_true",
        help="Replay the most recent run folder.",
    )
    parser.add_argument(
        "--replay-dir",
        type=Path,
        default=DEFAULT_REPLAY_DIR,
        help="Base replay directory for new runs.",
    )
    parser.add_argument(
        "--list-levels",
        action="store_true",
        help="List the configured levels and exit.",
    )
    parser.add_argument(
        "--list-functions",
        action="store_true",
        help="List the functions available on --level and exit.",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Logging level (defaults to ROBOGRID_LOG_LEVEL or WARNING).",
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=resolve_log_level(args.log_level),
        format="%(levelname)s %(name)s: %(message)s",
    )
    console = Console()

    if args.list_levels:
        _list_levels(console, args.levels_dir)
        return

    if args.list_functions:
        session = build_session(args.levels_dir, level=args.level, seed=args.seed)
        console.print(session.completion_instructions())
        for signature in session.snapshot().available_functions:
            console.print(f"  {signature}")
        return

    if args.latest:
        runs = list_runs(args.replay_dir)
        if not runs:
            raise SystemExit("No run folder found. Run a script first.")
        _replay_run(console, runs[0])
        return

    if args.replay is not None:
        _replay_run(console, args.replay)
        return

    if not args.scripts:
        parser.error("no script files given")

    created_run = run_script_files(
        args.replay_dir,
        args.scripts,
        levels_dir=args.levels_dir,
        level=args.level,
        seed=args.seed,
        console=console,
    )
    console.print(f"Run saved to {created_run}")


def _list_levels(console: Console, levels_dir: Path | None) -> None:
    table = Table(title="Levels", show_header=True, header_style="bold")
    table.add_column("#")
    table.add_column("Name")
    table.add_column("Size")
    table.add_column("Goal")
    for number, level in enumerate(load_configured_levels(levels_dir), start=1):
        table.add_row(
            str(number),
            level.name,
            f"{level.width}x{level.height}",
            level.completion_flag or "explore",
        )
    console.print(table)
    console.print(f"{len(SIGNATURES)} script functions known.")


def _replay_run(console: Console, run_folder: Path) -> None:
    log_path = run_folder / RUN_LOG_NAME
    if not log_path.exists():
        raise SystemExit(f"No run log found in {run_folder}.")
    for payload in read_turn_payloads(log_path):
        console.print(render_turn(payload))


if __name__ == "__main__":
    main()
