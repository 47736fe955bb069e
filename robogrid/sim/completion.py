"""Level completion rules parsed from `completion_flag` strings.

Grammar: `kind` or `kind:value`. The flag is parsed once when a level is
loaded; evaluation only reads the accumulated session signals.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Sequence


class RuleKind(str, Enum):
    PRINTLN = "println"
    ERROR = "error"
    ITEMS_COLLECTED = "items_collected"
    MOVES_MADE = "moves_made"
    PANIC = "panic"
    NEVER = "never"


@dataclass(frozen=True)
class CompletionRule:
    kind: RuleKind
    text: str | None = None
    count: int | None = None

    def instructions(self) -> str:
        if self.kind == RuleKind.PRINTLN:
            if self.text is None:
                return "Use println!() to display output"
            return f"Make your code print exactly: '{self.text}'"
        if self.kind == RuleKind.ERROR:
            if self.text is None:
                return "Use eprintln!() to display an error message"
            return f"Make your code output this error message: '{self.text}'"
        if self.kind == RuleKind.ITEMS_COLLECTED:
            if self.count is None:
                return "Collect all items on the level"
            return f"Collect {self.count} item(s) to complete this level"
        if self.kind == RuleKind.MOVES_MADE:
            return f"Make at least {self.count} move(s) to complete this level"
        if self.kind == RuleKind.PANIC:
            return "Trigger a panic in your code"
        return "Follow the level's requirements to complete it."


@dataclass(frozen=True)
class CompletionSignals:
    println_outputs: Sequence[str]
    error_outputs: Sequence[str]
    panic_occurred: bool
    inventory_size: int
    turns: int


_PRINT_KINDS = {"println": RuleKind.PRINTLN, "println_exact": RuleKind.PRINTLN}
_ERROR_KINDS = {"eprintln": RuleKind.ERROR, "error_exact": RuleKind.ERROR}
_BARE_ERROR_KINDS = {"error", "eprintln", "error_exact"}

NEVER = CompletionRule(RuleKind.NEVER)
DEFAULT_INSTRUCTIONS = "Collect all items and reach the goal to complete this level."


def parse_completion_flag(flag: str | None) -> CompletionRule | None:
    if flag is None:
        return None
    if ":" in flag:
        kind, value = flag.split(":", 1)
        if kind in _PRINT_KINDS:
            return CompletionRule(RuleKind.PRINTLN, text=value)
        if kind in _ERROR_KINDS:
            return CompletionRule(RuleKind.ERROR, text=value)
        if kind in ("items_collected", "moves_made"):
            try:
                count = int(value)
            except ValueError:
                return NEVER
            if count < 0:
                return NEVER
            return CompletionRule(RuleKind(kind), count=count)
        return NEVER

    if flag in _PRINT_KINDS:
        return CompletionRule(RuleKind.PRINTLN)
    if flag in _BARE_ERROR_KINDS:
        return CompletionRule(RuleKind.ERROR)
    if flag == "panic":
        return CompletionRule(RuleKind.PANIC)
    if flag == "items_collected":
        return CompletionRule(RuleKind.ITEMS_COLLECTED)
    return NEVER


def is_satisfied(rule: CompletionRule, signals: CompletionSignals) -> bool:
    if rule.kind == RuleKind.PRINTLN:
        if rule.text is None:
            return bool(signals.println_outputs)
        return rule.text in signals.println_outputs
    if rule.kind == RuleKind.ERROR:
        if rule.text is None:
            return bool(signals.error_outputs)
        return rule.text in signals.error_outputs
    if rule.kind == RuleKind.ITEMS_COLLECTED:
        if rule.count is None:
            return signals.inventory_size > 0
        return signals.inventory_size >= rule.count
    if rule.kind == RuleKind.MOVES_MADE:
        return rule.count is not None and signals.turns >= rule.count
    if rule.kind == RuleKind.PANIC:
        return signals.panic_occurred
    return False


def fallback_complete(
    *,
    level_has_items: bool,
    active_items: int,
    known_walkable: int,
    walkable: int,
    turns: int,
    max_turns: int,
) -> bool:
    """Completion for levels without a flag.

    A spent turn budget always finishes the level. Otherwise levels with
    items finish once every item is collected, and levels without items
    finish when every non-blocker tile is known.
    """
    if max_turns > 0 and turns >= max_turns:
        return True
    if level_has_items:
        return active_items == 0
    return known_walkable >= walkable
