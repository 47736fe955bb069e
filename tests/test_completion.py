from robogrid.sim.completion import (
    CompletionRule,
    CompletionSignals,
    NEVER,
    RuleKind,
    fallback_complete,
    is_satisfied,
    parse_completion_flag,
)


def signals(
    *,
    println: tuple[str, ...] = (),
    errors: tuple[str, ...] = (),
    panic: bool = False,
    inventory: int = 0,
    turns: int = 0,
) -> CompletionSignals:
    return CompletionSignals(
        println_outputs=println,
        error_outputs=errors,
        panic_occurred=panic,
        inventory_size=inventory,
        turns=turns,
    )


def test_items_collected_threshold() -> None:
    rule = parse_completion_flag("items_collected:2")

    assert rule == CompletionRule(RuleKind.ITEMS_COLLECTED, count=2)
    assert not is_satisfied(rule, signals(inventory=0))
    assert not is_satisfied(rule, signals(inventory=1))
    assert is_satisfied(rule, signals(inventory=2))
    assert is_satisfied(rule, signals(inventory=3))


def test_println_exact_and_bare() -> None:
    exact = parse_completion_flag("println:Hello, Robot!")
    bare = parse_completion_flag("println")

    assert not is_satisfied(exact, signals(println=("hello, robot!",)))
    assert is_satisfied(exact, signals(println=("first", "Hello, Robot!")))
    assert not is_satisfied(bare, signals())
    assert is_satisfied(bare, signals(println=("anything",)))


def test_error_output_rules() -> None:
    exact = parse_completion_flag("error_exact:File not found")
    alias = parse_completion_flag("eprintln:File not found")
    bare = parse_completion_flag("error")

    assert exact == alias
    assert is_satisfied(exact, signals(errors=("File not found",)))
    assert not is_satisfied(exact, signals(println=("File not found",)))
    assert is_satisfied(bare, signals(errors=("x",)))


def test_moves_made_and_panic() -> None:
    moves = parse_completion_flag("moves_made:3")
    panic = parse_completion_flag("panic")

    assert not is_satisfied(moves, signals(turns=2))
    assert is_satisfied(moves, signals(turns=3))
    assert not is_satisfied(panic, signals())
    assert is_satisfied(panic, signals(panic=True))


def test_unknown_or_malformed_flags_never_complete() -> None:
    assert parse_completion_flag(None) is None
    for flag in ("reach_goal", "teleport:3", "items_collected:lots", "moves_made:-1"):
        rule = parse_completion_flag(flag)
        assert rule == NEVER
        assert not is_satisfied(
            rule, signals(println=("x",), errors=("x",), panic=True, inventory=9, turns=99)
        )


def test_instructions_describe_the_rule() -> None:
    assert "Hello" in parse_completion_flag("println:Hello").instructions()
    assert "2 item" in parse_completion_flag("items_collected:2").instructions()
    assert "panic" in parse_completion_flag("panic").instructions()


def test_fallback_completion() -> None:
    base = dict(known_walkable=3, walkable=10, turns=0, max_turns=0)

    assert fallback_complete(level_has_items=True, active_items=0, **base)
    assert not fallback_complete(level_has_items=True, active_items=1, **base)
    assert not fallback_complete(level_has_items=False, active_items=0, **base)
    assert fallback_complete(
        level_has_items=False, active_items=0, known_walkable=10, walkable=10, turns=0, max_turns=0
    )
    assert fallback_complete(
        level_has_items=True, active_items=2, known_walkable=0, walkable=10, turns=5, max_turns=5
    )
