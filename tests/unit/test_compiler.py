"""Unit tests for compiling descriptions into the static template."""

from __future__ import annotations

import pytest

from signalflow.engine import DescriptionError, action, concurrent, step
from signalflow.engine.compiler import AsyncGroup, BranchTemplate, compile_description


def first(ctx):
    return None


def second(ctx):
    return None


async def fetch(ctx):
    return None


def test_paths_and_async_flags() -> None:
    compiled = compile_description(
        [
            first,
            step(second, success=[first, concurrent(fetch)]),
            [fetch, step(fetch, done=[second])],
        ]
    )

    b0, b1, group = compiled.branches
    assert isinstance(b0, BranchTemplate) and b0.path == (0,) and not b0.is_async
    assert isinstance(b1, BranchTemplate) and b1.path == (1,)
    assert isinstance(group, AsyncGroup) and group.path == (2,)

    success = b1.outputs["success"]
    assert success[0].path == (1, "outputs", "success", 0)
    assert isinstance(success[1], AsyncGroup)
    assert success[1].members[0].path == (1, "outputs", "success", 1, 0)
    assert success[1].members[0].is_async

    m0, m1 = group.members
    assert m0.path == (2, 0) and m0.is_async
    assert m1.outputs["done"][0].path == (2, 1, "outputs", "done", 0)
    assert not m1.outputs["done"][0].is_async


def test_registry_interns_actions_by_identity_key() -> None:
    compiled = compile_description([first, second, first, [fetch, fetch]])

    assert [a.name for a in compiled.registry] == ["first", "second", "fetch"]
    indices = [b.action_index for b in compiled.iter_branches()]
    assert indices == [0, 1, 0, 2, 2]


def test_distinct_callables_with_equal_keys_get_distinct_slots() -> None:
    one = lambda ctx: None  # noqa: E731
    two = lambda ctx: None  # noqa: E731

    compiled = compile_description([one, two, one])

    keys = compiled.registry.keys()
    assert len(keys) == 2
    assert keys[1] == f"{keys[0]}#1"
    assert [b.action_index for b in compiled.iter_branches()] == [0, 1, 0]


def test_explicit_action_keys_are_kept() -> None:
    compiled = compile_description([action(first, key="users.load")])
    assert compiled.registry[0].key == "users.load"
    assert compiled.registry[0].name == "first"


def test_recompiling_yields_identical_paths() -> None:
    description = [first, step(second, ok=[[fetch]]), [fetch]]

    a = [b.path for b in compile_description(description).iter_branches()]
    b = [b.path for b in compile_description(description).iter_branches()]

    assert a == b
    assert len(set(a)) == len(a)


def test_compiler_does_not_mutate_its_input() -> None:
    outputs = {"success": [first]}
    description = [step(second, **outputs), [fetch]]
    snapshot = list(description)

    compile_description(description)

    assert description == snapshot
    assert outputs == {"success": [first]}


def test_coroutine_step_in_sync_position_is_rejected() -> None:
    with pytest.raises(DescriptionError) as excinfo:
        compile_description([first, fetch])
    assert excinfo.value.location == (1,)
