"""Unit tests for the signal entry point and replay of asynchronous results."""

from __future__ import annotations

import json

import pytest

from signalflow.engine import ReplayRecord, Signal, create, step
from signalflow.store import ReducerStore


def noop(ctx):
    return None


def test_create_returns_named_signal() -> None:
    signal = create([noop], name="example")

    assert isinstance(signal, Signal)
    assert signal.name == "example"
    assert len(signal.compiled.registry) == 1


def test_create_defaults_name_to_first_action() -> None:
    assert create([noop]).name == "noop"


@pytest.mark.asyncio
async def test_empty_signal_resolves_immediately(store: ReducerStore) -> None:
    result = await create([])(store, args={"a": 1})

    assert result.branches == []
    assert result.args == {"a": 1}
    assert result.is_executing is False


@pytest.mark.asyncio
async def test_replay_skips_completed_async_work(store: ReducerStore) -> None:
    calls = {"increment": 0}
    downstream: list[int] = []

    async def increment(ctx):
        calls["increment"] += 1
        return ctx.output.success({"count": calls["increment"]})

    def record(ctx):
        downstream.append(ctx.args["count"])

    signal = create([[step(increment, success=[record])]])

    first = await signal(store)
    assert first.async_action_results == [
        ReplayRecord(branch_path=(0, 0), output_path="success", args={"count": 1})
    ]

    second = await signal(store, replay_records=first.async_action_results)

    assert calls["increment"] == 1
    assert downstream == [1, 1]
    assert second.args == {"count": 1}
    assert second.branch_at((0, 0)).replayed is True
    assert second.branch_at((0, 0, "outputs", "success", 0)).has_executed
    assert second.async_action_results == first.async_action_results


@pytest.mark.asyncio
async def test_replay_records_survive_json_roundtrip(store: ReducerStore) -> None:
    calls: list[str] = []

    async def fetch(ctx):
        calls.append("fetch")
        return ctx.output.done({"user": "ada"})

    def after(ctx):
        calls.append("after")

    def go(ctx):
        return "go"

    signal = create([step(go, go=[[step(fetch, done=[after])]])])
    first = await signal(store)

    persisted = json.dumps([r.model_dump(mode="json") for r in first.async_action_results])
    second = await signal(store, replay_records=json.loads(persisted))

    assert calls == ["fetch", "after", "after"]
    assert second.args == {"user": "ada"}


@pytest.mark.asyncio
async def test_replay_only_matches_exact_paths(store: ReducerStore) -> None:
    calls: list[str] = []

    async def fetch(ctx):
        calls.append("fetch")

    signal = create([[fetch]])
    await signal(store, replay_records=[{"branch_path": [1, 0], "output_path": None}])

    assert calls == ["fetch"]


@pytest.mark.asyncio
async def test_replay_keeps_non_mapping_payloads(store: ReducerStore) -> None:
    calls: list[str] = []

    async def count(ctx):
        calls.append("count")
        return ctx.output("done", 3)

    signal = create([[step(count, done=[noop])]])
    first = await signal(store)
    persisted = json.dumps([r.model_dump(mode="json") for r in first.async_action_results])
    second = await signal(store, replay_records=json.loads(persisted))

    assert calls == ["count"]
    assert second.branch_at((0, 0)).output == 3
    assert second.args == {}
