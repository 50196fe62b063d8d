#!/usr/bin/env python3
"""Programmatic signal example.

This demonstrates using the engine directly:

* load settings from `.env`
* compile a signal mixing synchronous steps and a concurrent group
* run it against a reducer store
* persist the asynchronous results and replay them on a second run

The replay file location is passed as an argument.
"""

from __future__ import annotations

import argparse
import asyncio
import json
from pathlib import Path
from typing import Sequence

from signalflow.config import SignalflowSettings
from signalflow.engine import StepExecutionError, concurrent, create, step
from signalflow.logging import configure_logging
from signalflow.store import ReducerStore, set_property_reducer


def set_loading(ctx):
    ctx.dispatch({"type": "SET_PROPERTY", "name": "loading", "value": True})


async def fetch_user(ctx):
    await asyncio.sleep(0.05)
    if ctx.args["user_id"] < 0:
        return ctx.output.error({"error": "unknown user"})
    return ctx.output.success({"user": {"id": ctx.args["user_id"], "name": "Ada"}})


def set_user(ctx):
    ctx.dispatch({"type": "SET_PROPERTY", "name": "user", "value": ctx.args["user"]})


def set_error(ctx):
    ctx.dispatch({"type": "SET_PROPERTY", "name": "error", "value": ctx.args["error"]})


def unset_loading(ctx):
    ctx.dispatch({"type": "SET_PROPERTY", "name": "loading", "value": False})


user_requested = create(
    [
        set_loading,
        concurrent(step(fetch_user, success=[set_user], error=[set_error])),
        unset_loading,
    ],
    name="user_requested",
)


def _parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run a signal twice, replaying async results.")
    parser.add_argument("--user-id", type=int, default=1, help="User id passed as signal args")
    parser.add_argument(
        "--replay-file",
        type=Path,
        default=Path("replay.json"),
        help="Where the asynchronous results of the first run are written",
    )
    return parser.parse_args(argv)


async def _run(args: argparse.Namespace) -> int:
    store = ReducerStore(set_property_reducer)

    try:
        first = await user_requested(store, args={"user_id": args.user_id})
    except StepExecutionError as exc:
        print(str(exc))
        return 1

    args.replay_file.write_text(
        json.dumps([r.model_dump(mode="json") for r in first.async_action_results], indent=2),
        encoding="utf-8",
    )
    print(f"First run took {first.duration:.1f} ms, state: {store.get_state()}")

    records = json.loads(args.replay_file.read_text(encoding="utf-8"))
    second = await user_requested(store, args={"user_id": args.user_id}, replay_records=records)
    print(f"Replayed run took {second.duration:.1f} ms, state: {store.get_state()}")
    print(f"Persisted to: {args.replay_file}")
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    args = _parse_args(argv)

    settings = SignalflowSettings()
    configure_logging(settings.log_level, json_output=settings.json_logs)

    return asyncio.run(_run(args))


if __name__ == "__main__":
    raise SystemExit(main())
