"""Signal factory: validate, compile, and run descriptions.

Example::

    signal = create([
        set_loading,
        concurrent(step(fetch_user, success=[set_user], error=[set_error])),
        unset_loading,
    ])

    result = await signal(store, services={"api": api}, args={"user_id": 1})

    # Later: re-run without repeating completed asynchronous work.
    again = await signal(store, args={"user_id": 1}, replay_records=result.async_action_results)
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable, Mapping, Sequence
from typing import Any

from signalflow.config import SignalflowSettings

from .analyzer import analyze
from .compiler import CompiledTree, compile_description
from .errors import SerializationError
from .replay import ReplayRecord, ReplayStore
from .scheduler import Scheduler, SignalResult, instantiate

logger = logging.getLogger(__name__)


def check_args(args: Any, name: str) -> None:
    """Raise :class:`SerializationError` unless ``args`` serializes to JSON."""

    try:
        json.dumps(args)
    except (TypeError, ValueError, RecursionError) as e:
        raise SerializationError(
            f"Could not serialize arguments to signal {name!r}: {e}"
        ) from e


class Signal:
    """A compiled, runnable description.

    The compiled template is shared by every run and never mutated; each call
    records into its own fresh branch tree.
    """

    def __init__(
        self,
        compiled: CompiledTree,
        *,
        name: str,
        settings: SignalflowSettings,
    ) -> None:
        self.compiled = compiled
        self.name = name
        self.settings = settings

    def __repr__(self) -> str:
        return f"Signal(name={self.name!r}, actions={len(self.compiled.registry)})"

    async def __call__(
        self,
        store: Any,
        services: Any = None,
        args: Mapping[str, Any] | None = None,
        replay_records: Iterable[ReplayRecord | Mapping[str, Any]] | None = None,
    ) -> SignalResult:
        """Run the signal; raises the first failure instead of returning."""

        initial = dict(args) if args is not None else {}
        if self.settings.check_serializable_args:
            check_args(initial, self.name)

        result = SignalResult(name=self.name, args=initial, branches=[])
        result.branches = instantiate(self.compiled.branches, result.arena)
        scheduler = Scheduler(
            compiled=self.compiled,
            signal=result,
            store=store,
            services=services if services is not None else {},
            replay=ReplayStore(replay_records),
            record_mutations=self.settings.record_mutations,
        )
        return await scheduler.run()


def create(
    description: Sequence[Any],
    *,
    name: str | None = None,
    settings: SignalflowSettings | None = None,
) -> Signal:
    """Validate and compile ``description`` into a :class:`Signal`.

    Raises:
        DescriptionError: If the description is malformed.
    """

    analyze(description)
    compiled = compile_description(description)
    signal_name = name or (compiled.registry[0].name if len(compiled.registry) else "signal")
    logger.debug(
        "Signal compiled",
        extra={"signal": signal_name, "actions": compiled.registry.keys()},
    )
    return Signal(compiled, name=signal_name, settings=settings or SignalflowSettings())
