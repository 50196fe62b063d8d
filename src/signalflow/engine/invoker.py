"""Invoke user steps.

A step receives a context object and returns its result: ``None`` (no
output), an :class:`Output`, an output name, or a mapping payload for the
default output. ``ctx.output`` builds :class:`Output` values, with any output
name available as a shortcut (``ctx.output.success({...})``). Selecting an
output that has no sub-tree at this position is not an error.

Only synchronous steps get ``dispatch``. They run to completion before the
scheduler moves on, so their store mutations can never interleave with
another step's. Asynchronous steps see a read-only snapshot of the
arguments; the shared bag only changes by merging step outputs.
"""

from __future__ import annotations

import inspect
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from .compiler import Path
from .description import Action
from .errors import StepExecutionError

_NO_PAYLOAD = object()


@dataclass(frozen=True, slots=True)
class Output:
    """The single result of a step: which output fired and what it carried."""

    path: str | None = None
    # A mapping payload is merged into the signal arguments; any other value
    # is only recorded on the branch.
    args: Any = None


class OutputFactory:
    """Builds :class:`Output` values for one step.

    ``output()`` selects the default output, ``output(payload)`` the default
    output with a payload, ``output("name")`` a named output and
    ``output("name", payload)`` a named output with a payload. Any public
    attribute is a shortcut: ``output.error(payload)`` is
    ``output("error", payload)``.
    """

    def __init__(self, names: Iterable[str], default: str | None = None) -> None:
        self._default = default
        self._names = frozenset(n for n in (*names, default) if n)

    @property
    def names(self) -> frozenset[str]:
        """Outputs with a sub-tree at this position, plus the default."""
        return self._names

    def __call__(self, name_or_payload: Any = _NO_PAYLOAD, payload: Any = _NO_PAYLOAD) -> Output:
        if isinstance(name_or_payload, str):
            name: str | None = name_or_payload
            value = None if payload is _NO_PAYLOAD else payload
        else:
            if payload is not _NO_PAYLOAD:
                raise TypeError("Output payload given without an output name")
            name = self._default
            value = None if name_or_payload is _NO_PAYLOAD else name_or_payload
        return Output(path=name, args=value)

    def __getattr__(self, name: str) -> Callable[..., Output]:
        if name.startswith("_"):
            raise AttributeError(name)

        def named(payload: Any = _NO_PAYLOAD) -> Output:
            return self(name, payload)

        return named


class StepContext:
    """What an asynchronous step sees: arguments, read access, services."""

    __slots__ = ("args", "services", "output", "path", "name", "_store")

    def __init__(
        self,
        *,
        args: Mapping[str, Any],
        store: Any,
        services: Any,
        output: OutputFactory,
        path: Path,
        name: str,
    ) -> None:
        self.args = args
        self.services = services
        self.output = output
        self.path = path
        self.name = name
        self._store = store

    def get_state(self) -> Any:
        return self._store.get_state()


class SyncStepContext(StepContext):
    """Synchronous steps additionally get ``dispatch`` bound to the store."""

    __slots__ = ("_mutations",)

    def __init__(self, *, mutations: list[Any] | None = None, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self._mutations = mutations

    def dispatch(self, mutation: Any) -> Any:
        if self._mutations is not None:
            self._mutations.append(mutation)
        return self._store.dispatch(mutation)


def build_output_factory(action: Action, outputs: Mapping[str, Any] | None) -> OutputFactory:
    return OutputFactory(outputs.keys() if outputs else (), action.default_output)


def normalize_result(result: Any, action: Action, path: Path) -> Output | None:
    """Turn a step's return value into an :class:`Output` (or ``None``)."""

    if result is None:
        return None
    if isinstance(result, Output):
        return result
    if isinstance(result, str):
        return Output(path=result)
    if isinstance(result, Mapping):
        return Output(path=action.default_output, args=result)
    raise StepExecutionError(
        f"Unsupported step result of type {type(result).__name__}; "
        "return None, an output name, a mapping or ctx.output(...)",
        path=path,
        step_name=action.name,
    )


def invoke_sync(action: Action, ctx: SyncStepContext) -> Output | None:
    """Call a synchronous step and return its normalised output."""

    try:
        result = action.func(ctx)
    except StepExecutionError:
        raise
    except Exception as e:
        raise StepExecutionError(
            str(e) or type(e).__name__, path=ctx.path, step_name=action.name
        ) from e

    if inspect.isawaitable(result):
        if inspect.iscoroutine(result):
            result.close()
        raise StepExecutionError(
            "Synchronous step returned an awaitable; place it in a concurrent group",
            path=ctx.path,
            step_name=action.name,
        )
    return normalize_result(result, action, ctx.path)


async def invoke_async(action: Action, ctx: StepContext) -> Output | None:
    """Call an asynchronous step, awaiting its result when it is awaitable."""

    try:
        result = action.func(ctx)
        if inspect.isawaitable(result):
            result = await result
    except StepExecutionError:
        raise
    except Exception as e:
        raise StepExecutionError(
            str(e) or type(e).__name__, path=ctx.path, step_name=action.name
        ) from e
    return normalize_result(result, action, ctx.path)
