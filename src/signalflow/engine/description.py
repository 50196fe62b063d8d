"""Tagged description model for signals.

A signal is described as a sequence of entries. Each entry is decided by
construction rather than by inspecting neighbouring values:

- a plain callable or an :class:`Action` is a step with no outputs
- :class:`Step` is a step that may declare named output sub-trees
- :class:`Concurrent` (or a nested list/tuple) is a group of steps run concurrently

Example::

    signal = create([
        load_user,
        step(check_permissions, allowed=[grant], denied=[deny]),
        concurrent(fetch_profile, step(fetch_avatar, success=[store_avatar])),
        finish,
    ])
"""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, overload

StepFunc = Callable[..., Any]


def default_action_key(func: StepFunc) -> str:
    """Stable identifier derived from where a callable is defined."""

    module = getattr(func, "__module__", None) or "<unknown>"
    qualname = getattr(func, "__qualname__", None) or type(func).__qualname__
    return f"{module}.{qualname}"


@dataclass(frozen=True, slots=True)
class Action:
    """A step callable plus the identity the registry addresses it by."""

    func: StepFunc
    key: str = ""
    name: str = ""
    default_output: str | None = None

    def __post_init__(self) -> None:
        if not callable(self.func):
            raise TypeError(f"Action target must be callable, got {type(self.func).__name__}")
        if not self.key:
            object.__setattr__(self, "key", default_action_key(self.func))
        if not self.name:
            name = getattr(self.func, "__name__", None) or type(self.func).__name__
            object.__setattr__(self, "name", name)

    def __call__(self, *args: Any, **kwargs: Any) -> Any:
        return self.func(*args, **kwargs)


@overload
def action(func: StepFunc, /) -> Action: ...


@overload
def action(
    *,
    key: str | None = ...,
    name: str | None = ...,
    default_output: str | None = ...,
) -> Callable[[StepFunc], Action]: ...


def action(
    func: StepFunc | None = None,
    /,
    *,
    key: str | None = None,
    name: str | None = None,
    default_output: str | None = None,
) -> Action | Callable[[StepFunc], Action]:
    """Wrap a callable as an :class:`Action`.

    Works as a plain call, a bare decorator, or a decorator with options::

        @action(default_output="success")
        async def fetch(ctx): ...
    """

    def wrap(f: StepFunc) -> Action:
        return Action(func=f, key=key or "", name=name or "", default_output=default_output)

    if func is not None:
        return wrap(func)
    return wrap


@dataclass(frozen=True, slots=True)
class Step:
    """A step entry, optionally declaring named output sub-trees."""

    target: Action | StepFunc
    outputs: Mapping[str, Sequence[Any]] | None = None


def step(target: Action | StepFunc, /, **outputs: Sequence[Any]) -> Step:
    """Build a :class:`Step`; keyword arguments are the named outputs."""

    return Step(target=target, outputs=dict(outputs) or None)


@dataclass(frozen=True, slots=True)
class Concurrent:
    """A group of steps initiated together and joined before the sequence continues."""

    members: tuple[Any, ...] = field(default_factory=tuple)


def concurrent(*members: Any) -> Concurrent:
    return Concurrent(members=tuple(members))


def as_action(target: Action | StepFunc) -> Action:
    if isinstance(target, Action):
        return target
    return Action(func=target)
