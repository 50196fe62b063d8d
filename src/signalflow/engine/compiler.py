"""Compile signal descriptions into an immutable, addressable template.

The template holds only shape: branch paths, registry indices and output
sub-trees. Run state lives elsewhere (see ``scheduler``), so one compiled
signal can back any number of runs, including concurrent ones.
"""

from __future__ import annotations

import inspect
from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Union

from .description import Action, Concurrent, Step, as_action
from .errors import DescriptionError

Path = tuple[int | str, ...]


class Registry:
    """Append-only list of unique actions, addressed by index.

    Actions are interned by ``key``. Two different callables that derive the
    same default key (e.g. two lambdas in one module) get deterministic
    ``#n`` suffixes in order of first appearance.
    """

    def __init__(self) -> None:
        self._actions: list[Action] = []
        self._by_key: dict[str, int] = {}

    def intern(self, target: Action | Any) -> int:
        candidate = as_action(target)
        key = candidate.key
        suffix = 0
        while key in self._by_key:
            existing = self._actions[self._by_key[key]]
            if existing.func is candidate.func and existing.default_output == candidate.default_output:
                return self._by_key[key]
            suffix += 1
            key = f"{candidate.key}#{suffix}"

        if key != candidate.key:
            candidate = Action(
                func=candidate.func,
                key=key,
                name=candidate.name,
                default_output=candidate.default_output,
            )
        self._by_key[key] = len(self._actions)
        self._actions.append(candidate)
        return len(self._actions) - 1

    def __getitem__(self, index: int) -> Action:
        return self._actions[index]

    def __len__(self) -> int:
        return len(self._actions)

    def __iter__(self) -> Iterator[Action]:
        return iter(self._actions)

    def keys(self) -> list[str]:
        return [a.key for a in self._actions]


@dataclass(frozen=True, slots=True)
class BranchTemplate:
    path: Path
    action_index: int
    name: str
    is_async: bool
    outputs: Mapping[str, tuple[Node, ...]] | None = None


@dataclass(frozen=True, slots=True)
class AsyncGroup:
    path: Path
    members: tuple[BranchTemplate, ...] = field(default_factory=tuple)


Node = Union[BranchTemplate, AsyncGroup]


@dataclass(frozen=True, slots=True)
class CompiledTree:
    registry: Registry
    branches: tuple[Node, ...]

    def iter_branches(self) -> Iterator[BranchTemplate]:
        """Yield every branch template, depth-first in source order."""

        yield from _iter_nodes(self.branches)


def _iter_nodes(nodes: Sequence[Node]) -> Iterator[BranchTemplate]:
    for node in nodes:
        members = node.members if isinstance(node, AsyncGroup) else (node,)
        for branch in members:
            yield branch
            if branch.outputs:
                for subtree in branch.outputs.values():
                    yield from _iter_nodes(subtree)


def compile_description(description: Sequence[Any]) -> CompiledTree:
    """Compile a validated description into a :class:`CompiledTree`."""

    registry = Registry()
    branches = _compile_sequence(description, (), registry)
    return CompiledTree(registry=registry, branches=branches)


def _compile_sequence(entries: Sequence[Any], path: Path, registry: Registry) -> tuple[Node, ...]:
    nodes: list[Node] = []
    for index, entry in enumerate(entries):
        here = (*path, index)
        if isinstance(entry, Concurrent):
            nodes.append(_compile_group(entry.members, here, registry))
        elif isinstance(entry, (list, tuple)):
            nodes.append(_compile_group(entry, here, registry))
        else:
            nodes.append(_compile_step(entry, here, registry, is_async=False))
    return tuple(nodes)


def _compile_group(members: Sequence[Any], path: Path, registry: Registry) -> AsyncGroup:
    compiled = tuple(
        _compile_step(member, (*path, index), registry, is_async=True)
        for index, member in enumerate(members)
    )
    return AsyncGroup(path=path, members=compiled)


def _compile_step(entry: Any, path: Path, registry: Registry, *, is_async: bool) -> BranchTemplate:
    if isinstance(entry, Step):
        target, outputs = entry.target, entry.outputs
    else:
        target, outputs = entry, None

    index = registry.intern(target)
    registered = registry[index]

    if not is_async and inspect.iscoroutinefunction(registered.func):
        raise DescriptionError(
            f"Coroutine step {registered.name!r} must run inside a concurrent group",
            location=path,
        )

    compiled_outputs: dict[str, tuple[Node, ...]] | None = None
    if outputs:
        compiled_outputs = {
            name: _compile_sequence(subtree, (*path, "outputs", name), registry)
            for name, subtree in outputs.items()
        }

    return BranchTemplate(
        path=path,
        action_index=index,
        name=registered.name,
        is_async=is_async,
        outputs=compiled_outputs,
    )
