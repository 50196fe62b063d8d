"""Interpret a compiled tree against a store.

Scheduling rules:

- a sequence runs its entries strictly in order; a synchronous branch that
  selects an output with a registered sub-tree runs that sub-tree to
  completion (even if it contains concurrent groups) before the next sibling
- a concurrent group initiates every member in source order and continues
  only once every member, and any sub-tree it selected, has settled
- payloads are merged into one shared argument dict (shallow update), so
  overlapping keys between concurrent members are last-write-wins; a
  payload that is not a mapping is recorded on its branch but not merged
- asynchronous steps get a read-only snapshot of the arguments taken when
  they start, so the shared dict only changes through merged payloads
- the first failure aborts the run; members already in flight are not
  cancelled

Each run builds its own :class:`BranchRun` tree from the template, so runs
never share recording state.
"""

from __future__ import annotations

import asyncio
import logging
import time
from types import MappingProxyType
from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Union

from .compiler import AsyncGroup, BranchTemplate, CompiledTree, Node, Path
from .errors import StepExecutionError
from .invoker import (
    Output,
    StepContext,
    SyncStepContext,
    build_output_factory,
    invoke_async,
    invoke_sync,
)
from .replay import ReplayRecord, ReplayStore

logger = logging.getLogger(__name__)


def _elapsed_ms(start: float) -> float:
    return (time.perf_counter() - start) * 1000.0


@dataclass(slots=True)
class BranchRun:
    """Recorded execution of one branch within one run."""

    path: Path
    action_index: int
    name: str
    is_async: bool
    outputs: dict[str, list[RunNode]] | None = None
    is_executing: bool = False
    has_executed: bool = False
    replayed: bool = False
    args: dict[str, Any] = field(default_factory=dict)
    output: Any = None
    output_path: str | None = None
    duration: float = 0.0
    mutations: list[Any] = field(default_factory=list)

    def to_json(self) -> dict[str, object]:
        return {
            "path": list(self.path),
            "action_index": self.action_index,
            "name": self.name,
            "is_async": self.is_async,
            "is_executing": self.is_executing,
            "has_executed": self.has_executed,
            "replayed": self.replayed,
            "args": self.args,
            "output": self.output,
            "output_path": self.output_path,
            "duration": self.duration,
            "mutations": list(self.mutations),
            "outputs": (
                {name: _nodes_to_json(nodes) for name, nodes in self.outputs.items()}
                if self.outputs is not None
                else None
            ),
        }


# A concurrent group is represented as a list of its members' runs.
RunNode = Union[BranchRun, list[BranchRun]]


def _nodes_to_json(nodes: Sequence[RunNode]) -> list[object]:
    out: list[object] = []
    for node in nodes:
        if isinstance(node, list):
            out.append([member.to_json() for member in node])
        else:
            out.append(node.to_json())
    return out


@dataclass(slots=True)
class SignalResult:
    """Descriptor of one signal run; returned once the run has finished."""

    name: str
    args: dict[str, Any]
    branches: list[RunNode]
    async_action_results: list[ReplayRecord] = field(default_factory=list)
    is_executing: bool = True
    duration: float = 0.0
    arena: dict[Path, BranchRun] = field(default_factory=dict, repr=False)

    def branch_at(self, path: Sequence[int | str]) -> BranchRun:
        """Return the branch run recorded at a structural path."""

        return self.arena[tuple(path)]

    def iter_branches(self) -> Iterator[BranchRun]:
        """Yield every branch run, depth-first in source order."""

        yield from _iter_runs(self.branches)

    def to_json(self) -> dict[str, object]:
        return {
            "name": self.name,
            "args": self.args,
            "branches": _nodes_to_json(self.branches),
            "async_action_results": [r.model_dump(mode="json") for r in self.async_action_results],
            "is_executing": self.is_executing,
            "duration": self.duration,
        }


def _iter_runs(nodes: Sequence[RunNode]) -> Iterator[BranchRun]:
    for node in nodes:
        for branch in node if isinstance(node, list) else (node,):
            yield branch
            if branch.outputs:
                for subtree in branch.outputs.values():
                    yield from _iter_runs(subtree)


def instantiate(nodes: Sequence[Node], arena: dict[Path, BranchRun]) -> list[RunNode]:
    """Build fresh run state mirroring the template, registering every branch in ``arena``."""

    runs: list[RunNode] = []
    for node in nodes:
        if isinstance(node, AsyncGroup):
            runs.append([_instantiate_branch(member, arena) for member in node.members])
        else:
            runs.append(_instantiate_branch(node, arena))
    return runs


def _instantiate_branch(template: BranchTemplate, arena: dict[Path, BranchRun]) -> BranchRun:
    run = BranchRun(
        path=template.path,
        action_index=template.action_index,
        name=template.name,
        is_async=template.is_async,
    )
    arena[template.path] = run
    if template.outputs is not None:
        run.outputs = {
            name: instantiate(subtree, arena) for name, subtree in template.outputs.items()
        }
    return run


class Scheduler:
    """Runs one signal invocation. Create a new scheduler per run."""

    def __init__(
        self,
        *,
        compiled: CompiledTree,
        signal: SignalResult,
        store: Any,
        services: Any,
        replay: ReplayStore,
        record_mutations: bool = True,
    ) -> None:
        self._registry = compiled.registry
        self._signal = signal
        self._store = store
        self._services = services
        self._replay = replay
        self._record_mutations = record_mutations

    @property
    def args(self) -> dict[str, Any]:
        return self._signal.args

    async def run(self) -> SignalResult:
        signal = self._signal
        start = time.perf_counter()
        logger.info(
            "Signal started",
            extra={"signal": signal.name, "replay_records": len(self._replay)},
        )
        try:
            await self.run_sequence(signal.branches)
        except BaseException as e:
            if isinstance(e, StepExecutionError) and e.signal is None:
                e.signal = signal
            signal.is_executing = False
            signal.duration = _elapsed_ms(start)
            signal.async_action_results = list(self._replay.results)
            logger.warning(
                "Signal failed",
                extra={"signal": signal.name, "duration_ms": signal.duration},
            )
            raise

        signal.is_executing = False
        signal.duration = _elapsed_ms(start)
        signal.async_action_results = list(self._replay.results)
        logger.info(
            "Signal finished",
            extra={"signal": signal.name, "duration_ms": signal.duration},
        )
        return signal

    async def run_sequence(self, nodes: Sequence[RunNode]) -> None:
        for node in nodes:
            if isinstance(node, list):
                await self._run_group(node)
            else:
                await self._run_sync(node)

    async def _run_sync(self, branch: BranchRun) -> None:
        action = self._registry[branch.action_index]
        branch.args = dict(self.args)
        branch.is_executing = True
        ctx = SyncStepContext(
            args=self.args,
            store=self._store,
            services=self._services,
            output=build_output_factory(action, branch.outputs),
            path=branch.path,
            name=branch.name,
            mutations=branch.mutations if self._record_mutations else None,
        )

        logger.debug("Running step", extra={"step": branch.name, "branch_path": list(branch.path)})
        start = time.perf_counter()
        try:
            result = invoke_sync(action, ctx)
        finally:
            branch.is_executing = False
            branch.duration = _elapsed_ms(start)

        await self._settle(branch, result)

    async def _run_group(self, members: list[BranchRun]) -> None:
        await asyncio.gather(*(self._run_member(member) for member in members))

    async def _run_member(self, branch: BranchRun) -> None:
        action = self._registry[branch.action_index]
        branch.args = dict(self.args)
        branch.is_executing = True

        recorded = self._replay.lookup(branch.path)
        start = time.perf_counter()
        try:
            if recorded is not None:
                branch.replayed = True
                result: Output | None = Output(path=recorded.output_path, args=recorded.args)
            else:
                ctx = StepContext(
                    args=MappingProxyType(dict(self.args)),
                    store=self._store,
                    services=self._services,
                    output=build_output_factory(action, branch.outputs),
                    path=branch.path,
                    name=branch.name,
                )
                logger.debug(
                    "Running asynchronous step",
                    extra={"step": branch.name, "branch_path": list(branch.path)},
                )
                result = await invoke_async(action, ctx)
        finally:
            branch.is_executing = False
            branch.duration = _elapsed_ms(start)

        self._replay.record(
            branch.path,
            result.path if result is not None else None,
            result.args if result is not None else None,
        )
        await self._settle(branch, result)

    async def _settle(self, branch: BranchRun, result: Output | None) -> None:
        """Record a step's output, merge its payload and run the selected sub-tree."""

        branch.has_executed = True
        if result is None:
            return

        if isinstance(result.args, Mapping):
            branch.output = dict(result.args)
            self.args.update(branch.output)
        else:
            branch.output = result.args

        if result.path is None:
            return
        branch.output_path = result.path

        subtree = branch.outputs.get(result.path) if branch.outputs else None
        if subtree is None:
            logger.debug(
                "No sub-tree registered for output",
                extra={"step": branch.name, "output": result.path},
            )
            return
        await self.run_sequence(subtree)
