"""Replay of previously recorded asynchronous results.

Every asynchronous branch that settles during a run is captured as a
:class:`ReplayRecord` keyed by its structural path. Passing those records to
a later run of the same signal makes matching branches resolve immediately
instead of invoking their step again.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from .compiler import Path

logger = logging.getLogger(__name__)


class ReplayRecord(BaseModel):
    """Captured result of one asynchronous branch."""

    model_config = ConfigDict(frozen=True)

    branch_path: tuple[int | str, ...] = Field(
        description="Structural path of the asynchronous branch in the compiled tree",
    )
    output_path: str | None = Field(
        default=None,
        description="Name of the output the step selected",
    )
    args: Any = Field(
        default=None,
        description="Payload the step produced",
    )


class ReplayStore:
    """Per-run lookup of replay records plus the list of results captured so far."""

    def __init__(self, records: Iterable[ReplayRecord | Mapping[str, Any]] | None = None) -> None:
        self._by_path: dict[Path, ReplayRecord] = {}
        for raw in records or ():
            record = raw if isinstance(raw, ReplayRecord) else ReplayRecord.model_validate(raw)
            # First record for a path wins.
            self._by_path.setdefault(record.branch_path, record)
        self.results: list[ReplayRecord] = []

    def __len__(self) -> int:
        return len(self._by_path)

    def lookup(self, path: Path) -> ReplayRecord | None:
        record = self._by_path.get(tuple(path))
        if record is not None:
            logger.debug("Replaying asynchronous branch", extra={"branch_path": list(path)})
        return record

    def record(self, path: Path, output_path: str | None, args: Any) -> ReplayRecord:
        entry = ReplayRecord(
            branch_path=tuple(path),
            output_path=output_path,
            args=dict(args) if isinstance(args, Mapping) else args,
        )
        self.results.append(entry)
        return entry
