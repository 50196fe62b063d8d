"""Error taxonomy for signal compilation and execution.

Compile-time failures are raised synchronously from ``create``. Run-time
failures are raised from the awaited run; a run fails at most once.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any


class SignalflowError(Exception):
    """Base class for every error raised by the engine."""


class DescriptionError(SignalflowError, ValueError):
    """The signal description is malformed (missing or misspelled action, bad shape)."""

    def __init__(self, message: str, *, location: Sequence[int | str] | None = None) -> None:
        super().__init__(message)
        self.location: tuple[int | str, ...] | None = (
            tuple(location) if location is not None else None
        )

    def __str__(self) -> str:
        base = super().__str__()
        if self.location:
            return f"{base} (at {list(self.location)})"
        return base


class SerializationError(SignalflowError, TypeError):
    """Initial signal arguments cannot be serialized losslessly."""


class StepExecutionError(SignalflowError):
    """A step raised, or produced a result the engine cannot use.

    The original exception, when there is one, is chained as ``__cause__``.
    """

    def __init__(self, message: str, *, path: Sequence[int | str], step_name: str) -> None:
        super().__init__(message)
        self.path: tuple[int | str, ...] = tuple(path)
        self.step_name = step_name
        # Descriptor of the failed run, attached by the scheduler.
        self.signal: Any = None

    def __str__(self) -> str:
        return f"Step {self.step_name!r} at {list(self.path)} failed: {super().__str__()}"
