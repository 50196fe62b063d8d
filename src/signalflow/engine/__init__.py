"""Signal execution engine.

This package provides:
- a tagged description model (actions, steps, concurrent groups)
- structural validation and compilation into an immutable template
- an asyncio scheduler that records every run for introspection
- replay of recorded asynchronous results

Control flow stays deterministic: synchronous steps run strictly in order,
and only they may mutate the store.
"""

from signalflow.engine.description import Action, Concurrent, Step, action, concurrent, step
from signalflow.engine.errors import (
    DescriptionError,
    SerializationError,
    SignalflowError,
    StepExecutionError,
)
from signalflow.engine.invoker import Output, StepContext, SyncStepContext
from signalflow.engine.replay import ReplayRecord
from signalflow.engine.scheduler import BranchRun, SignalResult
from signalflow.engine.signal import Signal, create

__all__ = [
    "Action",
    "BranchRun",
    "Concurrent",
    "DescriptionError",
    "Output",
    "ReplayRecord",
    "SerializationError",
    "Signal",
    "SignalResult",
    "SignalflowError",
    "Step",
    "StepContext",
    "StepExecutionError",
    "SyncStepContext",
    "action",
    "concurrent",
    "create",
    "step",
]
