"""signalflow.

Compile declarative trees of synchronous and asynchronous steps into
instrumented signals and run them against a mutable store:
- configuration loaded from `.env`
- structured logging
- replay of recorded asynchronous results
"""

__version__ = "0.1.0"

from signalflow.config import SignalflowSettings
from signalflow.engine import (
    DescriptionError,
    SerializationError,
    StepExecutionError,
    action,
    concurrent,
    create,
    step,
)

__all__ = [
    "DescriptionError",
    "SerializationError",
    "SignalflowSettings",
    "StepExecutionError",
    "__version__",
    "action",
    "concurrent",
    "create",
    "step",
]
