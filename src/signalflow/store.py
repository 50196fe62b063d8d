"""Store contract used by signals, plus a reducer-backed reference store.

The engine treats the store as opaque: steps read through ``get_state`` and
synchronous steps mutate through ``dispatch``. Any object with those two
methods works.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from typing import Any, Protocol, runtime_checkable

logger = logging.getLogger(__name__)

Reducer = Callable[[Any, Mapping[str, Any]], Any]


@runtime_checkable
class Store(Protocol):
    """Minimal store interface a signal runs against."""

    def get_state(self) -> Any: ...

    def dispatch(self, mutation: Any) -> Any: ...


class ReducerStore:
    """Reducer-style store: state is replaced by ``reducer(state, mutation)``.

    Mutations must be plain mappings with a ``"type"`` key.
    """

    def __init__(self, reducer: Reducer, initial_state: Any = None) -> None:
        self._reducer = reducer
        self._state = initial_state if initial_state is not None else {}
        self.history: list[Mapping[str, Any]] = []

    def get_state(self) -> Any:
        return self._state

    def dispatch(self, mutation: Any) -> Any:
        if not isinstance(mutation, Mapping) or not mutation.get("type"):
            raise TypeError("Signal steps should dispatch only mappings with a 'type' key")

        self._state = self._reducer(self._state, mutation)
        self.history.append(mutation)
        logger.debug("Store mutation applied", extra={"mutation_type": mutation["type"]})
        return mutation


def set_property_reducer(state: Any, mutation: Mapping[str, Any]) -> Any:
    """Reducer handling ``{"type": "SET_PROPERTY", "name": ..., "value": ...}``.

    Unknown mutation types leave the state unchanged.
    """

    if mutation["type"] == "SET_PROPERTY":
        return {**(state or {}), mutation["name"]: mutation["value"]}
    return state
