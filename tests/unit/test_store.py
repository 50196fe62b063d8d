"""Unit tests for the reducer-backed reference store."""

from __future__ import annotations

import pytest

from signalflow.store import ReducerStore, Store, set_property_reducer


def test_reducer_store_applies_mutations() -> None:
    store = ReducerStore(set_property_reducer)

    store.dispatch({"type": "SET_PROPERTY", "name": "hello", "value": "world"})
    store.dispatch({"type": "UNKNOWN"})

    assert store.get_state() == {"hello": "world"}
    assert [m["type"] for m in store.history] == ["SET_PROPERTY", "UNKNOWN"]


def test_reducer_store_rejects_non_mapping_mutations() -> None:
    store = ReducerStore(set_property_reducer, initial_state={"a": 1})

    with pytest.raises(TypeError):
        store.dispatch("SET_PROPERTY")
    with pytest.raises(TypeError):
        store.dispatch({"name": "x"})

    assert store.get_state() == {"a": 1}


def test_reducer_store_satisfies_store_protocol() -> None:
    assert isinstance(ReducerStore(set_property_reducer), Store)
