"""Test configuration and fixtures."""

import pytest

from signalflow.config import SignalflowSettings
from signalflow.store import ReducerStore, set_property_reducer


@pytest.fixture
def store() -> ReducerStore:
    """Provide an empty reducer-backed store."""
    return ReducerStore(set_property_reducer)


@pytest.fixture
def settings() -> SignalflowSettings:
    """Provide settings that ignore any local `.env` file."""
    return SignalflowSettings(_env_file=None)
