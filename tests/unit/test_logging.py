"""Unit tests for structured logging."""

from __future__ import annotations

import json
import logging

import pytest

from signalflow.logging import JsonFormatter, configure_logging


def _record(**extra: object) -> logging.LogRecord:
    record = logging.LogRecord(
        name="signalflow.engine.scheduler",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg="Signal finished",
        args=None,
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_json_formatter_promotes_run_fields() -> None:
    payload = json.loads(JsonFormatter().format(_record(signal="load", branch_path=[1, 0])))

    assert payload["message"] == "Signal finished"
    assert payload["level"] == "INFO"
    assert payload["logger"] == "signalflow.engine.scheduler"
    assert payload["signal"] == "load"
    assert payload["branch_path"] == [1, 0]
    assert "extra" not in payload


def test_json_formatter_keeps_other_fields_under_extra() -> None:
    payload = json.loads(JsonFormatter().format(_record(step="fetch", replay_records=2)))

    assert payload["step"] == "fetch"
    assert payload["extra"] == {"replay_records": 2}


def test_json_formatter_tolerates_unserializable_extras() -> None:
    payload = json.loads(JsonFormatter().format(_record(value=object())))
    assert payload["extra"]["value"].startswith("<object object")


def test_configure_logging_replaces_handlers() -> None:
    root = logging.getLogger()
    saved_handlers, saved_level = list(root.handlers), root.level
    try:
        configure_logging("debug")
        configure_logging("warning", json_output=False)

        assert len(root.handlers) == 1
        assert root.level == logging.WARNING
        assert not isinstance(root.handlers[0].formatter, JsonFormatter)
    finally:
        for handler in list(root.handlers):
            root.removeHandler(handler)
        for handler in saved_handlers:
            root.addHandler(handler)
        root.setLevel(saved_level)


@pytest.mark.asyncio
async def test_scheduler_logs_signal_lifecycle(caplog: pytest.LogCaptureFixture) -> None:
    from signalflow.engine import create
    from signalflow.store import ReducerStore, set_property_reducer

    def noop(ctx):
        return None

    with caplog.at_level(logging.INFO, logger="signalflow.engine.scheduler"):
        await create([noop], name="lifecycle")(ReducerStore(set_property_reducer))

    records = [r for r in caplog.records if r.name == "signalflow.engine.scheduler"]
    assert [r.getMessage() for r in records] == ["Signal started", "Signal finished"]
    assert records[-1].signal == "lifecycle"
