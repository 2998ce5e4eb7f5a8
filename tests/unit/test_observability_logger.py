# pylint: disable=missing-module-docstring,missing-function-docstring

import json
from typing import Any

import pytest

from observability import logger


@pytest.fixture
def captured(monkeypatch: pytest.MonkeyPatch) -> list[str]:
    lines: list[str] = []

    # Patch the explicit output sink used by logger
    monkeypatch.setattr(logger, "_print", lines.append)

    # Restore level configuration after each test
    monkeypatch.setattr(logger, "_min_level", logger._min_level)  # pylint: disable=protected-access
    monkeypatch.setattr(logger, "_enabled", True)
    return lines


def test_log_event_emits_valid_jsonl(captured: list[str]) -> None:
    """
    Contract:
    - log_event emits exactly one JSONL line
    - payload is serialized as-is
    - output sink is patchable
    """
    payload: dict[str, Any] = {
        "event_type": "TEST",
        "value": 123,
    }

    logger.log_event(payload)

    assert len(captured) == 1
    assert json.loads(captured[0]) == payload


def test_records_below_min_level_are_dropped(captured: list[str]) -> None:
    logger.configure(level="INFO")

    logger.log_event({"event_type": "stale", "level": "DEBUG"})
    logger.log_event({"event_type": "kept", "level": "WARNING"})
    logger.log_event({"event_type": "default_info"})

    assert [json.loads(line)["event_type"] for line in captured] == ["kept", "default_info"]


def test_debug_level_lets_stale_diagnostics_through(captured: list[str]) -> None:
    logger.configure(level="debug")

    logger.log_event({"event_type": "stale", "level": "DEBUG"})

    assert len(captured) == 1


def test_disabled_logger_writes_nothing(captured: list[str]) -> None:
    logger.configure(enabled=False)

    logger.log_event({"event_type": "anything", "level": "ERROR"})

    assert captured == []


def test_unserializable_payload_never_raises(captured: list[str]) -> None:
    logger.log_event({"ts_ms": 5, "event_type": "bad", "obj": object()})

    assert len(captured) == 1
    decoded = json.loads(captured[0])
    assert decoded["event_type"] == "LOGGER_SERIALIZATION_ERROR"
    assert decoded["ts_ms"] == 5


def test_unknown_level_name_falls_back_to_info(captured: list[str]) -> None:
    logger.configure(level="verbose")

    logger.log_event({"event_type": "debug_only", "level": "DEBUG"})
    logger.log_event({"event_type": "info"})

    assert [json.loads(line)["event_type"] for line in captured] == ["info"]
