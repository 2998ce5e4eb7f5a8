# pylint: disable=missing-module-docstring,missing-function-docstring,protected-access

import asyncio
from typing import Any

import pytest

from adapters.llm.openai_fallback import OpenAIFallbackChannel
from bootstrap import configure_logging, create_gateway
from config import AppConfig
from observability import logger
from session.gateway import SessionGateway


@pytest.fixture(autouse=True)
def captured(monkeypatch: pytest.MonkeyPatch) -> list[str]:
    lines: list[str] = []
    monkeypatch.setattr(logger, "_print", lines.append)
    monkeypatch.setattr(logger, "_min_level", logger._min_level)
    monkeypatch.setattr(logger, "_enabled", logger._enabled)
    return lines


def make_config(**overrides: Any) -> AppConfig:
    fields: dict[str, Any] = {
        "env": "test",
        "log_level": "INFO",
        "llm_provider": "openai",
        "llm_model": "test-model",
        "openai_api_key": None,
        "groq_api_key": None,
        "enable_json_logs": True,
    }
    fields.update(overrides)
    return AppConfig(**fields)


def opened(gw: SessionGateway) -> Any:
    asyncio.run(gw.on_open())
    assert gw.session is not None
    return gw.session


def test_missing_key_leaves_gateway_without_fallback():
    gw = create_gateway(config=make_config())

    assert opened(gw).fallback_channel is None


def test_openai_key_builds_fallback_channel(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.delenv("OPENAI_BASE_URL", raising=False)
    gw = create_gateway(config=make_config(openai_api_key="sk-test"))

    fallback = opened(gw).fallback_channel

    assert isinstance(fallback, OpenAIFallbackChannel)
    assert "api.openai.com" in str(fallback._client.base_url)


def test_groq_provider_uses_groq_key():
    gw = create_gateway(
        config=make_config(llm_provider="groq", groq_api_key="gsk-test", openai_api_key="sk-x")
    )

    fallback = opened(gw).fallback_channel

    assert isinstance(fallback, OpenAIFallbackChannel)
    assert "api.groq.com" in str(fallback._client.base_url)
    assert fallback._client.api_key == "gsk-test"


def test_groq_provider_without_groq_key_has_no_fallback():
    gw = create_gateway(config=make_config(llm_provider="groq", openai_api_key="sk-x"))

    assert opened(gw).fallback_channel is None


def test_configure_logging_applies_level(captured: list[str]):
    configure_logging(make_config(log_level="WARNING"))

    logger.log_event({"event_type": "QUIET"})
    logger.log_event({"event_type": "LOUD", "level": "WARNING"})

    assert len(captured) == 1
    assert "LOUD" in captured[0]


def test_configure_logging_can_disable_output(captured: list[str]):
    configure_logging(make_config(enable_json_logs=False))

    logger.log_event({"event_type": "ANY", "level": "ERROR"})

    assert captured == []


def test_create_gateway_loads_config_from_env(monkeypatch: pytest.MonkeyPatch):
    for name in ("OPENAI_API_KEY", "GROQ_API_KEY", "LLM_PROVIDER", "RESPONSE_TIMEOUT_MS"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("LOG_LEVEL", "ERROR")

    gw = create_gateway()

    assert opened(gw).fallback_channel is None
    assert logger._min_level == logger.LOG_LEVELS.index("ERROR")
