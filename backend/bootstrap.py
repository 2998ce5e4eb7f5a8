"""
Process bootstrap.

Responsibilities:
- Load configuration once per process
- Apply logging configuration
- Build the shared LLM client for the fallback channel
- Create session gateways (one per overlay window)
"""

from __future__ import annotations

from typing import Any

from adapters.llm.openai_fallback import build_llm_client
from config import AppConfig
from engine.runtime_context import PrimaryChannelProtocol
from observability import logger
from session.gateway import SessionGateway


def configure_logging(config: AppConfig) -> None:
    logger.configure(level=config.log_level, enabled=config.enable_json_logs)


def create_gateway(
    *,
    config: AppConfig | None = None,
    primary_channel: PrimaryChannelProtocol | None = None,
    openai_client: Any | None = None,
) -> SessionGateway:
    """
    Build a gateway wired to the configured providers.

    Without an API key for the selected provider the gateway has no
    fallback channel; turns that reach it end in the fallback error.
    """
    config = config or AppConfig.load_from_env()
    configure_logging(config)

    if openai_client is None:
        api_key = (
            config.groq_api_key
            if config.llm_provider.lower() == "groq"
            else config.openai_api_key
        )
        if api_key:
            openai_client = build_llm_client(config)

    return SessionGateway(
        config=config,
        primary_channel=primary_channel,
        openai_client=openai_client,
    )
