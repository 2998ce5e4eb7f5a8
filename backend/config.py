"""
Application configuration.

Responsibilities:
- Load deployment-specific configuration
- Read environment variables
- Provide a typed, immutable config object

Non-responsibilities:
- No reducer logic
- No behavioral constants (see policy.py)
- No runtime mutation
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from policy import (
    DISPLAYED_SPEAKER,
    RESPONSE_TIMEOUT_MS_DEFAULT,
    SELF_SPEAKER,
)


@dataclass(frozen=True)
class AppConfig:
    """
    Immutable application configuration.

    Constructed once at process startup.
    Passed downward to the session gateway.
    """

    # ------------------------------------------------------------------
    # Environment
    # ------------------------------------------------------------------

    env: str
    log_level: str

    # ------------------------------------------------------------------
    # Fallback channel (direct chat)
    # ------------------------------------------------------------------

    llm_provider: str
    llm_model: str
    openai_api_key: str | None
    groq_api_key: str | None

    # ------------------------------------------------------------------
    # Observability
    # ------------------------------------------------------------------

    enable_json_logs: bool

    # ------------------------------------------------------------------
    # Turn policy
    # ------------------------------------------------------------------

    # How long a turn may sit in WAITING before it errors out (0 = never)
    response_timeout_ms: int = RESPONSE_TIMEOUT_MS_DEFAULT

    # ------------------------------------------------------------------
    # Transcript routing
    # ------------------------------------------------------------------

    displayed_speaker: str = DISPLAYED_SPEAKER
    self_speaker: str = SELF_SPEAKER

    # ------------------------------------------------------------------
    # Factory
    # ------------------------------------------------------------------

    @staticmethod
    def load_from_env() -> AppConfig:
        """
        Load configuration from environment variables.

        Raises:
            ValueError if RESPONSE_TIMEOUT_MS is not an integer.
        """
        return AppConfig(
            env=os.environ.get("ENV", "dev"),
            log_level=os.environ.get("LOG_LEVEL", "INFO"),

            llm_provider=os.environ.get("LLM_PROVIDER", "openai"),
            llm_model=os.environ.get("LLM_MODEL", "gpt-4o-mini"),
            openai_api_key=os.environ.get("OPENAI_API_KEY"),
            groq_api_key=os.environ.get("GROQ_API_KEY"),

            enable_json_logs=os.environ.get("ENABLE_JSON_LOGS", "1") == "1",

            response_timeout_ms=int(
                os.environ.get("RESPONSE_TIMEOUT_MS", str(RESPONSE_TIMEOUT_MS_DEFAULT))
            ),
            displayed_speaker=os.environ.get("DISPLAYED_SPEAKER", DISPLAYED_SPEAKER),
            self_speaker=os.environ.get("SELF_SPEAKER", SELF_SPEAKER),
        )
