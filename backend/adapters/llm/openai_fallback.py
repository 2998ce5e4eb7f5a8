"""Fallback channel over the OpenAI-compatible chat completions API."""
from __future__ import annotations

import time
from typing import Any, Mapping

from openai import AsyncOpenAI

from adapters.channels.base import ChannelListener, FallbackChannel, ListenerHub, Unsubscribe
from adapters.llm.prompts import DEFAULT_SYSTEM_PROMPT, PROMPT_VERSION
from config import AppConfig
from observability.logger import log_event


def build_llm_client(config: AppConfig) -> AsyncOpenAI:
    """Build an LLM client with the provider selected by environment variables."""
    if config.llm_provider.lower() == "groq":
        return AsyncOpenAI(
            api_key=config.groq_api_key,
            base_url="https://api.groq.com/openai/v1",
        )

    return AsyncOpenAI(api_key=config.openai_api_key)


class OpenAIFallbackChannel(FallbackChannel):
    """
    Direct chat channel.

    Design notes:
    - A dumb pipe: question + context in, deltas out to whoever is
      subscribed right now.
    - Adapter does NOT:
        - Retry
        - Decide fallback or user-facing error text
        - Know about turns, run ids or target messages
    - Cancellation is the caller's task.cancel(); CancelledError is
      never converted into an error broadcast.
    """

    def __init__(
        self,
        *,
        client: Any,
        model: str,
        session_id: str = "",
    ) -> None:
        """
        Args:
            client:
                Vendor client (openai.AsyncOpenAI or a compatible fake).
            model:
                Model identifier string.
            session_id:
                Session identifier for logging/correlation.
        """
        self._client = client
        self._model = model
        self._session_id = session_id
        self._hub = ListenerHub()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def subscribe(self, listener: ChannelListener) -> Unsubscribe:
        return self._hub.add(listener)

    async def stream_chat(
        self,
        question: str,
        context: str,
        options: Mapping[str, Any],
    ) -> None:
        """
        Stream one completion to the current listeners.

        Guarantees:
        - Emits zero or more chunks, then exactly one of complete/error
          (unless cancelled, in which case nothing further is emitted)
        """
        messages = self._build_messages(
            question,
            context,
            skip_system_prompt=bool(options.get("skip_system_prompt", False)),
        )

        log_event({
            "ts_ms": self._now_ms(),
            "event_type": "fallback_stream_start",
            "session_id": self._session_id,
            "model": self._model,
            "prompt_version": PROMPT_VERSION,
            "message_count": len(messages),
        })

        chunks = 0
        try:
            stream = await self._client.chat.completions.create(
                model=self._model,
                messages=messages,
                stream=True,
            )

            async for chunk in stream:
                delta = self._extract_delta(chunk)
                if not delta:
                    continue
                chunks += 1
                self._hub.chunk(delta)

        except Exception as exc:  # pylint: disable=broad-exception-caught
            log_event({
                "ts_ms": self._now_ms(),
                "level": "WARNING",
                "event_type": "fallback_stream_error",
                "session_id": self._session_id,
                "error_type": type(exc).__name__,
                "chunks": chunks,
            })
            self._hub.error(f"{type(exc).__name__}: {exc}")
            return

        log_event({
            "ts_ms": self._now_ms(),
            "event_type": "fallback_stream_done",
            "session_id": self._session_id,
            "chunks": chunks,
        })
        self._hub.complete()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _build_messages(
        question: str,
        context: str,
        *,
        skip_system_prompt: bool,
    ) -> list[dict[str, str]]:
        system_parts: list[str] = []
        if not skip_system_prompt:
            system_parts.append(DEFAULT_SYSTEM_PROMPT)
        if context:
            system_parts.append(context)

        messages: list[dict[str, str]] = []
        if system_parts:
            messages.append({"role": "system", "content": "\n\n".join(system_parts)})
        messages.append({"role": "user", "content": question})
        return messages

    @staticmethod
    def _extract_delta(chunk: Any) -> str:
        """
        Extract token delta from vendor response (OpenAI format).
        """
        try:
            delta = chunk.choices[0].delta
            return delta.content or ""
        except (AttributeError, IndexError):
            return ""

    @staticmethod
    def _now_ms() -> int:
        return int(time.time() * 1000)
