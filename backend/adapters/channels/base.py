"""
Response channel contracts.

Purpose:
- Define the two provider channels the engine negotiates between.
- Keep negotiation, fallback and user-facing error text OUT of channels.

Rules:
- subscribe() returns an unsubscribe function; callers invoke it exactly once.
- Listener callbacks are plain synchronous callables.
- A channel broadcasts to whoever is currently subscribed; it has no
  notion of turns, run ids or target messages.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping


Unsubscribe = Callable[[], None]


@dataclass(frozen=True, eq=False)
class ChannelListener:
    """Callbacks for one streamed response."""
    on_chunk: Callable[[str], None]
    on_complete: Callable[[], None]
    on_error: Callable[[str], None]


class AckStatus(str, Enum):
    OK = "ok"
    UNAVAILABLE = "unavailable"
    ERROR = "error"


@dataclass(frozen=True)
class QueryAck:
    """
    Initial acknowledgement of a primary query.

    UNAVAILABLE is structural ("cannot serve this at all") and is the only
    status that leads to fallback.
    """
    status: AckStatus
    reason: str = ""


class PrimaryChannel(ABC):
    """Context-augmented (RAG) channel keyed by conversation id."""

    @abstractmethod
    def subscribe(self, listener: ChannelListener) -> Unsubscribe:
        raise NotImplementedError

    @abstractmethod
    async def query(self, conversation_id: str, question: str) -> QueryAck:
        """
        Issue the question.

        Contract:
        - Returns once the request is acknowledged; tokens arrive through
          subscribed listeners (possibly before or after returning).
        - Must NOT retry internally.
        """
        raise NotImplementedError


class FallbackChannel(ABC):
    """Direct chat channel. Terminal: it has no unavailable signal."""

    @abstractmethod
    def subscribe(self, listener: ChannelListener) -> Unsubscribe:
        raise NotImplementedError

    @abstractmethod
    async def stream_chat(
        self,
        question: str,
        context: str,
        options: Mapping[str, Any],
    ) -> None:
        """
        Stream an answer to subscribed listeners.

        Contract:
        - Emits zero or more chunks, then exactly one of complete/error.
        - Must NOT retry internally.
        """
        raise NotImplementedError


class ListenerHub:
    """
    Broadcast helper for channel implementations.

    Listeners are snapshotted per emit, so unsubscribing from inside a
    callback is safe.
    """

    def __init__(self) -> None:
        self._listeners: list[ChannelListener] = []

    def __len__(self) -> int:
        return len(self._listeners)

    def add(self, listener: ChannelListener) -> Unsubscribe:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def chunk(self, text: str) -> None:
        for listener in list(self._listeners):
            listener.on_chunk(text)

    def complete(self) -> None:
        for listener in list(self._listeners):
            listener.on_complete()

    def error(self, reason: str) -> None:
        for listener in list(self._listeners):
            listener.on_error(reason)
