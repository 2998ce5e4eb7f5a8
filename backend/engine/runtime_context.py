"""
Runtime execution context.

Provides Runtime with live access to session-owned imperative resources
needed for command execution (channels, session metadata).

This module contains:
- Narrow Protocols (capabilities, not implementations)
- Zero orchestration logic
- Zero state mutation
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Mapping, Protocol, runtime_checkable

from adapters.channels.base import ChannelListener, QueryAck, Unsubscribe

if TYPE_CHECKING:
    from session.overlay_session import OverlaySession


# ---------------------------------------------------------------------
# Channel Protocols
# ---------------------------------------------------------------------

@runtime_checkable
class PrimaryChannelProtocol(Protocol):
    def subscribe(self, listener: ChannelListener) -> Unsubscribe: ...
    async def query(self, conversation_id: str, question: str) -> QueryAck: ...


@runtime_checkable
class FallbackChannelProtocol(Protocol):
    def subscribe(self, listener: ChannelListener) -> Unsubscribe: ...
    async def stream_chat(
        self,
        question: str,
        context: str,
        options: Mapping[str, Any],
    ) -> None: ...


# ---------------------------------------------------------------------
# Runtime Execution Context
# ---------------------------------------------------------------------

class RuntimeExecutionContext:
    """
    Imperative execution context for Runtime.

    Live views into session-owned resources, so Runtime does not need
    to synchronize or cache anything.

    Runtime is allowed to:
    - Subscribe to and call channels

    Runtime is NOT allowed to:
    - Mutate session state directly
    - Perform orchestration decisions
    """

    def __init__(self, session: OverlaySession) -> None:
        self.session = session

    @property
    def session_id(self) -> str:
        return self.session.session_id

    @property
    def primary_channel(self) -> PrimaryChannelProtocol | None:
        return self.session.primary_channel

    @property
    def fallback_channel(self) -> FallbackChannelProtocol | None:
        return self.session.fallback_channel
