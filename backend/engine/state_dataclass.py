"""
Authoritative conversation state container.

Rules:
- These dataclasses are pure data.
- They contain ALL state the reducer may ever need.
- No behavior, no helpers, no derived logic.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

from engine.enums.channel import Channel
from engine.enums.outcome import MessageStatus, TurnOutcome
from engine.enums.turn_state import TurnState
from engine.run_ids import RunIds

from context.meeting import MeetingContext
from policy import RESPONSE_TIMEOUT_MS_DEFAULT


Role = Literal["user", "assistant"]


# =============================================================================
# Conversation log
# =============================================================================

@dataclass(frozen=True)
class Message:
    """
    One entry of the append-mostly conversation log.

    Invariant: at most one message in the log has streaming=True.
    """
    id: str
    role: Role
    content: str = ""
    streaming: bool = False
    status: MessageStatus = MessageStatus.DONE


# =============================================================================
# Turn
# =============================================================================

@dataclass(frozen=True)
class Turn:
    """
    One question/answer cycle.

    target_message_id is carried explicitly; the streaming message is never
    inferred from its position in the log.
    """
    turn_id: int = 0
    state: TurnState = TurnState.IDLE
    question: str = ""
    primary_attempted: bool = False
    target_message_id: str | None = None

    # Channel whose subscription is live for this turn (None when settled)
    phase: Channel | None = None


# =============================================================================
# Conversation State
# =============================================================================

@dataclass(frozen=True)
class ConversationState:
    """Immutable snapshot of all engine-owned state."""

    # ------------------------------------------------------------------
    # Conversation log
    # ------------------------------------------------------------------
    messages: tuple[Message, ...] = ()

    # Monotonic counter used to mint message ids
    next_message_seq: int = 1

    # ------------------------------------------------------------------
    # Turn lifecycle
    # ------------------------------------------------------------------
    turn: Turn = field(default_factory=Turn)

    # ------------------------------------------------------------------
    # Run/version tracking
    # ------------------------------------------------------------------
    active_runs: RunIds = field(default_factory=RunIds)

    # ------------------------------------------------------------------
    # Meeting context (fallback prompt + primary conversation id)
    # ------------------------------------------------------------------
    meeting_context: MeetingContext = field(default_factory=MeetingContext)

    # ------------------------------------------------------------------
    # Outcome of the last settled turn
    # ------------------------------------------------------------------
    last_outcome: TurnOutcome | None = None

    # User-facing error text; only the reducer writes it
    error_message: str | None = None

    # Informational notice (e.g. empty voice capture); never an error
    notice: str | None = None

    # ------------------------------------------------------------------
    # Policy
    # ------------------------------------------------------------------
    response_timeout_ms: int = RESPONSE_TIMEOUT_MS_DEFAULT
