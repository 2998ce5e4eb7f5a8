"""
Response stream consumer.

Pure helpers over the conversation log for exactly one in-flight
response:

- begin_streaming: mint the assistant placeholder and return its id
- on_token:        append a delta verbatim to the target message
- on_done:         finalize the target message
- on_error:        remove the target message from the log
- on_cancel:       mark the target message cancelled (kept, not "done")

Every handler is a no-op unless message_id is the turn's current
target_message_id, so late events from a superseded subscription can
never touch the log. This module is the only writer of Message.content.
"""

from __future__ import annotations

from dataclasses import replace

from engine.enums.outcome import MessageStatus
from engine.state_dataclass import ConversationState, Message, Role


def _mint_id(state: ConversationState, role: Role) -> tuple[ConversationState, str]:
    seq = state.next_message_seq
    return replace(state, next_message_seq=seq + 1), f"{role}-{seq}"


def _is_target(state: ConversationState, message_id: str | None) -> bool:
    return (
        message_id is not None
        and state.turn.target_message_id == message_id
    )


def append_user_message(state: ConversationState, text: str) -> ConversationState:
    """Append a finalized user message carrying the question."""
    state, message_id = _mint_id(state, "user")
    message = Message(id=message_id, role="user", content=text)
    return replace(state, messages=state.messages + (message,))


def begin_streaming(state: ConversationState) -> tuple[ConversationState, str]:
    """
    Append exactly one empty streaming assistant message.

    The caller records the returned id as Turn.target_message_id.
    """
    state, message_id = _mint_id(state, "assistant")
    placeholder = Message(
        id=message_id,
        role="assistant",
        content="",
        streaming=True,
        status=MessageStatus.STREAMING,
    )
    return replace(state, messages=state.messages + (placeholder,)), message_id


def on_token(
    state: ConversationState, message_id: str, delta: str
) -> tuple[ConversationState, bool]:
    """Append delta to the target message. Returns (state, applied)."""
    if not _is_target(state, message_id):
        return state, False

    messages = tuple(
        replace(m, content=m.content + delta) if m.id == message_id else m
        for m in state.messages
    )
    return replace(state, messages=messages), True


def on_done(
    state: ConversationState, message_id: str
) -> tuple[ConversationState, bool]:
    """Finalize the target message (streaming=False, status DONE)."""
    return _finalize(state, message_id, MessageStatus.DONE)


def on_cancel(
    state: ConversationState, message_id: str
) -> tuple[ConversationState, bool]:
    """Stop the target message with an explicit CANCELLED marker."""
    return _finalize(state, message_id, MessageStatus.CANCELLED)


def on_error(
    state: ConversationState, message_id: str
) -> tuple[ConversationState, bool]:
    """Drop the target message entirely; a half answer is not shown."""
    if not _is_target(state, message_id):
        return state, False

    messages = tuple(m for m in state.messages if m.id != message_id)
    return replace(state, messages=messages), True


def _finalize(
    state: ConversationState, message_id: str, status: MessageStatus
) -> tuple[ConversationState, bool]:
    if not _is_target(state, message_id):
        return state, False

    messages = tuple(
        replace(m, streaming=False, status=status) if m.id == message_id else m
        for m in state.messages
    )
    return replace(state, messages=messages), True
