"""
Provider negotiation (primary -> fallback).

Two-phase protocol per turn:

1. PRIMARY (context-augmented). Opened only when the meeting has a
   conversation id.
2. FALLBACK (direct chat). Opened when the primary phase answers
   "unavailable", or directly when there is no conversation id.

Invariants:
- Exactly one phase's listeners are live for a turn at any time.
- Falling back disposes every PRIMARY listener BEFORE the FALLBACK
  subscription is opened (DisposeChannel precedes OpenFallback in the
  emitted command order).
- The fallback phase reuses the turn's target_message_id, so the user
  sees one continuous answer.
- A genuine error never falls back.

Pure: returns (state, commands); run IDs are bumped here on open and
never on dispose.
"""

from __future__ import annotations

from dataclasses import replace

from engine.commands import Command, DisposeChannel, OpenFallback, OpenPrimary
from engine.decision_log import log
from engine.enums.channel import Channel
from engine.events import ChannelUnavailable, Event
from engine.run_ids import RunIds
from engine.state_dataclass import ConversationState

from context.serialization import build_fallback_prompt


def bump_run_id(active_runs: RunIds, channel: Channel) -> RunIds:
    if channel is Channel.PRIMARY:
        return replace(active_runs, primary=active_runs.primary + 1)
    if channel is Channel.FALLBACK:
        return replace(active_runs, fallback=active_runs.fallback + 1)
    raise ValueError(channel)


def active_run_for(active_runs: RunIds, channel: Channel) -> int:
    if channel is Channel.PRIMARY:
        return active_runs.primary
    if channel is Channel.FALLBACK:
        return active_runs.fallback
    raise ValueError(channel)


def start(
    state: ConversationState, event: Event
) -> tuple[ConversationState, tuple[Command, ...]]:
    """
    Open the first phase for the current turn.

    Expects turn.target_message_id and turn.question to be set.
    """
    conversation_id = state.meeting_context.meeting_id
    if conversation_id:
        return _open_primary(state, event, conversation_id)
    return _open_fallback(state, event, source="no_conversation_id")


def fall_back(
    state: ConversationState, event: ChannelUnavailable
) -> tuple[ConversationState, tuple[Command, ...]]:
    """
    Abandon the primary phase and continue on the fallback channel.

    Disposal of the primary subscription is emitted first.
    """
    cmds: list[Command] = [
        log(
            state,
            event,
            "primary_unavailable",
            {"run_id": event.run_id, "reason": event.reason},
        ),
        DisposeChannel(channel=Channel.PRIMARY, run_id=event.run_id),
    ]
    new_state, more = _open_fallback(state, event, source="primary_unavailable")
    cmds.extend(more)
    return new_state, tuple(cmds)


def dispose_active(state: ConversationState) -> tuple[Command, ...]:
    """Dispose the live phase of the current turn, if any."""
    phase = state.turn.phase
    if phase is None:
        return ()
    run_id = active_run_for(state.active_runs, phase)
    if run_id <= 0:
        return ()
    return (DisposeChannel(channel=phase, run_id=run_id),)


# ---------------------------------------------------------------------
# Internal
# ---------------------------------------------------------------------

def _open_primary(
    state: ConversationState, event: Event, conversation_id: str
) -> tuple[ConversationState, tuple[Command, ...]]:
    new_runs = bump_run_id(state.active_runs, Channel.PRIMARY)
    new_state = replace(
        state,
        active_runs=new_runs,
        turn=replace(state.turn, phase=Channel.PRIMARY, primary_attempted=True),
    )
    assert new_state.turn.target_message_id is not None

    return new_state, (
        log(
            new_state,
            event,
            "open_primary",
            {"run_id": new_runs.primary, "conversation_id": conversation_id},
        ),
        OpenPrimary(
            run_id=new_runs.primary,
            message_id=new_state.turn.target_message_id,
            conversation_id=conversation_id,
            question=state.turn.question,
        ),
    )


def _open_fallback(
    state: ConversationState, event: Event, *, source: str
) -> tuple[ConversationState, tuple[Command, ...]]:
    new_runs = bump_run_id(state.active_runs, Channel.FALLBACK)
    new_state = replace(
        state,
        active_runs=new_runs,
        turn=replace(state.turn, phase=Channel.FALLBACK),
    )
    assert new_state.turn.target_message_id is not None

    return new_state, (
        log(
            new_state,
            event,
            "open_fallback",
            {"run_id": new_runs.fallback, "source": source},
        ),
        OpenFallback(
            run_id=new_runs.fallback,
            message_id=new_state.turn.target_message_id,
            question=state.turn.question,
            context=build_fallback_prompt(state.meeting_context),
            options=(("skip_system_prompt", True),),
        ),
    )
