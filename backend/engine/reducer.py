"""
Pure turn state machine.

(state, event) -> (new_state, commands)

Rules:
- Pure: no side effects, no IO, no clocks.
- Deterministic: output depends only on inputs.
- Total: every (turn state, event) pair is handled or explicitly ignored (logged).

Lifecycle:
    IDLE -> WAITING -> STREAMING -> {DONE, ERROR} -> IDLE

- Submit is accepted only in IDLE.
- First chunk moves WAITING -> STREAMING.
- DONE/ERROR are one-shot: SettleTurn asks the runtime to publish the
  terminal snapshot and feed TurnSettled back, which returns to IDLE.
- Cancel forces IDLE from any in-flight state; the target message keeps
  its partial text with a CANCELLED marker.
"""

from __future__ import annotations

from dataclasses import replace

from engine import consumer, negotiator
from engine.commands import CancelTimer, Command, SettleTurn, StartTimer
from engine.decision_log import ignore, log, logs_last, state_changed
from engine.enums.channel import Channel
from engine.enums.outcome import TurnOutcome
from engine.enums.turn_state import TurnState
from engine.events import (
    Cancel,
    ChannelChunk,
    ChannelDone,
    ChannelError,
    ChannelEvent,
    ChannelUnavailable,
    Event,
    EventType,
    MeetingContextSet,
    NoSpeechDetected,
    ResponseTimeout,
    SessionReset,
    Submit,
    TranscriptCommitted,
    TurnSettled,
)
from engine.state_dataclass import ConversationState, Turn

from context.meeting import TranscriptEntry, append_transcript
from policy import (
    FALLBACK_ERROR_TEXT,
    NO_SPEECH_NOTICE,
    PRIMARY_ERROR_TEXT,
    TIMEOUT_ERROR_TEXT,
    TIMER_RESPONSE_TIMEOUT,
)

_IN_FLIGHT = (TurnState.WAITING, TurnState.STREAMING)
_TERMINAL = (TurnState.DONE, TurnState.ERROR)


# =============================================================================
# Small helpers
# =============================================================================

def _cancel_response_timer(state: ConversationState) -> tuple[Command, ...]:
    if state.response_timeout_ms <= 0:
        return ()
    return (CancelTimer(timer_id=TIMER_RESPONSE_TIMEOUT),)


def _stale_reason(state: ConversationState, event: ChannelEvent) -> str | None:
    """Why a channel event cannot touch the current turn (None = live)."""
    if state.turn.state not in _IN_FLIGHT:
        return "no_turn_in_flight"
    if state.turn.phase is not event.channel:
        return "inactive_phase"
    if event.run_id != negotiator.active_run_for(state.active_runs, event.channel):
        return "stale_run"
    if event.message_id != state.turn.target_message_id:
        return "stale_target"
    return None


def _error_text(channel: Channel | None) -> str:
    if channel is Channel.FALLBACK:
        return FALLBACK_ERROR_TEXT
    return PRIMARY_ERROR_TEXT


# =============================================================================
# Transitions
# =============================================================================

def _submit(
    state: ConversationState, event: Submit
) -> tuple[ConversationState, tuple[Command, ...]]:
    question = event.question.strip()
    if not question:
        return ignore(state, event, "empty_question")

    new_state = consumer.append_user_message(state, question)
    new_state, target_id = consumer.begin_streaming(new_state)
    new_state = replace(
        new_state,
        turn=Turn(
            turn_id=state.turn.turn_id + 1,
            state=TurnState.WAITING,
            question=question,
            target_message_id=target_id,
        ),
        error_message=None,
        notice=None,
    )

    new_state, negotiation_cmds = negotiator.start(new_state, event)

    cmds: list[Command] = [
        log(
            new_state,
            event,
            "submit",
            {
                "source": event.source,
                "target_message_id": target_id,
                "question_len": len(question),
            },
        ),
        *negotiation_cmds,
    ]
    if new_state.response_timeout_ms > 0:
        cmds.append(
            StartTimer(
                timer_id=TIMER_RESPONSE_TIMEOUT,
                duration_ms=new_state.response_timeout_ms,
                timeout_event_type=EventType.RESPONSE_TIMEOUT,
                turn_id=new_state.turn.turn_id,
            )
        )
    cmds.append(state_changed(state, new_state, event, "submit"))
    return new_state, logs_last(tuple(cmds))


def _chunk(
    state: ConversationState, event: ChannelChunk
) -> tuple[ConversationState, tuple[Command, ...]]:
    new_state, applied = consumer.on_token(state, event.message_id, event.delta)
    if not applied:
        return ignore(state, event, "chunk_for_unknown_target")

    cmds: list[Command] = [
        log(
            new_state,
            event,
            "token_appended",
            {"len": len(event.delta)},
            level="DEBUG",
        ),
    ]

    if state.turn.state is TurnState.WAITING:
        new_state = replace(
            new_state, turn=replace(new_state.turn, state=TurnState.STREAMING)
        )
        cmds.extend(_cancel_response_timer(state))
        cmds.append(state_changed(state, new_state, event, "first_token"))

    return new_state, logs_last(tuple(cmds))


def _done(
    state: ConversationState, event: ChannelDone
) -> tuple[ConversationState, tuple[Command, ...]]:
    new_state, _ = consumer.on_done(state, event.message_id)
    content_len = next(
        (len(m.content) for m in new_state.messages if m.id == event.message_id),
        0,
    )
    new_state = replace(
        new_state,
        turn=replace(
            new_state.turn,
            state=TurnState.DONE,
            phase=None,
            target_message_id=None,
        ),
        last_outcome=TurnOutcome.DONE,
    )
    return new_state, logs_last((
        *negotiator.dispose_active(state),
        *_cancel_response_timer(state),
        SettleTurn(turn_id=state.turn.turn_id),
        log(
            new_state,
            event,
            "turn_done",
            {"channel": event.channel.value, "content_len": content_len},
        ),
        state_changed(state, new_state, event, "channel_done"),
    ))


def _fail(
    state: ConversationState,
    event: Event,
    *,
    reason: str,
    error_text: str,
    source: str,
) -> tuple[ConversationState, tuple[Command, ...]]:
    """Stream error path: drop the placeholder, surface error_text."""
    target_id = state.turn.target_message_id
    new_state = state
    if target_id is not None:
        new_state, _ = consumer.on_error(state, target_id)
    new_state = replace(
        new_state,
        turn=replace(
            new_state.turn,
            state=TurnState.ERROR,
            phase=None,
            target_message_id=None,
        ),
        last_outcome=TurnOutcome.ERROR,
        error_message=error_text,
    )
    return new_state, logs_last((
        *negotiator.dispose_active(state),
        *_cancel_response_timer(state),
        SettleTurn(turn_id=state.turn.turn_id),
        log(
            new_state,
            event,
            "turn_error",
            {
                "reason": reason,
                "phase": state.turn.phase.value if state.turn.phase else None,
                "removed_message_id": target_id,
            },
            level="WARNING",
        ),
        state_changed(state, new_state, event, source),
    ))


def _cancel(
    state: ConversationState, event: Cancel
) -> tuple[ConversationState, tuple[Command, ...]]:
    target_id = state.turn.target_message_id
    new_state = state
    if target_id is not None:
        new_state, _ = consumer.on_cancel(state, target_id)
    new_state = replace(
        new_state,
        turn=Turn(turn_id=state.turn.turn_id),
        last_outcome=TurnOutcome.CANCELLED,
    )
    return new_state, logs_last((
        *negotiator.dispose_active(state),
        *_cancel_response_timer(state),
        log(
            new_state,
            event,
            "turn_cancelled",
            {"cancelled_message_id": target_id},
        ),
        state_changed(state, new_state, event, "cancel"),
    ))


def _settle(
    state: ConversationState, event: TurnSettled
) -> tuple[ConversationState, tuple[Command, ...]]:
    if event.turn_id != state.turn.turn_id:
        return ignore(state, event, "settle_stale_turn")

    new_state = replace(state, turn=Turn(turn_id=state.turn.turn_id))
    return new_state, (state_changed(state, new_state, event, "turn_settled"),)


def _reset(
    state: ConversationState, event: SessionReset
) -> tuple[ConversationState, tuple[Command, ...]]:
    # Run ids and the message sequence survive a reset; they are never reused.
    new_state = ConversationState(
        next_message_seq=state.next_message_seq,
        turn=Turn(turn_id=state.turn.turn_id),
        active_runs=state.active_runs,
        meeting_context=replace(state.meeting_context, transcript=()),
        response_timeout_ms=state.response_timeout_ms,
    )
    cmds: list[Command] = []
    if state.turn.state in _IN_FLIGHT:
        cmds.extend(negotiator.dispose_active(state))
        cmds.extend(_cancel_response_timer(state))
    cmds.append(
        log(new_state, event, "session_reset", {"cleared_messages": len(state.messages)})
    )
    if new_state.turn.state is not state.turn.state:
        cmds.append(state_changed(state, new_state, event, "session_reset"))
    return new_state, logs_last(tuple(cmds))


# =============================================================================
# Reducer entrypoint
# =============================================================================

def reduce(
    state: ConversationState, event: Event
) -> tuple[ConversationState, tuple[Command, ...]]:
    """
    Pure reducer for the conversation turn state machine.

    Given the current state and a single event, returns:
    - the next state
    - a tuple of commands describing required side effects

    Properties:
    - Deterministic: no IO, clocks, or randomness
    - Total: every (state, event) pair is handled or explicitly ignored
    - Version-safe: ignores channel events with stale run IDs or targets
    """
    # ------------------------------------------------------------------
    # State-independent events
    # ------------------------------------------------------------------
    if isinstance(event, SessionReset):
        return _reset(state, event)

    if isinstance(event, MeetingContextSet):
        new_state = replace(state, meeting_context=event.context)
        return new_state, (
            log(
                new_state,
                event,
                "meeting_context_set",
                {
                    "meeting_id": event.context.meeting_id,
                    "transcript_entries": len(event.context.transcript),
                },
            ),
        )

    if isinstance(event, TranscriptCommitted):
        if not event.text.strip():
            return ignore(state, event, "empty_transcript")
        context = append_transcript(
            state.meeting_context,
            TranscriptEntry(speaker=event.speaker, text=event.text),
        )
        new_state = replace(state, meeting_context=context)
        dropped = len(state.meeting_context.transcript) + 1 - len(context.transcript)
        return new_state, (
            log(
                new_state,
                event,
                "transcript_committed",
                {"speaker": event.speaker, "len": len(event.text), "dropped": dropped},
                level="DEBUG",
            ),
        )

    if isinstance(event, NoSpeechDetected):
        new_state = replace(state, notice=NO_SPEECH_NOTICE)
        return new_state, (log(new_state, event, "no_speech_notice"),)

    # ------------------------------------------------------------------
    # Channel gating (critical invariant)
    # ------------------------------------------------------------------
    if isinstance(event, ChannelEvent):
        reason = _stale_reason(state, event)
        if reason is not None:
            return ignore(state, event, f"{event.event_type.value.lower()}_{reason}")

    # ============================
    # IDLE
    # ============================
    if state.turn.state is TurnState.IDLE:
        if isinstance(event, Submit):
            return _submit(state, event)

        if isinstance(event, Cancel):
            return state, (log(state, event, "cancel_noop_in_idle"),)

        return ignore(state, event, "idle_unhandled")

    # ============================
    # WAITING / STREAMING
    # ============================
    if state.turn.state in _IN_FLIGHT:
        if isinstance(event, Submit):
            return ignore(state, event, "turn_in_flight")

        if isinstance(event, Cancel):
            return _cancel(state, event)

        if isinstance(event, ChannelUnavailable):
            if event.channel is not Channel.PRIMARY:
                return ignore(state, event, "unavailable_from_fallback")
            if state.turn.state is not TurnState.WAITING:
                return ignore(state, event, "unavailable_after_first_token")
            new_state, cmds = negotiator.fall_back(state, event)
            return new_state, logs_last(cmds)

        if isinstance(event, ChannelChunk):
            return _chunk(state, event)

        if isinstance(event, ChannelDone):
            return _done(state, event)

        if isinstance(event, ChannelError):
            return _fail(
                state,
                event,
                reason=event.reason,
                error_text=_error_text(event.channel),
                source="channel_error",
            )

        if isinstance(event, ResponseTimeout):
            if event.turn_id != state.turn.turn_id:
                return ignore(state, event, "timeout_stale_turn")
            if state.turn.state is not TurnState.WAITING:
                return ignore(state, event, "timeout_after_first_token")
            return _fail(
                state,
                event,
                reason="timeout",
                error_text=TIMEOUT_ERROR_TEXT,
                source="response_timeout",
            )

        return ignore(state, event, "in_flight_unhandled")

    # ============================
    # DONE / ERROR (one-shot)
    # ============================
    if state.turn.state in _TERMINAL:
        if isinstance(event, TurnSettled):
            return _settle(state, event)

        return ignore(state, event, "turn_settling")

    return ignore(state, event, "unhandled")
