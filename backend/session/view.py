"""
Outbound view messages.

Projections of engine state into JSON-ready dicts for the overlay UI.
Read-only: nothing here feeds back into the engine.
"""

from __future__ import annotations

from typing import Any

from engine.state_dataclass import ConversationState
from transcript.accumulator import TranscriptLine
from transcript.recorder import TurnRecorder


def conversation_update(state: ConversationState, *, session_id: str) -> dict[str, Any]:
    return {
        "type": "CONVERSATION_UPDATE",
        "session_id": session_id,
        "turn": {
            "turn_id": state.turn.turn_id,
            "state": state.turn.state.value,
            "primary_attempted": state.turn.primary_attempted,
            "target_message_id": state.turn.target_message_id,
        },
        "messages": [
            {
                "id": m.id,
                "role": m.role,
                "content": m.content,
                "streaming": m.streaming,
                "status": m.status.value,
            }
            for m in state.messages
        ],
        "last_outcome": state.last_outcome.value if state.last_outcome else None,
        "error": state.error_message,
        "notice": state.notice,
    }


def transcript_update(
    line: TranscriptLine, text: str, *, session_id: str
) -> dict[str, Any]:
    return {
        "type": "TRANSCRIPT_UPDATE",
        "session_id": session_id,
        "speaker": line.speaker,
        "text": text,
        "speaking": line.speaking,
    }


def recording_update(recorder: TurnRecorder, *, session_id: str) -> dict[str, Any]:
    return {
        "type": "RECORDING_UPDATE",
        "session_id": session_id,
        "active": recorder.active,
        "text": recorder.accumulated_text,
        "live_preview": recorder.live_preview,
    }
