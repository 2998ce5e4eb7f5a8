"""
Session gateway.

Responsibilities:
- Owns OverlaySession lifecycle
- Routes inbound JSON control messages -> engine events
- Routes transcript fragments to exactly one consumer
  (recorder while it captures the self speaker, otherwise the rolling line)
- Forwards events into runtime
- Publishes snapshots as outbound control messages

NOT responsible for:
- Executing commands
- Any state machine logic
- Transport (the caller owns the socket/IPC)
"""

from __future__ import annotations

import json
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any
from uuid import uuid4

from engine.events import (
    Cancel,
    Event,
    EventType,
    MeetingContextSet,
    NoSpeechDetected,
    SessionReset,
    Submit,
    TranscriptCommitted,
)
from engine.runtime import Runtime
from engine.runtime_context import (
    FallbackChannelProtocol,
    PrimaryChannelProtocol,
    RuntimeExecutionContext,
)
from engine.state_dataclass import ConversationState

from adapters.llm.openai_fallback import OpenAIFallbackChannel
from context.meeting import meeting_context_from_payload
from observability.logger import log_event
from session.overlay_session import OverlaySession
from session.view import conversation_update, recording_update, transcript_update
from transcript.accumulator import TranscriptAccumulator
from transcript.recorder import TurnRecorder

if TYPE_CHECKING:
    from config import AppConfig

# ------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------

def _now_ms() -> int:
    return time.time_ns() // 1_000_000


def _new_session_id() -> str:
    return f"sess_{uuid4().hex[:12]}"


# ------------------------------------------------------------------
# Gateway result
# ------------------------------------------------------------------

@dataclass(frozen=True)
class GatewayResult:
    """
    Return value for gateway boundary methods.

    outbound_json:
        JSON messages to send to the overlay UI
    """
    outbound_json: tuple[dict[str, Any], ...] = ()


# ------------------------------------------------------------------
# SessionGateway
# ------------------------------------------------------------------

class SessionGateway:
    """One gateway == one overlay session."""

    def __init__(
        self,
        *,
        config: AppConfig,
        primary_channel: PrimaryChannelProtocol | None = None,
        fallback_channel: FallbackChannelProtocol | None = None,
        openai_client: Any | None = None,  # Type: openai.AsyncOpenAI
    ) -> None:
        self._config = config
        self._primary_channel = primary_channel
        self._fallback_channel = fallback_channel
        self._openai_client = openai_client
        self.session: OverlaySession | None = None
        self._unsubscribe_view: Any = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def on_open(self) -> GatewayResult:
        """Create the session, its channels and runtime."""
        session_id = _new_session_id()

        self.session = OverlaySession(
            session_id=session_id,
            accumulator=TranscriptAccumulator(speaker=self._config.displayed_speaker),
            recorder=TurnRecorder(speaker=self._config.self_speaker),
        )

        fallback = self._fallback_channel
        if fallback is None and self._openai_client is not None:
            fallback = OpenAIFallbackChannel(
                client=self._openai_client,
                model=self._config.llm_model,
                session_id=session_id,
            )
        self.session.attach_channels(primary=self._primary_channel, fallback=fallback)

        runtime = Runtime(
            initial_state=ConversationState(
                response_timeout_ms=self._config.response_timeout_ms,
            ),
            context=RuntimeExecutionContext(session=self.session),
        )
        self._unsubscribe_view = runtime.subscribe_view(self._publish_snapshot)

        # Attach runtime (must be AFTER channels)
        self.session.attach_runtime(runtime)

        log_event({
            "ts_ms": _now_ms(),
            "event_type": "SESSION_STARTED",
            "session_id": session_id,
            "has_primary": self._primary_channel is not None,
            "has_fallback": fallback is not None,
        })

        init_msg: dict[str, Any] = {
            "type": "SESSION_INIT",
            "session_id": session_id,
            "config": {
                "displayed_speaker": self._config.displayed_speaker,
                "self_speaker": self._config.self_speaker,
            },
        }
        return GatewayResult(outbound_json=(init_msg,) + self._drain_control_out())

    async def on_close(self, reason: str | None = None) -> GatewayResult:
        """Tear down the session; every live subscription is disposed."""
        if self.session is None:
            log_event({
                "ts_ms": _now_ms(),
                "event_type": "CLOSE_WITHOUT_SESSION",
                "reason": reason,
            })
            return GatewayResult()

        runtime = self.session.runtime
        if runtime is not None:
            await runtime.shutdown()
        if self._unsubscribe_view is not None:
            self._unsubscribe_view()
            self._unsubscribe_view = None

        log_event({
            "ts_ms": _now_ms(),
            "event_type": "SESSION_ENDED",
            "session_id": self.session.session_id,
            "reason": reason,
        })

        return GatewayResult(outbound_json=self._drain_control_out())

    # ------------------------------------------------------------------
    # Inbound messages
    # ------------------------------------------------------------------

    async def on_json_message(self, payload: str) -> GatewayResult:
        """Route inbound JSON to engine events."""
        if self.session is None:
            log_event({
                "ts_ms": _now_ms(),
                "event_type": "MESSAGE_WITHOUT_SESSION",
                "payload_preview": payload[:100],
            })
            return GatewayResult()

        try:
            data = json.loads(payload)
        except json.JSONDecodeError as e:
            self._log_drop("JSON_DECODE_ERROR", error=str(e), payload_preview=payload[:100])
            return GatewayResult()

        if not isinstance(data, dict):
            self._log_drop("MALFORMED_MESSAGE", payload_preview=payload[:100])
            return GatewayResult()

        msg_type = data.get("type")
        ts_ms = data.get("ts_ms", _now_ms())

        if msg_type == "TRANSCRIPT":
            self._on_transcript(data, ts_ms)
        elif msg_type == "SUBMIT":
            question = data.get("question")
            if not isinstance(question, str):
                self._log_drop("MALFORMED_SUBMIT")
            else:
                self._dispatch(
                    Submit(event_type=EventType.SUBMIT, ts_ms=ts_ms, question=question)
                )
        elif msg_type == "CANCEL":
            self._dispatch(Cancel(event_type=EventType.CANCEL, ts_ms=ts_ms))
        elif msg_type == "RECORD_START":
            self.session.recorder.start()
            self._publish_recording()
        elif msg_type == "RECORD_STOP":
            self._on_record_stop(ts_ms)
        elif msg_type == "SESSION_RESET":
            self.session.accumulator.reset()
            if self.session.recorder.active:
                self.session.recorder.stop()
            self._publish_transcript()
            self._publish_recording()
            self._dispatch(SessionReset(event_type=EventType.SESSION_RESET, ts_ms=ts_ms))
        elif msg_type == "MEETING_CONTEXT":
            try:
                context = meeting_context_from_payload(data)
            except ValueError as e:
                self._log_drop("MALFORMED_MEETING_CONTEXT", error=str(e))
            else:
                self._dispatch(
                    MeetingContextSet(
                        event_type=EventType.MEETING_CONTEXT_SET,
                        ts_ms=ts_ms,
                        context=context,
                    )
                )
        else:
            self._log_drop("UNKNOWN_MESSAGE_TYPE", msg_type=msg_type)

        return GatewayResult(outbound_json=self._drain_control_out())

    # ------------------------------------------------------------------
    # Transcript routing
    # ------------------------------------------------------------------

    def _on_transcript(self, data: dict[str, Any], ts_ms: int) -> None:
        assert self.session is not None
        speaker = data.get("speaker")
        text = data.get("text")
        is_final = data.get("final", False)
        if (
            not isinstance(speaker, str)
            or not isinstance(text, str)
            or not isinstance(is_final, bool)
        ):
            self._log_drop("MALFORMED_FRAGMENT")
            return

        recorder = self.session.recorder
        if recorder.accepts(speaker):
            recorder.on_fragment(speaker, text, is_final)
            self._publish_recording()
            return

        accumulator = self.session.accumulator
        if not accumulator.apply_fragment(speaker, text, is_final):
            return

        self._publish_transcript()
        if is_final and text.strip():
            self._dispatch(
                TranscriptCommitted(
                    event_type=EventType.TRANSCRIPT_COMMITTED,
                    ts_ms=ts_ms,
                    speaker=speaker,
                    text=text,
                )
            )

    def _on_record_stop(self, ts_ms: int) -> None:
        assert self.session is not None
        if not self.session.recorder.active:
            self._log_drop("RECORD_STOP_WITHOUT_START")
            return

        capture = self.session.recorder.stop()
        self._publish_recording()

        if capture.had_content:
            self._dispatch(
                Submit(
                    event_type=EventType.SUBMIT,
                    ts_ms=ts_ms,
                    question=capture.text,
                    source="voice",
                )
            )
        else:
            self._dispatch(
                NoSpeechDetected(event_type=EventType.NO_SPEECH_DETECTED, ts_ms=ts_ms)
            )

    # ------------------------------------------------------------------
    # Runtime dispatch / outbound
    # ------------------------------------------------------------------

    def _dispatch(self, event: Event) -> None:
        """Forward event into runtime. Runtime owns all orchestration."""
        assert self.session is not None
        runtime = self.session.runtime
        assert runtime is not None, "Runtime must exist before dispatch"
        runtime.handle_event(event)

    def _publish_snapshot(self, state: ConversationState) -> None:
        if self.session is None:
            return
        self.session.enqueue_control(
            conversation_update(state, session_id=self.session.session_id)
        )

    def _publish_transcript(self) -> None:
        assert self.session is not None
        accumulator = self.session.accumulator
        self.session.enqueue_control(
            transcript_update(
                accumulator.line,
                accumulator.displayed_text(),
                session_id=self.session.session_id,
            )
        )

    def _publish_recording(self) -> None:
        assert self.session is not None
        self.session.enqueue_control(
            recording_update(self.session.recorder, session_id=self.session.session_id)
        )

    def _log_drop(self, event_type: str, **details: Any) -> None:
        log_event({
            "ts_ms": _now_ms(),
            "level": "WARNING",
            "event_type": event_type,
            "session_id": self.session.session_id if self.session else None,
            **details,
        })

    def _drain_control_out(self) -> tuple[dict[str, Any], ...]:
        if self.session is None:
            return ()
        return self.session.drain_control()
