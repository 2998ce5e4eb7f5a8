# pylint: disable=missing-module-docstring,missing-function-docstring

import asyncio
import json
from typing import Any, Mapping

import pytest

import session.gateway as gateway_mod
from adapters.channels.base import ChannelListener, FallbackChannel, ListenerHub, Unsubscribe
from config import AppConfig
from engine.enums.turn_state import TurnState
from policy import NO_SPEECH_NOTICE, TRANSCRIPT_SEPARATOR
from session.gateway import GatewayResult, SessionGateway


class EchoFallback(FallbackChannel):
    """Answers every question with its own text."""

    def __init__(self) -> None:
        self.hub = ListenerHub()
        self.questions: list[str] = []
        self.contexts: list[str] = []

    def subscribe(self, listener: ChannelListener) -> Unsubscribe:
        return self.hub.add(listener)

    async def stream_chat(
        self,
        question: str,
        context: str,
        options: Mapping[str, Any],
    ) -> None:
        self.questions.append(question)
        self.contexts.append(context)
        await asyncio.sleep(0)
        self.hub.chunk(f"echo: {question}")
        self.hub.complete()


def make_config() -> AppConfig:
    return AppConfig(
        env="test",
        log_level="INFO",
        llm_provider="openai",
        llm_model="test-model",
        openai_api_key=None,
        groq_api_key=None,
        enable_json_logs=False,
    )


def msg(payload: dict[str, Any]) -> str:
    return json.dumps(payload)


def transcript(speaker: str, text: str, final: bool) -> str:
    return msg({"type": "TRANSCRIPT", "speaker": speaker, "text": text, "final": final})


def _of_type(results: list[GatewayResult], msg_type: str) -> list[dict[str, Any]]:
    return [m for r in results for m in r.outbound_json if m["type"] == msg_type]


def test_open_returns_session_init():
    async def scenario() -> GatewayResult:
        gw = SessionGateway(config=make_config(), fallback_channel=EchoFallback())
        return await gw.on_open()

    result = asyncio.run(scenario())

    init = result.outbound_json[0]
    assert init["type"] == "SESSION_INIT"
    assert init["session_id"].startswith("sess_")
    assert init["config"]["displayed_speaker"] == "interviewer"


def test_typed_question_streams_to_done_and_idle():
    fallback = EchoFallback()

    async def scenario() -> tuple[SessionGateway, list[GatewayResult]]:
        gw = SessionGateway(config=make_config(), fallback_channel=fallback)
        results = [await gw.on_open()]
        results.append(await gw.on_json_message(msg({"type": "SUBMIT", "question": "Status?"})))
        assert gw.session is not None and gw.session.runtime is not None
        await gw.session.runtime.drain()
        results.append(await gw.on_close("test"))
        return gw, results

    gw, results = asyncio.run(scenario())

    updates = _of_type(results, "CONVERSATION_UPDATE")
    states = [u["turn"]["state"] for u in updates]
    assert states[0] == "WAITING"
    assert "DONE" in states
    assert states[-1] == "IDLE"

    final = updates[-1]["messages"]
    assert [(m["role"], m["content"]) for m in final] == [
        ("user", "Status?"),
        ("assistant", "echo: Status?"),
    ]
    assert fallback.questions == ["Status?"]
    assert gw.session is not None and gw.session.runtime is not None
    assert gw.session.runtime.live_subscriptions == 0


def test_transcript_routing_between_line_and_recorder():
    async def scenario() -> tuple[SessionGateway, list[GatewayResult]]:
        gw = SessionGateway(config=make_config(), fallback_channel=EchoFallback())
        results = [await gw.on_open()]
        results.append(await gw.on_json_message(transcript("interviewer", "When is", False)))
        results.append(await gw.on_json_message(transcript("interviewer", "When is it due?", True)))
        results.append(await gw.on_json_message(msg({"type": "RECORD_START"})))
        results.append(await gw.on_json_message(transcript("user", "June", True)))
        results.append(await gw.on_json_message(transcript("interviewer", "Any risks?", True)))
        return gw, results

    gw, results = asyncio.run(scenario())
    assert gw.session is not None

    lines = _of_type(results, "TRANSCRIPT_UPDATE")
    assert [line["text"] for line in lines] == [
        "When is",
        "When is it due?",
        f"When is it due?{TRANSCRIPT_SEPARATOR}Any risks?",
    ]
    assert gw.session.recorder.accumulated_text == "June"

    assert gw.session.runtime is not None
    transcript_ctx = gw.session.runtime.state.meeting_context.transcript
    assert [e.text for e in transcript_ctx] == ["When is it due?", "Any risks?"]


def test_record_stop_submits_captured_voice_question():
    fallback = EchoFallback()

    async def scenario() -> SessionGateway:
        gw = SessionGateway(config=make_config(), fallback_channel=fallback)
        await gw.on_open()
        await gw.on_json_message(msg({"type": "RECORD_START"}))
        await gw.on_json_message(transcript("user", "hello", True))
        await gw.on_json_message(transcript("user", "world", True))
        await gw.on_json_message(msg({"type": "RECORD_STOP"}))
        assert gw.session is not None and gw.session.runtime is not None
        await gw.session.runtime.drain()
        return gw

    gw = asyncio.run(scenario())

    assert fallback.questions == ["hello world"]
    assert gw.session is not None and gw.session.runtime is not None
    assert gw.session.recorder.active is False


def test_empty_recording_surfaces_notice_not_error():
    fallback = EchoFallback()

    async def scenario() -> SessionGateway:
        gw = SessionGateway(config=make_config(), fallback_channel=fallback)
        await gw.on_open()
        await gw.on_json_message(msg({"type": "RECORD_START"}))
        await gw.on_json_message(transcript("user", "uh", False))
        await gw.on_json_message(msg({"type": "RECORD_STOP"}))
        return gw

    gw = asyncio.run(scenario())
    assert gw.session is not None and gw.session.runtime is not None
    state = gw.session.runtime.state

    assert fallback.questions == []
    assert state.notice == NO_SPEECH_NOTICE
    assert state.error_message is None
    assert state.turn.state is TurnState.IDLE


def test_meeting_context_message_sets_context():
    fallback = EchoFallback()

    async def scenario() -> SessionGateway:
        gw = SessionGateway(config=make_config(), fallback_channel=fallback)
        await gw.on_open()
        await gw.on_json_message(msg({
            "type": "MEETING_CONTEXT",
            "title": "Roadmap sync",
            "summary": "Scope for Q3.",
            "key_points": ["Ship search"],
            "transcript": [{"speaker": "user", "text": "I own search"}],
        }))
        await gw.on_json_message(msg({"type": "SUBMIT", "question": "Who owns search?"}))
        assert gw.session is not None and gw.session.runtime is not None
        await gw.session.runtime.drain()
        return gw

    asyncio.run(scenario())

    context = fallback.contexts[0]
    assert "MEETING: Roadmap sync" in context
    assert "- Ship search" in context
    assert "[Me]: I own search" in context


def test_malformed_input_is_logged_and_dropped(monkeypatch: pytest.MonkeyPatch):
    emitted: list[dict[str, Any]] = []
    monkeypatch.setattr(gateway_mod, "log_event", emitted.append)

    async def scenario() -> list[GatewayResult]:
        gw = SessionGateway(config=make_config(), fallback_channel=EchoFallback())
        await gw.on_open()
        return [
            await gw.on_json_message("{not json"),
            await gw.on_json_message(msg({"type": "NOPE"})),
            await gw.on_json_message(msg({"type": "TRANSCRIPT", "speaker": "interviewer"})),
            await gw.on_json_message(msg({"type": "MEETING_CONTEXT", "key_points": "oops"})),
            await gw.on_json_message(msg({"type": "RECORD_STOP"})),
        ]

    results = asyncio.run(scenario())

    assert all(r.outbound_json == () for r in results)
    dropped = [e["event_type"] for e in emitted if e.get("level") == "WARNING"]
    assert dropped == [
        "JSON_DECODE_ERROR",
        "UNKNOWN_MESSAGE_TYPE",
        "MALFORMED_FRAGMENT",
        "MALFORMED_MEETING_CONTEXT",
        "RECORD_STOP_WITHOUT_START",
    ]


def test_session_reset_clears_conversation_and_line():
    async def scenario() -> tuple[SessionGateway, GatewayResult]:
        gw = SessionGateway(config=make_config(), fallback_channel=EchoFallback())
        await gw.on_open()
        await gw.on_json_message(transcript("interviewer", "hi", True))
        await gw.on_json_message(msg({"type": "SUBMIT", "question": "q"}))
        assert gw.session is not None and gw.session.runtime is not None
        await gw.session.runtime.drain()
        await gw.on_json_message(msg({"type": "RECORD_START"}))
        reset = await gw.on_json_message(msg({"type": "SESSION_RESET"}))
        return gw, reset

    gw, reset = asyncio.run(scenario())
    assert gw.session is not None and gw.session.runtime is not None

    assert {m["type"] for m in reset.outbound_json} == {
        "TRANSCRIPT_UPDATE",
        "RECORDING_UPDATE",
        "CONVERSATION_UPDATE",
    }
    assert _of_type([reset], "TRANSCRIPT_UPDATE")[0]["text"] == ""
    assert _of_type([reset], "RECORDING_UPDATE")[0]["active"] is False
    assert gw.session.recorder.active is False

    assert gw.session.runtime.state.messages == ()
    assert gw.session.runtime.state.meeting_context.transcript == ()
    assert gw.session.accumulator.displayed_text() == ""


def test_message_without_session_is_dropped():
    gw = SessionGateway(config=make_config())

    result = asyncio.run(gw.on_json_message(msg({"type": "CANCEL"})))

    assert result == GatewayResult()
