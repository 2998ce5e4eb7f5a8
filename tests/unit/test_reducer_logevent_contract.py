# pylint: disable=missing-module-docstring,missing-function-docstring

from engine.reducer import reduce
from engine.state_dataclass import ConversationState
from engine.events import EventType, Submit
from engine.commands import LogEvent


def test_reducer_emits_logevent_with_required_fields():
    state = ConversationState()

    event = Submit(
        event_type=EventType.SUBMIT,
        ts_ms=123,
        question="What did we decide?",
    )

    _, commands = reduce(state, event)

    log_events = [c for c in commands if isinstance(c, LogEvent)]
    assert log_events, "Reducer must emit at least one LogEvent"

    payload = log_events[0].event

    assert payload["ts_ms"] == 123
    assert "state" in payload
    assert payload["event_type"] == "SUBMIT"
    assert "decision" in payload
    assert "turn_id" in payload
    assert set(payload["run_ids"]) == {"primary", "fallback"}
    assert "details" in payload


def test_side_effects_precede_logs_and_state_change_is_last():
    _, commands = reduce(
        ConversationState(),
        Submit(event_type=EventType.SUBMIT, ts_ms=0, question="q"),
    )

    kinds = ["log" if isinstance(c, LogEvent) else "effect" for c in commands]
    first_log = kinds.index("log")
    assert "effect" not in kinds[first_log:]

    last = commands[-1]
    assert isinstance(last, LogEvent)
    assert last.event["decision"] == "state_changed"
    assert last.event["details"] == {
        "from_state": "IDLE",
        "to_state": "WAITING",
        "source": "submit",
    }
