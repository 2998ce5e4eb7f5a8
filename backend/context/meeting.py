"""
Meeting context.

Responsibilities:
- Describe the meeting a conversation is about (id, title, notes)
- Store finalized transcript entries in chronological order
- Enforce the transcript bound (drop oldest entries)
- Parse the inbound MEETING_CONTEXT payload

Non-responsibilities:
- No reducer logic
- No prompt formatting (see serialization.py)
- No orchestration decisions
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Mapping

from policy import MAX_CONTEXT_TRANSCRIPT_ENTRIES


@dataclass(frozen=True)
class TranscriptEntry:
    """One finalized utterance."""
    speaker: str
    text: str


@dataclass(frozen=True)
class MeetingContext:
    """
    Immutable snapshot of what the assistant knows about the meeting.

    meeting_id:
        Conversation id used by the primary (retrieval) channel.
        None means the primary channel cannot be asked at all.
    """

    meeting_id: str | None = None
    title: str = ""
    summary: str = ""
    key_points: tuple[str, ...] = ()
    action_items: tuple[str, ...] = ()
    transcript: tuple[TranscriptEntry, ...] = ()


def append_transcript(
    context: MeetingContext,
    entry: TranscriptEntry,
    *,
    max_entries: int = MAX_CONTEXT_TRANSCRIPT_ENTRIES,
) -> MeetingContext:
    """
    Return a new context with entry appended.

    Oldest entries are dropped until the bound holds.
    """
    transcript = (context.transcript + (entry,))[-max_entries:]
    return replace(context, transcript=transcript)


def meeting_context_from_payload(data: Mapping[str, Any]) -> MeetingContext:
    """
    Build a MeetingContext from an inbound JSON object.

    Raises:
        ValueError if a field has the wrong shape.
    """
    meeting_id = data.get("meeting_id")
    if meeting_id is not None and not isinstance(meeting_id, str):
        raise ValueError("meeting_id must be a string or null")

    transcript: list[TranscriptEntry] = []
    for item in data.get("transcript") or ():
        if not isinstance(item, Mapping):
            raise ValueError("transcript entries must be objects")
        speaker, text = item.get("speaker"), item.get("text")
        if not isinstance(speaker, str) or not isinstance(text, str):
            raise ValueError("transcript entries need string speaker and text")
        transcript.append(TranscriptEntry(speaker=speaker, text=text))

    return MeetingContext(
        meeting_id=meeting_id or None,
        title=_str_field(data, "title"),
        summary=_str_field(data, "summary"),
        key_points=_str_list_field(data, "key_points"),
        action_items=_str_list_field(data, "action_items"),
        transcript=tuple(transcript[-MAX_CONTEXT_TRANSCRIPT_ENTRIES:]),
    )


def _str_field(data: Mapping[str, Any], name: str) -> str:
    value = data.get(name) or ""
    if not isinstance(value, str):
        raise ValueError(f"{name} must be a string")
    return value


def _str_list_field(data: Mapping[str, Any], name: str) -> tuple[str, ...]:
    value = data.get(name) or ()
    if not isinstance(value, (list, tuple)) or not all(isinstance(v, str) for v in value):
        raise ValueError(f"{name} must be a list of strings")
    return tuple(value)
