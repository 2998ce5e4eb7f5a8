"""
Meeting context serialization for the fallback channel.

Responsibilities:
- Render a MeetingContext into the plain-text context block
- Wrap it into the recall instruction used by the fallback channel

Non-responsibilities:
- No truncation of stored turns
- No logging
- No orchestration decisions
"""

from __future__ import annotations

from context.meeting import MeetingContext
from adapters.llm.prompts import MEETING_RECALL_PROMPT
from policy import (
    FALLBACK_RECENT_TRANSCRIPT_ENTRIES,
    OTHER_TRANSCRIPT_LABEL,
    SELF_SPEAKER,
    SELF_TRANSCRIPT_LABEL,
)


def build_context_string(context: MeetingContext) -> str:
    """
    Render the meeting as a context block.

    Output format:
        MEETING: <title>

        SUMMARY:
        ...

        KEY POINTS:
        - ...

        ACTION ITEMS:
        - ...

        RECENT TRANSCRIPT:
        [Them]: ...
        [Me]: ...

    Empty sections are omitted; only the last
    FALLBACK_RECENT_TRANSCRIPT_ENTRIES transcript entries are rendered.
    """
    parts: list[str] = [f"MEETING: {context.title}"]

    if context.summary:
        parts.append(f"\nSUMMARY:\n{context.summary}")

    if context.key_points:
        parts.append("\nKEY POINTS:\n" + "\n".join(f"- {p}" for p in context.key_points))

    if context.action_items:
        parts.append("\nACTION ITEMS:\n" + "\n".join(f"- {a}" for a in context.action_items))

    if context.transcript:
        recent = context.transcript[-FALLBACK_RECENT_TRANSCRIPT_ENTRIES:]
        lines = [
            f"[{SELF_TRANSCRIPT_LABEL if e.speaker == SELF_SPEAKER else OTHER_TRANSCRIPT_LABEL}]: {e.text}"
            for e in recent
        ]
        parts.append("\nRECENT TRANSCRIPT:\n" + "\n".join(lines))

    return "\n".join(parts)


def build_fallback_prompt(context: MeetingContext) -> str:
    """Recall instruction followed by the rendered context block."""
    return f"{MEETING_RECALL_PROMPT}\n\n{build_context_string(context)}"
