"""
Rolling transcript line.

Merges {speaker, text, is_final} fragments into finalized text plus one
live preview, for the single displayed speaker.

Rules:
- finalized is append-only.
- live_preview is replaced wholesale; upstream partials are cumulative,
  not deltas, so appending would compound duplicates.
- Fragments for any other speaker are ignored (no buffering).
"""

from __future__ import annotations

from dataclasses import dataclass, replace

from policy import DISPLAYED_SPEAKER, TRANSCRIPT_SEPARATOR


@dataclass(frozen=True)
class TranscriptLine:
    speaker: str
    finalized: tuple[str, ...] = ()
    live_preview: str = ""
    speaking: bool = False

    def finalized_text(self, separator: str = TRANSCRIPT_SEPARATOR) -> str:
        return separator.join(self.finalized)

    def displayed_text(self, separator: str = TRANSCRIPT_SEPARATOR) -> str:
        """finalized + separator-if-nonempty + live_preview"""
        text = self.finalized_text(separator)
        if not self.live_preview:
            return text
        if not text:
            return self.live_preview
        return f"{text}{separator}{self.live_preview}"


def apply_fragment(
    line: TranscriptLine, speaker: str, text: str, is_final: bool
) -> TranscriptLine:
    """Pure update of one line. Returns the same object when ignored."""
    if speaker != line.speaker:
        return line

    if is_final:
        if not text.strip():
            return replace(line, live_preview="", speaking=False)
        return replace(
            line,
            finalized=line.finalized + (text,),
            live_preview="",
            speaking=False,
        )

    return replace(line, live_preview=text, speaking=True)


class TranscriptAccumulator:
    """Holder of the displayed speaker's TranscriptLine."""

    def __init__(
        self,
        *,
        speaker: str = DISPLAYED_SPEAKER,
        separator: str = TRANSCRIPT_SEPARATOR,
    ) -> None:
        self._separator = separator
        self._line = TranscriptLine(speaker=speaker)

    @property
    def line(self) -> TranscriptLine:
        return self._line

    @property
    def speaker(self) -> str:
        return self._line.speaker

    def apply_fragment(self, speaker: str, text: str, is_final: bool) -> bool:
        """Returns True if the fragment changed the line."""
        new_line = apply_fragment(self._line, speaker, text, is_final)
        changed = new_line is not self._line
        self._line = new_line
        return changed

    def displayed_text(self) -> str:
        return self._line.displayed_text(self._separator)

    def reset(self) -> None:
        self._line = TranscriptLine(speaker=self._line.speaker)
