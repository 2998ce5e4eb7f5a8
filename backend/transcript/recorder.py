"""
Voice answer recorder.

Captures the self speaker's finalized fragments between start() and
stop(). State lives in plain attributes on the recorder, so stop()
always observes the writes made by start() and on_fragment() just
before it, with no deferred update cycle in between.
"""

from __future__ import annotations

from dataclasses import dataclass

from policy import RECORDING_SEPARATOR, SELF_SPEAKER


@dataclass(frozen=True)
class Capture:
    text: str
    had_content: bool


class TurnRecorder:
    def __init__(
        self,
        *,
        speaker: str = SELF_SPEAKER,
        separator: str = RECORDING_SEPARATOR,
    ) -> None:
        self._speaker = speaker
        self._separator = separator
        self._active = False
        self._parts: list[str] = []
        self._live_preview = ""

    @property
    def active(self) -> bool:
        return self._active

    @property
    def accumulated_text(self) -> str:
        return self._separator.join(self._parts)

    @property
    def live_preview(self) -> str:
        return self._live_preview

    def start(self) -> None:
        """Open a fresh recording window. Restarting discards prior capture."""
        self._active = True
        self._parts = []
        self._live_preview = ""

    def accepts(self, speaker: str) -> bool:
        return self._active and speaker == self._speaker

    def on_fragment(self, speaker: str, text: str, is_final: bool) -> bool:
        """
        Feed one fragment. Returns True if the recorder consumed it.

        Non-final fragments only refresh the preview; they never reach
        accumulated_text.
        """
        if not self.accepts(speaker):
            return False

        if is_final:
            if text.strip():
                self._parts.append(text.strip())
            self._live_preview = ""
        else:
            self._live_preview = text
        return True

    def stop(self) -> Capture:
        """
        Close the window and return what was captured as of this call.

        Empty capture is a normal outcome (had_content=False).
        """
        text = self.accumulated_text.strip()
        self._active = False
        self._parts = []
        self._live_preview = ""
        return Capture(text=text, had_content=bool(text))
