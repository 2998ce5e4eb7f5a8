# pylint: disable=missing-module-docstring,missing-function-docstring

from transcript.accumulator import TranscriptAccumulator, TranscriptLine, apply_fragment
from policy import TRANSCRIPT_SEPARATOR

SPEAKER = "interviewer"


def test_finals_join_with_separator_in_order():
    acc = TranscriptAccumulator(speaker=SPEAKER)

    acc.apply_fragment(SPEAKER, "one", True)
    acc.apply_fragment(SPEAKER, "two", True)
    acc.apply_fragment(SPEAKER, "three", True)

    assert acc.line.finalized == ("one", "two", "three")
    assert acc.displayed_text() == TRANSCRIPT_SEPARATOR.join(["one", "two", "three"])


def test_interleaved_partials_never_duplicate_or_drop_finals():
    acc = TranscriptAccumulator(speaker=SPEAKER)

    acc.apply_fragment(SPEAKER, "how", False)
    acc.apply_fragment(SPEAKER, "how are", False)
    acc.apply_fragment(SPEAKER, "how are you", True)
    acc.apply_fragment(SPEAKER, "fine", False)
    acc.apply_fragment(SPEAKER, "fine thanks", True)

    assert acc.line.finalized == ("how are you", "fine thanks")
    assert acc.line.live_preview == ""
    assert acc.displayed_text() == f"how are you{TRANSCRIPT_SEPARATOR}fine thanks"


def test_partial_replaces_preview_wholesale():
    line = TranscriptLine(speaker=SPEAKER)

    line = apply_fragment(line, SPEAKER, "hel", False)
    line = apply_fragment(line, SPEAKER, "hello wor", False)

    assert line.live_preview == "hello wor"
    assert line.speaking is True
    assert line.displayed_text() == "hello wor"


def test_final_clears_preview_exactly_once():
    line = TranscriptLine(speaker=SPEAKER, finalized=("earlier",))

    line = apply_fragment(line, SPEAKER, "draft", False)
    assert line.displayed_text() == f"earlier{TRANSCRIPT_SEPARATOR}draft"

    line = apply_fragment(line, SPEAKER, "done", True)

    assert line.live_preview == ""
    assert line.speaking is False
    assert line.displayed_text() == f"earlier{TRANSCRIPT_SEPARATOR}done"


def test_other_speaker_is_ignored_without_buffering():
    acc = TranscriptAccumulator(speaker=SPEAKER)

    assert acc.apply_fragment("user", "my own words", True) is False
    assert acc.apply_fragment("user", "partial", False) is False

    assert acc.line == TranscriptLine(speaker=SPEAKER)
    assert acc.displayed_text() == ""


def test_empty_final_only_clears_preview():
    line = apply_fragment(TranscriptLine(speaker=SPEAKER), SPEAKER, "um", False)

    line = apply_fragment(line, SPEAKER, "", True)

    assert line.finalized == ()
    assert line.live_preview == ""


def test_whitespace_final_is_not_appended():
    acc = TranscriptAccumulator(speaker=SPEAKER)
    acc.apply_fragment(SPEAKER, "first", True)
    acc.apply_fragment(SPEAKER, "uh", False)

    acc.apply_fragment(SPEAKER, "  ", True)

    assert acc.line.finalized == ("first",)
    assert acc.line.speaking is False
    assert acc.displayed_text() == "first"


def test_reset_keeps_speaker():
    acc = TranscriptAccumulator(speaker=SPEAKER)
    acc.apply_fragment(SPEAKER, "something", True)

    acc.reset()

    assert acc.speaker == SPEAKER
    assert acc.displayed_text() == ""
