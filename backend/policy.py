"""
POLICY-AS-CONSTANTS
-------------------
Single source of truth for all behavioral constants of the reconciliation
engine.

Rules:
- If changing a value changes runtime behavior, it belongs here.
- No magic numbers or user-facing strings elsewhere in the engine.
- Other modules MUST import from this file.
"""

from __future__ import annotations

from typing import Final

# =============================================================================
# Speakers
# =============================================================================

# Microphone speaker (the person being assisted)
SELF_SPEAKER: Final[str] = "user"

# System-audio speaker shown in the rolling transcript line
DISPLAYED_SPEAKER: Final[str] = "interviewer"

# =============================================================================
# Transcript joining
# =============================================================================

# Separator between finalized segments on the rolling line
TRANSCRIPT_SEPARATOR: Final[str] = "  ·  "

# Separator between finalized fragments captured by the recorder
RECORDING_SEPARATOR: Final[str] = " "

# =============================================================================
# Meeting context
# =============================================================================

# Bound on stored transcript entries (oldest dropped first)
MAX_CONTEXT_TRANSCRIPT_ENTRIES: Final[int] = 200

# Entries rendered into the fallback prompt
FALLBACK_RECENT_TRANSCRIPT_ENTRIES: Final[int] = 20

SELF_TRANSCRIPT_LABEL: Final[str] = "Me"
OTHER_TRANSCRIPT_LABEL: Final[str] = "Them"

# =============================================================================
# Turn timing
# =============================================================================

# 0 disables the waiting timeout; the user can always cancel explicitly
RESPONSE_TIMEOUT_MS_DEFAULT: Final[int] = 0

TIMER_RESPONSE_TIMEOUT: Final[str] = "response_timeout"

# =============================================================================
# User-facing texts (produced only by the turn state machine)
# =============================================================================

PRIMARY_ERROR_TEXT: Final[str] = "Couldn't get a response. Please try again."
FALLBACK_ERROR_TEXT: Final[str] = (
    "Couldn't get a response. Please check your settings."
)
TIMEOUT_ERROR_TEXT: Final[str] = "The response took too long. Please try again."
NO_SPEECH_NOTICE: Final[str] = (
    "No speech detected. Try speaking closer to your microphone."
)

# =============================================================================
# Logging
# =============================================================================

LOG_LEVELS: Final[tuple[str, ...]] = ("DEBUG", "INFO", "WARNING", "ERROR")
STALE_EVENT_LOG_LEVEL: Final[str] = "DEBUG"
