"""
Turn outcome and message status enumerations.
"""

from __future__ import annotations

from enum import Enum


class TurnOutcome(str, Enum):
    """How the most recent turn ended."""

    DONE = "DONE"
    ERROR = "ERROR"
    CANCELLED = "CANCELLED"


class MessageStatus(str, Enum):
    """
    Terminal marker carried by each message.

    CANCELLED is distinct from DONE so a cancelled answer is never
    mistaken for a completed one.
    """

    STREAMING = "STREAMING"
    DONE = "DONE"
    CANCELLED = "CANCELLED"
