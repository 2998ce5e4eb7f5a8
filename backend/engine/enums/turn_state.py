"""
Authoritative turn state enumeration.

Rules:
- This enum defines ONLY the lifecycle states of a conversational turn.
- No behavior, no helper methods, no side effects.
- Transitions are defined exclusively in the reducer.
"""

from __future__ import annotations

from enum import Enum


class TurnState(str, Enum):
    """
    Lifecycle of a single question/answer cycle.

    IDLE:
        No turn in flight. The only state accepting a new submission.

    WAITING:
        Request issued, no token received yet.

    STREAMING:
        At least one token has landed in the target message.

    DONE / ERROR:
        Terminal, one-shot. Published to observers once, then settled
        back to IDLE.
    """

    IDLE = "IDLE"
    WAITING = "WAITING"
    STREAMING = "STREAMING"
    DONE = "DONE"
    ERROR = "ERROR"
