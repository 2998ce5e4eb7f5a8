"""
Run ID container for versioned response channels.

Rules:
- Run IDs are monotonic integers.
- They are owned and incremented ONLY by the reducer.
- This module defines structure, not behavior.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class RunIds:
    """
    Immutable container for the latest run ID per channel.

    Semantics:
    - A value of 0 means "no run has been started yet".
    - Once a run ID is incremented, it is never reused.
    """

    primary: int = 0
    fallback: int = 0
