"""
Response channel enumeration for run-id–versioned subscriptions.

Rules:
- This enum identifies response channels only.
- It must NOT encode negotiation rules.
- Reducer logic decides when a channel is opened, disposed, or abandoned.
"""

from __future__ import annotations

from enum import Enum


class Channel(str, Enum):
    """
    Response channels negotiated per turn.

    Each channel:
    - Has at most one live subscription at a time
    - Is identified by a monotonically increasing run_id

    PRIMARY:
        Context-augmented (retrieval) channel. May answer "unavailable".

    FALLBACK:
        Direct chat channel. Terminal fallback, never "unavailable".
    """

    PRIMARY = "PRIMARY"
    FALLBACK = "FALLBACK"
