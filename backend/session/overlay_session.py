"""
Overlay session container.

- Owns the transcript line and the recorder (imperative, synchronous)
- Holds the channels and the runtime (which owns conversation state)
- Buffers outbound control messages for the gateway
- NOT a state machine
- Contains no orchestration logic
"""

from __future__ import annotations

import time
from collections import deque
from dataclasses import dataclass, field
from typing import Any

from engine.runtime import Runtime
from engine.runtime_context import FallbackChannelProtocol, PrimaryChannelProtocol
from transcript.accumulator import TranscriptAccumulator
from transcript.recorder import TurnRecorder


@dataclass
class OverlaySession:
    """Mutable runtime container for a single overlay session."""

    # ------------------------------------------------------------------
    # Identity / lifecycle
    # ------------------------------------------------------------------

    session_id: str
    created_at: float = field(default_factory=time.time)

    # ------------------------------------------------------------------
    # Transcript routing
    # ------------------------------------------------------------------

    accumulator: TranscriptAccumulator = field(default_factory=TranscriptAccumulator)
    recorder: TurnRecorder = field(default_factory=TurnRecorder)

    # ------------------------------------------------------------------
    # Channels (concrete, side-effectful)
    # ------------------------------------------------------------------

    primary_channel: PrimaryChannelProtocol | None = None
    fallback_channel: FallbackChannelProtocol | None = None

    # ------------------------------------------------------------------
    # Runtime (executes commands + owns authoritative state)
    # ------------------------------------------------------------------

    runtime: Runtime | None = None

    def __post_init__(self) -> None:
        self._control_out: deque[dict[str, Any]] = deque()

    # ------------------------------------------------------------------
    # Wiring helpers (called by SessionGateway)
    # ------------------------------------------------------------------

    def attach_channels(
        self,
        *,
        primary: PrimaryChannelProtocol | None,
        fallback: FallbackChannelProtocol | None,
    ) -> None:
        self.primary_channel = primary
        self.fallback_channel = fallback

    def attach_runtime(self, runtime: Runtime) -> None:
        """Must be called after channels are attached."""
        self.runtime = runtime

    # ------------------------------------------------------------------
    # Outbound control queue
    # ------------------------------------------------------------------

    def enqueue_control(self, msg: dict[str, Any]) -> None:
        """
        Enqueue a control message for gateway delivery to the client.

        Messages are buffered in FIFO order and later retrieved via
        drain_control().
        """
        self._control_out.append(msg)

    def drain_control(self) -> tuple[dict[str, Any], ...]:
        """
        Drain all pending control messages in FIFO order.

        After this call, the control queue is empty.
        """
        if not self._control_out:
            return ()
        out = tuple(self._control_out)
        self._control_out.clear()
        return out
