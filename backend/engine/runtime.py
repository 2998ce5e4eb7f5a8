"""
Runtime execution shell for a single overlay session.

Responsibilities:
- Own the authoritative conversation state
- Call the pure reducer
- Publish every new snapshot to view observers
- Execute commands with side effects (channels, subscriptions, timers)
- Convert channel callbacks and timer expiry into events
"""

from __future__ import annotations

import asyncio
import time
from collections import deque
from collections.abc import Callable, Coroutine
from typing import TYPE_CHECKING, Any

from adapters.channels.base import AckStatus, ChannelListener
from engine.commands import (
    CancelTimer,
    Command,
    DisposeChannel,
    LogEvent,
    OpenFallback,
    OpenPrimary,
    SettleTurn,
    StartTimer,
)
from engine.enums.channel import Channel
from engine.events import (
    ChannelChunk,
    ChannelDone,
    ChannelError,
    ChannelUnavailable,
    Event,
    EventType,
    ResponseTimeout,
    TurnSettled,
)
from engine.reducer import reduce
from engine.state_dataclass import ConversationState
from engine.subscriptions import Subscription, SubscriptionScope

from observability.logger import log_event

if TYPE_CHECKING:
    from engine.runtime_context import (
        FallbackChannelProtocol,
        PrimaryChannelProtocol,
        RuntimeExecutionContext,
    )


ViewObserver = Callable[[ConversationState], None]


def _now_ms() -> int:
    return time.time_ns() // 1_000_000


class Runtime:
    """
    Runtime execution boundary for a single overlay session.

    Architectural role:
    Runtime is the bridge between the pure engine (reducer + immutable
    state) and the imperative world (channels, logging, time).

    Guarantees:
    - Reducer is called exactly once per event
    - Events are processed strictly in FIFO order; an event raised while
      commands execute (e.g. a channel firing synchronously) is queued
      behind the current one
    - Observers see the new snapshot before its commands execute
    - Every channel unsubscribe function is invoked exactly once
    - Runtime never performs orchestration logic itself
    """

    def __init__(
        self,
        *,
        initial_state: ConversationState,
        context: RuntimeExecutionContext,
    ) -> None:
        self._state = initial_state
        self._ctx = context
        self._timers: dict[str, asyncio.Task[None]] = {}
        self._requests: dict[tuple[Channel, int], asyncio.Task[None]] = {}
        self._subscriptions = SubscriptionScope()
        self._observers: list[ViewObserver] = []
        self._queue: deque[Event] = deque()
        self._draining = False

    @property
    def state(self) -> ConversationState:
        """
        Current immutable conversation state.

        Consumers must treat it as read-only; it is only replaced
        internally via the reducer.
        """
        return self._state

    @property
    def live_subscriptions(self) -> int:
        return len(self._subscriptions)

    def subscribe_view(self, observer: ViewObserver) -> Callable[[], None]:
        """Register a snapshot observer. Returns its unsubscribe function."""
        self._observers.append(observer)

        def _unsubscribe() -> None:
            if observer in self._observers:
                self._observers.remove(observer)

        return _unsubscribe

    def handle_event(self, event: Event) -> None:
        """
        Single entry point for everything affecting conversation state.

        All event sources converge here:
        - Gateway (user input, transcript, meeting context)
        - Channel listeners (chunks, completion, errors, unavailable)
        - Timers and the runtime itself (timeouts, settle)

        Re-entrant calls only enqueue; the outermost call drains.
        """
        self._queue.append(event)
        if self._draining:
            return

        self._draining = True
        try:
            while self._queue:
                self._process(self._queue.popleft())
        except BaseException:
            # Queued events belong to the failed transition.
            self._queue.clear()
            raise
        finally:
            self._draining = False

    async def drain(self) -> None:
        """Wait until no channel request is in flight."""
        while self._requests:
            await asyncio.gather(*list(self._requests.values()), return_exceptions=True)

    async def shutdown(self) -> None:
        """
        Clean shutdown of runtime.

        Disposes every live subscription, cancels in-flight requests and
        timers, and waits for the tasks to finish.
        """
        disposed = self._subscriptions.dispose_all()

        timers = list(self._timers.values())
        for timer_id in list(self._timers.keys()):
            self._cancel_timer(timer_id)

        tasks = list(self._requests.values())
        for task in tasks:
            task.cancel()
        self._requests.clear()

        if tasks or timers:
            await asyncio.gather(*tasks, *timers, return_exceptions=True)

        log_event({
            "ts_ms": _now_ms(),
            "event_type": "runtime_shutdown",
            "session_id": self._ctx.session_id,
            "disposed_subscriptions": disposed,
        })

    # ------------------------------------------------------------------
    # Event processing
    # ------------------------------------------------------------------

    def _process(self, event: Event) -> None:
        new_state, commands = reduce(self._state, event)
        changed = new_state is not self._state
        self._state = new_state

        if changed:
            self._notify_observers(new_state)

        for cmd in commands:
            self._execute_command(cmd)

    def _notify_observers(self, snapshot: ConversationState) -> None:
        for observer in list(self._observers):
            try:
                observer(snapshot)
            except Exception as exc:  # pylint: disable=broad-exception-caught
                log_event({
                    "ts_ms": _now_ms(),
                    "level": "ERROR",
                    "event_type": "view_observer_error",
                    "session_id": self._ctx.session_id,
                    "error": f"{type(exc).__name__}: {exc}",
                })

    # ------------------------------------------------------------------
    # Command execution (side effects)
    # ------------------------------------------------------------------

    def _execute_command(self, cmd: Command) -> None:
        """Execute a single command with side effects."""

        if isinstance(cmd, LogEvent):
            log_event({
                **cmd.event,
                "session_id": self._ctx.session_id,
            })

        elif isinstance(cmd, OpenPrimary):
            self._open_primary(cmd)

        elif isinstance(cmd, OpenFallback):
            self._open_fallback(cmd)

        elif isinstance(cmd, DisposeChannel):
            self._dispose_channel(cmd.channel, cmd.run_id)

        elif isinstance(cmd, SettleTurn):
            self.handle_event(
                TurnSettled(
                    event_type=EventType.TURN_SETTLED,
                    ts_ms=_now_ms(),
                    turn_id=cmd.turn_id,
                )
            )

        elif isinstance(cmd, StartTimer):
            self._start_timer(
                timer_id=cmd.timer_id,
                duration_ms=cmd.duration_ms,
                timeout_event_type=cmd.timeout_event_type,
                turn_id=cmd.turn_id,
            )

        elif isinstance(cmd, CancelTimer):
            self._cancel_timer(cmd.timer_id)

        else:
            raise ValueError(f"Unknown command: {type(cmd).__name__}")

    # ------------------------------------------------------------------
    # Channels
    # ------------------------------------------------------------------

    def _listener_for(
        self, sub: Subscription, message_id: str
    ) -> ChannelListener:
        """
        Fresh listeners bound to one (channel, run_id, message_id).

        Every callback is guarded by the subscription, so nothing reaches
        the reducer once the phase has been disposed.
        """
        channel, run_id = sub.channel, sub.run_id

        def _chunk(text: str) -> None:
            self.handle_event(
                ChannelChunk(
                    event_type=EventType.CHANNEL_CHUNK,
                    ts_ms=_now_ms(),
                    channel=channel,
                    run_id=run_id,
                    message_id=message_id,
                    delta=text,
                )
            )

        def _complete() -> None:
            self.handle_event(
                ChannelDone(
                    event_type=EventType.CHANNEL_DONE,
                    ts_ms=_now_ms(),
                    channel=channel,
                    run_id=run_id,
                    message_id=message_id,
                )
            )

        def _error(reason: str) -> None:
            self._emit_error(sub, message_id, reason)

        return ChannelListener(
            on_chunk=sub.guard(_chunk),
            on_complete=sub.guard(_complete),
            on_error=sub.guard(_error),
        )

    def _emit_error(self, sub: Subscription, message_id: str, reason: str) -> None:
        self.handle_event(
            ChannelError(
                event_type=EventType.CHANNEL_ERROR,
                ts_ms=_now_ms(),
                channel=sub.channel,
                run_id=sub.run_id,
                message_id=message_id,
                reason=reason,
            )
        )

    def _open_primary(self, cmd: OpenPrimary) -> None:
        channel = self._ctx.primary_channel
        sub = self._subscriptions.open(channel=Channel.PRIMARY, run_id=cmd.run_id)

        if channel is None:
            self._emit_unavailable(sub, cmd.message_id, "primary_channel_missing")
            return

        # Listeners are registered BEFORE the request is issued.
        if not self._attach(sub, channel, cmd.message_id):
            return
        self._log_channel("channel_opened", sub)
        self._spawn_request(sub, self._run_primary(sub, cmd))

    def _open_fallback(self, cmd: OpenFallback) -> None:
        channel = self._ctx.fallback_channel
        sub = self._subscriptions.open(channel=Channel.FALLBACK, run_id=cmd.run_id)

        if channel is None:
            self._emit_error(sub, cmd.message_id, "fallback_channel_missing")
            return

        if not self._attach(sub, channel, cmd.message_id):
            return
        self._log_channel("channel_opened", sub)
        self._spawn_request(sub, self._run_fallback(sub, cmd))

    def _attach(
        self,
        sub: Subscription,
        channel: PrimaryChannelProtocol | FallbackChannelProtocol,
        message_id: str,
    ) -> bool:
        """Subscribe guarded listeners; a failing subscribe becomes a ChannelError."""
        try:
            unsubscribe = channel.subscribe(self._listener_for(sub, message_id))
        except Exception as exc:  # pylint: disable=broad-exception-caught
            self._emit_error(sub, message_id, f"{type(exc).__name__}: {exc}")
            return False

        sub.attach(unsubscribe)
        return True

    def _emit_unavailable(self, sub: Subscription, message_id: str, reason: str) -> None:
        self.handle_event(
            ChannelUnavailable(
                event_type=EventType.CHANNEL_UNAVAILABLE,
                ts_ms=_now_ms(),
                channel=sub.channel,
                run_id=sub.run_id,
                message_id=message_id,
                reason=reason,
            )
        )

    async def _run_primary(self, sub: Subscription, cmd: OpenPrimary) -> None:
        channel = self._ctx.primary_channel
        assert channel is not None
        try:
            ack = await channel.query(cmd.conversation_id, cmd.question)
        except asyncio.CancelledError:
            # Phase disposed; the provider-side send is abandoned.
            return
        except Exception as exc:  # pylint: disable=broad-exception-caught
            if not sub.disposed:
                self._emit_error(sub, cmd.message_id, f"{type(exc).__name__}: {exc}")
            return

        if sub.disposed:
            return

        if ack.status is AckStatus.UNAVAILABLE:
            self._emit_unavailable(sub, cmd.message_id, ack.reason)
        elif ack.status is AckStatus.ERROR:
            self._emit_error(sub, cmd.message_id, ack.reason or "primary_error")

    async def _run_fallback(self, sub: Subscription, cmd: OpenFallback) -> None:
        channel = self._ctx.fallback_channel
        assert channel is not None
        try:
            await channel.stream_chat(cmd.question, cmd.context, dict(cmd.options))
        except asyncio.CancelledError:
            return
        except Exception as exc:  # pylint: disable=broad-exception-caught
            if not sub.disposed:
                self._emit_error(sub, cmd.message_id, f"{type(exc).__name__}: {exc}")

    def _spawn_request(
        self, sub: Subscription, coro: Coroutine[Any, Any, None]
    ) -> None:
        key = (sub.channel, sub.run_id)
        task = asyncio.create_task(coro)
        self._requests[key] = task

        def _cleanup(_: asyncio.Task[None]) -> None:
            if self._requests.get(key) is task:
                self._requests.pop(key, None)

        task.add_done_callback(_cleanup)

    def _dispose_channel(self, channel: Channel, run_id: int) -> None:
        """Idempotent: unknown or already-disposed phases are a no-op."""
        sub = self._subscriptions.get(channel=channel, run_id=run_id)
        if not self._subscriptions.dispose(channel=channel, run_id=run_id):
            return

        task = self._requests.pop((channel, run_id), None)
        if task is not None and not task.done():
            task.cancel()

        assert sub is not None
        self._log_channel("channel_disposed", sub)

    def _log_channel(self, event_type: str, sub: Subscription) -> None:
        log_event({
            "ts_ms": _now_ms(),
            "level": "DEBUG",
            "event_type": event_type,
            "session_id": self._ctx.session_id,
            "channel": sub.channel.value,
            "run_id": sub.run_id,
        })

    # ------------------------------------------------------------------
    # Timer management
    # ------------------------------------------------------------------

    def _start_timer(
        self,
        *,
        timer_id: str,
        duration_ms: int,
        timeout_event_type: EventType,
        turn_id: int,
    ) -> None:
        """
        Start or replace a timer that emits a timeout event.

        Timer tasks re-enter handle_event() when they expire,
        maintaining the single event entry point invariant.
        """
        self._cancel_timer(timer_id)

        async def _timer_task() -> None:
            try:
                await asyncio.sleep(duration_ms / 1000.0)
            except asyncio.CancelledError:
                return

            self._timers.pop(timer_id, None)
            self.handle_event(
                self._construct_timeout_event(
                    timer_id=timer_id,
                    timeout_event_type=timeout_event_type,
                    turn_id=turn_id,
                )
            )

        self._timers[timer_id] = asyncio.create_task(_timer_task())

    def _cancel_timer(self, timer_id: str) -> None:
        """
        Cancel an in-flight timer if it exists.

        Idempotent: safe to call even if the timer doesn't exist.
        """
        task = self._timers.pop(timer_id, None)
        if task is not None and not task.done():
            task.cancel()

    def _construct_timeout_event(
        self,
        *,
        timer_id: str,
        timeout_event_type: EventType,
        turn_id: int,
    ) -> Event:
        if timeout_event_type is EventType.RESPONSE_TIMEOUT:
            return ResponseTimeout(
                event_type=EventType.RESPONSE_TIMEOUT,
                ts_ms=_now_ms(),
                turn_id=turn_id,
            )

        raise ValueError(
            f"Unknown timeout event type: {timeout_event_type} "
            f"for timer_id: {timer_id}"
        )
