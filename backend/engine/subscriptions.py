"""
Disposable channel subscriptions.

Each provider interaction is one Subscription with a single dispose().
A SubscriptionScope owns every live subscription of a runtime and
disposes them per phase or all together.

Guarantees:
- The unsubscribe function handed over by a channel is invoked exactly once.
- Callbacks wrapped with Subscription.guard() are no-ops after dispose,
  so a channel that keeps emitting after teardown cannot reach the engine.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from engine.enums.channel import Channel

Unsubscribe = Callable[[], None]


class Subscription:
    """One phase's listeners on one channel, for one run."""

    def __init__(self, *, channel: Channel, run_id: int) -> None:
        self.channel = channel
        self.run_id = run_id
        self._unsubscribe: Unsubscribe | None = None
        self._disposed = False

    @property
    def disposed(self) -> bool:
        return self._disposed

    def attach(self, unsubscribe: Unsubscribe) -> None:
        """
        Bind the channel's unsubscribe function.

        Attaching to an already-disposed subscription unsubscribes
        immediately.
        """
        if self._disposed:
            unsubscribe()
            return
        if self._unsubscribe is not None:
            raise ValueError("unsubscribe already attached")
        self._unsubscribe = unsubscribe

    def guard(self, fn: Callable[..., Any]) -> Callable[..., None]:
        """Wrap a listener callback so it is dropped after dispose."""

        def _guarded(*args: Any) -> None:
            if self._disposed:
                return
            fn(*args)

        return _guarded

    def dispose(self) -> None:
        """Idempotent teardown."""
        if self._disposed:
            return
        self._disposed = True

        unsubscribe, self._unsubscribe = self._unsubscribe, None
        if unsubscribe is not None:
            unsubscribe()


@dataclass(frozen=True)
class _PhaseKey:
    channel: Channel
    run_id: int


class SubscriptionScope:
    """Owner of all live subscriptions for a runtime."""

    def __init__(self) -> None:
        self._subs: dict[_PhaseKey, Subscription] = {}

    def __len__(self) -> int:
        return len(self._subs)

    def open(self, *, channel: Channel, run_id: int) -> Subscription:
        key = _PhaseKey(channel, run_id)
        if key in self._subs:
            raise ValueError(f"subscription already open: {channel.value}:{run_id}")

        sub = Subscription(channel=channel, run_id=run_id)
        self._subs[key] = sub
        return sub

    def get(self, *, channel: Channel, run_id: int) -> Subscription | None:
        return self._subs.get(_PhaseKey(channel, run_id))

    def dispose(self, *, channel: Channel, run_id: int) -> bool:
        """Dispose one phase. Returns False if nothing was live."""
        sub = self._subs.pop(_PhaseKey(channel, run_id), None)
        if sub is None:
            return False
        sub.dispose()
        return True

    def dispose_all(self) -> int:
        subs = list(self._subs.values())
        self._subs.clear()
        for sub in subs:
            sub.dispose()
        return len(subs)
