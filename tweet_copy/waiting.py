from __future__ import annotations

import heapq
import itertools
import time
from dataclasses import dataclass
from typing import Callable, Literal, Protocol

Unsubscribe = Callable[[], None]
WaitStatus = Literal["affordance_gone", "stable", "timed_out"]


class Clock(Protocol):
    def now(self) -> float: ...

    def sleep(self, seconds: float) -> None: ...


class ChangeFeed(Protocol):
    def subscribe(self, callback: Callable[[], None]) -> Unsubscribe: ...


class SystemClock:
    """Monotonic wall clock."""

    def now(self) -> float:
        return time.monotonic()

    def sleep(self, seconds: float) -> None:
        time.sleep(max(0.0, float(seconds)))


class ManualClock:
    """
    Virtual clock: `sleep` advances time instantly and fires any callbacks
    scheduled with `call_at` whose time has come, in time order.
    """

    def __init__(self, start: float = 0.0) -> None:
        self._now = float(start)
        self._pending: list[tuple[float, int, Callable[[], None]]] = []
        self._seq = itertools.count()
        self.slept: list[float] = []

    def now(self) -> float:
        return self._now

    def call_at(self, when: float, fn: Callable[[], None]) -> None:
        heapq.heappush(self._pending, (float(when), next(self._seq), fn))

    def call_later(self, delay: float, fn: Callable[[], None]) -> None:
        self.call_at(self._now + float(delay), fn)

    def sleep(self, seconds: float) -> None:
        d = max(0.0, float(seconds))
        self.slept.append(d)
        target = self._now + d
        while self._pending and self._pending[0][0] <= target:
            when, _, fn = heapq.heappop(self._pending)
            self._now = max(self._now, when)
            fn()
        self._now = target


@dataclass(frozen=True)
class WaitPolicy:
    """
    Bounds for waiting on a page that is still rendering.

    - max_wait_seconds caps the whole wait.
    - poll_interval_seconds is the pause between checks.
    - stability_window_seconds is how long the content must stay unchanged.
    """

    max_wait_seconds: float = 5.0
    poll_interval_seconds: float = 0.25
    stability_window_seconds: float = 1.0

    def __post_init__(self) -> None:
        if self.max_wait_seconds <= 0:
            raise ValueError("max_wait_seconds must be > 0")
        if self.poll_interval_seconds <= 0:
            raise ValueError("poll_interval_seconds must be > 0")
        if self.stability_window_seconds <= 0:
            raise ValueError("stability_window_seconds must be > 0")
        if self.poll_interval_seconds > self.max_wait_seconds:
            raise ValueError("poll_interval_seconds must be <= max_wait_seconds")


@dataclass(frozen=True)
class WaitResult:
    status: WaitStatus
    waited_seconds: float
    changes_seen: int

    @property
    def timed_out(self) -> bool:
        return self.status == "timed_out"


def wait_for_settle(
    feed: ChangeFeed,
    *,
    is_done: Callable[[], bool],
    measure: Callable[[], int],
    clock: Clock,
    policy: WaitPolicy | None = None,
) -> WaitResult:
    """
    Wait until `is_done()` holds or the content stops changing.

    Change notifications from `feed` and differences in `measure()` both restart
    the stability window. Gives up after `policy.max_wait_seconds`; a timeout is
    reported in the result, never raised. The subscription is always released.
    """
    cfg = policy or WaitPolicy()
    changes = 0

    def _on_change() -> None:
        nonlocal changes
        changes += 1

    unsubscribe = feed.subscribe(_on_change)
    try:
        start = clock.now()
        last_size = measure()
        last_changes = changes
        stable_since = start

        while True:
            clock.sleep(cfg.poll_interval_seconds)
            now = clock.now()
            elapsed = now - start

            if is_done():
                return WaitResult(status="affordance_gone", waited_seconds=elapsed, changes_seen=changes)

            size = measure()
            if size != last_size or changes != last_changes:
                last_size = size
                last_changes = changes
                stable_since = now
            elif now - stable_since >= cfg.stability_window_seconds:
                return WaitResult(status="stable", waited_seconds=elapsed, changes_seen=changes)

            if elapsed >= cfg.max_wait_seconds:
                return WaitResult(status="timed_out", waited_seconds=elapsed, changes_seen=changes)
    finally:
        unsubscribe()
