# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Cancellation contexts for blocking waits.

A :class:`CancellationContext` answers two questions: "has the caller given
up?" and "sleep for this long unless the caller gives up first". Blocking
operations in :mod:`agentwatch` accept one and check it at every sleep
boundary; they never interrupt a predicate that is already running.

Example::

    scope = CancelScope.with_timeout(600.0)
    apm_scope = scope.child()

    # Another thread tears the APM server down early.
    apm_scope.cancel()

    assert apm_scope.is_cancelled()
    assert not scope.is_cancelled()
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Protocol, runtime_checkable

from agentwatch.clock import SYSTEM_CLOCK, Clock, FakeClock


@runtime_checkable
class CancellationContext(Protocol):
    """Cooperative cancellation signal supplied by the caller."""

    def is_cancelled(self) -> bool:
        """Return True once the context was cancelled or has expired."""
        ...

    def wait(self, timeout: float | None = None) -> bool:
        """Block until cancelled or ``timeout`` seconds elapse.

        Returns:
            True if the context is cancelled when the wait ends.
        """
        ...


@dataclass(eq=False)
class CancelScope:
    """Thread-safe cancellation context with an optional expiry.

    Cancelling a scope cancels every child created from it; cancelling a
    child leaves the parent untouched. An expiry is measured on ``clock``
    and is inherited by children.

    ``wait`` blocks on a real :class:`threading.Event`, so pair a scope with a
    real clock. Tests that drive time manually use :class:`FakeCancelScope`.
    """

    clock: Clock = field(default=SYSTEM_CLOCK, repr=False)
    expires_at: float | None = None
    _event: threading.Event = field(default_factory=threading.Event, repr=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)
    _parent: CancelScope | None = field(default=None, repr=False)
    _children: list[CancelScope] = field(
        default_factory=lambda: list[CancelScope](), repr=False
    )

    @classmethod
    def with_timeout(
        cls, seconds: float, *, clock: Clock = SYSTEM_CLOCK
    ) -> CancelScope:
        """Return a scope that expires ``seconds`` from now."""
        if seconds < 0:
            msg = "Scope timeout must be non-negative"
            raise ValueError(msg)
        return cls(clock=clock, expires_at=clock.monotonic() + seconds)

    def cancel(self) -> None:
        """Cancel this scope and all of its children.

        A cancelled scope is released by its parent.
        """
        with self._lock:
            self._event.set()
            children = self._children
            self._children = []

        for child in children:
            child.cancel()
        if self._parent is not None:
            self._parent._release(self)

    def child(self, *, timeout: float | None = None) -> CancelScope:
        """Create a scope cancelled together with this one.

        The parent only tracks children that are still live: cancelled or
        expired children are dropped whenever a new child is created.

        Args:
            timeout: Optional expiry for the child; it never outlives the
                parent's own expiry.
        """
        expires_at = self.expires_at
        if timeout is not None:
            own = self.clock.monotonic() + timeout
            expires_at = own if expires_at is None else min(expires_at, own)

        scope = CancelScope(clock=self.clock, expires_at=expires_at, _parent=self)
        with self._lock:
            cancelled = self._event.is_set()
            if not cancelled:
                self._children = [
                    child for child in self._children if not child.is_cancelled()
                ]
                self._children.append(scope)

        if cancelled:
            scope.cancel()
        return scope

    def remaining(self) -> float | None:
        """Seconds until expiry, or None when the scope never expires."""
        if self.expires_at is None:
            return None
        return max(self.expires_at - self.clock.monotonic(), 0.0)

    def is_cancelled(self) -> bool:
        if self._event.is_set():
            return True
        return self.expires_at is not None and self.clock.monotonic() >= self.expires_at

    def wait(self, timeout: float | None = None) -> bool:
        if self.is_cancelled():
            return True

        remaining = self.remaining()
        if remaining is not None:
            timeout = remaining if timeout is None else min(timeout, remaining)

        _ = self._event.wait(timeout=timeout)
        return self.is_cancelled()

    def _release(self, child: CancelScope) -> None:
        with self._lock:
            self._children = [c for c in self._children if c is not child]


@dataclass
class FakeCancelScope:
    """Cancellation context driven by a :class:`~agentwatch.clock.FakeClock`.

    ``wait`` never blocks: it advances the clock by the requested timeout, or
    only up to ``cancel_at`` when cancellation is scheduled sooner.

    Example::

        clock = FakeClock()
        scope = FakeCancelScope(clock, cancel_at=2.5)

        assert scope.wait(1.0) is False
        assert scope.wait(5.0) is True
        assert clock.monotonic() == 2.5
    """

    clock: FakeClock
    cancel_at: float | None = None
    _cancelled: bool = field(default=False, repr=False)
    _wait_count: int = field(default=0, repr=False)

    def cancel(self) -> None:
        self._cancelled = True

    def is_cancelled(self) -> bool:
        if self._cancelled:
            return True
        return self.cancel_at is not None and self.clock.monotonic() >= self.cancel_at

    def wait(self, timeout: float | None = None) -> bool:
        """Advance the clock instead of blocking.

        Raises:
            RuntimeError: If no timeout is given and no cancellation is
                scheduled, since a real wait would never return.
        """
        self._wait_count += 1
        if self.is_cancelled():
            return True

        until_cancel = None
        if self.cancel_at is not None:
            until_cancel = self.cancel_at - self.clock.monotonic()

        if until_cancel is not None and (timeout is None or until_cancel <= timeout):
            self.clock.sleep(until_cancel)
            self._cancelled = True
            return True

        if timeout is None:
            msg = "FakeCancelScope.wait() without a timeout would block forever"
            raise RuntimeError(msg)

        self.clock.sleep(timeout)
        return self.is_cancelled()

    @property
    def wait_count(self) -> int:
        """Number of times wait() was called."""
        return self._wait_count


__all__ = [
    "CancelScope",
    "CancellationContext",
    "FakeCancelScope",
]
