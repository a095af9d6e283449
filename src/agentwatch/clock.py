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

"""Injectable time source for polling loops.

Every timed operation in :mod:`agentwatch` measures elapsed time and sleeps
through a :class:`Clock`. Production code uses :data:`SYSTEM_CLOCK`; tests
pass a :class:`FakeClock` so that timeouts and poll intervals elapse
instantly and the number of predicate attempts is fully determined.

Example (testing)::

    from agentwatch.clock import FakeClock
    from agentwatch.eventually import eventually

    clock = FakeClock()
    result = eventually(lambda: False, timeout=5.0, interval=1.0, clock=clock)
    assert result.attempts == 6
    assert clock.monotonic() == 5.0
"""

from __future__ import annotations

import threading
import time as _time
from dataclasses import dataclass, field
from typing import Final, Protocol, runtime_checkable


@runtime_checkable
class MonotonicClock(Protocol):
    """Source of monotonic time in seconds with an arbitrary zero point."""

    def monotonic(self) -> float: ...


@runtime_checkable
class Sleeper(Protocol):
    """Blocks the calling thread for a duration."""

    def sleep(self, seconds: float) -> None: ...


@runtime_checkable
class Clock(MonotonicClock, Sleeper, Protocol):
    """Monotonic time plus sleeping, as needed by a polling loop."""


@dataclass(frozen=True, slots=True)
class SystemClock:
    """Clock backed by :func:`time.monotonic` and :func:`time.sleep`."""

    def monotonic(self) -> float:
        return _time.monotonic()

    def sleep(self, seconds: float) -> None:
        _time.sleep(seconds)


SYSTEM_CLOCK: Final[Clock] = SystemClock()
"""Default clock for every timed operation. Tests inject :class:`FakeClock`."""


@dataclass
class FakeClock:
    """Manually driven clock for deterministic tests.

    ``sleep`` advances time immediately instead of blocking, and records the
    requested duration in :attr:`sleeps`. All operations are thread-safe.

    Example::

        clock = FakeClock()
        clock.sleep(0.5)
        clock.advance(2.0)
        assert clock.monotonic() == 2.5
        assert clock.sleeps == [0.5]
    """

    _monotonic: float = 0.0
    _sleeps: list[float] = field(default_factory=lambda: list[float](), repr=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def monotonic(self) -> float:
        with self._lock:
            return self._monotonic

    def sleep(self, seconds: float) -> None:
        """Advance time by ``seconds`` without blocking."""
        self.advance(seconds)
        with self._lock:
            self._sleeps.append(seconds)

    def advance(self, seconds: float) -> None:
        """Advance the clock.

        Raises:
            ValueError: If ``seconds`` is negative.
        """
        if seconds < 0:
            msg = "Cannot advance time by negative seconds"
            raise ValueError(msg)
        with self._lock:
            self._monotonic += seconds

    @property
    def sleeps(self) -> list[float]:
        """Durations passed to :meth:`sleep`, oldest first."""
        with self._lock:
            return list(self._sleeps)


__all__ = [
    "SYSTEM_CLOCK",
    "Clock",
    "FakeClock",
    "MonotonicClock",
    "Sleeper",
    "SystemClock",
]
