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

"""Exception hierarchy for :mod:`agentwatch`."""

from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from agentwatch.eventually import EventuallyResult


class AgentWatchError(Exception):
    """Base class for all agentwatch exceptions.

    Subclasses also inherit from the closest builtin exception so callers can
    catch either the library root or the standard type.

    Example::

        try:
            watcher.wait_for_keys("ready", timeout=30.0)
        except AgentWatchError as error:
            pytest.fail(str(error))
    """


class InvalidTargetSetError(AgentWatchError, ValueError):
    """Raised when a watcher is constructed with an unusable target list.

    The target list must be non-empty and contain only non-empty strings.
    Duplicates are not an error; they are collapsed in first-seen order.
    """


class UnknownKeyError(AgentWatchError, KeyError):
    """Raised when waiting on a key the watcher does not track.

    Such a wait could never succeed, so it is rejected before any polling.
    """

    def __init__(self, keys: Iterable[str]) -> None:
        self.keys: tuple[str, ...] = tuple(keys)
        super().__init__(f"Keys are not watched: {', '.join(self.keys)}")

    def __str__(self) -> str:
        # KeyError quotes its argument; keep the message readable.
        return str(self.args[0])


class WaitError(AgentWatchError, RuntimeError):
    """Base class for waits that gave up before their condition held.

    Attributes:
        result: The final :class:`~agentwatch.eventually.EventuallyResult`.
        missing: Keys that were never observed, when the wait was on keys.
    """

    def __init__(
        self,
        message: str,
        *,
        result: EventuallyResult,
        missing: Iterable[str] = (),
    ) -> None:
        super().__init__(message)
        self.result = result
        self.missing: tuple[str, ...] = tuple(missing)


class DeadlineExceededError(WaitError):
    """Raised when a wait's timeout elapsed before the condition held.

    Flags and other observed state are left untouched, so the caller can
    still report what was and was not seen::

        try:
            watcher.wait_for_keys("ready", "listening", timeout=120.0)
        except DeadlineExceededError as error:
            pytest.fail(f"never logged: {error.missing}")
    """


class WaitCancelledError(WaitError):
    """Raised when the surrounding cancellation context fired first."""


__all__ = [
    "AgentWatchError",
    "DeadlineExceededError",
    "InvalidTargetSetError",
    "UnknownKeyError",
    "WaitCancelledError",
    "WaitError",
]
