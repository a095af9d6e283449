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

"""Retry a predicate until it holds, a timeout elapses, or the caller cancels.

:func:`eventually` is the single polling loop used by the harness. It invokes
the predicate immediately, then once per ``interval`` until one of three
terminal outcomes is reached:

- ``SUCCEEDED``: the predicate returned True.
- ``TIMED_OUT``: ``timeout`` seconds passed on the supplied clock.
- ``CANCELLED``: the cancellation context fired before the deadline.

Sleeps are capped at the deadline, so the deadline instant itself gets one
last attempt. No attempt starts after the deadline or cancellation has been
observed; an attempt that is already running is allowed to finish.

A predicate that raises counts as "not yet true". The exception is kept on
the result as ``last_error`` so the caller can report it::

    def healthy() -> bool:
        return client.status().ok  # connection errors until the agent is up

    result = eventually(healthy, timeout=120.0, interval=1.0)
    if not result.succeeded:
        pytest.fail(f"agent never healthy: {result.last_error!r}")

With :class:`~agentwatch.clock.FakeClock` and
:class:`~agentwatch.cancellation.FakeCancelScope` the number of attempts and
the outcome depend only on ``timeout``, ``interval`` and the predicate's
answers.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum
from typing import NoReturn

from agentwatch.cancellation import CancellationContext
from agentwatch.clock import SYSTEM_CLOCK, Clock
from agentwatch.errors import DeadlineExceededError, WaitCancelledError
from agentwatch.logging import StructuredLogger, get_logger

__all__ = [
    "EventuallyOutcome",
    "EventuallyResult",
    "Predicate",
    "eventually",
    "wait_until",
]

type Predicate = Callable[[], bool]

logger: StructuredLogger = get_logger(__name__)


class EventuallyOutcome(StrEnum):
    """Terminal state of an :func:`eventually` call."""

    SUCCEEDED = "succeeded"
    TIMED_OUT = "timed_out"
    CANCELLED = "cancelled"


@dataclass(slots=True, frozen=True)
class EventuallyResult:
    """Outcome of one :func:`eventually` call.

    Attributes:
        outcome: How the call ended.
        attempts: Number of predicate invocations.
        elapsed: Seconds between the start and the end of the call, measured
            on the clock passed to :func:`eventually`.
        last_error: The most recent exception raised by the predicate, if any.
    """

    outcome: EventuallyOutcome
    attempts: int
    elapsed: float
    last_error: BaseException | None = None

    @property
    def succeeded(self) -> bool:
        return self.outcome is EventuallyOutcome.SUCCEEDED

    def raise_for_outcome(
        self, message: str | None = None, *, missing: tuple[str, ...] = ()
    ) -> None:
        """Raise the error matching a non-success outcome.

        Raises:
            DeadlineExceededError: The call timed out.
            WaitCancelledError: The call was cancelled.
        """
        if self.succeeded:
            return
        _raise_failure(self, message, missing)


def eventually(
    predicate: Predicate,
    *,
    timeout: float,
    interval: float,
    context: CancellationContext | None = None,
    clock: Clock = SYSTEM_CLOCK,
) -> EventuallyResult:
    """Poll ``predicate`` until it returns True, time runs out, or cancellation.

    Args:
        predicate: Zero-argument callable; exceptions count as False.
        timeout: Seconds after which the call gives up. Zero allows exactly
            one attempt.
        interval: Seconds between attempts.
        context: Cancellation signal checked at every sleep boundary. When
            omitted, sleeps go through ``clock``.
        clock: Time source for the deadline and, without a context, sleeping.

    Raises:
        ValueError: If ``timeout`` is negative or ``interval`` is not positive.
    """
    if timeout < 0:
        msg = "eventually() timeout must be non-negative."
        raise ValueError(msg)
    if interval <= 0:
        msg = "eventually() interval must be positive."
        raise ValueError(msg)

    start = clock.monotonic()
    deadline = start + timeout
    attempts = 0
    last_error: BaseException | None = None

    def finish(outcome: EventuallyOutcome) -> EventuallyResult:
        result = EventuallyResult(
            outcome=outcome,
            attempts=attempts,
            elapsed=clock.monotonic() - start,
            last_error=last_error,
        )
        logger.debug(
            "eventually finished",
            event="eventually.finished",
            context={"outcome": outcome.value, "attempts": attempts},
        )
        return result

    if context is not None and context.is_cancelled():
        return finish(EventuallyOutcome.CANCELLED)

    while True:
        attempts += 1
        try:
            held = bool(predicate())
        except Exception as error:
            held = False
            last_error = error
            logger.debug(
                "predicate raised; treating as false",
                event="eventually.predicate_error",
                context={"attempt": attempts, "error": repr(error)},
                exc_info=True,
            )
        if held:
            return finish(EventuallyOutcome.SUCCEEDED)

        remaining = deadline - clock.monotonic()
        if remaining <= 0:
            return finish(EventuallyOutcome.TIMED_OUT)

        delay = min(interval, remaining)
        if context is None:
            clock.sleep(delay)
            cancelled = False
        else:
            cancelled = context.wait(delay)

        now = clock.monotonic()
        if cancelled:
            # Cancellation only wins when it fired before the deadline.
            if now >= deadline:
                return finish(EventuallyOutcome.TIMED_OUT)
            return finish(EventuallyOutcome.CANCELLED)
        if now > deadline:
            return finish(EventuallyOutcome.TIMED_OUT)


def wait_until(
    predicate: Predicate,
    *,
    timeout: float,
    interval: float,
    context: CancellationContext | None = None,
    clock: Clock = SYSTEM_CLOCK,
    message: str | None = None,
) -> EventuallyResult:
    """Like :func:`eventually`, but raise unless the predicate held.

    Raises:
        DeadlineExceededError: The timeout elapsed first.
        WaitCancelledError: ``context`` was cancelled first.
    """
    result = eventually(
        predicate,
        timeout=timeout,
        interval=interval,
        context=context,
        clock=clock,
    )
    result.raise_for_outcome(message)
    return result


def _raise_failure(
    result: EventuallyResult, message: str | None, missing: tuple[str, ...]
) -> NoReturn:
    detail = f"after {result.attempts} attempt(s) in {result.elapsed:.3f}s"
    if missing:
        detail = f"{detail}; never seen: {', '.join(missing)}"

    if result.outcome is EventuallyOutcome.CANCELLED:
        prefix = message or "Wait cancelled"
        raise WaitCancelledError(f"{prefix} ({detail})", result=result, missing=missing)

    prefix = message or "Condition not met before timeout"
    raise DeadlineExceededError(
        f"{prefix} ({detail})", result=result, missing=missing
    ) from result.last_error
