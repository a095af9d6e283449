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

"""Log watching and eventual-condition polling for agent integration tests."""

from __future__ import annotations

from agentwatch._consumer import StreamConsumer
from agentwatch.cancellation import CancellationContext, CancelScope, FakeCancelScope
from agentwatch.clock import SYSTEM_CLOCK, Clock, FakeClock, SystemClock
from agentwatch.config import PollSettings
from agentwatch.errors import (
    AgentWatchError,
    DeadlineExceededError,
    InvalidTargetSetError,
    UnknownKeyError,
    WaitCancelledError,
    WaitError,
)
from agentwatch.eventually import (
    EventuallyOutcome,
    EventuallyResult,
    Predicate,
    eventually,
    wait_until,
)
from agentwatch.keyset import KeySet
from agentwatch.logging import StructuredLogger, configure_logging, get_logger
from agentwatch.watcher import LogWatcher

__all__ = [
    "SYSTEM_CLOCK",
    "AgentWatchError",
    "CancelScope",
    "CancellationContext",
    "Clock",
    "DeadlineExceededError",
    "EventuallyOutcome",
    "EventuallyResult",
    "FakeCancelScope",
    "FakeClock",
    "InvalidTargetSetError",
    "KeySet",
    "LogWatcher",
    "PollSettings",
    "Predicate",
    "StreamConsumer",
    "StructuredLogger",
    "SystemClock",
    "UnknownKeyError",
    "WaitCancelledError",
    "WaitError",
    "configure_logging",
    "eventually",
    "get_logger",
    "wait_until",
]
