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

"""Default poll timings and their environment overrides."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass

__all__ = ["PollSettings"]

_TIMEOUT_ENV = "AGENTWATCH_TIMEOUT"
_INTERVAL_ENV = "AGENTWATCH_INTERVAL"


@dataclass(slots=True, frozen=True)
class PollSettings:
    """Timeout and interval used when a wait does not specify its own.

    Both values are seconds. ``timeout`` may be zero (a single attempt);
    ``interval`` must be positive.
    """

    timeout: float = 60.0
    interval: float = 0.5

    def __post_init__(self) -> None:
        if self.timeout < 0:
            msg = "PollSettings timeout must be non-negative."
            raise ValueError(msg)
        if self.interval <= 0:
            msg = "PollSettings interval must be positive."
            raise ValueError(msg)

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> PollSettings:
        """Build settings from ``AGENTWATCH_TIMEOUT`` and ``AGENTWATCH_INTERVAL``.

        Unset variables keep the defaults. Slow CI hosts typically raise the
        timeout without touching test code::

            AGENTWATCH_TIMEOUT=300 pytest tests/integration
        """

        env = os.environ if env is None else env
        defaults = cls()
        return cls(
            timeout=_read_seconds(env, _TIMEOUT_ENV, defaults.timeout),
            interval=_read_seconds(env, _INTERVAL_ENV, defaults.interval),
        )

    def resolve(
        self, timeout: float | None, interval: float | None
    ) -> tuple[float, float]:
        """Fill unspecified arguments from these settings."""

        return (
            self.timeout if timeout is None else timeout,
            self.interval if interval is None else interval,
        )


def _read_seconds(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        msg = f"{name} must be a number of seconds, got {raw!r}."
        raise ValueError(msg) from None
