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

"""Watch a process's output for expected log lines.

A :class:`LogWatcher` tracks a fixed set of target substrings. Output reaches
it either from streams drained on background threads (:meth:`LogWatcher.attach`)
or through its file-like :meth:`LogWatcher.write`. Any thread can then ask
whether a key occurred, or block until keys occur.

Example::

    ready = "all precondition checks are now satisfied"
    mismatch = "The APM integration must be upgraded"
    watcher = LogWatcher([ready, mismatch])

    process = subprocess.Popen(
        [apm_path, "run", "-e"],
        stdout=subprocess.PIPE,
        stderr=subprocess.STDOUT,
    )
    watcher.attach(process.stdout, name="apm-server")

    watcher.wait_for_keys(ready, timeout=600.0, interval=0.5)
    ...
    if watcher.key_occurred(mismatch):
        pytest.skip("agent version needs to be equal to stack version")
"""

from __future__ import annotations

import codecs
import threading
from collections.abc import Callable, Iterable

from agentwatch._consumer import StreamConsumer
from agentwatch.cancellation import CancellationContext
from agentwatch.clock import SYSTEM_CLOCK, Clock
from agentwatch.config import PollSettings
from agentwatch.eventually import EventuallyResult, eventually
from agentwatch.keyset import KeySet
from agentwatch.logging import StructuredLogger, get_logger

__all__ = ["LogWatcher"]

logger: StructuredLogger = get_logger(__name__)


class LogWatcher:
    """Records the first occurrence of each target substring in a text stream.

    Flags only turn on. They survive the end of every attached stream and
    any failed wait, so callers can report what was never seen.

    Args:
        targets: Substrings to watch for. See :class:`~agentwatch.keyset.KeySet`
            for validation and de-duplication rules.
        clock: Time source for waits.
        settings: Default ``timeout``/``interval`` for waits that omit them.
            Read from the environment when omitted (see
            :meth:`~agentwatch.config.PollSettings.from_env`).
        name: Label used for consumer threads, logs and error messages.
    """

    def __init__(
        self,
        targets: Iterable[str],
        *,
        clock: Clock = SYSTEM_CLOCK,
        settings: PollSettings | None = None,
        name: str = "log-watcher",
    ) -> None:
        super().__init__()
        self._keys = KeySet(targets)
        self._clock = clock
        self._settings = settings if settings is not None else PollSettings.from_env()
        self._name = name
        self._logger = logger.bind(watcher=name)
        self._lock = threading.Lock()
        self._consumers: list[StreamConsumer] = []
        self._partial = ""
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")

    def __repr__(self) -> str:
        return f"LogWatcher(name={self._name!r}, keys={self._keys.snapshot()!r})"

    @property
    def keys(self) -> KeySet:
        return self._keys

    @property
    def name(self) -> str:
        return self._name

    @property
    def settings(self) -> PollSettings:
        return self._settings

    @property
    def consumers(self) -> tuple[StreamConsumer, ...]:
        with self._lock:
            return tuple(self._consumers)

    @property
    def running(self) -> bool:
        """True while any attached stream is still being read."""
        return any(consumer.running for consumer in self.consumers)

    # -- consumption ---------------------------------------------------------

    def attach(
        self,
        stream: Iterable[str] | Iterable[bytes],
        *,
        name: str | None = None,
        encoding: str = "utf-8",
    ) -> StreamConsumer:
        """Drain ``stream`` on a daemon thread, feeding each line to the watcher.

        The thread keeps reading after every key was seen so the producer
        never blocks on a full pipe. It stops when the stream ends or its
        owner closes it; the watcher never closes it.
        """
        with self._lock:
            consumer = StreamConsumer(
                stream,
                on_line=self.feed,
                name=name or f"{self._name}-{len(self._consumers)}",
                encoding=encoding,
            )
            self._consumers.append(consumer)
        consumer.start()
        return consumer

    def feed(self, line: str) -> tuple[str, ...]:
        """Process one record.

        Returns:
            Keys first seen in this record.
        """
        newly_seen = self._keys.observe(line)
        for key in newly_seen:
            self._logger.info(
                "watched key seen", event="log_watcher.key_seen", context={"key": key}
            )
        return newly_seen

    def write(self, data: str | bytes) -> int:
        """Accept output in arbitrary chunks, feeding each completed line.

        A trailing partial line is held until its newline arrives or
        :meth:`flush` is called. Bytes are decoded incrementally as UTF-8.
        """
        with self._lock:
            text = self._decoder.decode(data) if isinstance(data, bytes) else data
            *complete, self._partial = (self._partial + text).split("\n")
        for line in complete:
            _ = self.feed(line.rstrip("\r"))
        return len(data)

    def flush(self) -> None:
        """Feed any buffered partial line."""
        with self._lock:
            rest = self._partial + self._decoder.decode(b"", final=True)
            self._partial = ""
        if rest:
            _ = self.feed(rest.rstrip("\r"))

    def join(self, timeout: float | None = None) -> bool:
        """Wait for every attached stream to end.

        ``timeout`` applies to each consumer in turn.

        Returns:
            True if all consumers finished.
        """
        return all([consumer.join(timeout) for consumer in self.consumers])

    # -- queries -------------------------------------------------------------

    def key_occurred(self, key: str) -> bool:
        """Return whether ``key`` has been seen. Never blocks on the reader."""
        return self._keys.occurred(key)

    def snapshot(self) -> dict[str, bool]:
        """Current flag for every watched key."""
        return self._keys.snapshot()

    def missing(self, *keys: str) -> tuple[str, ...]:
        """Keys not seen yet, restricted to ``keys`` when given."""
        return self._keys.missing(keys or None)

    def wait_for_keys(
        self,
        *keys: str,
        timeout: float | None = None,
        interval: float | None = None,
        context: CancellationContext | None = None,
    ) -> EventuallyResult:
        """Block until every key in ``keys`` (default: all keys) was seen.

        Raises:
            UnknownKeyError: A requested key is not watched.
            DeadlineExceededError: The timeout elapsed first.
            WaitCancelledError: ``context`` was cancelled first.
        """
        requested = self._requested(keys)
        result = self._poll(
            lambda: self._keys.all_seen(requested), timeout, interval, context
        )
        if not result.succeeded:
            result.raise_for_outcome(
                f"{self._name}: expected log lines were not seen",
                missing=self._keys.missing(requested),
            )
        return result

    def wait_for_any(
        self,
        *keys: str,
        timeout: float | None = None,
        interval: float | None = None,
        context: CancellationContext | None = None,
    ) -> tuple[str, ...]:
        """Block until at least one key in ``keys`` (default: all keys) was seen.

        Returns:
            The requested keys seen by the time the wait ended.

        Raises:
            UnknownKeyError: A requested key is not watched.
            DeadlineExceededError: The timeout elapsed first.
            WaitCancelledError: ``context`` was cancelled first.
        """
        requested = self._requested(keys)
        result = self._poll(
            lambda: self._keys.any_seen(requested), timeout, interval, context
        )
        if not result.succeeded:
            result.raise_for_outcome(
                f"{self._name}: none of the expected log lines were seen",
                missing=self._keys.missing(requested),
            )
        return self._keys.seen(requested)

    def _requested(self, keys: tuple[str, ...]) -> tuple[str, ...]:
        if not keys:
            return self._keys.keys
        return self._keys.require(keys)

    def _poll(
        self,
        condition: Callable[[], bool],
        timeout: float | None,
        interval: float | None,
        context: CancellationContext | None,
    ) -> EventuallyResult:
        resolved_timeout, resolved_interval = self._settings.resolve(timeout, interval)
        return eventually(
            condition,
            timeout=resolved_timeout,
            interval=resolved_interval,
            context=context,
            clock=self._clock,
        )
