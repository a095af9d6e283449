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

"""Daemon thread that drains a line stream into a callback."""

from __future__ import annotations

import threading
from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass, field

from agentwatch.logging import StructuredLogger, get_logger

__all__ = ["StreamConsumer", "decode_line"]

logger: StructuredLogger = get_logger(__name__)


def decode_line(raw: str | bytes, encoding: str = "utf-8") -> str:
    """Return ``raw`` as text without its line terminator."""

    text = raw.decode(encoding, errors="replace") if isinstance(raw, bytes) else raw
    return text.rstrip("\r\n")


@dataclass
class StreamConsumer:
    """Reads ``stream`` line by line on a daemon thread.

    The thread runs until the stream is exhausted. A stream closed under the
    reader raises :class:`ValueError` or :class:`OSError`; that ends the
    consumer like end-of-data and the error is kept in :attr:`error`. The
    consumer never closes the stream itself.

    Example::

        process = subprocess.Popen(args, stdout=subprocess.PIPE, text=True)
        consumer = StreamConsumer(process.stdout, on_line=print, name="agent")
        consumer.start()
        process.wait()
        consumer.join(timeout=5.0)
    """

    stream: Iterable[str] | Iterable[bytes]
    on_line: Callable[[str], object]
    name: str = "stream-consumer"
    encoding: str = "utf-8"
    _thread: threading.Thread | None = field(default=None, repr=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)
    _lines_read: int = field(default=0, repr=False)
    _error: BaseException | None = field(default=None, repr=False)

    def start(self) -> None:
        """Start draining the stream.

        Raises:
            RuntimeError: If the consumer was already started.
        """
        with self._lock:
            if self._thread is not None:
                msg = "Consumer already started"
                raise RuntimeError(msg)
            self._thread = threading.Thread(
                target=self._run, name=self.name, daemon=True
            )
            self._thread.start()

    def join(self, timeout: float | None = None) -> bool:
        """Wait for the stream to end.

        Returns:
            True if the consumer finished (or never started), False if it is
            still reading.
        """
        with self._lock:
            thread = self._thread
        if thread is None:
            return True
        thread.join(timeout=timeout)
        return not thread.is_alive()

    @property
    def running(self) -> bool:
        with self._lock:
            return self._thread is not None and self._thread.is_alive()

    @property
    def lines_read(self) -> int:
        """Number of lines handed to ``on_line`` so far."""
        with self._lock:
            return self._lines_read

    @property
    def error(self) -> BaseException | None:
        """The read error that ended consumption, if any."""
        with self._lock:
            return self._error

    def _run(self) -> None:
        bound = logger.bind(consumer=self.name)
        bound.debug("stream attached", event="log_watcher.stream_attached")
        lines: Iterator[str] | Iterator[bytes] | None = None
        while True:
            # Only the read is guarded; errors raised by on_line propagate.
            try:
                if lines is None:
                    lines = iter(self.stream)
                raw = next(lines)
            except StopIteration:
                break
            except (ValueError, OSError) as error:
                with self._lock:
                    self._error = error
                bound.debug(
                    "stream closed while reading",
                    event="log_watcher.stream_error",
                    context={"error": repr(error)},
                )
                return
            self.on_line(decode_line(raw, self.encoding))
            with self._lock:
                self._lines_read += 1
        bound.debug(
            "stream ended",
            event="log_watcher.stream_ended",
            context={"lines": self.lines_read},
        )
