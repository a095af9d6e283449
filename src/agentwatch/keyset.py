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

"""Fixed set of watched substrings with monotonic "seen" flags."""

from __future__ import annotations

import threading
from collections.abc import Iterable, Iterator

from agentwatch.errors import InvalidTargetSetError, UnknownKeyError

__all__ = ["KeySet"]


class KeySet:
    """Target substrings, each with a flag that only ever turns on.

    Keys are fixed at construction. :meth:`observe` checks a piece of text
    for every key not yet seen and marks the ones it contains. Matching is
    plain substring containment, so one line can mark several keys, including
    a key that is itself a substring of another.

    Duplicate targets are collapsed, keeping first-seen order. An empty target
    list, an empty target, or a non-string target raises
    :class:`~agentwatch.errors.InvalidTargetSetError`.

    Example::

        keys = KeySet(['"stringValue":"syslog"', '"stringValue":"system.log"'])
        keys.observe('{"attributes":{"stringValue":"syslog"}}')

        assert keys.any_seen()
        assert not keys.all_seen()
        assert keys.missing() == ('"stringValue":"system.log"',)

    Thread-safety:
        All methods are thread-safe. The lock guards flag reads and flips
        only; substring checks run outside it.
    """

    __slots__ = ("_flags", "_keys", "_lock")

    def __init__(self, targets: Iterable[str]) -> None:
        if isinstance(targets, str):
            msg = "Targets must be an iterable of strings, not a single string."
            raise InvalidTargetSetError(msg)

        keys: list[str] = []
        for target in targets:
            if not isinstance(target, str):
                msg = f"Targets must be strings, got {type(target).__name__}."
                raise InvalidTargetSetError(msg)
            if not target:
                msg = "Targets must be non-empty strings."
                raise InvalidTargetSetError(msg)
            if target not in keys:
                keys.append(target)

        if not keys:
            msg = "At least one target is required."
            raise InvalidTargetSetError(msg)

        self._keys: tuple[str, ...] = tuple(keys)
        self._flags: dict[str, bool] = dict.fromkeys(keys, False)
        self._lock = threading.Lock()

    def __repr__(self) -> str:
        return f"KeySet({self.snapshot()!r})"

    def __len__(self) -> int:
        return len(self._keys)

    def __iter__(self) -> Iterator[str]:
        return iter(self._keys)

    def __contains__(self, key: object) -> bool:
        return key in self._flags

    @property
    def keys(self) -> tuple[str, ...]:
        """Watched keys in construction order."""
        return self._keys

    def observe(self, text: str) -> tuple[str, ...]:
        """Mark every unseen key contained in ``text``.

        ``text`` may be a single log line or a whole document.

        Returns:
            The keys this call flipped from unseen to seen.
        """
        with self._lock:
            pending = [key for key in self._keys if not self._flags[key]]

        hits = [key for key in pending if key in text]
        if not hits:
            return ()

        newly_seen: list[str] = []
        with self._lock:
            for key in hits:
                if not self._flags[key]:
                    self._flags[key] = True
                    newly_seen.append(key)
        return tuple(newly_seen)

    def occurred(self, key: str) -> bool:
        """Return whether ``key`` was seen. Unwatched keys read as False."""
        with self._lock:
            return self._flags.get(key, False)

    def all_seen(self, keys: Iterable[str] | None = None) -> bool:
        """Return True when every key (or every key in ``keys``) was seen."""
        return not self.missing(keys)

    def any_seen(self, keys: Iterable[str] | None = None) -> bool:
        """Return True when at least one key (or one of ``keys``) was seen."""
        return bool(self.seen(keys))

    def seen(self, keys: Iterable[str] | None = None) -> tuple[str, ...]:
        """Seen keys, restricted to ``keys`` when given, in watch order."""
        selected = self._select(keys)
        with self._lock:
            return tuple(key for key in selected if self._flags.get(key, False))

    def missing(self, keys: Iterable[str] | None = None) -> tuple[str, ...]:
        """Unseen keys, restricted to ``keys`` when given, in watch order."""
        selected = self._select(keys)
        with self._lock:
            return tuple(key for key in selected if not self._flags.get(key, False))

    def require(self, keys: Iterable[str]) -> tuple[str, ...]:
        """Return ``keys`` de-duplicated, rejecting any that are not watched.

        Raises:
            UnknownKeyError: Some of ``keys`` are not watched.
        """
        selected = self._select(keys)
        unknown = [key for key in selected if key not in self._flags]
        if unknown:
            raise UnknownKeyError(unknown)
        return selected

    def snapshot(self) -> dict[str, bool]:
        """Return a copy of the current flags."""
        with self._lock:
            return dict(self._flags)

    def _select(self, keys: Iterable[str] | None) -> tuple[str, ...]:
        if keys is None:
            return self._keys
        return tuple(dict.fromkeys(keys))
