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

"""Predicate builders for :func:`~agentwatch.eventually.eventually`.

Each builder returns a zero-argument callable that is cheap to call
repeatedly and treats "not there yet" (a missing file, an unseen key) as
False rather than an error.
"""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path

from agentwatch.eventually import Predicate
from agentwatch.keyset import KeySet
from agentwatch.watcher import LogWatcher

__all__ = ["all_of", "any_of", "file_matches", "keys_seen"]


def keys_seen(
    watcher: LogWatcher,
    keys: Iterable[str] | None = None,
    *,
    require_all: bool = True,
) -> Predicate:
    """Return a predicate over ``watcher``'s flags.

    Args:
        watcher: The watcher to sample.
        keys: Keys to consider; defaults to every watched key.
        require_all: When False, one seen key is enough.

    Raises:
        UnknownKeyError: Some of ``keys`` are not watched, so the predicate
            could never hold.
    """
    selected = watcher.keys.require(keys) if keys is not None else watcher.keys.keys
    if require_all:
        return lambda: watcher.keys.all_seen(selected)
    return lambda: watcher.keys.any_seen(selected)


def file_matches(
    path: str | Path,
    keys: KeySet,
    *,
    require_all: bool = False,
    encoding: str = "utf-8",
) -> Predicate:
    """Return a predicate that scans ``path`` for ``keys`` on every call.

    Flags accumulate on ``keys`` across calls, so a key that appears in one
    poll and is rotated out of the file before the next still counts. A
    missing, empty or unreadable file reads as False.

    Example::

        exported = KeySet(['"stringValue":"syslog"', '"stringValue":"system.log"'])
        result = eventually(
            file_matches("/tmp/testfileprocessing.json", exported),
            timeout=180.0,
            interval=0.5,
        )
    """
    target = Path(path)

    def predicate() -> bool:
        try:
            content = target.read_text(encoding=encoding, errors="replace")
        except OSError:
            return False
        if not content:
            return False
        _ = keys.observe(content)
        return keys.all_seen() if require_all else keys.any_seen()

    return predicate


def all_of(*predicates: Predicate) -> Predicate:
    """Return a predicate that holds when every predicate holds.

    Evaluation stops at the first False.
    """
    return lambda: all(predicate() for predicate in predicates)


def any_of(*predicates: Predicate) -> Predicate:
    """Return a predicate that holds when at least one predicate holds.

    Evaluation stops at the first True, so put cheap checks first::

        ready_or_mismatch = any_of(
            keys_seen(watcher, [VERSION_MISMATCH]),
            index_has_documents,
        )
    """
    return lambda: any(predicate() for predicate in predicates)
