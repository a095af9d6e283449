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

"""Tests for :mod:`agentwatch.predicates`."""

from __future__ import annotations

from pathlib import Path

import pytest

from agentwatch.clock import FakeClock
from agentwatch.errors import UnknownKeyError
from agentwatch.eventually import EventuallyOutcome, eventually
from agentwatch.keyset import KeySet
from agentwatch.predicates import all_of, any_of, file_matches, keys_seen
from agentwatch.watcher import LogWatcher

SYSLOG = '"stringValue":"syslog"'
SYSTEM_LOG = '"stringValue":"system.log"'

_LOG_LINES = (
    "2023-06-20 12:50:00 DEBUG This is a test debug message 2\n"
    "2023-06-20 12:51:00 DEBUG This is a test debug message 3\n"
    "2023-06-20 12:52:00 DEBUG This is a test debug message 4\n"
)


class TestKeysSeen:
    def test_unwatched_key_is_rejected(self) -> None:
        watcher = LogWatcher([SYSLOG, SYSTEM_LOG])

        with pytest.raises(UnknownKeyError) as excinfo:
            _ = keys_seen(watcher, [SYSLOG, "sys.log"])

        assert excinfo.value.keys == ("sys.log",)

    def test_duplicate_selection_is_collapsed(self) -> None:
        watcher = LogWatcher([SYSLOG, SYSTEM_LOG])
        predicate = keys_seen(watcher, [SYSLOG, SYSLOG])

        _ = watcher.feed(SYSLOG)

        assert predicate()

    def test_defaults_to_every_key(self) -> None:
        watcher = LogWatcher([SYSLOG, SYSTEM_LOG])
        predicate = keys_seen(watcher)

        _ = watcher.feed(SYSLOG)
        assert not predicate()

        _ = watcher.feed(SYSTEM_LOG)
        assert predicate()

    def test_any_mode(self) -> None:
        watcher = LogWatcher([SYSLOG, SYSTEM_LOG])
        predicate = keys_seen(watcher, [SYSTEM_LOG, SYSLOG], require_all=False)

        assert not predicate()
        _ = watcher.feed(SYSLOG)
        assert predicate()

    def test_restricted_to_selection(self) -> None:
        watcher = LogWatcher(["ready", "error"])
        _ = watcher.feed("ready")

        assert keys_seen(watcher, ["ready"])()
        assert not keys_seen(watcher, ["error"])()


class TestFileMatches:
    """Polling a file the agent writes its output to."""

    def test_missing_file_is_false(self, tmp_path: Path) -> None:
        predicate = file_matches(tmp_path / "absent.log", KeySet(["message 2"]))

        assert predicate() is False

    def test_empty_file_is_false(self, tmp_path: Path) -> None:
        path = tmp_path / "empty.log"
        path.write_text("")

        assert file_matches(path, KeySet(["message 2"]))() is False

    def test_directory_is_false(self, tmp_path: Path) -> None:
        assert file_matches(tmp_path, KeySet(["message 2"]))() is False

    def test_any_key_is_enough_by_default(self, tmp_path: Path) -> None:
        path = tmp_path / "output.log"
        path.write_text(_LOG_LINES)
        keys = KeySet(["message 4", "message 9"])

        assert file_matches(path, keys)()
        assert keys.snapshot() == {"message 4": True, "message 9": False}

    def test_require_all_accumulates_across_polls(self, tmp_path: Path) -> None:
        path = tmp_path / "testfileprocessing.json"
        keys = KeySet([SYSLOG, SYSTEM_LOG])
        predicate = file_matches(path, keys, require_all=True)

        path.write_text(f'{{"log.file.name":{{{SYSLOG}}}}}\n')
        assert not predicate()

        # Rotated: only the second record is left in the file.
        path.write_text(f'{{"log.file.name":{{{SYSTEM_LOG}}}}}\n')
        assert predicate()

    def test_eventually_waits_for_file(self, tmp_path: Path) -> None:
        path = tmp_path / "output.log"
        clock = FakeClock()
        predicate = file_matches(path, KeySet(["message 2", "message 4"]))
        polls = 0

        def writer_appears() -> bool:
            nonlocal polls
            polls += 1
            if polls == 3:
                path.write_text(_LOG_LINES)
            return predicate()

        result = eventually(writer_appears, timeout=10.0, interval=1.0, clock=clock)

        assert result.outcome is EventuallyOutcome.SUCCEEDED
        assert result.attempts == 3
        assert clock.monotonic() == 2.0


class TestCombinators:
    def test_all_of_short_circuits(self) -> None:
        calls: list[str] = []

        def record(name: str, value: bool):  # noqa: ANN202
            def predicate() -> bool:
                calls.append(name)
                return value

            return predicate

        assert not all_of(record("a", True), record("b", False), record("c", True))()
        assert calls == ["a", "b"]

    def test_any_of_short_circuits(self) -> None:
        calls: list[str] = []

        def record(name: str, value: bool):  # noqa: ANN202
            def predicate() -> bool:
                calls.append(name)
                return value

            return predicate

        assert any_of(record("a", False), record("b", True), record("c", True))()
        assert calls == ["a", "b"]

    def test_empty_combinators(self) -> None:
        assert all_of()()
        assert not any_of()()

    def test_ready_or_version_mismatch(self) -> None:
        watcher = LogWatcher(["checks are now satisfied", "must be upgraded"])
        ready = keys_seen(watcher, ["checks are now satisfied"])
        mismatch = keys_seen(watcher, ["must be upgraded"])

        _ = watcher.feed("The APM integration must be upgraded")

        assert any_of(ready, mismatch)()
        assert not all_of(ready, mismatch)()
