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

from __future__ import annotations

import pytest

from agentwatch.clock import FakeClock
from agentwatch.config import PollSettings
from agentwatch.watcher import LogWatcher

pytest_plugins = ["tests.helpers.time", "tests.helpers.streams"]

SYSLOG = '"stringValue":"syslog"'
SYSTEM_LOG = '"stringValue":"system.log"'


@pytest.fixture
def file_watcher(fake_clock: FakeClock) -> LogWatcher:
    """Watcher for the two exported-file markers, on a fake clock."""

    return LogWatcher(
        [SYSLOG, SYSTEM_LOG],
        clock=fake_clock,
        settings=PollSettings(timeout=5.0, interval=1.0),
        name="file-processing",
    )
