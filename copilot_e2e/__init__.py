# /*
# Copyright 2026 The Runtime Copilot Authors.
#
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
# */

"""copilot_e2e - ephemeral kind cluster harness for runtime-copilot e2e tests."""

from __future__ import annotations

import io
import logging
from contextlib import contextmanager

from rich.console import Console


class BufferableConsole:
    """Console proxy that routes output to an in-memory buffer while one is active."""

    def __init__(self, real_console: Console) -> None:
        object.__setattr__(self, "_real", real_console)
        object.__setattr__(self, "_stack", [])

    def __getattr__(self, name: str):
        target = self._stack[-1] if self._stack else self._real
        return getattr(target, name)

    @contextmanager
    def buffered(self):
        """Capture all console output printed inside the block."""
        buf = io.StringIO()
        self._stack.append(Console(file=buf, stderr=False))
        try:
            yield buf
        finally:
            self._stack.pop()


console = BufferableConsole(Console(stderr=True))
logger = logging.getLogger("copilot_e2e")
