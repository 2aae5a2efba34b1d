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

"""Error types surfaced by the harness. Every one of them maps to exit code 1."""

from __future__ import annotations


class HarnessError(RuntimeError):
    """Base class for terminal harness failures."""


class WaitTimeoutError(HarnessError, TimeoutError):
    """A bounded poll never observed its condition become true.

    Attributes:
        label: Human-readable description of the awaited condition.
        timeout: Budget in seconds that was exhausted.
        output: Output captured while evaluating the condition, if any.
    """

    def __init__(self, label: str, timeout: int | None, output: str = "") -> None:
        super().__init__(f"Timeout waiting for {label}")
        self.label = label
        self.timeout = timeout
        self.output = output


class ResourceNotFoundError(HarnessError):
    """A selected resource never appeared, or was not there when required."""

    def __init__(
        self,
        kind: str,
        selector: str,
        namespace: str | None = None,
        message: str | None = None,
    ) -> None:
        where = f" in namespace {namespace}" if namespace else ""
        super().__init__(message or f"Timeout waiting for {kind} with label {selector}{where}")
        self.kind = kind
        self.selector = selector
        self.namespace = namespace


class RetryExhaustedError(HarnessError):
    """A flaky operation never reached its required success streak.

    Attributes:
        attempts: Number of attempts that were made.
        output: Output of the final, visible re-run (if one was made).
    """

    def __init__(self, message: str, attempts: int, output: str = "") -> None:
        super().__init__(message)
        self.attempts = attempts
        self.output = output


class UnsupportedPlatformError(HarnessError):
    """The host OS or architecture is outside the supported set."""


class ExternalToolError(HarnessError):
    """A one-shot external invocation failed.

    Attributes:
        command: The argv that was executed.
        exit_code: Process exit code, or None if it never started.
        stdout: Captured standard output.
        stderr: Captured standard error.
    """

    def __init__(
        self,
        command: list[str],
        exit_code: int | None,
        stdout: str = "",
        stderr: str = "",
    ) -> None:
        detail = stderr.strip() or stdout.strip()
        status = f"exit code {exit_code}" if exit_code is not None else "could not be started"
        message = f"'{' '.join(command)}' failed ({status})"
        if detail:
            message = f"{message}: {detail[:500]}"
        super().__init__(message)
        self.command = command
        self.exit_code = exit_code
        self.stdout = stdout
        self.stderr = stderr
