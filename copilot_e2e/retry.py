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

"""Command retry with success-streak confirmation."""

from __future__ import annotations

from pathlib import Path

from tenacity import RetryCallState, RetryError, Retrying, retry_if_result, stop_after_attempt

from copilot_e2e import console, logger
from copilot_e2e.config import RetryPolicy
from copilot_e2e.constants import COMMAND_TIMEOUT_SECONDS
from copilot_e2e.errors import RetryExhaustedError
from copilot_e2e.utils import kubectl_args, run_command


def run_with_retry(
    args: list[str],
    policy: RetryPolicy | None = None,
    timeout: int = COMMAND_TIMEOUT_SECONDS,
) -> str:
    """Run a command until it succeeds several times in a row.

    Pods owned by a StatefulSet or Deployment can flap between ready, error
    and ready while starting, so one successful observation is not enough.
    A failure resets the success streak but still uses up an attempt.

    Args:
        args: Full argv of the command.
        policy: Attempt budget, streak requirement and delays.
        timeout: Per-invocation timeout in seconds.

    Returns:
        Standard output of the last successful invocation.

    Raises:
        RetryExhaustedError: If the streak was never reached. The command is
            re-run once with its output printed before raising.
    """
    policy = policy or RetryPolicy()
    cmd_str = " ".join(args)
    attempts = 0
    streak = 0
    last_stdout = ""

    def _attempt() -> int:
        nonlocal attempts, streak, last_stdout
        attempts += 1
        ok, stdout, stderr = run_command(args, timeout=timeout)
        if ok:
            streak += 1
            last_stdout = stdout
            logger.debug("%s succeeded (%d/%d in a row)", cmd_str, streak, policy.required_successes)
        else:
            streak = 0
            logger.debug("%s failed: %s", cmd_str, stderr.strip())
            console.print(f"[yellow]   {cmd_str} failed, retrying ({attempts} times)[/yellow]")
        return streak

    def _wait(retry_state: RetryCallState) -> float:
        if retry_state.outcome is not None and retry_state.outcome.result() > 0:
            return policy.success_delay
        return policy.failure_delay

    retrying = Retrying(
        stop=stop_after_attempt(policy.max_attempts),
        wait=_wait,
        retry=retry_if_result(lambda count: count < policy.required_successes),
    )
    try:
        retrying(_attempt)
    except RetryError as err:
        console.print(f"[red]\u274c {cmd_str} failed[/red]")
        _, stdout, stderr = run_command(args, timeout=timeout)
        if stdout:
            console.print(stdout, end="", markup=False, highlight=False)
        if stderr:
            console.print(stderr, end="", markup=False, highlight=False)
        raise RetryExhaustedError(
            f"'{cmd_str}' did not succeed {policy.required_successes} times in a row "
            f"within {policy.max_attempts} attempts",
            attempts=attempts,
            output=stderr or stdout,
        ) from err
    return last_stdout


def kubectl_with_retry(
    *args: str,
    kubeconfig: Path | None = None,
    policy: RetryPolicy | None = None,
    timeout: int = COMMAND_TIMEOUT_SECONDS,
) -> str:
    """Run a kubectl command under :func:`run_with_retry`.

    Tolerates kubectl failures that happen before a controller has created
    the pods it is asked about.
    """
    return run_with_retry(kubectl_args(*args, kubeconfig=kubeconfig), policy=policy, timeout=timeout)
