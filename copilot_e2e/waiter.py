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

"""Bounded polling over labelled predicates."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from tenacity import RetryError, Retrying, retry_if_result, stop_after_attempt, stop_never, wait_fixed

from copilot_e2e import console, logger
from copilot_e2e.constants import CONDITION_POLL_INTERVAL_SECONDS, FILE_POLL_INTERVAL_SECONDS
from copilot_e2e.errors import WaitTimeoutError


@dataclass(frozen=True)
class Condition:
    """A labelled, side-effect-free check against external state.

    Attributes:
        label: What is being waited for, used in progress and error messages.
        predicate: Zero-argument callable returning True once satisfied.
        timeout: Budget in seconds, or None to wait forever.
    """

    label: str
    predicate: Callable[[], bool]
    timeout: int | None = None


def _evaluate(condition: Condition) -> tuple[bool, str]:
    """Evaluate the predicate once with its console output captured.

    A predicate that raises counts as not satisfied yet.
    """
    with console.buffered() as buf:
        try:
            ok = bool(condition.predicate())
        except Exception as e:
            logger.debug("Condition '%s' raised: %s", condition.label, e)
            console.print(f"{type(e).__name__}: {e}", markup=False)
            ok = False
    return ok, buf.getvalue()


def wait_for_condition(condition: Condition, interval: float = CONDITION_POLL_INTERVAL_SECONDS) -> None:
    """Block until the condition holds or its budget is spent.

    The budget is counted in poll intervals: a 300s timeout at a 1s interval
    evaluates the predicate at most 301 times.

    Args:
        condition: Condition to poll.
        interval: Seconds between evaluations.

    Raises:
        WaitTimeoutError: If the condition never held within its timeout.
    """
    if interval <= 0:
        raise ValueError("interval must be positive")

    last_output = ""

    def _attempt() -> bool:
        nonlocal last_output
        ok, last_output = _evaluate(condition)
        return ok

    if condition.timeout is None:
        stop = stop_never
    else:
        stop = stop_after_attempt(int(condition.timeout // interval) + 1)

    console.print(f"[yellow]\u2139\ufe0f  Waiting for {condition.label}...[/yellow]")
    retrying = Retrying(
        stop=stop,
        wait=wait_fixed(interval),
        retry=retry_if_result(lambda ok: not ok),
    )
    try:
        retrying(_attempt)
    except RetryError as err:
        if last_output:
            console.print(last_output, end="", markup=False, highlight=False)
        console.print(f"[red]\u274c Timeout waiting for {condition.label}[/red]")
        raise WaitTimeoutError(condition.label, condition.timeout, last_output) from err
    console.print(f"[green]\u2705 {condition.label}: done[/green]")


def wait_file_exist(path: Path, timeout: int, interval: float = FILE_POLL_INTERVAL_SECONDS) -> None:
    """Wait for a file to appear on disk.

    Args:
        path: File to wait for.
        timeout: Budget in seconds.
        interval: Seconds between checks.

    Raises:
        WaitTimeoutError: If the file does not exist before the timeout.
    """
    wait_for_condition(Condition(f"file {path}", path.exists, timeout), interval=interval)
