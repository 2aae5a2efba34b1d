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

"""Utility functions for external commands and command checks."""

from __future__ import annotations

import subprocess
from pathlib import Path

import sh

from copilot_e2e.constants import COMMAND_TIMEOUT_SECONDS
from copilot_e2e.errors import ExternalToolError


def require_command(*cmds: str) -> None:
    """Check that every named command resolves on the system PATH.

    Args:
        *cmds: CLI commands the caller is about to shell out to.

    Raises:
        RuntimeError: Naming every command that could not be found.
    """
    missing = [cmd for cmd in cmds if not sh.which(cmd)]
    if missing:
        raise RuntimeError(f"Please install {', '.join(missing)} and verify it is in $PATH.")


def run_command(args: list[str], timeout: int = COMMAND_TIMEOUT_SECONDS) -> tuple[bool, str, str]:
    """Run a command quietly and return (success, stdout, stderr).

    Used for polling probes whose output must stay hidden unless the
    surrounding wait fails. Never raises for a non-zero exit.

    Args:
        args: Full argv (e.g. ``["kubectl", "get", "pods"]``).
        timeout: Maximum seconds to wait for the command to complete.

    Returns:
        Tuple of (success, stdout, stderr).
    """
    try:
        result = subprocess.run(
            args,
            capture_output=True,
            text=True,
            timeout=timeout,
        )
        return result.returncode == 0, result.stdout, result.stderr
    except (subprocess.SubprocessError, OSError) as exc:
        return False, "", str(exc)


def run_tool(name: str, *args: str, cwd: Path | None = None) -> str:
    """Run a one-shot external tool via sh and return its stdout.

    Args:
        name: Executable name (e.g. ``kind`` or ``charts-syncer``).
        *args: Arguments passed to the tool.
        cwd: Working directory for the tool, or None for the current one.

    Returns:
        The tool's standard output.

    Raises:
        ExternalToolError: If the tool is missing or exits non-zero.
    """
    command = [name, *args]
    kwargs = {"_cwd": str(cwd)} if cwd is not None else {}
    try:
        result = sh.Command(name)(*args, **kwargs)
    except sh.CommandNotFound as err:
        raise ExternalToolError(command, None, stderr=str(err)) from err
    except sh.ErrorReturnCode as err:
        raise ExternalToolError(
            command,
            err.exit_code,
            err.stdout.decode(errors="replace"),
            err.stderr.decode(errors="replace"),
        ) from err
    return str(result)


def kubectl_args(*args: str, kubeconfig: Path | None = None, context: str | None = None) -> list[str]:
    """Build a kubectl argv, optionally pinned to a kubeconfig and context."""
    argv = ["kubectl"]
    if kubeconfig is not None:
        argv += ["--kubeconfig", str(kubeconfig)]
    if context is not None:
        argv += ["--context", context]
    return [*argv, *args]
