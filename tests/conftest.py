"""
Shared pytest fixtures for copilot_e2e tests.

This module provides:
- CommandMocker: scripted replacement for quiet polling commands (run_command)
- ToolMocker: scripted replacement for one-shot tools (run_tool)
- FakeDockerClient: in-memory container engine for the docker SDK calls
- An autouse fixture that records sleeps instead of blocking
"""

import re
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Pattern, Union
from unittest.mock import MagicMock

import docker
import pytest

from copilot_e2e.errors import ExternalToolError


# =============================================================================
# Command Mocking Infrastructure
# =============================================================================

@dataclass
class CommandResult:
    """Represents a mocked (success, stdout, stderr) command result."""
    ok: bool = True
    stdout: str = ""
    stderr: str = ""


OK = CommandResult()
FAIL = CommandResult(ok=False, stderr="error: the server doesn't have a resource type")


@dataclass
class _Rule:
    pattern: Pattern
    results: List[CommandResult]


class CommandMocker:
    """
    Stand-in for utils.run_command with pattern-matched responses.

    Each rule holds a queue of results; the last result repeats once the
    queue is drained. Unmatched commands succeed with empty output.
    """

    def __init__(self) -> None:
        self.calls: List[str] = []
        self._rules: List[_Rule] = []

    def add(self, pattern: str, *results: CommandResult) -> "CommandMocker":
        self._rules.append(_Rule(re.compile(pattern), list(results)))
        return self

    def __call__(self, args: List[str], timeout: int = 60):
        cmd = " ".join(args)
        self.calls.append(cmd)
        for rule in self._rules:
            if rule.pattern.search(cmd):
                result = rule.results.pop(0) if len(rule.results) > 1 else rule.results[0]
                return result.ok, result.stdout, result.stderr
        return True, "", ""

    def count(self, pattern: str) -> int:
        regex = re.compile(pattern)
        return sum(1 for cmd in self.calls if regex.search(cmd))


ToolHandler = Callable[[List[str]], Optional[str]]


class ToolMocker:
    """
    Stand-in for utils.run_tool.

    Handlers are matched by regex against the joined argv; a handler may
    mutate fake state, return stdout, or raise ExternalToolError.
    """

    def __init__(self) -> None:
        self.calls: List[List[str]] = []
        self.cwds: List[Optional[str]] = []
        self._handlers: List[tuple] = []

    def on(self, pattern: str, handler: Union[ToolHandler, None] = None) -> "ToolMocker":
        self._handlers.append((re.compile(pattern), handler))
        return self

    def fail(self, pattern: str, exit_code: int = 1, stderr: str = "boom") -> "ToolMocker":
        def _raise(argv):
            raise ExternalToolError(argv, exit_code, stderr=stderr)
        return self.on(pattern, _raise)

    def __call__(self, name: str, *args: str, cwd=None) -> str:
        argv = [name, *args]
        self.calls.append(argv)
        self.cwds.append(str(cwd) if cwd is not None else None)
        cmd = " ".join(argv)
        for pattern, handler in self._handlers:
            if pattern.search(cmd):
                out = handler(argv) if handler else None
                return out or ""
        return ""

    def called(self, pattern: str) -> List[List[str]]:
        regex = re.compile(pattern)
        return [argv for argv in self.calls if regex.search(" ".join(argv))]


# =============================================================================
# Docker Mocking Infrastructure
# =============================================================================

def make_container(
    name: str,
    status: str = "running",
    ip: str = "172.18.0.2",
    ports: Optional[Dict[str, list]] = None,
) -> MagicMock:
    """Build a docker Container-like mock."""
    container = MagicMock()
    container.name = name
    container.id = f"id-{name}"
    container.status = status
    container.attrs = {
        "NetworkSettings": {
            "Networks": {"kind": {"IPAddress": ip}},
            "Ports": ports or {},
        }
    }
    container.put_archive.return_value = True
    container.exec_run.return_value = (0, b"")
    return container


@dataclass
class FakeContainers:
    """In-memory replacement for DockerClient.containers."""
    items: Dict[str, MagicMock] = field(default_factory=dict)
    removed: List[str] = field(default_factory=list)

    def add(self, container: MagicMock) -> MagicMock:
        container.remove.side_effect = lambda force=False, _name=container.name: self._remove(_name)
        self.items[container.name] = container
        return container

    def _remove(self, name: str) -> None:
        self.items.pop(name, None)
        self.removed.append(name)

    def drop_matching(self, fragment: str) -> None:
        for name in [n for n in self.items if fragment in n]:
            self._remove(name)

    def list(self, all=False, filters=None):
        found = [c for c in self.items.values() if all or c.status == "running"]
        if filters and "name" in filters:
            found = [c for c in found if filters["name"] in c.name]
        return found

    def get(self, name):
        if name not in self.items:
            raise docker.errors.NotFound(f"No such container: {name}")
        return self.items[name]

    def run(self, image, detach=False, name=None, ports=None, restart_policy=None):
        if name in self.items:
            raise docker.errors.APIError(f'Conflict. The container name "/{name}" is already in use')
        container = self.add(make_container(name))
        container.image_name = image
        container.ports_requested = ports
        container.restart_policy = restart_policy
        return container


class FakeDockerClient:
    def __init__(self) -> None:
        self.containers = FakeContainers()
        self.closed = False

    def close(self) -> None:
        self.closed = True


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture(autouse=True)
def sleeps(monkeypatch) -> List[float]:
    """Record every sleep (direct or through tenacity) instead of blocking."""
    recorded: List[float] = []
    monkeypatch.setattr(time, "sleep", lambda seconds: recorded.append(seconds))
    return recorded


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep E2E_* variables from the developer's shell out of settings models."""
    import os
    for key in list(os.environ):
        if key.startswith("E2E_"):
            monkeypatch.delenv(key, raising=False)


@pytest.fixture
def commands(monkeypatch) -> CommandMocker:
    mocker = CommandMocker()
    for module in ("copilot_e2e.retry", "copilot_e2e.resources", "copilot_e2e.readiness"):
        monkeypatch.setattr(f"{module}.run_command", mocker)
    return mocker


@pytest.fixture
def tools(monkeypatch) -> ToolMocker:
    mocker = ToolMocker()
    for module in ("copilot_e2e.cluster", "copilot_e2e.readiness", "copilot_e2e.offline"):
        monkeypatch.setattr(f"{module}.run_tool", mocker)
    return mocker


@pytest.fixture
def engine() -> FakeDockerClient:
    return FakeDockerClient()
