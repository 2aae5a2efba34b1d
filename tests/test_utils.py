"""Tests for external command helpers."""

from pathlib import Path
from unittest.mock import MagicMock

import pytest

from copilot_e2e import utils
from copilot_e2e.errors import ExternalToolError


def test_require_command_lists_every_missing_tool(monkeypatch):
    fake_sh = MagicMock()
    fake_sh.which.side_effect = lambda cmd: "/usr/bin/kind" if cmd == "kind" else None
    monkeypatch.setattr(utils, "sh", fake_sh)
    with pytest.raises(RuntimeError) as exc:
        utils.require_command("kind", "kubectl", "charts-syncer")
    assert "kubectl, charts-syncer" in str(exc.value)
    assert "kind," not in str(exc.value)


def test_require_command_all_present(monkeypatch):
    fake_sh = MagicMock()
    fake_sh.which.return_value = "/usr/local/bin/tool"
    monkeypatch.setattr(utils, "sh", fake_sh)
    utils.require_command("kind", "kubectl")


def test_run_command_reports_failure():
    ok, _, _ = utils.run_command(["false"])
    assert ok is False


def test_run_command_missing_binary():
    ok, stdout, stderr = utils.run_command(["definitely-not-a-real-binary-e2e"])
    assert (ok, stdout) == (False, "")
    assert stderr


def test_run_tool_returns_stdout():
    assert utils.run_tool("echo", "hello").strip() == "hello"


def test_run_tool_non_zero_exit():
    with pytest.raises(ExternalToolError) as exc:
        utils.run_tool("false")
    assert exc.value.exit_code == 1
    assert exc.value.command == ["false"]


def test_run_tool_missing_binary():
    with pytest.raises(ExternalToolError) as exc:
        utils.run_tool("definitely-not-a-real-binary-e2e", "--version")
    assert exc.value.exit_code is None
    assert "could not be started" in str(exc.value)


def test_kubectl_args():
    assert utils.kubectl_args("get", "pods", kubeconfig=Path("/tmp/host.config"), context="host") == [
        "kubectl", "--kubeconfig", "/tmp/host.config", "--context", "host", "get", "pods",
    ]
