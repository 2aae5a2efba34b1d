"""Tests for the command-line surface."""

import sys
from contextlib import contextmanager

import pytest
from typer.testing import CliRunner

from copilot_e2e import cli
from copilot_e2e.commands import delete_cmd, setup_cmd, wait_cmd
from copilot_e2e.errors import ResourceNotFoundError
from tests.conftest import CommandResult


runner = CliRunner()


@pytest.fixture
def fake_docker(monkeypatch, engine):
    @contextmanager
    def fake_client():
        yield engine

    for module in (delete_cmd, wait_cmd):
        monkeypatch.setattr(module, "docker_client", fake_client)
    return engine


class TestDeleteCluster:
    def test_strict_exit_code(self, monkeypatch, fake_docker):
        monkeypatch.setattr(delete_cmd, "delete_cluster", lambda cfg, client: False)
        result = runner.invoke(cli.app, ["delete", "cluster", "--strict"])
        assert result.exit_code == 1

    def test_lenient_by_default(self, monkeypatch, fake_docker):
        monkeypatch.setattr(delete_cmd, "delete_cluster", lambda cfg, client: False)
        result = runner.invoke(cli.app, ["delete", "cluster"])
        assert result.exit_code == 0

    def test_overrides_reach_config(self, monkeypatch, fake_docker):
        seen = {}

        def fake_delete(cfg, client):
            seen["cfg"] = cfg
            return True

        monkeypatch.setattr(delete_cmd, "delete_cluster", fake_delete)
        result = runner.invoke(cli.app, ["delete", "cluster", "--cluster-name", "member1", "--retries", "3"])
        assert result.exit_code == 0
        assert seen["cfg"].cluster_name == "member1"
        assert seen["cfg"].delete_retries == 3


class TestWait:
    def test_bad_selector_is_usage_error(self):
        result = runner.invoke(cli.app, ["wait", "resource", "pods", "-l", "app", "-n", "default"])
        assert result.exit_code == 2

    def test_resource_timeout_fails(self, commands):
        commands.add("get pods", CommandResult(ok=True, stdout=""))
        result = runner.invoke(
            cli.app, ["wait", "resource", "pods", "-l", "app=etcd", "-n", "kube-system", "--timeout", "0"],
        )
        assert result.exit_code == 1
        assert isinstance(result.exception, ResourceNotFoundError)

    def test_pod_ready_passes_label(self, monkeypatch):
        seen = {}
        monkeypatch.setattr(wait_cmd, "wait_pod_ready", lambda *args, **kwargs: seen.update(args=args))
        result = runner.invoke(cli.app, ["wait", "pod-ready", "-l", "app=etcd", "-n", "kube-system"])
        assert result.exit_code == 0
        assert seen["args"] == ("app", "etcd", "kube-system")


class TestSetup:
    def test_flags_map_to_stages(self, monkeypatch):
        seen = {}

        def fake_setup(flags, cluster_cfg, offline_cfg, **kwargs):
            seen.update(flags=flags, cluster_cfg=cluster_cfg, offline_cfg=offline_cfg, kwargs=kwargs)
            return None

        monkeypatch.setattr(setup_cmd, "run_e2e_setup", fake_setup)
        result = runner.invoke(
            cli.app, ["setup", "e2e", "--skip-ready-check", "--teardown", "--cluster-name", "ci-7"],
        )
        assert result.exit_code == 0, result.output
        assert seen["flags"].create_cluster is True
        assert seen["flags"].check_ready is False
        assert seen["flags"].teardown is True
        assert seen["cluster_cfg"].cluster_name == "ci-7"
        assert seen["offline_cfg"] is None

    def test_offline_without_repo_is_usage_error(self, monkeypatch):
        monkeypatch.setattr(setup_cmd, "run_e2e_setup", lambda *a, **k: pytest.fail("must not run"))
        result = runner.invoke(cli.app, ["setup", "e2e", "--offline"])
        assert result.exit_code == 2


def test_main_exits_one_on_harness_error(monkeypatch, commands):
    commands.add("get pods", CommandResult(ok=False, stderr="connection refused"))
    monkeypatch.setattr(sys, "argv", [
        "copilot-e2e", "wait", "resource", "pods", "-l", "app=etcd", "-n", "kube-system", "--timeout", "0",
    ])
    with pytest.raises(SystemExit) as exc:
        cli.main()
    assert exc.value.code == 1
