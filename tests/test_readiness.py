"""Tests for the cluster readiness probe."""

import pytest

from copilot_e2e.config import ClusterConfig
from copilot_e2e.errors import ExternalToolError, UnsupportedPlatformError, WaitTimeoutError
from copilot_e2e.host import HostOS
from copilot_e2e.readiness import check_cluster_ready
from tests.conftest import FAIL, make_container


RENAMED_KUBECONFIG = """\
apiVersion: v1
kind: Config
clusters:
- name: kind-host
  cluster:
    server: https://172.18.0.2:6443
contexts:
- name: host
  context:
    cluster: kind-host
    user: kind-host
current-context: host
"""


@pytest.fixture
def cfg(tmp_path):
    kubeconfig = tmp_path / "host.config"
    kubeconfig.write_text("apiVersion: v1\nkind: Config\n")
    return ClusterConfig(cluster_name="host", kubeconfig=kubeconfig, context_name="host")


@pytest.fixture
def control_plane(engine):
    return engine.containers.add(make_container(
        "host-control-plane",
        ip="172.18.0.2",
        ports={"6443/tcp": [{"HostIp": "127.0.0.1", "HostPort": "53211"}]},
    ))


class TestCheckClusterReady:
    def test_linux_uses_container_address(self, cfg, engine, control_plane, tools, commands):
        address = check_cluster_ready(cfg, engine, host_os=HostOS.LINUX)
        assert address == "172.18.0.2:6443"
        assert tools.called("set-cluster") == [[
            "kubectl", "config", "set-cluster", "kind-host",
            "--server=https://172.18.0.2:6443", f"--kubeconfig={cfg.kubeconfig}",
        ]]

    def test_darwin_uses_published_port(self, cfg, engine, control_plane, tools, commands):
        address = check_cluster_ready(cfg, engine, host_os=HostOS.DARWIN)
        assert address == "127.0.0.1:53211"
        assert tools.called("--server=https://127.0.0.1:53211")

    def test_stage_order(self, cfg, engine, control_plane, tools, commands):
        check_cluster_ready(cfg, engine, host_os=HostOS.LINUX)
        assert [argv[2] for argv in tools.calls] == ["rename-context", "set-cluster"]
        assert tools.calls[0][3:5] == ["kind-host", "host"]
        assert commands.count("get --raw=/healthz") == 1
        assert commands.count("wait --for=condition=ready pod --all -n kube-system") == 1
        assert commands.calls.index(
            next(c for c in commands.calls if "healthz" in c)
        ) < commands.calls.index(next(c for c in commands.calls if "--all" in c))

    def test_detects_os_from_override(self, cfg, engine, control_plane, tools, commands):
        cfg = cfg.model_copy(update={"host_os": "Darwin"})
        assert check_cluster_ready(cfg, engine) == "127.0.0.1:53211"

    def test_unsupported_os_fails_before_probing(self, cfg, engine, control_plane, tools, commands):
        cfg = cfg.model_copy(update={"host_os": "windows"})
        with pytest.raises(UnsupportedPlatformError):
            check_cluster_ready(cfg, engine)
        assert tools.calls == []
        assert commands.calls == []

    def test_missing_kubeconfig_times_out(self, cfg, engine, control_plane, tools, commands):
        cfg.kubeconfig.unlink()
        with pytest.raises(WaitTimeoutError):
            check_cluster_ready(cfg, engine, host_os=HostOS.LINUX, timeout=2)
        assert tools.calls == []

    def test_stopped_container_times_out(self, cfg, engine, tools, commands):
        engine.containers.add(make_container("host-control-plane", status="exited"))
        with pytest.raises(WaitTimeoutError) as exc:
            check_cluster_ready(cfg, engine, host_os=HostOS.LINUX, timeout=2)
        assert "host-control-plane" in exc.value.label

    def test_unhealthy_api_server_times_out(self, cfg, engine, control_plane, tools, commands):
        commands.add("healthz", FAIL)
        with pytest.raises(WaitTimeoutError) as exc:
            check_cluster_ready(cfg, engine, host_os=HostOS.LINUX, timeout=3)
        assert "/healthz" in exc.value.label
        assert commands.count("healthz") == 4
        assert commands.count("kube-system") == 0

    def test_context_rename_failure_propagates(self, cfg, engine, control_plane, tools, commands):
        tools.fail("rename-context", stderr="error: cannot rename the context \"kind-host\"")
        with pytest.raises(ExternalToolError):
            check_cluster_ready(cfg, engine, host_os=HostOS.LINUX)
        assert commands.calls == []

    def test_second_run_keeps_existing_alias(self, cfg, engine, control_plane, tools, commands):
        cfg.kubeconfig.write_text(RENAMED_KUBECONFIG)
        assert check_cluster_ready(cfg, engine, host_os=HostOS.LINUX) == "172.18.0.2:6443"
        assert tools.called("rename-context") == []
        assert len(tools.called("set-cluster kind-host")) == 1

    def test_fresh_kind_context_is_renamed(self, cfg, engine, control_plane, tools, commands):
        cfg.kubeconfig.write_text(RENAMED_KUBECONFIG.replace("- name: host\n", "- name: kind-host\n"))
        check_cluster_ready(cfg, engine, host_os=HostOS.LINUX)
        assert tools.called("rename-context")[0][3:5] == ["kind-host", "host"]

    def test_unreadable_kubeconfig(self, cfg, engine, control_plane, tools, commands):
        cfg.kubeconfig.write_text("contexts: [unterminated\n")
        with pytest.raises(ExternalToolError):
            check_cluster_ready(cfg, engine, host_os=HostOS.LINUX)
        assert tools.calls == []

    def test_unpublished_port_on_darwin(self, cfg, engine, tools, commands):
        engine.containers.add(make_container("host-control-plane"))
        with pytest.raises(ExternalToolError):
            check_cluster_ready(cfg, engine, host_os=HostOS.DARWIN)
