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

"""Composite readiness probe for a freshly created kind cluster."""

from __future__ import annotations

import docker
import yaml
from rich.panel import Panel

from copilot_e2e import console
from copilot_e2e.config import ClusterConfig
from copilot_e2e.constants import (
    CONTAINER_STATUS_RUNNING,
    HEALTHZ_PATH,
    NS_KUBE_SYSTEM,
    READINESS_TIMEOUT_SECONDS,
)
from copilot_e2e.engine import container_status
from copilot_e2e.errors import ExternalToolError
from copilot_e2e.host import HostOS, detect_host_os
from copilot_e2e.utils import kubectl_args, run_command, run_tool
from copilot_e2e.waiter import Condition, wait_file_exist, wait_for_condition


def _api_server_healthy(cluster_cfg: ClusterConfig) -> bool:
    ok, _, _ = run_command(kubectl_args(
        "get", f"--raw={HEALTHZ_PATH}",
        kubeconfig=cluster_cfg.kubeconfig, context=cluster_cfg.context,
    ))
    return ok


def _system_pods_ready(cluster_cfg: ClusterConfig) -> bool:
    ok, _, _ = run_command(kubectl_args(
        "wait", "--for=condition=ready", "pod", "--all", "-n", NS_KUBE_SYSTEM,
        kubeconfig=cluster_cfg.kubeconfig,
    ))
    return ok


def _context_names(cluster_cfg: ClusterConfig) -> set[str]:
    try:
        with open(cluster_cfg.kubeconfig) as f:
            kubeconfig = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ExternalToolError(
            ["kubectl", "config", "get-contexts", "-o", "name", f"--kubeconfig={cluster_cfg.kubeconfig}"],
            None, stderr=str(e),
        ) from e
    return {entry.get("name") for entry in kubeconfig.get("contexts") or [] if isinstance(entry, dict)}


def alias_context(cluster_cfg: ClusterConfig) -> None:
    """Rename kind's ``kind-<name>`` context to the alias, unless that already happened."""
    names = _context_names(cluster_cfg)
    if cluster_cfg.context == cluster_cfg.kind_context or (
        cluster_cfg.context in names and cluster_cfg.kind_context not in names
    ):
        console.print(f"[green]  \u2713 Context {cluster_cfg.context} already present[/green]")
        return
    run_tool(
        "kubectl", "config", "rename-context", cluster_cfg.kind_context, cluster_cfg.context,
        f"--kubeconfig={cluster_cfg.kubeconfig}",
    )


def point_kubeconfig_at(cluster_cfg: ClusterConfig, address: str) -> None:
    """Rewrite the kubeconfig's server URL to ``https://<address>``."""
    run_tool(
        "kubectl", "config", "set-cluster", cluster_cfg.kind_context,
        f"--server=https://{address}", f"--kubeconfig={cluster_cfg.kubeconfig}",
    )
    console.print(f"[green]  \u2713 API server set to https://{address}[/green]")


def check_cluster_ready(
    cluster_cfg: ClusterConfig,
    client: docker.DockerClient,
    host_os: HostOS | None = None,
    timeout: int = READINESS_TIMEOUT_SECONDS,
) -> str:
    """Wait until the cluster answers on a host-reachable address.

    Stages run in order and any failure propagates: kubeconfig file exists,
    control-plane container is running, context renamed to the alias (once
    per kubeconfig), server URL rewritten to the resolved address,
    ``/healthz`` answers, all kube-system pods are ready.

    Args:
        cluster_cfg: Cluster configuration with kubeconfig and context alias.
        client: Docker client for container state and address lookups.
        host_os: Host OS, or None to detect it (honouring ``host_os`` overrides).
        timeout: Budget in seconds for each wait.

    Returns:
        The ``ip:port`` the kubeconfig now points at.

    Raises:
        UnsupportedPlatformError: Before any probe, if the host OS is unsupported.
        WaitTimeoutError: If any stage does not complete in time.
        ExternalToolError: If a kubectl config edit or address lookup fails.
    """
    host_os = host_os or detect_host_os(cluster_cfg.host_os)
    kubeconfig = cluster_cfg.kubeconfig
    container = cluster_cfg.control_plane_container

    console.print(Panel.fit(
        f"Waiting for kubeconfig {kubeconfig} and cluster {cluster_cfg.context} to be ready",
        style="bold blue",
    ))
    wait_file_exist(kubeconfig, timeout)
    wait_for_condition(Condition(
        f"{container} to be {CONTAINER_STATUS_RUNNING}",
        lambda: container_status(client, container) == CONTAINER_STATUS_RUNNING,
        timeout,
    ))

    alias_context(cluster_cfg)

    address = host_os.api_server_address(client, container)
    point_kubeconfig_at(cluster_cfg, address)

    wait_for_condition(Condition(
        f"API server {HEALTHZ_PATH} on {address}",
        lambda: _api_server_healthy(cluster_cfg),
        timeout,
    ))
    wait_for_condition(Condition(
        f"{NS_KUBE_SYSTEM} pods to be ready",
        lambda: _system_pods_ready(cluster_cfg),
        timeout,
    ))
    console.print(f"[green]\u2705 Cluster {cluster_cfg.context} is ready at {address}[/green]")
    return address
