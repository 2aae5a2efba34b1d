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

"""Orchestration functions that compose domain modules into the e2e run."""

from __future__ import annotations

from rich.panel import Panel

from copilot_e2e import console
from copilot_e2e.cluster import create_cluster, delete_cluster
from copilot_e2e.config import ActionFlags, ClusterConfig, OfflinePackageConfig
from copilot_e2e.constants import DEFAULT_CONTROLLER_LABEL, DEFAULT_CONTROLLER_NAMESPACE
from copilot_e2e.engine import docker_client
from copilot_e2e.host import check_install_environment
from copilot_e2e.offline import cleanup_registry, run_offline_package
from copilot_e2e.readiness import check_cluster_ready
from copilot_e2e.resources import wait_pod_ready
from copilot_e2e.utils import require_command

# ============================================================================
# Internal helpers
# ============================================================================


def _check_prerequisites(flags: ActionFlags) -> None:
    """Check that the CLI tools the requested stages shell out to exist.

    Args:
        flags: Resolved action flags to determine which tools are needed.
    """
    prereqs = ["kind", "kubectl", "docker"]
    if flags.offline_package:
        prereqs.append("charts-syncer")
    console.print(Panel.fit("Checking prerequisites", style="bold blue"))
    require_command(*prereqs)
    console.print("[green]\u2705 All required tools are available[/green]")


def _split_label(label: str) -> tuple[str, str]:
    key, sep, value = label.partition("=")
    if not sep or not key:
        raise ValueError(f"Label must be key=value, got '{label}'")
    return key, value


# ============================================================================
# Public API
# ============================================================================


def run_e2e_setup(
    flags: ActionFlags,
    cluster_cfg: ClusterConfig,
    offline_cfg: OfflinePackageConfig | None = None,
    controller_label: str = DEFAULT_CONTROLLER_LABEL,
    controller_namespace: str = DEFAULT_CONTROLLER_NAMESPACE,
) -> str | None:
    """Run the e2e setup: create, probe, offline package, controller wait, teardown.

    Stages are strictly sequential and every error propagates. Teardown, when
    requested, also runs after a failure.

    Args:
        flags: Which stages to run.
        cluster_cfg: kind cluster configuration.
        offline_cfg: Offline package configuration, required if that stage runs.
        controller_label: ``key=value`` label of the controller pods to wait for.
        controller_namespace: Namespace of the controller pods.

    Returns:
        The API server ``ip:port`` if the readiness probe ran, otherwise None.

    Raises:
        HarnessError: If any stage fails.
    """
    _, host_os = check_install_environment(cluster_cfg.host_arch, cluster_cfg.host_os)
    _check_prerequisites(flags)

    address: str | None = None
    with docker_client() as client:
        try:
            if flags.create_cluster:
                create_cluster(cluster_cfg, client)
            if flags.check_ready:
                address = check_cluster_ready(cluster_cfg, client, host_os=host_os)
            if flags.offline_package:
                if offline_cfg is None:
                    raise ValueError("Offline package stage requested without its configuration")
                run_offline_package(offline_cfg, client, cluster_cfg.cluster_name)
            if flags.wait_controller:
                key, value = _split_label(controller_label)
                wait_pod_ready(key, value, controller_namespace, kubeconfig=cluster_cfg.kubeconfig)
        finally:
            if flags.teardown:
                console.print(Panel.fit("Tearing down", style="bold blue"))
                if flags.offline_package and offline_cfg is not None:
                    cleanup_registry(client, offline_cfg.registry_name)
                delete_cluster(cluster_cfg, client)
    return address
