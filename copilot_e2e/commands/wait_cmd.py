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

"""Wait subcommands (ready, resource, pod-ready)."""

from __future__ import annotations

from pathlib import Path

import typer

from copilot_e2e.config import ClusterConfig, ResourceQuery, apply_overrides
from copilot_e2e.constants import (
    READINESS_TIMEOUT_SECONDS,
    RESOURCE_POLL_INTERVAL_SECONDS,
    RESOURCE_WAIT_TIMEOUT_SECONDS,
)
from copilot_e2e.engine import docker_client
from copilot_e2e.host import detect_host_os
from copilot_e2e.readiness import check_cluster_ready
from copilot_e2e.resources import wait_pod_ready, wait_resource_created

app = typer.Typer(help="Wait for cluster state.")


@app.command()
def ready(
    cluster_name: str | None = typer.Option(None, "--cluster-name", help="kind cluster name"),
    kubeconfig: Path | None = typer.Option(None, "--kubeconfig", help="Kubeconfig of the cluster"),
    context: str | None = typer.Option(None, "--context", help="Context alias to rename the kind context to"),
    timeout: int = typer.Option(READINESS_TIMEOUT_SECONDS, "--timeout", help="Seconds per readiness stage"),
) -> None:
    """Run the readiness probe against an existing kind cluster."""
    cluster_cfg = apply_overrides(
        ClusterConfig(), cluster_name=cluster_name, kubeconfig=kubeconfig, context_name=context,
    )
    host_os = detect_host_os(cluster_cfg.host_os)
    with docker_client() as client:
        check_cluster_ready(cluster_cfg, client, host_os=host_os, timeout=timeout)


@app.command()
def resource(
    kind: str = typer.Argument(..., help="Resource kind, such as pods"),
    selector: str = typer.Option(..., "--selector", "-l", help="Label selector key=value"),
    namespace: str = typer.Option(..., "--namespace", "-n", help="Namespace to search"),
    timeout: int = typer.Option(RESOURCE_WAIT_TIMEOUT_SECONDS, "--timeout", help="Seconds to keep polling"),
    interval: int = typer.Option(RESOURCE_POLL_INTERVAL_SECONDS, "--interval", help="Seconds between polls"),
    kubeconfig: Path | None = typer.Option(None, "--kubeconfig", help="Kubeconfig to use"),
) -> None:
    """Wait until at least one labelled resource exists."""
    try:
        query = ResourceQuery(kind, selector, namespace, timeout=timeout, interval=interval)
    except ValueError as err:
        raise typer.BadParameter(str(err)) from err
    wait_resource_created(query, kubeconfig=kubeconfig)


@app.command("pod-ready")
def pod_ready(
    label: str = typer.Option(..., "--label", "-l", help="Pod label key=value"),
    namespace: str = typer.Option(..., "--namespace", "-n", help="Namespace of the pods"),
    timeout: int = typer.Option(RESOURCE_WAIT_TIMEOUT_SECONDS, "--timeout", help="Seconds kubectl wait may block"),
    kubeconfig: Path | None = typer.Option(None, "--kubeconfig", help="Kubeconfig to use"),
) -> None:
    """Wait until labelled pods exist and are stably Ready."""
    key, sep, value = label.partition("=")
    if not sep or not key:
        raise typer.BadParameter(f"Label must be key=value, got '{label}'")
    wait_pod_ready(key, value, namespace, timeout=timeout, kubeconfig=kubeconfig)
