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

"""kind cluster lifecycle verified against the container engine."""

from __future__ import annotations

import re
import time
from enum import Enum

import docker
from rich.panel import Panel
from tenacity import RetryError, retry, retry_if_exception_type, stop_after_attempt

from copilot_e2e import console, logger
from copilot_e2e.config import ClusterConfig
from copilot_e2e.engine import find_container_by_pattern
from copilot_e2e.errors import ExternalToolError, RetryExhaustedError
from copilot_e2e.utils import run_tool


class ClusterState(str, Enum):
    """States a cluster passes through while being created."""

    ABSENT = "absent"
    CREATING = "creating"
    VERIFYING = "verifying"
    READY = "ready"
    FAILED = "failed"


def _transition(name: str, old: ClusterState, new: ClusterState) -> ClusterState:
    logger.info("cluster %s: %s -> %s", name, old.value, new.value)
    return new


class _ClusterNotCreated(Exception):
    """An attempt finished without a running node container."""


def node_pattern(cluster_name: str) -> str:
    """Regex matching the node containers kind names after *cluster_name*."""
    return rf"^{re.escape(cluster_name)}-(control-plane|worker|external-load-balancer)\d*$"


def cluster_exists(client: docker.DockerClient, cluster_name: str) -> bool:
    """Whether the engine runs a node container of the cluster.

    kind can report success while its node container is not running, so
    this is the check every lifecycle decision relies on.
    """
    return find_container_by_pattern(client, node_pattern(cluster_name)) is not None


def _kind_create_args(cluster_cfg: ClusterConfig) -> list[str]:
    args = [
        "create", "cluster",
        "--name", cluster_cfg.cluster_name,
        f"--kubeconfig={cluster_cfg.kubeconfig}",
        f"--image={cluster_cfg.node_image}",
    ]
    if cluster_cfg.cluster_config is not None:
        args.append(f"--config={cluster_cfg.cluster_config}")
    return args


def delete_cluster(cluster_cfg: ClusterConfig, client: docker.DockerClient) -> bool:
    """Delete the kind cluster, re-checking the engine after each attempt.

    Failures are logged rather than raised; the next create retries
    teardown anyway.

    Args:
        cluster_cfg: Cluster configuration with the name and retry budget.
        client: Docker client used as ground truth.

    Returns:
        True once no matching container remains, False if it never went away.
    """
    name = cluster_cfg.cluster_name
    console.print(f"[yellow]\u2139\ufe0f  Deleting kind cluster '{name}'...[/yellow]")
    for attempt in range(1, cluster_cfg.delete_retries + 1):
        try:
            run_tool("kind", "delete", "cluster", f"--name={name}")
        except ExternalToolError as e:
            logger.warning("kind delete cluster %s failed (attempt %d): %s", name, attempt, e)
        if not cluster_exists(client, name):
            console.print(f"[green]\u2705 Cluster '{name}' deleted[/green]")
            return True
    console.print(
        f"[yellow]\u26a0\ufe0f  Cluster '{name}' still running after {cluster_cfg.delete_retries} delete attempts[/yellow]"
    )
    return False


def create_cluster(cluster_cfg: ClusterConfig, client: docker.DockerClient) -> ClusterState:
    """Create a kind cluster, retrying the whole creation until the engine sees it.

    Each attempt removes the kubeconfig and any same-named cluster, waits for
    teardown to settle, runs ``kind create cluster`` (its exit status is
    ignored) and then looks for the node container. Control-plane readiness
    is not awaited here.

    Args:
        cluster_cfg: Cluster configuration including the retry budget.
        client: Docker client used as ground truth.

    Returns:
        ClusterState.READY.

    Raises:
        RetryExhaustedError: If no attempt produced a running container.
        docker.errors.DockerException: If the engine cannot be queried; not retried.
    """
    name = cluster_cfg.cluster_name
    console.print(Panel.fit(f"Creating kind cluster '{name}'", style="bold blue"))
    state = ClusterState.ABSENT
    attempts = 0

    @retry(
        stop=stop_after_attempt(cluster_cfg.max_retries),
        retry=retry_if_exception_type(_ClusterNotCreated),
    )
    def _attempt() -> None:
        nonlocal state, attempts
        attempts += 1
        cluster_cfg.kubeconfig.unlink(missing_ok=True)
        delete_cluster(cluster_cfg, client)
        time.sleep(cluster_cfg.settle_seconds)

        state = _transition(name, state, ClusterState.CREATING)
        cluster_cfg.kubeconfig.parent.mkdir(parents=True, exist_ok=True)
        try:
            run_tool("kind", *_kind_create_args(cluster_cfg))
        except ExternalToolError as e:
            logger.warning("kind create cluster %s reported failure: %s", name, e)

        state = _transition(name, state, ClusterState.VERIFYING)
        if cluster_exists(client, name):
            return

        state = _transition(name, state, ClusterState.FAILED)
        console.print(f"[yellow]\u26a0\ufe0f  kind create cluster failed, retrying ({attempts} times)[/yellow]")
        delete_cluster(cluster_cfg, client)
        state = _transition(name, state, ClusterState.ABSENT)
        raise _ClusterNotCreated(f"No running container found for cluster '{name}'")

    try:
        _attempt()
    except RetryError as err:
        raise RetryExhaustedError(
            f"kind cluster '{name}' was not created after {attempts} attempts",
            attempts=attempts,
        ) from err
    state = _transition(name, state, ClusterState.READY)
    console.print(f"[green]\u2705 Cluster '{name}' created successfully[/green]")
    return state
