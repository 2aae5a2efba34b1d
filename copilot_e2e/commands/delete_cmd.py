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

"""Delete subcommands (cluster, registry)."""

from __future__ import annotations

import typer

from copilot_e2e.cluster import delete_cluster
from copilot_e2e.config import ClusterConfig, OfflinePackageConfig, apply_overrides
from copilot_e2e.engine import docker_client
from copilot_e2e.offline import cleanup_registry

app = typer.Typer(help="Delete infrastructure resources.")


@app.command("cluster")
def cluster(
    cluster_name: str | None = typer.Option(None, "--cluster-name", help="kind cluster name"),
    retries: int | None = typer.Option(None, "--retries", help="Maximum delete attempts"),
    strict: bool = typer.Option(
        False, "--strict", help="Exit non-zero if the cluster's containers survive every attempt"),
) -> None:
    """Delete the kind cluster."""
    cluster_cfg = apply_overrides(ClusterConfig(), cluster_name=cluster_name, delete_retries=retries)
    with docker_client() as client:
        deleted = delete_cluster(cluster_cfg, client)
    if strict and not deleted:
        raise typer.Exit(code=1)


@app.command("registry")
def registry(
    name: str | None = typer.Option(None, "--name", help="Registry container name"),
) -> None:
    """Remove the local offline registry container."""
    offline_cfg = apply_overrides(OfflinePackageConfig(), registry_name=name)
    with docker_client() as client:
        cleanup_registry(client, offline_cfg.registry_name)
