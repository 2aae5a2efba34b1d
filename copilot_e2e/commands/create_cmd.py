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

"""Create subcommands (cluster)."""

from __future__ import annotations

from pathlib import Path

import typer

from copilot_e2e.cluster import create_cluster
from copilot_e2e.config import ClusterConfig, apply_overrides
from copilot_e2e.engine import docker_client
from copilot_e2e.host import check_install_environment
from copilot_e2e.readiness import check_cluster_ready
from copilot_e2e.utils import require_command

app = typer.Typer(help="Create infrastructure resources.")


@app.command("cluster")
def cluster(
    cluster_name: str | None = typer.Option(None, "--cluster-name", help="kind cluster name"),
    kubeconfig: Path | None = typer.Option(None, "--kubeconfig", help="Kubeconfig file to (re)generate"),
    image: str | None = typer.Option(None, "--image", help="kind node image"),
    config: Path | None = typer.Option(None, "--config", help="kind cluster config file"),
    retries: int | None = typer.Option(None, "--retries", help="Maximum creation attempts"),
    wait: bool = typer.Option(True, "--wait/--no-wait", help="Run the readiness probe after creation"),
) -> None:
    """Create a kind cluster and, by default, wait for it to be ready."""
    cluster_cfg = apply_overrides(
        ClusterConfig(),
        cluster_name=cluster_name,
        kubeconfig=kubeconfig,
        node_image=image,
        cluster_config=config,
        max_retries=retries,
    )
    _, host_os = check_install_environment(cluster_cfg.host_arch, cluster_cfg.host_os)
    require_command("kind", "kubectl")

    with docker_client() as client:
        create_cluster(cluster_cfg, client)
        if wait:
            check_cluster_ready(cluster_cfg, client, host_os=host_os)
