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

"""Offline package subcommands (sync)."""

from __future__ import annotations

from pathlib import Path

import typer

from copilot_e2e.config import (
    ActionFlags,
    ClusterConfig,
    OfflinePackageConfig,
    apply_overrides,
    display_config,
    validate_flags,
)
from copilot_e2e.engine import docker_client
from copilot_e2e.offline import run_offline_package
from copilot_e2e.utils import require_command

app = typer.Typer(help="Offline package workflow.")


def resolve_offline_config(
    project_path: Path | None = None,
    helm_repo: str | None = None,
    registry_password: str | None = None,
    chart_version: str | None = None,
    registry_endpoint: str | None = None,
    bundle_path: Path | None = None,
) -> OfflinePackageConfig:
    """Merge CLI overrides onto the environment-loaded offline configuration."""
    return apply_overrides(
        OfflinePackageConfig(),
        project_path=project_path,
        helm_repo=helm_repo,
        registry_password=registry_password,
        chart_version=chart_version,
        registry_endpoint=registry_endpoint,
        bundle_path=bundle_path,
    )


@app.command()
def sync(
    cluster_name: str | None = typer.Option(None, "--cluster-name", help="Running kind cluster name"),
    project_path: Path | None = typer.Option(None, "--project-path", help="runtime-copilot checkout"),
    helm_repo: str | None = typer.Option(None, "--helm-repo", help="Source chart repository URL"),
    registry_password: str | None = typer.Option(
        None, "--registry-password", help="Source repository credential", envvar="E2E_REGISTRY_PASSWORD"),
    chart_version: str | None = typer.Option(None, "--chart-version", help="Chart version to sync"),
    registry_endpoint: str | None = typer.Option(None, "--registry-endpoint", help="Local registry host:port"),
    bundle_path: Path | None = typer.Option(None, "--bundle-path", help="Directory for the chart bundle"),
) -> None:
    """Sync the chart bundle, start the registry, configure containerd, load images, unpack."""
    cluster_cfg = apply_overrides(ClusterConfig(), cluster_name=cluster_name)
    offline_cfg = resolve_offline_config(
        project_path, helm_repo, registry_password, chart_version, registry_endpoint, bundle_path,
    )
    flags = ActionFlags(create_cluster=False, check_ready=False, offline_package=True)
    validate_flags(flags, offline_cfg)
    display_config(flags, cluster_cfg, offline_cfg)
    require_command("charts-syncer")

    with docker_client() as client:
        run_offline_package(offline_cfg, client, cluster_cfg.cluster_name)
