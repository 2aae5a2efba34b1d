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

"""Composite setup subcommands (e2e)."""

from __future__ import annotations

from pathlib import Path

import typer

from copilot_e2e import console
from copilot_e2e.commands.offline_cmd import resolve_offline_config
from copilot_e2e.config import (
    ActionFlags,
    ClusterConfig,
    apply_overrides,
    display_config,
    validate_flags,
)
from copilot_e2e.constants import DEFAULT_CONTROLLER_LABEL, DEFAULT_CONTROLLER_NAMESPACE
from copilot_e2e.orchestrator import run_e2e_setup

app = typer.Typer(help="Composite setup workflows.")


@app.command()
def e2e(
    skip_cluster_creation: bool = typer.Option(
        False, "--skip-cluster-creation", help="Reuse an existing kind cluster"),
    skip_ready_check: bool = typer.Option(
        False, "--skip-ready-check", help="Skip the readiness probe"),
    offline: bool = typer.Option(
        False, "--offline", help="Run the offline package pipeline"),
    wait_controller: bool = typer.Option(
        False, "--wait-controller", help="Wait for the runtime-copilot controller pods"),
    teardown: bool = typer.Option(
        False, "--teardown", help="Delete the cluster when the run ends"),
    cluster_name: str | None = typer.Option(
        None, "--cluster-name", help="kind cluster name (overrides E2E_CLUSTER_NAME)"),
    kubeconfig: Path | None = typer.Option(
        None, "--kubeconfig", help="Kubeconfig file (overrides E2E_KUBECONFIG)"),
    image: str | None = typer.Option(
        None, "--image", help="kind node image (overrides E2E_NODE_IMAGE)"),
    config: Path | None = typer.Option(
        None, "--config", help="kind cluster config file"),
    project_path: Path | None = typer.Option(
        None, "--project-path", help="runtime-copilot checkout"),
    helm_repo: str | None = typer.Option(
        None, "--helm-repo", help="Source chart repository URL"),
    registry_password: str | None = typer.Option(
        None, "--registry-password", help="Source repository credential", envvar="E2E_REGISTRY_PASSWORD"),
    chart_version: str | None = typer.Option(
        None, "--chart-version", help="Chart version to sync"),
    registry_endpoint: str | None = typer.Option(
        None, "--registry-endpoint", help="Local registry host:port"),
    bundle_path: Path | None = typer.Option(
        None, "--bundle-path", help="Directory for the chart bundle"),
    controller_label: str = typer.Option(
        DEFAULT_CONTROLLER_LABEL, "--controller-label", help="Controller pod label key=value"),
    controller_namespace: str = typer.Option(
        DEFAULT_CONTROLLER_NAMESPACE, "--controller-namespace", help="Controller namespace"),
) -> None:
    """Full e2e setup: kind cluster + readiness probe, then optional stages.

    Use --skip-* flags to opt out of default steps and --offline,
    --wait-controller, --teardown to opt in to the rest.
    """
    flags = ActionFlags(
        create_cluster=not skip_cluster_creation,
        check_ready=not skip_ready_check,
        offline_package=offline,
        wait_controller=wait_controller,
        teardown=teardown,
    )
    cluster_cfg = apply_overrides(
        ClusterConfig(),
        cluster_name=cluster_name,
        kubeconfig=kubeconfig,
        node_image=image,
        cluster_config=config,
    )
    offline_cfg = None
    if offline:
        offline_cfg = resolve_offline_config(
            project_path, helm_repo, registry_password, chart_version, registry_endpoint, bundle_path,
        )

    validate_flags(flags, offline_cfg)
    display_config(flags, cluster_cfg, offline_cfg)

    address = run_e2e_setup(
        flags,
        cluster_cfg,
        offline_cfg,
        controller_label=controller_label,
        controller_namespace=controller_namespace,
    )
    if address:
        console.print(f"[green]\u2705 Cluster {cluster_cfg.context} reachable at https://{address}[/green]")
