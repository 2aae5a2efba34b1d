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

"""Offline package pipeline: chart sync, local registry, containerd config, image load, unpack."""

from __future__ import annotations

import functools
import tarfile
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

import docker
from rich.panel import Panel

from copilot_e2e import console, logger
from copilot_e2e.config import OfflinePackageConfig
from copilot_e2e.constants import (
    LOAD_FIELD_SOURCE_BUNDLES,
    LOAD_FIELD_TARGET_REGISTRY,
    LOAD_FIELD_TARGET_REPOSITORY,
    RUNTIME_CONFIG_DIR,
    RUNTIME_CONFIG_FILE,
    RUNTIME_CONFIG_PLACEHOLDER,
    RUNTIME_RELOAD_COMMAND,
    SYNC_FIELD_CHART_VERSION,
    SYNC_FIELD_REPO_PASSWORD,
    SYNC_FIELD_REPO_URL,
    SYNC_FIELD_TARGET_BUNDLES,
)
from copilot_e2e.engine import (
    exec_in,
    find_container_by_pattern,
    put_file,
    remove_containers,
    run_registry,
)
from copilot_e2e.errors import ExternalToolError, ResourceNotFoundError
from copilot_e2e.utils import run_tool
from copilot_e2e.yamledit import set_fields


@dataclass
class OfflineContext:
    """Values passed from one pipeline step to the next.

    Attributes:
        cluster_name: Cluster whose control-plane node receives the runtime config.
        sync_config: Rendered chart sync document.
        registry_container_id: Id of the local registry container.
        control_plane_container_id: Id of the node the runtime config went to.
        load_config: Rendered image load document.
        bundle_dir: Directory the bundle was unpacked into.
    """

    cluster_name: str
    sync_config: Path | None = None
    registry_container_id: str | None = None
    control_plane_container_id: str | None = None
    load_config: Path | None = None
    bundle_dir: Path | None = None


@dataclass(frozen=True)
class PipelineStep:
    """A named pipeline stage taking and returning the shared context."""

    name: str
    run: Callable[[OfflineContext], OfflineContext]


def run_pipeline(steps: list[PipelineStep], context: OfflineContext) -> OfflineContext:
    """Run steps in order; the first exception aborts the rest and propagates."""
    for index, step in enumerate(steps, start=1):
        console.print(Panel.fit(f"Step {index}/{len(steps)}: {step.name}", style="bold blue"))
        logger.info("offline pipeline: running %s", step.name)
        context = step.run(context)
    return context


# ============================================================================
# Steps
# ============================================================================

def sync_chart(offline_cfg: OfflinePackageConfig, context: OfflineContext) -> OfflineContext:
    """Template the sync document and pull the chart bundle with charts-syncer."""
    document = offline_cfg.sync_config_path
    set_fields(document, {
        SYNC_FIELD_REPO_URL: offline_cfg.helm_repo,
        SYNC_FIELD_REPO_PASSWORD: offline_cfg.registry_password,
        SYNC_FIELD_TARGET_BUNDLES: str(offline_cfg.bundle_path),
        SYNC_FIELD_CHART_VERSION: offline_cfg.chart_version,
    })
    offline_cfg.bundle_path.mkdir(parents=True, exist_ok=True)
    run_tool("charts-syncer", "sync", "--config", str(document))
    console.print(f"[green]\u2705 Chart {offline_cfg.chart_version} synced to {offline_cfg.bundle_path}[/green]")
    context.sync_config = document
    return context


def start_registry(
    offline_cfg: OfflinePackageConfig,
    client: docker.DockerClient,
    context: OfflineContext,
) -> OfflineContext:
    """Start the fixed-name local registry container."""
    container = run_registry(
        client, offline_cfg.registry_image, offline_cfg.registry_name, offline_cfg.registry_host_port,
    )
    console.print(
        f"[green]\u2705 Registry {offline_cfg.registry_name} listening on port {offline_cfg.registry_host_port}[/green]"
    )
    context.registry_container_id = container.id
    return context


def render_runtime_config(offline_cfg: OfflinePackageConfig) -> str:
    """Return the containerd config template with the registry endpoint filled in."""
    try:
        template = offline_cfg.runtime_config_template.read_text()
    except OSError as e:
        command = ["sed", f"s/{RUNTIME_CONFIG_PLACEHOLDER}/{offline_cfg.registry_endpoint}/g",
                   str(offline_cfg.runtime_config_template)]
        raise ExternalToolError(command, None, stderr=str(e)) from e
    if RUNTIME_CONFIG_PLACEHOLDER not in template:
        logger.warning("%s has no '%s' placeholder", offline_cfg.runtime_config_template, RUNTIME_CONFIG_PLACEHOLDER)
    return template.replace(RUNTIME_CONFIG_PLACEHOLDER, offline_cfg.registry_endpoint)


def inject_runtime_config(
    offline_cfg: OfflinePackageConfig,
    client: docker.DockerClient,
    context: OfflineContext,
) -> OfflineContext:
    """Copy the rendered containerd config into the node and restart containerd."""
    pattern = offline_cfg.control_plane_regex(context.cluster_name)
    container = find_container_by_pattern(client, pattern)
    if container is None:
        raise ResourceNotFoundError(
            "container", pattern, message=f"No running control-plane container matches '{pattern}'",
        )

    rendered = render_runtime_config(offline_cfg)
    put_file(container, RUNTIME_CONFIG_DIR, RUNTIME_CONFIG_FILE, rendered.encode())
    exec_in(container, RUNTIME_RELOAD_COMMAND)
    console.print(f"[green]\u2705 containerd on {container.name} now uses {offline_cfg.registry_endpoint}[/green]")
    context.control_plane_container_id = container.id
    return context


def load_images(offline_cfg: OfflinePackageConfig, context: OfflineContext) -> OfflineContext:
    """Template the load document and push the bundle's images into the local registry."""
    document = offline_cfg.load_image_config_path
    set_fields(document, {
        LOAD_FIELD_SOURCE_BUNDLES: str(offline_cfg.bundle_path),
        LOAD_FIELD_TARGET_REGISTRY: offline_cfg.registry_endpoint,
        LOAD_FIELD_TARGET_REPOSITORY: offline_cfg.target_repository,
    })
    run_tool("charts-syncer", "sync", "--config", str(document), cwd=offline_cfg.project_path)
    console.print(f"[green]\u2705 Images loaded into {offline_cfg.registry_endpoint}[/green]")
    context.load_config = document
    return context


def unpack_bundle(offline_cfg: OfflinePackageConfig, context: OfflineContext) -> OfflineContext:
    """Extract the bundle archive into the bundle directory."""
    archive = offline_cfg.bundle_archive
    command = ["tar", "-xvf", str(archive)]
    if not archive.is_file():
        raise ExternalToolError(command, None, stderr=f"{archive} does not exist")
    try:
        with tarfile.open(archive) as tar:
            tar.extractall(offline_cfg.bundle_path, filter="data")
    except tarfile.TarError as e:
        raise ExternalToolError(command, None, stderr=str(e)) from e
    if not offline_cfg.bundle_dir.is_dir():
        logger.warning("%s did not contain %s", archive.name, offline_cfg.bundle_dir.name)
    console.print(f"[green]\u2705 Bundle unpacked to {offline_cfg.bundle_dir}[/green]")
    context.bundle_dir = offline_cfg.bundle_dir
    return context


# ============================================================================
# Public API
# ============================================================================

def offline_steps(offline_cfg: OfflinePackageConfig, client: docker.DockerClient) -> list[PipelineStep]:
    """Build the fixed five-step pipeline bound to a configuration."""
    return [
        PipelineStep("Sync chart bundle", functools.partial(sync_chart, offline_cfg)),
        PipelineStep("Start local registry", functools.partial(start_registry, offline_cfg, client)),
        PipelineStep("Inject containerd registry config", functools.partial(inject_runtime_config, offline_cfg, client)),
        PipelineStep("Load images into registry", functools.partial(load_images, offline_cfg)),
        PipelineStep("Unpack bundle", functools.partial(unpack_bundle, offline_cfg)),
    ]


def run_offline_package(
    offline_cfg: OfflinePackageConfig,
    client: docker.DockerClient,
    cluster_name: str,
) -> OfflineContext:
    """Run the offline package pipeline against a live cluster.

    No step is retried and errors are not caught: the first failure ends
    the run. The registry name is fixed, so a previous run's registry must
    be removed first (see :func:`cleanup_registry`).

    Args:
        offline_cfg: Pipeline configuration.
        client: Docker client.
        cluster_name: Name of the running kind cluster.

    Returns:
        The context filled in by every step.
    """
    return run_pipeline(offline_steps(offline_cfg, client), OfflineContext(cluster_name=cluster_name))


def cleanup_registry(client: docker.DockerClient, registry_name: str) -> bool:
    """Force-remove the local registry container if it exists.

    Returns:
        True if a container was removed.
    """
    removed = remove_containers(client, registry_name)
    if removed:
        console.print(f"[green]\u2705 Removed registry container {registry_name}[/green]")
    else:
        console.print(f"[yellow]   No registry container {registry_name} found[/yellow]")
    return bool(removed)
