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

"""Configuration classes and config models."""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, TypeVar

import typer
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from rich.panel import Panel

from copilot_e2e import console, logger
from copilot_e2e.constants import (
    BUNDLE_ARCHIVE_SUFFIX,
    BUNDLE_PREFIX,
    CLUSTER_SETTLE_SECONDS,
    CONTROL_PLANE_SUFFIX,
    DEFAULT_BUNDLE_PATH,
    DEFAULT_CHART_VERSION,
    DEFAULT_CLUSTER_CREATE_MAX_RETRIES,
    DEFAULT_CLUSTER_DELETE_MAX_RETRIES,
    DEFAULT_CLUSTER_NAME,
    DEFAULT_KUBECONFIG,
    DEFAULT_NODE_IMAGE,
    DEFAULT_REGISTRY_ENDPOINT,
    DEFAULT_REGISTRY_HOST_PORT,
    DEFAULT_REGISTRY_IMAGE,
    DEFAULT_REGISTRY_NAME,
    DEFAULT_TARGET_REPOSITORY,
    KIND_CONTEXT_PREFIX,
    LOAD_IMAGE_CONFIG_FILE,
    REL_OFFLINE_ARTIFACTS,
    RESOURCE_POLL_INTERVAL_SECONDS,
    RESOURCE_WAIT_TIMEOUT_SECONDS,
    RETRY_FAILURE_DELAY_SECONDS,
    RETRY_MAX_ATTEMPTS,
    RETRY_REQUIRED_SUCCESSES,
    RETRY_SUCCESS_DELAY_SECONDS,
    RUNTIME_CONFIG_FILE,
    SYNC_CONFIG_FILE,
)

SettingsT = TypeVar("SettingsT", bound=BaseSettings)


# ============================================================================
# Configuration classes
# ============================================================================

class ClusterConfig(BaseSettings):
    """kind cluster configuration, auto-loaded from E2E_* env vars.

    Attributes:
        cluster_name: Name of the kind cluster, unique per test run.
        kubeconfig: Kubeconfig file owned by this cluster. Removed and
            regenerated on every creation attempt.
        node_image: kind node image used to boot the cluster.
        cluster_config: Optional kind cluster config file.
        context_name: Alias for the kubeconfig context, defaults to the cluster name.
        max_retries: Maximum whole-cluster creation attempts.
        delete_retries: Maximum ``kind delete cluster`` attempts.
        settle_seconds: Pause after teardown before creating again.
        host_os: Host OS override (``linux`` or ``darwin``), or None to detect.
        host_arch: Host architecture override, or None to detect.
    """

    model_config = SettingsConfigDict(env_prefix="E2E_", extra="ignore")

    cluster_name: str = Field(default=DEFAULT_CLUSTER_NAME, pattern=r"^[a-z0-9]([-a-z0-9]*[a-z0-9])?$")
    kubeconfig: Path = Path(DEFAULT_KUBECONFIG)
    node_image: str = DEFAULT_NODE_IMAGE
    cluster_config: Path | None = None
    context_name: str | None = None
    max_retries: int = Field(default=DEFAULT_CLUSTER_CREATE_MAX_RETRIES, ge=1, le=50)
    delete_retries: int = Field(default=DEFAULT_CLUSTER_DELETE_MAX_RETRIES, ge=1, le=50)
    settle_seconds: int = Field(default=CLUSTER_SETTLE_SECONDS, ge=0)
    host_os: str | None = None
    host_arch: str | None = None

    @property
    def context(self) -> str:
        """Context alias the kubeconfig ends up with."""
        return self.context_name or self.cluster_name

    @property
    def kind_context(self) -> str:
        """Context and cluster entry name kind writes into the kubeconfig."""
        return f"{KIND_CONTEXT_PREFIX}{self.cluster_name}"

    @property
    def control_plane_container(self) -> str:
        """Name of the kind control-plane node container."""
        return f"{self.cluster_name}{CONTROL_PLANE_SUFFIX}"


class OfflinePackageConfig(BaseSettings):
    """Offline package pipeline configuration, auto-loaded from E2E_* env vars.

    Attributes:
        project_path: runtime-copilot checkout holding the offline artifacts.
        helm_repo: Source chart repository URL.
        registry_password: Credential for the source repository.
        chart_version: Chart version to synchronize.
        registry_endpoint: ``host:port`` of the local registry as seen by the node.
        bundle_path: Directory charts-syncer writes the bundle into.
        registry_image: Image used for the local registry container.
        registry_name: Fixed name of the local registry container.
        registry_host_port: Host port the registry is published on.
        target_repository: Repository path images are loaded under.
        control_plane_pattern: Regex matching the control-plane container,
            or None to derive it from the cluster name.
    """

    model_config = SettingsConfigDict(env_prefix="E2E_", extra="ignore")

    project_path: Path = Field(default_factory=Path.cwd)
    helm_repo: str = ""
    registry_password: str = ""
    chart_version: str = Field(default=DEFAULT_CHART_VERSION, pattern=r"^v?\d+\.\d+\.\d+([-+][\w.]+)?$")
    registry_endpoint: str = Field(default=DEFAULT_REGISTRY_ENDPOINT, pattern=r"^[\w.-]+:\d{1,5}$")
    bundle_path: Path = Path(DEFAULT_BUNDLE_PATH)
    registry_image: str = DEFAULT_REGISTRY_IMAGE
    registry_name: str = DEFAULT_REGISTRY_NAME
    registry_host_port: int = Field(default=DEFAULT_REGISTRY_HOST_PORT, ge=1, le=65535)
    target_repository: str = DEFAULT_TARGET_REPOSITORY
    control_plane_pattern: str | None = None

    @property
    def artifacts_dir(self) -> Path:
        return self.project_path / REL_OFFLINE_ARTIFACTS

    @property
    def sync_config_path(self) -> Path:
        return self.artifacts_dir / SYNC_CONFIG_FILE

    @property
    def load_image_config_path(self) -> Path:
        return self.artifacts_dir / LOAD_IMAGE_CONFIG_FILE

    @property
    def runtime_config_template(self) -> Path:
        return self.artifacts_dir / RUNTIME_CONFIG_FILE

    @property
    def bundle_archive(self) -> Path:
        """Archive charts-syncer produces, named from the chart version."""
        return self.bundle_path / f"{BUNDLE_PREFIX}_{self.chart_version}{BUNDLE_ARCHIVE_SUFFIX}"

    @property
    def bundle_dir(self) -> Path:
        """Directory the bundle archive unpacks into."""
        return self.bundle_path / f"{BUNDLE_PREFIX}_{self.chart_version}.bundle"

    def control_plane_regex(self, cluster_name: str) -> str:
        """Regex used to locate the control-plane container of *cluster_name*."""
        if self.control_plane_pattern:
            return self.control_plane_pattern
        return f"^{re.escape(cluster_name)}{CONTROL_PLANE_SUFFIX}$"


# ============================================================================
# Polling and retry models
# ============================================================================

@dataclass(frozen=True)
class RetryPolicy:
    """Attempt budget and success-streak requirement for a flaky command.

    The attempt counter and the success streak are independent: a failure
    resets the streak but still consumes an attempt.

    Attributes:
        max_attempts: Total attempts allowed.
        required_successes: Consecutive successes needed to declare success.
        failure_delay: Seconds to wait after a failed attempt.
        success_delay: Seconds to wait after a successful attempt.
    """

    max_attempts: int = RETRY_MAX_ATTEMPTS
    required_successes: int = RETRY_REQUIRED_SUCCESSES
    failure_delay: float = RETRY_FAILURE_DELAY_SECONDS
    success_delay: float = RETRY_SUCCESS_DELAY_SECONDS

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.required_successes < 1:
            raise ValueError("required_successes must be at least 1")


@dataclass(frozen=True)
class ResourceQuery:
    """Label-selected lookup of namespaced cluster resources.

    Attributes:
        kind: Resource kind as accepted by ``kubectl get`` (e.g. ``pods``).
        selector: Label selector in ``key=value`` form.
        namespace: Namespace to search.
        timeout: Seconds to keep polling before giving up.
        interval: Seconds between polls.
    """

    kind: str
    selector: str
    namespace: str
    timeout: int = RESOURCE_WAIT_TIMEOUT_SECONDS
    interval: int = RESOURCE_POLL_INTERVAL_SECONDS

    def __post_init__(self) -> None:
        key, sep, _ = self.selector.partition("=")
        if not sep or not key:
            raise ValueError(f"Label selector must be key=value, got '{self.selector}'")
        if self.interval <= 0:
            raise ValueError("interval must be positive")


# ============================================================================
# Action flags
# ============================================================================

@dataclass(frozen=True)
class ActionFlags:
    """Which stages of the e2e setup run.

    Attributes:
        create_cluster: Whether to (re)create the kind cluster.
        check_ready: Whether to run the readiness probe.
        offline_package: Whether to run the offline package pipeline.
        wait_controller: Whether to wait for the controller pods.
        teardown: Whether to delete the cluster at the end of the run.
    """

    create_cluster: bool = True
    check_ready: bool = True
    offline_package: bool = False
    wait_controller: bool = False
    teardown: bool = False


# ============================================================================
# Display
# ============================================================================

def display_config(
    flags: ActionFlags,
    cluster_cfg: ClusterConfig,
    offline_cfg: OfflinePackageConfig | None = None,
) -> None:
    """Print only config relevant to requested actions.

    Args:
        flags: Resolved action flags controlling what to display.
        cluster_cfg: kind cluster configuration.
        offline_cfg: Offline package configuration, if the pipeline runs.
    """
    console.print(Panel.fit("Configuration", style="bold blue"))

    fields = ["cluster_name", "kubeconfig", "context"]
    if flags.create_cluster:
        fields += ["node_image", "cluster_config", "max_retries"]
    sections = [("kind cluster", cluster_cfg, fields)]
    if flags.offline_package and offline_cfg is not None:
        sections.append(("Offline package", offline_cfg,
                         ["project_path", "helm_repo", "chart_version", "registry_endpoint", "bundle_path"]))

    for title, cfg, names in sections:
        console.print(f"[yellow]{title}:[/yellow]")
        for name in names:
            value = getattr(cfg, name)
            console.print(f"  {name:<18}: {'(unset)' if value in (None, '') else value}")


# ============================================================================
# Validation
# ============================================================================

def validate_flags(flags: ActionFlags, offline_cfg: OfflinePackageConfig | None = None) -> None:
    """Validate flag combinations before anything touches the host.

    Args:
        flags: Resolved action flags.
        offline_cfg: Offline package configuration, if the pipeline runs.

    Raises:
        typer.BadParameter: If the offline pipeline lacks its source repository.
    """
    if flags.offline_package:
        if offline_cfg is None or not offline_cfg.helm_repo:
            raise typer.BadParameter(
                "--helm-repo (or E2E_HELM_REPO) is required for the offline package pipeline"
            )
        if not offline_cfg.artifacts_dir.is_dir():
            raise typer.BadParameter(f"Offline artifacts not found under {offline_cfg.artifacts_dir}")

    if flags.teardown and not flags.create_cluster:
        logger.warning("--teardown is set without cluster creation; an existing cluster will be deleted")

    if flags.create_cluster and not flags.check_ready and (flags.offline_package or flags.wait_controller):
        logger.warning("Readiness check skipped; later stages may run before the new cluster is reachable")


def apply_overrides(cfg: SettingsT, **overrides: Any) -> SettingsT:
    """Return a copy of a settings model with non-None CLI overrides applied.

    Resolution priority: CLI arguments > E2E_* environment variables > defaults.
    """
    update = {key: value for key, value in overrides.items() if value is not None}
    if not update:
        return cfg
    return cfg.model_copy(update=update)
