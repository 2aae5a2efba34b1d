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

"""Constants, dependency loading, and dep_value helper."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml


def load_dependencies() -> dict:
    """Load pinned images and versions from dependencies.yaml.

    Returns:
        Parsed YAML content as a nested dictionary.
    """
    deps_file = Path(__file__).resolve().parent / "dependencies.yaml"
    with open(deps_file) as f:
        return yaml.safe_load(f)


DEPENDENCIES = load_dependencies()


def dep_value(*keys: str, default: Any = None) -> Any:
    """Safely traverse the DEPENDENCIES dict by key path.

    Args:
        *keys: Sequence of dictionary keys to traverse.
        default: Value to return if any key is missing.

    Returns:
        The value at the nested key path, or *default* if not found.
    """
    node = DEPENDENCIES
    for key in keys:
        if not isinstance(node, dict):
            return default
        node = node.get(key)
        if node is None:
            return default
    return node


# -- Polling --
CONDITION_POLL_INTERVAL_SECONDS = 1
READINESS_TIMEOUT_SECONDS = 300
FILE_POLL_INTERVAL_SECONDS = 1

RESOURCE_WAIT_TIMEOUT_SECONDS = 300
RESOURCE_POLL_INTERVAL_SECONDS = 5

# -- Command retry --
RETRY_MAX_ATTEMPTS = 20
RETRY_REQUIRED_SUCCESSES = 3
RETRY_FAILURE_DELAY_SECONDS = 1
RETRY_SUCCESS_DELAY_SECONDS = 5
COMMAND_TIMEOUT_SECONDS = 60

# -- Cluster lifecycle --
DEFAULT_CLUSTER_NAME = "host"
DEFAULT_KUBECONFIG = "/tmp/host.config"
DEFAULT_NODE_IMAGE = dep_value("kind", "node_image", default="kindest/node:v1.27.3")
DEFAULT_CLUSTER_CREATE_MAX_RETRIES = 20
DEFAULT_CLUSTER_DELETE_MAX_RETRIES = 10
CLUSTER_SETTLE_SECONDS = 10
KIND_CONTEXT_PREFIX = "kind-"
CONTROL_PLANE_SUFFIX = "-control-plane"
CONTAINER_STATUS_RUNNING = "running"

# -- API server --
API_SERVER_PORT = 6443
API_SERVER_PORT_KEY = f"{API_SERVER_PORT}/tcp"
HEALTHZ_PATH = "/healthz"
NS_KUBE_SYSTEM = "kube-system"

# -- Offline package --
REL_OFFLINE_ARTIFACTS = "test/artifacts/offline-e2e"
SYNC_CONFIG_FILE = "sync_offline_package.yaml"
LOAD_IMAGE_CONFIG_FILE = "load-image.yaml"
RUNTIME_CONFIG_FILE = "config.toml"
RUNTIME_CONFIG_PLACEHOLDER = "xx.x.xxx.xx:xxxx"
RUNTIME_CONFIG_DIR = "/etc/containerd/"
RUNTIME_RELOAD_COMMAND = ["bash", "-c", "systemctl restart containerd"]
BUNDLE_PREFIX = "runtime-copilot"
BUNDLE_ARCHIVE_SUFFIX = ".bundle.tar"

DEFAULT_CHART_VERSION = dep_value("runtime_copilot", "chart_version", default="0.0.5")
DEFAULT_BUNDLE_PATH = "/tmp/bundle"
DEFAULT_REGISTRY_ENDPOINT = "127.0.0.1:5011"
DEFAULT_REGISTRY_IMAGE = dep_value("registry", "image", default="registry:2")
DEFAULT_REGISTRY_NAME = "registry-runtime-copilot"
DEFAULT_REGISTRY_HOST_PORT = 5011
REGISTRY_CONTAINER_PORT = "5000/tcp"
DEFAULT_TARGET_REPOSITORY = "offline.test.runtime-copilot/runtime-copilot"

# -- Sync document field paths --
SYNC_FIELD_REPO_URL = ".source.repo.url"
SYNC_FIELD_REPO_PASSWORD = ".source.repo.auth.password"
SYNC_FIELD_TARGET_BUNDLES = ".target.intermediateBundlesPath"
SYNC_FIELD_CHART_VERSION = ".charts[0].versions[0]"
LOAD_FIELD_SOURCE_BUNDLES = ".source.intermediateBundlesPath"
LOAD_FIELD_TARGET_REGISTRY = ".target.containerRegistry"
LOAD_FIELD_TARGET_REPOSITORY = ".target.containerRepository"

# -- Controller under test --
DEFAULT_CONTROLLER_NAMESPACE = dep_value(
    "runtime_copilot", "namespace", default="runtime-copilot-system")
DEFAULT_CONTROLLER_LABEL = dep_value(
    "runtime_copilot", "controller_label", default="control-plane=controller-manager")
