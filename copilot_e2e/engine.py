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

"""Container engine queries and mutations through the docker SDK."""

from __future__ import annotations

import io
import re
import tarfile
import time
from collections.abc import Iterator
from contextlib import contextmanager

import docker
from docker.models.containers import Container

from copilot_e2e.constants import REGISTRY_CONTAINER_PORT
from copilot_e2e.errors import ExternalToolError


@contextmanager
def docker_client() -> Iterator[docker.DockerClient]:
    """Open a docker client from the environment and close it afterwards.

    Raises:
        ExternalToolError: If the docker daemon cannot be reached.
    """
    try:
        client = docker.from_env()
    except docker.errors.DockerException as e:
        raise ExternalToolError(["docker", "info"], None, stderr=str(e)) from e
    try:
        yield client
    finally:
        client.close()


# ============================================================================
# Queries
# ============================================================================

def find_container_by_pattern(client: docker.DockerClient, pattern: str) -> Container | None:
    """Return the first running container whose name matches the regex *pattern*."""
    regex = re.compile(pattern)
    for container in client.containers.list():
        if regex.search(container.name):
            return container
    return None


def container_status(client: docker.DockerClient, name: str) -> str | None:
    """Return the engine-reported state (e.g. ``running``), or None if missing."""
    try:
        return client.containers.get(name).status
    except docker.errors.NotFound:
        return None


def native_ip_address(client: docker.DockerClient, name: str) -> str:
    """Return the container's address on its docker network.

    Raises:
        ExternalToolError: If the container is missing or has no address.
    """
    try:
        container = client.containers.get(name)
    except docker.errors.NotFound as e:
        raise ExternalToolError(["docker", "inspect", name], None, stderr=str(e)) from e
    networks = container.attrs.get("NetworkSettings", {}).get("Networks") or {}
    for network in networks.values():
        if network.get("IPAddress"):
            return network["IPAddress"]
    raise ExternalToolError(["docker", "inspect", name], None, stderr="container has no network address")


def published_host_port(client: docker.DockerClient, name: str, port_key: str) -> str:
    """Return ``host_ip:host_port`` of the first host binding of *port_key*.

    Args:
        client: Docker client.
        name: Container name.
        port_key: Container port in docker notation (e.g. ``6443/tcp``).

    Raises:
        ExternalToolError: If the container is missing or the port is not published.
    """
    try:
        container = client.containers.get(name)
    except docker.errors.NotFound as e:
        raise ExternalToolError(["docker", "inspect", name], None, stderr=str(e)) from e
    bindings = (container.attrs.get("NetworkSettings", {}).get("Ports") or {}).get(port_key) or []
    if not bindings:
        raise ExternalToolError(["docker", "inspect", name], None, stderr=f"port {port_key} is not published")
    return f"{bindings[0]['HostIp']}:{bindings[0]['HostPort']}"


# ============================================================================
# Mutations
# ============================================================================

def put_file(container: Container, dest_dir: str, filename: str, content: bytes) -> None:
    """Copy *content* into the container as ``dest_dir/filename``.

    Raises:
        ExternalToolError: If the engine rejects the archive.
    """
    buf = io.BytesIO()
    with tarfile.open(fileobj=buf, mode="w") as tar:
        info = tarfile.TarInfo(name=filename)
        info.size = len(content)
        info.mode = 0o644
        info.mtime = int(time.time())
        tar.addfile(info, io.BytesIO(content))
    command = ["docker", "cp", filename, f"{container.name}:{dest_dir}"]
    try:
        accepted = container.put_archive(dest_dir, buf.getvalue())
    except docker.errors.APIError as e:
        raise ExternalToolError(command, None, stderr=str(e)) from e
    if not accepted:
        raise ExternalToolError(command, None, stderr="archive was rejected")


def exec_in(container: Container, cmd: list[str]) -> str:
    """Run *cmd* inside the container and return its output.

    Raises:
        ExternalToolError: If the command exits non-zero.
    """
    exit_code, output = container.exec_run(cmd)
    text = output.decode(errors="replace") if output else ""
    if exit_code != 0:
        raise ExternalToolError(["docker", "exec", container.name, *cmd], exit_code, stdout=text)
    return text


def run_registry(client: docker.DockerClient, image: str, name: str, host_port: int) -> Container:
    """Start a detached registry container published on *host_port*.

    The name is fixed, so an existing container with the same name makes
    this fail.

    Raises:
        ExternalToolError: If the engine refuses to start the container.
    """
    command = [
        "docker", "run", "-d", "-p", f"{host_port}:5000",
        "--restart=always", "--name", name, image,
    ]
    try:
        return client.containers.run(
            image,
            detach=True,
            name=name,
            ports={REGISTRY_CONTAINER_PORT: host_port},
            restart_policy={"Name": "always"},
        )
    except docker.errors.APIError as e:
        raise ExternalToolError(command, None, stderr=str(e)) from e


def remove_containers(client: docker.DockerClient, name: str) -> int:
    """Force-remove every container whose name contains *name*.

    Returns:
        Number of containers removed.
    """
    removed = 0
    for container in client.containers.list(all=True, filters={"name": name}):
        container.remove(force=True)
        removed += 1
    return removed
