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

"""Supported host platforms and their API server address strategies."""

from __future__ import annotations

import platform
from collections.abc import Callable
from enum import Enum

import docker

from copilot_e2e import engine
from copilot_e2e.constants import API_SERVER_PORT, API_SERVER_PORT_KEY
from copilot_e2e.errors import UnsupportedPlatformError


class HostOS(str, Enum):
    """Host operating systems the harness can run on."""

    LINUX = "linux"
    DARWIN = "darwin"

    @classmethod
    def parse(cls, name: str) -> HostOS:
        """Map an OS name onto a supported member.

        Raises:
            UnsupportedPlatformError: If *name* is not a supported OS.
        """
        try:
            return cls(name.strip().lower())
        except ValueError as err:
            raise UnsupportedPlatformError(
                f"OS {name} is not supported for getting the container address"
            ) from err

    def api_server_address(self, client: docker.DockerClient, container_name: str) -> str:
        """Resolve the ``ip:port`` the host can reach the API server on."""
        return _ADDRESS_RESOLVERS[self](client, container_name)


class HostArch(str, Enum):
    """Host CPU architectures the harness can run on."""

    AMD64 = "amd64"
    ARM64 = "arm64"

    @classmethod
    def parse(cls, name: str) -> HostArch:
        """Map an architecture name (including ``uname -m`` spellings) onto a member.

        Raises:
            UnsupportedPlatformError: If *name* is not a supported architecture.
        """
        normalized = name.strip().lower()
        try:
            return cls(_ARCH_ALIASES.get(normalized, normalized))
        except ValueError as err:
            raise UnsupportedPlatformError(f"Architecture {name} is not supported") from err


_ARCH_ALIASES = {"x86_64": "amd64", "aarch64": "arm64"}


def _native_address(client: docker.DockerClient, container_name: str) -> str:
    return f"{engine.native_ip_address(client, container_name)}:{API_SERVER_PORT}"


def _published_address(client: docker.DockerClient, container_name: str) -> str:
    # Container networks are not routable from a Docker Desktop host.
    return engine.published_host_port(client, container_name, API_SERVER_PORT_KEY)


_ADDRESS_RESOLVERS: dict[HostOS, Callable[[docker.DockerClient, str], str]] = {
    HostOS.LINUX: _native_address,
    HostOS.DARWIN: _published_address,
}


def detect_host_os(override: str | None = None) -> HostOS:
    """Return the host OS, honouring an explicit override."""
    return HostOS.parse(override or platform.system())


def detect_host_arch(override: str | None = None) -> HostArch:
    """Return the host architecture, honouring an explicit override."""
    return HostArch.parse(override or platform.machine())


def check_install_environment(arch: str | None = None, os_name: str | None = None) -> tuple[HostArch, HostOS]:
    """Fail fast unless the host is one of the supported OS/arch pairs.

    Args:
        arch: Architecture override, or None to detect.
        os_name: OS override, or None to detect.

    Returns:
        Tuple of (HostArch, HostOS).

    Raises:
        UnsupportedPlatformError: If either value is outside the supported set.
    """
    raw_arch = arch or platform.machine()
    raw_os = os_name or platform.system()
    try:
        return HostArch.parse(raw_arch), HostOS.parse(raw_os)
    except UnsupportedPlatformError as err:
        raise UnsupportedPlatformError(
            f"Sorry, runtime-copilot e2e does not support {raw_arch}/{raw_os} at the moment"
        ) from err
