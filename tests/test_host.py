"""Tests for host platform detection."""

import pytest

from copilot_e2e.errors import ExternalToolError, UnsupportedPlatformError
from copilot_e2e.host import (
    HostArch,
    HostOS,
    check_install_environment,
    detect_host_arch,
    detect_host_os,
)
from tests.conftest import make_container


@pytest.mark.parametrize("raw, expected", [
    ("x86_64", HostArch.AMD64),
    ("amd64", HostArch.AMD64),
    ("aarch64", HostArch.ARM64),
    ("arm64", HostArch.ARM64),
])
def test_arch_aliases(raw, expected):
    assert HostArch.parse(raw) is expected


def test_os_names_are_case_insensitive():
    assert HostOS.parse("Linux") is HostOS.LINUX
    assert HostOS.parse("Darwin") is HostOS.DARWIN


def test_unsupported_os():
    with pytest.raises(UnsupportedPlatformError):
        HostOS.parse("Windows")


def test_detect_uses_platform(monkeypatch):
    monkeypatch.setattr("platform.system", lambda: "Linux")
    monkeypatch.setattr("platform.machine", lambda: "aarch64")
    assert detect_host_os() is HostOS.LINUX
    assert detect_host_arch() is HostArch.ARM64


def test_override_wins(monkeypatch):
    monkeypatch.setattr("platform.system", lambda: "Linux")
    assert detect_host_os("darwin") is HostOS.DARWIN


class TestCheckInstallEnvironment:
    def test_supported_pair(self):
        assert check_install_environment("x86_64", "Linux") == (HostArch.AMD64, HostOS.LINUX)

    def test_unsupported_arch(self):
        with pytest.raises(UnsupportedPlatformError) as exc:
            check_install_environment("ppc64le", "Linux")
        assert str(exc.value) == "Sorry, runtime-copilot e2e does not support ppc64le/Linux at the moment"

    def test_unsupported_os(self):
        with pytest.raises(UnsupportedPlatformError):
            check_install_environment("arm64", "FreeBSD")


class TestApiServerAddress:
    def test_linux(self, engine):
        engine.containers.add(make_container("host-control-plane", ip="172.18.0.3"))
        assert HostOS.LINUX.api_server_address(engine, "host-control-plane") == "172.18.0.3:6443"

    def test_darwin(self, engine):
        engine.containers.add(make_container(
            "host-control-plane", ports={"6443/tcp": [{"HostIp": "0.0.0.0", "HostPort": "6443"}]},
        ))
        assert HostOS.DARWIN.api_server_address(engine, "host-control-plane") == "0.0.0.0:6443"

    def test_missing_container(self, engine):
        with pytest.raises(ExternalToolError):
            HostOS.LINUX.api_server_address(engine, "host-control-plane")
