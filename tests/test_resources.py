"""Tests for resource creation and pod readiness waits."""

import pytest

from copilot_e2e.config import ResourceQuery, RetryPolicy
from copilot_e2e.errors import ResourceNotFoundError, RetryExhaustedError
from copilot_e2e.resources import count_resources, wait_pod_ready, wait_resource_created
from tests.conftest import FAIL, CommandResult


EMPTY = CommandResult(ok=True, stdout="")
TWO_PODS = CommandResult(ok=True, stdout="etcd-0   1/1   Running\netcd-1   0/1   Pending\n\n")


class TestCountResources:
    def test_counts_non_empty_lines(self, commands):
        commands.add("get pods", TWO_PODS)
        assert count_resources(ResourceQuery("pods", "app=etcd", "kube-system")) == 2

    def test_failed_lookup_counts_as_zero(self, commands):
        commands.add("get pods", FAIL)
        assert count_resources(ResourceQuery("pods", "app=etcd", "kube-system")) == 0

    def test_builds_selector_query(self, commands):
        count_resources(ResourceQuery("deployments", "app=web", "default"))
        assert commands.calls == ["kubectl get deployments -l app=web -n default --no-headers"]


class TestWaitResourceCreated:
    def test_polls_until_present(self, commands, sleeps):
        commands.add("get pods", EMPTY, FAIL, TWO_PODS)
        count = wait_resource_created(ResourceQuery("pods", "app=etcd", "kube-system"))
        assert count == 2
        assert sleeps == [5, 5]

    def test_times_out(self, commands):
        commands.add("get pods", EMPTY)
        query = ResourceQuery("pods", "app=etcd", "kube-system", timeout=10, interval=5)
        with pytest.raises(ResourceNotFoundError) as exc:
            wait_resource_created(query)
        assert commands.count("get pods") == 3
        assert exc.value.selector == "app=etcd"
        assert exc.value.namespace == "kube-system"

    def test_rejects_malformed_selector(self):
        with pytest.raises(ValueError):
            ResourceQuery("pods", "app", "kube-system")


class TestWaitPodReady:
    def test_waits_for_creation_then_ready(self, commands):
        commands.add("get pods", TWO_PODS)
        commands.add("kubectl wait", CommandResult(ok=True))
        wait_pod_ready("app", "etcd", "kube-system", timeout=30)
        assert commands.count("get pods") == 1
        assert commands.count(r"kubectl wait --for=condition=Ready --timeout=30s pods -l app=etcd -n kube-system") == 3

    def test_missing_pods_skip_ready_wait(self, commands):
        commands.add("get pods", EMPTY)
        with pytest.raises(ResourceNotFoundError):
            wait_pod_ready("app", "etcd", "kube-system")
        assert commands.count("kubectl wait") == 0

    def test_never_ready_describes_pods(self, commands):
        commands.add("get pods", TWO_PODS)
        commands.add("kubectl wait", FAIL)
        commands.add("describe pod", CommandResult(ok=True, stdout="Events: Back-off pulling image"))
        with pytest.raises(RetryExhaustedError):
            wait_pod_ready("app", "etcd", "kube-system", policy=RetryPolicy(max_attempts=2))
        assert commands.count("describe pod -l app=etcd -n kube-system") == 1
