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

"""Label-selected resource existence and pod readiness waits."""

from __future__ import annotations

from pathlib import Path

from tenacity import RetryCallState, RetryError, Retrying, retry_if_result, stop_after_attempt, wait_fixed

from copilot_e2e import console
from copilot_e2e.config import ResourceQuery, RetryPolicy
from copilot_e2e.constants import RESOURCE_WAIT_TIMEOUT_SECONDS
from copilot_e2e.errors import ResourceNotFoundError, RetryExhaustedError
from copilot_e2e.retry import kubectl_with_retry
from copilot_e2e.utils import kubectl_args, run_command


def count_resources(query: ResourceQuery, kubeconfig: Path | None = None) -> int:
    """Count resources matching the query; a failed lookup counts as zero.

    Args:
        query: Kind, selector and namespace to look up.
        kubeconfig: Kubeconfig to use, or None for the ambient one.

    Returns:
        Number of matching resources.
    """
    ok, stdout, _ = run_command(kubectl_args(
        "get", query.kind, "-l", query.selector, "-n", query.namespace, "--no-headers",
        kubeconfig=kubeconfig,
    ))
    if not ok:
        return 0
    return sum(1 for line in stdout.splitlines() if line.strip())


def wait_resource_created(query: ResourceQuery, kubeconfig: Path | None = None) -> int:
    """Poll until at least one resource matches the query.

    Only existence is checked here; readiness is a separate wait.

    Args:
        query: Resource lookup including timeout and poll interval.
        kubeconfig: Kubeconfig to use, or None for the ambient one.

    Returns:
        Number of matching resources found.

    Raises:
        ResourceNotFoundError: If nothing matched before the timeout.
    """
    def _still_waiting(_: RetryCallState) -> None:
        console.print(f"[yellow]   Waiting for {query.kind} with label {query.selector} to be created...[/yellow]")

    retrying = Retrying(
        stop=stop_after_attempt(query.timeout // query.interval + 1),
        wait=wait_fixed(query.interval),
        retry=retry_if_result(lambda count: count == 0),
        before_sleep=_still_waiting,
    )
    try:
        count = retrying(count_resources, query, kubeconfig)
    except RetryError as err:
        console.print(f"[red]\u274c Error: timeout waiting for {query.kind} with label {query.selector}[/red]")
        raise ResourceNotFoundError(query.kind, query.selector, query.namespace) from err
    console.print(f"[green]\u2705 {query.kind} with label {query.selector} is created.[/green]")
    return count


def wait_pod_ready(
    label_key: str,
    label_value: str,
    namespace: str,
    timeout: int = RESOURCE_WAIT_TIMEOUT_SECONDS,
    kubeconfig: Path | None = None,
    policy: RetryPolicy | None = None,
) -> None:
    """Wait for labelled pods to exist and then to report Ready.

    Args:
        label_key: Label key, such as ``app``.
        label_value: Label value, such as ``etcd``.
        namespace: Namespace of the pods.
        timeout: Seconds ``kubectl wait`` may block per attempt.
        kubeconfig: Kubeconfig to use, or None for the ambient one.
        policy: Retry policy for the ``kubectl wait`` call.

    Raises:
        ResourceNotFoundError: If no pod ever matched.
        RetryExhaustedError: If the pods never became stably Ready. The
            output of ``kubectl describe`` is printed first.
    """
    selector = f"{label_key}={label_value}"
    console.print(f"[yellow]\u2139\ufe0f  Waiting for pods {selector} in {namespace} to be ready...[/yellow]")
    wait_resource_created(ResourceQuery("pods", selector, namespace), kubeconfig=kubeconfig)
    try:
        kubectl_with_retry(
            "wait", "--for=condition=Ready", f"--timeout={timeout}s",
            "pods", "-l", selector, "-n", namespace,
            kubeconfig=kubeconfig, policy=policy, timeout=timeout + 10,
        )
    except RetryExhaustedError:
        _, stdout, stderr = run_command(kubectl_args(
            "describe", "pod", "-l", selector, "-n", namespace, kubeconfig=kubeconfig,
        ))
        console.print("[yellow]kubectl describe info:[/yellow]")
        console.print(stdout or stderr, markup=False, highlight=False)
        raise
    console.print(f"[green]\u2705 Pods {selector} are ready[/green]")
