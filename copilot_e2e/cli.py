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

"""
cli.py - Unified CLI for runtime-copilot e2e clusters.

Subcommands:
    create   Create infrastructure resources (cluster)
    delete   Delete infrastructure resources (cluster, registry)
    wait     Wait for cluster state (ready, resource, pod-ready)
    offline  Offline package workflow (sync)
    setup    Composite workflows (e2e)

Environment Variables:
    All configuration can be overridden via E2E_* environment variables:
    - E2E_CLUSTER_NAME (default: host)
    - E2E_KUBECONFIG (default: /tmp/host.config)
    - E2E_NODE_IMAGE (default: from dependencies.yaml)
    - E2E_HELM_REPO, E2E_REGISTRY_PASSWORD, E2E_CHART_VERSION
    - E2E_REGISTRY_ENDPOINT (default: 127.0.0.1:5011)
    - E2E_BUNDLE_PATH (default: /tmp/bundle)
    - E2E_HOST_OS / E2E_HOST_ARCH to override host detection

Examples:
    # Create a cluster and wait for it to be ready
    copilot-e2e create cluster --cluster-name host --kubeconfig /tmp/host.config

    # Full e2e setup including the offline package and teardown
    copilot-e2e setup e2e --offline --helm-repo https://charts.example.com --teardown

    # Wait for labelled pods
    copilot-e2e wait pod-ready -l app=etcd -n kube-system

    # Delete cluster
    copilot-e2e delete cluster

Exit codes: 0 on success, 1 on any timeout, missing resource, exhausted
retry, unsupported platform or failed external tool.
"""

from __future__ import annotations

import logging
import sys

import typer

from copilot_e2e import console
from copilot_e2e.commands import (
    create_cmd,
    delete_cmd,
    offline_cmd,
    setup_cmd,
    wait_cmd,
)

app = typer.Typer(
    help="Unified CLI for runtime-copilot e2e clusters.",
    no_args_is_help=True,
)


@app.callback()
def _main_callback() -> None:
    """Initialize logging for all subcommands."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%H:%M:%S",
    )


app.add_typer(create_cmd.app, name="create")
app.add_typer(delete_cmd.app, name="delete")
app.add_typer(wait_cmd.app, name="wait")
app.add_typer(offline_cmd.app, name="offline")
app.add_typer(setup_cmd.app, name="setup")


def main() -> None:
    """Console-script entry point: any unhandled failure exits with code 1."""
    try:
        app()
    except Exception as e:
        console.print(f"[red]\u274c {e}[/red]")
        sys.exit(1)


if __name__ == "__main__":
    main()
