from pathlib import Path
from typing import Optional

import typer

from ..modules.kubeadm import NodeRole
from .common import InstallOptions, run_install

app = typer.Typer(help="Worker node installation")


@app.command("worker")
def install_worker(
    ctx: typer.Context,
    join_command: Optional[str] = typer.Option(
        None, "--join-command", "-j",
        help="Join command printed by the control-plane install; runs kubeadm join as the last step"
    ),
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to a kubeprep YAML config"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Log commands and file writes without executing them"),
    debug: bool = typer.Option(False, "--debug", "-d", help="Enable debug logging"),
    kubernetes_version: Optional[str] = typer.Option(
        None, "--kubernetes-version", help="Pin a major.minor.patch release instead of the latest"
    ),
):
    """Install a Kubernetes worker node and optionally join it to a cluster."""
    options = InstallOptions(
        config_path=config,
        dry_run=dry_run,
        debug=debug or bool((ctx.obj or {}).get("debug")),
        kubernetes_version=kubernetes_version,
    )
    raise typer.Exit(code=run_install(NodeRole.WORKER, None, options, join_command=join_command))
