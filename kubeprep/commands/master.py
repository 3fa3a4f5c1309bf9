from pathlib import Path
from typing import List, Optional

import typer

from ..modules.kubeadm import NodeRole
from .common import InstallOptions, run_install

app = typer.Typer(help="Control-plane node installation")


@app.command("master")
def install_master(
    ctx: typer.Context,
    args: Optional[List[str]] = typer.Argument(
        None, metavar="[IP_ADDRESS=x.x.x.x]",
        help="Advertise address; detected from the first non-loopback interface if omitted"
    ),
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to a kubeprep YAML config"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Log commands and file writes without executing them"),
    debug: bool = typer.Option(False, "--debug", "-d", help="Enable debug logging"),
    kubernetes_version: Optional[str] = typer.Option(
        None, "--kubernetes-version", help="Pin a major.minor.patch release instead of the latest"
    ),
    readiness_timeout: Optional[float] = typer.Option(
        None, "--readiness-timeout", min=1, help="Seconds to wait for the pod network to become Running"
    ),
    poll_interval: Optional[float] = typer.Option(
        None, "--poll-interval", min=0.1, help="Seconds between pod network status reads"
    ),
):
    """Install and initialize a Kubernetes control-plane node."""
    options = InstallOptions(
        config_path=config,
        dry_run=dry_run,
        debug=debug or bool((ctx.obj or {}).get("debug")),
        kubernetes_version=kubernetes_version,
        readiness_timeout=readiness_timeout,
        poll_interval=poll_interval,
    )
    raise typer.Exit(code=run_install(NodeRole.CONTROL_PLANE, args, options))
