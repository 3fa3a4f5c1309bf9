"""Standalone helpers: address detection, join command minting, release lookup."""

from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.markup import escape

from ..config import InstallerConfig
from ..errors import BootstrapError
from ..modules.kubeadm import CommandRunner, mint_join_credential, resolve_advertise_address, resolve_release
from ..modules.kubeadm.core import host_paths
from ..modules.kubeadm.models import API_SERVER_PORT, NodeRole

console = Console()

app = typer.Typer(help="Host inspection helpers")


def _fail(e: Exception) -> None:
    console.print(f"❌ [red]{escape(str(e))}")
    raise typer.Exit(code=1)


@app.command("detect-ip")
def detect_ip(
    args: Optional[List[str]] = typer.Argument(None, metavar="[IP_ADDRESS=x.x.x.x]"),
):
    """Print the address the installers would advertise."""
    try:
        address = resolve_advertise_address(args, CommandRunner())
    except BootstrapError as e:
        _fail(e)
    typer.echo(address)


@app.command("join-command")
def join_command(
    address: Optional[str] = typer.Option(
        None, "--address", "-a", help="Control-plane address; detected if omitted"
    ),
    port: int = typer.Option(API_SERVER_PORT, "--port", "-p", help="API server port"),
    ca_cert: Optional[Path] = typer.Option(None, "--ca-cert", help="Cluster CA certificate"),
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to a kubeprep YAML config"),
):
    """Mint a fresh token and print a worker join command (control plane only)."""
    runner = CommandRunner()
    try:
        args = [f"IP_ADDRESS={address}"] if address else None
        address = resolve_advertise_address(args, runner)
        cert = ca_cert or host_paths(InstallerConfig.load(config), NodeRole.CONTROL_PLANE).ca_cert
        credential = mint_join_credential(runner, address, cert, port=port)
    except BootstrapError as e:
        _fail(e)
    typer.echo(credential.command())


@app.command("version")
def version(
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to a kubeprep YAML config"),
):
    """Show the Kubernetes release an install would use."""
    try:
        settings = InstallerConfig.load(config)
        release = resolve_release(
            pinned=settings.kubernetes.version,
            url=settings.kubernetes.releases_url,
            timeout=settings.polling.http_timeout,
        )
    except BootstrapError as e:
        _fail(e)
    console.print(f"Kubernetes release: [bold]{release.tag}[/bold]")
    console.print(f"Package minor:      {release.minor}")
    console.print(f"Patch version:      {release.patch}")
