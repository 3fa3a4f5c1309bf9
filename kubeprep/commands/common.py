"""Shared plumbing for the install commands."""

import logging
import signal
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from ..config import InstallerConfig
from ..errors import BootstrapError
from ..logging import setup_logger
from ..modules.kubeadm import CommandRunner, KubeadmInstaller, NodeRole, SequenceReport, StageStatus, build_context
from ..modules.kubeadm.core import default_log_file

logger = logging.getLogger("kubeprep")

# Initialize console for rich output
console = Console()


@dataclass
class InstallOptions:
    """Options shared by the master and worker commands."""
    config_path: Optional[Path] = None
    dry_run: bool = False
    debug: bool = False
    kubernetes_version: Optional[str] = None
    readiness_timeout: Optional[float] = None
    poll_interval: Optional[float] = None


def load_config(options: InstallOptions) -> InstallerConfig:
    """Load configuration and apply CLI overrides."""
    config = InstallerConfig.load(options.config_path)
    if options.kubernetes_version:
        config.kubernetes.version = options.kubernetes_version
    if options.readiness_timeout:
        config.polling.timeout = options.readiness_timeout
    if options.poll_interval:
        config.polling.interval = options.poll_interval
    if options.debug:
        config.logging.level = 'DEBUG'
    return config


def configure_logging(config: InstallerConfig, role: Optional[NodeRole] = None) -> logging.Logger:
    level = getattr(logging, config.logging.level, logging.INFO)
    log_file = config.logging.file or (default_log_file(role) if role else None)
    try:
        return setup_logger('kubeprep', level=level, log_file=log_file)
    except OSError as e:
        result = setup_logger('kubeprep', level=level)
        result.warning(f"⚠️  Cannot write install log {log_file}: {e}; logging to console only")
        return result


def install_signal_handlers(cancel_event: threading.Event) -> None:
    """Turn SIGINT/SIGTERM into a cancellation of the running bootstrap."""
    def _cancel(signum, frame):
        logger.warning(f"🛑 Received signal {signum}, cancelling the bootstrap run")
        cancel_event.set()

    signal.signal(signal.SIGTERM, _cancel)
    signal.signal(signal.SIGINT, _cancel)


def print_report(report: SequenceReport) -> None:
    table = Table(title=f"Kubernetes {report.role.value} node setup")
    table.add_column("#", justify="right")
    table.add_column("Stage")
    table.add_column("Status")
    table.add_column("Duration", justify="right")
    for index, result in enumerate(report.results, 1):
        status = "[green]OK" if result.status == StageStatus.OK else "[red]FAILED"
        table.add_row(str(index), result.name, status, f"{result.duration:.1f}s")
    console.print(table)
    failure = report.failure
    if failure is not None:
        console.print(f"❌ [red]{escape(str(failure.error))}")


def run_install(
    role: NodeRole,
    args: Optional[List[str]],
    options: InstallOptions,
    join_command: Optional[str] = None,
) -> int:
    """Provision this host for ``role``.

    Returns:
        int: Exit code (0 for success, 1 for any failure)
    """
    try:
        config = load_config(options)
    except BootstrapError as e:
        console.print(f"❌ [red]{escape(str(e))}")
        return 1
    configure_logging(config, role)

    cancel_event = threading.Event()
    install_signal_handlers(cancel_event)

    try:
        # Probing the host (interfaces) must happen even in dry-run mode
        ctx = build_context(
            role,
            config,
            CommandRunner(),
            args=args,
            join_command=join_command,
            dry_run=options.dry_run,
            cancel_event=cancel_event,
        )
    except BootstrapError as e:
        logger.error(f"ERROR: {e}")
        return 1

    installer = KubeadmInstaller(config=config, dry_run=options.dry_run)
    report = installer.run(ctx)
    print_report(report)

    if not report.succeeded:
        return 1
    if installer.join_credential is not None:
        console.print("On the worker node, run the following command to join the cluster:")
        console.print(f"sudo {installer.join_credential.command()}", highlight=False, soft_wrap=True)
    return 0
