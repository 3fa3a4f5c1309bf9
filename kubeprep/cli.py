import logging
import sys

import typer

from kubeprep import __version__
from kubeprep.commands import master, tools, worker
from kubeprep.logging import setup_logger

app = typer.Typer(help="kubeprep - Kubernetes node bootstrap for Rocky Linux.")

# Global debug flag
debug_mode = False


def setup_logging(debug: bool = False):
    """Configure console logging for commands that do not install a node."""
    setup_logger('kubeprep', level=logging.DEBUG if debug else logging.INFO)


# Node installers and helpers are top-level commands
app.command("master")(master.install_master)
app.command("worker")(worker.install_worker)
app.command("detect-ip")(tools.detect_ip)
app.command("join-command")(tools.join_command)
app.command("version")(tools.version)


# Global options callback
@app.callback()
def main(
    ctx: typer.Context,
    debug: bool = typer.Option(False, "--debug", "-d", help="Enable debug logging"),
):
    """kubeprep - Kubernetes node bootstrap for Rocky Linux."""
    global debug_mode
    debug_mode = debug
    ctx.obj = {"debug": debug}
    setup_logging(debug)
    if debug:
        logging.getLogger("kubeprep").debug(f"Debug mode enabled (kubeprep {__version__})")


def _run(typer_app: typer.Typer) -> None:
    try:
        typer_app()
    except Exception as e:
        logger = logging.getLogger("kubeprep")
        if debug_mode:
            logger.exception(f"Unhandled exception: {e}")
        else:
            logger.error(f"Error: {e}")
        sys.exit(1)


def run() -> None:
    """Entry point for ``kubeprep``."""
    _run(app)


def install_master() -> None:
    """Entry point for ``install-k8-master``."""
    _run(master.app)


def install_worker() -> None:
    """Entry point for ``install-k8-worker``."""
    _run(worker.app)


if __name__ == "__main__":
    run()
