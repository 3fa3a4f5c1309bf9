"""Kubernetes package installation."""

import logging

from .configuration import render
from .models import BootstrapContext

logger = logging.getLogger("kubeprep.packages")

PREREQUISITES = ['ca-certificates', 'curl', 'gpg']
KUBERNETES_PACKAGES = ['kubeadm', 'kubelet', 'kubectl']


def install_kubernetes_packages(installer, ctx: BootstrapContext) -> None:
    """Add the pkgs.k8s.io repository for the resolved minor and install the tools."""
    runner = installer.runner
    runner.run(['dnf', '-y', 'install', *PREREQUISITES])
    runner.write_file(ctx.paths.repo_file, render('kubernetes.repo.j2', minor=ctx.release.minor))
    runner.run(['dnf', '-y', 'install', *KUBERNETES_PACKAGES])
    logger.info(f"Installed {', '.join(KUBERNETES_PACKAGES)} from the v{ctx.release.minor} repository")


def enable_kubelet(installer, ctx: BootstrapContext) -> None:
    installer.runner.run(['systemctl', 'enable', '--now', 'kubelet'])
