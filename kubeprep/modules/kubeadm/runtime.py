"""Container runtime installation: containerd, runc and CNI plugins."""

import logging
import re

from .configuration import render
from .models import BootstrapContext

logger = logging.getLogger("kubeprep.runtime")

SYSTEMD_CGROUP_RE = re.compile(r'SystemdCgroup\s*=\s*false')


def enable_systemd_cgroup(config_toml: str) -> str:
    """Switch the runc runtime options to the systemd cgroup driver."""
    return SYSTEMD_CGROUP_RE.sub('SystemdCgroup = true', config_toml)


def install_containerd(installer, ctx: BootstrapContext) -> None:
    """Download containerd and unpack it over the binary root."""
    archive = installer.fetcher.download(
        ctx.components.containerd_url,
        ctx.paths.download_dir / 'containerd.tar.gz',
    )
    installer.runner.run(['tar', 'Cxzf', str(ctx.paths.binary_root), str(archive)])
    logger.info(f"Installed containerd {ctx.components.containerd}")


def install_containerd_service(installer, ctx: BootstrapContext) -> None:
    """Write the containerd systemd unit and start the service."""
    runner = installer.runner
    runner.write_file(
        ctx.paths.containerd_unit,
        render('containerd.service.j2', containerd_bin=str(ctx.paths.containerd_bin)),
    )
    runner.run(['systemctl', 'daemon-reload'])
    runner.run(['systemctl', 'enable', '--now', 'containerd'])


def install_runc(installer, ctx: BootstrapContext) -> None:
    binary = installer.fetcher.download(ctx.components.runc_url, ctx.paths.download_dir / 'runc')
    installer.runner.run(['install', '-m', '755', str(binary), str(ctx.paths.runc_bin)])
    logger.info(f"Installed runc {ctx.components.runc}")


def install_cni_plugins(installer, ctx: BootstrapContext) -> None:
    archive = installer.fetcher.download(
        ctx.components.cni_plugins_url,
        ctx.paths.download_dir / 'cni-plugins.tgz',
    )
    installer.runner.run(['mkdir', '-p', str(ctx.paths.cni_bin_dir)])
    installer.runner.run(['tar', 'Cxzf', str(ctx.paths.cni_bin_dir), str(archive)])
    logger.info(f"Installed CNI plugins {ctx.components.cni_plugins}")


def configure_containerd(installer, ctx: BootstrapContext) -> None:
    """Regenerate the containerd config with the systemd cgroup driver."""
    runner = installer.runner
    default_config = runner.output([str(ctx.paths.containerd_bin), 'config', 'default'])
    runner.write_file(ctx.paths.containerd_config, enable_systemd_cgroup(default_config) + '\n')
    runner.run(['systemctl', 'restart', 'containerd'])
