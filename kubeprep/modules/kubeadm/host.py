"""Host preparation stages.

Swap, firewall, kernel modules, sysctl and SELinux. Every stage rewrites its
files in full and relies on commands that are no-ops when the host already
has the desired state.
"""

import logging
import re
from typing import Dict

from .configuration import firewalld_service, render
from .models import BootstrapContext, NodeRole

logger = logging.getLogger("kubeprep.host")

FIREWALL_ZONE = 'public'

CONTROL_PLANE_PORTS: Dict[str, str] = {
    '6443': 'tcp',          # API server
    '2379-2380': 'tcp',     # etcd
    '10250-10252': 'tcp',   # kubelet, scheduler, controller-manager
    '10255': 'tcp',         # read-only kubelet
}

WORKER_PORTS: Dict[str, str] = {
    '10250': 'tcp',
    '30000-32767': 'tcp',   # NodePort services
}

KERNEL_MODULES = [
    'overlay',
    'br_netfilter',
    'ip_vs',
    'ip_vs_rr',
    'ip_vs_wrr',
    'ip_vs_sh',
    'nf_conntrack',
]

SYSCTL_SETTINGS: Dict[str, str] = {
    'net.bridge.bridge-nf-call-iptables': '1',
    'net.bridge.bridge-nf-call-ip6tables': '1',
    'net.ipv4.ip_forward': '1',
}

SELINUX_ENFORCING_RE = re.compile(r'^SELINUX=enforcing[ \t]*$', re.MULTILINE)


def firewall_service_name(role: NodeRole) -> str:
    return f"kubeprep-{role.value}"


def role_ports(role: NodeRole) -> Dict[str, str]:
    return CONTROL_PLANE_PORTS if role == NodeRole.CONTROL_PLANE else WORKER_PORTS


def strip_swap_entries(fstab: str) -> str:
    """Comment out active swap entries of an fstab file."""
    lines = []
    for line in fstab.splitlines():
        fields = line.split()
        if fields and not fields[0].startswith('#') and len(fields) >= 3 and fields[2] == 'swap':
            lines.append(f"#{line}")
        else:
            lines.append(line)
    result = '\n'.join(lines)
    if fstab.endswith('\n'):
        result += '\n'
    return result


def upgrade_system(installer, ctx: BootstrapContext) -> None:
    """Bring installed packages up to date."""
    installer.runner.run(['dnf', '-y', 'upgrade'])


def enable_cockpit(installer, ctx: BootstrapContext) -> None:
    installer.runner.run(['systemctl', 'enable', '--now', 'cockpit.socket'])


def disable_swap(installer, ctx: BootstrapContext) -> None:
    """Turn swap off now and keep it off across reboots."""
    installer.runner.run(['swapoff', '-a'])
    fstab = installer.runner.read_file(ctx.paths.fstab)
    updated = strip_swap_entries(fstab)
    if updated != fstab:
        installer.runner.write_file(ctx.paths.fstab, updated)
        logger.info(f"Disabled swap entries in {ctx.paths.fstab}")


def configure_firewall(installer, ctx: BootstrapContext) -> None:
    """Publish the role's ports as a firewalld service and enable it."""
    runner = installer.runner
    service = firewall_service_name(ctx.role)
    ports = role_ports(ctx.role)

    runner.write_file(
        ctx.paths.firewalld_service_dir / f"{service}.xml",
        firewalld_service(
            short=service,
            description=f"Kubernetes {ctx.role.value} node ports",
            ports=ports,
        ),
    )
    # firewalld only picks up new service definitions on reload
    runner.run(['firewall-cmd', '--reload'])
    runner.run(['firewall-cmd', f'--zone={FIREWALL_ZONE}', f'--add-service={service}', '--permanent'])
    runner.run(['firewall-cmd', '--reload'])
    verify_firewall(installer, ctx)


def verify_firewall(installer, ctx: BootstrapContext) -> None:
    """Check the role's firewalld service is active in the zone."""
    service = firewall_service_name(ctx.role)
    installer.runner.run(['firewall-cmd', f'--zone={FIREWALL_ZONE}', f'--query-service={service}'])
    logger.info(f"Firewall ports open: {', '.join(role_ports(ctx.role))}")


def configure_kernel(installer, ctx: BootstrapContext) -> None:
    """Load networking kernel modules and apply bridge/forwarding sysctls."""
    runner = installer.runner
    runner.write_file(ctx.paths.modules_load_file, render('modules-load.conf.j2', modules=KERNEL_MODULES))
    for module in KERNEL_MODULES:
        runner.run(['modprobe', module])

    runner.write_file(ctx.paths.sysctl_file, render('sysctl.conf.j2', settings=SYSCTL_SETTINGS))
    runner.run(['sysctl', '--system'])


def set_selinux_permissive(installer, ctx: BootstrapContext) -> None:
    """Switch SELinux to permissive now and in its config file."""
    runner = installer.runner
    mode = runner.output(['getenforce'], check=False)
    if mode.lower() == 'disabled':
        logger.info("SELinux is disabled, nothing to switch")
    else:
        runner.run(['setenforce', '0'])

    current = runner.read_file(ctx.paths.selinux_config)
    updated = SELINUX_ENFORCING_RE.sub('SELINUX=permissive', current)
    if updated != current:
        runner.write_file(ctx.paths.selinux_config, updated)
        logger.info(f"Set SELINUX=permissive in {ctx.paths.selinux_config}")
