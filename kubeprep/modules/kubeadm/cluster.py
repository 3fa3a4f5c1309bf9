"""Cluster bootstrap stages: kubeadm init/join, kubectl access, pod network."""

import logging
import pwd

from ...errors import InvalidArgument
from .configuration import kubeadm_config
from .credentials import mint_join_credential
from .models import BootstrapContext, JoinCredential
from .poller import ReadinessPoller, first_pod_phase

logger = logging.getLogger("kubeprep.cluster")

POD_NETWORK_TARGET_PHASE = 'Running'


def initialize_cluster(installer, ctx: BootstrapContext) -> None:
    """Run ``kubeadm init`` unless this node already hosts a control plane."""
    runner = installer.runner
    if runner.exists(ctx.paths.admin_kubeconfig):
        logger.info(f"✅ Control plane already initialized ({ctx.paths.admin_kubeconfig} exists)")
        return

    runner.write_file(
        ctx.paths.kubeadm_config,
        kubeadm_config(node_ip=ctx.advertise_address, kubernetes_version=ctx.release.patch),
        mode=0o600,
    )
    logger.info(f"🚀 Initializing Kubernetes {ctx.release.patch} control plane on {ctx.advertise_address}")
    runner.run(['kubeadm', 'init', f'--config={ctx.paths.kubeadm_config}', '--v=5'])


def _copy_kubeconfig(installer, ctx: BootstrapContext, home, user: str) -> None:
    try:
        entry = pwd.getpwnam(user)
    except KeyError:
        logger.warning(f"⚠️  Skipping {home}: no user named {user}")
        return
    installer.runner.run([
        'install', '-D', '-m', '600',
        '-o', str(entry.pw_uid), '-g', str(entry.pw_gid),
        str(ctx.paths.admin_kubeconfig), str(home / '.kube' / 'config'),
    ])
    logger.info(f"Configured kubectl for user {user}")


def configure_kubectl(installer, ctx: BootstrapContext) -> None:
    """Give root and every user with a home directory an admin kubeconfig."""
    home_root = ctx.paths.home_root
    homes = sorted(p for p in home_root.iterdir() if p.is_dir()) if home_root.is_dir() else []
    for home in homes:
        _copy_kubeconfig(installer, ctx, home, home.name)
    _copy_kubeconfig(installer, ctx, ctx.paths.root_home, 'root')


def install_pod_network(installer, ctx: BootstrapContext) -> None:
    """Apply the Calico pod network manifest."""
    installer.kubectl(ctx, ['apply', '-f', ctx.pod_network_manifest])


def wait_for_pod_network(installer, ctx: BootstrapContext) -> None:
    """Block until the first Calico node pod reports Running."""
    info = installer.kubectl(ctx, ['cluster-info'])
    if info:
        logger.info(info)

    if ctx.dry_run:
        logger.info("[DRY RUN] Would wait for the Calico pod to be Running")
        return

    api = installer.api_factory(str(ctx.paths.admin_kubeconfig))
    poller = ReadinessPoller(
        interval=ctx.readiness_interval,
        timeout=ctx.readiness_timeout,
        cancel_event=ctx.cancel_event,
    )
    poller.wait_for(
        lambda: first_pod_phase(api, ctx.pod_network_namespace, ctx.pod_network_selector),
        POD_NETWORK_TARGET_PHASE,
        'Calico pod',
    )
    pods = installer.kubectl(
        ctx, ['get', 'pods', '-n', ctx.pod_network_namespace, '-l', ctx.pod_network_selector]
    )
    if pods:
        logger.info(pods)


def mint_join_credentials(installer, ctx: BootstrapContext) -> None:
    """Create a bootstrap token and publish the worker join command."""
    if ctx.dry_run:
        logger.info("[DRY RUN] Would mint a join credential")
        return
    credential = mint_join_credential(installer.runner, ctx.advertise_address, ctx.paths.ca_cert)
    installer.join_credential = credential
    logger.info(f"Worker node join command: {credential.command()}")


def join_cluster(installer, ctx: BootstrapContext) -> None:
    """Join this worker to the control plane named in the relayed join command."""
    if not ctx.join_command:
        raise InvalidArgument("No join command supplied")
    credential = JoinCredential.parse(ctx.join_command)
    if installer.runner.exists(ctx.paths.kubelet_kubeconfig):
        logger.info(f"✅ Node already joined ({ctx.paths.kubelet_kubeconfig} exists)")
        return
    logger.info(f"🔗 Joining cluster at {credential.endpoint}")
    installer.runner.run(credential.argv())
