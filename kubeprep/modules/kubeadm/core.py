"""Core kubeadm installation logic.

:class:`KubeadmInstaller` owns the host collaborators (command runner,
artifact fetcher, Kubernetes API factory) and exposes the fixed stage lists
for each node role. :func:`build_context` resolves every run input once,
before the first stage starts.
"""

import functools
import logging
import threading
from pathlib import Path
from typing import Callable, List, Optional, Sequence

import requests

from ...config import InstallerConfig
from ...errors import InvalidArgument
from ...logging import CONTROL_PLANE_LOG_FILE, WORKER_LOG_FILE
from ...utils.kube import core_v1_api
from . import cluster, host, packages, runtime
from .models import (
    BootstrapContext,
    ComponentVersions,
    HostPaths,
    JoinCredential,
    NodeRole,
    SequenceReport,
)
from .resolver import resolve_advertise_address
from .runner import ArtifactFetcher, CommandRunner
from .sequencer import Stage, StageSequencer
from .versions import resolve_release

logger = logging.getLogger("kubeprep.core")


class KubeadmInstaller:
    """Provisions the local host as a kubeadm control-plane or worker node."""

    def __init__(
        self,
        config: Optional[InstallerConfig] = None,
        runner: Optional[CommandRunner] = None,
        fetcher: Optional[ArtifactFetcher] = None,
        api_factory: Callable[[str], object] = core_v1_api,
        dry_run: bool = False,
    ):
        """Initialize the installer.

        Args:
            config: Loaded configuration (defaults apply if omitted)
            runner: Command runner for host side effects
            fetcher: Downloader for release artifacts
            api_factory: Builds a CoreV1Api from a kubeconfig path
            dry_run: If True, only log commands and file writes
        """
        self.config = config or InstallerConfig()
        self.dry_run = dry_run
        self.runner = runner or CommandRunner(dry_run=dry_run)
        self.fetcher = fetcher or ArtifactFetcher(timeout=self.config.polling.http_timeout, dry_run=dry_run)
        self.api_factory = api_factory
        # Set by the mint-join-credential stage
        self.join_credential: Optional[JoinCredential] = None

    def kubectl(self, ctx: BootstrapContext, args: Sequence[str]) -> str:
        """Run kubectl against the cluster admin kubeconfig."""
        return self.runner.output(['kubectl', *args], env={'KUBECONFIG': str(ctx.paths.admin_kubeconfig)})

    def _stage(self, name: str, func, description: str) -> Stage:
        return Stage(name=name, action=functools.partial(func, self), description=description)

    def _node_stages(self, role: NodeRole) -> List[Stage]:
        stages = [self._stage('upgrade-system', host.upgrade_system, 'Performing system upgrade')]
        if role == NodeRole.CONTROL_PLANE:
            stages.append(self._stage('enable-cockpit', host.enable_cockpit, 'Enabling cockpit'))
        stages += [
            self._stage('disable-swap', host.disable_swap, 'Disabling swap'),
            self._stage('configure-firewall', host.configure_firewall, 'Configuring firewall'),
            self._stage('install-containerd', runtime.install_containerd, 'Installing containerd'),
            self._stage('install-containerd-service', runtime.install_containerd_service,
                        'Creating containerd service'),
            self._stage('install-runc', runtime.install_runc, 'Installing runc'),
            self._stage('install-cni-plugins', runtime.install_cni_plugins, 'Installing CNI plugins'),
            self._stage('configure-containerd', runtime.configure_containerd, 'Configuring containerd'),
            self._stage('configure-kernel', host.configure_kernel, 'Configuring kernel modules and sysctl'),
            self._stage('set-selinux-permissive', host.set_selinux_permissive,
                        'Setting SELinux to permissive mode'),
            self._stage('install-kubernetes-packages', packages.install_kubernetes_packages,
                        'Installing Kubernetes packages'),
            self._stage('enable-kubelet', packages.enable_kubelet, 'Enabling and starting kubelet'),
        ]
        return stages

    def control_plane_stages(self) -> List[Stage]:
        return self._node_stages(NodeRole.CONTROL_PLANE) + [
            self._stage('initialize-cluster', cluster.initialize_cluster, 'Initializing Kubernetes cluster'),
            self._stage('configure-kubectl', cluster.configure_kubectl,
                        'Configuring kubectl for root and all users with home directories'),
            self._stage('install-pod-network', cluster.install_pod_network,
                        'Installing Calico pod network add-on'),
            self._stage('wait-for-pod-network', cluster.wait_for_pod_network,
                        'Waiting for the Calico pod network'),
            self._stage('mint-join-credential', cluster.mint_join_credentials,
                        'Creating a new kubeadm token and join command'),
        ]

    def worker_stages(self, join: bool = False) -> List[Stage]:
        stages = self._node_stages(NodeRole.WORKER)
        if join:
            stages.append(self._stage('join-cluster', cluster.join_cluster, 'Joining the cluster'))
        return stages

    def stages_for(self, ctx: BootstrapContext) -> List[Stage]:
        if ctx.role == NodeRole.CONTROL_PLANE:
            return self.control_plane_stages()
        return self.worker_stages(join=bool(ctx.join_command))

    def run(self, ctx: BootstrapContext) -> SequenceReport:
        """Run every stage for the context's role."""
        logger.info(f"Starting Kubernetes {ctx.role.value} node setup.")
        report = StageSequencer(self.stages_for(ctx)).run(ctx)
        if report.succeeded:
            logger.info(f"Kubernetes {ctx.role.value} node setup completed.")
        else:
            logger.error(f"Kubernetes {ctx.role.value} node setup failed at stage '{report.failure.name}'.")
        return report


def default_log_file(role: NodeRole) -> Path:
    return CONTROL_PLANE_LOG_FILE if role == NodeRole.CONTROL_PLANE else WORKER_LOG_FILE


def host_paths(config: InstallerConfig, role: NodeRole) -> HostPaths:
    """Build host paths from defaults plus configured overrides."""
    overrides = {k: Path(v) for k, v in config.paths.model_dump(exclude_none=True).items()}
    log_file = Path(config.logging.file) if config.logging.file else default_log_file(role)
    return HostPaths(log_file=log_file, **overrides)


def build_context(
    role: NodeRole,
    config: InstallerConfig,
    runner: CommandRunner,
    args: Optional[Sequence[str]] = None,
    join_command: Optional[str] = None,
    dry_run: bool = False,
    cancel_event: Optional[threading.Event] = None,
    session: Optional[requests.Session] = None,
) -> BootstrapContext:
    """Resolve the advertise address and Kubernetes release into a frozen context.

    Only a control-plane node advertises an address; workers take no
    positional arguments and get ``advertise_address=None``.

    Raises:
        InvalidArgument: Bad positional argument or malformed join command
        NoAddressFound: No usable interface address on a control-plane node
        VersionResolutionFailed: No Kubernetes release could be determined
    """
    if join_command and role != NodeRole.WORKER:
        raise InvalidArgument("A join command is only accepted on worker nodes")
    if join_command:
        JoinCredential.parse(join_command)

    if role == NodeRole.CONTROL_PLANE:
        address = resolve_advertise_address(args, runner)
    elif args:
        raise InvalidArgument(f"Worker nodes take no arguments, got {len(args)}")
    else:
        address = None
    release = resolve_release(
        pinned=config.kubernetes.version,
        url=config.kubernetes.releases_url,
        session=session,
        timeout=config.polling.http_timeout,
    )
    versions = config.versions
    return BootstrapContext(
        role=role,
        advertise_address=address,
        release=release,
        components=ComponentVersions(
            containerd=versions.containerd,
            runc=versions.runc,
            cni_plugins=versions.cni_plugins,
            arch=versions.arch,
        ),
        paths=host_paths(config, role),
        pod_network_manifest=config.network.pod_network_manifest,
        pod_network_namespace=config.network.pod_network_namespace,
        pod_network_selector=config.network.pod_network_selector,
        readiness_interval=config.polling.interval,
        readiness_timeout=config.polling.timeout,
        dry_run=dry_run,
        join_command=join_command,
        cancel_event=cancel_event or threading.Event(),
    )
