"""kubeadm node bootstrap.

This package provisions a single Rocky Linux host as a kubeadm control-plane
or worker node. It's organized into several focused modules:

- core: Installer and per-role stage lists
- sequencer: Ordered, fail-fast stage execution
- resolver: Advertise address resolution
- versions: Kubernetes release resolution
- host: Swap, firewall, kernel and SELinux preparation
- runtime: containerd, runc and CNI plugins
- packages: kubeadm, kubelet and kubectl
- cluster: kubeadm init/join, kubectl access and pod network
- poller: Readiness polling
- credentials: Join token and CA hash
- configuration: Template rendering
- runner: Host command execution and downloads
- models: Data models and types
"""

from .core import KubeadmInstaller, build_context
from .credentials import mint_join_credential
from .models import (
    BootstrapContext,
    JoinCredential,
    KubernetesRelease,
    NodeRole,
    SequenceReport,
    StageResult,
    StageStatus,
)
from .poller import ReadinessPoller
from .resolver import resolve_advertise_address
from .runner import ArtifactFetcher, CommandRunner
from .sequencer import Stage, StageSequencer
from .versions import resolve_release, select_latest_release

__all__ = [
    'KubeadmInstaller',
    'build_context',
    'mint_join_credential',
    'BootstrapContext',
    'JoinCredential',
    'KubernetesRelease',
    'NodeRole',
    'SequenceReport',
    'StageResult',
    'StageStatus',
    'ReadinessPoller',
    'resolve_advertise_address',
    'ArtifactFetcher',
    'CommandRunner',
    'Stage',
    'StageSequencer',
    'resolve_release',
    'select_latest_release',
]
