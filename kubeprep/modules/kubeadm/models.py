"""Data models for the kubeadm node bootstrap."""

import re
import threading
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import List, Optional

from ...errors import InvalidArgument

API_SERVER_PORT = 6443

_JOIN_RE = re.compile(
    r"kubeadm\s+join\s+(?P<address>[^\s:]+):(?P<port>\d+)"
    r"(?=.*--token\s+(?P<token>\S+))"
    r"(?=.*--discovery-token-ca-cert-hash\s+(?P<hash>sha256:[0-9a-f]{64})\b)"
)


class NodeRole(str, Enum):
    """Node roles handled by the installer."""
    CONTROL_PLANE = 'control-plane'
    WORKER = 'worker'


class StageStatus(str, Enum):
    OK = 'ok'
    FAILED = 'failed'


@dataclass(frozen=True)
class KubernetesRelease:
    """A resolved Kubernetes release."""
    tag: str
    minor: str
    patch: str

    @classmethod
    def from_tag(cls, tag: str) -> 'KubernetesRelease':
        patch = tag.lstrip('v')
        major, minor, _ = patch.split('.')
        return cls(tag=tag, minor=f"{major}.{minor}", patch=patch)


@dataclass(frozen=True)
class ComponentVersions:
    """Pinned versions of the node runtime components."""
    containerd: str = '1.7.9'
    runc: str = 'v1.1.10'
    cni_plugins: str = '1.3.0'
    arch: str = 'amd64'

    @property
    def containerd_url(self) -> str:
        return (
            f"https://github.com/containerd/containerd/releases/download/"
            f"v{self.containerd}/containerd-{self.containerd}-linux-{self.arch}.tar.gz"
        )

    @property
    def runc_url(self) -> str:
        return f"https://github.com/opencontainers/runc/releases/download/{self.runc}/runc.{self.arch}"

    @property
    def cni_plugins_url(self) -> str:
        return (
            f"https://github.com/containernetworking/plugins/releases/download/"
            f"v{self.cni_plugins}/cni-plugins-linux-{self.arch}-v{self.cni_plugins}.tgz"
        )


@dataclass(frozen=True)
class HostPaths:
    """Filesystem locations touched on the host."""
    log_file: Path
    kubeadm_config: Path = Path('/etc/kubernetes/kubeadm-config.yaml')
    admin_kubeconfig: Path = Path('/etc/kubernetes/admin.conf')
    kubelet_kubeconfig: Path = Path('/etc/kubernetes/kubelet.conf')
    ca_cert: Path = Path('/etc/kubernetes/pki/ca.crt')
    containerd_unit: Path = Path('/etc/systemd/system/containerd.service')
    containerd_config: Path = Path('/etc/containerd/config.toml')
    containerd_bin: Path = Path('/usr/local/bin/containerd')
    runc_bin: Path = Path('/usr/local/sbin/runc')
    binary_root: Path = Path('/usr/local')
    cni_bin_dir: Path = Path('/opt/cni/bin')
    repo_file: Path = Path('/etc/yum.repos.d/kubernetes.repo')
    modules_load_file: Path = Path('/etc/modules-load.d/k8s.conf')
    sysctl_file: Path = Path('/etc/sysctl.d/k8s.conf')
    firewalld_service_dir: Path = Path('/etc/firewalld/services')
    fstab: Path = Path('/etc/fstab')
    selinux_config: Path = Path('/etc/selinux/config')
    home_root: Path = Path('/home')
    root_home: Path = Path('/root')
    download_dir: Path = Path('/tmp')


@dataclass(frozen=True)
class BootstrapContext:
    """Resolved, read-only inputs shared by every stage of one run."""
    role: NodeRole
    advertise_address: Optional[str]
    release: KubernetesRelease
    components: ComponentVersions
    paths: HostPaths
    pod_network_manifest: str
    readiness_interval: float
    readiness_timeout: float
    pod_network_namespace: str = 'kube-system'
    pod_network_selector: str = 'k8s-app=calico-node'
    dry_run: bool = False
    join_command: Optional[str] = None
    cancel_event: threading.Event = field(default_factory=threading.Event, compare=False, repr=False)

    @property
    def cancelled(self) -> bool:
        return self.cancel_event.is_set()


@dataclass
class StageResult:
    """Outcome of one provisioning stage."""
    name: str
    status: StageStatus
    started_at: datetime
    finished_at: datetime
    error: Optional[BaseException] = None

    @classmethod
    def ok(cls, name: str, started_at: datetime) -> 'StageResult':
        return cls(name=name, status=StageStatus.OK, started_at=started_at, finished_at=datetime.now())

    @classmethod
    def failed(cls, name: str, started_at: datetime, error: BaseException) -> 'StageResult':
        return cls(name=name, status=StageStatus.FAILED, started_at=started_at,
                   finished_at=datetime.now(), error=error)

    @property
    def duration(self) -> float:
        return (self.finished_at - self.started_at).total_seconds()


@dataclass
class SequenceReport:
    """Stage results of one run, in execution order."""
    role: NodeRole
    results: List[StageResult] = field(default_factory=list)

    def add(self, result: StageResult) -> None:
        self.results.append(result)

    @property
    def succeeded(self) -> bool:
        return all(r.status == StageStatus.OK for r in self.results)

    @property
    def failure(self) -> Optional[StageResult]:
        for result in self.results:
            if result.status == StageStatus.FAILED:
                return result
        return None

    @property
    def executed(self) -> List[str]:
        return [r.name for r in self.results]


@dataclass(frozen=True)
class JoinCredential:
    """Everything a worker needs to join the control plane."""
    token: str
    ca_cert_hash: str
    address: str
    port: int = API_SERVER_PORT

    @property
    def endpoint(self) -> str:
        return f"{self.address}:{self.port}"

    def command(self) -> str:
        return (
            f"kubeadm join {self.endpoint} --token {self.token} "
            f"--discovery-token-ca-cert-hash {self.ca_cert_hash}"
        )

    def argv(self) -> List[str]:
        return [
            'kubeadm', 'join', self.endpoint,
            '--token', self.token,
            '--discovery-token-ca-cert-hash', self.ca_cert_hash,
        ]

    @classmethod
    def parse(cls, command: str) -> 'JoinCredential':
        """Parse a join command relayed from the control plane."""
        # Relayed commands are often wrapped with trailing backslashes
        normalized = ' '.join((command or '').replace('\\\n', ' ').split())
        match = _JOIN_RE.search(normalized)
        if not match:
            raise InvalidArgument(
                "Join command must look like 'kubeadm join <address>:<port> --token <token> "
                "--discovery-token-ca-cert-hash sha256:<hash>'"
            )
        return cls(
            token=match.group('token'),
            ca_cert_hash=match.group('hash'),
            address=match.group('address'),
            port=int(match.group('port')),
        )
