import logging
import subprocess
from pathlib import Path

import pytest

from kubeprep.errors import CommandError, DownloadError
from kubeprep.modules.kubeadm import KubeadmInstaller
from kubeprep.modules.kubeadm.models import (
    BootstrapContext,
    ComponentVersions,
    HostPaths,
    KubernetesRelease,
    NodeRole,
)
from kubeprep.modules.kubeadm.runner import CommandRunner

IP_ADDR_OUTPUT = (
    "1: lo    inet 127.0.0.1/8 scope host lo\\       valid_lft forever preferred_lft forever\n"
    "2: eth0    inet 10.0.2.15/24 brd 10.0.2.255 scope global dynamic eth0\\       valid_lft 86000sec\n"
    "3: eth1    inet 192.168.56.10/24 brd 192.168.56.255 scope global eth1\\       valid_lft forever\n"
)


class FakeRunner(CommandRunner):
    """Records commands instead of running them.

    ``outputs`` and ``failures`` map a command prefix to the stdout to return
    or the exit status to fail with.
    """

    def __init__(self, outputs=None, failures=None, files=None, dry_run=False):
        super().__init__(dry_run=dry_run)
        self.outputs = outputs or {}
        self.failures = failures or {}
        self.files = {str(k): v for k, v in (files or {}).items()}
        self.calls = []
        self.inputs = []

    @staticmethod
    def _lookup(table, command):
        for prefix, value in table.items():
            if command.startswith(prefix):
                return value
        return None

    def run(self, argv, check=True, input=None, env=None, text=True, timeout=None):
        argv = [str(a) for a in argv]
        command = ' '.join(argv)
        self.calls.append(argv)
        self.inputs.append(input)
        empty = '' if text else b''

        returncode = self._lookup(self.failures, command)
        if returncode is not None:
            if check:
                raise CommandError(argv, returncode, 'simulated failure')
            return subprocess.CompletedProcess(argv, returncode, empty, 'simulated failure')

        stdout = self._lookup(self.outputs, command)
        return subprocess.CompletedProcess(argv, 0, empty if stdout is None else stdout, empty)

    def write_file(self, path, content, mode=0o644):
        self.files[str(path)] = content

    def read_file(self, path):
        return self.files.get(str(path), '')

    def exists(self, path):
        return str(path) in self.files

    @property
    def commands(self):
        return [' '.join(argv) for argv in self.calls]


class FakeFetcher:
    def __init__(self, fail=False):
        self.fail = fail
        self.downloads = []

    def download(self, url, dest):
        if self.fail:
            raise DownloadError(url, '404 Client Error: Not Found')
        self.downloads.append((url, Path(dest)))
        return Path(dest)


class FakeCoreApi:
    """Returns one pod phase per call; the last phase repeats."""

    def __init__(self, phases):
        self.phases = list(phases)
        self.calls = []

    def list_namespaced_pod(self, namespace, label_selector):
        self.calls.append((namespace, label_selector))
        phase = self.phases.pop(0) if len(self.phases) > 1 else self.phases[0]
        items = [] if phase is None else [_Pod(phase)]
        return _PodList(items)


class _Status:
    def __init__(self, phase):
        self.phase = phase


class _Pod:
    def __init__(self, phase):
        self.status = _Status(phase)


class _PodList:
    def __init__(self, items):
        self.items = items


@pytest.fixture(autouse=True)
def reset_kubeprep_logger():
    yield
    logger = logging.getLogger('kubeprep')
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
        handler.close()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def host_paths(tmp_path):
    return HostPaths(
        log_file=tmp_path / 'install.log',
        home_root=tmp_path / 'home',
        root_home=tmp_path / 'root',
        download_dir=tmp_path / 'downloads',
        firewalld_service_dir=tmp_path / 'firewalld',
    )


@pytest.fixture
def make_context(host_paths):
    def factory(role=NodeRole.CONTROL_PLANE, **overrides):
        fields = dict(
            role=role,
            advertise_address='10.0.0.5',
            release=KubernetesRelease.from_tag('v1.30.1'),
            components=ComponentVersions(),
            paths=host_paths,
            pod_network_manifest='https://docs.projectcalico.org/manifests/calico.yaml',
            readiness_interval=5.0,
            readiness_timeout=600.0,
        )
        fields.update(overrides)
        return BootstrapContext(**fields)
    return factory


@pytest.fixture
def runner():
    return FakeRunner()


@pytest.fixture
def fetcher():
    return FakeFetcher()


@pytest.fixture
def installer(runner, fetcher):
    return KubeadmInstaller(runner=runner, fetcher=fetcher, api_factory=lambda path: FakeCoreApi(['Running']))
