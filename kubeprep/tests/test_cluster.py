from types import SimpleNamespace

import pytest
import yaml

from conftest import FakeCoreApi, FakeFetcher, FakeRunner
from kubeprep.errors import InvalidArgument, ReadinessTimeout
from kubeprep.modules.kubeadm import KubeadmInstaller, cluster

TOKEN = "abcdef.0123456789abcdef"
CA_HASH = "sha256:" + "0f" * 32
JOIN_COMMAND = f"kubeadm join 10.0.0.5:6443 --token {TOKEN} --discovery-token-ca-cert-hash {CA_HASH}"


def test_initialize_cluster(installer, runner, make_context):
    ctx = make_context()
    cluster.initialize_cluster(installer, ctx)

    config = list(yaml.safe_load_all(runner.files[str(ctx.paths.kubeadm_config)]))
    assert config[0]["localAPIEndpoint"]["advertiseAddress"] == "10.0.0.5"
    assert config[1]["kubernetesVersion"] == "v1.30.1"
    assert runner.commands == [f"kubeadm init --config={ctx.paths.kubeadm_config} --v=5"]


def test_initialize_cluster_skips_existing_control_plane(make_context):
    ctx = make_context()
    runner = FakeRunner(files={ctx.paths.admin_kubeconfig: "apiVersion: v1\n"})
    cluster.initialize_cluster(KubeadmInstaller(runner=runner, fetcher=FakeFetcher()), ctx)
    assert runner.calls == []


def test_configure_kubectl(monkeypatch, installer, runner, make_context):
    ctx = make_context()
    for user in ("alice", "ghost"):
        (ctx.paths.home_root / user).mkdir(parents=True)
    (ctx.paths.home_root / "notes.txt").write_text("not a home")
    users = {"alice": SimpleNamespace(pw_uid=1000, pw_gid=1000), "root": SimpleNamespace(pw_uid=0, pw_gid=0)}

    def getpwnam(name):
        return users[name]

    monkeypatch.setattr(cluster.pwd, "getpwnam", getpwnam)
    cluster.configure_kubectl(installer, ctx)

    assert runner.commands == [
        f"install -D -m 600 -o 1000 -g 1000 {ctx.paths.admin_kubeconfig} {ctx.paths.home_root}/alice/.kube/config",
        f"install -D -m 600 -o 0 -g 0 {ctx.paths.admin_kubeconfig} {ctx.paths.root_home}/.kube/config",
    ]


def test_install_pod_network(installer, runner, make_context):
    ctx = make_context()
    cluster.install_pod_network(installer, ctx)
    assert runner.calls == [["kubectl", "apply", "-f", ctx.pod_network_manifest]]


def test_wait_for_pod_network(runner, make_context):
    api = FakeCoreApi(["Pending", "Running"])
    factory_calls = []

    def api_factory(path):
        factory_calls.append(path)
        return api

    installer = KubeadmInstaller(runner=runner, fetcher=FakeFetcher(), api_factory=api_factory)
    ctx = make_context(readiness_interval=0.01, readiness_timeout=5)
    cluster.wait_for_pod_network(installer, ctx)

    assert factory_calls == [str(ctx.paths.admin_kubeconfig)]
    assert api.calls == [("kube-system", "k8s-app=calico-node")] * 2
    assert runner.commands == [
        "kubectl cluster-info",
        "kubectl get pods -n kube-system -l k8s-app=calico-node",
    ]


def test_wait_for_pod_network_times_out(runner, make_context):
    installer = KubeadmInstaller(runner=runner, fetcher=FakeFetcher(),
                                 api_factory=lambda path: FakeCoreApi(["Pending"]))
    ctx = make_context(readiness_interval=0.01, readiness_timeout=0.05)
    with pytest.raises(ReadinessTimeout):
        cluster.wait_for_pod_network(installer, ctx)


def test_wait_for_pod_network_dry_run(runner, make_context):
    installer = KubeadmInstaller(runner=runner, fetcher=FakeFetcher(),
                                 api_factory=lambda path: pytest.fail("no API access in dry-run"))
    cluster.wait_for_pod_network(installer, make_context(dry_run=True))


def test_mint_join_credentials_dry_run(installer, runner, make_context):
    cluster.mint_join_credentials(installer, make_context(dry_run=True))
    assert installer.join_credential is None
    assert runner.calls == []


def test_mint_join_credentials(make_context):
    runner = FakeRunner(outputs={
        "kubeadm token create": TOKEN,
        "openssl x509": "-----BEGIN PUBLIC KEY-----\n",
        "openssl pkey": b"\x30\x82",
    })
    installer = KubeadmInstaller(runner=runner, fetcher=FakeFetcher())
    ctx = make_context()
    cluster.mint_join_credentials(installer, ctx)

    assert installer.join_credential.address == "10.0.0.5"
    assert installer.join_credential.token == TOKEN
    assert f"-in {ctx.paths.ca_cert}" in runner.commands[1]


def test_join_cluster(installer, runner, make_context):
    cluster.join_cluster(installer, make_context(join_command=JOIN_COMMAND))
    assert runner.calls == [[
        "kubeadm", "join", "10.0.0.5:6443", "--token", TOKEN, "--discovery-token-ca-cert-hash", CA_HASH,
    ]]


def test_join_cluster_skips_joined_node(make_context):
    ctx = make_context(join_command=JOIN_COMMAND)
    runner = FakeRunner(files={ctx.paths.kubelet_kubeconfig: "apiVersion: v1\n"})
    cluster.join_cluster(KubeadmInstaller(runner=runner, fetcher=FakeFetcher()), ctx)
    assert runner.calls == []


def test_join_cluster_requires_command(installer, make_context):
    with pytest.raises(InvalidArgument):
        cluster.join_cluster(installer, make_context())


def test_wait_for_pod_network_uses_context_selector(runner, make_context):
    api = FakeCoreApi(["Running"])
    installer = KubeadmInstaller(runner=runner, fetcher=FakeFetcher(), api_factory=lambda path: api)
    ctx = make_context(readiness_interval=0.01, readiness_timeout=5,
                       pod_network_namespace="calico-system", pod_network_selector="k8s-app=calico-node")
    cluster.wait_for_pod_network(installer, ctx)
    assert api.calls == [("calico-system", "k8s-app=calico-node")]
    assert runner.commands[-1] == "kubectl get pods -n calico-system -l k8s-app=calico-node"
