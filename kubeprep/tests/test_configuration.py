import xml.etree.ElementTree as ET

import pytest
import yaml

from kubeprep.errors import TemplateError
from kubeprep.modules.kubeadm.configuration import firewalld_service, kubeadm_config, render, template_fields


def test_kubeadm_config_documents():
    documents = list(yaml.safe_load_all(kubeadm_config(node_ip="10.0.0.5", kubernetes_version="1.30.1")))
    init, cluster, kubelet = documents

    assert init["kind"] == "InitConfiguration"
    assert init["apiVersion"] == "kubeadm.k8s.io/v1beta3"
    assert init["localAPIEndpoint"]["advertiseAddress"] == "10.0.0.5"
    assert cluster["kubernetesVersion"] == "v1.30.1"
    assert cluster["controlPlaneEndpoint"] == "10.0.0.5:6443"
    assert "10.0.0.5" in cluster["apiServer"]["certSANs"]
    assert kubelet["cgroupDriver"] == "systemd"


def test_kubeadm_config_api_version_follows_release():
    init = next(yaml.safe_load_all(kubeadm_config(node_ip="10.0.0.5", kubernetes_version="1.31.2")))
    assert init["apiVersion"] == "kubeadm.k8s.io/v1beta4"


def test_template_fields():
    assert template_fields("kubeadm-config.yaml.j2") == {"node_ip", "kubernetes_version"}
    assert template_fields("firewalld-service.xml.j2") == {"short", "description", "ports"}


def test_missing_field_is_reported():
    with pytest.raises(TemplateError, match="kubernetes_version"):
        render("kubeadm-config.yaml.j2", node_ip="10.0.0.5")


def test_empty_field_is_reported():
    with pytest.raises(TemplateError):
        render("kubernetes.repo.j2", minor="")


def test_unknown_field_is_reported():
    with pytest.raises(TemplateError, match="pod_subnet"):
        render("kubeadm-config.yaml.j2", node_ip="10.0.0.5", kubernetes_version="1.30.1",
               pod_subnet="10.244.0.0/16")


def test_unknown_template():
    with pytest.raises(TemplateError):
        render("no-such-template.j2")


def test_firewalld_service_lists_ports():
    xml = firewalld_service(short="kubeprep-worker", description="Worker ports",
                            ports={"10250": "tcp", "30000-32767": "tcp"})
    root = ET.fromstring(xml.encode())
    assert root.findtext("short") == "kubeprep-worker"
    assert [(p.get("port"), p.get("protocol")) for p in root.findall("port")] == [
        ("10250", "tcp"), ("30000-32767", "tcp"),
    ]


def test_repo_file_uses_minor():
    repo = render("kubernetes.repo.j2", minor="1.30")
    assert "baseurl=https://pkgs.k8s.io/core:/stable:/v1.30/rpm/" in repo
