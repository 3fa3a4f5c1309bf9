import os
from pathlib import Path

from kubernetes import client, config


def load_kubeconfig(path: str = None) -> str:
    """
    Load the kubeconfig from a given path or from the KUBECONFIG env var.
    Returns the actual path used to load the kubeconfig.
    """
    path = path or os.environ.get("KUBECONFIG")
    if not path:
        raise ValueError("No kubeconfig path provided and KUBECONFIG is not set.")

    resolved = Path(os.path.expanduser(str(path))).resolve()
    if not resolved.exists():
        raise FileNotFoundError(f"❌ Kubeconfig not found: {resolved}")
    config.load_kube_config(config_file=str(resolved))
    return str(resolved)


def core_v1_api(kubeconfig: str = None) -> client.CoreV1Api:
    """Return a CoreV1Api bound to the cluster described by ``kubeconfig``."""
    load_kubeconfig(kubeconfig)
    return client.CoreV1Api()
