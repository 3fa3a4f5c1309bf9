"""
Node provisioning modules.
"""
from .kubeadm import KubeadmInstaller, build_context

__all__ = [
    'KubeadmInstaller',
    'build_context',
]
