"""Utility helpers for the kubeprep application."""
from .kube import core_v1_api, load_kubeconfig

__all__ = ['core_v1_api', 'load_kubeconfig']
