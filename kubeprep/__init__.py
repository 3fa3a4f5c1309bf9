"""kubeprep - provision kubeadm control-plane and worker nodes."""

__version__ = '0.1.0'
