"""Join credential minting on the control-plane node."""

import hashlib
import logging
from pathlib import Path
from typing import Union

from ...errors import CertificateHashFailed, CommandError, TokenCreationFailed
from .models import API_SERVER_PORT, JoinCredential
from .runner import CommandRunner

logger = logging.getLogger("kubeprep.credentials")


def create_token(runner: CommandRunner) -> str:
    """Ask the cluster for a new bootstrap token."""
    try:
        token = runner.output(['kubeadm', 'token', 'create'])
    except CommandError as e:
        raise TokenCreationFailed(f"kubeadm token create failed: {e}") from e
    if not token and not runner.dry_run:
        raise TokenCreationFailed("kubeadm token create returned no token")
    return token


def discovery_hash(public_key_der: bytes) -> str:
    """Hash a DER encoded SubjectPublicKeyInfo the way kubeadm pins CAs."""
    return f"sha256:{hashlib.sha256(public_key_der).hexdigest()}"


def read_ca_public_key(runner: CommandRunner, ca_cert: Union[str, Path]) -> bytes:
    """Extract the DER encoded public key of the cluster CA certificate."""
    try:
        pem = runner.run(['openssl', 'x509', '-pubkey', '-noout', '-in', str(ca_cert)]).stdout
        der = runner.run(
            ['openssl', 'pkey', '-pubin', '-outform', 'der'],
            input=pem.encode() if isinstance(pem, str) else pem,
            text=False,
        ).stdout
    except CommandError as e:
        raise CertificateHashFailed(f"Failed to read CA public key from {ca_cert}: {e}") from e
    if not der and not runner.dry_run:
        raise CertificateHashFailed(f"No public key found in {ca_cert}")
    return der


def mint_join_credential(
    runner: CommandRunner,
    address: str,
    ca_cert: Union[str, Path] = '/etc/kubernetes/pki/ca.crt',
    port: int = API_SERVER_PORT,
) -> JoinCredential:
    """Create a token and compose the worker join credential.

    No retries: either sub-step failing is terminal.
    """
    logger.info("🔑 Creating a new kubeadm token")
    token = create_token(runner)
    ca_hash = discovery_hash(read_ca_public_key(runner, ca_cert))
    logger.info(f"CA certificate hash: {ca_hash}")
    return JoinCredential(token=token, ca_cert_hash=ca_hash, address=address, port=port)
