"""Error taxonomy for node bootstrap runs.

Every error here is terminal for a run: it is logged with context by the
stage sequencer and surfaced by the CLI as exit code 1.
"""
from typing import Optional, Sequence


class BootstrapError(Exception):
    """Base class for all kubeprep failures."""
    pass


class InvalidArgument(BootstrapError):
    """Raised when a CLI argument does not have an accepted shape."""
    pass


class NoAddressFound(BootstrapError):
    """Raised when no non-loopback IPv4 address exists on the host."""
    pass


class VersionResolutionFailed(BootstrapError):
    """Raised when no strict major.minor.patch release can be determined."""
    pass


class ReadinessTimeout(BootstrapError):
    """Raised when a workload does not reach its target phase before the deadline."""

    def __init__(self, description: str, target: str, timeout: float, last_phase: Optional[str] = None):
        self.description = description
        self.target = target
        self.timeout = timeout
        self.last_phase = last_phase
        super().__init__(
            f"{description} did not reach phase {target} within {timeout:g}s "
            f"(last observed: {last_phase or 'none'})"
        )


class TokenCreationFailed(BootstrapError):
    """Raised when the cluster refuses to mint a bootstrap token."""
    pass


class CertificateHashFailed(BootstrapError):
    """Raised when the CA public key cannot be read or hashed."""
    pass


class BootstrapCancelled(BootstrapError):
    """Raised when an operator or orchestrator aborts the run."""
    pass


class TemplateError(BootstrapError):
    """Raised when a configuration template cannot be rendered."""
    pass


class ConfigError(BootstrapError):
    """Raised when the installer configuration is invalid."""
    pass


class CommandError(BootstrapError):
    """Raised when a host command exits with a non-zero status."""

    def __init__(self, argv: Sequence[str], returncode: int, stderr: str = ""):
        self.argv = list(argv)
        self.returncode = returncode
        self.stderr = stderr
        message = f"Command '{' '.join(self.argv)}' exited with status {returncode}"
        if stderr:
            message += f": {stderr.strip()}"
        super().__init__(message)


class DownloadError(CommandError):
    """Raised when a release artifact cannot be downloaded."""

    def __init__(self, url: str, reason: str):
        self.url = url
        super().__init__(["download", url], 1, reason)


class StageFailed(BootstrapError):
    """A named stage failed; wraps the underlying cause."""

    def __init__(self, name: str, cause: BaseException):
        self.name = name
        self.cause = cause
        self.exit_status = getattr(cause, "returncode", None)
        detail = f" (exit status {self.exit_status})" if self.exit_status is not None else ""
        super().__init__(f"Stage '{name}' failed{detail}: {cause}")
