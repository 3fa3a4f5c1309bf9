"""Configuration management for kubeprep.

Configuration is loaded from multiple sources with the following precedence:
1. Explicitly passed CLI options
2. Environment variables (``KUBEPREP_*``, a ``.env`` file is honoured)
3. Configuration file (YAML)
4. Default values
"""
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError, field_validator

from .errors import ConfigError

logger = logging.getLogger("kubeprep.config")

# Load environment variables from .env file if it exists
load_dotenv()

DEFAULT_CONFIG_PATHS = [
    Path("/etc/kubeprep/config.yaml"),
    Path("~/.config/kubeprep/config.yaml"),
    Path("kubeprep.yaml"),
]

# Environment variable -> (section, key)
ENV_OVERRIDES = {
    "KUBEPREP_KUBERNETES_VERSION": ("kubernetes", "version"),
    "KUBEPREP_RELEASES_URL": ("kubernetes", "releases_url"),
    "KUBEPREP_CONTAINERD_VERSION": ("versions", "containerd"),
    "KUBEPREP_RUNC_VERSION": ("versions", "runc"),
    "KUBEPREP_CNI_PLUGINS_VERSION": ("versions", "cni_plugins"),
    "KUBEPREP_ARCH": ("versions", "arch"),
    "KUBEPREP_POD_NETWORK_MANIFEST": ("network", "pod_network_manifest"),
    "KUBEPREP_READINESS_INTERVAL": ("polling", "interval"),
    "KUBEPREP_READINESS_TIMEOUT": ("polling", "timeout"),
    "KUBEPREP_HTTP_TIMEOUT": ("polling", "http_timeout"),
    "KUBEPREP_LOG_LEVEL": ("logging", "level"),
    "KUBEPREP_LOG_FILE": ("logging", "file"),
}


class VersionsConfig(BaseModel):
    """Pinned versions of runtime components."""
    containerd: str = "1.7.9"
    runc: str = "v1.1.10"
    cni_plugins: str = "1.3.0"
    arch: str = "amd64"


class KubernetesConfig(BaseModel):
    """Kubernetes release selection."""
    version: Optional[str] = Field(
        default=None,
        description="Pin an exact major.minor.patch release instead of resolving the latest"
    )
    releases_url: str = "https://api.github.com/repos/kubernetes/kubernetes/releases"


class NetworkConfig(BaseModel):
    """Pod network add-on settings."""
    pod_network_manifest: str = "https://docs.projectcalico.org/manifests/calico.yaml"
    pod_network_namespace: str = "kube-system"
    pod_network_selector: str = "k8s-app=calico-node"


class PollingConfig(BaseModel):
    """Readiness polling and network timeouts (seconds)."""
    interval: float = Field(default=5.0, gt=0)
    timeout: float = Field(default=600.0, gt=0)
    http_timeout: int = Field(default=60, gt=0)


class LoggingConfig(BaseModel):
    """Logging configuration."""
    level: str = "INFO"
    file: Optional[str] = Field(
        default=None,
        description="Log file path; defaults to the per-role install log"
    )

    @field_validator("level")
    @classmethod
    def normalize_level(cls, v: str) -> str:
        level = v.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log level: {v}")
        return level


class PathsConfig(BaseModel):
    """Host path overrides; unset fields keep the built-in locations."""
    kubeadm_config: Optional[str] = None
    admin_kubeconfig: Optional[str] = None
    ca_cert: Optional[str] = None
    download_dir: Optional[str] = None


class InstallerConfig(BaseModel):
    """kubeprep configuration."""
    versions: VersionsConfig = Field(default_factory=VersionsConfig)
    kubernetes: KubernetesConfig = Field(default_factory=KubernetesConfig)
    network: NetworkConfig = Field(default_factory=NetworkConfig)
    polling: PollingConfig = Field(default_factory=PollingConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    paths: PathsConfig = Field(default_factory=PathsConfig)

    model_config = {"extra": "ignore"}

    @classmethod
    def load(cls, config_path: Optional[Union[str, Path]] = None,
             environ: Optional[Dict[str, str]] = None) -> 'InstallerConfig':
        """Load configuration from file and environment variables.

        Raises:
            ConfigError: If an explicit file is missing or any value is invalid
        """
        config_data: Dict[str, Any] = {}

        if config_path:
            path = Path(config_path).expanduser().absolute()
            if not path.exists():
                raise ConfigError(f"Configuration file not found: {path}")
            config_data = cls._load_config_file(path)
        else:
            for path in DEFAULT_CONFIG_PATHS:
                path = path.expanduser().absolute()
                if path.exists():
                    config_data = cls._load_config_file(path)
                    break

        _apply_env_overrides(config_data, os.environ if environ is None else environ)

        try:
            return cls(**config_data)
        except ValidationError as e:
            raise ConfigError(f"Invalid configuration: {e}") from e

    @staticmethod
    def _load_config_file(path: Path) -> Dict[str, Any]:
        """Load configuration from a YAML file."""
        logger.debug(f"Loading configuration from {path}")
        try:
            with open(path, 'r') as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(f"Failed to load config from {path}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigError(f"Configuration in {path} must be a mapping")
        return data

    def save(self, path: Union[str, Path]) -> None:
        """Save configuration to a file."""
        path = Path(path).expanduser().absolute()
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'w') as f:
            yaml.safe_dump(self.model_dump(exclude_none=True), f, default_flow_style=False, sort_keys=False)


def _apply_env_overrides(config_data: Dict[str, Any], environ) -> List[str]:
    applied = []
    for var, (section, key) in ENV_OVERRIDES.items():
        value = environ.get(var)
        if value in (None, ""):
            continue
        section_data = config_data.setdefault(section, {}) or {}
        section_data[key] = value
        config_data[section] = section_data
        applied.append(var)
    if applied:
        logger.debug(f"Applied environment overrides: {', '.join(applied)}")
    return applied
