"""Host and cluster configuration rendering.

Every file the installer writes is a Jinja2 template under ``templates/``.
Templates are rendered with :func:`render`, which checks the supplied fields
against the variables the template declares before rendering, so a missing
or misspelled placeholder is reported instead of producing a half-filled file.

Templates and their fields:
- kubeadm-config.yaml.j2: node_ip, kubernetes_version
- containerd.service.j2: containerd_bin
- kubernetes.repo.j2: minor
- modules-load.conf.j2: modules
- sysctl.conf.j2: settings
- firewalld-service.xml.j2: short, description, ports
"""

import logging
import os
from typing import Any, Dict

from jinja2 import (
    Environment,
    FileSystemLoader,
    StrictUndefined,
    TemplateNotFound,
    TemplateSyntaxError,
    UndefinedError,
    meta,
)

from ...errors import TemplateError

logger = logging.getLogger("kubeprep.configuration")


def get_template_path() -> str:
    """Get the absolute path to the templates directory."""
    return os.path.join(os.path.dirname(os.path.abspath(__file__)), 'templates')


def _environment() -> Environment:
    return Environment(
        loader=FileSystemLoader(get_template_path()),
        trim_blocks=True,
        lstrip_blocks=True,
        keep_trailing_newline=True,
        undefined=StrictUndefined,
    )


def template_fields(name: str) -> set:
    """Return the variables a template expects."""
    env = _environment()
    try:
        source = env.loader.get_source(env, name)[0]
    except TemplateNotFound as e:
        raise TemplateError(f"Configuration template not found: {name}") from e
    try:
        return meta.find_undeclared_variables(env.parse(source))
    except TemplateSyntaxError as e:
        raise TemplateError(f"Template syntax error in {name}: {e}") from e


def render(name: str, **fields: Any) -> str:
    """Render a template after validating its substitution fields.

    Raises:
        TemplateError: If a declared field is missing or empty, an unknown
            field is supplied, or the template fails to render
    """
    expected = template_fields(name)
    missing = sorted(f for f in expected if f not in fields or fields[f] in (None, ''))
    unknown = sorted(set(fields) - expected)
    if missing:
        raise TemplateError(f"Missing value for {', '.join(missing)} in template {name}")
    if unknown:
        raise TemplateError(f"Unknown field {', '.join(unknown)} for template {name}")

    try:
        return _environment().get_template(name).render(**fields)
    except UndefinedError as e:
        raise TemplateError(f"Missing required template variable in {name}: {e}") from e


def kubeadm_config(node_ip: str, kubernetes_version: str) -> str:
    return render('kubeadm-config.yaml.j2', node_ip=node_ip, kubernetes_version=kubernetes_version)


def firewalld_service(short: str, description: str, ports: Dict[str, str]) -> str:
    """Render a firewalld service definition; ``ports`` maps port or port range to protocol."""
    return render('firewalld-service.xml.j2', short=short, description=description, ports=ports)
