"""Kubernetes release resolution."""

import logging
import re
from typing import Iterable, List, Optional

import requests
from packaging.version import Version

from ...errors import VersionResolutionFailed
from .models import KubernetesRelease

logger = logging.getLogger("kubeprep.versions")

RELEASES_URL = "https://api.github.com/repos/kubernetes/kubernetes/releases"
STRICT_TAG_RE = re.compile(r'^v?(\d+)\.(\d+)\.(\d+)$')


def select_latest_release(tags: Iterable[str]) -> KubernetesRelease:
    """Pick the highest strict ``major.minor.patch`` tag.

    Pre-releases and anything else that is not a bare three-part version
    (``v1.31.0-rc.1``, ``v1.30``) are ignored.
    """
    candidates = [t.strip() for t in tags if t and STRICT_TAG_RE.match(t.strip())]
    if not candidates:
        raise VersionResolutionFailed("No release tag matches the major.minor.patch pattern")
    latest = max(candidates, key=lambda tag: Version(tag.lstrip('v')))
    return KubernetesRelease.from_tag(latest if latest.startswith('v') else f"v{latest}")


def fetch_release_tags(
    url: str = RELEASES_URL,
    session: Optional[requests.Session] = None,
    timeout: int = 30,
) -> List[str]:
    """Fetch release tag names from the upstream release listing."""
    session = session or requests.Session()
    try:
        response = session.get(
            url,
            params={'per_page': 100},
            headers={'Accept': 'application/vnd.github+json'},
            timeout=timeout,
        )
        response.raise_for_status()
        releases = response.json()
    except (requests.RequestException, ValueError) as e:
        raise VersionResolutionFailed(f"Failed to list Kubernetes releases from {url}: {e}") from e

    if not isinstance(releases, list):
        raise VersionResolutionFailed(f"Unexpected release listing from {url}")
    return [r.get('tag_name', '') for r in releases if isinstance(r, dict)]


def resolve_release(
    pinned: Optional[str] = None,
    url: str = RELEASES_URL,
    session: Optional[requests.Session] = None,
    timeout: int = 30,
) -> KubernetesRelease:
    """Resolve the Kubernetes release to install.

    A pinned version wins; otherwise the latest upstream release is used.
    """
    if pinned:
        if not STRICT_TAG_RE.match(pinned):
            raise VersionResolutionFailed(
                f"Pinned Kubernetes version '{pinned}' is not in major.minor.patch form"
            )
        release = KubernetesRelease.from_tag(pinned if pinned.startswith('v') else f"v{pinned}")
        logger.info(f"📌 Using pinned Kubernetes version {release.patch}")
        return release

    logger.info("🔍 Resolving latest Kubernetes release")
    release = select_latest_release(fetch_release_tags(url, session=session, timeout=timeout))
    logger.info(f"✅ Latest Kubernetes release: {release.patch} (repository minor {release.minor})")
    return release
