"""Host command execution and artifact downloads.

All host side effects of the installer go through :class:`CommandRunner` and
:class:`ArtifactFetcher`, which both honour dry-run mode.
"""

import logging
import os
import subprocess
import tempfile
from pathlib import Path
from typing import Dict, Optional, Sequence, Union

import requests

from ...errors import CommandError, DownloadError

logger = logging.getLogger("kubeprep.runner")


class CommandRunner:
    """Runs commands on the local host."""

    def __init__(self, dry_run: bool = False, default_timeout: Optional[int] = None):
        self.dry_run = dry_run
        self.default_timeout = default_timeout

    def run(
        self,
        argv: Sequence[str],
        check: bool = True,
        input: Optional[Union[str, bytes]] = None,
        env: Optional[Dict[str, str]] = None,
        text: bool = True,
        timeout: Optional[int] = None,
    ) -> subprocess.CompletedProcess:
        """Execute a command and capture its output.

        Args:
            argv: Command and arguments
            check: If True, raise CommandError on non-zero exit
            input: Data passed on stdin
            env: Extra environment variables merged over os.environ
            text: Decode output as text (False returns bytes)
            timeout: Command timeout in seconds

        Returns:
            The completed process

        Raises:
            CommandError: If check=True and the command fails or cannot be started
        """
        argv = [str(a) for a in argv]
        if self.dry_run:
            logger.info("[DRY RUN] Would execute: %s", ' '.join(argv))
            return subprocess.CompletedProcess(argv, 0, '' if text else b'', '' if text else b'')

        logger.debug("Executing: %s", ' '.join(argv))
        run_env = None
        if env:
            run_env = dict(os.environ)
            run_env.update(env)

        try:
            result = subprocess.run(
                argv,
                input=input,
                capture_output=True,
                text=text,
                env=run_env,
                timeout=timeout or self.default_timeout,
            )
        except FileNotFoundError as e:
            raise CommandError(argv, 127, str(e)) from e
        except subprocess.TimeoutExpired as e:
            raise CommandError(argv, 124, f"timed out after {e.timeout}s") from e

        if result.returncode != 0:
            stderr = result.stderr if text else result.stderr.decode(errors='replace')
            logger.debug("Command exited with %d: %s", result.returncode, stderr.strip())
            if check:
                raise CommandError(argv, result.returncode, stderr)
        return result

    def output(self, argv: Sequence[str], **kwargs) -> str:
        """Run a command and return its stripped stdout."""
        return self.run(argv, **kwargs).stdout.strip()

    def write_file(self, path: Union[str, Path], content: str, mode: int = 0o644) -> None:
        """Write a file, replacing any previous content."""
        path = Path(path)
        if self.dry_run:
            logger.info("[DRY RUN] Would write %s (%d bytes)", path, len(content))
            return
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding='utf-8')
        os.chmod(path, mode)
        logger.debug("Wrote %s", path)

    def read_file(self, path: Union[str, Path]) -> str:
        path = Path(path)
        if not path.exists():
            return ''
        return path.read_text(encoding='utf-8')

    def exists(self, path: Union[str, Path]) -> bool:
        return Path(path).exists()


class ArtifactFetcher:
    """Downloads release artifacts over HTTPS."""

    def __init__(self, session: Optional[requests.Session] = None, timeout: int = 60,
                 dry_run: bool = False, chunk_size: int = 1 << 16):
        self.session = session or requests.Session()
        self.timeout = timeout
        self.dry_run = dry_run
        self.chunk_size = chunk_size

    def download(self, url: str, dest: Union[str, Path]) -> Path:
        """Download ``url`` to ``dest``, replacing any previous file.

        The body is streamed into a temporary file in the destination directory
        and moved into place only once complete, so an interrupted download
        never leaves a truncated artifact behind.
        """
        dest = Path(dest)
        if self.dry_run:
            logger.info("[DRY RUN] Would download %s -> %s", url, dest)
            return dest

        dest.parent.mkdir(parents=True, exist_ok=True)
        logger.info("⬇️  Downloading %s", url)
        fd, tmp_name = tempfile.mkstemp(dir=str(dest.parent), prefix=f".{dest.name}.")
        try:
            with os.fdopen(fd, 'wb') as fh:
                with self.session.get(url, stream=True, timeout=self.timeout) as response:
                    response.raise_for_status()
                    for chunk in response.iter_content(chunk_size=self.chunk_size):
                        if chunk:
                            fh.write(chunk)
            os.replace(tmp_name, dest)
        except requests.RequestException as e:
            _remove_quietly(tmp_name)
            raise DownloadError(url, str(e)) from e
        except OSError:
            _remove_quietly(tmp_name)
            raise
        logger.debug("Saved %s", dest)
        return dest


def _remove_quietly(path: str) -> None:
    try:
        os.unlink(path)
    except FileNotFoundError:
        pass
