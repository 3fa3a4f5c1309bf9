"""Logging configuration for the kubeprep package."""
import logging
import sys
from pathlib import Path
from typing import Optional, Union

CONSOLE_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
# Install log lines look like "2024-05-01 12:00:00 : message"
FILE_FORMAT = '%(asctime)s : %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

CONTROL_PLANE_LOG_FILE = Path('/var/log/k8s_install.log')
WORKER_LOG_FILE = Path('/var/log/k8s_worker_install.log')


def setup_logger(
    name: str = 'kubeprep',
    level: int = logging.INFO,
    log_file: Optional[Union[str, Path]] = None,
) -> logging.Logger:
    """
    Set up the package logger with console and optional append-only file output.

    Args:
        name: The name of the logger
        level: The logging level (default: logging.INFO)
        log_file: Path of the install log; parent directories are created

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)
    logger.propagate = False

    # Re-running setup replaces handlers instead of stacking them
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
        handler.close()

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(level)
    console.setFormatter(logging.Formatter(CONSOLE_FORMAT, datefmt=DATE_FORMAT))
    logger.addHandler(console)

    if log_file:
        log_path = Path(log_file).expanduser()
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, mode='a', encoding='utf-8')
        file_handler.setLevel(level)
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt=DATE_FORMAT))
        logger.addHandler(file_handler)

    # Disable debug logging for noisy libraries
    if level > logging.DEBUG:
        logging.getLogger('urllib3').setLevel(logging.WARNING)
        logging.getLogger('kubernetes').setLevel(logging.WARNING)

    return logger
