"""Readiness polling for cluster workloads."""

import logging
import threading
import time
from typing import Callable, Optional

import urllib3
from kubernetes.client.rest import ApiException

from ...errors import BootstrapCancelled, ReadinessTimeout

logger = logging.getLogger("kubeprep.poller")


class ReadinessPoller:
    """Blocks until a status read reports the target phase.

    Polls on a fixed interval and gives up with ReadinessTimeout once the
    deadline passes. Setting ``cancel_event`` aborts the wait with
    BootstrapCancelled.
    """

    def __init__(
        self,
        interval: float = 5.0,
        timeout: float = 600.0,
        cancel_event: Optional[threading.Event] = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Optional[Callable[[float], None]] = None,
    ):
        if interval <= 0:
            raise ValueError("interval must be positive")
        if timeout <= 0:
            raise ValueError("timeout must be positive")
        self.interval = interval
        self.timeout = timeout
        self.cancel_event = cancel_event or threading.Event()
        self.clock = clock
        self._sleep = sleep

    def _wait(self, seconds: float) -> None:
        if self._sleep is not None:
            self._sleep(seconds)
        else:
            self.cancel_event.wait(seconds)

    def wait_for(self, read_phase: Callable[[], Optional[str]], target: str, description: str) -> int:
        """Poll ``read_phase`` until it returns ``target``.

        Args:
            read_phase: One status read; returns the current phase or None
            target: Phase value to wait for
            description: Human readable name of what is polled

        Returns:
            int: Number of polls performed

        Raises:
            ReadinessTimeout: If the deadline passes first
            BootstrapCancelled: If the cancel event is set
        """
        deadline = self.clock() + self.timeout
        polls = 0
        phase = None

        while True:
            remaining = deadline - self.clock()
            if remaining <= 0:
                raise ReadinessTimeout(description, target, self.timeout, phase)
            # The first read happens one interval after the wait starts
            self._wait(min(self.interval, remaining))
            if self.cancel_event.is_set():
                raise BootstrapCancelled(f"Cancelled while waiting for {description}")
            if self.clock() >= deadline:
                raise ReadinessTimeout(description, target, self.timeout, phase)

            polls += 1
            phase = read_phase()
            logger.info(f"⏳ {description} status: {phase or 'not found'} (poll {polls})")
            if phase == target:
                logger.info(f"✅ {description} is {target}")
                return polls


def _is_transient(error: ApiException) -> bool:
    # Unset status means the request never got an HTTP response
    return error.status is None or error.status == 404 or error.status >= 500


def first_pod_phase(core_api, namespace: str, label_selector: str) -> Optional[str]:
    """Return the phase of the first pod matching ``label_selector``.

    Only the first item is inspected. Returns None while no pod exists or the
    API server cannot be reached yet (404, 5xx or no response). Authorization
    and other client errors are raised.
    """
    try:
        pods = core_api.list_namespaced_pod(namespace=namespace, label_selector=label_selector)
    except ApiException as e:
        if not _is_transient(e):
            raise
        logger.debug(f"Pod status read failed: {e.status} {e.reason}")
        return None
    except urllib3.exceptions.HTTPError as e:
        logger.debug(f"API server not reachable yet: {e}")
        return None
    if not pods.items:
        return None
    status = pods.items[0].status
    return status.phase if status else None
