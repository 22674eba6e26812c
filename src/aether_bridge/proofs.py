"""Cancellable wait for off-chain proof artifacts (attestations, relay deliveries)."""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from enum import Enum

from .config import ProofConfig
from .exceptions import ProofAbandoned
from .types import ProofArtifact

logger = logging.getLogger(__name__)

ProofFetcher = Callable[[], "ProofArtifact | None"]


class ProofStatus(str, Enum):
    PENDING = "pending"
    READY = "ready"
    ABANDONED = "abandoned"


class ProofWaiter:
    """Poll a proof source until it yields an artifact or the wait is abandoned.

    ``poll`` performs exactly one fetch and never sleeps, so callers driving
    their own scheduler can use it directly; ``wait`` loops with exponential
    backoff on the calling thread. ``abandon`` may be called from any thread.
    """

    def __init__(
        self,
        fetch: ProofFetcher,
        config: ProofConfig | None = None,
        *,
        label: str = "proof",
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._fetch = fetch
        self._config = config or ProofConfig()
        self._label = label
        self._clock = clock
        self._cancelled = threading.Event()
        self._lock = threading.Lock()
        self._status = ProofStatus.PENDING
        self._proof: ProofArtifact | None = None
        self._started = clock()
        self._polls = 0

    @property
    def status(self) -> ProofStatus:
        return self._status

    @property
    def proof(self) -> ProofArtifact | None:
        return self._proof

    @property
    def polls(self) -> int:
        return self._polls

    def abandon(self) -> None:
        with self._lock:
            if self._status == ProofStatus.PENDING:
                self._status = ProofStatus.ABANDONED
                logger.info("Abandoned %s wait after %s poll(s)", self._label, self._polls)
        self._cancelled.set()

    def poll(self) -> ProofStatus:
        if self._status != ProofStatus.PENDING:
            return self._status
        if self._expired():
            logger.warning("Giving up on %s after %.0fs", self._label, self._config.max_wait or 0)
            self.abandon()
            return self._status

        self._polls += 1
        artifact = self._fetch()
        with self._lock:
            if artifact is not None and self._status == ProofStatus.PENDING:
                self._proof = artifact
                self._status = ProofStatus.READY
                logger.debug("%s ready after %s poll(s)", self._label, self._polls)
        return self._status

    def wait(self, timeout: float | None = None) -> ProofStatus:
        """Block until the proof is ready, the wait is abandoned or ``timeout`` elapses."""

        deadline = None if timeout is None else self._clock() + timeout
        interval = self._config.poll_interval
        while self.poll() == ProofStatus.PENDING:
            delay = interval
            if deadline is not None:
                remaining = deadline - self._clock()
                if remaining <= 0:
                    break
                delay = min(delay, remaining)
            if self._cancelled.wait(delay):
                break
            interval = min(interval * self._config.backoff, self._config.max_interval)
        return self._status

    def result(self, timeout: float | None = None) -> ProofArtifact:
        """Wait like ``wait`` and return the artifact.

        Raises ``ProofAbandoned`` when the wait was cancelled and ``TimeoutError``
        when ``timeout`` elapsed with the proof still pending.
        """

        status = self.wait(timeout)
        if status == ProofStatus.ABANDONED:
            raise ProofAbandoned(f"Stopped waiting for {self._label}")
        if self._proof is None:
            raise TimeoutError(f"{self._label} still pending")
        return self._proof

    def _expired(self) -> bool:
        max_wait = self._config.max_wait
        return max_wait is not None and self._clock() - self._started >= max_wait
