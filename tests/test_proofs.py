from __future__ import annotations

import threading

import pytest

from aether_bridge.config import ProofConfig
from aether_bridge.exceptions import ProofAbandoned
from aether_bridge.proofs import ProofStatus, ProofWaiter
from aether_bridge.types import ProofArtifact

FAST = ProofConfig(poll_interval=0.01, backoff=2.0, max_interval=0.02)
ARTIFACT = ProofArtifact(payload=b"\x01", message=b"\x02")


def _fetcher(results):
    iterator = iter(results)
    calls = []

    def fetch():
        calls.append(1)
        return next(iterator, None)

    return fetch, calls


def test_poll_is_one_fetch() -> None:
    fetch, calls = _fetcher([None, ARTIFACT])
    waiter = ProofWaiter(fetch, FAST)

    assert waiter.poll() == ProofStatus.PENDING
    assert waiter.poll() == ProofStatus.READY
    assert waiter.poll() == ProofStatus.READY
    assert len(calls) == 2
    assert waiter.proof == ARTIFACT


def test_wait_returns_once_ready() -> None:
    fetch, calls = _fetcher([None, None, ARTIFACT])
    waiter = ProofWaiter(fetch, FAST)

    assert waiter.wait(timeout=5) == ProofStatus.READY
    assert waiter.polls == 3


def test_wait_times_out_as_pending() -> None:
    waiter = ProofWaiter(lambda: None, FAST)

    assert waiter.wait(timeout=0.05) == ProofStatus.PENDING


def test_abandon_from_another_thread_stops_wait() -> None:
    waiter = ProofWaiter(lambda: None, ProofConfig(poll_interval=10.0))
    timer = threading.Timer(0.05, waiter.abandon)
    timer.start()

    assert waiter.wait() == ProofStatus.ABANDONED
    assert waiter.proof is None


def test_max_wait_abandons_instead_of_failing() -> None:
    now = [0.0]
    waiter = ProofWaiter(lambda: None, ProofConfig(max_wait=30.0), clock=lambda: now[0])

    assert waiter.poll() == ProofStatus.PENDING
    now[0] = 31.0
    assert waiter.poll() == ProofStatus.ABANDONED


def test_late_artifact_after_abandon_is_ignored() -> None:
    fetch, _ = _fetcher([ARTIFACT])
    waiter = ProofWaiter(fetch, FAST)
    waiter.abandon()

    assert waiter.poll() == ProofStatus.ABANDONED
    assert waiter.proof is None


def test_result_returns_artifact() -> None:
    fetch, _ = _fetcher([None, ARTIFACT])

    assert ProofWaiter(fetch, FAST).result(timeout=5) == ARTIFACT


def test_result_after_abandon_raises() -> None:
    waiter = ProofWaiter(lambda: None, FAST)
    waiter.abandon()

    with pytest.raises(ProofAbandoned):
        waiter.result()


def test_result_still_pending_times_out() -> None:
    with pytest.raises(TimeoutError):
        ProofWaiter(lambda: None, FAST).result(timeout=0.03)
