"""Tests for the idle/busy gate."""

from __future__ import annotations

import threading
from typing import List

import pytest

from clickgate.gate import Gate, ObserverHandle


def test_gate_starts_open_and_claim_closes_it() -> None:
    gate = Gate("demo")
    view = gate.view
    assert view.value is True
    assert bool(view)

    claim = gate.try_claim()
    assert claim is not None
    assert view.value is False
    assert gate.try_claim() is None

    claim.release()
    assert view.value is True
    assert claim.released


def test_release_is_idempotent_and_scoped() -> None:
    gate = Gate()
    with gate.try_claim() as claim:
        assert not gate.value
    assert gate.value
    second = gate.try_claim()
    claim.release()
    # a stale release must not reopen a gate claimed again since
    assert gate.value is False
    second.release()
    assert gate.value is True


def test_every_transition_notifies_once() -> None:
    gate = Gate()
    seen: List[bool] = []
    handle = gate.view.observe(seen.append)
    assert isinstance(handle, ObserverHandle)

    claim = gate.try_claim()
    assert gate.try_claim() is None
    claim.release()
    claim.release()
    assert seen == [False, True]

    handle.dispose()
    handle.dispose()
    gate.try_claim().release()
    assert seen == [False, True]


def test_failing_observer_is_logged_and_others_still_run(caplog: pytest.LogCaptureFixture) -> None:
    gate = Gate("noisy")
    seen: List[bool] = []

    def _broken(_value: bool) -> None:
        raise RuntimeError("observer exploded")

    gate.view.observe(_broken)
    gate.view.observe(seen.append)
    with caplog.at_level("ERROR"):
        claim = gate.try_claim()
        claim.release()
    assert seen == [False, True]
    assert gate.value is True
    assert sum("observer failed" in record.getMessage() for record in caplog.records) == 2


def test_view_cannot_write_the_gate() -> None:
    view = Gate().view
    with pytest.raises(AttributeError):
        view.value = False  # type: ignore[misc]
    assert not hasattr(view, "try_claim")


def test_concurrent_claims_have_a_single_winner() -> None:
    gate = Gate()
    winners = []
    lock = threading.Lock()
    barrier = threading.Barrier(16)

    def _worker() -> None:
        barrier.wait()
        claim = gate.try_claim()
        if claim is not None:
            with lock:
                winners.append(claim)

    workers = [threading.Thread(target=_worker) for _ in range(16)]
    for worker in workers:
        worker.start()
    for worker in workers:
        worker.join()
    assert len(winners) == 1
    winners[0].release()
    assert gate.value
