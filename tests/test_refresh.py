import threading

import pytest

from masterbook.refresh import (
    FetchTimeoutError,
    RefreshCoordinator,
    RefreshMachine,
    RefreshPhase,
    RefreshState,
)


def test_machine_happy_path():
    machine = RefreshMachine()
    assert machine.state == RefreshState()

    transition = machine.tick()
    assert transition.start_fetch
    assert transition.state.phase is RefreshPhase.FETCHING
    assert transition.state.generation == 1

    done = machine.fetch_succeeded(1)
    assert done.state.phase is RefreshPhase.SUCCEEDED
    assert not done.state.in_flight


def test_tick_is_ignored_while_fetching():
    machine = RefreshMachine()
    machine.tick()
    transition = machine.tick()
    assert not transition.start_fetch
    assert transition.state.generation == 1


def test_backoff_doubles_and_gives_up_after_max_attempts():
    machine = RefreshMachine(max_attempts=3, base_delay=2.0)
    machine.tick()

    first = machine.fetch_failed(1, "boom")
    assert first.state.phase is RefreshPhase.RETRYING
    assert first.retry_delay == 2.0
    assert machine.retry_due(1).state.attempt == 2

    second = machine.fetch_failed(1, "boom")
    assert second.retry_delay == 4.0
    machine.retry_due(1)

    final = machine.fetch_failed(1, "boom")
    assert final.state.phase is RefreshPhase.FAILED
    assert final.state.attempt == 3
    assert final.state.error == "boom"
    assert final.retry_delay is None


def test_non_retryable_failure_fails_immediately():
    machine = RefreshMachine(max_attempts=3)
    machine.tick()
    transition = machine.fetch_failed(1, "not configured", retryable=False)
    assert transition.state.phase is RefreshPhase.FAILED
    assert transition.state.attempt == 1


def test_manual_refresh_cancels_running_generation():
    machine = RefreshMachine()
    machine.tick()
    transition = machine.request_refresh()
    assert transition.start_fetch
    assert transition.state.generation == 2

    stale = machine.fetch_succeeded(1)
    assert stale.stale
    assert machine.state.phase is RefreshPhase.FETCHING

    assert machine.fetch_succeeded(2).state.phase is RefreshPhase.SUCCEEDED


def test_tick_after_completion_starts_new_cycle():
    machine = RefreshMachine()
    machine.tick()
    machine.fetch_failed(1, "boom", retryable=False)
    transition = machine.tick()
    assert transition.start_fetch
    assert transition.state.generation == 2
    assert transition.state.error is None


def test_invalid_attempt_count():
    with pytest.raises(ValueError):
        RefreshMachine(max_attempts=0)


class _Recorder:
    def __init__(self):
        self.results = []
        self.errors = []

    def success(self, value):
        self.results.append(value)

    def failure(self, error):
        self.errors.append(error)


def _coordinator(fetcher, recorder, **kwargs):
    options = {"timeout": 2.0, "max_attempts": 3, "base_delay": 0.0}
    options.update(kwargs)
    return RefreshCoordinator(fetcher, recorder.success, recorder.failure, **options)


def test_coordinator_retries_until_success():
    calls = []

    def flaky():
        calls.append(1)
        if len(calls) < 3:
            raise ConnectionError("upstream down")
        return "sheets"

    recorder = _Recorder()
    coordinator = _coordinator(flaky, recorder)
    try:
        state = coordinator.run_cycle()
    finally:
        coordinator.shutdown()

    assert state.phase is RefreshPhase.SUCCEEDED
    assert state.attempt == 3
    assert recorder.results == ["sheets"]
    assert recorder.errors == []
    assert coordinator.last_fetch_seconds is not None


def test_coordinator_reports_failure_once_after_exhausting_retries():
    def broken():
        raise ConnectionError("upstream down")

    recorder = _Recorder()
    coordinator = _coordinator(broken, recorder, max_attempts=2)
    try:
        state = coordinator.run_cycle()
    finally:
        coordinator.shutdown()

    assert state.phase is RefreshPhase.FAILED
    assert state.attempt == 2
    assert len(recorder.errors) == 1
    assert isinstance(recorder.errors[0], ConnectionError)


def test_coordinator_skips_retries_for_non_retryable_errors():
    calls = []

    def misconfigured():
        calls.append(1)
        raise LookupError("no spreadsheet id")

    recorder = _Recorder()
    coordinator = _coordinator(misconfigured, recorder, non_retryable=(LookupError,))
    try:
        state = coordinator.run_cycle()
    finally:
        coordinator.shutdown()

    assert state.phase is RefreshPhase.FAILED
    assert len(calls) == 1


def test_coordinator_times_out_slow_fetch():
    release = threading.Event()

    def slow():
        release.wait(5)
        return "late"

    recorder = _Recorder()
    coordinator = _coordinator(slow, recorder, timeout=0.05, max_attempts=1)
    try:
        state = coordinator.run_cycle()
    finally:
        release.set()
        coordinator.shutdown()

    assert state.phase is RefreshPhase.FAILED
    assert isinstance(recorder.errors[0], FetchTimeoutError)
    assert recorder.results == []


def test_coordinator_coalesces_ticks_while_in_flight():
    started = threading.Event()
    release = threading.Event()

    def blocking():
        started.set()
        release.wait(5)
        return "sheets"

    recorder = _Recorder()
    coordinator = _coordinator(blocking, recorder, timeout=5.0)
    try:
        future = coordinator.trigger()
        assert started.wait(5)
        assert coordinator.trigger() is None
        release.set()
        state = future.result(timeout=5)
    finally:
        release.set()
        coordinator.shutdown()

    assert state.phase is RefreshPhase.SUCCEEDED
    assert recorder.results == ["sheets"]


def test_manual_refresh_discards_superseded_result():
    first_started = threading.Event()
    release_first = threading.Event()
    calls = []

    def fetcher():
        calls.append(1)
        if len(calls) == 1:
            first_started.set()
            release_first.wait(5)
            return "old"
        return "new"

    recorder = _Recorder()
    coordinator = _coordinator(fetcher, recorder, timeout=5.0)
    try:
        background = coordinator.trigger()
        assert first_started.wait(5)
        manual_state = coordinator.run_cycle(manual=True)
        release_first.set()
        background.result(timeout=5)
    finally:
        release_first.set()
        coordinator.shutdown()

    assert manual_state.generation == 2
    assert manual_state.phase is RefreshPhase.SUCCEEDED
    assert recorder.results == ["new"]
    assert coordinator.state.generation == 2
