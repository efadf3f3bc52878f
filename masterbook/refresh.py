"""Refresh loop: an explicit state machine plus a thread-backed coordinator.

The machine is pure bookkeeping and can be driven step by step in tests.
The coordinator wires it to a real fetch callable, bounding each attempt with
a timeout, backing off between retries and discarding results that belong to
a cancelled generation.
"""
from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from dataclasses import dataclass, replace
from enum import Enum
from typing import Callable, Generic, Tuple, Type, TypeVar

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")


class RefreshPhase(str, Enum):
    IDLE = "idle"
    FETCHING = "fetching"
    RETRYING = "retrying"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class FetchTimeoutError(TimeoutError):
    """A single fetch attempt exceeded the configured wait."""


@dataclass(frozen=True)
class RefreshState:
    phase: RefreshPhase = RefreshPhase.IDLE
    attempt: int = 0
    generation: int = 0
    error: str | None = None

    @property
    def in_flight(self) -> bool:
        return self.phase in (RefreshPhase.FETCHING, RefreshPhase.RETRYING)


@dataclass(frozen=True)
class Transition:
    """Outcome of feeding one event to :class:`RefreshMachine`."""

    state: RefreshState
    start_fetch: bool = False
    retry_delay: float | None = None
    stale: bool = False


class RefreshMachine:
    """idle -> fetching -> (retrying -> fetching)* -> succeeded | failed.

    Every fetch cycle gets a generation number. Starting a new cycle bumps it,
    which cancels the previous one: completion events carrying an old
    generation are reported as stale and change nothing.
    """

    def __init__(self, max_attempts: int = 3, base_delay: float = 1.0):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self._state = RefreshState()

    @property
    def state(self) -> RefreshState:
        return self._state

    def backoff_delay(self, attempt: int) -> float:
        return self.base_delay * (2 ** (attempt - 1))

    def _start(self) -> Transition:
        self._state = RefreshState(
            phase=RefreshPhase.FETCHING,
            attempt=1,
            generation=self._state.generation + 1,
        )
        return Transition(self._state, start_fetch=True)

    def _is_stale(self, generation: int, *phases: RefreshPhase) -> bool:
        return generation != self._state.generation or self._state.phase not in phases

    def tick(self) -> Transition:
        """Timer event; ignored while a cycle is already running."""
        if self._state.in_flight:
            return Transition(self._state)
        return self._start()

    def request_refresh(self) -> Transition:
        """Manual refresh; supersedes any running cycle."""
        if self._state.in_flight:
            LOGGER.debug("Cancelling refresh generation %d", self._state.generation)
        return self._start()

    def fetch_succeeded(self, generation: int) -> Transition:
        if self._is_stale(generation, RefreshPhase.FETCHING):
            return Transition(self._state, stale=True)
        self._state = replace(self._state, phase=RefreshPhase.SUCCEEDED, error=None)
        return Transition(self._state)

    def fetch_failed(self, generation: int, error: str, retryable: bool = True) -> Transition:
        if self._is_stale(generation, RefreshPhase.FETCHING):
            return Transition(self._state, stale=True)
        attempt = self._state.attempt
        if retryable and attempt < self.max_attempts:
            self._state = replace(self._state, phase=RefreshPhase.RETRYING, error=error)
            return Transition(self._state, retry_delay=self.backoff_delay(attempt))
        self._state = replace(self._state, phase=RefreshPhase.FAILED, error=error)
        return Transition(self._state)

    def retry_due(self, generation: int) -> Transition:
        if self._is_stale(generation, RefreshPhase.RETRYING):
            return Transition(self._state, stale=True)
        self._state = replace(self._state, phase=RefreshPhase.FETCHING, attempt=self._state.attempt + 1)
        return Transition(self._state, start_fetch=True)


class RefreshCoordinator(Generic[T]):
    """Run fetch cycles for a :class:`RefreshMachine`.

    ``on_success`` and ``on_failure`` are invoked under the coordinator lock and
    only for the current generation, so at most one result is applied per
    cycle.
    """

    def __init__(
        self,
        fetcher: Callable[[], T],
        on_success: Callable[[T], None],
        on_failure: Callable[[BaseException], None],
        *,
        timeout: float = 15.0,
        max_attempts: int = 3,
        base_delay: float = 1.0,
        non_retryable: Tuple[Type[BaseException], ...] = (),
    ):
        self._fetcher = fetcher
        self._on_success = on_success
        self._on_failure = on_failure
        self._timeout = timeout
        self._non_retryable = non_retryable
        self._machine = RefreshMachine(max_attempts=max_attempts, base_delay=base_delay)
        self._cond = threading.Condition(threading.Lock())
        self._fetch_pool = ThreadPoolExecutor(max_workers=2, thread_name_prefix="sheets-fetch")
        self._cycle_pool = ThreadPoolExecutor(max_workers=2, thread_name_prefix="sheets-refresh")
        self.last_fetch_seconds: float | None = None

    @property
    def state(self) -> RefreshState:
        with self._cond:
            return self._machine.state

    def _begin(self, manual: bool) -> int | None:
        with self._cond:
            transition = self._machine.request_refresh() if manual else self._machine.tick()
            if not transition.start_fetch:
                LOGGER.debug("Refresh tick skipped; generation %d in flight", transition.state.generation)
                return None
            # Wake any older cycle sleeping through its backoff.
            self._cond.notify_all()
            return transition.state.generation

    def run_cycle(self, manual: bool = False) -> RefreshState:
        """Run one cycle in the calling thread and return the resulting state."""

        generation = self._begin(manual)
        if generation is None:
            return self.state
        return self._run(generation)

    def trigger(self, manual: bool = False) -> Future | None:
        """Start a cycle in the background; ``None`` when the tick was coalesced."""

        generation = self._begin(manual)
        if generation is None:
            return None
        return self._cycle_pool.submit(self._run, generation)

    def _fetch_once(self) -> T:
        future = self._fetch_pool.submit(self._fetcher)
        try:
            return future.result(timeout=self._timeout)
        except FutureTimeout as exc:
            future.cancel()
            raise FetchTimeoutError(f"Fetch exceeded {self._timeout:g}s") from exc

    def _superseded(self, generation: int) -> bool:
        return self._machine.state.generation != generation

    def _run(self, generation: int) -> RefreshState:
        while True:
            started = time.perf_counter()
            try:
                result = self._fetch_once()
            except Exception as exc:
                elapsed = time.perf_counter() - started
                retryable = not isinstance(exc, self._non_retryable)
                with self._cond:
                    transition = self._machine.fetch_failed(generation, str(exc), retryable)
                    if transition.stale:
                        LOGGER.info("Discarding failure from cancelled refresh generation %d", generation)
                        return self._machine.state
                    LOGGER.warning(
                        "Refresh attempt %d/%d failed after %.2fs: %s",
                        transition.state.attempt,
                        self._machine.max_attempts,
                        elapsed,
                        exc,
                    )
                    if transition.retry_delay is None:
                        self._on_failure(exc)
                        return transition.state
                    cancelled = self._cond.wait_for(
                        lambda: self._superseded(generation), timeout=transition.retry_delay
                    )
                    if cancelled:
                        return self._machine.state
                    transition = self._machine.retry_due(generation)
                    if transition.stale:
                        return self._machine.state
                continue

            elapsed = time.perf_counter() - started
            with self._cond:
                transition = self._machine.fetch_succeeded(generation)
                if transition.stale:
                    LOGGER.info("Discarding result from cancelled refresh generation %d", generation)
                    return self._machine.state
                self.last_fetch_seconds = elapsed
                self._on_success(result)
                LOGGER.info(
                    "Refresh generation %d succeeded on attempt %d in %.2fs",
                    generation,
                    transition.state.attempt,
                    elapsed,
                )
                return transition.state

    def shutdown(self) -> None:
        self._fetch_pool.shutdown(wait=False, cancel_futures=True)
        self._cycle_pool.shutdown(wait=False, cancel_futures=True)


__all__ = [
    "FetchTimeoutError",
    "RefreshCoordinator",
    "RefreshMachine",
    "RefreshPhase",
    "RefreshState",
    "Transition",
]
