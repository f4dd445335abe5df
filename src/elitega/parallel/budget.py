"""Shared evaluation counter with a sticky termination flag."""

from __future__ import annotations

import threading

from ..core.errors import ConfigurationError


class EvaluationBudget:
    """Counts evaluations across all workers and signals termination.

    The flag is a ``threading.Event`` that is set at most once logically and
    never cleared; it is only ever read with ``is_set()``, never waited on.
    """

    def __init__(self, target: int) -> None:
        if target < 1:
            raise ConfigurationError(f"Evaluation budget must be >= 1, got {target}")
        self._target = int(target)
        self._count = 0
        self._lock = threading.Lock()
        self._terminated = threading.Event()
        self._failure: BaseException | None = None

    @property
    def target(self) -> int:
        return self._target

    @property
    def count(self) -> int:
        return self._count

    @property
    def failure(self) -> BaseException | None:
        """First fatal error recorded through ``abort``, if any."""
        return self._failure

    def increment_and_check(self) -> bool:
        """Record one evaluation; True if the budget is now reached."""
        with self._lock:
            self._count += 1
            return self._check_and_set_locked()

    def check_and_set_termination(self) -> bool:
        """Re-check the count and set the flag if the budget is reached."""
        with self._lock:
            return self._check_and_set_locked()

    def termination_met(self) -> bool:
        return self._terminated.is_set()

    def abort(self, error: BaseException) -> None:
        """Record a fatal error and stop every task at its next checkpoint."""
        with self._lock:
            if self._failure is None:
                self._failure = error
        self._terminated.set()

    def _check_and_set_locked(self) -> bool:
        if self._count >= self._target:
            self._terminated.set()
            return True
        return False

    def __repr__(self) -> str:
        return (
            f"EvaluationBudget(count={self._count}, target={self._target}, "
            f"terminated={self.termination_met()})"
        )
