"""Exclusive-access guard used around elite archive operations.

A guard is only ever taken with a non-blocking attempt; callers that need
it poll with a fixed backoff instead of waiting on the underlying lock.
"""

from __future__ import annotations

import threading

from ..core.errors import ProtocolViolationError


class AccessGuard:
    """Non-blocking mutual exclusion with owner tracking.

    Releasing a guard that is not held, or releasing it from a thread other
    than the holder, raises ProtocolViolationError.
    """

    def __init__(self, name: str) -> None:
        self.name = name
        self._lock = threading.Lock()
        self._owner: int | None = None

    def try_acquire(self) -> bool:
        """Take the guard if free; never waits."""
        if self._lock.acquire(blocking=False):
            self._owner = threading.get_ident()
            return True
        return False

    def release(self) -> None:
        owner = self._owner
        if owner is None or not self._lock.locked():
            raise ProtocolViolationError(f"Guard '{self.name}' released while not held")
        if owner != threading.get_ident():
            raise ProtocolViolationError(
                f"Guard '{self.name}' released by a thread that does not hold it"
            )
        self._owner = None
        self._lock.release()

    @property
    def held(self) -> bool:
        return self._lock.locked()

    @property
    def held_by_current_thread(self) -> bool:
        return self._owner == threading.get_ident()

    def __repr__(self) -> str:
        return f"AccessGuard({self.name!r}, held={self.held})"
