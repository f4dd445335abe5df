"""Cooperative polling with a fixed backoff.

Nothing in the parallel layer blocks on a condition variable: every wait is
a loop of short sleeps between attempts.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from typing import TypeVar

T = TypeVar("T")

DEFAULT_INTERVAL_S = 0.01


def poll_until(
    attempt: Callable[[], T | None],
    interval_s: float = DEFAULT_INTERVAL_S,
    should_stop: Callable[[], bool] | None = None,
) -> T | None:
    """Call ``attempt`` until it returns something other than None.

    Args:
        attempt: Zero-argument callable; None means "not yet".
        interval_s: Sleep between attempts.
        should_stop: Optional check evaluated after each failed attempt;
            when it returns True polling stops and None is returned.

    Returns:
        The first non-None result, or None if stopped early.
    """
    while True:
        result = attempt()
        if result is not None:
            return result
        if should_stop is not None and should_stop():
            return None
        time.sleep(interval_s)


def wait_for(
    condition: Callable[[], bool],
    interval_s: float = DEFAULT_INTERVAL_S,
    on_wait: Callable[[int], None] | None = None,
) -> int:
    """Sleep in fixed steps until ``condition()`` is true.

    Returns:
        Number of sleeps performed.
    """
    n = 0
    while not condition():
        if on_wait is not None:
            on_wait(n)
        time.sleep(interval_s)
        n += 1
    return n
