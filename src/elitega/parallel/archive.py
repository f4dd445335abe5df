"""Bounded elite archive shared by all workers.

The archive keeps at most ``capacity`` evaluated designs. Admission and
live sampling run under one exclusive-access guard. After every change
an immutable snapshot of the members is published; readers that find
the live guard busy sample from that snapshot under a second guard
instead, so a sample may lag the live archive by one admission.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from ..core.design import Design
from ..core.errors import ConfigurationError, NotEvaluatedError
from .guard import AccessGuard
from .polling import DEFAULT_INTERVAL_S, poll_until


@dataclass(frozen=True)
class AdmitResult:
    """Outcome of one admission check that obtained the guard."""

    stored: bool
    evicted: Design | None = None
    slot: int | None = None


@dataclass
class ArchiveStats:
    stored: int = 0
    rejected: int = 0
    evicted: int = 0
    live_samples: int = 0
    stale_samples: int = 0

    def to_dict(self) -> dict[str, int]:
        return dict(self.__dict__)


class EliteArchive:
    """Top-K archive with a live tier and a published-snapshot tier."""

    def __init__(self, capacity: int, poll_interval_s: float = DEFAULT_INTERVAL_S) -> None:
        if capacity < 1:
            raise ConfigurationError(f"Elite size must be >= 1, got {capacity}")
        self.capacity = int(capacity)
        self.poll_interval_s = poll_interval_s
        # (admission sequence number, design) per slot; slot order is scan order
        self._entries: list[tuple[int, Design]] = []
        self._next_seq = 0
        self._snapshot: tuple[Design, ...] = ()
        self.live_guard = AccessGuard("elite-live")
        self.snapshot_guard = AccessGuard("elite-snapshot")
        self.stats = ArchiveStats()

    def __len__(self) -> int:
        return len(self._snapshot)

    def published(self) -> tuple[Design, ...]:
        """Most recently published members (read-only, possibly stale)."""
        return self._snapshot

    # --- admission ---

    def offer(self, design: Design) -> AdmitResult | None:
        """Single admission attempt.

        Returns:
            AdmitResult when the guard was obtained, None when it was busy.

        Raises:
            NotEvaluatedError: If ``design`` has no cached fitness.
        """
        if design.fitness is None:
            raise NotEvaluatedError("Design has not been evaluated")
        if not self.live_guard.try_acquire():
            return None
        try:
            return self._admit_locked(design)
        finally:
            self.live_guard.release()

    def try_admit(self, design: Design) -> bool:
        """Check ``design`` for admission, polling until the guard is free.

        Returns True once the design has been checked, whether or not it was
        stored; a candidate equal to the current minimum is not stored.
        """
        if design.fitness is None:
            raise NotEvaluatedError("Design has not been evaluated")
        result = poll_until(lambda: self.offer(design), self.poll_interval_s)
        return result is not None

    def _admit_locked(self, design: Design) -> AdmitResult:
        if len(self._entries) < self.capacity:
            design.freeze()
            self._entries.append((self._next_seq, design))
            self._next_seq += 1
            self._publish()
            self.stats.stored += 1
            return AdmitResult(stored=True, slot=len(self._entries) - 1)

        slot = self._min_slot()
        evicted = self._entries[slot][1]
        if design.fitness > evicted.fitness:
            design.freeze()
            self._entries[slot] = (self._next_seq, design)
            self._next_seq += 1
            self._publish()
            self.stats.stored += 1
            self.stats.evicted += 1
            return AdmitResult(stored=True, evicted=evicted, slot=slot)

        self.stats.rejected += 1
        return AdmitResult(stored=False)

    def _min_slot(self) -> int:
        """Slot of the lowest fitness; the first one scanned wins ties."""
        best = 0
        lowest = self._entries[0][1].fitness
        for i in range(1, len(self._entries)):
            f = self._entries[i][1].fitness
            if f < lowest:
                best, lowest = i, f
        return best

    def _publish(self) -> None:
        self._snapshot = tuple(d for _, d in self._entries)

    # --- sampling ---

    def sample_random(self, rng: np.random.Generator) -> Design | None:
        """Uniformly random member, or None if neither tier is available.

        The live members are used when their guard is free; otherwise the
        published snapshot is used under its own guard.
        """
        if self.live_guard.try_acquire():
            try:
                if self._entries:
                    self.stats.live_samples += 1
                    return self._entries[int(rng.integers(len(self._entries)))][1]
            finally:
                self.live_guard.release()
        elif self.snapshot_guard.try_acquire():
            try:
                members = self._snapshot
                if members:
                    self.stats.stale_samples += 1
                    return members[int(rng.integers(len(members)))]
            finally:
                self.snapshot_guard.release()
        return None

    # --- collection ---

    def snapshot(self) -> list[Design]:
        """Members by fitness descending, ties in admission order.

        Only meant for the collector once termination has been observed.
        """
        entries = poll_until(self._copy_entries, self.poll_interval_s)
        ranked = sorted(entries, key=lambda e: (-e[1].fitness, e[0]))
        return [d for _, d in ranked]

    def _copy_entries(self) -> list[tuple[int, Design]] | None:
        if not self.live_guard.try_acquire():
            return None
        try:
            return list(self._entries)
        finally:
            self.live_guard.release()
