"""Candidate designs and their genetic operators.

A design is a fixed-length bit vector plus a lazily computed fitness.
Equality and hashing use the bits only, so two designs with identical
vectors are the same design whatever fitness they carry.
"""

from __future__ import annotations

import hashlib
from typing import TYPE_CHECKING

import numpy as np

from .errors import ConfigurationError, ProtocolViolationError

if TYPE_CHECKING:
    from .problems import Problem


def _check_probability(name: str, p: float) -> float:
    p = float(p)
    if not 0.0 <= p <= 1.0:
        raise ConfigurationError(f"{name} must be on the range [0, 1], got {p}")
    return p


def as_bit_vector(values) -> np.ndarray:
    """Coerce a sequence of truthy values to a 1-D boolean array (copied)."""
    bits = np.array(values, dtype=bool).reshape(-1)
    if bits.size == 0:
        raise ConfigurationError("Design vectors must contain at least one bit")
    return bits


class Design:
    """Bit-vector candidate with an optional cached fitness.

    Attributes:
        bits: Boolean array of length L.
        fitness: Cached fitness, None until evaluated.
    """

    __slots__ = ("bits", "fitness", "_frozen")

    def __init__(self, bits, fitness: float | None = None) -> None:
        self.bits = as_bit_vector(bits)
        self.fitness = None if fitness is None else float(fitness)
        self._frozen = False

    @classmethod
    def random(cls, problem: Problem, rng: np.random.Generator | None = None) -> Design:
        """Create an unevaluated design from the problem's random vector."""
        return cls(problem.random_vector(rng))

    def __len__(self) -> int:
        return int(self.bits.size)

    def __eq__(self, other: object) -> bool:
        if self is other:
            return True
        if not isinstance(other, Design):
            return NotImplemented
        return np.array_equal(self.bits, other.bits)

    def __hash__(self) -> int:
        return hash((self.bits.size, self.bits.tobytes()))

    def __repr__(self) -> str:
        bits = "".join("1" if b else "0" for b in self.bits[:32])
        if self.bits.size > 32:
            bits += "..."
        return f"Design(bits={bits}, fitness={self.fitness})"

    @property
    def is_evaluated(self) -> bool:
        return self.fitness is not None

    @property
    def frozen(self) -> bool:
        """True once the design has been admitted to an elite archive."""
        return self._frozen

    @property
    def key(self) -> str:
        """Stable short hash of the bit vector."""
        return hashlib.sha256(np.packbits(self.bits).tobytes() + str(self.bits.size).encode()).hexdigest()[:16]

    def freeze(self) -> None:
        """Mark as archived; the bit vector becomes read-only."""
        self._frozen = True
        self.bits.flags.writeable = False

    def evaluate(self, problem: Problem) -> float:
        """Evaluate on ``problem`` unless a fitness is already cached.

        Returns:
            The cached fitness.
        """
        if self.fitness is None:
            self.fitness = float(problem.evaluate(self))
        return self.fitness

    def clone(self, keep_fitness: bool = False) -> Design:
        """Independent copy of the bit vector; fitness is reset unless kept."""
        return Design(self.bits.copy(), self.fitness if keep_fitness else None)

    def crossover(self, other: Design, p: float, rng: np.random.Generator) -> None:
        """Uniform crossover: each bit is taken from ``other`` with probability ``p``."""
        self._check_mutable()
        p = _check_probability("crossover rate", p)
        if other.bits.size != self.bits.size:
            raise ConfigurationError(
                f"Cannot cross designs of length {self.bits.size} and {other.bits.size}"
            )
        mask = rng.random(self.bits.size) < p
        self.bits[mask] = other.bits[mask]
        self.fitness = None

    def mutate(self, p: float, rng: np.random.Generator) -> None:
        """Bit-flip mutation with per-bit probability ``p``."""
        self._check_mutable()
        p = _check_probability("mutation rate", p)
        flips = rng.random(self.bits.size) < p
        np.logical_xor(self.bits, flips, out=self.bits)
        self.fitness = None

    def evolve(
        self,
        other: Design,
        crossover_rate: float,
        mutation_rate: float,
        rng: np.random.Generator,
    ) -> None:
        """Crossover with ``other`` then mutate; the cached fitness is cleared."""
        self.crossover(other, crossover_rate, rng)
        self.mutate(mutation_rate, rng)
        self.fitness = None

    def _check_mutable(self) -> None:
        if self._frozen:
            raise ProtocolViolationError(
                "Design is held by the elite archive and must be cloned before it is changed"
            )
