"""Problem registry.

Centralizes which fitness problems a run can name. A problem supplies a
fitness for a design and random design vectors of one fixed length; it must
be safe to call from many worker threads at once.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Protocol, runtime_checkable

import numpy as np

from .errors import ConfigurationError

if TYPE_CHECKING:
    from .design import Design


@runtime_checkable
class Problem(Protocol):
    """Interface every optimisation problem implements."""

    def evaluate(self, design: Design) -> float:
        """Return the fitness of ``design`` (higher is better)."""
        ...

    def random_vector(self, rng: np.random.Generator | None = None) -> np.ndarray:
        """Return a random boolean vector; every call yields the same length."""
        ...


class BitStringProblem:
    """Base for problems over bit strings of a fixed length.

    Subclasses implement ``score`` on the raw boolean array. Instances hold
    no mutable state, so sharing one between threads is safe.
    """

    name = "bitstring"

    def __init__(self, n_bits: int = 100) -> None:
        if n_bits < 1:
            raise ConfigurationError(f"n_bits must be >= 1, got {n_bits}")
        self.n_bits = int(n_bits)

    def random_vector(self, rng: np.random.Generator | None = None) -> np.ndarray:
        if rng is None:
            rng = np.random.default_rng()
        return rng.random(self.n_bits) < 0.5

    def evaluate(self, design: Design) -> float:
        return float(self.score(design.bits))

    def score(self, bits: np.ndarray) -> float:
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"{type(self).__name__}(n_bits={self.n_bits})"


class OneMax(BitStringProblem):
    """Fraction of true bits."""

    name = "onemax"

    def score(self, bits: np.ndarray) -> float:
        return np.count_nonzero(bits) / bits.size


class TrueRatio(BitStringProblem):
    """(true bits + 1) / (length + 2), never exactly 0 or 1."""

    name = "true-ratio"

    def score(self, bits: np.ndarray) -> float:
        return (np.count_nonzero(bits) + 1.0) / (bits.size + 2.0)


class LeadingOnes(BitStringProblem):
    """Length of the leading run of true bits, normalised by length."""

    name = "leading-ones"

    def score(self, bits: np.ndarray) -> float:
        zeros = np.flatnonzero(~bits)
        run = bits.size if zeros.size == 0 else int(zeros[0])
        return run / bits.size


class DeceptiveTrap(BitStringProblem):
    """Concatenated deceptive traps of ``block`` bits, normalised to [0, 1].

    Within a block, all ones scores ``block``; otherwise the score is
    ``block - 1 - ones`` so local search is pulled towards all zeros.
    A trailing partial block is scored the same way on its own length.
    """

    name = "trap"

    def __init__(self, n_bits: int = 100, block: int = 4) -> None:
        super().__init__(n_bits)
        if block < 2:
            raise ConfigurationError(f"trap block size must be >= 2, got {block}")
        self.block = int(block)

    def score(self, bits: np.ndarray) -> float:
        total = 0.0
        for start in range(0, bits.size, self.block):
            chunk = bits[start : start + self.block]
            ones = int(np.count_nonzero(chunk))
            total += chunk.size if ones == chunk.size else chunk.size - 1 - ones
        return total / bits.size


ProblemFactory = Callable[..., Problem]


class ProblemRegistry:
    """Maps problem identifiers to factories, resolved once at startup."""

    def __init__(self) -> None:
        self._factories: dict[str, ProblemFactory] = {}

    def register(self, name: str, factory: ProblemFactory) -> None:
        key = name.strip().lower()
        if key in self._factories:
            raise ConfigurationError(f"Problem '{name}' is already registered")
        self._factories[key] = factory

    def create(self, name: str, **kwargs) -> Problem:
        key = name.strip().lower()
        try:
            factory = self._factories[key]
        except KeyError:
            available = ", ".join(self.names()) or "none"
            raise ConfigurationError(
                f"Unknown problem '{name}' (available: {available})"
            ) from None
        try:
            problem = factory(**kwargs)
        except TypeError as e:
            raise ConfigurationError(f"Cannot construct problem '{name}': {e}") from e
        if not isinstance(problem, Problem):
            raise ConfigurationError(
                f"Factory for '{name}' returned {type(problem).__name__}, which is not a Problem"
            )
        return problem

    def names(self) -> list[str]:
        return sorted(self._factories)

    def __contains__(self, name: str) -> bool:
        return name.strip().lower() in self._factories


# Global instance
_REGISTRY = ProblemRegistry()


def register_problem(name: str) -> Callable[[ProblemFactory], ProblemFactory]:
    """Decorator registering a problem class or factory under ``name``."""

    def decorator(factory: ProblemFactory) -> ProblemFactory:
        _REGISTRY.register(name, factory)
        return factory

    return decorator


def get_problem(name: str, **kwargs) -> Problem:
    """Instantiate the problem registered as ``name``.

    Raises:
        ConfigurationError: If the name is unknown or the factory fails.
    """
    return _REGISTRY.create(name, **kwargs)


def list_problems() -> list[str]:
    return _REGISTRY.names()


for _cls in (OneMax, TrueRatio, LeadingOnes, DeceptiveTrap):
    _REGISTRY.register(_cls.name, _cls)
