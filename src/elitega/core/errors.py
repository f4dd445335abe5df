"""Error taxonomy for elitega.

Every error here is fatal to a run. The only conditions that are retried
(guard contention, no elite available to sample yet) never raise.
"""

from __future__ import annotations


class EliteGAError(Exception):
    """Base class for all elitega errors."""


class ConfigurationError(EliteGAError, ValueError):
    """Invalid bootstrap parameters, unknown problem, or inconsistent vectors."""


class NotEvaluatedError(EliteGAError, RuntimeError):
    """A design reached archive admission without a cached fitness."""


class ProtocolViolationError(EliteGAError, RuntimeError):
    """An exclusive-access or ownership rule was broken."""


class ResourceExhaustionError(EliteGAError, RuntimeError):
    """Population or archive allocation failed."""


class PersistenceError(EliteGAError, OSError):
    """Writing the final artifacts failed."""
