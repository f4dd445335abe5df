"""Core module: designs, problems, configuration, errors, IO."""

from .config import RunConfig, build_config, load_config
from .design import Design
from .errors import (
    ConfigurationError,
    EliteGAError,
    NotEvaluatedError,
    PersistenceError,
    ProtocolViolationError,
    ResourceExhaustionError,
)
from .problems import Problem, get_problem, list_problems, register_problem

__all__ = [
    "Design",
    "Problem",
    "RunConfig",
    "build_config",
    "load_config",
    "get_problem",
    "list_problems",
    "register_problem",
    "EliteGAError",
    "ConfigurationError",
    "NotEvaluatedError",
    "ProtocolViolationError",
    "ResourceExhaustionError",
    "PersistenceError",
]
