"""Parallel coordination layer: archive, budget, workers, collector."""

from .archive import AdmitResult, EliteArchive
from .budget import EvaluationBudget
from .collector import Collector, RunResult
from .guard import AccessGuard
from .runner import build_population, run_evolution
from .worker import BreedingParams, Worker, WorkerState

__all__ = [
    "AccessGuard",
    "AdmitResult",
    "BreedingParams",
    "Collector",
    "EliteArchive",
    "EvaluationBudget",
    "RunResult",
    "Worker",
    "WorkerState",
    "build_population",
    "run_evolution",
]
