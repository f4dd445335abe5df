"""Per-individual worker state machine.

Each worker owns one design and repeats evaluate -> admit -> sample ->
reproduce until the shared budget reports termination. Workers touch no
shared state other than the elite archive and the evaluation budget.
"""

from __future__ import annotations

import queue
from dataclasses import dataclass
from enum import Enum

import numpy as np

from ..core.design import Design
from ..core.errors import ProtocolViolationError
from ..core.logging import get_logger
from ..core.problems import Problem
from .archive import EliteArchive
from .budget import EvaluationBudget
from .polling import poll_until

log = get_logger(__name__)


class WorkerState(Enum):
    INIT = "init"
    EVALUATING = "evaluating"
    ADMITTING = "admitting"
    SAMPLING = "sampling"
    REPRODUCING = "reproducing"
    TERMINATED = "terminated"


@dataclass(frozen=True)
class BreedingParams:
    crossover_rate: float
    mutation_rate: float
    poll_interval_s: float = 0.01


class Worker:
    """Drives one design through the evolutionary loop.

    Args:
        worker_id: Index used in thread names and log records.
        population: Startup queue; the worker claims exactly one design from it.
        problem: Shared, thread-safe fitness problem.
        archive: Shared elite archive.
        budget: Shared evaluation budget.
        params: Operator rates and polling interval.
        rng: Generator owned by this worker alone.
    """

    def __init__(
        self,
        worker_id: int,
        population: queue.Queue[Design],
        problem: Problem,
        archive: EliteArchive,
        budget: EvaluationBudget,
        params: BreedingParams,
        rng: np.random.Generator,
    ) -> None:
        self.worker_id = worker_id
        self._population = population
        self._problem = problem
        self._archive = archive
        self._budget = budget
        self._params = params
        self._rng = rng
        self.state = WorkerState.INIT
        self.design: Design | None = None
        self.evaluations = 0
        self.stored = 0

    def run(self) -> None:
        """Thread entry point; fatal errors abort the whole run."""
        try:
            self._run()
        except Exception as e:
            log.error(
                "worker failed",
                worker=self.worker_id,
                state=self.state.value,
                error=f"{type(e).__name__}: {e}",
            )
            self._budget.abort(e)
        finally:
            self.state = WorkerState.TERMINATED
            log.debug(
                "worker finished",
                worker=self.worker_id,
                evaluations=self.evaluations,
                stored=self.stored,
            )

    def _run(self) -> None:
        design = self._claim()
        budget = self._budget

        while not budget.termination_met():
            self.state = WorkerState.EVALUATING
            if not design.is_evaluated:
                design.evaluate(self._problem)
                self.evaluations += 1
            if budget.increment_and_check():
                break

            self.state = WorkerState.ADMITTING
            self._archive.try_admit(design)
            if design.frozen:
                self.stored += 1

            self.state = WorkerState.SAMPLING
            parent = poll_until(
                lambda: self._archive.sample_random(self._rng),
                self._params.poll_interval_s,
            )

            # The archive may now hold this design; keep evolving a private copy
            design = design.clone()
            self.design = design

            if budget.check_and_set_termination():
                break

            self.state = WorkerState.REPRODUCING
            design.evolve(
                parent,
                self._params.crossover_rate,
                self._params.mutation_rate,
                self._rng,
            )

    def _claim(self) -> Design:
        try:
            design = self._population.get_nowait()
        except queue.Empty:
            raise ProtocolViolationError(
                f"There are no designs for worker {self.worker_id} to manage"
            ) from None
        self.design = design
        return design
