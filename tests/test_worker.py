"""Worker state machine tests driven without the runner."""

import queue

import numpy as np
import pytest

from elitega.core.design import Design
from elitega.core.errors import ProtocolViolationError
from elitega.core.problems import OneMax
from elitega.parallel.archive import EliteArchive
from elitega.parallel.budget import EvaluationBudget
from elitega.parallel.worker import BreedingParams, Worker, WorkerState


class CountingProblem(OneMax):
    def __init__(self, n_bits=8):
        super().__init__(n_bits)
        self.calls = 0

    def evaluate(self, design):
        self.calls += 1
        return super().evaluate(design)


class ExplodingProblem(OneMax):
    def evaluate(self, design):
        raise ZeroDivisionError("bad fitness")


def _worker(problem, designs, archive, budget, worker_id=0):
    population = queue.Queue()
    for d in designs:
        population.put(d)
    params = BreedingParams(crossover_rate=0.5, mutation_rate=0.1, poll_interval_s=0.001)
    return Worker(worker_id, population, problem, archive, budget, params, np.random.default_rng(worker_id))


def test_single_worker_runs_to_budget():
    problem = CountingProblem()
    archive = EliteArchive(2, poll_interval_s=0.001)
    budget = EvaluationBudget(6)
    worker = _worker(problem, [Design(problem.random_vector(np.random.default_rng(0)))], archive, budget)

    worker.run()

    assert worker.state is WorkerState.TERMINATED
    assert budget.termination_met()
    assert budget.failure is None
    assert budget.count == 6
    assert worker.evaluations == 6
    # Every loop iteration evaluates a fresh, unevaluated design
    assert problem.calls == 6
    # The last design was evaluated but not offered to the archive
    assert archive.stats.stored + archive.stats.rejected == 5
    assert 1 <= len(archive) <= 2
    assert all(d.fitness is not None for d in archive.published())


def test_worker_does_not_mutate_admitted_design():
    problem = OneMax(8)
    archive = EliteArchive(1, poll_interval_s=0.001)
    budget = EvaluationBudget(3)
    start = Design(np.zeros(8, dtype=bool))
    worker = _worker(problem, [start], archive, budget)

    worker.run()

    assert budget.failure is None
    # The first design was stored (archive empty) and later replaced or kept
    assert start.frozen
    np.testing.assert_array_equal(start.bits, np.zeros(8, dtype=bool))
    assert start.fitness == 0.0
    assert worker.design is not start


def test_already_evaluated_start_design_is_not_reevaluated():
    problem = CountingProblem()
    archive = EliteArchive(1, poll_interval_s=0.001)
    budget = EvaluationBudget(1)
    worker = _worker(problem, [Design(np.ones(8, dtype=bool), fitness=0.25)], archive, budget)

    worker.run()

    assert problem.calls == 0
    assert budget.count == 1
    assert len(archive) == 0
    assert worker.evaluations == 0


def test_worker_failure_aborts_budget():
    archive = EliteArchive(2, poll_interval_s=0.001)
    budget = EvaluationBudget(100)
    worker = _worker(ExplodingProblem(8), [Design(np.ones(8, dtype=bool))], archive, budget)

    worker.run()

    assert budget.termination_met()
    assert isinstance(budget.failure, ZeroDivisionError)
    assert worker.state is WorkerState.TERMINATED


def test_worker_without_design_violates_protocol():
    archive = EliteArchive(2)
    budget = EvaluationBudget(5)
    worker = _worker(OneMax(8), [], archive, budget)

    worker.run()

    assert isinstance(budget.failure, ProtocolViolationError)
    assert "no designs" in str(budget.failure)


def test_worker_exits_immediately_when_already_terminated():
    problem = CountingProblem()
    archive = EliteArchive(2)
    budget = EvaluationBudget(1)
    budget.increment_and_check()
    worker = _worker(problem, [Design(np.ones(8, dtype=bool))], archive, budget)

    worker.run()

    assert problem.calls == 0
    assert budget.count == 1


class SpendingArchive(EliteArchive):
    """Other workers use up the budget while this worker samples a parent."""

    def __init__(self, budget, capacity=2):
        super().__init__(capacity, poll_interval_s=0.001)
        self._budget = budget

    def sample_random(self, rng):
        while self._budget.count < self._budget.target:
            self._budget.increment_and_check()
        return super().sample_random(rng)


def test_budget_spent_during_sampling_stops_before_reproduction(monkeypatch):
    evolved = []
    monkeypatch.setattr(Design, "evolve", lambda self, *args: evolved.append(self))
    problem = CountingProblem()
    budget = EvaluationBudget(5)
    archive = SpendingArchive(budget)
    start = Design(np.ones(8, dtype=bool))
    worker = _worker(problem, [start], archive, budget)

    worker.run()

    assert budget.failure is None
    assert evolved == []
    assert problem.calls == 1
    assert worker.evaluations == 1
    assert budget.count == 5
    assert start.frozen
    # Ended holding the unevaluated private copy made after sampling
    assert worker.design == start and worker.design is not start
    assert worker.design.fitness is None
    assert worker.state is WorkerState.TERMINATED


def test_resumed_fitness_is_not_counted_as_evaluation():
    problem = CountingProblem()
    archive = EliteArchive(1, poll_interval_s=0.001)
    budget = EvaluationBudget(3)
    worker = _worker(problem, [Design(np.ones(8, dtype=bool), fitness=1.0)], archive, budget)

    worker.run()

    assert budget.count == 3
    assert worker.evaluations == problem.calls == 2
