"""End-to-end runs of the parallel search."""

import numpy as np
import pytest

from elitega.core.archive_io import load_elite_archive, read_ranked_fitness
from elitega.core.config import build_config
from elitega.core.design import Design
from elitega.core.errors import ConfigurationError, NotEvaluatedError
from elitega.core.problems import OneMax, TrueRatio, get_problem
from elitega.parallel.runner import build_population, run_evolution


class FailingProblem(OneMax):
    def evaluate(self, design):
        raise NotEvaluatedError("Design has not been evaluated")


class RaggedProblem(OneMax):
    """Alternates vector lengths, which is a configuration error."""

    def __init__(self):
        super().__init__(8)
        self._calls = 0

    def random_vector(self, rng=None):
        self._calls += 1
        n = 8 if self._calls % 2 else 9
        return np.ones(n, dtype=bool)


def _config(tmp_path, **overrides):
    values = dict(
        problem="onemax",
        n_bits=8,
        population_size=4,
        elite_size=2,
        crossover_rate=0.5,
        mutation_rate=0.1,
        evaluations=10,
        seed=3,
        poll_interval_s=0.001,
        output_dir=tmp_path / "out",
    )
    values.update(overrides)
    return build_config(**values)


def test_scenario_small_onemax(tmp_path):
    """P=4, K=2, F=10, L=8, fitness = true bits / 8."""
    config = _config(tmp_path)
    result = run_evolution(config)

    assert len(result.designs) == 2
    values = result.ranked_fitness
    assert len(values) == 2
    assert all(0.0 <= v <= 1.0 for v in values)
    assert values == sorted(values, reverse=True)
    assert 10 <= result.evaluations <= 10 + 4

    assert read_ranked_fitness(config.output_dir) == values
    designs, summary = load_elite_archive(config.output_dir)
    assert designs == result.designs
    assert [d.fitness for d in designs] == values
    assert summary["problem"] == "onemax"
    assert summary["n_bits"] == 8
    assert summary["evaluations"] == result.evaluations


@pytest.mark.parametrize("pop,elite,evals", [(1, 1, 2), (1, 3, 20), (8, 3, 200), (16, 5, 500)])
def test_budget_bounds_and_archive_size(tmp_path, pop, elite, evals):
    config = _config(
        tmp_path, population_size=pop, elite_size=elite, evaluations=evals, n_bits=24
    )
    result = run_evolution(config)

    assert evals <= result.evaluations <= evals + pop
    assert 1 <= len(result.designs) <= elite
    assert all(d.fitness is not None for d in result.designs)
    assert result.ranked_fitness == sorted(result.ranked_fitness, reverse=True)


def test_elite_improves_over_random_start(tmp_path):
    config = _config(
        tmp_path,
        n_bits=32,
        population_size=6,
        elite_size=3,
        evaluations=1500,
        mutation_rate=1 / 32,
    )
    result = run_evolution(config)
    # Random 32-bit strings average 0.5; the search should do clearly better
    assert result.best.fitness > 0.75


def test_resume_seeds_population(tmp_path):
    first = run_evolution(_config(tmp_path, evaluations=40, n_bits=16))

    config = _config(
        tmp_path,
        population_size=2,
        evaluations=40,
        n_bits=16,
        resume_from=first.output_dir,
        output_dir=tmp_path / "second",
    )
    second = run_evolution(config)
    # Resumed elites are already evaluated, so the best can only stay or improve
    assert second.best.fitness >= first.best.fitness


def test_resume_with_wrong_length_rejected(tmp_path):
    first = run_evolution(_config(tmp_path, n_bits=8))
    config = _config(
        tmp_path, n_bits=12, resume_from=first.output_dir, output_dir=tmp_path / "b"
    )
    with pytest.raises(ConfigurationError, match="same length"):
        run_evolution(config)


def test_resume_length_checked_when_seeds_fill_population(tmp_path):
    first = run_evolution(_config(tmp_path, n_bits=8))
    assert len(first.designs) == 2
    config = _config(
        tmp_path,
        n_bits=64,
        population_size=2,
        resume_from=first.output_dir,
        output_dir=tmp_path / "b",
    )
    with pytest.raises(ConfigurationError, match="same length"):
        run_evolution(config)


@pytest.mark.parametrize("problem", ["true-ratio", "leading-ones"])
def test_resume_from_other_problem_reevaluates(tmp_path, problem):
    first = run_evolution(_config(tmp_path, evaluations=40))
    config = _config(
        tmp_path,
        problem=problem,
        population_size=2,
        evaluations=4,
        resume_from=first.output_dir,
        output_dir=tmp_path / "b",
    )
    second = run_evolution(config)

    scorer = get_problem(problem, n_bits=8)
    for d in second.designs:
        assert d.fitness == pytest.approx(scorer.evaluate(d.clone()))


def test_resume_with_explicit_problem_reevaluates(tmp_path):
    first = run_evolution(_config(tmp_path, evaluations=40))
    config = _config(
        tmp_path,
        population_size=2,
        evaluations=4,
        resume_from=first.output_dir,
        output_dir=tmp_path / "b",
    )
    second = run_evolution(config, problem=TrueRatio(8))

    for d in second.designs:
        assert d.fitness == pytest.approx((np.count_nonzero(d.bits) + 1) / 10)


def test_ragged_vectors_rejected(rng):
    with pytest.raises(ConfigurationError, match="same length"):
        build_population(RaggedProblem(), 3, rng)


def test_build_population_places_seeds_first(rng, onemax8):
    seeds = [Design(np.ones(8, dtype=bool), fitness=1.0)]
    designs = build_population(onemax8, 3, rng, seeds)
    assert len(designs) == 3
    assert designs[0] == seeds[0] and designs[0] is not seeds[0]
    assert designs[0].fitness == 1.0
    assert designs[1].fitness is None


def test_fatal_worker_error_propagates(tmp_path):
    config = _config(tmp_path)
    with pytest.raises(NotEvaluatedError):
        run_evolution(config, problem=FailingProblem(8))
    assert not (config.output_dir / "results.txt").exists()


def test_unknown_problem(tmp_path):
    with pytest.raises(ConfigurationError, match="Unknown problem"):
        run_evolution(_config(tmp_path, problem="nope"))
