"""Bootstrap of a parallel evolutionary run.

Flow:
    1. Resolve the problem from the registry
    2. Build the startup population (resumed elites first, then random)
    3. Start one thread per design plus the collector thread
    4. Join everything and surface the first fatal error, if any
"""

from __future__ import annotations

import queue
import threading
from collections.abc import Sequence

import numpy as np

from ..core.archive_io import load_elite_archive
from ..core.config import RunConfig
from ..core.design import Design
from ..core.errors import ConfigurationError, ResourceExhaustionError
from ..core.logging import get_logger
from ..core.problems import Problem, get_problem
from .archive import EliteArchive
from .budget import EvaluationBudget
from .collector import Collector, RunResult
from .worker import BreedingParams, Worker

log = get_logger(__name__)


def build_population(
    problem: Problem,
    size: int,
    rng: np.random.Generator,
    seeds: Sequence[Design] = (),
) -> list[Design]:
    """Create ``size`` designs, all with the problem's vector length.

    The reference length comes from a fresh problem vector, so seeds are
    checked even when they fill the whole population.

    Args:
        problem: Source of random vectors.
        size: Population size.
        rng: Generator used for the random vectors.
        seeds: Designs placed first (e.g. a resumed elite); extras are ignored.

    Raises:
        ConfigurationError: If vector lengths differ.
        ResourceExhaustionError: If the population does not fit in memory.
    """
    try:
        reference = Design.random(problem, rng)
        designs = [d.clone(keep_fitness=True) for d in list(seeds)[:size]]
        if len(designs) < size:
            designs.append(reference)
        while len(designs) < size:
            designs.append(Design.random(problem, rng))
    except MemoryError:
        raise ResourceExhaustionError(
            f"Out of memory creating {size} designs; reduce the population size"
        ) from None

    n_bits = len(reference)
    for i, d in enumerate(designs):
        if len(d) != n_bits:
            raise ConfigurationError(
                f"Design {i} has {len(d)} bits but the problem uses {n_bits}; "
                "all design vectors must have the same length"
            )
    return designs


def _load_resume_seeds(config: RunConfig, same_problem: bool) -> list[Design]:
    """Saved elite designs; cached fitness is dropped if scored on another problem."""
    designs, summary = load_elite_archive(config.resume_from)
    saved = summary.get("config") or {}
    reusable = (
        same_problem
        and summary.get("problem") == config.problem
        and saved.get("n_bits") == config.n_bits
    )
    if not reusable:
        designs = [d.clone() for d in designs]
    log.info(
        "resuming from saved archive",
        path=str(config.resume_from),
        n_designs=len(designs),
        saved_problem=summary.get("problem"),
        keep_fitness=reusable,
    )
    return designs


def run_evolution(config: RunConfig, problem: Problem | None = None) -> RunResult:
    """Run the search to completion and return the ranked elite.

    Args:
        config: Validated run configuration.
        problem: Problem instance; resolved from ``config.problem`` if None.

    Raises:
        ConfigurationError: Invalid problem or inconsistent vectors.
        EliteGAError: The first fatal error raised by any worker or the collector.
    """
    from_registry = problem is None
    if problem is None:
        problem = get_problem(config.problem, **config.problem_kwargs())

    P = config.population_size
    seed_seq = np.random.SeedSequence(config.seed)
    init_seq, *worker_seqs = seed_seq.spawn(P + 1)

    resumed: list[Design] = []
    if config.resume_from is not None:
        resumed = _load_resume_seeds(config, same_problem=from_registry)

    designs = build_population(problem, P, np.random.default_rng(init_seq), resumed)
    n_bits = len(designs[0])

    population: queue.Queue[Design] = queue.Queue()
    for d in designs:
        population.put(d)

    archive = EliteArchive(config.elite_size, config.poll_interval_s)
    budget = EvaluationBudget(config.evaluations)
    params = BreedingParams(
        crossover_rate=config.crossover_rate,
        mutation_rate=config.mutation_rate,
        poll_interval_s=config.poll_interval_s,
    )

    collector = Collector(
        archive,
        budget,
        config.output_dir,
        summary={
            "problem": config.problem,
            "config": config.model_dump(mode="json"),
            "entropy": seed_seq.entropy,
        },
        poll_interval_s=config.poll_interval_s,
    )
    workers = [
        Worker(i, population, problem, archive, budget, params, np.random.default_rng(seq))
        for i, seq in enumerate(worker_seqs)
    ]

    log.info(
        "run start",
        problem=config.problem,
        n_bits=n_bits,
        population=P,
        elite=config.elite_size,
        evaluations=config.evaluations,
    )

    threads = [threading.Thread(target=collector.run, name="collector")]
    threads += [threading.Thread(target=w.run, name=f"worker-{w.worker_id}") for w in workers]
    started: list[threading.Thread] = []
    for t in threads:
        try:
            t.start()
        except RuntimeError as e:
            budget.abort(
                ResourceExhaustionError(
                    f"Could not start thread {t.name} ({e}); reduce the population size"
                )
            )
            break
        started.append(t)
    for t in started:
        t.join()

    if budget.failure is not None:
        raise budget.failure
    if collector.error is not None:
        raise collector.error
    return collector.result
