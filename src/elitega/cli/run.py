"""Parallel elite GA CLI runner.

Usage:
    python -m elitega.cli.run onemax --pop 16 --elite 4 --crossover 0.5 --mutation 0.01 --evals 2000
    python -m elitega.cli.run --config configs/onemax.yaml --seed 7 --outdir ./results
    python -m elitega.cli.run trap --resume ./results --evals 5000

Outputs:
    results.txt  - Elite fitness values, best to worst
    elite_X.npy  - Elite bit vectors in the same order
    elite_F.npy  - Elite fitness values
    summary.json - Run metadata and statistics
"""

from __future__ import annotations

import argparse
import sys

from ..core.config import default_config, load_config, merge_config
from ..core.errors import ConfigurationError, EliteGAError
from ..core.logging import set_log_level
from ..core.problems import list_problems


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Run a multi-threaded genetic algorithm with a shared elite archive"
    )
    parser.add_argument("problem", nargs="?", default=None, help="Registered problem id")
    parser.add_argument("--problem", dest="problem_opt", default=None, help=argparse.SUPPRESS)
    parser.add_argument("--pop", type=int, default=None, help="Population size (= number of workers)")
    parser.add_argument("--elite", type=int, default=None, help="Elite archive size")
    parser.add_argument("--crossover", type=float, default=None, help="Crossover rate in [0, 1]")
    parser.add_argument("--mutation", type=float, default=None, help="Mutation rate in [0, 1]")
    parser.add_argument("--evals", type=int, default=None, help="Evaluation budget (>= elite size)")
    parser.add_argument("--bits", type=int, default=None, help="Design vector length")
    parser.add_argument("--seed", type=int, default=None, help="Random seed")
    parser.add_argument("--poll-interval", type=float, default=None, help="Polling backoff (s)")
    parser.add_argument(
        "--output", "--outdir", type=str, default=None, dest="output", help="Output directory"
    )
    parser.add_argument("--config", type=str, default=None, help="YAML config used as the base")
    parser.add_argument("--resume", type=str, default=None, help="Saved archive to seed from")
    parser.add_argument(
        "--log-level", default="WARN", choices=["DEBUG", "INFO", "WARN", "ERROR"]
    )
    parser.add_argument("--list-problems", action="store_true", help="List problem ids and exit")
    return parser


def main(argv: list[str] | None = None) -> int:
    """Run the search.

    Args:
        argv: Command-line arguments (uses sys.argv if None).

    Returns:
        Exit code (0 = success).
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.list_problems:
        for name in list_problems():
            print(name)
        return 0

    set_log_level(args.log_level)

    # Import here so --list-problems and --help stay cheap
    from ..parallel.runner import run_evolution

    try:
        base = load_config(args.config) if args.config else default_config()
        config = merge_config(
            base,
            {
                "problem": args.problem or args.problem_opt,
                "population_size": args.pop,
                "elite_size": args.elite,
                "crossover_rate": args.crossover,
                "mutation_rate": args.mutation,
                "evaluations": args.evals,
                "n_bits": args.bits,
                "seed": args.seed,
                "poll_interval_s": args.poll_interval,
                "output_dir": args.output,
                "resume_from": args.resume,
            },
        )
        result = run_evolution(config)
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1
    except (FileNotFoundError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except EliteGAError as e:
        print(f"Run failed: {type(e).__name__}: {e}", file=sys.stderr)
        return 1

    if result is None:
        print("Run aborted before results were emitted.", file=sys.stderr)
        return 1

    for value in result.ranked_fitness:
        print(value)
    print(
        f"{result.evaluations} evaluations, {len(result.designs)} elite designs "
        f"written to {result.output_dir}",
        file=sys.stderr,
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
