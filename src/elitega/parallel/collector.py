"""Collector: waits for termination, ranks the elite, writes artifacts."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from ..core.archive_io import save_elite_archive
from ..core.design import Design
from ..core.logging import get_logger
from .archive import EliteArchive
from .budget import EvaluationBudget
from .polling import wait_for

log = get_logger(__name__)


@dataclass
class RunResult:
    """Final state of a completed run.

    Attributes:
        designs: Elite designs, best to worst.
        evaluations: Evaluations counted by the budget (F up to F + P - 1).
        output_dir: Directory the artifacts were written to.
        elapsed_s: Wall time from collector start to emission.
        archive_stats: Admission and sampling counters of the archive.
    """

    designs: list[Design]
    evaluations: int
    output_dir: Path
    elapsed_s: float
    archive_stats: dict[str, int] = field(default_factory=dict)

    @property
    def ranked_fitness(self) -> list[float]:
        return [d.fitness for d in self.designs]

    @property
    def best(self) -> Design | None:
        return self.designs[0] if self.designs else None


class Collector:
    """Emits the final elite once the budget's termination flag is set."""

    def __init__(
        self,
        archive: EliteArchive,
        budget: EvaluationBudget,
        output_dir: Path,
        summary: dict[str, Any] | None = None,
        poll_interval_s: float = 0.01,
    ) -> None:
        self._archive = archive
        self._budget = budget
        self._output_dir = Path(output_dir)
        self._summary = dict(summary or {})
        self._poll_interval_s = poll_interval_s
        self.result: RunResult | None = None
        self.error: Exception | None = None

    def run(self) -> None:
        """Thread entry point."""
        try:
            self.result = self.collect()
        except Exception as e:
            log.error("collector failed", error=f"{type(e).__name__}: {e}")
            self.error = e

    def collect(self) -> RunResult | None:
        """Poll for termination, then rank and persist the archive.

        Returns:
            RunResult, or None if the run was aborted by a fatal error.
        """
        start = time.perf_counter()
        wait_for(self._budget.termination_met, self._poll_interval_s, self._report_progress)

        if self._budget.failure is not None:
            log.warn("run aborted, skipping artifact emission", error=str(self._budget.failure))
            return None

        ranked = self._archive.snapshot()
        elapsed = time.perf_counter() - start
        summary = {
            **self._summary,
            "evaluations": self._budget.count,
            "target_evaluations": self._budget.target,
            "elapsed_s": elapsed,
            "archive_stats": self._archive.stats.to_dict(),
        }
        with log.timer("emit_artifacts", outdir=str(self._output_dir)):
            save_elite_archive(self._output_dir, ranked, summary)

        log.info(
            "run complete",
            evaluations=self._budget.count,
            n_elite=len(ranked),
            best=ranked[0].fitness if ranked else None,
            outdir=str(self._output_dir),
        )
        return RunResult(
            designs=ranked,
            evaluations=self._budget.count,
            output_dir=self._output_dir,
            elapsed_s=elapsed,
            archive_stats=self._archive.stats.to_dict(),
        )

    def _report_progress(self, n_waits: int) -> None:
        # Roughly once per second at the default interval
        if n_waits and n_waits % 100 == 0 and log.is_enabled("DEBUG"):
            log.debug(
                "progress",
                evaluations=self._budget.count,
                target=self._budget.target,
                n_elite=len(self._archive),
            )
