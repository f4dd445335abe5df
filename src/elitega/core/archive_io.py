"""Elite archive IO with a format-version guard.

Layout of an output directory:
    results.txt  - fitness values, one per line, best to worst
    elite_X.npy  - bool matrix of elite vectors in the same order
    elite_F.npy  - float fitness vector matching elite_X rows
    summary.json - run metadata
"""

from __future__ import annotations

import json
from collections.abc import Sequence
from pathlib import Path
from typing import Any

import numpy as np

from .design import Design
from .errors import NotEvaluatedError, PersistenceError

FORMAT_VERSION = "1.0"

RESULTS_FILENAME = "results.txt"
META_FILENAME = "summary.json"
X_FILENAME = "elite_X.npy"
F_FILENAME = "elite_F.npy"


def designs_to_arrays(designs: Sequence[Design]) -> tuple[np.ndarray, np.ndarray]:
    """Stack evaluated designs into (X, F) arrays."""
    if not designs:
        return np.zeros((0, 0), dtype=bool), np.zeros(0, dtype=np.float64)
    for d in designs:
        if d.fitness is None:
            raise NotEvaluatedError(f"Cannot persist unevaluated design {d.key}")
    X = np.vstack([d.bits for d in designs]).astype(bool)
    F = np.array([d.fitness for d in designs], dtype=np.float64)
    return X, F


def save_elite_archive(
    outdir: Path,
    designs: Sequence[Design],
    summary: dict[str, Any] | None = None,
) -> Path:
    """Write ranked designs plus metadata.

    Args:
        outdir: Output directory (created if missing).
        designs: Evaluated designs, already ranked best to worst.
        summary: Extra metadata merged into summary.json.

    Returns:
        The output directory.

    Raises:
        PersistenceError: If any file cannot be written.
    """
    outdir = Path(outdir)
    X, F = designs_to_arrays(designs)

    summary = {
        **(summary or {}),
        "format_version": FORMAT_VERSION,
        "n_elite": int(len(designs)),
        "n_bits": int(X.shape[1]) if len(designs) else 0,
        "fitness": F.tolist(),
        "keys": [d.key for d in designs],
    }
    try:
        outdir.mkdir(parents=True, exist_ok=True)
        with open(outdir / RESULTS_FILENAME, "w") as f:
            for value in F.tolist():
                f.write(f"{value!r}\n")
        np.save(outdir / X_FILENAME, X)
        np.save(outdir / F_FILENAME, F)
        with open(outdir / META_FILENAME, "w") as f:
            json.dump(summary, f, indent=2, default=str)
    except OSError as e:
        raise PersistenceError(f"Error writing elite archive to {outdir}: {e}") from e
    return outdir


def load_elite_archive(outdir: Path) -> tuple[list[Design], dict[str, Any]]:
    """Load a saved archive. Raises on incompatible format.

    Returns:
        (designs, summary) with designs ranked as saved and carrying fitness.
    """
    outdir = Path(outdir)
    summary_path = outdir / META_FILENAME
    if not summary_path.exists():
        raise FileNotFoundError(f"Missing {META_FILENAME} in {outdir}")

    with open(summary_path) as f:
        summary = json.load(f)

    version = summary.get("format_version")
    if version != FORMAT_VERSION:
        raise ValueError(f"Format version mismatch: archive {version}, expected {FORMAT_VERSION}")

    X = np.load(outdir / X_FILENAME, allow_pickle=False)
    F = np.load(outdir / F_FILENAME, allow_pickle=False)

    if len(X) != len(F):
        raise ValueError(f"Row mismatch: {len(X)} vectors vs {len(F)} fitness values")
    if len(X) and X.shape[1] != summary.get("n_bits"):
        raise ValueError(f"n_bits mismatch: {X.shape[1]} vs {summary.get('n_bits')}")

    designs = [Design(x, fitness=float(f)) for x, f in zip(X, F)]
    return designs, summary


def read_ranked_fitness(outdir: Path) -> list[float]:
    """Parse results.txt back into a list of floats."""
    with open(Path(outdir) / RESULTS_FILENAME) as f:
        return [float(line) for line in f if line.strip()]
