"""Run configuration with pydantic and YAML support."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from .errors import ConfigurationError


class RunConfig(BaseModel):
    """Bootstrap parameters of one evolutionary run.

    Attributes:
        problem: Registered problem identifier.
        n_bits: Vector length passed to the problem factory (None = its default).
        population_size: Number of workers, one design each.
        elite_size: Capacity of the elite archive.
        crossover_rate: Per-bit probability of taking the elite parent's bit.
        mutation_rate: Per-bit flip probability.
        evaluations: Evaluation budget; must be at least ``elite_size``.
        seed: Root seed for all random streams (None = OS entropy).
        poll_interval_s: Fixed backoff between polling attempts.
        output_dir: Where the collector writes its artifacts.
        resume_from: Saved archive whose designs seed the population.
    """

    model_config = ConfigDict(extra="forbid")

    problem: str = "onemax"
    n_bits: int | None = Field(default=None, ge=1)
    population_size: int = Field(default=16, ge=1)
    elite_size: int = Field(default=4, ge=1)
    crossover_rate: float = Field(default=0.5, ge=0.0, le=1.0)
    mutation_rate: float = Field(default=0.01, ge=0.0, le=1.0)
    evaluations: int = Field(default=1000, ge=1)
    seed: int | None = Field(default=None, ge=0)
    poll_interval_s: float = Field(default=0.01, gt=0.0, le=1.0)
    output_dir: Path = Path("results")
    resume_from: Path | None = None

    @model_validator(mode="after")
    def _budget_covers_elite(self) -> RunConfig:
        if self.evaluations < self.elite_size:
            raise ValueError(
                "The number of evaluations must be greater than or equal to the elite size "
                f"(evaluations={self.evaluations}, elite_size={self.elite_size})"
            )
        return self

    def problem_kwargs(self) -> dict[str, Any]:
        return {} if self.n_bits is None else {"n_bits": self.n_bits}


def _validate(data: dict[str, Any]) -> RunConfig:
    try:
        return RunConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigurationError(str(e)) from e


def build_config(**values: Any) -> RunConfig:
    """Validate keyword values into a RunConfig.

    Raises:
        ConfigurationError: On any out-of-range or unknown field.
    """
    return _validate(values)


def default_config() -> RunConfig:
    """Return default configuration."""
    return RunConfig()


def load_config(path: str | Path) -> RunConfig:
    """Load configuration from YAML file.

    Args:
        path: Path to YAML config file.

    Returns:
        Parsed RunConfig object.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(path) as f:
        data = yaml.safe_load(f)

    if data is not None and not isinstance(data, dict):
        raise ConfigurationError(f"Config file {path} must contain a mapping")
    return _validate(data or {})


def save_config(config: RunConfig, path: str | Path) -> None:
    """Save configuration to YAML file."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    with open(path, "w") as f:
        yaml.safe_dump(config.model_dump(mode="json"), f, default_flow_style=False)


def merge_config(base: RunConfig, overrides: dict[str, Any]) -> RunConfig:
    """Return a new configuration with non-None ``overrides`` applied.

    Args:
        base: Base configuration.
        overrides: Field values to replace; None entries are ignored.
    """
    merged = base.model_dump()
    merged.update({k: v for k, v in overrides.items() if v is not None})
    return _validate(merged)
