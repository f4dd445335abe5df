"""Pytest configuration for elitega.

Worker threads log through the structured logger; keep it at ERROR so test
output stays readable. ``make_design`` builds designs with chosen fitness.
"""

from __future__ import annotations

import numpy as np
import pytest

from elitega.core.design import Design
from elitega.core.logging import set_log_level
from elitega.core.problems import OneMax


def _make_design(fitness: float | None, n_bits: int = 8, tag: int = 0) -> Design:
    """Design whose bits encode ``tag`` so different tags are different designs."""
    bits = [(tag >> i) & 1 for i in range(n_bits)]
    return Design(bits, fitness=fitness)


@pytest.fixture(autouse=True)
def _quiet_logs():
    set_log_level("ERROR")
    yield
    set_log_level("INFO")


@pytest.fixture
def make_design():
    return _make_design


@pytest.fixture
def rng() -> np.random.Generator:
    return np.random.default_rng(1234)


@pytest.fixture
def onemax8() -> OneMax:
    return OneMax(n_bits=8)
