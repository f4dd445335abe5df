"""elitega: parallel steady-state genetic algorithm with a shared elite archive."""

__version__ = "0.1.0"
