"""CLI modules for running the search.

Note: avoid importing submodules at import-time. This keeps `python -m elitega.cli.<cmd>`
free of `runpy` warnings and avoids side effects from eager imports.
"""

from __future__ import annotations


def run_main(argv: list[str] | None = None) -> int:
    """Lazy wrapper for `elitega.cli.run.main`."""

    from .run import main

    return main(argv)


__all__ = ["run_main"]
