"""CLI package for CorpusSearch command orchestration.

The click interface lives in `ui`, component wiring and error handling in
`runner`, and the search logic itself in `commands`.
"""

from __future__ import annotations

__all__ = ["CommandRunner", "cli", "main"]

from CorpusSearch.cli.runner import CommandRunner
from CorpusSearch.cli.ui import cli


def main() -> None:
    """Run CorpusSearch CLI.

    Entry point referenced by console script in pyproject.toml.
    """
    cli()
