"""Command runner for coordinating CLI execution.

Manages logging configuration, session lifecycle and error handling for
command execution.
"""

from __future__ import annotations

import click

from CorpusSearch.cli.commands import SearchCommand, SearchRequest
from CorpusSearch.config import AppConfig
from CorpusSearch.services import create_search_session
from CorpusSearch.utils.log import configure_logging, log


class CommandRunner:
    """Orchestrates command execution with proper resource management."""

    def __init__(self, config: AppConfig) -> None:
        self.config = config

    def run_search(self, action: str, request: SearchRequest) -> None:
        """Execute a search command with full resource management.

        Args:
            action: The CLI command name (e.g., 'simple').
            request: Search request built from CLI options.

        Raises:
            click.Abort: When the search fails.
        """
        configure_logging(
            level=self.config.runtime.level,
            action=action,
            log_to_file=self.config.runtime.to_file,
            log_dir=self.config.runtime.dir,
        )
        session = create_search_session(self.config)
        try:
            SearchCommand(config=self.config, session=session, request=request).execute()
        except Exception as e:  # noqa: BLE001 - cli boundary
            log.error("Search failed: %s", e)
            raise click.Abort from e
        finally:
            session.close()
