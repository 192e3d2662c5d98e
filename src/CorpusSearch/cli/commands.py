"""Command implementations for CorpusSearch CLI.

Encapsulates the search command's logic, separated from click parameter
handling and from component wiring.
"""

from __future__ import annotations

import json
from collections.abc import Callable
from dataclasses import dataclass

import click

from CorpusSearch.config import AppConfig
from CorpusSearch.core.models import SearchConfig
from CorpusSearch.core.validate import validate_search_config
from CorpusSearch.renderers import render_json, render_text
from CorpusSearch.services.search import SearchSession
from CorpusSearch.utils.log import log


@dataclass(frozen=True, slots=True)
class SearchRequest:
    """One search as requested on the command line."""

    search: SearchConfig
    page: int = 1
    output_json: bool = False
    dry_run: bool = False


@dataclass(slots=True)
class SearchCommand:
    """Runs one search request against a session and prints the page.

    Backend failures recorded by the session are re-raised here so the CLI
    boundary can turn them into a non-zero exit.
    """

    config: AppConfig
    session: SearchSession
    request: SearchRequest
    echo: Callable[[str], None] = click.echo

    def execute(self) -> None:
        search = self.request.search
        validate_search_config(search)

        if self.request.dry_run:
            query = self.session.build_query(search, self.request.page)
            self.echo(json.dumps(query.to_body(), ensure_ascii=False, indent=2))
            return

        log.info(
            "mode=%s page=%d texts=%s",
            search.mode,
            self.request.page,
            len(search.selected_texts) or "all",
        )
        self.session.search(search, page=self.request.page)
        if self.session.last_error is not None:
            raise self.session.last_error

        session = self.session
        log.info(
            "Fetched page %d/%d (%d results)",
            session.current_page,
            session.total_pages,
            session.total_results,
        )
        if self.request.output_json:
            payload = render_json(
                session.displayed_results,
                page=session.current_page,
                total_pages=session.total_pages,
                total_results=session.total_results,
            )
            self.echo(json.dumps(payload, ensure_ascii=False, indent=2))
            return

        settings = self.config.search
        self.echo(
            render_text(
                session.displayed_results,
                first_rank=(session.current_page - 1) * session.items_per_page + 1,
                pre_tag=settings.pre_tag,
                post_tag=settings.post_tag,
            ).rstrip("\n")
        )
