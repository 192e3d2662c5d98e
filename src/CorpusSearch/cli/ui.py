"""Click CLI interface definitions.

Defines the command-line interface structure and routes commands
to their respective runners.
"""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from typing import Any

import click
from dotenv import load_dotenv

from CorpusSearch.cli.commands import SearchRequest
from CorpusSearch.cli.runner import CommandRunner
from CorpusSearch.config import load_config
from CorpusSearch.core.models import (
    ROOT,
    TOKEN,
    AdvancedSearch,
    ProximitySearch,
    SearchConfig,
    SearchField,
    SimpleSearch,
)
from CorpusSearch.core.params import DEFAULT_SLOP, parse_term_spec
from CorpusSearch.core.ranges import decompress_ranges


def _parse_texts(ctx: click.Context, param: click.Parameter, value: str | None) -> tuple[int, ...]:
    try:
        return tuple(decompress_ranges(value or ""))
    except ValueError as e:
        raise click.BadParameter(str(e), ctx=ctx, param=param) from e


def _common_options(func: Callable[..., Any]) -> Callable[..., Any]:
    """Attach options shared by every search mode."""
    options = [
        click.option(
            "--texts",
            "text_ids",
            default="",
            callback=_parse_texts,
            help="Restrict to text ids, e.g. '1-3,7'. Empty searches the whole corpus.",
        ),
        click.option("--page", type=click.IntRange(min=1), default=1, show_default=True, help="Result page."),
        click.option("--json", "output_json", is_flag=True, help="Print results as JSON."),
        click.option("--dry-run", is_flag=True, help="Print the compiled query body without searching."),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def _term_fields(specs: tuple[str, ...], group: str, definite: bool, proclitic: bool) -> tuple[SearchField, ...]:
    fields = []
    for spec in specs:
        term, search_in = parse_term_spec(spec)
        fields.append(
            SearchField(term=term, search_in=search_in, definite=definite, proclitic=proclitic, group=group)
        )
    return tuple(fields)


def _run(ctx: click.Context, search: SearchConfig, page: int, output_json: bool, dry_run: bool) -> None:
    runner = CommandRunner(ctx.obj)
    request = SearchRequest(search=search, page=page, output_json=output_json, dry_run=dry_run)
    runner.run_search(action=ctx.command.name, request=request)


@click.group(help="CorpusSearch: query an OpenSearch text corpus from the terminal.")
@click.option(
    "--config",
    "config_path",
    type=click.Path(path_type=Path, dir_okay=False),
    default=Path("config/default.yml"),
    show_default=True,
    help="Path to YAML config file.",
)
@click.pass_context
def cli(ctx: click.Context, config_path: Path) -> None:
    """CLI entry group.

    Loads environment variables from .env file before processing config,
    so backend credentials can be resolved.

    Args:
        ctx: Click context.
        config_path: Path to YAML config file.
    """
    load_dotenv()

    cfg = load_config(config_path)
    ctx.obj = cfg


@cli.group("search")
def search_group() -> None:
    """Run a simple, advanced or proximity search."""


@search_group.command("simple")
@click.argument("term")
@click.option("--root", "use_root", is_flag=True, help="Match the consonantal root instead of the token.")
@click.option("--definite", is_flag=True, help="Match through the definite-article variant.")
@click.option("--proclitic", is_flag=True, help="Match through the proclitic variant.")
@_common_options
@click.pass_context
def simple_cmd(
    ctx: click.Context,
    term: str,
    use_root: bool,
    definite: bool,
    proclitic: bool,
    text_ids: tuple[int, ...],
    page: int,
    output_json: bool,
    dry_run: bool,
) -> None:
    """Search a single term or phrase.

    Raises:
        click.Abort: When the search fails.
    """
    search_field = SearchField(
        term=term,
        search_in=ROOT if use_root else TOKEN,
        definite=definite,
        proclitic=proclitic,
    )
    _run(ctx, SimpleSearch(field=search_field, selected_texts=text_ids), page, output_json, dry_run)


@search_group.command("advanced")
@click.option(
    "--and",
    "and_terms",
    multiple=True,
    required=True,
    help="Required term, as TERM or TERM:root. Repeat 2-5 times.",
)
@click.option("--or", "or_terms", multiple=True, help="Alternative term, as TERM or TERM:root. Repeat 2-5 times.")
@click.option("--definite", is_flag=True, help="Token terms match through the definite-article variant.")
@click.option("--proclitic", is_flag=True, help="Token terms match through the proclitic variant.")
@_common_options
@click.pass_context
def advanced_cmd(
    ctx: click.Context,
    and_terms: tuple[str, ...],
    or_terms: tuple[str, ...],
    definite: bool,
    proclitic: bool,
    text_ids: tuple[int, ...],
    page: int,
    output_json: bool,
    dry_run: bool,
) -> None:
    """Search pages containing all AND terms and, if given, any OR term."""
    search = AdvancedSearch(
        and_fields=_term_fields(and_terms, "AND", definite, proclitic),
        or_fields=_term_fields(or_terms, "OR", definite, proclitic),
        selected_texts=text_ids,
    )
    _run(ctx, search, page, output_json, dry_run)


@search_group.command("proximity")
@click.argument("first")
@click.argument("second")
@click.option("--slop", type=int, default=DEFAULT_SLOP, show_default=True, help="Maximum token distance.")
@click.option("--definite", is_flag=True, help="Match through the definite-article variant.")
@click.option("--proclitic", is_flag=True, help="Match through the proclitic variant.")
@_common_options
@click.pass_context
def proximity_cmd(
    ctx: click.Context,
    first: str,
    second: str,
    slop: int,
    definite: bool,
    proclitic: bool,
    text_ids: tuple[int, ...],
    page: int,
    output_json: bool,
    dry_run: bool,
) -> None:
    """Search two words within SLOP tokens of each other, in either order.

    FIRST and SECOND accept the TERM:root form.
    """
    first_term, first_in = parse_term_spec(first)
    second_term, second_in = parse_term_spec(second)
    search = ProximitySearch(
        first_term=SearchField(term=first_term, search_in=first_in, definite=definite, proclitic=proclitic),
        second_term=SearchField(term=second_term, search_in=second_in, definite=definite, proclitic=proclitic),
        slop=slop,
        selected_texts=text_ids,
    )
    _run(ctx, search, page, output_json, dry_run)
