"""Click CLI interface definitions.

Defines the command-line interface structure and routes commands
to their respective runners.
"""

from __future__ import annotations

from functools import partial
from pathlib import Path

import click
from dotenv import load_dotenv

from ArchiveCore.cli import commands
from ArchiveCore.cli.runner import CommandRunner
from ArchiveCore.config import DEFAULT_CONFIG_PATH, load_config_with_defaults
from ArchiveCore.core.entities import ENTITY_FIELDS

_FORMAT_OPTION = click.option(
    "--format",
    "output_format",
    type=click.Choice(["text", "json"]),
    default="text",
    show_default=True,
    help="Output format.",
)


@click.group(help="ArchiveCore: browse signatures and search the archive.")
@click.option(
    "--config",
    "config_path",
    type=click.Path(path_type=Path, dir_okay=False),
    default=DEFAULT_CONFIG_PATH,
    show_default=True,
    help="Path to YAML config file (merged over the defaults).",
)
@click.option(
    "--defaults",
    "default_path",
    type=click.Path(path_type=Path, dir_okay=False),
    default=DEFAULT_CONFIG_PATH,
    show_default=True,
    help="Path to the default YAML config file.",
)
@click.pass_context
def cli(ctx: click.Context, config_path: Path, default_path: Path) -> None:
    """CLI entry group.

    Loads environment variables from .env file before processing config.
    """
    load_dotenv()
    ctx.obj = load_config_with_defaults(config_path, default_path=default_path)


@cli.command("init-db")
@click.pass_context
def init_db_cmd(ctx: click.Context) -> None:
    """Create or migrate the SQLite database."""
    CommandRunner(ctx.obj).run_init_db(action=ctx.command.name)


@cli.command("components")
@click.pass_context
def components_cmd(ctx: click.Context) -> None:
    """List signature components."""
    CommandRunner(ctx.obj).run(ctx.command.name, commands.list_components)


@cli.command("elements")
@click.option("--component", "component_id", type=int, default=None, help="Component id.")
@click.option("--parent", "parent_id", type=int, default=None, help="Only children of this element.")
@click.option("--name", default=None, help="Name fragment (case-insensitive).")
@click.option("--limit", type=click.IntRange(min=1), default=None, help="Maximum results (default: browser.max_results).")
@click.pass_context
def elements_cmd(
    ctx: click.Context,
    component_id: int | None,
    parent_id: int | None,
    name: str | None,
    limit: int | None,
) -> None:
    """List signature elements in display order."""
    cfg = ctx.obj
    CommandRunner(cfg).run(
        ctx.command.name,
        partial(
            commands.list_elements,
            component_id=component_id,
            parent_id=parent_id,
            name=name,
            limit=limit or cfg.browser.max_results,
        ),
    )


@cli.command("resolve")
@click.argument("element_ids", nargs=-1, required=True, type=click.IntRange(min=1))
@_FORMAT_OPTION
@click.pass_context
def resolve_cmd(ctx: click.Context, element_ids: tuple[int, ...], output_format: str) -> None:
    """Render the signature path ELEMENT_IDS (root first)."""
    CommandRunner(ctx.obj).run(
        ctx.command.name,
        partial(commands.resolve, paths=[tuple(element_ids)], output_format=output_format),
    )


@cli.command("search")
@click.argument("entity", type=click.Choice(sorted(ENTITY_FIELDS)))
@click.option("-f", "--filter", "filters", multiple=True, help="FIELD:CONDITION[:VALUE]; arrays are comma-separated.")
@click.option("--not-filter", "not_filters", multiple=True, help="Negated FIELD:CONDITION[:VALUE].")
@click.option("--page", type=click.IntRange(min=1), default=1, show_default=True)
@click.option("--page-size", type=click.IntRange(min=1), default=None, help="Default: search.page_size.")
@_FORMAT_OPTION
@click.pass_context
def search_cmd(
    ctx: click.Context,
    entity: str,
    filters: tuple[str, ...],
    not_filters: tuple[str, ...],
    page: int,
    page_size: int | None,
    output_format: str,
) -> None:
    """Search an ENTITY collection; filters are AND-ed."""
    cfg = ctx.obj
    criteria = [commands.parse_filter(text, entity) for text in filters]
    criteria += [commands.parse_filter(text, entity, negate=True) for text in not_filters]
    CommandRunner(cfg).run(
        ctx.command.name,
        partial(
            commands.search,
            entity=entity,
            criteria=criteria,
            page=page,
            page_size=page_size or cfg.search.page_size,
            output_format=output_format,
        ),
    )


@cli.command("browse")
@click.pass_context
def browse_cmd(ctx: click.Context) -> None:
    """Build signature paths interactively."""
    cfg = ctx.obj
    CommandRunner(cfg).run(ctx.command.name, partial(commands.browse, config=cfg))
