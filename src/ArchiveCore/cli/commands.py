"""Command implementations for the ArchiveCore CLI.

Each command is an async function over a ``Backend``; parameter handling
lives in ``ui`` and lifecycle/error handling in ``runner``.
"""

from __future__ import annotations

from typing import Sequence

import click

from ArchiveCore.config import AppConfig
from ArchiveCore.core.conditions import ValueShape, parse_condition, value_shape
from ArchiveCore.core.entities import field_defs_for
from ArchiveCore.core.models import ElementFilter, Signature
from ArchiveCore.core.query import Criterion
from ArchiveCore.renderers import (
    dumps,
    render_browser,
    render_components,
    render_elements,
    render_json,
    render_resolved,
    render_resolved_json,
    render_text,
)
from ArchiveCore.services import Backend, ElementBrowser, SignaturePathResolver
from ArchiveCore.utils.log import log


def _log_lines(text: str) -> None:
    for line in text.splitlines():
        log.info(line)


def parse_filter(text: str, entity: str, *, negate: bool = False) -> Criterion:
    """Parse ``FIELD:CONDITION[:VALUE]`` into a criterion.

    Array-valued conditions split the value on ``,``. Unknown fields and
    conditions are kept as typed; ``build_query`` drops them.

    Raises:
        click.BadParameter: If the text has no condition part.
    """
    field_name, sep, rest = text.partition(":")
    if not sep or not field_name.strip():
        raise click.BadParameter(f"expected FIELD:CONDITION[:VALUE], got {text!r}")
    condition_text, _, value_text = rest.partition(":")
    field_name = field_name.strip()
    condition = parse_condition(condition_text.strip().upper())

    value: object = value_text
    field_def = next((item for item in field_defs_for(entity) if item.name == field_name), None)
    if field_def is not None and condition is not None:
        if value_shape(field_def.type, condition) is ValueShape.ARRAY:
            value = [item.strip() for item in value_text.split(",") if item.strip()]
    return Criterion(
        field=field_name,
        condition=condition if condition is not None else condition_text.strip(),
        value=value,
        negate=negate,
    )


async def list_components(backend: Backend) -> None:
    components = await backend.signature_store.list_components()
    _log_lines(render_components(components))


async def list_elements(
    backend: Backend,
    *,
    component_id: int | None,
    parent_id: int | None,
    name: str | None,
    limit: int,
) -> None:
    element_filter = ElementFilter(
        component_id=component_id,
        parent_id=parent_id,
        name_fragment=name or None,
        max_results=limit,
    )
    elements = await backend.signature_store.list_elements(element_filter)
    _log_lines(render_elements(elements, cap=limit))


async def resolve(backend: Backend, paths: Sequence[Signature], *, output_format: str) -> None:
    resolved = await SignaturePathResolver(backend.signature_store).resolve_many(paths)
    if output_format == "json":
        click.echo(dumps(render_resolved_json(resolved)))
        return
    _log_lines(render_resolved(resolved))


async def search(
    backend: Backend,
    entity: str,
    criteria: Sequence[Criterion],
    *,
    page: int,
    page_size: int,
    output_format: str,
) -> None:
    service = backend.search_service(entity, page_size)
    request = service.request_for(criteria, page=page, page_size=page_size)
    if len(request.query) < len(criteria):
        log.warning("Ignored %d incomplete or invalid filter(s)", len(criteria) - len(request.query))
    response = await service.execute(request)
    if output_format == "json":
        click.echo(dumps(render_json(response)))
        return
    _log_lines(render_text(response))


BROWSE_HELP = """Commands:
  mode hierarchical|free   switch browsing mode
  component ID             select a component
  search TEXT              filter candidates by name (empty clears)
  pick ID                  append a candidate to the path
  back                     remove the last path element
  new NAME                 create an element in the selected component
  confirm                  emit the path and start over
  cancel                   clear everything
  quit                     leave"""


async def browse(backend: Backend, config: AppConfig) -> list[Signature]:
    """Interactive Element Browser session on the terminal.

    Returns:
        Every signature confirmed during the session.
    """
    confirmed: list[Signature] = []
    store = backend.signature_store
    browser = ElementBrowser(
        store,
        creator=store if hasattr(store, "create_element") else None,
        debounce_delay=config.browser.debounce_delay,
        max_results=config.browser.max_results,
        on_confirm=confirmed.append,
    )
    resolver = SignaturePathResolver(store)
    await browser.load_components()
    click.echo(BROWSE_HELP)

    try:
        while True:
            path_display = (await resolver.resolve(browser.state.path)).display if browser.state.path else ""
            click.echo(
                render_browser(
                    browser.state,
                    browser.components,
                    path_display=path_display,
                    components_error=browser.components_error,
                )
            )
            line = click.prompt("browse", default="", show_default=False).strip()
            command, _, argument = line.partition(" ")
            argument = argument.strip()
            if command in ("quit", "exit", "q"):
                break
            if not await _browse_step(browser, resolver, command, argument):
                click.echo(BROWSE_HELP)
    finally:
        await browser.close()
    return confirmed


async def _browse_step(browser: ElementBrowser, resolver: SignaturePathResolver, command: str, argument: str) -> bool:
    if command == "mode" and argument.lower() in ("hierarchical", "free"):
        await browser.switch_mode(argument.lower())
    elif command == "component" and argument.isdigit():
        if not browser.can_select_component:
            click.echo("The component is fixed while the path is not empty.")
        else:
            await browser.select_component(int(argument))
    elif command == "search":
        browser.set_search_term(argument)
        await browser.wait_idle()
    elif command == "pick" and argument.isdigit():
        if not await browser.pick(int(argument)):
            click.echo(f"Element {argument} is not a candidate.")
    elif command == "back":
        await browser.remove_last()
    elif command == "new" and argument:
        if not browser.can_create_element:
            click.echo("Select a component (with an empty path in hierarchical mode) first.")
        else:
            element = await browser.create_element(argument)
            if element is not None:
                click.echo(f"Created {element.label} (#{element.id})")
    elif command == "confirm":
        signature = browser.confirm()
        if signature is None:
            click.echo("Nothing to confirm.")
        else:
            resolved = await resolver.resolve(signature)
            log.info("Confirmed %s -> %s", list(signature), resolved.display)
    elif command == "cancel":
        browser.cancel()
    else:
        return False
    return True
