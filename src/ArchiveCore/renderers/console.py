"""Console text output renderers.

Renders search pages, signature elements, resolved signatures and the
Element Browser state into human-friendly text. Callers log the result line
by line.
"""

from __future__ import annotations

from typing import Any, Iterable, Sequence

from ArchiveCore.core.browser import BrowserMode, BrowserState, visible_candidates
from ArchiveCore.core.models import (
    ArchiveDocument,
    ResolvedSignature,
    SignatureComponent,
    SignatureElement,
    Tag,
    User,
)
from ArchiveCore.core.query import SearchResponse


def _finish(lines: list[str]) -> str:
    return "\n".join(lines).rstrip() + "\n"


def render_item(item: Any) -> str:
    """Render one search result as a single line."""
    if isinstance(item, SignatureElement):
        parents = ", ".join(str(parent) for parent in sorted(item.parent_ids)) or "-"
        return f"#{item.id} {item.label} (component {item.component_id}, parents: {parents})"
    if isinstance(item, ArchiveDocument):
        date = item.document_date or "-"
        return f"#{item.id} {item.title} [{date}] tags={sorted(item.tag_ids)} signatures={len(item.descriptive)}"
    if isinstance(item, Tag):
        return f"#{item.id} {item.name}" + (f" - {item.description}" if item.description else "")
    if isinstance(item, User):
        return f"#{item.id} {item.login} ({item.role}{'' if item.active else ', inactive'})"
    return str(item)


def render_text(response: SearchResponse[Any]) -> str:
    """Render a search page with its paging footer.

    Args:
        response: One page of results.

    Returns:
        A formatted string ready to be logged.
    """
    lines: list[str] = []
    first = (response.page - 1) * response.page_size + 1
    for idx, item in enumerate(response.data, start=first):
        lines.append(f"{idx}. {render_item(item)}")
    if not response.data:
        lines.append("No results.")
    lines.append("")
    lines.append(f"Page {response.page}/{response.total_pages} ({response.total_size} total)")
    return _finish(lines)


def render_components(components: Iterable[SignatureComponent]) -> str:
    lines = [
        f"#{component.id} {component.name} (index: {component.index_type}, count: {component.index_count})"
        for component in components
    ]
    return _finish(lines or ["No signature components."])


def render_elements(elements: Sequence[SignatureElement], *, cap: int | None = None) -> str:
    lines = [f"{idx}. {render_item(element)}" for idx, element in enumerate(elements, start=1)]
    if not lines:
        lines.append("No elements.")
    if cap is not None and len(elements) >= cap:
        lines.append(f"Showing the first {cap} results; narrow the search.")
    return _finish(lines)


def render_resolved(signatures: Iterable[ResolvedSignature]) -> str:
    lines: list[str] = []
    for signature in signatures:
        lines.append(f"{list(signature.path)} -> {signature.display}")
        if signature.error:
            lines.append(f"   Error: {signature.error}")
    return _finish(lines or ["No signatures."])


def render_browser(
    state: BrowserState,
    components: Sequence[SignatureComponent],
    *,
    path_display: str = "",
    components_error: str | None = None,
) -> str:
    """Render the browser panel: mode, component, path and candidates."""
    component_names = {component.id: component.name for component in components}
    lines = [f"Mode: {'hierarchical' if state.mode is BrowserMode.HIERARCHICAL else 'free'}"]
    if components_error:
        lines.append(f"Components unavailable: {components_error}")
    if state.selected_component_id is not None:
        name = component_names.get(state.selected_component_id, f"#{state.selected_component_id}")
        lines.append(f"Component: {name}")
    else:
        lines.append("Component: (none)")
    lines.append(f"Path: {path_display or '(empty)'}")
    if state.search_term:
        lines.append(f"Search: {state.search_term}")
    if state.loading:
        lines.append("Loading...")
    elif state.candidates_error:
        lines.append(f"Candidates unavailable: {state.candidates_error}")
    else:
        offered = visible_candidates(state)
        for element in offered:
            lines.append(f"  {element.id}: {element.label}")
        if not offered:
            lines.append("  (no candidates)")
        if state.cap_reached:
            lines.append("  More results available; refine the search.")
    return _finish(lines)
