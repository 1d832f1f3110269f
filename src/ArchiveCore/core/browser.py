"""Element Browser state machine for assembling a signature path.

The state is an immutable, serializable value and every transition is a pure
function returning a new state, so any UI layer can drive it the same way.
Transitions whose guard fails return the state unchanged: structural
violations (confirming an empty path, choosing a component mid-path in
hierarchical mode) are disabled actions, not runtime errors. Use the
``can_*`` predicates to enable or hide the matching controls.

Every transition that changes the lookup scope bumps ``generation``. A
candidate fetch is tagged with the generation it was started for and its
result is applied only while that generation is still current, so a slow
response for an old search term can never overwrite a newer one.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Iterable, Mapping

from ArchiveCore.core.models import (
    ComponentId,
    ElementFilter,
    ElementId,
    Signature,
    SignatureElement,
    sort_elements,
)

DEFAULT_MAX_RESULTS = 200


class BrowserMode(str, Enum):
    HIERARCHICAL = "hierarchical"
    FREE = "free"


@dataclass(frozen=True, slots=True)
class BrowserState:
    """Snapshot of one Element Browser session.

    Attributes:
        mode: ``hierarchical`` follows parent links; ``free`` picks from any component.
        path: Element ids picked so far, in pick order.
        selected_component_id: Component scoping the lookup, if any.
        search_term: Name fragment typed by the user.
        candidates: Elements offered for the next pick.
        cap_reached: The last fetch hit the result cap; the UI should ask for a narrower search.
        loading: A candidate fetch for the current generation is in flight.
        candidates_error: Message of the last failed candidate fetch.
        generation: Lookup scope counter used to discard stale fetch results.
    """

    mode: BrowserMode = BrowserMode.HIERARCHICAL
    path: tuple[ElementId, ...] = ()
    selected_component_id: ComponentId | None = None
    search_term: str = ""
    candidates: tuple[SignatureElement, ...] = ()
    cap_reached: bool = False
    loading: bool = False
    candidates_error: str | None = None
    generation: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "mode": self.mode.value,
            "path": list(self.path),
            "selectedComponentId": self.selected_component_id,
            "searchTerm": self.search_term,
            "candidates": [element.to_dict() for element in self.candidates],
            "capReached": self.cap_reached,
            "loading": self.loading,
            "candidatesError": self.candidates_error,
            "generation": self.generation,
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> BrowserState:
        component_id = payload.get("selectedComponentId")
        return cls(
            mode=BrowserMode(payload.get("mode", BrowserMode.HIERARCHICAL.value)),
            path=tuple(int(item) for item in payload.get("path", ())),
            selected_component_id=int(component_id) if component_id is not None else None,
            search_term=str(payload.get("searchTerm", "")),
            candidates=tuple(SignatureElement.from_dict(item) for item in payload.get("candidates", ())),
            cap_reached=bool(payload.get("capReached", False)),
            loading=bool(payload.get("loading", False)),
            candidates_error=payload.get("candidatesError"),
            generation=int(payload.get("generation", 0)),
        )


def _rescoped(state: BrowserState, **changes: Any) -> BrowserState:
    """Apply changes that invalidate the current candidate list."""
    return replace(
        state,
        candidates=(),
        cap_reached=False,
        loading=False,
        candidates_error=None,
        generation=state.generation + 1,
        **changes,
    )


def initial_state() -> BrowserState:
    return BrowserState()


def switch_mode(state: BrowserState, mode: BrowserMode | str) -> BrowserState:
    """Change mode; clears the path, the component and the search term."""
    new_mode = BrowserMode(mode)
    if new_mode is state.mode:
        return state
    return _rescoped(state, mode=new_mode, path=(), selected_component_id=None, search_term="")


def can_select_component(state: BrowserState) -> bool:
    return state.mode is BrowserMode.FREE or not state.path


def select_component(state: BrowserState, component_id: ComponentId | None) -> BrowserState:
    """Scope the lookup to a component (``None`` clears it); clears the search term."""
    if not can_select_component(state):
        return state
    return _rescoped(state, selected_component_id=component_id, search_term="")


def set_search_term(state: BrowserState, term: str) -> BrowserState:
    """Record a new search term.

    Offered candidates narrow to the term at once (see ``visible_candidates``);
    the generation bump makes any older in-flight fetch stale.
    """
    if term == state.search_term:
        return state
    return replace(state, search_term=term, generation=state.generation + 1)


def candidate_filter(state: BrowserState, max_results: int = DEFAULT_MAX_RESULTS) -> ElementFilter | None:
    """Return the lookup for the current scope, or None when nothing should be listed.

    - A search term filters by name fragment, narrowed by the selected component if any.
    - Hierarchical mode lists children of the last picked element (the parent
      link alone decides eligibility), or every element of the selected
      component before the first pick.
    - Free mode lists the selected component; without one it lists nothing.
    """
    term = state.search_term.strip()
    if term:
        return ElementFilter(
            component_id=state.selected_component_id,
            name_fragment=term,
            max_results=max_results,
        )
    if state.mode is BrowserMode.HIERARCHICAL:
        if state.path:
            return ElementFilter(parent_id=state.path[-1], max_results=max_results)
        if state.selected_component_id is not None:
            return ElementFilter(component_id=state.selected_component_id, max_results=max_results)
        return None
    if state.selected_component_id is not None:
        return ElementFilter(component_id=state.selected_component_id, max_results=max_results)
    return None


def begin_fetch(state: BrowserState) -> BrowserState:
    return replace(state, loading=True, candidates_error=None)


def apply_candidates(
    state: BrowserState,
    generation: int,
    elements: Iterable[SignatureElement],
    *,
    max_results: int = DEFAULT_MAX_RESULTS,
) -> BrowserState:
    """Install fetched candidates if ``generation`` is still current.

    Elements already on the path are not offered again, which keeps a path
    free of repeated elements in both modes.
    """
    if generation != state.generation:
        return state
    fetched = list(elements)
    offered = [element for element in fetched if element.id not in state.path]
    return replace(
        state,
        candidates=tuple(sort_elements(offered)),
        cap_reached=len(fetched) >= max_results,
        loading=False,
        candidates_error=None,
    )


def apply_fetch_error(state: BrowserState, generation: int, message: str) -> BrowserState:
    """Record a failed candidate fetch; the path is left untouched."""
    if generation != state.generation:
        return state
    return replace(state, candidates=(), cap_reached=False, loading=False, candidates_error=message)


def visible_candidates(state: BrowserState) -> tuple[SignatureElement, ...]:
    """Candidates narrowed by the typed term while its fetch is pending."""
    term = state.search_term.strip().casefold()
    if not term:
        return state.candidates
    return tuple(element for element in state.candidates if term in element.name.casefold())


def pick_candidate(state: BrowserState, element_id: ElementId) -> BrowserState:
    """Append an offered candidate to the path.

    Clears the search term; in free mode also clears the component so the
    next step chooses its scope again.
    """
    if not any(element.id == element_id for element in visible_candidates(state)):
        return state
    component_id = None if state.mode is BrowserMode.FREE else state.selected_component_id
    return _rescoped(
        state,
        path=(*state.path, element_id),
        search_term="",
        selected_component_id=component_id,
    )


def can_remove_last(state: BrowserState) -> bool:
    return bool(state.path)


def remove_last(state: BrowserState) -> BrowserState:
    """Drop the last picked element; emptying a hierarchical path also clears the component."""
    if not state.path:
        return state
    path = state.path[:-1]
    component_id = state.selected_component_id
    if state.mode is BrowserMode.HIERARCHICAL and not path:
        component_id = None
    return _rescoped(state, path=path, selected_component_id=component_id)


def can_confirm(state: BrowserState) -> bool:
    return bool(state.path)


def confirm(state: BrowserState) -> tuple[BrowserState, Signature | None]:
    """Emit the path as a finished signature and reset the machine.

    Returns:
        ``(new_state, signature)``; ``signature`` is None and the state is
        unchanged when the path is empty.
    """
    if not state.path:
        return state, None
    return BrowserState(generation=state.generation + 1), tuple(state.path)


def cancel(state: BrowserState) -> BrowserState:
    """Reset the machine without emitting a signature."""
    return BrowserState(generation=state.generation + 1)


def refresh(state: BrowserState) -> BrowserState:
    """Invalidate the candidate list so the current scope is fetched again."""
    return replace(state, generation=state.generation + 1)


def can_create_element(state: BrowserState) -> bool:
    """Creating an element is offered only with a component selected.

    In hierarchical mode only roots may be created here, i.e. while the path
    is still empty.
    """
    if state.selected_component_id is None:
        return False
    return state.mode is BrowserMode.FREE or not state.path
