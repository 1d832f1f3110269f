"""Async Element Browser controller.

Drives the pure state machine in ``ArchiveCore.core.browser`` against a
``SignatureGraphStore``: candidate lookups run immediately on mode, component
and path changes, and are debounced on search-term changes. Each lookup is
tagged with the state generation it was started for; results that arrive
after the scope moved on are discarded.

Store failures never unwind the path. They are recorded per region:
``components_error`` for the component list and ``state.candidates_error``
for the candidate list.
"""

from __future__ import annotations

import asyncio
from typing import Callable, Sequence

from ArchiveCore.core import browser as machine
from ArchiveCore.core.browser import BrowserMode, BrowserState
from ArchiveCore.core.models import ComponentId, ElementId, NewElement, Signature, SignatureComponent, SignatureElement
from ArchiveCore.services.store import ElementCreator, SignatureGraphStore
from ArchiveCore.utils.log import log

DEFAULT_DEBOUNCE_DELAY = 0.3


def _error_message(error: Exception) -> str:
    return str(error) or type(error).__name__


class ElementBrowser:
    """Interactive signature path builder owned by one UI session."""

    def __init__(
        self,
        store: SignatureGraphStore,
        *,
        creator: ElementCreator | None = None,
        debounce_delay: float = DEFAULT_DEBOUNCE_DELAY,
        max_results: int = machine.DEFAULT_MAX_RESULTS,
        on_confirm: Callable[[Signature], None] | None = None,
    ) -> None:
        """Initialize the browser in its initial state.

        Args:
            store: Read-side signature graph store.
            creator: Optional collaborator backing the "new element" action.
            debounce_delay: Seconds to wait after the last search-term change.
            max_results: Candidate cap per lookup.
            on_confirm: Receives each confirmed signature.
        """
        self.store = store
        self.creator = creator
        self.debounce_delay = debounce_delay
        self.max_results = max_results
        self.on_confirm = on_confirm
        self.state: BrowserState = machine.initial_state()
        self.components: tuple[SignatureComponent, ...] = ()
        self.components_error: str | None = None
        self._debounce_task: asyncio.Task[None] | None = None

    @property
    def can_select_component(self) -> bool:
        return machine.can_select_component(self.state)

    @property
    def can_create_element(self) -> bool:
        return self.creator is not None and machine.can_create_element(self.state)

    @property
    def can_confirm(self) -> bool:
        return machine.can_confirm(self.state)

    async def load_components(self) -> None:
        """Fetch the component list, sorted by name."""
        try:
            components = await self.store.list_components()
        except Exception as error:  # noqa: BLE001 - surfaced on the component region
            log.warning("Loading signature components failed: %s", error)
            self.components_error = _error_message(error)
            return
        self.components = tuple(sorted(components, key=lambda component: component.name.casefold()))
        self.components_error = None
        log.debug("Loaded %d signature components", len(self.components))

    async def switch_mode(self, mode: BrowserMode | str) -> None:
        await self._transition(machine.switch_mode(self.state, mode))

    async def select_component(self, component_id: ComponentId | None) -> None:
        await self._transition(machine.select_component(self.state, component_id))

    def set_search_term(self, term: str) -> None:
        """Record a search term and schedule a debounced lookup.

        Must be called from a running event loop.
        """
        new_state = machine.set_search_term(self.state, term)
        if new_state is self.state:
            return
        self.state = new_state
        self._cancel_pending()
        generation = self.state.generation
        self._debounce_task = asyncio.get_running_loop().create_task(self._debounced_fetch(generation))

    async def pick(self, element_id: ElementId) -> bool:
        """Append an offered candidate; returns False when it is not on offer."""
        return await self._transition(machine.pick_candidate(self.state, element_id))

    async def remove_last(self) -> bool:
        return await self._transition(machine.remove_last(self.state))

    def confirm(self) -> Signature | None:
        """Emit the current path and reset; returns None when the path is empty."""
        new_state, signature = machine.confirm(self.state)
        if signature is None:
            return None
        self._cancel_pending()
        self.state = new_state
        log.debug("Signature confirmed: %s", list(signature))
        if self.on_confirm is not None:
            self.on_confirm(signature)
        return signature

    def cancel(self) -> None:
        self._cancel_pending()
        self.state = machine.cancel(self.state)

    async def create_element(
        self,
        name: str,
        *,
        index: str | None = None,
        description: str | None = None,
    ) -> SignatureElement | None:
        """Create an element in the selected component and refresh the candidates.

        Returns None without calling the store when creation is not offered
        for the current state. Elements created here are roots.
        """
        if not self.can_create_element or self.creator is None:
            return None
        component_id = self.state.selected_component_id
        assert component_id is not None
        element = await self.creator.create_element(
            NewElement(component_id=component_id, name=name, index=index, description=description)
        )
        log.info("Created signature element id=%s in component=%s", element.id, component_id)
        await self.element_created()
        return element

    async def element_created(self) -> None:
        """Re-run the lookup for the current scope after an external create."""
        await self._transition(machine.refresh(self.state))

    async def wait_idle(self) -> None:
        """Wait for a pending debounced lookup, if any."""
        task = self._debounce_task
        if task is not None and not task.done():
            try:
                await task
            except asyncio.CancelledError:
                if not task.cancelled():
                    raise

    async def close(self) -> None:
        self._cancel_pending()
        await self.wait_idle()

    async def _transition(self, new_state: BrowserState) -> bool:
        if new_state is self.state:
            return False
        self._cancel_pending()
        self.state = new_state
        await self._fetch(self.state.generation)
        return True

    def _cancel_pending(self) -> None:
        if self._debounce_task is not None and not self._debounce_task.done():
            self._debounce_task.cancel()

    async def _debounced_fetch(self, generation: int) -> None:
        await asyncio.sleep(self.debounce_delay)
        await self._fetch(generation)

    async def _fetch(self, generation: int) -> None:
        if generation != self.state.generation:
            return
        element_filter = machine.candidate_filter(self.state, self.max_results)
        if element_filter is None:
            self.state = machine.apply_candidates(self.state, generation, (), max_results=self.max_results)
            return

        self.state = machine.begin_fetch(self.state)
        try:
            elements: Sequence[SignatureElement] = await self.store.list_elements(element_filter)
        except Exception as error:  # noqa: BLE001 - surfaced on the candidate region
            log.warning("Candidate lookup failed: filter=%s error=%s", element_filter, error)
            self.state = machine.apply_fetch_error(self.state, generation, _error_message(error))
            return

        if generation != self.state.generation:
            log.debug("Discarding stale candidates for generation %d (current %d)", generation, self.state.generation)
            return
        self.state = machine.apply_candidates(self.state, generation, elements, max_results=self.max_results)
        if self.state.cap_reached:
            log.info("Candidate list capped at %d results; narrow the search", self.max_results)
