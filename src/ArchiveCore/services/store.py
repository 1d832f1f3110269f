"""Read-side contract of the signature graph storage collaborator."""

from __future__ import annotations

from typing import Protocol, Sequence

from ArchiveCore.core.conditions import Condition
from ArchiveCore.core.models import ElementFilter, ElementId, NewElement, SignatureComponent, SignatureElement
from ArchiveCore.core.query import SearchQueryElement, SearchRequest

ELEMENT_NAME_FIELD = "name"
ELEMENT_COMPONENT_FIELD = "signatureComponentId"
ELEMENT_PARENTS_FIELD = "parentIds"


class SignatureGraphStore(Protocol):
    """Reads components and elements; writes are not part of this contract."""

    async def list_components(self) -> Sequence[SignatureComponent]:
        """Return all components."""
        raise NotImplementedError

    async def list_elements(self, element_filter: ElementFilter) -> Sequence[SignatureElement]:
        """Return at most ``max_results`` matching elements.

        Results are sorted by index (numeric-aware) then name, case-insensitive.
        """
        raise NotImplementedError

    async def get_element_by_id(self, element_id: ElementId) -> SignatureElement | None:
        """Return the element, or None when it does not exist."""
        raise NotImplementedError


class ElementCreator(Protocol):
    """Creates elements on behalf of the Element Browser's "new element" action."""

    async def create_element(self, new_element: NewElement) -> SignatureElement:
        raise NotImplementedError


def element_filter_query(element_filter: ElementFilter) -> SearchRequest:
    """Express an element filter as a search request on the element collection."""
    query: list[SearchQueryElement] = []
    if element_filter.name_fragment:
        query.append(SearchQueryElement(ELEMENT_NAME_FIELD, Condition.FRAGMENT, element_filter.name_fragment))
    if element_filter.component_id is not None:
        query.append(SearchQueryElement(ELEMENT_COMPONENT_FIELD, Condition.EQ, element_filter.component_id))
    if element_filter.parent_id is not None:
        query.append(SearchQueryElement(ELEMENT_PARENTS_FIELD, Condition.ANY_OF, [element_filter.parent_id]))
    return SearchRequest(query=tuple(query), page=1, page_size=element_filter.max_results)
