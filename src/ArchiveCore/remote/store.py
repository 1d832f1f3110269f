"""Async store and search executor backed by the archive REST API.

The HTTP client is blocking; calls run in a worker thread so the Element
Browser's event loop keeps serving debounce timers while a request is in
flight.
"""

from __future__ import annotations

import asyncio
from typing import Any, Callable

from ArchiveCore.core import entities
from ArchiveCore.core.models import (
    ArchiveDocument,
    ElementFilter,
    ElementId,
    NewElement,
    SignatureComponent,
    SignatureElement,
    Tag,
    User,
    sort_elements,
)
from ArchiveCore.core.query import SearchRequest, SearchResponse
from ArchiveCore.remote.client import ArchiveApiClient
from ArchiveCore.services.store import element_filter_query


def _tag_from_dict(payload: dict[str, Any]) -> Tag:
    return Tag(id=int(payload["tagId"]), name=str(payload["name"]), description=payload.get("description"))


def _user_from_dict(payload: dict[str, Any]) -> User:
    return User(
        id=int(payload["userId"]),
        login=str(payload["login"]),
        role=str(payload.get("role") or "user"),
        active=bool(payload.get("active", True)),
    )


PARSERS: dict[str, Callable[[Any], Any]] = {
    entities.DOCUMENTS: ArchiveDocument.from_dict,
    entities.SIGNATURE_ELEMENTS: SignatureElement.from_dict,
    entities.TAGS: _tag_from_dict,
    entities.USERS: _user_from_dict,
}


class HttpSearchExecutor:
    """``SearchExecutor`` for one entity collection of the remote backend."""

    def __init__(self, client: ArchiveApiClient, entity: str) -> None:
        if entity not in PARSERS:
            raise ValueError(f"Unknown entity: {entity} (expected one of {sorted(PARSERS)})")
        self.client = client
        self.name = entity

    async def execute(self, request: SearchRequest) -> SearchResponse[Any]:
        payload = await asyncio.to_thread(self.client.search, self.name, request.to_dict())
        return SearchResponse.from_dict(payload, PARSERS[self.name])


class HttpSignatureStore:
    """``SignatureGraphStore`` and ``ElementCreator`` over the REST API."""

    def __init__(self, client: ArchiveApiClient) -> None:
        self.client = client
        self.elements = HttpSearchExecutor(client, entities.SIGNATURE_ELEMENTS)

    async def list_components(self) -> list[SignatureComponent]:
        payload = await asyncio.to_thread(self.client.list_components)
        return [SignatureComponent.from_dict(item) for item in payload]

    async def list_elements(self, element_filter: ElementFilter) -> list[SignatureElement]:
        response = await self.elements.execute(element_filter_query(element_filter))
        return sort_elements(response.data)

    async def get_element_by_id(self, element_id: ElementId) -> SignatureElement | None:
        payload = await asyncio.to_thread(self.client.get_element, element_id)
        return SignatureElement.from_dict(payload) if payload is not None else None

    async def create_element(self, new_element: NewElement) -> SignatureElement:
        payload = await asyncio.to_thread(self.client.create_element, new_element.to_dict())
        return SignatureElement.from_dict(payload)
