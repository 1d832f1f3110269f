"""Search execution contract shared by every searchable collection."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Generic, Protocol, Sequence, TypeVar

from ArchiveCore.core.builder import build_query
from ArchiveCore.core.errors import SearchValidationError
from ArchiveCore.core.query import (
    DEFAULT_PAGE_SIZE,
    Criterion,
    FieldDef,
    SearchRequest,
    SearchResponse,
    total_pages_for,
)
from ArchiveCore.utils.log import log

T = TypeVar("T")


class SearchExecutor(Protocol[T]):
    """Executes a search request against one entity collection."""

    name: str

    async def execute(self, request: SearchRequest) -> SearchResponse[T]:
        """Return one page of results."""
        raise NotImplementedError


@dataclass(slots=True)
class SearchService(Generic[T]):
    """Builds queries from criteria and runs them through an executor.

    The service owns only the envelope: it validates what goes out and checks
    that what comes back is a consistent page of the request.
    """

    executor: SearchExecutor[T]
    field_defs: Sequence[FieldDef]
    default_page_size: int = DEFAULT_PAGE_SIZE

    def request_for(
        self,
        criteria: Sequence[Criterion],
        *,
        page: int = 1,
        page_size: int | None = None,
    ) -> SearchRequest:
        query = build_query(criteria, self.field_defs)
        return SearchRequest(query=tuple(query), page=page, page_size=page_size or self.default_page_size)

    async def search(
        self,
        criteria: Sequence[Criterion],
        *,
        page: int = 1,
        page_size: int | None = None,
    ) -> SearchResponse[T]:
        """Build a query from criteria and execute it.

        Raises:
            SearchValidationError: If paging is invalid or the executor returns an inconsistent page.
        """
        return await self.execute(self.request_for(criteria, page=page, page_size=page_size))

    async def execute(self, request: SearchRequest) -> SearchResponse[T]:
        """Execute a prepared request and validate the response envelope."""
        log.debug(
            "Executing search on %s: page=%d pageSize=%d query=%s",
            getattr(self.executor, "name", "unknown"),
            request.page,
            request.page_size,
            [element.to_dict() for element in request.query],
        )
        response = await self.executor.execute(request)
        check_response(request, response)
        log.info(
            "Search on %s returned %d/%d items (page %d/%d)",
            getattr(self.executor, "name", "unknown"),
            len(response.data),
            response.total_size,
            response.page,
            response.total_pages,
        )
        return response


def check_response(request: SearchRequest, response: SearchResponse[Any]) -> None:
    """Raise if ``response`` is not a consistent page for ``request``.

    Raises:
        SearchValidationError: On mismatched paging or more items than the page size.
    """
    if response.page != request.page:
        raise SearchValidationError(f"response page {response.page} does not match request page {request.page}")
    if response.page_size != request.page_size:
        raise SearchValidationError(
            f"response pageSize {response.page_size} does not match request pageSize {request.page_size}"
        )
    if len(response.data) > response.page_size:
        raise SearchValidationError(f"response holds {len(response.data)} items for pageSize {response.page_size}")
    if response.total_pages != total_pages_for(response.total_size, response.page_size):
        raise SearchValidationError("response totalPages is inconsistent with totalSize")

