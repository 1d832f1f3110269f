"""Render signature paths as human-readable strings."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Iterable, Sequence

from ArchiveCore.core.models import ElementId, ResolvedSignature, SignatureElement
from ArchiveCore.services.store import SignatureGraphStore
from ArchiveCore.utils.log import log

SEGMENT_SEPARATOR = " / "


def error_segment(element_id: ElementId) -> str:
    return f"[Error ID: {element_id}]"


def render_path(path: Sequence[ElementId], elements: dict[ElementId, SignatureElement | None]) -> str:
    """Join ``[index] name`` segments with `` / ``; missing ids become error placeholders."""
    segments: list[str] = []
    for element_id in path:
        element = elements.get(element_id)
        segments.append(element.label if element is not None else error_segment(element_id))
    return SEGMENT_SEPARATOR.join(segments)


@dataclass(slots=True)
class SignaturePathResolver:
    """Resolves element id paths through a ``SignatureGraphStore``.

    Resolution is read-only. An id without a backing element renders as
    ``[Error ID: <id>]`` in its position; a store failure for one id renders
    the same way and is reported on ``ResolvedSignature.error`` instead of
    aborting the whole path.
    """

    store: SignatureGraphStore

    async def resolve(self, path: Sequence[ElementId]) -> ResolvedSignature:
        """Resolve one path.

        Args:
            path: Element ids, root first.

        Returns:
            The path with its display string.
        """
        return (await self.resolve_many([path]))[0]

    async def resolve_many(self, paths: Iterable[Sequence[ElementId]]) -> list[ResolvedSignature]:
        """Resolve several paths, fetching each distinct element once."""
        path_list = [tuple(path) for path in paths]
        distinct = list(dict.fromkeys(element_id for path in path_list for element_id in path))
        elements, failures = await self._fetch(distinct)

        out: list[ResolvedSignature] = []
        for path in path_list:
            failed = [element_id for element_id in path if element_id in failures]
            error = None
            if failed:
                error = "; ".join(f"{element_id}: {failures[element_id]}" for element_id in failed)
            out.append(ResolvedSignature(path=path, display=render_path(path, elements), error=error))
        return out

    async def _fetch(
        self, element_ids: Sequence[ElementId]
    ) -> tuple[dict[ElementId, SignatureElement | None], dict[ElementId, str]]:
        results = await asyncio.gather(
            *(self.store.get_element_by_id(element_id) for element_id in element_ids),
            return_exceptions=True,
        )
        elements: dict[ElementId, SignatureElement | None] = {}
        failures: dict[ElementId, str] = {}
        for element_id, result in zip(element_ids, results):
            if isinstance(result, BaseException) and not isinstance(result, Exception):
                raise result
            if isinstance(result, Exception):
                log.warning("Failed to fetch signature element id=%s error=%s", element_id, result)
                failures[element_id] = str(result) or type(result).__name__
                elements[element_id] = None
                continue
            if result is None:
                log.debug("Signature element id=%s not found", element_id)
            elements[element_id] = result
        return elements, failures
