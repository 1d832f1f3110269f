"""JSON output renderers.

Renders search pages and resolved signatures into JSON-serializable objects
with the wire field names.
"""

from __future__ import annotations

import json
from typing import Any, Iterable

from ArchiveCore.core.models import ResolvedSignature
from ArchiveCore.core.query import SearchResponse


def _encode(item: Any) -> Any:
    to_dict = getattr(item, "to_dict", None)
    return to_dict() if callable(to_dict) else item


def render_json(response: SearchResponse[Any]) -> dict[str, Any]:
    """Render a search page as a wire ``SearchResponse`` mapping."""
    return response.to_dict(_encode)


def render_resolved_json(signatures: Iterable[ResolvedSignature]) -> list[dict[str, Any]]:
    out: list[dict[str, Any]] = []
    for signature in signatures:
        payload = signature.to_dict()
        if signature.error:
            payload["error"] = signature.error
        out.append(payload)
    return out


def dumps(payload: Any) -> str:
    return json.dumps(payload, ensure_ascii=False, indent=2)
