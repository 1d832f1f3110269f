"""Output renderers for command results (console text and JSON)."""

from __future__ import annotations

from ArchiveCore.renderers.console import (
    render_browser,
    render_components,
    render_elements,
    render_resolved,
    render_text,
)
from ArchiveCore.renderers.json import dumps, render_json, render_resolved_json

__all__ = [
    "dumps",
    "render_browser",
    "render_components",
    "render_elements",
    "render_json",
    "render_resolved",
    "render_resolved_json",
    "render_text",
]
