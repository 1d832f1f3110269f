"""Tests for rendering signature paths."""

from __future__ import annotations

import sys
import unittest
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(REPO_ROOT / "src"))

from ArchiveCore.core.models import SignatureElement
from ArchiveCore.services.resolver import SignaturePathResolver


class _LookupStore:
    def __init__(self, elements: dict[int, SignatureElement], failing: set[int] | None = None) -> None:
        self.elements = elements
        self.failing = failing or set()
        self.lookups: list[int] = []

    async def list_components(self):
        return []

    async def list_elements(self, element_filter):
        return []

    async def get_element_by_id(self, element_id: int):
        self.lookups.append(element_id)
        if element_id in self.failing:
            raise ConnectionError("store unavailable")
        return self.elements.get(element_id)


def _store(failing: set[int] | None = None) -> _LookupStore:
    return _LookupStore(
        {
            5: SignatureElement(5, 1, "Poland", index="II"),
            7: SignatureElement(7, 2, "Warsaw"),
        },
        failing,
    )


class TestSignaturePathResolver(unittest.IsolatedAsyncioTestCase):
    async def test_labels_joined_in_order(self) -> None:
        resolved = await SignaturePathResolver(_store()).resolve([5, 7])
        self.assertEqual(resolved.display, "[II] Poland / Warsaw")
        self.assertIsNone(resolved.error)

    async def test_missing_element_keeps_position(self) -> None:
        resolved = await SignaturePathResolver(_store()).resolve([5, 999, 7])
        self.assertEqual(resolved.display, "[II] Poland / [Error ID: 999] / Warsaw")
        self.assertIsNone(resolved.error)

    async def test_store_failure_is_reported(self) -> None:
        resolved = await SignaturePathResolver(_store(failing={7})).resolve([5, 7])
        self.assertEqual(resolved.display, "[II] Poland / [Error ID: 7]")
        self.assertIn("store unavailable", resolved.error)

    async def test_empty_path(self) -> None:
        resolved = await SignaturePathResolver(_store()).resolve([])
        self.assertEqual(resolved.display, "")

    async def test_resolve_many_fetches_each_element_once(self) -> None:
        store = _store()
        resolved = await SignaturePathResolver(store).resolve_many([[5, 7], [5], [7, 5]])
        self.assertEqual([item.display for item in resolved], ["[II] Poland / Warsaw", "[II] Poland", "Warsaw / [II] Poland"])
        self.assertEqual(sorted(store.lookups), [5, 7])
        self.assertEqual(resolved[2].to_dict(), {"path": [7, 5], "display": "Warsaw / [II] Poland"})


if __name__ == "__main__":
    unittest.main()
