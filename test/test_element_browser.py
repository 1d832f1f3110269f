"""Tests for the async Element Browser controller."""

from __future__ import annotations

import asyncio
import sys
import unittest
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(REPO_ROOT / "src"))

from ArchiveCore.core.models import ElementFilter, NewElement, SignatureComponent, SignatureElement
from ArchiveCore.services.browser import ElementBrowser


class _FakeStore:
    def __init__(self, elements: list[SignatureElement], components: list[SignatureComponent] | None = None) -> None:
        self.elements = list(elements)
        self.components = components or []
        self.calls: list[ElementFilter] = []
        self.fail_components = False
        self.fail_elements = False
        self.gate: asyncio.Event | None = None
        self.created: list[NewElement] = []

    async def list_components(self):
        if self.fail_components:
            raise RuntimeError("components offline")
        return list(self.components)

    async def list_elements(self, element_filter: ElementFilter):
        self.calls.append(element_filter)
        if self.gate is not None:
            gate, self.gate = self.gate, None
            await gate.wait()
        if self.fail_elements:
            raise RuntimeError("elements offline")
        out = []
        for element in self.elements:
            if element_filter.component_id is not None and element.component_id != element_filter.component_id:
                continue
            if element_filter.parent_id is not None and element_filter.parent_id not in element.parent_ids:
                continue
            if element_filter.name_fragment and element_filter.name_fragment.lower() not in element.name.lower():
                continue
            out.append(element)
        return out[: element_filter.max_results]

    async def get_element_by_id(self, element_id: int):
        return next((element for element in self.elements if element.id == element_id), None)

    async def create_element(self, new_element: NewElement) -> SignatureElement:
        self.created.append(new_element)
        element = SignatureElement(
            id=100 + len(self.created),
            component_id=new_element.component_id,
            name=new_element.name,
            index=new_element.index or str(len(self.created)),
        )
        self.elements.append(element)
        return element


def _elements() -> list[SignatureElement]:
    return [
        SignatureElement(1, 1, "Poland", index="1"),
        SignatureElement(2, 1, "Germany", index="2"),
        SignatureElement(10, 2, "Warsaw", parent_ids=frozenset({1})),
        SignatureElement(11, 2, "Krakow", parent_ids=frozenset({1})),
        SignatureElement(12, 2, "Berlin", parent_ids=frozenset({2})),
    ]


class TestElementBrowser(unittest.IsolatedAsyncioTestCase):
    async def test_hierarchical_pick_and_confirm(self) -> None:
        confirmed = []
        store = _FakeStore(_elements())
        browser = ElementBrowser(store, debounce_delay=0.01, on_confirm=confirmed.append)

        await browser.select_component(1)
        self.assertEqual([element.id for element in browser.state.candidates], [1, 2])
        self.assertTrue(await browser.pick(1))
        self.assertEqual([element.name for element in browser.state.candidates], ["Krakow", "Warsaw"])
        self.assertTrue(await browser.pick(10))

        self.assertEqual(browser.confirm(), (1, 10))
        self.assertEqual(confirmed, [(1, 10)])
        self.assertEqual(browser.state.path, ())

    async def test_pick_unknown_candidate(self) -> None:
        browser = ElementBrowser(_FakeStore(_elements()))
        await browser.select_component(1)
        self.assertFalse(await browser.pick(12))
        self.assertEqual(browser.state.path, ())

    async def test_search_is_debounced(self) -> None:
        store = _FakeStore(_elements())
        browser = ElementBrowser(store, debounce_delay=0.05)
        await browser.select_component(2)
        calls_before = len(store.calls)

        browser.set_search_term("w")
        browser.set_search_term("wa")
        browser.set_search_term("war")
        await browser.wait_idle()

        self.assertEqual(len(store.calls), calls_before + 1)
        self.assertEqual(store.calls[-1].name_fragment, "war")
        self.assertEqual([element.id for element in browser.state.candidates], [10])

    async def test_stale_result_is_discarded(self) -> None:
        store = _FakeStore(_elements())
        browser = ElementBrowser(store, debounce_delay=0.01)
        gate = asyncio.Event()
        store.gate = gate

        slow = asyncio.create_task(browser.select_component(1))
        await asyncio.sleep(0)
        browser.set_search_term("germ")
        gate.set()
        await slow
        self.assertEqual(browser.state.candidates, ())

        await browser.wait_idle()
        self.assertEqual([element.id for element in browser.state.candidates], [2])
        self.assertEqual(store.calls[-1].name_fragment, "germ")

    async def test_candidate_failure_keeps_path(self) -> None:
        store = _FakeStore(_elements())
        browser = ElementBrowser(store)
        await browser.select_component(1)
        await browser.pick(1)
        store.fail_elements = True
        browser.set_search_term("x")
        await browser.wait_idle()

        self.assertEqual(browser.state.path, (1,))
        self.assertEqual(browser.state.candidates_error, "elements offline")
        self.assertFalse(browser.state.loading)

    async def test_components_failure_is_reported(self) -> None:
        store = _FakeStore(_elements())
        store.fail_components = True
        browser = ElementBrowser(store)
        await browser.load_components()
        self.assertEqual(browser.components_error, "components offline")
        self.assertEqual(browser.components, ())

    async def test_components_sorted_by_name(self) -> None:
        store = _FakeStore([], [SignatureComponent(2, "year"), SignatureComponent(1, "Place")])
        browser = ElementBrowser(store)
        await browser.load_components()
        self.assertEqual([component.id for component in browser.components], [1, 2])
        self.assertIsNone(browser.components_error)

    async def test_create_element_refreshes_candidates(self) -> None:
        store = _FakeStore(_elements())
        browser = ElementBrowser(store, creator=store)
        await browser.select_component(1)

        element = await browser.create_element("Austria")

        self.assertIsNotNone(element)
        self.assertEqual(store.created, [NewElement(component_id=1, name="Austria")])
        self.assertIn(element.id, [candidate.id for candidate in browser.state.candidates])

    async def test_create_element_not_offered(self) -> None:
        store = _FakeStore(_elements())
        browser = ElementBrowser(store)
        await browser.select_component(1)
        self.assertIsNone(await browser.create_element("Austria"))

        browser = ElementBrowser(store, creator=store)
        self.assertIsNone(await browser.create_element("Austria"))
        self.assertEqual(store.created, [])

    async def test_cap_reached(self) -> None:
        store = _FakeStore(_elements())
        browser = ElementBrowser(store, max_results=2)
        await browser.select_component(1)
        self.assertTrue(browser.state.cap_reached)

    async def test_free_mode_without_component_lists_nothing(self) -> None:
        store = _FakeStore(_elements())
        browser = ElementBrowser(store)
        await browser.switch_mode("free")
        self.assertEqual(store.calls, [])
        self.assertEqual(browser.state.candidates, ())

    async def test_close_cancels_pending_lookup(self) -> None:
        store = _FakeStore(_elements())
        browser = ElementBrowser(store, debounce_delay=1.0)
        browser.set_search_term("war")
        await browser.close()
        self.assertEqual(store.calls, [])


if __name__ == "__main__":
    unittest.main()
