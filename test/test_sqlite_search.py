"""Tests for compiling search queries to SQLite and running them."""

from __future__ import annotations

import sys
import tempfile
import unittest
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(REPO_ROOT / "src"))

from ArchiveCore.core.conditions import Condition
from ArchiveCore.core.errors import SearchValidationError
from ArchiveCore.core.models import ElementFilter, NewElement
from ArchiveCore.core.query import SearchQueryElement, SearchRequest
from ArchiveCore.storage import DatabaseManager
from ArchiveCore.storage.archive import SqliteArchiveStore
from ArchiveCore.storage.search import DOCUMENTS_TABLE, compile_element, create_search_executor
from ArchiveCore.storage.signatures import SqliteSignatureStore


def _q(field: str, condition: Condition, value=None, negate: bool = False) -> SearchQueryElement:
    return SearchQueryElement(field, condition, value, negate)


class _DatabaseCase(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.db_manager = DatabaseManager(Path(self._tmp.name) / "archive.db")
        self.conn = self.db_manager.get_connection()
        self.signatures = SqliteSignatureStore(self.conn)
        self.archive = SqliteArchiveStore(self.conn)

    async def asyncTearDown(self) -> None:
        self.db_manager.close()
        self._tmp.cleanup()


class TestSqliteSearch(_DatabaseCase):
    async def asyncSetUp(self) -> None:
        await super().asyncSetUp()
        place = await self.signatures.create_component("Place")
        year = await self.signatures.create_component("Year", index_type="roman")
        self.poland = await self.signatures.create_element(NewElement(place.id, "Poland"))
        self.warsaw = await self.signatures.create_element(
            NewElement(place.id, "Warsaw", parent_ids=(self.poland.id,))
        )
        self.year = await self.signatures.create_element(NewElement(year.id, "1920"))
        self.place_id = place.id

        self.letter = await self.archive.create_tag("letter")
        self.deed = await self.archive.create_tag("deed")

        p, w, y = self.poland.id, self.warsaw.id, self.year.id
        self.d1 = await self.archive.create_document(
            "Charter of Warsaw",
            creator="King",
            document_date="1920-05-01",
            number_of_pages=12,
            is_digitized=True,
            language="pl",
            tag_ids=[self.letter.id, self.deed.id],
            descriptive=[[p, w]],
            topographic=[[y]],
        )
        self.d2 = await self.archive.create_document(
            "50% report",
            number_of_pages=3,
            language="en",
            tag_ids=[self.letter.id],
            descriptive=[[p], [y, p, w]],
        )
        self.d3 = await self.archive.create_document("50 report")

    def _documents(self, *elements: SearchQueryElement) -> list[int]:
        executor = create_search_executor(self.conn, "documents")
        response = executor.run(SearchRequest(query=elements, page_size=50))
        return [document.id for document in response.data]

    def _elements(self, *elements: SearchQueryElement) -> list[int]:
        executor = create_search_executor(self.conn, "signatureElements")
        response = executor.run(SearchRequest(query=elements, page_size=50))
        return [element.id for element in response.data]

    def test_signature_equals_path(self) -> None:
        p, w = self.poland.id, self.warsaw.id
        self.assertEqual(self._documents(_q("descriptiveSignature", Condition.EQ, [p, w])), [self.d1.id])
        self.assertEqual(self._documents(_q("descriptiveSignature", Condition.EQ, [w, p])), [])

    def test_signature_starts_with(self) -> None:
        p, w = self.poland.id, self.warsaw.id
        self.assertEqual(self._documents(_q("descriptiveSignature", Condition.STARTS_WITH, [p])), [self.d1.id, self.d2.id])
        self.assertEqual(self._documents(_q("descriptiveSignature", Condition.STARTS_WITH, [p, w])), [self.d1.id])

    def test_signature_contains_sequence(self) -> None:
        p, w, y = self.poland.id, self.warsaw.id, self.year.id
        self.assertEqual(
            self._documents(_q("descriptiveSignature", Condition.CONTAINS_SEQUENCE, [p, w])),
            [self.d1.id, self.d2.id],
        )
        self.assertEqual(self._documents(_q("descriptiveSignature", Condition.CONTAINS_SEQUENCE, [w, p])), [])
        self.assertEqual(self._documents(_q("descriptiveSignature", Condition.CONTAINS_SEQUENCE, [y, p])), [self.d2.id])

    def test_signature_empty(self) -> None:
        self.assertEqual(self._documents(_q("descriptiveSignature", Condition.EQ, [])), [self.d3.id])
        self.assertEqual(self._documents(_q("topographicSignature", Condition.IS_NULL)), [self.d2.id, self.d3.id])
        self.assertEqual(self._documents(_q("topographicSignature", Condition.IS_NOT_NULL)), [self.d1.id])

    def test_signature_empty_prefix_rejected(self) -> None:
        with self.assertRaises(SearchValidationError):
            self._documents(_q("descriptiveSignature", Condition.STARTS_WITH, []))

    def test_tags(self) -> None:
        letter, deed = self.letter.id, self.deed.id
        self.assertEqual(self._documents(_q("tags", Condition.ANY_OF, [deed])), [self.d1.id])
        self.assertEqual(self._documents(_q("tags", Condition.ALL_OF, [letter, deed])), [self.d1.id])
        self.assertEqual(self._documents(_q("tags", Condition.ALL_OF, [letter])), [self.d1.id, self.d2.id])
        self.assertEqual(self._documents(_q("tags", Condition.EQ, [letter])), [self.d2.id])
        self.assertEqual(self._documents(_q("tags", Condition.EQ, [])), [self.d3.id])
        self.assertEqual(self._documents(_q("tags", Condition.IS_NULL)), [self.d3.id])

    def test_empty_any_of_matches_nothing(self) -> None:
        self.assertEqual(self._documents(_q("tags", Condition.ANY_OF, [])), [])
        self.assertEqual(
            self._documents(_q("tags", Condition.ANY_OF, [], negate=True)),
            [self.d1.id, self.d2.id, self.d3.id],
        )

    def test_like_wildcards_are_literal(self) -> None:
        self.assertEqual(self._documents(_q("title", Condition.FRAGMENT, "50%")), [self.d2.id])
        self.assertEqual(self._documents(_q("title", Condition.FRAGMENT, "50_")), [])
        self.assertEqual(self._documents(_q("title", Condition.STARTS_WITH, "charter")), [self.d1.id])

    def test_negation_and_scalars(self) -> None:
        self.assertEqual(self._documents(_q("title", Condition.FRAGMENT, "report", negate=True)), [self.d1.id])
        self.assertEqual(self._documents(_q("creator", Condition.IS_NULL)), [self.d2.id, self.d3.id])
        self.assertEqual(self._documents(_q("isDigitized", Condition.EQ, True)), [self.d1.id])
        self.assertEqual(self._documents(_q("numberOfPages", Condition.GT, 5)), [self.d1.id])
        self.assertEqual(self._documents(_q("documentDate", Condition.LT, "1921-01-01")), [self.d1.id])
        self.assertEqual(self._documents(_q("language", Condition.ANY_OF, ["en", "de"])), [self.d2.id])

    def test_elements_are_anded(self) -> None:
        self.assertEqual(
            self._documents(_q("tags", Condition.ANY_OF, [self.letter.id]), _q("language", Condition.EQ, "en")),
            [self.d2.id],
        )

    def test_unknown_field_rejected(self) -> None:
        with self.assertRaisesRegex(SearchValidationError, "Invalid field: shelf"):
            compile_element(DOCUMENTS_TABLE, _q("shelf", Condition.EQ, "x"))

    def test_unsupported_condition_rejected(self) -> None:
        with self.assertRaises(SearchValidationError):
            self._documents(_q("tags", Condition.GT, [1]))

    def test_pagination_totals(self) -> None:
        executor = create_search_executor(self.conn, "documents")
        response = executor.run(SearchRequest(page=2, page_size=2))
        self.assertEqual([document.id for document in response.data], [self.d3.id])
        self.assertEqual((response.total_size, response.total_pages), (3, 2))

    def test_empty_result_is_one_page(self) -> None:
        executor = create_search_executor(self.conn, "documents")
        response = executor.run(SearchRequest(query=(_q("title", Condition.EQ, "none"),)))
        self.assertEqual((response.data, response.total_size, response.total_pages), ((), 0, 1))

    def test_element_parent_queries(self) -> None:
        self.assertEqual(self._elements(_q("parentIds", Condition.IS_NULL)), [self.poland.id, self.year.id])
        self.assertEqual(self._elements(_q("hasParents", Condition.EQ, True)), [self.warsaw.id])
        self.assertEqual(self._elements(_q("parentIds", Condition.ANY_OF, [self.poland.id])), [self.warsaw.id])

    async def test_store_listing(self) -> None:
        elements = await self.signatures.list_elements(ElementFilter(component_id=self.place_id))
        self.assertEqual([element.name for element in elements], ["Poland", "Warsaw"])
        self.assertEqual(elements[1].parent_ids, frozenset({self.poland.id}))
        self.assertIsNone(await self.signatures.get_element_by_id(999))

    def test_document_round_trip_through_search(self) -> None:
        executor = create_search_executor(self.conn, "documents")
        document = executor.run(SearchRequest(query=(_q("archiveDocumentId", Condition.EQ, self.d2.id),))).data[0]
        payload = document.to_dict()
        self.assertEqual(payload["descriptiveSignature"], [[self.poland.id], [self.year.id, self.poland.id, self.warsaw.id]])
        self.assertEqual(payload["tags"], [self.letter.id])

    def test_unknown_entity(self) -> None:
        with self.assertRaises(ValueError):
            create_search_executor(self.conn, "boxes")


if __name__ == "__main__":
    unittest.main()
