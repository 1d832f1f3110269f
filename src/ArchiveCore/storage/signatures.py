"""SQLite-backed signature component and element store."""

from __future__ import annotations

import sqlite3
from typing import Iterable

from ArchiveCore.core.conditions import Condition
from ArchiveCore.core.errors import SignatureGraphError
from ArchiveCore.core.models import (
    INDEX_TYPES,
    ComponentId,
    ElementFilter,
    ElementId,
    NewElement,
    SignatureComponent,
    SignatureElement,
    format_index,
    sort_elements,
)
from ArchiveCore.core.query import SearchQueryElement, SearchRequest
from ArchiveCore.services.store import element_filter_query
from ArchiveCore.storage.search import ELEMENTS_TABLE, SqliteSearchExecutor
from ArchiveCore.utils.log import log

_DESCENDANTS_SQL = """
WITH RECURSIVE descendants(id) AS (
  SELECT child_id FROM signature_element_parents WHERE parent_id = ?
  UNION
  SELECT p.child_id FROM signature_element_parents p JOIN descendants d ON p.parent_id = d.id
)
SELECT id FROM descendants
"""


class SqliteSignatureStore:
    """Reads and writes the signature graph.

    Reads go through the element search executor, so ``list_elements`` and
    a ``signatureElements`` search share one query path. Writes keep the
    graph acyclic: an element can never become its own ancestor.

    The async methods query on the calling thread and block the event loop
    while they run.
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        self.conn = conn
        self.elements = SqliteSearchExecutor(conn, ELEMENTS_TABLE)

    async def list_components(self) -> list[SignatureComponent]:
        rows = self.conn.execute(
            "SELECT id, name, description, index_type, index_count FROM signature_components "
            "ORDER BY name COLLATE NOCASE, id"
        ).fetchall()
        return [_component_from_row(row) for row in rows]

    async def get_component(self, component_id: ComponentId) -> SignatureComponent | None:
        row = self.conn.execute(
            "SELECT id, name, description, index_type, index_count FROM signature_components WHERE id = ?",
            (component_id,),
        ).fetchone()
        return _component_from_row(row) if row else None

    async def list_elements(self, element_filter: ElementFilter) -> list[SignatureElement]:
        """Return at most ``max_results`` elements matching the filter, in display order."""
        response = self.elements.run(element_filter_query(element_filter))
        return sort_elements(response.data)

    async def get_element_by_id(self, element_id: ElementId) -> SignatureElement | None:
        request = SearchRequest(
            query=(SearchQueryElement("signatureElementId", Condition.EQ, element_id),),
            page_size=1,
        )
        response = self.elements.run(request)
        return response.data[0] if response.data else None

    async def create_component(
        self,
        name: str,
        *,
        description: str | None = None,
        index_type: str = "dec",
    ) -> SignatureComponent:
        """Create a component.

        Raises:
            ValueError: If the name is blank or the index type unknown.
            SignatureGraphError: If a component with that name exists.
        """
        name = name.strip()
        if not name:
            raise ValueError("component name must not be empty")
        if index_type not in INDEX_TYPES:
            raise ValueError(f"index_type must be one of {INDEX_TYPES}, got {index_type!r}")
        try:
            with self.conn:
                cursor = self.conn.execute(
                    "INSERT INTO signature_components (name, description, index_type) VALUES (?, ?, ?)",
                    (name, description, index_type),
                )
        except sqlite3.IntegrityError as e:
            raise SignatureGraphError(f"signature component {name!r} already exists") from e
        log.info("Created signature component id=%s name=%s", cursor.lastrowid, name)
        return SignatureComponent(id=cursor.lastrowid, name=name, description=description, index_type=index_type)

    async def create_element(self, new_element: NewElement) -> SignatureElement:
        """Create an element; ``index=None`` assigns the component's next index.

        An explicit empty index stores an element without index and leaves the
        component counter untouched.

        Raises:
            ValueError: If the name is blank.
            SignatureGraphError: If the component or a parent does not exist.
        """
        name = new_element.name.strip()
        if not name:
            raise ValueError("element name must not be empty")
        parent_ids = tuple(dict.fromkeys(new_element.parent_ids))

        with self.conn:
            component = self.conn.execute(
                "SELECT index_type, index_count FROM signature_components WHERE id = ?",
                (new_element.component_id,),
            ).fetchone()
            if component is None:
                raise SignatureGraphError(f"signature component {new_element.component_id} does not exist")
            self._check_elements_exist(parent_ids)

            index = new_element.index
            if index is None:
                count = component["index_count"] + 1
                index = format_index(count, component["index_type"])
                self.conn.execute(
                    "UPDATE signature_components SET index_count = ? WHERE id = ?",
                    (count, new_element.component_id),
                )
            cursor = self.conn.execute(
                "INSERT INTO signature_elements (component_id, name, idx, description) VALUES (?, ?, ?, ?)",
                (new_element.component_id, name, index or None, new_element.description),
            )
            element_id = cursor.lastrowid
            self.conn.executemany(
                "INSERT INTO signature_element_parents (child_id, parent_id) VALUES (?, ?)",
                [(element_id, parent_id) for parent_id in parent_ids],
            )

        log.debug("Created signature element id=%s index=%s parents=%s", element_id, index or None, list(parent_ids))
        return SignatureElement(
            id=element_id,
            component_id=new_element.component_id,
            name=name,
            index=index or None,
            description=new_element.description,
            parent_ids=frozenset(parent_ids),
        )

    async def set_parent_ids(self, element_id: ElementId, parent_ids: Iterable[ElementId]) -> SignatureElement:
        """Replace an element's parents.

        Raises:
            SignatureGraphError: If the element or a parent is unknown, the
                element is its own parent, or the change would close a cycle.
        """
        wanted = tuple(dict.fromkeys(parent_ids))
        with self.conn:
            self._check_elements_exist((element_id,))
            if element_id in wanted:
                raise SignatureGraphError(f"signature element {element_id} cannot be its own parent")
            self._check_elements_exist(wanted)
            descendants = {row[0] for row in self.conn.execute(_DESCENDANTS_SQL, (element_id,))}
            looping = sorted(descendants.intersection(wanted))
            if looping:
                raise SignatureGraphError(
                    f"signature element {element_id} cannot have descendants {looping} as parents"
                )
            self.conn.execute("DELETE FROM signature_element_parents WHERE child_id = ?", (element_id,))
            self.conn.executemany(
                "INSERT INTO signature_element_parents (child_id, parent_id) VALUES (?, ?)",
                [(element_id, parent_id) for parent_id in wanted],
            )
        element = await self.get_element_by_id(element_id)
        assert element is not None
        return element

    async def delete_element(self, element_id: ElementId) -> bool:
        """Delete an element; its parent links go with it. Returns False if it did not exist."""
        with self.conn:
            cursor = self.conn.execute("DELETE FROM signature_elements WHERE id = ?", (element_id,))
        return cursor.rowcount > 0

    async def reindex_component(self, component_id: ComponentId) -> int:
        """Re-assign indexes ``1..n`` to a component's elements in name order.

        Returns:
            Number of elements re-indexed; the component counter is set to it.

        Raises:
            SignatureGraphError: If the component does not exist.
        """
        with self.conn:
            component = self.conn.execute(
                "SELECT index_type FROM signature_components WHERE id = ?", (component_id,)
            ).fetchone()
            if component is None:
                raise SignatureGraphError(f"signature component {component_id} does not exist")
            rows = self.conn.execute(
                "SELECT id FROM signature_elements WHERE component_id = ? ORDER BY name COLLATE NOCASE, id",
                (component_id,),
            ).fetchall()
            self.conn.executemany(
                "UPDATE signature_elements SET idx = ? WHERE id = ?",
                [(format_index(position, component["index_type"]), row["id"]) for position, row in enumerate(rows, 1)],
            )
            self.conn.execute(
                "UPDATE signature_components SET index_count = ? WHERE id = ?", (len(rows), component_id)
            )
        log.info("Re-indexed %d elements of component %s", len(rows), component_id)
        return len(rows)

    def _check_elements_exist(self, element_ids: Iterable[ElementId]) -> None:
        ids = tuple(element_ids)
        if not ids:
            return
        placeholders = ", ".join("?" for _ in ids)
        found = {
            row[0]
            for row in self.conn.execute(f"SELECT id FROM signature_elements WHERE id IN ({placeholders})", ids)
        }
        missing = [element_id for element_id in ids if element_id not in found]
        if missing:
            raise SignatureGraphError(f"signature elements do not exist: {missing}")


def _component_from_row(row: sqlite3.Row) -> SignatureComponent:
    return SignatureComponent(
        id=row["id"],
        name=row["name"],
        description=row["description"],
        index_type=row["index_type"],
        index_count=row["index_count"],
    )
