"""SQLite-backed archive documents, tags and users."""

from __future__ import annotations

import sqlite3
from typing import Iterable, Sequence

from dateutil import parser as date_parser

from ArchiveCore.core.conditions import Condition
from ArchiveCore.core.entities import USER_ROLES
from ArchiveCore.core.errors import ArchiveCoreError, SignatureGraphError
from ArchiveCore.core.models import ArchiveDocument, ElementId, SignatureSet, Tag, User
from ArchiveCore.core.query import SearchQueryElement, SearchRequest
from ArchiveCore.storage.search import DOCUMENTS_TABLE, SqliteSearchExecutor, encode_paths
from ArchiveCore.utils.log import log

SIGNATURE_KINDS = {
    "descriptive": "descriptive_signatures",
    "topographic": "topographic_signatures",
}


class SqliteArchiveStore:
    """Writes archive documents and their tags; signatures are stored as JSON path lists.

    Like the signature store, its async methods block the event loop while
    they query.
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        self.conn = conn
        self.documents = SqliteSearchExecutor(conn, DOCUMENTS_TABLE)

    async def create_tag(self, name: str, description: str | None = None) -> Tag:
        """Create a tag.

        Raises:
            ValueError: If the name is blank or already taken.
        """
        name = name.strip()
        if not name:
            raise ValueError("tag name must not be empty")
        try:
            with self.conn:
                cursor = self.conn.execute("INSERT INTO tags (name, description) VALUES (?, ?)", (name, description))
        except sqlite3.IntegrityError as e:
            raise ValueError(f"tag {name!r} already exists") from e
        return Tag(id=cursor.lastrowid, name=name, description=description)

    async def create_user(self, login: str, *, role: str = "user", active: bool = True) -> User:
        """Create a user.

        Raises:
            ValueError: If the login is blank or taken, or the role unknown.
        """
        login = login.strip()
        if not login:
            raise ValueError("user login must not be empty")
        if role not in USER_ROLES:
            raise ValueError(f"role must be one of {USER_ROLES}, got {role!r}")
        try:
            with self.conn:
                cursor = self.conn.execute(
                    "INSERT INTO users (login, role, active) VALUES (?, ?, ?)", (login, role, int(active))
                )
        except sqlite3.IntegrityError as e:
            raise ValueError(f"user {login!r} already exists") from e
        return User(id=cursor.lastrowid, login=login, role=role, active=active)

    async def create_document(
        self,
        title: str,
        *,
        creator: str | None = None,
        document_date: str | None = None,
        number_of_pages: int | None = None,
        is_digitized: bool = False,
        language: str | None = None,
        tag_ids: Iterable[int] = (),
        descriptive: Sequence[Sequence[ElementId]] = (),
        topographic: Sequence[Sequence[ElementId]] = (),
    ) -> ArchiveDocument:
        """Create a document with its tags and signatures.

        Raises:
            ValueError: If the title is blank, the date is not ``YYYY-MM-DD`` or a tag is unknown.
            SignatureError: If a signature path is malformed or duplicated within its kind.
            SignatureGraphError: If a signature references an unknown element.
        """
        title = title.strip()
        if not title:
            raise ValueError("document title must not be empty")
        if document_date is not None:
            document_date = _check_date(document_date)
        descriptive_set = SignatureSet("descriptive", tuple(tuple(path) for path in descriptive))
        topographic_set = SignatureSet("topographic", tuple(tuple(path) for path in topographic))
        tags = tuple(dict.fromkeys(tag_ids))

        with self.conn:
            self._check_signature_elements(descriptive_set, topographic_set)
            cursor = self.conn.execute(
                """
                INSERT INTO archive_documents (
                  title, creator, document_date, number_of_pages, is_digitized, language,
                  descriptive_signatures, topographic_signatures
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    title,
                    creator,
                    document_date,
                    number_of_pages,
                    int(is_digitized),
                    language,
                    encode_paths(descriptive_set.signatures),
                    encode_paths(topographic_set.signatures),
                ),
            )
            document_id = cursor.lastrowid
            self._replace_tags(document_id, tags)

        log.info("Created archive document id=%s title=%s", document_id, title)
        document = await self.get_document(document_id)
        assert document is not None
        return document

    async def get_document(self, document_id: int) -> ArchiveDocument | None:
        request = SearchRequest(
            query=(SearchQueryElement("archiveDocumentId", Condition.EQ, document_id),),
            page_size=1,
        )
        response = self.documents.run(request)
        return response.data[0] if response.data else None

    async def add_signature(self, document_id: int, kind: str, path: Sequence[ElementId]) -> ArchiveDocument:
        """Attach a signature path of ``kind`` (``descriptive`` or ``topographic``).

        Raises:
            SignatureError: If the path is malformed or already attached with this kind.
            SignatureGraphError: If the path references an unknown element.
            ArchiveCoreError: If the document does not exist.
        """
        document = await self._require_document(document_id)
        updated = _signature_set(document, kind).add(path)
        self._check_signature_elements(updated)
        self._store_signatures(document_id, kind, updated)
        return await self._require_document(document_id)

    async def remove_signature(self, document_id: int, kind: str, path: Sequence[ElementId]) -> ArchiveDocument:
        document = await self._require_document(document_id)
        self._store_signatures(document_id, kind, _signature_set(document, kind).remove(path))
        return await self._require_document(document_id)

    async def set_tags(self, document_id: int, tag_ids: Iterable[int]) -> ArchiveDocument:
        """Replace the tag set of a document.

        Raises:
            ValueError: If a tag does not exist.
            ArchiveCoreError: If the document does not exist.
        """
        await self._require_document(document_id)
        with self.conn:
            self._replace_tags(document_id, tuple(dict.fromkeys(tag_ids)))
        return await self._require_document(document_id)

    async def _require_document(self, document_id: int) -> ArchiveDocument:
        document = await self.get_document(document_id)
        if document is None:
            raise ArchiveCoreError(f"archive document {document_id} does not exist")
        return document

    def _store_signatures(self, document_id: int, kind: str, signatures: SignatureSet) -> None:
        column = SIGNATURE_KINDS[kind]
        with self.conn:
            self.conn.execute(
                f"UPDATE archive_documents SET {column} = ? WHERE id = ?",
                (encode_paths(signatures.signatures), document_id),
            )

    def _replace_tags(self, document_id: int, tag_ids: tuple[int, ...]) -> None:
        if tag_ids:
            placeholders = ", ".join("?" for _ in tag_ids)
            found = {row[0] for row in self.conn.execute(f"SELECT id FROM tags WHERE id IN ({placeholders})", tag_ids)}
            missing = [tag_id for tag_id in tag_ids if tag_id not in found]
            if missing:
                raise ValueError(f"tags do not exist: {missing}")
        self.conn.execute("DELETE FROM archive_document_tags WHERE document_id = ?", (document_id,))
        self.conn.executemany(
            "INSERT INTO archive_document_tags (document_id, tag_id) VALUES (?, ?)",
            [(document_id, tag_id) for tag_id in tag_ids],
        )

    def _check_signature_elements(self, *signature_sets: SignatureSet) -> None:
        ids = sorted({element_id for signatures in signature_sets for path in signatures for element_id in path})
        if not ids:
            return
        placeholders = ", ".join("?" for _ in ids)
        found = {row[0] for row in self.conn.execute(f"SELECT id FROM signature_elements WHERE id IN ({placeholders})", ids)}
        missing = [element_id for element_id in ids if element_id not in found]
        if missing:
            raise SignatureGraphError(f"signature elements do not exist: {missing}")


def _signature_set(document: ArchiveDocument, kind: str) -> SignatureSet:
    if kind == "descriptive":
        return document.descriptive
    if kind == "topographic":
        return document.topographic
    raise ValueError(f"signature kind must be one of {sorted(SIGNATURE_KINDS)}, got {kind!r}")


def _check_date(value: str) -> str:
    try:
        parsed = date_parser.isoparse(value)
    except ValueError as e:
        raise ValueError(f"document date must be YYYY-MM-DD, got {value!r}") from e
    if len(value) != 10:
        raise ValueError(f"document date must be YYYY-MM-DD, got {value!r}")
    return parsed.date().isoformat()
