"""Compile search queries to SQLite and execute them page by page.

Every entity collection is described by a ``SearchTable``: the whitelisted
wire fields with their column expressions, plus custom handlers for fields
that are not plain columns (link tables, JSON signature columns, derived
flags). Query elements are AND-ed; a negated element is wrapped in
``NOT (...)``.
"""

from __future__ import annotations

import json
import sqlite3
from dataclasses import dataclass, field
from typing import Any, Callable, Generic, Mapping, Sequence, TypeVar

from ArchiveCore.core import entities
from ArchiveCore.core.conditions import Condition
from ArchiveCore.core.errors import SearchValidationError
from ArchiveCore.core.models import ArchiveDocument, SignatureElement, SignatureSet, Tag, User
from ArchiveCore.core.query import SearchQuery, SearchQueryElement, SearchRequest, SearchResponse
from ArchiveCore.utils.log import log

T = TypeVar("T")

_COMPARISON_OPERATORS = {
    Condition.EQ: "=",
    Condition.NEQ: "<>",
    Condition.LT: "<",
    Condition.LTE: "<=",
    Condition.GT: ">",
    Condition.GTE: ">=",
}


@dataclass(frozen=True, slots=True)
class SqlCondition:
    """A WHERE fragment with its positional parameters."""

    sql: str
    params: tuple[Any, ...] = ()


MATCH_NONE = SqlCondition("1=0")
MATCH_ALL = SqlCondition("1=1")

FieldHandler = Callable[[SearchQueryElement], SqlCondition]


@dataclass(frozen=True)
class SearchTable(Generic[T]):
    """How one entity collection maps onto SQL.

    Attributes:
        entity: Wire entity name (``documents``, ``signatureElements``...).
        select_sql: ``SELECT ... FROM <table> <alias>`` producing parseable rows.
        from_sql: ``<table> <alias>`` used by the count query.
        columns: Wire field name -> column expression.
        handlers: Wire field name -> custom condition builder.
        order_by: Stable ORDER BY expression.
        parse_row: Row -> domain object.
    """

    entity: str
    select_sql: str
    from_sql: str
    columns: Mapping[str, str]
    order_by: str
    parse_row: Callable[[sqlite3.Row], T]
    handlers: Mapping[str, FieldHandler] = field(default_factory=dict)

    @property
    def fields(self) -> frozenset[str]:
        return frozenset(self.columns) | frozenset(self.handlers)


def escape_like(text: str) -> str:
    """Escape LIKE wildcards with ``\\``."""
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def compile_where(table: SearchTable[Any], query: SearchQuery) -> SqlCondition:
    """AND the compiled elements of ``query``; an empty query yields an empty fragment.

    Raises:
        SearchValidationError: On unknown fields, unsupported conditions or malformed values.
    """
    parts: list[str] = []
    params: list[Any] = []
    for element in query:
        compiled = compile_element(table, element)
        parts.append(compiled.sql)
        params.extend(compiled.params)
    return SqlCondition(" AND ".join(parts), tuple(params))


def compile_element(table: SearchTable[Any], element: SearchQueryElement) -> SqlCondition:
    handler = table.handlers.get(element.field)
    if handler is not None:
        base = handler(element)
    elif element.field in table.columns:
        base = column_condition(table.columns[element.field], element)
    else:
        raise SearchValidationError(f"Invalid field: {element.field}")
    if element.negate:
        return SqlCondition(f"NOT ({base.sql})", base.params)
    return SqlCondition(f"({base.sql})", base.params)


def column_condition(column: str, element: SearchQueryElement) -> SqlCondition:
    """Compile an element against a plain column."""
    condition = element.condition
    if condition is Condition.IS_NULL:
        return SqlCondition(f"{column} IS NULL")
    if condition is Condition.IS_NOT_NULL:
        return SqlCondition(f"{column} IS NOT NULL")

    if condition in _COMPARISON_OPERATORS:
        value = _scalar(element)
        if value is None:
            if condition is Condition.EQ:
                return SqlCondition(f"{column} IS NULL")
            if condition is Condition.NEQ:
                return SqlCondition(f"{column} IS NOT NULL")
            raise SearchValidationError(f"{condition.value} on {element.field} requires a value")
        return SqlCondition(f"{column} {_COMPARISON_OPERATORS[condition]} ?", (value,))

    if condition in (Condition.FRAGMENT, Condition.STARTS_WITH, Condition.ENDS_WITH):
        value = _scalar(element)
        if value is None:
            raise SearchValidationError(f"{condition.value} on {element.field} requires a value")
        escaped = escape_like(str(value))
        pattern = {
            Condition.FRAGMENT: f"%{escaped}%",
            Condition.STARTS_WITH: f"{escaped}%",
            Condition.ENDS_WITH: f"%{escaped}",
        }[condition]
        return SqlCondition(f"{column} LIKE ? ESCAPE '\\'", (pattern,))

    if condition in (Condition.IN, Condition.ANY_OF, Condition.NOT_IN):
        items = _scalar_list(element)
        if not items:
            return MATCH_ALL if condition is Condition.NOT_IN else MATCH_NONE
        operator = "NOT IN" if condition is Condition.NOT_IN else "IN"
        placeholders = ", ".join("?" for _ in items)
        return SqlCondition(f"{column} {operator} ({placeholders})", tuple(items))

    raise SearchValidationError(f"Unsupported condition {condition.value} for field {element.field}")


def link_set_handler(link_table: str, owner_column: str, member_column: str, owner_ref: str, *, exact_eq: bool = False):
    """Build a handler for an id set stored in a link table.

    ``ANY_OF``/``IN`` match when any member is linked, ``ALL_OF`` when every
    member is, ``IS_NULL``/``IS_NOT_NULL`` on the empty set. With
    ``exact_eq`` an ``EQ`` matches the exact set; ``[]`` means no members.
    """

    owned = f"FROM {link_table} l WHERE l.{owner_column} = {owner_ref}"

    def handle(element: SearchQueryElement) -> SqlCondition:
        condition = element.condition
        if condition is Condition.IS_NULL:
            return SqlCondition(f"NOT EXISTS (SELECT 1 {owned})")
        if condition is Condition.IS_NOT_NULL:
            return SqlCondition(f"EXISTS (SELECT 1 {owned})")

        ids = _id_list(element)
        placeholders = ", ".join("?" for _ in ids)
        if condition in (Condition.ANY_OF, Condition.IN):
            if not ids:
                return MATCH_NONE
            return SqlCondition(f"EXISTS (SELECT 1 {owned} AND l.{member_column} IN ({placeholders}))", ids)
        if condition is Condition.ALL_OF:
            if not ids:
                return MATCH_ALL
            return SqlCondition(
                f"(SELECT COUNT(DISTINCT l.{member_column}) {owned} AND l.{member_column} IN ({placeholders})) = ?",
                (*ids, len(ids)),
            )
        if condition is Condition.EQ and exact_eq:
            if not ids:
                return SqlCondition(f"NOT EXISTS (SELECT 1 {owned})")
            return SqlCondition(
                f"(SELECT COUNT(*) {owned}) = ? AND "
                f"(SELECT COUNT(*) {owned} AND l.{member_column} IN ({placeholders})) = ?",
                (len(ids), *ids, len(ids)),
            )
        raise SearchValidationError(f"Unsupported condition {condition.value} for field {element.field}")

    return handle


def presence_handler(link_table: str, owner_column: str, owner_ref: str):
    """Build a handler for a boolean "has any link" flag (``EQ true|false``)."""

    def handle(element: SearchQueryElement) -> SqlCondition:
        if element.condition is not Condition.EQ or not isinstance(element.value, bool):
            raise SearchValidationError(f"{element.field} supports only EQ with a boolean value")
        exists = f"EXISTS (SELECT 1 FROM {link_table} l WHERE l.{owner_column} = {owner_ref})"
        return SqlCondition(exists if element.value else f"NOT {exists}")

    return handle


def signature_path_handler(column: str):
    """Build a handler for a JSON column holding a list of signature paths.

    Paths are stored as compact JSON arrays (``[[1,2],[7]]``); ``json_each``
    yields each path as its compact text, which the conditions compare:

    - ``EQ``: some signature equals the path; ``[]`` matches items without any.
    - ``STARTS_WITH``: some signature begins with the path.
    - ``CONTAINS_SEQUENCE``: some signature contains the path contiguously.
    """

    each = f"EXISTS (SELECT 1 FROM json_each({column}) je WHERE"

    def handle(element: SearchQueryElement) -> SqlCondition:
        condition = element.condition
        if condition is Condition.IS_NULL:
            return SqlCondition(f"json_array_length({column}) = 0")
        if condition is Condition.IS_NOT_NULL:
            return SqlCondition(f"json_array_length({column}) > 0")

        path = _id_list(element, keep_order=True)
        if condition is Condition.EQ:
            if not path:
                return SqlCondition(f"json_array_length({column}) = 0")
            return SqlCondition(f"{each} je.value = ?)", (encode_path(path),))
        if not path:
            raise SearchValidationError(f"{condition.value} on {element.field} requires a non-empty path")
        joined = ",".join(str(item) for item in path)
        if condition is Condition.STARTS_WITH:
            return SqlCondition(f"{each} (je.value = ? OR je.value LIKE ?))", (f"[{joined}]", f"[{joined},%"))
        if condition is Condition.CONTAINS_SEQUENCE:
            return SqlCondition(f"{each} (',' || trim(je.value, '[]') || ',') LIKE ?)", (f"%,{joined},%",))
        raise SearchValidationError(f"Unsupported condition {condition.value} for field {element.field}")

    return handle


def encode_path(path: Sequence[int]) -> str:
    return json.dumps(list(path), separators=(",", ":"))


def encode_paths(paths: Sequence[Sequence[int]]) -> str:
    return json.dumps([list(path) for path in paths], separators=(",", ":"))


def _scalar(element: SearchQueryElement) -> Any:
    value = element.value
    if isinstance(value, (list, tuple)):
        raise SearchValidationError(f"{element.condition.value} on {element.field} requires a single value")
    if isinstance(value, bool):
        return int(value)
    return value


def _scalar_list(element: SearchQueryElement) -> list[Any]:
    value = element.value
    if not isinstance(value, (list, tuple)):
        raise SearchValidationError(f"{element.condition.value} on {element.field} requires an array value")
    items: list[Any] = []
    for item in value:
        if isinstance(item, (list, tuple, dict)):
            raise SearchValidationError(f"{element.condition.value} on {element.field} requires scalar array items")
        items.append(int(item) if isinstance(item, bool) else item)
    return items


def _id_list(element: SearchQueryElement, *, keep_order: bool = False) -> tuple[int, ...]:
    value = element.value
    if not isinstance(value, (list, tuple)):
        raise SearchValidationError(f"{element.condition.value} on {element.field} requires an array of ids")
    for item in value:
        if isinstance(item, bool) or not isinstance(item, int) or item < 1:
            raise SearchValidationError(f"{element.field} ids must be positive integers, got {item!r}")
    if keep_order:
        return tuple(value)
    return tuple(dict.fromkeys(value))


def _split_ids(raw: str | None) -> frozenset[int]:
    if not raw:
        return frozenset()
    return frozenset(int(item) for item in str(raw).split(","))


def _element_from_row(row: sqlite3.Row) -> SignatureElement:
    return SignatureElement(
        id=row["id"],
        component_id=row["component_id"],
        name=row["name"],
        index=row["idx"] or None,
        description=row["description"],
        parent_ids=_split_ids(row["parent_ids"]),
    )


def _document_from_row(row: sqlite3.Row) -> ArchiveDocument:
    return ArchiveDocument(
        id=row["id"],
        title=row["title"],
        creator=row["creator"],
        document_date=row["document_date"],
        number_of_pages=row["number_of_pages"],
        is_digitized=bool(row["is_digitized"]),
        language=row["language"],
        tag_ids=_split_ids(row["tag_ids"]),
        descriptive=SignatureSet("descriptive", tuple(tuple(p) for p in json.loads(row["descriptive_signatures"]))),
        topographic=SignatureSet("topographic", tuple(tuple(p) for p in json.loads(row["topographic_signatures"]))),
        created_on=row["created_on"],
    )


def _tag_from_row(row: sqlite3.Row) -> Tag:
    return Tag(id=row["id"], name=row["name"], description=row["description"])


def _user_from_row(row: sqlite3.Row) -> User:
    return User(id=row["id"], login=row["login"], role=row["role"], active=bool(row["active"]))


_ELEMENT_LABEL = "COALESCE(NULLIF(e.idx, ''), e.name)"
_ELEMENT_LABEL_NUMERIC = f"({_ELEMENT_LABEL} <> '' AND {_ELEMENT_LABEL} NOT GLOB '*[^0-9]*')"

ELEMENTS_TABLE: SearchTable[SignatureElement] = SearchTable(
    entity=entities.SIGNATURE_ELEMENTS,
    select_sql=(
        "SELECT e.id, e.component_id, e.name, e.idx, e.description, "
        "(SELECT group_concat(p.parent_id) FROM signature_element_parents p WHERE p.child_id = e.id) AS parent_ids "
        "FROM signature_elements e"
    ),
    from_sql="signature_elements e",
    columns={
        "signatureElementId": "e.id",
        "name": "e.name",
        "index": "e.idx",
        "description": "e.description",
        "signatureComponentId": "e.component_id",
    },
    handlers={
        "parentIds": link_set_handler("signature_element_parents", "child_id", "parent_id", "e.id"),
        "hasParents": presence_handler("signature_element_parents", "child_id", "e.id"),
    },
    order_by=(
        f"CASE WHEN {_ELEMENT_LABEL_NUMERIC} THEN 0 ELSE 1 END, "
        f"CASE WHEN {_ELEMENT_LABEL_NUMERIC} THEN CAST({_ELEMENT_LABEL} AS INTEGER) ELSE 0 END, "
        f"{_ELEMENT_LABEL} COLLATE NOCASE, e.name COLLATE NOCASE, e.id"
    ),
    parse_row=_element_from_row,
)

DOCUMENTS_TABLE: SearchTable[ArchiveDocument] = SearchTable(
    entity=entities.DOCUMENTS,
    select_sql=(
        "SELECT d.*, "
        "(SELECT group_concat(t.tag_id) FROM archive_document_tags t WHERE t.document_id = d.id) AS tag_ids "
        "FROM archive_documents d"
    ),
    from_sql="archive_documents d",
    columns={
        "archiveDocumentId": "d.id",
        "title": "d.title",
        "creator": "d.creator",
        "documentDate": "d.document_date",
        "numberOfPages": "d.number_of_pages",
        "isDigitized": "d.is_digitized",
        "language": "d.language",
        "createdOn": "d.created_on",
    },
    handlers={
        "tags": link_set_handler("archive_document_tags", "document_id", "tag_id", "d.id", exact_eq=True),
        "descriptiveSignature": signature_path_handler("d.descriptive_signatures"),
        "topographicSignature": signature_path_handler("d.topographic_signatures"),
    },
    order_by="d.id",
    parse_row=_document_from_row,
)

TAGS_TABLE: SearchTable[Tag] = SearchTable(
    entity=entities.TAGS,
    select_sql="SELECT g.id, g.name, g.description FROM tags g",
    from_sql="tags g",
    columns={"tagId": "g.id", "name": "g.name", "description": "g.description"},
    order_by="g.name COLLATE NOCASE, g.id",
    parse_row=_tag_from_row,
)

USERS_TABLE: SearchTable[User] = SearchTable(
    entity=entities.USERS,
    select_sql="SELECT u.id, u.login, u.role, u.active FROM users u",
    from_sql="users u",
    columns={"userId": "u.id", "login": "u.login", "role": "u.role", "active": "u.active"},
    order_by="u.login COLLATE NOCASE, u.id",
    parse_row=_user_from_row,
)

SEARCH_TABLES: Mapping[str, SearchTable[Any]] = {
    table.entity: table for table in (DOCUMENTS_TABLE, ELEMENTS_TABLE, TAGS_TABLE, USERS_TABLE)
}


class SqliteSearchExecutor(Generic[T]):
    """Runs search requests for one entity collection on a SQLite connection.

    ``execute`` queries on the calling thread, so it briefly blocks the event
    loop; the HTTP executor uses ``asyncio.to_thread`` instead.
    """

    def __init__(self, conn: sqlite3.Connection, table: SearchTable[T]) -> None:
        self.conn = conn
        self.table = table

    @property
    def name(self) -> str:
        return self.table.entity

    def run(self, request: SearchRequest) -> SearchResponse[T]:
        """Execute ``request`` synchronously.

        Raises:
            SearchValidationError: If the query does not compile for this collection.
            sqlite3.Error: If the database rejects the statement.
        """
        where = compile_where(self.table, request.query)
        clause = f" WHERE {where.sql}" if where.sql else ""
        count_sql = f"SELECT COUNT(*) AS total FROM {self.table.from_sql}{clause}"
        data_sql = f"{self.table.select_sql}{clause} ORDER BY {self.table.order_by} LIMIT ? OFFSET ?"
        log.debug("SQL search on %s: %s params=%s", self.name, clause or "(all)", where.params)

        total = self.conn.execute(count_sql, where.params).fetchone()[0]
        rows = self.conn.execute(data_sql, (*where.params, request.page_size, request.offset)).fetchall()
        return SearchResponse.build(
            [self.table.parse_row(row) for row in rows],
            page=request.page,
            page_size=request.page_size,
            total_size=total,
        )

    async def execute(self, request: SearchRequest) -> SearchResponse[T]:
        return self.run(request)


def create_search_executor(conn: sqlite3.Connection, entity: str) -> SqliteSearchExecutor[Any]:
    """Return the executor for ``entity``.

    Raises:
        ValueError: If the entity is unknown.
    """
    try:
        table = SEARCH_TABLES[entity]
    except KeyError:
        raise ValueError(f"Unknown entity: {entity} (expected one of {sorted(SEARCH_TABLES)})") from None
    return SqliteSearchExecutor(conn, table)
