from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Generic, Mapping, Sequence, TypeVar, Union

from ArchiveCore.core.conditions import Condition, FieldType, parse_condition, parse_field_type
from ArchiveCore.core.errors import SearchValidationError

Scalar = Union[str, int, float, bool]
FieldValue = Union[Scalar, None, Sequence[Any]]

T = TypeVar("T")

DEFAULT_PAGE_SIZE = 10


@dataclass(frozen=True, slots=True)
class FieldOption:
    """One selectable value of a ``select`` or ``tags`` field."""

    value: Scalar
    label: str


@dataclass(frozen=True, slots=True)
class FieldDef:
    """Declares a searchable field and its semantic type.

    Attributes:
        name: Wire field name (e.g. ``title``, ``descriptiveSignature``).
        type: Semantic type deciding legal conditions and value parsing.
        label: Human label shown by UI collaborators.
        options: Choices for ``select``/``tags`` fields.
    """

    name: str
    type: FieldType
    label: str = ""
    options: tuple[FieldOption, ...] = ()


@dataclass(frozen=True, slots=True)
class Criterion:
    """One user-entered filter row before validation.

    Any attribute may be missing or malformed; ``build_query`` decides what
    survives.
    """

    field: str | None = None
    condition: Condition | str | None = None
    value: Any = ""
    negate: bool = False


@dataclass(frozen=True, slots=True)
class SearchQueryElement:
    """A validated filter condition: ``field`` ``condition`` ``value``, optionally negated."""

    field: str
    condition: Condition
    value: FieldValue = None
    negate: bool = False

    def to_dict(self) -> dict[str, Any]:
        value = list(self.value) if isinstance(self.value, (list, tuple)) else self.value
        return {
            "field": self.field,
            "condition": self.condition.value,
            "value": value,
            "not": self.negate,
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> SearchQueryElement:
        """Parse one wire query element.

        Only the structure is checked here; whether the value suits the
        field's column is decided by the executing collaborator.

        Raises:
            SearchValidationError: If field, condition, negation or value are malformed.
        """
        if not isinstance(payload, Mapping):
            raise SearchValidationError("query element must be an object")
        field_name = payload.get("field")
        if not isinstance(field_name, str) or not field_name.strip():
            raise SearchValidationError("query element field must be a non-empty string")
        condition = parse_condition(payload.get("condition"))
        if condition is None:
            raise SearchValidationError(f"query element has unknown condition: {payload.get('condition')!r}")
        negate = payload.get("not", False)
        if not isinstance(negate, bool):
            raise SearchValidationError("query element not must be a boolean")
        value = payload.get("value")
        if isinstance(value, Mapping):
            raise SearchValidationError(f"query element value for {field_name} must not be an object")
        if isinstance(value, list):
            value = [list(item) if isinstance(item, list) else item for item in value]
        return cls(field=field_name, condition=condition, value=value, negate=negate)


SearchQuery = tuple[SearchQueryElement, ...]


def _expect_positive_int(value: Any, key: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise SearchValidationError(f"{key} must be a positive integer")
    return value


def total_pages_for(total_size: int, page_size: int) -> int:
    """Return ``ceil(total_size / page_size)`` with a floor of 1."""
    return max(1, -(-total_size // page_size))


@dataclass(frozen=True, slots=True)
class SearchRequest:
    """Paged search over one entity collection; query elements are AND-ed."""

    query: SearchQuery = ()
    page: int = 1
    page_size: int = DEFAULT_PAGE_SIZE

    def __post_init__(self) -> None:
        object.__setattr__(self, "query", tuple(self.query))
        _expect_positive_int(self.page, "page")
        _expect_positive_int(self.page_size, "pageSize")

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size

    def to_dict(self) -> dict[str, Any]:
        return {
            "query": [element.to_dict() for element in self.query],
            "page": self.page,
            "pageSize": self.page_size,
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> SearchRequest:
        if not isinstance(payload, Mapping):
            raise SearchValidationError("search request must be an object")
        raw_query = payload.get("query", [])
        if not isinstance(raw_query, list):
            raise SearchValidationError("query must be a list")
        return cls(
            query=tuple(SearchQueryElement.from_dict(item) for item in raw_query),
            page=payload.get("page", 1),
            page_size=payload.get("pageSize", DEFAULT_PAGE_SIZE),
        )


@dataclass(frozen=True, slots=True)
class SearchResponse(Generic[T]):
    """One page of search results plus totals.

    ``total_pages`` must equal ``ceil(total_size / page_size)`` floored at 1,
    so an empty result set is still a valid ``page=1, total_pages=1`` page.
    """

    data: tuple[T, ...]
    page: int
    page_size: int
    total_size: int
    total_pages: int = 0

    def __post_init__(self) -> None:
        object.__setattr__(self, "data", tuple(self.data))
        _expect_positive_int(self.page, "page")
        _expect_positive_int(self.page_size, "pageSize")
        if isinstance(self.total_size, bool) or not isinstance(self.total_size, int) or self.total_size < 0:
            raise SearchValidationError("totalSize must be a non-negative integer")
        expected = total_pages_for(self.total_size, self.page_size)
        if self.total_pages == 0:
            object.__setattr__(self, "total_pages", expected)
        elif self.total_pages != expected:
            raise SearchValidationError(
                f"totalPages must be {expected} for totalSize={self.total_size} pageSize={self.page_size}, "
                f"got {self.total_pages}"
            )

    @classmethod
    def build(cls, data: Sequence[T], *, page: int, page_size: int, total_size: int) -> SearchResponse[T]:
        """Build a response, deriving ``total_pages`` from the totals."""
        return cls(data=tuple(data), page=page, page_size=page_size, total_size=total_size)

    def to_dict(self, encode: Callable[[T], Any] | None = None) -> dict[str, Any]:
        return {
            "data": [encode(item) if encode else item for item in self.data],
            "page": self.page,
            "pageSize": self.page_size,
            "totalSize": self.total_size,
            "totalPages": self.total_pages,
        }

    @classmethod
    def from_dict(
        cls,
        payload: Mapping[str, Any],
        parse: Callable[[Any], T] | None = None,
    ) -> SearchResponse[T]:
        """Parse a wire response, validating its paging envelope.

        Raises:
            SearchValidationError: If the envelope is malformed or inconsistent.
        """
        if not isinstance(payload, Mapping):
            raise SearchValidationError("search response must be an object")
        raw_data = payload.get("data", [])
        if not isinstance(raw_data, list):
            raise SearchValidationError("search response data must be a list")
        return cls(
            data=tuple(parse(item) if parse else item for item in raw_data),
            page=payload.get("page"),
            page_size=payload.get("pageSize"),
            total_size=payload.get("totalSize"),
            total_pages=payload.get("totalPages", 0),
        )


def field_def_from_dict(payload: Mapping[str, Any]) -> FieldDef:
    """Parse a field definition mapping (as kept in config or sent by a UI).

    Raises:
        ValueError: If the name is missing or the type is unknown.
    """
    name = payload.get("name")
    if not isinstance(name, str) or not name.strip():
        raise ValueError("field definition name must be a non-empty string")
    field_type = parse_field_type(payload.get("type"))
    if field_type is None:
        raise ValueError(f"field definition {name} has unknown type: {payload.get('type')!r}")
    options = tuple(
        FieldOption(value=item["value"], label=str(item.get("label", item["value"])))
        for item in payload.get("options", ())
    )
    return FieldDef(name=name, type=field_type, label=str(payload.get("label", name)), options=options)
