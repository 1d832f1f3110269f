from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Sequence

from ArchiveCore.core.errors import SignatureError

ElementId = int
ComponentId = int
Signature = tuple[ElementId, ...]

INDEX_TYPES = ("dec", "roman", "small_char", "capital_char")

_NUMERIC_RE = re.compile(r"^\d+$", re.ASCII)
_ROMAN_NUMERALS = (
    (1000, "M"), (900, "CM"), (500, "D"), (400, "CD"),
    (100, "C"), (90, "XC"), (50, "L"), (40, "XL"),
    (10, "X"), (9, "IX"), (5, "V"), (4, "IV"), (1, "I"),
)


@dataclass(frozen=True, slots=True)
class SignatureComponent:
    """A named category of classification elements (e.g. "Year", "Subject").

    Attributes:
        id: Component id; immutable once created.
        name: Display name.
        description: Optional free text.
        index_type: How auto-assigned element indexes are formatted.
        index_count: Last auto-assigned index counter value.
    """

    id: ComponentId
    name: str
    description: str | None = None
    index_type: str = "dec"
    index_count: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "signatureComponentId": self.id,
            "name": self.name,
            "description": self.description,
            "index_type": self.index_type,
            "index_count": self.index_count,
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> SignatureComponent:
        return cls(
            id=int(payload["signatureComponentId"]),
            name=str(payload["name"]),
            description=payload.get("description"),
            index_type=str(payload.get("index_type") or "dec"),
            index_count=int(payload.get("index_count") or 0),
        )


@dataclass(frozen=True, slots=True)
class SignatureElement:
    """One node of the classification graph.

    ``parent_ids`` may reference elements of any component; an element
    without parents is a root.
    """

    id: ElementId
    component_id: ComponentId
    name: str
    index: str | None = None
    description: str | None = None
    parent_ids: frozenset[ElementId] = field(default_factory=frozenset)

    def __post_init__(self) -> None:
        object.__setattr__(self, "parent_ids", frozenset(self.parent_ids))

    @property
    def is_root(self) -> bool:
        return not self.parent_ids

    @property
    def label(self) -> str:
        """``[index] name`` when an index is set, else ``name``."""
        return f"[{self.index}] {self.name}" if self.index else self.name

    def to_dict(self) -> dict[str, Any]:
        return {
            "signatureElementId": self.id,
            "signatureComponentId": self.component_id,
            "name": self.name,
            "index": self.index,
            "description": self.description,
            "parentIds": sorted(self.parent_ids),
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> SignatureElement:
        parents = payload.get("parentIds") or ()
        if isinstance(parents, str):
            parents = [int(item) for item in parents.split(",") if item.strip()]
        return cls(
            id=int(payload["signatureElementId"]),
            component_id=int(payload["signatureComponentId"]),
            name=str(payload["name"]),
            index=payload.get("index") or None,
            description=payload.get("description"),
            parent_ids=frozenset(int(item) for item in parents),
        )


@dataclass(frozen=True, slots=True)
class NewElement:
    """Input for creating an element; ``index=None`` asks the store to assign one."""

    component_id: ComponentId
    name: str
    index: str | None = None
    description: str | None = None
    parent_ids: tuple[ElementId, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "signatureComponentId": self.component_id,
            "name": self.name,
            "parentIds": list(self.parent_ids),
        }
        if self.index is not None:
            payload["index"] = self.index
        if self.description is not None:
            payload["description"] = self.description
        return payload


@dataclass(frozen=True, slots=True)
class ElementFilter:
    """Read filter for ``list_elements``; unset attributes do not constrain."""

    component_id: ComponentId | None = None
    parent_id: ElementId | None = None
    name_fragment: str | None = None
    max_results: int = 200


@dataclass(frozen=True, slots=True)
class ResolvedSignature:
    """A signature path with its display string.

    ``error`` is set when at least one element could not be fetched (as
    opposed to not existing); the display still renders every position.
    """

    path: Signature
    display: str
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"path": list(self.path), "display": self.display}


def validate_signature(path: Iterable[Any]) -> Signature:
    """Return ``path`` as a signature tuple.

    Raises:
        SignatureError: If the path is empty or holds non-positive-integer ids.
    """
    items = tuple(path)
    if not items:
        raise SignatureError("signature path must not be empty")
    for position, item in enumerate(items):
        if isinstance(item, bool) or not isinstance(item, int) or item < 1:
            raise SignatureError(f"signature path[{position}] must be a positive integer, got {item!r}")
    return items


@dataclass(frozen=True, slots=True)
class SignatureSet:
    """Signatures of one kind attached to an archive item.

    Members are unique by path equality (order- and content-sensitive) and
    keep insertion order.
    """

    kind: str
    signatures: tuple[Signature, ...] = ()

    def __post_init__(self) -> None:
        validated: list[Signature] = []
        for path in self.signatures:
            signature = validate_signature(path)
            if signature in validated:
                raise SignatureError(f"duplicate {self.kind} signature: {list(signature)}")
            validated.append(signature)
        object.__setattr__(self, "signatures", tuple(validated))

    def __contains__(self, path: object) -> bool:
        return isinstance(path, (list, tuple)) and tuple(path) in self.signatures

    def __iter__(self):
        return iter(self.signatures)

    def __len__(self) -> int:
        return len(self.signatures)

    def add(self, path: Sequence[ElementId]) -> SignatureSet:
        """Return a new set with ``path`` appended.

        Raises:
            SignatureError: If the path is invalid or already present.
        """
        return SignatureSet(kind=self.kind, signatures=(*self.signatures, tuple(path)))

    def remove(self, path: Sequence[ElementId]) -> SignatureSet:
        target = tuple(path)
        return SignatureSet(kind=self.kind, signatures=tuple(s for s in self.signatures if s != target))

    def to_list(self) -> list[list[ElementId]]:
        return [list(signature) for signature in self.signatures]


@dataclass(frozen=True, slots=True)
class ArchiveDocument:
    """An archive item with its tags and its two signature sets."""

    id: int
    title: str
    creator: str | None = None
    document_date: str | None = None
    number_of_pages: int | None = None
    is_digitized: bool = False
    language: str | None = None
    tag_ids: frozenset[int] = field(default_factory=frozenset)
    descriptive: SignatureSet = field(default_factory=lambda: SignatureSet("descriptive"))
    topographic: SignatureSet = field(default_factory=lambda: SignatureSet("topographic"))
    created_on: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "archiveDocumentId": self.id,
            "title": self.title,
            "creator": self.creator,
            "documentDate": self.document_date,
            "numberOfPages": self.number_of_pages,
            "isDigitized": self.is_digitized,
            "language": self.language,
            "tags": sorted(self.tag_ids),
            "descriptiveSignature": self.descriptive.to_list(),
            "topographicSignature": self.topographic.to_list(),
            "createdOn": self.created_on,
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> ArchiveDocument:
        pages = payload.get("numberOfPages")
        return cls(
            id=int(payload["archiveDocumentId"]),
            title=str(payload["title"]),
            creator=payload.get("creator"),
            document_date=payload.get("documentDate"),
            number_of_pages=int(pages) if pages is not None else None,
            is_digitized=bool(payload.get("isDigitized", False)),
            language=payload.get("language"),
            tag_ids=frozenset(int(tag) for tag in payload.get("tags") or ()),
            descriptive=SignatureSet(
                "descriptive", tuple(tuple(path) for path in payload.get("descriptiveSignature") or ())
            ),
            topographic=SignatureSet(
                "topographic", tuple(tuple(path) for path in payload.get("topographicSignature") or ())
            ),
            created_on=payload.get("createdOn"),
        )


@dataclass(frozen=True, slots=True)
class Tag:
    id: int
    name: str
    description: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"tagId": self.id, "name": self.name, "description": self.description}


@dataclass(frozen=True, slots=True)
class User:
    id: int
    login: str
    role: str = "user"
    active: bool = True

    def to_dict(self) -> dict[str, Any]:
        return {"userId": self.id, "login": self.login, "role": self.role, "active": self.active}


def element_sort_key(element: SignatureElement) -> tuple[int, int, str, str]:
    """Sort key: numeric indexes first (by value), then lexicographic, case-insensitive.

    Elements without an index sort by name within the lexicographic group.
    """
    label = element.index or element.name
    if _NUMERIC_RE.match(label):
        return (0, int(label), label.casefold(), element.name.casefold())
    return (1, 0, label.casefold(), element.name.casefold())


def sort_elements(elements: Iterable[SignatureElement]) -> list[SignatureElement]:
    return sorted(elements, key=element_sort_key)


def format_index(count: int, index_type: str) -> str:
    """Format an index counter per component ``index_type``.

    ``dec`` -> ``12``; ``roman`` -> ``XII`` (decimal outside 1..3999);
    ``small_char`` -> ``l`` / ``aa``; ``capital_char`` -> ``L`` / ``AA``.
    Unknown types fall back to decimal; non-positive counts give ``""``.
    """
    if count <= 0:
        return ""
    if index_type == "roman":
        return _to_roman(count)
    if index_type == "small_char":
        return _to_letters(count, base="a")
    if index_type == "capital_char":
        return _to_letters(count, base="A")
    return str(count)


def _to_roman(count: int) -> str:
    if count >= 4000:
        return str(count)
    out: list[str] = []
    for value, numeral in _ROMAN_NUMERALS:
        while count >= value:
            out.append(numeral)
            count -= value
    return "".join(out)


def _to_letters(count: int, *, base: str) -> str:
    out = ""
    current = count
    while current > 0:
        current, remainder = divmod(current - 1, 26)
        out = chr(ord(base) + remainder) + out
    return out
