from __future__ import annotations

from typing import Final, Mapping

from ArchiveCore.core.conditions import FieldType
from ArchiveCore.core.query import FieldDef, FieldOption

DOCUMENTS = "documents"
SIGNATURE_ELEMENTS = "signatureElements"
TAGS = "tags"
USERS = "users"

USER_ROLES = ("admin", "employee", "user")

ENTITY_FIELDS: Final[Mapping[str, tuple[FieldDef, ...]]] = {
    DOCUMENTS: (
        FieldDef("title", FieldType.TEXT, "Title"),
        FieldDef("creator", FieldType.TEXT, "Creator"),
        FieldDef("documentDate", FieldType.DATE, "Date"),
        FieldDef("numberOfPages", FieldType.NUMBER, "Pages"),
        FieldDef("isDigitized", FieldType.BOOLEAN, "Digitized"),
        FieldDef("language", FieldType.SELECT, "Language"),
        FieldDef("tags", FieldType.TAGS, "Tags"),
        FieldDef("descriptiveSignature", FieldType.SIGNATURE_PATH, "Descriptive signature"),
        FieldDef("topographicSignature", FieldType.SIGNATURE_PATH, "Topographic signature"),
        FieldDef("archiveDocumentId", FieldType.NUMBER, "ID"),
        FieldDef("createdOn", FieldType.DATE, "Created"),
    ),
    SIGNATURE_ELEMENTS: (
        FieldDef("name", FieldType.TEXT, "Name"),
        FieldDef("index", FieldType.TEXT, "Index"),
        FieldDef("description", FieldType.TEXT, "Description"),
        FieldDef("signatureComponentId", FieldType.SELECT, "Component"),
        FieldDef("parentIds", FieldType.TAGS, "Parents"),
        FieldDef("hasParents", FieldType.BOOLEAN, "Has parents"),
        FieldDef("signatureElementId", FieldType.NUMBER, "ID"),
    ),
    TAGS: (
        FieldDef("name", FieldType.TEXT, "Name"),
        FieldDef("description", FieldType.TEXT, "Description"),
        FieldDef("tagId", FieldType.NUMBER, "ID"),
    ),
    USERS: (
        FieldDef("login", FieldType.TEXT, "Login"),
        FieldDef("role", FieldType.SELECT, "Role", tuple(FieldOption(role, role.title()) for role in USER_ROLES)),
        FieldDef("active", FieldType.BOOLEAN, "Active"),
        FieldDef("userId", FieldType.NUMBER, "ID"),
    ),
}


def field_defs_for(entity: str) -> tuple[FieldDef, ...]:
    """Return the searchable fields of an entity collection.

    Raises:
        ValueError: If the entity is unknown.
    """
    try:
        return ENTITY_FIELDS[entity]
    except KeyError:
        raise ValueError(f"Unknown entity: {entity} (expected one of {sorted(ENTITY_FIELDS)})") from None
