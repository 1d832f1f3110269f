"""Comparison operator vocabulary for search criteria.

Each semantic field type owns an ordered list of legal operators; the first
one is the default picked when a criterion switches to a field of that type.
The value a condition expects comes in one of three shapes (scalar, array or
nothing), which drives both validation and reset-on-change behaviour.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Final, Mapping


class Condition(str, Enum):
    """Wire codes accepted in ``SearchQueryElement.condition``."""

    EQ = "EQ"
    NEQ = "NEQ"
    LT = "LT"
    LTE = "LTE"
    GT = "GT"
    GTE = "GTE"
    FRAGMENT = "FRAGMENT"
    STARTS_WITH = "STARTS_WITH"
    ENDS_WITH = "ENDS_WITH"
    IN = "IN"
    NOT_IN = "NOT_IN"
    ANY_OF = "ANY_OF"
    ALL_OF = "ALL_OF"
    IS_NULL = "IS_NULL"
    IS_NOT_NULL = "IS_NOT_NULL"
    CONTAINS_SEQUENCE = "CONTAINS_SEQUENCE"


class FieldType(str, Enum):
    """Semantic type of a searchable field."""

    TEXT = "text"
    NUMBER = "number"
    BOOLEAN = "boolean"
    DATE = "date"
    SELECT = "select"
    TAGS = "tags"
    SIGNATURE_PATH = "signaturePath"


class ValueShape(Enum):
    """Shape of the value a condition expects."""

    SCALAR = "scalar"
    ARRAY = "array"
    NONE = "none"


@dataclass(frozen=True, slots=True)
class ConditionOption:
    """One operator offered for a field type, with its UI label."""

    condition: Condition
    label: str


NO_VALUE_CONDITIONS: Final[frozenset[Condition]] = frozenset({Condition.IS_NULL, Condition.IS_NOT_NULL})
MULTI_VALUE_CONDITIONS: Final[frozenset[Condition]] = frozenset(
    {Condition.IN, Condition.NOT_IN, Condition.ANY_OF, Condition.ALL_OF}
)

_ORDERING_OPTIONS = (
    ConditionOption(Condition.EQ, "="),
    ConditionOption(Condition.GT, ">"),
    ConditionOption(Condition.GTE, ">="),
    ConditionOption(Condition.LT, "<"),
    ConditionOption(Condition.LTE, "<="),
    ConditionOption(Condition.IS_NULL, "Is empty"),
    ConditionOption(Condition.IS_NOT_NULL, "Is not empty"),
)

CONDITIONS_BY_TYPE: Final[Mapping[FieldType, tuple[ConditionOption, ...]]] = {
    FieldType.TEXT: (
        ConditionOption(Condition.FRAGMENT, "Contains"),
        ConditionOption(Condition.EQ, "Equals"),
        ConditionOption(Condition.STARTS_WITH, "Starts with"),
        ConditionOption(Condition.ENDS_WITH, "Ends with"),
        ConditionOption(Condition.IS_NULL, "Is empty"),
        ConditionOption(Condition.IS_NOT_NULL, "Is not empty"),
    ),
    FieldType.NUMBER: _ORDERING_OPTIONS,
    FieldType.BOOLEAN: (ConditionOption(Condition.EQ, "Is"),),
    FieldType.DATE: (
        ConditionOption(Condition.EQ, "Is"),
        ConditionOption(Condition.GT, "After"),
        ConditionOption(Condition.GTE, "On or after"),
        ConditionOption(Condition.LT, "Before"),
        ConditionOption(Condition.LTE, "On or before"),
        ConditionOption(Condition.IS_NULL, "Is empty"),
        ConditionOption(Condition.IS_NOT_NULL, "Is not empty"),
    ),
    FieldType.SELECT: (
        ConditionOption(Condition.EQ, "Is"),
        ConditionOption(Condition.ANY_OF, "Is any of"),
        ConditionOption(Condition.IS_NULL, "Is empty"),
        ConditionOption(Condition.IS_NOT_NULL, "Is not empty"),
    ),
    FieldType.TAGS: (
        ConditionOption(Condition.ANY_OF, "Has any of"),
        ConditionOption(Condition.ALL_OF, "Has all of"),
        ConditionOption(Condition.IS_NULL, "Has none"),
        ConditionOption(Condition.IS_NOT_NULL, "Has some"),
    ),
    FieldType.SIGNATURE_PATH: (
        ConditionOption(Condition.EQ, "Equals path"),
        ConditionOption(Condition.STARTS_WITH, "Starts with path"),
        ConditionOption(Condition.CONTAINS_SEQUENCE, "Contains sequence"),
    ),
}


def parse_condition(value: Any) -> Condition | None:
    """Return the ``Condition`` for a wire code, or None when unknown."""
    if isinstance(value, Condition):
        return value
    if not isinstance(value, str):
        return None
    try:
        return Condition(value.strip().upper())
    except ValueError:
        return None


def parse_field_type(value: Any) -> FieldType | None:
    """Return the ``FieldType`` for a type name, or None when unknown."""
    if isinstance(value, FieldType):
        return value
    if not isinstance(value, str):
        return None
    try:
        return FieldType(value.strip())
    except ValueError:
        return None


def conditions_for(field_type: FieldType) -> tuple[Condition, ...]:
    """Return the legal operators of a field type in UI order."""
    return tuple(option.condition for option in CONDITIONS_BY_TYPE[field_type])


def default_condition(field_type: FieldType) -> Condition:
    """Return the operator a criterion gets when switched to this type."""
    return CONDITIONS_BY_TYPE[field_type][0].condition


def is_condition_allowed(field_type: FieldType, condition: Condition) -> bool:
    return condition in conditions_for(field_type)


def condition_label(field_type: FieldType, condition: Condition) -> str:
    """Return the UI label of an operator, falling back to its wire code."""
    for option in CONDITIONS_BY_TYPE[field_type]:
        if option.condition is condition:
            return option.label
    return condition.value


def value_shape(field_type: FieldType, condition: Condition) -> ValueShape:
    """Return the value shape expected by ``condition`` on a field type.

    Tag sets and signature paths are always arrays, whatever the operator;
    plain fields become arrays only for the multi-value operators.
    """
    if condition in NO_VALUE_CONDITIONS:
        return ValueShape.NONE
    if field_type in (FieldType.TAGS, FieldType.SIGNATURE_PATH):
        return ValueShape.ARRAY
    if condition in MULTI_VALUE_CONDITIONS:
        return ValueShape.ARRAY
    return ValueShape.SCALAR


def empty_value(field_type: FieldType, condition: Condition) -> Any:
    """Return the type-appropriate empty value: ``None``, ``[]``, ``True`` or ``''``."""
    shape = value_shape(field_type, condition)
    if shape is ValueShape.NONE:
        return None
    if shape is ValueShape.ARRAY:
        return []
    if field_type is FieldType.BOOLEAN:
        return True
    return ""
