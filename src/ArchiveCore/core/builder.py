"""Turn user-entered criteria into a validated search query.

``build_query`` is a best-effort filter builder, not a strict form
validator: criteria that are incomplete or carry a value that does not fit
their field type are dropped (and logged at DEBUG) so users can leave rows
half-filled without blocking the search. It is a pure function of its inputs.

The criterion editing helpers (``new_criterion``, ``change_field``,
``change_condition``) own the reset rules UI collaborators apply while a row
is being edited.
"""

from __future__ import annotations

import math
import re
from dataclasses import replace
from datetime import date
from typing import Any, Callable, Final, Mapping, Sequence

from dateutil import parser as dt_parser

from ArchiveCore.core.conditions import (
    MULTI_VALUE_CONDITIONS,
    NO_VALUE_CONDITIONS,
    Condition,
    FieldType,
    default_condition,
    empty_value,
    is_condition_allowed,
    parse_condition,
    value_shape,
)
from ArchiveCore.core.query import Criterion, FieldDef, SearchQueryElement
from ArchiveCore.utils.log import log

_DIGITS_RE = re.compile(r"^\d+$", re.ASCII)
_NUMBER_RE = re.compile(r"^[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?$", re.ASCII)
_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$", re.ASCII)
_TRUE_WORDS = frozenset({"true", "1", "yes", "on"})
_FALSE_WORDS = frozenset({"false", "0", "no", "off", ""})


class _Drop(Exception):
    """Raised by a value parser when the criterion must be omitted."""


def _index_fields(field_defs: Sequence[FieldDef]) -> dict[str, FieldDef]:
    return {field_def.name: field_def for field_def in field_defs}


def new_criterion(field_defs: Sequence[FieldDef]) -> Criterion:
    """Return a fresh row on the first field with its default condition and empty value."""
    if not field_defs:
        return Criterion()
    first = field_defs[0]
    condition = default_condition(first.type)
    return Criterion(field=first.name, condition=condition, value=empty_value(first.type, condition))


def change_field(criterion: Criterion, field_name: str, field_defs: Sequence[FieldDef]) -> Criterion:
    """Point a criterion at another field.

    The condition survives only when it is legal for the new field's type;
    otherwise it becomes that type's default. The value always resets to the
    empty value of the resulting condition, since values of one field do not
    carry meaning for another.
    """
    field_def = _index_fields(field_defs).get(field_name)
    if field_def is None:
        return replace(criterion, field=field_name, condition=None, value="")
    condition = parse_condition(criterion.condition)
    if condition is None or not is_condition_allowed(field_def.type, condition):
        condition = default_condition(field_def.type)
    return replace(
        criterion,
        field=field_name,
        condition=condition,
        value=empty_value(field_def.type, condition),
    )


def change_condition(criterion: Criterion, condition: Condition | str, field_defs: Sequence[FieldDef]) -> Criterion:
    """Switch a criterion's operator, keeping the value when its shape still fits.

    The value resets only when the expected shape changes (scalar <-> array,
    or value <-> no value for ``IS_NULL``/``IS_NOT_NULL``). Moving between
    ``STARTS_WITH`` and ``CONTAINS_SEQUENCE`` on a signature path therefore
    keeps the picked path. Conditions illegal for the field type are ignored.
    """
    new_condition = parse_condition(condition)
    if new_condition is None:
        return criterion
    field_def = _index_fields(field_defs).get(criterion.field or "")
    if field_def is None:
        return replace(criterion, condition=new_condition)
    if not is_condition_allowed(field_def.type, new_condition):
        log.debug("Ignoring condition %s for %s field %s", new_condition.value, field_def.type.value, field_def.name)
        return criterion

    old_condition = parse_condition(criterion.condition)
    if old_condition is not None and value_shape(field_def.type, old_condition) == value_shape(
        field_def.type, new_condition
    ):
        return replace(criterion, condition=new_condition)
    return replace(criterion, condition=new_condition, value=empty_value(field_def.type, new_condition))


def build_query(criteria: Sequence[Criterion], field_defs: Sequence[FieldDef]) -> list[SearchQueryElement]:
    """Validate criteria into query elements, preserving input order.

    Args:
        criteria: Rows as entered by the user.
        field_defs: Searchable fields of the target collection.

    Returns:
        Query elements for the criteria that survived validation.
    """
    by_name = _index_fields(field_defs)
    out: list[SearchQueryElement] = []
    for position, criterion in enumerate(criteria):
        field_def = by_name.get(criterion.field) if criterion.field else None
        condition = parse_condition(criterion.condition)
        if field_def is None or condition is None:
            log.debug("Dropping incomplete criterion #%d: %s", position, criterion)
            continue
        if not is_condition_allowed(field_def.type, condition):
            log.debug(
                "Dropping criterion #%d: %s is not a %s condition",
                position,
                condition.value,
                field_def.type.value,
            )
            continue

        if condition in NO_VALUE_CONDITIONS:
            value: Any = None
        else:
            try:
                value = _VALUE_PARSERS[field_def.type](criterion.value, condition)
            except _Drop as reason:
                log.debug("Dropping criterion #%d on %s: %s", position, field_def.name, reason)
                continue

        out.append(
            SearchQueryElement(
                field=field_def.name,
                condition=condition,
                value=value,
                negate=bool(criterion.negate),
            )
        )
    return out


def _is_blank(value: Any) -> bool:
    return value is None or str(value).strip() == ""


def _parse_number(value: Any, condition: Condition) -> int | float:
    if isinstance(value, bool):
        raise _Drop("boolean is not a number")
    if isinstance(value, (int, float)):
        if isinstance(value, float) and not math.isfinite(value):
            raise _Drop("number must be finite")
        return value
    if _is_blank(value):
        raise _Drop("empty number")
    text = str(value).strip()
    if not _NUMBER_RE.match(text):
        raise _Drop(f"not a number: {text!r}")
    if _DIGITS_RE.match(text.lstrip("+-")):
        return int(text)
    number = float(text)
    if not math.isfinite(number):
        raise _Drop(f"number out of range: {text!r}")
    return number


def _parse_boolean(value: Any, condition: Condition) -> bool:
    if isinstance(value, str):
        word = value.strip().lower()
        if word in _TRUE_WORDS:
            return True
        if word in _FALSE_WORDS:
            return False
        return True
    return bool(value)


def _as_id(item: Any) -> int:
    if isinstance(item, bool):
        raise _Drop("boolean is not an id")
    if isinstance(item, int):
        number = item
    elif isinstance(item, str) and _DIGITS_RE.match(item.strip()):
        number = int(item.strip())
    else:
        raise _Drop(f"not an integer id: {item!r}")
    if number < 1:
        raise _Drop(f"id must be positive: {number}")
    return number


def _parse_id_list(value: Any, condition: Condition) -> list[int]:
    if not isinstance(value, (list, tuple)):
        raise _Drop("expected an array of ids")
    ids = [_as_id(item) for item in value]
    # EQ [] stays: "has no tags" / "has no signature" for the executing collaborator.
    if not ids and condition is not Condition.EQ:
        raise _Drop("empty array")
    return ids


def _select_scalar(item: Any) -> Any:
    if isinstance(item, str):
        text = item.strip()
        return int(text) if _DIGITS_RE.match(text) else text
    return item


def _parse_select(value: Any, condition: Condition) -> Any:
    if condition in MULTI_VALUE_CONDITIONS:
        items = list(value) if isinstance(value, (list, tuple)) else [value]
        selected = [_select_scalar(item) for item in items if not _is_blank(item)]
        if not selected:
            raise _Drop("no option selected")
        return selected
    if isinstance(value, (list, tuple)) or _is_blank(value):
        raise _Drop("no option selected")
    return _select_scalar(value)


def _parse_text(value: Any, condition: Condition) -> str:
    if isinstance(value, (list, tuple)) or _is_blank(value):
        raise _Drop("empty text")
    return str(value).strip()


def _parse_date(value: Any, condition: Condition) -> str:
    if isinstance(value, date):
        return value.isoformat()[:10]
    if not isinstance(value, str):
        raise _Drop("date must be a YYYY-MM-DD string")
    text = value.strip()
    if not _DATE_RE.match(text):
        raise _Drop(f"date must match YYYY-MM-DD: {text!r}")
    try:
        dt_parser.isoparse(text)
    except ValueError as error:
        raise _Drop(f"not a calendar date: {text!r}") from error
    return text


_VALUE_PARSERS: Final[Mapping[FieldType, Callable[[Any, Condition], Any]]] = {
    FieldType.TEXT: _parse_text,
    FieldType.NUMBER: _parse_number,
    FieldType.BOOLEAN: _parse_boolean,
    FieldType.DATE: _parse_date,
    FieldType.SELECT: _parse_select,
    FieldType.TAGS: _parse_id_list,
    FieldType.SIGNATURE_PATH: _parse_id_list,
}
