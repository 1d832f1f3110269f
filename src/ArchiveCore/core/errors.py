"""Exception types raised at the validation and store-write boundaries.

Every class also derives from ``ValueError`` so callers that only guard
against ``ValueError`` keep working.
"""

from __future__ import annotations


class ArchiveCoreError(Exception):
    """Base class for ArchiveCore errors."""


class SearchValidationError(ArchiveCoreError, ValueError):
    """A search envelope or query element cannot be executed.

    Examples:
    - ``page`` or ``pageSize`` is not a positive integer
    - the field is not searchable on the target collection
    - the condition is not supported for the field
    """


class SignatureError(ArchiveCoreError, ValueError):
    """A signature path is structurally invalid.

    Examples:
    - empty path
    - an element id that is not a positive integer
    - the same path added twice to one signature set
    """


class SignatureGraphError(ArchiveCoreError, ValueError):
    """A write would break the element parent graph.

    Examples:
    - an element listed as its own parent
    - a parent edge that would close a cycle
    - a parent or component that does not exist
    """
