"""HTTP collaborators for an existing archive backend."""

from __future__ import annotations

from ArchiveCore.remote.client import ArchiveApiClient
from ArchiveCore.remote.store import HttpSearchExecutor, HttpSignatureStore

__all__ = [
    "ArchiveApiClient",
    "HttpSearchExecutor",
    "HttpSignatureStore",
]
