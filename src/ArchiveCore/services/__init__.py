"""Service layer for ArchiveCore.

Query building, signature resolution, the Element Browser and search
execution, plus the factory wiring them to the configured collaborator.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable

from ArchiveCore.core.entities import field_defs_for
from ArchiveCore.services.browser import ElementBrowser
from ArchiveCore.services.resolver import SignaturePathResolver
from ArchiveCore.services.search import SearchExecutor, SearchService
from ArchiveCore.services.store import ElementCreator, SignatureGraphStore

if TYPE_CHECKING:
    from ArchiveCore.config import AppConfig


@dataclass(slots=True)
class Backend:
    """Signature store and search executors of one collaborator.

    Attributes:
        signature_store: Read store that also creates elements.
        executor_for: Returns the search executor of an entity collection.
        closers: Cleanup callbacks run by ``close``.
    """

    signature_store: Any
    executor_for: Callable[[str], SearchExecutor[Any]]
    closers: list[Callable[[], None]] = field(default_factory=list)

    def search_service(self, entity: str, page_size: int) -> SearchService[Any]:
        return SearchService(
            executor=self.executor_for(entity),
            field_defs=field_defs_for(entity),
            default_page_size=page_size,
        )

    def close(self) -> None:
        for closer in reversed(self.closers):
            closer()
        self.closers.clear()


def create_backend(config: AppConfig) -> Backend:
    """Create stores and executors for ``config.storage.backend``.

    Args:
        config: Application configuration.

    Returns:
        Configured backend; call ``close`` when done.

    Raises:
        ValueError: If the backend is not supported.
    """
    backend = config.storage.backend
    if backend == "sqlite":
        from ArchiveCore.storage import SqliteSignatureStore, create_search_executor, create_storage

        db_manager = create_storage(config)
        assert db_manager is not None
        conn = db_manager.get_connection()
        return Backend(
            signature_store=SqliteSignatureStore(conn),
            executor_for=lambda entity: create_search_executor(conn, entity),
            closers=[db_manager.close],
        )
    if backend == "remote":
        from ArchiveCore.remote import ArchiveApiClient, HttpSearchExecutor, HttpSignatureStore

        client = ArchiveApiClient(
            config.remote.base_url,
            token=config.remote.token(),
            timeout=config.remote.timeout,
        )
        return Backend(
            signature_store=HttpSignatureStore(client),
            executor_for=lambda entity: HttpSearchExecutor(client, entity),
            closers=[client.close],
        )
    raise ValueError(f"Unsupported storage backend: {backend}")


__all__ = [
    "Backend",
    "ElementBrowser",
    "ElementCreator",
    "SearchExecutor",
    "SearchService",
    "SignatureGraphStore",
    "SignaturePathResolver",
    "create_backend",
]
