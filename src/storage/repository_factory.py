# src/storage/repository_factory.py - v1
"""Factory for repository instantiation."""

from __future__ import annotations

from contentflow.config.settings import Settings
from contentflow.storage.base_repository import BaseRepository


def create_repository(settings: Settings | None = None) -> BaseRepository:
    """Instantiate the configured repository backend.

    Args:
        settings: Application settings. Defaults to the in-memory backend.

    Returns:
        Configured BaseRepository implementation.
    """
    backend = "memory" if settings is None else settings.repository_backend

    if backend == "memory":
        from contentflow.storage.memory_repository import MemoryRepository
        return MemoryRepository()

    if backend == "sqlite":
        from contentflow.storage.sqlite_repository import SqliteRepository
        return SqliteRepository(db_path=settings.sqlite_path)

    raise ValueError(f"Unsupported repository backend: {backend!r}")
