# src/storage/base_repository.py - v1
"""Abstract repository interface for work items, targets and the run ledger."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from contentflow.core.models import (
    PublishTarget,
    RunFilter,
    RunRecord,
    WorkItem,
    WorkItemStatus,
)


class BaseRepository(ABC):
    """Unified interface for persistence backends."""

    @abstractmethod
    async def create(self, item: WorkItem) -> WorkItem:
        """Insert a new work item."""

    @abstractmethod
    async def get(self, work_item_id: str) -> WorkItem | None:
        """Retrieve a work item by id, or None."""

    @abstractmethod
    async def update(
        self,
        work_item_id: str,
        fields: dict[str, Any],
        expected_status: WorkItemStatus | None = None,
    ) -> WorkItem:
        """Apply field updates atomically.

        When expected_status is given, the update only happens if the stored
        status still equals it.

        Raises:
            NotFoundError: If the item does not exist.
            ConcurrentUpdateError: If the stored status differs from
                expected_status.
        """

    @abstractmethod
    async def list_items(
        self,
        status: WorkItemStatus | None = None,
        target_id: str | None = None,
    ) -> list[WorkItem]:
        """List work items, optionally filtered."""

    @abstractmethod
    async def put_target(self, target: PublishTarget) -> PublishTarget:
        """Insert or replace a publishing target."""

    @abstractmethod
    async def get_target(self, target_id: str) -> PublishTarget | None:
        """Retrieve a publishing target by id, or None."""

    @abstractmethod
    async def append_run(self, record: RunRecord) -> None:
        """Append a record to the run ledger. Records are never edited."""

    @abstractmethod
    async def query_runs(self, run_filter: RunFilter | None = None) -> list[RunRecord]:
        """Query the run ledger (oldest first unless newest_first is set)."""

    def close(self) -> None:
        """Release backend resources."""
