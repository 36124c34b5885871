# src/storage/memory_repository.py - v1
"""In-process repository (REPOSITORY_BACKEND=memory).

Stores deep copies so callers never alias persisted state.
"""

from __future__ import annotations

from typing import Any

from contentflow.core.errors import ConcurrentUpdateError, NotFoundError
from contentflow.core.models import (
    PublishTarget,
    RunFilter,
    RunRecord,
    WorkItem,
    WorkItemStatus,
    ensure_utc,
    utcnow,
)
from contentflow.storage.base_repository import BaseRepository


def run_matches(record: RunRecord, run_filter: RunFilter) -> bool:
    """Whether a ledger record satisfies every set field of the filter."""
    if run_filter.work_item_id and record.work_item_id != run_filter.work_item_id:
        return False
    if run_filter.work_item_ids is not None and record.work_item_id not in run_filter.work_item_ids:
        return False
    if run_filter.step and record.step != run_filter.step:
        return False
    if run_filter.status and record.status != run_filter.status:
        return False
    created = ensure_utc(record.created_at)
    if run_filter.created_from and created < ensure_utc(run_filter.created_from):
        return False
    if run_filter.created_to and created > ensure_utc(run_filter.created_to):
        return False
    return True


class MemoryRepository(BaseRepository):
    """Dictionary-backed repository, used for tests and single-process runs."""

    def __init__(self) -> None:
        self._items: dict[str, WorkItem] = {}
        self._targets: dict[str, PublishTarget] = {}
        self._runs: list[RunRecord] = []

    async def create(self, item: WorkItem) -> WorkItem:
        self._items[item.id] = item.model_copy(deep=True)
        return item.model_copy(deep=True)

    async def get(self, work_item_id: str) -> WorkItem | None:
        item = self._items.get(work_item_id)
        return item.model_copy(deep=True) if item else None

    async def update(
        self,
        work_item_id: str,
        fields: dict[str, Any],
        expected_status: WorkItemStatus | None = None,
    ) -> WorkItem:
        current = self._items.get(work_item_id)
        if current is None:
            raise NotFoundError("work item", work_item_id)
        if expected_status is not None and current.status != expected_status:
            raise ConcurrentUpdateError(
                work_item_id, WorkItemStatus(expected_status).value, current.status.value
            )
        updated = current.model_copy(
            update={**fields, "updated_at": utcnow()}, deep=True
        )
        self._items[work_item_id] = updated
        return updated.model_copy(deep=True)

    async def list_items(
        self,
        status: WorkItemStatus | None = None,
        target_id: str | None = None,
    ) -> list[WorkItem]:
        return [
            item.model_copy(deep=True)
            for item in self._items.values()
            if (status is None or item.status == status)
            and (target_id is None or item.target_id == target_id)
        ]

    async def put_target(self, target: PublishTarget) -> PublishTarget:
        self._targets[target.id] = target.model_copy(deep=True)
        return target

    async def get_target(self, target_id: str) -> PublishTarget | None:
        target = self._targets.get(target_id)
        return target.model_copy(deep=True) if target else None

    async def append_run(self, record: RunRecord) -> None:
        self._runs.append(record.model_copy(deep=True))

    async def query_runs(self, run_filter: RunFilter | None = None) -> list[RunRecord]:
        run_filter = run_filter or RunFilter()
        runs = [r.model_copy(deep=True) for r in self._runs if run_matches(r, run_filter)]
        # Stable sort keeps append order for identical timestamps.
        runs.sort(key=lambda r: ensure_utc(r.created_at))
        if run_filter.newest_first:
            runs.reverse()
        if run_filter.limit is not None:
            runs = runs[: run_filter.limit]
        return runs
