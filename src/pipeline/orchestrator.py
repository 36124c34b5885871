# src/pipeline/orchestrator.py - v1
"""Step orchestrator.

Executes one workflow step for one work item:
  1. Load the item (NotFoundError propagates)
  2. Validate the transition and its guards
  3. Resolve preconditions (block index, publishing target)
  4. Dispatch through the closed step table
  5. Apply the handler's updates and the new status in one conditional update
  6. Append exactly one RunRecord

Domain failures (illegal transition, handler StepFailure, collaborator
errors, lost conditional update) are ledgered and returned as a failed
StepResult with the item's status unchanged. Anything else propagates.
Invocations on the same item are serialised by a per-item asyncio.Lock,
dropped again once no caller holds or awaits it.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Any

from contentflow.core.errors import (
    ConcurrentUpdateError,
    ExternalServiceError,
    IllegalTransitionError,
    NotFoundError,
    StepFailure,
)
from contentflow.core.models import (
    PublishTarget,
    RunFilter,
    RunRecord,
    StepName,
    WorkItem,
    WorkItemStatus,
    ensure_utc,
    utcnow,
)
from contentflow.logging.context import set_run_id, step_context
from contentflow.pipeline import state_machine
from contentflow.pipeline.models import RollbackResult, StepOptions, StepResult
from contentflow.pipeline.plugin_kit.base_step import BaseStep, StepContext, StepServices
from contentflow.pipeline.plugin_kit.models import StepUsage
from contentflow.pipeline.registry import STEP_HANDLERS

if TYPE_CHECKING:
    from contentflow.config.settings import Settings
    from contentflow.storage.base_repository import BaseRepository

logger = logging.getLogger(__name__)

_DOMAIN_ERRORS = (
    IllegalTransitionError,
    StepFailure,
    ExternalServiceError,
    ConcurrentUpdateError,
)


class StepOrchestrator:
    """Single writer of work item status and of the run ledger.

    Args:
        repository: Persistence for items, targets and runs.
        services: External collaborators handed to step handlers.
        settings: Application settings.
        handlers: Step table override (defaults to the registry's table).
    """

    def __init__(
        self,
        repository: BaseRepository,
        services: StepServices,
        settings: Settings,
        handlers: dict[StepName, BaseStep] | None = None,
    ) -> None:
        self._repo = repository
        self._services = services
        self._settings = settings
        self._handlers = handlers or STEP_HANDLERS
        self._locks: dict[str, asyncio.Lock] = {}
        self._lock_users: dict[str, int] = {}

    @property
    def repository(self) -> BaseRepository:
        return self._repo

    @asynccontextmanager
    async def _item_lock(self, work_item_id: str) -> AsyncIterator[None]:
        lock = self._locks.get(work_item_id)
        if lock is None:
            lock = self._locks[work_item_id] = asyncio.Lock()
        # Counts holders and waiters
        self._lock_users[work_item_id] = self._lock_users.get(work_item_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[work_item_id] -= 1
            if not self._lock_users[work_item_id]:
                del self._lock_users[work_item_id]
                del self._locks[work_item_id]

    async def _load(self, work_item_id: str) -> WorkItem:
        item = await self._repo.get(work_item_id)
        if item is None:
            raise NotFoundError("work item", work_item_id)
        return item

    # ------------------------------------------------------------------
    # Step execution
    # ------------------------------------------------------------------

    async def execute_step(
        self,
        work_item_id: str,
        step: StepName | str,
        options: StepOptions | None = None,
    ) -> StepResult:
        """Execute one step and record exactly one RunRecord.

        Raises:
            NotFoundError: If the work item, or the addressed block, does not exist.
            IllegalTransitionError: If ``step`` is not a known step name.
        """
        try:
            step = StepName(step)
        except ValueError as exc:
            raise IllegalTransitionError(f"Unknown step '{step}'", step=str(step)) from exc
        options = self._with_default_model(step, options or StepOptions())

        async with self._item_lock(work_item_id):
            item = await self._load(work_item_id)
            index = options.block_index
            if step == StepName.WRITE_BLOCK and index is not None and not 0 <= index < len(item.blocks):
                raise NotFoundError("block", f"{work_item_id}#{index}")
            with step_context(work_item_id, step.value):
                return await self._execute_locked(item, step, options)

    def _with_default_model(self, step: StepName, options: StepOptions) -> StepOptions:
        if options.model_override:
            return options
        default = {
            StepName.PLAN: self._settings.default_model_plan,
            StepName.WRITE_BLOCK: self._settings.default_model_write,
        }.get(step)
        if default:
            return options.model_copy(update={"model_override": default})
        return options

    async def _resolve_target(self, item: WorkItem, handler: BaseStep) -> PublishTarget | None:
        if item.target_id is None:
            if handler.needs_target:
                raise StepFailure("Work item has no publishing target")
            return None
        target = await self._repo.get_target(item.target_id)
        if target is None and handler.needs_target:
            raise StepFailure(f"Publishing target not found: {item.target_id}")
        return target

    @staticmethod
    def _check_preconditions(step: StepName, options: StepOptions) -> None:
        if step == StepName.WRITE_BLOCK:
            if options.block_index is None:
                raise StepFailure("block_index is required for write_block")

    async def _execute_locked(
        self, item: WorkItem, step: StepName, options: StepOptions
    ) -> StepResult:
        start = time.monotonic()
        handler = self._handlers[step]

        try:
            to_status = state_machine.resolve_transition(
                item,
                step,
                refresh_target=WorkItemStatus(self._settings.refresh_target_status),
                require_persona=self._settings.require_persona_for_writing,
            )
            self._check_preconditions(step, options)
            target = await self._resolve_target(item, handler)
            ctx = StepContext(
                item=item,
                options=options,
                settings=self._settings,
                services=self._services,
                target=target,
            )
            output = await handler.execute(ctx)
        except _DOMAIN_ERRORS as exc:
            return await self._record_failure(item, step, exc, start)

        fields: dict[str, Any] = {**output.updates, "status": to_status}
        try:
            updated = await self._repo.update(item.id, fields, expected_status=item.status)
        except ConcurrentUpdateError as exc:
            return await self._record_failure(item, step, exc, start, output.usage)

        duration_ms = int((time.monotonic() - start) * 1000)
        summary = dict(output.summary)
        if output.warnings:
            summary["warnings"] = output.warnings
        record = RunRecord(
            work_item_id=item.id,
            step=step,
            status="success",
            model_used=output.usage.model_used,
            tokens_in=output.usage.tokens_in,
            tokens_out=output.usage.tokens_out,
            cost_usd=output.usage.cost_usd,
            duration_ms=duration_ms,
            output=summary,
        )
        set_run_id(record.id)
        try:
            await self._repo.append_run(record)
        except Exception:
            # The status change already happened; it must not be reported as failed.
            logger.warning(
                "Run %s applied but could not be appended to the ledger",
                record.id,
                exc_info=True,
            )

        logger.info(
            "Step %s succeeded: %s -> %s (%d ms, $%.6f)",
            step.value, item.status.value, updated.status.value, duration_ms, record.cost_usd,
        )
        return StepResult(
            success=True,
            run_id=record.id,
            tokens_in=record.tokens_in,
            tokens_out=record.tokens_out,
            cost_usd=record.cost_usd,
            duration_ms=duration_ms,
            model_used=record.model_used,
            status=updated.status,
            output=summary,
        )

    async def _record_failure(
        self,
        item: WorkItem,
        step: StepName,
        exc: Exception,
        start: float,
        usage: StepUsage | None = None,
    ) -> StepResult:
        usage = usage or StepUsage()
        if isinstance(exc, StepFailure):
            usage.add(exc.tokens_in, exc.tokens_out, exc.cost_usd, exc.model_used)

        duration_ms = int((time.monotonic() - start) * 1000)
        record = RunRecord(
            work_item_id=item.id,
            step=step,
            status="error",
            model_used=usage.model_used,
            tokens_in=usage.tokens_in,
            tokens_out=usage.tokens_out,
            cost_usd=usage.cost_usd,
            duration_ms=duration_ms,
            error=str(exc),
            output={"error_type": type(exc).__name__},
        )
        set_run_id(record.id)
        await self._repo.append_run(record)

        logger.warning("Step %s failed (%s): %s", step.value, type(exc).__name__, exc)
        return StepResult(
            success=False,
            run_id=record.id,
            error=str(exc),
            tokens_in=record.tokens_in,
            tokens_out=record.tokens_out,
            cost_usd=record.cost_usd,
            duration_ms=duration_ms,
            model_used=record.model_used,
            status=item.status,
            output=record.output,
        )

    # ------------------------------------------------------------------
    # Status operations without a ledger entry
    # ------------------------------------------------------------------

    async def rollback(self, work_item_id: str) -> RollbackResult:
        """Move the item exactly one state back.

        Raises:
            NotFoundError: If the work item does not exist.
        """
        async with self._item_lock(work_item_id):
            item = await self._load(work_item_id)
            target = state_machine.rollback_target(item.status)
            if target is None:
                return RollbackResult(
                    success=False,
                    from_status=item.status,
                    error=f"Cannot roll back from '{item.status.value}'",
                )
            try:
                await self._repo.update(
                    work_item_id, {"status": target}, expected_status=item.status
                )
            except ConcurrentUpdateError as exc:
                return RollbackResult(success=False, from_status=item.status, error=str(exc))

        logger.info("Rolled back %s: %s -> %s", work_item_id, item.status.value, target.value)
        return RollbackResult(
            success=True,
            from_status=item.status,
            to_status=target,
            label=state_machine.label(target),
        )

    async def mark_refresh_needed(self, work_item_id: str) -> WorkItem:
        """Flag a published item for refresh.

        Raises:
            NotFoundError: If the work item does not exist.
            IllegalTransitionError: If the item is not published.
        """
        async with self._item_lock(work_item_id):
            item = await self._load(work_item_id)
            if item.status != WorkItemStatus.PUBLISHED:
                raise IllegalTransitionError(
                    f"Only published items can be marked for refresh (status: {item.status.value})",
                    status=item.status.value,
                )
            return await self._repo.update(
                work_item_id,
                {"status": WorkItemStatus.REFRESH_NEEDED},
                expected_status=WorkItemStatus.PUBLISHED,
            )

    async def find_refresh_candidates(
        self,
        target_id: str | None = None,
        older_than_days: int | None = None,
        now: datetime | None = None,
    ) -> list[WorkItem]:
        """Published items older than the cutoff; short ones first, then oldest."""
        days = older_than_days if older_than_days is not None else self._settings.refresh_after_days
        cutoff = ensure_utc(now or utcnow()) - timedelta(days=days)
        items = await self._repo.list_items(status=WorkItemStatus.PUBLISHED, target_id=target_id)
        candidates = [
            item for item in items
            if item.published_at is not None and ensure_utc(item.published_at) < cutoff
        ]
        candidates.sort(key=lambda i: (i.word_count >= 1000, ensure_utc(i.published_at)))
        return candidates

    async def run_history(self, work_item_id: str) -> list[RunRecord]:
        """All runs for an item, most recent first.

        Raises:
            NotFoundError: If the work item does not exist.
        """
        await self._load(work_item_id)
        return await self._repo.query_runs(
            RunFilter(work_item_id=work_item_id, newest_first=True)
        )
