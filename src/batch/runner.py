# src/batch/runner.py - v1
"""Write every pending block of a work item, one after another.

Owns no state: each block goes through StepOrchestrator.execute_step, so
each attempt produces its own RunRecord. A failing block never stops the
batch.
"""

from __future__ import annotations

import logging
from typing import Callable

from contentflow.batch.models import BatchResult, BlockWriteResult
from contentflow.core.errors import NotFoundError
from contentflow.core.models import StepName
from contentflow.pipeline.models import StepOptions
from contentflow.pipeline.orchestrator import StepOrchestrator

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[BlockWriteResult, int, int], None]


class BatchRunner:
    """Sequential multi-block writer with partial-success semantics."""

    def __init__(self, orchestrator: StepOrchestrator) -> None:
        self._orchestrator = orchestrator

    async def write_all_pending(
        self,
        work_item_id: str,
        options: StepOptions | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> BatchResult:
        """Write all pending blocks in order.

        Returns:
            BatchResult. success is False only when the guard rejects the
            batch (no blocks, nothing pending).

        Raises:
            NotFoundError: If the work item does not exist.
        """
        item = await self._orchestrator.repository.get(work_item_id)
        if item is None:
            raise NotFoundError("work item", work_item_id)

        total = len(item.blocks)
        if total == 0:
            return BatchResult(success=False, error="Work item has no blocks; run plan first")
        pending = item.pending_block_indices
        if not pending:
            return BatchResult(
                success=False,
                error="No pending blocks to write",
                total_blocks=total,
            )

        options = options or StepOptions()
        result = BatchResult(success=True, total_blocks=total, pending_blocks=len(pending))

        for position, index in enumerate(pending, start=1):
            block_id = item.blocks[index].id
            try:
                step_result = await self._orchestrator.execute_step(
                    work_item_id,
                    StepName.WRITE_BLOCK,
                    options.model_copy(update={"block_index": index}),
                )
                block_result = BlockWriteResult(
                    block_index=index,
                    block_id=block_id,
                    success=step_result.success,
                    run_id=step_result.run_id,
                    error=step_result.error,
                    tokens_in=step_result.tokens_in,
                    tokens_out=step_result.tokens_out,
                    cost_usd=step_result.cost_usd,
                    model_used=step_result.model_used,
                )
            except Exception as exc:
                logger.exception("Block %d of %s raised", index, work_item_id)
                block_result = BlockWriteResult(
                    block_index=index,
                    block_id=block_id,
                    success=False,
                    error=f"{type(exc).__name__}: {exc}",
                )

            result.results.append(block_result)
            if block_result.success:
                result.written_count += 1
            else:
                result.error_count += 1
            result.total_tokens_in += block_result.tokens_in
            result.total_tokens_out += block_result.tokens_out
            result.total_cost_usd = round(result.total_cost_usd + block_result.cost_usd, 6)

            if on_progress is not None:
                on_progress(block_result, position, len(pending))

        logger.info(
            "Batch write for %s: %d written, %d errors",
            work_item_id, result.written_count, result.error_count,
        )
        return result
