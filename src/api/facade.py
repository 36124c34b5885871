# src/api/facade.py - v1
"""Public API facade: single entry point for driving work items.

Usage:
    from contentflow.api.facade import build_facade
    facade = build_facade(settings)
    result = await facade.trigger_step(item_id, "plan")

NotFoundError propagates from every method that takes a work item id.
Domain failures come back inside the returned result objects.
"""

from __future__ import annotations

import logging
from datetime import datetime

from contentflow.batch.models import BatchResult
from contentflow.batch.runner import BatchRunner, ProgressCallback
from contentflow.config.settings import Settings
from contentflow.core.errors import NotFoundError
from contentflow.core.models import PersonaProfile, RunRecord, StepName, WorkItem
from contentflow.llm.completion import CompletionService
from contentflow.media.base_image_generator import BaseImageGenerator
from contentflow.media.fal_generator import FalImageGenerator
from contentflow.pipeline.models import RollbackResult, StepOptions, StepResult
from contentflow.pipeline.orchestrator import StepOrchestrator
from contentflow.pipeline.plugin_kit.base_step import StepServices
from contentflow.publishing.base_publisher import BasePublisher
from contentflow.publishing.wordpress_client import WordPressPublisher
from contentflow.search.base_search import BaseSearchClient
from contentflow.search.link_checker import LinkChecker
from contentflow.search.serper_client import SerperClient
from contentflow.storage.base_repository import BaseRepository
from contentflow.storage.repository_factory import create_repository
from contentflow.tracking.cost_aggregator import CostAggregator
from contentflow.tracking.models import BudgetAlert, CostSummary, DailyCost, ItemCost

logger = logging.getLogger(__name__)


class ContentFlow:
    """Facade over the orchestrator, batch runner and cost aggregator."""

    def __init__(
        self,
        orchestrator: StepOrchestrator,
        settings: Settings,
    ) -> None:
        self._orchestrator = orchestrator
        self._settings = settings
        self._batch = BatchRunner(orchestrator)
        self._costs = CostAggregator(orchestrator.repository, settings.budget_alert_pct)

    @property
    def repository(self) -> BaseRepository:
        return self._orchestrator.repository

    # --- Work items ---

    async def create_work_item(
        self,
        keyword: str,
        title: str | None = None,
        target_id: str | None = None,
        persona: PersonaProfile | None = None,
    ) -> WorkItem:
        item = WorkItem(keyword=keyword, title=title, target_id=target_id, persona=persona)
        return await self.repository.create(item)

    async def get_work_item(self, work_item_id: str) -> WorkItem:
        item = await self.repository.get(work_item_id)
        if item is None:
            raise NotFoundError("work item", work_item_id)
        return item

    # --- Workflow ---

    async def trigger_step(
        self,
        work_item_id: str,
        step: StepName | str,
        block_index: int | None = None,
        model: str | None = None,
    ) -> StepResult:
        return await self._orchestrator.execute_step(
            work_item_id,
            step,
            StepOptions(block_index=block_index, model_override=model),
        )

    async def write_all(
        self,
        work_item_id: str,
        model: str | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> BatchResult:
        return await self._batch.write_all_pending(
            work_item_id, StepOptions(model_override=model), on_progress
        )

    async def rollback(self, work_item_id: str) -> RollbackResult:
        return await self._orchestrator.rollback(work_item_id)

    async def run_history(self, work_item_id: str) -> list[RunRecord]:
        return await self._orchestrator.run_history(work_item_id)

    async def mark_refresh_needed(self, work_item_id: str) -> WorkItem:
        return await self._orchestrator.mark_refresh_needed(work_item_id)

    async def refresh_candidates(
        self, target_id: str | None = None, older_than_days: int | None = None
    ) -> list[WorkItem]:
        return await self._orchestrator.find_refresh_candidates(target_id, older_than_days)

    # --- Costs ---

    async def cost_summary(
        self,
        owner_id: str | None = None,
        from_date: datetime | None = None,
        to_date: datetime | None = None,
    ) -> CostSummary:
        return await self._costs.summary(owner_id, from_date, to_date)

    async def daily_costs(self, days: int = 30) -> list[DailyCost]:
        return await self._costs.daily_buckets(days)

    async def top_spenders(self, limit: int = 10) -> list[ItemCost]:
        return await self._costs.top_spenders(limit)

    async def budget_alert(self, monthly_budget: float | None = None) -> BudgetAlert:
        budget = self._settings.monthly_budget_usd if monthly_budget is None else monthly_budget
        return await self._costs.budget_alert(budget)


def build_services(
    settings: Settings,
    completion: CompletionService | None = None,
    publisher: BasePublisher | None = None,
    search: BaseSearchClient | None = None,
    images: BaseImageGenerator | None = None,
) -> StepServices:
    """Wire default collaborators from settings; explicit ones win."""
    if search is None and settings.serper_api_key:
        search = SerperClient(
            api_key=settings.serper_api_key,
            base_url=settings.serper_base_url,
            country=settings.serper_country,
            language=settings.serper_language,
            timeout_s=settings.http_timeout_s,
        )
    if images is None and settings.fal_api_key:
        images = FalImageGenerator(
            api_key=settings.fal_api_key,
            model=settings.fal_model,
            base_url=settings.fal_base_url,
        )
    return StepServices(
        completion=completion or CompletionService(settings),
        publisher=publisher or WordPressPublisher(timeout_s=settings.http_timeout_s),
        search=search,
        images=images,
        link_checker=LinkChecker(timeout_s=settings.http_timeout_s),
    )


def build_facade(
    settings: Settings | None = None,
    repository: BaseRepository | None = None,
    services: StepServices | None = None,
) -> ContentFlow:
    """Assemble a ready-to-use facade.

    Args:
        settings: Global settings. Loaded from .env if None.
        repository: Persistence backend. Built from settings if None.
        services: Step collaborators. Built from settings if None.
    """
    settings = settings or Settings()
    repository = repository or create_repository(settings)
    services = services or build_services(settings)
    logger.debug("Facade ready (repository=%s)", type(repository).__name__)
    return ContentFlow(StepOrchestrator(repository, services, settings), settings)
