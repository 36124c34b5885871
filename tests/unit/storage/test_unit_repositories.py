# tests/unit/storage/test_unit_repositories.py - v1
"""Contract tests run against both repository backends."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from contentflow.config.settings import Settings
from contentflow.core.errors import ConcurrentUpdateError, NotFoundError
from contentflow.core.models import (
    Block,
    PublishTarget,
    RunFilter,
    RunRecord,
    SourceAnalysis,
    StepName,
    WorkItem,
    WorkItemStatus,
)
from contentflow.storage.memory_repository import MemoryRepository
from contentflow.storage.repository_factory import create_repository
from contentflow.storage.sqlite_repository import SqliteRepository

T0 = datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)


@pytest.fixture(params=["memory", "sqlite"])
def repo(request):
    backend = MemoryRepository() if request.param == "memory" else SqliteRepository(":memory:")
    yield backend
    backend.close()


def run(item_id: str, step: StepName, minutes: int, status: str = "success", **kw) -> RunRecord:
    return RunRecord(
        work_item_id=item_id,
        step=step,
        status=status,
        created_at=T0 + timedelta(minutes=minutes),
        **kw,
    )


class TestWorkItems:
    @pytest.mark.asyncio
    async def test_create_and_get(self, repo):
        item = WorkItem(keyword="potager", blocks=[Block(heading="Sol")])
        await repo.create(item)

        loaded = await repo.get(item.id)
        assert loaded.keyword == "potager"
        assert loaded.blocks[0].heading == "Sol"
        assert loaded.status == WorkItemStatus.DRAFT

    @pytest.mark.asyncio
    async def test_get_missing(self, repo):
        assert await repo.get("nope") is None

    @pytest.mark.asyncio
    async def test_update_with_matching_status(self, repo):
        item = await repo.create(WorkItem(keyword="k"))
        updated = await repo.update(
            item.id,
            {"status": WorkItemStatus.ANALYZING, "analysis": SourceAnalysis(keyword="k")},
            expected_status=WorkItemStatus.DRAFT,
        )
        assert updated.status == WorkItemStatus.ANALYZING
        reloaded = await repo.get(item.id)
        assert reloaded.status == WorkItemStatus.ANALYZING
        assert reloaded.analysis.keyword == "k"
        assert reloaded.updated_at >= item.updated_at

    @pytest.mark.asyncio
    async def test_update_with_stale_status(self, repo):
        item = await repo.create(WorkItem(keyword="k", status=WorkItemStatus.PLANNING))
        with pytest.raises(ConcurrentUpdateError):
            await repo.update(
                item.id, {"status": WorkItemStatus.WRITING}, expected_status=WorkItemStatus.DRAFT
            )
        assert (await repo.get(item.id)).status == WorkItemStatus.PLANNING

    @pytest.mark.asyncio
    async def test_update_missing(self, repo):
        with pytest.raises(NotFoundError):
            await repo.update("nope", {"title": "x"})

    @pytest.mark.asyncio
    async def test_returned_copies_are_detached(self, repo):
        item = await repo.create(WorkItem(keyword="k"))
        loaded = await repo.get(item.id)
        loaded.title = "changed locally"
        assert (await repo.get(item.id)).title is None

    @pytest.mark.asyncio
    async def test_list_items_filters(self, repo):
        await repo.create(WorkItem(keyword="a", target_id="t1"))
        await repo.create(WorkItem(keyword="b", target_id="t2", status=WorkItemStatus.PUBLISHED))
        await repo.create(WorkItem(keyword="c", target_id="t1", status=WorkItemStatus.PUBLISHED))

        assert len(await repo.list_items()) == 3
        published = await repo.list_items(status=WorkItemStatus.PUBLISHED)
        assert {i.keyword for i in published} == {"b", "c"}
        both = await repo.list_items(status=WorkItemStatus.PUBLISHED, target_id="t1")
        assert [i.keyword for i in both] == ["c"]


class TestTargets:
    @pytest.mark.asyncio
    async def test_put_and_get(self, repo):
        await repo.put_target(PublishTarget(id="blog", name="Blog", base_url="https://b.example"))
        target = await repo.get_target("blog")
        assert target.base_url == "https://b.example"
        assert await repo.get_target("other") is None

    @pytest.mark.asyncio
    async def test_put_replaces(self, repo):
        await repo.put_target(PublishTarget(id="blog", name="Old", base_url="https://b.example"))
        await repo.put_target(PublishTarget(id="blog", name="New", base_url="https://b.example"))
        assert (await repo.get_target("blog")).name == "New"


class TestRunLedger:
    @pytest.mark.asyncio
    async def test_oldest_first_by_default(self, repo):
        await repo.append_run(run("w", StepName.PLAN, 5))
        await repo.append_run(run("w", StepName.ANALYZE, 1))
        runs = await repo.query_runs(RunFilter(work_item_id="w"))
        assert [r.step for r in runs] == [StepName.ANALYZE, StepName.PLAN]

    @pytest.mark.asyncio
    async def test_newest_first_and_ties(self, repo):
        first = run("w", StepName.WRITE_BLOCK, 3, output={"block_index": 0})
        second = run("w", StepName.WRITE_BLOCK, 3, output={"block_index": 1})
        await repo.append_run(run("w", StepName.PLAN, 1))
        await repo.append_run(first)
        await repo.append_run(second)

        runs = await repo.query_runs(RunFilter(work_item_id="w", newest_first=True))
        assert [r.id for r in runs] == [second.id, first.id, runs[2].id]
        assert runs[2].step == StepName.PLAN
        assert runs[0].output == {"block_index": 1}

    @pytest.mark.asyncio
    async def test_filters(self, repo):
        await repo.append_run(run("a", StepName.PLAN, 1, cost_usd=0.5, model_used="m1"))
        await repo.append_run(run("a", StepName.WRITE_BLOCK, 2, status="error", error="boom"))
        await repo.append_run(run("b", StepName.PLAN, 30))

        assert len(await repo.query_runs()) == 3
        assert len(await repo.query_runs(RunFilter(step=StepName.PLAN))) == 2
        errors = await repo.query_runs(RunFilter(status="error"))
        assert [r.error for r in errors] == ["boom"]
        windowed = await repo.query_runs(
            RunFilter(created_from=T0, created_to=T0 + timedelta(minutes=10))
        )
        assert {r.work_item_id for r in windowed} == {"a"}
        assert len(await repo.query_runs(RunFilter(work_item_ids=["b"]))) == 1
        assert await repo.query_runs(RunFilter(work_item_ids=[])) == []
        assert len(await repo.query_runs(RunFilter(limit=2))) == 2

    @pytest.mark.asyncio
    async def test_fields_round_trip(self, repo):
        record = run("w", StepName.PLAN, 0, model_used="m", tokens_in=10, tokens_out=20,
                     cost_usd=0.000123, duration_ms=42)
        await repo.append_run(record)
        [loaded] = await repo.query_runs()
        assert loaded.id == record.id
        assert (loaded.tokens_in, loaded.tokens_out, loaded.duration_ms) == (10, 20, 42)
        assert loaded.cost_usd == pytest.approx(0.000123)
        assert loaded.created_at == record.created_at


class TestFactory:
    def test_default_is_memory(self):
        assert isinstance(create_repository(), MemoryRepository)

    def test_sqlite_backend(self, tmp_path):
        s = Settings(_env_file=None, repository_backend="sqlite", sqlite_path=tmp_path / "db" / "cf.db")
        repo = create_repository(s)
        try:
            assert isinstance(repo, SqliteRepository)
            assert (tmp_path / "db" / "cf.db").exists()
        finally:
            repo.close()
