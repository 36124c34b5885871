# tests/integration/pipeline/test_int_workflow.py - v1
"""End-to-end workflow through the facade with fake collaborators."""

from __future__ import annotations

import pytest

from contentflow.api.facade import build_facade
from contentflow.api.models import WorkItemView
from contentflow.core.models import StepName, WorkItemStatus

S = WorkItemStatus


@pytest.fixture
def facade(settings, repository, services):
    return build_facade(settings, repository, services)


async def advance(facade, item_id, step, **kwargs):
    result = await facade.trigger_step(item_id, step, **kwargs)
    assert result.success, result.error
    return result


class TestFullWorkflow:
    @pytest.mark.asyncio
    async def test_draft_to_published(self, facade, stored_target, fake_publisher, fake_images):
        item = await facade.create_work_item("jardin potager", target_id=stored_target.id)

        await advance(facade, item.id, StepName.ANALYZE)
        plan = await advance(facade, item.id, StepName.PLAN)
        assert plan.output["blocks"] == 5

        batch = await facade.write_all(item.id)
        assert (batch.written_count, batch.error_count) == (5, 0)

        media = await advance(facade, item.id, StepName.MEDIA)
        assert media.output["images_generated"] == 2
        assert fake_images.prompts[1] == "sunny vegetable garden"

        assert (await advance(facade, item.id, StepName.SEO_CHECK)).status == S.SEO_CHECK
        assert (await advance(facade, item.id, StepName.SEO_CHECK)).status == S.REVIEWING

        first = await advance(facade, item.id, StepName.PUBLISH)
        assert first.status == S.PUBLISHING
        assert first.output["remote_status"] == "draft"
        second = await advance(facade, item.id, StepName.PUBLISH)
        assert second.status == S.PUBLISHED
        assert second.output["remote_status"] == "publish"

        final = await facade.get_work_item(item.id)
        view = WorkItemView.of(final)
        assert view.progress == 100
        assert view.next_step is None
        assert final.published_at is not None
        assert final.external_id == "42"
        assert final.slug == "jardin-potager-le-guide"
        assert final.hero_asset.asset_id == "101"
        assert final.pending_block_indices == []
        assert final.word_count > 0
        assert [d["@type"] for d in final.json_ld] == ["Article", "BreadcrumbList"]

        # Second publish updates the same remote post.
        assert [p.external_id for p in fake_publisher.payloads] == [None, "42"]
        assert fake_publisher.payloads[1].featured_media == "101"

        history = await facade.run_history(item.id)
        assert len(history) == 12
        assert all(r.status == "success" for r in history)
        assert history[0].step == StepName.PUBLISH
        assert history[-1].step == StepName.ANALYZE

    @pytest.mark.asyncio
    async def test_failed_block_then_retry(self, facade, stored_target, fake_completion):
        fake_completion.failing_writes = {3}
        item = await facade.create_work_item("jardin potager", target_id=stored_target.id)
        await advance(facade, item.id, StepName.ANALYZE)
        await advance(facade, item.id, StepName.PLAN)

        batch = await facade.write_all(item.id)
        assert (batch.written_count, batch.error_count) == (4, 1)
        assert batch.results[2].success is False

        blocked = await facade.trigger_step(item.id, StepName.MEDIA)
        assert blocked.success is False
        assert "1 pending" in blocked.error

        retry = await facade.write_all(item.id)
        assert (retry.pending_blocks, retry.written_count) == (1, 1)
        await advance(facade, item.id, StepName.MEDIA)

        runs = await facade.run_history(item.id)
        assert sum(r.status == "error" for r in runs) == 2

    @pytest.mark.asyncio
    async def test_rollback_and_refresh_cycle(self, facade, stored_target, fake_publisher, fake_search):
        item = await facade.create_work_item("jardin potager", target_id=stored_target.id)

        refused = await facade.rollback(item.id)
        assert refused.success is False
        assert refused.error == "Cannot roll back from 'draft'"

        await advance(facade, item.id, StepName.ANALYZE)
        await advance(facade, item.id, StepName.PLAN)
        await facade.write_all(item.id)
        back = await facade.rollback(item.id)
        assert (back.from_status, back.to_status) == (S.WRITING, S.PLANNING)
        await advance(facade, item.id, StepName.WRITE_BLOCK, block_index=0)

        for step in (StepName.MEDIA, StepName.SEO_CHECK, StepName.SEO_CHECK,
                     StepName.PUBLISH, StepName.PUBLISH):
            await advance(facade, item.id, step)

        flagged = await facade.mark_refresh_needed(item.id)
        assert flagged.status == S.REFRESH_NEEDED

        fake_search.questions.append("Quel engrais choisir ?")
        refreshed = await advance(facade, item.id, StepName.REFRESH)
        assert refreshed.status == S.WRITING
        assert refreshed.output["new_questions"] == ["Quel engrais choisir ?"]

        for step in (StepName.MEDIA, StepName.SEO_CHECK, StepName.SEO_CHECK):
            await advance(facade, item.id, step)
        update = await advance(facade, item.id, StepName.PUBLISH)
        assert update.output["remote_status"] == "publish"
        assert fake_publisher.payloads[-1].external_id == "42"
