# tests/unit/pipeline/steps/test_unit_media_seo_publish.py - v1
"""Tests for pipeline/steps/media.py, seo_check.py and publish.py."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from contentflow.core.errors import StepFailure
from contentflow.core.models import (
    Block,
    PersonaProfile,
    UploadedAsset,
    WorkItem,
    WorkItemStatus,
)
from contentflow.pipeline.models import StepOptions
from contentflow.pipeline.plugin_kit.base_step import StepContext
from contentflow.pipeline.steps.media import MediaStep, needs_image
from contentflow.pipeline.steps.publish import PublishStep, assemble_html, extract_excerpt
from contentflow.pipeline.steps.seo_check import SeoCheckStep, build_json_ld, extract_faq


def ctx(item, settings, services, target=None) -> StepContext:
    return StepContext(
        item=item, options=StepOptions(), settings=settings, services=services, target=target
    )


class TestNeedsImage:
    def test_rules(self):
        assert needs_image(Block(type="image"))
        assert needs_image(Block(type="h2", generate_image=True))
        assert not needs_image(Block(type="h2"))
        assert not needs_image(Block(type="image", content_html='<img src="x">'))


class TestMediaStep:
    @pytest.mark.asyncio
    async def test_hero_and_block_images(self, settings, services, target, fake_publisher):
        item = WorkItem(
            keyword="jardin potager",
            title="Jardin potager",
            status=WorkItemStatus.WRITING,
            blocks=[
                Block(type="paragraph", content_html="<p>Intro</p>", status="written"),
                Block(type="h2", heading="Emplacement", generate_image=True,
                      content_html="<p>Soleil</p>", status="written"),
                Block(type="image", image_prompt="raised beds", status="written"),
            ],
        )
        out = await MediaStep().execute(ctx(item, settings, services, target))

        assert out.summary["images_generated"] == 3
        assert out.updates["hero_asset"].asset_id == "101"
        blocks = out.updates["blocks"]
        assert blocks[1].content_html.startswith("<figure")
        assert blocks[1].content_html.endswith("<p>Soleil</p>")
        assert 'alt="Emplacement"' in blocks[1].content_html
        assert blocks[2].content_html.startswith("<figure")
        assert all(b.status == "written" for b in blocks)
        assert [u.filename for u in fake_publisher.uploads] == [
            "jardin-potager.jpg", "jardin-potager-2.jpg", "jardin-potager-3.jpg",
        ]

    @pytest.mark.asyncio
    async def test_nothing_left_to_generate(self, settings, services, target, fake_images):
        item = WorkItem(
            keyword="k",
            hero_asset=UploadedAsset(asset_id="1", url="u"),
            blocks=[Block(type="image", content_html='<img src="u" />', status="written")],
        )
        out = await MediaStep().execute(ctx(item, settings, services, target))
        assert out.summary["images_generated"] == 0
        assert out.updates == {}
        assert fake_images.prompts == []

    @pytest.mark.asyncio
    async def test_skipped_without_generator(self, settings, services, target):
        services.images = None
        out = await MediaStep().execute(ctx(WorkItem(keyword="k"), settings, services, target))
        assert out.summary["skipped"] is True
        assert out.warnings

    @pytest.mark.asyncio
    async def test_needs_publisher(self, settings, services, target):
        services.publisher = None
        with pytest.raises(StepFailure):
            await MediaStep().execute(ctx(WorkItem(keyword="k"), settings, services, target))


class TestSeoHelpers:
    def test_extract_faq(self, written_blocks):
        pairs = extract_faq(WorkItem(keyword="k", blocks=written_blocks))
        assert pairs == [("Quand semer ?", "Au printemps."), ("Faut-il arroser ?", "Le soir.")]

    def test_json_ld_types(self, written_blocks, target):
        item = WorkItem(
            keyword="jardin potager", title="Jardin potager", slug="jardin-potager",
            blocks=written_blocks, persona=PersonaProfile(name="Claire"),
        )
        schemas = build_json_ld(item, target)
        assert [s["@type"] for s in schemas] == ["Article", "FAQPage", "BreadcrumbList"]
        assert schemas[0]["author"]["name"] == "Claire"
        assert len(schemas[1]["mainEntity"]) == 2
        crumbs = schemas[2]["itemListElement"]
        assert crumbs[0]["name"] == "Blog Jardin"
        assert crumbs[1]["item"] == "https://blog.example.com/jardin-potager"

    def test_json_ld_without_faq_or_target(self):
        schemas = build_json_ld(WorkItem(keyword="k"), None)
        assert [s["@type"] for s in schemas] == ["Article", "BreadcrumbList"]


class TestSeoCheckStep:
    @pytest.mark.asyncio
    async def test_valid_meta_needs_no_call(
        self, settings, services, fake_completion, written_blocks, meta_description
    ):
        item = WorkItem(keyword="k", meta_description=meta_description, blocks=written_blocks,
                        status=WorkItemStatus.MEDIA)
        out = await SeoCheckStep().execute(ctx(item, settings, services))

        assert fake_completion.calls == []
        assert "meta_description" not in out.updates
        report = out.updates["seo_report"]
        assert report.meta_description_ok is True
        assert report.meta_regenerated is False
        assert report.faq_count == 2
        assert out.usage.cost_usd == 0.0

    @pytest.mark.asyncio
    async def test_short_meta_regenerated_once(
        self, settings, services, fake_completion, meta_description
    ):
        item = WorkItem(keyword="k", meta_description="Trop court", status=WorkItemStatus.MEDIA)
        out = await SeoCheckStep().execute(ctx(item, settings, services))

        assert fake_completion.tasks() == ["generate_meta"]
        assert out.updates["meta_description"] == meta_description
        assert out.updates["seo_report"].meta_regenerated is True
        assert out.updates["seo_report"].meta_description_ok is True
        assert out.usage.tokens_in == 100

    @pytest.mark.asyncio
    async def test_regenerated_meta_still_out_of_range(self, settings, services, fake_completion):
        fake_completion.responses["generate_meta"] = "Encore trop court"
        out = await SeoCheckStep().execute(ctx(WorkItem(keyword="k"), settings, services))
        assert out.updates["seo_report"].meta_description_ok is False
        assert len(fake_completion.calls) == 1


def reviewed_item(**kw) -> WorkItem:
    fields = dict(
        keyword="jardin potager",
        title="Jardin potager",
        slug="jardin-potager",
        meta_description="Tout savoir pour créer un jardin potager productif.",
        status=WorkItemStatus.REVIEWING,
        blocks=[
            Block(type="paragraph", content_html="<p>Intro du potager.</p>", status="written"),
            Block(type="h2", heading="Sol", content_html="<p>Compost</p>", status="written"),
            Block(type="h3", heading="Paillage", content_html="<p>Paille</p>", status="written"),
        ],
        json_ld=[{"@context": "https://schema.org", "@type": "Article", "headline": "Jardin"}],
        hero_asset=UploadedAsset(asset_id="101", url="u"),
    )
    fields.update(kw)
    return WorkItem(**fields)


class TestPublishHelpers:
    def test_assemble_html(self):
        html = assemble_html(reviewed_item())
        assert "<h2>Sol</h2>" in html
        assert "<h3>Paillage</h3>" in html
        assert html.index("<h2>Sol</h2>") < html.index("<p>Compost</p>")
        assert '<script type="application/ld+json">' in html

    def test_excerpt_from_intro(self):
        assert extract_excerpt(reviewed_item()) == "Intro du potager."

    def test_no_excerpt(self):
        assert extract_excerpt(WorkItem(keyword="k")) is None


class TestPublishStep:
    @pytest.mark.asyncio
    async def test_draft_from_reviewing(self, settings, services, target, fake_publisher):
        out = await PublishStep().execute(ctx(reviewed_item(), settings, services, target))

        payload = fake_publisher.payloads[0]
        assert payload.status == "draft"
        assert payload.external_id is None
        assert payload.featured_media == "101"
        assert payload.meta["focus_keyword"] == "jardin potager"
        assert out.updates["external_id"] == "42"
        assert out.updates["external_url"] == "https://blog.example.com/jardin-potager"
        assert "published_at" not in out.updates

    @pytest.mark.asyncio
    async def test_live_from_publishing(self, settings, services, target, fake_publisher):
        item = reviewed_item(status=WorkItemStatus.PUBLISHING, external_id="42")
        out = await PublishStep().execute(ctx(item, settings, services, target))

        assert fake_publisher.payloads[0].status == "publish"
        assert fake_publisher.payloads[0].external_id == "42"
        assert out.updates["published_at"].tzinfo is not None
        assert out.summary["remote_status"] == "publish"

    @pytest.mark.asyncio
    async def test_previously_live_post_stays_live(self, settings, services, target, fake_publisher):
        item = reviewed_item(
            external_id="42", published_at=datetime(2025, 5, 1, tzinfo=timezone.utc)
        )
        out = await PublishStep().execute(ctx(item, settings, services, target))
        assert fake_publisher.payloads[0].status == "publish"
        assert "published_at" not in out.updates

    @pytest.mark.asyncio
    async def test_needs_publisher(self, settings, services, target):
        services.publisher = None
        with pytest.raises(StepFailure):
            await PublishStep().execute(ctx(reviewed_item(), settings, services, target))
