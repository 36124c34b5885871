# src/pipeline/steps/media.py - v1
"""Image generation and upload.

Generates a hero image plus one image per image block (or h2 flagged
generate_image) that has none yet, uploads each to the publishing target
and embeds it in the block HTML. Block sub-status is left untouched.
"""

from __future__ import annotations

import html
import logging

from contentflow.core.errors import StepFailure
from contentflow.core.models import Block, StepName, UploadedAsset, WorkItem
from contentflow.core.text import slugify
from contentflow.pipeline.plugin_kit.base_step import BaseStep, StepContext
from contentflow.pipeline.plugin_kit.models import StepOutput
from contentflow.publishing.models import AssetMetadata

logger = logging.getLogger(__name__)


def needs_image(block: Block) -> bool:
    wants = block.type == "image" or (block.type == "h2" and block.generate_image)
    return wants and "<img" not in block.content_html


def _figure(asset: UploadedAsset, alt: str) -> str:
    alt_attr = html.escape(alt, quote=True)
    return (
        f'<figure class="wp-block-image"><img src="{asset.url}" alt="{alt_attr}" '
        f'data-asset-id="{asset.asset_id}" /></figure>'
    )


class MediaStep(BaseStep):
    """Generate and upload article images."""

    needs_target = True

    @property
    def name(self) -> StepName:
        return StepName.MEDIA

    @property
    def description(self) -> str:
        return "Hero and in-article image generation"

    async def _make_asset(
        self, ctx: StepContext, prompt: str, filename: str, alt: str, aspect_ratio: str
    ) -> UploadedAsset:
        images = ctx.services.images
        image = await images.generate(prompt, aspect_ratio=aspect_ratio)
        data = await images.download(image.url)
        return await ctx.services.publisher.upload_asset(
            ctx.target,
            data,
            AssetMetadata(
                filename=filename,
                mime_type=image.content_type,
                alt_text=alt,
                title=alt,
            ),
        )

    async def execute(self, ctx: StepContext) -> StepOutput:
        item: WorkItem = ctx.item
        if ctx.services.images is None:
            logger.warning("No image generator configured, media step skipped")
            return StepOutput(
                summary={"images_generated": 0, "skipped": True},
                warnings=["image generation not configured"],
            )
        if ctx.services.publisher is None:
            raise StepFailure("No publishing service configured for media upload")

        base_name = slugify(item.slug or item.title or item.keyword) or "image"
        updates: dict = {}
        generated = 0

        if item.hero_asset is None:
            title = item.title or item.keyword
            updates["hero_asset"] = await self._make_asset(
                ctx,
                f"Hero image for an article about {item.keyword}",
                f"{base_name}.jpg",
                title,
                "16:9",
            )
            generated += 1

        blocks = [b.model_copy(deep=True) for b in item.blocks]
        for index, block in enumerate(blocks):
            if not needs_image(block):
                continue
            alt = block.heading or item.keyword
            asset = await self._make_asset(
                ctx,
                block.image_prompt or f"{alt}, illustration for an article about {item.keyword}",
                f"{base_name}-{index + 1}.jpg",
                alt,
                "16:9",
            )
            if block.type == "image":
                block.content_html = _figure(asset, alt)
            else:
                block.content_html = _figure(asset, alt) + block.content_html
            generated += 1
            updates["blocks"] = blocks

        return StepOutput(updates=updates, summary={"images_generated": generated})
