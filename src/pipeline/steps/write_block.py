# src/pipeline/steps/write_block.py - v1
"""Write the content of one block.

One completion call (write_block) given the keyword, persona, the block's
directive and the headings of every block before it.
"""

from __future__ import annotations

import logging

from contentflow.core.errors import StepFailure
from contentflow.core.models import Block, StepName, WorkItem
from contentflow.core.text import count_words
from contentflow.llm.models import Message
from contentflow.pipeline.plugin_kit.base_step import BaseStep, StepContext, load_prompt
from contentflow.pipeline.plugin_kit.models import StepOutput, StepUsage
from contentflow.pipeline.steps.plan import persona_line

logger = logging.getLogger(__name__)

_SYSTEM = "You are a senior web writer. Return clean semantic HTML only."


def previous_headings(item: WorkItem, index: int) -> list[str]:
    return [b.heading for b in item.blocks[:index] if b.heading]


def _clean_html(content: str) -> str:
    text = content.strip()
    if text.startswith("```"):
        lines = [line for line in text.split("\n") if not line.strip().startswith("```")]
        text = "\n".join(lines).strip()
    return text


def _format_prompt(item: WorkItem, index: int) -> str:
    block = item.blocks[index]
    headings = previous_headings(item, index)
    return load_prompt("write_block").format(
        keyword=item.keyword,
        title=item.title or item.keyword,
        persona=persona_line(item),
        previous_headings="\n".join(f"- {h}" for h in headings) or "(this is the first block)",
        block_type=block.type,
        heading=block.heading or "(none)",
        directive=block.writing_directive or "(free)",
        format_hint=block.format_hint,
    )


class WriteBlockStep(BaseStep):
    """Generate HTML for the block at options.block_index."""

    @property
    def name(self) -> StepName:
        return StepName.WRITE_BLOCK

    @property
    def description(self) -> str:
        return "Write one content block"

    async def execute(self, ctx: StepContext) -> StepOutput:
        item = ctx.item
        index = ctx.options.block_index
        if index is None or not 0 <= index < len(item.blocks):
            raise StepFailure(f"Block index out of range: {index}")

        response = await ctx.services.completion.complete(
            "write_block",
            [Message(role="user", content=_format_prompt(item, index))],
            system=_SYSTEM,
            model_override=ctx.options.model_override,
        )
        usage = StepUsage()
        usage.add(response.tokens_in, response.tokens_out, response.cost_usd, response.model_used)

        content = _clean_html(response.content)
        if not content:
            raise StepFailure(
                "Model returned empty content",
                tokens_in=usage.tokens_in,
                tokens_out=usage.tokens_out,
                cost_usd=usage.cost_usd,
                model_used=usage.model_used,
            )

        words = count_words(content)
        blocks: list[Block] = [b.model_copy(deep=True) for b in item.blocks]
        blocks[index] = blocks[index].model_copy(
            update={
                "content_html": content,
                "word_count": words,
                "model_used": response.model_used,
                "status": "written",
            }
        )
        logger.info("Block %d written (%d words)", index, words)
        return StepOutput(
            updates={"blocks": blocks, "word_count": sum(b.word_count for b in blocks)},
            usage=usage,
            summary={"block_index": index, "block_id": blocks[index].id, "word_count": words},
        )
