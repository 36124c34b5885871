# src/core/models.py - v1
"""Shared Pydantic domain models used across modules.

No module redefines these types; all imports come from core.models.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, Field


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC; convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def new_id() -> str:
    return uuid.uuid4().hex


# === WORKFLOW ENUMS ===


class WorkItemStatus(str, Enum):
    """Lifecycle status of a work item."""

    DRAFT = "draft"
    ANALYZING = "analyzing"
    PLANNING = "planning"
    WRITING = "writing"
    MEDIA = "media"
    SEO_CHECK = "seo_check"
    REVIEWING = "reviewing"
    PUBLISHING = "publishing"
    PUBLISHED = "published"
    REFRESH_NEEDED = "refresh_needed"


class StepName(str, Enum):
    """Closed set of workflow steps."""

    ANALYZE = "analyze"
    PLAN = "plan"
    WRITE_BLOCK = "write_block"
    MEDIA = "media"
    SEO_CHECK = "seo_check"
    PUBLISH = "publish"
    REFRESH = "refresh"


BlockType = Literal["h2", "h3", "paragraph", "list", "faq", "callout", "image"]
BlockStatus = Literal["pending", "written", "approved"]
RunStatus = Literal["success", "error"]


# === CONTENT ===


class Block(BaseModel):
    """One ordered unit of content inside a work item."""

    id: str = Field(default_factory=new_id)
    type: BlockType = "paragraph"
    heading: str | None = None
    content_html: str = ""
    word_count: int = 0
    model_used: str | None = None
    status: BlockStatus = "pending"
    writing_directive: str = ""
    format_hint: str = "prose"
    image_prompt: str | None = None
    generate_image: bool = False


class PersonaProfile(BaseModel):
    """Author voice used when writing blocks."""

    name: str
    tone: str = ""
    expertise: str = ""
    writing_style: str = ""
    bio: str = ""


# === STEP-OWNED METADATA (one type per producing step) ===


class OrganicResult(BaseModel):
    title: str
    link: str
    snippet: str = ""
    position: int = 0


class CompetitorInsights(BaseModel):
    avg_title_length: int = 0
    common_title_words: list[str] = Field(default_factory=list)


class SourceAnalysis(BaseModel):
    """Search landscape for the keyword, produced by analyze and refresh."""

    keyword: str
    organic: list[OrganicResult] = Field(default_factory=list)
    questions: list[str] = Field(default_factory=list)
    related_searches: list[str] = Field(default_factory=list)
    competitors: CompetitorInsights = Field(default_factory=CompetitorInsights)
    analyzed_at: datetime = Field(default_factory=utcnow)


class TitleSuggestion(BaseModel):
    """Alternative title proposed by plan."""

    title: str
    seo_title: str | None = None
    selected: bool = False


class LinkSuggestion(BaseModel):
    """External authority link candidate proposed by analyze."""

    url: str
    anchor_text: str
    domain: str
    validated: bool = False


class SeoReport(BaseModel):
    """Result of seo_check."""

    meta_description_length: int = 0
    meta_description_ok: bool = False
    meta_regenerated: bool = False
    faq_count: int = 0
    word_count: int = 0
    schema_types: list[str] = Field(default_factory=list)


class UploadedAsset(BaseModel):
    """Media stored on the publishing target."""

    asset_id: str
    url: str


class PublishedContent(BaseModel):
    """Reference to the externally published copy of a work item."""

    external_id: str
    external_url: str


# === WORK ITEM ===


class WorkItem(BaseModel):
    """An article moving through the workflow."""

    id: str = Field(default_factory=new_id)
    keyword: str
    title: str | None = None
    slug: str | None = None
    meta_description: str | None = None
    status: WorkItemStatus = WorkItemStatus.DRAFT
    blocks: list[Block] = Field(default_factory=list)
    target_id: str | None = None
    persona: PersonaProfile | None = None
    word_count: int = 0
    external_id: str | None = None
    external_url: str | None = None
    published_at: datetime | None = None
    json_ld: list[dict[str, Any]] = Field(default_factory=list)

    analysis: SourceAnalysis | None = None
    title_suggestions: list[TitleSuggestion] = Field(default_factory=list)
    link_suggestions: list[LinkSuggestion] = Field(default_factory=list)
    seo_report: SeoReport | None = None
    hero_asset: UploadedAsset | None = None

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @property
    def pending_block_indices(self) -> list[int]:
        return [i for i, b in enumerate(self.blocks) if b.status == "pending"]


class PublishTarget(BaseModel):
    """Site a work item is published to."""

    id: str = Field(default_factory=new_id)
    name: str
    base_url: str
    username: str = ""
    app_password: str = ""


# === RUN LEDGER ===


class RunRecord(BaseModel):
    """Immutable record of one step execution attempt."""

    id: str = Field(default_factory=new_id)
    work_item_id: str
    step: StepName
    status: RunStatus
    model_used: str | None = None
    tokens_in: int = 0
    tokens_out: int = 0
    cost_usd: float = 0.0
    duration_ms: int = 0
    created_at: datetime = Field(default_factory=utcnow)
    error: str | None = None
    output: dict[str, Any] = Field(default_factory=dict)


class RunFilter(BaseModel):
    """Query over the run ledger. All fields are optional conjunctive filters."""

    work_item_id: str | None = None
    work_item_ids: list[str] | None = None
    step: StepName | None = None
    status: RunStatus | None = None
    created_from: datetime | None = None
    created_to: datetime | None = None
    newest_first: bool = False
    limit: int | None = None
