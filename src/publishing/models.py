# src/publishing/models.py - v1
"""Publishing payload types."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field


class ContentPayload(BaseModel):
    """Post body sent to the publishing target."""

    title: str
    content_html: str
    slug: str | None = None
    excerpt: str | None = None
    status: Literal["draft", "publish"] = "draft"
    external_id: str | None = None  # set => update instead of create
    featured_media: str | None = None
    meta: dict[str, Any] = Field(default_factory=dict)


class AssetMetadata(BaseModel):
    """Describes an uploaded media file."""

    filename: str
    mime_type: str = "image/jpeg"
    alt_text: str = ""
    title: str = ""
