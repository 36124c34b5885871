# src/media/models.py - v1
"""Image generation result type."""

from __future__ import annotations

from pydantic import BaseModel


class GeneratedImage(BaseModel):
    url: str
    width: int = 0
    height: int = 0
    content_type: str = "image/jpeg"
