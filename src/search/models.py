# src/search/models.py - v1
"""Search result types."""

from __future__ import annotations

from pydantic import BaseModel, Field


class OrganicHit(BaseModel):
    position: int
    title: str
    link: str
    snippet: str = ""
    domain: str = ""


class RelatedQuestion(BaseModel):
    question: str
    snippet: str = ""
    link: str = ""


class SearchResult(BaseModel):
    """Normalized search engine results page."""

    query: str
    organic: list[OrganicHit] = Field(default_factory=list)
    people_also_ask: list[RelatedQuestion] = Field(default_factory=list)
    related_searches: list[str] = Field(default_factory=list)
