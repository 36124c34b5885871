# src/search/serper_client.py - v1
"""Serper.dev search client over httpx (POST /search)."""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import urlparse

import httpx

from contentflow.core.errors import SearchError
from contentflow.search.base_search import BaseSearchClient
from contentflow.search.models import OrganicHit, RelatedQuestion, SearchResult

logger = logging.getLogger(__name__)


def extract_domain(url: str) -> str:
    """'https://www.example.com/path' -> 'www.example.com'."""
    return urlparse(url).hostname or url


class SerperClient(BaseSearchClient):
    """Google results via Serper.dev."""

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://google.serper.dev",
        country: str = "fr",
        language: str = "fr",
        timeout_s: float = 5.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._country = country
        self._language = language
        self._timeout_s = timeout_s
        self._http_client = http_client

    async def search(self, query: str, num: int = 10) -> SearchResult:
        if not self._api_key:
            raise SearchError("Serper API key is not configured (SERPER_API_KEY)")

        body = {"q": query, "gl": self._country, "hl": self._language, "num": num}
        headers = {"X-API-KEY": self._api_key, "Content-Type": "application/json"}
        url = f"{self._base_url}/search"
        try:
            if self._http_client is not None:
                response = await self._http_client.post(
                    url, json=body, headers=headers, timeout=self._timeout_s
                )
            else:
                async with httpx.AsyncClient(timeout=self._timeout_s) as client:
                    response = await client.post(url, json=body, headers=headers)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as exc:
            raise SearchError(
                f"Serper search failed ({exc.response.status_code}) for {query!r}"
            ) from exc
        except httpx.HTTPError as exc:
            raise SearchError(f"Serper search failed for {query!r}: {exc}") from exc
        except ValueError as exc:
            raise SearchError("Serper returned invalid JSON") from exc

        return self._normalize(query, data)

    @staticmethod
    def _normalize(query: str, data: dict[str, Any]) -> SearchResult:
        organic = [
            OrganicHit(
                position=int(item.get("position", i + 1)),
                title=item.get("title", ""),
                link=item.get("link", ""),
                snippet=item.get("snippet", ""),
                domain=extract_domain(item.get("link", "")),
            )
            for i, item in enumerate(data.get("organic", []))
        ]
        questions = [
            RelatedQuestion(
                question=item.get("question", ""),
                snippet=item.get("snippet", ""),
                link=item.get("link", ""),
            )
            for item in data.get("peopleAlsoAsk", [])
        ]
        related = [item.get("query", "") for item in data.get("relatedSearches", [])]
        return SearchResult(
            query=query,
            organic=organic,
            people_also_ask=questions,
            related_searches=[r for r in related if r],
        )
