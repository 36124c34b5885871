# src/search/base_search.py - v1
"""Abstract search service interface."""

from __future__ import annotations

from abc import ABC, abstractmethod

from contentflow.search.models import SearchResult


class BaseSearchClient(ABC):
    """Keyword search against a web index."""

    @abstractmethod
    async def search(self, query: str, num: int = 10) -> SearchResult:
        """Run a search.

        Raises:
            SearchError: On any transport or remote failure.
        """
