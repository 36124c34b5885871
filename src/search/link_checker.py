# src/search/link_checker.py - v1
"""Reachability check for external links (HEAD request, short timeout)."""

from __future__ import annotations

import logging

import httpx

logger = logging.getLogger(__name__)


class LinkChecker:
    """Validates that a URL answers a HEAD request with a non-error status."""

    def __init__(
        self,
        timeout_s: float = 5.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._timeout_s = timeout_s
        self._http_client = http_client

    async def is_reachable(self, url: str) -> bool:
        try:
            if self._http_client is not None:
                response = await self._http_client.head(
                    url, timeout=self._timeout_s, follow_redirects=True
                )
            else:
                async with httpx.AsyncClient(timeout=self._timeout_s) as client:
                    response = await client.head(url, follow_redirects=True)
        except httpx.HTTPError as exc:
            logger.debug("Link check failed for %s: %s", url, exc)
            return False
        return response.status_code < 400
