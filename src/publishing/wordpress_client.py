# src/publishing/wordpress_client.py - v1
"""WordPress REST publisher (wp-json/wp/v2) over httpx.

Authenticates with an application password (HTTP basic auth).
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from contentflow.core.errors import PublishingError
from contentflow.core.models import PublishedContent, PublishTarget, UploadedAsset
from contentflow.publishing.base_publisher import BasePublisher
from contentflow.publishing.models import AssetMetadata, ContentPayload

logger = logging.getLogger(__name__)

WP_API_PATH = "/wp-json/wp/v2"
WP_USER_AGENT = "contentflow/1.0"


def api_base(target: PublishTarget) -> str:
    """Return the REST base for a target, e.g. https://site/wp-json/wp/v2."""
    return target.base_url.rstrip("/") + WP_API_PATH


def resource_id(resource: dict[str, Any], kind: str) -> str:
    """The id WordPress assigned to a created post or media item."""
    value = resource.get("id")
    if value is None or isinstance(value, (dict, list)) or str(value) == "":
        raise PublishingError(f"WordPress {kind} response has no id")
    return str(value)


class WordPressPublisher(BasePublisher):
    """Publisher for WordPress sites."""

    def __init__(
        self,
        timeout_s: float = 5.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the publisher.

        Args:
            timeout_s: Per-request timeout.
            http_client: Optional httpx.AsyncClient for dependency injection (testing).
        """
        self._timeout_s = timeout_s
        self._http_client = http_client

    def _auth(self, target: PublishTarget) -> httpx.BasicAuth:
        if not target.username or not target.app_password:
            raise PublishingError(
                f"WordPress credentials incomplete for target {target.id}"
            )
        return httpx.BasicAuth(target.username, target.app_password)

    async def _request(self, method: str, url: str, **kwargs: Any) -> dict[str, Any]:
        headers = {"User-Agent": WP_USER_AGENT, **kwargs.pop("headers", {})}
        try:
            if self._http_client is not None:
                response = await self._http_client.request(
                    method, url, headers=headers, timeout=self._timeout_s, **kwargs
                )
            else:
                async with httpx.AsyncClient(timeout=self._timeout_s) as client:
                    response = await client.request(method, url, headers=headers, **kwargs)
            response.raise_for_status()
            body = response.json()
        except httpx.HTTPStatusError as exc:
            raise PublishingError(
                f"WordPress {method} {url} failed ({exc.response.status_code}): "
                f"{exc.response.text[:200]}"
            ) from exc
        except httpx.HTTPError as exc:
            raise PublishingError(f"WordPress {method} {url} failed: {exc}") from exc
        except ValueError as exc:
            raise PublishingError(f"WordPress returned invalid JSON for {url}") from exc
        if not isinstance(body, dict):
            raise PublishingError(f"WordPress returned an unexpected body for {url}")
        return body

    async def create_or_update_content(
        self, target: PublishTarget, payload: ContentPayload
    ) -> PublishedContent:
        body: dict[str, Any] = {
            "title": payload.title,
            "content": payload.content_html,
            "status": payload.status,
        }
        if payload.slug:
            body["slug"] = payload.slug
        if payload.excerpt:
            body["excerpt"] = payload.excerpt
        if payload.featured_media:
            body["featured_media"] = int(payload.featured_media)
        if payload.meta:
            body["meta"] = payload.meta

        url = f"{api_base(target)}/posts"
        if payload.external_id:
            url = f"{url}/{payload.external_id}"

        post = await self._request("POST", url, json=body, auth=self._auth(target))
        post_id = resource_id(post, "post")
        logger.info(
            "WordPress post %s %s (%s)",
            post_id, "updated" if payload.external_id else "created", payload.status,
        )
        return PublishedContent(external_id=post_id, external_url=str(post.get("link") or ""))

    async def upload_asset(
        self, target: PublishTarget, data: bytes, metadata: AssetMetadata
    ) -> UploadedAsset:
        auth = self._auth(target)
        media = await self._request(
            "POST",
            f"{api_base(target)}/media",
            content=data,
            auth=auth,
            headers={
                "Content-Type": metadata.mime_type,
                "Content-Disposition": f'attachment; filename="{metadata.filename}"',
            },
        )
        asset_id = resource_id(media, "media")
        if metadata.alt_text or metadata.title:
            await self._request(
                "POST",
                f"{api_base(target)}/media/{asset_id}",
                json={"alt_text": metadata.alt_text, "title": metadata.title},
                auth=auth,
            )
        return UploadedAsset(asset_id=asset_id, url=str(media.get("source_url") or ""))
