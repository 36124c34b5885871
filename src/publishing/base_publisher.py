# src/publishing/base_publisher.py - v1
"""Abstract publishing service interface."""

from __future__ import annotations

from abc import ABC, abstractmethod

from contentflow.core.models import PublishedContent, PublishTarget, UploadedAsset
from contentflow.publishing.models import AssetMetadata, ContentPayload


class BasePublisher(ABC):
    """Pushes content and media to an external site."""

    @abstractmethod
    async def create_or_update_content(
        self, target: PublishTarget, payload: ContentPayload
    ) -> PublishedContent:
        """Create a post, or update it when payload.external_id is set.

        Raises:
            PublishingError: On any transport or remote failure.
        """

    @abstractmethod
    async def upload_asset(
        self, target: PublishTarget, data: bytes, metadata: AssetMetadata
    ) -> UploadedAsset:
        """Upload a media file.

        Raises:
            PublishingError: On any transport or remote failure.
        """
