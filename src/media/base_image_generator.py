# src/media/base_image_generator.py - v1
"""Abstract image generator interface."""

from __future__ import annotations

from abc import ABC, abstractmethod

from contentflow.media.models import GeneratedImage


class BaseImageGenerator(ABC):
    """Text-to-image generation plus download of the produced file."""

    @abstractmethod
    async def generate(self, prompt: str, aspect_ratio: str = "16:9") -> GeneratedImage:
        """Generate one image.

        Raises:
            ImageGenerationError: On any transport or remote failure.
        """

    @abstractmethod
    async def download(self, url: str) -> bytes:
        """Fetch generated image bytes.

        Raises:
            ImageGenerationError: On any transport or remote failure.
        """
