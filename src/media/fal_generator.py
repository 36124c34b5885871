# src/media/fal_generator.py - v1
"""fal.ai text-to-image generator over its synchronous REST endpoint."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from contentflow.core.errors import ImageGenerationError
from contentflow.media.base_image_generator import BaseImageGenerator
from contentflow.media.models import GeneratedImage

logger = logging.getLogger(__name__)

# Aspect ratio -> fal image_size preset
IMAGE_SIZES: dict[str, str] = {
    "1:1": "square",
    "4:3": "landscape_4_3",
    "16:9": "landscape_16_9",
    "3:4": "portrait_4_3",
    "9:16": "portrait_16_9",
}

REALISM_SUFFIX = (
    "Realistic editorial photograph, natural lighting, shallow depth of field. "
    "No text, letters, numbers, captions, watermarks or logos anywhere in the image."
)


def parse_generation(payload: Any) -> GeneratedImage:
    """First image of a fal.ai response.

    Raises:
        ImageGenerationError: If the response carries no usable image.
    """
    images = payload.get("images") if isinstance(payload, dict) else None
    first = images[0] if isinstance(images, list) and images else None
    if not isinstance(first, dict) or not isinstance(first.get("url"), str) or not first["url"]:
        raise ImageGenerationError("fal.ai returned no image")
    try:
        return GeneratedImage(
            url=first["url"],
            width=int(first.get("width") or 0),
            height=int(first.get("height") or 0),
            content_type=str(first.get("content_type") or "image/jpeg"),
        )
    except (TypeError, ValueError) as exc:
        raise ImageGenerationError(f"fal.ai returned malformed image data: {exc}") from exc


class FalImageGenerator(BaseImageGenerator):
    """Generates images with a fal.ai hosted model."""

    def __init__(
        self,
        api_key: str,
        model: str = "fal-ai/flux/schnell",
        base_url: str = "https://fal.run",
        timeout_s: float = 60.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._api_key = api_key
        self._model = model
        self._base_url = base_url.rstrip("/")
        self._timeout_s = timeout_s
        self._http_client = http_client

    async def _send(self, method: str, url: str, **kwargs) -> httpx.Response:
        if self._http_client is not None:
            response = await self._http_client.request(
                method, url, timeout=self._timeout_s, **kwargs
            )
        else:
            async with httpx.AsyncClient(timeout=self._timeout_s) as client:
                response = await client.request(method, url, **kwargs)
        response.raise_for_status()
        return response

    async def generate(self, prompt: str, aspect_ratio: str = "16:9") -> GeneratedImage:
        if not self._api_key:
            raise ImageGenerationError("fal.ai API key is not configured (FAL_API_KEY)")

        body = {
            "prompt": f"{prompt}. {REALISM_SUFFIX}",
            "image_size": IMAGE_SIZES.get(aspect_ratio, "landscape_16_9"),
            "num_images": 1,
            "output_format": "jpeg",
        }
        try:
            response = await self._send(
                "POST",
                f"{self._base_url}/{self._model}",
                json=body,
                headers={"Authorization": f"Key {self._api_key}"},
            )
            payload = response.json()
        except httpx.HTTPError as exc:
            raise ImageGenerationError(f"fal.ai generation failed: {exc}") from exc
        except ValueError as exc:
            raise ImageGenerationError("fal.ai returned invalid JSON") from exc

        return parse_generation(payload)

    async def download(self, url: str) -> bytes:
        try:
            response = await self._send("GET", url)
        except httpx.HTTPError as exc:
            raise ImageGenerationError(f"Image download failed: {exc}") from exc
        return response.content
