"""Image generation across Gemini, xAI and OpenAI (DALL-E).

:meth:`ImageGenerator.generate_with_fallback` returns an :class:`ImageResult`
instead of raising. Image failures do not break the caller's flow: the
configured model is tried first and, if it is unknown to its backend, the
fallback model once. Any other failure yields an empty result with zero
cost.
"""

from __future__ import annotations

import base64
import logging
import time
from dataclasses import dataclass
from typing import Any

import httpx
from google.genai import errors as genai_errors
from google.genai import types
from openai import NotFoundError

from gerertales_observability import record_image_fallback
from gerertales_schemas import ImageResolution

from .config import FALLBACK_IMAGE_MODEL, ResolvedConfig
from .exceptions import ModelNotFoundError, ProviderNotConfiguredError
from .gemini import raise_for_missing_model
from .pricing import image_cost
from .routing import Provider, image_provider_for

logger = logging.getLogger(__name__)

COVER_ASPECT_RATIO = "3:4"
BANNER_ASPECT_RATIO = "16:9"
SIZED_GEMINI_IMAGE_MODEL = "gemini-3-pro-image-preview"
MOCK_IMAGE_URL = "data:image/png;base64,iVBORw0KGgo="


@dataclass(slots=True)
class ImageResult:
    url: str | None
    cost: float
    model: str | None = None

    @property
    def ok(self) -> bool:
        return self.url is not None


def to_data_uri(data: bytes | str, mime_type: str = "image/png") -> str:
    encoded = data if isinstance(data, str) else base64.b64encode(data).decode("ascii")
    return f"data:{mime_type};base64,{encoded}"


def image_size_for(resolution: ImageResolution) -> str:
    """Size hint for models that accept one; ``Low`` requests the smallest tier."""

    if resolution is ImageResolution.LOW:
        return ImageResolution.STANDARD.value
    return resolution.value


def extract_xai_image(payload: Any) -> str | None:
    """Pull an image out of an xAI ``/images/generations`` response body."""

    if not isinstance(payload, dict):
        return None
    if payload.get("image"):
        return to_data_uri(payload["image"])
    entries = payload.get("data") or []
    if entries and isinstance(entries[0], dict):
        first = entries[0]
        if first.get("b64_json"):
            return to_data_uri(first["b64_json"])
        if first.get("url"):
            return first["url"]
    return None


class ImageGenerator:
    """Generate cover and banner art using the configured image model."""

    def __init__(self, config: ResolvedConfig) -> None:
        self._config = config

    async def generate(self, prompt: str, *, aspect_ratio: str, model: str | None = None) -> str | None:
        """Generate one image and return it as a URL or data URI.

        Raises:
            ModelNotFoundError: If the model cannot be routed or the backend
                does not know it.
            ProviderNotConfiguredError: If the backend has no credentials.
        """

        target = model or self._config.image_model
        provider = image_provider_for(target)
        if provider is Provider.GEMINI:
            return await self._generate_gemini(target, prompt, aspect_ratio)
        if provider is Provider.XAI:
            return await self._generate_xai(target, prompt, aspect_ratio)
        if provider is Provider.OPENAI:
            return await self._generate_openai(target, prompt)
        return MOCK_IMAGE_URL

    async def generate_with_fallback(self, prompt: str, *, aspect_ratio: str) -> ImageResult:
        candidates = [self._config.image_model]
        if self._config.image_model != FALLBACK_IMAGE_MODEL:
            candidates.append(FALLBACK_IMAGE_MODEL)

        for attempt, model in enumerate(candidates, start=1):
            start = time.perf_counter()
            try:
                url = await self.generate(prompt, aspect_ratio=aspect_ratio, model=model)
            except ModelNotFoundError as exc:
                if attempt < len(candidates):
                    logger.warning(
                        "Image model unavailable, retrying with fallback",
                        extra={"model": model, "fallback_model": FALLBACK_IMAGE_MODEL, "error": str(exc)},
                    )
                    record_image_fallback(model)
                    continue
                logger.error("Fallback image model unavailable", extra={"model": model})
                return ImageResult(url=None, cost=0.0)
            except ProviderNotConfiguredError as exc:
                logger.warning("Image provider not configured", extra={"model": model, "error": str(exc)})
                return ImageResult(url=None, cost=0.0)
            except Exception:  # image failures are reported as an empty result
                logger.exception("Image generation failed", extra={"model": model})
                return ImageResult(url=None, cost=0.0)

            if url is None:
                logger.warning("Image provider returned no image", extra={"model": model})
                return ImageResult(url=None, cost=0.0)
            logger.info(
                "Image generated",
                extra={"model": model, "latency_ms": (time.perf_counter() - start) * 1000},
            )
            return ImageResult(url=url, cost=image_cost(), model=model)
        return ImageResult(url=None, cost=0.0)

    async def _generate_openai(self, model: str, prompt: str) -> str | None:
        client = self._config.require_openai()
        try:
            response = await client.images.generate(
                model=model,
                prompt=prompt,
                n=1,
                size="1024x1024",
                response_format="b64_json",
            )
        except NotFoundError as err:
            raise ModelNotFoundError(model, "openai rejected the model") from err
        data = response.data or []
        b64 = data[0].b64_json if data else None
        return to_data_uri(b64) if b64 else None

    async def _generate_xai(self, model: str, prompt: str, aspect_ratio: str) -> str | None:
        if not self._config.xai_api_key:
            raise ProviderNotConfiguredError("xAI")
        client = self._config.require_http()
        response = await client.post(
            f"{self._config.xai_base_url}/images/generations",
            json={
                "model": model,
                "prompt": prompt,
                "aspect_ratio": aspect_ratio,
                "image_format": "base64",
            },
            headers={"Authorization": f"Bearer {self._config.xai_api_key}"},
        )
        if response.status_code == httpx.codes.NOT_FOUND:
            raise ModelNotFoundError(model, "xai rejected the model")
        if response.is_error:
            logger.error(
                "xAI image API error",
                extra={"status_code": response.status_code, "payload_preview": response.text[:200]},
            )
            return None
        return extract_xai_image(response.json())

    async def _generate_gemini(self, model: str, prompt: str, aspect_ratio: str) -> str | None:
        client = self._config.require_gemini()
        try:
            if "imagen" in model.lower():
                response = await client.aio.models.generate_images(
                    model=model,
                    prompt=prompt,
                    config=types.GenerateImagesConfig(number_of_images=1, aspect_ratio=aspect_ratio),
                )
                images = response.generated_images or []
                image = images[0].image if images else None
                if image is None or not image.image_bytes:
                    return None
                return to_data_uri(image.image_bytes, image.mime_type or "image/png")

            image_config: dict[str, Any] = {"aspect_ratio": aspect_ratio}
            if model == SIZED_GEMINI_IMAGE_MODEL:
                image_config["image_size"] = image_size_for(self._config.image_resolution)
            response = await client.aio.models.generate_content(
                model=model,
                contents=prompt,
                config=types.GenerateContentConfig(
                    response_modalities=["IMAGE"],
                    image_config=types.ImageConfig(**image_config),
                ),
            )
        except genai_errors.APIError as err:
            raise_for_missing_model(model, err)
            raise

        url: str | None = None
        for candidate in (response.candidates or [])[:1]:
            parts = candidate.content.parts if candidate.content else None
            for part in parts or []:
                if part.inline_data and part.inline_data.data:
                    url = to_data_uri(part.inline_data.data, part.inline_data.mime_type or "image/png")
        return url
