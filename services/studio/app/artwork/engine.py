"""Cover and chapter banner generation."""

from __future__ import annotations

import logging

from gerertales_providers import (
    BANNER_ASPECT_RATIO,
    COVER_ASPECT_RATIO,
    ImageGenerator,
    ImageResult,
    ProviderFactory,
    ProviderRequest,
    ResolvedConfig,
)
from gerertales_schemas import Chapter, ImageKind, Story

from ..providers import PROVIDER_CALL_ERRORS
from .prompts import (
    ART_DIRECTOR_MODEL,
    ART_DIRECTOR_PROMPT,
    BANNER_CONTEXT,
    COVER_CONTEXT,
    DEFAULT_SCENE_SUMMARY,
    EMPTY_DESCRIPTION_FALLBACK,
    FAILURE_DESCRIPTION_FALLBACK,
)

logger = logging.getLogger(__name__)


async def create_safe_image_prompt(
    context: str,
    kind: ImageKind,
    tone: str,
    config: ResolvedConfig,
) -> str:
    """Ask the art director model for a safe visual description.

    Falls back to a generic atmospheric description when the art director is
    unavailable; the description itself is never billed.
    """

    try:
        provider = ProviderFactory.create(config, model=ART_DIRECTOR_MODEL)
        response = await provider.generate(
            ProviderRequest(prompt=ART_DIRECTOR_PROMPT.format(context=context, tone=tone, kind=kind.value))
        )
    except PROVIDER_CALL_ERRORS as exc:
        logger.warning("Art director unavailable, using fallback description", extra={"error": str(exc)})
        return FAILURE_DESCRIPTION_FALLBACK.format(tone=tone)
    return response.text.strip() or EMPTY_DESCRIPTION_FALLBACK


async def generate_cover_image(story: Story, config: ResolvedConfig) -> ImageResult:
    context = COVER_CONTEXT.format(spark=story.spark, title=story.title)
    description = await create_safe_image_prompt(context, ImageKind.COVER, story.tone, config)
    return await ImageGenerator(config).generate_with_fallback(description, aspect_ratio=COVER_ASPECT_RATIO)


async def generate_chapter_banner(story: Story, chapter: Chapter, config: ResolvedConfig) -> ImageResult:
    context = BANNER_CONTEXT.format(
        story_title=story.title,
        chapter_title=chapter.title,
        summary=chapter.summary or DEFAULT_SCENE_SUMMARY,
    )
    description = await create_safe_image_prompt(context, ImageKind.SCENE, story.tone, config)
    return await ImageGenerator(config).generate_with_fallback(description, aspect_ratio=BANNER_ASPECT_RATIO)
