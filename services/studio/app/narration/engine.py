"""Chapter narration."""

from __future__ import annotations

import logging
from typing import Optional

from gerertales_providers import ResolvedConfig, SpeechResult, SpeechSynthesizer
from gerertales_schemas import Chapter

logger = logging.getLogger(__name__)


async def narrate_chapter(chapter: Chapter, config: ResolvedConfig, voice_name: Optional[str] = None) -> SpeechResult:
    if not chapter.content.strip():
        logger.info("Skipping narration of empty chapter", extra={"chapter_index": chapter.chapter - 1})
        return SpeechResult(audio=None, cost=0.0)
    synthesizer = SpeechSynthesizer(config)
    if voice_name is None:
        return await synthesizer.synthesize(chapter.content)
    return await synthesizer.synthesize(chapter.content, voice_name)
