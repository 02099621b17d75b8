"""Co-writer generation grounded in the active chapter and chat history."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from gerertales_providers import ChatTurn, ProviderRequest, ResolvedConfig
from gerertales_schemas import Chapter, Message, StoryFormat

from ..providers import generate_text
from .prompts import ADVICE_INSTRUCTION, PROSE_PROMPT, PROSE_SYSTEM_PROMPT, format_instruction

PROSE_FEATURE = "writing_prose"
CHAT_FEATURE = "writing_chat"


@dataclass
class ProseResult:
    text: str
    cost: float


def build_prose_prompt(chapter: Chapter, story_format: StoryFormat, instruction: str) -> str:
    return PROSE_PROMPT.format(
        title=chapter.title,
        summary=chapter.summary or "",
        content=chapter.content,
        format=story_format.value,
        instruction=instruction,
        format_instruction=format_instruction(story_format),
    )


async def generate_prose(
    history: Sequence[Message],
    chapter: Chapter,
    story_format: StoryFormat,
    instruction: str,
    config: ResolvedConfig,
    *,
    feature: str = PROSE_FEATURE,
) -> ProseResult:
    """Continue ``chapter`` following ``instruction``.

    ``history`` is the conversation so far (including the latest user turn)
    and is forwarded to providers that accept chat history.
    """

    request = ProviderRequest(
        prompt=build_prose_prompt(chapter, story_format, instruction),
        system_prompt=PROSE_SYSTEM_PROMPT,
        history=[ChatTurn(role=message.role.value, text=message.text) for message in history],
        metadata={"feature": feature, "chapter": chapter.chapter},
    )
    response = await generate_text(config, request, feature=feature)
    return ProseResult(text=response.text, cost=response.cost_credits)


async def generate_advice(
    history: Sequence[Message],
    chapter: Chapter,
    story_format: StoryFormat,
    config: ResolvedConfig,
) -> ProseResult:
    return await generate_prose(
        history,
        chapter,
        story_format,
        ADVICE_INSTRUCTION,
        config,
        feature=CHAT_FEATURE,
    )
