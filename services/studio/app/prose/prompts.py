"""Prompts used by the co-writer."""

from __future__ import annotations

from gerertales_schemas import StoryFormat

PROSE_SYSTEM_PROMPT = "You are a co-writer. Be creative and consistent with the established world."

ADVICE_INSTRUCTION = "Provide brief advice. Do not write prose."

DEFAULT_FORMAT_INSTRUCTION = "Write standard prose."

FORMAT_INSTRUCTIONS: dict[StoryFormat, str] = {
    StoryFormat.SCREENPLAY: "Write in standard Screenplay format.",
    StoryFormat.COMIC_SCRIPT: "Write in Comic Script format.",
}

PROSE_PROMPT = """
Current Chapter: {title}
Summary: {summary}
Current Draft: {content}
Format: {format}
---
Instruction: {instruction}
{format_instruction}
Output ONLY the story content.
""".strip()


def format_instruction(story_format: StoryFormat) -> str:
    return FORMAT_INSTRUCTIONS.get(story_format, DEFAULT_FORMAT_INSTRUCTION)
