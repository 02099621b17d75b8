"""Prompts used to turn story context into image-generator descriptions."""

from __future__ import annotations

ART_DIRECTOR_MODEL = "grok-beta"

ART_DIRECTOR_PROMPT = """
You are an art director. I need a visual description for an AI image generator.
Context: "{context}"
Tone: {tone}
Type: {kind}
Output ONLY the visual prompt description. No conversational filler.
""".strip()

EMPTY_DESCRIPTION_FALLBACK = "Atmospheric abstract art"
FAILURE_DESCRIPTION_FALLBACK = "Atmospheric {tone} art, abstract style"

COVER_CONTEXT = "{spark} (Title: {title})"
BANNER_CONTEXT = "Story: {story_title}\nChapter: {chapter_title}\nSummary: {summary}"
DEFAULT_SCENE_SUMMARY = "A new scene."
