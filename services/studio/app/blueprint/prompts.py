"""Prompts used for story architecture."""

from __future__ import annotations

BLUEPRINT_SYSTEM_PROMPT = "You are a story architect. Respond in valid JSON."

BLUEPRINT_PROMPT = """
Story Idea: "{spark}"
Title: "{title}"
Format: {format}
Target Length: {chapter_count} Chapters/Scenes.

Create the blueprint in JSON format:
{{
  "characters": [{{ "name": "...", "role": "...", "trait": "...", "description": "..." }}],
  "locations": [{{ "name": "...", "description": "..." }}],
  "toc": [{{ "chapter": 1, "title": "...", "summary": "..." }}]
}}
""".strip()
