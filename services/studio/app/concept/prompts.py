"""Prompts used for spark analysis."""

from __future__ import annotations

CONCEPT_SYSTEM_PROMPT = "You are a creative writing assistant. Respond in valid JSON."

CONCEPT_PROMPT = """
Analyze this story idea ("Spark"): "{spark}".
Respond with a JSON object containing the following keys:
{{
  "title": "A compelling Title",
  "tone": "A distinct Tone",
  "recommendedChapters": 5,
  "recommendedFormat": "Novel"
}}
""".strip()
