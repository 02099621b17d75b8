"""Story architecture: characters, locations and a chapter outline."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from pydantic import ValidationError

from gerertales_providers import ProviderRequest, ResolvedConfig, parse_json_object
from gerertales_providers.exceptions import ProviderResponseError
from gerertales_schemas import StoryBlueprint, StoryConfig

from ..providers import generate_text
from .prompts import BLUEPRINT_PROMPT, BLUEPRINT_SYSTEM_PROMPT

FEATURE = "blueprint"


@dataclass
class BlueprintResult:
    blueprint: StoryBlueprint
    cost: float


async def generate_story_architecture(story_config: StoryConfig, config: ResolvedConfig) -> BlueprintResult:
    request = ProviderRequest(
        prompt=BLUEPRINT_PROMPT.format(
            spark=story_config.spark,
            title=story_config.title,
            format=story_config.format.value,
            chapter_count=story_config.chapter_count,
        ),
        system_prompt=BLUEPRINT_SYSTEM_PROMPT,
        json_mode=True,
        metadata={"feature": FEATURE},
    )
    response = await generate_text(config, request, feature=FEATURE)
    return BlueprintResult(blueprint=_parse_blueprint(response.text), cost=response.cost_credits)


def _parse_blueprint(payload: str) -> StoryBlueprint:
    data = parse_json_object(payload, label="Blueprint")
    toc = data.get("toc")
    if not isinstance(toc, list) or not toc:
        raise ProviderResponseError("Blueprint response has no table of contents")

    # Chapters start empty and are numbered by position.
    chapters: list[dict[str, Any]] = []
    for position, entry in enumerate(toc, start=1):
        if not isinstance(entry, dict):
            raise ProviderResponseError("Blueprint chapters must be JSON objects")
        chapters.append({**entry, "chapter": position, "content": "", "isCompleted": False})

    try:
        return StoryBlueprint.model_validate(
            {
                "characters": data.get("characters") or [],
                "locations": data.get("locations") or [],
                "toc": chapters,
            }
        )
    except ValidationError as exc:
        raise ProviderResponseError("Blueprint response did not match the expected structure") from exc
