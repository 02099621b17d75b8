"""Spark analysis: propose a title, tone and size for a story idea."""

from __future__ import annotations

from dataclasses import dataclass

from pydantic import ValidationError

from gerertales_providers import ProviderRequest, ResolvedConfig, parse_json_object
from gerertales_providers.exceptions import ProviderResponseError
from gerertales_schemas import ConceptAnalysis

from ..providers import generate_text
from .prompts import CONCEPT_PROMPT, CONCEPT_SYSTEM_PROMPT

FEATURE = "analysis"


@dataclass
class ConceptResult:
    analysis: ConceptAnalysis
    cost: float


async def analyze_story_concept(spark: str, config: ResolvedConfig) -> ConceptResult:
    request = ProviderRequest(
        prompt=CONCEPT_PROMPT.format(spark=spark),
        system_prompt=CONCEPT_SYSTEM_PROMPT,
        json_mode=True,
        metadata={"feature": FEATURE},
    )
    response = await generate_text(config, request, feature=FEATURE)
    return ConceptResult(analysis=_parse_analysis(response.text), cost=response.cost_credits)


def _parse_analysis(payload: str) -> ConceptAnalysis:
    data = parse_json_object(payload, label="Concept analysis")
    try:
        return ConceptAnalysis.model_validate(data)
    except ValidationError as exc:
        raise ProviderResponseError("Concept analysis response is missing required fields") from exc
