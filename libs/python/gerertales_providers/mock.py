"""Deterministic mock provider for tests and offline development."""

from __future__ import annotations

import json

from .base import LLMProvider, ProviderCapabilities, ProviderRequest, ProviderResponse
from .pricing import calculate_cost

DEFAULT_TEXT = "The lanterns flickered as the story began to take shape."

MOCK_CONCEPT = {
    "title": "The Lantern Keeper",
    "tone": "Wistful",
    "recommendedChapters": 5,
    "recommendedFormat": "Novel",
}


class MockProvider(LLMProvider):
    name = "mock"

    def __init__(self, payload: dict | None = None) -> None:
        self._payload = payload

    def capabilities(self) -> ProviderCapabilities:
        return ProviderCapabilities(supports_json_mode=True)

    async def generate(self, request: ProviderRequest) -> ProviderResponse:
        if request.json_mode:
            text = json.dumps(self._payload if self._payload is not None else MOCK_CONCEPT)
        else:
            text = DEFAULT_TEXT
        prompt_tokens = len(request.prompt.split())
        completion_tokens = len(text.split())
        return ProviderResponse(
            text=text,
            raw={"mock": True},
            model="mock",
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
            cost_credits=calculate_cost(prompt_tokens, completion_tokens),
            latency_ms=1.0,
        )
