"""Google Gemini provider implementation."""

from __future__ import annotations

import time
from typing import Any, Dict

from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from .base import LLMProvider, ProviderCapabilities, ProviderRequest, ProviderResponse
from .exceptions import ModelNotFoundError, ProviderResponseError, ProviderUnavailableError
from .pricing import calculate_cost


def raise_for_missing_model(model: str, err: genai_errors.APIError) -> None:
    """Translate a 404 from the Gemini API into :class:`ModelNotFoundError`."""

    if getattr(err, "code", None) == 404:
        raise ModelNotFoundError(model, "gemini rejected the model") from err


class GeminiProvider(LLMProvider):
    name = "gemini"

    def __init__(self, client: genai.Client, model: str) -> None:
        self._client = client
        self._model = model

    def capabilities(self) -> ProviderCapabilities:
        return ProviderCapabilities(supports_json_mode=True)

    async def generate(self, request: ProviderRequest) -> ProviderResponse:
        contents: list[types.Content] = [
            types.Content(role=turn.role, parts=[types.Part(text=turn.text)])
            for turn in request.history
        ]
        contents.append(types.Content(role="user", parts=[types.Part(text=request.prompt)]))

        generation_config: Dict[str, Any] = {}
        if request.system_prompt:
            generation_config["system_instruction"] = request.system_prompt
        if request.temperature is not None:
            generation_config["temperature"] = request.temperature
        if request.max_output_tokens:
            generation_config["max_output_tokens"] = request.max_output_tokens
        if request.json_mode:
            generation_config["response_mime_type"] = "application/json"

        start = time.perf_counter()
        try:
            response = await self._client.aio.models.generate_content(
                model=self._model,
                contents=contents,
                config=types.GenerateContentConfig(**generation_config),
            )
        except genai_errors.APIError as err:
            raise_for_missing_model(self._model, err)
            raise ProviderUnavailableError(self.name, str(err), err.code) from err
        latency_ms = (time.perf_counter() - start) * 1000

        try:
            text = response.text or ""
        except (AttributeError, ValueError) as err:
            raise ProviderResponseError("Gemini response missing text content") from err

        usage = getattr(response, "usage_metadata", None)
        prompt_tokens = (getattr(usage, "prompt_token_count", 0) or 0) if usage else 0
        completion_tokens = (getattr(usage, "candidates_token_count", 0) or 0) if usage else 0

        return ProviderResponse(
            text=text,
            raw=response,
            model=self._model,
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
            cost_credits=calculate_cost(prompt_tokens, completion_tokens),
            latency_ms=latency_ms,
        )
