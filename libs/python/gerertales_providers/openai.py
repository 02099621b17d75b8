"""OpenAI-compatible chat provider, used for OpenAI and xAI (Grok)."""

from __future__ import annotations

import time
from typing import Any, Dict, List

from openai import APIError, AsyncOpenAI, NotFoundError

from .base import LLMProvider, ProviderCapabilities, ProviderRequest, ProviderResponse
from .exceptions import ModelNotFoundError, ProviderResponseError, ProviderUnavailableError
from .pricing import calculate_cost


class OpenAICompatibleProvider(LLMProvider):
    """Chat completions against any endpoint that speaks the OpenAI API."""

    def __init__(self, client: AsyncOpenAI, model: str, *, name: str = "openai") -> None:
        self._client = client
        self._model = model
        self.name = name

    def capabilities(self) -> ProviderCapabilities:
        return ProviderCapabilities(supports_json_mode=True)

    async def generate(self, request: ProviderRequest) -> ProviderResponse:
        messages: List[Dict[str, Any]] = []
        if request.system_prompt:
            messages.append({"role": "system", "content": request.system_prompt})
        for turn in request.history:
            messages.append({"role": turn.openai_role, "content": turn.text})
        messages.append({"role": "user", "content": request.prompt})

        params: Dict[str, Any] = {"model": self._model, "messages": messages}
        if request.temperature is not None:
            params["temperature"] = request.temperature
        if request.max_output_tokens:
            params["max_tokens"] = request.max_output_tokens
        if request.json_mode:
            params["response_format"] = {"type": "json_object"}

        start = time.perf_counter()
        try:
            response = await self._client.chat.completions.create(**params)
        except NotFoundError as err:
            raise ModelNotFoundError(self._model, f"{self.name} rejected the model") from err
        except APIError as err:
            raise ProviderUnavailableError(self.name, str(err), getattr(err, "status_code", None)) from err
        latency_ms = (time.perf_counter() - start) * 1000

        try:
            choice = response.choices[0].message
            text = choice.content or ""
        except (IndexError, AttributeError) as err:
            raise ProviderResponseError(f"{self.name} response missing content") from err

        usage = getattr(response, "usage", None)
        prompt_tokens = getattr(usage, "prompt_tokens", 0) if usage else 0
        completion_tokens = getattr(usage, "completion_tokens", 0) if usage else 0

        return ProviderResponse(
            text=text,
            raw=response,
            model=getattr(response, "model", None) or self._model,
            prompt_tokens=prompt_tokens or 0,
            completion_tokens=completion_tokens or 0,
            cost_credits=calculate_cost(prompt_tokens, completion_tokens),
            latency_ms=latency_ms,
        )
