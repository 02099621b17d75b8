"""Bridge to a self-hosted model server (``local-gemma``)."""

from __future__ import annotations

import logging
import time

import httpx

from .base import LLMProvider, ProviderCapabilities, ProviderRequest, ProviderResponse
from .exceptions import LocalEngineError
from .pricing import LOCAL_ENGINE_COST

logger = logging.getLogger(__name__)

LOCAL_KEY_HEADER = "x-gererllama-key"
JSON_ONLY_SUFFIX = "\nRespond with valid JSON ONLY."
OFFLINE_MESSAGE = "Local Engine Room is dark. Is GérerLlama running?"


class LocalBridgeProvider(LLMProvider):
    """Single-shot prompts against the local engine; billed at a flat rate."""

    name = "local"

    def __init__(self, client: httpx.AsyncClient, url: str, key: str) -> None:
        self._client = client
        self._url = url
        self._key = key

    def capabilities(self) -> ProviderCapabilities:
        return ProviderCapabilities(
            supports_json_mode=False,
            supports_chat_history=False,
            supports_system_prompt=False,
        )

    @staticmethod
    def build_prompt(request: ProviderRequest) -> str:
        """The engine takes one bare prompt; system prompt and history are dropped."""

        if request.json_mode:
            return f"{request.prompt}{JSON_ONLY_SUFFIX}"
        return request.prompt

    async def generate(self, request: ProviderRequest) -> ProviderResponse:
        headers = {
            "Content-Type": "application/json",
            LOCAL_KEY_HEADER: self._key,
            "Bypass-Tunnel-Reminder": "true",
        }
        body = {"prompt": self.build_prompt(request), "stream": False}

        start = time.perf_counter()
        try:
            response = await self._client.post(self._url, json=body, headers=headers)
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as err:
            logger.warning("Local engine request failed", extra={"provider": self.name, "error": str(err)})
            raise LocalEngineError(OFFLINE_MESSAGE) from err
        latency_ms = (time.perf_counter() - start) * 1000

        text = ""
        if isinstance(data, dict):
            text = data.get("text") or data.get("response") or ""
        return ProviderResponse(
            text=text,
            raw=data,
            model="local-gemma",
            prompt_tokens=0,
            completion_tokens=0,
            cost_credits=LOCAL_ENGINE_COST,
            latency_ms=latency_ms,
        )
