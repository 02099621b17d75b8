"""Factory utilities for instantiating text providers."""

from __future__ import annotations

from typing import Callable, Dict

from .base import LLMProvider
from .config import ResolvedConfig
from .gemini import GeminiProvider
from .local import LocalBridgeProvider
from .mock import MockProvider
from .openai import OpenAICompatibleProvider
from .routing import Provider, resolve_xai_model_id, text_provider_for

ProviderBuilder = Callable[[ResolvedConfig, str], LLMProvider]


def _build_gemini(config: ResolvedConfig, model: str) -> LLMProvider:
    return GeminiProvider(config.require_gemini(), model)


def _build_xai(config: ResolvedConfig, model: str) -> LLMProvider:
    return OpenAICompatibleProvider(config.require_xai(), resolve_xai_model_id(model), name="xai")


def _build_openai(config: ResolvedConfig, model: str) -> LLMProvider:
    return OpenAICompatibleProvider(config.require_openai(), model, name="openai")


def _build_local(config: ResolvedConfig, model: str) -> LLMProvider:
    return LocalBridgeProvider(config.require_http(), config.local_url, config.local_key)


def _build_mock(config: ResolvedConfig, model: str) -> LLMProvider:
    return MockProvider()


PROVIDER_MAP: Dict[Provider, ProviderBuilder] = {
    Provider.GEMINI: _build_gemini,
    Provider.XAI: _build_xai,
    Provider.OPENAI: _build_openai,
    Provider.LOCAL: _build_local,
    Provider.MOCK: _build_mock,
}


class ProviderFactory:
    """Factory for creating text providers from a resolved configuration."""

    @staticmethod
    def create(config: ResolvedConfig, model: str | None = None) -> LLMProvider:
        """Build the adapter serving ``model`` (the configured text model by default).

        Raises:
            ProviderNotConfiguredError: If the provider has no client.
        """

        target = model or config.text_model
        provider = config.text_provider if model is None else text_provider_for(target)
        return PROVIDER_MAP[provider](config, target)
