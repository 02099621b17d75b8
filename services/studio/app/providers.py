"""Provider plumbing shared by the studio generation engines."""

from __future__ import annotations

import logging

from google.genai import errors as genai_errors
from openai import OpenAIError

from gerertales_observability import log_context, observe_provider_response
from gerertales_providers import (
    ProviderError,
    ProviderFactory,
    ProviderRequest,
    ProviderResponse,
    ResolvedConfig,
    resolve_provider_config,
)
from gerertales_schemas import AppSettings, UserProfile

logger = logging.getLogger(__name__)

# Failures a generation call can surface: adapter errors plus anything an SDK
# raises before the adapter can translate it.
PROVIDER_CALL_ERRORS = (ProviderError, OpenAIError, genai_errors.APIError)


def resolve_for_profile(
    profile: UserProfile,
    settings: AppSettings | None,
    overrides: AppSettings | None = None,
) -> ResolvedConfig:
    """Resolve provider configuration for ``profile``'s subscription tier."""

    return resolve_provider_config(profile.tier, settings=settings, overrides=overrides)


async def generate_text(
    config: ResolvedConfig,
    request: ProviderRequest,
    *,
    feature: str,
) -> ProviderResponse:
    """Run ``request`` against the configured text provider and record usage."""

    provider = ProviderFactory.create(config)
    with log_context(feature=feature, provider=provider.name, model=config.text_model):
        response = await provider.generate(request)
        observe_provider_response(feature=feature, provider=provider.name, response=response)
        logger.info(
            "Text generation completed",
            extra={
                "prompt_tokens": response.prompt_tokens,
                "completion_tokens": response.completion_tokens,
                "cost_credits": response.cost_credits,
                "latency_ms": response.latency_ms,
            },
        )
    return response
