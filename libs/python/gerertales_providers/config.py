"""Resolve which models, keys and SDK clients a call should use.

Every setting is looked up in order: call-site overrides, persisted
settings, environment variables, tier defaults, hardcoded defaults. The
resolver performs no network I/O and never fails because a key is missing;
adapters raise :class:`ProviderNotConfiguredError` when they need a client
that was not built.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Any, Mapping

import httpx
from google import genai
from openai import AsyncOpenAI

from gerertales_schemas import AppSettings, ImageResolution, SubscriptionTier

from .exceptions import ProviderConfigError, ProviderNotConfiguredError
from .routing import Provider, text_provider_for

logger = logging.getLogger(__name__)

FREE_TEXT_MODEL = "grok-beta"
PREMIUM_TEXT_MODEL = "grok-2-1212"
DEFAULT_IMAGE_MODEL = "grok-imagine-image-pro"
FALLBACK_IMAGE_MODEL = DEFAULT_IMAGE_MODEL
DEFAULT_TTS_MODEL = "tts-1"
DEFAULT_IMAGE_RESOLUTION = ImageResolution.STANDARD
DEFAULT_ELEVENLABS_VOICE_ID = "MF3mGyEYCl7XYWbV9V6O"
DEFAULT_XAI_BASE_URL = "https://api.x.ai/v1"
ELEVENLABS_BASE_URL = "https://api.elevenlabs.io/v1"
DEFAULT_LOCAL_URL = "http://localhost:3001/api/generate"
DEFAULT_LOCAL_KEY = "gererllama_test"
DEFAULT_HTTP_TIMEOUT = 60.0

ENV_GEMINI_KEY = "GEMINI_API_KEY"
ENV_OPENAI_KEY = "OPENAI_API_KEY"
ENV_XAI_KEY = "XAI_API_KEY"
ENV_ELEVENLABS_KEY = "ELEVENLABS_API_KEY"
ENV_TEXT_MODEL = "GERERTALES_TEXT_MODEL"
ENV_IMAGE_MODEL = "GERERTALES_IMAGE_MODEL"
ENV_IMAGE_RESOLUTION = "GERERTALES_IMAGE_RESOLUTION"
ENV_TTS_MODEL = "GERERTALES_TTS_MODEL"
ENV_VOICE_ID = "GERERTALES_ELEVENLABS_VOICE_ID"
ENV_LOCAL_URL = "GERERTALES_LOCAL_URL"
ENV_LOCAL_KEY = "GERERTALES_LOCAL_KEY"
ENV_XAI_BASE_URL = "XAI_BASE_URL"
ENV_GEMINI_TTS = "GERERTALES_GEMINI_TTS"
ENV_HTTP_TIMEOUT = "GERERTALES_HTTP_TIMEOUT"


def tier_text_model(tier: str | SubscriptionTier) -> str:
    """Default text model granted by a subscription tier."""

    value = tier.value if isinstance(tier, SubscriptionTier) else str(tier or "").lower()
    if value in (SubscriptionTier.PRO.value, SubscriptionTier.STUDIO.value):
        return PREMIUM_TEXT_MODEL
    return FREE_TEXT_MODEL


def parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    return str(value).strip().lower() in {"true", "1", "yes", "on"}


@dataclass(slots=True)
class ProviderClients:
    """SDK clients built for the providers that have keys."""

    openai: AsyncOpenAI | None = None
    xai: AsyncOpenAI | None = None
    gemini: genai.Client | None = None
    http: httpx.AsyncClient | None = None

    async def aclose(self) -> None:
        for client in (self.openai, self.xai):
            if client is not None:
                await client.close()
        if self.http is not None:
            await self.http.aclose()


@dataclass(frozen=True, slots=True)
class ResolvedConfig:
    """Fully resolved provider configuration for one request."""

    tier: str
    text_model: str
    text_provider: Provider
    image_model: str
    image_resolution: ImageResolution
    tts_model: str
    eleven_labs_voice_id: str
    gemini_api_key: str | None = None
    openai_api_key: str | None = None
    xai_api_key: str | None = None
    elevenlabs_api_key: str | None = None
    xai_base_url: str = DEFAULT_XAI_BASE_URL
    local_url: str = DEFAULT_LOCAL_URL
    local_key: str = DEFAULT_LOCAL_KEY
    http_timeout: float = DEFAULT_HTTP_TIMEOUT
    gemini_tts_enabled: bool = False
    clients: ProviderClients = field(default_factory=ProviderClients, repr=False, compare=False)

    def require_openai(self) -> AsyncOpenAI:
        if self.clients.openai is None:
            raise ProviderNotConfiguredError("OpenAI")
        return self.clients.openai

    def require_xai(self) -> AsyncOpenAI:
        if self.clients.xai is None:
            raise ProviderNotConfiguredError("xAI")
        return self.clients.xai

    def require_gemini(self) -> genai.Client:
        if self.clients.gemini is None:
            raise ProviderNotConfiguredError("Gemini")
        return self.clients.gemini

    def require_http(self) -> httpx.AsyncClient:
        if self.clients.http is None:
            raise ProviderNotConfiguredError("HTTP")
        return self.clients.http

    async def aclose(self) -> None:
        await self.clients.aclose()


def _coerce_settings(value: AppSettings | Mapping[str, Any] | None) -> AppSettings | None:
    if value is None or isinstance(value, AppSettings):
        return value
    return AppSettings.model_validate(dict(value))


def resolve_provider_config(
    tier: str | SubscriptionTier = "free",
    *,
    settings: AppSettings | Mapping[str, Any] | None = None,
    overrides: AppSettings | Mapping[str, Any] | None = None,
    env: Mapping[str, str] | None = None,
    build_clients: bool = True,
) -> ResolvedConfig:
    """Merge every configuration layer into a :class:`ResolvedConfig`.

    Args:
        tier: Subscription tier used for the default text model.
        settings: Persisted user settings.
        overrides: Per-call settings that beat everything else.
        env: Environment mapping (defaults to ``os.environ``).
        build_clients: Construct SDK clients for keys that are present.
    """

    environ: Mapping[str, str] = os.environ if env is None else env
    layers = [layer for layer in (_coerce_settings(overrides), _coerce_settings(settings)) if layer]

    def pick(attribute: str, env_var: str | None, default: Any) -> Any:
        for layer in layers:
            value = getattr(layer, attribute, None)
            if value not in (None, ""):
                return value
        if env_var:
            env_value = environ.get(env_var)
            if env_value is not None and env_value.strip():
                return env_value.strip()
        return default

    tier_value = tier.value if isinstance(tier, SubscriptionTier) else str(tier or "free").lower()
    text_model = pick("text_model", ENV_TEXT_MODEL, tier_text_model(tier_value))
    resolution_raw = pick("image_resolution", ENV_IMAGE_RESOLUTION, DEFAULT_IMAGE_RESOLUTION)
    try:
        image_resolution = ImageResolution(resolution_raw)
    except ValueError as exc:
        raise ProviderConfigError(f"Unsupported image resolution: {resolution_raw}") from exc

    timeout_raw = environ.get(ENV_HTTP_TIMEOUT)
    try:
        http_timeout = float(timeout_raw) if timeout_raw else DEFAULT_HTTP_TIMEOUT
    except ValueError as exc:
        raise ProviderConfigError(f"{ENV_HTTP_TIMEOUT} must be a number") from exc

    gemini_key = pick("api_key", ENV_GEMINI_KEY, None)
    openai_key = pick("open_ai_api_key", ENV_OPENAI_KEY, None)
    xai_key = pick("x_ai_api_key", ENV_XAI_KEY, None)
    elevenlabs_key = pick("eleven_labs_api_key", ENV_ELEVENLABS_KEY, None)
    xai_base_url = environ.get(ENV_XAI_BASE_URL) or DEFAULT_XAI_BASE_URL

    clients = ProviderClients()
    if build_clients:
        if openai_key:
            clients.openai = AsyncOpenAI(api_key=openai_key)
        if xai_key:
            clients.xai = AsyncOpenAI(api_key=xai_key, base_url=xai_base_url)
        if gemini_key:
            clients.gemini = genai.Client(api_key=gemini_key)
        clients.http = httpx.AsyncClient(timeout=http_timeout)

    config = ResolvedConfig(
        tier=tier_value,
        text_model=text_model,
        text_provider=text_provider_for(text_model),
        image_model=pick("image_model", ENV_IMAGE_MODEL, DEFAULT_IMAGE_MODEL),
        image_resolution=image_resolution,
        tts_model=pick("tts_model", ENV_TTS_MODEL, DEFAULT_TTS_MODEL),
        eleven_labs_voice_id=pick("eleven_labs_voice_id", ENV_VOICE_ID, DEFAULT_ELEVENLABS_VOICE_ID),
        gemini_api_key=gemini_key,
        openai_api_key=openai_key,
        xai_api_key=xai_key,
        elevenlabs_api_key=elevenlabs_key,
        xai_base_url=xai_base_url,
        local_url=environ.get(ENV_LOCAL_URL) or DEFAULT_LOCAL_URL,
        local_key=environ.get(ENV_LOCAL_KEY) or DEFAULT_LOCAL_KEY,
        http_timeout=http_timeout,
        gemini_tts_enabled=parse_bool(environ.get(ENV_GEMINI_TTS)),
        clients=clients,
    )
    logger.debug(
        "Resolved provider config",
        extra={"provider": config.text_provider.value, "model": config.text_model, "tier": tier_value},
    )
    return config
