"""Provider adapters, routing and pricing for GererTales generation."""

from .base import ChatTurn, LLMProvider, ProviderCapabilities, ProviderRequest, ProviderResponse
from .config import (
    DEFAULT_IMAGE_MODEL,
    FALLBACK_IMAGE_MODEL,
    ProviderClients,
    ResolvedConfig,
    resolve_provider_config,
    tier_text_model,
)
from .exceptions import (
    LocalEngineError,
    ModelNotFoundError,
    ProviderConfigError,
    ProviderError,
    ProviderNotConfiguredError,
    ProviderResponseError,
    ProviderUnavailableError,
)
from .factory import ProviderFactory
from .images import BANNER_ASPECT_RATIO, COVER_ASPECT_RATIO, ImageGenerator, ImageResult
from .parsing import clean_json, parse_json_object
from .pricing import FEATURE_COSTS, calculate_cost, image_cost, round2, speech_cost
from .routing import (
    ModelFamily,
    Provider,
    classify_model,
    image_provider_for,
    is_dalle_model,
    is_gemini_model,
    is_local_model,
    is_xai_model,
    speech_provider_for,
    text_provider_for,
)
from .speech import VOICE_LISTS, SpeechResult, SpeechSynthesizer

__all__ = [
    "BANNER_ASPECT_RATIO",
    "COVER_ASPECT_RATIO",
    "ChatTurn",
    "DEFAULT_IMAGE_MODEL",
    "FALLBACK_IMAGE_MODEL",
    "FEATURE_COSTS",
    "ImageGenerator",
    "ImageResult",
    "LLMProvider",
    "LocalEngineError",
    "ModelFamily",
    "ModelNotFoundError",
    "Provider",
    "ProviderCapabilities",
    "ProviderClients",
    "ProviderConfigError",
    "ProviderError",
    "ProviderFactory",
    "ProviderNotConfiguredError",
    "ProviderRequest",
    "ProviderResponse",
    "ProviderResponseError",
    "ProviderUnavailableError",
    "ResolvedConfig",
    "SpeechResult",
    "SpeechSynthesizer",
    "VOICE_LISTS",
    "calculate_cost",
    "classify_model",
    "clean_json",
    "image_cost",
    "image_provider_for",
    "is_dalle_model",
    "is_gemini_model",
    "is_local_model",
    "is_xai_model",
    "parse_json_object",
    "resolve_provider_config",
    "round2",
    "speech_cost",
    "speech_provider_for",
    "text_provider_for",
    "tier_text_model",
]
