"""Model classification and provider routing.

A model name is classified once into a :class:`ModelFamily` by
case-insensitive substring matching, then mapped to the concrete
:class:`Provider` that serves a given capability.
"""

from __future__ import annotations

from enum import Enum

from .exceptions import ModelNotFoundError

LOCAL_MODEL = "local-gemma"
MOCK_MODEL = "mock"

# Aliases the xAI endpoint does not serve directly.
XAI_MODEL_ALIASES: dict[str, str] = {
    "grok-4.1-fast-reasoning": "grok-beta",
    "grok-3": "grok-beta",
    "grok-2-1212": "grok-2-1212",
    "grok-beta": "grok-beta",
}

XAI_TEXT_MODELS = ("grok-2-1212", "grok-beta", "grok-3", "grok-4-1-fast-reasoning")
XAI_IMAGE_MODELS = ("grok-imagine-image-pro", "grok-2-vision-beta")


class ModelFamily(str, Enum):
    GEMINI = "gemini"
    XAI = "xai"
    DALLE = "dall-e"
    LOCAL = "local"
    UNKNOWN = "unknown"


class Provider(str, Enum):
    GEMINI = "gemini"
    XAI = "xai"
    OPENAI = "openai"
    LOCAL = "local"
    ELEVENLABS = "elevenlabs"
    MOCK = "mock"


def classify_model(model: str | None) -> ModelFamily:
    """Map any model string to exactly one family; unmatched names are UNKNOWN."""

    name = (model or "").strip().lower()
    if "gemini" in name or "imagen" in name:
        return ModelFamily.GEMINI
    if "grok" in name:
        return ModelFamily.XAI
    if "dall-e" in name:
        return ModelFamily.DALLE
    if name == LOCAL_MODEL:
        return ModelFamily.LOCAL
    return ModelFamily.UNKNOWN


def is_gemini_model(model: str | None) -> bool:
    return classify_model(model) is ModelFamily.GEMINI


def is_xai_model(model: str | None) -> bool:
    return classify_model(model) is ModelFamily.XAI


def is_dalle_model(model: str | None) -> bool:
    return classify_model(model) is ModelFamily.DALLE


def is_local_model(model: str | None) -> bool:
    return classify_model(model) is ModelFamily.LOCAL


def text_provider_for(model: str) -> Provider:
    """Provider serving chat/text generation for ``model``.

    Names outside the known families go to the generic OpenAI-compatible
    endpoint.
    """

    if (model or "").strip().lower() == MOCK_MODEL:
        return Provider.MOCK
    family = classify_model(model)
    if family is ModelFamily.GEMINI:
        return Provider.GEMINI
    if family is ModelFamily.XAI:
        return Provider.XAI
    if family is ModelFamily.LOCAL:
        return Provider.LOCAL
    return Provider.OPENAI


def image_provider_for(model: str) -> Provider:
    if (model or "").strip().lower() == MOCK_MODEL:
        return Provider.MOCK
    family = classify_model(model)
    if family is ModelFamily.GEMINI:
        return Provider.GEMINI
    if family is ModelFamily.XAI:
        return Provider.XAI
    if family is ModelFamily.DALLE:
        return Provider.OPENAI
    raise ModelNotFoundError(model, "no image backend for this model")


def speech_provider_for(model: str) -> Provider:
    name = (model or "").strip().lower()
    if name == MOCK_MODEL:
        return Provider.MOCK
    if "eleven" in name:
        return Provider.ELEVENLABS
    if name.startswith("tts-"):
        return Provider.OPENAI
    if "gemini" in name:
        return Provider.GEMINI
    raise ModelNotFoundError(model, "unsupported speech model")


def resolve_xai_model_id(model: str) -> str:
    return XAI_MODEL_ALIASES.get(model, model)
