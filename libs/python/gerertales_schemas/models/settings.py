"""Persisted application settings."""

from __future__ import annotations

from typing import Optional

from pydantic import Field

from ..enums import ImageResolution, Theme, TTSProvider
from .base import CamelModel


class AppSettings(CamelModel):
    """Provider keys and per-capability model choices.

    Unset fields fall through to environment variables and built-in defaults
    when the provider configuration is resolved.
    """

    api_key: Optional[str] = Field(None, description="Gemini API key")
    open_ai_api_key: Optional[str] = None
    x_ai_api_key: Optional[str] = Field(None, alias="xAIApiKey")
    eleven_labs_api_key: Optional[str] = None
    text_model: Optional[str] = None
    image_model: Optional[str] = None
    image_resolution: Optional[ImageResolution] = None
    tts_model: Optional[str] = None
    eleven_labs_voice_id: Optional[str] = None
    tts_provider: TTSProvider = TTSProvider.AI
    theme: Theme = Theme.NORDIC_DARK

    def merged_with(self, other: "AppSettings") -> "AppSettings":
        """Return a copy where fields explicitly set on ``other`` win."""

        return self.model_copy(update=other.model_dump(exclude_unset=True))
