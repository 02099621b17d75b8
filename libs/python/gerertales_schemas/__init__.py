"""Pydantic schemas shared by the GererTales libraries and services."""

from .enums import (
    ImageKind,
    ImageResolution,
    MessageRole,
    StoryFormat,
    SubscriptionStatus,
    SubscriptionTier,
    Theme,
    TTSProvider,
)
from .models import (
    AppSettings,
    Chapter,
    ChapterNotFoundError,
    Character,
    ConceptAnalysis,
    GUEST_STARTING_CREDITS,
    Location,
    Message,
    Story,
    StoryBlueprint,
    StoryConfig,
    UserProfile,
    now_ms,
)
from .utils import count_words, reading_time_minutes

__all__ = [
    "ImageKind",
    "ImageResolution",
    "MessageRole",
    "StoryFormat",
    "SubscriptionStatus",
    "SubscriptionTier",
    "Theme",
    "TTSProvider",
    "AppSettings",
    "Chapter",
    "ChapterNotFoundError",
    "Character",
    "ConceptAnalysis",
    "GUEST_STARTING_CREDITS",
    "Location",
    "Message",
    "Story",
    "StoryBlueprint",
    "StoryConfig",
    "UserProfile",
    "now_ms",
    "count_words",
    "reading_time_minutes",
]
