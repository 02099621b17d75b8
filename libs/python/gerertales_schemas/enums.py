"""Enum definitions shared across the studio."""

from __future__ import annotations

from enum import Enum


class StoryFormat(str, Enum):
    NOVEL = "Novel"
    SHORT_STORY = "Short Story"
    SCREENPLAY = "Screenplay"
    COMIC_SCRIPT = "Comic Script"
    WEBTOON = "Webtoon"
    CHILDRENS_BOOK = "Children's Book"
    EDUCATIONAL_STORY = "Educational Story"


class SubscriptionTier(str, Enum):
    FREE = "free"
    PRO = "pro"
    STUDIO = "studio"


class SubscriptionStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    PAST_DUE = "past_due"
    CANCELED = "canceled"


class MessageRole(str, Enum):
    USER = "user"
    MODEL = "model"


class ImageResolution(str, Enum):
    LOW = "Low"
    STANDARD = "1K"
    HIGH = "2K"
    ULTRA = "4K"


class TTSProvider(str, Enum):
    AI = "ai"
    BROWSER = "browser"


class Theme(str, Enum):
    NORDIC_DARK = "nordic-dark"
    MIDNIGHT = "midnight"
    PAPER_LIGHT = "paper-light"


class ImageKind(str, Enum):
    COVER = "COVER"
    SCENE = "SCENE"
