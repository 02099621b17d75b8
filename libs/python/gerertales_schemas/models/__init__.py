from .base import CamelModel, now_ms
from .messages import Message
from .profile import GUEST_STARTING_CREDITS, UserProfile
from .settings import AppSettings
from .story import Chapter, ChapterNotFoundError, Character, ConceptAnalysis, Location, Story, StoryBlueprint, StoryConfig

__all__ = [
    "CamelModel",
    "now_ms",
    "Message",
    "GUEST_STARTING_CREDITS",
    "UserProfile",
    "AppSettings",
    "Chapter",
    "ChapterNotFoundError",
    "Character",
    "ConceptAnalysis",
    "Location",
    "Story",
    "StoryBlueprint",
    "StoryConfig",
]
