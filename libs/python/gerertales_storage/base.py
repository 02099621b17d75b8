"""Repository interface shared by the local and PostgreSQL stores."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

from gerertales_schemas import AppSettings, Story, UserProfile


class StoryRepository(ABC):
    """Stories, the writer profile, and application settings."""

    name: str

    @abstractmethod
    def list_stories(self, owner_id: Optional[str] = None) -> list[Story]:
        """Stories ordered by ``last_modified``, newest first."""

    @abstractmethod
    def get_story(self, story_id: str) -> Story:
        """Raises :class:`StoryNotFoundError` for unknown ids."""

    @abstractmethod
    def save_story(self, story: Story) -> Story:
        """Insert or replace ``story``."""

    @abstractmethod
    def delete_story(self, story_id: str, owner_id: Optional[str] = None) -> None:
        """Remove ``story_id``; deleting a missing story raises."""

    @abstractmethod
    def get_profile(self, profile_id: Optional[str] = None) -> Optional[UserProfile]:
        """Profile for ``profile_id`` (the guest profile when omitted)."""

    @abstractmethod
    def save_profile(self, profile: UserProfile) -> UserProfile:
        """Insert or replace ``profile``."""

    @abstractmethod
    def get_settings(self) -> AppSettings:
        """Active settings, created with defaults on first load."""

    @abstractmethod
    def save_settings(self, settings: AppSettings) -> AppSettings:
        """Overwrite the active settings wholesale."""
