"""JSON file store used in guest mode."""

from __future__ import annotations

import json
import logging
import os
import threading
from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError

from gerertales_schemas import AppSettings, Story, UserProfile

from .base import StoryRepository
from .exceptions import StorageError, StoryNotFoundError

logger = logging.getLogger(__name__)

STORIES_FILE = "gerertales_stories.json"
PROFILE_FILE = "gerertales_profile.json"
SETTINGS_FILE = "gerertales_settings.json"
DATA_DIR_ENV_VAR = "GERERTALES_DATA_DIR"


def default_data_dir() -> Path:
    return Path(os.getenv(DATA_DIR_ENV_VAR, os.path.join(os.getcwd(), "storage")))


class LocalJSONStore(StoryRepository):
    """Persist stories, the guest profile and settings as JSON files.

    Each file is rewritten atomically through a temporary sibling. Story
    entries that no longer validate are skipped with a warning instead of
    making the whole library unreadable.
    """

    name = "local"

    def __init__(self, data_dir: Path | str | None = None) -> None:
        self._root = Path(data_dir) if data_dir is not None else default_data_dir()
        self._lock = threading.RLock()

    @property
    def root(self) -> Path:
        return self._root

    def _read(self, filename: str) -> Any:
        path = self._root / filename
        if not path.exists():
            return None
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            raise StorageError(f"{filename} is not valid JSON") from exc

    def _write(self, filename: str, payload: Any) -> None:
        self._root.mkdir(parents=True, exist_ok=True)
        path = self._root / filename
        tmp_path = path.with_suffix(path.suffix + ".tmp")
        tmp_path.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")
        os.replace(tmp_path, path)

    def _load_stories(self) -> list[Story]:
        raw = self._read(STORIES_FILE) or []
        stories: list[Story] = []
        for entry in raw:
            try:
                stories.append(Story.model_validate(entry))
            except ValidationError as exc:
                logger.warning(
                    "Skipping unreadable story entry",
                    extra={"story_id": entry.get("id") if isinstance(entry, dict) else None, "error": str(exc)},
                )
        return stories

    def _dump_stories(self, stories: list[Story]) -> None:
        self._write(STORIES_FILE, [story.to_json_dict() for story in stories])

    def list_stories(self, owner_id: Optional[str] = None) -> list[Story]:
        with self._lock:
            stories = self._load_stories()
        if owner_id is not None:
            stories = [story for story in stories if story.owner_id == owner_id]
        return sorted(stories, key=lambda story: story.last_modified, reverse=True)

    def get_story(self, story_id: str) -> Story:
        with self._lock:
            for story in self._load_stories():
                if story.id == story_id:
                    return story
        raise StoryNotFoundError(story_id)

    def save_story(self, story: Story) -> Story:
        with self._lock:
            stories = [existing for existing in self._load_stories() if existing.id != story.id]
            stories.insert(0, story)
            self._dump_stories(stories)
        logger.debug("Story saved", extra={"story_id": story.id})
        return story

    def delete_story(self, story_id: str, owner_id: Optional[str] = None) -> None:
        with self._lock:
            stories = self._load_stories()
            remaining = [
                story
                for story in stories
                if not (story.id == story_id and (owner_id is None or story.owner_id == owner_id))
            ]
            if len(remaining) == len(stories):
                raise StoryNotFoundError(story_id)
            self._dump_stories(remaining)
        logger.info("Story deleted", extra={"story_id": story_id})

    def get_profile(self, profile_id: Optional[str] = None) -> UserProfile:
        with self._lock:
            raw = self._read(PROFILE_FILE)
            if raw is None:
                profile = UserProfile()
                self._write(PROFILE_FILE, profile.to_json_dict())
                logger.info("Guest profile created", extra={"balance": profile.credits})
                return profile
        return UserProfile.model_validate(raw)

    def save_profile(self, profile: UserProfile) -> UserProfile:
        with self._lock:
            self._write(PROFILE_FILE, profile.to_json_dict())
        return profile

    def get_settings(self) -> AppSettings:
        with self._lock:
            raw = self._read(SETTINGS_FILE)
            if raw is None:
                settings = AppSettings()
                self._write(SETTINGS_FILE, settings.to_json_dict())
                return settings
        return AppSettings.model_validate(raw)

    def save_settings(self, settings: AppSettings) -> AppSettings:
        with self._lock:
            self._write(SETTINGS_FILE, settings.to_json_dict())
        return settings
