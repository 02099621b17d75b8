"""Tests for the JSON file store used in guest mode."""

from __future__ import annotations

import json

import pytest

from gerertales_schemas import AppSettings, Chapter, Story, UserProfile
from gerertales_storage import LocalJSONStore, StorageError, StoryNotFoundError
from gerertales_storage.local import PROFILE_FILE, STORIES_FILE


def _story(title: str, last_modified: int, owner_id: str | None = None) -> Story:
    return Story(
        title=title,
        owner_id=owner_id,
        last_modified=last_modified,
        toc=[Chapter(chapter=1, title="Opening")],
    )


def test_guest_profile_created_on_first_load(tmp_path) -> None:
    store = LocalJSONStore(tmp_path)
    profile = store.get_profile()
    assert profile.credits == 50
    assert (tmp_path / PROFILE_FILE).exists()

    store.save_profile(profile.model_copy(update={"credits": 12.5}))
    assert LocalJSONStore(tmp_path).get_profile().credits == 12.5


def test_stories_listed_newest_first(tmp_path) -> None:
    store = LocalJSONStore(tmp_path)
    older = store.save_story(_story("Older", 1000))
    newer = store.save_story(_story("Newer", 2000, owner_id="owner-1"))

    assert [story.id for story in store.list_stories()] == [newer.id, older.id]
    assert [story.id for story in store.list_stories("owner-1")] == [newer.id]
    assert store.get_story(older.id).title == "Older"


def test_save_replaces_existing_story(tmp_path) -> None:
    store = LocalJSONStore(tmp_path)
    story = store.save_story(_story("Draft", 1000))
    story.title = "Final"
    store.save_story(story)

    stories = store.list_stories()
    assert len(stories) == 1
    assert stories[0].title == "Final"


def test_delete_story(tmp_path) -> None:
    store = LocalJSONStore(tmp_path)
    story = store.save_story(_story("Doomed", 1000))
    store.delete_story(story.id)
    with pytest.raises(StoryNotFoundError):
        store.get_story(story.id)
    with pytest.raises(StoryNotFoundError):
        store.delete_story(story.id)


def test_unreadable_story_entries_are_skipped(tmp_path) -> None:
    good = _story("Good", 1000).to_json_dict()
    (tmp_path / STORIES_FILE).write_text(json.dumps([good, {"title": "Broken", "toc": "nope"}]), encoding="utf-8")
    stories = LocalJSONStore(tmp_path).list_stories()
    assert [story.title for story in stories] == ["Good"]


def test_corrupt_file_raises(tmp_path) -> None:
    (tmp_path / STORIES_FILE).write_text("{not json", encoding="utf-8")
    with pytest.raises(StorageError):
        LocalJSONStore(tmp_path).list_stories()


def test_settings_round_trip(tmp_path) -> None:
    store = LocalJSONStore(tmp_path)
    assert store.get_settings() == AppSettings()
    store.save_settings(AppSettings(text_model="gemini-1.5-pro", x_ai_api_key="xai"))
    reloaded = LocalJSONStore(tmp_path).get_settings()
    assert reloaded.text_model == "gemini-1.5-pro"
    assert reloaded.x_ai_api_key == "xai"


def test_data_dir_from_environment(tmp_path, monkeypatch) -> None:
    monkeypatch.setenv("GERERTALES_DATA_DIR", str(tmp_path / "custom"))
    store = LocalJSONStore()
    store.save_profile(UserProfile())
    assert (tmp_path / "custom" / PROFILE_FILE).exists()
