"""Smoke tests for Pydantic schema validation."""

import pytest
from pydantic import ValidationError

from gerertales_schemas import (
    AppSettings,
    Chapter,
    ChapterNotFoundError,
    ConceptAnalysis,
    Message,
    MessageRole,
    Story,
    StoryBlueprint,
    StoryFormat,
    UserProfile,
    reading_time_minutes,
)
from gerertales_schemas.utils import WordCountError, ensure_max_word_count


def _story(**overrides) -> Story:
    values = {
        "title": "The Lantern Keeper",
        "toc": [
            Chapter(chapter=1, title="Embers", content="The lamp flickered."),
            Chapter(chapter=2, title="Ash"),
        ],
    }
    values.update(overrides)
    return Story(**values)


def test_story_serialises_with_camel_case_keys() -> None:
    data = _story().to_json_dict()
    assert data["activeChapterIndex"] == 0
    assert data["toc"][0]["isCompleted"] is False
    assert "lastModified" in data
    assert Story.model_validate(data).title == "The Lantern Keeper"


def test_toc_must_be_contiguous() -> None:
    with pytest.raises(ValidationError):
        Story(title="Gaps", toc=[Chapter(chapter=1, title="A"), Chapter(chapter=3, title="C")])
    with pytest.raises(ValidationError):
        StoryBlueprint(toc=[Chapter(chapter=2, title="B")])


def test_active_chapter_must_exist() -> None:
    with pytest.raises(ValidationError):
        _story(active_chapter_index=2)
    assert Story(title="Empty").active_chapter is None


def test_select_and_update_chapter() -> None:
    story = _story()
    before = story.last_modified
    story.select_chapter(1)
    story.set_chapter_content(1, "Cinders drifted.")
    assert story.active_chapter.content == "Cinders drifted."
    assert story.last_modified >= before
    with pytest.raises(ChapterNotFoundError):
        story.select_chapter(5)


def test_reading_time() -> None:
    assert reading_time_minutes("") == 0
    assert reading_time_minutes("   ") == 0
    assert reading_time_minutes("word " * 200) == 1
    assert reading_time_minutes("word " * 201) == 2
    assert Chapter(chapter=1, title="A", content="one two three").word_count == 3


def test_concept_analysis_normalises_model_output() -> None:
    analysis = ConceptAnalysis.model_validate(
        {"title": "T", "tone": "Dark", "recommendedChapters": 40, "recommendedFormat": "Opera"}
    )
    assert analysis.recommended_chapters == 12
    assert analysis.recommended_format is StoryFormat.NOVEL
    assert ConceptAnalysis(title="T", tone="x", recommended_chapters=1).recommended_chapters == 3


def test_profile_credits_cannot_be_negative() -> None:
    assert UserProfile().credits == 50
    with pytest.raises(ValidationError):
        UserProfile(credits=-1)


def test_settings_accept_persisted_aliases() -> None:
    settings = AppSettings.model_validate({"xAIApiKey": "xai-key", "textModel": "grok-beta"})
    assert settings.x_ai_api_key == "xai-key"
    merged = settings.merged_with(AppSettings(text_model="gemini-1.5-pro"))
    assert merged.text_model == "gemini-1.5-pro"
    assert merged.x_ai_api_key == "xai-key"


def test_message_factories() -> None:
    assert Message.from_user("hi").role is MessageRole.USER
    assert Message.from_model("hello").role is MessageRole.MODEL


def test_word_count_limit() -> None:
    assert ensure_max_word_count("a b c", limit=3, field_name="spark") == "a b c"
    with pytest.raises(WordCountError, match="spark exceeds maximum word count"):
        ensure_max_word_count("a b c d", limit=3, field_name="spark")
