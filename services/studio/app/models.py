"""Pydantic models for the studio API."""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from gerertales_schemas import (
    AppSettings,
    ConceptAnalysis,
    Message,
    Story,
    StoryBlueprint,
    StoryConfig,
    UserProfile,
)
from gerertales_schemas.utils import ensure_max_word_count

SPARK_WORD_LIMIT = 500


class ConceptRequest(BaseModel):
    spark: str = Field(..., min_length=1)

    @field_validator("spark")
    @classmethod
    def validate_spark(cls, value: str) -> str:
        return ensure_max_word_count(value.strip(), limit=SPARK_WORD_LIMIT, field_name="spark")


class ConceptResponse(BaseModel):
    analysis: ConceptAnalysis
    cost: float
    credits: float


class BlueprintRequest(BaseModel):
    config: StoryConfig


class BlueprintResponse(BaseModel):
    blueprint: StoryBlueprint
    cost: float
    credits: float


class CreateStoryRequest(BaseModel):
    config: StoryConfig
    blueprint: StoryBlueprint


class MessageRequest(BaseModel):
    text: str = Field(..., min_length=1)


class ChapterContentUpdate(BaseModel):
    content: str
    chapter_index: Optional[int] = Field(None, ge=0)


class SelectChapterRequest(BaseModel):
    index: int = Field(..., ge=0)


class PublishRequest(BaseModel):
    is_public: bool


class NarrationRequest(BaseModel):
    chapter_index: Optional[int] = Field(None, ge=0)
    voice_name: Optional[str] = None


class ImageResponse(BaseModel):
    url: Optional[str] = None
    cost: float
    credits: float


class SessionResponse(BaseModel):
    story: Story
    messages: List[Message] = Field(default_factory=list)
    credits: float


class StorySummary(BaseModel):
    id: str
    title: str
    format: str
    last_modified: int
    chapter_count: int
    word_count: int
    cover_image: Optional[str] = None
    is_public: bool = False

    @classmethod
    def from_story(cls, story: Story) -> "StorySummary":
        return cls(
            id=story.id,
            title=story.title,
            format=story.format.value,
            last_modified=story.last_modified,
            chapter_count=len(story.toc),
            word_count=sum(chapter.word_count for chapter in story.toc),
            cover_image=story.cover_image,
            is_public=story.is_public,
        )


class ProfileResponse(BaseModel):
    profile: UserProfile


class ProfileUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=120)
    bio: Optional[str] = Field(None, max_length=1000)
    avatar_color: Optional[str] = None
    avatar_url: Optional[str] = None


class SettingsPayload(BaseModel):
    settings: AppSettings


class FeatureCostsResponse(BaseModel):
    costs: dict[str, float]
