"""Domain models describing stories, chapters, and their blueprints."""

from __future__ import annotations

from typing import Optional
from uuid import uuid4

from pydantic import Field, field_validator, model_validator

from ..enums import StoryFormat
from ..utils.validators import count_words, reading_time_minutes
from .base import CamelModel, now_ms


class ChapterNotFoundError(IndexError):
    """Raised when a chapter index falls outside the table of contents."""

    def __init__(self, index: int) -> None:
        super().__init__(f"Chapter index {index} is out of range")
        self.index = index


class Character(CamelModel):
    name: str
    role: str = ""
    trait: str = ""
    description: Optional[str] = None


class Location(CamelModel):
    name: str
    description: str = ""


class Chapter(CamelModel):
    """A single entry in a story's table of contents."""

    chapter: int = Field(..., ge=1)
    title: str
    content: str = ""
    summary: Optional[str] = None
    is_completed: bool = False
    banner_image: Optional[str] = None

    @property
    def word_count(self) -> int:
        return count_words(self.content)

    @property
    def reading_time_minutes(self) -> int:
        return reading_time_minutes(self.content)


def _validate_toc(toc: list[Chapter]) -> list[Chapter]:
    expected = list(range(1, len(toc) + 1))
    actual = [entry.chapter for entry in toc]
    if actual != expected:
        raise ValueError("Chapter numbers must be unique and contiguous starting at 1")
    return toc


class Story(CamelModel):
    """A story owned by at most one profile (none in guest mode)."""

    id: str = Field(default_factory=lambda: str(uuid4()))
    owner_id: Optional[str] = None
    owner_name: Optional[str] = None
    title: str
    spark: str = ""
    tone: str = ""
    format: StoryFormat = StoryFormat.NOVEL
    active_chapter_index: int = Field(0, ge=0)
    characters: list[Character] = Field(default_factory=list)
    locations: list[Location] = Field(default_factory=list)
    toc: list[Chapter] = Field(default_factory=list)
    last_modified: int = Field(default_factory=now_ms)
    cover_image: Optional[str] = None
    collection: Optional[str] = None
    is_public: bool = False
    published_at: Optional[int] = None

    @field_validator("toc")
    @classmethod
    def validate_toc(cls, toc: list[Chapter]) -> list[Chapter]:
        return _validate_toc(toc)

    @model_validator(mode="after")
    def validate_active_chapter(self) -> "Story":
        limit = max(len(self.toc), 1)
        if self.active_chapter_index >= limit:
            raise ValueError(
                f"activeChapterIndex {self.active_chapter_index} is outside the table of contents"
            )
        return self

    @property
    def active_chapter(self) -> Chapter | None:
        if not self.toc:
            return None
        return self.toc[self.active_chapter_index]

    def touch(self) -> None:
        self.last_modified = now_ms()

    def chapter_at(self, index: int) -> Chapter:
        if not 0 <= index < len(self.toc):
            raise ChapterNotFoundError(index)
        return self.toc[index]

    def select_chapter(self, index: int) -> Chapter:
        chapter = self.chapter_at(index)
        self.active_chapter_index = index
        self.touch()
        return chapter

    def set_chapter_content(self, index: int, content: str) -> Chapter:
        chapter = self.chapter_at(index)
        chapter.content = content
        self.touch()
        return chapter


class StoryConfig(CamelModel):
    """Settings the user confirmed after concept analysis."""

    spark: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1)
    tone: str = ""
    format: StoryFormat = StoryFormat.NOVEL
    chapter_count: int = Field(5, ge=1, le=50)


class ConceptAnalysis(CamelModel):
    """Title, tone, and sizing proposed for a spark."""

    title: str
    tone: str
    recommended_chapters: int = 5
    recommended_format: StoryFormat = StoryFormat.NOVEL

    @field_validator("recommended_chapters")
    @classmethod
    def clamp_chapters(cls, value: int) -> int:
        return min(max(value, 3), 12)

    @field_validator("recommended_format", mode="before")
    @classmethod
    def coerce_format(cls, value: object) -> object:
        if isinstance(value, str) and value not in {item.value for item in StoryFormat}:
            return StoryFormat.NOVEL
        return value


class StoryBlueprint(CamelModel):
    """Characters, locations, and chapter outline proposed for a story."""

    characters: list[Character] = Field(default_factory=list)
    locations: list[Location] = Field(default_factory=list)
    toc: list[Chapter] = Field(default_factory=list)

    @field_validator("toc")
    @classmethod
    def validate_toc(cls, toc: list[Chapter]) -> list[Chapter]:
        return _validate_toc(toc)
