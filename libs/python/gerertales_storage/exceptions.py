"""Errors raised by story persistence and export."""

from __future__ import annotations


class StorageError(RuntimeError):
    """Base error for persistence failures."""


class StoryNotFoundError(StorageError):
    def __init__(self, story_id: str) -> None:
        super().__init__(f"Story not found: {story_id}")
        self.story_id = story_id


class BackupFormatError(StorageError):
    """Raised when a ``.gtale`` backup cannot be parsed."""


class ExportError(StorageError):
    """Raised when a document cannot be rendered."""
