"""Story persistence, backups, and document export."""

from .backup import backup_filename, export_backup, import_backup
from .base import StoryRepository
from .exceptions import BackupFormatError, ExportError, StorageError, StoryNotFoundError
from .exporters import (
    chapter_filename,
    chapter_to_markdown,
    chapter_to_text,
    story_filename,
    story_to_markdown,
    story_to_pdf,
    story_to_text,
)
from .local import LocalJSONStore
from .postgres import PostgresStore

__all__ = [
    "BackupFormatError",
    "ExportError",
    "LocalJSONStore",
    "PostgresStore",
    "StorageError",
    "StoryNotFoundError",
    "StoryRepository",
    "backup_filename",
    "chapter_filename",
    "chapter_to_markdown",
    "chapter_to_text",
    "export_backup",
    "import_backup",
    "story_filename",
    "story_to_markdown",
    "story_to_pdf",
    "story_to_text",
]
