"""``.gtale`` story backups."""

from __future__ import annotations

import json
import logging
import re
from typing import Optional, Union
from uuid import uuid4

from pydantic import ValidationError

from gerertales_schemas import Story, UserProfile, now_ms

from .exceptions import BackupFormatError

logger = logging.getLogger(__name__)

BACKUP_EXTENSION = ".gtale"
IMPORTED_SUFFIX = " (Imported)"

_WHITESPACE = re.compile(r"\s+")


def backup_filename(story: Story) -> str:
    return f"{_WHITESPACE.sub('_', story.title)}{BACKUP_EXTENSION}"


def export_backup(story: Story) -> bytes:
    """Serialise ``story`` as pretty-printed camelCase JSON."""

    return json.dumps(story.to_json_dict(), indent=2, ensure_ascii=False).encode("utf-8")


def import_backup(data: Union[bytes, str], owner: Optional[UserProfile] = None) -> Story:
    """Rebuild a story from a backup as a new, independent copy.

    The copy gets a fresh id and ``lastModified``, belongs to ``owner`` (or
    nobody in guest mode), and its title is suffixed with " (Imported)".

    Raises:
        BackupFormatError: If the payload is not a valid story.
    """

    try:
        raw = json.loads(data)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise BackupFormatError("Failed to parse the tale file. Make sure it's a valid .gtale or .json file.") from exc
    if not isinstance(raw, dict):
        raise BackupFormatError("A tale file must contain a single story object")

    try:
        original = Story.model_validate(raw)
    except ValidationError as exc:
        raise BackupFormatError(f"Tale file does not describe a valid story: {exc.error_count()} errors") from exc

    imported = original.model_copy(
        update={
            "id": str(uuid4()),
            "last_modified": now_ms(),
            "owner_id": owner.id if owner else None,
            "owner_name": owner.name if owner else None,
            "title": f"{original.title}{IMPORTED_SUFFIX}",
            "is_public": False,
            "published_at": None,
        },
        deep=True,
    )
    logger.info("Story imported", extra={"story_id": imported.id, "source_story_id": original.id})
    return imported
