"""Reusable validation and text-measurement helpers."""

from __future__ import annotations

import math

WORDS_PER_MINUTE = 200


class WordCountError(ValueError):
    """Raised when a field exceeds the configured word count."""


def ensure_max_word_count(value: str, *, limit: int, field_name: str) -> str:
    """Validate that the given string does not exceed ``limit`` words.

    Args:
        value: Input text to evaluate.
        limit: Maximum number of words permitted.
        field_name: Name used in the raised error message.

    Returns:
        The original string when validation succeeds.

    Raises:
        WordCountError: If the number of words exceeds the limit.
    """

    word_count = count_words(value)
    if word_count > limit:
        raise WordCountError(
            f"{field_name} exceeds maximum word count: {word_count} > {limit}"
        )
    return value


def count_words(value: str | None) -> int:
    if not value:
        return 0
    return len(value.split())


def reading_time_minutes(content: str | None) -> int:
    """Estimated minutes to read ``content`` at 200 words per minute.

    Empty or whitespace-only content reads in zero minutes.
    """

    return math.ceil(count_words(content) / WORDS_PER_MINUTE)
