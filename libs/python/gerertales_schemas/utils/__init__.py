from .validators import (
    WORDS_PER_MINUTE,
    WordCountError,
    count_words,
    ensure_max_word_count,
    reading_time_minutes,
)

__all__ = [
    "WORDS_PER_MINUTE",
    "WordCountError",
    "count_words",
    "ensure_max_word_count",
    "reading_time_minutes",
]
