"""Helpers for turning model output into JSON payloads."""

from __future__ import annotations

import json
import logging
import re
from typing import Any

from .exceptions import ProviderResponseError

logger = logging.getLogger(__name__)

_LEADING_JSON_FENCE = re.compile(r"^```json\s*", re.IGNORECASE)
_LEADING_FENCE = re.compile(r"^```\s*")
_TRAILING_FENCE = re.compile(r"\s*```$")


def clean_json(text: str | None) -> str:
    """Strip a Markdown code fence wrapped around a JSON payload.

    Empty input becomes ``"{}"``; already-clean JSON is returned trimmed.
    """

    if not text:
        return "{}"
    clean = text.strip()
    clean = _LEADING_JSON_FENCE.sub("", clean, count=1)
    clean = _LEADING_FENCE.sub("", clean, count=1)
    clean = _TRAILING_FENCE.sub("", clean, count=1)
    return clean


def parse_json_object(text: str | None, *, label: str) -> dict[str, Any]:
    """Decode a fenced or bare JSON object returned by a model.

    Raises:
        ProviderResponseError: If the payload is not a JSON object.
    """

    cleaned = clean_json(text)
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as exc:
        logger.error("Failed to parse %s JSON", label, extra={"payload_preview": cleaned[:200]})
        raise ProviderResponseError(f"{label} response was not valid JSON") from exc
    if not isinstance(data, dict):
        raise ProviderResponseError(f"{label} response must be a JSON object")
    return data
