"""Tests for structured logging and metrics helpers."""

from __future__ import annotations

import json
import logging

from gerertales_observability import log_context
from gerertales_observability.logging import REDACTED, ContextFilter, JsonFormatter, current_context, redact
from gerertales_observability.metrics import record_credit_debit
from prometheus_client import REGISTRY


def _render(message: str, **extra) -> dict:
    record = logging.LogRecord("gerertales.test", logging.INFO, __file__, 1, message, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    ContextFilter("studio").filter(record)
    return json.loads(JsonFormatter().format(record))


def test_log_context_is_scoped() -> None:
    with log_context(story_id="story-1", feature="Chat"):
        with log_context(feature=None, provider="xai"):
            assert current_context() == {"story_id": "story-1", "provider": "xai"}
        payload = _render("Text generation completed", prompt_tokens=12)
    assert current_context() == {}

    assert payload["service"] == "studio"
    assert payload["story_id"] == "story-1"
    assert payload["feature"] == "Chat"
    assert payload["prompt_tokens"] == 12
    assert list(payload)[:5] == ["timestamp", "level", "logger", "message", "service"]


def test_secrets_are_redacted() -> None:
    payload = _render("Settings saved", x_ai_api_key="xai-secret", completion_tokens=3)
    assert payload["x_ai_api_key"] == REDACTED
    assert payload["completion_tokens"] == 3
    assert redact({"openAiApiKey": "sk", "model": "grok-beta"}) == {"openAiApiKey": REDACTED, "model": "grok-beta"}


def test_unserialisable_extras_are_stringified() -> None:
    payload = _render("Odd value", error=ValueError("bad"))
    assert payload["error"] == "bad"


def test_credit_debits_are_counted() -> None:
    labels = {"feature": "Narration", "ledger": "test"}
    before = REGISTRY.get_sample_value("gerertales_credits_debited_total", labels) or 0.0
    record_credit_debit("Narration", 2.5, ledger="test")
    record_credit_debit("Narration", 0, ledger="test")
    assert REGISTRY.get_sample_value("gerertales_credits_debited_total", labels) == before + 2.5
