"""Shared observability helpers used across GererTales services."""

from .logging import log_context, setup_logging
from .metrics import (
    observe_provider_response,
    record_credit_debit,
    record_image_fallback,
    setup_fastapi_metrics,
)

__all__ = [
    "setup_logging",
    "log_context",
    "setup_fastapi_metrics",
    "observe_provider_response",
    "record_credit_debit",
    "record_image_fallback",
]
