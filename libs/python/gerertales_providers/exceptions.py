"""Custom exceptions used by provider adapters."""

from __future__ import annotations


class ProviderError(RuntimeError):
    """Base error raised for provider failures."""


class ProviderConfigError(ProviderError):
    """Raised when configuration is missing or invalid."""


class ProviderNotConfiguredError(ProviderConfigError):
    """Raised at call time when the selected provider has no client or key."""

    def __init__(self, provider: str) -> None:
        super().__init__(f"{provider} provider not configured")
        self.provider = provider


class ProviderResponseError(ProviderError):
    """Raised when a provider returns an unusable response."""


class ModelNotFoundError(ProviderError):
    """Raised when a model name cannot be routed or the backend rejects it."""

    def __init__(self, model: str, detail: str | None = None) -> None:
        message = f"Model not found: {model}"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)
        self.model = model


class LocalEngineError(ProviderError):
    """Raised when the local generation bridge is unreachable or errors."""


class ProviderUnavailableError(ProviderError):
    """Raised when a provider API rejects or drops a request (rate limits, outages)."""

    def __init__(self, provider: str, detail: str, status_code: int | None = None) -> None:
        super().__init__(f"{provider} request failed: {detail}")
        self.provider = provider
        self.status_code = status_code
