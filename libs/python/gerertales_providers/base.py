"""Core interfaces and dataclasses for provider interactions."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, MutableMapping, Sequence


@dataclass(slots=True)
class ChatTurn:
    """One prior exchange in a co-writing conversation."""

    role: str
    text: str

    @property
    def openai_role(self) -> str:
        return "assistant" if self.role == "model" else "user"


@dataclass(slots=True)
class ProviderRequest:
    """Normalized request passed to providers."""

    prompt: str
    system_prompt: str | None = None
    history: Sequence[ChatTurn] = ()
    json_mode: bool = False
    temperature: float | None = None
    max_output_tokens: int | None = None
    metadata: MutableMapping[str, Any] = field(default_factory=dict)


@dataclass(slots=True)
class ProviderResponse:
    """Standard response returned by providers, priced in credits."""

    text: str
    raw: Any
    model: str
    prompt_tokens: int
    completion_tokens: int
    cost_credits: float = 0.0
    latency_ms: float | None = None
    received_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass(slots=True)
class ProviderCapabilities:
    """Capability flags used when choosing how to phrase a request."""

    supports_json_mode: bool = False
    supports_chat_history: bool = True
    supports_system_prompt: bool = True


class LLMProvider(ABC):
    """Abstract base class implemented by concrete text providers."""

    name: str

    @abstractmethod
    def capabilities(self) -> ProviderCapabilities:
        """Return capability metadata."""

    @abstractmethod
    async def generate(self, request: ProviderRequest) -> ProviderResponse:
        """Generate text or JSON response for the provided prompt."""
