"""Transient chat turns exchanged with the co-writer."""

from __future__ import annotations

from uuid import uuid4

from pydantic import Field

from ..enums import MessageRole
from .base import CamelModel


class Message(CamelModel):
    id: str = Field(default_factory=lambda: str(uuid4()))
    role: MessageRole
    text: str
    is_thinking: bool = False

    @classmethod
    def from_user(cls, text: str) -> "Message":
        return cls(role=MessageRole.USER, text=text)

    @classmethod
    def from_model(cls, text: str) -> "Message":
        return cls(role=MessageRole.MODEL, text=text)
