"""Static credit rates and helpers for pricing AI operations."""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Mapping

RATE_INPUT_TOKEN = 0.001  # 1 credit per 1000 tokens
RATE_OUTPUT_TOKEN = 0.004  # 4 credits per 1000 tokens
RATE_IMAGE = 20.0
RATE_TTS_CHAR = 0.01
RATE_ELEVENLABS_CHAR = 0.05
MINIMUM_CHARGE = 0.1
LOCAL_ENGINE_COST = 0.1

# Indicative per-feature prices shown to users before they spend credits.
FEATURE_COSTS: Mapping[str, float] = {
    "analysis": 5,
    "blueprint": 15,
    "writing_prose": 3,
    "writing_chat": 1,
    "image_cover": 25,
    "image_banner": 20,
    "tts_chunk": 5,
}


def round2(value: float) -> float:
    """Round half-up to two decimal places."""

    return float(Decimal(str(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def calculate_cost(input_tokens: int | float | None, output_tokens: int | float | None) -> float:
    """Credit cost for a text generation.

    Args:
        input_tokens: Prompt tokens billed for the request.
        output_tokens: Completion tokens billed for the request.

    Returns:
        ``max(0.1, round2(input * RATE_INPUT_TOKEN + output * RATE_OUTPUT_TOKEN))``.
        Negative or missing counts count as zero, so the result is never
        below the minimum charge.
    """

    prompt_value = max(float(input_tokens or 0), 0.0)
    completion_value = max(float(output_tokens or 0), 0.0)
    cost = prompt_value * RATE_INPUT_TOKEN + completion_value * RATE_OUTPUT_TOKEN
    return max(MINIMUM_CHARGE, round2(cost))


def image_cost() -> float:
    return RATE_IMAGE


def speech_cost(characters: int, *, provider: str) -> float:
    rate = RATE_ELEVENLABS_CHAR if provider == "elevenlabs" else RATE_TTS_CHAR
    return round2(max(characters, 0) * rate)


__all__ = [
    "FEATURE_COSTS",
    "LOCAL_ENGINE_COST",
    "MINIMUM_CHARGE",
    "RATE_ELEVENLABS_CHAR",
    "RATE_IMAGE",
    "RATE_INPUT_TOKEN",
    "RATE_OUTPUT_TOKEN",
    "RATE_TTS_CHAR",
    "calculate_cost",
    "image_cost",
    "round2",
    "speech_cost",
]
