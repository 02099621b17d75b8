"""Tests for image fallback and speech helpers."""

from __future__ import annotations

import io
import wave

import pytest

from gerertales_providers import ImageGenerator, ModelNotFoundError
from gerertales_providers.config import FALLBACK_IMAGE_MODEL
from gerertales_providers.images import extract_xai_image, image_size_for, to_data_uri
from gerertales_providers.speech import (
    SpeechSynthesizer,
    chunk_text,
    find_voice,
    pcm_to_wav,
)
from gerertales_schemas import ImageResolution

from tests.utils.providers import make_config


pytestmark = pytest.mark.anyio("asyncio")


@pytest.fixture
def anyio_backend():
    return "asyncio"


async def test_image_fallback_retries_once(monkeypatch) -> None:
    attempts: list[str] = []

    async def fake_generate(self, prompt, *, aspect_ratio, model=None):
        attempts.append(model)
        if model == "imagen-retired":
            raise ModelNotFoundError(model)
        return "https://images.example/cover.png"

    monkeypatch.setattr(ImageGenerator, "generate", fake_generate)
    result = await ImageGenerator(make_config(image_model="imagen-retired")).generate_with_fallback(
        "a lighthouse", aspect_ratio="3:4"
    )

    assert attempts == ["imagen-retired", FALLBACK_IMAGE_MODEL]
    assert result.url == "https://images.example/cover.png"
    assert result.model == FALLBACK_IMAGE_MODEL
    assert result.cost == 20.0


async def test_image_failure_returns_empty_result(monkeypatch) -> None:
    async def failing_generate(self, prompt, *, aspect_ratio, model=None):
        raise RuntimeError("boom")

    monkeypatch.setattr(ImageGenerator, "generate", failing_generate)
    result = await ImageGenerator(make_config()).generate_with_fallback("x", aspect_ratio="16:9")
    assert not result.ok
    assert result.cost == 0.0


async def test_unconfigured_image_backend_is_free() -> None:
    result = await ImageGenerator(make_config(image_model="dall-e-3")).generate_with_fallback(
        "x", aspect_ratio="3:4"
    )
    assert result.url is None
    assert result.cost == 0.0


def test_image_helpers() -> None:
    assert to_data_uri(b"\x89PNG") == "data:image/png;base64,iVBORw=="
    assert image_size_for(ImageResolution.LOW) == "1K"
    assert image_size_for(ImageResolution.ULTRA) == "4K"
    assert extract_xai_image({"data": [{"url": "https://x.ai/img.png"}]}) == "https://x.ai/img.png"
    assert extract_xai_image({"data": [{"b64_json": "AAAA"}]}) == "data:image/png;base64,AAAA"
    assert extract_xai_image({"image": "BBBB"}) == "data:image/png;base64,BBBB"
    assert extract_xai_image({"data": []}) is None


def test_chunk_text_respects_sentence_boundaries() -> None:
    text = "One two three. Four five six! Seven eight nine?"
    assert chunk_text(text, 100) == [text]
    chunks = chunk_text(text, 20)
    assert chunks == ["One two three.", " Four five six!", " Seven eight nine?"]
    assert "".join(chunks) == text


def test_chunk_text_keeps_long_sentence_whole() -> None:
    sentence = "a" * 50 + "."
    assert chunk_text(sentence + " Short.", 20) == [sentence, " Short."]


def test_find_voice() -> None:
    assert find_voice("openai", "Nova") == "nova"
    assert find_voice("openai", "Unknown") == "alloy"
    assert find_voice("elevenlabs", "Unknown", "custom-id") == "custom-id"


def test_pcm_to_wav_header() -> None:
    audio = pcm_to_wav(b"\x00\x00" * 240)
    with wave.open(io.BytesIO(audio)) as wav:
        assert wav.getframerate() == 24000
        assert wav.getnframes() == 240


async def test_speech_without_key_returns_empty_result() -> None:
    synthesizer = SpeechSynthesizer(make_config(tts_model="eleven_multilingual_v2"))
    result = await synthesizer.synthesize("Hello.")
    assert not result.ok
    assert result.cost == 0.0
