"""Text-to-speech across ElevenLabs, OpenAI and Gemini."""

from __future__ import annotations

import io
import logging
import re
import wave
from dataclasses import dataclass
from typing import Dict, List

from google.genai import types

from .config import ELEVENLABS_BASE_URL, ResolvedConfig
from .exceptions import ModelNotFoundError, ProviderNotConfiguredError, ProviderResponseError
from .pricing import speech_cost
from .routing import Provider, speech_provider_for

logger = logging.getLogger(__name__)

ELEVENLABS_MODEL_ID = "eleven_multilingual_v2"
ELEVENLABS_VOICE_SETTINGS = {"stability": 0.5, "similarity_boost": 0.75}
OPENAI_CHUNK_CHARS = 4000
GEMINI_CHUNK_CHARS = 3500
GEMINI_SAMPLE_RATE = 24000
DEFAULT_VOICE_NAME = "Rachel"

VOICE_LISTS: Dict[str, List[Dict[str, str]]] = {
    "gemini": [
        {"name": "Kore", "id": "Kore"},
        {"name": "Puck", "id": "Puck"},
        {"name": "Charon", "id": "Charon"},
        {"name": "Fenrir", "id": "Fenrir"},
        {"name": "Zephyr", "id": "Zephyr"},
    ],
    "openai": [
        {"name": "Alloy", "id": "alloy"},
        {"name": "Echo", "id": "echo"},
        {"name": "Fable", "id": "fable"},
        {"name": "Onyx", "id": "onyx"},
        {"name": "Nova", "id": "nova"},
        {"name": "Shimmer", "id": "shimmer"},
    ],
    "elevenlabs": [
        {"name": "Rachel", "id": "21m00Tcm4TlvDq8ikWAM"},
        {"name": "Antoni", "id": "ErXw79k9X55p24L2tq0O"},
        {"name": "Elli", "id": "MF3mGyEYCl7XYWbV9V6O"},
        {"name": "Josh", "id": "Tx33qxS9ppHS7LmdUv7O"},
        {"name": "Arnold", "id": "VR6A9C78zM76B9Xp6m3U"},
        {"name": "Adam", "id": "pNInz6S6IPD9S0G42LdD"},
    ],
}

_SENTENCE = re.compile(r"[^.!?]+[.!?]+|[^.!?]+$")


@dataclass(slots=True)
class SpeechResult:
    audio: bytes | None
    cost: float
    mime_type: str = "audio/mpeg"

    @property
    def ok(self) -> bool:
        return self.audio is not None


def chunk_text(text: str, max_length: int = OPENAI_CHUNK_CHARS) -> list[str]:
    """Split ``text`` on sentence boundaries into chunks of at most ``max_length``.

    A single sentence longer than the limit becomes its own chunk.
    """

    if len(text) <= max_length:
        return [text]
    chunks: list[str] = []
    current = ""
    for sentence in _SENTENCE.findall(text) or [text]:
        if current and len(current) + len(sentence) > max_length:
            chunks.append(current)
            current = sentence
        else:
            current += sentence
    if current:
        chunks.append(current)
    return chunks


def find_voice(provider: str, voice_name: str | None, default_id: str | None = None) -> str:
    voices = VOICE_LISTS[provider]
    for voice in voices:
        if voice["name"] == voice_name:
            return voice["id"]
    return default_id or voices[0]["id"]


def pcm_to_wav(pcm: bytes, *, sample_rate: int = GEMINI_SAMPLE_RATE, channels: int = 1) -> bytes:
    buffer = io.BytesIO()
    with wave.open(buffer, "wb") as wav:
        wav.setnchannels(channels)
        wav.setsampwidth(2)
        wav.setframerate(sample_rate)
        wav.writeframes(pcm)
    return buffer.getvalue()


class SpeechSynthesizer:
    """Narrate text with the configured TTS model.

    Failures are logged and returned as an empty :class:`SpeechResult` so a
    narration request never charges for audio that was not produced.
    """

    def __init__(self, config: ResolvedConfig) -> None:
        self._config = config

    async def synthesize(self, text: str, voice_name: str | None = DEFAULT_VOICE_NAME) -> SpeechResult:
        model = self._config.tts_model
        try:
            provider = speech_provider_for(model)
            if provider is Provider.ELEVENLABS:
                audio = await self._elevenlabs(text, voice_name)
                return SpeechResult(audio, speech_cost(len(text), provider="elevenlabs"))
            if provider is Provider.OPENAI:
                audio = await self._openai(model, text, voice_name)
                return SpeechResult(audio, speech_cost(len(text), provider="openai"))
            if provider is Provider.GEMINI:
                audio = await self._gemini(model, text, voice_name)
                return SpeechResult(audio, speech_cost(len(text), provider="gemini"), mime_type="audio/wav")
            silence = pcm_to_wav(b"\x00\x00" * (GEMINI_SAMPLE_RATE // 10))
            return SpeechResult(silence, speech_cost(len(text), provider="mock"), mime_type="audio/wav")
        except ModelNotFoundError as exc:
            logger.warning("Unsupported speech model", extra={"model": model, "error": str(exc)})
        except ProviderNotConfiguredError as exc:
            logger.warning("Speech provider not configured", extra={"model": model, "error": str(exc)})
        except Exception:  # narration failures are reported as an empty result
            logger.exception("Speech synthesis failed", extra={"model": model})
        return SpeechResult(None, 0.0)

    async def _elevenlabs(self, text: str, voice_name: str | None) -> bytes:
        if not self._config.elevenlabs_api_key:
            raise ProviderNotConfiguredError("ElevenLabs")
        voice_id = find_voice("elevenlabs", voice_name, self._config.eleven_labs_voice_id)
        response = await self._config.require_http().post(
            f"{ELEVENLABS_BASE_URL}/text-to-speech/{voice_id}",
            json={
                "text": text,
                "model_id": ELEVENLABS_MODEL_ID,
                "voice_settings": ELEVENLABS_VOICE_SETTINGS,
            },
            headers={"xi-api-key": self._config.elevenlabs_api_key},
        )
        response.raise_for_status()
        return response.content

    async def _openai(self, model: str, text: str, voice_name: str | None) -> bytes:
        client = self._config.require_openai()
        voice = find_voice("openai", voice_name)
        audio = bytearray()
        for chunk in chunk_text(text, OPENAI_CHUNK_CHARS):
            response = await client.audio.speech.create(model=model, voice=voice, input=chunk)
            audio.extend(response.content)
        return bytes(audio)

    async def _gemini(self, model: str, text: str, voice_name: str | None) -> bytes:
        if not self._config.gemini_tts_enabled:
            raise ProviderNotConfiguredError("Gemini speech")
        client = self._config.require_gemini()
        voice = find_voice("gemini", voice_name)
        speech_config = types.SpeechConfig(
            voice_config=types.VoiceConfig(
                prebuilt_voice_config=types.PrebuiltVoiceConfig(voice_name=voice)
            )
        )
        pcm = bytearray()
        for chunk in chunk_text(text, GEMINI_CHUNK_CHARS):
            response = await client.aio.models.generate_content(
                model=model,
                contents=chunk,
                config=types.GenerateContentConfig(
                    response_modalities=["AUDIO"],
                    speech_config=speech_config,
                ),
            )
            candidates = response.candidates or []
            parts = candidates[0].content.parts if candidates and candidates[0].content else None
            inline = parts[0].inline_data if parts else None
            if inline is not None and inline.data:
                pcm.extend(inline.data)
        if not pcm:
            raise ProviderResponseError("No audio generated by Gemini")
        return pcm_to_wav(bytes(pcm))
