"""
ElevenLabs speech relays.

  transcribe()   -> speech-to-text upload
  speak()        -> one mp3 for the (summarised) text
  speak_chunks() -> one mp3 per sentence chunk, as data URLs
  list_voices()  -> the vendor's voice list

Failures raise SpeechServiceError carrying the HTTP status and an error code
(VALIDATION, CONFIG, UPSTREAM).
"""
from __future__ import annotations

import base64
import logging
import re
import time
from typing import Any
from urllib.parse import quote

import httpx

from clinrecall.config import settings
from clinrecall.models.speech import SpeechChunk, TranscriptionResult
from clinrecall.services.soap import chunk_sentences, summarize_for_speech

logger = logging.getLogger(__name__)

ALLOWED_AUDIO_TYPES = frozenset(
    {"audio/webm", "audio/wav", "audio/mpeg", "audio/ogg", "audio/x-wav"}
)
MOCK_TRANSCRIPT = "This is a mock transcript for testing configuration."

_VOICE_ID = re.compile(r"^[A-Za-z0-9_-]+$")
_VOICE_SETTINGS = {
    "stability": 0.4,
    "similarity_boost": 0.6,
    "style": 0.0,
    "use_speaker_boost": False,
}
_STT_TIMEOUT = 120.0
_TTS_TIMEOUT = 60.0


class SpeechServiceError(Exception):
    def __init__(self, status_code: int, code: str, message: str):
        super().__init__(message)
        self.status_code = status_code
        self.code = code
        self.message = message


def _api_key() -> str:
    if not settings.elevenlabs_api_key:
        raise SpeechServiceError(500, "CONFIG", "Missing ElevenLabs API key")
    return settings.elevenlabs_api_key


async def transcribe(
    content: bytes,
    filename: str,
    mime_type: str,
    language_code: str | None = None,
    model_id: str | None = None,
) -> TranscriptionResult:
    if mime_type not in ALLOWED_AUDIO_TYPES:
        raise SpeechServiceError(400, "VALIDATION", f"Unsupported mime type: {mime_type}")
    if len(content) > settings.stt_max_upload_bytes:
        raise SpeechServiceError(413, "VALIDATION", "Audio file too large")

    if not settings.elevenlabs_api_key:
        if settings.use_mock_stt:
            return TranscriptionResult(transcript=MOCK_TRANSCRIPT, provider="mock", mocked=True)
        _api_key()

    model = model_id or settings.elevenlabs_stt_model_id
    data = {"model_id": model, "enable_logging": "false"}
    if language_code:
        data["language_code"] = language_code

    start = time.monotonic()
    try:
        async with httpx.AsyncClient() as client:
            res = await client.post(
                settings.elevenlabs_stt_url,
                headers={"xi-api-key": _api_key()},
                data=data,
                files={"file": (filename, content, mime_type)},
                timeout=_STT_TIMEOUT,
            )
    except httpx.HTTPError as e:
        logger.error("stt_error provider=elevenlabs error=%s", e)
        raise SpeechServiceError(502, "UPSTREAM", "Speech-to-text request failed") from e
    duration_ms = int((time.monotonic() - start) * 1000)

    if res.status_code >= 400:
        logger.error(
            "stt_error provider=elevenlabs status=%d duration_ms=%d bytes=%d error=%s",
            res.status_code,
            duration_ms,
            len(content),
            res.text[:500],
        )
        raise SpeechServiceError(
            502, "UPSTREAM", f"ElevenLabs STT failed ({res.status_code})"
        )

    payload: dict[str, Any] = res.json()
    transcript = payload.get("text") or payload.get("transcript") or payload.get("result") or ""
    logger.info(
        "stt_success provider=elevenlabs status=%d duration_ms=%d bytes=%d model=%s language_code=%s",
        res.status_code,
        duration_ms,
        len(content),
        model,
        language_code,
    )
    return TranscriptionResult(
        transcript=transcript,
        provider="elevenlabs",
        words=payload.get("words") or None,
    )


def _validate_request(text: str | None, voice_id: str | None) -> tuple[str, str]:
    if not text or not text.strip():
        raise SpeechServiceError(400, "VALIDATION", "Missing text")
    voice = voice_id or settings.elevenlabs_voice_id
    if not _VOICE_ID.match(voice):
        raise SpeechServiceError(400, "VALIDATION", "Invalid voice_id format")
    return text, voice


async def _synthesize(
    client: httpx.AsyncClient,
    api_key: str,
    text: str,
    voice_id: str,
    model_id: str | None,
) -> httpx.Response:
    return await client.post(
        f"{settings.elevenlabs_base_url}/v1/text-to-speech/{quote(voice_id)}",
        params={"optimize_streaming_latency": 4},
        headers={
            "xi-api-key": api_key,
            "Content-Type": "application/json",
            "Accept": "audio/mpeg",
        },
        json={
            "text": text,
            "model_id": model_id or settings.elevenlabs_tts_model_id,
            "voice_settings": _VOICE_SETTINGS,
        },
        timeout=_TTS_TIMEOUT,
    )


async def speak(text: str | None, voice_id: str | None = None, model_id: str | None = None) -> bytes:
    text, voice = _validate_request(text, voice_id)
    api_key = _api_key()
    spoken = summarize_for_speech(text)

    start = time.monotonic()
    try:
        async with httpx.AsyncClient() as client:
            res = await _synthesize(client, api_key, spoken, voice, model_id)
    except httpx.HTTPError as e:
        logger.error("tts_error error=%s", e)
        raise SpeechServiceError(502, "UPSTREAM", "Text-to-speech request failed") from e
    duration_ms = int((time.monotonic() - start) * 1000)

    if res.status_code >= 400:
        logger.error(
            "tts_error status=%d duration_ms=%d error=%s",
            res.status_code,
            duration_ms,
            res.text[:500],
        )
        raise SpeechServiceError(502, "UPSTREAM", f"TTS failed ({res.status_code})")

    audio = res.content
    logger.info("tts_success status=%d duration_ms=%d bytes=%d", res.status_code, duration_ms, len(audio))
    return audio


async def speak_chunks(
    text: str | None, voice_id: str | None = None, model_id: str | None = None
) -> list[SpeechChunk]:
    """Synthesise sentence chunks one by one; failed chunks are skipped."""
    text, voice = _validate_request(text, voice_id)
    api_key = _api_key()

    chunks: list[SpeechChunk] = []
    async with httpx.AsyncClient() as client:
        for i, chunk in enumerate(chunk_sentences(text)):
            try:
                res = await _synthesize(client, api_key, chunk, voice, model_id)
            except httpx.HTTPError as e:
                logger.warning("TTS chunk %d failed: %s", i, e)
                continue
            if res.status_code >= 400:
                logger.warning("TTS chunk %d failed: %d", i, res.status_code)
                continue
            encoded = base64.b64encode(res.content).decode("ascii")
            chunks.append(
                SpeechChunk(index=i, audio=f"data:audio/mpeg;base64,{encoded}", text=chunk)
            )
    return chunks


async def list_voices() -> dict[str, Any]:
    api_key = _api_key()
    try:
        async with httpx.AsyncClient() as client:
            res = await client.get(
                f"{settings.elevenlabs_base_url}/v1/voices",
                headers={"xi-api-key": api_key},
                timeout=_TTS_TIMEOUT,
            )
    except httpx.HTTPError as e:
        raise SpeechServiceError(502, "UPSTREAM", "Voices request failed") from e
    if res.status_code >= 400:
        raise SpeechServiceError(502, "UPSTREAM", f"Voices fetch failed ({res.status_code})")
    return res.json()
