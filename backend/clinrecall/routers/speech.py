"""
Speech relays (ElevenLabs).

  POST /stt/transcribe  - multipart audio upload -> transcript
  POST /tts/speak       - text -> audio/mpeg
  POST /tts/stream      - text -> sentence chunks as base64 mp3 data URLs
  GET  /tts/voices      - available voices

Errors come back as {"detail": {"code": ..., "message": ...}}.
"""
from typing import NoReturn

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from fastapi.responses import Response

from clinrecall.config import settings
from clinrecall.models.speech import SpeakRequest, SpeechStreamResponse, TranscriptionResult
from clinrecall.services import speech_service
from clinrecall.services.rate_limit import ClientRateLimiter
from clinrecall.services.speech_service import SpeechServiceError

router = APIRouter()

stt_limiter = ClientRateLimiter(
    settings.stt_rate_limit_max, settings.stt_rate_limit_window_seconds
)


def _raise(e: SpeechServiceError) -> NoReturn:
    raise HTTPException(
        status_code=e.status_code, detail={"code": e.code, "message": e.message}
    ) from e


@router.post(
    "/stt/transcribe",
    response_model=TranscriptionResult,
    dependencies=[Depends(stt_limiter)],
)
async def transcribe(
    file: UploadFile | None = File(default=None),
    language_code: str | None = Form(default=None),
    model_id: str | None = Form(default=None),
) -> TranscriptionResult:
    if file is None:
        raise HTTPException(
            status_code=400,
            detail={"code": "VALIDATION", "message": "Missing 'file' multipart field"},
        )
    # Refuse oversized uploads before pulling the spooled file into memory
    if file.size is not None and file.size > settings.stt_max_upload_bytes:
        raise HTTPException(
            status_code=413,
            detail={"code": "VALIDATION", "message": "Audio file too large"},
        )
    content = await file.read()
    try:
        return await speech_service.transcribe(
            content,
            file.filename or "audio.webm",
            file.content_type or "",
            language_code=language_code,
            model_id=model_id,
        )
    except SpeechServiceError as e:
        _raise(e)


@router.post("/tts/speak")
async def speak(body: SpeakRequest) -> Response:
    try:
        audio = await speech_service.speak(body.text, body.voice_id, body.model_id)
    except SpeechServiceError as e:
        _raise(e)
    return Response(content=audio, media_type="audio/mpeg")


@router.post("/tts/stream", response_model=SpeechStreamResponse)
async def speak_stream(body: SpeakRequest) -> SpeechStreamResponse:
    try:
        chunks = await speech_service.speak_chunks(body.text, body.voice_id, body.model_id)
    except SpeechServiceError as e:
        _raise(e)
    return SpeechStreamResponse(chunks=chunks)


@router.get("/tts/voices")
async def voices() -> dict:
    try:
        return await speech_service.list_voices()
    except SpeechServiceError as e:
        _raise(e)
