from typing import Any

from pydantic import BaseModel


class TranscriptionResult(BaseModel):
    transcript: str
    provider: str
    words: list[dict[str, Any]] | None = None
    mocked: bool = False


class SpeakRequest(BaseModel):
    text: str | None = None
    voice_id: str | None = None
    model_id: str | None = None


class SpeechChunk(BaseModel):
    index: int
    audio: str  # data:audio/mpeg;base64,...
    text: str


class SpeechStreamResponse(BaseModel):
    chunks: list[SpeechChunk]
