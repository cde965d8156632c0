from pydantic import BaseModel, Field

from clinrecall.models.flashcard import FlashcardCreate


class SoapRequest(BaseModel):
    transcript: str = Field(min_length=1)


class SoapResponse(BaseModel):
    soap_note: str


class FlashcardGenerationRequest(BaseModel):
    transcript: str = Field(min_length=1)
    ai_draft: str = Field(min_length=1)
    clinician_diagnosis: str = Field(min_length=1)
    clinician_plan: str = Field(min_length=1)


class FlashcardGenerationResponse(BaseModel):
    flashcards: list[FlashcardCreate]
