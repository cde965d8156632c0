"""
LLM endpoints.

  POST /ai/generate-soap        - SOAP draft from a transcript
  POST /ai/generate-flashcards  - flashcards for a case (not persisted)
"""
import json
import logging

from fastapi import APIRouter, HTTPException

from clinrecall.models.ai import (
    FlashcardGenerationRequest,
    FlashcardGenerationResponse,
    SoapRequest,
    SoapResponse,
)
from clinrecall.services.flashcard_generator import generate_case_flashcards
from clinrecall.services.llm_service import LLMUnavailableError
from clinrecall.services.note_generator import EmptyNoteError, generate_soap_note

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/generate-soap", response_model=SoapResponse)
async def generate_soap(body: SoapRequest) -> SoapResponse:
    try:
        note = await generate_soap_note(body.transcript)
    except LLMUnavailableError as e:
        raise HTTPException(status_code=503, detail=str(e)) from e
    except EmptyNoteError as e:
        raise HTTPException(status_code=502, detail="Failed to generate SOAP note") from e
    return SoapResponse(soap_note=note)


@router.post("/generate-flashcards", response_model=FlashcardGenerationResponse)
async def generate_flashcards(body: FlashcardGenerationRequest) -> FlashcardGenerationResponse:
    try:
        cards = await generate_case_flashcards(
            body.transcript,
            body.ai_draft,
            body.clinician_diagnosis,
            body.clinician_plan,
        )
    except LLMUnavailableError as e:
        raise HTTPException(status_code=503, detail=str(e)) from e
    except json.JSONDecodeError as e:
        logger.warning("Flashcard generation returned invalid JSON: %s", e)
        raise HTTPException(status_code=502, detail="Failed to generate flashcards") from e
    return FlashcardGenerationResponse(flashcards=cards)
